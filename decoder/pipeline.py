from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np
import yaml

from common.geo import haversine_m, initial_bearing_deg
from common.logging_setup import get_logger, setup_logging
from common.utils import RateTimer, unix_to_iso
from decoder.layouts import InstrumentLayout, get_layout
from decoder.packets import iter_packet_file
from decoder.reassembler import FrameReassembler
from projection.ephemeris import SGP4Ephemeris
from projection.equirect import reproject_to_equirect
from projection.georef import write_georef, write_geotiff
from projection.scan_projector import GeodeticScanProjector, ScanProjectorSettings


log = get_logger("pipeline")


def _load_yaml(path: str) -> Dict:
    if not Path(path).exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _parse_size(s: str) -> Tuple[int, int]:
    w, h = s.lower().replace(",", "x").split("x")
    return int(w), int(h)


def _resolve_layout(P: Dict, override: Optional[str]) -> Tuple[InstrumentLayout, Optional[int]]:
    inst = P.get("instrument", {}) or {}
    if override:
        layout = get_layout(override)
    elif "layout" in inst:
        layout = get_layout(inst["layout"])
    else:
        layout = get_layout(inst.get("name", "mwts3"))
    apid = inst.get("apid", layout.apid)
    return layout, None if apid is None else int(apid)


def _resolve_ephemeris(P: Dict, tle_path: Optional[str]) -> Optional[SGP4Ephemeris]:
    if tle_path:
        return SGP4Ephemeris.from_tle_file(tle_path)
    tle = P.get("tle") or {}
    if tle.get("file"):
        return SGP4Ephemeris.from_tle_file(tle["file"])
    if tle.get("line1") and tle.get("line2"):
        return SGP4Ephemeris(tle["line1"], tle["line2"], name=tle.get("name"))
    return None


def decode_file(path: str, layout: InstrumentLayout, apid: Optional[int] = None,
                progress_every: int = 10000) -> FrameReassembler:
    """Run every packet of a packet file through a fresh reassembler."""
    reader = FrameReassembler(layout)
    rt = RateTimer(window=200)
    for pkt in iter_packet_file(path, apid=apid):
        reader.ingest(pkt)
        hz = rt.tick()
        if progress_every and reader.stats.packets % progress_every == 0:
            log.info("Decoding", extra={"extra": {"packets": reader.stats.packets, "lines": reader.lines,
                                                  "packets_per_s": round(hz, 1)}})
    return reader


def channel_composite(images: List[np.ndarray], cols: int = 4, rows: int = 4) -> np.ndarray:
    """Tile up to cols*rows equally sized channel images into one mosaic."""
    if not images:
        raise ValueError("no images to composite")
    h, w = images[0].shape
    out = np.zeros((h * rows, w * cols), dtype=images[0].dtype)
    for n, img in enumerate(images[: cols * rows]):
        r, c = divmod(n, cols)
        out[r * h:(r + 1) * h, c * w:(c + 1) * w] = img
    return out


def _write_png(path: Path, img: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), img):
        raise RuntimeError(f"Failed to write image: {path}")


def main() -> None:
    ap = argparse.ArgumentParser(description="Decode instrument packets into channel images and project them")
    ap.add_argument("--config", default="config/params.yaml")
    ap.add_argument("--input", required=True, help="File of concatenated CCSDS space packets")
    ap.add_argument("--out", default=None, help="Output directory (overrides output.directory)")
    ap.add_argument("--instrument", default=None, help="Built-in instrument layout name (e.g. mwts3)")
    ap.add_argument("--tle", default=None, help="TLE file (2 or 3 lines)")
    ap.add_argument("--no-project", action="store_true", help="Skip reprojection")
    ap.add_argument("--equirect", default=None, help="Projected grid size WxH")
    args = ap.parse_args()

    P = _load_yaml(args.config)
    setup_logging(P.get("logging", {}).get("level", "INFO"), force=True)

    layout, apid = _resolve_layout(P, args.instrument)
    out_cfg = P.get("output", {}) or {}
    out_dir = Path(args.out or out_cfg.get("directory", "out")) / layout.name

    log.info("Decoding", extra={"extra": {"input": args.input, "instrument": layout.name, "apid": apid,
                                          "out": str(out_dir)}})
    reader = decode_file(args.input, layout, apid=apid, progress_every=int(out_cfg.get("progress_every", 10000)))
    log.info("Decoded", extra={"extra": {**reader.stats.to_dict(), "lines": reader.lines}})

    if reader.lines == 0:
        log.warning("No scanlines decoded, nothing to write")
        return

    log.info("Writing images", extra={"extra": {"first_line": unix_to_iso(reader.timestamps[0]),
                                                "last_line": unix_to_iso(reader.timestamps[-1])}})
    tag = layout.name.replace("-", "")
    channels = list(reader.images())
    for c, img in enumerate(channels):
        _write_png(out_dir / f"{tag}-{c + 1}.png", img)
    _write_png(out_dir / f"{tag}-ALL.png", channel_composite(channels))

    if args.no_project or not out_cfg.get("project", True):
        return

    ephem = _resolve_ephemeris(P, args.tle)
    if ephem is None:
        log.warning("No TLE configured, skipping projection")
        return

    proj_cfg = dict(P.get("projection", {}) or {})
    proj_cfg.setdefault("image_width", layout.samples_per_line)
    settings = ScanProjectorSettings.from_dict(proj_cfg)
    projector = GeodeticScanProjector(settings, reader.timestamps, ephem)
    first, last = projector.frames[0].position, projector.frames[-1].position
    log.info("Projection ready", extra={"extra": {
        "norad": ephem.norad,
        "track_km": round(haversine_m(first.lat, first.lon, last.lat, last.lon) / 1000.0, 1),
        "heading_deg": round(initial_bearing_deg(first.lat, first.lon, last.lat, last.lon), 1),
        "alt_km": round(first.alt_km, 1),
    }})

    write_georef(str(out_dir / f"{tag}.georef.json"), settings, reader.timestamps,
                 tle=(ephem.line1, ephem.line2), norad=ephem.norad)

    width, height = _parse_size(args.equirect or out_cfg.get("equirect_size", "1024x512"))
    correct = bool(out_cfg.get("correct_curvature", True))
    geotiff = bool(out_cfg.get("geotiff", False))
    n_proj = int(out_cfg.get("project_channels", layout.channels))
    for c in range(min(n_proj, layout.channels)):
        log.info("Projecting channel", extra={"extra": {"channel": c + 1}})
        grid, meta = reproject_to_equirect(channels[c], projector, width, height, correct=correct)
        _write_png(out_dir / f"{tag}-{c + 1}-PROJ.png", grid)
        if geotiff:
            write_geotiff(str(out_dir / f"{tag}-{c + 1}-PROJ.tif"), grid, meta)

    log.info("Done", extra={"extra": {"out": str(out_dir)}})


if __name__ == "__main__":
    main()
