from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import numpy as np
import rasterio
from rasterio.transform import from_origin

from projection.scan_projector import ScanProjectorSettings


GEOREF_VERSION = 1


def write_georef(
    path: str,
    settings: ScanProjectorSettings,
    timestamps: Sequence[float],
    tle: Optional[Sequence[str]] = None,
    norad: Optional[int] = None,
) -> Path:
    """
    Write a JSON sidecar holding everything needed to rebuild the projector
    for a decoded pass: settings, scanline timestamps and orbital elements.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    doc = {
        "version": GEOREF_VERSION,
        "type": "leo_scan",
        "norad": norad,
        "tle": list(tle) if tle else None,
        "settings": settings.to_dict(),
        "timestamps": [float(t) for t in timestamps],
    }
    p.write_text(json.dumps(doc, indent=1))
    return p


def read_georef(path: str) -> Dict[str, Any]:
    """Load a sidecar written by write_georef; settings come back as ScanProjectorSettings."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Georef file not found: {path}")
    doc = json.loads(p.read_text())
    if doc.get("version") != GEOREF_VERSION or doc.get("type") != "leo_scan":
        raise ValueError(f"Unsupported georef file: {path}")
    doc["settings"] = ScanProjectorSettings.from_dict(doc["settings"])
    return doc


def write_geotiff(path: str, image: np.ndarray, meta: Dict) -> Path:
    """Write a single-band lat/lon grid (see common.geo.global_grid_meta) as GeoTIFF."""
    if image.ndim != 2:
        raise ValueError("image must be 2D")
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    transform = from_origin(
        float(meta["top_left_lon"]),
        float(meta["top_left_lat"]),
        float(meta["px_size_lon"]),
        abs(float(meta["px_size_lat"])),
    )
    with rasterio.open(
        p,
        "w",
        driver="GTiff",
        height=image.shape[0],
        width=image.shape[1],
        count=1,
        dtype=image.dtype.name,
        crs=meta.get("crs", "EPSG:4326"),
        transform=transform,
        nodata=0,
    ) as dst:
        dst.write(image, 1)
    return p
