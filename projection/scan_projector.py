from __future__ import annotations

import math
from dataclasses import MISSING, dataclass, asdict, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple

from common.logging_setup import get_logger
from common.types import GeoResult, GeoStatus, OUT_OF_RANGE, SatPosition
from projection.curvature import UNMAPPED, CurvatureTable, build_curvature_table
from projection.ephemeris import Ephemeris, EphemerisError
from projection.tpers import TPERSProjection


log = get_logger("projection")

# Half-width (s) of the time window used to estimate the ground-track heading.
# Tunable; short enough that the secant through the two positions stays
# close to the instantaneous direction of motion.
HEADING_BASELINE_S = 0.2

# Raster the two auxiliary positions are projected onto for the heading
AZ_RASTER_SIZE = 200
AZ_RASTER_SCALE = 4.0


@dataclass(frozen=True)
class ScanProjectorSettings:
    """
    Instrument and projection geometry for one scanner.

    Attributes:
        proj_offset: pixel offset added after centring the scan coordinate
        correction_swath: ground swath (km) of the curvature-corrected grid
        correction_res: ground resolution (km/px) of the corrected grid
        correction_height: orbit height (km) assumed for curvature correction
        instrument_swath: swath (km) used to scale against the footprint
        proj_scale: divisor mapping half a scan to projection units
        az_offset: azimuth bias (deg), sign follows the pass direction
        tilt_offset: projection tilt (deg)
        time_offset: bias (s) added to every scanline timestamp
        image_width: native samples per scanline
        invert_scan: mirror pixels across the line centre
        heading_baseline_s: half-window (s) for the heading estimate
    """
    proj_offset: float
    correction_swath: float
    correction_res: float
    correction_height: float
    instrument_swath: float
    proj_scale: float
    az_offset: float
    tilt_offset: float
    time_offset: float
    image_width: int
    invert_scan: bool
    heading_baseline_s: float = HEADING_BASELINE_S

    def __post_init__(self) -> None:
        if self.image_width <= 0:
            raise ValueError("image_width must be > 0")
        if self.proj_scale == 0:
            raise ValueError("proj_scale must be non-zero")
        if self.heading_baseline_s <= 0:
            raise ValueError("heading_baseline_s must be > 0")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ScanProjectorSettings":
        names = {f.name for f in fields(cls)}
        unknown = set(d) - names
        if unknown:
            raise ValueError(f"Unknown projection settings: {sorted(unknown)}")
        missing = {f.name for f in fields(cls) if f.default is MISSING} - set(d)
        if missing:
            raise ValueError(f"Missing projection settings: {sorted(missing)}")
        kw = dict(d)
        kw["image_width"] = int(kw["image_width"])
        kw["invert_scan"] = bool(kw["invert_scan"])
        for name in names - {"image_width", "invert_scan"}:
            if name in kw:
                kw[name] = float(kw[name])
        return cls(**kw)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OrbitalFrame:
    """Viewing geometry of one scanline."""
    timestamp: float
    position: SatPosition
    azimuth: float
    projection: TPERSProjection

    @property
    def footprint_km(self) -> float:
        return self.position.footprint_km


def _to_raster(pj: TPERSProjection, lat: float, lon: float, height: int, width: int) -> Optional[Tuple[float, float]]:
    """Project (lat, lon) to (col, row) on a height x width raster centred on the view."""
    xy = pj.forward(lon, lat)
    if xy is None:
        return None
    x, y = xy
    col = x * AZ_RASTER_SCALE * (width / 2.0) + width / 2.0
    row = y * AZ_RASTER_SCALE * (height / 2.0) + height / 2.0
    return col, (height - 1) - row


def raw_scan_azimuth(
    ephemeris: Ephemeris,
    ts: float,
    pos: SatPosition,
    baseline_s: float = HEADING_BASELINE_S,
) -> float:
    """
    Heading of the ground track at `ts` as atan(drow / dcol), degrees in [-90, 90].

    The positions at ts - baseline and ts + baseline are projected on a
    small raster viewed from the current sub-satellite point and the
    direction between them is measured in raster coordinates.
    """
    pj = TPERSProjection(pos.alt_km * 1000.0, pos.lon, pos.lat, 0.0, 0.0)
    before = ephemeris.position(ts - baseline_s)
    after = ephemeris.position(ts + baseline_s)
    p1 = _to_raster(pj, before.lat, before.lon, AZ_RASTER_SIZE, AZ_RASTER_SIZE)
    p2 = _to_raster(pj, after.lat, after.lon, AZ_RASTER_SIZE, AZ_RASTER_SIZE)
    if p1 is None or p2 is None:
        raise EphemerisError(f"heading baseline {baseline_s}s puts the satellite beyond the horizon")
    dcol = p1[0] - p2[0]
    drow = p1[1] - p2[1]
    if dcol == 0.0:
        return 0.0 if drow == 0.0 else math.copysign(90.0, drow)
    return math.degrees(math.atan(drow / dcol))


def corrected_azimuth(raw_az: float, az_offset: float) -> float:
    """
    Rotate the raw heading so the projection x axis runs across the track,
    and apply the mounting offset with the sign of the pass direction.
    """
    az = raw_az - 90.0
    if raw_az > 0:
        return az - az_offset
    return az + az_offset


class GeodeticScanProjector:
    """
    Per-scanline geolocation of a cross-track scanner.

    Built once from the settings, the scanline timestamps and an ephemeris;
    read-only afterwards, so `inverse` may be called from several threads.
    Any ephemeris failure aborts construction.
    """

    def __init__(self, settings: ScanProjectorSettings, timestamps: Sequence[float], ephemeris: Ephemeris):
        self.settings = settings
        log.info("Building curvature table...")
        self.curvature: CurvatureTable = build_curvature_table(
            settings.correction_swath,
            settings.correction_height,
            settings.correction_res,
            settings.image_width,
        )
        log.info("Generating projections...", extra={"extra": {"lines": len(timestamps)}})
        self.frames: Tuple[OrbitalFrame, ...] = tuple(self._generate_frames(timestamps, ephemeris))

    @property
    def lines(self) -> int:
        return len(self.frames)

    def _generate_frames(self, timestamps: Sequence[float], ephemeris: Ephemeris) -> List[OrbitalFrame]:
        s = self.settings
        frames: List[OrbitalFrame] = []
        for line, stamp in enumerate(timestamps):
            ts = float(stamp) + s.time_offset
            pos = ephemeris.position(ts)
            if not pos.footprint_km > 0:
                raise EphemerisError(f"Non-positive footprint at line {line}")

            raw_az = raw_scan_azimuth(ephemeris, ts, pos, s.heading_baseline_s)
            az = corrected_azimuth(raw_az, s.az_offset)

            pj = TPERSProjection(pos.alt_km * 1000.0, pos.lon, pos.lat, s.tilt_offset, az)
            frames.append(OrbitalFrame(timestamp=ts, position=pos, azimuth=az, projection=pj))
        return frames

    def inverse(self, x: int, y: int, correct: bool = True) -> GeoResult:
        """
        Latitude/longitude seen by native pixel `x` of scanline `y`.

        With `correct`, x is moved onto the curvature-corrected grid first.
        """
        s = self.settings
        if y < 0 or y >= len(self.frames) or x < 0 or x >= s.image_width:
            return OUT_OF_RANGE

        frame = self.frames[y]

        if correct:
            corr_x = self.curvature.corrected_of(x)
            if corr_x == UNMAPPED:
                return GeoResult.failure(GeoStatus.UNMAPPED)
            width = float(self.curvature.corrected_width)
        else:
            corr_x = x
            width = float(s.image_width)

        proj_x = ((width - 1) - corr_x) if s.invert_scan else float(corr_x)
        proj_x -= width / 2.0
        proj_x += s.proj_offset
        pjx = proj_x / (s.proj_scale * (width / 2.0))

        # The projection is not to scale; calibrate against the instrument's
        # swath relative to what is visible from the current altitude.
        pjx *= s.instrument_swath / frame.footprint_km

        lonlat = frame.projection.inverse(pjx, 0.0)
        if lonlat is None:
            return GeoResult.failure(GeoStatus.PROJECTION_FAILED)
        lon, lat = lonlat
        return GeoResult(status=GeoStatus.OK, lat=float(lat), lon=float(lon))
