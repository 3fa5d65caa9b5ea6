"""
Shared test doubles: deterministic ephemerides and packet builders.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

import numpy as np

from common.geo import footprint_km
from common.types import SatPosition, TelemetryPacket
from decoder.layouts import InstrumentLayout
from decoder.packets import build_segment_payload
from projection.ephemeris import EphemerisError
from projection.scan_projector import ScanProjectorSettings

# 2024-03-01T10:15:00Z
T0 = 1709288100.0

# Seconds between MWTS-3 scanlines
LINE_PERIOD = 8.0 / 3.0

# Published ISS elements used by the sgp4 documentation
ISS_TLE = (
    "1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991",
    "2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482",
)

# Epoch of ISS_TLE (2019 day 343.69339541)
ISS_EPOCH = datetime(2019, 1, 1, tzinfo=timezone.utc).timestamp() + 342.69339541 * 86400.0


class LinearTrackEphemeris:
    """Ground track moving at a constant rate in lat/lon from (lat0, lon0) at t0."""

    def __init__(self, lat0: float, lon0: float, dlat_per_s: float, dlon_per_s: float,
                 alt_km: float = 827.0, t0: float = T0):
        self.lat0 = lat0
        self.lon0 = lon0
        self.dlat = dlat_per_s
        self.dlon = dlon_per_s
        self.alt_km = alt_km
        self.t0 = t0
        self.calls: List[float] = []

    def position(self, ts: float) -> SatPosition:
        self.calls.append(ts)
        dt = ts - self.t0
        return SatPosition(
            lat=self.lat0 + self.dlat * dt,
            lon=self.lon0 + self.dlon * dt,
            alt_km=self.alt_km,
            footprint_km=footprint_km(self.alt_km),
        )


def ascending_track() -> LinearTrackEphemeris:
    """North-north-west motion, like the ascending half of a sun-synchronous pass."""
    return LinearTrackEphemeris(lat0=10.0, lon0=20.0, dlat_per_s=0.06, dlon_per_s=-0.01)


def descending_track() -> LinearTrackEphemeris:
    """South-south-west motion, like the descending half of a sun-synchronous pass."""
    return LinearTrackEphemeris(lat0=10.0, lon0=20.0, dlat_per_s=-0.06, dlon_per_s=-0.01)


class FailingEphemeris(LinearTrackEphemeris):
    """Raises EphemerisError for any instant at or after `fail_after`."""

    def __init__(self, fail_after: float, **kw):
        super().__init__(lat0=0.0, lon0=0.0, dlat_per_s=0.06, dlon_per_s=0.0, **kw)
        self.fail_after = fail_after

    def position(self, ts: float) -> SatPosition:
        if ts >= self.fail_after:
            raise EphemerisError(f"no elements valid at {ts}")
        return super().position(ts)


def line_values(layout: InstrumentLayout, line: int) -> np.ndarray:
    """Known, never-zero (channels, samples_per_line) values for a line."""
    c = np.arange(layout.channels, dtype=np.int64)[:, None]
    s = np.arange(layout.samples_per_line, dtype=np.int64)[None, :]
    return (1 + c * 1000 + s + (line * 37) % 20000).astype(np.uint16)


def line_packets(layout: InstrumentLayout, line: int, ts: float,
                 markers: Optional[List[int]] = None, apid: int = 7) -> List[TelemetryPacket]:
    """Packets for one line in canonical order (line start first)."""
    values = line_values(layout, line)
    if markers is None:
        markers = [layout.start_marker] + sorted(m for m in layout.segments if m != layout.start_marker)
    out = []
    for m in markers:
        seg = layout.segments[m]
        samples = values[:, seg.line_offset:seg.line_offset + seg.count]
        out.append(TelemetryPacket(apid=apid, payload=build_segment_payload(layout, m, samples, ts=ts)))
    return out


def pass_packets(layout: InstrumentLayout, lines: int, t0: float = T0,
                 period: float = LINE_PERIOD) -> List[TelemetryPacket]:
    out: List[TelemetryPacket] = []
    for n in range(lines):
        out.extend(line_packets(layout, n, t0 + n * period))
    return out


def mwts_settings(**overrides) -> ScanProjectorSettings:
    """MWTS projection settings with the scan centred and no offsets."""
    kw = dict(
        proj_offset=0.0,
        correction_swath=1400.0,
        correction_res=0.87,
        correction_height=827.0,
        instrument_swath=2200.0,
        proj_scale=2.42,
        az_offset=0.0,
        tilt_offset=0.0,
        time_offset=0.0,
        image_width=98,
        invert_scan=False,
    )
    kw.update(overrides)
    return ScanProjectorSettings(**kw)
