from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

import numpy as np
from sgp4.api import SGP4_ERRORS
from skyfield.api import EarthSatellite, load, wgs84

from common.geo import footprint_km, wrap_lon
from common.types import SatPosition


class EphemerisError(RuntimeError):
    """Orbital elements cannot be parsed or propagated to a requested instant."""


class Ephemeris(Protocol):
    def position(self, ts: float) -> SatPosition:
        """Sub-satellite state at Unix time `ts` (UTC seconds)."""
        ...


class SGP4Ephemeris:
    """
    SGP4 propagation of a two-line element set.

    skyfield propagates the elements and reduces the position to the WGS84
    sub-satellite point, using its builtin timescale (no network access).
    """

    def __init__(self, line1: str, line2: str, name: Optional[str] = None):
        line1 = line1.strip()
        line2 = line2.strip()
        if not (line1.startswith("1 ") and line2.startswith("2 ")):
            raise EphemerisError("TLE lines must start with '1 ' and '2 '")
        self.ts = load.timescale()
        try:
            sat = EarthSatellite(line1, line2, name, self.ts)
        except (ValueError, IndexError) as e:
            raise EphemerisError(f"Cannot parse TLE: {e}") from e
        if sat.model.error != 0:
            raise EphemerisError(f"Cannot parse TLE: {SGP4_ERRORS.get(sat.model.error, sat.model.error)}")
        self.name = name
        self.line1 = line1
        self.line2 = line2
        self.norad = int(sat.model.satnum)
        self._sat = sat

    @classmethod
    def from_tle_file(cls, path: str) -> "SGP4Ephemeris":
        """Read a 2-line or 3-line (name first) TLE file."""
        if not Path(path).exists():
            raise FileNotFoundError(f"TLE file not found: {path}")
        lines = [ln.strip() for ln in Path(path).read_text().splitlines() if ln.strip()]
        if len(lines) == 2:
            return cls(lines[0], lines[1])
        if len(lines) == 3:
            return cls(lines[1], lines[2], name=lines[0])
        raise EphemerisError(f"Expected 2 or 3 TLE lines in {path}, got {len(lines)}")

    def position(self, ts: float) -> SatPosition:
        t = self.ts.from_datetime(datetime.fromtimestamp(ts, tz=timezone.utc))
        geocentric = self._sat.at(t)
        # skyfield reports SGP4 failures as a message and NaN coordinates
        message = getattr(geocentric, "message", None)
        if message or not np.all(np.isfinite(geocentric.position.km)):
            raise EphemerisError(f"SGP4 failed at t={ts:.3f}: {message or 'non-finite position'}")
        sub = wgs84.subpoint(geocentric)
        alt_km = float(sub.elevation.km)
        if not alt_km > 0:
            raise EphemerisError(f"Satellite below the surface at t={ts:.3f} (alt={alt_km:.1f} km)")
        return SatPosition(
            lat=float(sub.latitude.degrees),
            lon=wrap_lon(float(sub.longitude.degrees)),
            alt_km=alt_km,
            footprint_km=footprint_km(alt_km),
        )
