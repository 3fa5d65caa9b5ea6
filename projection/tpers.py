from __future__ import annotations

import math
from typing import Optional, Tuple

from pyproj import Proj


# Sphere the perspective view is computed on (m)
SPHERE_RADIUS_M = 6371000.0

# PROJ reports unprojectable points as HUGE_VAL
_HUGE = 1e10


class TPERSProjection:
    """
    Tilted perspective view of a spherical Earth from a point above (lon, lat).

    Thin wrapper around PROJ `tpers`. Plane coordinates are expressed in
    Earth radii (PROJ metres / SPHERE_RADIUS_M), so a point near the centre
    of view sits at roughly its great-circle angle from the sub-point.

    forward(lon, lat) -> (x, y) | None
    inverse(x, y)     -> (lon, lat) | None

    None means the point is not visible from the viewpoint (beyond the
    horizon) or the geometry is degenerate.
    """

    def __init__(self, altitude_m: float, lon: float, lat: float, tilt: float = 0.0, azimuth: float = 0.0):
        self.init(altitude_m, lon, lat, tilt, azimuth)

    def init(self, altitude_m: float, lon: float, lat: float, tilt: float = 0.0, azimuth: float = 0.0) -> None:
        if not altitude_m > 0:
            raise ValueError("altitude must be > 0")
        self.altitude_m = float(altitude_m)
        self.lon = float(lon)
        self.lat = float(lat)
        self.tilt = float(tilt)
        self.azimuth = float(azimuth)
        self._proj = Proj(
            f"+proj=tpers +R={SPHERE_RADIUS_M} +h={self.altitude_m} "
            f"+lon_0={self.lon} +lat_0={self.lat} +tilt={self.tilt} +azi={self.azimuth} +no_defs"
        )

    def forward(self, lon: float, lat: float) -> Optional[Tuple[float, float]]:
        x, y = self._proj(lon, lat)
        if not (math.isfinite(x) and math.isfinite(y)) or abs(x) > _HUGE or abs(y) > _HUGE:
            return None
        return x / SPHERE_RADIUS_M, y / SPHERE_RADIUS_M

    def inverse(self, x: float, y: float) -> Optional[Tuple[float, float]]:
        lon, lat = self._proj(x * SPHERE_RADIUS_M, y * SPHERE_RADIUS_M, inverse=True)
        if not (math.isfinite(lon) and math.isfinite(lat)) or abs(lon) > _HUGE or abs(lat) > _HUGE:
            return None
        return lon, lat

    def __repr__(self) -> str:
        return (f"TPERSProjection(h={self.altitude_m:.0f}m, lon={self.lon:.4f}, lat={self.lat:.4f}, "
                f"tilt={self.tilt:.2f}, azi={self.azimuth:.2f})")
