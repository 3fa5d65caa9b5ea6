from __future__ import annotations

from typing import Tuple, Dict
import math


# --- WGS84 constants ---
_WGS84_A = 6378137.0              # semi-major axis (m)

# Equatorial radius (km) used for the visibility footprint
EARTH_RADIUS_EQ_KM = _WGS84_A / 1000.0


# -------------------------
# Pixel/Geo helpers for lat/lon grids
# -------------------------
def geo2pix(lon: float, lat: float, meta: Dict) -> Tuple[float, float]:
    """
    Convert lon/lat (deg) to pixel (x,y) of an equirectangular grid.

    Expected metadata keys (see global_grid_meta):
      - top_left_lon, top_left_lat: upper-left corner lon/lat (deg)
      - px_size_lon, px_size_lat: degrees per pixel (lat step is negative)

    NOTE: No bounds checking here; caller should clip x,y to the grid.
    """
    dx = lon - float(meta["top_left_lon"])
    dy = lat - float(meta["top_left_lat"])
    x = dx / float(meta["px_size_lon"])
    y = dy / float(meta["px_size_lat"])
    return x, y


def global_grid_meta(width: int, height: int) -> Dict:
    """Metadata for a whole-Earth equirectangular grid of width x height pixels."""
    if width <= 0 or height <= 0:
        raise ValueError("grid size must be positive")
    return {
        "crs": "EPSG:4326",
        "top_left_lon": -180.0,
        "top_left_lat": 90.0,
        "px_size_lon": 360.0 / width,
        "px_size_lat": -180.0 / height,
        "width": int(width),
        "height": int(height),
    }


def wrap_lon(lon: float) -> float:
    """Wrap a longitude into [-180, 180)."""
    return (lon + 180.0) % 360.0 - 180.0


# -------------------------
# Great-circle & bearings
# -------------------------
def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine great-circle distance on WGS84 sphere approximation."""
    R = 6371008.8  # mean Earth radius (m)
    p1 = math.radians(lat1)
    p2 = math.radians(lat2)
    dphi = p2 - p1
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2.0) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2.0) ** 2
    return 2 * R * math.asin(math.sqrt(a))


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial great-circle bearing from point 1 to point 2 (degrees, 0..360)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dl = math.radians(lon2 - lon1)
    y = math.sin(dl) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dl)
    b = math.degrees(math.atan2(y, x))
    return (b + 360.0) % 360.0


def footprint_km(alt_km: float) -> float:
    """
    Ground diameter (km) of the circle visible from altitude `alt_km`,
    i.e. 2 * Re * acos(Re / (Re + h)).
    """
    if alt_km <= 0:
        return 0.0
    return 2.0 * EARTH_RADIUS_EQ_KM * math.acos(EARTH_RADIUS_EQ_KM / (EARTH_RADIUS_EQ_KM + alt_km))
