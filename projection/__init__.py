"""
Projection: geodetic scan projector

- Curvature correction tables for cross-track scanners
- SGP4 ephemeris (sub-satellite point + footprint)
- Per-scanline tilted perspective projections aligned with the ground track
- Pixel -> lat/lon inverse used by the equirectangular resampler
- JSON georef sidecar and GeoTIFF export
"""
from .scan_projector import GeodeticScanProjector, ScanProjectorSettings, OrbitalFrame
from .ephemeris import SGP4Ephemeris, EphemerisError

__all__ = [
    "GeodeticScanProjector",
    "ScanProjectorSettings",
    "OrbitalFrame",
    "SGP4Ephemeris",
    "EphemerisError",
]
