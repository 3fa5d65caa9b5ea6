from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


# Spherical Earth used for the swath geometry (km)
EARTH_RADIUS_KM = 6371.0

# Marker for inverse entries no forward sample lands on
UNMAPPED = -1


@dataclass(frozen=True)
class CurvatureTable:
    """
    Pixel remapping between the native scan grid and a ground-linear grid.

    forward[i]: fractional native pixel sampled by corrected pixel i
                (length corrected_width)
    inverse[x]: corrected pixel whose forward sample rounds to native pixel x,
                or UNMAPPED (length image_width)
    """
    forward: np.ndarray
    inverse: np.ndarray
    corrected_width: int
    image_width: int

    def corrected_of(self, x: int) -> int:
        """Corrected pixel for native pixel x; UNMAPPED if none (or x out of range)."""
        if not (0 <= x < self.image_width):
            return UNMAPPED
        return int(self.inverse[x])


def _look_angle(ground_angle, orbit_radius: float):
    """Angle at the satellite between nadir and a surface point `ground_angle` away (rad)."""
    return -np.arctan(
        EARTH_RADIUS_KM * np.sin(ground_angle)
        / (np.cos(ground_angle) * EARTH_RADIUS_KM - orbit_radius)
    )


def build_curvature_table(
    swath_km: float,
    height_km: float,
    resolution_km: float,
    image_width: int,
) -> CurvatureTable:
    """
    Precompute the curvature correction for a cross-track scanner.

    The scanner samples uniformly in look angle, so pixels near the swath edge
    cover more ground than pixels at nadir. The corrected grid has
    round(swath / resolution) pixels spaced uniformly in ground distance;
    each one is traced to the look angle that sees it and then to the
    fractional native pixel at that look angle.
    """
    if swath_km <= 0 or resolution_km <= 0:
        raise ValueError("swath and resolution must be > 0")
    if image_width <= 0:
        raise ValueError("image_width must be > 0")

    orbit_radius = EARTH_RADIUS_KM + height_km
    corrected_width = int(round(swath_km / resolution_km))
    if corrected_width <= 0:
        raise ValueError("swath / resolution rounds to zero pixels")
    view_angle = swath_km / EARTH_RADIUS_KM
    edge_angle = float(_look_angle(view_angle / 2.0, orbit_radius))
    if not math.isfinite(edge_angle) or edge_angle == 0.0:
        raise ValueError("degenerate swath geometry")

    i = np.arange(corrected_width, dtype=np.float64)
    ground = (i / corrected_width - 0.5) * view_angle
    forward = image_width * ((_look_angle(ground, orbit_radius) / edge_angle + 1.0) / 2.0)

    inverse = np.full(image_width, UNMAPPED, dtype=np.int64)
    nearest = np.rint(forward).astype(np.int64)
    for idx, x in enumerate(nearest):
        if 0 <= x < image_width:
            inverse[x] = idx

    forward.setflags(write=False)
    inverse.setflags(write=False)
    return CurvatureTable(
        forward=forward,
        inverse=inverse,
        corrected_width=corrected_width,
        image_width=int(image_width),
    )
