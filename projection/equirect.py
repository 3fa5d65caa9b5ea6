from __future__ import annotations

from typing import Dict, Tuple

import cv2
import numpy as np

from common.geo import geo2pix, global_grid_meta
from common.logging_setup import get_logger
from projection.scan_projector import GeodeticScanProjector


log = get_logger("projection")


def to_uint8(image: np.ndarray) -> np.ndarray:
    """
    Stretch a channel to 1..255 between its min and max; 0 is kept for "no data".
    """
    img = np.asarray(image, dtype=np.float64)
    if img.size == 0:
        return np.zeros(img.shape, dtype=np.uint8)
    lo, hi = float(img.min()), float(img.max())
    if hi <= lo:
        return np.full(img.shape, 128, dtype=np.uint8)
    return (1.0 + 254.0 * (img - lo) / (hi - lo)).round().astype(np.uint8)


def reproject_to_equirect(
    image: np.ndarray,
    projector: GeodeticScanProjector,
    width: int = 1024,
    height: int = 512,
    *,
    correct: bool = True,
    fill_px: int = 1,
) -> Tuple[np.ndarray, Dict]:
    """
    Paint a scan image onto a whole-Earth lat/lon grid.

    Every source pixel is geolocated with `projector.inverse`; failures are
    skipped. Cells no pixel landed on stay 0. With `fill_px` > 0, empty cells
    take the value of a neighbour up to that many cells away, which closes
    gaps when the grid is finer than the instrument.

    Returns (uint8 grid of shape (height, width), grid metadata).
    """
    if image.ndim != 2:
        raise ValueError("image must be 2D (lines, samples)")
    meta = global_grid_meta(width, height)
    out = np.zeros((height, width), dtype=np.uint8)
    values = to_uint8(image)

    lines = min(image.shape[0], projector.lines)
    samples = min(image.shape[1], projector.settings.image_width)
    placed = 0
    for y in range(lines):
        for x in range(samples):
            r = projector.inverse(x, y, correct)
            if not r.ok:
                continue
            gx, gy = geo2pix(r.lon, r.lat, meta)
            ix, iy = int(gx), int(gy)
            if 0 <= ix < width and 0 <= iy < height:
                out[iy, ix] = values[y, x]
                placed += 1

    if fill_px > 0:
        k = 2 * int(fill_px) + 1
        grown = cv2.dilate(out, np.ones((k, k), dtype=np.uint8))
        out = np.where(out == 0, grown, out)

    log.debug("Reprojected image", extra={"extra": {"lines": lines, "placed": placed, "size": [width, height]}})
    return out, meta
