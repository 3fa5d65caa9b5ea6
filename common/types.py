from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True)
class TelemetryPacket:
    """
    A demultiplexed packet handed to the decoder.

    Attributes:
        apid: source identifier (the APID for CCSDS space packets).
        payload: packet data field (everything after the primary header).
    """
    apid: int
    payload: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.payload, (bytes, bytearray, memoryview)):
            raise TypeError("payload must be bytes-like")


@dataclass(slots=True, frozen=True)
class SatPosition:
    """
    Sub-satellite state returned by an ephemeris at one instant.

    Attributes:
        lat, lon: geodetic degrees (lon wrapped to [-180, 180)).
        alt_km: height above the WGS84 ellipsoid, kilometres.
        footprint_km: ground diameter of the visibility circle, kilometres.
    """
    lat: float
    lon: float
    alt_km: float
    footprint_km: float


class GeoStatus(str, Enum):
    OK = "ok"
    OUT_OF_RANGE = "out_of_range"
    UNMAPPED = "unmapped"
    PROJECTION_FAILED = "projection_failed"


@dataclass(slots=True, frozen=True)
class GeoResult:
    """
    Outcome of one pixel -> lat/lon query. Failures carry NaN coordinates and
    are expected during full-raster resampling; callers skip them.
    """
    status: GeoStatus
    lat: float = math.nan
    lon: float = math.nan

    @property
    def ok(self) -> bool:
        return self.status is GeoStatus.OK

    @classmethod
    def failure(cls, status: GeoStatus) -> "GeoResult":
        return cls(status=status)


OUT_OF_RANGE = GeoResult.failure(GeoStatus.OUT_OF_RANGE)
