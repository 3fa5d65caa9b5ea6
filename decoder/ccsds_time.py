from __future__ import annotations

from decoder.codec import read_u16, read_u32

# Size of the day-segmented time field (days:2, coarse:4, fine:2)
TIME_FIELD_BYTES = 8

# Days between 1958-01-01 (CCSDS epoch) and 1970-01-01
CCSDS_EPOCH_DAYS = -4383


def parse_ccsds_time_full(
    field: bytes,
    offset: int = 0,
    epoch_days: int = CCSDS_EPOCH_DAYS,
    ms_scale: float = 1e3,
    us_scale: float = 1e6,
) -> float:
    """
    Decode an 8-byte day-segmented time code to Unix seconds (UTC).

        days    u16  day count since the mission epoch
        coarse  u32  sub-day counter, `ms_scale` ticks per second
        fine    u16  fine counter, `us_scale` ticks per second

    `epoch_days` is the mission epoch expressed in days relative to
    1970-01-01 (10957 for 2000-01-01).
    """
    if len(field) < offset + TIME_FIELD_BYTES:
        raise ValueError(f"time field needs {TIME_FIELD_BYTES} bytes at offset {offset}")
    days = read_u16(field, offset)
    coarse = read_u32(field, offset + 2)
    fine = read_u16(field, offset + 6)
    return (epoch_days + days) * 86400.0 + coarse / float(ms_scale) + fine / float(us_scale)


def encode_ccsds_time_full(
    ts: float,
    epoch_days: int = CCSDS_EPOCH_DAYS,
    ms_scale: float = 1e3,
    us_scale: float = 1e6,
) -> bytes:
    """
    Inverse of parse_ccsds_time_full, used to build synthetic packets.
    The remainder below one coarse tick is rounded to the nearest fine tick.
    """
    rel = ts - epoch_days * 86400.0
    if rel < 0:
        raise ValueError("timestamp precedes the time code epoch")
    days = int(rel // 86400.0)
    sod = rel - days * 86400.0
    coarse = int(sod * ms_scale)
    fine = int(round((sod - coarse / float(ms_scale)) * us_scale))
    if fine > 0xFFFF:
        fine = 0xFFFF
    return (
        days.to_bytes(2, "big")
        + coarse.to_bytes(4, "big")
        + fine.to_bytes(2, "big")
    )
