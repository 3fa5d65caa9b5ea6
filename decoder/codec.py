from __future__ import annotations

import numpy as np

# Big-endian unsigned 16-bit sample
SAMPLE_DTYPE = np.dtype(">u2")
SAMPLE_BYTES = SAMPLE_DTYPE.itemsize


def read_u16(payload: bytes, offset: int) -> int:
    """
    One big-endian unsigned 16-bit value at `offset`.

    NOTE: No bounds checking; callers validate the payload length first.
    """
    return payload[offset] << 8 | payload[offset + 1]


def read_u32(payload: bytes, offset: int) -> int:
    """Big-endian unsigned 32-bit value at `offset` (same contract as read_u16)."""
    return read_u16(payload, offset) << 16 | read_u16(payload, offset + 2)


def decode_samples(payload: bytes, offset: int, count: int, channels: int) -> np.ndarray:
    """
    Decode `count` interleaved sample groups of `channels` samples each.

    Samples are laid out channel-major inside each group:
        s0c0 s0c1 ... s0cN s1c0 ...
    Returns a (channels, count) uint16 array, i.e. one row per channel.
    """
    raw = np.frombuffer(payload, dtype=SAMPLE_DTYPE, count=count * channels, offset=offset)
    return raw.reshape(count, channels).T.astype(np.uint16)
