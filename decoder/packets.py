from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Optional

import numpy as np

from common.logging_setup import get_logger
from common.types import TelemetryPacket
from decoder.ccsds_time import encode_ccsds_time_full
from decoder.codec import SAMPLE_DTYPE, read_u16
from decoder.layouts import InstrumentLayout


log = get_logger("decoder")

PRIMARY_HEADER_BYTES = 6
APID_MAX = 0x7FF


def parse_primary_header(hdr: bytes) -> tuple[int, int, int]:
    """Return (apid, sequence_count, data_length) from a 6-byte CCSDS primary header."""
    if len(hdr) < PRIMARY_HEADER_BYTES:
        raise ValueError("CCSDS primary header needs 6 bytes")
    word0 = read_u16(hdr, 0)
    word1 = read_u16(hdr, 2)
    apid = word0 & APID_MAX
    seq = word1 & 0x3FFF
    data_length = read_u16(hdr, 4) + 1
    return apid, seq, data_length


def build_primary_header(apid: int, seq: int, data_length: int, secondary_header: bool = True) -> bytes:
    if not 0 <= apid <= APID_MAX:
        raise ValueError(f"apid must fit in 11 bits, got {apid:#x}")
    if data_length < 1 or data_length > 0x10000:
        raise ValueError("data_length must be in 1..65536")
    word0 = (int(secondary_header) << 11) | apid
    word1 = (0b11 << 14) | (seq & 0x3FFF)  # unsegmented
    return word0.to_bytes(2, "big") + word1.to_bytes(2, "big") + (data_length - 1).to_bytes(2, "big")


def build_segment_payload(
    layout: InstrumentLayout,
    marker: int,
    samples: np.ndarray,
    ts: Optional[float] = None,
) -> bytes:
    """
    Encode one segment packet payload for `layout` (synthetic data, tests).

    `samples` is (channels, segment count). The line-start marker also needs
    the line timestamp `ts` in Unix seconds, after correction.
    """
    seg = layout.segments[marker]
    samples = np.asarray(samples)
    if samples.shape != (layout.channels, seg.count):
        raise ValueError(f"samples must be shaped ({layout.channels}, {seg.count})")
    payload = bytearray(layout.min_payload)
    payload[0] = (marker & layout.marker_mask) << layout.marker_shift
    data = samples.T.astype(SAMPLE_DTYPE).tobytes()
    payload[seg.byte_offset:seg.byte_offset + len(data)] = data
    if marker == layout.start_marker:
        if ts is None:
            raise ValueError("line-start payload needs a timestamp")
        tf = layout.time_field
        field = encode_ccsds_time_full(ts - tf.correction_s, tf.epoch_days, tf.ms_scale, tf.us_scale)
        payload[tf.byte_offset:tf.byte_offset + len(field)] = field
    return bytes(payload)


def read_packets(stream: BinaryIO, apid: Optional[int] = None) -> Iterator[TelemetryPacket]:
    """
    Iterate concatenated CCSDS space packets from a binary stream.

    A truncated trailing packet is reported and dropped. If `apid` is set,
    only packets with that APID are yielded.
    """
    while True:
        hdr = stream.read(PRIMARY_HEADER_BYTES)
        if not hdr:
            return
        if len(hdr) < PRIMARY_HEADER_BYTES:
            log.warning("Truncated packet header at end of stream", extra={"extra": {"bytes": len(hdr)}})
            return
        pkt_apid, _, data_length = parse_primary_header(hdr)
        data = stream.read(data_length)
        if len(data) < data_length:
            log.warning("Truncated packet at end of stream",
                        extra={"extra": {"apid": pkt_apid, "expected": data_length, "got": len(data)}})
            return
        if apid is not None and pkt_apid != apid:
            continue
        yield TelemetryPacket(apid=pkt_apid, payload=data)


def iter_packet_file(path: str, apid: Optional[int] = None) -> Iterator[TelemetryPacket]:
    if not Path(path).exists():
        raise FileNotFoundError(f"Packet file not found: {path}")
    with open(path, "rb") as f:
        yield from read_packets(f, apid=apid)


def write_packets(path: str, packets: Iterable[TelemetryPacket]) -> int:
    """Write packets as concatenated CCSDS space packets. Returns the count written."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    n = 0
    with p.open("wb") as f:
        for pkt in packets:
            f.write(build_primary_header(pkt.apid, n, len(pkt.payload)))
            f.write(bytes(pkt.payload))
            n += 1
    return n
