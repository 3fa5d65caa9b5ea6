from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List

import numpy as np

from common.logging_setup import get_logger
from common.types import TelemetryPacket
from decoder.ccsds_time import parse_ccsds_time_full
from decoder.codec import decode_samples
from decoder.layouts import InstrumentLayout


log = get_logger("decoder")


@dataclass(slots=True)
class ReassemblerStats:
    """Counters for what happened to ingested packets."""
    packets: int = 0
    accepted: int = 0
    short: int = 0
    unknown_marker: int = 0
    orphan: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class FrameReassembler:
    """
    Rebuilds multi-channel scanlines from instrument packets.

    Every packet fills one segment of a line, selected by the marker in the
    high nibble of its first payload byte. The line-start marker opens a new
    line: its timestamp is decoded and appended, the line count advances and
    its segment lands in that new line. Continuation segments fill the most
    recently opened line.

    Storage is one (channels, rows, samples_per_line) uint16 array. Rows are
    pre-zeroed and there is always at least one spare row past the last
    opened line; capacity doubles when it runs out.

    Malformed input never raises: short packets, unknown markers and
    continuations seen before any line-start are dropped and counted in
    `stats`, and `ingest` returns False for them.
    """

    def __init__(self, layout: InstrumentLayout, initial_rows: int = 64):
        self.layout = layout
        self.lines = 0
        self.timestamps: List[float] = []
        self.stats = ReassemblerStats()
        rows = max(2, int(initial_rows))
        self._buf = np.zeros((layout.channels, rows, layout.samples_per_line), dtype=np.uint16)

    # -------------------------
    # Geometry
    # -------------------------
    @property
    def width(self) -> int:
        return self.layout.samples_per_line

    @property
    def height(self) -> int:
        return self.lines

    @property
    def channels(self) -> int:
        return self.layout.channels

    @property
    def capacity_rows(self) -> int:
        return self._buf.shape[1]

    def _reserve(self, rows: int) -> None:
        cap = self._buf.shape[1]
        if rows <= cap:
            return
        while cap < rows:
            cap *= 2
        grown = np.zeros((self._buf.shape[0], cap, self._buf.shape[2]), dtype=np.uint16)
        grown[:, : self._buf.shape[1]] = self._buf
        self._buf = grown

    # -------------------------
    # Ingest
    # -------------------------
    def ingest(self, packet: TelemetryPacket) -> bool:
        """Consume one packet. Returns True if it contributed samples."""
        L = self.layout
        payload = packet.payload
        self.stats.packets += 1

        if len(payload) < L.min_payload:
            self.stats.short += 1
            log.debug("Dropped short packet", extra={"extra": {"size": len(payload), "min": L.min_payload}})
            return False

        marker = L.marker_of(payload)
        seg = L.segments.get(marker)
        if seg is None:
            self.stats.unknown_marker += 1
            log.debug("Ignored unknown marker", extra={"extra": {"marker": marker}})
            return False

        if marker == L.start_marker:
            tf = L.time_field
            ts = parse_ccsds_time_full(payload, tf.byte_offset, tf.epoch_days, tf.ms_scale, tf.us_scale)
            self.timestamps.append(ts + tf.correction_s)
            self.lines += 1
            self._reserve(self.lines + 1)
        elif self.lines == 0:
            self.stats.orphan += 1
            log.debug("Dropped continuation before first line start", extra={"extra": {"marker": marker}})
            return False

        row = self.lines - 1
        end = seg.line_offset + seg.count
        self._buf[:, row, seg.line_offset:end] = decode_samples(payload, seg.byte_offset, seg.count, L.channels)
        self.stats.accepted += 1
        return True

    def ingest_many(self, packets: Iterable[TelemetryPacket]) -> int:
        """Ingest packets in order; returns how many were accepted."""
        n = 0
        for pkt in packets:
            if self.ingest(pkt):
                n += 1
        return n

    # -------------------------
    # Output
    # -------------------------
    def channel_image(self, channel: int) -> np.ndarray:
        """
        Read-only (lines, samples_per_line) view of one channel.

        Only opened lines are exposed; a line whose stream ended before all
        its segments arrived keeps zeros in the missing samples. The view is
        tied to the current storage, so take it after decoding is finished.
        """
        if not (0 <= channel < self.layout.channels):
            raise IndexError(f"channel {channel} out of range 0..{self.layout.channels - 1}")
        view = self._buf[channel, : self.lines].view()
        view.flags.writeable = False
        return view

    def images(self) -> np.ndarray:
        """Copy of all channels as a (channels, lines, samples_per_line) array."""
        return self._buf[:, : self.lines].copy()
