"""
Instrument layout tables.

A layout tells the reassembler, for every marker value found in the first
payload byte, which slice of a scanline the packet carries and where in the
payload those samples start. Layouts are immutable and validated on
construction: the segments of a layout tile [0, samples_per_line) exactly
and every segment fits inside the minimum payload size.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from decoder.ccsds_time import TIME_FIELD_BYTES
from decoder.codec import SAMPLE_BYTES


@dataclass(frozen=True, slots=True)
class Segment:
    """Samples `count` of a line starting at `line_offset`, read from payload byte `byte_offset`."""
    count: int
    line_offset: int
    byte_offset: int

    def byte_length(self, channels: int) -> int:
        return self.count * channels * SAMPLE_BYTES


@dataclass(frozen=True, slots=True)
class TimeField:
    """Where and how the line timestamp is encoded in the line-start packet."""
    byte_offset: int = 2
    epoch_days: int = 10957
    ms_scale: float = 10000.0
    us_scale: float = 10000.0
    correction_s: float = 12 * 3600.0


@dataclass(frozen=True)
class InstrumentLayout:
    name: str
    channels: int
    samples_per_line: int
    min_payload: int
    start_marker: int
    segments: Mapping[int, Segment]
    time_field: TimeField = field(default_factory=TimeField)
    marker_shift: int = 4
    marker_mask: int = 0b111
    apid: Optional[int] = None

    def __post_init__(self) -> None:
        if self.channels <= 0 or self.samples_per_line <= 0:
            raise ValueError("channels and samples_per_line must be > 0")
        if self.start_marker not in self.segments:
            raise ValueError(f"start marker {self.start_marker} has no segment")
        for marker in self.segments:
            if marker & ~self.marker_mask:
                raise ValueError(f"marker {marker} does not fit mask {self.marker_mask:#b}")

        # Segments must tile the line with no gap or overlap
        cursor = 0
        for seg in sorted(self.segments.values(), key=lambda s: s.line_offset):
            if seg.count <= 0:
                raise ValueError("segment sample count must be > 0")
            if seg.line_offset != cursor:
                raise ValueError(
                    f"{self.name}: segments do not tile the line (expected offset {cursor}, got {seg.line_offset})"
                )
            cursor += seg.count
            if seg.byte_offset + seg.byte_length(self.channels) > self.min_payload:
                raise ValueError(f"{self.name}: segment at line offset {seg.line_offset} exceeds min_payload")
        if cursor != self.samples_per_line:
            raise ValueError(f"{self.name}: segments cover {cursor} samples, line has {self.samples_per_line}")

        tf_lo = self.time_field.byte_offset
        tf_hi = tf_lo + TIME_FIELD_BYTES
        if tf_hi > self.min_payload:
            raise ValueError(f"{self.name}: time field exceeds min_payload")
        start = self.segments[self.start_marker]
        if tf_lo < start.byte_offset + start.byte_length(self.channels) and start.byte_offset < tf_hi:
            raise ValueError(f"{self.name}: time field overlaps the line-start samples")

    def marker_of(self, payload: bytes) -> int:
        return (payload[0] >> self.marker_shift) & self.marker_mask

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "InstrumentLayout":
        """
        Build a layout from a config mapping, e.g.

            name: MWTS-3
            channels: 18
            samples_per_line: 98
            min_payload: 1018
            start_marker: 1
            segments:
              1: {count: 14, line_offset: 0, byte_offset: 512}
              2: {count: 28, line_offset: 14, byte_offset: 8}
            time_field: {byte_offset: 2, epoch_days: 10957}
        """
        known = {"name", "channels", "samples_per_line", "min_payload", "start_marker",
                 "segments", "time_field", "marker_shift", "marker_mask", "apid"}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"Unknown layout keys: {sorted(unknown)}")
        segments = {int(k): Segment(**v) for k, v in d["segments"].items()}
        time_field = TimeField(**d.get("time_field", {}))
        apid = d.get("apid")
        return cls(
            name=str(d["name"]),
            channels=int(d["channels"]),
            samples_per_line=int(d["samples_per_line"]),
            min_payload=int(d["min_payload"]),
            start_marker=int(d["start_marker"]),
            segments=segments,
            time_field=time_field,
            marker_shift=int(d.get("marker_shift", 4)),
            marker_mask=int(d.get("marker_mask", 0b111)),
            apid=None if apid is None else int(apid),
        )


# FengYun-3 MWTS-3 microwave temperature sounder
MWTS3 = InstrumentLayout(
    name="MWTS-3",
    channels=18,
    samples_per_line=98,
    min_payload=1018,
    start_marker=1,
    segments={
        1: Segment(count=14, line_offset=0, byte_offset=224 + 144 * 2),
        2: Segment(count=28, line_offset=14, byte_offset=8),
        3: Segment(count=28, line_offset=42, byte_offset=8),
        4: Segment(count=28, line_offset=70, byte_offset=8),
    },
    time_field=TimeField(byte_offset=2, epoch_days=10957, ms_scale=10000.0, us_scale=10000.0,
                         correction_s=12 * 3600.0),
)

INSTRUMENTS: Dict[str, InstrumentLayout] = {
    "mwts3": MWTS3,
}


def get_layout(spec: Any) -> InstrumentLayout:
    """Resolve a layout from a built-in name ("mwts3") or an inline mapping."""
    if isinstance(spec, InstrumentLayout):
        return spec
    if isinstance(spec, str):
        key = spec.lower().replace("-", "")
        if key not in INSTRUMENTS:
            raise ValueError(f"Unknown instrument '{spec}'. Known: {sorted(INSTRUMENTS)}")
        return INSTRUMENTS[key]
    if isinstance(spec, dict):
        return InstrumentLayout.from_dict(spec)
    raise TypeError("instrument must be a name or a mapping")
