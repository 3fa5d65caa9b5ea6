"""
Decoder: instrument packet reassembly

Provides:
- Big-endian sample codec and the day-segmented telemetry time decoder
- Declarative instrument layouts (marker -> line segment), MWTS-3 built in
- FrameReassembler: packets in, per-channel scanline images + line timestamps out
- CCSDS space-packet file reader/writer
- A CLI pipeline that decodes a packet file and (optionally) projects it

Entry point:
    python -m decoder.pipeline --config config/params.yaml --input pass.bin
"""
from .layouts import InstrumentLayout, Segment, TimeField, MWTS3, get_layout
from .reassembler import FrameReassembler, ReassemblerStats

__all__ = [
    "InstrumentLayout",
    "Segment",
    "TimeField",
    "MWTS3",
    "get_layout",
    "FrameReassembler",
    "ReassemblerStats",
]
