#!/usr/bin/env python3
"""
Generate a synthetic packet file for an instrument layout, for trying the
pipeline without a real recording.

Each channel carries a smooth cross-track pattern that drifts along track,
so decoded images are easy to eyeball. Packets can be dropped at random or
truncated to exercise the decoder's tolerance.

Example:
  python scripts/make_synthetic_pass.py --lines 300 --start 2024-03-01T10:15:00Z --out data/pass.bin
  python -m decoder.pipeline --input data/pass.bin --no-project
"""
from __future__ import annotations

import argparse
import os
import sys
from typing import Iterator

import numpy as np

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.types import TelemetryPacket
from common.utils import parse_iso8601
from decoder.layouts import InstrumentLayout, get_layout
from decoder.packets import build_segment_payload, write_packets


def line_pattern(layout: InstrumentLayout, line: int) -> np.ndarray:
    """(channels, samples_per_line) uint16 pattern for one line."""
    x = np.linspace(-1.0, 1.0, layout.samples_per_line)
    out = np.empty((layout.channels, layout.samples_per_line), dtype=np.uint16)
    for c in range(layout.channels):
        wave = np.cos(np.pi * x * (1 + c % 4)) * np.cos(2 * np.pi * line / 97.0 + c)
        out[c] = (20000 + 10000 * wave + 500 * c).astype(np.uint16)
    return out


def synth_packets(
    layout: InstrumentLayout,
    lines: int,
    start_ts: float,
    line_period_s: float,
    apid: int,
    drop_rate: float = 0.0,
    short_rate: float = 0.0,
    seed: int = 0,
) -> Iterator[TelemetryPacket]:
    rng = np.random.default_rng(seed)
    order = [layout.start_marker] + sorted(m for m in layout.segments if m != layout.start_marker)
    for n in range(lines):
        pattern = line_pattern(layout, n)
        ts = start_ts + n * line_period_s
        for marker in order:
            if drop_rate > 0 and rng.random() < drop_rate:
                continue
            seg = layout.segments[marker]
            samples = pattern[:, seg.line_offset:seg.line_offset + seg.count]
            payload = build_segment_payload(layout, marker, samples, ts=ts)
            if short_rate > 0 and rng.random() < short_rate:
                payload = payload[: layout.min_payload // 2]
            yield TelemetryPacket(apid=apid, payload=payload)


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--instrument", default="mwts3")
    ap.add_argument("--lines", type=int, default=300)
    ap.add_argument("--start", default="2024-03-01T10:15:00Z", help="UTC time of the first line (ISO-8601)")
    ap.add_argument("--line-period", type=float, default=8.0 / 3.0, help="Seconds between lines")
    ap.add_argument("--apid", type=int, default=7)
    ap.add_argument("--drop-rate", type=float, default=0.0, help="Fraction of packets to drop")
    ap.add_argument("--short-rate", type=float, default=0.0, help="Fraction of packets to truncate")
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--out", default="data/pass.bin")
    args = ap.parse_args()

    layout = get_layout(args.instrument)
    start_ts = parse_iso8601(args.start).timestamp()
    n = write_packets(
        args.out,
        synth_packets(layout, args.lines, start_ts, args.line_period, args.apid,
                      drop_rate=args.drop_rate, short_rate=args.short_rate, seed=args.seed),
    )
    print(f"Wrote {n} packets ({args.lines} lines of {layout.name}) to {args.out}")


if __name__ == "__main__":
    main()
