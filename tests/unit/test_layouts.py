"""
Unit tests for instrument layout tables
"""

import os
import sys

import pytest

project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from decoder.layouts import InstrumentLayout, Segment, TimeField, MWTS3, get_layout


def _layout(**overrides):
    kw = dict(
        name="TEST",
        channels=2,
        samples_per_line=10,
        min_payload=64,
        start_marker=1,
        segments={1: Segment(4, 0, 20), 2: Segment(6, 4, 12)},
        time_field=TimeField(byte_offset=2),
    )
    kw.update(overrides)
    return InstrumentLayout(**kw)


class TestMWTS3Layout:
    """Built-in MWTS-3 table"""

    def test_geometry(self):
        assert MWTS3.channels == 18
        assert MWTS3.samples_per_line == 98
        assert MWTS3.min_payload == 1018
        assert MWTS3.start_marker == 1

    def test_segments_tile_the_line(self):
        covered = []
        for seg in MWTS3.segments.values():
            covered.extend(range(seg.line_offset, seg.line_offset + seg.count))
        assert sorted(covered) == list(range(98))

    def test_start_segment_offset(self):
        assert MWTS3.segments[1] == Segment(count=14, line_offset=0, byte_offset=512)

    def test_marker_from_high_nibble(self):
        """Bits 4..6 of the first byte; bit 7 is not part of the marker"""
        assert MWTS3.marker_of(bytes([0x10])) == 1
        assert MWTS3.marker_of(bytes([0x4F])) == 4
        assert MWTS3.marker_of(bytes([0x90])) == 1
        assert MWTS3.marker_of(bytes([0x0F])) == 0


class TestLayoutValidation:
    """Invalid tables are rejected at construction"""

    def test_valid_custom_layout(self):
        layout = _layout()
        assert layout.samples_per_line == 10

    def test_gap_rejected(self):
        with pytest.raises(ValueError, match="tile"):
            _layout(segments={1: Segment(4, 0, 20), 2: Segment(5, 5, 12)})

    def test_overlap_rejected(self):
        with pytest.raises(ValueError, match="tile"):
            _layout(segments={1: Segment(5, 0, 20), 2: Segment(6, 4, 12)})

    def test_short_coverage_rejected(self):
        with pytest.raises(ValueError, match="cover"):
            _layout(segments={1: Segment(4, 0, 20), 2: Segment(5, 4, 12)})

    def test_segment_beyond_min_payload_rejected(self):
        with pytest.raises(ValueError, match="min_payload"):
            _layout(segments={1: Segment(4, 0, 20), 2: Segment(6, 4, 50)})

    def test_missing_start_segment_rejected(self):
        with pytest.raises(ValueError, match="start marker"):
            _layout(start_marker=3)

    def test_marker_outside_mask_rejected(self):
        with pytest.raises(ValueError, match="mask"):
            _layout(segments={1: Segment(4, 0, 20), 9: Segment(6, 4, 12)})

    def test_time_field_overlapping_start_samples_rejected(self):
        with pytest.raises(ValueError, match="overlaps"):
            _layout(time_field=TimeField(byte_offset=22))


class TestLayoutConfig:
    """Loading layouts from config mappings"""

    def test_from_dict(self):
        layout = InstrumentLayout.from_dict({
            "name": "TEST",
            "channels": 2,
            "samples_per_line": 10,
            "min_payload": 64,
            "start_marker": 1,
            "segments": {"1": {"count": 4, "line_offset": 0, "byte_offset": 20},
                         "2": {"count": 6, "line_offset": 4, "byte_offset": 12}},
            "time_field": {"byte_offset": 2, "epoch_days": 0, "correction_s": 0},
            "apid": 9,
        })
        assert layout.segments[2] == Segment(6, 4, 12)
        assert layout.time_field.epoch_days == 0
        assert layout.apid == 9

    def test_from_dict_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown"):
            InstrumentLayout.from_dict({"name": "X", "bogus": 1})

    def test_get_layout_by_name(self):
        assert get_layout("mwts3") is MWTS3
        assert get_layout("MWTS-3") is MWTS3

    def test_get_layout_unknown(self):
        with pytest.raises(ValueError, match="Unknown instrument"):
            get_layout("avhrr")

    def test_get_layout_bad_type(self):
        with pytest.raises(TypeError):
            get_layout(42)
