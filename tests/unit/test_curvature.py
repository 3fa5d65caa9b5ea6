"""
Unit tests for the curvature correction tables
"""

import os
import sys

import numpy as np
import pytest

project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from projection.curvature import UNMAPPED, build_curvature_table


class TestCurvatureTable:
    """Forward/inverse tables for a cross-track scanner"""

    def test_corrected_width(self):
        """round(swath / resolution)"""
        t = build_curvature_table(1400.0, 827.0, 17.4 / 20, 98)
        assert t.corrected_width == 1609
        assert t.forward.shape == (1609,)
        assert t.inverse.shape == (98,)
        assert t.image_width == 98

    def test_forward_spans_native_width(self):
        t = build_curvature_table(1400.0, 827.0, 1.0, 98)
        assert t.corrected_width == 1400
        assert t.forward[0] == pytest.approx(0.0, abs=1e-9)
        assert t.forward[700] == pytest.approx(49.0, abs=1e-9)
        assert np.all(t.forward >= 0.0)
        assert np.all(t.forward < 98.0)

    def test_forward_monotonic(self):
        t = build_curvature_table(2900.0, 833.0, 1.1, 2048)
        assert np.all(np.diff(t.forward) > 0)

    def test_native_pixels_denser_at_edges(self):
        """Ground-uniform steps cover fewer native pixels near the swath edge"""
        t = build_curvature_table(1400.0, 827.0, 1.0, 4096)
        steps = np.diff(t.forward)
        assert steps[0] < steps[len(steps) // 2]
        assert steps[-1] < steps[len(steps) // 2]

    def test_round_trip_mostly_exact(self):
        """inverse[round(forward[i])] == i for nearly every corrected pixel"""
        t = build_curvature_table(1400.0, 827.0, 1.0, 4096)
        hits = sum(
            1 for i, f in enumerate(t.forward)
            if 0 <= int(np.rint(f)) < t.image_width and t.inverse[int(np.rint(f))] == i
        )
        assert hits / t.corrected_width > 0.95

    def test_sparse_inverse_when_upsampling(self):
        """Native pixels between forward samples stay unmapped"""
        t = build_curvature_table(1400.0, 827.0, 1.0, 4096)
        assert np.any(t.inverse == UNMAPPED)
        assert t.corrected_of(-1) == UNMAPPED
        assert t.corrected_of(4096) == UNMAPPED

    def test_every_native_pixel_mapped_when_downsampling(self):
        t = build_curvature_table(1400.0, 827.0, 0.87, 98)
        assert np.all(t.inverse != UNMAPPED)
        assert t.corrected_of(49) == pytest.approx(t.corrected_width // 2, abs=20)

    def test_tables_are_read_only(self):
        t = build_curvature_table(1400.0, 827.0, 0.87, 98)
        with pytest.raises(ValueError):
            t.forward[0] = 1.0
        with pytest.raises(ValueError):
            t.inverse[0] = 1

    @pytest.mark.parametrize("swath,res,width", [(0.0, 1.0, 98), (1400.0, 0.0, 98), (1400.0, 1.0, 0)])
    def test_invalid_inputs(self, swath, res, width):
        with pytest.raises(ValueError):
            build_curvature_table(swath, 827.0, res, width)
