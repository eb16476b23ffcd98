"""
Unit tests for knot vector utilities.
"""

import pytest
import numpy as np
from numpy.testing import assert_array_equal, assert_array_almost_equal

from watfNURBS.discretization.knot_vector import (
    KnotVector, find_span_index, make_uniform_knot_vector, rebuild_knot_vector
)
from watfNURBS.exceptions import MalformedGeometryError


class TestKnotVector:
    """Tests for KnotVector class."""

    def test_clamped_knot_vector_creation(self):
        """Test building a clamped uniform knot vector."""
        kv = make_uniform_knot_vector(n_control_points=4, degree=2, clamped=True)

        assert kv.degree == 2
        assert kv.n_basis == 4
        assert len(kv.knots) == 4 + 2 + 1
        assert_array_almost_equal(kv.knots, [0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0])
        assert kv.is_clamped

    def test_clamped_keeps_uniform_interior(self):
        """Clamping only overwrites the p+1 end knots of the uniform base."""
        kv = make_uniform_knot_vector(n_control_points=5, degree=2, clamped=True)
        assert_array_almost_equal(
            kv.knots, [0.0, 0.0, 0.0, 3 / 7, 4 / 7, 1.0, 1.0, 1.0]
        )

    def test_unclamped_knot_vector_creation(self):
        """Test U[i] = i / n for the unclamped vector."""
        kv = make_uniform_knot_vector(n_control_points=5, degree=2, clamped=False)

        assert len(kv.knots) == 8
        assert_array_almost_equal(kv.knots, np.arange(8) / 7)
        assert not kv.is_clamped

    def test_domain(self):
        """Domain is [U[p], U[len-p-1]]."""
        kv = make_uniform_knot_vector(4, 2, clamped=True)
        assert kv.domain == (0.0, 1.0)

        kv = make_uniform_knot_vector(5, 2, clamped=False)
        start, end = kv.domain
        assert start == pytest.approx(2 / 7)
        assert end == pytest.approx(5 / 7)

    def test_n_elements(self):
        """Test counting non-zero spans inside the domain."""
        kv = make_uniform_knot_vector(4, 2, clamped=True)
        assert kv.n_elements == 2
        assert kv.elements == [(0.0, 0.5), (0.5, 1.0)]

        kv = make_uniform_knot_vector(5, 2, clamped=False)
        assert kv.n_elements == 3

    def test_degree_must_be_below_point_count(self):
        """Degree >= control point count is rejected."""
        with pytest.raises(MalformedGeometryError):
            make_uniform_knot_vector(n_control_points=3, degree=3)
        with pytest.raises(MalformedGeometryError):
            make_uniform_knot_vector(n_control_points=3, degree=4)
        with pytest.raises(MalformedGeometryError):
            make_uniform_knot_vector(n_control_points=3, degree=-1)

    def test_minimal_point_count(self):
        """Exactly degree + 1 points gives a single Bezier span."""
        kv = make_uniform_knot_vector(n_control_points=4, degree=3, clamped=True)
        assert_array_almost_equal(kv.knots, [0, 0, 0, 0, 1, 1, 1, 1])

    def test_rebuild_recomputes_whole_vector(self):
        """Rebuilding always recomputes from the point count."""
        kv = KnotVector(np.array([0.0, 0.0, 0.0, 0.1, 1.0, 1.0, 1.0]), 2)
        rebuilt = rebuild_knot_vector(kv, n_control_points=5, clamped=True)

        assert rebuilt.degree == 2
        assert rebuilt.n_basis == 5
        assert_array_equal(rebuilt.knots,
                           make_uniform_knot_vector(5, 2, clamped=True).knots)

        same_count = rebuild_knot_vector(kv, n_control_points=4, clamped=True)
        assert_array_almost_equal(same_count.knots, [0, 0, 0, 0.5, 1, 1, 1])

    def test_find_span_interior(self):
        """Test finding knot span for interior points."""
        kv = make_uniform_knot_vector(4, 2, clamped=True)
        assert kv.find_span(0.25) == 2
        assert kv.find_span(0.75) == 3
        assert kv.find_span(0.5) == 3

    def test_find_span_boundaries(self):
        """Boundary values map to the first/last span."""
        kv = make_uniform_knot_vector(4, 2, clamped=True)
        assert kv.find_span(0.0) == 2
        assert kv.find_span(1.0) == 3

    def test_find_span_repeated_knots(self):
        """Spans are never zero-length, even at repeated knots."""
        h = np.pi / 2
        knots = np.array([0, 0, 0, h, h, 2 * h, 2 * h, 3 * h, 3 * h, 4 * h, 4 * h, 4 * h])
        for u in [0.0, h, 2 * h, 3 * h, 4 * h, 0.3, 4.0]:
            span = find_span_index(knots, 2, u)
            assert knots[span] < knots[span + 1]
            assert knots[span] <= u <= knots[span + 1]

    def test_find_span_skips_zero_length_end_spans(self):
        """A knot repeated at one domain end still maps to a real span."""
        kv = KnotVector(np.array([0, 1, 2, 3, 3, 4, 5]), 2)
        assert kv.domain == (2.0, 3.0)
        assert kv.find_span(3.0) == 2
        assert kv.find_span(2.0) == 2

        kv = KnotVector(np.array([0, 1, 2, 2, 3, 4, 5]), 2)
        assert kv.domain == (2.0, 3.0)
        assert kv.find_span(2.0) == 3
        assert kv.find_span(3.0) == 3

        for kv in (KnotVector(np.array([0, 1, 2, 3, 3, 4, 5]), 2),
                   KnotVector(np.array([0, 1, 2, 2, 3, 4, 5]), 2)):
            for u in kv.domain:
                span = kv.find_span(u)
                assert kv.knots[span] < kv.knots[span + 1]

    def test_greville_abscissae(self):
        """Test Greville abscissae computation."""
        kv = make_uniform_knot_vector(4, 2, clamped=True)
        assert_array_almost_equal(kv.greville_abscissae(), [0.0, 0.25, 0.75, 1.0])

    def test_invalid_knot_vector(self):
        """Test that invalid knot vectors raise errors."""
        # Too few knots
        with pytest.raises(MalformedGeometryError):
            KnotVector(np.array([0.0, 1.0]), degree=2)

        # Decreasing knots
        with pytest.raises(MalformedGeometryError):
            KnotVector(np.array([0.0, 0.0, 0.5, 0.3, 1.0, 1.0]), degree=1)

        # Non-finite knots
        with pytest.raises(MalformedGeometryError):
            KnotVector(np.array([0.0, 0.0, np.nan, 1.0, 1.0]), degree=1)

        # Empty domain
        with pytest.raises(MalformedGeometryError):
            KnotVector(np.array([0.0, 0.0, 0.0, 1.0]), degree=1)

    def test_malformed_is_value_error(self):
        """Construction errors are also ValueErrors."""
        with pytest.raises(ValueError):
            KnotVector(np.array([1.0, 0.0, 0.0, 0.0]), degree=1)
