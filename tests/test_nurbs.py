"""
Unit tests for NURBS geometry.
"""

import pytest
import numpy as np
from numpy.testing import assert_array_almost_equal, assert_almost_equal

from watfNURBS.discretization.knot_vector import KnotVector, make_uniform_knot_vector
from watfNURBS.exceptions import DegenerateEvaluationError, MalformedGeometryError
from watfNURBS.geometry.bspline import eval_basis_all, eval_bspline_curve_point
from watfNURBS.geometry.nurbs import (
    NURBSCurve, NURBSSurface, EvaluationResult, EvaluationStatus
)
from watfNURBS.geometry.primitives import (
    make_nurbs_circle, make_nurbs_arc, make_nurbs_plane, make_nurbs_sphere,
    make_nurbs_cylinder
)


def _bilinear_patch(weights):
    kv = KnotVector(np.array([0.0, 0.0, 1.0, 1.0]), 1)
    points = np.array([[[0.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
                       [[1.0, 0.0, 0.0], [1.0, 1.0, 0.0]]])
    return NURBSSurface(kv, kv, points, np.asarray(weights, dtype=float))


class TestNURBSCurve:
    """Tests for NURBS curves."""

    def test_circle_exact_at_quarters(self):
        """The 9-point circle passes through the quarter points at u = k*pi/2."""
        center = np.array([1.0, -1.0, 0.5])
        radius = 2.0
        circle = make_nurbs_circle(radius=radius, center=center)

        for k in range(5):
            angle = k * np.pi / 2
            expected = center + radius * np.array([np.cos(angle), np.sin(angle), 0.0])
            assert_array_almost_equal(circle.eval_point(angle), expected, decimal=12)

    def test_circle_radius_everywhere(self):
        """Every point of the rational circle lies on the circle."""
        center = np.array([1.0, -1.0, 0.5])
        circle = make_nurbs_circle(radius=2.0, center=center)

        for u in np.linspace(0.0, 2 * np.pi, 41):
            pt = circle.eval_point(u)
            assert np.linalg.norm(pt - center) == pytest.approx(2.0, abs=1e-12)
            assert pt[2] == pytest.approx(0.5)

    def test_circle_structure(self):
        circle = make_nurbs_circle()
        assert circle.degree == 2
        assert circle.n_control_points == 9
        assert len(circle.knots) == 12
        assert_array_almost_equal(circle.weights[1::2], 1.0 / np.sqrt(2.0))
        assert_array_almost_equal(circle.weights[0::2], 1.0)
        assert circle.domain == pytest.approx((0.0, 2 * np.pi))

    def test_clamped_endpoint_interpolation(self, rng):
        """Clamped curves hit their end points for any positive weights."""
        kv = make_uniform_knot_vector(6, 3, clamped=True)
        points = rng.uniform(-1.0, 1.0, size=(6, 3))
        weights = rng.uniform(0.1, 5.0, size=6)
        curve = NURBSCurve(kv, points, weights)

        assert_array_almost_equal(curve.eval_point(0.0), points[0], decimal=12)
        assert_array_almost_equal(curve.eval_point(1.0), points[-1], decimal=12)

    def test_unit_weights_reduce_to_bspline(self, rng):
        """All weights 1 gives the plain sum N_i P_i."""
        for clamped in (True, False):
            kv = make_uniform_knot_vector(7, 3, clamped=clamped)
            points = rng.uniform(-1.0, 1.0, size=(7, 3))
            curve = NURBSCurve(kv, points, np.ones(7))

            start, end = curve.domain
            for u in np.linspace(start, end, 25):
                assert_array_almost_equal(curve.eval_point(u),
                                          eval_bspline_curve_point(kv, points, u),
                                          decimal=12)

    @pytest.mark.parametrize("knots", [[0, 1, 2, 3, 3, 4, 5], [0, 1, 2, 2, 3, 4, 5]])
    def test_domain_ends_with_repeated_knot(self, knots):
        """Unit weights evaluate at both domain ends despite a repeated end knot."""
        kv = KnotVector(np.array(knots, dtype=float), 2)
        points = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 0.0],
                           [3.0, 2.0, 1.0], [4.0, 0.0, 0.0]])
        curve = NURBSCurve(kv, points)

        for u in curve.domain:
            assert_array_almost_equal(curve.eval_point(u),
                                      eval_bspline_curve_point(kv, points, u))
            C, dC = curve.eval_derivatives(u, 1)
            assert np.all(np.isfinite(C))
            assert np.all(np.isfinite(dC))
            assert curve.evaluate(u).ok

    def test_weight_pulls_curve(self):
        """A larger middle weight pulls the curve toward that point."""
        kv = make_uniform_knot_vector(3, 2, clamped=True)
        points = np.array([[0.0, 0.0], [0.5, 0.5], [1.0, 0.0]])

        curve = NURBSCurve(kv, points, np.array([1.0, 2.0, 1.0]))
        assert curve.eval_point(0.5)[1] > 0.25

    def test_planar_points_lifted(self):
        kv = make_uniform_knot_vector(3, 2, clamped=True)
        curve = NURBSCurve(kv, np.array([[0.0, 0.0], [0.5, 0.5], [1.0, 0.0]]))
        assert curve.control_points.shape == (3, 3)
        assert curve.eval_point(0.5).shape == (3,)

    def test_arc(self):
        arc = make_nurbs_arc(radius=1.5, start_angle=0.0, end_angle=np.pi / 2)
        for u in np.linspace(0.0, 1.0, 11):
            assert np.linalg.norm(arc.eval_point(u)) == pytest.approx(1.5)

    def test_accessors_return_copies(self):
        circle = make_nurbs_circle()
        pts = circle.control_points
        pts[0] = 100.0
        assert circle.control_points[0, 0] == pytest.approx(1.0)

    def test_control_point_access(self):
        circle = make_nurbs_circle(radius=1.0)
        cp = circle.control_point(1)
        assert_array_almost_equal(cp.coordinates, [1.0, 1.0, 0.0])
        assert cp.weight == pytest.approx(1.0 / np.sqrt(2.0))
        assert len(circle.as_control_point_list()) == 9

    def test_homogeneous_control_points(self):
        circle = make_nurbs_circle(radius=1.0)
        Pw = circle.homogeneous_control_points
        assert Pw.shape == (9, 4)
        assert_array_almost_equal(Pw[:, :3] / Pw[:, 3:], circle.control_points)

    def test_point_count_mismatch(self):
        kv = make_uniform_knot_vector(4, 2)
        with pytest.raises(MalformedGeometryError):
            NURBSCurve(kv, np.zeros((3, 3)))

    def test_weight_count_mismatch(self):
        kv = make_uniform_knot_vector(4, 2)
        with pytest.raises(MalformedGeometryError):
            NURBSCurve(kv, np.zeros((4, 3)), np.ones(3))

    def test_non_finite_weights(self):
        kv = make_uniform_knot_vector(4, 2)
        with pytest.raises(MalformedGeometryError):
            NURBSCurve(kv, np.zeros((4, 3)), np.array([1.0, np.inf, 1.0, 1.0]))

    def test_non_finite_points(self):
        kv = make_uniform_knot_vector(4, 2)
        points = np.zeros((4, 3))
        points[2, 1] = np.nan
        with pytest.raises(MalformedGeometryError):
            NURBSCurve(kv, points)

        points = np.zeros((9, 3))
        points[4, 0] = np.inf
        kv = make_uniform_knot_vector(3, 2)
        with pytest.raises(MalformedGeometryError):
            NURBSSurface(kv, kv, points)

    def test_parameter_outside_domain(self):
        circle = make_nurbs_circle()
        with pytest.raises(ValueError):
            circle.eval_point(-0.1)
        with pytest.raises(ValueError):
            circle.eval_point(7.0)


class TestDegenerateCurve:
    """Tests for vanishing rational denominators on curves."""

    def _line(self):
        kv = KnotVector(np.array([0.0, 0.0, 1.0, 1.0]), 1)
        return NURBSCurve(kv, np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]),
                          np.array([1.0, -1.0]))

    def test_eval_point_raises(self):
        with pytest.raises(DegenerateEvaluationError) as info:
            self._line().eval_point(0.5)
        assert info.value.parameter == 0.5

    def test_evaluate_tags_result(self):
        result = self._line().evaluate(0.5)
        assert isinstance(result, EvaluationResult)
        assert result.status is EvaluationStatus.DEGENERATE_WEIGHT
        assert not result.ok
        assert result.point is None

    def test_regular_points_still_evaluate(self):
        result = self._line().evaluate(0.0)
        assert result.ok
        assert_array_almost_equal(result.point, [0.0, 0.0, 0.0])

    def test_evaluate_includes_unit_tangent(self):
        result = make_nurbs_circle().evaluate(np.pi / 2)
        assert result.ok
        assert_array_almost_equal(result.point, [0.0, 1.0, 0.0])
        assert_array_almost_equal(result.tangent, [-1.0, 0.0, 0.0])


class TestNURBSSurface:
    """Tests for NURBS surfaces."""

    def test_plane_linear_mapping(self):
        surface = make_nurbs_plane(x_range=(0.0, 2.0), y_range=(0.0, 3.0),
                                   degree_u=2, degree_v=3, n_rows=5, n_cols=6)
        for u in [0.0, 0.3, 0.5, 1.0]:
            for v in [0.0, 0.6, 1.0]:
                assert_array_almost_equal(surface.eval_point((u, v)),
                                          [2.0 * u, 3.0 * v, 0.0])

    def test_surface_properties(self):
        surface = make_nurbs_plane(degree_u=2, degree_v=1, n_rows=4, n_cols=3)

        assert surface.n_dim_parametric == 2
        assert surface.degrees == (2, 1)
        assert surface.n_control_points_per_dir == (4, 3)
        assert (surface.n_rows, surface.n_cols) == (4, 3)
        assert surface.n_control_points == 12
        assert surface.domain == ((0.0, 1.0), (0.0, 1.0))

    def test_row_major_grid(self):
        """Grid entry (i, j) is flat entry i * n_cols + j."""
        surface = make_nurbs_plane(n_rows=4, n_cols=3)
        grid = surface.control_points_grid
        flat = surface.control_points

        assert grid.shape == (4, 3, 3)
        for i in range(4):
            for j in range(3):
                assert surface.grid_index(i, j) == i * 3 + j
                assert_array_almost_equal(grid[i, j], flat[i * 3 + j])

    def test_sphere_points_on_sphere(self):
        center = np.array([0.5, 1.0, -2.0])
        sphere = make_nurbs_sphere(radius=3.0, center=center)
        for u in np.linspace(0.0, np.pi, 9):
            for v in np.linspace(0.0, 2 * np.pi, 13):
                pt = sphere.eval_point((u, v))
                assert np.linalg.norm(pt - center) == pytest.approx(3.0, abs=1e-12)

    def test_sphere_poles(self):
        sphere = make_nurbs_sphere(radius=2.0)
        assert_array_almost_equal(sphere.eval_point((0.0, 1.0)), [0.0, 0.0, -2.0])
        assert_array_almost_equal(sphere.eval_point((np.pi, 4.0)), [0.0, 0.0, 2.0])

    def test_cylinder(self):
        cylinder = make_nurbs_cylinder(radius=1.5, height=2.0)
        for u in [0.0, 0.4, 1.0]:
            for v in np.linspace(0.0, 2 * np.pi, 9):
                pt = cylinder.eval_point((u, v))
                assert np.hypot(pt[0], pt[1]) == pytest.approx(1.5)
                assert pt[2] == pytest.approx(2.0 * u)

    def test_unit_weights_reduce_to_tensor_bspline(self, rng):
        kv_u = make_uniform_knot_vector(4, 2, clamped=True)
        kv_v = make_uniform_knot_vector(5, 3, clamped=False)
        points = rng.uniform(-1.0, 1.0, size=(4, 5, 3))
        surface = NURBSSurface(kv_u, kv_v, points)

        (u0, u1), (v0, v1) = surface.domain
        for u in np.linspace(u0, u1, 5):
            for v in np.linspace(v0, v1, 5):
                Nuv = np.outer(eval_basis_all(kv_u, u), eval_basis_all(kv_v, v))
                expected = np.einsum('ij,ijk->k', Nuv, points)
                assert_array_almost_equal(surface.eval_point((u, v)), expected)

    def test_weights_grid(self):
        sphere = make_nurbs_sphere()
        assert sphere.weights_grid.shape == (5, 9)
        assert sphere.homogeneous_control_points.shape == (5, 9, 4)
        assert_almost_equal(sphere.weights_grid[1, 1], 0.5)

    def test_grid_shape_mismatch(self):
        kv = make_uniform_knot_vector(3, 2)
        with pytest.raises(MalformedGeometryError):
            NURBSSurface(kv, kv, np.zeros((3, 4, 3)))
        with pytest.raises(MalformedGeometryError):
            NURBSSurface(kv, kv, np.zeros((8, 3)))

    def test_weight_grid_mismatch(self):
        kv = make_uniform_knot_vector(3, 2)
        with pytest.raises(MalformedGeometryError):
            NURBSSurface(kv, kv, np.zeros((9, 3)), np.ones(8))

    def test_degenerate_weight(self):
        """Weights summing to zero locally are reported."""
        patch = _bilinear_patch([[1.0, -1.0], [-1.0, 1.0]])

        with pytest.raises(DegenerateEvaluationError):
            patch.eval_point((0.5, 0.2))

        result = patch.evaluate((0.5, 0.2))
        assert result.status is EvaluationStatus.DEGENERATE_WEIGHT
        assert result.point is None

    def test_evaluate_plane(self):
        result = make_nurbs_plane().evaluate((0.25, 0.75))
        assert result.ok
        assert_array_almost_equal(result.point, [0.25, 0.75, 0.0])
        assert_array_almost_equal(result.normal, [0.0, 0.0, -1.0])
