"""
NURBS (Non-Uniform Rational B-Spline) geometry representation.

NURBS extend B-splines by introducing weights for each control point,
enabling exact representation of conic sections (circles, ellipses, etc.).

A NURBS curve/surface point is computed as:

    C(xi) = sum_i (N_i(xi) * w_i * P_i) / sum_i (N_i(xi) * w_i)

where:
- N_i are B-spline basis functions
- w_i are weights
- P_i are control points

When the denominator W = sum_i N_i(xi) * w_i vanishes (zero or negative
weights dominating the local support) the point is undefined. eval_point
raises DegenerateEvaluationError in that case; evaluate() returns an
EvaluationResult tagged with the failure instead.

This module provides:
- NURBSGeometry: Abstract base for NURBS geometries
- NURBSCurve: 1D NURBS parametric curves
- NURBSSurface: tensor-product NURBS surfaces
- EvaluationResult / EvaluationStatus: tagged evaluation outcome
"""

import logging
import numpy as np
from typing import Tuple, Optional, Union
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from ..discretization.knot_vector import KnotVector
from ..discretization.control_point import (
    ControlPoint, as_points_3d, to_homogeneous, create_control_points_from_array
)
from ..exceptions import (
    MalformedGeometryError, DegenerateEvaluationError, DegenerateNormalError
)
from .bspline import BSplineBasis
from .derivatives import (
    rational_curve_derivatives, rational_surface_derivatives,
    curve_tangent, surface_normal
)

logger = logging.getLogger(__name__)

# Default threshold below which the rational denominator counts as zero
DEFAULT_WEIGHT_TOL = 1e-12


class EvaluationStatus(Enum):
    OK = "ok"
    DEGENERATE_WEIGHT = "degenerate_weight"
    DEGENERATE_NORMAL = "degenerate_normal"


@dataclass(frozen=True)
class EvaluationResult:
    """
    Outcome of evaluating a curve or surface at one parameter value.

    Attributes:
        parameter: xi for curves, (u, v) for surfaces
        point: Position, or None if the weight sum vanished
        tangent: Unit tangent (curves only)
        normal: Unit normal (surfaces only)
        status: OK or the kind of degeneracy met
    """
    parameter: Union[float, Tuple[float, float]]
    point: Optional[np.ndarray] = None
    tangent: Optional[np.ndarray] = None
    normal: Optional[np.ndarray] = None
    status: EvaluationStatus = EvaluationStatus.OK

    @property
    def ok(self) -> bool:
        return self.status is EvaluationStatus.OK


def _check_points(control_points) -> np.ndarray:
    try:
        points = as_points_3d(control_points)
    except ValueError as exc:
        raise MalformedGeometryError(str(exc)) from exc
    if not np.all(np.isfinite(points)):
        raise MalformedGeometryError("Control point coordinates must be finite")
    return points


def _check_weights(weights, n_total: int) -> np.ndarray:
    if weights is None:
        return np.ones(n_total)

    weights = np.asarray(weights, dtype=np.float64).flatten()
    if len(weights) != n_total:
        raise MalformedGeometryError(
            f"Weights length ({len(weights)}) must equal number of control points ({n_total})"
        )
    if not np.all(np.isfinite(weights)):
        raise MalformedGeometryError("Weights must be finite")
    if np.any(weights <= 0):
        logger.warning("Non-positive weights present; evaluation may degenerate")
    return weights


class NURBSGeometry(ABC):
    """
    Abstract base class for NURBS geometry objects.

    Key responsibilities:
    - Store control points and weights (sole owner of both arrays)
    - Evaluate geometry at parameter values
    - Provide derivative information for tangents and normals
    """

    tol: float

    @property
    @abstractmethod
    def n_dim_parametric(self) -> int:
        """Number of parametric dimensions (1=curve, 2=surface)."""
        pass

    @property
    @abstractmethod
    def n_control_points(self) -> int:
        """Total number of control points."""
        pass

    @property
    @abstractmethod
    def control_points(self) -> np.ndarray:
        """Control point coordinates as (n_control_points, 3) array."""
        pass

    @property
    @abstractmethod
    def weights(self) -> np.ndarray:
        """NURBS weights as (n_control_points,) array."""
        pass

    @abstractmethod
    def eval_point(self, xi: Union[float, Tuple[float, float]]) -> np.ndarray:
        """Evaluate geometry at a parameter value."""
        pass

    @abstractmethod
    def evaluate(self, xi: Union[float, Tuple[float, float]]) -> EvaluationResult:
        """Evaluate geometry at a parameter value as a tagged outcome."""
        pass

    @property
    def n_dim_physical(self) -> int:
        return 3

    def control_point(self, index: int) -> ControlPoint:
        """Copy of a single control point with its weight."""
        return ControlPoint(self.control_points[index], self.weights[index])

    def as_control_point_list(self):
        return create_control_points_from_array(self.control_points, self.weights)

    def _denominator(self, Nw: np.ndarray, xi) -> float:
        W = float(np.sum(Nw))
        if abs(W) <= self.tol:
            raise DegenerateEvaluationError(
                f"Rational weight sum {W:.3e} vanishes at {xi}", parameter=xi
            )
        return W


class NURBSCurve(NURBSGeometry):
    """
    NURBS curve in 3D space.

    A NURBS curve C(xi) is defined by:
    - Knot vector defining the parametric domain
    - Control points P_i in R^3 (planar input is lifted to z = 0)
    - Weights w_i
    """

    def __init__(self, knot_vector: KnotVector,
                 control_points: np.ndarray,
                 weights: Optional[np.ndarray] = None,
                 tol: float = DEFAULT_WEIGHT_TOL):
        """
        Initialize a NURBS curve.

        Parameters:
            knot_vector: KnotVector defining the basis
            control_points: Array of shape (n, 2|3) where n = n_basis functions
            weights: Array of shape (n,), defaults to 1.0 (B-spline)
            tol: Threshold below which the weight sum counts as zero
        """
        self._knot_vector = knot_vector
        self._basis = BSplineBasis(knot_vector)
        self._control_points = _check_points(control_points)

        if self._control_points.shape[0] != knot_vector.n_basis:
            raise MalformedGeometryError(
                f"Number of control points ({self._control_points.shape[0]}) "
                f"must match number of basis functions ({knot_vector.n_basis})"
            )

        self._weights = _check_weights(weights, knot_vector.n_basis)
        self.tol = tol

    @property
    def n_dim_parametric(self) -> int:
        return 1

    @property
    def n_control_points(self) -> int:
        return self._knot_vector.n_basis

    @property
    def control_points(self) -> np.ndarray:
        return self._control_points.copy()

    @property
    def weights(self) -> np.ndarray:
        return self._weights.copy()

    @property
    def homogeneous_control_points(self) -> np.ndarray:
        """Control points as (n, 4) array of (x*w, y*w, z*w, w)."""
        return to_homogeneous(self._control_points, self._weights)

    @property
    def knot_vector(self) -> KnotVector:
        return self._knot_vector

    @property
    def knots(self) -> np.ndarray:
        return self._knot_vector.knots.copy()

    @property
    def basis(self) -> BSplineBasis:
        return self._basis

    @property
    def degree(self) -> int:
        return self._knot_vector.degree

    @property
    def domain(self) -> Tuple[float, float]:
        return self._knot_vector.domain

    def _check_parameter(self, xi: float):
        start, end = self.domain
        if not start <= xi <= end:
            raise ValueError(f"Parameter {xi} outside domain {self.domain}")

    def eval_point(self, xi: float) -> np.ndarray:
        """
        Evaluate curve at parameter value.

        Parameters:
            xi: Parameter value

        Returns:
            Point coordinates as (3,) array

        Raises:
            DegenerateEvaluationError: if the weight sum vanishes at xi
        """
        self._check_parameter(xi)
        N = self._basis.eval_all(xi)

        Nw = N * self._weights
        W = self._denominator(Nw, xi)
        return Nw @ self._control_points / W

    def eval_derivatives(self, xi: float, n_ders: int = 1) -> Tuple[np.ndarray, ...]:
        """
        Evaluate curve and derivatives at parameter value.

        Returns:
            Tuple (C, dC/dxi, d²C/dxi², ...) of arrays
        """
        self._check_parameter(xi)
        C_ders = rational_curve_derivatives(self, xi, n_ders)
        return tuple(C_ders[k] for k in range(n_ders + 1))

    def tangent(self, xi: float) -> np.ndarray:
        """Unit tangent at xi (zero vector where the curve is stationary)."""
        self._check_parameter(xi)
        return curve_tangent(self, xi)

    def evaluate(self, xi: float) -> EvaluationResult:
        """Point and unit tangent at xi, tagged DEGENERATE_WEIGHT on failure."""
        try:
            point = self.eval_point(xi)
            tangent = curve_tangent(self, xi)
        except DegenerateEvaluationError:
            return EvaluationResult(parameter=xi,
                                    status=EvaluationStatus.DEGENERATE_WEIGHT)
        return EvaluationResult(parameter=xi, point=point, tangent=tangent)


class NURBSSurface(NURBSGeometry):
    """
    Tensor-product NURBS surface in 3D space.

    A NURBS surface S(u, v) is defined by:
    - Two knot vectors (u and v directions)
    - Control points P_{i,j} arranged in an n_rows x n_cols grid
    - Weights w_{i,j}

    Rows follow the u direction, columns the v direction:
    n_rows = len(U) - pu - 1, n_cols = len(V) - pv - 1.

    Control points are stored in row-major order:
    [P_{0,0}, P_{0,1}, ..., P_{0,m}, P_{1,0}, ..., P_{n,m}],
    i.e. (i, j) -> i * n_cols + j.
    """

    def __init__(self,
                 knot_vector_u: KnotVector,
                 knot_vector_v: KnotVector,
                 control_points: np.ndarray,
                 weights: Optional[np.ndarray] = None,
                 tol: float = DEFAULT_WEIGHT_TOL):
        """
        Initialize a NURBS surface.

        Parameters:
            knot_vector_u: KnotVector for the u (row) direction
            knot_vector_v: KnotVector for the v (column) direction
            control_points: Array of shape (n_rows * n_cols, 2|3) in row-major order
                           or (n_rows, n_cols, 2|3) which will be reshaped
            weights: Array of shape (n_rows * n_cols,) or (n_rows, n_cols), defaults to 1.0
            tol: Threshold below which the weight sum counts as zero
        """
        self._kv_u = knot_vector_u
        self._kv_v = knot_vector_v
        self._basis_u = BSplineBasis(knot_vector_u)
        self._basis_v = BSplineBasis(knot_vector_v)

        n_rows = knot_vector_u.n_basis
        n_cols = knot_vector_v.n_basis
        n_total = n_rows * n_cols

        control_points = np.asarray(control_points, dtype=np.float64)
        if control_points.ndim == 3:
            if control_points.shape[:2] != (n_rows, n_cols):
                raise MalformedGeometryError(
                    f"Control points shape {control_points.shape} doesn't match "
                    f"expected ({n_rows}, {n_cols}, d)"
                )
            control_points = control_points.reshape(n_total, -1)
        elif control_points.ndim != 2 or control_points.shape[0] != n_total:
            raise MalformedGeometryError(
                f"Number of control points ({len(control_points)}) "
                f"must equal n_rows * n_cols ({n_total})"
            )
        self._control_points = _check_points(control_points)

        self._weights = _check_weights(weights, n_total)
        self.tol = tol

        self._n_rows = n_rows
        self._n_cols = n_cols

    @property
    def n_dim_parametric(self) -> int:
        return 2

    @property
    def n_control_points(self) -> int:
        return self._n_rows * self._n_cols

    @property
    def n_rows(self) -> int:
        return self._n_rows

    @property
    def n_cols(self) -> int:
        return self._n_cols

    @property
    def n_control_points_per_dir(self) -> Tuple[int, int]:
        """Number of control points in each direction (n_rows, n_cols)."""
        return (self._n_rows, self._n_cols)

    @property
    def control_points(self) -> np.ndarray:
        return self._control_points.copy()

    @property
    def control_points_grid(self) -> np.ndarray:
        """Control points as (n_rows, n_cols, 3) grid."""
        return self._control_points.reshape(self._n_rows, self._n_cols, -1).copy()

    @property
    def weights(self) -> np.ndarray:
        return self._weights.copy()

    @property
    def weights_grid(self) -> np.ndarray:
        """Weights as (n_rows, n_cols) grid."""
        return self._weights.reshape(self._n_rows, self._n_cols).copy()

    @property
    def homogeneous_control_points(self) -> np.ndarray:
        """Control points as (n_rows, n_cols, 4) grid of (x*w, y*w, z*w, w)."""
        return to_homogeneous(self.control_points_grid, self.weights_grid)

    @property
    def knot_vectors(self) -> Tuple[KnotVector, KnotVector]:
        return (self._kv_u, self._kv_v)

    @property
    def degrees(self) -> Tuple[int, int]:
        return (self._kv_u.degree, self._kv_v.degree)

    @property
    def domain(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """Parametric domain as ((u_min, u_max), (v_min, v_max))."""
        return (self._kv_u.domain, self._kv_v.domain)

    def grid_index(self, i: int, j: int) -> int:
        """Convert (row, col) grid index to the flat row-major index."""
        return i * self._n_cols + j

    def _check_parameter(self, uv: Tuple[float, float]):
        for value, (start, end) in zip(uv, self.domain):
            if not start <= value <= end:
                raise ValueError(f"Parameter {uv} outside domain {self.domain}")

    def eval_point(self, uv: Tuple[float, float]) -> np.ndarray:
        """
        Evaluate surface at parameter values.

        Parameters:
            uv: Parameter values (u, v)

        Returns:
            Point coordinates as (3,) array

        Raises:
            DegenerateEvaluationError: if the weight sum vanishes at (u, v)
        """
        self._check_parameter(uv)
        u, v = uv

        N_u = self._basis_u.eval_all(u)
        N_v = self._basis_v.eval_all(v)

        Nw = np.outer(N_u, N_v) * self.weights_grid
        W = self._denominator(Nw, uv)
        return np.einsum('ij,ijk->k', Nw, self.control_points_grid) / W

    def eval_derivatives(self, uv: Tuple[float, float],
                         n_ders: int = 1) -> np.ndarray:
        """
        Evaluate surface point and partial derivatives.

        Returns:
            Array SKL of shape (n_ders+1, n_ders+1, 3), SKL[k, l] = d^{k+l}S/du^k dv^l
        """
        self._check_parameter(uv)
        return rational_surface_derivatives(self, uv[0], uv[1], n_ders)

    def normal(self, uv: Tuple[float, float]) -> np.ndarray:
        """Outward unit normal -normalize(S_u x S_v) at (u, v)."""
        self._check_parameter(uv)
        return surface_normal(self, uv[0], uv[1])

    def evaluate(self, uv: Tuple[float, float]) -> EvaluationResult:
        """Point and unit normal at (u, v) as a tagged outcome."""
        uv = (uv[0], uv[1])
        try:
            point = self.eval_point(uv)
        except DegenerateEvaluationError:
            return EvaluationResult(parameter=uv,
                                    status=EvaluationStatus.DEGENERATE_WEIGHT)
        try:
            normal = surface_normal(self, uv[0], uv[1])
        except DegenerateNormalError:
            return EvaluationResult(parameter=uv, point=point,
                                    status=EvaluationStatus.DEGENERATE_NORMAL)
        return EvaluationResult(parameter=uv, point=point, normal=normal)
