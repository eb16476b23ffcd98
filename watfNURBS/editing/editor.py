"""
Structural editing of NURBS control structures.

A curve is defined by the triple (control points, weights, knot vector),
and the three arrays must stay mutually consistent:

    len(control_points) == len(weights) == len(knots) - p - 1

ControlStructureEditor owns a curve and applies edits to that triple as a
single transaction: every operation builds a complete candidate curve,
re-samples its polyline, and only then replaces the current state. If any
step fails the previous curve and polyline stay in place and the error
propagates to the caller.

Knot vectors are rebuilt from scratch whenever the point count or the
clamping mode changes (rebuild_knot_vector). This reparametrizes the
whole curve on every such edit.

EditorSession carries the interactive state (selected control point,
editing enabled) explicitly, instead of storing it on the geometry, and
turns editor errors into a boolean result plus a logged warning.
"""

import logging
import numpy as np
from typing import Optional, Sequence, Tuple

from ..discretization.control_point import ControlPointHandle, as_points_3d
from ..discretization.knot_vector import rebuild_knot_vector
from ..exceptions import InvalidEditError, NURBSError
from ..geometry.nurbs import NURBSCurve, NURBSSurface
from ..io.config import EvaluationConfig
from ..postprocess.sampling import N_SUBDIV, evaluate_polyline, evaluate_mesh, tangent_segment

logger = logging.getLogger(__name__)


def _as_position(position) -> np.ndarray:
    try:
        points = as_points_3d(position)
    except ValueError as exc:
        raise InvalidEditError(str(exc)) from exc
    if points.shape[0] != 1:
        raise InvalidEditError(f"Expected a single position, got {points.shape[0]}")
    if not np.all(np.isfinite(points)):
        raise InvalidEditError(f"Position must be finite, got {points[0]}")
    return points[0]


def _check_handle(handle, n_control_points: int) -> int:
    if not isinstance(handle, ControlPointHandle):
        handle = ControlPointHandle(int(handle))
    try:
        return handle.resolve(n_control_points)
    except IndexError as exc:
        raise InvalidEditError(str(exc)) from exc


class ControlStructureEditor:
    """
    Sole owner and editor of a NURBS curve.

    Attributes:
        n_subdiv: Number of polyline samples taken after every edit
        tangent_half_length: Half length of the drawn tangent segment

    Operations:
        append_control_point, remove_control_point, set_weights,
        set_clamping, move_control_point
    """

    def __init__(self, curve: NURBSCurve, clamped: Optional[bool] = None,
                 n_subdiv: int = N_SUBDIV, tangent_half_length: float = 0.1):
        """
        Parameters:
            curve: Curve to edit
            clamped: Clamping mode for rebuilt knot vectors; defaults to
                     whether the curve's knot vector is clamped
            n_subdiv: Polyline sample count
            tangent_half_length: Half length of the tangent segment
        """
        self.n_subdiv = n_subdiv
        self.tangent_half_length = tangent_half_length
        self._clamped = curve.knot_vector.is_clamped if clamped is None else bool(clamped)
        self._curve = curve
        self._polyline = evaluate_polyline(curve, n_subdiv)

    @classmethod
    def from_config(cls, curve: NURBSCurve,
                    config: EvaluationConfig) -> "ControlStructureEditor":
        """Editor using the sample count, clamping and weight tolerance of config."""
        curve = NURBSCurve(curve.knot_vector, curve.control_points, curve.weights,
                           tol=config.weight_tolerance)
        return cls(curve, clamped=config.clamped, n_subdiv=config.n_subdiv,
                   tangent_half_length=config.tangent_half_length)

    @property
    def curve(self) -> NURBSCurve:
        return self._curve

    @property
    def geometry(self) -> NURBSCurve:
        return self._curve

    @property
    def polyline(self) -> np.ndarray:
        """Samples of the current curve, refreshed after every edit."""
        return self._polyline.copy()

    def tangent_segment(self, xi: Optional[float] = None) -> np.ndarray:
        """Tangent line of the current curve, at mid-domain by default."""
        return tangent_segment(self._curve, xi, self.tangent_half_length)

    @property
    def control_points(self) -> np.ndarray:
        return self._curve.control_points

    @property
    def weights(self) -> np.ndarray:
        return self._curve.weights

    @property
    def knots(self) -> np.ndarray:
        return self._curve.knots

    @property
    def degree(self) -> int:
        return self._curve.degree

    @property
    def clamped(self) -> bool:
        return self._clamped

    def _commit(self, candidate: NURBSCurve, clamped: bool):
        polyline = evaluate_polyline(candidate, self.n_subdiv)
        self._curve = candidate
        self._polyline = polyline
        self._clamped = clamped
        logger.debug("Curve now has %d control points, knots %s",
                     candidate.n_control_points, candidate.knot_vector.knots)

    def _rebuilt(self, points: np.ndarray, weights: np.ndarray,
                 clamped: bool) -> NURBSCurve:
        kv = rebuild_knot_vector(self._curve.knot_vector, len(points), clamped)
        return NURBSCurve(kv, points, weights, tol=self._curve.tol)

    def append_control_point(self, position, weight: float = 1.0,
                             clamped: Optional[bool] = None) -> NURBSCurve:
        """
        Append a control point at the end of the curve.

        Parameters:
            position: New point coordinates (x, y[, z])
            weight: Weight of the new point
            clamped: Clamping mode of the rebuilt knot vector (default: current)

        Returns:
            The new curve
        """
        clamped = self._clamped if clamped is None else bool(clamped)
        points = np.vstack([self._curve.control_points, _as_position(position)])
        weights = np.append(self._curve.weights, float(weight))

        self._commit(self._rebuilt(points, weights, clamped), clamped)
        return self._curve

    def remove_control_point(self, index: int,
                             clamped: Optional[bool] = None) -> NURBSCurve:
        """
        Remove the control point at index.

        The curve must keep at least degree + 1 control points.

        Raises:
            InvalidEditError: index out of range or too few points left
        """
        n = self._curve.n_control_points
        p = self._curve.degree
        index = _check_handle(index, n)
        if n - 1 < p + 1:
            raise InvalidEditError(
                f"A degree {p} curve needs at least {p + 1} control points; "
                f"cannot remove from {n}"
            )

        clamped = self._clamped if clamped is None else bool(clamped)
        points = np.delete(self._curve.control_points, index, axis=0)
        weights = np.delete(self._curve.weights, index)

        self._commit(self._rebuilt(points, weights, clamped), clamped)
        return self._curve

    def set_weights(self, weights: Sequence[float]) -> NURBSCurve:
        """
        Replace the whole weight sequence.

        Raises:
            InvalidEditError: length differs from the control point count
            DegenerateEvaluationError: the new weights make the curve undefined
        """
        weights = np.asarray(weights, dtype=np.float64).flatten()
        if len(weights) != self._curve.n_control_points:
            raise InvalidEditError(
                f"Expected {self._curve.n_control_points} weights, got {len(weights)}"
            )

        candidate = NURBSCurve(self._curve.knot_vector, self._curve.control_points,
                               weights, tol=self._curve.tol)
        self._commit(candidate, self._clamped)
        return self._curve

    def set_clamping(self, clamped: bool) -> NURBSCurve:
        """Rebuild the knot vector with the given clamping mode."""
        candidate = self._rebuilt(self._curve.control_points, self._curve.weights,
                                  bool(clamped))
        self._commit(candidate, bool(clamped))
        return self._curve

    def move_control_point(self, handle, position) -> NURBSCurve:
        """Move one control point; knots and weights are unchanged."""
        index = _check_handle(handle, self._curve.n_control_points)
        points = self._curve.control_points
        points[index] = _as_position(position)

        candidate = NURBSCurve(self._curve.knot_vector, points,
                               self._curve.weights, tol=self._curve.tol)
        self._commit(candidate, self._clamped)
        return self._curve


class SurfaceWeightEditor:
    """
    Editor for a NURBS surface: reweighting and control point moves.

    Like ControlStructureEditor, every edit re-meshes the candidate
    surface before it replaces the current one.
    """

    def __init__(self, surface: NURBSSurface, n_subdiv: int = N_SUBDIV):
        self.n_subdiv = n_subdiv
        self._surface = surface
        self._mesh = evaluate_mesh(surface, n_subdiv)

    @classmethod
    def from_config(cls, surface: NURBSSurface,
                    config: EvaluationConfig) -> "SurfaceWeightEditor":
        kv_u, kv_v = surface.knot_vectors
        surface = NURBSSurface(kv_u, kv_v, surface.control_points, surface.weights,
                               tol=config.weight_tolerance)
        return cls(surface, n_subdiv=config.n_subdiv)

    @property
    def surface(self) -> NURBSSurface:
        return self._surface

    @property
    def geometry(self) -> NURBSSurface:
        return self._surface

    @property
    def mesh(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(positions, normals, indices) of the current surface."""
        return tuple(a.copy() for a in self._mesh)

    @property
    def control_points(self) -> np.ndarray:
        return self._surface.control_points

    @property
    def weights(self) -> np.ndarray:
        return self._surface.weights

    def _commit(self, candidate: NURBSSurface):
        mesh = evaluate_mesh(candidate, self.n_subdiv)
        self._surface = candidate
        self._mesh = mesh

    def _replaced(self, points: np.ndarray, weights: np.ndarray) -> NURBSSurface:
        kv_u, kv_v = self._surface.knot_vectors
        return NURBSSurface(kv_u, kv_v, points, weights, tol=self._surface.tol)

    def set_weights(self, weights: Sequence[float]) -> NURBSSurface:
        """
        Replace the whole weight grid (flat row-major or (n_rows, n_cols)).

        Raises:
            InvalidEditError: size differs from the control point count
        """
        weights = np.asarray(weights, dtype=np.float64).flatten()
        if len(weights) != self._surface.n_control_points:
            raise InvalidEditError(
                f"Expected {self._surface.n_control_points} weights, got {len(weights)}"
            )
        self._commit(self._replaced(self._surface.control_points, weights))
        return self._surface

    def move_control_point(self, handle, position) -> NURBSSurface:
        """Move one control point, addressed by its flat row-major index."""
        index = _check_handle(handle, self._surface.n_control_points)
        points = self._surface.control_points
        points[index] = _as_position(position)
        self._commit(self._replaced(points, self._surface.weights))
        return self._surface


class EditorSession:
    """
    Interactive editing state around an editor.

    Attributes:
        editor: ControlStructureEditor or SurfaceWeightEditor
        selected: Handle of the selected control point, or None
        edit_enabled: Whether drags are applied
        last_error: Error of the most recent failed operation, if any
    """

    def __init__(self, editor, edit_enabled: bool = False):
        self.editor = editor
        self.selected: Optional[ControlPointHandle] = None
        self.edit_enabled = edit_enabled
        self.last_error: Optional[NURBSError] = None

    @property
    def n_control_points(self) -> int:
        return self.editor.geometry.n_control_points

    def select(self, index: int) -> bool:
        """Select a control point by index."""
        if not 0 <= index < self.n_control_points:
            self.last_error = InvalidEditError(f"No control point {index}")
            logger.warning("Selection rejected: %s", self.last_error)
            return False
        self.selected = ControlPointHandle(index)
        return True

    def cycle_selection(self, step: int = 1) -> ControlPointHandle:
        """Move the selection by step, wrapping around."""
        n = self.n_control_points
        if self.selected is None:
            index = 0 if step >= 0 else n - 1
        else:
            index = (self.selected.index + step) % n
        self.selected = ControlPointHandle(index)
        return self.selected

    def toggle_editing(self) -> bool:
        self.edit_enabled = not self.edit_enabled
        return self.edit_enabled

    def apply(self, operation: str, *args, **kwargs) -> bool:
        """
        Run an editor operation by name.

        Returns:
            True on success; False if the editor rejected the edit, in which
            case the geometry is unchanged and last_error holds the reason
        """
        try:
            getattr(self.editor, operation)(*args, **kwargs)
        except NURBSError as exc:
            self.last_error = exc
            logger.warning("Edit '%s' rejected: %s", operation, exc)
            return False

        self.last_error = None
        if self.selected is not None and self.selected.index >= self.n_control_points:
            self.selected = None
        return True

    def drag_selected(self, delta) -> bool:
        """Translate the selected control point by delta (if editing is enabled)."""
        if not self.edit_enabled or self.selected is None:
            return False
        delta = np.asarray(delta, dtype=np.float64)
        position = self.editor.control_points[self.selected.index]
        position[:len(delta)] += delta
        return self.apply('move_control_point', self.selected, position)
