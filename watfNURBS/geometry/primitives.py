"""
Primitive geometry factory functions.

This module provides procedural generators for common NURBS geometries:
- Full circles (the 9-point, degree-2 construction) and arcs
- Flat rectangular patches
- Cylinders and spheres (revolved circles), which exercise rational
  surface derivatives

Angles are used as curve parameters for circles: the knot vector of the
full circle is {0,0,0,π/2,π/2,π,π,3π/2,3π/2,2π,2π,2π}, so the control
points on the circle are hit exactly at u = kπ/2.
"""

import numpy as np
from typing import Tuple

from .nurbs import NURBSCurve, NURBSSurface
from ..discretization.knot_vector import KnotVector, make_uniform_knot_vector

# Weight of the corner points of the bounding octagon
W_CORNER = 1.0 / np.sqrt(2.0)

# Unit-circle control polygon (bounding square corners and edge midpoints)
_UNIT_CIRCLE = np.array([
    [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [-1.0, 1.0], [-1.0, 0.0],
    [-1.0, -1.0], [0.0, -1.0], [1.0, -1.0], [1.0, 0.0],
])
_UNIT_CIRCLE_WEIGHTS = np.array([1, W_CORNER, 1, W_CORNER, 1, W_CORNER, 1, W_CORNER, 1])


def circle_knot_vector() -> KnotVector:
    """Degree-2 knot vector of the full circle, parameterized by angle."""
    h = np.pi / 2
    knots = np.array([0, 0, 0, h, h, 2 * h, 2 * h, 3 * h, 3 * h, 4 * h, 4 * h, 4 * h])
    return KnotVector(knots, 2)


def make_nurbs_circle(radius: float = 1.0,
                      center: Tuple[float, float, float] = (0.0, 0.0, 0.0)) -> NURBSCurve:
    """
    Create a NURBS curve representing a full circle in a z = const plane.

    Uses the standard 9-control-point representation with degree 2:
    control points on the bounding square, weights alternating 1 and 1/√2.
    The circle starts on the positive x-axis and runs counterclockwise;
    the parameter is the polar angle at u = 0, π/2, π, 3π/2, 2π.

    Parameters:
        radius: Circle radius
        center: Center coordinates (x, y, z)

    Returns:
        NURBSCurve representing the circle
    """
    center = np.asarray(center, dtype=np.float64)
    control_points = np.zeros((9, 3))
    control_points[:, :2] = center[:2] + radius * _UNIT_CIRCLE
    control_points[:, 2] = center[2]

    return NURBSCurve(circle_knot_vector(), control_points, _UNIT_CIRCLE_WEIGHTS.copy())


def make_nurbs_arc(radius: float = 1.0,
                   center: Tuple[float, float, float] = (0.0, 0.0, 0.0),
                   start_angle: float = 0.0,
                   end_angle: float = np.pi / 2) -> NURBSCurve:
    """
    Create a NURBS curve representing a circular arc.

    Uses degree 2 with 3 control points for arcs up to 90 degrees.

    Parameters:
        radius: Arc radius
        center: Center coordinates (x, y, z)
        start_angle: Starting angle in radians
        end_angle: Ending angle in radians (must be within 90 degrees of start)

    Returns:
        NURBSCurve representing the arc on [0, 1]
    """
    sweep = end_angle - start_angle
    if abs(sweep) > np.pi / 2 + 1e-10:
        raise ValueError("Arc sweep must be <= 90 degrees. Use make_nurbs_circle for larger arcs.")

    kv = KnotVector(np.array([0, 0, 0, 1, 1, 1]), 2)

    # Weight for middle control point
    w = np.cos(sweep / 2)

    cx, cy, cz = center
    mid_angle = (start_angle + end_angle) / 2
    # Middle control point is the intersection of the end tangents
    d = radius / np.cos(sweep / 2)

    control_points = np.array([
        [cx + radius * np.cos(start_angle), cy + radius * np.sin(start_angle), cz],
        [cx + d * np.cos(mid_angle), cy + d * np.sin(mid_angle), cz],
        [cx + radius * np.cos(end_angle), cy + radius * np.sin(end_angle), cz],
    ])

    return NURBSCurve(kv, control_points, np.array([1.0, w, 1.0]))


def make_nurbs_plane(x_range: Tuple[float, float] = (0.0, 1.0),
                     y_range: Tuple[float, float] = (0.0, 1.0),
                     degree_u: int = 2,
                     degree_v: int = 2,
                     n_rows: int = 4,
                     n_cols: int = 4,
                     z: float = 0.0) -> NURBSSurface:
    """
    Create a flat rectangular NURBS patch in the plane z = const.

    Rows run along x (u direction), columns along y (v direction); control
    points sit at the Greville abscissae so the parameterization is linear.

    Returns:
        NURBSSurface with unit weights
    """
    kv_u = make_uniform_knot_vector(n_rows, degree_u, clamped=True)
    kv_v = make_uniform_knot_vector(n_cols, degree_v, clamped=True)

    x_min, x_max = x_range
    y_min, y_max = y_range
    gu = kv_u.greville_abscissae()
    gv = kv_v.greville_abscissae()

    control_points = np.zeros((n_rows, n_cols, 3))
    control_points[:, :, 0] = (x_min + (x_max - x_min) * gu)[:, None]
    control_points[:, :, 1] = (y_min + (y_max - y_min) * gv)[None, :]
    control_points[:, :, 2] = z

    return NURBSSurface(kv_u, kv_v, control_points)


def make_nurbs_cylinder(radius: float = 1.0,
                        height: float = 1.0,
                        center: Tuple[float, float, float] = (0.0, 0.0, 0.0)) -> NURBSSurface:
    """
    Create the lateral surface of a cylinder around the z-axis.

    u (rows, degree 1) runs along the axis from the base at center[2] to
    center[2] + height; v (columns, degree 2) is the polar angle. With this
    ordering -normalize(S_u x S_v) points away from the axis.

    Returns:
        NURBSSurface of 2 x 9 control points
    """
    center = np.asarray(center, dtype=np.float64)
    kv_u = KnotVector(np.array([0.0, 0.0, 1.0, 1.0]), 1)
    kv_v = circle_knot_vector()

    control_points = np.zeros((2, 9, 3))
    weights = np.zeros((2, 9))
    for i, z in enumerate([center[2], center[2] + height]):
        control_points[i, :, :2] = center[:2] + radius * _UNIT_CIRCLE
        control_points[i, :, 2] = z
        weights[i] = _UNIT_CIRCLE_WEIGHTS

    return NURBSSurface(kv_u, kv_v, control_points, weights)


def make_nurbs_sphere(radius: float = 1.0,
                      center: Tuple[float, float, float] = (0.0, 0.0, 0.0)) -> NURBSSurface:
    """
    Create a sphere by revolving a half circle around the z-axis.

    u (rows) runs along the meridian from the south pole (u = 0) to the
    north pole (u = π), v (columns) is the longitude in [0, 2π]. The poles
    are collapsed rows, where the surface normal is undefined.

    Returns:
        NURBSSurface of 5 x 9 control points, degrees (2, 2)
    """
    center = np.asarray(center, dtype=np.float64)
    h = np.pi / 2
    kv_u = KnotVector(np.array([0, 0, 0, h, h, 2 * h, 2 * h, 2 * h]), 2)
    kv_v = circle_knot_vector()

    # Meridian profile (distance from axis, height) and its weights
    profile = radius * np.array([[0.0, -1.0], [1.0, -1.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    profile_weights = np.array([1.0, W_CORNER, 1.0, W_CORNER, 1.0])

    control_points = np.zeros((5, 9, 3))
    control_points[:, :, 0] = profile[:, 0][:, None] * _UNIT_CIRCLE[:, 0][None, :]
    control_points[:, :, 1] = profile[:, 0][:, None] * _UNIT_CIRCLE[:, 1][None, :]
    control_points[:, :, 2] = profile[:, 1][:, None]
    control_points += center

    weights = np.outer(profile_weights, _UNIT_CIRCLE_WEIGHTS)

    return NURBSSurface(kv_u, kv_v, control_points, weights)
