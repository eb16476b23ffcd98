"""
Discretization module for NURBS geometry.

Provides:
- KnotVector: Knot vector representation and span search
- make_uniform_knot_vector / rebuild_knot_vector: global knot vector (re)construction
- ControlPoint, ControlPointHandle: weighted control points and index handles
"""

from .knot_vector import (
    KnotVector,
    find_span_index,
    make_uniform_knot_vector,
    rebuild_knot_vector,
)
from .control_point import (
    ControlPoint,
    ControlPointHandle,
    as_points_3d,
    to_homogeneous,
    create_control_points_from_array,
)
