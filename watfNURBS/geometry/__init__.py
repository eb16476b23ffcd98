"""
Geometry module for NURBS curves and surfaces.
"""

from .nurbs import NURBSCurve, NURBSSurface, EvaluationResult, EvaluationStatus
from .primitives import (
    make_nurbs_circle,
    make_nurbs_arc,
    make_nurbs_plane,
    make_nurbs_cylinder,
    make_nurbs_sphere,
)
