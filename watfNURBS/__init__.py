"""
watfNURBS - NURBS evaluation kernel

Evaluates rational B-spline curves and tensor-product surfaces and keeps
their control structures consistent under editing.

Key modules:
- discretization: Knot vectors, span search, control points
- geometry: basis functions, rational curves/surfaces, derivatives, primitives
- editing: transactional edits of the (points, weights, knots) triple
- postprocess: polyline and mesh sampling for display
- io: YAML evaluation settings and geometry records

Quick start (curve):
    import numpy as np
    from watfNURBS.geometry.primitives import make_nurbs_circle
    from watfNURBS.editing import ControlStructureEditor

    circle = make_nurbs_circle(radius=2.0)
    circle.eval_point(np.pi / 2)        # -> [0, 2, 0]

    editor = ControlStructureEditor(circle)
    editor.set_weights(np.ones(9))      # plain B-spline, re-sampled polyline
    editor.polyline

Quick start (surface):
    from watfNURBS.geometry.primitives import make_nurbs_sphere
    from watfNURBS.postprocess import evaluate_mesh

    sphere = make_nurbs_sphere(radius=1.0)
    positions, normals, indices = evaluate_mesh(sphere, n_samples=50)
"""

__version__ = "0.1.0"
__author__ = "Wataru Fukuda"

# Core imports for convenience
from .exceptions import (
    NURBSError,
    MalformedGeometryError,
    DegenerateEvaluationError,
    DegenerateNormalError,
    InvalidEditError,
)
from .discretization.knot_vector import KnotVector, make_uniform_knot_vector
from .geometry.nurbs import NURBSCurve, NURBSSurface, EvaluationResult, EvaluationStatus
from .geometry.primitives import make_nurbs_circle, make_nurbs_sphere
from .editing.editor import ControlStructureEditor, SurfaceWeightEditor, EditorSession
from .postprocess.sampling import evaluate_polyline, evaluate_mesh
