"""
Editing of NURBS control structures (points, weights, knot vectors).
"""

from .editor import ControlStructureEditor, SurfaceWeightEditor, EditorSession
