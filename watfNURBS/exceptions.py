"""
Error taxonomy for NURBS construction, evaluation and editing.

- MalformedGeometryError: inconsistent degree / knot vector / control points / weights
- DegenerateEvaluationError: rational denominator vanishes at the evaluation point
- InvalidEditError: structural edit that would break the control-point triple
"""


class NURBSError(Exception):
    """Base class for all watfNURBS errors."""


class MalformedGeometryError(NURBSError, ValueError):
    """Geometry input that cannot define a valid curve or surface."""


class DegenerateEvaluationError(NURBSError, ArithmeticError):
    """Zero (or near-zero) rational weight sum at the evaluation point."""

    def __init__(self, message: str, parameter=None):
        super().__init__(message)
        self.parameter = parameter


class InvalidEditError(NURBSError, ValueError):
    """Rejected structural edit; the edited geometry is left unchanged."""


class DegenerateNormalError(DegenerateEvaluationError):
    """Parametric tangents are parallel or vanish, so no normal exists."""
