"""
Configuration and geometry input.

Evaluation settings are read from a YAML file:

    evaluation:
      n_subdiv: 50
      weight_tolerance: 1.0e-12
      clamped: true
      tangent_half_length: 0.1

A missing or malformed file falls back to the defaults; invalid values
are rejected.

Geometry arrives from loaders and procedural generators as ordered
(x, y, z, w) records plus knot lists and degrees. curve_from_records and
surface_from_records validate those inputs and build the geometry.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np
import yaml

from ..discretization.knot_vector import KnotVector
from ..exceptions import MalformedGeometryError
from ..geometry.nurbs import NURBSCurve, NURBSSurface, DEFAULT_WEIGHT_TOL

logger = logging.getLogger(__name__)


@dataclass
class EvaluationConfig:
    """
    Evaluation and display settings.

    Attributes:
        n_subdiv: Samples per parametric direction when drawing
        weight_tolerance: Threshold below which the rational weight sum is zero
        clamped: Clamping mode used when knot vectors are rebuilt
        tangent_half_length: Half length of the drawn tangent segment
    """
    n_subdiv: int = 50
    weight_tolerance: float = DEFAULT_WEIGHT_TOL
    clamped: bool = True
    tangent_half_length: float = 0.1

    def __post_init__(self):
        try:
            n_subdiv = float(self.n_subdiv)
            weight_tolerance = float(self.weight_tolerance)
            tangent_half_length = float(self.tangent_half_length)
        except (TypeError, ValueError) as exc:
            raise MalformedGeometryError(f"Invalid evaluation setting: {exc}") from exc

        if not n_subdiv.is_integer() or n_subdiv < 2:
            raise MalformedGeometryError(f"n_subdiv must be an integer >= 2, got {self.n_subdiv}")
        if not weight_tolerance >= 0 or np.isinf(weight_tolerance):
            raise MalformedGeometryError(
                f"weight_tolerance must be finite and non-negative, got {self.weight_tolerance}"
            )
        if not tangent_half_length > 0 or np.isinf(tangent_half_length):
            raise MalformedGeometryError(
                f"tangent_half_length must be finite and positive, got {self.tangent_half_length}"
            )
        if not isinstance(self.clamped, (bool, np.bool_)):
            raise MalformedGeometryError(f"clamped must be true or false, got {self.clamped!r}")

        self.n_subdiv = int(n_subdiv)
        self.weight_tolerance = weight_tolerance
        self.clamped = bool(self.clamped)
        self.tangent_half_length = tangent_half_length

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EvaluationConfig":
        """
        Build settings from a parsed mapping.

        Values are read from the "evaluation" section when present, else
        from the top level. A section that is not a mapping gives the
        defaults.
        """
        if not isinstance(data, dict):
            logger.warning("Invalid config format %r, using defaults", type(data).__name__)
            return cls()
        params = data.get("evaluation", data)
        if not isinstance(params, dict):
            logger.warning("Invalid 'evaluation' section %r, using defaults", params)
            return cls()
        known = {k: params[k] for k in cls.__dataclass_fields__ if k in params}
        unknown = set(params) - set(known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", sorted(unknown))
        return cls(**known)


def load_config(filename: Optional[Union[str, Path]] = None) -> EvaluationConfig:
    """
    Load evaluation settings from a YAML file.

    Parameters:
        filename: Path to the YAML file; None gives the defaults

    Returns:
        EvaluationConfig
    """
    if filename is None:
        return EvaluationConfig()

    path = Path(filename)
    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return EvaluationConfig()

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        logger.warning("Invalid YAML format in %s, using defaults", path)
        return EvaluationConfig()

    config = EvaluationConfig.from_dict(data)
    logger.info("Config loaded from %s", path)
    return config


def _split_records(records: Sequence[Sequence[float]]):
    records = np.asarray(records, dtype=np.float64)
    if records.ndim != 2 or records.shape[1] != 4:
        raise MalformedGeometryError(
            f"Expected (x, y, z, w) records, got array of shape {records.shape}"
        )
    return records[:, :3], records[:, 3]


def curve_from_records(records: Sequence[Sequence[float]],
                       knots: Sequence[float],
                       degree: int,
                       tol: float = DEFAULT_WEIGHT_TOL) -> NURBSCurve:
    """
    Build a curve from (x, y, z, w) records, a flat knot list and a degree.

    Raises:
        MalformedGeometryError: degree, knot count and point count disagree
    """
    points, weights = _split_records(records)
    if degree >= len(points):
        raise MalformedGeometryError(
            f"Degree {degree} requires at least {degree + 1} control points, got {len(points)}"
        )
    if len(knots) != len(points) + degree + 1:
        raise MalformedGeometryError(
            f"Expected {len(points) + degree + 1} knots for {len(points)} points "
            f"of degree {degree}, got {len(knots)}"
        )
    return NURBSCurve(KnotVector(knots, degree), points, weights, tol=tol)


def surface_from_records(records: Sequence[Sequence[float]],
                         n_rows: int, n_cols: int,
                         knots_u: Sequence[float], knots_v: Sequence[float],
                         degree_u: int, degree_v: int,
                         tol: float = DEFAULT_WEIGHT_TOL) -> NURBSSurface:
    """
    Build a surface from row-major (x, y, z, w) records and two knot lists.

    Raises:
        MalformedGeometryError: grid size, knot counts and degrees disagree
    """
    points, weights = _split_records(records)
    if len(points) != n_rows * n_cols:
        raise MalformedGeometryError(
            f"Expected {n_rows} x {n_cols} = {n_rows * n_cols} records, got {len(points)}"
        )
    for name, n, knots, p in (("u", n_rows, knots_u, degree_u),
                              ("v", n_cols, knots_v, degree_v)):
        if p >= n:
            raise MalformedGeometryError(
                f"Degree {p} in {name} requires at least {p + 1} control points, got {n}"
            )
        if len(knots) != n + p + 1:
            raise MalformedGeometryError(
                f"Expected {n + p + 1} knots in {name}, got {len(knots)}"
            )

    return NURBSSurface(KnotVector(knots_u, degree_u), KnotVector(knots_v, degree_v),
                        points, weights, tol=tol)
