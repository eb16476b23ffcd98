"""
Geometry sampling for display.

This module turns curves and surfaces into the arrays a viewer draws:

- evaluate_polyline: positions along a curve at uniformly spaced parameters
- polyline_indices: line-segment connectivity of a polyline
- evaluate_mesh: positions, normals and triangle indices of a surface
- tangent_segment: short line along the tangent at one curve parameter

Sampling is eager and restartable: every call evaluates the full set of
samples from scratch, with no caching of basis values between calls.
"""

import logging
import numpy as np
from typing import Optional, Tuple

from ..exceptions import DegenerateEvaluationError
from ..geometry.nurbs import NURBSCurve, NURBSSurface, EvaluationStatus

logger = logging.getLogger(__name__)

N_SUBDIV = 50


def parameter_samples(domain: Tuple[float, float], n_samples: int) -> np.ndarray:
    """Uniformly spaced parameters covering the closed domain."""
    if n_samples < 2:
        raise ValueError(f"Need at least 2 samples, got {n_samples}")
    start, end = domain
    samples = np.linspace(start, end, n_samples)
    # Guard the end point against rounding so it stays inside the domain
    samples[-1] = end
    return samples


def evaluate_polyline(curve: NURBSCurve, n_samples: int = N_SUBDIV) -> np.ndarray:
    """
    Sample a curve at uniformly spaced parameter values.

    Parameters:
        curve: NURBS curve
        n_samples: Number of samples, both domain ends included

    Returns:
        Positions as (n_samples, 3) array

    Raises:
        DegenerateEvaluationError: if any sample hits a vanishing weight sum
    """
    xs = parameter_samples(curve.domain, n_samples)
    return np.array([curve.eval_point(xi) for xi in xs])


def polyline_indices(n_samples: int) -> np.ndarray:
    """Segment indices (i, i+1) joining consecutive polyline samples."""
    i = np.arange(n_samples - 1)
    return np.column_stack([i, i + 1])


def evaluate_mesh(surface: NURBSSurface,
                  n_samples: int = N_SUBDIV) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Sample a surface on a uniform parameter grid and triangulate it.

    Vertex (i, j) is the sample at (u_i, v_j) and lives at index
    i * n_samples + j. Each grid cell yields two triangles wound
    counterclockwise around the outward normal.

    Parameters:
        surface: NURBS surface
        n_samples: Samples per parametric direction

    Returns:
        (positions, normals, indices) where
        - positions: (n_samples**2, 3)
        - normals: (n_samples**2, 3), zero where the normal is undefined
        - indices: (2 * (n_samples-1)**2, 3) triangle vertex indices

    Raises:
        DegenerateEvaluationError: if any sample hits a vanishing weight sum
    """
    (dom_u, dom_v) = surface.domain
    us = parameter_samples(dom_u, n_samples)
    vs = parameter_samples(dom_v, n_samples)

    positions = np.zeros((n_samples * n_samples, 3))
    normals = np.zeros((n_samples * n_samples, 3))

    n_degenerate = 0
    for i, u in enumerate(us):
        for j, v in enumerate(vs):
            result = surface.evaluate((u, v))
            if result.status is EvaluationStatus.DEGENERATE_WEIGHT:
                raise DegenerateEvaluationError(
                    f"Rational weight sum vanishes at (u, v)=({u}, {v})",
                    parameter=(u, v)
                )
            idx = i * n_samples + j
            positions[idx] = result.point
            if result.ok:
                normals[idx] = result.normal
            else:
                n_degenerate += 1

    if n_degenerate:
        logger.debug("%d mesh vertices without a defined normal", n_degenerate)

    return positions, normals, grid_triangles(n_samples)


def grid_triangles(n_samples: int) -> np.ndarray:
    """Two triangles per cell of an n_samples x n_samples vertex grid."""
    i, j = np.meshgrid(np.arange(n_samples - 1), np.arange(n_samples - 1), indexing='ij')
    a = (i * n_samples + j).ravel()
    b = a + 1
    c = a + n_samples
    d = c + 1

    triangles = np.empty((2 * len(a), 3), dtype=int)
    triangles[0::2] = np.column_stack([a, b, c])
    triangles[1::2] = np.column_stack([b, d, c])
    return triangles


def tangent_segment(curve: NURBSCurve, xi: Optional[float] = None,
                    half_length: float = 0.1) -> np.ndarray:
    """
    Short segment along the curve tangent.

    Parameters:
        curve: NURBS curve
        xi: Parameter value, defaults to the middle of the domain
        half_length: Distance from the curve point to each segment end

    Returns:
        (2, 3) array [P - h*T, P + h*T]
    """
    if xi is None:
        start, end = curve.domain
        xi = 0.5 * (start + end)

    result = curve.evaluate(xi)
    if not result.ok:
        raise DegenerateEvaluationError(
            f"Rational weight sum vanishes at u={xi}", parameter=xi
        )
    return np.array([result.point - half_length * result.tangent,
                     result.point + half_length * result.tangent])
