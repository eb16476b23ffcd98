"""
Control point abstraction for NURBS geometry.

A NURBS control point carries:
- Physical coordinates (always stored in 3D; planar input gets z = 0)
- A rational weight (1.0 recovers a plain B-spline)

Geometry objects store their control points as packed arrays and are the
sole owners of them. Editors and viewers refer to individual points
through ControlPointHandle, an index into that array, never through a
reference to the owning geometry.
"""

import numpy as np
from typing import List, Optional
from dataclasses import dataclass


@dataclass
class ControlPoint:
    """
    A single weighted control point.

    Attributes:
        coordinates: Physical coordinates (x, y, z)
        weight: NURBS weight (1.0 for B-splines)
    """
    coordinates: np.ndarray
    weight: float = 1.0

    def __post_init__(self):
        """Ensure coordinates is a 3D numpy array."""
        self.coordinates = as_points_3d(self.coordinates)[0]
        self.weight = float(self.weight)

    @property
    def x(self) -> float:
        return self.coordinates[0]

    @property
    def y(self) -> float:
        return self.coordinates[1]

    @property
    def z(self) -> float:
        return self.coordinates[2]

    @property
    def homogeneous(self) -> np.ndarray:
        """Homogeneous form (x*w, y*w, z*w, w)."""
        return np.append(self.coordinates * self.weight, self.weight)

    def __repr__(self) -> str:
        return f"ControlPoint(coord={self.coordinates}, w={self.weight})"


@dataclass(frozen=True)
class ControlPointHandle:
    """Index-based reference to a control point of a curve or surface."""
    index: int

    def resolve(self, n_control_points: int) -> int:
        """Return the index, checking that it addresses an existing point."""
        if not 0 <= self.index < n_control_points:
            raise IndexError(
                f"Control point {self.index} out of range [0, {n_control_points})"
            )
        return self.index


def as_points_3d(coordinates) -> np.ndarray:
    """
    Convert coordinates to a (n_points, 3) float array.

    Accepts a single point or an (n_points, 2|3) array; 2D input is
    lifted to the z = 0 plane.
    """
    points = np.atleast_2d(np.asarray(coordinates, dtype=np.float64))
    if points.shape[-1] == 2:
        points = np.hstack([points, np.zeros((points.shape[0], 1))])
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError(f"Expected 2D or 3D coordinates, got shape {points.shape}")
    return points


def to_homogeneous(coordinates: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """
    Lift control points to homogeneous coordinates.

    Parameters:
        coordinates: Array of shape (..., d)
        weights: Array of shape (...)

    Returns:
        Array of shape (..., d + 1) holding (x*w, y*w, z*w, w)
    """
    weights = np.asarray(weights, dtype=np.float64)
    return np.concatenate([coordinates * weights[..., None], weights[..., None]], axis=-1)


def create_control_points_from_array(
    coordinates: np.ndarray,
    weights: Optional[np.ndarray] = None
) -> List[ControlPoint]:
    """
    Create ControlPoint objects from coordinate array.

    Parameters:
        coordinates: Array of shape (n_points, n_dim)
        weights: Optional array of shape (n_points,), defaults to 1.0

    Returns:
        List of ControlPoint in array order
    """
    coordinates = as_points_3d(coordinates)
    n_points = coordinates.shape[0]

    if weights is None:
        weights = np.ones(n_points)

    return [ControlPoint(coordinates=coordinates[i].copy(), weight=weights[i])
            for i in range(n_points)]
