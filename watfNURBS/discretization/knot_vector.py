"""
Knot vector utilities for NURBS evaluation.

A knot vector is a non-decreasing sequence of real numbers that defines
the parametric domain and basis function support for B-splines/NURBS.

Mathematical background:
- Clamped knot vectors have p+1 repeated knots at each end (interpolatory at boundaries)
- The number of basis functions n = len(knots) - p - 1
- The domain of definition is [U[p], U[len(knots) - p - 1]]
- Knot spans are intervals [U[i], U[i+1]) with U[i] < U[i+1]

Knot vectors are rebuilt globally whenever the number of control points
changes (see rebuild_knot_vector). There is no local knot insertion: any
edit of the point count or of the clamping mode reparametrizes the whole
curve.
"""

import numpy as np
from typing import List, Tuple
from dataclasses import dataclass

from ..exceptions import MalformedGeometryError


def find_span_index(knots: np.ndarray, degree: int, xi: float) -> int:
    """
    Find the knot span index containing parameter value xi.

    For xi in [U[i], U[i+1]), returns i. Values at or beyond the domain
    boundaries are clamped to the first/last span of non-zero length, so
    the last span is treated as closed. Repeated knots at a domain end
    never yield a zero-length span.

    Parameters:
        knots: Knot values
        degree: Polynomial degree p
        xi: Parameter value

    Returns:
        Span index in [p, n_basis - 1]
    """
    p = degree
    n = len(knots) - p - 1

    # Last i with U[i] < U[i+1] = U[n]
    if xi >= knots[n]:
        return int(np.searchsorted(knots, knots[n], side='left')) - 1
    # Last i with U[i] = U[p]
    if xi <= knots[p]:
        return int(np.searchsorted(knots, knots[p], side='right')) - 1

    # Binary search
    low = p
    high = n
    mid = (low + high) // 2

    while xi < knots[mid] or xi >= knots[mid + 1]:
        if xi < knots[mid]:
            high = mid
        else:
            low = mid
        mid = (low + high) // 2

    return mid


@dataclass
class KnotVector:
    """
    Represents a univariate knot vector.

    Attributes:
        knots: The knot values (non-decreasing sequence)
        degree: Polynomial degree p

    Properties computed:
        n_basis: Number of basis functions (= number of control points)
        domain: (U[p], U[len-p-1])
        elements: List of (start, end) non-zero knot spans inside the domain
    """
    knots: np.ndarray
    degree: int

    def __post_init__(self):
        self.knots = np.asarray(self.knots, dtype=np.float64).ravel()
        self.degree = int(self.degree)
        self._validate()
        self._compute_elements()

    def _validate(self):
        """Validate knot vector properties."""
        if self.degree < 0:
            raise MalformedGeometryError(f"Degree must be non-negative, got {self.degree}.")
        if len(self.knots) < 2 * (self.degree + 1):
            raise MalformedGeometryError(
                f"Knot vector too short for degree {self.degree}. "
                f"Need at least {2 * (self.degree + 1)} knots, got {len(self.knots)}."
            )
        if not np.all(np.isfinite(self.knots)):
            raise MalformedGeometryError("Knot values must be finite.")
        if not np.all(np.diff(self.knots) >= 0):
            raise MalformedGeometryError("Knot vector must be non-decreasing.")
        start, end = self.domain
        if not end > start:
            raise MalformedGeometryError(
                f"Knot vector has an empty domain [{start}, {end}]."
            )

    def _compute_elements(self):
        """Compute the non-zero knot spans lying inside the domain."""
        start, end = self.domain
        inner = self.knots[(self.knots >= start) & (self.knots <= end)]
        self._unique_knots = np.unique(inner)
        self._elements = [
            (a, b) for a, b in zip(self._unique_knots[:-1], self._unique_knots[1:])
        ]

    @property
    def n_basis(self) -> int:
        """Number of basis functions."""
        return len(self.knots) - self.degree - 1

    @property
    def n_elements(self) -> int:
        """Number of non-zero measure knot spans inside the domain."""
        return len(self._elements)

    @property
    def elements(self) -> List[Tuple[float, float]]:
        """List of element intervals as (start, end) tuples."""
        return self._elements.copy()

    @property
    def unique_knots(self) -> np.ndarray:
        """Unique knot values (breakpoints) inside the domain."""
        return self._unique_knots.copy()

    @property
    def domain(self) -> Tuple[float, float]:
        """Parametric domain of definition [U[p], U[len-p-1]]."""
        p = self.degree
        return (float(self.knots[p]), float(self.knots[len(self.knots) - p - 1]))

    @property
    def is_clamped(self) -> bool:
        """True when both ends repeat p+1 times."""
        p = self.degree
        return bool(np.all(self.knots[:p + 1] == self.knots[0])
                    and np.all(self.knots[-(p + 1):] == self.knots[-1]))

    def find_span(self, xi: float) -> int:
        """
        Find the knot span index containing parameter value xi.

        Note:
            This returns the span index in the original knot vector,
            which is what the basis derivative table expects.
        """
        return find_span_index(self.knots, self.degree, xi)

    def greville_abscissae(self) -> np.ndarray:
        """
        Compute Greville abscissae (nodal parameters for basis functions).

        The i-th Greville abscissa is the average of p consecutive knots:
        xi_i = (xi_{i+1} + xi_{i+2} + ... + xi_{i+p}) / p

        Returns:
            Array of n Greville abscissae
        """
        p = self.degree
        n = self.n_basis
        if p == 0:
            return 0.5 * (self.knots[:-1] + self.knots[1:])

        greville = np.zeros(n)
        for i in range(n):
            greville[i] = np.sum(self.knots[i + 1:i + p + 1]) / p

        return greville


def make_uniform_knot_vector(n_control_points: int, degree: int,
                             clamped: bool = True) -> KnotVector:
    """
    Build a uniform knot vector for a given point count and degree.

    The unclamped vector is U[i] = i / n for i = 0..n with n = n_cp + p.
    Clamping then forces U[0..p] = 0 and U[n-p..n] = 1, so the curve
    interpolates its first and last control point.

    Parameters:
        n_control_points: Number of control points (= basis functions)
        degree: Polynomial degree p
        clamped: Repeat the end knots p+1 times

    Returns:
        KnotVector with n_control_points + degree + 1 entries
    """
    p = int(degree)
    if p < 0:
        raise MalformedGeometryError(f"Degree must be non-negative, got {p}.")
    if p >= n_control_points:
        raise MalformedGeometryError(
            f"Degree {p} requires at least {p + 1} control points, "
            f"got {n_control_points}."
        )

    n = n_control_points + p
    knots = np.arange(n + 1, dtype=np.float64) / n

    if clamped:
        knots[:p + 1] = 0.0
        knots[n - p:] = 1.0

    return KnotVector(knots, p)


def rebuild_knot_vector(kv: KnotVector, n_control_points: int,
                        clamped: bool) -> KnotVector:
    """
    Rebuild a knot vector after the control point count has changed.

    The whole vector is recomputed from scratch for the new count; the old
    knot values only contribute the degree.

    Parameters:
        kv: Current knot vector
        n_control_points: New number of control points
        clamped: Clamping mode of the rebuilt vector

    Returns:
        New KnotVector consistent with n_control_points
    """
    return make_uniform_knot_vector(n_control_points, kv.degree, clamped)
