"""
B-spline basis function evaluation.

B-splines are piecewise polynomial functions defined by:
1. A knot vector (non-decreasing sequence of parametric values)
2. A polynomial degree p

The i-th B-spline basis function of degree p is defined recursively:

    N_{i,0}(xi) = 1 if xi_i <= xi < xi_{i+1}, else 0

    N_{i,p}(xi) = (xi - xi_i)/(xi_{i+p} - xi_i) * N_{i,p-1}(xi)
                + (xi_{i+p+1} - xi)/(xi_{i+p+1} - xi_{i+1}) * N_{i+1,p-1}(xi)

with the convention 0/0 = 0 for terms over repeated knots.

Properties:
- Partition of unity: sum of all basis functions = 1 on the domain
- Non-negativity: N_{i,p}(xi) >= 0
- Local support: N_{i,p} is non-zero only on [xi_i, xi_{i+p+1})
- Smoothness: C^{p-k} at a knot of multiplicity k

The right end of the domain is handled as the left limit of the last
span, so the partition of unity also holds at the closed domain end.
"""

import numpy as np
from typing import Optional
from ..discretization.knot_vector import KnotVector, find_span_index


def _seed_span(knots: np.ndarray, degree: int, xi: float) -> int:
    """Span whose degree-0 basis function is 1 at xi."""
    n = len(knots) - degree - 1
    if xi == knots[n]:
        return find_span_index(knots, degree, xi)
    return int(np.searchsorted(knots, xi, side='right')) - 1


def eval_basis_function(i: int, p: int, xi: float, knots) -> float:
    """
    Evaluate the single basis function N_{i,p}(xi).

    Bottom-up Cox-de Boor triangle (The NURBS Book, Algorithm A2.4):
    O(p^2) work, no recursion, every division guarded.

    Parameters:
        i: Basis function index
        p: Degree
        xi: Parameter value
        knots: Knot values

    Returns:
        N_{i,p}(xi)
    """
    U = np.asarray(knots, dtype=np.float64)
    m = len(U) - 1

    # Curve endpoints of a clamped vector
    if (i == 0 and xi == U[0]) or (i == m - p - 1 and xi == U[m]):
        return 1.0

    if xi < U[i] or xi > U[i + p + 1]:
        return 0.0

    span = _seed_span(U, p, xi)
    if not span - p <= i <= span:
        return 0.0

    # Degree-0 functions N_{i+j,0}
    N = np.zeros(p + 1)
    if 0 <= span - i <= p:
        N[span - i] = 1.0

    for k in range(1, p + 1):
        denom = U[i + k] - U[i]
        if N[0] == 0.0 or denom == 0.0:
            saved = 0.0
        else:
            saved = ((xi - U[i]) * N[0]) / denom

        for j in range(p - k + 1):
            u_left = U[i + j + 1]
            u_right = U[i + j + k + 1]
            denom = u_right - u_left

            if N[j + 1] == 0.0 or denom == 0.0:
                N[j] = saved
                saved = 0.0
            else:
                temp = N[j + 1] / denom
                N[j] = saved + (u_right - xi) * temp
                saved = (xi - u_left) * temp

    return float(N[0])


def eval_basis_all(kv: KnotVector, xi: float) -> np.ndarray:
    """
    Evaluate every basis function of a knot vector at xi.

    Returns:
        Array of shape (n_basis,) with N_{i,p}(xi) for i = 0..n_basis-1
    """
    p = kv.degree
    return np.array([eval_basis_function(i, p, xi, kv.knots)
                     for i in range(kv.n_basis)])


def eval_basis_1d(kv: KnotVector, xi: float,
                  span: Optional[int] = None) -> np.ndarray:
    """
    Evaluate all non-zero B-spline basis functions at a parameter value.

    Uses the Cox-de Boor algorithm optimized for evaluating only
    the p+1 non-zero basis functions at a given parameter value.

    Parameters:
        kv: Knot vector
        xi: Parameter value
        span: Optional pre-computed span index

    Returns:
        Array of shape (p+1,) containing N_{span-p,p}(xi) to N_{span,p}(xi)
    """
    p = kv.degree
    knots = kv.knots

    if span is None:
        span = kv.find_span(xi)

    N = np.zeros(p + 1)
    N[0] = 1.0

    left = np.zeros(p + 1)
    right = np.zeros(p + 1)

    for j in range(1, p + 1):
        left[j] = xi - knots[span + 1 - j]
        right[j] = knots[span + j] - xi

        saved = 0.0
        for r in range(j):
            temp = N[r] / (right[r + 1] + left[j - r])
            N[r] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        N[j] = saved

    return N


def eval_basis_ders_1d(kv: KnotVector, xi: float, n_ders: int,
                       span: Optional[int] = None) -> np.ndarray:
    """
    Evaluate B-spline basis functions and derivatives at a parameter value.

    Uses the algorithm from Piegl & Tiller "The NURBS Book" (Algorithm A2.3).

    Parameters:
        kv: Knot vector
        xi: Parameter value
        n_ders: Highest derivative order (0 = just values)
        span: Optional pre-computed span index

    Returns:
        Array of shape (n_ders+1, p+1) where result[k, j] is the k-th derivative
        of the j-th non-zero basis function (N_{span-p+j, p}). Rows k > p are zero.
    """
    p = kv.degree
    knots = kv.knots

    if span is None:
        span = kv.find_span(xi)

    ders = np.zeros((n_ders + 1, p + 1))

    # Derivatives above the degree vanish
    n_calc = min(n_ders, p)

    # ndu[j][r] = N_{span-p+r, j} (lower triangle) or knot differences (upper)
    ndu = np.zeros((p + 1, p + 1))
    ndu[0, 0] = 1.0

    left = np.zeros(p + 1)
    right = np.zeros(p + 1)

    for j in range(1, p + 1):
        left[j] = xi - knots[span + 1 - j]
        right[j] = knots[span + j] - xi

        saved = 0.0
        for r in range(j):
            ndu[j, r] = right[r + 1] + left[j - r]
            temp = ndu[r, j - 1] / ndu[j, r]

            ndu[r, j] = saved + right[r + 1] * temp
            saved = left[j - r] * temp

        ndu[j, j] = saved

    for j in range(p + 1):
        ders[0, j] = ndu[j, p]

    # Two-row rolling buffer of derivative coefficients
    a = np.zeros((2, p + 1))

    for r in range(p + 1):  # Loop over basis functions
        s1, s2 = 0, 1
        a[0, 0] = 1.0

        for k in range(1, n_calc + 1):  # Loop over derivatives
            d = 0.0
            rk = r - k
            pk = p - k

            if r >= k:
                a[s2, 0] = a[s1, 0] / ndu[pk + 1, rk]
                d = a[s2, 0] * ndu[rk, pk]

            j1 = 1 if rk >= -1 else -rk
            j2 = k - 1 if r - 1 <= pk else p - r

            for j in range(j1, j2 + 1):
                a[s2, j] = (a[s1, j] - a[s1, j - 1]) / ndu[pk + 1, rk + j]
                d += a[s2, j] * ndu[rk + j, pk]

            if r <= pk:
                a[s2, k] = -a[s1, k - 1] / ndu[pk + 1, r]
                d += a[s2, k] * ndu[r, pk]

            ders[k, r] = d
            s1, s2 = s2, s1

    # Multiply by the falling factorial p (p-1) ... (p-k+1)
    r = p
    for k in range(1, n_calc + 1):
        ders[k, :] *= r
        r *= (p - k)

    return ders


def eval_bspline_curve_point(kv: KnotVector, control_points: np.ndarray,
                             xi: float) -> np.ndarray:
    """
    Evaluate the non-rational B-spline curve sum_i N_i(xi) * P_i.

    Parameters:
        kv: Knot vector
        control_points: Array of shape (n_basis, d)
        xi: Parameter value

    Returns:
        Point coordinates as (d,) array
    """
    N = eval_basis_all(kv, xi)
    return N @ np.asarray(control_points, dtype=np.float64)


class BSplineBasis:
    """
    Encapsulates a univariate B-spline basis.

    Bundles a knot vector with the evaluation routines above.
    """

    def __init__(self, knot_vector: KnotVector):
        self.knot_vector = knot_vector

    @property
    def degree(self) -> int:
        return self.knot_vector.degree

    @property
    def n_basis(self) -> int:
        return self.knot_vector.n_basis

    def eval_function(self, i: int, xi: float) -> float:
        """Evaluate N_{i,p}(xi)."""
        return eval_basis_function(i, self.degree, xi, self.knot_vector.knots)

    def eval_all(self, xi: float) -> np.ndarray:
        """Evaluate all n_basis functions at xi."""
        return eval_basis_all(self.knot_vector, xi)

    def eval(self, xi: float, span: Optional[int] = None) -> np.ndarray:
        """Evaluate non-zero basis functions at xi."""
        return eval_basis_1d(self.knot_vector, xi, span)

    def eval_ders(self, xi: float, n_ders: int,
                  span: Optional[int] = None) -> np.ndarray:
        """Evaluate basis functions and derivatives at xi."""
        return eval_basis_ders_1d(self.knot_vector, xi, n_ders, span)
