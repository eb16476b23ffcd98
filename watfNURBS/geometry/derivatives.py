"""
Derivatives of rational curves and surfaces.

A NURBS point is the projection of a non-rational B-spline in homogeneous
space. With homogeneous control points Pw = (w*P, w), the B-spline
machinery gives derivatives of the numerator A(u) = sum N_i w_i P_i and of
the denominator w(u) = sum N_i w_i. The Cartesian derivatives follow from
the quotient rule (The NURBS Book, Eq. 4.8 and 4.20):

    C^(k) = (A^(k) - sum_{j=1}^{k} C(k,j) w^(j) C^(k-j)) / w

    S^(k,l) = (A^(k,l)
               - sum_{j=1}^{l} C(l,j) w^(0,j) S^(k,l-j)
               - sum_{i=1}^{k} C(k,i) w^(i,0) S^(k-i,l)
               - sum_{i=1}^{k} C(k,i) sum_{j=1}^{l} C(l,j) w^(i,j) S^(k-i,l-j)) / w

Each term only needs lower-order derivatives, so orders are filled in
increasing k + l. Any order is supported; normals only need order 1.

The functions take geometry objects by duck typing (knot_vector(s),
degree(s), homogeneous_control_points, tol) so this module does not
depend on nurbs.py.
"""

import math
import numpy as np

from ..exceptions import DegenerateEvaluationError, DegenerateNormalError
from .bspline import eval_basis_ders_1d

# Relative threshold on |S_u x S_v| compared to |S_u| * |S_v|
NORMAL_TOL = 1e-12


def binomial(n: int, k: int) -> int:
    """Binomial coefficient C(n, k)."""
    return math.comb(n, k)


def homogeneous_curve_derivatives(curve, xi: float, n_ders: int) -> np.ndarray:
    """
    Derivatives of the homogeneous (non-rational) curve.

    Returns:
        Array of shape (n_ders+1, d+1); row k holds (A^(k), w^(k))
    """
    kv = curve.knot_vector
    p = kv.degree
    span = kv.find_span(xi)
    Nders = eval_basis_ders_1d(kv, xi, n_ders, span)

    Pw = curve.homogeneous_control_points[span - p:span + 1]
    return Nders @ Pw


def rational_curve_derivatives(curve, xi: float, n_ders: int = 1) -> np.ndarray:
    """
    Cartesian derivatives of a rational curve up to order n_ders.

    Returns:
        Array of shape (n_ders+1, d); row 0 is the point itself

    Raises:
        DegenerateEvaluationError: if the weight sum vanishes at xi
    """
    Cw = homogeneous_curve_derivatives(curve, xi, n_ders)
    A_ders = Cw[:, :-1]
    w_ders = Cw[:, -1]

    if abs(w_ders[0]) <= curve.tol:
        raise DegenerateEvaluationError(
            f"Rational weight sum {w_ders[0]:.3e} vanishes at u={xi}", parameter=xi
        )

    C_ders = np.zeros_like(A_ders)
    for k in range(n_ders + 1):
        v = A_ders[k].copy()
        for j in range(1, k + 1):
            v -= binomial(k, j) * w_ders[j] * C_ders[k - j]
        C_ders[k] = v / w_ders[0]

    return C_ders


def curve_tangent(curve, xi: float) -> np.ndarray:
    """
    Unit tangent of a rational curve.

    Returns the zero vector where the first derivative vanishes.
    """
    dC = rational_curve_derivatives(curve, xi, 1)[1]
    norm = np.linalg.norm(dC)
    if norm == 0.0:
        return np.zeros_like(dC)
    return dC / norm


def homogeneous_surface_derivatives(surface, u: float, v: float,
                                    n_ders: int) -> np.ndarray:
    """
    Derivatives of the homogeneous (non-rational) tensor-product surface.

    Contracts the basis derivative tables of both directions against the
    (pu+1) x (pv+1) block of homogeneous control points over the span.

    Returns:
        Array SKLw of shape (n_ders+1, n_ders+1, d+1) where SKLw[k, l]
        = (A^(k,l), w^(k,l)) for k + l <= n_ders; other entries are zero
    """
    kv_u, kv_v = surface.knot_vectors
    pu, pv = surface.degrees

    span_u = kv_u.find_span(u)
    span_v = kv_v.find_span(v)
    Nu = eval_basis_ders_1d(kv_u, u, n_ders, span_u)
    Nv = eval_basis_ders_1d(kv_v, v, n_ders, span_v)

    Pw = surface.homogeneous_control_points[span_u - pu:span_u + 1,
                                            span_v - pv:span_v + 1]

    SKLw = np.zeros((n_ders + 1, n_ders + 1, Pw.shape[-1]))
    for k in range(n_ders + 1):
        for l in range(n_ders - k + 1):
            SKLw[k, l] = np.einsum('i,j,ijc->c', Nu[k], Nv[l], Pw)

    return SKLw


def rational_surface_derivatives(surface, u: float, v: float,
                                 n_ders: int = 1) -> np.ndarray:
    """
    Cartesian partial derivatives of a rational surface.

    Parameters:
        surface: NURBS surface
        u, v: Parameter values
        n_ders: Highest total derivative order k + l

    Returns:
        Array SKL of shape (n_ders+1, n_ders+1, d) where SKL[k, l] is
        d^{k+l} S / du^k dv^l; SKL[0, 0] is the surface point

    Raises:
        DegenerateEvaluationError: if the weight sum vanishes at (u, v)
    """
    SKLw = homogeneous_surface_derivatives(surface, u, v, n_ders)
    A_ders = SKLw[..., :-1]
    w_ders = SKLw[..., -1]

    if abs(w_ders[0, 0]) <= surface.tol:
        raise DegenerateEvaluationError(
            f"Rational weight sum {w_ders[0, 0]:.3e} vanishes at (u, v)=({u}, {v})",
            parameter=(u, v)
        )

    SKL = np.zeros_like(A_ders)
    for order in range(n_ders + 1):
        for k in range(order + 1):
            l = order - k
            vec = A_ders[k, l].copy()

            for j in range(1, l + 1):
                vec -= binomial(l, j) * w_ders[0, j] * SKL[k, l - j]

            for i in range(1, k + 1):
                vec -= binomial(k, i) * w_ders[i, 0] * SKL[k - i, l]
                mixed = np.zeros_like(vec)
                for j in range(1, l + 1):
                    mixed += binomial(l, j) * w_ders[i, j] * SKL[k - i, l - j]
                vec -= binomial(k, i) * mixed

            SKL[k, l] = vec / w_ders[0, 0]

    return SKL


def surface_normal(surface, u: float, v: float) -> np.ndarray:
    """
    Outward unit normal N = -normalize(dS/du x dS/dv).

    Raises:
        DegenerateEvaluationError: if the weight sum vanishes at (u, v)
        DegenerateNormalError: if the tangents vanish or are parallel
    """
    SKL = rational_surface_derivatives(surface, u, v, 1)
    S_u = SKL[1, 0]
    S_v = SKL[0, 1]

    n = np.cross(S_u, S_v)
    norm = np.linalg.norm(n)
    scale = np.linalg.norm(S_u) * np.linalg.norm(S_v)

    if scale == 0.0 or norm <= NORMAL_TOL * scale:
        raise DegenerateNormalError(
            f"Surface tangents are parallel or vanish at (u, v)=({u}, {v})",
            parameter=(u, v)
        )

    return -n / norm
