"""
Yoshikawa manipulability measure.

    w = sqrt(det(J . J^T))

w collapses to zero at any configuration where the Jacobian loses rank.  The
determinant of the 6x6 Gram matrix is computed with a partial-pivot LU
elimination so near-singular matrices short-circuit to exactly zero instead
of producing noise.
"""

import math

import numpy as np

PIVOT_TOLERANCE = 1e-12


def gram_matrix(J: np.ndarray) -> np.ndarray:
    """Return J . J^T for an (m, n) Jacobian."""
    J = np.asarray(J, dtype=np.float64)
    if J.ndim != 2:
        raise ValueError(f"Jacobian must be 2-D, got shape {J.shape}")
    return J @ J.T


def lu_determinant(A: np.ndarray, tol: float = PIVOT_TOLERANCE) -> float:
    """Determinant of a square matrix via partial-pivot LU decomposition.

    At every elimination step the row with the largest-magnitude entry in the
    active column becomes the pivot row.  If that magnitude is below ``tol``
    the matrix is treated as singular and 0.0 is returned.
    """
    M = np.array(A, dtype=np.float64)
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise ValueError(f"Determinant needs a square matrix, got shape {M.shape}")

    n = M.shape[0]
    det = 1.0
    for k in range(n):
        piv = k + int(np.argmax(np.abs(M[k:, k])))
        if abs(M[piv, k]) < tol:
            return 0.0

        if piv != k:
            M[[k, piv], k:] = M[[piv, k], k:]
            det = -det

        pivot = M[k, k]
        det *= pivot

        if k + 1 < n:
            factors = M[k + 1:, k] / pivot
            M[k + 1:, k + 1:] -= np.outer(factors, M[k, k + 1:])
            M[k + 1:, k] = 0.0

    return float(det)


def manipulability(J: np.ndarray) -> float:
    """Yoshikawa manipulability of a Jacobian (>= 0)."""
    det = lu_determinant(gram_matrix(J))
    if det < 0.0:
        det = 0.0  # round-off near singularity
    return math.sqrt(det)
