"""
Incremental Cholesky factorization of the active Gram submatrix.

Maintains upper triangular R with R'R = X_A'X_A + ridge*I under rank-one
insertion (append a variable) and deletion (remove a variable), each in
O(k^2) for k active variables instead of an O(k^3) refactorization.
"""

import numpy as np
from typing import Optional, Tuple

from ..exceptions import IllConditioned

# Radicands at or below this fraction of the new diagonal entry are
# treated as exact collinearity with the active columns.
RADICAND_RTOL = 1e-12


def givens_rotation(x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    2 x 2 Givens rotation zeroing the second entry of ``x``.

    Parameters
    ----------
    x : ndarray, shape (2,)

    Returns
    -------
    G : ndarray, shape (2, 2)
        Orthogonal rotation with ``G @ x == rotated``
    rotated : ndarray, shape (2,)
        ``[hypot(x0, x1), 0]``, or ``x`` unchanged when ``x1 == 0``
    """
    a, b = float(x[0]), float(x[1])
    if b == 0:
        return np.eye(2), np.array([a, b])

    r = np.hypot(a, b)
    c = a / r
    s = b / r
    G = np.array([[c, s],
                  [-s, c]])
    return G, np.array([r, 0.0])


class CholeskyFactor:
    """
    Upper triangular factor of the active (ridge-shifted) Gram submatrix.

    Parameters
    ----------
    ridge : float
        Ridge coefficient folded into every diagonal entry
    backend : BackendBase, optional
        Computational backend for the triangular solves
    """

    def __init__(self, ridge: float = 0.0, backend=None):
        if backend is None:
            from .._backends import get_backend
            backend = get_backend('cpu')
        self.ridge = float(ridge)
        self.backend = backend
        self._R = np.zeros((0, 0))

    @property
    def R(self) -> np.ndarray:
        """Current factor (read-only view)."""
        view = self._R.view()
        view.flags.writeable = False
        return view

    @property
    def size(self) -> int:
        return self._R.shape[0]

    def reset(self) -> None:
        self._R = np.zeros((0, 0))

    def insert(self, sq_norm: float, cross: Optional[np.ndarray] = None) -> None:
        """
        Append a variable to the factor.

        Parameters
        ----------
        sq_norm : float
            Squared norm ``x'x`` of the new column
        cross : ndarray, shape (k,)
            Inner products of the new column with the k active columns,
            in factor order. Ignored when the factor is empty.

        Raises
        ------
        IllConditioned
            If the new column is (numerically) in the span of the active
            columns; the factor is left unchanged
        """
        diag_k = float(sq_norm) + self.ridge
        n = self.size

        if n == 0:
            if not diag_k > 0:
                raise IllConditioned(
                    f"Cannot factor a column with squared norm {diag_k:.3e}"
                )
            self._R = np.array([[np.sqrt(diag_k)]])
            return

        cross = np.asarray(cross, dtype=np.float64)
        if cross.shape != (n,):
            raise ValueError(
                f"Expected {n} cross products, got shape {cross.shape}"
            )

        # Solve R' r = cross (forward substitution)
        R_k = self.backend.solve_triangular(self._R, cross, trans=True)

        # Last diagonal entry by exclusion
        radicand = diag_k - float(R_k @ R_k)
        if not radicand > RADICAND_RTOL * diag_k:
            raise IllConditioned(
                f"Cholesky insertion radicand {radicand:.3e} is not positive: "
                f"new predictor is collinear with the {n} active predictor(s)"
            )

        R_new = np.zeros((n + 1, n + 1))
        R_new[:n, :n] = self._R
        R_new[:n, n] = R_k
        R_new[n, n] = np.sqrt(radicand)
        self._R = R_new

    def delete(self, position: int) -> None:
        """
        Remove the variable at ``position`` from the factor.

        Dropping an interior column leaves one sub-diagonal entry per
        later column; each is zeroed by a Givens rotation of two adjacent
        rows, after which the last row is all zero and is discarded.
        """
        n = self.size
        position = int(position)
        if not 0 <= position < n:
            raise IndexError(f"Factor position {position} out of range [0, {n})")

        if position == n - 1:
            self._R = self._R[:n - 1, :n - 1].copy()
            return

        R = np.delete(self._R, position, axis=1)  # n x (n - 1)
        m = n - 1
        for k in range(position, m):
            G, rotated = givens_rotation(R[k:k + 2, k])
            R[k:k + 2, k] = rotated
            if k < m - 1:
                R[k:k + 2, k + 1:] = G @ R[k:k + 2, k + 1:]

        self._R = R[:m, :].copy()

    def solve_normal(self, rhs: np.ndarray) -> np.ndarray:
        """Solve ``R'R d = rhs`` with two triangular solves."""
        z = self.backend.solve_triangular(self._R, rhs, trans=True)
        return self.backend.solve_triangular(self._R, z)

    def gram(self) -> np.ndarray:
        """Reconstruct ``R'R``."""
        return self._R.T @ self._R
