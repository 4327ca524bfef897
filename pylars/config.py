"""
Solver configuration.

One explicit value replaces the plain / LASSO / Elastic-Net
initialisation chain: setting ``desired_lambda`` enables LASSO,
setting ``ridge`` additionally enables the Elastic Net.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional

from .exceptions import InvalidConfiguration


# Residual-correlation tolerance below which the path is complete
EPS = 1e-16


@dataclass(frozen=True)
class LarsConfig:
    """
    Configuration of a LARS / LASSO / Elastic-Net path run.

    Attributes
    ----------
    use_cholesky : bool
        Maintain an incremental Cholesky factor of the active Gram
        submatrix (True) or solve against the explicitly formed active
        Gram submatrix on every step (False).
    desired_lambda : float, optional
        Target regularization value. Enables LASSO mode (sign-constrained
        path with drop events); the path stops at, and is interpolated
        exactly to, this value.
    ridge : float, optional
        Ridge coefficient lambda_2 of the Elastic Net.
    max_iter : int, optional
        Safety bound on the number of path steps. Defaults to
        ``8 * min(n, p) + p``.
    eps : float
        Residual-correlation tolerance for natural termination.
    """
    use_cholesky: bool = True
    desired_lambda: Optional[float] = None
    ridge: Optional[float] = None
    max_iter: Optional[int] = None
    eps: float = EPS

    def __post_init__(self):
        if self.desired_lambda is not None and not self.desired_lambda >= 0:
            raise InvalidConfiguration(
                f"desired_lambda must be non-negative, got {self.desired_lambda}"
            )
        if self.ridge is not None and not self.ridge >= 0:
            raise InvalidConfiguration(
                f"ridge must be non-negative, got {self.ridge}"
            )
        if self.max_iter is not None and self.max_iter <= 0:
            raise InvalidConfiguration(
                f"max_iter must be positive, got {self.max_iter}"
            )
        if not self.eps >= 0:
            raise InvalidConfiguration(f"eps must be non-negative, got {self.eps}")

    @property
    def lasso(self) -> bool:
        """Whether the LASSO sign constraint is active."""
        return self.desired_lambda is not None

    @property
    def elastic_net(self) -> bool:
        """Whether a ridge term is folded into the Gram matrix."""
        return self.ridge is not None

    @property
    def ridge_strength(self) -> float:
        """Ridge coefficient, 0.0 when the Elastic Net is off."""
        return float(self.ridge) if self.ridge is not None else 0.0

    def with_desired_lambda(self, desired_lambda: Optional[float]) -> "LarsConfig":
        """Copy of this configuration with a different target."""
        return dataclasses.replace(self, desired_lambda=desired_lambda)

    def resolve_max_iter(self, n: int, p: int) -> int:
        """Effective iteration bound for an n x p problem."""
        if self.max_iter is not None:
            return int(self.max_iter)
        return 8 * min(n, p) + p
