"""
LARS / LASSO / Elastic-Net path following.

Each step moves the fit along the equiangular direction of the active
predictors until an inactive predictor catches up in absolute correlation
(it enters on the next step) or, in LASSO mode, an active coefficient
reaches zero (it leaves on the next step). The step that carries the
running maximum correlation below the requested regularization value is
interpolated back to exactly that value.
"""

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

import numpy as np

from .._utils import check_array, check_vector, check_consistent_length
from ..config import LarsConfig
from ..exceptions import IllConditioned, InvalidConfiguration, PathConvergenceWarning
from .active_set import ActiveSet
from .cholesky import CholeskyFactor
from .gram import GramCache
from .interpolate import interpolate_last
from .lasso_rule import LassoBoundaryRule

logger = logging.getLogger(__name__)

# Entry candidates whose direction correlation matches the active set to
# within this fraction never catch up (duplicated or negated columns).
DIRECTION_RTOL = 1e-12


class SolverState(Enum):
    """Run state of a PathSolver."""
    IDLE = "idle"                # No run started
    ITERATING = "iterating"      # Next step adds a predictor
    KICKING_OUT = "kicking_out"  # Next step first removes a predictor
    TERMINATED = "terminated"


@dataclass(frozen=True)
class Activate:
    """Pending entry of predictor ``index``."""
    index: int


@dataclass(frozen=True)
class Deactivate:
    """Pending removal of the predictor at active ``position``."""
    position: int


PendingAction = Union[Activate, Deactivate]


@dataclass(frozen=True)
class PathEvent:
    """Active-set change recorded during a run."""
    step: int
    index: int
    kind: str  # 'add' or 'drop'


class PathSolver:
    """
    Path-following solver for LARS, LASSO and the Elastic Net.

    Parameters
    ----------
    X : array_like, shape (n, p)
        Design matrix (copied)
    y : array_like, shape (n,)
        Response vector (copied)
    config : LarsConfig, optional
        Run configuration; defaults to plain LARS with Cholesky updates
    backend : str or BackendBase, optional
        Computational backend (default: 'cpu')

    Examples
    --------
    >>> solver = PathSolver(X, y, LarsConfig(desired_lambda=0.5))
    >>> solver.run()
    >>> solver.beta_path[-1]     # coefficients at lambda = 0.5
    >>> solver.lambda_path       # non-increasing regularization path
    """

    def __init__(
        self,
        X: np.ndarray,
        y: np.ndarray,
        config: Optional[LarsConfig] = None,
        backend=None,
    ):
        from .._backends import get_backend

        X = check_array(X, name='X')
        y = check_vector(y, name='y')
        check_consistent_length(X, y)

        self.config = config if config is not None else LarsConfig()
        self.backend = get_backend(backend if backend is not None else 'cpu')
        self.n, self.p = X.shape

        self._cache = GramCache(
            X, y,
            ridge=self.config.ridge_strength,
            compute_gram=not self.config.use_cholesky,
            backend=self.backend,
        )
        self._desired_lambda = self.config.desired_lambda
        self._lasso_rule = LassoBoundaryRule()

        self._active = ActiveSet(self.p)
        self._factor = CholeskyFactor(ridge=self.config.ridge_strength, backend=self.backend)
        self._beta_path: List[np.ndarray] = []
        self._lambda_path: List[float] = []
        self._events: List[PathEvent] = []
        self._state = SolverState.IDLE
        self._pending: Optional[PendingAction] = None
        self._n_iter = 0

        self._beta = np.zeros(self.p)
        self._y_hat = np.zeros(self.n)
        self._corr = self._cache.xty.copy()
        self._max_corr = 0.0
        self._signs = {}
        self._dropped: Optional[Tuple[int, float]] = None

    # ------------------------------------------------------------------
    # Dataset mutation
    # ------------------------------------------------------------------

    def update_columns(self, indices, new_columns) -> None:
        """
        Replace columns of X for a warm-started refit.

        Only the touched Gram rows/columns and X'y entries are
        recomputed. Paths of a finished run stay available until the next
        ``run``.

        Raises
        ------
        DimensionMismatch
            On invalid indices or column shape
        InvalidConfiguration
            If a run is in progress
        """
        self._check_not_running("update_columns")
        self._cache.update_columns(indices, new_columns)

    def set_response(self, y, recompute: bool = True) -> None:
        """
        Replace the response vector.

        With ``recompute=False`` X'y keeps describing the previous
        response until ``recompute_cross_products`` is called.
        """
        self._check_not_running("set_response")
        self._cache.set_response(y)
        if recompute:
            self._cache.compute_xty()

    def recompute_cross_products(self) -> None:
        """Recompute Gram and X'y from scratch."""
        self._check_not_running("recompute_cross_products")
        self._cache.compute_full()

    def set_desired_lambda(self, desired_lambda: Optional[float]) -> None:
        """Set (or clear, with None) the LASSO target for later runs."""
        if desired_lambda is not None and not desired_lambda >= 0:
            raise InvalidConfiguration(
                f"desired_lambda must be non-negative, got {desired_lambda}"
            )
        self._desired_lambda = None if desired_lambda is None else float(desired_lambda)

    def _check_not_running(self, operation: str) -> None:
        if self._state in (SolverState.ITERATING, SolverState.KICKING_OUT):
            raise InvalidConfiguration(f"Cannot call {operation} while a run is in progress")

    # ------------------------------------------------------------------
    # Path following
    # ------------------------------------------------------------------

    @property
    def lasso(self) -> bool:
        return self._desired_lambda is not None

    @property
    def desired_lambda(self) -> Optional[float]:
        """LASSO target used by the next run (None for plain LARS)."""
        return self._desired_lambda

    def run(self, desired_lambda: Optional[float] = None) -> "PathSolver":
        """
        Trace the path to termination.

        Parameters
        ----------
        desired_lambda : float, optional
            LASSO target; overrides (and replaces) the configured one

        Returns
        -------
        PathSolver
            self, for chaining

        Raises
        ------
        IllConditioned
            If the active predictors become collinear; paths computed so
            far remain available
        """
        if desired_lambda is not None:
            self.set_desired_lambda(desired_lambda)

        self.start()
        max_iter = self.config.resolve_max_iter(self.n, self.p)
        while self._state is not SolverState.TERMINATED:
            if self._n_iter >= max_iter:
                warnings.warn(
                    f"Path following stopped after max_iter={max_iter} steps "
                    f"with max correlation {self._max_corr:.3e}",
                    PathConvergenceWarning,
                )
                self._terminate()
                break
            self.step()
        return self

    def start(self) -> None:
        """Reset run state and record the all-zero starting point."""
        self._active.clear()
        self._factor.reset()
        self._beta_path = []
        self._lambda_path = []
        self._events = []
        self._n_iter = 0
        self._signs = {}
        self._dropped = None

        self._beta = np.zeros(self.p)
        self._y_hat = np.zeros(self.n)
        self._corr = self._cache.xty.copy()

        if self.p == 0:
            self._max_corr = 0.0
        else:
            change_ind = int(np.argmax(np.abs(self._corr)))
            self._max_corr = float(abs(self._corr[change_ind]))

        self._beta_path.append(self._beta.copy())
        self._lambda_path.append(self._max_corr)
        logger.debug("Start: max_corr=%.6g, lasso=%s, cholesky=%s, ridge=%s",
                     self._max_corr, self.lasso, self.config.use_cholesky,
                     self.config.ridge)

        if self._max_corr <= self.config.eps:
            self._terminate()
        elif self.lasso and self._max_corr <= self._desired_lambda:
            # Target lies above the path: the null model is the solution
            self._terminate()
        else:
            self._pending = Activate(change_ind)
            self._state = SolverState.ITERATING

    def step(self) -> Optional[PendingAction]:
        """
        Perform one path step.

        Returns
        -------
        Activate, Deactivate or None
            The action the next step will take, None once terminated
        """
        if self._state is SolverState.IDLE:
            self.start()
        if self._state is SolverState.TERMINATED:
            return None

        try:
            return self._step()
        except IllConditioned:
            self._terminate()
            raise

    def _step(self) -> Optional[PendingAction]:
        action = self._pending
        if isinstance(action, Deactivate):
            self._remove(action.position)
        else:
            self._add(action.index)

        active = self._active.indices
        if active.size == 0:
            self._terminate()
            return None
        signs = self._correlation_signs(active)
        beta_direction, normalization = self._equiangular_direction(active, signs)
        y_hat_direction = self._cache.prediction_direction(active, beta_direction)

        gamma = self._max_corr / normalization
        next_action, gamma = self._entry_bound(y_hat_direction, normalization, gamma)

        if self.lasso:
            lasso_gamma, position = self._lasso_rule.bound(self._beta[active], beta_direction)
            if lasso_gamma < gamma:
                gamma = lasso_gamma
                next_action = Deactivate(position)

        self._y_hat += gamma * y_hat_direction
        self._beta[active] += gamma * beta_direction
        if isinstance(next_action, Deactivate):
            # The leaving coefficient sits exactly on zero
            self._beta[active[next_action.position]] = 0.0
        self._beta_path.append(self._beta.copy())

        self._corr = self._cache.correlations(self._y_hat, self._beta)
        self._max_corr -= gamma * normalization
        self._lambda_path.append(self._max_corr)
        self._n_iter += 1

        logger.debug("Step %d: gamma=%.6g, max_corr=%.6g, n_active=%d, next=%s",
                     self._n_iter, gamma, self._max_corr, len(active), next_action)

        if self.lasso and self._max_corr <= self._desired_lambda:
            interp = interpolate_last(self._beta_path, self._lambda_path, self._desired_lambda)
            self._beta = self._beta_path[-1].copy()
            logger.debug("Interpolated last step at lambda=%.6g (weight %.6g)",
                         self._desired_lambda, interp)
            self._terminate()
        elif next_action is None or self._max_corr <= self.config.eps:
            self._terminate()
        else:
            self._pending = next_action
            self._state = (SolverState.KICKING_OUT if isinstance(next_action, Deactivate)
                           else SolverState.ITERATING)
        return self._pending

    def _terminate(self) -> None:
        self._pending = None
        self._state = SolverState.TERMINATED

    def _add(self, index: int) -> None:
        active = self._active.indices
        if self.config.use_cholesky:
            cross = self._cache.cross_products(index, active)
            self._factor.insert(self._cache.column_sq_norm(index), cross)
        self._active.activate(index)
        self._dropped = None
        self._events.append(PathEvent(self._n_iter + 1, index, 'add'))
        logger.debug("Step %d: added predictor %d", self._n_iter + 1, index)

    def _remove(self, position: int) -> None:
        if self.config.use_cholesky:
            self._factor.delete(position)
        index = self._active.deactivate(position)
        self._beta[index] = 0.0
        self._dropped = (index, self._signs.pop(index, 1.0))
        self._events.append(PathEvent(self._n_iter + 1, index, 'drop'))
        logger.debug("Step %d: dropped predictor %d", self._n_iter + 1, index)

    def _correlation_signs(self, active: np.ndarray) -> np.ndarray:
        """Signs of the active correlations; an exact zero keeps its previous sign."""
        signs = np.sign(self._corr[active])
        for i, index in enumerate(active):
            if signs[i] == 0:
                signs[i] = self._signs.get(int(index), 1.0)
            self._signs[int(index)] = signs[i]
        return signs

    def _equiangular_direction(self, active: np.ndarray, signs: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Unit equiangular direction in active-coefficient space.

        Returns ``(beta_direction, normalization)`` with
        ``beta_direction = normalization * inv(G_A) s`` and
        ``normalization = 1 / sqrt(s' inv(G_A) s)``, where G_A is the
        ridge-shifted active Gram submatrix.
        """
        if self.config.use_cholesky:
            # (R % S)'(R % S) d = 1  <=>  d = s % solve(R, solve(R', s))
            unnormalized = self._factor.solve_normal(signs)
            quad = float(signs @ unnormalized)
            sign_embedded = True
        else:
            gram_active = self._cache.active_gram(active)
            S = np.outer(signs, signs)
            try:
                unnormalized = self.backend.solve(gram_active * S, np.ones(len(active)))
            except np.linalg.LinAlgError as e:
                raise IllConditioned(
                    f"Active Gram submatrix of {len(active)} predictor(s) is singular"
                ) from e
            quad = float(np.sum(unnormalized))
            sign_embedded = False

        if not (np.isfinite(quad) and quad > 0):
            raise IllConditioned(
                f"Equiangular direction undefined (s' inv(G) s = {quad:.3e})"
            )

        normalization = 1.0 / np.sqrt(quad)
        beta_direction = normalization * unnormalized
        if not sign_embedded:
            beta_direction = beta_direction * signs
        return beta_direction, normalization

    def _entry_bound(
        self,
        y_hat_direction: np.ndarray,
        normalization: float,
        gamma: float,
    ) -> Tuple[Optional[Activate], float]:
        """
        Minimum-ratio test over the inactive predictors.

        For inactive j with correlation c_j and direction correlation a_j,
        j catches up with the active set after a step of
        ``(C - c_j) / (A - a_j)`` or ``(C + c_j) / (A + a_j)``. Non-positive
        or undefined ratios are ignored; ties go to the lowest index.

        Without a ridge term n active predictors already span the
        observations, so a saturated active set admits no entry and the
        step runs to the exact fit.
        """
        inactive = self._active.inactive()
        if inactive.size == 0:
            return None, gamma
        if self.config.ridge_strength == 0 and len(self._active) >= self.n:
            return None, gamma

        dir_corr = self._cache.direction_correlations(inactive, y_hat_direction)
        corr = self._corr[inactive]
        with np.errstate(divide='ignore', invalid='ignore'):
            denom1 = normalization - dir_corr
            denom2 = normalization + dir_corr
            val1 = (self._max_corr - corr) / denom1
            val2 = (self._max_corr + corr) / denom2
        tol = DIRECTION_RTOL * normalization
        val1[np.abs(denom1) <= tol] = np.nan
        val2[np.abs(denom2) <= tol] = np.nan

        if self._dropped is not None:
            # A predictor that just left is still tied at its old sign;
            # it may only come back with the opposite sign
            index, sign = self._dropped
            k = int(np.searchsorted(inactive, index))
            if sign > 0:
                val1[k] = np.nan
            else:
                val2[k] = np.nan

        # Interleave so argmin follows scan order: (j0, val1), (j0, val2), (j1, val1), ...
        vals = np.column_stack([val1, val2]).ravel()
        valid = np.isfinite(vals) & (vals > 0) & (vals < gamma)
        if not np.any(valid):
            return None, gamma

        pos = int(np.argmin(np.where(valid, vals, np.inf)))
        return Activate(int(inactive[pos // 2])), float(vals[pos])

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SolverState:
        return self._state

    @property
    def pending(self) -> Optional[PendingAction]:
        """Action the next step takes first."""
        return self._pending

    @property
    def beta_path(self) -> np.ndarray:
        """Coefficient path, shape (n_points, p)."""
        if not self._beta_path:
            return np.zeros((0, self.p))
        return np.vstack(self._beta_path)

    @property
    def lambda_path(self) -> np.ndarray:
        """Regularization path (running max absolute correlation), shape (n_points,)."""
        return np.array(self._lambda_path, dtype=np.float64)

    @property
    def coef_(self) -> np.ndarray:
        """Coefficients at the current end of the path."""
        if not self._beta_path:
            return np.zeros(self.p)
        return self._beta_path[-1].copy()

    @property
    def active_indices(self) -> np.ndarray:
        """Active predictors in factor order."""
        return self._active.indices

    @property
    def n_active(self) -> int:
        return len(self._active)

    @property
    def n_iter(self) -> int:
        return self._n_iter

    @property
    def events(self) -> List[PathEvent]:
        """Active-set changes of the current run, in order."""
        return list(self._events)

    @property
    def correlations(self) -> np.ndarray:
        """Correlation vector after the last completed step."""
        return self._corr.copy()

    @property
    def max_corr(self) -> float:
        return self._max_corr

    @property
    def R(self) -> np.ndarray:
        """Cholesky factor of the active Gram submatrix (empty without Cholesky)."""
        return self._factor.R.copy()

    @property
    def gram(self) -> Optional[np.ndarray]:
        """Ridge-shifted Gram matrix (None in Cholesky mode)."""
        return None if self._cache.gram is None else self._cache.gram.copy()

    @property
    def xty(self) -> np.ndarray:
        return self._cache.xty.copy()

    @property
    def X(self) -> np.ndarray:
        return self._cache.X.copy()

    @property
    def y(self) -> np.ndarray:
        return self._cache.y.copy()

    def active_gram(self) -> np.ndarray:
        """Ridge-shifted Gram submatrix of the current active set."""
        return self._cache.active_gram(self._active.indices)

    def __repr__(self):
        mode = "elastic-net" if self.config.elastic_net else ("lasso" if self.lasso else "lar")
        return (f"PathSolver(n={self.n}, p={self.p}, mode={mode}, "
                f"state={self._state.value}, steps={self._n_iter})")
