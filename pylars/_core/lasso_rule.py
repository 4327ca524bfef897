"""
LASSO sign-consistency bound on the LARS step.
"""

import numpy as np
from typing import Optional, Tuple


class LassoBoundaryRule:
    """
    Minimum-ratio test over the active set.

    Moving along ``beta_direction`` by ``gamma`` flips the sign of active
    coefficient i at ``gamma_i = -beta_i / beta_direction_i``. The
    smallest positive such ``gamma_i`` bounds the step; the variable that
    reaches zero there has to leave the active set.
    """

    def bound(
        self,
        beta_active: np.ndarray,
        beta_direction: np.ndarray,
    ) -> Tuple[float, Optional[int]]:
        """
        Smallest positive zero-crossing step.

        Parameters
        ----------
        beta_active : ndarray, shape (k,)
            Current coefficients of the active predictors, in factor order
        beta_direction : ndarray, shape (k,)
            Step direction for the same predictors

        Returns
        -------
        (gamma, position)
            ``(inf, None)`` when no coefficient crosses zero. Ties go to
            the earliest active position.
        """
        if beta_active.size == 0:
            return np.inf, None

        with np.errstate(divide='ignore', invalid='ignore'):
            ratios = -beta_active / beta_direction

        valid = np.isfinite(ratios) & (ratios > 0)
        if not np.any(valid):
            return np.inf, None

        candidates = np.where(valid, ratios, np.inf)
        position = int(np.argmin(candidates))
        return float(candidates[position]), position
