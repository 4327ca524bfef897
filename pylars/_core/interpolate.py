"""
Exact interpolation of the path at a requested regularization value.
"""

import numpy as np
from typing import List

from ..exceptions import InvalidConfiguration


def interpolate_last(
    beta_path: List[np.ndarray],
    lambda_path: List[float],
    desired_lambda: float,
) -> float:
    """
    Overwrite the last path point with the point at ``desired_lambda``.

    The path is linear between its last two knots, so with
    ``interp = (lambda_prev - desired) / (lambda_prev - lambda_last)``
    the coefficients at ``desired`` are
    ``(1 - interp) * beta_prev + interp * beta_last``.

    Parameters
    ----------
    beta_path : list of ndarray
        Coefficient path, modified in place
    lambda_path : list of float
        Regularization path, modified in place
    desired_lambda : float
        Target value, between the last two entries of ``lambda_path``

    Returns
    -------
    float
        The interpolation weight ``interp``

    Raises
    ------
    InvalidConfiguration
        With fewer than two path points, coinciding last lambdas, or a
        target outside the last segment
    """
    if len(beta_path) < 2 or len(lambda_path) < 2:
        raise InvalidConfiguration(
            "Interpolation needs at least two path points, "
            f"got {min(len(beta_path), len(lambda_path))}"
        )

    lambda_prev = float(lambda_path[-2])
    lambda_last = float(lambda_path[-1])
    desired_lambda = float(desired_lambda)

    if lambda_prev == lambda_last:
        raise InvalidConfiguration(
            f"Cannot interpolate on a flat segment (lambda = {lambda_last})"
        )
    if not lambda_last <= desired_lambda <= lambda_prev:
        raise InvalidConfiguration(
            f"desired_lambda {desired_lambda} is not within the last path "
            f"segment [{lambda_last}, {lambda_prev}]"
        )

    interp = (lambda_prev - desired_lambda) / (lambda_prev - lambda_last)
    beta_path[-1] = (1 - interp) * beta_path[-2] + interp * beta_path[-1]
    lambda_path[-1] = desired_lambda
    return interp
