"""
Least angle regression with an R-style model interface.

This is the user-facing API: fit a LARS, LASSO or Elastic-Net path from
arrays or DataFrame columns and inspect it as pandas objects.
"""

import numpy as np
import pandas as pd
from typing import Optional, Union, List

from ._core.path_solver import PathSolver
from .config import LarsConfig
from .exceptions import DimensionMismatch


class Lars:
    """
    Fit a least angle regression path (like R's lars()).

    Plain LARS by default; give ``desired_lambda`` for the LASSO path
    stopped at that regularization value, and additionally ``ridge`` for
    the Elastic Net. No intercept is fitted and predictors are used as
    given (center and scale beforehand if required).

    Examples
    --------
    >>> import pandas as pd
    >>> from pylars import lars
    >>>
    >>> data = pd.read_csv('diabetes.csv')
    >>> model = lars(y='progression', X=['age', 'bmi', 'bp'], data=data,
    ...              desired_lambda=10.0)
    >>>
    >>> model.summary()    # Path table
    >>> model.coef         # Named coefficients at lambda = 10
    >>> model.coef_path    # One row per path knot
    >>> model.predict(new_data)
    """

    def __init__(
        self,
        y: Union[str, np.ndarray],
        X: Union[List[str], np.ndarray],
        data: Optional[pd.DataFrame] = None,
        desired_lambda: Optional[float] = None,
        ridge: Optional[float] = None,
        use_cholesky: bool = True,
        max_iter: Optional[int] = None,
        feature_names: Optional[List[str]] = None,
        backend: str = 'cpu',
    ):
        """
        Fit the regularization path.

        Parameters
        ----------
        y : str or array
            Response variable
            - If string: column name in data
            - If array: numeric values
        X : list of str or array
            Predictor variables
            - If list of strings: column names in data
            - If array: numeric matrix (n × p)
        data : DataFrame, optional
            Dataset containing y and X variables
        desired_lambda : float, optional
            Stop the LASSO path at this regularization value
        ridge : float, optional
            Elastic-Net ridge coefficient
        use_cholesky : bool
            Incremental Cholesky updates (True) or direct Gram solves
        max_iter : int, optional
            Safety bound on the number of path steps
        feature_names : list of str, optional
            Names for array predictors (default x0, x1, ...)
        backend : str
            Computational backend: 'cpu', 'gpu', 'auto'
        """
        if isinstance(y, str):
            if data is None:
                raise ValueError("Must provide data when y is a string")
            self.y_values = data[y].values
            self.y_name = y
        else:
            self.y_values = np.asarray(y)
            self.y_name = 'y'

        if isinstance(X, list) and all(isinstance(x, str) for x in X):
            if data is None:
                raise ValueError("Must provide data when X is list of strings")
            self.X_values = data[X].values
            self.X_names = list(X)
        elif isinstance(X, pd.DataFrame):
            self.X_values = X.values
            self.X_names = [str(c) for c in X.columns]
        else:
            self.X_values = np.asarray(X)
            if self.X_values.ndim != 2:
                raise DimensionMismatch("X must be 2-dimensional")
            self.X_names = [f'x{i}' for i in range(self.X_values.shape[1])]

        if feature_names is not None:
            if len(feature_names) != self.X_values.shape[1]:
                raise DimensionMismatch(
                    f"Got {len(feature_names)} feature names for "
                    f"{self.X_values.shape[1]} predictors"
                )
            self.X_names = list(feature_names)

        self.config = LarsConfig(
            use_cholesky=use_cholesky,
            desired_lambda=desired_lambda,
            ridge=ridge,
            max_iter=max_iter,
        )
        self.solver = PathSolver(self.X_values, self.y_values, self.config, backend=backend)
        self.backend = self.solver.backend
        self.n_obs, self.n_features = self.solver.n, self.solver.p

        self.refit()

    def refit(self, desired_lambda: Optional[float] = None) -> "Lars":
        """
        Recompute the path (after a data update or for a new target).

        Parameters
        ----------
        desired_lambda : float, optional
            New LASSO target (kept for later refits)
        """
        self.solver.run(desired_lambda)
        self._collect()
        return self

    def _collect(self):
        """Copy path results out of the solver."""
        self.coefficients = self.solver.coef_
        self.beta_path = self.solver.beta_path
        self.lambda_path = self.solver.lambda_path
        self.events = self.solver.events
        self.n_steps = self.solver.n_iter
        self.active = [self.X_names[i] for i in self.solver.active_indices]

        fitted = self.solver.X @ self.coefficients
        self.fitted_values = fitted
        self.residuals = self.solver.y - fitted
        rss = float(np.sum(self.residuals ** 2))
        tss = float(np.sum((self.solver.y - np.mean(self.solver.y)) ** 2))
        self.rss = rss
        self.r_squared = 1 - (rss / tss) if tss > 0 else 0.0

    def update_columns(self, columns, new_values, refit: bool = True) -> "Lars":
        """
        Replace predictor columns (warm-started refit).

        Parameters
        ----------
        columns : list of int or str
            Column positions or feature names
        new_values : array or DataFrame, shape (n, len(columns))
            Replacement values
        refit : bool
            Recompute the path right away
        """
        indices = [self.X_names.index(c) if isinstance(c, str) else int(c) for c in columns]
        if isinstance(new_values, pd.DataFrame):
            new_values = new_values.values
        self.solver.update_columns(indices, new_values)
        self.X_values = self.solver.X
        if refit:
            self.refit()
        return self

    def set_response(self, y, refit: bool = True) -> "Lars":
        """Replace the response vector."""
        if isinstance(y, pd.Series):
            y = y.values
        self.solver.set_response(y)
        self.y_values = self.solver.y
        if refit:
            self.refit()
        return self

    @property
    def coef(self) -> pd.Series:
        """Named coefficients at the end of the path."""
        return pd.Series(self.coefficients, index=self.X_names, name=self.y_name)

    @property
    def coef_path(self) -> pd.DataFrame:
        """Coefficient path, one row per knot, indexed by lambda."""
        df = pd.DataFrame(self.beta_path, columns=self.X_names)
        df.index = pd.Index(self.lambda_path, name='lambda')
        return df

    def predict(self, newdata: Union[pd.DataFrame, np.ndarray]) -> np.ndarray:
        """
        Predict response for new data.

        Parameters
        ----------
        newdata : DataFrame or array
            New predictor values
            - If DataFrame: must have columns matching self.X_names
            - If array: must have same number of columns as X

        Returns
        -------
        array
            Predicted values
        """
        if isinstance(newdata, pd.DataFrame):
            X_new = newdata[self.X_names].values
        else:
            X_new = np.asarray(newdata, dtype=np.float64)

        if X_new.ndim != 2 or X_new.shape[1] != self.n_features:
            raise DimensionMismatch(
                f"newdata must have {self.n_features} columns, got shape {X_new.shape}"
            )
        return X_new @ self.coefficients

    def summary(self):
        """Print the regularization path (like print(lars_fit) in R)."""
        mode = "Elastic Net" if self.config.elastic_net else (
            "LASSO" if self.solver.lasso else "LAR")

        print()
        print("=" * 80)
        print(f"LEAST ANGLE REGRESSION PATH ({mode})")
        print("=" * 80)
        print()
        print(f"Dependent variable: {self.y_name}")
        print(f"Number of observations: {self.n_obs}")
        print(f"Number of predictors: {self.n_features}")
        if self.solver.lasso:
            print(f"Target lambda: {self.solver.desired_lambda:.6g}")
        if self.config.elastic_net:
            print(f"Ridge coefficient: {self.config.ridge:.6g}")
        print()

        print("Path:")
        print("-" * 80)
        print(f"{'Step':>6} {'Lambda':>14} {'Action':<30} {'Active':>8} {'L1 norm':>14}")
        print("-" * 80)

        by_step = {}
        for event in self.events:
            sign = '+' if event.kind == 'add' else '-'
            by_step.setdefault(event.step, []).append(f"{sign}{self.X_names[event.index]}")

        n_active = 0
        for step, (beta, lam) in enumerate(zip(self.beta_path, self.lambda_path)):
            actions = by_step.get(step, [])
            n_active += sum(1 if a.startswith('+') else -1 for a in actions)
            print(f"{step:>6} {lam:>14.6g} {' '.join(actions):<30} {n_active:>8} "
                  f"{np.sum(np.abs(beta)):>14.6g}")
        print("-" * 80)
        print()

        print("Final coefficients:")
        for name, value in zip(self.X_names, self.coefficients):
            if value != 0:
                print(f"  {name:<20} {value:>14.6f}")
        print()
        print(f"Residual sum of squares: {self.rss:.6g}")
        print(f"Multiple R-squared:      {self.r_squared:.4f}")
        print()
        print(f"Backend: {self.backend.name}")
        print("=" * 80)
        print()

    def __repr__(self):
        return (f"Lars(n={self.n_obs}, p={self.n_features}, "
                f"steps={self.n_steps}, active={len(self.active)})")


def lars(y, X, data=None, **kwargs):
    """
    Fit a least angle regression path (convenience function).

    Parameters
    ----------
    y : str or array
        Response variable
    X : list of str or array
        Predictor variables
    data : DataFrame, optional
        Dataset
    **kwargs
        Additional arguments passed to Lars

    Returns
    -------
    Lars
        Fitted path object

    Examples
    --------
    >>> model = lars(y='mpg', X=['wt', 'hp', 'disp'], data=mtcars,
    ...              desired_lambda=5.0)
    >>> model.coef
    >>> model.coef_path
    """
    return Lars(y=y, X=X, data=data, **kwargs)
