"""
Test the LARS / LASSO / Elastic-Net path solver.

Covers the path invariants (monotone lambda, sparsity, Cholesky
consistency), OLS / ridge recovery at the end of the path, exact
interpolation at a requested lambda, and LASSO drop events.
"""

import pytest
import numpy as np

from pylars import (
    PathSolver,
    LarsConfig,
    SolverState,
    DimensionMismatch,
    IllConditioned,
    InvalidConfiguration,
    PathConvergenceWarning,
)
from pylars._core.path_solver import Activate, Deactivate


def design_from_gram(G, c):
    """Square design with X'X = G and X'y = c."""
    L = np.linalg.cholesky(G)
    X = L.T
    y = np.linalg.solve(L, c)
    return X, y


@pytest.fixture
def random_data():
    rng = np.random.default_rng(42)
    n, p = 100, 6
    X = rng.standard_normal((n, p))
    beta_true = np.array([3.0, -2.0, 0.0, 1.5, 0.0, -0.5])
    y = X @ beta_true + 0.5 * rng.standard_normal(n)
    return X, y


@pytest.fixture
def kickout_data():
    """
    Three predictors where the LASSO path drops and re-adds predictor 2.

    x0 and x1 are orthogonal, x2 has correlation 0.7 with both, and the
    OLS solution is (1, 0.8, -0.3). Predictor 2 enters first with a
    positive sign; the LASSO path reaches zero for it at lambda = 0.015,
    drops it, and re-adds it with a negative sign at lambda = 0.0025.
    """
    G = np.array([[1.0, 0.0, 0.7],
                  [0.0, 1.0, 0.7],
                  [0.7, 0.7, 1.0]])
    beta_ols = np.array([1.0, 0.8, -0.3])
    return design_from_gram(G, G @ beta_ols)


def assert_lasso_kkt(X, y, beta, lam, ridge=0.0, atol=1e-8):
    """Optimality conditions of 1/2||y - Xb||^2 + ridge/2 ||b||^2 + lam ||b||_1."""
    corr = X.T @ (y - X @ beta) - ridge * beta
    nonzero = beta != 0
    np.testing.assert_allclose(corr[nonzero], lam * np.sign(beta[nonzero]), atol=atol)
    assert np.all(np.abs(corr[~nonzero]) <= lam + atol)


class TestSinglePredictor:

    def test_single_column(self):
        X = np.array([[1.0], [2.0], [3.0]])
        y = np.array([2.0, 4.0, 6.0])
        solver = PathSolver(X, y).run()

        assert solver.events[0].index == 0
        assert solver.beta_path.shape == (2, 1)
        np.testing.assert_array_equal(solver.beta_path[0], [0.0])
        np.testing.assert_allclose(solver.beta_path[-1], [2.0])
        assert solver.lambda_path[0] == pytest.approx(28.0)
        assert solver.lambda_path[-1] == pytest.approx(0.0, abs=1e-12)
        assert solver.state is SolverState.TERMINATED

    @pytest.mark.parametrize("use_cholesky", [True, False])
    def test_single_column_both_branches(self, use_cholesky):
        X = np.array([[1.0], [2.0], [3.0]])
        y = np.array([2.0, 4.0, 6.0])
        solver = PathSolver(X, y, LarsConfig(use_cholesky=use_cholesky)).run()
        np.testing.assert_allclose(solver.coef_, [2.0])
        assert solver.n_iter == 1


class TestLarsPath:
    """Plain LARS (no sign constraint)."""

    @pytest.mark.parametrize("use_cholesky", [True, False])
    def test_recovers_ols(self, random_data, use_cholesky):
        X, y = random_data
        solver = PathSolver(X, y, LarsConfig(use_cholesky=use_cholesky)).run()

        beta_ols = np.linalg.lstsq(X, y, rcond=None)[0]
        assert solver.n_active == X.shape[1]
        assert solver.n_iter == X.shape[1]
        np.testing.assert_allclose(solver.coef_, beta_ols, rtol=1e-8, atol=1e-10)

    def test_path_invariants(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y).run()
        betas, lambdas = solver.beta_path, solver.lambda_path

        assert len(betas) == len(lambdas) == solver.n_iter + 1
        assert np.all(np.diff(lambdas) <= 1e-12)
        np.testing.assert_array_equal(betas[0], np.zeros(X.shape[1]))

    def test_sparsity(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y).run()

        seen = set()
        events = solver.events
        for step, beta in enumerate(solver.beta_path):
            seen |= {e.index for e in events if e.step == step and e.kind == 'add'}
            never_active = [j for j in range(X.shape[1]) if j not in seen]
            assert np.all(beta[never_active] == 0.0)

    def test_active_set_only_grows(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y).run()
        assert all(e.kind == 'add' for e in solver.events)
        assert sorted(e.index for e in solver.events) == list(range(X.shape[1]))

    def test_first_variable_has_largest_correlation(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y).run()
        assert solver.events[0].index == int(np.argmax(np.abs(X.T @ y)))
        assert solver.lambda_path[0] == pytest.approx(np.max(np.abs(X.T @ y)))

    def test_branches_agree(self, random_data):
        X, y = random_data
        chol = PathSolver(X, y, LarsConfig(use_cholesky=True)).run()
        gram = PathSolver(X, y, LarsConfig(use_cholesky=False)).run()
        np.testing.assert_allclose(chol.beta_path, gram.beta_path, rtol=1e-8, atol=1e-10)
        np.testing.assert_allclose(chol.lambda_path, gram.lambda_path, rtol=1e-8, atol=1e-10)

    def test_active_correlations_are_equal(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y)
        solver.start()
        for _ in range(3):
            solver.step()
            corr = X.T @ (y - X @ solver.coef_)
            active = solver.active_indices
            np.testing.assert_allclose(np.abs(corr[active]), solver.max_corr, rtol=1e-8)

    def test_zero_response(self, random_data):
        X, _ = random_data
        solver = PathSolver(X, np.zeros(X.shape[0])).run()
        assert solver.n_iter == 0
        assert solver.beta_path.shape == (1, X.shape[1])
        assert solver.state is SolverState.TERMINATED

    @pytest.mark.parametrize("use_cholesky", [True, False])
    @pytest.mark.parametrize("desired_lambda", [None, 0.0])
    def test_more_predictors_than_observations(self, use_cholesky, desired_lambda):
        """The path ends at the exact fit once n predictors are active."""
        rng = np.random.default_rng(7)
        X = rng.standard_normal((5, 8))
        y = rng.standard_normal(5)
        config = LarsConfig(use_cholesky=use_cholesky, desired_lambda=desired_lambda)
        solver = PathSolver(X, y, config).run()

        assert solver.state is SolverState.TERMINATED
        assert solver.n_active == 5
        np.testing.assert_allclose(X @ solver.coef_, y, atol=1e-8)
        assert abs(solver.lambda_path[-1]) < 1e-8

    @pytest.mark.parametrize("use_cholesky", [True, False])
    def test_duplicated_column_stays_out(self, use_cholesky):
        """A copy of an active column moves in lockstep and never enters."""
        rng = np.random.default_rng(21)
        X3 = rng.standard_normal((60, 3))
        X = np.column_stack([X3, X3[:, 0]])
        y = X3 @ np.array([1.0, 2.0, 3.0]) + 0.1 * rng.standard_normal(60)
        solver = PathSolver(X, y, LarsConfig(use_cholesky=use_cholesky)).run()

        beta_ols = np.linalg.lstsq(X3, y, rcond=None)[0]
        coef = solver.coef_
        assert solver.n_active == 3
        assert (coef[0] == 0.0) != (coef[3] == 0.0)
        np.testing.assert_allclose(coef[0] + coef[3], beta_ols[0], rtol=1e-8)
        np.testing.assert_allclose(coef[1:3], beta_ols[1:3], rtol=1e-8)


class TestCholeskyConsistency:
    """R'R equals the active Gram submatrix after every step."""

    @pytest.mark.parametrize("config", [
        LarsConfig(),
        LarsConfig(ridge=0.8),
        LarsConfig(desired_lambda=0.0),
        LarsConfig(desired_lambda=0.0, ridge=0.8),
    ])
    def test_factor_tracks_active_set(self, kickout_data, random_data, config):
        for X, y in (kickout_data, random_data):
            solver = PathSolver(X, y, config)
            solver.start()
            while solver.state is not SolverState.TERMINATED:
                solver.step()
                active = solver.active_indices
                Xa = X[:, active]
                expected = Xa.T @ Xa + config.ridge_strength * np.eye(len(active))
                R = solver.R
                assert R.shape == (len(active), len(active))
                np.testing.assert_allclose(np.tril(R, -1), 0.0, atol=1e-12)
                np.testing.assert_allclose(R.T @ R, expected, rtol=1e-9, atol=1e-9)
                np.testing.assert_allclose(solver.active_gram(), expected, rtol=1e-12, atol=1e-12)


class TestLassoKickOut:
    """Sign-constrained path with a drop event."""

    def test_drop_and_readd(self, kickout_data):
        X, y = kickout_data
        solver = PathSolver(X, y, LarsConfig(desired_lambda=0.0)).run()

        events = [(e.step, e.index, e.kind) for e in solver.events]
        assert events == [
            (1, 2, 'add'),
            (2, 0, 'add'),
            (3, 1, 'add'),
            (4, 2, 'drop'),
            (5, 2, 'add'),
        ]
        np.testing.assert_allclose(
            solver.lambda_path[:5], [0.96, 0.96 - 0.17 / 0.3, 0.16 / 3, 0.015, 0.0025],
            rtol=1e-9,
        )
        np.testing.assert_allclose(solver.coef_, [1.0, 0.8, -0.3], atol=1e-9)

    def test_dropped_coefficient_is_exactly_zero(self, kickout_data):
        X, y = kickout_data
        solver = PathSolver(X, y, LarsConfig(desired_lambda=0.0)).run()
        betas = solver.beta_path

        # Step 3 flagged the drop; entries 3 and 4 hold predictor 2 at zero
        assert betas[2][2] > 0
        assert betas[3][2] == 0.0
        assert betas[4][2] == 0.0
        # Re-entered with the opposite sign
        assert betas[5][2] < 0

    def test_pending_deactivation_handshake(self, kickout_data):
        X, y = kickout_data
        solver = PathSolver(X, y, LarsConfig(desired_lambda=0.0))
        solver.start()
        assert solver.pending == Activate(2)

        assert solver.step() == Activate(0)
        assert solver.step() == Activate(1)
        # Predictor 2 sits at position 0 of the active set
        assert solver.step() == Deactivate(0)
        assert solver.state is SolverState.KICKING_OUT
        assert 2 in solver.active_indices

        solver.step()
        assert 2 not in solver.active_indices
        assert solver.active_indices.tolist() == [0, 1]
        assert solver.state is SolverState.ITERATING

    @pytest.mark.parametrize("use_cholesky", [True, False])
    def test_interpolates_inside_drop_step(self, kickout_data, use_cholesky):
        X, y = kickout_data
        config = LarsConfig(desired_lambda=0.02, use_cholesky=use_cholesky)
        solver = PathSolver(X, y, config).run()

        assert solver.lambda_path[-1] == 0.02
        np.testing.assert_allclose(solver.coef_, [0.7, 0.5, 0.1], atol=1e-9)
        # Stopped before the pending drop was executed
        assert solver.n_iter == 3
        assert solver.pending is None
        assert_lasso_kkt(X, y, solver.coef_, 0.02)

    def test_interpolates_after_drop(self, kickout_data):
        X, y = kickout_data
        solver = PathSolver(X, y, LarsConfig(desired_lambda=0.01)).run()
        assert solver.lambda_path[-1] == 0.01
        np.testing.assert_allclose(solver.coef_, [0.78, 0.58, 0.0], atol=1e-9)
        assert solver.coef_[2] == 0.0
        assert solver.n_iter == 4

    def test_lars_never_drops(self, kickout_data):
        X, y = kickout_data
        solver = PathSolver(X, y).run()
        assert all(e.kind == 'add' for e in solver.events)
        assert solver.n_iter == 3
        np.testing.assert_allclose(solver.coef_, [1.0, 0.8, -0.3], atol=1e-9)


class TestLassoStop:
    """Stopping at, and interpolating to, the requested lambda."""

    @pytest.mark.parametrize("fraction", [0.8, 0.3, 0.05])
    def test_kkt_at_desired_lambda(self, random_data, fraction):
        X, y = random_data
        lam = fraction * np.max(np.abs(X.T @ y))
        solver = PathSolver(X, y, LarsConfig(desired_lambda=lam)).run()

        assert solver.lambda_path[-1] == lam
        assert np.all(np.diff(solver.lambda_path) <= 1e-12)
        assert_lasso_kkt(X, y, solver.coef_, lam, atol=1e-7)

    def test_run_argument_overrides_config(self, random_data):
        X, y = random_data
        lam = 0.5 * np.max(np.abs(X.T @ y))
        solver = PathSolver(X, y)
        solver.run(desired_lambda=lam)
        assert solver.lasso
        assert solver.lambda_path[-1] == lam

        # Target persists for later runs
        solver.run()
        assert solver.lambda_path[-1] == lam

    def test_target_above_path_start(self, random_data):
        X, y = random_data
        lam = 2 * np.max(np.abs(X.T @ y))
        solver = PathSolver(X, y, LarsConfig(desired_lambda=lam)).run()
        assert solver.n_iter == 0
        np.testing.assert_array_equal(solver.coef_, np.zeros(X.shape[1]))

    def test_negative_target_rejected(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y)
        with pytest.raises(InvalidConfiguration):
            solver.run(desired_lambda=-1.0)


class TestElasticNet:

    @pytest.mark.parametrize("use_cholesky", [True, False])
    def test_full_path_reaches_ridge_solution(self, random_data, use_cholesky):
        X, y = random_data
        ridge = 5.0
        config = LarsConfig(ridge=ridge, use_cholesky=use_cholesky)
        solver = PathSolver(X, y, config).run()

        p = X.shape[1]
        beta_ridge = np.linalg.solve(X.T @ X + ridge * np.eye(p), X.T @ y)
        np.testing.assert_allclose(solver.coef_, beta_ridge, rtol=1e-8, atol=1e-10)

    def test_ridge_applied_in_both_branches(self, random_data):
        X, y = random_data
        lam = 0.2 * np.max(np.abs(X.T @ y))
        chol = PathSolver(X, y, LarsConfig(desired_lambda=lam, ridge=3.0)).run()
        gram = PathSolver(X, y, LarsConfig(desired_lambda=lam, ridge=3.0,
                                           use_cholesky=False)).run()
        np.testing.assert_allclose(chol.beta_path, gram.beta_path, rtol=1e-8, atol=1e-10)
        assert_lasso_kkt(X, y, chol.coef_, lam, ridge=3.0, atol=1e-7)

    def test_ridge_shrinks(self, random_data):
        X, y = random_data
        plain = PathSolver(X, y).run()
        shrunk = PathSolver(X, y, LarsConfig(ridge=50.0)).run()
        assert np.linalg.norm(shrunk.coef_) < np.linalg.norm(plain.coef_)

    def test_more_predictors_than_observations(self):
        """With a ridge term every predictor can enter when p > n."""
        rng = np.random.default_rng(8)
        X = rng.standard_normal((5, 8))
        y = rng.standard_normal(5)
        solver = PathSolver(X, y, LarsConfig(ridge=1.0)).run()

        beta_ridge = np.linalg.solve(X.T @ X + np.eye(8), X.T @ y)
        assert solver.n_active == 8
        np.testing.assert_allclose(solver.coef_, beta_ridge, rtol=1e-7, atol=1e-10)


class TestCorrelationSigns:
    """Signs used for the equiangular direction."""

    @pytest.fixture
    def negative_entry(self):
        rng = np.random.default_rng(13)
        X = rng.standard_normal((50, 3))
        y = -4.0 * X[:, 1] + 0.1 * rng.standard_normal(50)
        return X, y

    @pytest.mark.parametrize("use_cholesky", [True, False])
    def test_zero_correlation_keeps_previous_sign(self, negative_entry, use_cholesky):
        X, y = negative_entry
        solver = PathSolver(X, y, LarsConfig(use_cholesky=use_cholesky))
        solver.start()
        solver.step()
        active = solver.active_indices
        assert active.tolist() == [1]

        solver._corr[1] = 0.0
        signs = solver._correlation_signs(active)
        np.testing.assert_array_equal(signs, [-1.0])

        beta_direction, normalization = solver._equiangular_direction(active, signs)
        assert beta_direction[0] < 0
        assert normalization > 0

    def test_zero_correlation_without_history_is_positive(self, negative_entry):
        X, y = negative_entry
        solver = PathSolver(X, y)
        solver.start()
        solver.step()

        solver._corr[[0, 1]] = 0.0
        signs = solver._correlation_signs(np.array([1, 0]))
        np.testing.assert_array_equal(signs, [-1.0, 1.0])


class TestWarmStart:

    def test_update_columns_then_rerun(self, random_data):
        X, y = random_data
        rng = np.random.default_rng(5)
        new_cols = rng.standard_normal((X.shape[0], 2))

        solver = PathSolver(X, y, LarsConfig(use_cholesky=False)).run()
        solver.update_columns([2, 4], new_cols)
        solver.run()

        X_new = X.copy()
        X_new[:, [2, 4]] = new_cols
        fresh = PathSolver(X_new, y, LarsConfig(use_cholesky=False)).run()
        np.testing.assert_allclose(solver.beta_path, fresh.beta_path, rtol=1e-8, atol=1e-10)
        np.testing.assert_allclose(solver.gram, X_new.T @ X_new, atol=1e-10)

    def test_update_keeps_finished_paths(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y).run()
        before = solver.beta_path
        solver.update_columns([0], np.ones(X.shape[0]))
        np.testing.assert_array_equal(solver.beta_path, before)

    def test_invalid_update_rejected(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y)
        with pytest.raises(DimensionMismatch):
            solver.update_columns([0], np.ones((X.shape[0] + 1, 1)))
        np.testing.assert_array_equal(solver.X, X)

    def test_no_update_during_run(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y)
        solver.start()
        solver.step()
        with pytest.raises(InvalidConfiguration, match="in progress"):
            solver.update_columns([0], np.ones(X.shape[0]))
        with pytest.raises(InvalidConfiguration):
            solver.set_response(y)

    def test_set_response(self, random_data):
        X, y = random_data
        y_new = X @ np.ones(X.shape[1]) + np.random.default_rng(9).standard_normal(X.shape[0])
        solver = PathSolver(X, y)
        solver.set_response(y_new)
        solver.run()
        np.testing.assert_allclose(solver.coef_, np.linalg.lstsq(X, y_new, rcond=None)[0],
                                   atol=1e-8)

    def test_set_response_without_recompute(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y)
        solver.set_response(y + 1.0, recompute=False)
        np.testing.assert_allclose(solver.xty, X.T @ y)
        solver.recompute_cross_products()
        np.testing.assert_allclose(solver.xty, X.T @ (y + 1.0))


class TestErrors:

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch):
            PathSolver(np.ones((5, 2)), np.ones(4))
        with pytest.raises(DimensionMismatch):
            PathSolver(np.ones(5), np.ones(5))

    def test_non_finite_input(self):
        X = np.ones((5, 2))
        X[0, 0] = np.inf
        with pytest.raises(ValueError, match="NaN or Inf"):
            PathSolver(X, np.ones(5))

    def test_inputs_are_copied(self, random_data):
        X, y = random_data
        X_in = X.copy()
        solver = PathSolver(X_in, y)
        X_in[:] = 0.0
        np.testing.assert_array_equal(solver.X, X)

    def test_ill_conditioned_surfaces(self):
        X = np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]])
        y = np.array([1.0, 0.5, 0.0])
        solver = PathSolver(X, y)
        solver.start()
        solver.step()
        # Collinear replacement is only visible to a fresh run
        solver._cache.X[:, 1] = X[:, 0]
        solver._pending = Activate(1)
        with pytest.raises(IllConditioned):
            solver.step()
        assert solver.state is SolverState.TERMINATED
        assert len(solver.beta_path) == len(solver.lambda_path) == 2

    def test_max_iter_warning(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y, LarsConfig(max_iter=2))
        with pytest.warns(PathConvergenceWarning):
            solver.run()
        assert solver.n_iter == 2
        assert solver.state is SolverState.TERMINATED

    def test_step_after_termination(self, random_data):
        X, y = random_data
        solver = PathSolver(X, y).run()
        n_iter = solver.n_iter
        assert solver.step() is None
        assert solver.n_iter == n_iter
