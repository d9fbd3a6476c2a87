import warnings

import numpy as np
import pytest

from EzSelect.exceptions import ConvergenceNotice, PreconditionError
from EzSelect.matching import compute_scale_factors, find_initial_matches
from EzSelect.optimization import greedy_optimize, max_percent_errors, selection_error
from EzSelect.simulation import simulate_spectra
from EzSelect.target import create_target_spectrum


@pytest.fixture
def sample_big(target, pool):
    return pool.at_periods(target.periods)


@pytest.fixture
def initial_state(target, sample_big):
    simulated = simulate_spectra(target, 20, num_simulations=5, seed_value=11)
    return find_initial_matches(simulated, sample_big, target, True, 4)


def run(state, target, sample_big, **kwargs):
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', ConvergenceNotice)
        return greedy_optimize(state, target, sample_big, **kwargs)


class TestSelectionError:

    def test_sse(self, target, initial_state):
        sample = initial_state.sample_small
        dev_mean = np.mean(sample, axis=0) - target.mu_ln
        dev_sig = np.std(sample, axis=0) - target.sigma_ln
        expected = np.sum(dev_mean ** 2) + 2 * np.sum(dev_sig ** 2)
        assert selection_error(sample, target, 'sse', (1, 2)) == pytest.approx(expected)

    def test_penalty_counts_outliers(self, target, initial_state):
        sample = initial_state.sample_small.copy()
        base = selection_error(sample, target, 'sse', (1, 2), penalty=0)
        assert selection_error(sample, target, 'sse', (1, 2), penalty=1) >= base
        sample[0, :] = target.mu_ln + 4 * target.sigma_ln
        outside = np.count_nonzero(target.sigma_ln > 0)
        with_penalty = selection_error(sample, target, 'sse', (1, 2), penalty=1)
        assert with_penalty - selection_error(sample, target, 'sse', (1, 2)) >= outside

    def test_ks_statistic(self, target):
        # the lowest record sits at the 10 percent quantile: D is 0.1 at every dispersed period
        z = np.array([-1.2815516, -0.8416212, -0.5244005, -0.2533471, 0.0,
                      0.2533471, 0.5244005, 0.8416212, 1.2815516, 2.0])
        sample = target.mu_ln + np.outer(z, target.sigma_ln)
        error = selection_error(sample, target, 'ks')
        dispersed = np.count_nonzero(target.sigma_ln > 0)
        assert error == pytest.approx(0.1 * dispersed, rel=1e-4)

    def test_ks_requires_variance(self, gmm, rupture, periods, initial_state):
        target = create_target_spectrum(gmm, rupture, periods, use_variance=False)
        with pytest.raises(PreconditionError):
            selection_error(initial_state.sample_small, target, 'ks')

    def test_unknown_metric(self, target, initial_state):
        with pytest.raises(PreconditionError):
            selection_error(initial_state.sample_small, target, 'mse')


def test_max_percent_errors_ignores_conditioning_period(target):
    sample = np.tile(target.mu_ln, (4, 1)) + np.array([[-1.0], [-1.0], [1.0], [1.0]]) * target.sigma_ln
    median_error, std_error = max_percent_errors(sample, target)
    assert median_error == pytest.approx(0.0, abs=1e-9)
    assert std_error == pytest.approx(0.0, abs=1e-9)


class TestGreedyOptimize:

    def test_error_does_not_increase(self, target, sample_big, initial_state):
        state = initial_state.copy()
        report = run(state, target, sample_big, num_greedy_loops=3, tolerance=1e-9)
        assert not report.skipped
        assert report.passes >= 1
        assert np.all(np.diff(report.error_history) <= 1e-12)
        assert report.error_history[-1] <= selection_error(initial_state.sample_small, target)
        assert len(set(state.rec_ids.tolist())) == state.num_records
        assert np.all((state.scale_factors >= 0.25) & (state.scale_factors <= 4))

    def test_state_consistent(self, target, sample_big, initial_state):
        state = initial_state.copy()
        run(state, target, sample_big, num_greedy_loops=2, tolerance=1e-9)
        expected = sample_big[state.rec_ids] + np.log(state.scale_factors)[:, None]
        np.testing.assert_allclose(state.sample_small, expected)

    def test_no_op_after_convergence(self, target, sample_big, initial_state):
        state = initial_state.copy()
        report = run(state, target, sample_big, num_greedy_loops=50, tolerance=1e-9)
        assert report.converged
        rec_ids = state.rec_ids.copy()
        again = run(state, target, sample_big, num_greedy_loops=2, tolerance=1e-9)
        assert again.substitutions == 0
        assert again.passes == 1
        np.testing.assert_array_equal(state.rec_ids, rec_ids)

    def test_skip_within_tolerance(self, target, sample_big, initial_state):
        state = initial_state.copy()
        report = greedy_optimize(state, target, sample_big, tolerance=1e6)
        assert report.skipped
        assert report.passes == 0
        np.testing.assert_array_equal(state.rec_ids, initial_state.rec_ids)

    def test_zero_loops(self, target, sample_big, initial_state):
        state = initial_state.copy()
        report = run(state, target, sample_big, num_greedy_loops=0, tolerance=1e-9)
        assert report.passes == 0
        np.testing.assert_array_equal(state.rec_ids, initial_state.rec_ids)

    def test_convergence_notice(self, target, sample_big, initial_state):
        with pytest.warns(ConvergenceNotice):
            greedy_optimize(initial_state.copy(), target, sample_big, num_greedy_loops=1, tolerance=0)

    def test_ks_metric(self, target, sample_big, initial_state):
        state = initial_state.copy()
        report = run(state, target, sample_big, metric='ks', num_greedy_loops=2, tolerance=1e-9)
        assert np.all(np.diff(report.error_history) <= 1e-12)
        assert len(set(state.rec_ids.tolist())) == state.num_records

    def test_penalty(self, target, sample_big, initial_state):
        state = initial_state.copy()
        report = run(state, target, sample_big, penalty=1, num_greedy_loops=2, tolerance=1e-9)
        assert np.all(np.diff(report.error_history) <= 1e-12)

    def test_parallel_matches_serial(self, target, sample_big, initial_state):
        serial = initial_state.copy()
        parallel = initial_state.copy()
        run(serial, target, sample_big, num_greedy_loops=2, tolerance=1e-9)
        run(parallel, target, sample_big, num_greedy_loops=2, tolerance=1e-9, parallel=True)
        np.testing.assert_array_equal(serial.rec_ids, parallel.rec_ids)
        np.testing.assert_array_equal(serial.scale_factors, parallel.scale_factors)

    def test_deadline(self, target, sample_big, initial_state):
        state = initial_state.copy()
        report = run(state, target, sample_big, num_greedy_loops=5, tolerance=1e-9, max_run_time=1e-12)
        assert report.timed_out
        assert report.passes == 1

    def test_unscaled(self, unconditional_target, pool):
        sample_big = pool.at_periods(unconditional_target.periods)
        simulated = simulate_spectra(unconditional_target, 10, num_simulations=3, seed_value=4)
        state = find_initial_matches(simulated, sample_big, unconditional_target, False)
        report = run(state, unconditional_target, sample_big, is_scaled=False, tolerance=1e-9)
        assert np.all(state.scale_factors == 1)
        assert np.all(np.diff(report.error_history) <= 1e-12)


def test_unconditional_scale_factors_follow_target_mean(unconditional_target, pool):
    sample_big = pool.at_periods(unconditional_target.periods)
    simulated = simulate_spectra(unconditional_target, 10, num_simulations=3, seed_value=4)
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        initial = find_initial_matches(simulated, sample_big, unconditional_target, True, 4)
        state = initial.copy()
        report = greedy_optimize(state, unconditional_target, sample_big, num_greedy_loops=3, tolerance=1e-9)
    assert report.substitutions > 0
    expected = compute_scale_factors(sample_big, unconditional_target.mu_ln)
    for slot in range(state.num_records):
        if state.rec_ids[slot] != initial.rec_ids[slot]:
            assert state.scale_factors[slot] == pytest.approx(expected[state.rec_ids[slot]])
