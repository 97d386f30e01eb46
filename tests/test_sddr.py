import warnings

import numpy as np
import pytest

from pyBSVAR import (run_sampler, log_sddr_homoskedasticity, RestrictionSet, specify_prior,
                     specify_starting_values, UnreliableEstimateWarning, DimensionMismatch,
                     InvalidArgument)
from conftest import simulate_svar, A0, B0_RECURSIVE, B0_DIAGONAL


VB = RestrictionSet.lower_triangular(2)


def _estimate(B0, T, S, seed):
    Y, X = simulate_svar(B0, A0, T=T, seed=seed)
    prior = specify_prior(N=2, p=1, d=1, stationary=True)
    out = run_sampler(S, Y, X, prior, VB, specify_starting_values(2, 3), seed=seed)
    return out['posterior'], prior, Y, X


@pytest.fixture(scope="module")
def diagonal_fit():
    return _estimate(B0_DIAGONAL, T=1000, S=1000, seed=31)


@pytest.fixture(scope="module")
def recursive_fit():
    return _estimate(B0_RECURSIVE, T=1000, S=1000, seed=31)


def test_diagonal_truth_supports_restriction(diagonal_fit):
    posterior, prior, Y, X = diagonal_fit
    assert log_sddr_homoskedasticity(posterior, prior, Y, X, VB=VB) > 0


def test_recursive_truth_rejects_restriction(diagonal_fit, recursive_fit):
    posterior, prior, Y, X = recursive_fit
    value = log_sddr_homoskedasticity(posterior, prior, Y, X, VB=VB)
    assert np.isfinite(value)
    assert value < -10
    assert value < log_sddr_homoskedasticity(*diagonal_fit, VB=VB)


def test_restrictions_inferred_from_draws(recursive_fit):
    posterior, prior, Y, X = recursive_fit
    assert log_sddr_homoskedasticity(posterior, prior, Y, X) == \
        log_sddr_homoskedasticity(posterior, prior, Y, X, VB=VB)


def test_few_draws_warn(small_data, prior, starting_values):
    Y, X = small_data
    out = run_sampler(100, Y, X, prior, VB, starting_values, seed=1)
    with pytest.warns(UnreliableEstimateWarning):
        value = log_sddr_homoskedasticity(out['posterior'], prior, Y, X, VB=VB)
    assert np.isfinite(value)


def test_no_free_off_diagonal_elements(small_data, prior, starting_values):
    Y, X = small_data
    R = RestrictionSet.diagonal(2)
    out = run_sampler(20, Y, X, prior, R, starting_values, seed=1)
    assert log_sddr_homoskedasticity(out['posterior'], prior, Y, X, VB=R) == 0.0


def test_posterior_dimension_mismatch(small_data, prior):
    Y, X = small_data
    posterior = {'A': np.zeros((3, 3, 10)), 'B': np.zeros((3, 3, 10)), 'hyper': np.ones((5, 10))}
    with pytest.raises(DimensionMismatch):
        log_sddr_homoskedasticity(posterior, prior, Y, X, VB=VB)


def test_draw_count_mismatch(small_data, prior):
    Y, X = small_data
    posterior = {'A': np.zeros((2, 3, 10)), 'B': np.zeros((2, 2, 10)), 'hyper': np.ones((5, 9))}
    with pytest.raises(DimensionMismatch):
        log_sddr_homoskedasticity(posterior, prior, Y, X, VB=VB)


def test_sample_s_must_be_bool(recursive_fit):
    posterior, prior, Y, X = recursive_fit
    with pytest.raises(InvalidArgument):
        log_sddr_homoskedasticity(posterior, prior, Y, X, VB=VB, sample_s="yes")


def test_wrong_number_of_restriction_matrices(recursive_fit):
    posterior, prior, Y, X = recursive_fit
    with pytest.raises(InvalidArgument):
        log_sddr_homoskedasticity(posterior, prior, Y, X, VB=RestrictionSet.lower_triangular(3))


def test_approximate_prior_density_warns(small_data, starting_values):
    # With B_nu > N the prior kernel carries |det B|^(B_nu - N), which
    # involves the off-diagonal elements of an unrestricted B.
    Y, X = small_data
    R = RestrictionSet.unrestricted(2)
    prior = specify_prior(N=2, p=1, d=1, stationary=True, B_nu=4.0)
    out = run_sampler(100, Y, X, prior, R, starting_values, seed=6)
    with pytest.warns(UnreliableEstimateWarning, match="B_nu"):
        log_sddr_homoskedasticity(out['posterior'], prior, Y, X, VB=R)


def test_triangular_prior_density_is_exact(recursive_fit):
    posterior, prior, Y, X = recursive_fit
    with warnings.catch_warnings():
        warnings.simplefilter("error", UnreliableEstimateWarning)
        value = log_sddr_homoskedasticity(posterior, dict(prior, B_nu=4.0), Y, X, VB=VB)
    assert np.isfinite(value)
