import numpy as np
import pytest
from numpy.testing import assert_array_equal

from pyBSVAR import (run_sampler, GibbsSampler, PosteriorStore, SamplerStatus, CancellationToken,
                     RestrictionSet, normalise_posterior, specify_prior, specify_starting_values,
                     InvalidArgument, DimensionMismatch, InvalidStartingValue, NumericalFailure)
from conftest import simulate_svar, A0, B0_RECURSIVE


VB = RestrictionSet.lower_triangular(2)


def test_posterior_shapes(small_data, prior, starting_values):
    Y, X = small_data
    out = run_sampler(25, Y, X, prior, VB, starting_values, seed=1)
    post = out['posterior']
    assert post['A'].shape == (2, 3, 25)
    assert post['B'].shape == (2, 2, 25)
    assert post['hyper'].shape == (5, 25)
    assert out['draws'] == 25
    assert out['cancelled'] is False


def test_single_draw_equals_last_draw(small_data, prior, starting_values):
    Y, X = small_data
    out = run_sampler(1, Y, X, prior, VB, starting_values, seed=2)
    for key in ('A', 'B', 'hyper'):
        assert_array_equal(out['posterior'][key][..., 0], out['last_draw'][key])


def test_starting_values_are_not_mutated(small_data, prior, starting_values):
    Y, X = small_data
    B_start = starting_values['B'].copy()
    run_sampler(5, Y, X, prior, VB, starting_values, seed=2)
    assert_array_equal(starting_values['B'], B_start)


@pytest.mark.parametrize("S", [0, -1, 1.5, True, "10"])
def test_invalid_number_of_draws(small_data, prior, starting_values, S):
    Y, X = small_data
    with pytest.raises(InvalidArgument):
        run_sampler(S, Y, X, prior, VB, starting_values)


def test_sample_s_must_be_bool(small_data, prior, starting_values):
    Y, X = small_data
    with pytest.raises(InvalidArgument):
        run_sampler(5, Y, X, prior, VB, starting_values, sample_s=1)


def test_observation_count_mismatch(small_data, prior, starting_values):
    Y, X = small_data
    with pytest.raises(DimensionMismatch):
        run_sampler(5, Y, X[:, :-1], prior, VB, starting_values)


def test_prior_dimension_mismatch(small_data, starting_values):
    Y, X = small_data
    with pytest.raises(DimensionMismatch):
        run_sampler(5, Y, X, specify_prior(N=2, p=2, d=1), VB, starting_values)


def test_wrong_number_of_restriction_matrices(small_data, prior, starting_values):
    Y, X = small_data
    with pytest.raises(InvalidArgument):
        run_sampler(5, Y, X, prior, RestrictionSet.lower_triangular(3), starting_values)


def test_starting_value_violating_restrictions(small_data, prior, starting_values):
    Y, X = small_data
    starting_values['B'] = np.array([[1.0, 0.3], [0.0, 1.0]])
    with pytest.raises(InvalidStartingValue):
        run_sampler(5, Y, X, prior, VB, starting_values)


def test_singular_starting_value(small_data, prior, starting_values):
    Y, X = small_data
    starting_values['B'] = np.array([[1.0, 0.0], [0.0, 0.0]])
    with pytest.raises(InvalidStartingValue):
        run_sampler(5, Y, X, prior, VB, starting_values)


def test_same_seed_gives_identical_chains(small_data, prior, starting_values):
    Y, X = small_data
    out1 = run_sampler(40, Y, X, prior, VB, starting_values, seed=123)
    out2 = run_sampler(40, Y, X, prior, VB, starting_values, seed=123)
    for key in ('A', 'B', 'hyper'):
        assert_array_equal(out1['posterior'][key], out2['posterior'][key])


def test_continued_run_matches_single_run(small_data, prior, starting_values):
    Y, X = small_data
    whole = run_sampler(60, Y, X, prior, VB, starting_values, seed=np.random.default_rng(7))

    rng = np.random.default_rng(7)
    first = run_sampler(30, Y, X, prior, VB, starting_values, seed=rng)
    second = run_sampler(30, Y, X, prior, VB, first['last_draw'], seed=rng)

    for key in ('A', 'B', 'hyper'):
        joined = np.concatenate([first['posterior'][key], second['posterior'][key]], axis=-1)
        assert_array_equal(joined, whole['posterior'][key])


def test_draws_satisfy_restrictions_and_positivity(small_data, prior, starting_values):
    Y, X = small_data
    out = run_sampler(200, Y, X, prior, VB, starting_values, seed=5)
    B = out['posterior']['B']
    assert np.all(B[0, 1, :] == 0.0)
    dets = np.abs(np.linalg.det(np.moveaxis(B, 2, 0)))
    assert np.all(dets > 1e-12)
    assert np.all(out['posterior']['hyper'] > 0)
    assert np.all(np.isfinite(out['posterior']['A']))


def test_general_linear_restriction_is_preserved(small_data, prior):
    # Row 0 of B restricted to B[0, 0] == B[0, 1]
    Y, X = small_data
    R = RestrictionSet([np.array([[1.0], [1.0]]), np.eye(2)])
    start = specify_starting_values(2, 3)
    start['B'] = np.array([[1.0, 1.0], [0.0, 1.0]])
    out = run_sampler(100, Y, X, prior, R, start, seed=9)
    B = out['posterior']['B']
    np.testing.assert_allclose(B[0, 0, :], B[0, 1, :], rtol=1e-10)


def test_cancellation_from_progress_callback(small_data, prior, starting_values):
    Y, X = small_data
    token = CancellationToken()
    seen = []

    def progress(s, S):
        seen.append(s)
        if s >= 250:
            token.cancel()

    gs = GibbsSampler(Y, X, prior, VB, starting_values, seed=3)
    out = gs.run(1000, cancel_token=token, progress=progress, check_every=200)

    assert out['cancelled'] is True
    assert out['draws'] == 400
    assert out['posterior']['B'].shape == (2, 2, 400)
    assert gs.status is SamplerStatus.ABORTED
    assert 1000 not in seen


def test_cancelled_before_start(small_data, prior, starting_values):
    Y, X = small_data
    token = CancellationToken()
    token.cancel()
    out = run_sampler(50, Y, X, prior, VB, starting_values, seed=3, cancel_token=token)
    assert out['draws'] == 0
    assert out['cancelled'] is True
    assert out['posterior']['hyper'].shape == (5, 0)
    assert_array_equal(out['last_draw']['B'], starting_values['B'])


def test_status_transitions(small_data, prior, starting_values):
    Y, X = small_data
    gs = GibbsSampler(Y, X, prior, VB, starting_values, seed=4)
    assert gs.status is SamplerStatus.INITIALIZED
    calls = []
    gs.run(10, progress=lambda s, S: calls.append(gs.status))
    assert gs.status is SamplerStatus.COMPLETED
    assert all(status is SamplerStatus.RUNNING for status in calls)


def test_numerical_failure_aborts_run(small_data, prior, starting_values):
    Y, X = small_data
    gs = GibbsSampler(Y, X, prior, VB, starting_values, seed=4, det_tol=1e12)
    with pytest.raises(NumericalFailure) as err:
        gs.run(10)
    assert err.value.parameter == 'B'
    assert err.value.sweep == 0
    assert "sweep 0" in str(err.value)
    assert gs.status is SamplerStatus.ABORTED

    # the state is partly updated, so the chain cannot be resumed
    assert gs.failed
    with pytest.raises(InvalidArgument, match="cannot be resumed"):
        gs.run(5)


def test_verbose_prints_banner(small_data, prior, starting_values, capsys):
    Y, X = small_data
    run_sampler(10, Y, X, prior, VB, starting_values, seed=4, verbose=True)
    printed = capsys.readouterr().out
    assert "Gibbs sampler for the SVAR model" in printed
    assert "Iteration 10/10" in printed


def test_posterior_store():
    store = PosteriorStore(2, N=2, K=3)
    A = np.ones((2, 3))
    store.append(A, np.eye(2), np.ones(5))
    last = store.last()
    last['A'][0, 0] = 99.0
    assert store.A[0, 0, 0] == 1.0
    assert store.to_dict()['B'].shape == (2, 2, 1)

    store.append(A, np.eye(2), np.ones(5))
    assert len(store) == 2
    with pytest.raises(InvalidArgument):
        store.append(A, np.eye(2), np.ones(5))


def test_empty_posterior_store():
    with pytest.raises(InvalidArgument):
        PosteriorStore(3, N=2, K=3).last()


def test_recovers_recursive_structure():
    # With T = 50 sampling noise in the data alone moves the estimates about
    # 0.2 away from the true values, so a longer sample is simulated.
    Y, X = simulate_svar(B0_RECURSIVE, A0, T=500, seed=2024)
    prior = specify_prior(N=2, p=1, d=1, stationary=True)
    out = run_sampler(2000, Y, X, prior, VB, specify_starting_values(2, 3), seed=77)

    post = normalise_posterior(out['posterior'])
    B_mean = post['B'][:, :, 200:].mean(axis=2)
    A_mean = post['A'][:, :, 200:].mean(axis=2)

    assert np.max(np.abs(B_mean - B0_RECURSIVE)) < 0.1
    assert np.max(np.abs(A_mean - A0)) < 0.2
