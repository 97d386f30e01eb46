import numpy as np
import pytest

from pyBSVAR import build_data_matrices, specify_prior, specify_starting_values


A0 = np.array([[0.5, 0.1, 0.2],
               [0.0, 0.4, -0.1]])
B0_RECURSIVE = np.array([[1.0, 0.0],
                         [-0.5, 1.0]])
B0_DIAGONAL = np.eye(2)


def simulate_svar(B0, A0, T, seed, burn=100):
    """Simulate a VAR(1) with constant: y_t = A0 [y_{t-1}; 1] + B0^{-1} u_t."""
    rng = np.random.default_rng(seed)
    N = B0.shape[0]
    B0_inv = np.linalg.inv(B0)
    y = np.zeros((T + burn + 1, N))
    for t in range(1, T + burn + 1):
        x = np.concatenate([y[t - 1], [1.0]])
        y[t] = A0 @ x + B0_inv @ rng.standard_normal(N)
    return build_data_matrices(y[burn:], p=1)


@pytest.fixture
def small_data():
    return simulate_svar(B0_RECURSIVE, A0, T=50, seed=11)


@pytest.fixture
def prior():
    return specify_prior(N=2, p=1, d=1, stationary=True)


@pytest.fixture
def starting_values():
    return specify_starting_values(N=2, K=3)
