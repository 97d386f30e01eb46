"""
Full conditional samplers for the homoskedastic BSVAR

This module implements the three blocks of the Gibbs sampler:
- hierarchical shrinkage hyperparameters (5-vector)
- reduced-form slope matrix A, row by row (Chan, Koop & Yu, 2021)
- structural matrix B, row by row under zero restrictions (Waggoner & Zha, 2003)

Every function updates its block in place and draws all random variates from
the numpy Generator it is given.

The hyperparameter vector is ordered as
    hyper[0]  overall shrinkage of B            (gamma_B)
    hyper[1]  overall shrinkage of A            (gamma_A)
    hyper[2]  scale of the IG2 prior of gamma_B (s_B)
    hyper[3]  scale of the IG2 prior of gamma_A (s_A)
    hyper[4]  scale of the gamma priors of s_B and s_A (level 3, s)
"""

import numpy as np
from typing import Dict
from scipy.linalg import cholesky, cho_solve, solve_triangular, null_space, LinAlgError

from .errors import NumericalFailure
from .restrictions import RestrictionSet


# Determinant magnitude at or below which a draw of B is treated as singular
B_DET_TOL = 1e-12


def _draw_ig2(scale: float, shape: float, rng: np.random.Generator) -> float:
    """Draw from the inverted-gamma 2 distribution IG2(scale, shape)."""
    return scale / rng.chisquare(shape)


def _check_positive(value: float, name: str) -> float:
    if not np.isfinite(value) or value <= 0:
        raise NumericalFailure(f"draw of {name} is {value}; the conditional is degenerate", parameter='hyper')
    return value


def _chol(matrix: np.ndarray, parameter: str, what: str) -> np.ndarray:
    """Lower Cholesky factor of a symmetrised precision matrix."""
    matrix = 0.5 * (matrix + matrix.T)
    try:
        return cholesky(matrix, lower=True)
    except (LinAlgError, ValueError) as e:
        raise NumericalFailure(f"Cholesky factorisation of {what} failed ({e})", parameter=parameter) from e


def sample_hyperparameters(hyper: np.ndarray,
                           B: np.ndarray,
                           A: np.ndarray,
                           restrictions: RestrictionSet,
                           prior: Dict,
                           rng: np.random.Generator) -> np.ndarray:
    """
    Draw the shrinkage hyperparameters from their full conditionals.

    The 3-level hierarchy is
        s       ~ IG2(hyper_S, hyper_V)
        s_B|s   ~ G(hyper_a, s),         s_A|s   ~ G(hyper_a, s)
        g_B|s_B ~ IG2(s_B, hyper_nu),    g_A|s_A ~ IG2(s_A, hyper_nu)
    with the rows of B and A normal given g_B and g_A.

    Parameters
    ----------
    hyper : array
        Current 5-vector, overwritten with the new draw.
    B : array
        Current structural matrix (N x N).
    A : array
        Current slope matrix (N x K).
    restrictions : RestrictionSet
        Zero restrictions on B; gives the number of free elements of B.
    prior : dict
        Prior specification.
    rng : Generator
        Random number generator.

    Returns
    -------
    array
        The updated hyper vector (same object).
    """
    N, K = A.shape
    hyper_nu = prior['hyper_nu']
    hyper_a = prior['hyper_a']

    # Level 3: common scale of the gamma priors
    scale_s = prior['hyper_S'] + 2.0 * (hyper[2] + hyper[3])
    hyper[4] = _check_positive(_draw_ig2(scale_s, prior['hyper_V'] + 4.0 * hyper_a, rng), 's')

    # Level 2: scales of the IG2 priors for the overall shrinkage
    shape_2 = hyper_a + 0.5 * hyper_nu
    hyper[2] = _check_positive(rng.gamma(shape_2, 1.0 / (1.0 / hyper[4] + 1.0 / (2.0 * hyper[0]))), 's_B')
    hyper[3] = _check_positive(rng.gamma(shape_2, 1.0 / (1.0 / hyper[4] + 1.0 / (2.0 * hyper[1]))), 's_A')

    # Level 1: overall shrinkage of B and A
    B_ss = np.einsum('ij,jk,ik->', B, prior['B_V_inv'], B)
    hyper[0] = _check_positive(_draw_ig2(hyper[2] + B_ss, hyper_nu + restrictions.total_free, rng), 'gamma_B')

    A_dev = A - prior['A']
    A_ss = np.einsum('ij,jk,ik->', A_dev, prior['A_V_inv'], A_dev)
    hyper[1] = _check_positive(_draw_ig2(hyper[3] + A_ss, hyper_nu + N * K, rng), 'gamma_A')

    return hyper


def sample_A_homosk(A: np.ndarray,
                    B: np.ndarray,
                    hyper: np.ndarray,
                    Y: np.ndarray,
                    X: np.ndarray,
                    prior: Dict,
                    rng: np.random.Generator) -> np.ndarray:
    """
    Draw the rows of A one at a time from their normal full conditionals.

    Writing U = B(Y - A0 X) - B[:, n] A[n] X, where A0 is A with row n set
    to zero, the n-th row has posterior precision
        (B[:, n]' B[:, n]) X X' + A_V_inv / gamma_A
    and location
        A_V_inv prior_A[n]' / gamma_A + X (B (Y - A0 X))' B[:, n].

    Each row uses its own child stream spawned from ``rng``.

    Parameters
    ----------
    A : array
        Current slope matrix (N x K), overwritten row by row.
    B : array
        Current structural matrix (N x N).
    hyper : array
        Current hyperparameters; hyper[1] scales the prior precision.
    Y : array
        Dependent variables (N x T).
    X : array
        Regressors (K x T).
    prior : dict
        Prior specification with keys 'A' and 'A_V_inv'.
    rng : Generator
        Random number generator.

    Returns
    -------
    array
        The updated A (same object).
    """
    N, K = A.shape
    A_V_inv = prior['A_V_inv'] / hyper[1]
    prior_location = prior['A'] @ A_V_inv
    XXt = X @ X.T
    row_rngs = rng.spawn(N)

    for n in range(N):
        A0 = A.copy()
        A0[n] = 0.0
        Z = B @ (Y - A0 @ X)
        b = B[:, n]

        precision = (b @ b) * XXt + A_V_inv
        location = prior_location[n] + X @ (Z.T @ b)

        L = _chol(precision, 'A', f"the posterior precision of row {n} of A")
        mean = cho_solve((L, True), location)
        draw = mean + solve_triangular(L, row_rngs[n].standard_normal(K), lower=True, trans='T')

        if not np.all(np.isfinite(draw)):
            raise NumericalFailure(f"draw of row {n} of A is not finite", parameter='A')
        A[n] = draw

    return A


def _orthogonal_direction(B: np.ndarray, n: int) -> np.ndarray:
    """Unit vector orthogonal to all rows of B except row n."""
    N = B.shape[0]
    if N == 1:
        return np.ones(1)
    w = null_space(np.delete(B, n, axis=0))
    if w.shape[1] != 1:
        raise NumericalFailure(f"rows of B other than {n} are linearly dependent", parameter='B')
    return w[:, 0]


def sample_B_homosk(B: np.ndarray,
                    A: np.ndarray,
                    hyper: np.ndarray,
                    Y: np.ndarray,
                    X: np.ndarray,
                    prior: Dict,
                    restrictions: RestrictionSet,
                    rng: np.random.Generator,
                    det_tol: float = B_DET_TOL) -> np.ndarray:
    """
    Draw the rows of B from the generalised-normal full conditional.

    Implements the Gibbs sampler of Waggoner & Zha (2003). The kernel of the
    full conditional of the free parameters b_n of row n is
        |det B|^(T + B_nu - N) exp(-0.5 b_n' S_n^{-1} b_n),
        S_n^{-1} = V_n' (B_V_inv / gamma_B + E E') V_n,   E = Y - A X.
    In the coordinates b_n = L^{-T} W alpha, where L L' = S_n^{-1} and the
    first column of the orthonormal W is proportional to L^{-1} V_n' w
    (w orthogonal to the other rows of B), the determinant depends on
    alpha_1 only, so alpha_1^2 ~ chi2(T + B_nu - N + 1) with a random sign
    and the remaining alphas are standard normal.

    Parameters
    ----------
    B : array
        Current structural matrix (N x N), overwritten row by row.
    A : array
        Current slope matrix (N x K).
    hyper : array
        Current hyperparameters; hyper[0] scales the prior precision.
    Y : array
        Dependent variables (N x T).
    X : array
        Regressors (K x T).
    prior : dict
        Prior specification with keys 'B_V_inv' and 'B_nu'.
    restrictions : RestrictionSet
        Basis matrices of the free parameters of each row.
    rng : Generator
        Random number generator.
    det_tol : float
        Draws with |det B| at or below this value are rejected as singular.

    Returns
    -------
    array
        The updated B (same object).
    """
    N, T = Y.shape
    E = Y - A @ X
    posterior_S_inv = prior['B_V_inv'] / hyper[0] + E @ E.T
    df = T + prior['B_nu'] - N + 1

    for n in range(N):
        V = restrictions.basis(n)
        r = V.shape[1]

        L = _chol(V.T @ posterior_S_inv @ V, 'B', f"the posterior precision of row {n} of B")

        w = _orthogonal_direction(B, n)
        w1 = solve_triangular(L, V.T @ w, lower=True)
        w1_norm = np.linalg.norm(w1)
        if not np.isfinite(w1_norm) or w1_norm == 0.0:
            raise NumericalFailure(f"restrictions on row {n} make B singular", parameter='B')
        w1 = w1 / w1_norm
        if r == 1:
            W = w1.reshape(1, 1)
        else:
            W = np.column_stack([w1, null_space(w1.reshape(1, -1))])

        alpha = np.empty(r)
        alpha[0] = np.sqrt(rng.chisquare(df))
        if rng.uniform() < 0.5:
            alpha[0] = -alpha[0]
        if r > 1:
            alpha[1:] = rng.standard_normal(r - 1)

        b_n = solve_triangular(L, W @ alpha, lower=True, trans='T')
        B[n] = V @ b_n

        det_B = np.linalg.det(B)
        if not np.isfinite(det_B) or abs(det_B) <= det_tol:
            raise NumericalFailure(f"draw of row {n} makes B singular (|det B| = {abs(det_B):.3e})",
                                   parameter='B')

    return B
