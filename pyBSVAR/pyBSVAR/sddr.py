"""
Savage-Dickey density ratio for a diagonal structural matrix

The restriction tested is that all free off-diagonal elements of B are zero,
i.e. no contemporaneous relationships between the structural shocks. The
log Bayes factor in favour of the restriction is

    log p(B_off = 0 | data) - log p(B_off = 0)

The posterior density is a Gaussian kernel density estimate from the draws.
The prior density is the analytic normal density of the free off-diagonal
elements given the overall shrinkage gamma_B, averaged over the posterior
draws of gamma_B. The normal form of the prior is exact for B_nu = N or a
triangular pattern of free elements; otherwise UnreliableEstimateWarning is
issued.
"""

import numpy as np
import warnings
from typing import Dict, List, Optional, Sequence, Tuple, Union
from scipy.linalg import LinAlgError
from scipy.special import logsumexp
from scipy.stats import gaussian_kde

from . import utils
from .errors import DimensionMismatch, InvalidArgument, NumericalFailure, UnreliableEstimateWarning
from .helpers import normalise_posterior
from .restrictions import RestrictionSet


# Below this number of draws the kernel density estimate is flagged unreliable
MIN_RELIABLE_DRAWS = 500


def _free_off_diagonal(B: np.ndarray,
                       restrictions: Optional[RestrictionSet]) -> List[Tuple[int, int]]:
    N = B.shape[0]
    if restrictions is not None:
        mask = restrictions.free_mask()
    else:
        mask = np.any(B != 0, axis=2)
    return [(i, j) for i in range(N) for j in range(N) if i != j and mask[i, j]]


def _prior_is_normal(restrictions: RestrictionSet, B_nu: float) -> bool:
    """
    Whether the prior of the off-diagonal elements of B is exactly normal.

    The prior kernel carries |det B|^(B_nu - N). The factor vanishes for
    B_nu = N, and for a triangular pattern of free elements det B is the
    product of the diagonal, which leaves the off-diagonal elements normal.
    """
    if B_nu == restrictions.N:
        return True
    mask = restrictions.free_mask()
    return not np.triu(mask, 1).any() or not np.tril(mask, -1).any()


def _log_prior_density_at_zero(gamma_B: np.ndarray,
                               B_V_inv: np.ndarray,
                               restrictions: RestrictionSet,
                               off_diagonal: List[Tuple[int, int]]) -> float:
    """
    Log prior density of the free off-diagonal elements of B at zero.

    Given gamma_B the free parameters of row n are N(0, gamma_B Omega_n)
    with Omega_n = (V_n' B_V_inv V_n)^{-1}, so the off-diagonal elements of
    row n, D_n V_n b_n, are N(0, gamma_B D_n V_n Omega_n V_n' D_n').
    """
    m = len(off_diagonal)
    logdet_C = 0.0
    for n in range(restrictions.N):
        cols = [j for (i, j) in off_diagonal if i == n]
        if not cols:
            continue
        V = restrictions.basis(n)
        Omega = np.linalg.inv(V.T @ B_V_inv @ V)
        C = (V @ Omega @ V.T)[np.ix_(cols, cols)]
        sign, logdet = np.linalg.slogdet(C)
        if sign <= 0:
            raise NumericalFailure(f"prior covariance of the off-diagonal elements of row {n} is singular",
                                   parameter='B')
        logdet_C += logdet

    log_dens = -0.5 * m * np.log(2.0 * np.pi * gamma_B) - 0.5 * logdet_C
    return float(logsumexp(log_dens) - np.log(len(gamma_B)))


def log_sddr_homoskedasticity(posterior: Dict[str, np.ndarray],
                              prior: Dict,
                              Y: np.ndarray,
                              X: np.ndarray,
                              VB: Optional[Union[RestrictionSet, Sequence[np.ndarray]]] = None,
                              sample_s: bool = True,
                              bw_method: Optional[Union[str, float]] = None) -> float:
    """
    Log Savage-Dickey density ratio for the hypothesis that B is diagonal.

    Parameters
    ----------
    posterior : dict
        Posterior draws with 'A' (N x K x S), 'B' (N x N x S), 'hyper' (5 x S).
    prior : dict
        Prior specification used for estimation.
    Y : array
        Dependent variables (N x T).
    X : array
        Regressors (K x T).
    VB : sequence of arrays or RestrictionSet, optional
        Restrictions used for estimation. If omitted, the free elements are
        those non-zero in at least one draw.
    sample_s : bool, default=True
        Reserved; must be a bool.
    bw_method : str or float, optional
        Bandwidth rule passed to ``scipy.stats.gaussian_kde``.

    Returns
    -------
    float
        Log Bayes factor in favour of a diagonal B. Positive values support
        the restriction. Zero when B has no free off-diagonal elements.
    """
    if not isinstance(sample_s, (bool, np.bool_)):
        raise InvalidArgument("'sample_s' must be a bool.")

    Y, X = utils.check_data(Y, X)
    N, K = Y.shape[0], X.shape[0]
    B_draws = np.asarray(posterior['B'], dtype=float)
    A_draws = np.asarray(posterior['A'], dtype=float)
    hyper = np.asarray(posterior['hyper'], dtype=float)

    if B_draws.ndim != 3 or B_draws.shape[:2] != (N, N):
        raise DimensionMismatch(f"Posterior draws of 'B' must be {N}x{N}xS.")
    if A_draws.ndim != 3 or A_draws.shape[:2] != (N, K):
        raise DimensionMismatch(f"Posterior draws of 'A' must be {N}x{K}xS.")
    S = B_draws.shape[2]
    if S == 0:
        raise InvalidArgument("The posterior contains no draws.")
    if hyper.shape != (5, S) or A_draws.shape[2] != S:
        raise DimensionMismatch("Posterior draws of 'A', 'B' and 'hyper' must have the same length.")

    prior = utils.check_prior(prior, N, K)
    if VB is None:
        restrictions = None
    else:
        restrictions = VB if isinstance(VB, RestrictionSet) else RestrictionSet(VB)
        if len(restrictions) != N:
            raise InvalidArgument(f"'VB' must contain {N} restriction matrices, got {len(restrictions)}.")

    off_diagonal = _free_off_diagonal(B_draws, restrictions)
    if not off_diagonal:
        return 0.0
    if restrictions is None:
        restrictions = RestrictionSet.from_mask(np.any(B_draws != 0, axis=2) | np.eye(N, dtype=bool))

    if S < MIN_RELIABLE_DRAWS:
        warnings.warn(f"Only {S} posterior draws; the density estimate at the restriction "
                      f"is unreliable below {MIN_RELIABLE_DRAWS} draws.", UnreliableEstimateWarning)
    if not _prior_is_normal(restrictions, prior['B_nu']):
        warnings.warn(f"With B_nu = {prior['B_nu']:g} > N = {N} and off-diagonal elements of B entering "
                      f"det B, the prior density at the restriction is a normal approximation.",
                      UnreliableEstimateWarning)

    B_norm = normalise_posterior({'B': B_draws})['B']
    rows, cols = zip(*off_diagonal)
    sample = B_norm[list(rows), list(cols), :]

    try:
        kde = gaussian_kde(sample, bw_method=bw_method)
        log_posterior = float(kde.logpdf(np.zeros((len(off_diagonal), 1)))[0])
    except (LinAlgError, ValueError) as e:
        raise NumericalFailure(f"kernel density estimate of the off-diagonal elements failed ({e})",
                               parameter='B') from e

    log_prior = _log_prior_density_at_zero(hyper[0, :], prior['B_V_inv'], restrictions, off_diagonal)

    return log_posterior - log_prior
