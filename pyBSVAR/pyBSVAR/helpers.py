"""
Helper functions for BSVAR estimation
"""

import numpy as np
import warnings
from typing import Dict, List, Optional, Union

from .errors import InvalidArgument


def get_A_V_inv(N: int, p: int, d: int = 1) -> np.ndarray:
    """
    Construct the Minnesota-type prior precision for a row of A.

    Coefficients on lag l are shrunk with precision l^2, deterministic and
    exogenous terms with unit precision.

    Parameters
    ----------
    N : int
        Number of dependent variables.
    p : int
        Number of lags.
    d : int, default=1
        Number of deterministic / exogenous regressors.

    Returns
    -------
    array
        Diagonal precision matrix of size K x K, K = N*p + d.
    """
    lag_precision = np.repeat(np.arange(1, p + 1, dtype=float) ** 2, N)
    return np.diag(np.concatenate([lag_precision, np.ones(d)]))


def specify_prior(N: int,
                  p: int = 1,
                  d: int = 1,
                  stationary: Optional[Union[bool, List[bool]]] = None,
                  **hyperpara) -> Dict:
    """
    Default prior for the homoskedastic BSVAR.

    Parameters
    ----------
    N : int
        Number of dependent variables.
    p : int, default=1
        Number of lags.
    d : int, default=1
        Number of deterministic / exogenous regressors.
    stationary : bool or list of bool, optional
        Variables flagged as stationary get a zero prior mean on their own
        first lag; the others a random walk prior mean of one.
    **hyperpara
        Overrides for any of 'A', 'A_V_inv', 'B_V_inv', 'B_nu', 'hyper_nu',
        'hyper_a', 'hyper_V', 'hyper_S'.

    Returns
    -------
    dict
        Prior specification.

    Examples
    --------
    >>> prior = specify_prior(N=3, p=2, hyper_nu=5.0)
    >>> prior['A'].shape, prior['A_V_inv'].shape
    ((3, 7), (7, 7))
    """
    if N < 1 or p < 1 or d < 0:
        raise InvalidArgument("'N' and 'p' must be positive and 'd' non-negative.")
    K = N * p + d

    if stationary is None:
        stationary = [False] * N
    elif isinstance(stationary, (bool, np.bool_)):
        stationary = [bool(stationary)] * N
    if len(stationary) != N:
        raise InvalidArgument(f"'stationary' must have {N} elements.")

    A = np.zeros((N, K))
    A[:, :N] = np.diag([0.0 if s else 1.0 for s in stationary])

    default_prior = {
        'A': A,
        'A_V_inv': get_A_V_inv(N, p, d),
        'B_V_inv': np.eye(N),
        'B_nu': float(N),
        'hyper_nu': 3.0,
        'hyper_a': 1.0,
        'hyper_V': 3.0,
        'hyper_S': 1.0,
    }

    for key, value in hyperpara.items():
        if key in default_prior:
            default_prior[key] = value
        else:
            warnings.warn(f"Unknown hyperparameter: {key}. Ignoring.")

    return default_prior


def specify_starting_values(N: int, K: int) -> Dict:
    """Starting values: A = [I_N, 0], B = I_N and unit hyperparameters."""
    A = np.zeros((N, K))
    A[:, :min(N, K)] = np.eye(N, min(N, K))
    return {
        'A': A,
        'B': np.eye(N),
        'hyper': np.ones(5)
    }


def normalise_posterior(posterior: Dict[str, np.ndarray],
                        B_hat: Optional[np.ndarray] = None) -> Dict[str, np.ndarray]:
    """
    Sign normalisation of the posterior draws of B.

    The sampler draws the sign of each row of B at random, so the rows of B
    are identified only up to sign. Each row of each draw is flipped so that
    its diagonal element is positive or, when a benchmark ``B_hat`` is given,
    so that its inner product with the matching row of ``B_hat`` is positive
    (Waggoner & Zha, 2003). The likelihood and the prior are invariant to
    these flips.

    Parameters
    ----------
    posterior : dict
        Posterior draws with 'B' of size N x N x S.
    B_hat : array, optional
        Benchmark structural matrix (N x N), e.g. a posterior mode.

    Returns
    -------
    dict
        Copy of ``posterior`` with normalised 'B'.
    """
    B = np.array(posterior['B'], dtype=float, copy=True)
    N = B.shape[0]

    if B_hat is None:
        reference = np.einsum('iis->is', B)
    else:
        B_hat = np.asarray(B_hat, dtype=float)
        if B_hat.shape != (N, N):
            raise InvalidArgument(f"'B_hat' must be {N}x{N}.")
        reference = np.einsum('ijs,ij->is', B, B_hat)

    signs = np.where(reference < 0, -1.0, 1.0)
    B *= signs[:, np.newaxis, :]

    normalised = dict(posterior)
    normalised['B'] = B
    return normalised
