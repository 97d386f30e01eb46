"""
Utility functions for pyBSVAR package
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Tuple, Union

from .errors import DimensionMismatch, InvalidArgument, InvalidStartingValue


PRIOR_KEYS = ['A', 'A_V_inv', 'B_V_inv', 'B_nu', 'hyper_nu', 'hyper_a', 'hyper_V', 'hyper_S']
HYPER_NAMES = ['gamma_B', 'gamma_A', 's_B', 's_A', 's']


def mlag(X: Union[np.ndarray, pd.DataFrame], lag: int) -> pd.DataFrame:
    """
    Create lagged variables.

    Parameters
    ----------
    X : array-like or DataFrame
        Input data of size T x N (time x variables).
    lag : int
        Number of lags.

    Returns
    -------
    DataFrame
        Lagged data of size T x (N*lag). The first ``lag`` rows are zero.

    Examples
    --------
    >>> data = pd.DataFrame({'y': [1, 2, 3, 4, 5], 'x': [0.5, 0.6, 0.7, 0.8, 0.9]})
    >>> lagged = mlag(data, lag=2)
    >>> print(lagged.shape)
    (5, 4)
    """
    if isinstance(X, pd.DataFrame):
        X_array = X.values.astype(float)
        colnames = X.columns
        index = X.index
    else:
        X_array = np.asarray(X, dtype=float)
        if X_array.ndim == 1:
            X_array = X_array.reshape(-1, 1)
        colnames = [f'var{i}' for i in range(X_array.shape[1])]
        index = None

    Traw, N = X_array.shape
    p = lag

    Xlag = np.zeros((Traw, p * N))
    lag_colnames = []
    for ii in range(1, p + 1):
        Xlag[p:, N * (ii - 1):N * ii] = X_array[p - ii:Traw - ii, :]
        lag_colnames.extend([f"{col}.lag{ii}" for col in colnames])

    return pd.DataFrame(Xlag, columns=lag_colnames, index=index)


def build_data_matrices(data: Union[pd.DataFrame, np.ndarray],
                        p: int = 1,
                        exogenous: Optional[Union[pd.DataFrame, np.ndarray]] = None,
                        constant: bool = True) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the matrices Y and X of the SVAR from data in columns.

    Parameters
    ----------
    data : DataFrame or array
        Observations of the N dependent variables (Traw x N).
    p : int, default=1
        Number of lags.
    exogenous : DataFrame or array, optional
        Deterministic or exogenous regressors (Traw x d_ex).
    constant : bool, default=True
        Whether to include a constant term.

    Returns
    -------
    tuple
        (Y, X) with Y of size N x T and X of size K x T, T = Traw - p and
        K = N*p + d. Rows of X are ordered as lag 1 of all variables, ...,
        lag p of all variables, constant, exogenous variables.
    """
    if not isinstance(p, (int, np.integer)) or p < 1:
        raise InvalidArgument("'p' must be a positive integer.")

    df = data if isinstance(data, pd.DataFrame) else pd.DataFrame(np.asarray(data, dtype=float))
    if df.isna().any().any():
        raise InvalidArgument("The data you have submitted contains NaNs. Please check the data.")
    Traw, N = df.shape
    if Traw <= p:
        raise InvalidArgument(f"Need more than {p} observations to build {p} lags, got {Traw}.")

    Ylag = mlag(df, p).values
    Y = df.values[p:, :].astype(float)
    blocks = [Ylag[p:, :]]
    T = Y.shape[0]

    if constant:
        blocks.append(np.ones((T, 1)))

    if exogenous is not None:
        ex = np.asarray(exogenous.values if isinstance(exogenous, pd.DataFrame) else exogenous, dtype=float)
        if ex.ndim == 1:
            ex = ex.reshape(-1, 1)
        if ex.shape[0] != Traw:
            raise DimensionMismatch(f"'exogenous' has {ex.shape[0]} rows but 'data' has {Traw}.")
        if np.isnan(ex).any():
            raise InvalidArgument("'exogenous' contains NaNs.")
        blocks.append(ex[p:, :])

    X = np.hstack(blocks)
    return Y.T.copy(), X.T.copy()


def check_data(Y: np.ndarray, X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Validate the data matrices and return them as float arrays."""
    Y = np.atleast_2d(np.asarray(Y, dtype=float))
    X = np.atleast_2d(np.asarray(X, dtype=float))
    if Y.ndim != 2 or X.ndim != 2:
        raise InvalidArgument("'Y' and 'X' must be matrices.")
    if Y.shape[1] != X.shape[1]:
        raise DimensionMismatch(f"'Y' has {Y.shape[1]} observations but 'X' has {X.shape[1]}.")
    if not (np.all(np.isfinite(Y)) and np.all(np.isfinite(X))):
        raise InvalidArgument("'Y' and 'X' must contain finite values only.")
    return Y, X


def _is_positive_definite(M: np.ndarray) -> bool:
    if not np.allclose(M, M.T):
        return False
    try:
        np.linalg.cholesky(M)
    except np.linalg.LinAlgError:
        return False
    return True


def check_prior(prior: Dict, N: int, K: int) -> Dict:
    """
    Validate a prior specification against the model dimensions.

    Returns
    -------
    dict
        Copy of the prior with matrices as float arrays and scalars as floats.
    """
    missing = [key for key in PRIOR_KEYS if key not in prior]
    if missing:
        raise InvalidArgument(f"Prior is missing the elements: {missing}.")

    checked = {}
    checked['A'] = np.atleast_2d(np.asarray(prior['A'], dtype=float))
    if checked['A'].shape != (N, K):
        raise DimensionMismatch(f"Prior mean 'A' must be {N}x{K}, got {checked['A'].shape}.")

    for key, dim in (('A_V_inv', K), ('B_V_inv', N)):
        M = np.atleast_2d(np.asarray(prior[key], dtype=float))
        if M.shape != (dim, dim):
            raise DimensionMismatch(f"Prior '{key}' must be {dim}x{dim}, got {M.shape}.")
        if not _is_positive_definite(M):
            raise InvalidArgument(f"Prior '{key}' must be a symmetric positive definite matrix.")
        checked[key] = M

    for key in ('B_nu', 'hyper_nu', 'hyper_a', 'hyper_V', 'hyper_S'):
        value = float(prior[key])
        if not np.isfinite(value) or value <= 0:
            raise InvalidArgument(f"Prior '{key}' must be a positive scalar.")
        checked[key] = value

    if checked['B_nu'] < N:
        raise InvalidArgument(f"Prior 'B_nu' must be greater or equal to N = {N}.")

    return checked


def check_starting_values(starting_values: Dict, N: int, K: int) -> Dict:
    """
    Validate starting values for A, B and hyper.

    Returns
    -------
    dict
        Fresh float copies of 'A', 'B' and 'hyper'.
    """
    for key in ('A', 'B', 'hyper'):
        if key not in starting_values:
            raise InvalidStartingValue(f"Starting values are missing '{key}'.")

    A = np.atleast_2d(np.array(starting_values['A'], dtype=float))
    if A.shape != (N, K):
        raise InvalidStartingValue(f"Starting value for 'A' must be {N}x{K}, got {A.shape}.")
    if not np.all(np.isfinite(A)):
        raise InvalidStartingValue("Starting value for 'A' contains non-finite values.")

    B = np.atleast_2d(np.array(starting_values['B'], dtype=float))
    if B.shape != (N, N):
        raise InvalidStartingValue(f"Starting value for 'B' must be {N}x{N}, got {B.shape}.")
    if not np.all(np.isfinite(B)):
        raise InvalidStartingValue("Starting value for 'B' contains non-finite values.")
    if np.linalg.matrix_rank(B) < N:
        raise InvalidStartingValue("Starting value for 'B' must be invertible.")

    hyper = np.array(starting_values['hyper'], dtype=float).reshape(-1)
    if hyper.shape != (5,):
        raise InvalidStartingValue(f"Starting value for 'hyper' must be a 5-vector, got {hyper.shape[0]} elements.")
    if not np.all(np.isfinite(hyper)) or np.any(hyper <= 0):
        raise InvalidStartingValue("Starting values for 'hyper' must be positive.")

    return {'A': A, 'B': B, 'hyper': hyper}


def posterior_to_frame(posterior: Dict[str, np.ndarray],
                       var_names: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Flatten posterior draws into a DataFrame with one row per draw.

    Parameters
    ----------
    posterior : dict
        Posterior draws with 'A' (N x K x S), 'B' (N x N x S), 'hyper' (5 x S).
    var_names : list, optional
        Names of the N dependent variables.

    Returns
    -------
    DataFrame
        S x (N*K + N*N + 5) table. Columns are named 'A[i,j]', 'B[i,j]' and
        the hyperparameter names.
    """
    A = posterior['A']
    B = posterior['B']
    hyper = posterior['hyper']
    N, K, S = A.shape
    if var_names is None:
        var_names = [str(n) for n in range(N)]

    columns = {}
    for i in range(N):
        for j in range(K):
            columns[f"A[{var_names[i]},{j}]"] = A[i, j, :]
    for i in range(N):
        for j in range(N):
            columns[f"B[{var_names[i]},{var_names[j]}]"] = B[i, j, :]
    for h, name in enumerate(HYPER_NAMES):
        columns[name] = hyper[h, :]

    return pd.DataFrame(columns, index=pd.RangeIndex(S, name='draw'))
