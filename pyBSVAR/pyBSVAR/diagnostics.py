"""
Diagnostic functions for BSVAR posterior draws
"""

import numpy as np
import pandas as pd
from typing import Dict, Optional
from scipy import stats

from . import utils


def geweke_z(chain: np.ndarray, first: float = 0.1, last: float = 0.5) -> float:
    """
    Geweke statistic comparing the mean of the start and the end of a chain.

    Returns NaN for chains that are too short or constant.
    """
    chain = np.asarray(chain, dtype=float)
    if len(chain) <= 20:
        return np.nan
    n1 = max(int(len(chain) * first), 10)
    n2 = max(int(len(chain) * last), 10)

    var1 = np.var(chain[:n1], ddof=1)
    var2 = np.var(chain[-n2:], ddof=1)
    se = np.sqrt(var1 / n1 + var2 / n2)
    if se == 0:
        return np.nan
    return (np.mean(chain[:n1]) - np.mean(chain[-n2:])) / se


def conv_diag(posterior: Dict[str, np.ndarray], crit_val: float = 1.96) -> Dict:
    """
    MCMC convergence diagnostics using Geweke test.

    Structural zeros of B, which are constant along the chain, are skipped.

    Parameters
    ----------
    posterior : dict
        Posterior draws with 'A' (N x K x S), 'B' (N x N x S), 'hyper' (5 x S).
    crit_val : float, default=1.96
        Critical value for test statistic.

    Returns
    -------
    dict
        Dictionary containing Geweke statistics (Series indexed by parameter
        name), the share exceeding the threshold, and a summary message.
    """
    draws = utils.posterior_to_frame(posterior)
    z = draws.apply(geweke_z, axis=0).dropna()

    exceed = z.abs() > crit_val
    share = float(exceed.mean()) if len(z) > 0 else 0.0
    perc = (f"{int(exceed.sum())} out of {len(z)} variables' z-values exceed the "
            f"{crit_val} threshold ({share * 100:.2f}%).")

    return {
        'geweke.z': z,
        'share': share,
        'perc': perc
    }


def posterior_summary(posterior: Dict[str, np.ndarray],
                      quantiles: Optional[list] = None) -> pd.DataFrame:
    """
    Posterior mean, standard deviation and quantiles of every parameter.

    Parameters
    ----------
    posterior : dict
        Posterior draws.
    quantiles : list, optional
        Quantiles to report. Default is [0.05, 0.50, 0.95].

    Returns
    -------
    DataFrame
        One row per parameter.
    """
    if quantiles is None:
        quantiles = [0.05, 0.50, 0.95]
    draws = utils.posterior_to_frame(posterior)
    summary = pd.DataFrame({'mean': draws.mean(), 'sd': draws.std(ddof=1)})
    for q in quantiles:
        summary[f"{q * 100:g}%"] = draws.quantile(q)
    return summary


def geweke_pvalues(z: pd.Series) -> pd.Series:
    """Two-sided p-values of Geweke statistics."""
    return pd.Series(2.0 * stats.norm.sf(np.abs(z.values)), index=z.index)
