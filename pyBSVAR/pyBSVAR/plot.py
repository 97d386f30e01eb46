"""
Plotting functions for BSVAR posterior draws
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib
from typing import Dict, List, Tuple

from .utils import HYPER_NAMES

# Set style
matplotlib.style.use('seaborn-v0_8-whitegrid')


def _select(posterior: Dict[str, np.ndarray], parameter: str) -> Tuple[np.ndarray, List[str]]:
    """Draws of one parameter block as (n_series x S) with labels."""
    if parameter == 'hyper':
        return posterior['hyper'], list(HYPER_NAMES)
    if parameter not in ('A', 'B'):
        raise ValueError("'parameter' must be one of 'A', 'B' or 'hyper'.")
    draws = posterior[parameter]
    n_rows, n_cols, S = draws.shape
    labels = [f"{parameter}[{i},{j}]" for i in range(n_rows) for j in range(n_cols)]
    series = draws.reshape(n_rows * n_cols, S)
    # Structural zeros carry no information
    keep = np.any(series != 0, axis=1)
    return series[keep], [lab for lab, k in zip(labels, keep) if k]


def _grid(n: int, ncol: int):
    nrow = int(np.ceil(n / ncol))
    fig, axes = plt.subplots(nrow, ncol, figsize=(4 * ncol, 2.5 * nrow), squeeze=False)
    for ax in axes.flat[n:]:
        ax.set_visible(False)
    return fig, axes.flat


def plot_trace(posterior: Dict[str, np.ndarray],
               parameter: str = 'hyper',
               ncol: int = 3,
               **kwargs) -> plt.Figure:
    """
    Trace plots of the posterior draws.

    Parameters
    ----------
    posterior : dict
        Posterior draws.
    parameter : str, default='hyper'
        One of 'A', 'B' or 'hyper'.
    ncol : int, default=3
        Number of panel columns.
    **kwargs
        Passed to ``Axes.plot``.

    Returns
    -------
    Figure
        Matplotlib figure object.
    """
    series, labels = _select(posterior, parameter)
    fig, axes = _grid(len(labels), ncol)
    for ax, chain, label in zip(axes, series, labels):
        ax.plot(chain, linewidth=0.6, **kwargs)
        ax.axhline(np.mean(chain), color='red', linestyle='--', linewidth=1)
        ax.set_title(label)
        ax.set_xlabel('Draw')
    plt.tight_layout()
    return fig


def plot_posterior(posterior: Dict[str, np.ndarray],
                   parameter: str = 'B',
                   ncol: int = 3,
                   bins: int = 50,
                   **kwargs) -> plt.Figure:
    """
    Histograms of the marginal posterior distributions.

    Parameters
    ----------
    posterior : dict
        Posterior draws; normalise B first for interpretable histograms.
    parameter : str, default='B'
        One of 'A', 'B' or 'hyper'.
    ncol : int, default=3
        Number of panel columns.
    bins : int, default=50
        Number of histogram bins.
    **kwargs
        Passed to ``Axes.hist``.

    Returns
    -------
    Figure
        Matplotlib figure object.
    """
    series, labels = _select(posterior, parameter)
    fig, axes = _grid(len(labels), ncol)
    for ax, chain, label in zip(axes, series, labels):
        ax.hist(chain, bins=bins, density=True, alpha=0.7, **kwargs)
        ax.axvline(np.median(chain), color='red', linestyle='--', linewidth=1)
        ax.set_title(label)
    plt.tight_layout()
    return fig
