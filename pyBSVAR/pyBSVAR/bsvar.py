"""
Main BSVAR estimation module
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Sequence, Union
from datetime import datetime

from . import diagnostics
from . import helpers
from . import utils
from .gibbs import CancellationToken, GibbsSampler
from .restrictions import RestrictionSet
from .sddr import log_sddr_homoskedasticity


class BSVAR:
    """
    Bayesian homoskedastic Structural Vector Autoregression

    The model is given by the reduced form Y = AX + E and the structural form
    BE = U, with U jointly normal, zero mean and unit variances. A follows a
    normal (Minnesota-type) prior, B a generalised-normal prior under zero
    restrictions, and the overall shrinkage of both a 3-level hierarchical
    prior. Estimation uses the Gibbs sampler in ``gibbs.GibbsSampler``.

    Parameters
    ----------
    data : DataFrame or array
        Observations of the dependent variables (T x N).
    p : int, default=1
        Number of lags.
    draws : int, default=1000
        Number of MCMC draws.
    restrictions : array, list or RestrictionSet, optional
        Either a boolean N x N matrix of free elements of B, a list of N
        basis matrices, or a RestrictionSet. Default is lower triangular B.
    prior : dict, optional
        Overrides of the default prior, see ``helpers.specify_prior``.
    stationary : bool or list of bool, optional
        Variables with a zero prior mean on their own first lag.
    exogenous : DataFrame or array, optional
        Additional exogenous regressors (T x d_ex).
    constant : bool, default=True
        Whether to include a constant term.
    starting_values : dict, optional
        Starting values; default from ``helpers.specify_starting_values``.
    seed : int or Generator, optional
        Random number generator or its seed.
    normalise : bool, default=True
        Whether to sign-normalise the draws of B (positive diagonal).
    verbose : bool, default=True
        Whether to print progress messages.

    Attributes
    ----------
    args : dict
        Estimation arguments.
    Y, X : array
        Data matrices (N x T and K x T).
    posterior : dict
        Posterior draws 'A' (N x K x S), 'B' (N x N x S), 'hyper' (5 x S).
    last_draw : dict
        Final state of the chain.

    Examples
    --------
    >>> model = BSVAR(data, p=2, draws=2000, seed=123, verbose=False)
    >>> model.structural().shape
    (3, 3)
    >>> model.log_sddr()
    """

    def __init__(self,
                 data: Union[pd.DataFrame, np.ndarray],
                 p: int = 1,
                 draws: int = 1000,
                 restrictions: Optional[Union[np.ndarray, Sequence[np.ndarray], RestrictionSet]] = None,
                 prior: Optional[Dict] = None,
                 stationary: Optional[Union[bool, List[bool]]] = None,
                 exogenous: Optional[Union[pd.DataFrame, np.ndarray]] = None,
                 constant: bool = True,
                 starting_values: Optional[Dict] = None,
                 seed: Optional[Union[int, np.random.Generator]] = None,
                 normalise: bool = True,
                 verbose: bool = True):

        self.start_time = datetime.now()

        # Store all arguments
        self.args = {
            'p': p,
            'draws': draws,
            'prior': prior,
            'stationary': stationary,
            'constant': constant,
            'normalise': normalise,
            'verbose': verbose
        }

        self._validate_inputs(data)
        self.Y, self.X = utils.build_data_matrices(self.data, p, exogenous, constant)
        self.N, self.T = self.Y.shape
        self.K = self.X.shape[0]

        self.restrictions = self._process_restrictions(restrictions)
        self._set_prior()

        if starting_values is None:
            starting_values = helpers.specify_starting_values(self.N, self.K)
        self.sampler = GibbsSampler(self.Y, self.X, self.prior, self.restrictions,
                                    starting_values, seed=seed)
        self.cancel_token = CancellationToken()
        self.posterior = None
        self.last_draw = None

        self._estimate(draws)

        if verbose:
            elapsed = (datetime.now() - self.start_time).total_seconds()
            print(f"\nTotal estimation time: {elapsed:.2f} seconds")

    def _validate_inputs(self, data):
        """Validate input arguments."""
        if not isinstance(data, (pd.DataFrame, np.ndarray)):
            raise TypeError("'data' must be a DataFrame or an array.")
        df = data if isinstance(data, pd.DataFrame) else pd.DataFrame(np.asarray(data, dtype=float))
        if df.shape[1] < 1:
            raise ValueError("'data' must contain at least one variable.")
        self.data = df
        self.var_names = [str(c) for c in df.columns]

        p = self.args['p']
        if not isinstance(p, (int, np.integer)) or p < 1:
            raise ValueError("'p' must be a positive integer.")

        draws = self.args['draws']
        if isinstance(draws, bool) or not isinstance(draws, (int, np.integer)) or draws < 1:
            raise ValueError("'draws' must be a positive integer.")

    def _process_restrictions(self, restrictions) -> RestrictionSet:
        """Convert the restrictions argument to a RestrictionSet."""
        if restrictions is None:
            return RestrictionSet.lower_triangular(self.N)
        if isinstance(restrictions, RestrictionSet):
            return restrictions
        if isinstance(restrictions, np.ndarray) and restrictions.dtype == bool:
            return RestrictionSet.from_mask(restrictions)
        return RestrictionSet(restrictions)

    def _set_prior(self):
        """Set the default prior and override it with user-specified values."""
        d = self.K - self.N * self.args['p']
        user_prior = self.args.get('prior') or {}
        self.prior = helpers.specify_prior(self.N, self.args['p'], d,
                                           stationary=self.args['stationary'], **user_prior)

    def _estimate(self, S: int):
        """Run the sampler and store the draws."""
        out = self.sampler.run(S, cancel_token=self.cancel_token, verbose=self.args['verbose'])
        posterior = out['posterior']
        if self.args['normalise']:
            posterior = helpers.normalise_posterior(posterior)
        self.posterior = posterior
        self.last_draw = out['last_draw']
        self.args['draws_completed'] = out['draws']
        self.args['cancelled'] = out['cancelled']

    def continue_sampling(self, S: int) -> 'BSVAR':
        """
        Continue the chain from the last draw and replace the stored draws.

        Parameters
        ----------
        S : int
            Number of additional draws.
        """
        self._estimate(S)
        return self

    def coef(self, quantile: float = 0.50) -> pd.DataFrame:
        """
        Posterior quantile of the slope matrix A.

        Returns
        -------
        DataFrame
            N x K matrix indexed by variable names.
        """
        A = np.quantile(self.posterior['A'], quantile, axis=2)
        return pd.DataFrame(A, index=self.var_names, columns=self._regressor_names())

    def structural(self, quantile: float = 0.50) -> pd.DataFrame:
        """Posterior quantile of the structural matrix B (N x N)."""
        B = np.quantile(self.posterior['B'], quantile, axis=2)
        return pd.DataFrame(B, index=self.var_names, columns=self.var_names)

    def hyper(self) -> pd.DataFrame:
        """Posterior draws of the hyperparameters (S x 5)."""
        return pd.DataFrame(self.posterior['hyper'].T, columns=utils.HYPER_NAMES)

    def vcov(self, quantile: float = 0.50) -> pd.DataFrame:
        """Posterior quantile of the reduced-form covariance (B'B)^{-1}."""
        B = self.posterior['B']
        S = B.shape[2]
        Sigma = np.empty((self.N, self.N, S))
        for s in range(S):
            B_inv = np.linalg.inv(B[:, :, s])
            Sigma[:, :, s] = B_inv @ B_inv.T
        return pd.DataFrame(np.quantile(Sigma, quantile, axis=2),
                            index=self.var_names, columns=self.var_names)

    def log_sddr(self, bw_method=None) -> float:
        """Log Savage-Dickey density ratio for a diagonal B."""
        return log_sddr_homoskedasticity(self.posterior, self.prior, self.Y, self.X,
                                         VB=self.restrictions, bw_method=bw_method)

    def summary(self) -> Dict:
        """
        Generate a summary of the BSVAR model.

        Returns
        -------
        dict
            Dictionary containing convergence diagnostics and the posterior
            summary table.
        """
        CD = diagnostics.conv_diag(self.posterior)
        table = diagnostics.posterior_summary(self.posterior)

        print("-" * 75)
        print("Model Info:")
        print(f"Number of lags: {self.args['p']}")
        print(f"Number of variables: {self.N}")
        print(f"Number of observations: {self.T}")
        print(f"Number of posterior draws: {self.args['draws_completed']}")
        print(f"Free elements of B: {self.restrictions.total_free}")
        print("-" * 75)
        print("Convergence diagnostics")
        print(f"Geweke statistic: {CD['perc']}")
        print("-" * 75)

        return {
            'object': self,
            'CD': CD,
            'posterior': table
        }

    def _regressor_names(self) -> List[str]:
        names = [f"{v}.lag{l}" for l in range(1, self.args['p'] + 1) for v in self.var_names]
        if self.args['constant']:
            names.append('const')
        names.extend(f"exo{i}" for i in range(self.K - len(names)))
        return names

    def __repr__(self):
        """String representation of the model."""
        return (f"BSVAR Model\n"
                f"Lags: {self.args['p']}\n"
                f"Variables: {self.N}\n"
                f"Observations: {self.T}\n"
                f"Draws: {self.args.get('draws_completed', 0)}")
