"""
Gibbs sampler for the homoskedastic BSVAR

Each sweep draws, strictly in this order,
    1. hyperparameters | A, B
    2. A | B, hyper, data
    3. B | A, hyper, data
and stores the draw. The state (A, B, hyper) is owned by the sampler and
mutated in place; the history lives in a separate PosteriorStore.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Union

import numpy as np

from . import sampler
from . import utils
from .errors import InvalidArgument, NumericalFailure
from .restrictions import RestrictionSet


ProgressCallback = Callable[[int, int], None]


class SamplerStatus(Enum):
    INITIALIZED = 'initialized'
    RUNNING = 'running'
    COMPLETED = 'completed'
    ABORTED = 'aborted'


@dataclass
class SamplerState:
    """Current values of the parameter blocks."""
    A: np.ndarray
    B: np.ndarray
    hyper: np.ndarray

    def to_dict(self) -> Dict[str, np.ndarray]:
        return {'A': self.A.copy(), 'B': self.B.copy(), 'hyper': self.hyper.copy()}


class CancellationToken:
    """
    Cooperative cancellation signal.

    Call ``cancel()`` from any thread (or from a progress callback); the
    sampler stops at the next polling point after finishing the sweep in
    flight.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class PosteriorStore:
    """
    Append-only storage for S posterior draws.

    Parameters
    ----------
    S : int
        Capacity, the number of draws to be stored.
    N : int
        Number of dependent variables.
    K : int
        Number of regressors.
    """

    def __init__(self, S: int, N: int, K: int):
        self.S = S
        self.A = np.zeros((N, K, S))
        self.B = np.zeros((N, N, S))
        self.hyper = np.zeros((5, S))
        self.count = 0

    def __len__(self) -> int:
        return self.count

    def append(self, A: np.ndarray, B: np.ndarray, hyper: np.ndarray) -> None:
        if self.count >= self.S:
            raise InvalidArgument(f"Posterior store is full ({self.S} draws).")
        s = self.count
        self.A[:, :, s] = A
        self.B[:, :, s] = B
        self.hyper[:, s] = hyper
        self.count += 1

    def last(self) -> Dict[str, np.ndarray]:
        """Copy of the most recent draw."""
        if self.count == 0:
            raise InvalidArgument("Posterior store is empty.")
        s = self.count - 1
        return {
            'A': self.A[:, :, s].copy(),
            'B': self.B[:, :, s].copy(),
            'hyper': self.hyper[:, s].copy()
        }

    def to_dict(self) -> Dict[str, np.ndarray]:
        """Stored draws; arrays are truncated to the number of draws made."""
        if self.count == self.S:
            return {'A': self.A, 'B': self.B, 'hyper': self.hyper}
        s = self.count
        return {
            'A': self.A[:, :, :s].copy(),
            'B': self.B[:, :, :s].copy(),
            'hyper': self.hyper[:, :s].copy()
        }


def _print_progress(s: int, S: int) -> None:
    print(f"Iteration {s}/{S}")


class GibbsSampler:
    """
    Gibbs sampler for the homoskedastic SVAR with zero restrictions on B.

    Parameters
    ----------
    Y : array
        Dependent variables (N x T).
    X : array
        Regressors (K x T).
    prior : dict
        Prior specification, see ``helpers.specify_prior``.
    VB : sequence of arrays or RestrictionSet
        Restrictions on the rows of B.
    starting_values : dict
        Starting values with 'A' (N x K), 'B' (N x N) and 'hyper' (5,).
    seed : int, Generator or None
        Seed of the random number generator, or a Generator to draw from.
    det_tol : float
        Tolerance below which |det B| is treated as singular.

    Examples
    --------
    >>> gs = GibbsSampler(Y, X, prior, RestrictionSet.lower_triangular(2),
    ...                   specify_starting_values(2, 3), seed=1)
    >>> out = gs.run(1000)
    >>> out['posterior']['B'].shape
    (2, 2, 1000)
    """

    def __init__(self,
                 Y: np.ndarray,
                 X: np.ndarray,
                 prior: Dict,
                 VB: Union[RestrictionSet, Sequence[np.ndarray]],
                 starting_values: Dict,
                 seed: Optional[Union[int, np.random.Generator]] = None,
                 det_tol: float = sampler.B_DET_TOL):

        self.Y, self.X = utils.check_data(Y, X)
        N = self.Y.shape[0]
        K = self.X.shape[0]

        self.prior = utils.check_prior(prior, N, K)
        self.restrictions = VB if isinstance(VB, RestrictionSet) else RestrictionSet(VB)
        if len(self.restrictions) != N:
            raise InvalidArgument(f"'VB' must contain {N} restriction matrices, got {len(self.restrictions)}.")

        start = utils.check_starting_values(starting_values, N, K)
        self.restrictions.check_starting_value(start['B'])
        self.state = SamplerState(A=start['A'], B=start['B'], hyper=start['hyper'])

        self.rng = seed if isinstance(seed, np.random.Generator) else np.random.default_rng(seed)
        self.det_tol = det_tol
        self.N = N
        self.K = K
        self.status = SamplerStatus.INITIALIZED
        # Set when a sweep was interrupted by an error; the state is then partly updated
        self.failed = False

    def sweep(self) -> None:
        """One pass of the Gibbs sampler: hyper, then A, then B."""
        st = self.state
        sampler.sample_hyperparameters(st.hyper, st.B, st.A, self.restrictions, self.prior, self.rng)
        sampler.sample_A_homosk(st.A, st.B, st.hyper, self.Y, self.X, self.prior, self.rng)
        sampler.sample_B_homosk(st.B, st.A, st.hyper, self.Y, self.X, self.prior,
                                self.restrictions, self.rng, self.det_tol)

    def run(self,
            S: int,
            cancel_token: Optional[CancellationToken] = None,
            progress: Optional[ProgressCallback] = None,
            verbose: bool = False,
            check_every: int = 200) -> Dict:
        """
        Run S sweeps of the sampler.

        Parameters
        ----------
        S : int
            Number of posterior draws.
        cancel_token : CancellationToken, optional
            Polled every ``check_every`` sweeps.
        progress : callable, optional
            Called as ``progress(s, S)`` at about 50 evenly spaced sweeps.
        verbose : bool, default=False
            Whether to print a banner and progress messages.
        check_every : int, default=200
            Number of sweeps between cancellation checks.

        Returns
        -------
        dict
            Dictionary containing:
            - posterior: dict of 'A' (N x K x s), 'B' (N x N x s), 'hyper' (5 x s)
            - last_draw: dict of 'A', 'B', 'hyper', the final state
            - draws: number of completed sweeps s
            - cancelled: whether the run was stopped by the token
        """
        if isinstance(S, bool) or not isinstance(S, (int, np.integer)) or S < 1:
            raise InvalidArgument("'S' must be a positive integer.")
        if not isinstance(check_every, (int, np.integer)) or check_every < 1:
            raise InvalidArgument("'check_every' must be a positive integer.")
        if self.status is SamplerStatus.RUNNING:
            raise InvalidArgument("The sampler is already running.")
        if self.failed:
            raise InvalidArgument("The sampler stopped on an error in the middle of a sweep and cannot be resumed.")

        if verbose:
            self._print_init_message(S)
            if progress is None:
                progress = _print_progress

        report_points = set(np.round(np.linspace(0, S, 50)).astype(int).tolist())
        store = PosteriorStore(S, self.N, self.K)
        cancelled = False

        self.status = SamplerStatus.RUNNING
        for s in range(S):
            if cancel_token is not None and s % check_every == 0 and cancel_token.cancelled:
                cancelled = True
                break
            if progress is not None and s in report_points:
                progress(s, S)

            try:
                self.sweep()
            except NumericalFailure as e:
                self.status = SamplerStatus.ABORTED
                self.failed = True
                raise e.at_sweep(s) from e
            except BaseException:
                self.status = SamplerStatus.ABORTED
                self.failed = True
                raise

            store.append(self.state.A, self.state.B, self.state.hyper)

        if cancelled:
            self.status = SamplerStatus.ABORTED
            if verbose:
                print(f"Sampling cancelled after {len(store)} of {S} draws.")
        else:
            if progress is not None:
                progress(S, S)
            self.status = SamplerStatus.COMPLETED

        return {
            'posterior': store.to_dict(),
            'last_draw': self.state.to_dict(),
            'draws': len(store),
            'cancelled': cancelled
        }

    def _print_init_message(self, S: int) -> None:
        print("*" * 50 + "|")
        print(" Gibbs sampler for the SVAR model".ljust(50) + "|")
        print("*" * 50 + "|")
        print(f" Progress of the MCMC simulation for {S} draws")
        print(f" Variables: {self.N}, regressors: {self.K}, observations: {self.Y.shape[1]}")
        print("*" * 50 + "|")


def run_sampler(S: int,
                Y: np.ndarray,
                X: np.ndarray,
                prior: Dict,
                VB: Union[RestrictionSet, Sequence[np.ndarray]],
                starting_values: Dict,
                sample_s: bool = True,
                seed: Optional[Union[int, np.random.Generator]] = None,
                cancel_token: Optional[CancellationToken] = None,
                progress: Optional[ProgressCallback] = None,
                verbose: bool = False,
                check_every: int = 200,
                det_tol: float = sampler.B_DET_TOL) -> Dict:
    """
    Bayesian estimation of a homoskedastic SVAR via the Gibbs sampler.

    The structural matrix B is sampled with the algorithm of Waggoner & Zha
    (2003), the rows of A with the equation-by-equation sampler of Chan,
    Koop & Yu (2021), and the overall shrinkage of both through a 3-level
    hierarchical prior.

    Parameters
    ----------
    S : int
        Number of posterior draws.
    Y : array
        Dependent variables (N x T).
    X : array
        Regressors (K x T), K = N*p + d.
    prior : dict
        Prior with 'A', 'A_V_inv', 'B_V_inv', 'B_nu', 'hyper_nu', 'hyper_a',
        'hyper_V' and 'hyper_S'.
    VB : sequence of arrays or RestrictionSet
        N basis matrices of the unrestricted elements of the rows of B.
    starting_values : dict
        'A' (N x K), 'B' (N x N, invertible) and 'hyper' (5 positive values).
        Pass the ``last_draw`` of a previous run to continue its chain.
    sample_s : bool, default=True
        Reserved; must be a bool.
    seed : int, Generator or None
        Random number generator or its seed.
    cancel_token : CancellationToken, optional
        Cooperative cancellation signal.
    progress : callable, optional
        Progress callback ``progress(s, S)``.
    verbose : bool, default=False
        Whether to print progress.
    check_every : int, default=200
        Number of sweeps between cancellation checks.
    det_tol : float
        Tolerance below which |det B| is treated as singular.

    Returns
    -------
    dict
        Dictionary containing 'posterior', 'last_draw', 'draws' and
        'cancelled', see ``GibbsSampler.run``.
    """
    if isinstance(S, bool) or not isinstance(S, (int, np.integer)) or S < 1:
        raise InvalidArgument("'S' must be a positive integer.")
    if not isinstance(sample_s, (bool, np.bool_)):
        raise InvalidArgument("'sample_s' must be a bool.")

    gs = GibbsSampler(Y, X, prior, VB, starting_values, seed=seed, det_tol=det_tol)
    return gs.run(S, cancel_token=cancel_token, progress=progress, verbose=verbose,
                  check_every=check_every)
