"""
pyBSVAR: Python implementation of Bayesian Structural Vector Autoregressions

This package estimates homoskedastic Structural Vector Autoregressions with
zero restrictions on the structural matrix using a Gibbs sampler, following
the bsvars package for R.
"""

__version__ = "0.1.0"
__author__ = "Python BSVAR Team"

from .bsvar import BSVAR
from . import utils
from . import helpers
from . import restrictions
from . import sampler
from . import gibbs
from . import sddr
from . import diagnostics
from . import plot

# Sampler entry points
from .gibbs import (
    run_sampler,
    GibbsSampler,
    PosteriorStore,
    SamplerState,
    SamplerStatus,
    CancellationToken
)

from .restrictions import RestrictionSet

from .sddr import log_sddr_homoskedasticity

# Prior and starting values
from .helpers import (
    specify_prior,
    specify_starting_values,
    normalise_posterior
)

from .utils import build_data_matrices

# Diagnostics functions
from .diagnostics import (
    conv_diag,
    posterior_summary
)

from .errors import (
    BSVARError,
    InvalidArgument,
    DimensionMismatch,
    InvalidStartingValue,
    NumericalFailure,
    UnreliableEstimateWarning
)

__all__ = [
    # Main class
    "BSVAR",

    # Modules
    "utils",
    "helpers",
    "restrictions",
    "sampler",
    "gibbs",
    "sddr",
    "diagnostics",
    "plot",

    # Sampler
    "run_sampler",
    "GibbsSampler",
    "PosteriorStore",
    "SamplerState",
    "SamplerStatus",
    "CancellationToken",
    "RestrictionSet",
    "log_sddr_homoskedasticity",

    # Prior and starting values
    "specify_prior",
    "specify_starting_values",
    "normalise_posterior",
    "build_data_matrices",

    # Diagnostics
    "conv_diag",
    "posterior_summary",

    # Errors
    "BSVARError",
    "InvalidArgument",
    "DimensionMismatch",
    "InvalidStartingValue",
    "NumericalFailure",
    "UnreliableEstimateWarning",
]
