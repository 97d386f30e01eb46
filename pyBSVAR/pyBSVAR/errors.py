"""
Exceptions and warnings raised by pyBSVAR
"""

from typing import Optional


class BSVARError(Exception):
    """Base class for all pyBSVAR errors."""


class InvalidArgument(BSVARError, ValueError):
    """An argument is outside its admissible range."""


class DimensionMismatch(BSVARError, ValueError):
    """Matrices supplied together do not have conforming dimensions."""


class InvalidStartingValue(BSVARError, ValueError):
    """Starting values for A, B or hyper are malformed."""


class NumericalFailure(BSVARError, RuntimeError):
    """
    A conditional draw could not be computed.

    Raised on a failed Cholesky factorisation, a singular or near-singular
    draw of B, or a non-finite / non-positive hyperparameter draw. The run
    is abandoned and no posterior is returned.

    Attributes
    ----------
    parameter : str
        Parameter block being drawn: 'hyper', 'A' or 'B'.
    sweep : int or None
        Index of the Gibbs sweep in which the failure occurred.
    """

    def __init__(self, message: str, parameter: str, sweep: Optional[int] = None):
        self.message = message
        self.parameter = parameter
        self.sweep = sweep
        super().__init__(self._format())

    def _format(self) -> str:
        where = f" at sweep {self.sweep}" if self.sweep is not None else ""
        return f"Numerical failure when sampling '{self.parameter}'{where}: {self.message}"

    def at_sweep(self, sweep: int) -> 'NumericalFailure':
        """Return a copy of the error carrying the sweep index."""
        return NumericalFailure(self.message, self.parameter, sweep)


class UnreliableEstimateWarning(UserWarning):
    """An estimate rests on too few posterior draws or on an approximation."""
