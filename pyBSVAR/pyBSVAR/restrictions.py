"""
Zero restrictions on the structural matrix B

Each equation n of the structural form has its own basis matrix V_n (N x r_n)
whose columns span the admissible values of the n-th row of B:

    B[n, :] = (V_n @ b_n)'

with b_n the r_n-vector of free parameters. Entries of B whose row in V_n is
identically zero are structural zeros.
"""

import numpy as np
from typing import List, Sequence, Union

from .errors import InvalidArgument, InvalidStartingValue


class RestrictionSet:
    """
    Per-equation linear restrictions on the rows of B.

    Parameters
    ----------
    VB : sequence of arrays
        N matrices, the n-th of size N x r_n with 1 <= r_n <= N and full
        column rank.

    Examples
    --------
    >>> R = RestrictionSet.lower_triangular(2)
    >>> R.free_count(0), R.free_count(1)
    (1, 2)
    >>> R.to_full(1, np.array([0.5, 2.0]))
    array([0.5, 2. ])
    """

    def __init__(self, VB: Sequence[Union[np.ndarray, List]]):
        if isinstance(VB, np.ndarray) and VB.ndim < 3 and VB.dtype != object:
            raise InvalidArgument("'VB' must be a sequence of N matrices.")
        VB = list(VB)
        N = len(VB)
        if N == 0:
            raise InvalidArgument("'VB' must contain at least one restriction matrix.")

        self._basis = []
        for n, V in enumerate(VB):
            V = np.atleast_2d(np.asarray(V, dtype=float))
            if V.ndim != 2 or V.shape[0] != N:
                raise InvalidArgument(f"VB[{n}] must have {N} rows, got shape {V.shape}.")
            r = V.shape[1]
            if r < 1 or r > N:
                raise InvalidArgument(f"VB[{n}] must have between 1 and {N} columns, got {r}.")
            if not np.all(np.isfinite(V)):
                raise InvalidArgument(f"VB[{n}] contains non-finite values.")
            rank = np.linalg.matrix_rank(V)
            if rank != r:
                raise InvalidArgument(f"VB[{n}] has rank {rank} but declares {r} free parameters.")
            V = V.copy()
            V.setflags(write=False)
            self._basis.append(V)

        self.N = N

    @classmethod
    def from_mask(cls, mask: Union[np.ndarray, List]) -> 'RestrictionSet':
        """
        Build restrictions from a boolean N x N pattern of free entries.

        Parameters
        ----------
        mask : array
            mask[n, j] is True when B[n, j] is a free parameter.
        """
        mask = np.asarray(mask, dtype=bool)
        if mask.ndim != 2 or mask.shape[0] != mask.shape[1]:
            raise InvalidArgument("'mask' must be a square matrix.")
        N = mask.shape[0]
        eye = np.eye(N)
        VB = []
        for n in range(N):
            if not mask[n].any():
                raise InvalidArgument(f"Row {n} of 'mask' has no free entries.")
            VB.append(eye[:, mask[n]])
        return cls(VB)

    @classmethod
    def lower_triangular(cls, N: int) -> 'RestrictionSet':
        """Recursive identification: B lower triangular."""
        return cls.from_mask(np.tril(np.ones((N, N), dtype=bool)))

    @classmethod
    def unrestricted(cls, N: int) -> 'RestrictionSet':
        return cls.from_mask(np.ones((N, N), dtype=bool))

    @classmethod
    def diagonal(cls, N: int) -> 'RestrictionSet':
        return cls.from_mask(np.eye(N, dtype=bool))

    def __len__(self) -> int:
        return self.N

    def __repr__(self) -> str:
        counts = ", ".join(str(self.free_count(n)) for n in range(self.N))
        return f"RestrictionSet(N={self.N}, free=[{counts}])"

    def basis(self, n: int) -> np.ndarray:
        """Basis matrix V_n (read-only, N x r_n)."""
        return self._basis[n]

    def free_count(self, n: int) -> int:
        return self._basis[n].shape[1]

    @property
    def total_free(self) -> int:
        """Total number of free parameters in B."""
        return sum(V.shape[1] for V in self._basis)

    def to_full(self, n: int, b: np.ndarray) -> np.ndarray:
        """Map free parameters b_n to the full n-th row of B."""
        b = np.asarray(b, dtype=float).reshape(-1)
        if b.shape[0] != self.free_count(n):
            raise InvalidArgument(f"Equation {n} has {self.free_count(n)} free parameters, got {b.shape[0]}.")
        return self._basis[n] @ b

    def to_free(self, n: int, row: np.ndarray) -> np.ndarray:
        """Least-squares coordinates of a full row of B in the basis V_n."""
        row = np.asarray(row, dtype=float).reshape(-1)
        return np.linalg.lstsq(self._basis[n], row, rcond=None)[0]

    def zero_mask(self, n: int) -> np.ndarray:
        """Boolean N-vector marking the structural zeros of row n."""
        return ~np.any(self._basis[n] != 0, axis=1)

    def free_mask(self) -> np.ndarray:
        """Boolean N x N matrix of entries of B that are not structural zeros."""
        return np.vstack([~self.zero_mask(n) for n in range(self.N)])

    def conforms(self, B: np.ndarray, atol: float = 1e-8) -> bool:
        """Check that every row of B lies in its admissible subspace."""
        B = np.asarray(B, dtype=float)
        if B.shape != (self.N, self.N):
            return False
        for n in range(self.N):
            row = B[n]
            if np.any(row[self.zero_mask(n)] != 0):
                return False
            resid = row - self.to_full(n, self.to_free(n, row))
            scale = max(1.0, np.abs(row).max())
            if np.abs(resid).max() > atol * scale:
                return False
        return True

    def check_starting_value(self, B: np.ndarray) -> None:
        """Raise InvalidStartingValue when B violates the restrictions."""
        if not self.conforms(B):
            raise InvalidStartingValue("Starting value for 'B' does not conform to the restrictions in 'VB'.")
