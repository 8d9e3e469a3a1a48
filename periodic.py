# periodic.py
"""
Periodic wrapping helpers.

Two different wraps are used in the code and must not be mixed up:
- pbc brings stored coordinates and angles back into [0, bound).
- pbc_sym centers a displacement into [-bound/2, bound/2). It is only used
  for minimum-image distances.
"""
import numpy as np
from numba import jit


def pbc(values: np.ndarray, bound: float) -> np.ndarray:
    """Canonical wrap of an array into [0, bound)."""
    wrapped = np.mod(values, bound)
    # A tiny negative value gives exactly `bound` after rounding.
    return np.where(wrapped >= bound, wrapped - bound, wrapped)


def pbc_sym(values: np.ndarray, bound: float) -> np.ndarray:
    """Centered wrap of an array into [-bound/2, bound/2)."""
    return values - bound * np.floor(values / bound + 0.5)


@jit(nopython=True)
def pbc_scalar(value, bound):
    wrapped = value - bound * np.floor(value / bound)
    if wrapped >= bound:
        wrapped -= bound
    elif wrapped < 0.0:
        wrapped += bound
    return wrapped


@jit(nopython=True)
def pbc_sym_scalar(value, bound):
    return value - bound * np.floor(value / bound + 0.5)
