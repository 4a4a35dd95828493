"""
Numerical precision constants and utilities.
"""

import numpy as np
from numpy.typing import NDArray
from typing import Any


# Machine epsilon for float64
EPSILON_64: float = np.finfo(np.float64).eps  # ~2.22e-16


def machine_epsilon(dtype: np.dtype | type = np.float64) -> float:
    """
    Get machine epsilon for a given dtype.

    Complex dtypes report the epsilon of their real component.
    """
    return float(np.finfo(dtype).eps)


def default_rank_tolerance(
    s: NDArray[np.floating[Any]],
    shape: tuple[int, int],
    dtype: np.dtype | type = np.float64,
) -> float:
    """
    Threshold below which a singular value counts as zero.

    Same rule as numpy.linalg.matrix_rank: s.max() * max(m, n) * eps.
    """
    if s.size == 0:
        return 0.0
    return float(s.max()) * max(shape) * machine_epsilon(dtype)


def condition_number(s: NDArray[np.floating[Any]]) -> float:
    """
    Ratio of largest to smallest singular value.

    Args:
        s: Singular values in non-increasing order

    Returns:
        Condition number, or inf if the smallest singular value is zero.
    """
    if s.size == 0:
        return 0.0
    if s[-1] == 0:
        return np.inf
    return float(s[0] / s[-1])
