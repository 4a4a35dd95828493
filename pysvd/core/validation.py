"""
Input validation utilities for PySVD.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about caller intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from pysvd.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.inexact[Any]]:
    """
    Validate and convert input to numpy array.

    Accepts any array-like and converts to numpy array. Rejects inputs
    that result in object dtype (indicating mixed types or non-numeric data).
    Integer and boolean data is promoted to float64; complex data is kept.

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray with floating or complex dtype

    Raises:
        ValidationError: If input cannot be converted to numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    if result.dtype == np.bool_:
        return result.astype(np.float64)

    if not np.issubdtype(result.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    if not np.issubdtype(result.dtype, np.inexact):
        result = result.astype(np.float64)

    return result


def check_finite(array: NDArray[np.inexact[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Args:
        array: Array to check
        name: Parameter name for error messages

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_ndim(array: NDArray[Any], ndim: int, name: str) -> None:
    """
    Verify array has exactly the specified number of dimensions.

    Raises:
        DimensionError: If array has wrong number of dimensions
    """
    if array.ndim != ndim:
        raise DimensionError(
            f"{name}: expected {ndim}D array, got {array.ndim}D with shape {array.shape}"
        )


def check_1d(array: NDArray[Any], name: str) -> None:
    """Verify array is 1-dimensional."""
    check_ndim(array, 1, name)


def check_2d(array: NDArray[Any], name: str) -> None:
    """Verify array is 2-dimensional."""
    check_ndim(array, 2, name)


def check_shape(
    array: NDArray[Any],
    expected: tuple[int, ...],
    name: str,
) -> None:
    """
    Verify array has exactly the expected shape.

    Args:
        array: Array to check
        expected: Required shape
        name: Parameter name for error messages

    Raises:
        DimensionError: If the shape differs
    """
    if tuple(array.shape) != tuple(expected):
        raise DimensionError(
            f"{name}: expected shape {tuple(expected)}, got {tuple(array.shape)}"
        )


def check_buffer_length(
    data: NDArray[Any],
    expected: int,
    name: str,
) -> None:
    """
    Verify a flat buffer holds exactly the number of elements its
    descriptor declares.

    Raises:
        DimensionError: If the buffer is not 1D or its length differs
    """
    check_1d(data, name)
    if data.shape[0] != expected:
        raise DimensionError(
            f"{name}: buffer holds {data.shape[0]} elements, descriptor declares {expected}"
        )


def check_dtype(
    array: NDArray[Any],
    dtype: np.dtype | type,
    name: str,
) -> None:
    """
    Verify array has exactly the given dtype.

    Output buffers are written by the kernel through raw pointers, so no
    casting is possible.

    Raises:
        ValidationError: If the dtype differs
    """
    if array.dtype != np.dtype(dtype):
        raise ValidationError(
            f"{name}: expected dtype {np.dtype(dtype)}, got {array.dtype}"
        )


def check_writeable(array: NDArray[Any], name: str) -> None:
    """
    Verify array can be written to.

    Raises:
        ValidationError: If the array is read-only
    """
    if not array.flags.writeable:
        raise ValidationError(f"{name}: output buffer is read-only")


def check_real(array: NDArray[Any], name: str) -> None:
    """
    Verify array holds real (non-complex) data.

    Raises:
        ValidationError: If the array is complex
    """
    if np.iscomplexobj(array):
        raise ValidationError(
            f"{name}: complex dtype {array.dtype} passed to a real decomposition"
        )


def check_castable(
    array: NDArray[Any],
    dtype: np.dtype | type,
    name: str,
) -> None:
    """
    Verify array converts to dtype without losing precision or range.

    The kernel works in a fixed precision; wider inputs (longdouble,
    clongdouble) are refused rather than silently rounded.

    Raises:
        ValidationError: If the safe cast is not possible
    """
    if not np.can_cast(array.dtype, dtype, casting='safe'):
        raise ValidationError(
            f"{name}: dtype {array.dtype} cannot be converted to {np.dtype(dtype)} "
            f"without loss of precision"
        )
