"""
Solver dispatch for the SVD drivers.

Two kinds of entry point:

    decompose_real_dc / decompose_real_classic / decompose_complex_classic
        Caller supplies the input and three pre-sized outputs (ndarrays or
        buffer descriptors). Returns a DecompositionStatus; the four
        taxonomy errors are reported, never raised.

    svd(a, method=...)
        Allocates the outputs, picks a driver, raises on failure and
        returns an SVDSolution.
"""

from __future__ import annotations

from typing import Any, Literal, Union
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pysvd.core import validation
from pysvd.core.exceptions import (
    ConvergenceError,
    DimensionError,
    KernelArgumentError,
    ValidationError,
    WorkspaceAllocationError,
)
from pysvd.core.protocols import Allocator, Kernel
from pysvd.core.status import DecompositionStatus
from pysvd.decomposition.buffers import ConstMatrix, ConstVector, Matrix, Vector
from pysvd.decomposition.drivers import (
    ComplexClassicDriver,
    RealClassicDriver,
    RealDivideAndConquerDriver,
    WorkspaceDriver,
)
from pysvd.decomposition.policy import WorkspacePolicy
from pysvd.decomposition.solution import SVDSolution


MethodChoice = Literal['auto', 'gesdd', 'gesvd']

MatrixLike = Union[ArrayLike, ConstMatrix]
OutputMatrix = Union[NDArray[Any], Matrix]
OutputVector = Union[NDArray[np.float64], Vector]

_TAXONOMY = (DimensionError, WorkspaceAllocationError, KernelArgumentError, ConvergenceError)


def _input_matrix(a: MatrixLike, name: str) -> NDArray[Any]:
    """Resolve an input matrix to a 2D array without copying."""
    if isinstance(a, ConstMatrix):
        validation.check_buffer_length(a.data, a.rows * a.cols, name)
        arr = a.view()
    else:
        arr = validation.check_array(a, name)
    validation.check_2d(arr, name)
    return arr


def _output_matrix(out: OutputMatrix, dtype: np.dtype, name: str) -> NDArray[Any]:
    """Resolve an output matrix to a writeable 2D array of the kernel's dtype."""
    if isinstance(out, ConstMatrix):
        if not isinstance(out, Matrix):
            raise ValidationError(f"{name}: read-only descriptor passed as an output")
        validation.check_buffer_length(out.data, out.rows * out.cols, name)
        arr = out.view()
    elif isinstance(out, np.ndarray):
        arr = out
    else:
        raise ValidationError(
            f"{name}: output must be an ndarray or Matrix, got {type(out).__name__}"
        )
    validation.check_2d(arr, name)
    validation.check_dtype(arr, dtype, name)
    validation.check_writeable(arr, name)
    return arr


def _output_vector(out: OutputVector, name: str) -> NDArray[np.float64]:
    """Resolve the singular-value output to a writeable float64 vector."""
    if isinstance(out, ConstVector):
        if not isinstance(out, Vector):
            raise ValidationError(f"{name}: read-only descriptor passed as an output")
        validation.check_buffer_length(out.data, out.length, name)
        arr = out.view()
    elif isinstance(out, np.ndarray):
        arr = out
    else:
        raise ValidationError(
            f"{name}: output must be an ndarray or Vector, got {type(out).__name__}"
        )
    validation.check_1d(arr, name)
    validation.check_dtype(arr, np.float64, name)
    validation.check_writeable(arr, name)
    return arr


def _decompose(
    driver: WorkspaceDriver,
    a: MatrixLike,
    u: OutputMatrix,
    s: OutputVector,
    vt: OutputMatrix,
    allocator: Allocator | None,
    check_finite: bool,
) -> DecompositionStatus:
    try:
        a_arr = _input_matrix(a, 'a')
        if check_finite:
            validation.check_finite(a_arr, 'a')
        if driver.dtype.kind != 'c':
            validation.check_real(a_arr, 'a')
        u_arr = _output_matrix(u, driver.dtype, 'u')
        s_arr = _output_vector(s, 's')
        vt_arr = _output_matrix(vt, driver.dtype, 'vt')
        driver.decompose(a_arr, u_arr, s_arr, vt_arr, allocator=allocator)
    except _TAXONOMY as e:
        return DecompositionStatus.from_exception(e)
    return DecompositionStatus.success()


def decompose_real_dc(
    a: MatrixLike,
    u: OutputMatrix,
    s: OutputVector,
    vt: OutputMatrix,
    *,
    allocator: Allocator | None = None,
    policy: WorkspacePolicy | None = None,
    kernel: Kernel | None = None,
    check_finite: bool = True,
) -> DecompositionStatus:
    """
    Real SVD by divide-and-conquer (LAPACK dgesdd).

    Args:
        a: Input matrix (m x n), real; never written
        u: float64 output for the left singular vectors (m x m)
        s: float64 output for the singular values (min(m, n),)
        vt: float64 output for V^T (n x n)
        allocator: Scratch allocator; one is created per call when None
        policy: Workspace sizing; defaults to DIVIDE_AND_CONQUER
            (twice the kernel's recommendation)
        kernel: Routine override, e.g. for testing
        check_finite: Reject NaN/Inf input before anything is allocated.
            With False the scan is skipped and non-finite input reaches the
            kernel, whose response differs per routine (a rejected argument
            from dgesdd, NaN factors from dgesvd)

    Returns:
        DecompositionStatus. On any non-success status the outputs are not
        meaningfully populated.

    Raises:
        ValidationError: For caller type errors outside the taxonomy
            (non-numeric, non-finite, complex or over-wide input, wrong
            output dtype, read-only output)

    Example:
        >>> a = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        >>> u = np.zeros((2, 2), order='F')
        >>> s = np.zeros(2)
        >>> vt = np.zeros((3, 3), order='F')
        >>> decompose_real_dc(a, u, s, vt).ok
        True
    """
    driver = RealDivideAndConquerDriver(kernel=kernel, policy=policy)
    return _decompose(driver, a, u, s, vt, allocator, check_finite)


def decompose_real_classic(
    a: MatrixLike,
    u: OutputMatrix,
    s: OutputVector,
    vt: OutputMatrix,
    *,
    allocator: Allocator | None = None,
    policy: WorkspacePolicy | None = None,
    kernel: Kernel | None = None,
    check_finite: bool = True,
) -> DecompositionStatus:
    """
    Real SVD by bidiagonal QR iteration (LAPACK dgesvd).

    Same contract as decompose_real_dc; the workspace is the kernel's
    recommendation, rounded up.
    """
    driver = RealClassicDriver(kernel=kernel, policy=policy)
    return _decompose(driver, a, u, s, vt, allocator, check_finite)


def decompose_complex_classic(
    a: MatrixLike,
    u: OutputMatrix,
    s: OutputVector,
    vt: OutputMatrix,
    *,
    allocator: Allocator | None = None,
    policy: WorkspacePolicy | None = None,
    kernel: Kernel | None = None,
    check_finite: bool = True,
) -> DecompositionStatus:
    """
    Complex SVD by bidiagonal QR iteration (LAPACK zgesvd).

    u and vt must be complex128; vt receives V^H. s is always real.
    Real input is accepted and promoted while copying.
    """
    driver = ComplexClassicDriver(kernel=kernel, policy=policy)
    return _decompose(driver, a, u, s, vt, allocator, check_finite)


def _get_driver(
    method: MethodChoice,
    is_complex: bool,
    policy: WorkspacePolicy | None,
) -> WorkspaceDriver:
    """
    Select and instantiate the driver for a method and element type.

    Raises:
        ValidationError: If the method is unknown or has no complex variant
    """
    if method == 'auto':
        if is_complex:
            return ComplexClassicDriver(policy=policy)
        return RealDivideAndConquerDriver(policy=policy)

    elif method == 'gesdd':
        if is_complex:
            raise ValidationError("method 'gesdd' has no complex variant; use 'gesvd'")
        return RealDivideAndConquerDriver(policy=policy)

    elif method == 'gesvd':
        if is_complex:
            return ComplexClassicDriver(policy=policy)
        return RealClassicDriver(policy=policy)

    else:
        raise ValidationError(f"Unknown method: {method!r}")


def svd(
    a: MatrixLike,
    *,
    method: MethodChoice = 'auto',
    check_finite: bool = True,
    policy: WorkspacePolicy | None = None,
    allocator: Allocator | None = None,
) -> SVDSolution:
    """
    Full singular value decomposition a = U diag(s) V^T.

    Args:
        a: Matrix to decompose (m x n), real or complex
        method: Kernel to use:
            - 'auto': dgesdd for real input, zgesvd for complex
            - 'gesdd': divide-and-conquer (real only)
            - 'gesvd': classic bidiagonal QR
        check_finite: Reject NaN/Inf input before calling the kernel
        policy: Workspace sizing override
        allocator: Scratch allocator override

    Returns:
        SVDSolution with u (m x m), s (min(m, n),), vt (n x n)

    Raises:
        ValidationError: If the input is invalid or the method unknown
        WorkspaceAllocationError: If scratch memory cannot be allocated
        KernelArgumentError: If the kernel rejects an argument
        ConvergenceError: If the kernel fails to converge

    Example:
        >>> solution = svd(np.array([[5.0]]))
        >>> solution.s
        array([5.])
    """
    arr = _input_matrix(a, 'a')
    if check_finite:
        validation.check_finite(arr, 'a')

    driver = _get_driver(method, np.iscomplexobj(arr), policy)

    m, n = arr.shape
    u = np.zeros((m, m), dtype=driver.dtype, order='F')
    s = np.zeros(min(m, n), dtype=np.float64)
    vt = np.zeros((n, n), dtype=driver.dtype, order='F')

    result = driver.decompose(arr, u, s, vt, allocator=allocator)
    return SVDSolution(_result=result)
