"""
Exception hierarchy for PySVD.

All exceptions inherit from PySVDError to allow catching any
library-specific error. The four taxonomy errors of a decomposition
request map one-to-one onto a StatusCode (see pysvd.core.status):

    DimensionError            -> SIZE_MISMATCH
    WorkspaceAllocationError  -> OUT_OF_MEMORY
    KernelArgumentError       -> KERNEL_INVALID_ARGUMENT
    ConvergenceError          -> KERNEL_CONVERGENCE_FAILURE

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PySVDError(Exception):
    """Base exception for all PySVD errors."""
    pass


class ValidationError(PySVDError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when an output buffer does not have the shape implied by the
    input matrix (U must be m x m, s must have min(m, n) entries, V^T must
    be n x n), or when a flat buffer length disagrees with its declared
    dimensions.
    """
    pass


class WorkspaceAllocationError(PySVDError, MemoryError):
    """
    A scratch buffer could not be allocated.

    Fatal to the call, not to the process. Everything allocated before the
    failure has already been released when this propagates.

    Attributes:
        buffer_name: Which scratch buffer failed ('input_copy', 'work', ...)
        requested_bytes: Size of the failed request, if known
    """

    def __init__(
        self,
        message: str,
        buffer_name: str | None = None,
        requested_bytes: int | None = None
    ):
        super().__init__(message)
        self.buffer_name = buffer_name
        self.requested_bytes = requested_bytes


class NumericalError(PySVDError):
    """
    The external kernel reported a failure.

    Base class for errors translated from a LAPACK status code.

    Attributes:
        routine: LAPACK routine name ('dgesdd', 'dgesvd', 'zgesvd')
        info: Raw status code returned by the routine
    """

    def __init__(
        self,
        message: str,
        routine: str | None = None,
        info: int | None = None
    ):
        super().__init__(message)
        self.routine = routine
        self.info = info


class KernelArgumentError(NumericalError):
    """
    The kernel rejected one of its arguments (negative status).

    This layer builds every kernel argument itself, so this signals a
    defect in the marshalling code rather than bad user input.

    Attributes:
        position: 1-based position of the rejected argument
    """

    def __init__(
        self,
        message: str,
        position: int,
        routine: str | None = None
    ):
        super().__init__(message, routine=routine, info=-position)
        self.position = position


class ConvergenceError(NumericalError):
    """
    Iterative algorithm failed to converge (positive status).

    Attributes:
        unconverged: Number of superdiagonals of the intermediate bidiagonal
            form that did not converge to zero, as reported by the kernel
    """

    def __init__(
        self,
        message: str,
        unconverged: int,
        routine: str | None = None
    ):
        super().__init__(message, routine=routine, info=unconverged)
        self.unconverged = unconverged
