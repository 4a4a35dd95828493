"""
Status values returned at the decomposition boundary.

The decompose_* entry points never raise for the four taxonomy errors;
they return a DecompositionStatus the caller checks immediately. Callers
that prefer exceptions call raise_for_status().
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from pysvd.core.exceptions import (
    PySVDError,
    DimensionError,
    WorkspaceAllocationError,
    KernelArgumentError,
    ConvergenceError,
)


class StatusCode(IntEnum):
    """Uniform error taxonomy for one decomposition request."""
    SUCCESS = 0
    SIZE_MISMATCH = 1000
    KERNEL_INVALID_ARGUMENT = 1001
    OUT_OF_MEMORY = 1002
    KERNEL_CONVERGENCE_FAILURE = 1004


@dataclass(frozen=True)
class DecompositionStatus:
    """
    Outcome of one decomposition request.

    Attributes:
        code: Taxonomy code
        info: Kernel status for kernel failures (negative argument position
            or positive unconverged count), 0 otherwise
        message: Human-readable description, empty on success
        error: The exception the status was built from, if any

    On any non-success status the output buffers are not meaningfully
    populated.
    """
    code: StatusCode
    info: int = 0
    message: str = ""
    error: PySVDError | None = None

    @property
    def ok(self) -> bool:
        return self.code == StatusCode.SUCCESS

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> DecompositionStatus:
        return cls(code=StatusCode.SUCCESS)

    @classmethod
    def from_exception(cls, error: PySVDError) -> DecompositionStatus:
        """
        Map a taxonomy exception onto its status.

        Raises:
            TypeError: If the exception is outside the four taxonomy errors
        """
        if isinstance(error, DimensionError):
            return cls(StatusCode.SIZE_MISMATCH, 0, str(error), error)
        if isinstance(error, WorkspaceAllocationError):
            return cls(StatusCode.OUT_OF_MEMORY, 0, str(error), error)
        if isinstance(error, KernelArgumentError):
            return cls(StatusCode.KERNEL_INVALID_ARGUMENT, -error.position, str(error), error)
        if isinstance(error, ConvergenceError):
            return cls(StatusCode.KERNEL_CONVERGENCE_FAILURE, error.unconverged, str(error), error)
        raise TypeError(f"{type(error).__name__} has no decomposition status")

    def raise_for_status(self) -> None:
        """Re-raise the underlying taxonomy error, if any."""
        if self.ok:
            return
        if self.error is not None:
            raise self.error
        raise _EXCEPTION_FOR_CODE[self.code](self)


def _size_mismatch(status: DecompositionStatus) -> PySVDError:
    return DimensionError(status.message)


def _out_of_memory(status: DecompositionStatus) -> PySVDError:
    return WorkspaceAllocationError(status.message)


def _invalid_argument(status: DecompositionStatus) -> PySVDError:
    return KernelArgumentError(status.message, position=abs(status.info))


def _no_convergence(status: DecompositionStatus) -> PySVDError:
    return ConvergenceError(status.message, unconverged=status.info)


_EXCEPTION_FOR_CODE = {
    StatusCode.SIZE_MISMATCH: _size_mismatch,
    StatusCode.OUT_OF_MEMORY: _out_of_memory,
    StatusCode.KERNEL_INVALID_ARGUMENT: _invalid_argument,
    StatusCode.KERNEL_CONVERGENCE_FAILURE: _no_convergence,
}
