"""
Core infrastructure for PySVD.

This module provides shared abstractions and utilities used by the SVD
drivers.

Key components:
    protocols: Kernel, Allocator protocols
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    status: StatusCode / DecompositionStatus (returned taxonomy)
    validation: Input validators
    compute: Timing, tolerances, precision
"""

from pysvd.core.protocols import Kernel, Allocator
from pysvd.core.result import Result
from pysvd.core.status import StatusCode, DecompositionStatus
from pysvd.core.exceptions import (
    PySVDError,
    ValidationError,
    DimensionError,
    WorkspaceAllocationError,
    NumericalError,
    KernelArgumentError,
    ConvergenceError,
)

__all__ = [
    # Protocols
    "Kernel",
    "Allocator",
    # Result
    "Result",
    # Status
    "StatusCode",
    "DecompositionStatus",
    # Exceptions
    "PySVDError",
    "ValidationError",
    "DimensionError",
    "WorkspaceAllocationError",
    "NumericalError",
    "KernelArgumentError",
    "ConvergenceError",
]
