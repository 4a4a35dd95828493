"""
Core protocols for PySVD.

These define the structural interfaces of the two collaborators a driver
talks to: the external SVD kernel and the scratch allocator. We use
Protocol (structural typing) rather than ABC (nominal typing) so tests and
callers can substitute their own kernels and allocators without
inheriting from library classes.

Design Principles:
    - Minimal contracts: prescribe only what the driver calls
    - The kernel signature is fixed; variants leave unused slots as None
"""

from contextlib import AbstractContextManager
from typing import Protocol, Any, runtime_checkable

import numpy as np
from numpy.typing import NDArray


@runtime_checkable
class Kernel(Protocol):
    """
    A dense SVD entry point with the LAPACK ?gesvd / ?gesdd calling shape.

    Calling with lwork == -1 performs only a workspace-size query: the
    recommended length is written into work[0] and nothing else is touched.

    The kernel writes singular values into s, left vectors into u and
    right vectors (as rows, V^T or V^H) into vt, all column-major with the
    given leading dimensions. The matrix a is overwritten.
    """

    @property
    def name(self) -> str:
        """Routine name, e.g. 'dgesdd'."""
        ...

    @property
    def lwork_position(self) -> int:
        """1-based position of the workspace-length argument."""
        ...

    def __call__(
        self,
        job: Any,
        m: int,
        n: int,
        a: NDArray[Any],
        lda: int,
        s: NDArray[np.float64],
        u: NDArray[Any],
        ldu: int,
        vt: NDArray[Any],
        ldvt: int,
        work: NDArray[Any],
        lwork: int,
        iwork: NDArray[np.int32] | None = None,
        rwork: NDArray[np.float64] | None = None,
    ) -> int:
        """Run the routine and return its status code (0 on success)."""
        ...


@runtime_checkable
class Allocator(Protocol):
    """
    Source of scratch buffers for one invocation.

    acquire() is a context manager: entering allocates, leaving releases,
    on every exit path.
    """

    def acquire(
        self,
        name: str,
        shape: int | tuple[int, ...],
        dtype: Any,
        order: str = 'F',
    ) -> AbstractContextManager[NDArray[Any]]:
        ...
