"""
Workspace-query-and-invoke drivers.

One driver per kernel variant:

    RealDivideAndConquerDriver: dgesdd, integer work array of 8 * min(m, n)
    RealClassicDriver: dgesvd
    ComplexClassicDriver: zgesvd, real work array of 5 * min(m, n)

Every variant runs the same protocol:

    1. Shape and dtype check: U is m x m, s has min(m, n) entries, V^T is
       n x n, and the input converts to the kernel dtype without loss.
       Fails before anything is allocated.
    2. Private column-major copy of the input. The kernel overwrites its
       matrix argument; the caller's input is never written.
    3. Allocation of the variant's auxiliary arrays, which depend only on
       min(m, n).
    4. Workspace query: the kernel is called with lwork = -1 and a
       one-element slot that receives the recommended length.
    5. Sizing and allocation of the work array per the WorkspacePolicy.
    6. Execution with both singular-vector factors computed in full.
    7. Status translation: negative info is a rejected argument, positive
       info is a convergence failure.
    8. Release of every scratch buffer, on every exit path, by scope.

Outputs that are already column-major contiguous are written by the kernel
in place. Any other output is routed through a column-major staging buffer
and copied back after a successful run.
"""

from __future__ import annotations

import warnings
from contextlib import ExitStack
from typing import Any, ClassVar

import numpy as np
from numpy.typing import NDArray

from pysvd.core.exceptions import (
    ConvergenceError,
    KernelArgumentError,
    WorkspaceAllocationError,
)
from pysvd.core.protocols import Kernel, Allocator
from pysvd.core.result import Result
from pysvd.core.compute.timing import PhaseTimer
from pysvd.core.validation import check_castable, check_shape, check_1d, check_2d
from pysvd.decomposition.kernels import DGESDD, DGESVD, ZGESVD, SingularVectorJob
from pysvd.decomposition.policy import (
    CLASSIC,
    COMPLEX_RWORK_PER_Q,
    DC_IWORK_PER_Q,
    DIVIDE_AND_CONQUER,
    WorkspacePolicy,
)
from pysvd.decomposition.solution import SVDParams
from pysvd.decomposition.workspace import ScratchAllocator

# LAPACK integers are 32-bit in the routines SciPy exports
_LAPACK_INT_MAX = 2**31 - 1


class WorkspaceDriver:
    """
    Shared driver for the LAPACK dense SVD routines.

    Subclasses fix the element type, the default kernel and policy, and
    which auxiliary arrays the routine needs.

    Args:
        kernel: Routine to call; defaults to the variant's LAPACK routine
        policy: Workspace sizing; defaults to the variant's preset
    """

    method: ClassVar[str]
    dtype: ClassVar[np.dtype]
    default_kernel: ClassVar[Kernel]
    default_policy: ClassVar[WorkspacePolicy]
    iwork_per_q: ClassVar[int] = 0
    rwork_per_q: ClassVar[int] = 0

    def __init__(
        self,
        kernel: Kernel | None = None,
        policy: WorkspacePolicy | None = None,
    ):
        self.kernel = kernel if kernel is not None else self.default_kernel
        self.policy = policy if policy is not None else self.default_policy

    @property
    def name(self) -> str:
        return f'lapack_{self.kernel.name}'

    def decompose(
        self,
        a: NDArray[Any],
        u: NDArray[Any],
        s: NDArray[np.float64],
        vt: NDArray[Any],
        *,
        allocator: Allocator | None = None,
    ) -> Result[SVDParams]:
        """
        Decompose a into u @ diag(s) @ vt, writing into the given outputs.

        Args:
            a: Input matrix (m x n); read, never written
            u: Output for the left singular vectors (m x m)
            s: Output for the singular values (min(m, n),), non-increasing
            vt: Output for the right singular vectors as rows (n x n)
            allocator: Source of scratch buffers; a fresh ScratchAllocator
                when None

        Returns:
            Result whose params reference the output arrays

        Raises:
            ValidationError: If a cannot be converted to the kernel dtype
                without loss (nothing allocated)
            DimensionError: If an output has the wrong shape (nothing allocated)
            WorkspaceAllocationError: If a scratch buffer cannot be allocated
            KernelArgumentError: If the kernel rejects an argument
            ConvergenceError: If the kernel fails to converge
        """
        check_2d(a, 'a')
        check_castable(a, self.dtype, 'a')
        m, n = a.shape
        q = min(m, n)
        check_2d(u, 'u')
        check_1d(s, 's')
        check_2d(vt, 'vt')
        check_shape(u, (m, m), 'u')
        check_shape(s, (q,), 's')
        check_shape(vt, (n, n), 'vt')

        if allocator is None:
            allocator = ScratchAllocator()

        timer = PhaseTimer()
        run_warnings: list[str] = []
        job = SingularVectorJob.ALL
        lda, ldu, ldvt = max(m, 1), max(m, 1), max(n, 1)

        with ExitStack() as stack:
            with timer.phase('copy_input'):
                a_work = stack.enter_context(
                    allocator.acquire('input_copy', (m, n), self.dtype)
                )
                np.copyto(a_work[:m, :n], a, casting='safe')

            staged: list[tuple[NDArray[Any], NDArray[Any]]] = []
            u_k = self._kernel_output(stack, allocator, u, 'u_staging', staged)
            s_k = self._kernel_output(stack, allocator, s, 's_staging', staged)
            vt_k = self._kernel_output(stack, allocator, vt, 'vt_staging', staged)

            # Auxiliary arrays depend only on q; the query receives them too
            iwork = None
            rwork = None
            if self.iwork_per_q:
                iwork = stack.enter_context(
                    allocator.acquire('iwork', self.iwork_per_q * q, np.int32)
                )
            if self.rwork_per_q:
                rwork = stack.enter_context(
                    allocator.acquire('rwork', self.rwork_per_q * q, np.float64)
                )

            with timer.phase('workspace_query'):
                with allocator.acquire('workspace_query', 1, self.dtype) as slot:
                    info = self.kernel(
                        job, m, n, a_work, lda, s_k, u_k, ldu, vt_k, ldvt, slot, -1,
                        iwork, rwork,
                    )
                    self._translate(info)
                    query_lwork = float(np.real(slot[0]))

            lwork = self.policy.size_from_query(query_lwork)

            retries = 0
            while True:
                self._check_lwork(lwork)
                with allocator.acquire('work', lwork, self.dtype) as work:
                    with timer.phase('compute'):
                        info = self.kernel(
                            job, m, n, a_work, lda, s_k, u_k, ldu, vt_k, ldvt,
                            work, lwork, iwork, rwork,
                        )
                if info == -self.kernel.lwork_position and retries < self.policy.max_retries:
                    retries += 1
                    grown = self.policy.grow(lwork)
                    message = (
                        f"{self.kernel.name} rejected lwork={lwork} "
                        f"(query recommended {query_lwork:g}); retrying with lwork={grown}"
                    )
                    warnings.warn(message, RuntimeWarning, stacklevel=2)
                    run_warnings.append(message)
                    lwork = grown
                    # A rejected call may have touched the private copy
                    np.copyto(a_work[:m, :n], a, casting='safe')
                    continue
                break

            self._translate(info)

            for out, buffer in staged:
                out[...] = buffer[tuple(slice(0, extent) for extent in out.shape)]

        timer.stop()

        info_dict: dict[str, Any] = {
            'method': self.method,
            'routine': self.kernel.name,
            'policy': self.policy.name,
            'shape': (m, n),
            'query_lwork': query_lwork,
            'lwork': lwork,
            'retries': retries,
            'kernel_runs': timer.entries('compute'),
            'staged_outputs': len(staged),
        }
        return Result(
            params=SVDParams(u=u, s=s, vt=vt),
            info=info_dict,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(run_warnings),
        )

    def _kernel_output(
        self,
        stack: ExitStack,
        allocator: Allocator,
        out: NDArray[Any],
        name: str,
        staged: list[tuple[NDArray[Any], NDArray[Any]]],
    ) -> NDArray[Any]:
        """Buffer the kernel writes for one output: the output itself if column-major."""
        if out.flags.f_contiguous:
            return out
        buffer = stack.enter_context(allocator.acquire(name, out.shape, out.dtype))
        staged.append((out, buffer))
        return buffer

    def _check_lwork(self, lwork: int) -> None:
        if lwork > _LAPACK_INT_MAX:
            raise WorkspaceAllocationError(
                f"work: {self.kernel.name} needs lwork={lwork}, "
                f"beyond the 32-bit LAPACK limit {_LAPACK_INT_MAX}",
                buffer_name='work',
                requested_bytes=lwork * np.dtype(self.dtype).itemsize,
            )

    def _translate(self, info: int) -> None:
        """Map a kernel status onto the taxonomy."""
        if info < 0:
            raise KernelArgumentError(
                f"{self.kernel.name}: argument {-info} had an illegal value",
                position=-info,
                routine=self.kernel.name,
            )
        if info > 0:
            raise ConvergenceError(
                f"{self.kernel.name}: {info} superdiagonals of the bidiagonal form "
                f"did not converge to zero",
                unconverged=info,
                routine=self.kernel.name,
            )


class RealDivideAndConquerDriver(WorkspaceDriver):
    """Real SVD via divide-and-conquer (dgesdd)."""
    method = 'gesdd'
    dtype = np.dtype(np.float64)
    default_kernel = DGESDD
    default_policy = DIVIDE_AND_CONQUER
    iwork_per_q = DC_IWORK_PER_Q


class RealClassicDriver(WorkspaceDriver):
    """Real SVD via bidiagonal QR iteration (dgesvd)."""
    method = 'gesvd'
    dtype = np.dtype(np.float64)
    default_kernel = DGESVD
    default_policy = CLASSIC


class ComplexClassicDriver(WorkspaceDriver):
    """Complex SVD via bidiagonal QR iteration (zgesvd). V^T holds V^H."""
    method = 'gesvd'
    dtype = np.dtype(np.complex128)
    default_kernel = ZGESVD
    default_policy = CLASSIC
    rwork_per_q = COMPLEX_RWORK_PER_Q
