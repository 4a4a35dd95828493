"""
Dense singular value decomposition over LAPACK.

This module drives the LAPACK routines dgesdd, dgesvd and zgesvd: it sizes
and owns their scratch memory, marshals caller buffers into column-major
form, and maps their status codes onto a small error taxonomy.

Public API:
    decompose_real_dc(a, u, s, vt)          -> DecompositionStatus
    decompose_real_classic(a, u, s, vt)     -> DecompositionStatus
    decompose_complex_classic(a, u, s, vt)  -> DecompositionStatus
    svd(a, method=...)                      -> SVDSolution

Example:
    >>> from pysvd.decomposition import svd
    >>> solution = svd(A)
    >>> print(solution.s)
    >>> print(solution.summary())
"""

from pysvd.decomposition.buffers import ConstMatrix, Matrix, ConstVector, Vector
from pysvd.decomposition.workspace import ScratchAllocator
from pysvd.decomposition.policy import WorkspacePolicy, DIVIDE_AND_CONQUER, CLASSIC
from pysvd.decomposition.kernels import LapackKernel, SingularVectorJob, DGESDD, DGESVD, ZGESVD
from pysvd.decomposition.drivers import (
    WorkspaceDriver,
    RealDivideAndConquerDriver,
    RealClassicDriver,
    ComplexClassicDriver,
)
from pysvd.decomposition.solution import SVDParams, SVDSolution
from pysvd.decomposition.solvers import (
    decompose_real_dc,
    decompose_real_classic,
    decompose_complex_classic,
    svd,
)

__all__ = [
    # Entry points
    "decompose_real_dc",
    "decompose_real_classic",
    "decompose_complex_classic",
    "svd",
    # Buffer descriptors
    "ConstMatrix",
    "Matrix",
    "ConstVector",
    "Vector",
    # Workspace
    "ScratchAllocator",
    "WorkspacePolicy",
    "DIVIDE_AND_CONQUER",
    "CLASSIC",
    # Kernels
    "LapackKernel",
    "SingularVectorJob",
    "DGESDD",
    "DGESVD",
    "ZGESVD",
    # Drivers
    "WorkspaceDriver",
    "RealDivideAndConquerDriver",
    "RealClassicDriver",
    "ComplexClassicDriver",
    # Solution
    "SVDParams",
    "SVDSolution",
]
