"""
PySVD: workspace-managed dense SVD over LAPACK.

Sizes, allocates and releases the scratch memory of the LAPACK SVD
routines, marshals matrices into their column-major conventions, and turns
their status codes into a uniform error taxonomy.

Submodules:
    decomposition: Drivers, buffer descriptors and public entry points
    core: Exceptions, status codes, validation, result envelope
"""

__version__ = "0.1.0"

from pysvd import core
from pysvd import decomposition
from pysvd.core.status import StatusCode, DecompositionStatus
from pysvd.decomposition.solvers import (
    decompose_real_dc,
    decompose_real_classic,
    decompose_complex_classic,
    svd,
)

__all__ = [
    "__version__",
    "core",
    "decomposition",
    "StatusCode",
    "DecompositionStatus",
    "decompose_real_dc",
    "decompose_real_classic",
    "decompose_complex_classic",
    "svd",
]
