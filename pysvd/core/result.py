"""
Generic result container for PySVD computations.

The Result class provides a standardized envelope that every driver
returns. This enables shared tooling for timing and diagnostics while
letting each decomposition define its own parameter structure.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (routine, workspace sizes, retries)
    - timing is optional (don't burden unit tests)
    - provenance for reproducibility (library versions)
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


def _default_provenance() -> dict[str, Any]:
    """Versions of the packages that produced a result."""
    import numpy as np
    import scipy
    import pysvd
    return {
        'pysvd_version': pysvd.__version__,
        'numpy_version': np.__version__,
        'scipy_version': scipy.__version__,
    }


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for decompositions.

    Type Parameters:
        P: The parameter payload type

    Attributes:
        params: The payload (factors of the decomposition)
        info: Structured metadata (method, routine, workspace sizing)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the driver that produced this result
        warnings: Non-fatal issues encountered during computation
        provenance: Reproducibility metadata (library versions)

    Examples:
        >>> Result(
        ...     params=SVDParams(u=u, s=s, vt=vt),
        ...     info={'method': 'gesdd', 'lwork': 1200, 'retries': 0},
        ...     timing={'total_seconds': 0.01, 'compute': 0.008},
        ...     backend_name='lapack_dgesdd'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
    provenance: dict[str, Any] = field(default_factory=_default_provenance)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
