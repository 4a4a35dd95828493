"""
Workspace sizing policy.

The kernel answers a size query with a real-valued recommendation. A
policy turns that into the integer length actually allocated, and says
what to do if the kernel still rejects it.

Presets are the single source of truth for per-variant sizing:

    DIVIDE_AND_CONQUER: ceil(recommendation) * 2. dgesdd's own estimate
        has been observed to under-report for rectangular inputs (a 50 x 100
        matrix is rejected with the raw estimate). The factor of two is a
        workaround for that, not a guarantee; verify it against the LAPACK
        actually linked.
    CLASSIC: ceil(recommendation), trusted as-is.

Both presets allow one retry with a doubled workspace when the kernel
reports the workspace-length argument as invalid.
"""

import math
from dataclasses import dataclass

# Auxiliary buffer sizes, in elements per min(m, n)
DC_IWORK_PER_Q = 8
COMPLEX_RWORK_PER_Q = 5


@dataclass(frozen=True)
class WorkspacePolicy:
    """
    How to size the kernel's work buffer.

    Attributes:
        name: Identifier reported in result info
        safety_factor: Multiplier applied to the ceiling of the recommendation
        max_retries: Re-runs allowed after a workspace-length rejection
        growth_factor: Multiplier applied to the workspace on each retry
    """
    name: str
    safety_factor: int = 1
    max_retries: int = 1
    growth_factor: int = 2

    def __post_init__(self) -> None:
        if self.safety_factor < 1:
            raise ValueError(f"safety_factor must be >= 1, got {self.safety_factor}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.growth_factor < 2:
            raise ValueError(f"growth_factor must be >= 2, got {self.growth_factor}")

    def size_from_query(self, recommendation: float) -> int:
        """Integer workspace length for a kernel recommendation (at least 1)."""
        return max(int(math.ceil(recommendation)) * self.safety_factor, 1)

    def grow(self, lwork: int) -> int:
        """Workspace length for the next retry."""
        return lwork * self.growth_factor


DIVIDE_AND_CONQUER = WorkspacePolicy(name='divide_and_conquer', safety_factor=2)

CLASSIC = WorkspacePolicy(name='classic', safety_factor=1)
