"""
Tolerance tiers for numerical validation.

Defines the precision expected from a double-precision SVD:
- reconstruction: U @ diag(s) @ V^T against the input
- orthonormality: U^H U and V^H V against the identity

Used by the test suite and by SVDSolution.is_consistent(), which picks
the reconstruction tier from the condition number.
"""

import math
import sys
from dataclasses import dataclass


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Reconstruction of the input from its factors, relative to ||A||
RECONSTRUCTION_FP64 = ToleranceTier(
    rtol=1e-8,
    atol=1e-12,
    name='reconstruction_fp64',
    description='A == U diag(s) V^T to 1e-8 relative',
)

# Columns of U and rows of V^T are unit-norm and mutually orthogonal
ORTHONORMALITY_FP64 = ToleranceTier(
    rtol=0.0,
    atol=1e-10,
    name='orthonormality_fp64',
    description='U^H U == I and V^H V == I to 1e-10 absolute',
)

# Ill-conditioned or large inputs where error grows with max(m, n)
RECONSTRUCTION_FP64_LOOSE = ToleranceTier(
    rtol=1e-6,
    atol=1e-10,
    name='reconstruction_fp64_loose',
    description='reconstruction for ill-conditioned input',
)


# Condition number past which reconstruction error is no longer near eps * ||A||
ILL_CONDITIONED_FP64 = 1.0 / math.sqrt(sys.float_info.epsilon)


def select_tolerance(condition_number: float) -> ToleranceTier:
    """Reconstruction tier for a matrix with the given condition number."""
    if condition_number > ILL_CONDITIONED_FP64:
        return RECONSTRUCTION_FP64_LOOSE
    return RECONSTRUCTION_FP64
