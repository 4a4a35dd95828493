"""
Shared compute infrastructure for PySVD.

This module provides phase timing, tolerance tiers and precision
helpers shared by the drivers and the solution checks.

Submodules:
    timing: Per-phase timing of a decomposition call
    tolerances: Tolerance tiers for numerical checks
    precision: Machine epsilon and rank thresholds
"""

from pysvd.core.compute.timing import PhaseTimer
from pysvd.core.compute.tolerances import (
    ToleranceTier,
    RECONSTRUCTION_FP64,
    RECONSTRUCTION_FP64_LOOSE,
    ORTHONORMALITY_FP64,
    select_tolerance,
)

__all__ = [
    # Timing
    "PhaseTimer",
    # Tolerances
    "ToleranceTier",
    "RECONSTRUCTION_FP64",
    "RECONSTRUCTION_FP64_LOOSE",
    "ORTHONORMALITY_FP64",
    "select_tolerance",
]
