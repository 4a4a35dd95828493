"""
Decomposition test configuration.
"""

import pytest

from pysvd.decomposition.workspace import ScratchAllocator


@pytest.fixture
def allocator():
    """Fresh accounting allocator."""
    return ScratchAllocator()


@pytest.fixture
def wide_50x100(rng):
    """Rectangular input known to need more than dgesdd's raw workspace estimate."""
    return rng.standard_normal((50, 100))
