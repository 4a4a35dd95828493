"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def real_matrix(rng):
    """Dense rectangular real matrix (tall)."""
    return rng.standard_normal((7, 4))


@pytest.fixture
def complex_matrix(rng):
    """Dense rectangular complex matrix (wide)."""
    return rng.standard_normal((3, 6)) + 1j * rng.standard_normal((3, 6))


@pytest.fixture
def partial_identity():
    """2 x 3 matrix [[1, 0, 0], [0, 1, 0]]: singular values [1, 1]."""
    return np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
