"""
Scratch buffer allocation with guaranteed release.

Every buffer a driver needs (private input copy, work array, auxiliary
integer or real arrays, column-major staging for outputs) is acquired as a
context manager. Entering allocates; leaving releases, whichever way the
block is left. Drivers stack acquisitions in a contextlib.ExitStack, so a
failure at any step unwinds exactly what was acquired before it.

The allocator keeps simple accounting (live buffers, bytes, peak) so tests
can observe that a call performed no allocation or leaked nothing.
Allocators hold no process-wide state; a driver creates one per call unless
the caller passes its own.
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

import numpy as np
from numpy.typing import NDArray

from pysvd.core.exceptions import WorkspaceAllocationError


@dataclass(frozen=True)
class AllocationRecord:
    """One entry in the allocator's history."""
    name: str
    shape: tuple[int, ...]
    dtype: np.dtype
    nbytes: int


class ScratchAllocator:
    """
    Allocator of ephemeral column-major numpy buffers.

    Attributes:
        outstanding: Number of buffers acquired and not yet released
        bytes_outstanding: Bytes held by those buffers
        peak_bytes: Largest bytes_outstanding seen
        total_allocations: Successful allocations over the allocator's life
        history: AllocationRecord for every successful allocation
    """

    def __init__(self) -> None:
        self.outstanding = 0
        self.bytes_outstanding = 0
        self.peak_bytes = 0
        self.total_allocations = 0
        self.history: list[AllocationRecord] = []

    def allocate(
        self,
        name: str,
        shape: tuple[int, ...],
        dtype: np.dtype,
        order: str,
    ) -> NDArray[Any]:
        """
        Create the raw buffer. Subclasses override this to inject faults.

        Raises:
            MemoryError: If the request cannot be satisfied
        """
        return np.empty(shape, dtype=dtype, order=order)

    def release(self, name: str, buffer: NDArray[Any]) -> None:
        """Hook called once per buffer when its scope ends."""
        pass

    @contextmanager
    def acquire(
        self,
        name: str,
        shape: int | tuple[int, ...],
        dtype: Any,
        order: str = 'F',
    ) -> Iterator[NDArray[Any]]:
        """
        Acquire a scratch buffer for the duration of a with-block.

        Args:
            name: Buffer identifier used in errors and accounting
            shape: Buffer shape; every extent is clamped to at least 1 so
                the kernel always receives a valid pointer
            dtype: Element type
            order: Memory order, column-major by default

        Yields:
            Uninitialized ndarray

        Raises:
            WorkspaceAllocationError: If allocation fails
        """
        if isinstance(shape, (int, np.integer)):
            shape = (int(shape),)
        shape = tuple(max(int(extent), 1) for extent in shape)
        dtype = np.dtype(dtype)
        nbytes = math.prod(shape) * dtype.itemsize

        try:
            buffer = self.allocate(name, shape, dtype, order)
        except (MemoryError, ValueError) as e:
            # numpy raises ValueError for requests past the addressable size
            raise WorkspaceAllocationError(
                f"{name}: cannot allocate {nbytes} bytes for shape {shape} ({dtype}): {e}",
                buffer_name=name,
                requested_bytes=nbytes,
            ) from e

        self.outstanding += 1
        self.total_allocations += 1
        self.bytes_outstanding += nbytes
        self.peak_bytes = max(self.peak_bytes, self.bytes_outstanding)
        self.history.append(AllocationRecord(name, shape, dtype, nbytes))
        try:
            yield buffer
        finally:
            self.outstanding -= 1
            self.bytes_outstanding -= nbytes
            self.release(name, buffer)
            del buffer
