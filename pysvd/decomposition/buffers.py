"""
Buffer descriptors.

A descriptor gives the drivers a uniform way to receive a matrix or vector
without imposing a container type on the caller: a flat contiguous buffer
plus explicit dimensions. A matrix decomposes into (rows, cols, data), a
vector into (length, data).

Read-only descriptors (ConstMatrix, ConstVector) hand out non-writeable
views; mutable descriptors (Matrix, Vector) hand out views that write
through to the caller's buffer. Complex matrices are complex128 buffers,
which numpy lays out as interleaved (real, imag) double pairs; the
from_interleaved/to_interleaved helpers convert between the two.

No validation lives here. Length and shape checks belong to the driver,
where they surface as size-mismatch errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
from numpy.typing import NDArray

Order = Literal['C', 'F']


@dataclass(frozen=True)
class ConstMatrix:
    """
    Read-only matrix descriptor.

    Attributes:
        rows: Row count
        cols: Column count
        data: Flat buffer of rows * cols elements
        order: 'C' for row-major, 'F' for column-major storage
    """
    rows: int
    cols: int
    data: NDArray[Any]
    order: Order = 'C'

    @classmethod
    def from_array(cls, array: NDArray[Any]) -> ConstMatrix:
        """Describe an existing 2D array without copying when it is contiguous."""
        order: Order = 'F' if array.flags.f_contiguous and not array.flags.c_contiguous else 'C'
        return cls(
            rows=array.shape[0],
            cols=array.shape[1],
            data=array.ravel(order=order),
            order=order,
        )

    @classmethod
    def from_interleaved(
        cls,
        rows: int,
        cols: int,
        buffer: NDArray[np.float64],
        order: Order = 'C',
    ) -> ConstMatrix:
        """Describe a float64 buffer of 2 * rows * cols (re, im) pairs as complex."""
        return cls(rows=rows, cols=cols, data=buffer.view(np.complex128), order=order)

    @property
    def shape(self) -> tuple[int, int]:
        return (self.rows, self.cols)

    @property
    def is_complex(self) -> bool:
        return np.iscomplexobj(self.data)

    def view(self) -> NDArray[Any]:
        """2D read-only view over data."""
        arr = self.data.reshape(self.shape, order=self.order)
        arr = arr.view()
        arr.flags.writeable = False
        return arr

    def to_interleaved(self) -> NDArray[np.float64]:
        """Flat float64 view of a complex buffer as (re, im) pairs."""
        return self.data.view(np.float64)


@dataclass(frozen=True)
class Matrix(ConstMatrix):
    """
    Mutable matrix descriptor.

    view() returns a writeable 2D view; writes land in data.
    """

    @classmethod
    def from_array(cls, array: NDArray[Any]) -> Matrix:
        """
        Describe an existing contiguous 2D array.

        Raises:
            ValueError: If the array is not contiguous, since flattening it
                would copy and writes would never reach the caller
        """
        if not (array.flags.c_contiguous or array.flags.f_contiguous):
            raise ValueError(
                "mutable descriptor needs a contiguous array; flattening would copy"
            )
        return super().from_array(array)

    @classmethod
    def empty(
        cls,
        rows: int,
        cols: int,
        dtype: Any = np.float64,
        order: Order = 'F',
    ) -> Matrix:
        """Allocate a fresh zeroed buffer for an output matrix."""
        return cls(rows=rows, cols=cols, data=np.zeros(rows * cols, dtype=dtype), order=order)

    def view(self) -> NDArray[Any]:
        return self.data.reshape(self.shape, order=self.order)

    def as_const(self) -> ConstMatrix:
        return ConstMatrix(rows=self.rows, cols=self.cols, data=self.data, order=self.order)


@dataclass(frozen=True)
class ConstVector:
    """
    Read-only vector descriptor.

    Attributes:
        length: Element count
        data: Flat buffer of length elements
    """
    length: int
    data: NDArray[Any]

    @classmethod
    def from_array(cls, array: NDArray[Any]) -> ConstVector:
        return cls(length=array.shape[0], data=array)

    def view(self) -> NDArray[Any]:
        arr = self.data.view()
        arr.flags.writeable = False
        return arr


@dataclass(frozen=True)
class Vector(ConstVector):
    """Mutable vector descriptor, used for the singular values."""

    @classmethod
    def empty(cls, length: int, dtype: Any = np.float64) -> Vector:
        return cls(length=length, data=np.zeros(length, dtype=dtype))

    def view(self) -> NDArray[Any]:
        return self.data

    def as_const(self) -> ConstVector:
        return ConstVector(length=self.length, data=self.data)

