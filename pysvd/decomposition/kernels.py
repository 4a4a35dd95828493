"""
LAPACK SVD kernels.

Adapters over the three dense SVD routines this package drives:

    DGESDD: real, divide-and-conquer (needs an integer work array)
    DGESVD: real, classic bidiagonal QR
    ZGESVD: complex, classic bidiagonal QR (needs a real work array)

The routines are reached through the function table SciPy exports in
scipy.linalg.cython_lapack and are called with ctypes, so the work arrays
the driver allocates are the ones LAPACK actually uses, and a call with
lwork == -1 is a genuine workspace query. ctypes releases the GIL for the
duration of each call. Thread safety of the routines themselves is a
property of the LAPACK SciPy was built against.

Raw job characters stay inside this module; callers select a mode through
SingularVectorJob.
"""

from __future__ import annotations

import ctypes
import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import cython_lapack


class SingularVectorJob(Enum):
    """
    Which singular vectors the kernel computes.

    Only full computation of both factors is supported: U is m x m and
    V^T is n x n.
    """
    ALL = 'all'


_JOB_CHARS = {
    SingularVectorJob.ALL: b'A',
}

_c_int_p = ctypes.POINTER(ctypes.c_int)

_capsule_get_name = ctypes.PYFUNCTYPE(ctypes.c_char_p, ctypes.py_object)(
    ('PyCapsule_GetName', ctypes.pythonapi)
)
_capsule_get_pointer = ctypes.PYFUNCTYPE(ctypes.c_void_p, ctypes.py_object, ctypes.c_char_p)(
    ('PyCapsule_GetPointer', ctypes.pythonapi)
)


def _routine_address(name: str) -> int:
    """Raw address of a LAPACK routine exported by scipy.linalg.cython_lapack."""
    try:
        capsule = cython_lapack.__pyx_capi__[name]
    except KeyError as e:
        raise RuntimeError(f"scipy.linalg.cython_lapack does not export {name!r}") from e
    return _capsule_get_pointer(capsule, _capsule_get_name(capsule))


@functools.lru_cache(maxsize=None)
def _bind(name: str, argtypes: tuple[Any, ...]) -> Any:
    prototype = ctypes.CFUNCTYPE(None, *argtypes)
    return prototype(_routine_address(name))


def _pointer(array: NDArray[Any], dtype: np.dtype, name: str) -> ctypes.c_void_p:
    if array.dtype != dtype:
        raise TypeError(f"{name}: kernel expects {dtype}, got {array.dtype}")
    if not array.flags.f_contiguous:
        raise TypeError(f"{name}: kernel expects a column-major contiguous buffer")
    return ctypes.c_void_p(array.ctypes.data)


def _int(value: int) -> Any:
    return ctypes.byref(ctypes.c_int(value))


@dataclass(frozen=True)
class LapackKernel:
    """
    One LAPACK ?gesdd / ?gesvd entry point.

    Attributes:
        name: Routine name in the LAPACK table
        dtype: Element type of a, u, vt and work
        job_slots: Number of leading job arguments (1 for ?gesdd, 2 for ?gesvd)
        uses_iwork: Routine takes an integer work array after lwork
        uses_rwork: Routine takes a real work array after lwork
    """
    name: str
    dtype: np.dtype
    job_slots: int
    uses_iwork: bool = False
    uses_rwork: bool = False

    @property
    def lwork_position(self) -> int:
        return self.job_slots + 11

    @property
    def is_complex(self) -> bool:
        return self.dtype.kind == 'c'

    def _argtypes(self) -> tuple[Any, ...]:
        argtypes: list[Any] = [ctypes.c_char_p] * self.job_slots
        argtypes += [
            _c_int_p, _c_int_p,                # m, n
            ctypes.c_void_p, _c_int_p,         # a, lda
            ctypes.c_void_p,                   # s
            ctypes.c_void_p, _c_int_p,         # u, ldu
            ctypes.c_void_p, _c_int_p,         # vt, ldvt
            ctypes.c_void_p, _c_int_p,         # work, lwork
        ]
        if self.uses_iwork:
            argtypes.append(ctypes.c_void_p)
        if self.uses_rwork:
            argtypes.append(ctypes.c_void_p)
        argtypes.append(_c_int_p)              # info
        return tuple(argtypes)

    def __call__(
        self,
        job: SingularVectorJob,
        m: int,
        n: int,
        a: NDArray[Any],
        lda: int,
        s: NDArray[np.float64],
        u: NDArray[Any],
        ldu: int,
        vt: NDArray[Any],
        ldvt: int,
        work: NDArray[Any],
        lwork: int,
        iwork: NDArray[np.int32] | None = None,
        rwork: NDArray[np.float64] | None = None,
    ) -> int:
        """
        Call the routine and return its info code.

        With lwork == -1 only the optimal workspace length is computed and
        stored in work[0]. The auxiliary array the routine takes (iwork for
        dgesdd, rwork for zgesvd) must be passed in both modes.

        Raises:
            TypeError: If a buffer has the wrong dtype or layout
            ValueError: If the routine's auxiliary array is missing
        """
        args: list[Any] = [_JOB_CHARS[job]] * self.job_slots
        args += [
            _int(m), _int(n),
            _pointer(a, self.dtype, 'a'), _int(lda),
            _pointer(s, np.dtype(np.float64), 's'),
            _pointer(u, self.dtype, 'u'), _int(ldu),
            _pointer(vt, self.dtype, 'vt'), _int(ldvt),
            _pointer(work, self.dtype, 'work'), _int(lwork),
        ]
        if self.uses_iwork:
            if iwork is None:
                raise ValueError(f"{self.name}: iwork is required")
            args.append(_pointer(iwork, np.dtype(np.int32), 'iwork'))
        if self.uses_rwork:
            if rwork is None:
                raise ValueError(f"{self.name}: rwork is required")
            args.append(_pointer(rwork, np.dtype(np.float64), 'rwork'))

        info = ctypes.c_int(0)
        args.append(ctypes.byref(info))
        _bind(self.name, self._argtypes())(*args)
        return int(info.value)


DGESDD = LapackKernel(name='dgesdd', dtype=np.dtype(np.float64), job_slots=1, uses_iwork=True)

DGESVD = LapackKernel(name='dgesvd', dtype=np.dtype(np.float64), job_slots=2)

ZGESVD = LapackKernel(name='zgesvd', dtype=np.dtype(np.complex128), job_slots=2, uses_rwork=True)
