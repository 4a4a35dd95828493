"""
SVD solution types.

Contains the parameter payload and user-facing solution wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import numpy as np
from numpy.typing import NDArray

from pysvd.core.result import Result
from pysvd.core.compute.precision import condition_number, default_rank_tolerance
from pysvd.core.compute.tolerances import (
    ORTHONORMALITY_FP64,
    ToleranceTier,
    select_tolerance,
)


@dataclass(frozen=True)
class SVDParams:
    """
    Parameter payload for a full SVD.

    a == u @ diag(s, padded to m x n) @ vt

    Attributes:
        u: Left singular vectors as columns (m x m)
        s: Singular values, non-increasing (min(m, n),)
        vt: Right singular vectors as rows (n x n); V^H for complex input
    """
    u: NDArray[np.inexact[Any]]
    s: NDArray[np.floating[Any]]
    vt: NDArray[np.inexact[Any]]


@dataclass
class SVDSolution:
    """
    User-facing SVD results.

    Wraps the driver Result and provides convenient accessors.
    """
    _result: Result[SVDParams]

    @property
    def u(self) -> NDArray[np.inexact[Any]]:
        return self._result.params.u

    @property
    def s(self) -> NDArray[np.floating[Any]]:
        return self._result.params.s

    @property
    def vt(self) -> NDArray[np.inexact[Any]]:
        return self._result.params.vt

    @property
    def v(self) -> NDArray[np.inexact[Any]]:
        """Right singular vectors as columns (conjugate transpose of vt)."""
        return self.vt.conj().T

    @property
    def shape(self) -> tuple[int, int]:
        return (self.u.shape[0], self.vt.shape[0])

    @property
    def condition_number(self) -> float:
        return condition_number(self.s)

    def rank(self, tol: float | None = None) -> int:
        """
        Numerical rank: count of singular values above tol.

        Args:
            tol: Threshold; defaults to s.max() * max(m, n) * eps
        """
        if tol is None:
            tol = default_rank_tolerance(self.s, self.shape)
        return int(np.sum(self.s > tol))

    def sigma(self) -> NDArray[np.floating[Any]]:
        """The m x n diagonal factor."""
        m, n = self.shape
        sigma = np.zeros((m, n), dtype=np.float64)
        q = self.s.shape[0]
        sigma[np.arange(q), np.arange(q)] = self.s
        return sigma

    def reconstruct(self) -> NDArray[np.inexact[Any]]:
        """u @ sigma @ vt."""
        q = self.s.shape[0]
        return (self.u[:, :q] * self.s) @ self.vt[:q, :]

    def is_consistent(
        self,
        a: NDArray[np.inexact[Any]],
        reconstruction: ToleranceTier | None = None,
        orthonormality: ToleranceTier = ORTHONORMALITY_FP64,
    ) -> bool:
        """
        Check the factors against the input they were computed from.

        True when u and v are orthonormal, s is non-increasing and
        non-negative, and the factors reproduce a within tolerance.
        Without an explicit reconstruction tier, ill-conditioned factors
        are held to the loose tier.
        """
        if reconstruction is None:
            reconstruction = select_tolerance(self.condition_number)
        m, n = self.shape
        if self.s.size and (np.any(self.s < 0) or np.any(np.diff(self.s) > 0)):
            return False
        eye_m = np.eye(m)
        eye_n = np.eye(n)
        if not np.allclose(self.u.conj().T @ self.u, eye_m,
                           rtol=orthonormality.rtol, atol=orthonormality.atol):
            return False
        if not np.allclose(self.vt @ self.vt.conj().T, eye_n,
                           rtol=orthonormality.rtol, atol=orthonormality.atol):
            return False
        scale = max(float(np.linalg.norm(a)), 1.0)
        error = float(np.linalg.norm(self.reconstruct() - a))
        return error <= reconstruction.atol + reconstruction.rtol * scale

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Generate a short text summary."""
        m, n = self.shape
        lines = [
            "Singular Value Decomposition",
            "=" * 60,
            f"Shape: {m} x {n}",
            f"Rank: {self.rank()}",
            f"Condition number: {self.condition_number:.6g}",
            f"Workspace: lwork={self.info.get('lwork')} "
            f"(query {self.info.get('query_lwork')}, retries {self.info.get('retries')})",
            "",
            "Singular values:",
            "-" * 60,
        ]
        for i, value in enumerate(self.s[:10]):
            lines.append(f"  s[{i}]: {value:14.6g}")
        if self.s.shape[0] > 10:
            lines.append(f"  ... ({self.s.shape[0] - 10} more)")
        lines.append("-" * 60)
        lines.append(f"Backend: {self.backend_name}")
        if self.timing:
            lines.append(f"Time: {self.timing['total_seconds']:.4f}s")
        for warning in self.warnings:
            lines.append(f"Warning: {warning}")
        return "\n".join(lines)
