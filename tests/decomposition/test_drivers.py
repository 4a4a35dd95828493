"""
Tests for the workspace-query-and-invoke drivers.

Runs the three LAPACK variants end to end and uses FakeKernel for the
status paths the real routines are not provoked into:

    - factor properties: orthonormality, reconstruction, ordering
    - the 2x3, 1x1 and 50x100 scenarios
    - shape checks before any allocation
    - workspace sizing, auxiliary buffers, staging of row-major outputs
    - status translation and the workspace-length retry
"""

import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from pysvd.core.exceptions import (
    ConvergenceError,
    DimensionError,
    KernelArgumentError,
    ValidationError,
    WorkspaceAllocationError,
)
from pysvd.decomposition.drivers import (
    ComplexClassicDriver,
    RealClassicDriver,
    RealDivideAndConquerDriver,
)
from pysvd.decomposition.kernels import SingularVectorJob
from pysvd.decomposition.policy import WorkspacePolicy

from svd_helpers import FakeKernel, FaultInjectingAllocator, assert_valid_svd, outputs_for

REAL_DRIVERS = [RealDivideAndConquerDriver, RealClassicDriver]
ALL_DRIVERS = REAL_DRIVERS + [ComplexClassicDriver]
SHAPES = [(1, 1), (1, 5), (5, 1), (4, 4), (7, 3), (3, 7), (20, 12)]


def _input(rng, driver_cls, shape):
    a = rng.standard_normal(shape)
    if driver_cls.dtype.kind == 'c':
        a = a + 1j * rng.standard_normal(shape)
    return a


# ═══════════════════════════════════════════════════════════════════════
# Factor properties
# ═══════════════════════════════════════════════════════════════════════


class TestFactorProperties:
    """Every variant produces a valid full SVD."""

    @pytest.mark.parametrize("driver_cls", ALL_DRIVERS, ids=lambda d: d.__name__)
    @pytest.mark.parametrize("shape", SHAPES, ids=str)
    def test_valid_decomposition(self, rng, driver_cls, shape):
        a = _input(rng, driver_cls, shape)
        u, s, vt = outputs_for(*shape, dtype=driver_cls.dtype)
        driver_cls().decompose(a, u, s, vt)
        assert_valid_svd(a, u, s, vt)

    @pytest.mark.parametrize("driver_cls", ALL_DRIVERS, ids=lambda d: d.__name__)
    def test_singular_values_match_numpy(self, rng, driver_cls):
        a = _input(rng, driver_cls, (9, 6))
        u, s, vt = outputs_for(9, 6, dtype=driver_cls.dtype)
        driver_cls().decompose(a, u, s, vt)
        np.testing.assert_allclose(s, np.linalg.svd(a, compute_uv=False), rtol=1e-10)

    def test_rank_deficient(self):
        a = np.outer([1.0, 2.0, 3.0], [1.0, -1.0, 0.5, 2.0])
        u, s, vt = outputs_for(3, 4)
        RealDivideAndConquerDriver().decompose(a, u, s, vt)
        assert_valid_svd(a, u, s, vt)
        assert s[0] > 1.0
        np.testing.assert_allclose(s[1:], 0.0, atol=1e-12)

    def test_zero_matrix(self):
        a = np.zeros((3, 2))
        u, s, vt = outputs_for(3, 2)
        RealClassicDriver().decompose(a, u, s, vt)
        np.testing.assert_array_equal(s, [0.0, 0.0])
        assert_valid_svd(a, u, s, vt)

    def test_real_input_to_complex_driver(self, real_matrix):
        u, s, vt = outputs_for(7, 4, dtype=np.complex128)
        ComplexClassicDriver().decompose(real_matrix, u, s, vt)
        assert_valid_svd(real_matrix, u, s, vt)


# ═══════════════════════════════════════════════════════════════════════
# Concrete scenarios
# ═══════════════════════════════════════════════════════════════════════


class TestScenarios:
    """Known inputs with known factors."""

    @pytest.mark.parametrize("driver_cls", ALL_DRIVERS, ids=lambda d: d.__name__)
    def test_partial_identity(self, driver_cls, partial_identity):
        u, s, vt = outputs_for(2, 3, dtype=driver_cls.dtype)
        driver_cls().decompose(partial_identity, u, s, vt)
        np.testing.assert_allclose(s, [1.0, 1.0], atol=1e-12)
        # Tied singular values: U is only fixed up to a rotation matched by V^T
        np.testing.assert_allclose(u @ vt[:2, :], partial_identity, atol=1e-12)
        np.testing.assert_allclose(vt[:2, 2], 0.0, atol=1e-12)
        np.testing.assert_allclose(abs(vt[2, 2]), 1.0, atol=1e-12)
        np.testing.assert_allclose(u.conj().T @ u, np.eye(2), atol=1e-12)

    @pytest.mark.parametrize("driver_cls", ALL_DRIVERS, ids=lambda d: d.__name__)
    def test_one_by_one(self, driver_cls):
        a = np.array([[5.0]])
        u, s, vt = outputs_for(1, 1, dtype=driver_cls.dtype)
        driver_cls().decompose(a, u, s, vt)
        np.testing.assert_allclose(s, [5.0])
        np.testing.assert_allclose(abs(u), [[1.0]])
        np.testing.assert_allclose(abs(vt), [[1.0]])
        np.testing.assert_allclose(u * s * vt, a)

    def test_wide_divide_and_conquer(self, wide_50x100):
        u, s, vt = outputs_for(50, 100)
        result = RealDivideAndConquerDriver().decompose(wide_50x100, u, s, vt)
        assert result.info['retries'] == 0
        assert_valid_svd(wide_50x100, u, s, vt)

    def test_tall_divide_and_conquer(self, wide_50x100):
        a = wide_50x100.T.copy()
        u, s, vt = outputs_for(100, 50)
        RealDivideAndConquerDriver().decompose(a, u, s, vt)
        assert_valid_svd(a, u, s, vt)


# ═══════════════════════════════════════════════════════════════════════
# Shape checks
# ═══════════════════════════════════════════════════════════════════════


class TestShapeChecks:
    """Wrong output sizes fail before anything is allocated."""

    @pytest.mark.parametrize("bad", ['u', 's', 'vt'])
    def test_size_mismatch_allocates_nothing(self, allocator, bad):
        a = np.ones((2, 3))
        outputs = dict(zip(('u', 's', 'vt'), outputs_for(2, 3)))
        outputs[bad] = {
            'u': np.zeros((3, 3), order='F'),
            's': np.zeros(3),
            'vt': np.zeros((2, 2), order='F'),
        }[bad]
        with pytest.raises(DimensionError, match=bad):
            RealClassicDriver().decompose(a, **outputs, allocator=allocator)
        assert allocator.total_allocations == 0

    def test_non_matrix_input(self, allocator):
        with pytest.raises(DimensionError, match="expected 2D"):
            RealClassicDriver().decompose(np.ones(3), *outputs_for(3, 1), allocator=allocator)
        assert allocator.total_allocations == 0

    def test_singular_values_must_be_vector(self, allocator):
        u, _, vt = outputs_for(2, 2)
        with pytest.raises(DimensionError, match="s: expected 1D"):
            RealClassicDriver().decompose(np.eye(2), u, np.zeros((2, 1)), vt, allocator=allocator)
        assert allocator.total_allocations == 0


# ═══════════════════════════════════════════════════════════════════════
# Buffers and workspace
# ═══════════════════════════════════════════════════════════════════════


class TestWorkspace:
    """Sizing, auxiliary arrays and scratch lifetime."""

    def test_dc_doubles_query(self, allocator, real_matrix):
        result = RealDivideAndConquerDriver().decompose(
            real_matrix, *outputs_for(7, 4), allocator=allocator,
        )
        assert result.info['lwork'] == 2 * math.ceil(result.info['query_lwork'])
        work = [r for r in allocator.history if r.name == 'work']
        assert work[0].shape == (result.info['lwork'],)

    def test_classic_uses_query(self, real_matrix):
        result = RealClassicDriver().decompose(real_matrix, *outputs_for(7, 4))
        assert result.info['lwork'] == math.ceil(result.info['query_lwork'])

    def test_dc_iwork(self, allocator, real_matrix):
        RealDivideAndConquerDriver().decompose(real_matrix, *outputs_for(7, 4), allocator=allocator)
        iwork = [r for r in allocator.history if r.name == 'iwork']
        assert iwork[0].shape == (32,)
        assert iwork[0].dtype == np.int32

    def test_complex_rwork_and_work(self, allocator, complex_matrix):
        ComplexClassicDriver().decompose(
            complex_matrix, *outputs_for(3, 6, dtype=np.complex128), allocator=allocator,
        )
        by_name = {r.name: r for r in allocator.history}
        assert by_name['rwork'].shape == (15,)
        assert by_name['rwork'].dtype == np.float64
        assert by_name['work'].dtype == np.complex128
        assert 'iwork' not in by_name

    def test_classic_has_no_auxiliary(self, allocator, real_matrix):
        RealClassicDriver().decompose(real_matrix, *outputs_for(7, 4), allocator=allocator)
        names = [r.name for r in allocator.history]
        assert names == ['input_copy', 'workspace_query', 'work']

    def test_everything_released(self, allocator, real_matrix):
        RealDivideAndConquerDriver().decompose(real_matrix, *outputs_for(7, 4), allocator=allocator)
        assert allocator.outstanding == 0
        assert allocator.bytes_outstanding == 0
        assert allocator.peak_bytes > 0

    def test_lwork_beyond_int32(self, allocator):
        kernel = FakeKernel(recommendation=2.0**31)
        with pytest.raises(WorkspaceAllocationError, match="32-bit"):
            RealClassicDriver(kernel=kernel).decompose(np.eye(2), *outputs_for(2, 2), allocator=allocator)
        assert allocator.outstanding == 0

    @pytest.mark.parametrize("driver_cls, buffers", [
        (RealDivideAndConquerDriver, ['input_copy', 'iwork', 'workspace_query', 'work']),
        (RealClassicDriver, ['input_copy', 'workspace_query', 'work']),
        (ComplexClassicDriver, ['input_copy', 'rwork', 'workspace_query', 'work']),
    ], ids=lambda x: getattr(x, '__name__', ''))
    def test_allocation_order(self, allocator, rng, driver_cls, buffers):
        a = _input(rng, driver_cls, (6, 4))
        driver_cls().decompose(a, *outputs_for(6, 4, dtype=driver_cls.dtype), allocator=allocator)
        assert [r.name for r in allocator.history] == buffers

    @pytest.mark.parametrize("driver_cls, n_buffers", [
        (RealDivideAndConquerDriver, 4),
        (RealClassicDriver, 3),
        (ComplexClassicDriver, 4),
    ], ids=lambda x: getattr(x, '__name__', ''))
    @pytest.mark.parametrize("order", ['F', 'C'])
    def test_allocation_failure_releases(self, rng, driver_cls, n_buffers, order):
        a = _input(rng, driver_cls, (6, 4))
        # Row-major outputs add u and vt staging buffers
        total = n_buffers + (2 if order == 'C' else 0)
        for fail_at in range(total):
            allocator = FaultInjectingAllocator(fail_at=fail_at)
            outputs = outputs_for(6, 4, dtype=driver_cls.dtype, order=order)
            with pytest.raises(WorkspaceAllocationError):
                driver_cls().decompose(a, *outputs, allocator=allocator)
            assert allocator.outstanding == 0
            assert allocator.bytes_outstanding == 0

    @pytest.mark.skipif(
        np.dtype(np.longdouble).itemsize <= 8, reason="longdouble is float64 here",
    )
    @pytest.mark.parametrize("driver_cls", ALL_DRIVERS, ids=lambda d: d.__name__)
    def test_wide_float_rejected_before_allocation(self, allocator, driver_cls):
        a = np.ones((2, 3), dtype=np.longdouble)
        with pytest.raises(ValidationError, match="cannot be converted"):
            driver_cls().decompose(a, *outputs_for(2, 3, dtype=driver_cls.dtype), allocator=allocator)
        assert allocator.total_allocations == 0


class TestMarshalling:
    """Input is never written; row-major outputs are staged."""

    @pytest.mark.parametrize("driver_cls", ALL_DRIVERS, ids=lambda d: d.__name__)
    def test_input_untouched(self, rng, driver_cls):
        a = _input(rng, driver_cls, (6, 4))
        before = a.copy()
        driver_cls().decompose(a, *outputs_for(6, 4, dtype=driver_cls.dtype))
        np.testing.assert_array_equal(a, before)

    def test_read_only_input(self, real_matrix):
        real_matrix.flags.writeable = False
        u, s, vt = outputs_for(7, 4)
        RealClassicDriver().decompose(real_matrix, u, s, vt)
        assert_valid_svd(real_matrix, u, s, vt)

    def test_row_major_input(self, rng):
        a = np.ascontiguousarray(rng.standard_normal((5, 3)))
        u, s, vt = outputs_for(5, 3)
        RealDivideAndConquerDriver().decompose(a, u, s, vt)
        assert_valid_svd(a, u, s, vt)

    def test_column_major_outputs_written_in_place(self, allocator, real_matrix):
        u, s, vt = outputs_for(7, 4)
        result = RealClassicDriver().decompose(real_matrix, u, s, vt, allocator=allocator)
        assert result.info['staged_outputs'] == 0
        assert result.params.u is u
        assert not any(r.name.endswith('_staging') for r in allocator.history)

    def test_row_major_outputs_staged(self, allocator, real_matrix):
        u, s, vt = outputs_for(7, 4, order='C')
        result = RealDivideAndConquerDriver().decompose(real_matrix, u, s, vt, allocator=allocator)
        assert result.info['staged_outputs'] == 2
        staged = {r.name for r in allocator.history if r.name.endswith('_staging')}
        assert staged == {'u_staging', 'vt_staging'}
        assert_valid_svd(real_matrix, u, s, vt)

    def test_strided_singular_values_staged(self, real_matrix):
        backing = np.zeros(8)
        s = backing[::2]
        u, _, vt = outputs_for(7, 4)
        result = RealClassicDriver().decompose(real_matrix, u, s, vt)
        assert result.info['staged_outputs'] == 1
        np.testing.assert_allclose(backing[::2], np.linalg.svd(real_matrix, compute_uv=False))
        np.testing.assert_array_equal(backing[1::2], 0.0)

    @pytest.mark.parametrize("driver_cls", ALL_DRIVERS, ids=lambda d: d.__name__)
    def test_repeatable(self, rng, driver_cls):
        a = _input(rng, driver_cls, (8, 5))
        first = outputs_for(8, 5, dtype=driver_cls.dtype)
        second = outputs_for(8, 5, dtype=driver_cls.dtype)
        driver_cls().decompose(a, *first)
        driver_cls().decompose(a, *second)
        for x, y in zip(first, second):
            np.testing.assert_array_equal(x, y)


# ═══════════════════════════════════════════════════════════════════════
# Status translation and retry
# ═══════════════════════════════════════════════════════════════════════


class TestStatusTranslation:
    """Kernel info codes become taxonomy exceptions."""

    def test_success_result(self):
        kernel = FakeKernel()
        result = RealClassicDriver(kernel=kernel).decompose(np.eye(2), *outputs_for(2, 2))
        assert result.backend_name == 'lapack_dfake'
        assert result.info['routine'] == 'dfake'
        assert result.info['method'] == 'gesvd'
        assert result.info['policy'] == 'classic'
        assert result.info['shape'] == (2, 2)
        assert result.warnings == ()
        assert kernel.calls[0]['job'] is SingularVectorJob.ALL

    def test_positive_info_is_convergence_failure(self, allocator):
        kernel = FakeKernel(run_infos=[3])
        with pytest.raises(ConvergenceError) as exc_info:
            RealClassicDriver(kernel=kernel).decompose(np.eye(4), *outputs_for(4, 4), allocator=allocator)
        assert exc_info.value.unconverged == 3
        assert exc_info.value.routine == 'dfake'
        assert allocator.outstanding == 0

    def test_negative_info_is_argument_error(self, allocator):
        kernel = FakeKernel(run_infos=[-4])
        with pytest.raises(KernelArgumentError) as exc_info:
            RealClassicDriver(kernel=kernel).decompose(np.eye(2), *outputs_for(2, 2), allocator=allocator)
        assert exc_info.value.position == 4
        # Only the workspace-length argument is retried
        assert kernel.lworks == [-1, 10]
        assert allocator.outstanding == 0

    def test_query_failure(self, allocator):
        kernel = FakeKernel(query_info=-1)
        with pytest.raises(KernelArgumentError, match="argument 1"):
            RealClassicDriver(kernel=kernel).decompose(np.eye(2), *outputs_for(2, 2), allocator=allocator)
        assert len(kernel.calls) == 1
        assert allocator.outstanding == 0

    def test_fake_sees_auxiliary_arrays(self):
        kernel = FakeKernel(lwork_position=12)
        RealDivideAndConquerDriver(kernel=kernel).decompose(np.ones((3, 2)), *outputs_for(3, 2))
        assert kernel.calls[0]['iwork'] == 16
        assert kernel.calls[1]['iwork'] == 16
        assert kernel.calls[1]['work_size'] == 20


class TestRetry:
    """A rejected workspace length is retried once with a larger buffer."""

    def test_retry_succeeds(self):
        kernel = FakeKernel(run_infos=[-13, 0])
        with pytest.warns(RuntimeWarning, match="rejected lwork=10"):
            result = RealClassicDriver(kernel=kernel).decompose(np.eye(3), *outputs_for(3, 3))
        assert kernel.lworks == [-1, 10, 20]
        assert result.info['lwork'] == 20
        assert result.info['retries'] == 1
        assert result.info['kernel_runs'] == 2
        assert result.has_warning("retrying with lwork=20")

    def test_retry_restores_input_copy(self):
        calls = []

        class ScribblingKernel(FakeKernel):
            def __call__(self, job, m, n, a, lda, s, u, ldu, vt, ldvt, work, lwork,
                         iwork=None, rwork=None):
                calls.append(a.copy())
                info = super().__call__(job, m, n, a, lda, s, u, ldu, vt, ldvt,
                                        work, lwork, iwork, rwork)
                a[...] = -1.0
                return info

        a = np.arange(4.0).reshape(2, 2)
        kernel = ScribblingKernel(run_infos=[-13, 0])
        with pytest.warns(RuntimeWarning):
            RealClassicDriver(kernel=kernel).decompose(a, *outputs_for(2, 2))
        np.testing.assert_array_equal(calls[2], a)

    def test_retry_exhausted(self, allocator):
        kernel = FakeKernel(run_infos=[-13])
        with pytest.warns(RuntimeWarning):
            with pytest.raises(KernelArgumentError) as exc_info:
                RealClassicDriver(kernel=kernel).decompose(
                    np.eye(2), *outputs_for(2, 2), allocator=allocator,
                )
        assert exc_info.value.position == 13
        assert kernel.lworks == [-1, 10, 20]
        assert allocator.outstanding == 0

    def test_no_retry_policy(self):
        kernel = FakeKernel(run_infos=[-13, 0])
        policy = WorkspacePolicy(name='strict', max_retries=0)
        with pytest.raises(KernelArgumentError):
            RealClassicDriver(kernel=kernel, policy=policy).decompose(np.eye(2), *outputs_for(2, 2))
        assert kernel.lworks == [-1, 10]

    def test_dc_retry_uses_its_own_position(self):
        kernel = FakeKernel(lwork_position=12, run_infos=[-12, 0])
        with pytest.warns(RuntimeWarning):
            result = RealDivideAndConquerDriver(kernel=kernel).decompose(np.eye(2), *outputs_for(2, 2))
        assert kernel.lworks == [-1, 20, 40]
        assert result.info['retries'] == 1


# ═══════════════════════════════════════════════════════════════════════
# Concurrency
# ═══════════════════════════════════════════════════════════════════════


class TestConcurrency:
    """Independent calls share no state."""

    def test_parallel_calls_match_serial(self, rng):
        matrices = [rng.standard_normal((30, 20)) for _ in range(8)]
        expected = [np.linalg.svd(a, compute_uv=False) for a in matrices]

        def run(a):
            u, s, vt = outputs_for(*a.shape)
            RealDivideAndConquerDriver().decompose(a, u, s, vt)
            return s

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(run, matrices))

        for got, want in zip(results, expected):
            np.testing.assert_allclose(got, want, rtol=1e-10)
