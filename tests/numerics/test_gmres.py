"""
Tests for GMRES(m) solver.

Tests cover:
1. Simple linear systems (identity, diagonal, tridiagonal)
2. Preconditioner application
3. Restart behavior
4. Operator data passed through args
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from turbclosure.physics.jax_config import jnp
from turbclosure.numerics.gmres import gmres, GMRESResult


# =============================================================================
# Test fixtures
# =============================================================================

@pytest.fixture
def identity_system():
    """Identity matrix system: Ix = b."""
    n = 10
    b = jnp.ones(n)
    x_true = b.copy()

    def matvec(v):
        return v

    return matvec, b, x_true


@pytest.fixture
def diagonal_system():
    """Diagonal matrix system."""
    n = 20
    diag = jnp.arange(1, n + 1, dtype=jnp.float64)
    b = jnp.ones(n)
    x_true = b / diag

    def matvec(v):
        return diag * v

    return matvec, b, x_true


@pytest.fixture
def tridiagonal_system():
    """Non-symmetric diagonally dominant tridiagonal system."""
    n = 30
    A = (np.diag(np.full(n, 4.0))
         + np.diag(np.full(n - 1, -1.5), -1)
         + np.diag(np.full(n - 1, -0.5), 1))
    x_true = np.linspace(0.0, 1.0, n)
    b = A @ x_true
    A = jnp.asarray(A)

    def matvec(v):
        return A @ v

    return matvec, jnp.asarray(b), x_true


# =============================================================================
# Basic systems
# =============================================================================

class TestBasicSystems:
    """GMRES on simple systems."""

    def test_identity(self, identity_system):
        matvec, b, x_true = identity_system
        result = gmres(matvec, b, tol=1e-10)
        assert isinstance(result, GMRESResult)
        assert result.converged
        assert_allclose(np.asarray(result.x), np.asarray(x_true), atol=1e-10)

    def test_diagonal(self, diagonal_system):
        matvec, b, x_true = diagonal_system
        result = gmres(matvec, b, tol=1e-10, restart=20, maxiter=100)
        assert result.converged
        assert_allclose(np.asarray(result.x), np.asarray(x_true), rtol=1e-8)

    def test_tridiagonal(self, tridiagonal_system):
        matvec, b, x_true = tridiagonal_system
        result = gmres(matvec, b, tol=1e-10, restart=30, maxiter=200)
        assert result.converged
        assert_allclose(np.asarray(result.x), x_true, atol=1e-8)

    def test_zero_rhs(self, diagonal_system):
        matvec, b, _ = diagonal_system
        result = gmres(matvec, jnp.zeros_like(b))
        assert result.converged
        assert result.iterations == 0
        assert_allclose(np.asarray(result.x), 0.0)

    def test_initial_guess_is_solution(self, diagonal_system):
        matvec, b, x_true = diagonal_system
        result = gmres(matvec, b, x0=x_true, tol=1e-8)
        assert result.converged
        assert result.iterations == 0


# =============================================================================
# Preconditioning and restarts
# =============================================================================

class TestPreconditioning:
    """Left preconditioning and restart behaviour."""

    def test_jacobi_exact_for_diagonal(self, diagonal_system):
        matvec, b, x_true = diagonal_system
        diag = jnp.arange(1, b.size + 1, dtype=jnp.float64)

        def precond(v):
            return v / diag

        result = gmres(matvec, b, tol=1e-12, preconditioner=precond)
        assert result.converged
        assert result.iterations <= 2
        assert_allclose(np.asarray(result.x), np.asarray(x_true), rtol=1e-10)

    def test_short_restart_still_converges(self, tridiagonal_system):
        matvec, b, x_true = tridiagonal_system
        result = gmres(matvec, b, tol=1e-9, restart=5, maxiter=500)
        assert result.converged
        assert len(result.residual_history) > 1
        assert_allclose(np.asarray(result.x), x_true, atol=1e-6)

    def test_maxiter_reports_not_converged(self, tridiagonal_system):
        matvec, b, _ = tridiagonal_system
        result = gmres(matvec, b, tol=1e-14, restart=2, maxiter=2)
        assert not result.converged
        assert np.all(np.isfinite(np.asarray(result.x)))


class TestOperatorArgs:
    """Coefficients passed as explicit arguments."""

    def test_args_reach_matvec_and_preconditioner(self):
        n = 12

        def matvec(v, d):
            return d * v

        def precond(v, d):
            return v / d

        b = jnp.ones(n)
        for scale in (2.0, 5.0):
            d = jnp.full(n, scale)
            result = gmres(matvec, b, tol=1e-12, preconditioner=precond, args=(d,))
            assert result.converged
            assert_allclose(np.asarray(result.x), 1.0 / scale, rtol=1e-10)
