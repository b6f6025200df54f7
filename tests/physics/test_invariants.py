"""
Tests for the strain/rotation tensors and their invariants.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from turbclosure.physics.jax_config import jnp
from turbclosure.physics.invariants import (
    symm,
    skew,
    dev,
    strain_rate,
    rotation_rate,
    strain_magnitude,
    vorticity_magnitude,
    tensor_invariants,
    basis_tensors,
    double_inner,
)


@pytest.fixture
def shear_gradient():
    """Simple shear ∂U_x/∂y = g on a 4x3 field."""
    g = 2.0
    grad_u = np.zeros((4, 3, 3, 3))
    grad_u[..., 1, 0] = g
    return jnp.asarray(grad_u), g


@pytest.fixture
def random_tensors():
    rng = np.random.default_rng(0)
    A = rng.normal(size=(5, 3, 3))
    return jnp.asarray(A)


class TestDecomposition:
    """Symmetric/antisymmetric/deviatoric parts."""

    def test_symm_plus_skew(self, random_tensors):
        A = random_tensors
        assert_allclose(np.asarray(symm(A) + skew(A)), np.asarray(A), atol=1e-14)

    def test_dev_is_trace_free(self, random_tensors):
        trace = np.trace(np.asarray(dev(random_tensors)), axis1=-2, axis2=-1)
        assert_allclose(trace, 0.0, atol=1e-13)

    def test_shear_components(self, shear_gradient):
        grad_u, g = shear_gradient
        S = np.asarray(strain_rate(grad_u))
        W = np.asarray(rotation_rate(grad_u))
        assert_allclose(S[..., 0, 1], 0.5 * g)
        assert_allclose(S[..., 1, 0], 0.5 * g)
        # W_ij = ½(∂U_i/∂x_j − ∂U_j/∂x_i)
        assert_allclose(W[..., 0, 1], 0.5 * g)
        assert_allclose(W[..., 1, 0], -0.5 * g)

    def test_shear_magnitudes(self, shear_gradient):
        grad_u, g = shear_gradient
        assert_allclose(np.asarray(strain_magnitude(strain_rate(grad_u))), g)
        assert_allclose(np.asarray(vorticity_magnitude(rotation_rate(grad_u))), g)


class TestInvariants:
    """Scalar invariants of (S, W)."""

    def test_simple_shear_invariants(self, shear_gradient):
        grad_u, g = shear_gradient
        inv = tensor_invariants(strain_rate(grad_u), rotation_rate(grad_u))
        assert_allclose(np.asarray(inv.II_S), 0.5 * g ** 2)
        assert_allclose(np.asarray(inv.II_W), -0.5 * g ** 2)
        assert_allclose(np.asarray(inv.IV), 0.0, atol=1e-14)

    def test_II_W_non_positive(self, random_tensors):
        W = skew(random_tensors)
        inv = tensor_invariants(symm(random_tensors), W)
        assert np.all(np.asarray(inv.II_W) <= 0.0)

    def test_zero_tensors(self):
        Z = jnp.zeros((2, 3, 3))
        inv = tensor_invariants(Z, Z)
        for value in inv:
            assert_allclose(np.asarray(value), 0.0)


class TestBasisTensors:
    """Wallin–Johansson basis."""

    def test_symmetric_and_trace_free(self, random_tensors):
        S = dev(symm(random_tensors))
        W = skew(random_tensors)
        for T in basis_tensors(S, W):
            T = np.asarray(T)
            assert_allclose(T, np.swapaxes(T, -1, -2), atol=1e-12)
            assert_allclose(np.trace(T, axis1=-2, axis2=-1), 0.0, atol=1e-12)

    def test_first_basis_is_strain(self, random_tensors):
        S = dev(symm(random_tensors))
        T1 = basis_tensors(S, skew(random_tensors))[0]
        assert_allclose(np.asarray(T1), np.asarray(S))

    def test_double_inner(self):
        A = jnp.eye(3)
        assert_allclose(float(double_inner(A, A)), 3.0)
