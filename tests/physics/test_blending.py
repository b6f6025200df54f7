"""
Tests for the SST/Hellsten blending functions.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from turbclosure.physics.blending import (
    blend,
    cd_k_omega,
    sst_f1,
    sst_f2,
    sst_f23,
    hellsten_fmix,
    transition_f1,
)


@pytest.fixture
def profile():
    """Wall-normal profile from the first cell to the free stream."""
    y = np.logspace(-6, 0, 40)
    k = np.full_like(y, 1e-3)
    omega = np.full_like(y, 50.0)
    nu = 1.5e-5
    return k, omega, y, nu


class TestBlend:
    """blend(F, inner, outer)."""

    def test_exact_endpoints(self):
        inner, outer = 0.075, 0.0828
        assert float(blend(1.0, inner, outer)) == inner
        assert float(blend(0.0, inner, outer)) == outer

    def test_interpolates_between(self):
        F = np.linspace(0.0, 1.0, 11)
        out = np.asarray(blend(F, 0.5, 0.856))
        assert np.all(out >= 0.5 - 1e-15)
        assert np.all(out <= 0.856 + 1e-15)
        assert_allclose(out[5], 0.5 * (0.5 + 0.856))

    def test_same_coefficients_idempotent(self):
        F = np.random.default_rng(1).uniform(0.0, 1.0, 20)
        assert_allclose(np.asarray(blend(F, 0.09, 0.09)), 0.09)


class TestSSTFunctions:
    """Menter F1, F2, F3."""

    def test_f1_range(self, profile):
        k, omega, y, nu = profile
        cd = cd_k_omega(np.zeros_like(y), omega, 0.856)
        F1 = np.asarray(sst_f1(k, omega, y, nu, cd, 0.09, 0.856))
        assert np.all((F1 >= 0.0) & (F1 <= 1.0))

    def test_f1_near_wall_and_free_stream(self, profile):
        k, omega, y, nu = profile
        cd = cd_k_omega(np.zeros_like(y), omega, 0.856)
        F1 = np.asarray(sst_f1(k, omega, y, nu, cd, 0.09, 0.856))
        assert F1[0] == pytest.approx(1.0)
        assert F1[-1] < 0.1

    def test_f2_range(self, profile):
        k, omega, y, nu = profile
        F2 = np.asarray(sst_f2(k, omega, y, nu, 0.09))
        assert np.all((F2 >= 0.0) & (F2 <= 1.0))
        assert F2[0] == pytest.approx(1.0)

    def test_f23_with_f3_not_larger(self, profile):
        k, omega, y, nu = profile
        F2 = np.asarray(sst_f23(k, omega, y, nu, 0.09, False))
        F23 = np.asarray(sst_f23(k, omega, y, nu, 0.09, True))
        assert np.all(F23 <= F2 + 1e-15)

    def test_cd_k_omega_floor(self):
        cd = np.asarray(cd_k_omega(np.array([-1.0, 0.0]), np.array([1.0, 1.0]), 0.856))
        assert_allclose(cd, 1e-10)

    def test_zero_k_finite(self):
        F1 = sst_f1(0.0, 1.0, 1e-3, 1.5e-5, 1e-10, 0.09, 0.856)
        assert np.isfinite(float(F1))


class TestHellstenFmix:
    """Hellsten f_mix."""

    def test_range_and_limits(self, profile):
        k, omega, y, nu = profile
        fmix = np.asarray(hellsten_fmix(k, omega, y, nu, np.zeros_like(y), 0.09, 1e-10))
        assert np.all((fmix >= 0.0) & (fmix <= 1.0))
        assert fmix[0] == pytest.approx(1.0)
        assert fmix[-1] < 0.1

    def test_zero_inputs_finite(self):
        fmix = hellsten_fmix(0.0, 0.0, 0.0, 1.5e-5, 0.0, 0.09, 0.0)
        assert np.isfinite(float(fmix))


class TestTransitionF1:
    """γ-SST modification of F1."""

    def test_never_decreases_f1(self, profile):
        k, omega, y, nu = profile
        F1 = np.linspace(0.0, 1.0, y.size)
        out = np.asarray(transition_f1(F1, k, y, nu))
        assert np.all(out >= F1)
        assert np.all(out <= 1.0)

    def test_laminar_region_gives_one(self):
        # R_y = y √k / ν ≪ 120
        out = float(transition_f1(0.0, 1e-8, 1e-4, 1.5e-5))
        assert out == pytest.approx(1.0)
