"""
Tests for the implicit scalar transport solve.

Each case has an exact discrete solution: pure reaction, 1D diffusion
between Dirichlet values, upwind transport of an inlet value and the
implicit-Euler decay of a sink.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose
from loguru import logger

from turbclosure.config.schema import SolverSettings
from turbclosure.errors import LinearSolveError
from turbclosure.grid import CartesianMesh
from turbclosure.numerics.transport import (
    ScalarEquation,
    split_source,
    limit_production,
    assemble,
    solve_scalar_equation,
)


TIGHT = SolverSettings(gmres_tol=1e-12, gmres_restart=40, gmres_maxiter=400)


@pytest.fixture
def closed_mesh():
    """Mesh with zero-gradient conditions on every side."""
    return CartesianMesh.uniform(5, 4, boundaries={
        "west": "zeroGradient",
        "east": "zeroGradient",
        "south": "zeroGradient",
        "north": "zeroGradient",
    })


@pytest.fixture
def channel_mesh():
    """Inlet on the west side, wall on the east side."""
    return CartesianMesh.uniform(10, 3, Lx=2.0, Ly=0.3, boundaries={
        "west": "fixedValue",
        "east": "wall",
        "south": "zeroGradient",
        "north": "zeroGradient",
    })


def make_equation(mesh, **kwargs):
    values = dict(
        name="phi",
        phi=np.ones(mesh.shape),
        diffusivity=0.0,
        source=0.0,
        sink_rate=0.0,
        lower=0.0,
    )
    values.update(kwargs)
    return ScalarEquation(**values)


# =============================================================================
# Source handling
# =============================================================================

class TestSourceSplit:
    """SuSp split and production limiter."""

    def test_split_reproduces_term(self):
        term = np.array([2.0, -3.0, 0.0])
        phi = np.array([1.0, 1.5, 1.0])
        Su, Sp = split_source(term, phi, 1e-10)
        assert_allclose(Su, [2.0, 0.0, 0.0])
        assert_allclose(Sp, [0.0, 2.0, 0.0])
        assert_allclose(Su - Sp * phi, term)

    def test_split_uses_floor(self):
        _, Sp = split_source(np.array([-1.0]), np.array([0.0]), 1e-3)
        assert_allclose(Sp, [1e3])

    def test_limit_production(self):
        P = np.array([0.5, 100.0])
        out = np.asarray(limit_production(P, 1.0, 1.0, 0.09, 10.0))
        assert_allclose(out, [0.5, 0.9])


# =============================================================================
# Exact solutions
# =============================================================================

class TestExactSolutions:
    """Discrete systems whose solution is known in closed form."""

    def test_pure_reaction(self, closed_mesh):
        eq = make_equation(closed_mesh, source=3.0, sink_rate=2.0, upper=10.0)
        result = solve_scalar_equation(eq, closed_mesh, settings=TIGHT)
        assert result.converged
        assert result.n_clipped == 0
        assert_allclose(result.phi, 1.5, rtol=1e-10)

    def test_linear_diffusion_profile(self, channel_mesh):
        # φ(0) = 0 at the inlet, φ(Lx) = 1 at the wall: φ = x/Lx
        eq = make_equation(channel_mesh, diffusivity=1e-2, inlet_value=0.0, wall_value=1.0)
        result = solve_scalar_equation(eq, channel_mesh, settings=TIGHT)
        assert result.converged
        assert_allclose(result.phi, channel_mesh.xc / 2.0, atol=1e-8)

    def test_upwind_carries_inlet_value(self):
        mesh = CartesianMesh.uniform(8, 3, boundaries={
            "west": "fixedValue",
            "south": "zeroGradient",
        })
        NI, NJ = mesh.shape
        flux_i = np.full((NI + 1, NJ), 0.5) * mesh.dy[None, :]
        flux_j = np.zeros((NI, NJ + 1))
        eq = make_equation(mesh, phi=np.zeros(mesh.shape), inlet_value=2.0)
        result = solve_scalar_equation(eq, mesh, face_flux=(flux_i, flux_j), settings=TIGHT)
        assert_allclose(result.phi, 2.0, rtol=1e-10)

    def test_implicit_euler_sink(self, closed_mesh):
        dt, rate = 0.1, 5.0
        phi0 = np.linspace(1.0, 2.0, closed_mesh.NI * closed_mesh.NJ).reshape(closed_mesh.shape)
        eq = make_equation(closed_mesh, phi=phi0, sink_rate=rate)
        result = solve_scalar_equation(eq, closed_mesh, dt=dt, settings=TIGHT)
        assert_allclose(result.phi, phi0 / (1.0 + dt * rate), rtol=1e-10)

    def test_array_wall_value(self, small_mesh):
        eq = make_equation(small_mesh, phi=np.zeros(small_mesh.shape),
                           diffusivity=1e-3, wall_value=np.full(small_mesh.shape, 3.0))
        result = solve_scalar_equation(eq, small_mesh, settings=TIGHT)
        assert_allclose(result.phi, 3.0, rtol=1e-8)


# =============================================================================
# Assembly details and failure handling
# =============================================================================

class TestAssemblyAndClamp:
    """Matrix properties, clamping and error paths."""

    def test_clamp_to_upper_bound(self, closed_mesh):
        eq = make_equation(closed_mesh, source=10.0, sink_rate=2.0, upper=2.0)
        result = solve_scalar_equation(eq, closed_mesh, settings=TIGHT)
        assert_allclose(result.phi, 2.0)
        assert result.n_clipped == closed_mesh.NI * closed_mesh.NJ

    def test_uncoupled_cells_keep_old_value(self, closed_mesh):
        phi0 = np.full(closed_mesh.shape, 0.7)
        system = assemble(make_equation(closed_mesh, phi=phi0), closed_mesh)
        assert_allclose(system.aP, 1.0)
        assert_allclose(system.b, phi0)

    def test_diagonal_dominance(self, small_mesh, shear_flow):
        eq = make_equation(small_mesh, diffusivity=1e-4, sink_rate=1.0,
                           wall_value=0.0, inlet_value=1.0)
        s = assemble(eq, small_mesh, face_flux=shear_flow.face_flux)
        for a in (s.aW, s.aE, s.aS, s.aN):
            assert np.all(a >= 0.0)
        assert np.all(s.aP >= s.aW + s.aE + s.aS + s.aN - 1e-15)

    def test_flux_shape_mismatch(self, small_mesh):
        eq = make_equation(small_mesh)
        bad = (np.zeros((3, 3)), np.zeros((3, 3)))
        with pytest.raises(ValueError):
            assemble(eq, small_mesh, face_flux=bad)

    def test_non_finite_solution_raises(self, closed_mesh):
        eq = make_equation(closed_mesh, source=np.nan, sink_rate=1.0)
        with pytest.raises(LinearSolveError) as excinfo:
            solve_scalar_equation(eq, closed_mesh)
        assert excinfo.value.field_name == "phi"

    def test_non_converged_solve_warns(self, channel_mesh):
        messages = []
        handler_id = logger.add(messages.append, level="WARNING")
        try:
            eq = make_equation(channel_mesh, diffusivity=1.0, inlet_value=0.0, wall_value=1.0)
            settings = SolverSettings(gmres_tol=1e-14, gmres_restart=1, gmres_maxiter=1)
            result = solve_scalar_equation(eq, channel_mesh, settings=settings)
        finally:
            logger.remove(handler_id)
        assert not result.converged
        assert np.all(np.isfinite(result.phi))
        assert any("not converged" in str(m) for m in messages)
