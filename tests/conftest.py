"""
Shared pytest fixtures for the test suite.

Small channel-like meshes and mean-flow states that every closure can be
driven with in a few milliseconds.
"""

import pytest
import numpy as np

from turbclosure.grid import CartesianMesh
from turbclosure.models import MeanFlowState


# =============================================================================
# Meshes
# =============================================================================

@pytest.fixture
def small_mesh():
    """8x6 uniform mesh, wall on the south side, inlet on the west."""
    return CartesianMesh.uniform(8, 6, Lx=1.0, Ly=0.1)


@pytest.fixture
def periodic_like_mesh():
    """Mesh without walls or inlets (all zero-gradient)."""
    return CartesianMesh.uniform(6, 5, Lx=1.0, Ly=1.0, boundaries={
        "west": "zeroGradient",
        "south": "zeroGradient",
    })


# =============================================================================
# Mean-flow states
# =============================================================================

def make_shear_flow(mesh, dudy=10.0, nu=1.5e-5, with_velocity=True):
    """Uniform shear U = dudy·y with matching face fluxes."""
    NI, NJ = mesh.shape
    grad_u = np.zeros((NI, NJ, 3, 3))
    grad_u[..., 1, 0] = dudy                      # ∂U_x/∂y

    U = np.zeros((NI, NJ, 3))
    U[..., 0] = dudy * mesh.yc

    flux_i = np.zeros((NI + 1, NJ))
    flux_i[:] = (dudy * 0.5 * (mesh.y_nodes[1:] + mesh.y_nodes[:-1]) * mesh.dy)[None, :]
    flux_j = np.zeros((NI, NJ + 1))

    return MeanFlowState(
        grad_u=grad_u,
        wall_distance=mesh.wall_distance(),
        nu=nu,
        face_flux=(flux_i, flux_j),
        velocity=U if with_velocity else None,
        dt=None,
    )


@pytest.fixture
def shear_flow(small_mesh):
    """Uniform shear flow over the south wall."""
    return make_shear_flow(small_mesh)


@pytest.fixture
def quiescent_flow(small_mesh):
    """Zero velocity gradient everywhere."""
    NI, NJ = small_mesh.shape
    return MeanFlowState(
        grad_u=np.zeros((NI, NJ, 3, 3)),
        wall_distance=small_mesh.wall_distance(),
        nu=1.5e-5,
    )


@pytest.fixture
def turbulent_initial():
    """Free-stream turbulence levels for a shear-flow start."""
    return {"k": 1e-3, "omega": 100.0}


@pytest.fixture
def make_flow():
    """Factory for shear flows with a chosen gradient."""
    return make_shear_flow
