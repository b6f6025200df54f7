"""
Implicit finite-volume solve of one transported turbulence scalar.

Equation form (per unit depth, cell-integrated):

    ∂(αρφ)/∂t + ∇·(αρUφ) − ∇·(αρ D ∇φ) = αρ (Su − Sp φ)

with Su ≥ 0 the explicit source and Sp ≥ 0 the implicit sink rate.

Discretisation on the Cartesian mesh (5-point stencil):
    - Convection: bounded first-order upwind (the continuity imbalance is
      removed from the diagonal, so the matrix stays an M-matrix even for
      face fluxes that are not divergence free)
    - Diffusion: central, harmonic-mean face diffusivity
    - Time: implicit Euler when dt is given, steady otherwise
    - Boundaries: wall → Dirichlet wall value (zero-gradient if None),
      fixedValue → Dirichlet inlet value (zero-gradient if None),
      zeroGradient → no flux

The assembled system

    aP φP − aW φW − aE φE − aS φS − aN φN = b

is solved with Jacobi-preconditioned GMRES, then clamped to the
equation's realizability bounds.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple, Union

import numpy as np
from loguru import logger

from ..config.schema import SolverSettings
from ..constants import VSMALL
from ..errors import LinearSolveError
from ..grid.cartesian import CartesianMesh, SIDES, WALL, FIXED_VALUE
from ..physics.jax_config import jax, jnp
from .gmres import gmres

FieldLike = Union[float, np.ndarray]


@dataclass
class ScalarEquation:
    """
    One linearised transport equation.

    Attributes
    ----------
    name : str
        Field name (for logging and errors).
    phi : ndarray (NI, NJ)
        Value at the start of the step (old time level / initial guess).
    diffusivity : ndarray (NI, NJ)
        Effective diffusivity D_eff (ν + ν_t/σ or similar).
    source : ndarray (NI, NJ)
        Explicit source Su ≥ 0.
    sink_rate : ndarray (NI, NJ)
        Implicit sink rate Sp ≥ 0.
    lower, upper : float
        Realizability bounds applied after the solve.
    wall_value : float or ndarray (NI, NJ), optional
        Dirichlet value on wall sides (array values are read in the
        wall-adjacent cells). None means zero gradient.
    inlet_value : float or ndarray (NI, NJ), optional
        Dirichlet value on fixedValue sides. None means zero gradient.
    """
    name: str
    phi: np.ndarray
    diffusivity: FieldLike
    source: FieldLike
    sink_rate: FieldLike
    lower: float
    upper: float = np.inf
    wall_value: Optional[FieldLike] = None
    inlet_value: Optional[FieldLike] = None


class StencilSystem(NamedTuple):
    """Assembled 5-point system; all arrays (NI, NJ)."""
    aP: np.ndarray
    aW: np.ndarray
    aE: np.ndarray
    aS: np.ndarray
    aN: np.ndarray
    b: np.ndarray


class SolveResult(NamedTuple):
    """Outcome of one scalar solve."""
    phi: np.ndarray         # clamped solution (NI, NJ)
    converged: bool
    iterations: int
    residual: float
    n_clipped: int          # cells moved by the realizability clamp


# =============================================================================
# Source handling
# =============================================================================

def split_source(term, phi, floor: float):
    """
    SuSp split of a signed source term.

    The positive part is kept explicit, the negative part becomes an
    implicit sink with rate −term/φ.

    Parameters
    ----------
    term : array
        Signed source per unit volume.
    phi : array
        Current field value (the divisor of the implicit part).
    floor : float
        Lower bound applied to φ before dividing.

    Returns
    -------
    Su, Sp : ndarray
        Su ≥ 0 and Sp ≥ 0 with Su − Sp φ = term at the current φ.
    """
    term = np.asarray(term, dtype=np.float64)
    phi_safe = np.maximum(np.asarray(phi, dtype=np.float64), floor)
    Su = np.maximum(term, 0.0)
    Sp = np.maximum(-term, 0.0) / phi_safe
    return Su, Sp


@jax.jit
def limit_production(P, k, omega, beta_star, c1=10.0):
    """Menter's production limiter: min(P, c1 β* k ω)."""
    return jnp.minimum(P, c1 * beta_star * jnp.maximum(k, 0.0) * jnp.maximum(omega, 0.0))


# =============================================================================
# Assembly
# =============================================================================

def _field(value: FieldLike, shape) -> np.ndarray:
    return np.broadcast_to(np.asarray(value, dtype=np.float64), shape).copy()


def _boundary_value(value: FieldLike, mesh: CartesianMesh, side: str) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim == 2:
        return arr[mesh.boundary_cells(side)]
    return arr


def assemble(eq: ScalarEquation, mesh: CartesianMesh,
             alpha_rho: FieldLike = 1.0,
             face_flux: Optional[Tuple[np.ndarray, np.ndarray]] = None,
             dt: Optional[float] = None) -> StencilSystem:
    """
    Assemble the 5-point system of one scalar equation.

    Parameters
    ----------
    eq : ScalarEquation
    mesh : CartesianMesh
    alpha_rho : float or ndarray (NI, NJ)
        Phase fraction × density weighting.
    face_flux : (flux_i, flux_j), optional
        Volumetric face fluxes, flux_i (NI+1, NJ) positive in +x and
        flux_j (NI, NJ+1) positive in +y. None means no convection.
    dt : float, optional
        Pseudo time step. None assembles the steady equation.

    Returns
    -------
    StencilSystem
    """
    NI, NJ = mesh.shape
    shape = (NI, NJ)
    phi_old = _field(eq.phi, shape)
    ar = _field(alpha_rho, shape)
    D = np.maximum(_field(eq.diffusivity, shape), 0.0)
    Su = np.maximum(_field(eq.source, shape), 0.0)
    Sp = np.maximum(_field(eq.sink_rate, shape), 0.0)
    vol = mesh.volume
    dx, dy = mesh.dx, mesh.dy

    if face_flux is None:
        flux_i = np.zeros((NI + 1, NJ))
        flux_j = np.zeros((NI, NJ + 1))
    else:
        flux_i = np.asarray(face_flux[0], dtype=np.float64)
        flux_j = np.asarray(face_flux[1], dtype=np.float64)
        if flux_i.shape != (NI + 1, NJ) or flux_j.shape != (NI, NJ + 1):
            raise ValueError(
                f"Face flux shapes {flux_i.shape}, {flux_j.shape} do not match mesh {shape}"
            )

    aW = np.zeros(shape)
    aE = np.zeros(shape)
    aS = np.zeros(shape)
    aN = np.zeros(shape)

    # -------------------------------------------------------------------------
    # Interior I-faces (between cells i-1 and i)
    # -------------------------------------------------------------------------
    if NI > 1:
        DL, DR = D[:-1, :], D[1:, :]
        Df = 2.0 * DL * DR / np.maximum(DL + DR, VSMALL)
        arf = 0.5 * (ar[:-1, :] + ar[1:, :])
        delta = 0.5 * (dx[:-1] + dx[1:])[:, None]
        d = arf * Df * dy[None, :] / delta
        F = arf * flux_i[1:-1, :]
        aE[:-1, :] += d + np.maximum(-F, 0.0)
        aW[1:, :] += d + np.maximum(F, 0.0)

    # -------------------------------------------------------------------------
    # Interior J-faces (between cells j-1 and j)
    # -------------------------------------------------------------------------
    if NJ > 1:
        DL, DR = D[:, :-1], D[:, 1:]
        Df = 2.0 * DL * DR / np.maximum(DL + DR, VSMALL)
        arf = 0.5 * (ar[:, :-1] + ar[:, 1:])
        delta = 0.5 * (dy[:-1] + dy[1:])[None, :]
        d = arf * Df * dx[:, None] / delta
        F = arf * flux_j[:, 1:-1]
        aN[:, :-1] += d + np.maximum(-F, 0.0)
        aS[:, 1:] += d + np.maximum(F, 0.0)

    aP = aW + aE + aS + aN
    b = np.zeros(shape)

    # -------------------------------------------------------------------------
    # Boundary faces
    # -------------------------------------------------------------------------
    geometry = {
        # side: (face area, centre-to-face distance, inward flux)
        "west": (dy, 0.5 * dx[0], flux_i[0, :]),
        "east": (dy, 0.5 * dx[-1], -flux_i[-1, :]),
        "south": (dx, 0.5 * dy[0], flux_j[:, 0]),
        "north": (dx, 0.5 * dy[-1], -flux_j[:, -1]),
    }
    for side in SIDES:
        kind = mesh.boundaries[side]
        if kind == WALL:
            value = eq.wall_value
        elif kind == FIXED_VALUE:
            value = eq.inlet_value
        else:
            value = None
        if value is None:
            continue

        idx = mesh.boundary_cells(side)
        area, half, F_in = geometry[side]
        phi_b = _boundary_value(value, mesh, side)
        coef = ar[idx] * D[idx] * area / half + ar[idx] * np.maximum(F_in, 0.0)
        aP[idx] += coef
        b[idx] += coef * phi_b

    # -------------------------------------------------------------------------
    # Sources and time derivative
    # -------------------------------------------------------------------------
    aP += ar * vol * Sp
    b += ar * vol * Su

    if dt is not None:
        c_t = ar * vol / dt
        aP += c_t
        b += c_t * phi_old

    # Cells with no coupling at all keep their old value
    idle = aP <= VSMALL
    if np.any(idle):
        aP[idle] = 1.0
        b[idle] = phi_old[idle]

    return StencilSystem(aP=aP, aW=aW, aE=aE, aS=aS, aN=aN, b=b)


# =============================================================================
# Linear solve
# =============================================================================

def _stencil_matvec(v, aP, aW, aE, aS, aN):
    """A @ v for the 5-point system, v flat of size NI*NJ."""
    phi = v.reshape(aP.shape)
    out = aP * phi
    out = out.at[1:, :].add(-aW[1:, :] * phi[:-1, :])
    out = out.at[:-1, :].add(-aE[:-1, :] * phi[1:, :])
    out = out.at[:, 1:].add(-aS[:, 1:] * phi[:, :-1])
    out = out.at[:, :-1].add(-aN[:, :-1] * phi[:, 1:])
    return out.ravel()


def _jacobi(v, aP, aW, aE, aS, aN):
    """Diagonal (Jacobi) preconditioner."""
    return v / aP.ravel()


def solve_system(system: StencilSystem, x0: np.ndarray,
                 settings: Optional[SolverSettings] = None):
    """
    Solve an assembled system with Jacobi-preconditioned GMRES.

    Returns
    -------
    GMRESResult with x reshaped to (NI, NJ).
    """
    settings = settings or SolverSettings()
    args = tuple(jnp.asarray(a) for a in system[:5])
    return gmres(
        _stencil_matvec,
        jnp.asarray(system.b).ravel(),
        x0=jnp.asarray(x0).ravel(),
        tol=settings.gmres_tol,
        restart=settings.gmres_restart,
        maxiter=settings.gmres_maxiter,
        preconditioner=_jacobi,
        args=args,
    )


def solve_scalar_equation(eq: ScalarEquation, mesh: CartesianMesh,
                          alpha_rho: FieldLike = 1.0,
                          face_flux: Optional[Tuple[np.ndarray, np.ndarray]] = None,
                          dt: Optional[float] = None,
                          settings: Optional[SolverSettings] = None) -> SolveResult:
    """
    Assemble, solve and clamp one transport equation.

    The clamp to [eq.lower, eq.upper] is always applied, converged or not.
    A non-converged but finite result is used after a warning.

    Raises
    ------
    LinearSolveError
        If the solution contains non-finite values.
    """
    system = assemble(eq, mesh, alpha_rho=alpha_rho, face_flux=face_flux, dt=dt)
    result = solve_system(system, np.clip(_field(eq.phi, mesh.shape), eq.lower, eq.upper), settings)

    phi = np.asarray(result.x, dtype=np.float64).reshape(mesh.shape)
    if not np.all(np.isfinite(phi)):
        n_bad = int(np.count_nonzero(~np.isfinite(phi)))
        raise LinearSolveError(eq.name, f"{n_bad} non-finite value(s) in solution")

    if not result.converged:
        logger.warning(
            f"{eq.name}: GMRES not converged after {result.iterations} iterations "
            f"(residual {result.residual_norm:.3e}), using clamped result"
        )

    clipped = np.clip(phi, eq.lower, eq.upper)
    n_clipped = int(np.count_nonzero(clipped != phi))
    logger.debug(
        f"{eq.name}: {result.iterations} GMRES iterations, residual "
        f"{result.residual_norm:.3e}, {n_clipped} cell(s) clipped"
    )

    return SolveResult(
        phi=clipped,
        converged=bool(result.converged),
        iterations=int(result.iterations),
        residual=float(result.residual_norm),
        n_clipped=n_clipped,
    )
