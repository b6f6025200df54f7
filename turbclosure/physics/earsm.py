"""
Explicit algebraic Reynolds-stress closure (Wallin & Johansson 2000,
Hellsten 2005 calibration).

Given the normalised strain- and rotation-rate tensors

    S* = τ S,    W* = τ (W − Ω_r / A0)

the anisotropy is the finite tensor polynomial

    a = −2 C_μ S* + β3 T2 + β4 T3 + β6 T4 + β9 T5,    C_μ = −½(β1 + II_W β6)

with weights that are rational functions of the invariants and of the
production-to-dissipation ratio N, itself the root of the cubic

    N³ − A3' N² − (27/10 II_S + 2 II_W) N + 2 A3' II_W = 0

selected on the branch connected to the equilibrium limit.

T4 is taken in the form that includes −II_W S (Hellsten 2005), so the
terms after −2 C_μ S* form the explicit (extra) anisotropy a_ex, which is
returned to the flow solver as k·a_ex while −2 C_μ S* is carried by ν_t.

References:
- Wallin & Johansson (2000), J. Fluid Mech. 403, 89–132
- Wallin & Johansson (2002), Int. J. Heat Fluid Flow 23, 721–730
  (strain-rate axes rotation for curvature correction)
- Hellsten (2005), AIAA J. 43(9), 1857–1869
"""

from typing import NamedTuple

from ..constants import SMALL
from .invariants import Invariants, basis_tensors, tensor_invariants, double_inner
from .jax_config import jax, jnp

# Equilibrium value of N in homogeneous shear and the associated β1
N_EQ = 81.0 / 20.0
BETA1_EQ = -6.0 / (5.0 * N_EQ)

# Curvature-correction coefficient (Wallin & Johansson 2002)
A0_DEFAULT = -0.72

# Relative eigenvalue separation below which principal axes are
# considered degenerate and contribute no rotation
EIG_SEPARATION_TOL = 1e-10


class EARSMBetas(NamedTuple):
    """Non-zero weights of the Wallin–Johansson tensor polynomial."""
    beta1: jnp.ndarray
    beta3: jnp.ndarray
    beta4: jnp.ndarray
    beta6: jnp.ndarray
    beta9: jnp.ndarray


class EARSMResult(NamedTuple):
    """Full output of one closure evaluation."""
    N: jnp.ndarray          # production-to-dissipation root
    betas: EARSMBetas
    c_mu: jnp.ndarray       # effective C_μ
    a: jnp.ndarray          # total anisotropy (..., 3, 3)
    a_ex: jnp.ndarray       # extra anisotropy not carried by ν_t
    invariants: Invariants


@jax.jit
def a3_prime(II_S, c_diff=2.2):
    """
    A3' = 9/5 + 9/4 C_diff max(1 + β1_eq II_S, 0).

    The C_diff term corrects the production-to-dissipation ratio for
    diffusion effects in non-equilibrium regions.
    """
    return 9.0 / 5.0 + 9.0 / 4.0 * c_diff * jnp.maximum(1.0 + BETA1_EQ * II_S, 0.0)


@jax.jit
def solve_n(a3p, II_S, II_W):
    """
    Root of the Wallin–Johansson cubic on the equilibrium branch.

    P1 = A3'(A3'²/27 + 9/20 II_S − 2/3 II_W)
    P2 = P1² − (A3'²/9 + 9/10 II_S + 2/3 II_W)³

    P2 ≥ 0:  N = A3'/3 + ∛(P1 + √P2) + ∛(P1 − √P2)
    P2 < 0:  N = A3'/3 + 2 (P1² − P2)^(1/6) cos(⅓ arccos(P1/√(P1² − P2)))

    Parameters
    ----------
    a3p : array
        A3' from :func:`a3_prime`.
    II_S, II_W : array
        Invariants of the normalised tensors (II_W ≤ 0).

    Returns
    -------
    N : array
        Floored at A3'/3. When the trigonometric branch degenerates
        (triple root, P1² − P2 → 0) the floor value A3'/3 is returned.
    """
    P1 = a3p * (a3p ** 2 / 27.0 + 9.0 / 20.0 * II_S - 2.0 / 3.0 * II_W)
    P2 = P1 ** 2 - (a3p ** 2 / 9.0 + 9.0 / 10.0 * II_S + 2.0 / 3.0 * II_W) ** 3

    # Cardano branch
    sqrt_P2 = jnp.sqrt(jnp.maximum(P2, 0.0))
    n_cardano = a3p / 3.0 + jnp.cbrt(P1 + sqrt_P2) + jnp.cbrt(P1 - sqrt_P2)

    # Trigonometric branch
    radicand = P1 ** 2 - P2
    degenerate = radicand <= SMALL
    radicand_safe = jnp.where(degenerate, 1.0, radicand)
    cos_arg = jnp.clip(P1 / jnp.sqrt(radicand_safe), -1.0, 1.0)
    n_trig = a3p / 3.0 + 2.0 * radicand_safe ** (1.0 / 6.0) * jnp.cos(
        jnp.arccos(cos_arg) / 3.0
    )
    n_trig = jnp.where(degenerate, a3p / 3.0, n_trig)

    N = jnp.where(P2 >= 0.0, n_cardano, n_trig)
    return jnp.maximum(N, a3p / 3.0)


def cubic_residual(N, a3p, II_S, II_W):
    """Residual of the N cubic, used to check a root."""
    return N ** 3 - a3p * N ** 2 - (2.7 * II_S + 2.0 * II_W) * N + 2.0 * a3p * II_W


@jax.jit
def beta_coefficients(N, II_W, IV) -> EARSMBetas:
    """
    Tensor-polynomial weights.

    Q  = 5/6 (N² − 2 II_W)(2N² − II_W)
    β1 = −N (2N² − 7 II_W) / Q
    β3 = −12 IV / (N Q)
    β4 = −2 (N² − 2 II_W) / Q
    β6 = −6 N / Q
    β9 = 6 / Q

    N and Q are floored so that vanishing invariants never divide by zero.
    """
    N_safe = jnp.maximum(N, SMALL)
    N2 = N_safe ** 2
    Q = 5.0 / 6.0 * (N2 - 2.0 * II_W) * (2.0 * N2 - II_W)
    Q = jnp.maximum(Q, SMALL)
    return EARSMBetas(
        beta1=-N_safe * (2.0 * N2 - 7.0 * II_W) / Q,
        beta3=-12.0 * IV / (N_safe * Q),
        beta4=-2.0 * (N2 - 2.0 * II_W) / Q,
        beta6=-6.0 * N_safe / Q,
        beta9=6.0 / Q,
    )


def _weighted(beta, T):
    return beta[..., None, None] * T


@jax.jit
def c_mu(betas: EARSMBetas, II_W):
    """Effective C_μ = −½(β1 + II_W β6)."""
    return -0.5 * (betas.beta1 + II_W * betas.beta6)


@jax.jit
def extra_anisotropy(S, W, betas: EARSMBetas):
    """
    a_ex = β3 T2 + β4 T3 + β6 T4 + β9 T5, the part of a not represented by ν_t.

    T4 carries the −II_W S term, so the β6 contribution parallel to S is
    already part of C_μ and a_ex has no component along S in 2-D flow.
    """
    _, T2, T3, T4, T5 = basis_tensors(S, W)
    return (_weighted(betas.beta3, T2) + _weighted(betas.beta4, T3)
            + _weighted(betas.beta6, T4) + _weighted(betas.beta9, T5))


@jax.jit
def anisotropy(S, W, betas: EARSMBetas):
    """a = −2 C_μ S* + a_ex (symmetric, trace-free)."""
    II_W = jnp.trace(W @ W, axis1=-2, axis2=-1)
    cmu = c_mu(betas, II_W)
    return extra_anisotropy(S, W, betas) - 2.0 * cmu[..., None, None] * S


@jax.jit
def strain_axes_rotation(S, dS_dt):
    """
    Rotation rate of the principal axes of the strain-rate tensor.

    With S = V Λ Vᵀ, the eigenvectors evolve as dV/dt = V A where

        A_ab = (Vᵀ Ṡ V)_ab / (λ_b − λ_a),   a ≠ b

    and the axes rotation rate is Ω_r = V A Vᵀ. Pairs of (nearly) equal
    eigenvalues have no well defined axes and contribute zero.

    Parameters
    ----------
    S : array (..., 3, 3)
        Strain-rate tensor.
    dS_dt : array (..., 3, 3)
        Material derivative of S.

    Returns
    -------
    Omega_r : array (..., 3, 3), antisymmetric
    """
    lam, V = jnp.linalg.eigh(S)
    VT = jnp.swapaxes(V, -1, -2)
    Sdot = VT @ dS_dt @ V

    gap = lam[..., None, :] - lam[..., :, None]  # λ_b − λ_a
    scale = jnp.max(jnp.abs(lam), axis=-1)[..., None, None]
    resolved = jnp.abs(gap) > EIG_SEPARATION_TOL * jnp.maximum(scale, SMALL)
    A = jnp.where(resolved, Sdot / jnp.where(resolved, gap, 1.0), 0.0)
    A = 0.5 * (A - jnp.swapaxes(A, -1, -2))
    return V @ A @ VT


def update_curvature_ramp(current: float, enabled: bool, ramp_steps: int) -> float:
    """
    Advance the curvature-correction ramp factor by one step.

    The factor moves by 1/ramp_steps towards 1 while the correction is
    enabled and towards 0 while it is disabled, so toggling the switch
    never changes the closure discontinuously.
    """
    if ramp_steps <= 0:
        return 1.0 if enabled else 0.0
    increment = 1.0 / ramp_steps
    if enabled:
        return min(current + increment, 1.0)
    return max(current - increment, 0.0)


@jax.jit
def curvature_corrected_rotation(W, omega_r, ramp, a0=A0_DEFAULT):
    """W − c Ω_r / A0 with the ramp factor c ∈ [0, 1]."""
    return W - ramp * omega_r / a0


@jax.jit
def earsm_closure(S_star, W_star, c_diff=2.2) -> EARSMResult:
    """
    Evaluate the complete closure from normalised tensors.

    Parameters
    ----------
    S_star : array (..., 3, 3)
        τ S.
    W_star : array (..., 3, 3)
        τ (W − Ω_r/A0), antisymmetric.
    c_diff : float
        Diffusion correction coefficient of A3'.

    Returns
    -------
    EARSMResult
        For zero S* and W* the anisotropy tensors are exactly zero.
    """
    inv = tensor_invariants(S_star, W_star)
    a3p = a3_prime(inv.II_S, c_diff)
    N = solve_n(a3p, inv.II_S, inv.II_W)
    betas = beta_coefficients(N, inv.II_W, inv.IV)
    cmu = c_mu(betas, inv.II_W)
    a_ex = extra_anisotropy(S_star, W_star, betas)
    return EARSMResult(
        N=N,
        betas=betas,
        c_mu=cmu,
        a=a_ex - 2.0 * cmu[..., None, None] * S_star,
        a_ex=a_ex,
        invariants=inv,
    )


@jax.jit
def production_with_anisotropy(nut, S, k, a_ex):
    """
    Turbulence production including the explicit stress.

    G = 2 ν_t S:S − k a_ex:S, clipped at zero.
    """
    return jnp.maximum(2.0 * nut * double_inner(S, S) - k * double_inner(a_ex, S), 0.0)
