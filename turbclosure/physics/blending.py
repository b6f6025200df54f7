"""
SST-style blending between inner (near-wall) and outer coefficient sets.

A blending field F is 1 near walls and 0 in the free stream; every blended
coefficient is obtained through the single interpolation

    blend(F, inner, outer) = F·(inner − outer) + outer

so that all terms of an equation set switch consistently.

References:
- Menter, Kuntz & Langtry (2003), "Ten years of industrial experience with
  the SST turbulence model"
- Hellsten (2005), "New advanced k-ω turbulence model for high-lift
  aerodynamics", AIAA J. 43(9)
- Menter, Smirnov, Liu & Avancha (2015), "A one-equation local
  correlation-based transition model", FTC 95(4)
"""

from ..constants import SMALL, Y_MIN
from .jax_config import jax, jnp


@jax.jit
def blend(F, inner, outer):
    """
    Linear interpolation of a coefficient pair by a blending field.
    
    Parameters
    ----------
    F : array
        Blending field in [0, 1].
    inner, outer : float or array
        Coefficient values for F = 1 and F = 0 respectively.
        
    Returns
    -------
    array
        F·(inner − outer) + outer, returning the end values exactly at
        F = 1 and F = 0.
    """
    mixed = F * (inner - outer) + outer
    return jnp.where(F >= 1.0, inner, jnp.where(F <= 0.0, outer, mixed))


@jax.jit
def cd_k_omega(grad_k_dot_grad_omega, omega, alpha_omega2):
    """SST cross-diffusion CD_kω = max(2 α_ω2 ∇k·∇ω / ω, 1e-10)."""
    omega_safe = jnp.maximum(omega, SMALL)
    return jnp.maximum(2.0 * alpha_omega2 * grad_k_dot_grad_omega / omega_safe, 1e-10)


@jax.jit
def sst_f1(k, omega, y, nu, CDkOmega, beta_star, alpha_omega2):
    """
    Menter F1 blending function.
    
    arg1 = min(max(√k/(β* ω y), 500 ν/(y² ω)), 4 α_ω2 k/(CD_kω y²))
    F1 = tanh(arg1⁴)
    """
    omega_safe = jnp.maximum(omega, SMALL)
    y_safe = jnp.maximum(y, Y_MIN)
    k_safe = jnp.maximum(k, 0.0)

    arg1 = jnp.minimum(
        jnp.maximum(
            jnp.sqrt(k_safe) / (beta_star * omega_safe * y_safe),
            500.0 * nu / (y_safe ** 2 * omega_safe),
        ),
        4.0 * alpha_omega2 * k_safe / (jnp.maximum(CDkOmega, 1e-10) * y_safe ** 2),
    )
    # Large arguments saturate tanh; clip before the fourth power
    arg1 = jnp.minimum(arg1, 10.0)
    return jnp.clip(jnp.tanh(arg1 ** 4), 0.0, 1.0)


@jax.jit
def sst_f2(k, omega, y, nu, beta_star):
    """
    Menter F2 blending function.
    
    arg2 = max(2√k/(β* ω y), 500 ν/(y² ω)),  F2 = tanh(arg2²)
    """
    omega_safe = jnp.maximum(omega, SMALL)
    y_safe = jnp.maximum(y, Y_MIN)
    k_safe = jnp.maximum(k, 0.0)

    arg2 = jnp.maximum(
        2.0 * jnp.sqrt(k_safe) / (beta_star * omega_safe * y_safe),
        500.0 * nu / (y_safe ** 2 * omega_safe),
    )
    arg2 = jnp.minimum(arg2, 100.0)
    return jnp.clip(jnp.tanh(arg2 ** 2), 0.0, 1.0)


@jax.jit
def sst_f3(omega, y, nu):
    """Rough-wall/F3 term of Hellsten: 1 − tanh((150 ν/(ω y²))⁴)."""
    omega_safe = jnp.maximum(omega, SMALL)
    y_safe = jnp.maximum(y, Y_MIN)
    arg3 = jnp.minimum(150.0 * nu / (omega_safe * y_safe ** 2), 10.0)
    return jnp.clip(1.0 - jnp.tanh(arg3 ** 4), 0.0, 1.0)


def sst_f23(k, omega, y, nu, beta_star, use_f3: bool):
    """F2, multiplied by F3 when the F3 switch is on."""
    f23 = sst_f2(k, omega, y, nu, beta_star)
    if use_f3:
        f23 = f23 * sst_f3(omega, y, nu)
    return f23


@jax.jit
def hellsten_fmix(k, omega, y, nu, grad_k_grad_omega_by_omega, beta_star, k_inf):
    """
    Hellsten (2005) blending function for the EARSM k-ω model.
    
    Γ1 = √k/(β* ω y),  Γ2 = 500 ν/(ω y²),
    Γ3 = 20 k / max(y² ∇k·∇ω/ω, 200 k_∞),
    Γ = min(max(Γ1, Γ2), Γ3),  f_mix = tanh(1.5 Γ⁴)
    
    Parameters
    ----------
    grad_k_grad_omega_by_omega : array
        ∇k·∇ω / ω.
    k_inf : float
        Free-stream k used to bound Γ3.
    """
    omega_safe = jnp.maximum(omega, SMALL)
    y_safe = jnp.maximum(y, Y_MIN)
    k_safe = jnp.maximum(k, 0.0)

    gamma1 = jnp.sqrt(k_safe) / (beta_star * omega_safe * y_safe)
    gamma2 = 500.0 * nu / (omega_safe * y_safe ** 2)
    gamma3 = 20.0 * k_safe / jnp.maximum(
        y_safe ** 2 * grad_k_grad_omega_by_omega, jnp.maximum(200.0 * k_inf, SMALL)
    )
    arg = jnp.minimum(jnp.minimum(jnp.maximum(gamma1, gamma2), gamma3), 10.0)
    return jnp.clip(jnp.tanh(1.5 * arg ** 4), 0.0, 1.0)


@jax.jit
def transition_f1(F1, k, y, nu):
    """
    γ-SST modification of F1 inside laminar boundary layers.
    
    R_y = y √k / ν,  F3 = exp(−(R_y/120)⁸),  F1 = max(F1, F3)
    """
    Ry = jnp.maximum(y, 0.0) * jnp.sqrt(jnp.maximum(k, 0.0)) / nu
    F3 = jnp.exp(-jnp.minimum((Ry / 120.0) ** 8, 700.0))
    return jnp.clip(jnp.maximum(F1, F3), 0.0, 1.0)
