"""
Empirical transition correlations.

Three families live here:

1. Local correlation-based intermittency model (γ-SST):
   Menter, Smirnov, Liu & Avancha (2015), FTC 95(4), 583–619.
   Onset is controlled by the critical momentum-thickness Reynolds number
   Re_θc(Tu_L, λ_θL), compared against the vorticity Reynolds number
   Re_v = d² S / ν.

2. Laminar-fluctuation (bypass / natural) transition terms shared by the
   k-v2-ω and k-kL-ω models:
   Walters & Cokljat (2008), J. Fluids Eng. 130(12);
   Lopez & Walters (2016), J. Turbulence 17(3).

3. Falkner–Skan pressure-gradient corrections of the k-kL-ω critical
   vorticity Reynolds numbers (Fürst, Příhoda & Straka 2013): the local
   acceleration of the edge velocity sets λ_θ, and the thresholds
   C_TS,crit and C_NAT,crit scale with the critical Re_θ of the matching
   Falkner–Skan profile.

Every correlation clips its inputs to a documented valid range before
evaluation; the ranges are exposed as module constants so callers and tests
can check the boundaries.
"""

from typing import Union

from ..constants import SMALL
from .jax_config import jax, jnp

ArrayLike = Union[jnp.ndarray, float]

# =============================================================================
# VALID RANGES
# =============================================================================

# Local turbulence intensity Tu_L [%]
TU_L_RANGE = (0.0, 100.0)

# Local pressure-gradient parameter λ_θL [-]
LAMBDA_THETA_L_RANGE = (-1.0, 1.0)

# Turbulence Reynolds number R_T = k/(ν ω) [-]
R_T_RANGE = (0.0, 1.0e10)

# Vorticity Reynolds number Re_Ω = d² Ω / ν [-]
RE_OMEGA_RANGE = (0.0, 1.0e10)

# Fonset1 saturation (Menter et al. 2015)
F_ONSET1_MAX = 2.0

# Flim saturation for the separation-induced production term
F_LIM_MAX = 3.0

# Upper bound of the bypass parameter φ_BP (Walters & Cokljat 2008)
PHI_BP_MAX = 50.0


def _clip(x, bounds):
    return jnp.clip(x, bounds[0], bounds[1])


# =============================================================================
# γ-SST CORRELATIONS
# =============================================================================

@jax.jit
def tu_l(k: ArrayLike, omega: ArrayLike, d: ArrayLike) -> jnp.ndarray:
    """
    Local turbulence intensity.

    FORMULA:
        Tu_L = min(100 √(2k/3) / (ω d), 100)

    Returns
    -------
    Tu_L : array
        Turbulence intensity in percent, within TU_L_RANGE.
    """
    k_safe = jnp.maximum(k, 0.0)
    denom = jnp.maximum(omega * d, SMALL)
    return _clip(100.0 * jnp.sqrt(2.0 * k_safe / 3.0) / denom, TU_L_RANGE)


@jax.jit
def lambda_theta_l(dv_dy: ArrayLike, d: ArrayLike, nu: ArrayLike) -> jnp.ndarray:
    """
    Local pressure-gradient parameter.

    FORMULA:
        λ_θL = −7.57e-3 (dV/dy) d² / ν + 0.0128

    dV/dy is the wall-normal derivative of the velocity magnitude.
    The result is clipped to LAMBDA_THETA_L_RANGE.
    """
    lam = -7.57e-3 * dv_dy * d ** 2 / nu + 0.0128
    return _clip(lam, LAMBDA_THETA_L_RANGE)


@jax.jit
def f_pg(lambda_theta: ArrayLike,
         CPG1: float = 14.68, CPG1lim: float = 1.5,
         CPG2: float = -7.34, CPG3: float = 0.0,
         CPG2lim: float = 3.0) -> jnp.ndarray:
    """
    Pressure-gradient function F_PG(λ_θL).

    FORMULA:
        λ ≥ 0:  F_PG = min(1 + CPG1 λ, CPG1lim)
        λ < 0:  F_PG = min(1 + CPG2 λ + CPG3 min(λ + 0.0681, 0), CPG2lim)
        F_PG = max(F_PG, 0)
    """
    lam = _clip(lambda_theta, LAMBDA_THETA_L_RANGE)
    favourable = jnp.minimum(1.0 + CPG1 * lam, CPG1lim)
    adverse = jnp.minimum(
        1.0 + CPG2 * lam + CPG3 * jnp.minimum(lam + 0.0681, 0.0), CPG2lim
    )
    return jnp.maximum(jnp.where(lam >= 0.0, favourable, adverse), 0.0)


@jax.jit
def re_theta_c(tu: ArrayLike, fpg: ArrayLike,
               CTU1: float = 100.0, CTU2: float = 1000.0,
               CTU3: float = 1.0) -> jnp.ndarray:
    """
    Critical momentum-thickness Reynolds number.

    FORMULA:
        Re_θc = CTU1 + CTU2 exp(−CTU3 Tu_L F_PG)

    Bounded in [CTU1, CTU1 + CTU2] for Tu_L, F_PG ≥ 0.
    """
    tu_safe = _clip(tu, TU_L_RANGE)
    return CTU1 + CTU2 * jnp.exp(-CTU3 * tu_safe * jnp.maximum(fpg, 0.0))


@jax.jit
def vorticity_reynolds(S: ArrayLike, d: ArrayLike, nu: ArrayLike) -> jnp.ndarray:
    """Re_v = d² S / ν, clipped to RE_OMEGA_RANGE."""
    return _clip(d ** 2 * S / nu, RE_OMEGA_RANGE)


@jax.jit
def turbulence_reynolds(k: ArrayLike, omega: ArrayLike, nu: ArrayLike) -> jnp.ndarray:
    """R_T = k / (ν ω), clipped to R_T_RANGE."""
    return _clip(jnp.maximum(k, 0.0) / (nu * jnp.maximum(omega, SMALL)), R_T_RANGE)


@jax.jit
def f_onset(re_v: ArrayLike, re_thc: ArrayLike, r_t: ArrayLike) -> jnp.ndarray:
    """
    Transition onset function.

    FORMULA:
        F_onset1 = Re_v / (2.2 Re_θc)
        F_onset2 = min(F_onset1, 2)
        F_onset3 = max(1 − (R_T/3.5)³, 0)
        F_onset  = max(F_onset2 − F_onset3, 0)

    Returns
    -------
    array in [0, F_ONSET1_MAX].
    """
    re_v = _clip(re_v, RE_OMEGA_RANGE)
    r_t = _clip(r_t, R_T_RANGE)
    f1 = re_v / (2.2 * jnp.maximum(re_thc, SMALL))
    f2 = jnp.minimum(f1, F_ONSET1_MAX)
    f3 = jnp.maximum(1.0 - (r_t / 3.5) ** 3, 0.0)
    return jnp.maximum(f2 - f3, 0.0)


@jax.jit
def f_turb(r_t: ArrayLike) -> jnp.ndarray:
    """F_turb = exp(−(R_T/2)⁴), in (0, 1]."""
    r_t = _clip(r_t, R_T_RANGE)
    return jnp.exp(-jnp.minimum((r_t / 2.0) ** 4, 700.0))


@jax.jit
def f_lim(re_v: ArrayLike, re_theta_c_lim: float = 1100.0) -> jnp.ndarray:
    """F_lim = min(max(Re_v/(2.2 Re_θc,lim) − 1, 0), 3)."""
    re_v = _clip(re_v, RE_OMEGA_RANGE)
    return jnp.clip(re_v / (2.2 * re_theta_c_lim) - 1.0, 0.0, F_LIM_MAX)


# =============================================================================
# LAMINAR-FLUCTUATION TRANSITION (k-v2-ω, k-kL-ω)
# =============================================================================

@jax.jit
def lambda_t(k: ArrayLike, omega: ArrayLike) -> jnp.ndarray:
    """Turbulent length scale λ_T = √k / ω."""
    return jnp.sqrt(jnp.maximum(k, 0.0)) / jnp.maximum(omega, SMALL)


@jax.jit
def lambda_eff(lam_t: ArrayLike, d: ArrayLike, C_lambda: float = 2.495) -> jnp.ndarray:
    """Effective (wall-limited) length scale λ_eff = min(C_λ d, λ_T)."""
    return jnp.minimum(C_lambda * d, lam_t)


@jax.jit
def f_w(lam_eff: ArrayLike, lam_t: ArrayLike) -> jnp.ndarray:
    """Wall-limitation factor f_W = (λ_eff / λ_T)^(2/3), in [0, 1]."""
    ratio = jnp.clip(lam_eff / jnp.maximum(lam_t, SMALL), 0.0, 1.0)
    return ratio ** (2.0 / 3.0)


@jax.jit
def f_v(re_t: ArrayLike, A_nu: float = 6.75) -> jnp.ndarray:
    """Viscous damping f_v = 1 − exp(−√Re_T / A_ν)."""
    return 1.0 - jnp.exp(-jnp.sqrt(_clip(re_t, R_T_RANGE)) / A_nu)


@jax.jit
def f_int(k_turb: ArrayLike, k_total: ArrayLike, C_INT: float = 0.75) -> jnp.ndarray:
    """Intermittency damping f_INT = min(k_T / (C_INT k_tot), 1)."""
    return jnp.clip(
        jnp.maximum(k_turb, 0.0) / (C_INT * jnp.maximum(k_total, SMALL)), 0.0, 1.0
    )


@jax.jit
def f_ss(vorticity: ArrayLike, k: ArrayLike, nu: ArrayLike,
         C_SS: float = 1.5) -> jnp.ndarray:
    """
    Shear-sheltering function.

    FORMULA:
        f_SS = exp(−(C_SS ν Ω / k)²)

    ~1 where free-stream fluctuations dominate, →0 inside a laminar
    shear layer with low turbulence energy.
    """
    arg = C_SS * nu * vorticity / jnp.maximum(k, SMALL)
    return jnp.exp(-jnp.minimum(arg ** 2, 700.0))


@jax.jit
def c_mu_shear(S: ArrayLike, omega: ArrayLike, A0: float = 4.04,
               A_S: float = 2.12) -> jnp.ndarray:
    """Strain-dependent C_μ = 1 / (A0 + A_S S/ω)."""
    return 1.0 / (A0 + A_S * jnp.maximum(S, 0.0) / jnp.maximum(omega, SMALL))


@jax.jit
def beta_ts(re_omega: ArrayLike, C_TS_crit: float = 1000.0,
            A_TS: float = 200.0) -> jnp.ndarray:
    """Tollmien–Schlichting onset β_TS = 1 − exp(−max(Re_Ω − C_TS,crit, 0)² / A_TS)."""
    excess = jnp.maximum(_clip(re_omega, RE_OMEGA_RANGE) - C_TS_crit, 0.0)
    return 1.0 - jnp.exp(-jnp.minimum(excess ** 2 / A_TS, 700.0))


@jax.jit
def f_tau_l(k_tl: ArrayLike, lam_eff: ArrayLike, vorticity: ArrayLike,
            C_tau_l: float = 4360.0) -> jnp.ndarray:
    """Large-scale time-scale damping f_τ,l = 1 − exp(−C_τ,l k_T,l / (λ_eff² Ω²))."""
    denom = jnp.maximum(lam_eff ** 2 * vorticity ** 2, SMALL)
    return 1.0 - jnp.exp(-jnp.minimum(C_tau_l * jnp.maximum(k_tl, 0.0) / denom, 700.0))


@jax.jit
def phi_bp(k: ArrayLike, vorticity: ArrayLike, nu: ArrayLike,
           C_BP_crit: float = 1.2) -> jnp.ndarray:
    """
    Bypass transition parameter.
    
    FORMULA:
        φ_BP = min(max(k/(ν Ω) − C_BP,crit, 0), PHI_BP_MAX)
    """
    ratio = jnp.maximum(k, 0.0) / (nu * jnp.maximum(vorticity, SMALL))
    return jnp.clip(_clip(ratio, R_T_RANGE) - C_BP_crit, 0.0, PHI_BP_MAX)


@jax.jit
def beta_bp(phi: ArrayLike, A_BP: float = 0.6) -> jnp.ndarray:
    """β_BP = 1 − exp(−φ_BP / A_BP), in [0, 1)."""
    return 1.0 - jnp.exp(-jnp.minimum(jnp.maximum(phi, 0.0) / A_BP, 700.0))


@jax.jit
def f_nat_crit(kl: ArrayLike, d: ArrayLike, nu: ArrayLike,
               C_NC: float = 0.1) -> jnp.ndarray:
    """f_NAT,crit = 1 − exp(−C_NC √k_L d / ν)."""
    return 1.0 - jnp.exp(-C_NC * jnp.sqrt(jnp.maximum(kl, 0.0)) * d / nu)


@jax.jit
def phi_nat(re_omega: ArrayLike, f_crit: ArrayLike,
            C_NAT_crit: float = 1250.0) -> jnp.ndarray:
    """Natural transition parameter φ_NAT = max(Re_Ω − C_NAT,crit / f_NAT,crit, 0)."""
    threshold = C_NAT_crit / jnp.maximum(f_crit, SMALL)
    return jnp.maximum(_clip(re_omega, RE_OMEGA_RANGE) - threshold, 0.0)


@jax.jit
def beta_nat(phi: ArrayLike, A_NAT: float = 200.0) -> jnp.ndarray:
    """β_NAT = 1 − exp(−φ_NAT / A_NAT), in [0, 1)."""
    return 1.0 - jnp.exp(-jnp.minimum(jnp.maximum(phi, 0.0) / A_NAT, 700.0))


@jax.jit
def f_omega(lam_eff: ArrayLike, lam_t: ArrayLike) -> jnp.ndarray:
    """Near-wall ω damping f_ω = 1 − exp(−0.41 (λ_eff/λ_T)⁴)."""
    ratio = jnp.clip(lam_eff / jnp.maximum(lam_t, SMALL), 0.0, 1.0)
    return 1.0 - jnp.exp(-0.41 * ratio ** 4)


# =============================================================================
# FALKNER–SKAN PRESSURE-GRADIENT CORRELATIONS (k-kL-ω)
# =============================================================================

# Acceleration parameter K = ν/Ue² dUe/ds [-]
ACCELERATION_RANGE = (-1.0e-5, 1.0e-5)

# Falkner–Skan λ_θ = θ²/ν dUe/ds between separation (Hartree β = −0.1988)
# and plane stagnation flow (β = 1)
LAMBDA_THETA_FS_RANGE = (-0.0682, 0.0855)

# Wall distance of the Re_v maximum in units of θ (Blasius profile)
PEAK_DISTANCE_BY_THETA = 3.3

# Local parameter L = d²/ν dUe/ds, mapped onto LAMBDA_THETA_FS_RANGE
FS_L_RANGE = (LAMBDA_THETA_FS_RANGE[0] * PEAK_DISTANCE_BY_THETA ** 2,
              LAMBDA_THETA_FS_RANGE[1] * PEAK_DISTANCE_BY_THETA ** 2)

# Zero-pressure-gradient reference values (Blasius)
RE_V_BY_RE_THETA_BLASIUS = 2.193
RE_THETA_C_BLASIUS = 201.0

# Bounds on the ratio of a critical value to its zero-gradient value
CRITICAL_SCALE_RANGE = (0.1, 20.0)


@jax.jit
def edge_velocity(speed: ArrayLike, pressure: ArrayLike) -> jnp.ndarray:
    """
    Boundary-layer edge velocity from the kinematic pressure.

    FORMULA:
        p0 = max(p + ½|U|²)     (total pressure of the domain)
        Ue = √(max(2 (p0 − p), |U|²))

    Inside a boundary layer the static pressure is that of the edge, so Ue
    is the inviscid speed the local pressure corresponds to.
    """
    p0 = jnp.max(pressure + 0.5 * speed ** 2)
    return jnp.sqrt(jnp.maximum(2.0 * (p0 - pressure), speed ** 2))


@jax.jit
def acceleration_parameter(Ue: ArrayLike, dUe_ds: ArrayLike, nu: ArrayLike) -> jnp.ndarray:
    """K = ν/Ue² dUe/ds, clipped to ACCELERATION_RANGE."""
    K = nu * dUe_ds / jnp.maximum(Ue, SMALL) ** 2
    return _clip(K, ACCELERATION_RANGE)


@jax.jit
def fs_length_parameter(K: ArrayLike, Ue: ArrayLike, d: ArrayLike, nu: ArrayLike) -> jnp.ndarray:
    """L = K (Ue d/ν)² = d²/ν dUe/ds, clipped to FS_L_RANGE."""
    return _clip(K * (Ue * d / nu) ** 2, FS_L_RANGE)


@jax.jit
def rev_by_re_theta(L: ArrayLike) -> jnp.ndarray:
    """
    Ratio of the peak vorticity Reynolds number to Re_θ.

    2.193 for the Blasius profile, rising for adverse and falling for
    favourable pressure gradients.
    """
    return RE_V_BY_RE_THETA_BLASIUS * jnp.exp(-0.5 * _clip(L, FS_L_RANGE))


@jax.jit
def lambda_theta_fs(L: ArrayLike) -> jnp.ndarray:
    """λ_θ = L (θ/d)² at the Re_v peak, clipped to LAMBDA_THETA_FS_RANGE."""
    return _clip(L / PEAK_DISTANCE_BY_THETA ** 2, LAMBDA_THETA_FS_RANGE)


@jax.jit
def re_theta_c_fs(lambda_theta: ArrayLike) -> jnp.ndarray:
    """
    Critical Re_θ of the Falkner–Skan profiles (linear stability).

    FORMULA:
        Re_θc = 201 exp(37.7 λ + 15.9 λ²)

    Passes through 201 (Blasius), ≈16.5 at separation and ≈5.7e3 at the
    plane stagnation point.
    """
    lam = _clip(lambda_theta, LAMBDA_THETA_FS_RANGE)
    return RE_THETA_C_BLASIUS * jnp.exp(37.7 * lam + 15.9 * lam ** 2)


@jax.jit
def critical_scale(L: ArrayLike) -> jnp.ndarray:
    """
    Critical vorticity Reynolds number relative to the zero-gradient value.

    (Re_v/Re_θ)(L) Re_θc(λ_θ(L)) / (2.193 · 201), clipped to
    CRITICAL_SCALE_RANGE. Equal to 1 for L = 0.
    """
    ratio = (rev_by_re_theta(L) * re_theta_c_fs(lambda_theta_fs(L))
             / (RE_V_BY_RE_THETA_BLASIUS * RE_THETA_C_BLASIUS))
    return _clip(ratio, CRITICAL_SCALE_RANGE)


@jax.jit
def c_ts_crit(L: ArrayLike, C_TS_crit: float = 1000.0) -> jnp.ndarray:
    """Pressure-gradient dependent Tollmien–Schlichting threshold C_TS,crit(L)."""
    return C_TS_crit * critical_scale(L)


@jax.jit
def c_nat_crit(L: ArrayLike, C_NAT_crit: float = 1250.0) -> jnp.ndarray:
    """Pressure-gradient dependent natural-transition threshold C_NAT,crit(L)."""
    return C_NAT_crit * critical_scale(L)


# =============================================================================
# ALGEBRAIC TRANSITION (EARSM with transition)
# =============================================================================

@jax.jit
def algebraic_intermittency(k: ArrayLike, vorticity: ArrayLike, nu: ArrayLike,
                            C_SS: float = 3.25, C_T: float = 14.5 / 8.0,
                            A_T: float = 1.0) -> jnp.ndarray:
    """
    Algebraic production multiplier for the transitional EARSM.

    FORMULA:
        R_k   = k / (ν Ω)
        γ_BP  = 1 − exp(−max(R_k − C_T, 0) / A_T)
        f_SS  = exp(−(C_SS ν Ω / k)²)
        γ_tr  = max(f_SS, γ_BP)

    Returns
    -------
    array in [0, 1]
        1 in fully turbulent or weakly sheared regions, →0 in laminar
        boundary layers with low free-stream fluctuation energy.
    """
    gamma_bp = beta_bp(phi_bp(k, vorticity, nu, C_T), A_T)
    sheltering = f_ss(vorticity, k, nu, C_SS)
    return jnp.clip(jnp.maximum(sheltering, gamma_bp), 0.0, 1.0)
