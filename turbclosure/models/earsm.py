"""
Hellsten (2005) k-ω model with the Wallin–Johansson EARSM.

    ∂k/∂t + ∇·(Uk) − ∇·((ν + α_K ν_t)∇k) = G − β* ω k
    ∂ω/∂t + ∇·(Uω) − ∇·((ν + α_ω ν_t)∇ω) = γ (ω/k) G − β ω²
                                            + (α_D/ω) max(∇k·∇ω, 0)

    τ = 1/(β* ω),   ν_t = C_μ k τ,   G = max(2 ν_t S:S − k a_ex:S, 0)

C_μ and a_ex come from the explicit algebraic stress closure evaluated on
S* = τ S and W* = τ (W − c Ω_r/A0). The curvature term is ramped in over
curvatureRampSteps correct() calls when the curvatureCorrection switch is
turned on, and ramped out likewise.
"""

from typing import Dict, Tuple

import numpy as np
from loguru import logger

from ..constants import K, OMEGA, SMALL
from ..numerics.gradients import grad_dot
from ..numerics.transport import limit_production
from ..physics.blending import blend, hellsten_fmix
from ..physics.earsm import (
    EARSMResult,
    curvature_corrected_rotation,
    earsm_closure,
    production_with_anisotropy,
    strain_axes_rotation,
    update_curvature_ramp,
)
from .base import Closure, StepContext, safe_div

CURVATURE_RAMP = "curvatureRamp"


def earsm_state(coeffs, tau, ctx: StepContext) -> EARSMResult:
    """
    Evaluate the algebraic stress closure for time scale τ.

    The curvature-corrected rotation uses the ramp factor stored in
    ctx.aux; without a supplied dS/dt the axes rotation is zero.
    """
    W = ctx.W
    ramp = ctx.aux.get(CURVATURE_RAMP, 0.0)
    if ramp > 0.0:
        if ctx.flow.strain_rate_dt is None:
            logger.debug("Curvature correction active but no dS/dt supplied, using W unchanged")
        else:
            omega_r = strain_axes_rotation(ctx.S, np.asarray(ctx.flow.strain_rate_dt))
            W = curvature_corrected_rotation(W, omega_r, ramp, coeffs.A0)
    tau_t = tau[..., None, None]
    return earsm_closure(tau_t * ctx.S, tau_t * W, coeffs.Cdiff)


def earsm_viscosity_and_stress(coeffs, k, tau, ctx: StepContext) -> Tuple[np.ndarray, np.ndarray]:
    """ν_t = C_μ k τ and the explicit stress k·a_ex."""
    result = earsm_state(coeffs, tau, ctx)
    nut = np.asarray(result.c_mu) * k * tau
    stress = k[..., None, None] * np.asarray(result.a_ex)
    return nut, stress


def advance_ramp(coeffs, aux: Dict[str, float]) -> Dict[str, float]:
    out = dict(aux)
    out[CURVATURE_RAMP] = update_curvature_ramp(
        aux.get(CURVATURE_RAMP, 0.0),
        coeffs.switch("curvatureCorrection"),
        int(coeffs.curvatureRampSteps),
    )
    return out


class EARSM(Closure):
    """
    Hellsten EARSM k-ω.

    Coefficients (dimensionless):
        betaStar 0.09, gamma1 0.518, gamma2 0.44, beta1 0.0747, beta2 0.0828,
        alphaK1 1.1, alphaK2 1.1, alphaOmega1 0.53, alphaOmega2 1.0,
        alphaD1 1.0, alphaD2 0.4, kInf 1e-10 (m²/s²), A0 -0.72, Cdiff 2.2,
        c1 10, curvatureRampSteps 100, omegaWallFactor 10
    Switches:
        curvatureCorrection (off), productionLimiter (off)
    """

    name = "EARSM"
    DEFAULT_COEFFS = {
        "betaStar": 0.09,
        "gamma1": 0.518,
        "gamma2": 0.44,
        "beta1": 0.0747,
        "beta2": 0.0828,
        "alphaK1": 1.1,
        "alphaK2": 1.1,
        "alphaOmega1": 0.53,
        "alphaOmega2": 1.0,
        "alphaD1": 1.0,
        "alphaD2": 0.4,
        "kInf": 1e-10,
        "A0": -0.72,
        "Cdiff": 2.2,
        "c1": 10.0,
        "curvatureRampSteps": 100.0,
        "omegaWallFactor": 10.0,
    }
    DEFAULT_SWITCHES = {"curvatureCorrection": False, "productionLimiter": False}
    has_nonlinear_stress = True

    def _tau(self, omega, ctx):
        return 1.0 / (self.coeffs.betaStar * np.maximum(omega, ctx.bounds.omega_min))

    def eddy_viscosity(self, fields, ctx):
        tau = self._tau(fields[OMEGA], ctx)
        result = earsm_state(self.coeffs, tau, ctx)
        return np.asarray(result.c_mu) * fields[K] * tau

    def nonlinear_stress(self, fields, ctx):
        _, stress = earsm_viscosity_and_stress(self.coeffs, fields[K], self._tau(fields[OMEGA], ctx), ctx)
        return stress

    def advance_aux(self, aux):
        return advance_ramp(self.coeffs, aux)

    def prepare(self, ctx: StepContext) -> None:
        c = self.coeffs
        k, omega = ctx.old(K), ctx.old(OMEGA)
        omega_safe = np.maximum(omega, ctx.bounds.omega_min)
        tau = self._tau(omega, ctx)

        result = earsm_state(c, tau, ctx)
        nut = np.asarray(result.c_mu) * k * tau
        a_ex = np.asarray(result.a_ex)
        G = np.asarray(production_with_anisotropy(nut, ctx.S, k, a_ex))
        Pk = G
        if c.switch("productionLimiter"):
            Pk = np.asarray(limit_production(G, k, omega_safe, c.betaStar, c.c1))

        gkgw = grad_dot(ctx.gradient(K, wall_value=0.0), ctx.gradient(OMEGA))
        fmix = np.asarray(hellsten_fmix(k, omega_safe, ctx.y, ctx.nu,
                                        gkgw / omega_safe, c.betaStar, c.kInf))

        ctx.blending = fmix
        ctx["nut"] = nut
        ctx["G"] = G
        ctx["Pk"] = Pk
        ctx["alphaK"] = np.asarray(blend(fmix, c.alphaK1, c.alphaK2))
        ctx["alphaOmega"] = np.asarray(blend(fmix, c.alphaOmega1, c.alphaOmega2))
        ctx["beta"] = np.asarray(blend(fmix, c.beta1, c.beta2))
        ctx["gamma"] = np.asarray(blend(fmix, c.gamma1, c.gamma2))
        alpha_d = np.asarray(blend(fmix, c.alphaD1, c.alphaD2))
        ctx["CD"] = alpha_d * np.maximum(gkgw, 0.0) / omega_safe

    def production_k(self, ctx):
        return ctx["Pk"]

    def destruction_k(self, ctx):
        return self.coeffs.betaStar * ctx.field(OMEGA)

    def production_omega(self, ctx):
        k, omega = ctx.old(K), ctx.old(OMEGA)
        return ctx["gamma"] * safe_div(omega, k, SMALL) * ctx["G"] + ctx["CD"]

    def destruction_omega(self, ctx):
        return ctx["beta"] * ctx.old(OMEGA)

    def diffusivity(self, name, ctx):
        alpha = {K: ctx["alphaK"], OMEGA: ctx["alphaOmega"]}[name]
        return ctx.nu + alpha * ctx["nut"]
