"""
k-ω SST model (Menter, Kuntz & Langtry 2003).

    ∂k/∂t + ∇·(Uk) − ∇·((ν + α_K ν_t)∇k) = min(G, c1 β* k ω) − β* ω k
    ∂ω/∂t + ∇·(Uω) − ∇·((ν + α_ω ν_t)∇ω) = γ G/ν − β ω²
                                            + (1 − F1) CD_kω

    ν_t = a1 k / max(a1 ω, b1 F23 |S|)
    G/ν = min(|S|², (c1/a1) β* ω max(a1 ω, b1 F23 |S|))
    CD_kω = 2 α_ω2 ∇k·∇ω / ω

Every F1-dependent coefficient (α_K, α_ω, β, γ) is blended between the
inner (1) and outer (2) set with blend().
"""

from typing import Callable, Optional

import numpy as np

from ..constants import K, OMEGA
from ..numerics.gradients import grad_dot
from ..numerics.transport import limit_production, split_source
from ..physics.blending import blend, cd_k_omega, sst_f1, sst_f23
from .base import Closure, StepContext

# Coefficient set shared with γ-SST
SST_COEFFS = {
    "alphaK1": 0.85,
    "alphaK2": 1.0,
    "alphaOmega1": 0.5,
    "alphaOmega2": 0.856,
    "beta1": 0.075,
    "beta2": 0.0828,
    "betaStar": 0.09,
    "gamma1": 5.0 / 9.0,
    "gamma2": 0.44,
    "a1": 0.31,
    "b1": 1.0,
    "c1": 10.0,
    "omegaWallFactor": 10.0,
}


def sst_eddy_viscosity(coeffs, k, omega, y, nu, S_mag, use_f3: bool, omega_min: float):
    """ν_t = a1 k / max(a1 ω, b1 F23 |S|)."""
    omega = np.maximum(omega, omega_min)
    F23 = np.asarray(sst_f23(k, omega, y, nu, coeffs.betaStar, use_f3))
    return coeffs.a1 * k / np.maximum(coeffs.a1 * omega, coeffs.b1 * F23 * S_mag)


def prepare_sst(coeffs, ctx: StepContext,
                f1_modifier: Optional[Callable[[np.ndarray], np.ndarray]] = None) -> None:
    """
    Step-start SST quantities, stored on ctx.

    Stores F1 (after the optional modifier), F23, nut, G, GbyNu, the
    blended coefficients and the SuSp split of the cross-diffusion term.
    """
    c = coeffs
    k, omega = ctx.old(K), ctx.old(OMEGA)
    use_f3 = c.switch("F3")

    grad_k = ctx.gradient(K, wall_value=0.0)
    grad_omega = ctx.gradient(OMEGA)
    gkgw = grad_dot(grad_k, grad_omega)
    omega_safe = np.maximum(omega, ctx.bounds.omega_min)

    CDkOmega = 2.0 * c.alphaOmega2 * gkgw / omega_safe
    F1 = np.asarray(sst_f1(k, omega_safe, ctx.y, ctx.nu,
                           cd_k_omega(gkgw, omega_safe, c.alphaOmega2),
                           c.betaStar, c.alphaOmega2))
    if f1_modifier is not None:
        F1 = f1_modifier(F1)
    F23 = np.asarray(sst_f23(k, omega_safe, ctx.y, ctx.nu, c.betaStar, use_f3))

    nut = c.a1 * k / np.maximum(c.a1 * omega_safe, c.b1 * F23 * ctx.S_mag)
    S2 = ctx.S_mag ** 2
    G = nut * S2
    GbyNu = np.minimum(
        S2, (c.c1 / c.a1) * c.betaStar * omega_safe
        * np.maximum(c.a1 * omega_safe, c.b1 * F23 * ctx.S_mag)
    )

    ctx.blending = F1
    ctx["F1"] = F1
    ctx["F23"] = F23
    ctx["nut"] = nut
    ctx["G"] = G
    ctx["GbyNu"] = GbyNu
    ctx["Pk"] = np.asarray(limit_production(G, k, omega_safe, c.betaStar, c.c1))
    ctx["alphaK"] = np.asarray(blend(F1, c.alphaK1, c.alphaK2))
    ctx["alphaOmega"] = np.asarray(blend(F1, c.alphaOmega1, c.alphaOmega2))
    ctx["beta"] = np.asarray(blend(F1, c.beta1, c.beta2))
    ctx["gamma"] = np.asarray(blend(F1, c.gamma1, c.gamma2))

    Su_cd, Sp_cd = split_source((1.0 - F1) * CDkOmega, omega, ctx.bounds.omega_min)
    ctx["Su_cd"] = Su_cd
    ctx["Sp_cd"] = Sp_cd


class KOmegaSST(Closure):
    """
    Menter SST k-ω.

    Coefficients (dimensionless):
        alphaK1 0.85, alphaK2 1.0, alphaOmega1 0.5, alphaOmega2 0.856,
        beta1 0.075, beta2 0.0828, betaStar 0.09, gamma1 5/9, gamma2 0.44,
        a1 0.31, b1 1.0, c1 10, omegaWallFactor 10
    Switches:
        F3 (off): multiply F2 by the rough-wall F3 term in the ν_t limiter
    """

    name = "kOmegaSST"
    DEFAULT_COEFFS = dict(SST_COEFFS)
    DEFAULT_SWITCHES = {"F3": False}

    def eddy_viscosity(self, fields, ctx):
        return sst_eddy_viscosity(
            self.coeffs, fields[K], fields[OMEGA], ctx.y, ctx.nu, ctx.S_mag,
            self.coeffs.switch("F3"), ctx.bounds.omega_min,
        )

    def prepare(self, ctx):
        prepare_sst(self.coeffs, ctx)

    def production_k(self, ctx):
        return ctx["Pk"]

    def destruction_k(self, ctx):
        return self.coeffs.betaStar * ctx.field(OMEGA)

    def production_omega(self, ctx):
        return ctx["gamma"] * ctx["GbyNu"] + ctx["Su_cd"]

    def destruction_omega(self, ctx):
        return ctx["beta"] * ctx.old(OMEGA) + ctx["Sp_cd"]

    def diffusivity(self, name, ctx):
        alpha = {K: ctx["alphaK"], OMEGA: ctx["alphaOmega"]}[name]
        return ctx.nu + alpha * ctx["nut"]
