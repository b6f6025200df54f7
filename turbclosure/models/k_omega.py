"""
Standard high-Reynolds k-ω model (Wilcox 1988).

    ∂k/∂t + ∇·(Uk) − ∇·((ν + α_K ν_t)∇k) = P_k − β* ω k
    ∂ω/∂t + ∇·(Uω) − ∇·((ν + α_ω ν_t)∇ω) = γ (ω/k) G − β ω²

    ν_t = k / ω,   G = ν_t |S|²,   |S|² = 2 S:S

P_k is G, optionally capped at c1 β* k ω (productionLimiter switch).

Reference:
    Wilcox, D. C. (1988). Reassessment of the scale-determining equation
    for advanced turbulence models. AIAA J. 26(11), 1299–1310.
"""

import numpy as np

from ..constants import K, OMEGA, SMALL
from ..numerics.transport import limit_production
from .base import Closure, StepContext, safe_div


class KOmega(Closure):
    """
    Wilcox k-ω.

    Coefficients (dimensionless):
        alphaK 0.5, alphaOmega 0.5, beta 0.072, betaStar 0.09, gamma 0.52,
        c1 10 (production limiter), omegaWallFactor 10
    """

    name = "kOmega"
    DEFAULT_COEFFS = {
        "alphaK": 0.5,
        "alphaOmega": 0.5,
        "beta": 0.072,
        "betaStar": 0.09,
        "gamma": 0.52,
        "c1": 10.0,
        "omegaWallFactor": 10.0,
    }
    DEFAULT_SWITCHES = {"productionLimiter": True}

    def eddy_viscosity(self, fields, ctx):
        return fields[K] / np.maximum(fields[OMEGA], ctx.bounds.omega_min)

    def prepare(self, ctx: StepContext) -> None:
        c = self.coeffs
        k, omega = ctx.old(K), ctx.old(OMEGA)
        nut = self.eddy_viscosity(ctx.state.fields, ctx)
        G = nut * ctx.S_mag ** 2
        Pk = G
        if c.switch("productionLimiter"):
            Pk = np.asarray(limit_production(G, k, omega, c.betaStar, c.c1))
        ctx["nut"] = nut
        ctx["G"] = G
        ctx["Pk"] = Pk

    def production_k(self, ctx):
        return ctx["Pk"]

    def destruction_k(self, ctx):
        return self.coeffs.betaStar * ctx.field(OMEGA)

    def production_omega(self, ctx):
        k, omega = ctx.old(K), ctx.old(OMEGA)
        return self.coeffs.gamma * safe_div(omega, k, SMALL) * ctx["G"]

    def destruction_omega(self, ctx):
        return self.coeffs.beta * ctx.old(OMEGA)

    def diffusivity(self, name, ctx):
        alpha = {K: self.coeffs.alphaK, OMEGA: self.coeffs.alphaOmega}[name]
        return ctx.nu + alpha * ctx["nut"]
