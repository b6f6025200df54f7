"""
Single-set k-ω EARSM with an algebraic transition multiplier.

    ∂k/∂t + ∇·(Uk) − ∇·((ν + α_K ν_t)∇k) = γ_tr G − β* ω k
    ∂ω/∂t + ∇·(Uω) − ∇·((ν + α_ω ν_t)∇ω) = γ (ω/k) G − β ω²
                                            + (σ_D/ω) max(∇k·∇ω, 0)

    τ = max(1/(β* ω), C_τ √(ν/(β* k ω)))

The viscous bound on τ keeps the time scale at or above the Kolmogorov
scale near walls. γ_tr = max(f_SS, γ_BP) suppresses k production inside
laminar boundary layers (see correlations.algebraic_intermittency).
"""

import numpy as np

from ..constants import K, OMEGA, SMALL
from ..numerics.gradients import grad_dot
from ..numerics.transport import limit_production
from ..physics.correlations import algebraic_intermittency
from ..physics.earsm import A0_DEFAULT, production_with_anisotropy
from .base import Closure, StepContext, safe_div
from .earsm import advance_ramp, earsm_state, earsm_viscosity_and_stress


class EARSMTrans(Closure):
    """
    Transitional EARSM k-ω.

    Coefficients (dimensionless):
        betaStar 0.09, alphaK 1.01, alphaOmega 0.5, beta 0.075, sigmaD 0.52,
        gamma 5/9, Ctau 6.0, CSS 3.25, CT 14.5/8, AT 1.0, Cdiff 2.2,
        A0 -0.72, c1 10, curvatureRampSteps 100, omegaWallFactor 10
    Switches:
        productionLimiter (off), curvatureCorrection (off)
    """

    name = "EARSMTrans"
    DEFAULT_COEFFS = {
        "betaStar": 0.09,
        "alphaK": 1.01,
        "alphaOmega": 0.5,
        "beta": 0.075,
        "sigmaD": 0.52,
        "gamma": 5.0 / 9.0,
        "Ctau": 6.0,
        "CSS": 3.25,
        "CT": 14.5 / 8.0,
        "AT": 1.0,
        "Cdiff": 2.2,
        "A0": A0_DEFAULT,
        "c1": 10.0,
        "curvatureRampSteps": 100.0,
        "omegaWallFactor": 10.0,
    }
    DEFAULT_SWITCHES = {"productionLimiter": False, "curvatureCorrection": False}
    has_nonlinear_stress = True

    def _tau(self, k, omega, ctx):
        c = self.coeffs
        omega_safe = np.maximum(omega, ctx.bounds.omega_min)
        k_safe = np.maximum(k, ctx.bounds.k_min)
        return np.maximum(
            1.0 / (c.betaStar * omega_safe),
            c.Ctau * np.sqrt(ctx.nu / (c.betaStar * k_safe * omega_safe)),
        )

    def eddy_viscosity(self, fields, ctx):
        tau = self._tau(fields[K], fields[OMEGA], ctx)
        result = earsm_state(self.coeffs, tau, ctx)
        return np.asarray(result.c_mu) * fields[K] * tau

    def nonlinear_stress(self, fields, ctx):
        tau = self._tau(fields[K], fields[OMEGA], ctx)
        _, stress = earsm_viscosity_and_stress(self.coeffs, fields[K], tau, ctx)
        return stress

    def advance_aux(self, aux):
        return advance_ramp(self.coeffs, aux)

    def prepare(self, ctx: StepContext) -> None:
        c = self.coeffs
        k, omega = ctx.old(K), ctx.old(OMEGA)
        omega_safe = np.maximum(omega, ctx.bounds.omega_min)
        tau = self._tau(k, omega, ctx)

        result = earsm_state(c, tau, ctx)
        nut = np.asarray(result.c_mu) * k * tau
        G = np.asarray(production_with_anisotropy(nut, ctx.S, k, result.a_ex))

        gamma_tr = np.asarray(algebraic_intermittency(k, ctx.W_mag, ctx.nu, c.CSS, c.CT, c.AT))
        Pk = gamma_tr * G
        if c.switch("productionLimiter"):
            Pk = np.asarray(limit_production(Pk, k, omega_safe, c.betaStar, c.c1))

        gkgw = grad_dot(ctx.gradient(K, wall_value=0.0), ctx.gradient(OMEGA))

        ctx["nut"] = nut
        ctx["G"] = G
        ctx["Pk"] = Pk
        ctx["gammaTr"] = gamma_tr
        ctx["CD"] = c.sigmaD * np.maximum(gkgw, 0.0) / omega_safe

    def production_k(self, ctx):
        return ctx["Pk"]

    def destruction_k(self, ctx):
        return self.coeffs.betaStar * ctx.field(OMEGA)

    def production_omega(self, ctx):
        k, omega = ctx.old(K), ctx.old(OMEGA)
        return self.coeffs.gamma * safe_div(omega, k, SMALL) * ctx["G"] + ctx["CD"]

    def destruction_omega(self, ctx):
        return self.coeffs.beta * ctx.old(OMEGA)

    def diffusivity(self, name, ctx):
        alpha = {K: self.coeffs.alphaK, OMEGA: self.coeffs.alphaOmega}[name]
        return ctx.nu + alpha * ctx["nut"]
