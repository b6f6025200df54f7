"""
One-equation local correlation-based transition model on top of SST
(Menter, Smirnov, Liu & Avancha 2015).

Intermittency transport:

    ∂γ/∂t + ∇·(Uγ) − ∇·((ν + ν_t/σ_γ)∇γ) = P_γ − E_γ
    P_γ = F_length S γ (1 − γ) F_onset
    E_γ = c_a2 Ω γ F_turb (c_e2 γ − 1)

Coupling to SST:

    k production   γ P_k + P_k,lim
    k destruction  max(γ, 0.1) β* ω k
    F1             max(F1, exp(−(R_y/120)⁸)),  R_y = y √k / ν

P_k,lim = 5 C_k max(γ − 0.2, 0)(1 − γ) F_lim max(3 C_SEP ν − ν_t, 0) S Ω
supplies production in laminar separation bubbles.
"""

import numpy as np
from loguru import logger

from ..constants import K, OMEGA, GAMMA
from ..numerics.gradients import scalar_gradient, grad_dot
from ..physics import correlations as corr
from ..physics.blending import transition_f1
from .base import Closure, StepContext
from .sst import SST_COEFFS, prepare_sst, sst_eddy_viscosity


class GammaSST(Closure):
    """
    γ-SST transition model.

    Coefficients (dimensionless, beyond the SST set):
        Flength 100, ca2 0.06, ce2 50, sigmaGamma 1,
        CPG1 14.68, CPG1lim 1.5, CPG2 -7.34, CPG3 0, CPG2lim 3,
        CTU1 100, CTU2 1000, CTU3 1, ReThetacLim 1100, Ck 1, CSEP 1
    """

    name = "gammaSST"
    DEFAULT_COEFFS = dict(
        SST_COEFFS,
        Flength=100.0,
        ca2=0.06,
        ce2=50.0,
        sigmaGamma=1.0,
        CPG1=14.68,
        CPG1lim=1.5,
        CPG2=-7.34,
        CPG3=0.0,
        CPG2lim=3.0,
        CTU1=100.0,
        CTU2=1000.0,
        CTU3=1.0,
        ReThetacLim=1100.0,
        Ck=1.0,
        CSEP=1.0,
    )
    DEFAULT_SWITCHES = {"F3": False}
    extra_fields = (GAMMA,)

    def eddy_viscosity(self, fields, ctx):
        return sst_eddy_viscosity(
            self.coeffs, fields[K], fields[OMEGA], ctx.y, ctx.nu, ctx.S_mag,
            self.coeffs.switch("F3"), ctx.bounds.omega_min,
        )

    def _dv_dy(self, ctx: StepContext) -> np.ndarray:
        """Wall-normal derivative of the velocity magnitude."""
        if ctx.flow.velocity is None:
            logger.debug("gammaSST: no velocity supplied, pressure-gradient parameter uses dV/dy = 0")
            return np.zeros(ctx.mesh.shape)
        speed = np.linalg.norm(np.asarray(ctx.flow.velocity), axis=-1)
        walls = {side: 0.0 for side in ctx.mesh.wall_sides()}
        grad_speed = scalar_gradient(speed, ctx.mesh, walls)
        grad_y = scalar_gradient(ctx.y, ctx.mesh, walls)
        norm = np.maximum(np.linalg.norm(grad_y, axis=-1), 1e-12)
        return grad_dot(grad_speed, grad_y) / norm

    def prepare(self, ctx):
        c = self.coeffs
        k = ctx.old(K)
        prepare_sst(c, ctx, f1_modifier=lambda F1: np.asarray(transition_f1(F1, k, ctx.y, ctx.nu)))

        omega = np.maximum(ctx.old(OMEGA), ctx.bounds.omega_min)
        gamma = ctx.old(GAMMA)
        S, Omega = ctx.S_mag, ctx.W_mag

        tu = corr.tu_l(k, omega, ctx.y)
        lam = corr.lambda_theta_l(self._dv_dy(ctx), ctx.y, ctx.nu)
        fpg = corr.f_pg(lam, c.CPG1, c.CPG1lim, c.CPG2, c.CPG3, c.CPG2lim)
        re_thc = corr.re_theta_c(tu, fpg, c.CTU1, c.CTU2, c.CTU3)
        re_v = corr.vorticity_reynolds(S, ctx.y, ctx.nu)
        r_t = corr.turbulence_reynolds(k, omega, ctx.nu)

        Fonset = np.asarray(corr.f_onset(re_v, re_thc, r_t))
        Fturb = np.asarray(corr.f_turb(r_t))
        Flim = np.asarray(corr.f_lim(re_v, c.ReThetacLim))

        Pk_lim = (5.0 * c.Ck * np.maximum(gamma - 0.2, 0.0) * (1.0 - gamma) * Flim
                  * np.maximum(3.0 * c.CSEP * ctx.nu - ctx["nut"], 0.0) * S * Omega)

        ctx["Fonset"] = Fonset
        ctx["Fturb"] = Fturb
        ctx["Pk_lim"] = Pk_lim
        ctx["ReThetac"] = np.asarray(re_thc)

    def production_k(self, ctx):
        return ctx.old(GAMMA) * ctx["Pk"] + ctx["Pk_lim"]

    def destruction_k(self, ctx):
        return np.maximum(ctx.old(GAMMA), 0.1) * self.coeffs.betaStar * ctx.field(OMEGA)

    def production_omega(self, ctx):
        return ctx["gamma"] * ctx["GbyNu"] + ctx["Su_cd"]

    def destruction_omega(self, ctx):
        return ctx["beta"] * ctx.old(OMEGA) + ctx["Sp_cd"]

    def diffusivity(self, name, ctx):
        if name == GAMMA:
            return ctx.nu + ctx["nut"] / self.coeffs.sigmaGamma
        alpha = {K: ctx["alphaK"], OMEGA: ctx["alphaOmega"]}[name]
        return ctx.nu + alpha * ctx["nut"]

    def extra_equation(self, name, ctx):
        if name != GAMMA:
            return super().extra_equation(name, ctx)
        c = self.coeffs
        gamma = ctx.old(GAMMA)
        # Picard linearisation of γ(1 − γ) and γ(c_e2 γ − 1) about the old γ
        P = c.Flength * ctx.S_mag * ctx["Fonset"]
        E = c.ca2 * ctx.W_mag * ctx["Fturb"]
        return self.build_equation(GAMMA, ctx, source=(P + E) * gamma,
                                   sink_rate=(P + c.ce2 * E) * gamma)
