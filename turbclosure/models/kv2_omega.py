"""
k-v2-ω transition model (Lopez & Walters 2016).

Three transport equations: total fluctuation energy k, its turbulent
part v2, and the specific dissipation rate ω. The laminar (non-turbulent)
part k_L = k − v2 is transferred into v2 by the bypass and natural
transition terms R_BP and R_NAT.

    Dk/Dt  = P_k − min(k, v2) ω − D_k
    Dv2/Dt = P_v2 + (R_BP + R_NAT) k_L − v2 ω − D_v2
    Dω/Dt  = C_ω1 (ω/v2) P_v2 + (C_ωR/f_W − 1)(ω/v2)(R_BP + R_NAT) k_L
             − C_ω2 f_W² ω² + (1 − F1) σ_ω2 ∇k·∇ω/ω

    P_k  = (ν_T,s + ν_T,l) S²,   P_v2 = ν_T,s S²
    D_φ  = 2 ν |∇√φ|²

Diffusion uses α_T/σ_K for k and v2 and α_T/σ_ω for ω.

Reference:
    Lopez, M. & Walters, D. K. (2016). Prediction of transitional and fully
    turbulent flow using an alternative to the laminar kinetic energy
    approach. J. Turbulence 17(3), 253–273.
"""

from typing import Dict

import numpy as np

from ..constants import K, OMEGA, V2, SMALL
from ..numerics.gradients import scalar_gradient, grad_dot
from ..numerics.transport import split_source
from ..physics import correlations as corr
from ..physics.blending import cd_k_omega, sst_f1
from .base import Closure, StepContext, safe_div


def near_wall_dissipation(phi, ctx: StepContext) -> np.ndarray:
    """D(φ) = 2 ν |∇√φ|², the anisotropic near-wall dissipation."""
    walls = {side: 0.0 for side in ctx.mesh.wall_sides()}
    grad = scalar_gradient(np.sqrt(np.maximum(phi, 0.0)), ctx.mesh, walls)
    return 2.0 * ctx.nu * np.sum(grad ** 2, axis=-1)


class KV2Omega(Closure):
    """
    Lopez–Walters k-v2-ω.

    Coefficients (dimensionless unless noted):
        A0 4.04, AS 2.12, Anu 3.8, ABP 0.6, ANAT 200, ATS 200, CBPcrit 1.5,
        CNC 0.1, CNATcrit 1450, CINT 0.95, CTScrit 1000, CRNAT 0.02,
        C11 3.4e-6, C12 1e-10, CR 0.32, CalphaTheta 0.035, CSS 3.0,
        Ctau1 4360, Cw1 0.44, Cw2 0.92, CwR 1.15, Clambda 2.495,
        betaStar 0.09, PrTheta 0.85, sigmaK 1, sigmaW 1.17, sigmaW2 1.856
    """

    name = "kv2Omega"
    DEFAULT_COEFFS = {
        "A0": 4.04,
        "AS": 2.12,
        "Anu": 3.8,
        "ABP": 0.6,
        "ANAT": 200.0,
        "ATS": 200.0,
        "CBPcrit": 1.5,
        "CNC": 0.1,
        "CNATcrit": 1450.0,
        "CINT": 0.95,
        "CTScrit": 1000.0,
        "CRNAT": 0.02,
        "C11": 3.4e-6,
        "C12": 1.0e-10,
        "CR": 0.32,
        "CalphaTheta": 0.035,
        "CSS": 3.0,
        "Ctau1": 4360.0,
        "Cw1": 0.44,
        "Cw2": 0.92,
        "CwR": 1.15,
        "Clambda": 2.495,
        "betaStar": 0.09,
        "PrTheta": 0.85,
        "sigmaK": 1.0,
        "sigmaW": 1.17,
        "sigmaW2": 1.856,
        "omegaWallFactor": 10.0,
    }
    extra_fields = (V2,)

    # =========================================================================
    # Closure functions
    # =========================================================================

    def _viscosities(self, k, v2, omega, ctx: StepContext) -> Dict[str, np.ndarray]:
        """Small- and large-scale eddy viscosities and their ingredients."""
        c = self.coeffs
        nu, y = ctx.nu, ctx.y
        S, Omega = ctx.S_mag, ctx.W_mag
        omega = np.maximum(omega, ctx.bounds.omega_min)
        v2 = np.clip(v2, 0.0, np.maximum(k, 0.0))
        kl = np.maximum(k - v2, 0.0)

        lam_t = np.asarray(corr.lambda_t(v2, omega))
        lam_eff = np.asarray(corr.lambda_eff(lam_t, y, c.Clambda))
        fW = np.asarray(corr.f_w(lam_eff, lam_t))
        re_t = fW ** 2 * v2 / (nu * omega)
        fv = np.asarray(corr.f_v(re_t, c.Anu))
        fINT = np.asarray(corr.f_int(v2, k, c.CINT))
        fSS = np.asarray(corr.f_ss(Omega, v2, nu, c.CSS))
        Cmu = np.asarray(corr.c_mu_shear(S, omega, c.A0, c.AS))

        v2s = fSS * fW * v2
        v2l = np.maximum(v2 - v2s, 0.0)

        re_omega = y ** 2 * Omega / nu
        beta_ts = np.asarray(corr.beta_ts(re_omega, c.CTScrit, c.ATS))
        f_tau_l = np.asarray(corr.f_tau_l(v2l, lam_eff, Omega, c.Ctau1))

        nut_s = fv * fINT * Cmu * np.sqrt(v2s) * lam_eff
        nut_l = np.minimum(
            c.C11 * f_tau_l * Omega * lam_eff ** 2 * np.sqrt(v2l) * lam_eff / nu
            + c.C12 * beta_ts * re_omega * y ** 2 * Omega,
            0.5 * (kl + v2l) / np.maximum(S, SMALL),
        )
        return {
            "kl": kl,
            "lambdaEff": lam_eff,
            "fW": fW,
            "reOmega": re_omega,
            "nutS": nut_s,
            "nutL": nut_l,
            "alphaT": fv * c.betaStar * np.sqrt(v2s) * lam_eff,
        }

    def eddy_viscosity(self, fields, ctx):
        terms = self._viscosities(fields[K], fields[V2], fields[OMEGA], ctx)
        return terms["nutS"] + terms["nutL"]

    # =========================================================================
    # Step terms
    # =========================================================================

    def prepare(self, ctx: StepContext) -> None:
        c = self.coeffs
        k, v2, omega = ctx.old(K), ctx.old(V2), ctx.old(OMEGA)
        omega_safe = np.maximum(omega, ctx.bounds.omega_min)
        terms = self._viscosities(k, v2, omega, ctx)
        for key, value in terms.items():
            ctx[key] = value

        Omega = ctx.W_mag
        S2 = ctx.S_mag ** 2
        kl, fW = terms["kl"], terms["fW"]

        beta_bp = np.asarray(corr.beta_bp(corr.phi_bp(v2, Omega, ctx.nu, c.CBPcrit), c.ABP))
        R_bp = c.CR * beta_bp * omega_safe / np.maximum(fW, SMALL)
        f_crit = corr.f_nat_crit(kl, ctx.y, ctx.nu, c.CNC)
        beta_nat = np.asarray(corr.beta_nat(corr.phi_nat(terms["reOmega"], f_crit, c.CNATcrit), c.ANAT))
        R_nat = c.CRNAT * beta_nat * Omega
        transfer = (R_bp + R_nat) * kl

        ctx["Pk"] = (terms["nutS"] + terms["nutL"]) * S2
        ctx["Pv2"] = terms["nutS"] * S2
        ctx["transfer"] = transfer
        ctx["Dk"] = near_wall_dissipation(k, ctx)
        ctx["Dv2"] = near_wall_dissipation(v2, ctx)

        gkgw = grad_dot(ctx.gradient(K, wall_value=0.0), ctx.gradient(OMEGA))
        alpha_omega2 = 0.5 * c.sigmaW2
        F1 = np.asarray(sst_f1(k, omega_safe, ctx.y, ctx.nu,
                               cd_k_omega(gkgw, omega_safe, alpha_omega2),
                               c.betaStar, alpha_omega2))
        ctx.blending = F1

        omega_by_v2 = safe_div(omega_safe, v2, ctx.bounds.v2_min)
        signed = ((c.CwR / np.maximum(fW, SMALL) - 1.0) * omega_by_v2 * transfer
                  + (1.0 - F1) * c.sigmaW2 * gkgw / omega_safe)
        Su, Sp = split_source(signed, omega, ctx.bounds.omega_min)
        ctx["Su_omega"] = c.Cw1 * omega_by_v2 * ctx["Pv2"] + Su
        ctx["Sp_omega"] = c.Cw2 * fW ** 2 * omega_safe + Sp

    def production_k(self, ctx):
        return ctx["Pk"]

    def destruction_k(self, ctx):
        k, v2 = ctx.old(K), ctx.old(V2)
        k_safe = np.maximum(k, ctx.bounds.k_min)
        return ctx.field(OMEGA) * np.minimum(v2, k) / k_safe + ctx["Dk"] / k_safe

    def production_omega(self, ctx):
        return ctx["Su_omega"]

    def destruction_omega(self, ctx):
        return ctx["Sp_omega"]

    def diffusivity(self, name, ctx):
        sigma = {K: self.coeffs.sigmaK, V2: self.coeffs.sigmaK, OMEGA: self.coeffs.sigmaW}[name]
        return ctx.nu + ctx["alphaT"] / sigma

    def extra_equation(self, name, ctx):
        if name != V2:
            return super().extra_equation(name, ctx)
        v2 = ctx.old(V2)
        return self.build_equation(
            V2, ctx,
            source=ctx["Pv2"] + ctx["transfer"],
            sink_rate=ctx.field(OMEGA) + ctx["Dv2"] / np.maximum(v2, ctx.bounds.v2_min),
        )

    # =========================================================================
    # Realizability and derived fields
    # =========================================================================

    def realize(self, fields, ctx):
        out = super().realize(fields, ctx)
        out[V2] = np.minimum(out[V2], out[K])
        return out

    def epsilon(self, fields, ctx):
        """ε = ω min(k, v2) + D_k."""
        k = fields[K]
        return fields[OMEGA] * np.minimum(k, fields[V2]) + near_wall_dissipation(k, ctx)
