"""
k-kL-ω transition model (Walters & Cokljat 2008, with Fürst's corrections).

k is the turbulent kinetic energy k_T and kL the laminar kinetic energy
of the pre-transitional fluctuations:

    Dk_T/Dt = P_kT + (R_BP + R_NAT) k_L − ω k_T − D_T
    Dk_L/Dt = P_kL − (R_BP + R_NAT) k_L − D_L
    Dω/Dt   = C_ω1 (ω/k_T) P_kT − (1 − C_ωR/f_W)(R_BP + R_NAT) k_L ω/k_T
              − C_ω2 f_W² ω² + C_ω3 f_ω α_T f_W² √k_T / d³

    P_kT = ν_T,s S²,   P_kL = ν_T,l S²,   D = 2 ν |∇√φ|²

k_L diffuses with ν only.

With the falknerSkan switch on, the Tollmien–Schlichting and natural-transition
thresholds C_TS,crit and C_NAT,crit follow the local pressure gradient
through the Falkner–Skan correlations (Fürst et al. 2013); they keep
their constant values when no velocity is supplied.

References:
    Walters, D. K. & Cokljat, D. (2008). A three-equation eddy-viscosity
    model for Reynolds-averaged Navier–Stokes simulations of transitional
    flow. J. Fluids Eng. 130(12), 121401.
    Fürst, J., Příhoda, J. & Straka, P. (2013). Numerical simulation of
    transitional flows. Computing 95(1), 163–182.
"""

from typing import Dict, Tuple

import numpy as np
from loguru import logger

from ..constants import K, OMEGA, KL, SMALL
from ..numerics.gradients import grad_dot, scalar_gradient
from ..numerics.transport import split_source
from ..physics import correlations as corr
from .base import Closure, StepContext, safe_div
from .kv2_omega import near_wall_dissipation


class KkLOmega(Closure):
    """
    Walters–Cokljat k-kL-ω.

    Coefficients (dimensionless):
        A0 4.04, As 2.12, Av 6.75, Abp 0.6, Anat 200, Ats 200, CbpCrit 1.2,
        Cnc 0.1, CnatCrit 1250, Cint 0.75, CtsCrit 1000, CrNat 0.02,
        C11 3.4e-6, C12 1e-10, CR 0.12, CalphaTheta 0.035, Css 1.5,
        CtauL 4360, Cw1 0.44, Cw2 0.92, Cw3 0.3, CwR 1.5, Clambda 2.495,
        CmuStd 0.09, Prtheta 0.85, Sigmak 1, Sigmaw 1.17
    Switches:
        falknerSkan (on)
    """

    name = "kkLOmega"
    DEFAULT_COEFFS = {
        "A0": 4.04,
        "As": 2.12,
        "Av": 6.75,
        "Abp": 0.6,
        "Anat": 200.0,
        "Ats": 200.0,
        "CbpCrit": 1.2,
        "Cnc": 0.1,
        "CnatCrit": 1250.0,
        "Cint": 0.75,
        "CtsCrit": 1000.0,
        "CrNat": 0.02,
        "C11": 3.4e-6,
        "C12": 1.0e-10,
        "CR": 0.12,
        "CalphaTheta": 0.035,
        "Css": 1.5,
        "CtauL": 4360.0,
        "Cw1": 0.44,
        "Cw2": 0.92,
        "Cw3": 0.3,
        "CwR": 1.5,
        "Clambda": 2.495,
        "CmuStd": 0.09,
        "Prtheta": 0.85,
        "Sigmak": 1.0,
        "Sigmaw": 1.17,
        "omegaWallFactor": 10.0,
    }
    DEFAULT_SWITCHES = {"falknerSkan": True}
    extra_fields = (KL,)

    def _critical_values(self, ctx: StepContext) -> Tuple[np.ndarray, np.ndarray]:
        """C_TS,crit and C_NAT,crit, cached on the step context."""
        if "CtsCrit" in ctx:
            return ctx["CtsCrit"], ctx["CnatCrit"]
        c = self.coeffs
        cts, cnat = np.array(c.CtsCrit), np.array(c.CnatCrit)
        if c.switch("falknerSkan"):
            if ctx.flow.velocity is None:
                logger.debug("kkLOmega: no velocity supplied, using constant critical Reynolds numbers")
            else:
                L = self._pressure_gradient_parameter(ctx)
                cts = np.asarray(corr.c_ts_crit(L, c.CtsCrit))
                cnat = np.asarray(corr.c_nat_crit(L, c.CnatCrit))
        ctx["CtsCrit"], ctx["CnatCrit"] = cts, cnat
        return cts, cnat

    def _pressure_gradient_parameter(self, ctx: StepContext) -> np.ndarray:
        """L = d²/ν dUe/ds with s along the local streamline."""
        U = np.asarray(ctx.flow.velocity)
        speed = np.linalg.norm(U, axis=-1)
        if ctx.flow.pressure is None:
            Ue = speed
        else:
            Ue = np.asarray(corr.edge_velocity(speed, np.asarray(ctx.flow.pressure)))
        dUe_ds = grad_dot(U, scalar_gradient(Ue, ctx.mesh)) / np.maximum(speed, SMALL)
        K = corr.acceleration_parameter(Ue, dUe_ds, ctx.nu)
        return np.asarray(corr.fs_length_parameter(K, Ue, ctx.y, ctx.nu))

    def _viscosities(self, kt, kl, omega, ctx: StepContext) -> Dict[str, np.ndarray]:
        c = self.coeffs
        nu, y = ctx.nu, ctx.y
        S, Omega = ctx.S_mag, ctx.W_mag
        omega = np.maximum(omega, ctx.bounds.omega_min)
        kt = np.maximum(kt, 0.0)
        kl = np.maximum(kl, 0.0)

        lam_t = np.asarray(corr.lambda_t(kt, omega))
        lam_eff = np.asarray(corr.lambda_eff(lam_t, y, c.Clambda))
        fW = np.asarray(corr.f_w(lam_eff, lam_t))
        fv = np.asarray(corr.f_v(fW ** 2 * kt / (nu * omega), c.Av))
        fINT = np.asarray(corr.f_int(kt, kt + kl, c.Cint))
        fSS = np.asarray(corr.f_ss(Omega, kt, nu, c.Css))
        Cmu = np.asarray(corr.c_mu_shear(S, omega, c.A0, c.As))

        kts = fSS * fW * kt
        ktl = np.maximum(kt - kts, 0.0)

        re_omega = y ** 2 * Omega / nu
        cts, _ = self._critical_values(ctx)
        beta_ts = np.asarray(corr.beta_ts(re_omega, cts, c.Ats))
        f_tau_l = np.asarray(corr.f_tau_l(ktl, lam_eff, Omega, c.CtauL))

        nut_s = fv * fINT * Cmu * np.sqrt(kts) * lam_eff
        nut_l = np.minimum(
            c.C11 * f_tau_l * Omega * lam_eff ** 2 * np.sqrt(ktl) * lam_eff / nu
            + c.C12 * beta_ts * re_omega * y ** 2 * Omega,
            0.5 * (kl + ktl) / np.maximum(S, SMALL),
        )
        return {
            "lambdaT": lam_t,
            "lambdaEff": lam_eff,
            "fW": fW,
            "reOmega": re_omega,
            "nutS": nut_s,
            "nutL": nut_l,
            "alphaT": fv * c.CmuStd * np.sqrt(kts) * lam_eff,
        }

    def eddy_viscosity(self, fields, ctx):
        terms = self._viscosities(fields[K], fields[KL], fields[OMEGA], ctx)
        return terms["nutS"] + terms["nutL"]

    def prepare(self, ctx: StepContext) -> None:
        c = self.coeffs
        kt, kl, omega = ctx.old(K), ctx.old(KL), ctx.old(OMEGA)
        omega_safe = np.maximum(omega, ctx.bounds.omega_min)
        terms = self._viscosities(kt, kl, omega, ctx)
        for key, value in terms.items():
            ctx[key] = value

        Omega = ctx.W_mag
        S2 = ctx.S_mag ** 2
        fW = terms["fW"]

        beta_bp = np.asarray(corr.beta_bp(corr.phi_bp(kt, Omega, ctx.nu, c.CbpCrit), c.Abp))
        R_bp = c.CR * beta_bp * omega_safe / np.maximum(fW, SMALL)
        f_crit = corr.f_nat_crit(kl, ctx.y, ctx.nu, c.Cnc)
        beta_nat = np.asarray(corr.beta_nat(corr.phi_nat(terms["reOmega"], f_crit, self._critical_values(ctx)[1]), c.Anat))
        R_nat = c.CrNat * beta_nat * Omega

        ctx["Pkt"] = terms["nutS"] * S2
        ctx["Pkl"] = terms["nutL"] * S2
        ctx["R"] = R_bp + R_nat
        ctx["Dt"] = near_wall_dissipation(kt, ctx)
        ctx["Dl"] = near_wall_dissipation(kl, ctx)

        omega_by_kt = safe_div(omega_safe, kt, ctx.bounds.k_min)
        f_omega = np.asarray(corr.f_omega(terms["lambdaEff"], terms["lambdaT"]))
        Su, Sp = split_source(
            (c.CwR / np.maximum(fW, SMALL) - 1.0) * ctx["R"] * kl * omega_by_kt,
            omega, ctx.bounds.omega_min,
        )
        ctx["Su_omega"] = (c.Cw1 * omega_by_kt * ctx["Pkt"] + Su
                           + c.Cw3 * f_omega * terms["alphaT"] * fW ** 2
                           * np.sqrt(np.maximum(kt, 0.0)) / ctx.y ** 3)
        ctx["Sp_omega"] = c.Cw2 * fW ** 2 * omega_safe + Sp

    def production_k(self, ctx):
        return ctx["Pkt"] + ctx["R"] * ctx.old(KL)

    def destruction_k(self, ctx):
        return ctx.field(OMEGA) + ctx["Dt"] / np.maximum(ctx.old(K), ctx.bounds.k_min)

    def production_omega(self, ctx):
        return ctx["Su_omega"]

    def destruction_omega(self, ctx):
        return ctx["Sp_omega"]

    def diffusivity(self, name, ctx):
        if name == KL:
            return np.array(ctx.nu)
        sigma = {K: self.coeffs.Sigmak, OMEGA: self.coeffs.Sigmaw}[name]
        return ctx.nu + ctx["alphaT"] / sigma

    def extra_equation(self, name, ctx):
        if name != KL:
            return super().extra_equation(name, ctx)
        kl = ctx.old(KL)
        return self.build_equation(
            KL, ctx,
            source=ctx["Pkl"],
            sink_rate=ctx["R"] + ctx["Dl"] / np.maximum(kl, ctx.bounds.kl_min),
        )

    def epsilon(self, fields, ctx):
        """ε = ω k_T."""
        return fields[OMEGA] * fields[K]
