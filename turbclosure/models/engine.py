"""
Generic RAS model driver.

RASModel owns one closure variant, its coefficient dictionary and the
TurbulenceState. Each correct() solves ω, then k, then the variant's
extra fields, clips every field, recomputes ν_t (and the explicit stress
for non-linear variants) and replaces the state in a single assignment.
A step that raises leaves the previous state untouched.
"""

from typing import Dict, Optional, Type, Union

import numpy as np
from loguru import logger

from ..config.coefficients import CoefficientDict, ModelCoefficients
from ..config.schema import ClosureConfig
from ..constants import K, OMEGA, V2, KL, GAMMA
from ..errors import ConfigurationError, FieldNotAvailable
from ..grid.cartesian import CartesianMesh
from ..numerics.transport import ScalarEquation, solve_scalar_equation
from ..physics.invariants import dev, identity_like
from ..physics.jax_config import get_device_info
from .base import Closure, MeanFlowState, StepContext, TurbulenceState

InitialValue = Union[float, np.ndarray]


class RASModel:
    """
    Turbulence model instance on one mesh.

    Parameters
    ----------
    closure_cls : type
        Closure variant (a Closure subclass).
    mesh : CartesianMesh
    flow : MeanFlowState
        Mean flow used for the initial ν_t and by correct_nut() when no
        newer flow has been supplied.
    coeffs : CoefficientDict, optional
        Coefficient dictionary. Built from config.turbulence when omitted.
    config : ClosureConfig, optional
    initial : dict, optional
        Initial value per field, scalar or (NI, NJ) array. Scalar values
        are also used as the fixedValue (inlet) boundary values.
    """

    def __init__(self, closure_cls: Type[Closure], mesh: CartesianMesh, flow: MeanFlowState,
                 coeffs: Optional[CoefficientDict] = None,
                 config: Optional[ClosureConfig] = None,
                 initial: Optional[Dict[str, InitialValue]] = None):
        self.config = (config or ClosureConfig()).validate()
        self.mesh = mesh
        self.flow = flow.validate(mesh.shape)

        if coeffs is None:
            turb = self.config.turbulence
            values = dict(turb.coeffs)
            values.update(turb.switches)
            coeffs = CoefficientDict(values=values, path=turb.coeffs_file)
        self.coeff_dict = coeffs
        self.closure = closure_cls(self._build_coefficients(closure_cls))

        self.state = self._initial_state(initial or {})

        overrides = self.closure.coeffs.overrides(closure_cls.DEFAULT_COEFFS)
        logger.info(f"Turbulence model {self.name} on {mesh.NI}x{mesh.NJ} mesh")
        logger.debug(get_device_info())
        if overrides:
            logger.info(f"  coefficient overrides: {overrides}")

    # =========================================================================
    # Construction helpers
    # =========================================================================

    def _build_coefficients(self, closure_cls: Type[Closure]) -> ModelCoefficients:
        return ModelCoefficients.build(
            closure_cls.DEFAULT_COEFFS, closure_cls.DEFAULT_SWITCHES, self.coeff_dict
        )

    def _initial_state(self, initial: Dict[str, InitialValue]) -> TurbulenceState:
        unknown = set(initial) - set(self.closure.fields)
        if unknown:
            raise ConfigurationError(
                f"{self.name} does not transport {sorted(unknown)}; fields are {list(self.closure.fields)}"
            )

        defaults = self.closure.default_initial()
        fields = {}
        inlet_values = {}
        for name in self.closure.fields:
            value = initial.get(name, defaults[name])
            if np.ndim(value) == 0:
                inlet_values[name] = float(value)
                fields[name] = np.full(self.mesh.shape, float(value))
            else:
                array = np.array(value, dtype=np.float64)
                if array.shape != self.mesh.shape:
                    raise ValueError(f"Initial {name} has shape {array.shape}, expected {self.mesh.shape}")
                inlet_values[name] = float(defaults[name])
                fields[name] = array

        state = TurbulenceState(fields=fields, nut=np.zeros(self.mesh.shape),
                                inlet_values=inlet_values)
        ctx = self._context(self.flow, state)
        fields = self.closure.realize(fields, ctx)
        nut, stress = self._viscosity_and_stress(fields, ctx)
        return state.evolve(fields=fields, nut=nut, nonlinear_stress=stress)

    def _context(self, flow: MeanFlowState, state: TurbulenceState,
                 aux: Optional[Dict[str, float]] = None) -> StepContext:
        return StepContext(self.mesh, flow, self.closure.coeffs, self.config.bounds, state, aux=aux)

    def _viscosity_and_stress(self, fields, ctx):
        nut_max = self.config.bounds.nut_max
        nut = np.clip(self.closure.eddy_viscosity(fields, ctx), 0.0,
                      np.inf if nut_max is None else nut_max)
        stress = self.closure.nonlinear_stress(fields, ctx)
        if stress is not None:
            stress = np.asarray(stress)
        return np.asarray(nut), stress

    # =========================================================================
    # Step
    # =========================================================================

    @property
    def name(self) -> str:
        return self.closure.name

    @property
    def coeffs(self) -> ModelCoefficients:
        return self.closure.coeffs

    def _solve(self, eq: ScalarEquation, flow: MeanFlowState, ctx: StepContext) -> None:
        result = solve_scalar_equation(eq, self.mesh, flow.alpha_rho, flow.face_flux,
                                       flow.dt, self.config.solver)
        ctx.stage(eq.name, result.phi)

    def correct(self, flow: Optional[MeanFlowState] = None) -> None:
        """
        Advance every transported field by one step.

        Raises
        ------
        ValueError
            If the flow arrays do not match the mesh.
        LinearSolveError
            If a linear solve returns non-finite values. The state is left
            as it was before the call.
        """
        flow = (flow or self.flow).validate(self.mesh.shape)
        closure = self.closure
        state = self.state
        aux = closure.advance_aux(state.aux)

        for _ in range(self.config.solver.n_correctors):
            ctx = self._context(flow, state, aux=aux)
            closure.prepare(ctx)

            self._solve(closure.build_equation(
                OMEGA, ctx, closure.production_omega(ctx), closure.destruction_omega(ctx)
            ), flow, ctx)
            self._solve(closure.build_equation(
                K, ctx, closure.production_k(ctx), closure.destruction_k(ctx)
            ), flow, ctx)
            for eq in closure.extra_equations(ctx):
                self._solve(eq, flow, ctx)

            fields = closure.realize(dict(ctx.staged), ctx)
            nut, stress = self._viscosity_and_stress(fields, ctx)
            state = TurbulenceState(
                fields=fields,
                nut=nut,
                nonlinear_stress=stress,
                inlet_values=dict(state.inlet_values),
                blending=ctx.blending,
                aux=dict(aux),
            )

        logger.debug(
            f"{self.name}: k in [{state.fields[K].min():.3e}, {state.fields[K].max():.3e}], "
            f"nut max {state.nut.max():.3e}"
        )
        self.flow = flow
        self.state = state

    def correct_nut(self, flow: Optional[MeanFlowState] = None) -> None:
        """Recompute ν_t (and the explicit stress) from the current fields only."""
        flow = (flow or self.flow).validate(self.mesh.shape)
        ctx = self._context(flow, self.state)
        nut, stress = self._viscosity_and_stress(self.state.fields, ctx)
        self.flow = flow
        self.state = self.state.evolve(nut=nut, nonlinear_stress=stress)

    def read(self) -> bool:
        """
        Re-read the coefficient dictionary.

        Returns
        -------
        bool
            True if the coefficients changed and were applied.

        Raises
        ------
        ConfigurationError
            If the new entries are invalid; the previous coefficients stay
            in force.
        """
        if not self.coeff_dict.reload():
            return False
        closure = type(self.closure)(self._build_coefficients(type(self.closure)))
        self.closure = closure
        logger.info(f"{self.name}: coefficients re-read, overrides "
                    f"{closure.coeffs.overrides(closure.DEFAULT_COEFFS)}")
        return True

    # =========================================================================
    # Accessors
    # =========================================================================

    def eddy_viscosity(self) -> np.ndarray:
        return self.state.nut

    nut = eddy_viscosity

    def k(self) -> np.ndarray:
        return self.state.field(K)

    def omega(self) -> np.ndarray:
        return self.state.field(OMEGA)

    def v2(self) -> np.ndarray:
        return self.state.field(V2)

    def kl(self) -> np.ndarray:
        return self.state.field(KL)

    def gamma_intermittency(self) -> np.ndarray:
        return self.state.field(GAMMA)

    def epsilon(self) -> np.ndarray:
        """Dissipation rate derived from the current fields."""
        return np.asarray(self.closure.epsilon(self.state.fields, self._context(self.flow, self.state)))

    def nonlinear_stress(self) -> np.ndarray:
        """Explicit stress k·a_ex; zero for linear eddy-viscosity variants."""
        if self.state.nonlinear_stress is None:
            return np.zeros(self.mesh.shape + (3, 3))
        return self.state.nonlinear_stress

    def reynolds_stress(self) -> np.ndarray:
        """R = ⅔ k I − 2 ν_t dev(S) + k·a_ex."""
        ctx = self._context(self.flow, self.state)
        k = self.state.field(K)[..., None, None]
        nut = self.state.nut[..., None, None]
        identity = np.asarray(identity_like(ctx.S))
        R = 2.0 / 3.0 * k * identity - 2.0 * nut * np.asarray(dev(ctx.S))
        return R + self.nonlinear_stress()

    def _effective_diffusivity(self, name: str) -> np.ndarray:
        ctx = self._context(self.flow, self.state)
        self.closure.prepare(ctx)
        return np.broadcast_to(self.closure.diffusivity(name, ctx), self.mesh.shape).copy()

    def dk_eff(self) -> np.ndarray:
        return self._effective_diffusivity(K)

    def domega_eff(self) -> np.ndarray:
        return self._effective_diffusivity(OMEGA)

    def blending(self) -> Optional[np.ndarray]:
        """Last blending field (F1 or f_mix); None before the first correct() or for unblended variants."""
        return self.state.blending
