"""
Shared data types and the closure interface.

MeanFlowState is what the host flow solver supplies each step;
TurbulenceState is the single owned value holding every transported
field of a model instance; StepContext carries the quantities frozen at
the start of a step (tensors, blending, blended coefficients, sources)
together with the field values staged so far within the step.

Closure is the capability interface every variant implements. Variants
implement it directly; none derives from another.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, Optional, Tuple, Union

import numpy as np

from ..config.coefficients import ModelCoefficients
from ..config.schema import BoundsConfig
from ..constants import (
    K, OMEGA, V2, KL, GAMMA, GAMMA_MIN, GAMMA_MAX, Y_MIN, SMALL,
)
from ..errors import FieldNotAvailable
from ..grid.cartesian import CartesianMesh
from ..numerics.gradients import scalar_gradient
from ..numerics.transport import ScalarEquation
from ..physics.invariants import (
    strain_rate, rotation_rate, strain_magnitude, vorticity_magnitude,
)
from ..physics.jax_config import jnp

FieldLike = Union[float, np.ndarray]


@dataclass
class MeanFlowState:
    """
    Mean-flow input supplied by the host solver (read-only to the closures).

    Attributes
    ----------
    grad_u : ndarray (NI, NJ, 3, 3)
        Velocity gradient, grad_u[..., i, j] = ∂U_j/∂x_i.
    wall_distance : ndarray (NI, NJ)
        Distance to the nearest wall.
    nu : float or ndarray (NI, NJ)
        Kinematic molecular viscosity.
    alpha_rho : float or ndarray (NI, NJ)
        Phase-fraction × density weighting of every equation.
    face_flux : (flux_i (NI+1, NJ), flux_j (NI, NJ+1)), optional
        Volumetric face fluxes for convection.
    velocity : ndarray (NI, NJ, 3), optional
        Cell velocity; needed by γ-SST and k-kL-ω for their pressure-gradient
        parameters.
    pressure : ndarray (NI, NJ), optional
        Kinematic pressure p/ρ; sets the edge velocity of the k-kL-ω
        Falkner–Skan correlations (the local speed is used without it).
    dt : float, optional
        Pseudo time step; None solves the steady equations.
    strain_rate_dt : ndarray (NI, NJ, 3, 3), optional
        Material derivative of S, used by the EARSM curvature correction.
    """
    grad_u: np.ndarray
    wall_distance: np.ndarray
    nu: FieldLike = 1.5e-5
    alpha_rho: FieldLike = 1.0
    face_flux: Optional[Tuple[np.ndarray, np.ndarray]] = None
    velocity: Optional[np.ndarray] = None
    pressure: Optional[np.ndarray] = None
    dt: Optional[float] = None
    strain_rate_dt: Optional[np.ndarray] = None

    def validate(self, shape: Tuple[int, int]) -> "MeanFlowState":
        """Raise ValueError when an array does not match the mesh shape."""
        grad_u = np.asarray(self.grad_u)
        if grad_u.shape != shape + (3, 3):
            raise ValueError(f"grad_u has shape {grad_u.shape}, expected {shape + (3, 3)}")
        if np.asarray(self.wall_distance).shape != shape:
            raise ValueError(
                f"wall_distance has shape {np.asarray(self.wall_distance).shape}, expected {shape}"
            )
        for name in ("nu", "alpha_rho"):
            value = np.asarray(getattr(self, name))
            if value.ndim != 0 and value.shape != shape:
                raise ValueError(f"{name} has shape {value.shape}, expected scalar or {shape}")
            if np.any(value <= 0):
                raise ValueError(f"{name} must be positive")
        if self.velocity is not None and np.asarray(self.velocity).shape != shape + (3,):
            raise ValueError(f"velocity has shape {np.asarray(self.velocity).shape}, expected {shape + (3,)}")
        if self.pressure is not None and np.asarray(self.pressure).shape != shape:
            raise ValueError(f"pressure has shape {np.asarray(self.pressure).shape}, expected {shape}")
        if self.strain_rate_dt is not None and np.asarray(self.strain_rate_dt).shape != shape + (3, 3):
            raise ValueError("strain_rate_dt must have shape (NI, NJ, 3, 3)")
        if self.dt is not None and not self.dt > 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        return self


@dataclass
class TurbulenceState:
    """
    Every field owned by one model instance.

    Replaced as a whole at the end of a successful correct().
    """
    fields: Dict[str, np.ndarray]
    nut: np.ndarray
    nonlinear_stress: Optional[np.ndarray] = None
    inlet_values: Dict[str, float] = field(default_factory=dict)
    blending: Optional[np.ndarray] = None
    aux: Dict[str, float] = field(default_factory=dict)

    def field(self, name: str) -> np.ndarray:
        try:
            return self.fields[name]
        except KeyError:
            raise FieldNotAvailable(f"Field '{name}' is not transported by this model") from None

    def evolve(self, **changes) -> "TurbulenceState":
        return replace(self, **changes)


class StepContext:
    """
    Per-step frozen quantities plus the fields staged within the step.

    Common quantities (nu, y, S, W, |S|, |Ω|) are computed on construction;
    closures store their own step quantities with item assignment, e.g.
    ``ctx['F1'] = ...``.
    """

    def __init__(self, mesh: CartesianMesh, flow: MeanFlowState,
                 coeffs: ModelCoefficients, bounds: BoundsConfig,
                 state: TurbulenceState, aux: Optional[Dict[str, float]] = None):
        self.mesh = mesh
        self.flow = flow
        self.coeffs = coeffs
        self.bounds = bounds
        self.state = state
        self.aux = dict(state.aux if aux is None else aux)
        self.staged: Dict[str, np.ndarray] = dict(state.fields)
        self.blending: Optional[np.ndarray] = None
        self._data: Dict[str, object] = {}

        shape = mesh.shape
        self.nu = np.broadcast_to(np.asarray(flow.nu, dtype=np.float64), shape)
        self.y = np.maximum(np.asarray(flow.wall_distance, dtype=np.float64), Y_MIN)
        self.grad_u = jnp.asarray(flow.grad_u, dtype=jnp.float64)
        self.S = strain_rate(self.grad_u)
        self.W = rotation_rate(self.grad_u)
        self.S_mag = np.asarray(strain_magnitude(self.S))        # sqrt(2 S:S)
        self.W_mag = np.asarray(vorticity_magnitude(self.W))     # sqrt(2 W:W)

    # ------------------------------------------------------------------
    # Closure-owned step quantities
    # ------------------------------------------------------------------

    def __getitem__(self, key: str):
        return self._data[key]

    def __setitem__(self, key: str, value) -> None:
        self._data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._data

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def old(self, name: str) -> np.ndarray:
        """Field value at the start of the step."""
        return self.state.field(name)

    def field(self, name: str) -> np.ndarray:
        """Latest staged value (new if already solved in this step)."""
        try:
            return self.staged[name]
        except KeyError:
            raise FieldNotAvailable(f"Field '{name}' is not transported by this model") from None

    def stage(self, name: str, value: np.ndarray) -> None:
        self.staged[name] = value

    def gradient(self, name: str, wall_value: Optional[float] = None,
                 staged: bool = False) -> np.ndarray:
        """(NI, NJ, 3) gradient of a field, step-start value unless staged."""
        phi = self.field(name) if staged else self.old(name)
        values = {}
        if wall_value is not None:
            values.update({side: wall_value for side in self.mesh.wall_sides()})
        return scalar_gradient(phi, self.mesh, values)


def omega_wall_value(ctx: StepContext, beta1: float) -> np.ndarray:
    """
    Dirichlet ω for the wall faces (Menter 1994).

    ω_w = omegaWallFactor · 6 ν / (β1 y1²) with y1 the wall distance of the
    wall-adjacent cell centre. Returned as a cell field; only the values of
    wall-adjacent cells are used.
    """
    factor = ctx.coeffs.values.get("omegaWallFactor", 10.0)
    value = factor * 6.0 * ctx.nu / (beta1 * ctx.y ** 2)
    return np.minimum(value, ctx.bounds.omega_max)


class Closure(ABC):
    """
    Turbulence-closure capability interface.

    Subclasses declare their registry name, default coefficients and
    switches, and the extra transported fields solved after k (in order).
    Source methods return per-unit-volume terms for the transport form
    ∂φ/∂t + ∇·(Uφ) − ∇·(D∇φ) = Su − Sp φ (weighted by αρ in assembly).
    """

    name: str = ""
    DEFAULT_COEFFS: Dict[str, float] = {}
    DEFAULT_SWITCHES: Dict[str, bool] = {}
    extra_fields: Tuple[str, ...] = ()
    has_nonlinear_stress: bool = False

    def __init__(self, coeffs: ModelCoefficients):
        self.coeffs = coeffs

    @property
    def fields(self) -> Tuple[str, ...]:
        return (K, OMEGA) + tuple(self.extra_fields)

    # ------------------------------------------------------------------
    # Step terms
    # ------------------------------------------------------------------

    @abstractmethod
    def prepare(self, ctx: StepContext) -> None:
        """Compute step-start quantities (blending, production, ...) on ctx."""

    @abstractmethod
    def production_k(self, ctx: StepContext) -> np.ndarray:
        """Explicit k source Su ≥ 0."""

    @abstractmethod
    def destruction_k(self, ctx: StepContext) -> np.ndarray:
        """Implicit k sink rate Sp ≥ 0 (uses the new ω)."""

    @abstractmethod
    def production_omega(self, ctx: StepContext) -> np.ndarray:
        """Explicit ω source Su ≥ 0, including the positive part of cross diffusion."""

    @abstractmethod
    def destruction_omega(self, ctx: StepContext) -> np.ndarray:
        """Implicit ω sink rate Sp ≥ 0."""

    @abstractmethod
    def diffusivity(self, name: str, ctx: StepContext) -> np.ndarray:
        """Effective diffusivity of a transported field."""

    @abstractmethod
    def eddy_viscosity(self, fields: Dict[str, np.ndarray], ctx: StepContext) -> np.ndarray:
        """ν_t from the given fields; pure, no side effects."""

    def build_equation(self, name: str, ctx: StepContext,
                       source: np.ndarray, sink_rate: np.ndarray) -> ScalarEquation:
        """Linearised equation of one field with this closure's diffusivity, bounds and boundary values."""
        lower, upper = self.bounds(name, ctx)
        return ScalarEquation(
            name=name,
            phi=ctx.old(name),
            diffusivity=self.diffusivity(name, ctx),
            source=source,
            sink_rate=sink_rate,
            lower=lower,
            upper=upper,
            wall_value=self.wall_value(name, ctx),
            inlet_value=self.inlet_value(name, ctx),
        )

    def extra_equation(self, name: str, ctx: StepContext) -> ScalarEquation:
        raise FieldNotAvailable(f"{self.name} has no extra field '{name}'")

    def extra_equations(self, ctx: StepContext) -> Iterator[ScalarEquation]:
        """
        Equations of the extra fields, in solve order.

        A generator: each equation is built only after the previous one has
        been solved and staged on ctx.
        """
        for name in self.extra_fields:
            yield self.extra_equation(name, ctx)

    def nonlinear_stress(self, fields: Dict[str, np.ndarray],
                         ctx: StepContext) -> Optional[np.ndarray]:
        """Explicit stress correction k·a_ex; None for linear closures."""
        return None

    def realize(self, fields: Dict[str, np.ndarray], ctx: StepContext) -> Dict[str, np.ndarray]:
        """Clip every field to its bounds after all solves of a step."""
        out = {}
        for name, value in fields.items():
            lower, upper = self.bounds(name, ctx)
            out[name] = np.clip(value, lower, upper)
        return out

    def advance_aux(self, aux: Dict[str, float]) -> Dict[str, float]:
        """Step-to-step scalar state (e.g. ramp factors), advanced at step start."""
        return dict(aux)

    # ------------------------------------------------------------------
    # Boundary values and bounds
    # ------------------------------------------------------------------

    def bounds(self, name: str, ctx: StepContext) -> Tuple[float, float]:
        b = ctx.bounds
        return {
            K: (b.k_min, np.inf),
            OMEGA: (b.omega_min, b.omega_max),
            V2: (b.v2_min, np.inf),
            KL: (b.kl_min, np.inf),
            GAMMA: (GAMMA_MIN, GAMMA_MAX),
        }[name]

    def wall_value(self, name: str, ctx: StepContext) -> Optional[FieldLike]:
        """Dirichlet wall value; None means zero gradient."""
        if name == OMEGA:
            return omega_wall_value(ctx, self.omega_wall_beta)
        if name == GAMMA:
            return None
        return 0.0

    @property
    def omega_wall_beta(self) -> float:
        """β used in the ω wall value (β1 of the inner set)."""
        values = self.coeffs.values
        for key in ("beta1", "beta"):
            if key in values:
                return values[key]
        return 0.075

    def inlet_value(self, name: str, ctx: StepContext) -> Optional[float]:
        return ctx.state.inlet_values.get(name)

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    def epsilon(self, fields: Dict[str, np.ndarray], ctx: StepContext) -> np.ndarray:
        """ε = β* k ω."""
        beta_star = self.coeffs.values.get("betaStar", 0.09)
        return beta_star * fields[K] * fields[OMEGA]

    def default_initial(self) -> Dict[str, float]:
        """Free-stream values used when no initial field is supplied."""
        defaults = {K: 1e-6, OMEGA: 1.0, V2: 1e-7, KL: 1e-8, GAMMA: 1.0}
        return {name: defaults[name] for name in self.fields}


def safe_div(a, b, floor: float = SMALL):
    """a / max(b, floor) for non-negative denominators."""
    return a / np.maximum(b, floor)
