"""
Configuration schema for the turbulence closures.

Dataclass-based configuration that can be loaded from YAML or constructed programmatically.
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict

from ..constants import K_MIN, OMEGA_MIN, V2_MIN, KL_MIN, OMEGA_MAX
from ..errors import ConfigurationError


@dataclass
class TurbulenceConfig:
    """Closure selection and coefficient overrides."""

    model: str = "kOmegaSST"
    coeffs: Dict[str, float] = field(default_factory=dict)      # e.g. {betaStar: 0.09}
    switches: Dict[str, bool] = field(default_factory=dict)     # e.g. {F3: true}
    coeffs_file: Optional[str] = None   # YAML file re-read by read()


@dataclass
class BoundsConfig:
    """Realizability floors applied after every solve."""

    k_min: float = K_MIN
    omega_min: float = OMEGA_MIN
    v2_min: float = V2_MIN
    kl_min: float = KL_MIN
    omega_max: float = OMEGA_MAX
    nut_max: Optional[float] = None     # None: no upper bound on ν_t


@dataclass
class SolverSettings:
    """Linear-solve settings for the scalar transport equations."""

    gmres_restart: int = 30     # GMRES(m) restart parameter
    gmres_maxiter: int = 300    # Maximum GMRES iterations (across restarts)
    gmres_tol: float = 1e-8     # Relative tolerance for GMRES
    n_correctors: int = 1       # Picard passes per correct()


@dataclass
class LoggingConfig:
    """Logger configuration (see utils.logging.setup_logging)."""

    level: str = "INFO"
    show_time: bool = False


_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ClosureConfig:
    """Complete closure configuration."""

    turbulence: TurbulenceConfig = field(default_factory=TurbulenceConfig)
    bounds: BoundsConfig = field(default_factory=BoundsConfig)
    solver: SolverSettings = field(default_factory=SolverSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> "ClosureConfig":
        """
        Check value ranges.

        Raises
        ------
        ConfigurationError
            On a non-finite or out-of-range setting.
        """
        b = self.bounds
        for name in ("k_min", "omega_min", "v2_min", "kl_min", "omega_max"):
            value = getattr(b, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
                raise ConfigurationError(f"bounds.{name} must be a finite non-negative number, got {value!r}")
        if b.omega_max <= b.omega_min:
            raise ConfigurationError("bounds.omega_max must exceed bounds.omega_min")
        if b.nut_max is not None and not (b.nut_max > 0):
            raise ConfigurationError(f"bounds.nut_max must be positive, got {b.nut_max!r}")

        s = self.solver
        if s.gmres_restart < 1 or s.gmres_maxiter < 1 or s.n_correctors < 1:
            raise ConfigurationError("solver.gmres_restart, gmres_maxiter and n_correctors must be >= 1")
        if not (0.0 < s.gmres_tol < 1.0):
            raise ConfigurationError(f"solver.gmres_tol must lie in (0, 1), got {s.gmres_tol!r}")

        if str(self.logging.level).upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"logging.level must be one of {_LOG_LEVELS}")
        return self

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)


# Preset configurations
def transition_preset(model: str = "gammaSST") -> ClosureConfig:
    """Transitional closure with tighter linear-solve tolerance."""
    return ClosureConfig(
        turbulence=TurbulenceConfig(model=model),
        solver=SolverSettings(gmres_tol=1e-10, n_correctors=2),
    )
