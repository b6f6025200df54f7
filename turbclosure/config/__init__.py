"""
Configuration module for the turbulence closures.

Provides YAML-based configuration with dataclass schema, and the model
coefficient dictionary.
"""

from .schema import (
    ClosureConfig,
    TurbulenceConfig,
    BoundsConfig,
    SolverSettings,
    LoggingConfig,
    transition_preset,
)

from .loader import (
    load_yaml,
    from_dict,
    apply_overrides,
    save_yaml,
)

from .coefficients import (
    CoefficientDict,
    ModelCoefficients,
)

__all__ = [
    # Schema classes
    'ClosureConfig',
    'TurbulenceConfig',
    'BoundsConfig',
    'SolverSettings',
    'LoggingConfig',
    # Presets
    'transition_preset',
    # Loader functions
    'load_yaml',
    'from_dict',
    'apply_overrides',
    'save_yaml',
    # Coefficients
    'CoefficientDict',
    'ModelCoefficients',
]
