"""
YAML configuration loader with validation.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Union
from dataclasses import fields, is_dataclass

from ..errors import ConfigurationError
from .coefficients import _as_float, _as_switch
from .schema import (
    ClosureConfig, TurbulenceConfig, BoundsConfig, SolverSettings, LoggingConfig,
)

_SECTIONS = {
    'turbulence': TurbulenceConfig,
    'bounds': BoundsConfig,
    'solver': SolverSettings,
    'logging': LoggingConfig,
}


def _merge_dict(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def _coerce_type(value, field_type):
    """Coerce value to the expected field type."""
    # Handle string representations of numbers (e.g., "1e-15")
    if field_type in (float, 'float') and isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    if field_type in (int, 'int') and isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return value
    if field_type in (float, 'float') and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value


def _coerce_coefficients(section: str, values: Dict[str, Any]) -> Dict[str, float]:
    return {str(key): _as_float(f"{section}.{key}", value) for key, value in values.items()}


def _coerce_switches(section: str, values: Dict[str, Any]) -> Dict[str, bool]:
    return {str(key): _as_switch(f"{section}.{key}", value) for key, value in values.items()}


def _dict_to_dataclass(cls, data: dict, section: str):
    """Convert a dictionary to a dataclass instance, rejecting unknown keys."""
    if not is_dataclass(cls):
        return data
    if not isinstance(data, dict):
        raise ConfigurationError(f"Section '{section}' must be a mapping, got {type(data).__name__}")

    field_types = {f.name: f.type for f in fields(cls)}
    kwargs = {}

    for key, value in data.items():
        if key not in field_types:
            raise ConfigurationError(
                f"Unknown key '{key}' in section '{section}' "
                f"(expected one of {sorted(field_types)})"
            )
        kwargs[key] = _coerce_type(value, field_types[key])

    return cls(**kwargs)


def load_yaml(path: Union[str, Path]) -> ClosureConfig:
    """
    Load closure configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        ClosureConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If the YAML is invalid or a value is out of range
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        data = {}

    return from_dict(data)


def from_dict(data: Dict[str, Any]) -> ClosureConfig:
    """
    Create ClosureConfig from a dictionary.

    Handles nested structures and applies defaults for missing values.
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration section(s) {sorted(unknown)} "
            f"(expected {sorted(_SECTIONS)})"
        )

    config_dict = {}

    if 'turbulence' in data:
        turb_data = dict(data['turbulence'] or {})
        turb_data['coeffs'] = _coerce_coefficients(
            'turbulence.coeffs', turb_data.get('coeffs') or {})
        turb_data['switches'] = _coerce_switches(
            'turbulence.switches', turb_data.get('switches') or {})
        config_dict['turbulence'] = _dict_to_dataclass(TurbulenceConfig, turb_data, 'turbulence')

    for section in ('bounds', 'solver', 'logging'):
        if section in data:
            config_dict[section] = _dict_to_dataclass(
                _SECTIONS[section], data[section] or {}, section)

    return ClosureConfig(**config_dict).validate()


def apply_overrides(config: ClosureConfig, overrides: Dict[str, Any]) -> ClosureConfig:
    """
    Return a new configuration with nested overrides merged in.

    Args:
        config: Base configuration
        overrides: Nested dict, e.g. {'turbulence': {'coeffs': {'a1': 0.3}}}
    """
    return from_dict(_merge_dict(config.to_dict(), overrides))


def save_yaml(config: ClosureConfig, path: Union[str, Path]) -> None:
    """Save configuration to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
