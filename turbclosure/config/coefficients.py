"""
Model coefficient dictionary and the immutable per-model coefficient set.

CoefficientDict is the key → scalar collaborator every closure reads its
constants from. It may be backed by a YAML file, which ``reload()``
re-reads so that coefficients can be changed while a computation runs.

ModelCoefficients is the frozen view a closure actually uses during a
step. It is built in one go from the closure's defaults and the
dictionary and is replaced as a whole, never mutated.
"""

import math
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from loguru import logger

from ..errors import ConfigurationError

_TRUE_WORDS = ('on', 'yes', 'true', '1')
_FALSE_WORDS = ('off', 'no', 'false', '0')


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"Coefficient '{name}' must be a number, got a switch value {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Coefficient '{name}' must be a number, got {value!r}") from None
    if not math.isfinite(result):
        raise ConfigurationError(f"Coefficient '{name}' is not finite: {value!r}")
    return result


def _as_switch(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ConfigurationError(f"Switch '{name}' has invalid value {value!r}")


class CoefficientDict:
    """
    Key → scalar dictionary with defaults and optional file backing.

    Parameters
    ----------
    values : dict, optional
        In-memory entries. File entries, when a path is given, take
        precedence over these.
    path : str or Path, optional
        YAML file holding a flat mapping of coefficient names to numbers
        or switch words (on/off, yes/no, true/false).
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None,
                 path: Optional[Union[str, Path]] = None):
        self._base = dict(values or {})
        self.path = Path(path) if path is not None else None
        self._file_values: Dict[str, Any] = {}
        if self.path is not None:
            self._file_values = self._read_file()

    # ------------------------------------------------------------------
    # File handling
    # ------------------------------------------------------------------

    def _read_file(self) -> Dict[str, Any]:
        if not self.path.exists():
            raise ConfigurationError(f"Coefficient file not found: {self.path}")
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {self.path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{self.path} must contain a mapping of coefficients")
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                raise ConfigurationError(f"{self.path}: entry '{key}' must be a scalar")
        return {str(k): v for k, v in data.items()}

    def reload(self) -> bool:
        """
        Re-read the backing file.

        Returns
        -------
        bool
            True if any entry changed, False if the file is unchanged or
            the dictionary has no file.

        Raises
        ------
        ConfigurationError
            If the file can no longer be parsed. The previous entries stay
            in force.
        """
        if self.path is None:
            return False
        new_values = self._read_file()
        if new_values == self._file_values:
            return False
        self._file_values = new_values
        logger.debug(f"Coefficient file {self.path} changed")
        return True

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _entries(self) -> Dict[str, Any]:
        merged = dict(self._base)
        merged.update(self._file_values)
        return merged

    def keys(self):
        return self._entries().keys()

    def __contains__(self, name: str) -> bool:
        return name in self._entries()

    def lookup(self, name: str) -> float:
        """Mandatory numeric entry; ConfigurationError when absent or invalid."""
        entries = self._entries()
        if name not in entries:
            raise ConfigurationError(f"Missing coefficient '{name}'")
        return _as_float(name, entries[name])

    def lookup_or_default(self, name: str, default: float) -> float:
        """Numeric entry, or the default when absent."""
        entries = self._entries()
        if name not in entries:
            return _as_float(name, default)
        return _as_float(name, entries[name])

    def switch_or_default(self, name: str, default: bool) -> bool:
        """Boolean switch entry, or the default when absent."""
        entries = self._entries()
        if name not in entries:
            return bool(default)
        return _as_switch(name, entries[name])


@dataclass(frozen=True)
class ModelCoefficients:
    """
    Immutable coefficient set of one closure instance.

    Attributes
    ----------
    values : Mapping[str, float]
        Dimensionless model constants (units are listed in each closure's
        docstring where a constant is dimensional).
    switches : Mapping[str, bool]
        Optional model features.
    """
    values: Mapping[str, float]
    switches: Mapping[str, bool]

    @classmethod
    def build(cls, defaults: Mapping[str, float], switch_defaults: Mapping[str, bool],
              source: Optional[CoefficientDict] = None) -> "ModelCoefficients":
        """
        Resolve every coefficient against the dictionary.

        Raises
        ------
        ConfigurationError
            If any entry is non-numeric, non-finite or an invalid switch.
        """
        source = source if source is not None else CoefficientDict()
        values = {name: source.lookup_or_default(name, default)
                  for name, default in defaults.items()}
        switches = {name: source.switch_or_default(name, default)
                    for name, default in switch_defaults.items()}

        unused = set(source.keys()) - set(values) - set(switches)
        if unused:
            logger.warning(f"Ignoring unknown coefficient(s): {', '.join(sorted(unused))}")

        return cls(values=MappingProxyType(values), switches=MappingProxyType(switches))

    def __getitem__(self, name: str) -> float:
        return self.values[name]

    def __getattr__(self, name: str) -> float:
        # Only reached for names that are not dataclass fields
        values = object.__getattribute__(self, 'values')
        if name in values:
            return values[name]
        raise AttributeError(name)

    def switch(self, name: str) -> bool:
        return self.switches[name]

    def overrides(self, defaults: Mapping[str, float]) -> Dict[str, float]:
        """Entries that differ from the given defaults."""
        return {k: v for k, v in self.values.items() if defaults.get(k) != v}
