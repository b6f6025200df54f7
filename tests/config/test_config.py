"""
Tests for the YAML configuration schema and loader.
"""

import pytest
import yaml

from turbclosure.config import (
    ClosureConfig,
    TurbulenceConfig,
    BoundsConfig,
    SolverSettings,
    load_yaml,
    from_dict,
    apply_overrides,
    save_yaml,
    transition_preset,
)
from turbclosure.errors import ConfigurationError


class TestFromDict:
    """Dictionary → ClosureConfig."""

    def test_empty_gives_defaults(self):
        assert from_dict({}) == ClosureConfig()

    def test_nested_sections(self):
        config = from_dict({
            'turbulence': {'model': 'EARSM', 'coeffs': {'Cdiff': 2.0},
                           'switches': {'curvatureCorrection': 'on'}},
            'solver': {'gmres_tol': 1e-9, 'n_correctors': 2},
        })
        assert config.turbulence.model == 'EARSM'
        assert config.turbulence.coeffs == {'Cdiff': 2.0}
        assert config.turbulence.switches == {'curvatureCorrection': True}
        assert config.solver.n_correctors == 2
        assert config.bounds == BoundsConfig()

    def test_unknown_section(self):
        with pytest.raises(ConfigurationError, match="section"):
            from_dict({'mesh': {}})

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="gmres_tolerance"):
            from_dict({'solver': {'gmres_tolerance': 1e-6}})

    def test_non_numeric_coefficient(self):
        with pytest.raises(ConfigurationError):
            from_dict({'turbulence': {'coeffs': {'a1': 'large'}}})

    def test_invalid_switch(self):
        with pytest.raises(ConfigurationError, match=r"turbulence\.switches\.F3"):
            from_dict({'turbulence': {'switches': {'F3': 'maybe'}}})

    def test_switch_words_match_coefficient_dict(self):
        config = from_dict({'turbulence': {'switches': {'F3': 'Yes', 'productionLimiter': 0}}})
        assert config.turbulence.switches == {'F3': True, 'productionLimiter': False}

    def test_string_numbers_coerced(self):
        config = from_dict({'bounds': {'k_min': '1e-12'}, 'solver': {'gmres_restart': '40'}})
        assert config.bounds.k_min == 1e-12
        assert config.solver.gmres_restart == 40


class TestValidation:
    """Range checks on the assembled configuration."""

    def test_negative_floor(self):
        with pytest.raises(ConfigurationError):
            ClosureConfig(bounds=BoundsConfig(k_min=-1.0)).validate()

    def test_omega_max_below_min(self):
        with pytest.raises(ConfigurationError):
            ClosureConfig(bounds=BoundsConfig(omega_min=1.0, omega_max=0.5)).validate()

    def test_non_finite_floor(self):
        with pytest.raises(ConfigurationError):
            ClosureConfig(bounds=BoundsConfig(v2_min=float('nan'))).validate()

    def test_bad_solver_settings(self):
        with pytest.raises(ConfigurationError):
            ClosureConfig(solver=SolverSettings(gmres_tol=2.0)).validate()
        with pytest.raises(ConfigurationError):
            ClosureConfig(solver=SolverSettings(n_correctors=0)).validate()

    def test_bad_log_level(self):
        with pytest.raises(ConfigurationError):
            from_dict({'logging': {'level': 'VERBOSE'}})

    def test_transition_preset(self):
        config = transition_preset("kv2Omega").validate()
        assert config.turbulence.model == "kv2Omega"
        assert config.solver.n_correctors == 2


class TestYamlFiles:
    """load_yaml / save_yaml."""

    def test_round_trip(self, tmp_path):
        config = ClosureConfig(
            turbulence=TurbulenceConfig(model='kOmegaSST', coeffs={'a1': 0.3}, switches={'F3': True}),
            solver=SolverSettings(gmres_restart=25),
        )
        path = tmp_path / 'sub' / 'closure.yaml'
        save_yaml(config, path)
        assert load_yaml(path) == config

    def test_yaml_exponent_strings(self, tmp_path):
        # PyYAML reads "1e-15" (no decimal point) as a string
        path = tmp_path / 'closure.yaml'
        path.write_text("bounds:\n  omega_min: 1e-15\n")
        assert load_yaml(path).bounds.omega_min == 1e-15

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text("")
        assert load_yaml(path) == ClosureConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / 'missing.yaml')

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("turbulence: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_yaml(path)

    def test_apply_overrides(self):
        config = apply_overrides(ClosureConfig(), {'turbulence': {'coeffs': {'a1': 0.3}}})
        assert config.turbulence.coeffs == {'a1': 0.3}
        assert config.turbulence.model == 'kOmegaSST'

    def test_saved_file_is_plain_yaml(self, tmp_path):
        path = tmp_path / 'closure.yaml'
        save_yaml(ClosureConfig(), path)
        data = yaml.safe_load(path.read_text())
        assert set(data) == {'turbulence', 'bounds', 'solver', 'logging'}
