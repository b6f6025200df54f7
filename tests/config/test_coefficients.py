"""
Tests for the coefficient dictionary and run-time re-reading.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from turbclosure.config import ClosureConfig, TurbulenceConfig, CoefficientDict, ModelCoefficients
from turbclosure.errors import ConfigurationError
from turbclosure.models import create_model


DEFAULTS = {"betaStar": 0.09, "a1": 0.31}
SWITCHES = {"F3": False}


class TestCoefficientDict:
    """Lookups and switches."""

    def test_lookup(self):
        cd = CoefficientDict({"betaStar": 0.1})
        assert cd.lookup("betaStar") == 0.1
        assert "betaStar" in cd

    def test_missing_mandatory(self):
        with pytest.raises(ConfigurationError, match="gamma"):
            CoefficientDict().lookup("gamma")

    def test_lookup_or_default(self):
        cd = CoefficientDict({"a1": "0.3"})
        assert cd.lookup_or_default("a1", 0.31) == 0.3
        assert cd.lookup_or_default("b1", 1.0) == 1.0

    @pytest.mark.parametrize("value", [float("inf"), float("nan"), "abc", True])
    def test_invalid_numbers(self, value):
        with pytest.raises(ConfigurationError):
            CoefficientDict({"a1": value}).lookup("a1")

    @pytest.mark.parametrize("word, expected", [
        ("on", True), ("yes", True), ("true", True), (True, True),
        ("off", False), ("no", False), ("false", False), (False, False),
    ])
    def test_switch_words(self, word, expected):
        assert CoefficientDict({"F3": word}).switch_or_default("F3", not expected) is expected

    def test_invalid_switch(self):
        with pytest.raises(ConfigurationError):
            CoefficientDict({"F3": "sometimes"}).switch_or_default("F3", False)

    def test_file_entries_take_precedence(self, tmp_path):
        path = tmp_path / "coeffs.yaml"
        path.write_text("betaStar: 0.1\n")
        cd = CoefficientDict({"betaStar": 0.2, "a1": 0.3}, path=path)
        assert cd.lookup("betaStar") == 0.1
        assert cd.lookup("a1") == 0.3

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            CoefficientDict(path=tmp_path / "none.yaml")

    def test_nested_entry_rejected(self, tmp_path):
        path = tmp_path / "coeffs.yaml"
        path.write_text("betaStar:\n  value: 0.1\n")
        with pytest.raises(ConfigurationError):
            CoefficientDict(path=path)

    def test_reload_without_file(self):
        assert CoefficientDict({"a1": 0.3}).reload() is False


class TestModelCoefficients:
    """Frozen per-closure coefficient sets."""

    def test_build_defaults(self):
        coeffs = ModelCoefficients.build(DEFAULTS, SWITCHES)
        assert coeffs.betaStar == 0.09
        assert coeffs["a1"] == 0.31
        assert coeffs.switch("F3") is False
        assert coeffs.overrides(DEFAULTS) == {}

    def test_build_with_overrides(self):
        coeffs = ModelCoefficients.build(DEFAULTS, SWITCHES, CoefficientDict({"a1": 0.3, "F3": "on"}))
        assert coeffs.a1 == 0.3
        assert coeffs.switch("F3") is True
        assert coeffs.overrides(DEFAULTS) == {"a1": 0.3}

    def test_unknown_attribute(self):
        coeffs = ModelCoefficients.build(DEFAULTS, SWITCHES)
        with pytest.raises(AttributeError):
            coeffs.sigmaK

    def test_immutable(self):
        coeffs = ModelCoefficients.build(DEFAULTS, SWITCHES)
        with pytest.raises(TypeError):
            coeffs.values["a1"] = 1.0


class TestRead:
    """RASModel.read() re-reads the backing file."""

    @pytest.fixture
    def coeff_file(self, tmp_path):
        path = tmp_path / "coeffs.yaml"
        path.write_text("betaStar: 0.09\n")
        return path

    @pytest.fixture
    def model(self, coeff_file, small_mesh, shear_flow):
        return create_model("kOmega", small_mesh, shear_flow,
                            coeffs=CoefficientDict(path=coeff_file),
                            initial={"k": 1.0, "omega": 1.0})

    def test_unchanged_file(self, model):
        assert model.read() is False

    def test_changed_file_applied(self, model, coeff_file):
        coeff_file.write_text("betaStar: 0.1\n")
        assert model.read() is True
        assert model.coeffs.betaStar == 0.1
        assert_allclose(model.epsilon(), 0.1)

    def test_invalid_value_keeps_previous(self, model, coeff_file):
        coeff_file.write_text("betaStar: fast\n")
        with pytest.raises(ConfigurationError):
            model.read()
        assert model.coeffs.betaStar == 0.09

    def test_invalid_yaml_keeps_previous(self, model, coeff_file):
        coeff_file.write_text("betaStar: [0.1\n")
        with pytest.raises(ConfigurationError):
            model.read()
        assert model.coeffs.betaStar == 0.09

    def test_state_survives_read(self, model, coeff_file):
        model.correct()
        k = model.k().copy()
        coeff_file.write_text("betaStar: 0.1\n")
        model.read()
        assert np.array_equal(model.k(), k)

    def test_coeffs_file_from_config(self, coeff_file, small_mesh, shear_flow):
        config = ClosureConfig(turbulence=TurbulenceConfig(
            model="kOmega", coeffs={"betaStar": 0.2}, coeffs_file=str(coeff_file)))
        model = create_model(None, small_mesh, shear_flow, config=config)
        # File entries override the in-memory ones
        assert model.coeffs.betaStar == 0.09
        coeff_file.write_text("betaStar: 0.11\n")
        assert model.read() is True
        assert model.coeffs.betaStar == 0.11
