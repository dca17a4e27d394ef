"""
Tests for configuration loading and parameter validation.
"""

import json

import pytest

from equity_guard.config import (
    DEFAULT_PARAMETERS,
    create_default_config_file,
    load_config,
    save_config,
)
from equity_guard.exceptions import ConfigurationError
from equity_guard.types import GuardConfig, HysteresisParams


def valid_parameters(**overrides):
    data = dict(DEFAULT_PARAMETERS)
    data.update(overrides)
    return data


class TestHysteresisParams:
    """Tests for parameter validation."""

    def test_valid_parameters(self):
        params = HysteresisParams.from_dict(valid_parameters())
        assert params.t_enter_major == 0.50
        assert params.t_exit == 0.65
        assert params.consecutive_required_standard == 3

    @pytest.mark.parametrize("missing", [
        "T_enter_major",
        "T_enter_standard",
        "T_exit",
        "consecutive_required_standard",
        "cooldown_snapshots_after_exit",
    ])
    def test_missing_parameter_is_fatal(self, missing):
        data = valid_parameters()
        del data[missing]
        with pytest.raises(ConfigurationError, match=missing):
            HysteresisParams.from_dict(data)

    def test_exit_below_standard_is_fatal(self):
        with pytest.raises(ConfigurationError, match="T_enter_major <= T_enter_standard <= T_exit"):
            HysteresisParams.from_dict(valid_parameters(T_exit=0.55))

    def test_major_above_standard_is_fatal(self):
        with pytest.raises(ConfigurationError):
            HysteresisParams.from_dict(valid_parameters(T_enter_major=0.62))

    def test_threshold_out_of_range(self):
        with pytest.raises(ConfigurationError, match="between"):
            HysteresisParams.from_dict(valid_parameters(T_exit=1.5))

    def test_consecutive_must_be_positive(self):
        with pytest.raises(ConfigurationError, match="at least 1"):
            HysteresisParams.from_dict(valid_parameters(consecutive_required_standard=0))

    def test_cooldown_must_be_integer(self):
        with pytest.raises(ConfigurationError, match="integer"):
            HysteresisParams.from_dict(valid_parameters(cooldown_snapshots_after_exit=1.5))

    def test_bool_is_not_a_threshold(self):
        with pytest.raises(ConfigurationError):
            HysteresisParams.from_dict(valid_parameters(T_exit=True))

    def test_equal_thresholds_allowed(self):
        params = HysteresisParams.from_dict(
            valid_parameters(T_enter_major=0.6, T_enter_standard=0.6, T_exit=0.6)
        )
        assert params.t_enter_standard == params.t_exit

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)

    def test_round_trip_keeps_version(self):
        params = HysteresisParams.from_dict(valid_parameters(version="v1"))
        assert HysteresisParams.from_dict(params.to_dict()) == params


class TestLoadConfig:
    """Tests for file loading."""

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(str(tmp_path / "absent.json"))

    def test_load_json_nested(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "parameters": valid_parameters(),
            "state_path": "s.json",
            "event_log_path": "e.jsonl",
        }))

        config = load_config(str(path))

        assert config.params.t_enter_standard == 0.60
        assert config.state_path == "s.json"
        assert config.event_log_path == "e.jsonl"

    def test_load_json_flat(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(valid_parameters()))

        config = load_config(str(path))

        assert config.params.cooldown_snapshots_after_exit == 1
        assert config.state_path == GuardConfig.state_path

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "hysteresis-config-v1.yml"
        path.write_text(
            "parameters:\n"
            "  version: '1.0'\n"
            "  T_enter_major: 0.5\n"
            "  T_enter_standard: 0.6\n"
            "  T_exit: 0.65\n"
            "  consecutive_required_standard: 2\n"
            "  cooldown_snapshots_after_exit: 4\n"
        )

        config = load_config(str(path))

        assert config.params.consecutive_required_standard == 2
        assert config.params.cooldown_snapshots_after_exit == 4
        assert config.params.version == "1.0"

    def test_env_var_path(self, tmp_path, monkeypatch):
        path = tmp_path / "from_env.json"
        path.write_text(json.dumps(valid_parameters(T_exit=0.7)))
        monkeypatch.setenv("EQUITY_GUARD_CONFIG", str(path))

        assert load_config().params.t_exit == 0.7

    def test_invalid_json_is_fatal(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="cannot read"):
            load_config(str(path))

    def test_non_mapping_is_fatal(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_save_and_reload(self, tmp_path):
        config = GuardConfig(params=HysteresisParams.from_dict(valid_parameters()))
        for name in ("config.json", "config.yaml"):
            path = tmp_path / name
            save_config(config, str(path))
            assert load_config(str(path)) == config

    def test_create_default_config_file(self, tmp_path, capsys):
        path = tmp_path / "nested" / "default.json"
        create_default_config_file(str(path))

        assert path.exists()
        assert load_config(str(path)).params.to_dict() == DEFAULT_PARAMETERS
        assert "Created default config" in capsys.readouterr().out
