"""Tests for agentscope.config module."""

from pathlib import Path

import pytest

from agentscope.config import DEFAULTS, ScopeConfig, load_config


def test_load_config_no_file(tmp_path):
    """When config file doesn't exist, return defaults without error."""
    config = load_config(config_path=tmp_path / "nonexistent.yaml")
    assert isinstance(config, ScopeConfig)
    assert config.days == 7
    assert config.interval == 10
    assert config.export_days == 30
    assert config.export_format == "json"
    assert config.log_level == "WARNING"


def test_load_config_defaults_paths(tmp_path):
    """Default paths should be expanded (no ~ remaining)."""
    config = load_config(config_path=tmp_path / "nonexistent.yaml")
    assert "~" not in str(config.log_dir)
    assert config.log_dir == Path(DEFAULTS["log_dir"]).expanduser()


def test_load_config_partial_override(tmp_path):
    """A partial config file merges with defaults correctly."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("interval: 2.5\n")

    config = load_config(config_path=config_file)
    assert config.interval == 2.5
    # Other defaults still apply
    assert config.days == 7
    assert config.log_dir == Path(DEFAULTS["log_dir"]).expanduser()


def test_load_config_custom_paths(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("log_dir: ~/agent-logs\n")

    config = load_config(config_path=config_file)
    assert config.log_dir == Path("~/agent-logs").expanduser()


def test_load_config_normalizes_case(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("export_format: CSV\nlog_level: debug\n")

    config = load_config(config_path=config_file)
    assert config.export_format == "csv"
    assert config.log_level == "DEBUG"


def test_load_config_rejects_unknown_export_format(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("export_format: xml\n")

    with pytest.raises(ValueError, match="export_format"):
        load_config(config_path=config_file)


def test_load_config_unknown_keys_ignored(tmp_path):
    """Unknown keys in the YAML file are silently ignored."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("unknown_key: some_value\ndays: 14\n")

    config = load_config(config_path=config_file)
    assert config.days == 14
    assert not hasattr(config, "unknown_key")


def test_load_config_empty_yaml(tmp_path):
    """An empty YAML file should return defaults."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")

    config = load_config(config_path=config_file)
    assert config.days == 7


def test_load_config_non_mapping_yaml(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("- just\n- a list\n")

    config = load_config(config_path=config_file)
    assert config.export_days == 30


def test_load_config_rejects_unknown_log_level(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("log_level: loud\n")

    with pytest.raises(ValueError, match="log_level"):
        load_config(config_path=config_file)
