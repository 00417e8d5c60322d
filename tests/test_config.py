"""Tests for settings loading."""

import pytest

from planrelay.config import ConfigError, cors_headers, default_settings, load_settings


def test_defaults_without_file():
    assert load_settings() == default_settings()


def test_yaml_overrides(tmp_path):
    path = tmp_path / "relay.yaml"
    path.write_text(
        "upstream_url: https://upstream.test/plans\n"
        "allowed_origin: https://planner.test\n"
        "port: '9000'\n"
        "timeout: 12\n"
    )
    settings = load_settings(path)
    assert settings["upstream_url"] == "https://upstream.test/plans"
    assert settings["allowed_origin"] == "https://planner.test"
    assert settings["port"] == 9000
    assert settings["timeout"] == 12.0
    assert settings["host"] == default_settings()["host"]


def test_empty_yaml(tmp_path):
    path = tmp_path / "relay.yaml"
    path.write_text("")
    assert load_settings(path) == default_settings()


def test_unknown_key(tmp_path):
    path = tmp_path / "relay.yaml"
    path.write_text("upstream: https://typo.test\n")
    with pytest.raises(ConfigError, match="Unknown config keys"):
        load_settings(path)


def test_not_a_mapping(tmp_path):
    path = tmp_path / "relay.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigError, match="must be a mapping"):
        load_settings(path)


def test_bad_yaml(tmp_path):
    path = tmp_path / "relay.yaml"
    path.write_text("upstream_url: [unclosed\n")
    with pytest.raises(ConfigError):
        load_settings(path)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path / "nope.yaml")


def test_bad_port_and_timeout(tmp_path):
    path = tmp_path / "relay.yaml"
    path.write_text("port: eighty\n")
    with pytest.raises(ConfigError, match="Invalid port"):
        load_settings(path)

    path.write_text("timeout: soon\n")
    with pytest.raises(ConfigError, match="Invalid timeout"):
        load_settings(path)


def test_cors_headers():
    assert cors_headers("https://planner.test") == {
        "Access-Control-Allow-Origin": "https://planner.test",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }
