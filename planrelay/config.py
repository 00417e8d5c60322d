"""Configuration constants for the flight plan relay."""

import os
from pathlib import Path

import yaml

# Base directories
RELAY_DIR = Path(__file__).parent.parent

# Load .env file; variables already set in the environment win
_env_file = RELAY_DIR / ".env"
if _env_file.exists():
    for line in _env_file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())


class ConfigError(Exception):
    """Raised when relay settings cannot be loaded."""


def _optional_float(value):
    if value in (None, ""):
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"Invalid timeout value: {value!r}")


# Upstream endpoint that receives every forwarded flight plan
UPSTREAM_URL = os.environ.get(
    "PLAN_RELAY_UPSTREAM_URL", "https://flightplan.example.com/api/plans"
)

# Origin allowed to call the relay from a browser
ALLOWED_ORIGIN = os.environ.get("PLAN_RELAY_ALLOWED_ORIGIN", "https://planner.example.com")

# Server configuration
DEFAULT_HOST = os.environ.get("PLAN_RELAY_HOST", "0.0.0.0")
DEFAULT_PORT = int(os.environ.get("PLAN_RELAY_PORT", "8787"))

# Outbound timeout in seconds; None leaves it to the HTTP library
UPSTREAM_TIMEOUT = _optional_float(os.environ.get("PLAN_RELAY_TIMEOUT"))

# CORS header set attached to every response
ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type"

# Keys accepted in a --config YAML file
CONFIG_KEYS = ("upstream_url", "allowed_origin", "host", "port", "timeout")


def cors_headers(origin: str = ALLOWED_ORIGIN) -> dict:
    """Build the CORS header set for an allowed origin."""
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }


def default_settings() -> dict:
    """Settings resolved from the environment at startup."""
    return {
        "upstream_url": UPSTREAM_URL,
        "allowed_origin": ALLOWED_ORIGIN,
        "host": DEFAULT_HOST,
        "port": DEFAULT_PORT,
        "timeout": UPSTREAM_TIMEOUT,
    }


def load_settings(config_path=None) -> dict:
    """Return startup settings, overridden by a YAML file when given.

    The file holds a flat mapping using the keys in CONFIG_KEYS. Anything
    else (unknown keys, a non-mapping document, unparseable YAML) raises
    ConfigError so a bad deploy fails before the server binds.
    """
    settings = default_settings()
    if config_path is None:
        return settings

    path = Path(config_path)
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config {path}: {e}")

    if data is None:
        return settings
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        raise ConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")

    settings.update(data)
    try:
        settings["port"] = int(settings["port"])
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid port value: {settings['port']!r}")
    settings["timeout"] = _optional_float(settings["timeout"])
    return settings
