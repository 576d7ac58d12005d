"""Configuration loader with YAML and environment variable support."""

import os
from pathlib import Path
from typing import Any

import yaml


CONFIG_DIR = Path("~/.config/pigeon")
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.yaml"

# Key=value file read by older releases of the host
LEGACY_CONFIG_PATH = CONFIG_DIR / "config"

# Default configuration values
DEFAULTS = {
    "logging": {
        "level": "INFO",
        "file": "~/.config/pigeon/logs/host.log",
        "max_bytes": 1_000_000,
        "backup_count": 3,
    },
    "tmux": {
        "binary": None,
        "subprocess_timeout": 5,
        "text_enter_delay_ms": 120,
    },
    "format": {
        "default_question": "Explain this code",
        "max_code_chars": None,
    },
    "debug": {
        "html_dump_path": None,
    },
}

# Environment variable mappings
# Maps env var name to (config_section, config_key, type_converter)
ENV_MAPPINGS = {
    "PIGEON_LOG_LEVEL": ("logging", "level", str),
    "PIGEON_LOG_FILE": ("logging", "file", str),
    "PIGEON_TMUX_BINARY": ("tmux", "binary", str),
    "PIGEON_TMUX_TIMEOUT": ("tmux", "subprocess_timeout", float),
    "PIGEON_TMUX_ENTER_DELAY_MS": ("tmux", "text_enter_delay_ms", int),
}


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or parsed."""


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    try:
        with open(config_path, "r") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")
    return content


def apply_env_overrides(config: dict) -> dict:
    """Apply environment variable overrides to configuration."""
    result = config.copy()

    for env_var, (section, key, converter) in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is not None:
            try:
                converted = converter(value)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {env_var}: {value!r}") from e
            result[section] = dict(result.get(section) or {})
            result[section][key] = converted

    return result


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """Pick the config file: explicit path > PIGEON_CONFIG > default location."""
    if config_path is None:
        config_path = os.environ.get("PIGEON_CONFIG") or DEFAULT_CONFIG_PATH
    return Path(config_path).expanduser()


def load_config(config_path: str | Path | None = None) -> dict:
    """Load config: env vars > config.yaml > DEFAULTS."""
    path = resolve_config_path(config_path)

    # Start with defaults
    config = DEFAULTS.copy()

    # Merge YAML config
    yaml_config = load_yaml_config(path)
    config = deep_merge(config, yaml_config)

    # Apply environment overrides
    config = apply_env_overrides(config)

    return config


def get_value(config: dict, *keys: str, default: Any = None) -> Any:
    """Get a nested configuration value by key path."""
    result = config
    for key in keys:
        if isinstance(result, dict) and key in result:
            result = result[key]
        else:
            return default
    return result


def get_tmux_config(config: dict) -> dict:
    """Get tmux invocation settings with defaults."""
    return {
        "binary": get_value(config, "tmux", "binary", default=None),
        "subprocess_timeout": get_value(
            config, "tmux", "subprocess_timeout", default=5
        ),
        "text_enter_delay_ms": get_value(
            config, "tmux", "text_enter_delay_ms", default=120
        ),
    }


def get_format_config(config: dict) -> dict:
    """Get message formatting settings with defaults."""
    return {
        "default_question": get_value(
            config, "format", "default_question", default="Explain this code"
        ),
        "max_code_chars": get_value(
            config, "format", "max_code_chars", default=None
        ),
    }


def read_legacy_target_override(path: str | Path | None = None) -> str | None:
    """Return the ``tmux_target=`` value from the legacy key=value file.

    The value is only reported, never applied: the request's explicit
    target is authoritative. A missing or unreadable file yields None.
    """
    legacy_path = Path(path or LEGACY_CONFIG_PATH).expanduser()
    try:
        contents = legacy_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None

    for line in contents.splitlines():
        line = line.strip()
        if line.startswith("tmux_target="):
            value = line[len("tmux_target="):].strip()
            if value:
                return value
    return None
