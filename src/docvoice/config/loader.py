"""YAML configuration loader with inheritance support.

Supports:
- Loading YAML config files
- Config inheritance via 'extends' key
- Deep merging of nested config
- Profile selection via DOCVOICE_PROFILE
"""

import os
from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigError
from . import AudioConfig, CacheConfig, DocvoiceConfig, LoggingConfig, TTSConfig

DEFAULT_PROFILE = "dev"
PROFILE_ENV_VAR = "DOCVOICE_PROFILE"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Values from override take precedence. Nested dicts are merged recursively.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_with_inheritance(path: Path) -> dict[str, Any]:
    """Load YAML file with inheritance support.

    If the file contains an 'extends' key, the base config is loaded first
    and merged with the current config.

    Raises:
        FileNotFoundError: If the file or a base file is missing
        ConfigError: If the YAML cannot be parsed
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")

    if "extends" in config:
        base_name = config.pop("extends")
        base_config = load_yaml_with_inheritance(path.parent / base_name)
        config = deep_merge(base_config, config)

    return config


def _section(cls: type, data: dict[str, Any], name: str) -> Any:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")
    try:
        return cls(**value)
    except TypeError as e:
        raise ConfigError(f"Invalid keys in section '{name}': {e}") from e


def dict_to_config(data: dict[str, Any]) -> DocvoiceConfig:
    """Convert raw dict to typed DocvoiceConfig dataclass."""
    root = data.get("docvoice", {}) or {}

    config = DocvoiceConfig(
        audio=_section(AudioConfig, root, "audio"),
        tts=_section(TTSConfig, root, "tts"),
        cache=_section(CacheConfig, root, "cache"),
        logging=_section(LoggingConfig, root, "logging"),
    )

    if config.tts.native_engine not in ("auto", "say", "pyttsx3", "none"):
        raise ConfigError(f"Unknown native_engine: {config.tts.native_engine!r}")
    if config.cache.retention_days <= 0:
        raise ConfigError("cache.retention_days must be positive")
    return config


class YAMLConfigLoader:
    """YAML configuration loader implementation."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize loader with optional config directory.

        Args:
            config_dir: Directory containing config files.
                        Defaults to 'config' relative to project root.
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent.parent / "config"
        self._config_dir = config_dir

    def load(self, path: Path) -> DocvoiceConfig:
        """Load configuration from file path."""
        return dict_to_config(load_yaml_with_inheritance(path))

    def load_profile(self, profile: str) -> DocvoiceConfig:
        """Load configuration by profile name (e.g. 'dev', 'test')."""
        return self.load(self._config_dir / f"{profile}.yaml")

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        return self._config_dir


def detect_profile() -> str:
    """Return the profile named by DOCVOICE_PROFILE, or the default."""
    return os.environ.get(PROFILE_ENV_VAR, "").strip().lower() or DEFAULT_PROFILE


def load_config(path: str | Path | None = None, profile: str | None = None) -> DocvoiceConfig:
    """Load docvoice configuration.

    Args:
        path: Direct path to config file (takes precedence)
        profile: Profile name if path not given

    Returns:
        Parsed DocvoiceConfig. When no path is given and the profile file
        does not exist, built-in defaults are returned.

    Examples:
        >>> config = load_config(profile="dev")
        >>> config = load_config(path="/path/to/config.yaml")
    """
    loader = YAMLConfigLoader()

    if path is not None:
        return loader.load(Path(path))

    profile_path = loader.get_config_dir() / f"{profile or detect_profile()}.yaml"
    if profile is None and not profile_path.exists():
        return DocvoiceConfig()
    return loader.load(profile_path)


__all__ = [
    "YAMLConfigLoader",
    "deep_merge",
    "detect_profile",
    "dict_to_config",
    "load_config",
    "load_yaml_with_inheritance",
]
