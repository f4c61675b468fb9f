"""
Config system - layered settings for the app registry.

Merge order (later overrides earlier):
1. Built-in defaults
2. Config files (YAML or JSON)
3. ``.env`` file
4. Environment variables (``NEXUS_`` prefix, ``__`` separates sections)
5. Manual overrides
"""

from dataclasses import asdict, dataclass, field, fields
from glob import glob
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
import json
import os

import yaml
from dotenv import dotenv_values

NAMING_POLICIES = ("warn", "error", "off")
INSTALLATION_BACKENDS = ("memory", "remote")


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class RegistrySettings:
    strict: bool = False
    standard_app_prefix: str = "nomyx-"
    naming_policy: str = "warn"
    install_optional_dependencies: bool = False


@dataclass
class InstallationSettings:
    backend: str = "memory"
    base_url: Optional[str] = None
    application_id: Optional[str] = None
    rest_key: Optional[str] = None
    timeout: float = 10.0
    retain_uninstalled: bool = False


@dataclass
class PlatformSettings:
    version: str = "1.0.0"


@dataclass
class NexusConfig:
    """Typed view of the merged configuration."""

    registry: RegistrySettings = field(default_factory=RegistrySettings)
    installations: InstallationSettings = field(default_factory=InstallationSettings)
    platform: PlatformSettings = field(default_factory=PlatformSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NexusConfig":
        """
        Build typed settings from a merged config dict.

        Unknown sections are ignored; unknown keys inside a known section
        and values of the wrong type raise ``ConfigError``.
        """
        config = cls(
            registry=_build_section("registry", RegistrySettings, data.get("registry")),
            installations=_build_section("installations", InstallationSettings, data.get("installations")),
            platform=_build_section("platform", PlatformSettings, data.get("platform")),
        )

        if config.registry.naming_policy not in NAMING_POLICIES:
            raise ConfigError(
                f"registry.naming_policy must be one of {NAMING_POLICIES}, "
                f"got {config.registry.naming_policy!r}"
            )
        if config.installations.backend not in INSTALLATION_BACKENDS:
            raise ConfigError(
                f"installations.backend must be one of {INSTALLATION_BACKENDS}, "
                f"got {config.installations.backend!r}"
            )
        if config.installations.timeout <= 0:
            raise ConfigError("installations.timeout must be positive")
        return config

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build_section(name: str, section_class: type, data: Any) -> Any:
    if data is None:
        return section_class()
    if not isinstance(data, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping, got {type(data).__name__}")

    known = {f.name: f for f in fields(section_class)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"Unknown keys in config section '{name}': {', '.join(unknown)}")

    values = {}
    for key, value in data.items():
        values[key] = _coerce(f"{name}.{key}", value, known[key].default)
    return section_class(**values)


def _coerce(path: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raise ConfigError(f"{path} must be a boolean, got {value!r}")
    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise ConfigError(f"{path} must be a number, got {value!r}")
    if value is None or isinstance(value, str):
        return value
    # Environment parsing turns versions like "1.1" into numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ConfigError(f"{path} must be a string, got {value!r}")


_FILE_PARSERS = {
    ".json": ("JSON", json.loads, json.JSONDecodeError),
    ".yaml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".yml": ("YAML", yaml.safe_load, yaml.YAMLError),
}


def _read_config_file(path: Path) -> Optional[Dict[str, Any]]:
    if path.suffix not in _FILE_PARSERS:
        raise ConfigError(f"Unsupported config file type: {path}")

    kind, parse, parse_error = _FILE_PARSERS[path.suffix]
    try:
        data = parse(path.read_text())
    except parse_error as e:
        raise ConfigError(f"Invalid {kind} in {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "NEXUS_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = NexusConfig().to_dict()

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "NEXUS_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources.

        Args:
            paths: List of config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Merge every JSON or YAML file matching ``pattern``, in name order."""
        matches = sorted(glob(pattern))
        if not matches and not any(c in pattern for c in "*?["):
            raise ConfigError(f"Config file not found: {pattern}")

        for path_str in matches:
            data = _read_config_file(Path(path_str))
            if data is not None:
                self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        env_path = Path(path)
        if env_path.exists():
            self._apply_env(dotenv_values(env_path))

    def _load_from_env(self):
        self._apply_env(os.environ)

    def _apply_env(self, variables: Mapping[str, Optional[str]]):
        """``NEXUS_REGISTRY__STRICT=true`` sets ``registry.strict``."""
        for key, value in variables.items():
            if value is None or not key.startswith(self.env_prefix):
                continue

            *sections, name = key[len(self.env_prefix):].lower().split("__")
            current = self.config_data
            for section in sections:
                if not isinstance(current.get(section), dict):
                    current[section] = {}
                current = current[section]
            current[name] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def to_config(self) -> NexusConfig:
        """Validate and return typed settings."""
        return NexusConfig.from_dict(self.config_data)

    def to_dict(self) -> Dict[str, Any]:
        return self.config_data
