"""
Config System (config.py)

Tests NexusConfig and ConfigLoader layering: defaults, files, .env,
environment variables and overrides.
"""

import json

import pytest

from tokennexus.config import ConfigError, ConfigLoader, NexusConfig
from tokennexus.registry import AppRegistry, InstallationManager, MemoryInstallationStore, standard_catalog


# ============================================================================
# NexusConfig
# ============================================================================

class TestNexusConfig:

    def test_defaults(self):
        config = NexusConfig()
        assert config.registry.strict is False
        assert config.registry.standard_app_prefix == "nomyx-"
        assert config.registry.naming_policy == "warn"
        assert config.registry.install_optional_dependencies is False
        assert config.installations.backend == "memory"
        assert config.installations.timeout == 10.0
        assert config.platform.version == "1.0.0"

    def test_from_dict(self):
        config = NexusConfig.from_dict({
            "registry": {"strict": True, "naming_policy": "error"},
            "installations": {"retain_uninstalled": True},
        })
        assert config.registry.strict is True
        assert config.registry.naming_policy == "error"
        assert config.installations.retain_uninstalled is True

    def test_unknown_section_ignored(self):
        config = NexusConfig.from_dict({"telemetry": {"enabled": True}})
        assert config == NexusConfig()

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigError, match="strictness"):
            NexusConfig.from_dict({"registry": {"strictness": True}})

    def test_wrong_type_rejected(self):
        with pytest.raises(ConfigError, match="registry.strict"):
            NexusConfig.from_dict({"registry": {"strict": "yes please"}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigError):
            NexusConfig.from_dict({"registry": ["strict"]})

    def test_invalid_naming_policy(self):
        with pytest.raises(ConfigError, match="naming_policy"):
            NexusConfig.from_dict({"registry": {"naming_policy": "loud"}})

    def test_invalid_backend(self):
        with pytest.raises(ConfigError, match="backend"):
            NexusConfig.from_dict({"installations": {"backend": "redis"}})

    def test_timeout_positive(self):
        with pytest.raises(ConfigError):
            NexusConfig.from_dict({"installations": {"timeout": 0}})

    def test_numeric_version_coerced(self):
        config = NexusConfig.from_dict({"platform": {"version": 1.1}})
        assert config.platform.version == "1.1"

    def test_round_trip(self):
        config = NexusConfig.from_dict({"registry": {"strict": True}})
        assert NexusConfig.from_dict(config.to_dict()) == config


# ============================================================================
# ConfigLoader
# ============================================================================

class TestConfigLoader:

    def test_defaults_only(self, clean_env):
        loader = ConfigLoader.load()
        assert loader.get("registry.naming_policy") == "warn"
        assert loader.to_config() == NexusConfig()

    def test_yaml_file(self, tmp_path, clean_env):
        path = tmp_path / "nexus.yaml"
        path.write_text(
            "registry:\n"
            "  strict: true\n"
            "  naming_policy: 'off'\n"
            "installations:\n"
            "  retain_uninstalled: true\n"
        )
        config = ConfigLoader.load(paths=[str(path)]).to_config()
        assert config.registry.strict is True
        assert config.registry.naming_policy == "off"
        assert config.installations.retain_uninstalled is True
        assert config.registry.standard_app_prefix == "nomyx-"

    def test_json_files_merged_in_order(self, tmp_path, clean_env):
        (tmp_path / "a.json").write_text(json.dumps({"platform": {"version": "1.1.0"}}))
        (tmp_path / "b.json").write_text(json.dumps({"platform": {"version": "2.0.0"}}))
        loader = ConfigLoader.load(paths=[str(tmp_path / "*.json")])
        assert loader.get("platform.version") == "2.0.0"

    def test_missing_file(self, tmp_path, clean_env):
        with pytest.raises(ConfigError, match="not found"):
            ConfigLoader.load(paths=[str(tmp_path / "missing.yaml")])

    def test_unmatched_glob_is_fine(self, tmp_path, clean_env):
        loader = ConfigLoader.load(paths=[str(tmp_path / "*.yaml")])
        assert loader.to_config() == NexusConfig()

    def test_invalid_yaml(self, tmp_path, clean_env):
        path = tmp_path / "nexus.yaml"
        path.write_text("registry: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ConfigLoader.load(paths=[str(path)])

    def test_invalid_json(self, tmp_path, clean_env):
        path = tmp_path / "nexus.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            ConfigLoader.load(paths=[str(path)])

    def test_non_mapping_file(self, tmp_path, clean_env):
        path = tmp_path / "nexus.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            ConfigLoader.load(paths=[str(path)])

    def test_unsupported_file_type(self, tmp_path, clean_env):
        path = tmp_path / "nexus.ini"
        path.write_text("[registry]")
        with pytest.raises(ConfigError, match="Unsupported"):
            ConfigLoader.load(paths=[str(path)])

    def test_env_file(self, tmp_path, clean_env):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "NEXUS_REGISTRY__STRICT=true\n"
            "NEXUS_INSTALLATIONS__TIMEOUT=2.5\n"
            "OTHER_SETTING=ignored\n"
        )
        loader = ConfigLoader.load(env_file=str(env_file))
        config = loader.to_config()
        assert config.registry.strict is True
        assert config.installations.timeout == 2.5
        assert loader.get("other_setting") is None

    def test_missing_env_file_ignored(self, tmp_path, clean_env):
        loader = ConfigLoader.load(env_file=str(tmp_path / ".env"))
        assert loader.to_config() == NexusConfig()

    def test_environment_variables(self, clean_env):
        clean_env.setenv("NEXUS_REGISTRY__NAMING_POLICY", "error")
        clean_env.setenv("NEXUS_INSTALLATIONS__BACKEND", "remote")
        clean_env.setenv("NEXUS_INSTALLATIONS__BASE_URL", "https://parse.example.com/parse")
        config = ConfigLoader.load().to_config()
        assert config.registry.naming_policy == "error"
        assert config.installations.backend == "remote"
        assert config.installations.base_url == "https://parse.example.com/parse"

    def test_environment_beats_env_file(self, tmp_path, clean_env):
        env_file = tmp_path / ".env"
        env_file.write_text("NEXUS_PLATFORM__VERSION=1.1.0\n")
        clean_env.setenv("NEXUS_PLATFORM__VERSION", "2.0.0")
        loader = ConfigLoader.load(env_file=str(env_file))
        assert loader.get("platform.version") == "2.0.0"

    def test_overrides_win(self, tmp_path, clean_env):
        clean_env.setenv("NEXUS_REGISTRY__STRICT", "true")
        loader = ConfigLoader.load(overrides={"registry": {"strict": False}})
        assert loader.to_config().registry.strict is False

    def test_custom_prefix(self, clean_env):
        clean_env.setenv("TN_REGISTRY__STRICT", "yes")
        loader = ConfigLoader.load(env_prefix="TN_")
        assert loader.get("registry.strict") is True

    def test_parse_value(self):
        loader = ConfigLoader()
        assert loader._parse_value("no") is False
        assert loader._parse_value("42") == 42
        assert loader._parse_value("0.5") == 0.5
        assert loader._parse_value("1.0.0") == "1.0.0"
        assert loader._parse_value('{"a": 1}') == {"a": 1}
        assert loader._parse_value("off") == "off"

    def test_get_default(self, clean_env):
        assert ConfigLoader.load().get("registry.missing.key", "fallback") == "fallback"


# ============================================================================
# Wiring from config
# ============================================================================

class TestFromConfig:

    def test_registry_from_config(self):
        config = NexusConfig.from_dict({
            "registry": {"strict": True, "naming_policy": "error", "standard_app_prefix": "acme-"},
            "platform": {"version": "1.1.0"},
        })
        registry = AppRegistry.from_config(config)
        assert registry.strict is True
        assert registry.validator.naming_policy == "error"
        assert registry.validator.standard_prefix == "acme-"
        assert registry.validator.platform_version == "1.1.0"

    def test_manager_from_config(self):
        config = NexusConfig.from_dict({
            "registry": {"install_optional_dependencies": True},
            "installations": {"retain_uninstalled": True},
        })
        manager = InstallationManager.from_config(config, standard_catalog())
        assert isinstance(manager.store, MemoryInstallationStore)
        assert manager.resolver.include_optional is True
        assert manager.retain_uninstalled is True
