"""
Configuration resolver (registry/config_resolver.py).

Tests the three-tier merge, object deep merge, required fields and field
rule checks.
"""

import pytest

from tokennexus.registry import (
    AppManifest,
    ConfigField,
    ConfigResolver,
    ConfigValidationError,
    InvalidOptionError,
    MissingRequiredConfigError,
)
from tokennexus.registry.catalog import KYC_COMPLIANCE_MANIFEST, PLATFORM_ADMIN_MANIFEST
from tokennexus.registry.config_resolver import merge_layers


def field(**data):
    return ConfigField.from_dict(data)


@pytest.fixture
def resolver():
    return ConfigResolver()


# ============================================================================
# Tier precedence
# ============================================================================

class TestPrecedence:

    def test_override_wins(self, resolver):
        manifest = AppManifest.from_dict(KYC_COMPLIANCE_MANIFEST)
        config = resolver.resolve_for_manifest(manifest, {"kycTier": "tier3"})
        assert config["kycTier"] == "tier3"
        assert config["amlThreshold"] == 10000

    def test_manifest_defaults_used(self, resolver):
        manifest = AppManifest.from_dict(KYC_COMPLIANCE_MANIFEST)
        config = resolver.resolve_for_manifest(manifest)
        assert config["kycTier"] == "tier2"
        assert config["enableBiometricVerification"] is True

    def test_defaults_beat_schema_default(self, resolver):
        schema = {"limit": field(type="number", defaultValue=5)}
        assert resolver.resolve(schema, {"limit": 7}) == {"limit": 7}

    def test_schema_default_used_last(self, resolver):
        schema = {"limit": field(type="number", defaultValue=5)}
        assert resolver.resolve(schema) == {"limit": 5}

    def test_none_does_not_override(self, resolver):
        schema = {"limit": field(type="number", defaultValue=5)}
        assert resolver.resolve(schema, {"limit": 7}, {"limit": None}) == {"limit": 7}

    def test_stored_config_replaces_manifest_defaults(self, resolver):
        manifest = AppManifest.from_dict(KYC_COMPLIANCE_MANIFEST)
        config = resolver.resolve_for_manifest(manifest, defaults={"kycTier": "tier1"})
        assert config["kycTier"] == "tier1"
        # schema default still applies for fields absent from the stored config
        assert config["kycExpiryMonths"] == 24

    def test_optional_field_without_value_is_omitted(self, resolver):
        schema = {"note": field(type="string")}
        assert resolver.resolve(schema) == {}

    def test_pass_through_keys(self, resolver):
        schema = {"limit": field(type="number", defaultValue=5)}
        config = resolver.resolve(schema, {"legacy": "x"}, {"extra": [1, 2]})
        assert list(config) == ["limit", "legacy", "extra"]
        assert config["extra"] == [1, 2]

    def test_list_values_replaced(self, resolver):
        schema = {"tags": field(type="multiselect", options=["a", "b", "c"], defaultValue=["a", "b"])}
        assert resolver.resolve(schema, overrides={"tags": ["c"]}) == {"tags": ["c"]}


# ============================================================================
# Object fields
# ============================================================================

class TestObjectMerge:

    def test_object_field_deep_merged(self, resolver):
        manifest = AppManifest.from_dict(PLATFORM_ADMIN_MANIFEST)
        config = resolver.resolve_for_manifest(manifest, {"alertThresholds": {"cpuUsage": 95}})
        assert config["alertThresholds"] == {
            "cpuUsage": 95,
            "memoryUsage": 85,
            "diskUsage": 90,
            "errorRate": 5,
        }

    def test_nested_object_merge(self, resolver):
        schema = {"limits": field(type="object", defaultValue={"a": {"x": 1, "y": 2}})}
        config = resolver.resolve(schema, overrides={"limits": {"a": {"y": 3}}})
        assert config["limits"] == {"a": {"x": 1, "y": 3}}

    def test_object_type_mismatch(self, resolver):
        schema = {"limits": field(type="object")}
        with pytest.raises(ConfigValidationError) as exc_info:
            resolver.resolve(schema, overrides={"limits": 5})
        assert exc_info.value.field_name == "limits"

    def test_inputs_not_mutated(self, resolver):
        defaults = {"limits": {"a": 1}}
        overrides = {"limits": {"b": 2}}
        schema = {"limits": field(type="object")}
        config = resolver.resolve(schema, defaults, overrides)
        config["limits"]["c"] = 3
        assert defaults == {"limits": {"a": 1}}
        assert overrides == {"limits": {"b": 2}}


# ============================================================================
# Field rules
# ============================================================================

class TestFieldRules:

    def test_required_missing(self, resolver):
        schema = {"apiKey": field(type="string", required=True)}
        with pytest.raises(MissingRequiredConfigError) as exc_info:
            resolver.resolve(schema, app_id="nomyx-x")
        assert exc_info.value.field_name == "apiKey"
        assert exc_info.value.app_id == "nomyx-x"

    def test_below_minimum(self, resolver):
        manifest = AppManifest.from_dict(KYC_COMPLIANCE_MANIFEST)
        with pytest.raises(ConfigValidationError) as exc_info:
            resolver.resolve_for_manifest(manifest, {"amlThreshold": 10})
        assert exc_info.value.field_name == "amlThreshold"
        assert "minimum" in exc_info.value.reason

    def test_above_maximum(self, resolver):
        schema = {"pct": field(type="number", validation={"min": 0, "max": 100})}
        with pytest.raises(ConfigValidationError):
            resolver.resolve(schema, overrides={"pct": 101})

    def test_bounds_inclusive(self, resolver):
        schema = {"pct": field(type="number", validation={"min": 0, "max": 100})}
        assert resolver.resolve(schema, overrides={"pct": 100}) == {"pct": 100}

    def test_select_outside_options(self, resolver):
        manifest = AppManifest.from_dict(KYC_COMPLIANCE_MANIFEST)
        with pytest.raises(InvalidOptionError) as exc_info:
            resolver.resolve_for_manifest(manifest, {"kycTier": "tier9"})
        assert exc_info.value.value == "tier9"

    def test_multiselect_unknown_value(self, resolver):
        schema = {"tags": field(type="multiselect", options=["a", "b"])}
        with pytest.raises(InvalidOptionError):
            resolver.resolve(schema, overrides={"tags": ["a", "z"]})

    def test_multiselect_requires_list(self, resolver):
        schema = {"tags": field(type="multiselect", options=["a", "b"])}
        with pytest.raises(ConfigValidationError):
            resolver.resolve(schema, overrides={"tags": "a"})

    def test_boolean_is_not_a_number(self, resolver):
        schema = {"count": field(type="number")}
        with pytest.raises(ConfigValidationError):
            resolver.resolve(schema, overrides={"count": True})

    def test_string_type_check(self, resolver):
        schema = {"name": field(type="string")}
        with pytest.raises(ConfigValidationError):
            resolver.resolve(schema, overrides={"name": 5})

    def test_pattern_full_match(self, resolver):
        schema = {"code": field(type="string", validation={"pattern": "[A-Z]{3}"})}
        assert resolver.resolve(schema, overrides={"code": "USD"}) == {"code": "USD"}
        with pytest.raises(ConfigValidationError):
            resolver.resolve(schema, overrides={"code": "USDC"})

    def test_invalid_pattern_is_config_error(self, resolver):
        schema = {"code": field(type="string", validation={"pattern": "[unclosed"})}
        with pytest.raises(ConfigValidationError) as exc_info:
            resolver.resolve(schema, overrides={"code": "x"})
        assert "invalid pattern" in exc_info.value.reason


# ============================================================================
# validate_value
# ============================================================================

class TestValidateValue:

    def test_valid_value(self, resolver):
        check = resolver.validate_value(field(type="number", validation={"min": 1}), 3)
        assert check.valid is True
        assert check.error is None

    def test_invalid_value_reports_reason(self, resolver):
        check = resolver.validate_value(field(type="number", validation={"min": 1}), 0)
        assert check.valid is False
        assert "minimum" in check.error

    def test_none_for_required_field(self, resolver):
        assert resolver.validate_value(field(type="string", required=True), None).valid is False

    def test_none_for_optional_field(self, resolver):
        assert resolver.validate_value(field(type="string"), None).valid is True


# ============================================================================
# merge_layers
# ============================================================================

class TestMergeLayers:

    def test_later_layer_wins(self):
        assert merge_layers({"a": 1, "b": 1}, {"b": 2}) == {"a": 1, "b": 2}

    def test_nested_merge(self):
        result = merge_layers({"colors": {"primary": "#000"}}, {"colors": {"accent": "#fff"}})
        assert result == {"colors": {"primary": "#000", "accent": "#fff"}}

    def test_none_layers_skipped(self):
        assert merge_layers(None, {"a": 1}, None) == {"a": 1}

    def test_inputs_not_mutated(self):
        base = {"colors": {"primary": "#000"}}
        merge_layers(base, {"colors": {"primary": "#111"}})
        assert base == {"colors": {"primary": "#000"}}
