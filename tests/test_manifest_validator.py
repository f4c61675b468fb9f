"""
Manifest validator (registry/validator.py).

Tests required fields, UI/route consistency, configuration schema checks,
naming policy, compatibility and dependency hints.
"""

import pytest

from tokennexus.registry import AppManifest, ManifestValidator
from tokennexus.registry.catalog import STANDARD_MANIFESTS

from conftest import make_manifest, manifest_dict


def validate(data, **kwargs):
    return ManifestValidator(naming_policy="off", **kwargs).validate(AppManifest.from_dict(data))


# ============================================================================
# Required fields
# ============================================================================

class TestRequiredFields:

    def test_valid_manifest(self):
        result = validate(manifest_dict())
        assert result.valid is True
        assert result.errors == []

    @pytest.mark.parametrize("key,error", [
        ("id", "App ID is required"),
        ("name", "App name is required"),
        ("version", "App version is required"),
        ("publisher", "App publisher is required"),
    ])
    def test_missing_identity_field(self, key, error):
        data = manifest_dict()
        data[key] = ""
        result = validate(data)
        assert result.valid is False
        assert error in result.errors

    def test_missing_framework_version(self):
        result = validate(manifest_dict(framework={}))
        assert result.valid is False
        assert "Framework version is required" in result.errors

    def test_missing_framework_with_platform_version(self):
        manifest = AppManifest.from_dict(manifest_dict())
        manifest.framework = None
        result = ManifestValidator(naming_policy="off", platform_version="1.0.0").validate(manifest)
        assert result.valid is False
        assert "Framework version is required" in result.errors

    def test_every_missing_field_reported(self):
        result = validate({"adminUI": {"enabled": True, "routes": [{"path": "/"}]}})
        assert result.valid is False
        assert len(result.errors) == 5

    def test_never_raises(self):
        result = validate({})
        assert result.valid is False
        assert "At least one UI type (admin or user) must be enabled" in result.errors


# ============================================================================
# UI sections
# ============================================================================

class TestUISections:

    def test_no_ui_enabled(self):
        result = validate(manifest_dict(adminUI={"enabled": False, "routes": []}))
        assert "At least one UI type (admin or user) must be enabled" in result.errors

    def test_admin_enabled_without_routes(self):
        result = validate(manifest_dict(adminUI={"enabled": True, "routes": []}))
        assert result.valid is False
        assert "Admin UI is enabled but no routes are defined" in result.errors

    def test_user_enabled_without_routes(self):
        result = validate(manifest_dict(userUI={"enabled": True, "routes": []}))
        assert result.valid is False
        assert "User UI is enabled but no routes are defined" in result.errors

    def test_non_integer_navigation_order(self):
        data = manifest_dict()
        data["adminUI"]["navigation"] = [{"label": "Home", "path": "/", "order": "first"}]
        result = validate(data)
        assert result.valid is False
        assert any("non-integer order 'first'" in e for e in result.errors)

    def test_numeric_string_order_accepted(self):
        data = manifest_dict()
        data["adminUI"]["navigation"] = [{"label": "Home", "path": "/", "order": "5"}]
        assert validate(data).valid is True

    def test_user_only_app(self):
        result = validate(manifest_dict(
            adminUI={"enabled": False},
            userUI={"enabled": True, "routes": [{"path": "/me", "title": "Me"}]},
        ))
        assert result.valid is True


# ============================================================================
# Configuration schema
# ============================================================================

class TestConfigurationSchema:

    def test_select_without_options(self):
        result = validate(manifest_dict(configuration={
            "schema": {"tier": {"type": "select", "label": "Tier"}},
        }))
        assert result.valid is False
        assert any("'tier'" in e and "no options" in e for e in result.errors)

    def test_multiselect_without_options(self):
        result = validate(manifest_dict(configuration={
            "schema": {"networks": {"type": "multiselect", "options": []}},
        }))
        assert result.valid is False

    def test_default_outside_range(self):
        result = validate(manifest_dict(configuration={
            "schema": {"limit": {"type": "number", "defaultValue": 500, "validation": {"min": 1, "max": 100}}},
        }))
        assert result.valid is False
        assert any("'limit'" in e and "default" in e for e in result.errors)

    def test_default_not_an_option(self):
        result = validate(manifest_dict(configuration={
            "schema": {"tier": {"type": "select", "defaultValue": "gold", "options": ["tier1"]}},
        }))
        assert result.valid is False

    def test_invalid_pattern_reported(self):
        result = validate(manifest_dict(configuration={
            "schema": {"code": {"type": "string", "defaultValue": "x", "validation": {"pattern": "[unclosed"}}},
        }))
        assert result.valid is False
        assert any("'code'" in e and "invalid pattern" in e for e in result.errors)

    def test_non_numeric_bound(self):
        result = validate(manifest_dict(configuration={
            "schema": {"limit": {"type": "number", "defaultValue": 5, "validation": {"min": "one"}}},
        }))
        assert result.valid is False
        assert any("non-numeric min" in e for e in result.errors)

    def test_unknown_field_type(self):
        result = validate(manifest_dict(configuration={"schema": {"c": {"type": "color"}}}))
        assert result.valid is False
        assert any("unknown type 'color'" in e for e in result.errors)

    def test_undeclared_default_is_warning(self):
        result = validate(manifest_dict(configuration={"schema": {}, "defaultValues": {"extra": 1}}))
        assert result.valid is True
        assert any("'extra'" in w for w in result.warnings)


# ============================================================================
# Descriptors and version
# ============================================================================

class TestDescriptorsAndVersion:

    def test_unnamed_trigger(self):
        result = validate(manifest_dict(triggers=[{"event": "x"}]))
        assert "triggers[0] must have a name" in result.errors

    def test_unnamed_api(self):
        result = validate(manifest_dict(apis=[{"name": "ok"}, {"method": "GET"}]))
        assert "apis[1] must have a name" in result.errors

    def test_job_without_id(self):
        result = validate(manifest_dict(scheduledJobs=[{"name": "Nightly"}]))
        assert "scheduledJobs[0] must have an id" in result.errors

    def test_non_semver_is_warning(self):
        result = validate(manifest_dict(version="v1"))
        assert result.valid is True
        assert any("not valid semver" in w for w in result.warnings)

    def test_prerelease_semver_accepted(self):
        result = validate(manifest_dict(version="1.2.0-beta.1"))
        assert result.warnings == []


# ============================================================================
# Naming policy
# ============================================================================

class TestNamingPolicy:

    def test_warn_by_default(self):
        result = ManifestValidator().validate(AppManifest.from_dict(manifest_dict("kyc-compliance")))
        assert result.valid is True
        assert any("does not start with 'nomyx-'" in w for w in result.warnings)

    def test_error_policy(self):
        validator = ManifestValidator(naming_policy="error")
        result = validator.validate(AppManifest.from_dict(manifest_dict("kyc-compliance")))
        assert result.valid is False

    def test_off_policy(self):
        validator = ManifestValidator(naming_policy="off")
        result = validator.validate(AppManifest.from_dict(manifest_dict("kyc-compliance")))
        assert result.warnings == []

    def test_custom_prefix(self):
        validator = ManifestValidator(standard_prefix="acme-", naming_policy="error")
        assert validator.validate(AppManifest.from_dict(manifest_dict("acme-crm"))).valid

    def test_invalid_policy_rejected(self):
        with pytest.raises(ValueError):
            ManifestValidator(naming_policy="loud")


# ============================================================================
# Compatibility and dependencies
# ============================================================================

class TestCompatibilityAndDependencies:

    def test_incompatible_platform_warns(self):
        result = validate(manifest_dict(), platform_version="2.0.0")
        assert result.valid is True
        assert any("'2.0.0'" in w for w in result.warnings)

    def test_compatible_platform(self):
        result = validate(manifest_dict(), platform_version="1.0.0")
        assert result.warnings == []

    def test_self_dependency_is_error(self):
        manifest = make_manifest("nomyx-a", requires=["nomyx-a"])
        result = ManifestValidator(naming_policy="off").validate(manifest)
        assert result.valid is False
        assert "App 'nomyx-a' cannot depend on itself" in result.errors

    def test_cycle_hint_is_warning(self):
        b = make_manifest("nomyx-b", requires=["nomyx-a"])
        a = make_manifest("nomyx-a", requires=["nomyx-b"])
        validator = ManifestValidator(naming_policy="off", lookup={"nomyx-b": b}.get)
        result = validator.validate(a)
        assert result.valid is True
        assert any("Dependency cycle" in w and "nomyx-a" in w for w in result.warnings)

    def test_longer_cycle_detected(self):
        manifests = {
            "nomyx-b": make_manifest("nomyx-b", requires=["nomyx-c"]),
            "nomyx-c": make_manifest("nomyx-c", requires=["nomyx-a"]),
        }
        a = make_manifest("nomyx-a", requires=["nomyx-b"])
        result = ManifestValidator(naming_policy="off", lookup=manifests.get).validate(a)
        assert any("Dependency cycle" in w for w in result.warnings)

    def test_no_cycle_no_warning(self):
        b = make_manifest("nomyx-b")
        a = make_manifest("nomyx-a", requires=["nomyx-b"])
        result = ManifestValidator(naming_policy="off", lookup={"nomyx-b": b}.get).validate(a)
        assert result.warnings == []


# ============================================================================
# Standard apps
# ============================================================================

class TestStandardManifests:

    @pytest.mark.parametrize("data", STANDARD_MANIFESTS, ids=lambda d: d["id"])
    def test_standard_manifest_valid(self, data):
        result = ManifestValidator(naming_policy="error", platform_version="1.0.0").validate(
            AppManifest.from_dict(data)
        )
        assert result.errors == []
        assert result.warnings == []
