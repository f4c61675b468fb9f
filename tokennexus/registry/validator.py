"""
Manifest validator.

Structural completeness and cross-field consistency checks. Validation never
raises: every problem is collected into a ``ValidationResult`` and the caller
decides whether to reject the manifest.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .config_resolver import ConfigResolver
from .graph import DependencyResolver
from .manifest import AppManifest, ConfigFieldType, FieldValidation

NAMING_POLICIES = ("warn", "error", "off")

_SEMVER = re.compile(
    r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)


@dataclass
class ValidationResult:
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class ManifestValidator:
    """
    Validates app manifests.

    Checks:
    - Required identity fields and framework version
    - UI sections and their routes
    - Configuration schema (options, defaults, field types)
    - Named scheduled jobs, triggers and apis
    - Naming convention for standard apps
    - Platform compatibility
    - Dependency hints (self-dependency, reachable cycles)

    Args:
        standard_prefix: id prefix reserved for standard apps
        naming_policy: ``warn``, ``error`` or ``off`` for ids lacking the prefix
        platform_version: running platform version, checked against
            ``framework.compatibility``
        lookup: app id -> manifest, enables the cycle hint
    """

    def __init__(
        self,
        *,
        standard_prefix: str = "nomyx-",
        naming_policy: str = "warn",
        platform_version: Optional[str] = None,
        lookup: Optional[Callable[[str], Optional[AppManifest]]] = None,
    ):
        if naming_policy not in NAMING_POLICIES:
            raise ValueError(
                f"naming_policy must be one of {NAMING_POLICIES}, got {naming_policy!r}"
            )
        self.standard_prefix = standard_prefix
        self.naming_policy = naming_policy
        self.platform_version = platform_version
        self._lookup = lookup
        self._config_resolver = ConfigResolver()

    def validate(self, manifest: AppManifest) -> ValidationResult:
        """Validate one manifest. Always returns a result, never raises."""
        result = ValidationResult()

        self._check_required(manifest, result)
        self._check_ui(manifest, result)
        self._check_configuration(manifest, result)
        self._check_descriptors(manifest, result)
        self._check_version(manifest, result)
        self._check_naming(manifest, result)
        self._check_compatibility(manifest, result)
        self._check_dependencies(manifest, result)

        result.valid = not result.errors
        return result

    def _check_required(self, manifest: AppManifest, result: ValidationResult) -> None:
        if not manifest.id:
            result.errors.append("App ID is required")
        if not manifest.name:
            result.errors.append("App name is required")
        if not manifest.version:
            result.errors.append("App version is required")
        if not manifest.publisher:
            result.errors.append("App publisher is required")
        if not manifest.framework or not manifest.framework.version:
            result.errors.append("Framework version is required")

    def _check_ui(self, manifest: AppManifest, result: ValidationResult) -> None:
        admin_enabled = manifest.admin_ui is not None and manifest.admin_ui.enabled
        user_enabled = manifest.user_ui is not None and manifest.user_ui.enabled

        if not admin_enabled and not user_enabled:
            result.errors.append("At least one UI type (admin or user) must be enabled")

        if admin_enabled and not manifest.admin_ui.routes:
            result.errors.append("Admin UI is enabled but no routes are defined")

        if user_enabled and not manifest.user_ui.routes:
            result.errors.append("User UI is enabled but no routes are defined")

        for ui_name, section in (("Admin", manifest.admin_ui), ("User", manifest.user_ui)):
            if section is None:
                continue
            for item in section.navigation:
                if item.order is not None and (
                    isinstance(item.order, bool) or not isinstance(item.order, int)
                ):
                    result.errors.append(
                        f"{ui_name} navigation item '{item.label}' has non-integer order {item.order!r}"
                    )

    def _check_configuration(self, manifest: AppManifest, result: ValidationResult) -> None:
        for name, config_field in manifest.config_schema().items():
            field_type = config_field.field_type

            if field_type is None:
                result.errors.append(
                    f"Configuration field '{name}' has unknown type '{config_field.type}'"
                )
                continue

            if field_type in (ConfigFieldType.SELECT, ConfigFieldType.MULTISELECT):
                if not config_field.options:
                    result.errors.append(
                        f"Configuration field '{name}' is {field_type.value} but declares no options"
                    )
                    continue

            if not self._check_rules(name, config_field.validation, result):
                continue

            if config_field.default_value is not None:
                check = self._config_resolver.validate_value(config_field, config_field.default_value)
                if not check.valid:
                    result.errors.append(
                        f"Configuration field '{name}' default value is invalid: {check.error}"
                    )

        for name in manifest.config_defaults():
            if name not in manifest.config_schema():
                result.warnings.append(
                    f"Default value '{name}' is not declared in the configuration schema"
                )

    def _check_rules(
        self,
        name: str,
        rules: Optional[FieldValidation],
        result: ValidationResult,
    ) -> bool:
        if rules is None:
            return True

        ok = True
        for bound in ("min", "max"):
            value = getattr(rules, bound)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                result.errors.append(
                    f"Configuration field '{name}' has non-numeric {bound} {value!r}"
                )
                ok = False

        if rules.pattern is not None:
            try:
                re.compile(rules.pattern)
            except (re.error, TypeError) as exc:
                result.errors.append(
                    f"Configuration field '{name}' has invalid pattern {rules.pattern!r}: {exc}"
                )
                ok = False

        return ok

    def _check_descriptors(self, manifest: AppManifest, result: ValidationResult) -> None:
        for i, job in enumerate(manifest.scheduled_jobs):
            if not job.id:
                result.errors.append(f"scheduledJobs[{i}] must have an id")

        for kind, entries in (("triggers", manifest.triggers), ("apis", manifest.apis)):
            for i, entry in enumerate(entries):
                if not entry.name:
                    result.errors.append(f"{kind}[{i}] must have a name")

    def _check_version(self, manifest: AppManifest, result: ValidationResult) -> None:
        if manifest.version and not _SEMVER.match(str(manifest.version)):
            result.warnings.append(
                f"App '{manifest.id}': version '{manifest.version}' is not valid semver (expected X.Y.Z)"
            )

    def _check_naming(self, manifest: AppManifest, result: ValidationResult) -> None:
        if self.naming_policy == "off" or not manifest.id:
            return
        if manifest.id.startswith(self.standard_prefix):
            return

        message = f"App ID '{manifest.id}' does not start with '{self.standard_prefix}'"
        if self.naming_policy == "error":
            result.errors.append(message)
        else:
            result.warnings.append(message)

    def _check_compatibility(self, manifest: AppManifest, result: ValidationResult) -> None:
        framework = manifest.framework
        if not self.platform_version or not framework or not framework.compatibility:
            return
        if self.platform_version not in framework.compatibility:
            result.warnings.append(
                f"App '{manifest.id}' does not list platform version "
                f"'{self.platform_version}' as compatible "
                f"({', '.join(str(v) for v in framework.compatibility)})"
            )

    def _check_dependencies(self, manifest: AppManifest, result: ValidationResult) -> None:
        for dep in manifest.dependency_entries():
            if not dep.app_id:
                result.errors.append("Dependency entries must name an appId")
            elif dep.app_id == manifest.id:
                result.errors.append(f"App '{manifest.id}' cannot depend on itself")

        if self._lookup is None or not manifest.id or result.errors:
            return

        def lookup(app_id: str) -> Optional[AppManifest]:
            if app_id == manifest.id:
                return manifest
            return self._lookup(app_id)

        cycle = DependencyResolver(lookup).find_cycle([manifest.id])
        if cycle:
            result.warnings.append(
                f"Dependency cycle reachable from '{manifest.id}': "
                + " -> ".join(cycle + cycle[:1])
            )
