"""
Registry error types with rich diagnostics.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from ..faults import Fault, FaultDomain, Severity


class RegistryError(Fault):
    """Base error for all app registry errors."""

    code = "REGISTRY_ERROR"
    domain = FaultDomain.REGISTRY

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        domain: Optional[FaultDomain] = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=domain,
            severity=severity,
            retryable=retryable,
            metadata=details,
        )
        self.suggestion = suggestion
        self.details = self.metadata

    def format_error(self) -> str:
        """Format error with diagnostics."""
        lines = [f"{self.__class__.__name__}: {self.message}"]

        if self.details:
            lines.append("\n   Details:")
            for key, value in self.details.items():
                lines.append(f"   - {key}: {value}")

        if self.suggestion:
            lines.append(f"\n   Suggestion: {self.suggestion}")

        return "\n".join(lines)


class ManifestValidationError(RegistryError):
    """
    Manifest structure is invalid.

    Missing required fields, UI enabled without routes, etc.
    """

    code = "MANIFEST_INVALID"

    def __init__(self, manifest_id: str, validation_errors: List[str]):
        self.manifest_id = manifest_id
        self.validation_errors = list(validation_errors)

        error_list = "\n".join(f"   - {e}" for e in validation_errors)
        super().__init__(
            f"Manifest '{manifest_id or '<unnamed>'}' validation failed:\n{error_list}",
            suggestion=(
                "Ensure the manifest declares id, name, version, publisher and "
                "framework.version, and that every enabled UI has routes."
            ),
            details={"manifest": manifest_id, "errors": self.validation_errors},
        )


class DuplicateAppError(RegistryError):
    """Two manifests declare the same app id."""

    code = "DUPLICATE_APP"

    def __init__(self, app_id: str):
        self.app_id = app_id
        super().__init__(
            f"Duplicate app id '{app_id}': a manifest with this id is already in the catalog",
            suggestion="Each app must have a unique id. Remove the existing manifest first.",
            details={"app_id": app_id},
        )


class AppNotFoundError(RegistryError):
    """Referenced app id has no known manifest or registry entry."""

    code = "APP_NOT_FOUND"

    def __init__(self, app_id: str, *, where: str = "catalog"):
        self.app_id = app_id
        super().__init__(
            f"App '{app_id}' not found in {where}",
            details={"app_id": app_id, "where": where},
        )


class MissingDependencyError(RegistryError):
    """
    A required dependency has no manifest available.

    Example:
        nomyx-wallet-management requires nomyx-identity-management
        but the catalog has no such manifest  <- MISSING
    """

    code = "MISSING_DEPENDENCY"
    domain = FaultDomain.DEPENDENCY

    def __init__(self, app_id: str, missing: str):
        self.app_id = app_id
        self.missing = missing
        super().__init__(
            f"App '{app_id}' requires '{missing}', which is not available",
            suggestion=(
                f"Add the '{missing}' manifest to the catalog, or mark the "
                f"dependency as optional in '{app_id}'."
            ),
            details={"app_id": app_id, "missing_dependency": missing},
        )


class DependencyCycleError(RegistryError):
    """
    Circular dependency detected in the app dependency graph.

    Example:
        app_a depends on app_b
        app_b depends on app_a  <- CYCLE
    """

    code = "DEPENDENCY_CYCLE"
    domain = FaultDomain.DEPENDENCY

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        cycle_repr = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(
            f"Circular dependency detected: {cycle_repr}",
            suggestion=(
                "Break the cycle by removing one dependency or marking it optional."
            ),
            details={"cycle": self.cycle, "cycle_length": len(self.cycle)},
        )


CycleError = DependencyCycleError


class ConfigValidationError(RegistryError):
    """An effective configuration value breaks its field rules."""

    code = "CONFIG_INVALID"
    domain = FaultDomain.CONFIG

    def __init__(
        self,
        field_name: str,
        reason: str,
        *,
        value: Any = None,
        app_id: Optional[str] = None,
    ):
        self.field_name = field_name
        self.reason = reason
        self.value = value
        self.app_id = app_id
        prefix = f"App '{app_id}': " if app_id else ""
        super().__init__(
            f"{prefix}configuration field '{field_name}' is invalid: {reason}",
            details={"field": field_name, "reason": reason, "value": value, "app_id": app_id},
        )


class MissingRequiredConfigError(ConfigValidationError):
    """A required field has no override, default or schema default."""

    code = "CONFIG_MISSING"

    def __init__(self, field_name: str, *, app_id: Optional[str] = None):
        super().__init__(
            field_name,
            "required field has no value at any tier",
            app_id=app_id,
        )


class InvalidOptionError(ConfigValidationError):
    """A select/multiselect value is not one of the declared options."""

    code = "CONFIG_INVALID_OPTION"


class PersistenceError(RegistryError):
    """An installation store call failed."""

    code = "PERSISTENCE_FAILED"
    domain = FaultDomain.IO

    def __init__(self, operation: str, reason: str, *, app_id: Optional[str] = None):
        self.operation = operation
        self.reason = reason
        self.app_id = app_id
        target = f" for app '{app_id}'" if app_id else ""
        super().__init__(
            f"Installation store '{operation}' failed{target}: {reason}",
            details={"operation": operation, "reason": reason, "app_id": app_id},
        )


@dataclass
class ValidationReport:
    """
    Aggregated validation report.

    Collects every error and warning before the caller decides to fail.
    """

    errors: List[RegistryError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: RegistryError) -> None:
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "errors": [
                {
                    "type": e.__class__.__name__,
                    "code": e.code,
                    "message": e.message,
                    "details": e.details,
                }
                for e in self.errors
            ],
            "warnings": self.warnings,
        }

    def to_exception(self) -> RegistryError:
        """Convert report to exception."""
        if not self.errors:
            raise ValueError("Cannot convert empty report to exception")

        if len(self.errors) == 1:
            return self.errors[0]

        error_summary = "\n".join(
            f"   {i + 1}. {e.message}" for i, e in enumerate(self.errors)
        )
        return RegistryError(
            f"Multiple validation errors ({len(self.errors)}):\n{error_summary}",
            suggestion="Fix all errors and retry.",
            details=self.to_dict(),
        )
