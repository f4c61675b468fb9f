"""
Faults (faults/core.py) and registry errors (registry/errors.py).
"""

import pytest

from tokennexus.faults import Fault, FaultDomain, Severity
from tokennexus.registry import (
    AppNotFoundError,
    ConfigValidationError,
    DependencyCycleError,
    InvalidOptionError,
    ManifestValidationError,
    MissingDependencyError,
    MissingRequiredConfigError,
    PersistenceError,
    RegistryError,
    ValidationReport,
)


# ============================================================================
# Fault base
# ============================================================================

class TestFault:

    def test_basic_fault(self):
        fault = Fault(code="X", message="broken", domain=FaultDomain.REGISTRY)
        assert fault.code == "X"
        assert fault.severity is Severity.ERROR
        assert fault.retryable is False
        assert str(fault) == "[X] broken"

    def test_missing_required_raises(self):
        with pytest.raises(TypeError):
            Fault(message="no code", domain=FaultDomain.REGISTRY)

    def test_to_dict(self):
        fault = Fault(code="X", message="m", domain=FaultDomain.IO, metadata={"k": 1})
        assert fault.to_dict() == {
            "code": "X",
            "message": "m",
            "domain": "io",
            "severity": "warn",
            "retryable": True,
            "metadata": {"k": 1},
        }

    def test_domain_equality(self):
        assert FaultDomain.CONFIG == FaultDomain("config")
        assert FaultDomain.CONFIG == "config"
        assert len({FaultDomain.CONFIG, FaultDomain("config")}) == 1

    def test_domain_given_as_string(self):
        fault = Fault(code="X", message="m", domain="io")
        assert fault.domain is FaultDomain.IO
        assert fault.retryable is True

    def test_unknown_domain_rejected(self):
        with pytest.raises(ValueError):
            Fault(code="X", message="m", domain="telemetry")

    def test_explicit_retryable_wins(self):
        assert Fault(code="X", message="m", domain=FaultDomain.IO, retryable=False).retryable is False


# ============================================================================
# Registry errors
# ============================================================================

class TestRegistryErrors:

    def test_hierarchy(self):
        assert issubclass(RegistryError, Fault)
        assert issubclass(MissingRequiredConfigError, ConfigValidationError)
        assert issubclass(InvalidOptionError, ConfigValidationError)

    def test_domains(self):
        assert AppNotFoundError("a").domain == FaultDomain.REGISTRY
        assert MissingDependencyError("a", "b").domain == FaultDomain.DEPENDENCY
        assert ConfigValidationError("f", "bad").domain == FaultDomain.CONFIG
        assert PersistenceError("op", "down").retryable is True

    def test_codes(self):
        assert DependencyCycleError(["a", "b"]).code == "DEPENDENCY_CYCLE"
        assert MissingRequiredConfigError("f").code == "CONFIG_MISSING"
        assert InvalidOptionError("f", "bad").code == "CONFIG_INVALID_OPTION"

    def test_format_error(self):
        error = MissingDependencyError("wallet", "identity")
        text = error.format_error()
        assert text.startswith("MissingDependencyError: App 'wallet' requires 'identity'")
        assert "missing_dependency: identity" in text
        assert "Suggestion:" in text

    def test_manifest_validation_error(self):
        error = ManifestValidationError("a", ["App name is required"])
        assert "App name is required" in error.message
        assert error.details["errors"] == ["App name is required"]

    def test_config_error_message(self):
        error = ConfigValidationError("kycTier", "not allowed", value="x", app_id="kyc")
        assert error.message == "App 'kyc': configuration field 'kycTier' is invalid: not allowed"


# ============================================================================
# Validation report
# ============================================================================

class TestValidationReport:

    def test_single_error(self):
        report = ValidationReport()
        error = AppNotFoundError("a")
        report.add_error(error)
        assert report.has_errors()
        assert report.to_exception() is error

    def test_multiple_errors(self):
        report = ValidationReport()
        report.add_error(AppNotFoundError("a"))
        report.add_error(AppNotFoundError("b"))
        report.add_warning("careful")
        exc = report.to_exception()
        assert "Multiple validation errors (2)" in exc.message
        assert report.to_dict()["warning_count"] == 1

    def test_empty_report(self):
        with pytest.raises(ValueError):
            ValidationReport().to_exception()
