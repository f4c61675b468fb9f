"""
Token Nexus faults - core types.

A fault is an exception that also carries a stable code, the area of the
system it came from and whether retrying the operation can help.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    """Logging level a fault is reported at."""
    WARN = "warn"
    ERROR = "error"


class FaultDomain(str, Enum):
    """Area of the registry a fault belongs to."""
    CONFIG = "config"
    REGISTRY = "registry"
    DEPENDENCY = "dependency"
    IO = "io"


# Store and network failures are transient; everything else needs a fix
# to the manifest, the catalog or the caller's input.
DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: (Severity.ERROR, False),
    FaultDomain.REGISTRY: (Severity.ERROR, False),
    FaultDomain.DEPENDENCY: (Severity.ERROR, False),
    FaultDomain.IO: (Severity.WARN, True),
}


class Fault(Exception):
    """
    Base fault.

    ``code``, ``message`` and ``domain`` may be passed in or declared as
    class attributes by subclasses; severity and retryability default from
    the domain.

    Example:
        ```python
        raise Fault(
            code="APP_NOT_FOUND",
            message="No manifest for 'nomyx-wallet-management'",
            domain=FaultDomain.REGISTRY,
        )
        ```
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code or getattr(self, "code", None)
        self.message = message or getattr(self, "message", None)
        domain = domain or getattr(self, "domain", None)

        if not (self.code and self.message and domain):
            raise TypeError(f"{self.__class__.__name__} needs a code, a message and a domain")

        super().__init__(self.message)

        self.domain = FaultDomain(domain)
        default_severity, default_retryable = DOMAIN_DEFAULTS[self.domain]
        self.severity = severity or default_severity
        self.retryable = default_retryable if retryable is None else retryable
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, domain={self.domain.value})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "metadata": self.metadata,
        }
