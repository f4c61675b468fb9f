"""
Token Nexus faults.

Errors are typed fault signals: every failure raised by the registry, the
configuration resolver or an installation backend is a ``Fault`` carrying a
stable code, a domain and the metadata an operator needs to act on it.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
]
