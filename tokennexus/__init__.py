"""
Token Nexus - app manifest resolution and registry for the Nomyx platform.

Validates app manifests, resolves inter-app dependencies and layered
configuration, and keeps the runtime registry of installed apps with their
routes, navigation and components.
"""

__version__ = "1.0.0"

from .config import ConfigError, ConfigLoader, NexusConfig
from .faults import Fault, FaultDomain, Severity
from .registry import (
    AppManifest,
    AppNotFoundError,
    AppRegistry,
    ConfigResolver,
    ConfigValidationError,
    CycleError,
    DependencyCycleError,
    DependencyResolver,
    DuplicateAppError,
    Installation,
    InstallationManager,
    InstallationStatus,
    InstallationStore,
    InvalidOptionError,
    ManifestCatalog,
    ManifestValidationError,
    ManifestValidator,
    MemoryInstallationStore,
    MissingDependencyError,
    MissingRequiredConfigError,
    PersistenceError,
    RegisteredApp,
    RegistryError,
    RegistryOutcome,
    RemoteInstallationStore,
    create_installation_store,
    standard_catalog,
)
from .theming import ThemeResolver

__all__ = [
    "__version__",
    # Config
    "ConfigLoader",
    "ConfigError",
    "NexusConfig",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    # Registry
    "AppManifest",
    "AppRegistry",
    "RegisteredApp",
    "RegistryOutcome",
    "ManifestValidator",
    "ManifestCatalog",
    "ConfigResolver",
    "DependencyResolver",
    "InstallationManager",
    "Installation",
    "InstallationStatus",
    "InstallationStore",
    "MemoryInstallationStore",
    "RemoteInstallationStore",
    "create_installation_store",
    "standard_catalog",
    # Errors
    "RegistryError",
    "ManifestValidationError",
    "DuplicateAppError",
    "AppNotFoundError",
    "MissingDependencyError",
    "DependencyCycleError",
    "CycleError",
    "ConfigValidationError",
    "MissingRequiredConfigError",
    "InvalidOptionError",
    "PersistenceError",
    # Theming
    "ThemeResolver",
]
