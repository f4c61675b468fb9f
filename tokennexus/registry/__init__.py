"""
Token Nexus app registry.

Manifest-driven registry of installable business apps:
- Manifest model and validation
- Three-tier configuration resolution
- Dependency ordering and cycle detection
- Runtime registry with activation states, routes and navigation
- Installation lifecycle over pluggable installation stores

Example:
    ```python
    from tokennexus.registry import (
        AppRegistry, InstallationManager, MemoryInstallationStore, standard_catalog,
    )

    manager = InstallationManager(
        AppRegistry(),
        standard_catalog(),
        MemoryInstallationStore(),
    )
    await manager.install("nomyx-wallet-management", actor_id="user-1", org_id="org-1")
    routes = manager.registry.get_all_app_routes()
    ```
"""

from .manifest import (
    AppDependency,
    AppManifest,
    AppRoute,
    BackendSurface,
    ConfigField,
    ConfigFieldType,
    ConfigOption,
    ConfigurationSpec,
    DependencySpec,
    Descriptor,
    FieldValidation,
    FrameworkSpec,
    NavigationItem,
    ScheduledJob,
    UISection,
    Webhook,
)
from .errors import (
    AppNotFoundError,
    ConfigValidationError,
    CycleError,
    DependencyCycleError,
    DuplicateAppError,
    InvalidOptionError,
    ManifestValidationError,
    MissingDependencyError,
    MissingRequiredConfigError,
    PersistenceError,
    RegistryError,
    ValidationReport,
)
from .validator import ManifestValidator, ValidationResult
from .config_resolver import ConfigResolver, ValueCheck, merge_layers
from .graph import DependencyResolver
from .backends import (
    Installation,
    InstallationStatus,
    InstallationStore,
    MemoryInstallationStore,
    RemoteInstallationStore,
    create_installation_store,
)
from .core import (
    ActivationState,
    AppRegistry,
    AppRouteEntry,
    NavigationEntry,
    RegisteredApp,
    RegistryOutcome,
)
from .sources import ManifestCatalog, RemoteManifestSource, SyncReport, load_manifest_file
from .catalog import STANDARD_CATEGORIES, STANDARD_MANIFESTS, standard_catalog
from .permissions import PermissionCheck, check_app_permissions, filter_routes
from .lifecycle import (
    CoreInstallReport,
    InstallationManager,
    LifecycleEvent,
    LifecyclePhase,
    LoadReport,
    UninstallReport,
)

__all__ = [
    # Manifest
    "AppManifest",
    "AppDependency",
    "AppRoute",
    "BackendSurface",
    "ConfigField",
    "ConfigFieldType",
    "ConfigOption",
    "ConfigurationSpec",
    "DependencySpec",
    "Descriptor",
    "FieldValidation",
    "FrameworkSpec",
    "NavigationItem",
    "ScheduledJob",
    "UISection",
    "Webhook",
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
    "ValidationReport",
    # Validation / resolution
    "ManifestValidator",
    "ValidationResult",
    "ConfigResolver",
    "ValueCheck",
    "merge_layers",
    "DependencyResolver",
    # Installations
    "Installation",
    "InstallationStatus",
    "InstallationStore",
    "MemoryInstallationStore",
    "RemoteInstallationStore",
    "create_installation_store",
    # Registry
    "AppRegistry",
    "RegisteredApp",
    "ActivationState",
    "RegistryOutcome",
    "AppRouteEntry",
    "NavigationEntry",
    # Sources
    "ManifestCatalog",
    "RemoteManifestSource",
    "SyncReport",
    "load_manifest_file",
    "STANDARD_CATEGORIES",
    "STANDARD_MANIFESTS",
    "standard_catalog",
    # Permissions
    "PermissionCheck",
    "check_app_permissions",
    "filter_routes",
    # Lifecycle
    "InstallationManager",
    "LifecycleEvent",
    "LifecyclePhase",
    "UninstallReport",
    "LoadReport",
    "CoreInstallReport",
]
