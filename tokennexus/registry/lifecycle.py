"""
Installation Lifecycle - orchestrates install and uninstall sequencing.

Install resolves everything that can fail locally (manifest lookup,
validation, dependency order, effective configuration for every app in the
order) before the first call to the installation store, then persists and
registers dependencies first. Configuration updates and upgrades follow the
same rule: the new configuration is checked before the store is called.
Uninstall reports live dependents as warnings and never blocks on them.

Operations on the same app id are serialized; different ids run
concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .backends import InstallationStatus, InstallationStore, create_installation_store
from .config_resolver import ConfigResolver, merge_layers
from .core import AppRegistry, RegisteredApp, RegistryOutcome
from .errors import AppNotFoundError, ManifestValidationError, RegistryError
from .graph import DependencyResolver
from .manifest import AppManifest
from .sources import ManifestCatalog

logger = logging.getLogger("tokennexus.lifecycle")

ComponentLoader = Callable[[str], Mapping[str, Any]]


class LifecyclePhase(Enum):
    """Lifecycle phases."""
    INSTALLING = "installing"
    INSTALLED = "installed"
    UNINSTALLING = "uninstalling"
    UNINSTALLED = "uninstalled"
    STATUS_CHANGED = "status_changed"
    UPDATED = "updated"
    LOADED = "loaded"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class LifecycleEvent:
    """Event emitted during lifecycle transitions."""
    phase: LifecyclePhase
    app_id: Optional[str] = None
    message: Optional[str] = None
    error: Optional[Exception] = None


@dataclass
class UninstallReport:
    app_id: str
    dependents: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    retained: bool = False


@dataclass
class LoadReport:
    loaded: List[str] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)


@dataclass
class CoreInstallReport:
    installed: List[str] = field(default_factory=list)
    already_installed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


class InstallationManager:
    """
    Coordinates installs and uninstalls across registry, catalog and store.

    Responsibilities:
    - Resolve install order and configuration before persisting anything
    - Install missing required dependencies first
    - Warn about dependents on uninstall
    - Keep registry state in step with the installation store
    - Emit lifecycle events
    """

    def __init__(
        self,
        registry: AppRegistry,
        catalog: ManifestCatalog,
        store: InstallationStore,
        *,
        resolver: Optional[DependencyResolver] = None,
        config_resolver: Optional[ConfigResolver] = None,
        component_loader: Optional[ComponentLoader] = None,
        include_optional: bool = False,
        retain_uninstalled: bool = False,
    ):
        self.registry = registry
        self.catalog = catalog
        self.store = store
        self.resolver = resolver or DependencyResolver(
            self._lookup,
            include_optional=include_optional,
            known_ids=catalog.get_all_manifest_ids,
        )
        self.config_resolver = config_resolver or ConfigResolver()
        self.component_loader = component_loader
        self.retain_uninstalled = retain_uninstalled
        self.event_handlers: List[Callable[[LifecycleEvent], None]] = []
        self._locks: Dict[str, asyncio.Lock] = {}

    @classmethod
    def from_config(
        cls,
        config: Any,
        catalog: ManifestCatalog,
        *,
        registry: Optional[AppRegistry] = None,
        store: Optional[InstallationStore] = None,
        component_loader: Optional[ComponentLoader] = None,
    ) -> "InstallationManager":
        """Build a manager (and, unless given, its registry and store) from ``NexusConfig``."""
        return cls(
            registry or AppRegistry.from_config(config),
            catalog,
            store or create_installation_store(config),
            component_loader=component_loader,
            include_optional=config.registry.install_optional_dependencies,
            retain_uninstalled=config.installations.retain_uninstalled,
        )

    def on_event(self, handler: Callable[[LifecycleEvent], None]):
        """
        Register event handler.

        Args:
            handler: Callable that receives LifecycleEvent
        """
        self.event_handlers.append(handler)

    def _emit_event(self, event: LifecycleEvent):
        """Emit lifecycle event to all handlers."""
        for handler in self.event_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error: {e}")

    def _lock_for(self, app_id: str) -> asyncio.Lock:
        lock = self._locks.get(app_id)
        if lock is None:
            lock = self._locks[app_id] = asyncio.Lock()
        return lock

    def _lookup(self, app_id: str) -> Optional[AppManifest]:
        manifest = self.catalog.get_manifest_by_id(app_id)
        if manifest is None:
            app = self.registry.get_app(app_id)
            if app is not None:
                return app.manifest
        return manifest

    def installed_app_ids(self) -> List[str]:
        return [app.app_id for app in self.registry.get_all_apps()]

    # ========================================================================
    # Install
    # ========================================================================

    async def install(
        self,
        app_id: str,
        actor_id: str,
        org_id: Optional[str] = None,
        config_overrides: Optional[Mapping[str, Any]] = None,
    ) -> RegisteredApp:
        """
        Install an app and any missing required dependencies.

        Installing an app that is already registered returns the existing
        entry.

        Raises:
            AppNotFoundError: no manifest for ``app_id``
            ManifestValidationError: a manifest in the install order is invalid
            MissingDependencyError / DependencyCycleError: dependency resolution failed
            ConfigValidationError: effective configuration is invalid
            PersistenceError: the installation store failed
        """
        async with self._lock_for(app_id):
            existing = self.registry.get_app(app_id)
            if existing is not None:
                logger.info(f"App '{app_id}' is already installed")
                return existing

            self._emit_event(LifecycleEvent(LifecyclePhase.INSTALLING, app_id))

            try:
                plan = self._plan_install(app_id, config_overrides)
                app = await self._execute_plan(plan, actor_id, org_id)
            except RegistryError as e:
                self._emit_event(LifecycleEvent(
                    LifecyclePhase.ERROR,
                    app_id,
                    message=f"Install of '{app_id}' failed",
                    error=e,
                ))
                logger.error(f"Install of '{app_id}' failed: {e}")
                raise

            self._emit_event(LifecycleEvent(LifecyclePhase.INSTALLED, app_id))
            return app

    def _plan_install(
        self,
        app_id: str,
        config_overrides: Optional[Mapping[str, Any]],
        target_defaults: Optional[Mapping[str, Any]] = None,
    ) -> List[Tuple[AppManifest, Dict[str, Any]]]:
        manifest = self.catalog.get_manifest_by_id(app_id)
        if manifest is None:
            raise AppNotFoundError(app_id)

        order = self.resolver.resolve_install_order(app_id, self.installed_app_ids())

        plan = []
        for step_id in order:
            step_manifest = manifest if step_id == app_id else self._lookup(step_id)

            result = self.registry.validator.validate(step_manifest)
            if not result.valid:
                raise ManifestValidationError(step_id, result.errors)

            is_target = step_id == app_id
            config = self.config_resolver.resolve_for_manifest(
                step_manifest,
                config_overrides if is_target else None,
                defaults=target_defaults if is_target else None,
            )
            plan.append((step_manifest, config))

        logger.debug(f"Install plan for '{app_id}': {order}")
        return plan

    async def _execute_plan(
        self,
        plan: List[Tuple[AppManifest, Dict[str, Any]]],
        actor_id: str,
        org_id: Optional[str],
    ) -> RegisteredApp:
        *dependencies, (target, target_config) = plan
        await self._install_dependencies(dependencies, target.id, actor_id, org_id)
        return await self._persist_and_register(target, target_config, actor_id, org_id)

    async def _install_dependencies(
        self,
        dependencies: List[Tuple[AppManifest, Dict[str, Any]]],
        target_id: str,
        actor_id: str,
        org_id: Optional[str],
    ) -> None:
        # Dependency graphs are acyclic, so nested lock acquisition cannot deadlock.
        for manifest, config in dependencies:
            async with self._lock_for(manifest.id):
                if manifest.id in self.registry:
                    continue
                self._emit_event(LifecycleEvent(
                    LifecyclePhase.INSTALLING,
                    manifest.id,
                    message=f"Dependency of '{target_id}'",
                ))
                await self._persist_and_register(manifest, config, actor_id, org_id)
                self._emit_event(LifecycleEvent(LifecyclePhase.INSTALLED, manifest.id))

    async def _persist_and_register(
        self,
        manifest: AppManifest,
        config: Dict[str, Any],
        actor_id: str,
        org_id: Optional[str],
    ) -> RegisteredApp:
        installation = await self.store.create_installation(
            manifest.id,
            org_id,
            config,
            version=manifest.version,
            actor_id=actor_id,
        )
        app = self.registry.register_app(manifest, installation, self._load_components(manifest.id))
        logger.info(
            f"Installed '{manifest.id}' v{manifest.version} "
            f"(org={org_id}, installation={installation.id}, by={actor_id})"
        )
        return app

    def _load_components(self, app_id: str) -> Optional[Mapping[str, Any]]:
        if self.component_loader is None:
            return None
        return self.component_loader(app_id)

    # ========================================================================
    # Uninstall / activation
    # ========================================================================

    async def uninstall(
        self,
        app_id: str,
        actor_id: str,
        org_id: Optional[str] = None,
    ) -> UninstallReport:
        """
        Uninstall an app.

        Installed apps that require it are reported as warnings; the
        uninstall still proceeds.

        Raises:
            AppNotFoundError: the app is not installed
            PersistenceError: the installation store failed (app stays registered)
        """
        async with self._lock_for(app_id):
            app = self.registry.get_app(app_id)
            if app is None:
                raise AppNotFoundError(app_id, where="registry")

            self._emit_event(LifecycleEvent(LifecyclePhase.UNINSTALLING, app_id))
            report = UninstallReport(app_id=app_id, retained=self.retain_uninstalled)

            report.dependents = self.resolver.find_dependents(app_id, self.installed_app_ids())
            if report.dependents:
                warning = (
                    f"App '{app_id}' is required by installed apps: "
                    f"{', '.join(report.dependents)}"
                )
                report.warnings.append(warning)
                logger.warning(warning)
                self._emit_event(LifecycleEvent(LifecyclePhase.WARNING, app_id, message=warning))

            if self.retain_uninstalled:
                await self.store.update_installation_status(
                    app.installation.id, InstallationStatus.UNINSTALLED
                )
            else:
                await self.store.delete_installation(app.installation.id)

            self.registry.unregister_app(app_id)

        logger.info(f"Uninstalled '{app_id}' (org={org_id}, by={actor_id})")
        self._emit_event(LifecycleEvent(LifecyclePhase.UNINSTALLED, app_id))
        return report

    async def set_active(self, app_id: str, is_active: bool) -> RegistryOutcome:
        """Persist the installation status, then toggle the registry entry."""
        async with self._lock_for(app_id):
            app = self.registry.get_app(app_id)
            if app is None or app.is_active == is_active:
                return self.registry.update_app_status(app_id, is_active)

            status = InstallationStatus.ACTIVE if is_active else InstallationStatus.SUSPENDED
            await self.store.update_installation_status(app.installation.id, status)
            outcome = self.registry.update_app_status(app_id, is_active)

        self._emit_event(LifecycleEvent(
            LifecyclePhase.STATUS_CHANGED,
            app_id,
            message=status.value,
        ))
        return outcome

    # ========================================================================
    # Updates
    # ========================================================================

    async def update_configuration(
        self,
        app_id: str,
        overrides: Mapping[str, Any],
        actor_id: Optional[str] = None,
    ) -> RegisteredApp:
        """
        Reconfigure an installed app.

        ``overrides`` are layered over the installation's stored
        configuration and checked against the manifest schema before the
        store is called.

        Raises:
            AppNotFoundError: the app is not installed
            ConfigValidationError: the new configuration is invalid (nothing persisted)
            PersistenceError: the installation store failed (registry unchanged)
        """
        async with self._lock_for(app_id):
            app = self.registry.get_app(app_id)
            if app is None:
                raise AppNotFoundError(app_id, where="registry")

            try:
                config = self.config_resolver.resolve_for_manifest(
                    app.manifest,
                    overrides,
                    defaults=app.installation.app_specific_config,
                )
                installation = await self.store.update_installation_config(app.installation, config)
            except RegistryError as e:
                self._update_failed(app_id, "Configuration update", e)
                raise

            self.registry.update_app_installation(app_id, installation)
            updated = self.registry.get_app(app_id)

        logger.info(f"Updated configuration of '{app_id}' (by={actor_id})")
        self._emit_event(LifecycleEvent(
            LifecyclePhase.UPDATED,
            app_id,
            message="configuration",
        ))
        return updated

    async def upgrade(
        self,
        app_id: str,
        actor_id: str,
        config_overrides: Optional[Mapping[str, Any]] = None,
    ) -> RegisteredApp:
        """
        Move an installed app to the manifest version currently in the catalog.

        The stored configuration is carried over: fields new in the catalog
        version get their defaults and every value is checked against the
        new schema. Required dependencies the new version adds are installed
        first. An app already on the catalog version is returned unchanged.

        Raises:
            AppNotFoundError: the app is not installed, or the catalog has no manifest
            ManifestValidationError / MissingDependencyError / DependencyCycleError
            ConfigValidationError: carried over configuration is invalid
            PersistenceError: the installation store failed
        """
        async with self._lock_for(app_id):
            app = self.registry.get_app(app_id)
            if app is None:
                raise AppNotFoundError(app_id, where="registry")

            manifest = self.catalog.get_manifest_by_id(app_id)
            if manifest is None:
                raise AppNotFoundError(app_id)

            current_version = app.installation.installed_version or app.manifest.version
            if manifest.version == current_version:
                logger.info(f"App '{app_id}' is already on version {current_version}")
                return app

            try:
                plan = self._plan_install(
                    app_id,
                    config_overrides,
                    target_defaults=merge_layers(
                        manifest.config_defaults(),
                        app.installation.app_specific_config,
                    ),
                )
                *dependencies, (_, config) = plan
                await self._install_dependencies(
                    dependencies, app_id, actor_id, app.installation.organization_id
                )

                installation = await self.store.update_installation_version(
                    app.installation, manifest.version
                )
                if config != installation.app_specific_config:
                    installation = await self.store.update_installation_config(installation, config)
                self.registry.update_app_installation(app_id, installation, manifest)
            except RegistryError as e:
                self._update_failed(app_id, "Upgrade", e)
                raise

            updated = self.registry.get_app(app_id)

        logger.info(f"Upgraded '{app_id}' from v{current_version} to v{manifest.version} (by={actor_id})")
        self._emit_event(LifecycleEvent(
            LifecyclePhase.UPDATED,
            app_id,
            message=f"{current_version} -> {manifest.version}",
        ))
        return updated

    def _update_failed(self, app_id: str, what: str, error: RegistryError) -> None:
        self._emit_event(LifecycleEvent(
            LifecyclePhase.ERROR,
            app_id,
            message=f"{what} of '{app_id}' failed",
            error=error,
        ))
        logger.error(f"{what} of '{app_id}' failed: {error}")

    # ========================================================================
    # Batch operations
    # ========================================================================

    async def load_apps_for_organization(self, org_id: Optional[str]) -> LoadReport:
        """
        Register every stored installation of an organization.

        Uninstalled records are ignored. Installations whose manifest is
        unknown or invalid are reported in ``skipped``.
        """
        report = LoadReport()
        installations = await self.store.fetch_installations(org_id)

        for installation in installations:
            app_id = installation.app_id
            if installation.status == InstallationStatus.UNINSTALLED:
                continue

            manifest = self.catalog.get_manifest_by_id(app_id)
            if manifest is None:
                reason = "no manifest in catalog"
                logger.warning(f"Skipping installation of '{app_id}': {reason}")
                report.skipped[app_id] = reason
                continue

            try:
                self.registry.register_app(manifest, installation, self._load_components(app_id))
            except ManifestValidationError as e:
                logger.error(f"Skipping installation of '{app_id}': {e.message}")
                report.skipped[app_id] = e.message
                continue

            report.loaded.append(app_id)

        logger.info(
            f"Loaded {len(report.loaded)} apps for organization {org_id} "
            f"({len(report.skipped)} skipped)"
        )
        self._emit_event(LifecycleEvent(
            LifecyclePhase.LOADED,
            message=f"organization={org_id} loaded={len(report.loaded)}",
        ))
        return report

    async def install_core_apps(
        self,
        actor_id: str,
        org_id: Optional[str] = None,
        *,
        category: str = "core",
    ) -> CoreInstallReport:
        """
        Install every app of a catalog category.

        A failing app is recorded in ``failed`` and the batch continues.
        """
        report = CoreInstallReport()

        for manifest in self.catalog.by_category(category):
            if manifest.id in self.registry:
                report.already_installed.append(manifest.id)
                continue
            try:
                await self.install(manifest.id, actor_id, org_id)
            except RegistryError as e:
                report.failed[manifest.id] = e.message
                continue
            report.installed.append(manifest.id)

        logger.info(
            f"Category '{category}': {len(report.installed)} installed, "
            f"{len(report.already_installed)} already present, {len(report.failed)} failed"
        )
        return report
