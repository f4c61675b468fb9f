"""
Core registry types and the runtime app registry.
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .backends import Installation, InstallationStatus
from .errors import AppNotFoundError, ManifestValidationError
from .manifest import AppManifest, AppRoute
from .validator import ManifestValidator

logger = logging.getLogger("tokennexus.registry")

DEFAULT_NAV_ORDER = 999


class ActivationState(str, Enum):
    """Per-app registry states."""
    UNREGISTERED = "unregistered"
    INACTIVE = "registered-inactive"
    ACTIVE = "registered-active"


class RegistryOutcome(str, Enum):
    """Result of a registry mutation that may not apply."""
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    QUEUED = "queued"


@dataclass(frozen=True)
class RegisteredApp:
    """
    Runtime entry of a registered app.

    Entries are never mutated in place: every change builds a new value and
    swaps it into the registry map.
    """

    manifest: AppManifest
    installation: Installation
    components: Mapping[str, Any] = field(default_factory=dict)
    is_active: bool = False

    @property
    def app_id(self) -> str:
        return self.manifest.id

    @property
    def state(self) -> ActivationState:
        return ActivationState.ACTIVE if self.is_active else ActivationState.INACTIVE


@dataclass(frozen=True)
class AppRouteEntry:
    """Route tagged with its owning app and UI type."""

    app_id: str
    ui: str
    route: AppRoute

    @property
    def path(self) -> str:
        return self.route.path

    @property
    def permissions(self) -> List[str]:
        return self.route.permissions


@dataclass(frozen=True)
class NavigationEntry:
    """Navigation item tagged with its owning app and UI type."""

    app_id: str
    ui: str
    label: str
    path: str
    order: int = DEFAULT_NAV_ORDER
    icon: Optional[str] = None
    permissions: List[str] = field(default_factory=list)


class AppRegistry:
    """
    In-memory registry of installed apps.

    Holds manifest, installation, components and activation state per app.
    Writers serialize on a lock and replace the whole app map; readers use
    whichever map reference is current and never see a half-built entry.

    Args:
        validator: validator applied on registration
        strict: raise ``AppNotFoundError`` instead of returning
            ``RegistryOutcome.NOT_FOUND``
    """

    def __init__(
        self,
        validator: Optional[ManifestValidator] = None,
        *,
        strict: bool = False,
    ):
        self.validator = validator or ManifestValidator()
        self.strict = strict
        self._apps: Dict[str, RegisteredApp] = {}
        self._pending_components: Dict[str, Dict[str, Any]] = {}
        self._write_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Any) -> "AppRegistry":
        """Build a registry from ``NexusConfig``."""
        validator = ManifestValidator(
            standard_prefix=config.registry.standard_app_prefix,
            naming_policy=config.registry.naming_policy,
            platform_version=config.platform.version,
        )
        return cls(validator, strict=config.registry.strict)

    # ========================================================================
    # Mutations
    # ========================================================================

    def register_app(
        self,
        manifest: AppManifest,
        installation: Installation,
        components: Optional[Mapping[str, Any]] = None,
    ) -> RegisteredApp:
        """
        Register (or re-register) an app.

        The app is active iff the installation status is ``active``.
        Re-registering replaces the previous entry. Components queued with
        ``add_component_to_app`` before registration are attached.

        Raises:
            ManifestValidationError: manifest fails validation
        """
        result = self.validator.validate(manifest)
        if not result.valid:
            raise ManifestValidationError(manifest.id, result.errors)
        for warning in result.warnings:
            logger.warning(warning)

        with self._write_lock:
            pending = self._pending_components.pop(manifest.id, {})
            app = RegisteredApp(
                manifest=manifest,
                installation=installation,
                components={**pending, **(components or {})},
                is_active=installation.status == InstallationStatus.ACTIVE,
            )
            apps = dict(self._apps)
            replaced = manifest.id in apps
            apps[manifest.id] = app
            self._apps = apps

        logger.info(
            f"{'Re-registered' if replaced else 'Registered'} app '{manifest.id}' "
            f"v{manifest.version} ({app.state.value})"
        )
        return app

    def unregister_app(self, app_id: str) -> bool:
        """Remove an app. Returns False when it was not registered."""
        with self._write_lock:
            if app_id not in self._apps:
                removed = False
            else:
                apps = dict(self._apps)
                del apps[app_id]
                self._apps = apps
                removed = True

        if not removed:
            self._not_found(app_id, "unregister_app")
            return False

        logger.info(f"Unregistered app '{app_id}'")
        return True

    def update_app_status(self, app_id: str, is_active: bool) -> RegistryOutcome:
        """
        Toggle an app between active and inactive.

        The installation status follows (``active``/``suspended``).
        """
        with self._write_lock:
            current = self._apps.get(app_id)
            if current is not None and current.is_active != is_active:
                status = InstallationStatus.ACTIVE if is_active else InstallationStatus.SUSPENDED
                apps = dict(self._apps)
                apps[app_id] = dataclasses.replace(
                    current,
                    is_active=is_active,
                    installation=dataclasses.replace(current.installation, status=status),
                )
                self._apps = apps

        if current is None:
            return self._not_found(app_id, "update_app_status")

        if current.is_active == is_active:
            logger.debug(f"App '{app_id}' already {'active' if is_active else 'inactive'}")
            return RegistryOutcome.UNCHANGED

        logger.info(f"App '{app_id}' {'activated' if is_active else 'deactivated'}")
        return RegistryOutcome.APPLIED

    def update_app_installation(
        self,
        app_id: str,
        installation: Installation,
        manifest: Optional[AppManifest] = None,
    ) -> RegistryOutcome:
        """
        Swap the installation (and optionally the manifest) of a registered app.

        Components and activation state are kept.

        Raises:
            ManifestValidationError: the new manifest fails validation
        """
        if manifest is not None:
            result = self.validator.validate(manifest)
            if not result.valid:
                raise ManifestValidationError(manifest.id, result.errors)

        with self._write_lock:
            current = self._apps.get(app_id)
            if current is not None:
                apps = dict(self._apps)
                apps[app_id] = dataclasses.replace(
                    current,
                    installation=installation,
                    manifest=manifest or current.manifest,
                )
                self._apps = apps

        if current is None:
            return self._not_found(app_id, "update_app_installation")

        logger.info(
            f"Updated installation of app '{app_id}' "
            f"(v{(manifest or current.manifest).version})"
        )
        return RegistryOutcome.APPLIED

    def add_component_to_app(self, app_id: str, name: str, component: Any) -> RegistryOutcome:
        """
        Attach a component to a registered app.

        For an app that is not registered yet the component is queued and
        attached by ``register_app``.
        """
        with self._write_lock:
            current = self._apps.get(app_id)
            if current is None:
                self._pending_components.setdefault(app_id, {})[name] = component
            else:
                apps = dict(self._apps)
                apps[app_id] = dataclasses.replace(
                    current,
                    components={**current.components, name: component},
                )
                self._apps = apps

        if current is None:
            logger.debug(f"Queued component '{name}' for unregistered app '{app_id}'")
            return RegistryOutcome.QUEUED
        return RegistryOutcome.APPLIED

    def pending_components(self, app_id: str) -> Dict[str, Any]:
        return dict(self._pending_components.get(app_id, {}))

    def clear(self) -> None:
        with self._write_lock:
            self._apps = {}
            self._pending_components = {}

    def _not_found(self, app_id: str, operation: str) -> RegistryOutcome:
        if self.strict:
            raise AppNotFoundError(app_id, where="registry")
        logger.debug(f"{operation}: app '{app_id}' is not registered")
        return RegistryOutcome.NOT_FOUND

    # ========================================================================
    # Reads
    # ========================================================================

    def get_app(self, app_id: str) -> Optional[RegisteredApp]:
        return self._apps.get(app_id)

    def get_all_apps(self) -> List[RegisteredApp]:
        return list(self._apps.values())

    def get_active_apps(self) -> List[RegisteredApp]:
        return [app for app in self._apps.values() if app.is_active]

    def get_state(self, app_id: str) -> ActivationState:
        app = self._apps.get(app_id)
        if app is None:
            return ActivationState.UNREGISTERED
        return app.state

    def get_all_app_routes(self) -> List[AppRouteEntry]:
        """Routes of all active apps, admin before user per app."""
        entries: List[AppRouteEntry] = []
        for app in self.get_active_apps():
            manifest = app.manifest
            if manifest.admin_ui is not None and manifest.admin_ui.enabled:
                entries.extend(AppRouteEntry(app.app_id, "admin", r) for r in manifest.admin_ui.routes)
            if manifest.user_ui is not None and manifest.user_ui.enabled:
                entries.extend(AppRouteEntry(app.app_id, "user", r) for r in manifest.user_ui.routes)
        return entries

    def get_all_app_navigation(self) -> List[NavigationEntry]:
        """
        Navigation of all active apps, stable-sorted by ``order``.

        Items without an order sort last (999). When a user UI declares no
        navigation, its routes are used as navigation items.
        """
        entries: List[NavigationEntry] = []
        for app in self.get_active_apps():
            manifest = app.manifest

            if manifest.admin_ui is not None and manifest.admin_ui.enabled:
                for item in manifest.admin_ui.navigation:
                    entries.append(_nav_entry(app.app_id, "admin", item))

            if manifest.user_ui is not None and manifest.user_ui.enabled:
                if manifest.user_ui.navigation:
                    for item in manifest.user_ui.navigation:
                        entries.append(_nav_entry(app.app_id, "user", item))
                else:
                    for route in manifest.user_ui.routes:
                        entries.append(
                            NavigationEntry(
                                app_id=app.app_id,
                                ui="user",
                                label=route.title,
                                path=route.path,
                                permissions=list(route.permissions),
                            )
                        )

        return sorted(entries, key=lambda e: e.order)

    def inspect(self) -> Dict[str, Any]:
        """
        Registry diagnostics.

        Returns:
            App counts, per-app state and pending component names
        """
        apps = self._apps
        return {
            "app_count": len(apps),
            "active_count": sum(1 for a in apps.values() if a.is_active),
            "strict": self.strict,
            "apps": [
                {
                    "id": app.app_id,
                    "version": app.manifest.version,
                    "state": app.state.value,
                    "installation_id": app.installation.id,
                    "organization_id": app.installation.organization_id,
                    "components": sorted(app.components),
                    "fingerprint": app.manifest.fingerprint(),
                }
                for app in apps.values()
            ],
            "pending_components": {
                app_id: sorted(components)
                for app_id, components in self._pending_components.items()
            },
        }

    def __contains__(self, app_id: object) -> bool:
        return app_id in self._apps

    def __len__(self) -> int:
        return len(self._apps)

    def __repr__(self) -> str:
        return f"<AppRegistry apps={len(self._apps)} active={len(self.get_active_apps())}>"


def _nav_entry(app_id: str, ui: str, item: Any) -> NavigationEntry:
    return NavigationEntry(
        app_id=app_id,
        ui=ui,
        label=item.label,
        path=item.path,
        order=item.order if item.order is not None else DEFAULT_NAV_ORDER,
        icon=item.icon,
        permissions=list(item.permissions),
    )
