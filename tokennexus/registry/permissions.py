"""
Permission helpers.

The registry never enforces authorization: it only exposes the permissions
declared on routes and UI sections. These helpers intersect them with the
permissions granted to a caller, for routers and dashboards.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, TypeVar, Union

from .core import AppRouteEntry, NavigationEntry
from .manifest import AppManifest

Entry = TypeVar("Entry", AppRouteEntry, NavigationEntry)


@dataclass
class PermissionCheck:
    has_access: bool
    missing_permissions: List[str] = field(default_factory=list)
    available_features: List[str] = field(default_factory=list)


def check_app_permissions(
    manifest: Optional[AppManifest],
    granted: Iterable[str],
) -> PermissionCheck:
    """
    Check a caller's permissions against an app's admin UI.

    Access requires every permission declared on the admin UI; available
    features are the titles of admin routes whose own permissions are all
    granted. An unknown app (``None``) grants nothing.
    """
    if manifest is None:
        return PermissionCheck(has_access=False)

    granted_set = set(granted)
    admin_ui = manifest.admin_ui

    required = admin_ui.permissions if admin_ui is not None else []
    missing = [p for p in required if p not in granted_set]

    features = []
    if admin_ui is not None:
        for route in admin_ui.routes:
            if all(p in granted_set for p in route.permissions):
                features.append(route.title)

    return PermissionCheck(
        has_access=not missing,
        missing_permissions=missing,
        available_features=features,
    )


def filter_routes(
    entries: Sequence[Entry],
    granted: Union[Iterable[str], None],
) -> List[Entry]:
    """Keep route or navigation entries whose permissions are all granted."""
    granted_set = set(granted or ())
    return [e for e in entries if all(p in granted_set for p in e.permissions)]
