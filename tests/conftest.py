"""
Shared test fixtures for the Token Nexus test suite.
"""

import copy
import os
from typing import Any, Dict, List, Optional

import pytest

from tokennexus.registry import (
    AppManifest,
    AppRegistry,
    Installation,
    InstallationManager,
    InstallationStatus,
    ManifestCatalog,
    ManifestValidator,
    MemoryInstallationStore,
)


# ============================================================================
# Manifest Helpers
# ============================================================================


BASE_MANIFEST: Dict[str, Any] = {
    "id": "nomyx-sample",
    "name": "Sample App",
    "version": "1.0.0",
    "publisher": "Nomyx Platform",
    "framework": {"version": "1.0.0", "compatibility": ["1.0.0"]},
    "adminUI": {
        "enabled": True,
        "routes": [{"path": "/", "component": "Dashboard", "title": "Dashboard"}],
        "navigation": [],
        "permissions": [],
    },
}


def manifest_dict(app_id: str = "nomyx-sample", **overrides: Any) -> Dict[str, Any]:
    """Minimal valid manifest dict; top-level keys can be overridden."""
    data = copy.deepcopy(BASE_MANIFEST)
    data["id"] = app_id
    data["name"] = app_id.replace("-", " ").title()
    data.update(overrides)
    return data


def make_manifest(
    app_id: str = "nomyx-sample",
    *,
    requires: Optional[List[str]] = None,
    optional: Optional[List[str]] = None,
    **overrides: Any,
) -> AppManifest:
    """Build a valid manifest with required/optional app dependencies."""
    apps = [{"appId": d, "version": "1.0.0", "optional": False} for d in requires or []]
    apps += [{"appId": d, "version": "1.0.0", "optional": True} for d in optional or []]
    if apps and "dependencies" not in overrides:
        overrides["dependencies"] = {"platform": "1.0.0", "apps": apps, "permissions": []}
    return AppManifest.from_dict(manifest_dict(app_id, **overrides))


def make_installation(
    app_id: str,
    status: InstallationStatus = InstallationStatus.ACTIVE,
    *,
    installation_id: Optional[str] = None,
    org_id: Optional[str] = "org-1",
) -> Installation:
    return Installation(
        id=installation_id or f"inst-{app_id}",
        app_id=app_id,
        organization_id=org_id,
        status=status,
        installed_version="1.0.0",
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def manifest_factory():
    return make_manifest


@pytest.fixture
def installation_factory():
    return make_installation


@pytest.fixture
def validator():
    return ManifestValidator(naming_policy="off")


@pytest.fixture
def registry(validator):
    return AppRegistry(validator)


@pytest.fixture
def catalog(validator):
    return ManifestCatalog(validator)


@pytest.fixture
def store():
    return MemoryInstallationStore()


@pytest.fixture
def manager(registry, catalog, store):
    return InstallationManager(registry, catalog, store)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove NEXUS_* variables leaking from the host environment."""
    for key in list(os.environ):
        if key.startswith("NEXUS_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
