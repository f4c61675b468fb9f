"""
Installation store backends.

An installation binds an app manifest/version to an organization with a
status and its app-specific configuration. Persistence is owned by an
external store; the registry core only talks to the ``InstallationStore``
interface. Two backends ship:

- ``MemoryInstallationStore``: in-process, for demos and tests
- ``RemoteInstallationStore``: Parse cloud functions over ``httpx``

``create_installation_store(config)`` picks one from configuration.
"""

from __future__ import annotations

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from .errors import PersistenceError

logger = logging.getLogger("tokennexus.registry.backends")


class InstallationStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    UNINSTALLED = "uninstalled"


@dataclass
class Installation:
    """Persisted record of an app installed into an organization."""

    id: str
    app_id: str
    organization_id: Optional[str] = None
    status: InstallationStatus = InstallationStatus.ACTIVE
    app_specific_config: Dict[str, Any] = field(default_factory=dict)
    installed_version: str = ""
    installed_by: Optional[str] = None
    installed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == InstallationStatus.ACTIVE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Installation":
        installed_at = data.get("installedAt") or data.get("installed_at")
        if isinstance(installed_at, dict):
            # Parse Date objects: {"__type": "Date", "iso": "..."}
            installed_at = installed_at.get("iso")
        if isinstance(installed_at, str):
            installed_at = datetime.fromisoformat(installed_at.replace("Z", "+00:00"))

        return cls(
            id=data.get("objectId") or data.get("id") or "",
            app_id=data.get("appId") or data.get("app_id") or "",
            organization_id=data.get("organizationId") or data.get("organization_id"),
            status=InstallationStatus(data.get("status", "active")),
            app_specific_config=dict(
                data.get("appSpecificConfig") or data.get("app_specific_config") or {}
            ),
            installed_version=data.get("installedVersion") or data.get("installed_version") or "",
            installed_by=data.get("installedBy") or data.get("installed_by"),
            installed_at=installed_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "appId": self.app_id,
            "organizationId": self.organization_id,
            "status": self.status.value,
            "appSpecificConfig": copy.deepcopy(self.app_specific_config),
            "installedVersion": self.installed_version,
            "installedBy": self.installed_by,
            "installedAt": self.installed_at.isoformat() if self.installed_at else None,
        }


class InstallationStore(ABC):
    """
    Abstract installation store.

    Every failure of the underlying datastore surfaces as
    ``PersistenceError``.
    """

    @abstractmethod
    async def fetch_installations(self, org_id: Optional[str]) -> List[Installation]:
        """Installations of an organization (``None`` = platform scope)."""

    @abstractmethod
    async def create_installation(
        self,
        app_id: str,
        org_id: Optional[str],
        config: Dict[str, Any],
        *,
        version: str = "",
        actor_id: Optional[str] = None,
    ) -> Installation:
        """Persist a new active installation."""

    @abstractmethod
    async def update_installation_status(
        self,
        installation_id: str,
        status: InstallationStatus,
    ) -> Installation:
        """Change the status of an existing installation."""

    @abstractmethod
    async def update_installation_config(
        self,
        installation: Installation,
        config: Dict[str, Any],
    ) -> Installation:
        """Replace the app-specific configuration of an installation."""

    @abstractmethod
    async def update_installation_version(
        self,
        installation: Installation,
        version: str,
    ) -> Installation:
        """Point an installation at another version of its app."""

    @abstractmethod
    async def delete_installation(self, installation_id: str) -> None:
        """Remove an installation record."""

    async def close(self) -> None:
        """Release backend resources."""


class MemoryInstallationStore(InstallationStore):
    """In-memory installation store."""

    def __init__(self):
        self._records: Dict[str, Installation] = {}

    async def fetch_installations(self, org_id: Optional[str]) -> List[Installation]:
        return [
            copy.deepcopy(rec)
            for rec in self._records.values()
            if rec.organization_id == org_id
        ]

    async def create_installation(
        self,
        app_id: str,
        org_id: Optional[str],
        config: Dict[str, Any],
        *,
        version: str = "",
        actor_id: Optional[str] = None,
    ) -> Installation:
        installation = Installation(
            id=uuid.uuid4().hex,
            app_id=app_id,
            organization_id=org_id,
            status=InstallationStatus.ACTIVE,
            app_specific_config=copy.deepcopy(config),
            installed_version=version,
            installed_by=actor_id,
            installed_at=datetime.now(timezone.utc),
        )
        self._records[installation.id] = installation
        logger.debug(f"Stored installation {installation.id} of '{app_id}' (org={org_id})")
        return copy.deepcopy(installation)

    async def update_installation_status(
        self,
        installation_id: str,
        status: InstallationStatus,
    ) -> Installation:
        record = self._record("update_installation_status", installation_id)
        record.status = InstallationStatus(status)
        return copy.deepcopy(record)

    async def update_installation_config(
        self,
        installation: Installation,
        config: Dict[str, Any],
    ) -> Installation:
        record = self._record("update_installation_config", installation.id)
        record.app_specific_config = copy.deepcopy(config)
        return copy.deepcopy(record)

    async def update_installation_version(
        self,
        installation: Installation,
        version: str,
    ) -> Installation:
        record = self._record("update_installation_version", installation.id)
        record.installed_version = version
        return copy.deepcopy(record)

    def _record(self, operation: str, installation_id: str) -> Installation:
        record = self._records.get(installation_id)
        if record is None:
            raise PersistenceError(operation, f"no installation with id '{installation_id}'")
        return record

    async def delete_installation(self, installation_id: str) -> None:
        if self._records.pop(installation_id, None) is None:
            raise PersistenceError(
                "delete_installation",
                f"no installation with id '{installation_id}'",
            )


class RemoteInstallationStore(InstallationStore):
    """
    Installation store backed by Parse cloud functions.

    Calls ``POST {base_url}/functions/<name>`` with the Parse application
    headers; responses carry their payload under ``result``.

    Args:
        base_url: Parse server URL (e.g. ``https://api.example.com/parse``)
        application_id: ``X-Parse-Application-Id``
        rest_key: ``X-Parse-REST-API-Key`` (optional)
        session_token: ``X-Parse-Session-Token`` of the acting user (optional)
        timeout: per-request timeout in seconds
        transport: custom httpx transport (tests use ``httpx.MockTransport``)

    The Parse backend exposes no status-only function; ``STATUS_FUNCTION``
    is this deployment's own cloud function and can be overridden on a
    subclass. Config and version updates may answer with the updated record
    or with a bare ``{"success": true}`` acknowledgement.
    """

    FETCH_FUNCTION = "fetchOrgAppInstallations"
    CREATE_FUNCTION = "installApp"
    STATUS_FUNCTION = "updateAppInstallationStatus"
    CONFIG_FUNCTION = "updateAppConfiguration"
    VERSION_FUNCTION = "updateAppInOrg"
    DELETE_FUNCTION = "uninstallApp"

    def __init__(
        self,
        base_url: str,
        application_id: str,
        *,
        rest_key: Optional[str] = None,
        session_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        headers = {
            "X-Parse-Application-Id": application_id,
            "Content-Type": "application/json",
            "User-Agent": "tokennexus-registry/1.0",
        }
        if rest_key:
            headers["X-Parse-REST-API-Key"] = rest_key
        if session_token:
            headers["X-Parse-Session-Token"] = session_token

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(
        self,
        function: str,
        params: Dict[str, Any],
        *,
        operation: str,
        app_id: Optional[str] = None,
    ) -> Any:
        try:
            response = await self._client.post(f"/functions/{function}", json=params)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise PersistenceError(
                operation,
                f"HTTP {exc.response.status_code} from {function}: {_error_text(exc.response)}",
                app_id=app_id,
            ) from exc
        except httpx.HTTPError as exc:
            raise PersistenceError(
                operation,
                f"{exc.__class__.__name__} calling {function}: {exc}",
                app_id=app_id,
            ) from exc
        except ValueError as exc:
            raise PersistenceError(
                operation, f"invalid JSON from {function}", app_id=app_id
            ) from exc

        if not isinstance(body, dict) or "result" not in body:
            raise PersistenceError(
                operation, f"unexpected response shape from {function}", app_id=app_id
            )
        return body["result"]

    async def fetch_installations(self, org_id: Optional[str]) -> List[Installation]:
        result = await self._call(
            self.FETCH_FUNCTION,
            {"organizationId": org_id},
            operation="fetch_installations",
        )
        if isinstance(result, dict):
            result = result.get("data", [])
        if result is None:
            return []
        if not isinstance(result, list):
            raise PersistenceError(
                "fetch_installations",
                f"unexpected result shape from {self.FETCH_FUNCTION}: {type(result).__name__}",
            )
        return [
            self._parse(item, "fetch_installations", self.FETCH_FUNCTION)
            for item in result
        ]

    async def create_installation(
        self,
        app_id: str,
        org_id: Optional[str],
        config: Dict[str, Any],
        *,
        version: str = "",
        actor_id: Optional[str] = None,
    ) -> Installation:
        result = await self._call(
            self.CREATE_FUNCTION,
            {
                "appDefinitionId": app_id,
                "organizationId": org_id,
                "versionId": version,
                "appSpecificConfig": config,
                "installedBy": actor_id,
            },
            operation="create_installation",
            app_id=app_id,
        )
        installation = self._parse(result, "create_installation", self.CREATE_FUNCTION, app_id)
        if not installation.app_id:
            installation.app_id = app_id
        return installation

    async def update_installation_status(
        self,
        installation_id: str,
        status: InstallationStatus,
    ) -> Installation:
        result = await self._call(
            self.STATUS_FUNCTION,
            {"installationId": installation_id, "status": InstallationStatus(status).value},
            operation="update_installation_status",
        )
        return self._parse(result, "update_installation_status", self.STATUS_FUNCTION)

    async def update_installation_config(
        self,
        installation: Installation,
        config: Dict[str, Any],
    ) -> Installation:
        result = await self._call(
            self.CONFIG_FUNCTION,
            {
                "organizationId": installation.organization_id,
                "installationId": installation.id,
                "configuration": config,
            },
            operation="update_installation_config",
            app_id=installation.app_id,
        )
        return self._updated(
            result,
            installation,
            "update_installation_config",
            self.CONFIG_FUNCTION,
            app_specific_config=copy.deepcopy(config),
        )

    async def update_installation_version(
        self,
        installation: Installation,
        version: str,
    ) -> Installation:
        result = await self._call(
            self.VERSION_FUNCTION,
            {
                "organizationId": installation.organization_id,
                "installationId": installation.id,
                "versionId": version,
            },
            operation="update_installation_version",
            app_id=installation.app_id,
        )
        return self._updated(
            result,
            installation,
            "update_installation_version",
            self.VERSION_FUNCTION,
            installed_version=version,
        )

    async def delete_installation(self, installation_id: str) -> None:
        await self._call(
            self.DELETE_FUNCTION,
            {"installationId": installation_id},
            operation="delete_installation",
        )

    def _parse(
        self,
        data: Any,
        operation: str,
        function: str,
        app_id: Optional[str] = None,
    ) -> Installation:
        if not isinstance(data, dict):
            raise PersistenceError(
                operation,
                f"unexpected installation shape from {function}: {type(data).__name__}",
                app_id=app_id,
            )
        try:
            return Installation.from_dict(data)
        except (ValueError, TypeError, AttributeError) as exc:
            raise PersistenceError(
                operation,
                f"unexpected installation shape from {function}: {exc}",
                app_id=app_id,
            ) from exc

    def _updated(
        self,
        result: Any,
        installation: Installation,
        operation: str,
        function: str,
        **changes: Any,
    ) -> Installation:
        if isinstance(result, dict) and "success" in result:
            if result["success"] is not True:
                raise PersistenceError(
                    operation,
                    f"{function} failed: {result.get('message', 'no message')}",
                    app_id=installation.app_id,
                )
            return replace(installation, **changes)
        return self._parse(result, operation, function, installation.app_id)


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return response.text[:200]


def create_installation_store(config: Any) -> InstallationStore:
    """
    Build the installation store selected by ``installations.backend``.

    Args:
        config: ``NexusConfig`` (or anything exposing ``installations``)
    """
    settings = config.installations
    backend = settings.backend

    if backend == "memory":
        logger.info("Using in-memory installation store")
        return MemoryInstallationStore()

    if backend == "remote":
        if not settings.base_url or not settings.application_id:
            raise ValueError(
                "Remote installation store requires installations.base_url "
                "and installations.application_id"
            )
        logger.info(f"Using remote installation store at {settings.base_url}")
        return RemoteInstallationStore(
            settings.base_url,
            settings.application_id,
            rest_key=settings.rest_key,
            timeout=settings.timeout,
        )

    raise ValueError(f"Unknown installation backend: {backend!r}")
