"""
Manifest sources.

- ``ManifestCatalog``: the in-process catalog of available app manifests
- ``load_manifest_file``: read manifests from YAML or JSON files
- ``RemoteManifestSource``: fetch manifests from a marketplace endpoint
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import httpx
import yaml

from .errors import (
    DuplicateAppError,
    ManifestValidationError,
    PersistenceError,
    RegistryError,
)
from .manifest import AppManifest
from .validator import ManifestValidator

logger = logging.getLogger("tokennexus.registry.sources")

ManifestLike = Union[AppManifest, Mapping[str, Any]]


def _as_manifest(data: ManifestLike) -> AppManifest:
    if isinstance(data, AppManifest):
        return data
    return AppManifest.from_dict(dict(data))


class ManifestCatalog:
    """
    Catalog of available app manifests keyed by id.

    Manifests are validated on ``add``; invalid manifests and duplicate ids
    are rejected. Categories group apps for batch installs (an app may belong
    to several categories).
    """

    def __init__(self, validator: Optional[ManifestValidator] = None):
        self.validator = validator or ManifestValidator()
        self._manifests: Dict[str, AppManifest] = {}
        self._categories: Dict[str, List[str]] = {}

    def add(
        self,
        manifest: ManifestLike,
        *,
        categories: Iterable[str] = (),
        replace: bool = False,
    ) -> AppManifest:
        """
        Add a manifest to the catalog.

        Args:
            manifest: AppManifest or its dict form
            categories: extra categories besides ``manifest.category``
            replace: allow replacing an existing manifest with the same id

        Raises:
            ManifestValidationError: manifest fails validation
            DuplicateAppError: id already present and ``replace`` is False
        """
        manifest = _as_manifest(manifest)

        result = self.validator.validate(manifest)
        if not result.valid:
            raise ManifestValidationError(manifest.id, result.errors)
        for warning in result.warnings:
            logger.warning(warning)

        if manifest.id in self._manifests and not replace:
            raise DuplicateAppError(manifest.id)

        self._manifests[manifest.id] = manifest

        names = list(categories)
        if manifest.category:
            names.insert(0, manifest.category)
        for name in names:
            members = self._categories.setdefault(name, [])
            if manifest.id not in members:
                members.append(manifest.id)

        logger.debug(f"Catalog: added '{manifest.id}' v{manifest.version}")
        return manifest

    def add_all(self, manifests: Iterable[ManifestLike], **kwargs: Any) -> List[AppManifest]:
        return [self.add(m, **kwargs) for m in manifests]

    def remove(self, app_id: str) -> bool:
        if self._manifests.pop(app_id, None) is None:
            return False
        for members in self._categories.values():
            if app_id in members:
                members.remove(app_id)
        return True

    def get_manifest_by_id(self, app_id: str) -> Optional[AppManifest]:
        return self._manifests.get(app_id)

    def get_all_manifest_ids(self) -> List[str]:
        return list(self._manifests)

    def by_category(self, category: str) -> List[AppManifest]:
        return [
            self._manifests[app_id]
            for app_id in self._categories.get(category, [])
            if app_id in self._manifests
        ]

    def categories(self) -> Dict[str, List[str]]:
        return {name: list(members) for name, members in self._categories.items()}

    def is_standard_app(self, app_id: str) -> bool:
        """Whether ``app_id`` carries the reserved standard-app prefix."""
        return app_id.startswith(self.validator.standard_prefix)

    def __contains__(self, app_id: object) -> bool:
        return app_id in self._manifests

    def __iter__(self) -> Iterator[AppManifest]:
        return iter(list(self._manifests.values()))

    def __len__(self) -> int:
        return len(self._manifests)


def load_manifest_file(path: Union[str, Path]) -> List[AppManifest]:
    """
    Load manifests from a YAML or JSON file.

    The document may be a single manifest, a list of manifests, or a mapping
    with an ``apps`` list.

    Raises:
        RegistryError: unreadable file or unsupported document shape
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RegistryError(
            f"Cannot read manifest file {path}: {exc}",
            code="MANIFEST_SOURCE_INVALID",
            details={"path": str(path)},
        ) from exc

    try:
        if path.suffix in (".yaml", ".yml"):
            document = yaml.safe_load(text)
        elif path.suffix == ".json":
            document = json.loads(text)
        else:
            raise RegistryError(
                f"Unsupported manifest file type: {path.suffix or '<none>'}",
                code="MANIFEST_SOURCE_INVALID",
                suggestion="Use .yaml, .yml or .json",
                details={"path": str(path)},
            )
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise RegistryError(
            f"Cannot parse manifest file {path}: {exc}",
            code="MANIFEST_SOURCE_INVALID",
            details={"path": str(path)},
        ) from exc

    return _manifests_from_document(document, source=str(path))


def _manifests_from_document(document: Any, *, source: str) -> List[AppManifest]:
    if isinstance(document, dict) and isinstance(document.get("apps"), list):
        items = document["apps"]
    elif isinstance(document, dict):
        items = [document]
    elif isinstance(document, list):
        items = document
    else:
        raise RegistryError(
            f"Manifest document from {source} must be a mapping or a list",
            code="MANIFEST_SOURCE_INVALID",
            details={"source": source},
        )

    manifests = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise RegistryError(
                f"Manifest entry {i} from {source} is not a mapping",
                code="MANIFEST_SOURCE_INVALID",
                details={"source": source, "index": i},
            )
        manifests.append(AppManifest.from_dict(item))
    return manifests


@dataclass
class SyncReport:
    """Outcome of syncing remote manifests into a catalog."""

    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    rejected: Dict[str, List[str]] = field(default_factory=dict)


class RemoteManifestSource:
    """
    Fetches app manifests from a marketplace HTTP endpoint.

    ``GET {base_url}/manifests`` returns a list of manifests (or an object
    with ``results``); ``GET {base_url}/manifests/<id>`` returns one.
    """

    def __init__(
        self,
        base_url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers or {},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, operation: str) -> Optional[Any]:
        try:
            response = await self._client.get(path)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise PersistenceError(
                operation, f"HTTP {exc.response.status_code} from {path}"
            ) from exc
        except httpx.HTTPError as exc:
            raise PersistenceError(
                operation, f"{exc.__class__.__name__} fetching {path}: {exc}"
            ) from exc
        except ValueError as exc:
            raise PersistenceError(operation, f"invalid JSON from {path}") from exc

    async def fetch_manifests(self) -> List[AppManifest]:
        document = await self._get("/manifests", "fetch_manifests")
        if document is None:
            return []
        if isinstance(document, dict) and "results" in document:
            document = document["results"]
        return _manifests_from_document(document, source=f"{self.base_url}/manifests")

    async def fetch_manifest(self, app_id: str) -> Optional[AppManifest]:
        document = await self._get(f"/manifests/{app_id}", "fetch_manifest")
        if document is None:
            return None
        return AppManifest.from_dict(document)

    async def sync_into(self, catalog: ManifestCatalog) -> SyncReport:
        """
        Add or replace every remote manifest in ``catalog``.

        Invalid manifests are reported in ``rejected`` and skipped; the rest
        of the batch still syncs.
        """
        report = SyncReport()
        for manifest in await self.fetch_manifests():
            existed = manifest.id in catalog
            try:
                catalog.add(manifest, replace=True)
            except ManifestValidationError as exc:
                logger.warning(f"Rejected remote manifest '{manifest.id}': {exc.validation_errors}")
                report.rejected[manifest.id] = exc.validation_errors
                continue
            (report.updated if existed else report.added).append(manifest.id)

        logger.info(
            f"Synced manifests from {self.base_url}: {len(report.added)} added, "
            f"{len(report.updated)} updated, {len(report.rejected)} rejected"
        )
        return report
