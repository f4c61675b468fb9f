"""
App dependency resolution: install ordering, dependents and cycle detection.

This is the single authoritative dependency analysis. Install-time ordering
raises on cycles; validation-time hints call ``find_cycle`` and report a
warning instead.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from .errors import AppNotFoundError, DependencyCycleError, MissingDependencyError
from .manifest import AppManifest

logger = logging.getLogger("tokennexus.registry.graph")

ManifestLookup = Callable[[str], Optional[AppManifest]]


class DependencyResolver:
    """
    Resolves dependency order over manifests served by ``lookup``.

    Args:
        lookup: app id -> manifest (or None when unknown)
        include_optional: also pull available optional dependencies into the
            install order (and treat them as graph edges)
        known_ids: callable listing every app id the lookup can serve; used by
            ``find_cycle``/``dependency_graph`` when no roots are given
    """

    def __init__(
        self,
        lookup: ManifestLookup,
        *,
        include_optional: bool = False,
        known_ids: Optional[Callable[[], Iterable[str]]] = None,
    ):
        self._lookup = lookup
        self.include_optional = include_optional
        self._known_ids = known_ids

    def resolve_install_order(
        self,
        target: str,
        installed: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """
        Compute the install order for ``target``.

        Depth-first over ``dependencies.apps`` in declaration order, so
        dependencies precede dependents and siblings keep manifest order.
        Apps in ``installed`` are treated as satisfied and left out. The
        target itself is always the last element.

        Raises:
            AppNotFoundError: target has no manifest
            MissingDependencyError: a required dependency has no manifest
            DependencyCycleError: a dependency is reached again while still
                on the current path
        """
        manifest = self._lookup(target)
        if manifest is None:
            raise AppNotFoundError(target)

        satisfied: Set[str] = set(installed or ())
        satisfied.discard(target)
        resolved: Set[str] = set()
        order: List[str] = []
        path: List[str] = []

        def visit(app_id: str, app_manifest: AppManifest) -> None:
            path.append(app_id)

            for dep in app_manifest.dependency_entries():
                dep_id = dep.app_id

                if dep.optional and not self.include_optional:
                    logger.debug(f"Not pulling optional dependency '{dep_id}' of '{app_id}'")
                    continue

                if dep_id in satisfied or dep_id in resolved:
                    continue

                if dep_id in path:
                    raise DependencyCycleError(cycle=path[path.index(dep_id):])

                dep_manifest = self._lookup(dep_id)
                if dep_manifest is None:
                    if dep.optional:
                        logger.warning(
                            f"Optional dependency '{dep_id}' of '{app_id}' is unavailable, skipping"
                        )
                        continue
                    raise MissingDependencyError(app_id, dep_id)

                visit(dep_id, dep_manifest)

            path.pop()
            resolved.add(app_id)
            order.append(app_id)

        visit(target, manifest)
        return order

    def find_dependents(self, app_id: str, installed: Iterable[str]) -> List[str]:
        """
        Installed apps whose required dependencies include ``app_id``.

        Optional dependents are not reported: removing ``app_id`` does not
        break them.
        """
        dependents = []
        for other_id in installed:
            if other_id == app_id:
                continue
            manifest = self._lookup(other_id)
            if manifest is None:
                continue
            if app_id in manifest.required_dependencies():
                dependents.append(other_id)
        return dependents

    def dependency_graph(self, app_ids: Optional[Iterable[str]] = None) -> Dict[str, List[str]]:
        """
        Export the adjacency map reachable from ``app_ids``.

        Edges point from an app to the dependencies it needs. Dependencies
        without a manifest appear as leaves.
        """
        adjacency: Dict[str, List[str]] = {}
        pending = list(self._roots(app_ids))

        while pending:
            app_id = pending.pop()
            if app_id in adjacency:
                continue
            manifest = self._lookup(app_id)
            edges = self._edges(manifest) if manifest is not None else []
            adjacency[app_id] = edges
            pending.extend(e for e in edges if e not in adjacency)

        return adjacency

    def find_cycle(self, app_ids: Optional[Iterable[str]] = None) -> Optional[List[str]]:
        """
        Find a dependency cycle using Tarjan's algorithm.

        Args:
            app_ids: Roots to explore (every known app when omitted)

        Returns:
            App ids forming a cycle, or None if the graph is acyclic
        """
        adjacency = self.dependency_graph(app_ids)

        index_counter = [0]
        stack: List[str] = []
        lowlinks: Dict[str, int] = {}
        index: Dict[str, int] = {}
        on_stack: Set[str] = set()
        cycles: List[List[str]] = []

        def strongconnect(node: str) -> None:
            index[node] = index_counter[0]
            lowlinks[node] = index_counter[0]
            index_counter[0] += 1
            stack.append(node)
            on_stack.add(node)

            for dep in adjacency.get(node, []):
                if dep not in index:
                    strongconnect(dep)
                    lowlinks[node] = min(lowlinks[node], lowlinks[dep])
                elif dep in on_stack:
                    lowlinks[node] = min(lowlinks[node], index[dep])

            if lowlinks[node] == index[node]:
                component: List[str] = []
                while True:
                    w = stack.pop()
                    on_stack.remove(w)
                    component.append(w)
                    if w == node:
                        break

                if len(component) > 1 or node in adjacency.get(node, []):
                    cycles.append(list(reversed(component)))

        for node in adjacency:
            if node not in index:
                strongconnect(node)

        if cycles:
            return cycles[0]
        return None

    def _edges(self, manifest: AppManifest) -> List[str]:
        edges = []
        for dep in manifest.dependency_entries():
            if dep.optional:
                if not self.include_optional or self._lookup(dep.app_id) is None:
                    continue
            edges.append(dep.app_id)
        return edges

    def _roots(self, app_ids: Optional[Iterable[str]]) -> List[str]:
        if app_ids is not None:
            return list(app_ids)
        if self._known_ids is None:
            return []
        return list(self._known_ids())
