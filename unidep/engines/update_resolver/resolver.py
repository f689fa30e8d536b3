"""Update resolver — latest-version lookups across upstream registries.

Maven-family coordinates are looked up in the central search API first, then
in each project-configured repository in declaration order, then in the
public fallback repository. Repositories and mirrors from the Maven
``settings.xml`` come after the project's own, and their server credentials
are sent to the matching URLs. The first source with an answer wins. Plugins
are looked up on the plugin portal. Every answer (``None`` included) is
cached; upstream failures are logged and degrade to ``None``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

import structlog

from unidep.core.config import Settings
from unidep.engines.dependency_scanner.models import (
    Coordinate,
    InstalledDependency,
    InstalledPlugin,
    MavenPlugin,
)
from unidep.engines.dependency_scanner.repositories import (
    RepositoryConfig,
    normalize_url,
    read_settings_repositories,
)
from unidep.engines.update_resolver.cache import TTLCache
from unidep.engines.update_resolver.clients import (
    MavenCentralClient,
    PackageRegistryClient,
    PluginPortalClient,
    PortalPluginInfo,
    RepositoryMetadataClient,
)
from unidep.engines.update_resolver.models import DependencyUpdate, MavenPluginUpdate, PluginUpdate
from unidep.engines.update_resolver.schemas import CentralDoc, RegistryObject
from unidep.exceptions import UpstreamUnavailableError

log = structlog.get_logger("unidep.resolver")


class UpdateResolver:
    """Resolve latest versions for dependencies and plugins, with TTL caching."""

    def __init__(
        self,
        *,
        central: MavenCentralClient,
        repositories: RepositoryMetadataClient,
        portal: PluginPortalClient,
        registry: PackageRegistryClient,
        fallback_repository: str,
        version_cache: TTLCache,
        search_cache: TTLCache,
        max_workers: int = 8,
        settings_repositories: Sequence[RepositoryConfig] = (),
    ) -> None:
        self._central = central
        self._repositories = repositories
        self._portal = portal
        self._registry = registry
        self._fallback = normalize_url(fallback_repository)
        self.version_cache = version_cache
        self.search_cache = search_cache
        self._max_workers = max(1, max_workers)
        self._settings_urls = [normalize_url(repo.url) for repo in settings_repositories]
        self._credentials = {
            normalize_url(repo.url): repo.auth for repo in settings_repositories if repo.auth is not None
        }

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> UpdateResolver:
        settings = settings or Settings.from_env()
        timeout = settings.http_timeout
        return cls(
            central=MavenCentralClient(settings.central_search_url, timeout=timeout),
            repositories=RepositoryMetadataClient(timeout=timeout),
            portal=PluginPortalClient(settings.plugin_portal_url, timeout=timeout),
            registry=PackageRegistryClient(settings.package_registry_url, timeout=timeout),
            fallback_repository=settings.fallback_repository,
            version_cache=TTLCache(settings.version_cache_ttl, name="versions"),
            search_cache=TTLCache(settings.search_cache_ttl, name="search"),
            max_workers=settings.max_workers,
            settings_repositories=read_settings_repositories(settings.maven_settings),
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    def close(self) -> None:
        for client in (self._central, self._repositories, self._portal, self._registry):
            client.close()

    def __enter__(self) -> UpdateResolver:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def clear_cache(self) -> None:
        self.version_cache.clear()
        self.search_cache.clear()

    # ── dependencies ───────────────────────────────────────────────────────

    def latest_version(
        self,
        coordinate: Coordinate,
        repositories: Sequence[str] = (),
    ) -> str | None:
        """Latest known version of *coordinate*, or ``None`` if no source knows it."""
        return self.version_cache.get_or_fetch(
            f"maven:{coordinate}",
            lambda: self._lookup_version(coordinate, repositories),
        )

    def check_for_updates(
        self,
        installed: Iterable[InstalledDependency],
        repositories: Sequence[str] = (),
    ) -> list[DependencyUpdate]:
        """Updates for every record whose upstream version is strictly newer.

        Lookups fan out per distinct coordinate; managed versions are skipped.
        """
        records = [dep for dep in installed if not dep.is_version_managed]
        coordinates = list(dict.fromkeys(dep.coordinate for dep in records))
        latest = self._fan_out(
            coordinates, lambda coordinate: self.latest_version(coordinate, repositories)
        )

        updates: list[DependencyUpdate] = []
        for dep in records:
            version = latest.get(dep.coordinate)
            if version is None:
                continue
            update = DependencyUpdate(installed=dep, latest_version=version)
            if update.has_update:
                updates.append(update)
        log.info(
            "resolver.updates_checked",
            coordinates=len(coordinates),
            updates=len(updates),
        )
        return updates

    def _lookup_version(self, coordinate: Coordinate, repositories: Sequence[str]) -> str | None:
        sources: list[tuple[str, Callable[[], str | None]]] = [
            ("central", lambda: self._central.latest_version(coordinate)),
        ]
        for repo in self._repository_order(repositories):
            sources.append((repo, lambda repo=repo: self._repository_version(repo, coordinate)))

        for source, fetch in sources:
            version = self._guarded(fetch, coordinate=str(coordinate), source=source)
            if version:
                log.debug("resolver.version_found", coordinate=str(coordinate), source=source)
                return version
        return None

    def _repository_version(self, repo: str, coordinate: Coordinate) -> str | None:
        auth = self._credentials.get(repo)
        if auth is None:
            return self._repositories.latest_version(repo, coordinate)
        return self._repositories.latest_version(repo, coordinate, auth=auth)

    def _repository_order(self, repositories: Sequence[str]) -> list[str]:
        ordered: list[str] = []
        for url in [*repositories, *self._settings_urls]:
            normalized = normalize_url(url)
            if normalized and normalized != self._fallback and normalized not in ordered:
                ordered.append(normalized)
        ordered.append(self._fallback)
        return ordered

    # ── plugins ────────────────────────────────────────────────────────────

    def latest_plugin_version(self, plugin_id: str) -> str | None:
        return self.version_cache.get_or_fetch(
            f"plugin:{plugin_id}",
            lambda: self._guarded(
                lambda: self._portal.latest_version(plugin_id), plugin=plugin_id
            ),
        )

    def plugin_info(self, plugin_id: str) -> PortalPluginInfo | None:
        return self.search_cache.get_or_fetch(
            f"plugin-info:{plugin_id}",
            lambda: self._guarded(lambda: self._portal.portal_info(plugin_id), plugin=plugin_id),
        )

    def check_plugin_updates(self, plugins: Iterable[InstalledPlugin]) -> list[PluginUpdate]:
        """Updates for plugins declared with a version; version-less entries are skipped."""
        records = [plugin for plugin in plugins if plugin.version]
        plugin_ids = list(dict.fromkeys(plugin.plugin_id for plugin in records))
        latest = self._fan_out(plugin_ids, self.latest_plugin_version)

        updates: list[PluginUpdate] = []
        for plugin in records:
            version = latest.get(plugin.plugin_id)
            if version is None:
                continue
            update = PluginUpdate(installed=plugin, latest_version=version)
            if update.has_update:
                updates.append(update)
        return updates

    def check_maven_plugin_updates(
        self,
        plugins: Iterable[MavenPlugin],
        repositories: Sequence[str] = (),
    ) -> list[MavenPluginUpdate]:
        """Updates for POM build plugins; plugins without a ``<version>`` are skipped.

        Plugins are ordinary artifacts, so lookups share the dependency cache.
        """
        records = [plugin for plugin in plugins if plugin.version]
        coordinates = list(dict.fromkeys(plugin.coordinate for plugin in records))
        latest = self._fan_out(
            coordinates, lambda coordinate: self.latest_version(coordinate, repositories)
        )

        updates: list[MavenPluginUpdate] = []
        for plugin in records:
            version = latest.get(plugin.coordinate)
            if version is None:
                continue
            update = MavenPluginUpdate(installed=plugin, latest_version=version)
            if update.has_update:
                updates.append(update)
        return updates

    # ── search ─────────────────────────────────────────────────────────────

    def search_packages(self, keyword: str) -> list[RegistryObject]:
        """Keyword search on the package registry (cached for the search TTL)."""
        keyword = keyword.strip()
        if not keyword:
            return []
        found = self.search_cache.get_or_fetch(
            f"registry:{keyword}",
            lambda: self._guarded(lambda: self._registry.search(keyword), keyword=keyword),
        )
        return list(found or [])

    def search_central(self, keyword: str) -> list[CentralDoc]:
        keyword = keyword.strip()
        if not keyword:
            return []
        found = self.search_cache.get_or_fetch(
            f"central:{keyword}",
            lambda: self._guarded(lambda: self._central.search(keyword), keyword=keyword),
        )
        return list(found or [])

    # ── internal ───────────────────────────────────────────────────────────

    def _fan_out(self, keys: list[Any], lookup: Callable[[Any], str | None]) -> dict[Any, str | None]:
        if not keys:
            return {}
        results: dict[Any, str | None] = {}
        workers = min(self._max_workers, len(keys))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            future_to_key = {pool.submit(lookup, key): key for key in keys}
            for future in as_completed(future_to_key):
                results[future_to_key[future]] = future.result()
        return {key: results[key] for key in keys}

    @staticmethod
    def _guarded(fetch: Callable[[], Any], **context: str) -> Any:
        try:
            return fetch()
        except UpstreamUnavailableError as exc:
            log.warning(
                "resolver.upstream_unavailable",
                url=exc.url,
                reason=exc.reason,
                **context,
            )
            return None
