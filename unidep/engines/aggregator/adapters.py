"""Turn installed records, update results and search hits into :class:`UnifiedPackage`."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from unidep.engines.aggregator.models import (
    CentralSearchMetadata,
    PackageRegistryMetadata,
    PackageSource,
    PluginPortalMetadata,
    PluginScriptMetadata,
    ScriptMetadata,
    UnifiedPackage,
    XmlMetadata,
    XmlPluginMetadata,
)
from unidep.engines.dependency_scanner.models import (
    DIALECT_MAVEN,
    InstalledDependency,
    InstalledPlugin,
    MavenPlugin,
)
from unidep.engines.update_resolver.clients import PortalPluginInfo
from unidep.engines.update_resolver.models import DependencyUpdate, MavenPluginUpdate, PluginUpdate
from unidep.engines.update_resolver.schemas import CentralDoc, RegistryObject

PLUGIN_SCOPE = "plugin"


def _latest_map(
    updates: (
        Iterable[DependencyUpdate | PluginUpdate | MavenPluginUpdate] | Mapping[str, str] | None
    ),
) -> dict[str, str]:
    if updates is None:
        return {}
    if isinstance(updates, Mapping):
        return dict(updates)
    return {update.id: update.latest_version for update in updates}


def _distinct(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


# ── installed records ──────────────────────────────────────────────────────


def from_installed_dependency(
    dep: InstalledDependency,
    latest_version: str | None = None,
    modules: Sequence[str] | None = None,
) -> UnifiedPackage:
    if dep.dialect == DIALECT_MAVEN:
        source = PackageSource.MAVEN_INSTALLED
        metadata: ScriptMetadata | XmlMetadata = XmlMetadata(
            pom_file=dep.source.file_path,
            offset=dep.source.offset,
            length=dep.source.length,
            scope=dep.configuration,
            optional=dep.optional,
        )
    else:
        source = PackageSource.GRADLE_INSTALLED
        metadata = ScriptMetadata(
            build_file=dep.source.file_path,
            offset=dep.source.offset,
            length=dep.source.length,
            configuration=dep.configuration,
            is_from_version_catalog=dep.is_from_version_catalog,
            catalog_key=dep.catalog_key,
        )
    return UnifiedPackage(
        name=dep.coordinate.artifact,
        publisher=dep.coordinate.group,
        installed_version=dep.version,
        latest_version=latest_version,
        source=source,
        metadata=metadata,
        scope=dep.configuration,
        modules=tuple(modules) if modules is not None else (dep.module,),
    )


def plugin_publisher(plugin_id: str) -> tuple[str, str]:
    """Split ``org.example.plugin`` into (``org.example``, ``plugin``)."""
    if "." not in plugin_id:
        return plugin_id, plugin_id
    publisher, name = plugin_id.rsplit(".", 1)
    return publisher, name


def portal_url(plugin_id: str) -> str:
    return f"https://plugins.gradle.org/plugin/{plugin_id}"


def from_installed_plugin(
    plugin: InstalledPlugin,
    latest_version: str | None = None,
    modules: Sequence[str] | None = None,
) -> UnifiedPackage:
    publisher, name = plugin_publisher(plugin.plugin_id)
    return UnifiedPackage(
        name=name,
        publisher=publisher,
        installed_version=plugin.version,
        latest_version=latest_version,
        source=PackageSource.GRADLE_PLUGIN_INSTALLED,
        metadata=PluginScriptMetadata(
            build_file=plugin.source.file_path,
            offset=plugin.source.offset,
            length=plugin.source.length,
            syntax=plugin.syntax,
            is_kotlin_shorthand=plugin.is_kotlin_shorthand,
            is_applied=plugin.is_applied,
        ),
        scope=PLUGIN_SCOPE,
        modules=tuple(modules) if modules is not None else (plugin.module,),
        homepage=portal_url(plugin.plugin_id),
    )


def from_maven_plugin(
    plugin: MavenPlugin,
    latest_version: str | None = None,
    modules: Sequence[str] | None = None,
) -> UnifiedPackage:
    return UnifiedPackage(
        name=plugin.coordinate.artifact,
        publisher=plugin.coordinate.group,
        installed_version=plugin.version,
        latest_version=latest_version,
        source=PackageSource.MAVEN_PLUGIN_INSTALLED,
        metadata=XmlPluginMetadata(
            pom_file=plugin.source.file_path,
            offset=plugin.source.offset,
            length=plugin.source.length,
            is_from_plugin_management=plugin.is_from_plugin_management,
            phase=plugin.phase,
            goals=plugin.goals,
        ),
        scope=PLUGIN_SCOPE,
        modules=tuple(modules) if modules is not None else (plugin.module,),
    )


def aggregate(
    dependencies: Iterable[InstalledDependency],
    updates: Iterable[DependencyUpdate] | Mapping[str, str] | None = None,
    plugins: Iterable[InstalledPlugin] = (),
    plugin_updates: Iterable[PluginUpdate] | Mapping[str, str] | None = None,
    *,
    maven_plugins: Iterable[MavenPlugin] = (),
    maven_plugin_updates: Iterable[MavenPluginUpdate] | Mapping[str, str] | None = None,
) -> list[UnifiedPackage]:
    """Group records by coordinate (plugins by id) into one package each.

    The first record of a group supplies the shared attributes; modules are
    the distinct module names in first-seen order. *updates* may be update
    records or a plain ``{id: latest_version}`` mapping.
    """
    latest = _latest_map(updates)
    groups: dict[str, list[InstalledDependency]] = {}
    for dep in dependencies:
        groups.setdefault(dep.id, []).append(dep)
    packages = [
        from_installed_dependency(
            deps[0], latest.get(key), _distinct(d.module for d in deps)
        )
        for key, deps in groups.items()
    ]

    plugin_latest = _latest_map(plugin_updates)
    plugin_groups: dict[str, list[InstalledPlugin]] = {}
    for plugin in plugins:
        plugin_groups.setdefault(plugin.plugin_id, []).append(plugin)
    packages.extend(
        from_installed_plugin(
            entries[0], plugin_latest.get(key), _distinct(p.module for p in entries)
        )
        for key, entries in plugin_groups.items()
    )

    maven_latest = _latest_map(maven_plugin_updates)
    maven_groups: dict[str, list[MavenPlugin]] = {}
    for maven_plugin in maven_plugins:
        maven_groups.setdefault(maven_plugin.id, []).append(maven_plugin)
    packages.extend(
        from_maven_plugin(entries[0], maven_latest.get(key), _distinct(p.module for p in entries))
        for key, entries in maven_groups.items()
    )
    return packages


# ── search results ─────────────────────────────────────────────────────────


def from_central_doc(doc: CentralDoc) -> UnifiedPackage:
    return UnifiedPackage(
        name=doc.artifact_id,
        publisher=doc.group_id,
        installed_version=None,
        latest_version=doc.best_version,
        source=PackageSource.MAVEN_CENTRAL,
        metadata=CentralSearchMetadata(
            packaging=doc.packaging,
            timestamp=doc.timestamp,
            extensions=tuple(doc.extensions),
        ),
    )


def from_registry_package(hit: RegistryObject) -> UnifiedPackage:
    pkg = hit.package
    publisher = pkg.publisher
    return UnifiedPackage(
        name=pkg.package_name,
        publisher=publisher.username if publisher and publisher.username else "Unknown",
        installed_version=None,
        latest_version=pkg.version,
        source=PackageSource.NPM,
        metadata=PackageRegistryMetadata(
            monthly_downloads=hit.downloads.monthly,
            weekly_downloads=hit.downloads.weekly,
            publisher_email=publisher.email if publisher else None,
            publisher_username=publisher.username if publisher else None,
            dependents=hit.dependents,
        ),
        description=pkg.description or None,
        license=pkg.license or None,
    )


def from_plugin_portal(info: PortalPluginInfo) -> UnifiedPackage:
    publisher, name = plugin_publisher(info.plugin_id)
    return UnifiedPackage(
        name=name,
        publisher=publisher,
        installed_version=None,
        latest_version=info.latest_version,
        source=PackageSource.GRADLE_PLUGIN,
        metadata=PluginPortalMetadata(portal_url=info.portal_url, website=info.website),
        scope=PLUGIN_SCOPE,
        description=info.description,
        homepage=info.website or info.portal_url,
    )


def merge_with_installed(
    search_result: UnifiedPackage,
    installed: InstalledDependency,
    modules: Sequence[str] | None = None,
) -> UnifiedPackage:
    """Overlay an installed record onto a search hit for the same package.

    Registry-specific metadata is kept; anything else is replaced by the
    installed record's location so the result stays editable.
    """
    local = from_installed_dependency(installed, modules=modules)
    keep_metadata = isinstance(
        search_result.metadata, (CentralSearchMetadata, PackageRegistryMetadata)
    )
    return replace(
        search_result,
        installed_version=installed.version,
        scope=installed.configuration,
        modules=local.modules,
        source=search_result.source if keep_metadata else local.source,
        metadata=search_result.metadata if keep_metadata else local.metadata,
    )

