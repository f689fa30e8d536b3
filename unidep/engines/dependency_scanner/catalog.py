"""Gradle version catalog (``gradle/libs.versions.toml``) loader."""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from unidep.engines.dependency_scanner.models import MANAGED_VERSION, Coordinate

log = structlog.get_logger("unidep.scanner")

CATALOG_RELATIVE_PATH = Path("gradle") / "libs.versions.toml"
CATALOG_NAME = "libs"

_ACCESSOR_SEPARATORS = re.compile(r"[-_.]")


def accessor_for(alias: str, table: str | None = None) -> str:
    """Build the ``libs.x.y`` accessor Gradle generates for *alias*.

    ``-``, ``_`` and ``.`` in an alias all become ``.`` in the accessor.
    """
    parts = [CATALOG_NAME]
    if table:
        parts.append(table)
    parts.extend(p for p in _ACCESSOR_SEPARATORS.split(alias) if p)
    return ".".join(parts)


@dataclass(frozen=True)
class CatalogLibrary:
    alias: str
    coordinate: Coordinate
    version: str

    @property
    def accessor(self) -> str:
        return accessor_for(self.alias)


@dataclass(frozen=True)
class CatalogPlugin:
    alias: str
    plugin_id: str
    version: str | None

    @property
    def accessor(self) -> str:
        return accessor_for(self.alias, "plugins")


@dataclass
class VersionCatalog:
    path: str
    libraries: dict[str, CatalogLibrary] = field(default_factory=dict)
    plugins: dict[str, CatalogPlugin] = field(default_factory=dict)

    def library(self, accessor: str) -> CatalogLibrary | None:
        return self.libraries.get(accessor)

    def plugin(self, accessor: str) -> CatalogPlugin | None:
        return self.plugins.get(accessor)


def _resolve_version(value: object, versions: dict[str, object]) -> str | None:
    """Return a literal version, ``None`` when absent, MANAGED_VERSION for rich versions."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        ref = value.get("ref")
        if isinstance(ref, str):
            return _resolve_version(versions.get(ref, MANAGED_VERSION), versions)
    return MANAGED_VERSION


def _parse_library(alias: str, entry: object, versions: dict[str, object]) -> CatalogLibrary | None:
    if isinstance(entry, str):
        parts = entry.split(":")
        if len(parts) < 2:
            return None
        version = parts[2] if len(parts) > 2 and parts[2] else MANAGED_VERSION
        return CatalogLibrary(alias, Coordinate(parts[0], parts[1]), version)
    if not isinstance(entry, dict):
        return None
    module = entry.get("module")
    if isinstance(module, str) and ":" in module:
        group, _, artifact = module.partition(":")
    else:
        group, artifact = entry.get("group"), entry.get("name")
        if not isinstance(group, str) or not isinstance(artifact, str):
            return None
    version = _resolve_version(entry.get("version"), versions)
    return CatalogLibrary(alias, Coordinate(group, artifact), version or MANAGED_VERSION)


def _parse_plugin(alias: str, entry: object, versions: dict[str, object]) -> CatalogPlugin | None:
    if isinstance(entry, str):
        plugin_id, _, version = entry.partition(":")
        return CatalogPlugin(alias, plugin_id, version or None)
    if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
        return None
    version = _resolve_version(entry.get("version"), versions)
    if version == MANAGED_VERSION:
        version = None
    return CatalogPlugin(alias, entry["id"], version)


def parse_catalog(path: str, content: str) -> VersionCatalog:
    """Parse catalog TOML text. Raises ``tomllib.TOMLDecodeError`` on bad input."""
    data = tomllib.loads(content)
    versions = data.get("versions", {})
    if not isinstance(versions, dict):
        versions = {}
    catalog = VersionCatalog(path=path)
    for alias, entry in (data.get("libraries") or {}).items():
        lib = _parse_library(alias, entry, versions)
        if lib is not None:
            catalog.libraries[lib.accessor] = lib
    for alias, entry in (data.get("plugins") or {}).items():
        plugin = _parse_plugin(alias, entry, versions)
        if plugin is not None:
            catalog.plugins[plugin.accessor] = plugin
    return catalog


def find_catalog(start: Path, root: Path | None = None) -> Path | None:
    """Search upward from *start* (a build file or directory) for the catalog.

    The search stops at *root* when given, otherwise at the filesystem root.
    """
    current = start if start.is_dir() else start.parent
    current = current.resolve()
    stop = root.resolve() if root is not None else None
    while True:
        candidate = current / CATALOG_RELATIVE_PATH
        if candidate.is_file():
            return candidate
        if current == stop or current.parent == current:
            return None
        current = current.parent


def read_catalog(path: Path) -> VersionCatalog | None:
    """Parse the catalog at *path*; unreadable or invalid files yield ``None``."""
    try:
        return parse_catalog(str(path), path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        log.warning("scanner.catalog_unreadable", file=str(path), error=str(exc))
        return None
