"""Update records produced by the resolver."""

from __future__ import annotations

from dataclasses import dataclass

from unidep.engines.dependency_scanner.models import InstalledDependency, InstalledPlugin, MavenPlugin
from unidep.engines.update_resolver.versions import is_newer


@dataclass(frozen=True)
class DependencyUpdate:
    installed: InstalledDependency
    latest_version: str

    @property
    def id(self) -> str:
        return self.installed.id

    @property
    def has_update(self) -> bool:
        return is_newer(self.latest_version, self.installed.version)


@dataclass(frozen=True)
class PluginUpdate:
    installed: InstalledPlugin
    latest_version: str

    @property
    def id(self) -> str:
        return self.installed.plugin_id

    @property
    def has_update(self) -> bool:
        current = self.installed.version
        return current is not None and is_newer(self.latest_version, current)


@dataclass(frozen=True)
class MavenPluginUpdate:
    installed: MavenPlugin
    latest_version: str

    @property
    def id(self) -> str:
        return self.installed.id

    @property
    def has_update(self) -> bool:
        current = self.installed.version
        return current is not None and is_newer(self.latest_version, current)
