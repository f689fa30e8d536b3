"""Unified package view shared by installed records and search results.

Source-specific details travel in exactly one of the frozen metadata
variants below; consumers dispatch on the variant type.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from unidep.engines.dependency_scanner.models import PluginSyntax
from unidep.engines.update_resolver.versions import is_newer, is_prerelease


class PackageSource(enum.Enum):
    GRADLE_INSTALLED = "gradle_installed"
    MAVEN_INSTALLED = "maven_installed"
    GRADLE_PLUGIN_INSTALLED = "gradle_plugin_installed"
    MAVEN_PLUGIN_INSTALLED = "maven_plugin_installed"
    MAVEN_CENTRAL = "maven_central"
    GRADLE_PLUGIN = "gradle_plugin"
    NPM = "npm"


class VulnerabilitySeverity(enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class VulnerabilityInfo:
    severity: VulnerabilitySeverity = VulnerabilitySeverity.UNKNOWN
    cve_id: str | None = None
    description: str | None = None
    affected_versions: str | None = None
    fixed_version: str | None = None
    advisory_url: str | None = None


# ── metadata variants ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScriptMetadata:
    """A declaration in a Gradle build script."""

    build_file: str
    offset: int
    length: int
    configuration: str
    is_from_version_catalog: bool = False
    catalog_key: str | None = None


@dataclass(frozen=True)
class PluginScriptMetadata:
    """A plugin entry in a Gradle build script."""

    build_file: str
    offset: int
    length: int
    syntax: PluginSyntax
    is_kotlin_shorthand: bool
    is_applied: bool


@dataclass(frozen=True)
class XmlMetadata:
    """A ``<dependency>`` in a POM."""

    pom_file: str
    offset: int
    length: int
    scope: str
    optional: bool = False


@dataclass(frozen=True)
class XmlPluginMetadata:
    """A ``<plugin>`` under ``<build>`` in a POM."""

    pom_file: str
    offset: int
    length: int
    is_from_plugin_management: bool = False
    phase: str | None = None
    goals: tuple[str, ...] = ()


@dataclass(frozen=True)
class CentralSearchMetadata:
    packaging: str | None = None
    timestamp: int | None = None
    extensions: tuple[str, ...] = ()


@dataclass(frozen=True)
class PluginPortalMetadata:
    portal_url: str
    website: str | None = None


@dataclass(frozen=True)
class PackageRegistryMetadata:
    monthly_downloads: int | None = None
    weekly_downloads: int | None = None
    publisher_email: str | None = None
    publisher_username: str | None = None
    dependents: int | None = None


@dataclass(frozen=True)
class NoMetadata:
    pass


PackageMetadata = (
    ScriptMetadata
    | PluginScriptMetadata
    | XmlMetadata
    | XmlPluginMetadata
    | CentralSearchMetadata
    | PluginPortalMetadata
    | PackageRegistryMetadata
    | NoMetadata
)


# ── unified package ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class UnifiedPackage:
    """One package (``publisher:name``) across every module that declares it."""

    name: str
    publisher: str
    installed_version: str | None
    latest_version: str | None
    source: PackageSource
    metadata: PackageMetadata = field(default_factory=NoMetadata)
    scope: str | None = None
    modules: tuple[str, ...] = ()
    description: str | None = None
    homepage: str | None = None
    license: str | None = None
    is_transitive: bool = False
    is_deprecated: bool = False
    deprecation_message: str | None = None
    vulnerability: VulnerabilityInfo | None = None

    @property
    def id(self) -> str:
        return f"{self.publisher}:{self.name}"

    @property
    def has_update(self) -> bool:
        if self.installed_version is None or self.latest_version is None:
            return False
        return is_newer(self.latest_version, self.installed_version)

    @property
    def is_installed(self) -> bool:
        return self.installed_version is not None

    @property
    def is_vulnerable(self) -> bool:
        return self.vulnerability is not None

    @property
    def is_prerelease(self) -> bool:
        version = self.installed_version or self.latest_version
        return version is not None and is_prerelease(version)
