"""Data models for the dependency scanner engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

MANAGED_VERSION = "managed"

DIALECT_GROOVY = "groovy"
DIALECT_KOTLIN = "kotlin"
DIALECT_MAVEN = "maven"

KOTLIN_PLUGIN_PREFIX = "org.jetbrains.kotlin."

DEFAULT_MAVEN_PLUGIN_GROUP = "org.apache.maven.plugins"


@dataclass(frozen=True)
class Coordinate:
    """A ``group:artifact`` pair identifying a library, case-sensitive."""

    group: str
    artifact: str

    @classmethod
    def parse(cls, value: str) -> Coordinate:
        parts = value.strip().split(":")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise ValueError(f"expected 'group:artifact', got {value!r}")
        return cls(parts[0], parts[1])

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}"


@dataclass(frozen=True)
class SourceRange:
    """Character span of a declaration inside one build file."""

    file_path: str
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def is_valid_for(self, text: str) -> bool:
        return 0 <= self.offset and self.length >= 0 and self.end <= len(text)

    def slice(self, text: str) -> str:
        return text[self.offset : self.end]


@dataclass(frozen=True)
class DependencyExclusion:
    """An excluded transitive dependency; ``artifact_id=None`` excludes the whole group."""

    group_id: str
    artifact_id: str | None = None

    @classmethod
    def parse(cls, value: str) -> DependencyExclusion:
        group, _, artifact = value.strip().partition(":")
        if not group:
            raise ValueError(f"expected 'group[:artifact]', got {value!r}")
        return cls(group, artifact if artifact and artifact != "*" else None)

    @property
    def id(self) -> str:
        return f"{self.group_id}:{self.artifact_id}" if self.artifact_id else self.group_id

    @property
    def display_name(self) -> str:
        return f"{self.group_id}:{self.artifact_id or '*'}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyExclusion):
            return NotImplemented
        return self.display_name == other.display_name

    def __hash__(self) -> int:
        return hash(self.display_name)


@dataclass(frozen=True)
class InstalledDependency:
    """A library declaration found in a build file."""

    coordinate: Coordinate
    version: str
    configuration: str
    module: str
    source: SourceRange
    dialect: str
    is_from_version_catalog: bool = False
    catalog_key: str | None = None
    exclusions: tuple[DependencyExclusion, ...] = ()
    optional: bool = False

    @property
    def id(self) -> str:
        return str(self.coordinate)

    @property
    def full_name(self) -> str:
        return f"{self.coordinate}:{self.version}"

    @property
    def is_version_managed(self) -> bool:
        return self.version == MANAGED_VERSION


class PluginSyntax(enum.Enum):
    """How a plugin entry is spelled in the build file."""

    ID_VERSION = "id_version"  # id("x") version "v"
    ID_ONLY = "id_only"  # id("x")
    KOTLIN_SHORTHAND = "kotlin_shorthand"  # kotlin("jvm") version "v"
    BACKTICK = "backtick"  # `java-library`
    KOTLIN_ACCESSOR = "kotlin_accessor"  # java, application
    GROOVY_ID_VERSION = "groovy_id_version"  # id 'x' version 'v'
    GROOVY_ID_ONLY = "groovy_id_only"  # id 'x'
    GROOVY_SHORTHAND = "groovy_shorthand"  # java
    CATALOG_ALIAS = "catalog_alias"  # alias(libs.plugins.x)
    LEGACY_APPLY = "legacy_apply"  # apply plugin: 'x'


@dataclass(frozen=True)
class InstalledPlugin:
    """A plugin entry from a ``plugins {}`` block or a legacy ``apply`` statement."""

    plugin_id: str
    version: str | None
    module: str
    source: SourceRange
    syntax: PluginSyntax
    is_applied: bool = True
    catalog_key: str | None = None

    @property
    def id(self) -> str:
        return self.plugin_id

    @property
    def is_kotlin_shorthand(self) -> bool:
        return self.syntax is PluginSyntax.KOTLIN_SHORTHAND

    @property
    def display_name(self) -> str:
        if self.is_kotlin_shorthand and self.plugin_id.startswith(KOTLIN_PLUGIN_PREFIX):
            return self.plugin_id[len(KOTLIN_PLUGIN_PREFIX) :]
        return self.plugin_id


@dataclass(frozen=True)
class MavenPlugin:
    """A ``<plugin>`` under ``<build><plugins>`` or ``<build><pluginManagement>`` of a POM."""

    coordinate: Coordinate
    version: str | None
    module: str
    source: SourceRange
    is_from_plugin_management: bool = False
    inherited: bool = True
    phase: str | None = None
    goals: tuple[str, ...] = ()
    configuration: tuple[tuple[str, str], ...] = ()

    @property
    def id(self) -> str:
        return str(self.coordinate)

    @property
    def full_name(self) -> str:
        return f"{self.coordinate}:{self.version}" if self.version else self.id

    @property
    def is_default_group(self) -> bool:
        return self.coordinate.group == DEFAULT_MAVEN_PLUGIN_GROUP


@dataclass(frozen=True)
class ScanWarning:
    """A non-fatal problem found while scanning one file."""

    file_path: str
    reason: str


@dataclass
class FileScan:
    """Everything one parser extracted from one build file."""

    dependencies: list[InstalledDependency] = field(default_factory=list)
    plugins: list[InstalledPlugin] = field(default_factory=list)
    maven_plugins: list[MavenPlugin] = field(default_factory=list)
    repositories: list[str] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)


@dataclass
class ScanResult:
    """Result of scanning a whole project tree."""

    dependencies: list[InstalledDependency] = field(default_factory=list)
    plugins: list[InstalledPlugin] = field(default_factory=list)
    maven_plugins: list[MavenPlugin] = field(default_factory=list)
    repositories: list[str] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
