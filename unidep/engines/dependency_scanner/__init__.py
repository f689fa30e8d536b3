"""Dependency scanner engine — index declarations in Gradle and Maven build files."""

from unidep.engines.dependency_scanner.models import (
    DEFAULT_MAVEN_PLUGIN_GROUP,
    MANAGED_VERSION,
    Coordinate,
    DependencyExclusion,
    FileScan,
    InstalledDependency,
    InstalledPlugin,
    MavenPlugin,
    PluginSyntax,
    ScanResult,
    ScanWarning,
    SourceRange,
)
from unidep.engines.dependency_scanner.scanner import (
    get_module_build_files,
    scan,
    scan_file,
    scan_installed_dependencies,
    scan_project,
)

__all__ = [
    "DEFAULT_MAVEN_PLUGIN_GROUP",
    "MANAGED_VERSION",
    "Coordinate",
    "DependencyExclusion",
    "FileScan",
    "InstalledDependency",
    "InstalledPlugin",
    "MavenPlugin",
    "PluginSyntax",
    "ScanResult",
    "ScanWarning",
    "SourceRange",
    "get_module_build_files",
    "scan",
    "scan_file",
    "scan_installed_dependencies",
    "scan_project",
]
