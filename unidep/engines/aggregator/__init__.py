"""Aggregator engine — one unified package per coordinate across modules and sources."""

from unidep.engines.aggregator.adapters import (
    aggregate,
    from_central_doc,
    from_installed_dependency,
    from_installed_plugin,
    from_maven_plugin,
    from_plugin_portal,
    from_registry_package,
    merge_with_installed,
)
from unidep.engines.aggregator.models import (
    CentralSearchMetadata,
    NoMetadata,
    PackageMetadata,
    PackageRegistryMetadata,
    PackageSource,
    PluginPortalMetadata,
    PluginScriptMetadata,
    ScriptMetadata,
    UnifiedPackage,
    VulnerabilityInfo,
    VulnerabilitySeverity,
    XmlMetadata,
    XmlPluginMetadata,
)

__all__ = [
    "CentralSearchMetadata",
    "NoMetadata",
    "PackageMetadata",
    "PackageRegistryMetadata",
    "PackageSource",
    "PluginPortalMetadata",
    "PluginScriptMetadata",
    "ScriptMetadata",
    "UnifiedPackage",
    "VulnerabilityInfo",
    "VulnerabilitySeverity",
    "XmlMetadata",
    "XmlPluginMetadata",
    "aggregate",
    "from_central_doc",
    "from_installed_dependency",
    "from_installed_plugin",
    "from_maven_plugin",
    "from_plugin_portal",
    "from_registry_package",
    "merge_with_installed",
]
