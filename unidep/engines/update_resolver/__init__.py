"""Update resolver engine — latest versions from central search, repositories and portals."""

from unidep.engines.update_resolver.cache import MISSING, TTLCache
from unidep.engines.update_resolver.clients import (
    MavenCentralClient,
    PackageRegistryClient,
    PluginPortalClient,
    PortalPluginInfo,
    RepositoryMetadataClient,
)
from unidep.engines.update_resolver.models import DependencyUpdate, MavenPluginUpdate, PluginUpdate
from unidep.engines.update_resolver.resolver import UpdateResolver
from unidep.engines.update_resolver.versions import compare_versions, is_newer, is_prerelease

__all__ = [
    "MISSING",
    "DependencyUpdate",
    "MavenCentralClient",
    "MavenPluginUpdate",
    "PackageRegistryClient",
    "PluginPortalClient",
    "PluginUpdate",
    "PortalPluginInfo",
    "RepositoryMetadataClient",
    "TTLCache",
    "UpdateResolver",
    "compare_versions",
    "is_newer",
    "is_prerelease",
]
