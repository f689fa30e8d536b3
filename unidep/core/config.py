"""Runtime settings read from ``UNIDEP_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CENTRAL_SEARCH_URL = "https://search.maven.org/solrsearch/select"
DEFAULT_FALLBACK_REPOSITORY = "https://repo1.maven.org/maven2"
DEFAULT_PLUGIN_PORTAL_URL = "https://plugins.gradle.org/plugin"
DEFAULT_PACKAGE_REGISTRY_URL = "https://registry.npmjs.com/-/v1/search"


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def _env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


def _maven_settings_path() -> str | None:
    """``UNIDEP_MAVEN_SETTINGS``, else the user's then the installation's ``settings.xml``."""
    explicit = os.environ.get("UNIDEP_MAVEN_SETTINGS")
    if explicit is not None:
        return explicit or None
    candidates = [Path.home() / ".m2" / "settings.xml"]
    m2_home = os.environ.get("M2_HOME")
    if m2_home:
        candidates.append(Path(m2_home) / "conf" / "settings.xml")
    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)
    return None


@dataclass(frozen=True)
class Settings:
    http_timeout: float = 10.0
    version_cache_ttl: float = 3600.0
    search_cache_ttl: float = 300.0
    max_workers: int = 8
    central_search_url: str = DEFAULT_CENTRAL_SEARCH_URL
    fallback_repository: str = DEFAULT_FALLBACK_REPOSITORY
    plugin_portal_url: str = DEFAULT_PLUGIN_PORTAL_URL
    package_registry_url: str = DEFAULT_PACKAGE_REGISTRY_URL
    maven_settings: str | None = None
    log_level: str = "INFO"
    log_format: str = "console"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            http_timeout=_env_float("UNIDEP_HTTP_TIMEOUT", 10.0),
            version_cache_ttl=_env_float("UNIDEP_VERSION_CACHE_TTL", 3600.0),
            search_cache_ttl=_env_float("UNIDEP_SEARCH_CACHE_TTL", 300.0),
            max_workers=max(1, _env_int("UNIDEP_MAX_WORKERS", 8)),
            central_search_url=os.environ.get(
                "UNIDEP_CENTRAL_SEARCH_URL", DEFAULT_CENTRAL_SEARCH_URL
            ),
            fallback_repository=os.environ.get(
                "UNIDEP_FALLBACK_REPOSITORY", DEFAULT_FALLBACK_REPOSITORY
            ).rstrip("/"),
            plugin_portal_url=os.environ.get(
                "UNIDEP_PLUGIN_PORTAL_URL", DEFAULT_PLUGIN_PORTAL_URL
            ).rstrip("/"),
            package_registry_url=os.environ.get(
                "UNIDEP_PACKAGE_REGISTRY_URL", DEFAULT_PACKAGE_REGISTRY_URL
            ),
            maven_settings=_maven_settings_path(),
            log_level=os.environ.get("UNIDEP_LOG_LEVEL", "INFO").upper(),
            log_format=os.environ.get("UNIDEP_LOG_FORMAT", "console"),
        )
