"""Discover project-configured artifact repositories.

The update resolver queries these, in declaration order, before the public
fallback repository. ``mavenLocal()`` and non-HTTP URLs are ignored.

Repositories and mirrors from the user's Maven ``settings.xml`` are read as
well, together with the ``<servers>`` credentials matched to them by id.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

import structlog

from unidep.core.files import read_text
from unidep.engines.dependency_scanner.blocks import (
    MaskedText,
    match_brace,
    statement_starts,
    top_level_blocks,
)
from unidep.engines.dependency_scanner.pom import child, child_text, children

log = structlog.get_logger("unidep.scanner")

MAVEN_CENTRAL_URL = "https://repo.maven.apache.org/maven2"
GOOGLE_URL = "https://dl.google.com/dl/android/maven2"
GRADLE_PLUGIN_PORTAL_URL = "https://plugins.gradle.org/m2"

_SHORTCUTS = {
    "mavenCentral": MAVEN_CENTRAL_URL,
    "google": GOOGLE_URL,
    "gradlePluginPortal": GRADLE_PLUGIN_PORTAL_URL,
}

_SHORTCUT_RE = re.compile(r"(?P<name>mavenCentral|google|gradlePluginPortal)\s*\(\s*\)")

# maven("https://...") / maven(url = "https://...") / maven(uri("https://..."))
_MAVEN_CALL_RE = re.compile(
    r"maven\s*\(\s*(?:url\s*=\s*)?(?:uri\s*\(\s*)?(?P<q>['\"])(?P<url>[^'\"\r\n]+)(?P=q)"
)

_MAVEN_BLOCK_RE = re.compile(r"maven\s*\{")

# url 'https://...' / url = uri("https://...") / setUrl("https://...")
_URL_RE = re.compile(
    r"(?:url\s*=?\s*\(?\s*|setUrl\s*\(\s*)(?:uri\s*\(\s*)?(?P<q>['\"])(?P<url>[^'\"\r\n]+)(?P=q)"
)


def normalize_url(url: str) -> str:
    return url.strip().rstrip("/")


def _is_remote(url: str) -> bool:
    return url.startswith(("http://", "https://")) and "$" not in url


def _append(found: list[str], url: str) -> None:
    url = normalize_url(url)
    if _is_remote(url) and url not in found:
        found.append(url)


def script_repositories(masked: MaskedText) -> list[str]:
    """Repository URLs from the top-level ``repositories {}`` blocks of a script."""
    text, code = masked.text, masked.code
    found: list[str] = []
    for block in top_level_blocks(masked, "repositories"):
        end = block.body_end(masked)
        for pos in statement_starts(code, block.body_start, end):
            m = _SHORTCUT_RE.match(text, pos, end)
            if m is not None:
                _append(found, _SHORTCUTS[m.group("name")])
                continue
            m = _MAVEN_CALL_RE.match(text, pos, end)
            if m is not None:
                _append(found, m.group("url"))
                continue
            m = _MAVEN_BLOCK_RE.match(code, pos, end)
            if m is None:
                continue
            close = match_brace(code, m.end() - 1, end)
            if close < 0:
                continue
            for url_match in _URL_RE.finditer(text, m.end(), close):
                if code[url_match.start()] == text[url_match.start()]:
                    _append(found, url_match.group("url"))
                    break
    return found


def pom_repositories(root: ET.Element) -> list[str]:
    """Repository URLs from the root-level ``<repositories>`` of a POM."""
    found: list[str] = []
    for repo in children(child(root, "repositories"), "repository"):
        url = child_text(repo, "url")
        if url:
            _append(found, url)
    return found


# ── Maven settings.xml ───────────────────────────────────────────────────


@dataclass(frozen=True)
class RepositoryConfig:
    """A repository or mirror declared in ``settings.xml``."""

    id: str
    url: str
    name: str
    mirror_of: str | None = None
    username: str | None = None
    password: str | None = None

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username is None and self.password is None:
            return None
        return (self.username or "", self.password or "")


def _servers(root: ET.Element) -> dict[str, tuple[str, str]]:
    credentials: dict[str, tuple[str, str]] = {}
    for server in children(child(root, "servers"), "server"):
        server_id = child_text(server, "id")
        if not server_id:
            continue
        username = child_text(server, "username") or ""
        password = child_text(server, "password") or ""
        if password.startswith("{") and password.endswith("}"):
            log.warning("repositories.encrypted_password", server=server_id)
            password = ""
        if username or password:
            credentials[server_id] = (username, password)
    return credentials


def _config(
    element: ET.Element,
    fallback_id: str,
    credentials: dict[str, tuple[str, str]],
    mirror_of: str | None = None,
) -> RepositoryConfig | None:
    url = normalize_url(child_text(element, "url") or "")
    if not _is_remote(url):
        return None
    repo_id = child_text(element, "id") or fallback_id
    username, password = credentials.get(repo_id, (None, None))
    return RepositoryConfig(
        id=repo_id,
        url=url,
        name=child_text(element, "name") or repo_id,
        mirror_of=mirror_of,
        username=username,
        password=password,
    )


def settings_repositories(content: str) -> list[RepositoryConfig]:
    """Profile repositories, then mirrors, from a ``settings.xml`` document.

    Raises :class:`xml.etree.ElementTree.ParseError` for malformed XML.
    """
    root = ET.fromstring(content)
    credentials = _servers(root)
    found: list[RepositoryConfig] = []
    seen: set[str] = set()

    def add(config: RepositoryConfig | None) -> None:
        if config is not None and config.url not in seen:
            seen.add(config.url)
            found.append(config)

    for profile in children(child(root, "profiles"), "profile"):
        for index, repo in enumerate(children(child(profile, "repositories"), "repository")):
            add(_config(repo, f"repo-{index}", credentials))
    for index, mirror in enumerate(children(child(root, "mirrors"), "mirror")):
        add(_config(mirror, f"mirror-{index}", credentials, child_text(mirror, "mirrorOf")))
    return found


def read_settings_repositories(path: str | Path | None) -> list[RepositoryConfig]:
    """Like :func:`settings_repositories`; a missing or broken file yields ``[]``."""
    if path is None:
        return []
    path = Path(path)
    if not path.is_file():
        return []
    try:
        found = settings_repositories(read_text(path))
    except (OSError, ET.ParseError) as exc:
        log.warning("repositories.settings_unreadable", path=str(path), error=str(exc))
        return []
    log.debug("repositories.settings_loaded", path=str(path), repositories=len(found))
    return found
