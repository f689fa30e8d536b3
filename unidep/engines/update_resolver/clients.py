"""Blocking HTTP clients for the upstream registries.

Every client raises :class:`UpstreamUnavailableError` for timeouts, transport
errors, non-2xx responses and payloads it cannot parse. A definite "not
found" is reported as ``None`` instead.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any

import httpx
import pydantic
import structlog
from bs4 import BeautifulSoup

from unidep import __version__
from unidep.core.config import (
    DEFAULT_CENTRAL_SEARCH_URL,
    DEFAULT_PACKAGE_REGISTRY_URL,
    DEFAULT_PLUGIN_PORTAL_URL,
)
from unidep.engines.dependency_scanner.models import Coordinate
from unidep.engines.dependency_scanner.pom import child, child_text, children
from unidep.engines.update_resolver.schemas import (
    CentralDoc,
    CentralSearchResponse,
    RegistryObject,
    RegistrySearchResult,
)
from unidep.engines.update_resolver.versions import latest_of
from unidep.exceptions import UpstreamUnavailableError

log = structlog.get_logger("unidep.resolver")

USER_AGENT = f"unidep/{__version__} (+https://github.com/unidep/unidep)"

_DEFAULT_TIMEOUT = 10.0

_USAGE_VERSION_RE = re.compile(r"""version\s*["']([^"']+)["']""")
_META_VERSION_RE = re.compile(r"version\s+(\S+)")


class _HttpClient:
    """Shared lifecycle and error mapping for the registry clients."""

    def __init__(
        self,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── internal ───────────────────────────────────────────────────────────

    def _send(
        self, url: str, params: dict[str, Any] | None, auth: tuple[str, str] | None
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {"params": params}
        if auth is not None:
            kwargs["auth"] = auth
        try:
            return self._client.get(url, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailableError(url, "timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(url, str(exc) or type(exc).__name__) from exc

    @staticmethod
    def _check(url: str, resp: httpx.Response) -> httpx.Response:
        if not 200 <= resp.status_code < 300:
            raise UpstreamUnavailableError(url, f"HTTP {resp.status_code}")
        return resp

    def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET *url*; any non-2xx status is an :class:`UpstreamUnavailableError`."""
        return self._check(url, self._send(url, params, None))

    def _find(self, url: str, *, auth: tuple[str, str] | None = None) -> httpx.Response | None:
        """Like :meth:`_get`, but a 404 means "not found" and returns ``None``."""
        resp = self._send(url, None, auth)
        if resp.status_code == 404:
            return None
        return self._check(url, resp)

    @staticmethod
    def _json(url: str, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamUnavailableError(url, "malformed JSON payload") from exc


# ── central search ─────────────────────────────────────────────────────────


class MavenCentralClient(_HttpClient):
    """Client for the central artifact search API."""

    def __init__(self, base_url: str = DEFAULT_CENTRAL_SEARCH_URL, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url

    def latest_version(self, coordinate: Coordinate) -> str | None:
        """Latest version of *coordinate* (``latestVersion`` preferred, then ``v``)."""
        docs = self._select(
            {"q": f'g:"{coordinate.group}" AND a:"{coordinate.artifact}"', "rows": 1}
        )
        return docs[0].best_version if docs else None

    def search(self, keyword: str, *, rows: int = 20) -> list[CentralDoc]:
        return self._select({"q": keyword, "rows": rows})

    def _select(self, params: dict[str, Any]) -> list[CentralDoc]:
        resp = self._get(self.base_url, {**params, "wt": "json"})
        payload = self._json(self.base_url, resp)
        try:
            return CentralSearchResponse.model_validate(payload).response.docs
        except pydantic.ValidationError as exc:
            raise UpstreamUnavailableError(self.base_url, "unexpected search payload") from exc


# ── repository metadata ────────────────────────────────────────────────────


def metadata_url(repository: str, coordinate: Coordinate) -> str:
    group_path = coordinate.group.replace(".", "/")
    return f"{repository.rstrip('/')}/{group_path}/{coordinate.artifact}/maven-metadata.xml"


def parse_metadata_version(xml_text: str) -> str | None:
    """``<release>`` then ``<latest>`` then the highest listed ``<version>``."""
    root = ET.fromstring(xml_text)
    versioning = child(root, "versioning")
    if versioning is None:
        return None
    for tag in ("release", "latest"):
        value = child_text(versioning, tag)
        if value:
            return value
    versions_el = child(versioning, "versions")
    if versions_el is None:
        return None
    listed = [(v.text or "").strip() for v in children(versions_el, "version")]
    return latest_of([v for v in listed if v])


class RepositoryMetadataClient(_HttpClient):
    """Reads ``maven-metadata.xml`` from a Maven-layout repository."""

    def latest_version(
        self,
        repository: str,
        coordinate: Coordinate,
        *,
        auth: tuple[str, str] | None = None,
    ) -> str | None:
        url = metadata_url(repository, coordinate)
        resp = self._find(url, auth=auth)
        if resp is None:
            return None
        try:
            return parse_metadata_version(resp.text)
        except ET.ParseError as exc:
            raise UpstreamUnavailableError(url, "malformed maven-metadata.xml") from exc


# ── plugin portal ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PortalPluginInfo:
    plugin_id: str
    latest_version: str | None
    description: str | None
    website: str | None
    portal_url: str


def extract_portal_version(soup: BeautifulSoup) -> str | None:
    """Try the portal page layouts in order; first non-blank wins."""
    badge = soup.select_one(".version-info .latest-version")
    if badge is not None and badge.get_text(strip=True):
        return badge.get_text(strip=True)

    header = soup.select_one("h3.version")
    if header is not None:
        text = header.get_text(strip=True).removeprefix("Version ").strip()
        if text:
            return text

    usage = " ".join(code.get_text() for code in soup.select("pre code.kotlin, pre code.groovy"))
    match = _USAGE_VERSION_RE.search(usage)
    if match:
        return match.group(1).strip()

    meta = soup.select_one("meta[name=description]")
    if meta is not None:
        match = _META_VERSION_RE.search(meta.get("content", ""))
        if match:
            return match.group(1).strip()
    return None


class PluginPortalClient(_HttpClient):
    """Scrapes plugin pages of the Gradle plugin portal."""

    def __init__(self, base_url: str = DEFAULT_PLUGIN_PORTAL_URL, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    def page_url(self, plugin_id: str) -> str:
        return f"{self.base_url}/{plugin_id}"

    def latest_version(self, plugin_id: str) -> str | None:
        soup = self._page(plugin_id)
        return extract_portal_version(soup) if soup is not None else None

    def portal_info(self, plugin_id: str) -> PortalPluginInfo | None:
        soup = self._page(plugin_id)
        if soup is None:
            return None
        meta = soup.select_one("meta[name=description]")
        description = meta.get("content", "").strip() if meta is not None else ""
        link = soup.select_one("a[href*='github.com'], a[href*='gitlab.com']")
        return PortalPluginInfo(
            plugin_id=plugin_id,
            latest_version=extract_portal_version(soup),
            description=description or None,
            website=link.get("href") if link is not None else None,
            portal_url=self.page_url(plugin_id),
        )

    def _page(self, plugin_id: str) -> BeautifulSoup | None:
        resp = self._find(self.page_url(plugin_id))
        if resp is None:
            return None
        return BeautifulSoup(resp.text, "html.parser")


# ── package registry ───────────────────────────────────────────────────────


class PackageRegistryClient(_HttpClient):
    """Keyword search against the npm package registry."""

    def __init__(self, base_url: str = DEFAULT_PACKAGE_REGISTRY_URL, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url

    def search(self, keyword: str, *, size: int = 20) -> list[RegistryObject]:
        resp = self._get(self.base_url, {"text": keyword, "size": size})
        payload = self._json(self.base_url, resp)
        try:
            return RegistrySearchResult.model_validate(payload).objects
        except pydantic.ValidationError as exc:
            raise UpstreamUnavailableError(self.base_url, "unexpected search payload") from exc
