"""Tests for the registry HTTP clients (no network required)."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest
from bs4 import BeautifulSoup

from unidep.engines.dependency_scanner.models import Coordinate
from unidep.engines.update_resolver.clients import (
    MavenCentralClient,
    PackageRegistryClient,
    PluginPortalClient,
    RepositoryMetadataClient,
    extract_portal_version,
    metadata_url,
    parse_metadata_version,
)
from unidep.exceptions import UpstreamUnavailableError

# ── helpers ──────────────────────────────────────────────────────────────


def _response(status_code: int = 200, *, json=None, text: str = "") -> MagicMock:
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.text = text
    if isinstance(json, Exception):
        resp.json = MagicMock(side_effect=json)
    else:
        resp.json = MagicMock(return_value=json)
    return resp


def _http(*responses) -> MagicMock:
    http = MagicMock(spec=httpx.Client)
    http.get = MagicMock(side_effect=list(responses))
    return http


# ── central search ───────────────────────────────────────────────────────


class TestMavenCentralClient:
    def test_latest_version_prefers_latest_version_field(self):
        http = _http(
            _response(json={"response": {"numFound": 1, "docs": [{"g": "g", "a": "a", "v": "1.0", "latestVersion": "1.2"}]}})
        )
        client = MavenCentralClient("https://central.test/select", client=http)
        assert client.latest_version(Coordinate("g", "a")) == "1.2"

        _, kwargs = http.get.call_args
        assert kwargs["params"] == {"q": 'g:"g" AND a:"a"', "rows": 1, "wt": "json"}

    def test_latest_version_falls_back_to_v(self):
        http = _http(_response(json={"response": {"docs": [{"g": "g", "a": "a", "v": "1.0"}]}}))
        assert MavenCentralClient(client=http).latest_version(Coordinate("g", "a")) == "1.0"

    def test_no_docs(self):
        http = _http(_response(json={"response": {"numFound": 0, "docs": []}}))
        assert MavenCentralClient(client=http).latest_version(Coordinate("g", "a")) is None

    def test_search_maps_fields(self):
        http = _http(
            _response(
                json={
                    "response": {
                        "docs": [
                            {"id": "g:a", "g": "g", "a": "a", "latestVersion": "2", "p": "jar", "timestamp": 1, "ec": [".jar"]}
                        ]
                    }
                }
            )
        )
        (doc,) = MavenCentralClient(client=http).search("a")
        assert (doc.group_id, doc.artifact_id, doc.packaging, doc.extensions) == ("g", "a", "jar", [".jar"])

    def test_unexpected_payload(self):
        http = _http(_response(json={"unexpected": True}))
        with pytest.raises(UpstreamUnavailableError):
            MavenCentralClient(client=http).search("a")

    def test_malformed_json(self):
        http = _http(_response(json=ValueError("bad")))
        with pytest.raises(UpstreamUnavailableError, match="malformed JSON"):
            MavenCentralClient(client=http).search("a")

    def test_server_error(self):
        http = _http(_response(503))
        with pytest.raises(UpstreamUnavailableError, match="HTTP 503"):
            MavenCentralClient(client=http).latest_version(Coordinate("g", "a"))

    def test_search_404_is_unavailable(self):
        http = _http(_response(404))
        with pytest.raises(UpstreamUnavailableError, match="HTTP 404"):
            MavenCentralClient(client=http).search("a")

    def test_timeout(self):
        http = MagicMock(spec=httpx.Client)
        http.get = MagicMock(side_effect=httpx.ReadTimeout("timeout"))
        with pytest.raises(UpstreamUnavailableError, match="timed out"):
            MavenCentralClient(client=http).latest_version(Coordinate("g", "a"))

    def test_transport_error(self):
        http = MagicMock(spec=httpx.Client)
        http.get = MagicMock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(UpstreamUnavailableError):
            MavenCentralClient(client=http).latest_version(Coordinate("g", "a"))

    def test_injected_client_is_not_closed(self):
        http = _http()
        with MavenCentralClient(client=http):
            pass
        http.close.assert_not_called()


# ── repository metadata ──────────────────────────────────────────────────


METADATA = """<?xml version="1.0" encoding="UTF-8"?>
<metadata>
  <groupId>com.example</groupId>
  <artifactId>lib</artifactId>
  <versioning>
    <latest>2.1.0-SNAPSHOT</latest>
    <release>2.0.0</release>
    <versions>
      <version>1.0.0</version>
      <version>2.0.0</version>
    </versions>
  </versioning>
</metadata>
"""


class TestRepositoryMetadata:
    def test_metadata_url(self):
        url = metadata_url("https://repo.example.com/m2/", Coordinate("com.example", "lib"))
        assert url == "https://repo.example.com/m2/com/example/lib/maven-metadata.xml"

    def test_release_wins(self):
        assert parse_metadata_version(METADATA) == "2.0.0"

    def test_latest_then_versions(self):
        no_release = METADATA.replace("<release>2.0.0</release>", "")
        assert parse_metadata_version(no_release) == "2.1.0-SNAPSHOT"
        listed_only = no_release.replace("<latest>2.1.0-SNAPSHOT</latest>", "")
        assert parse_metadata_version(listed_only) == "2.0.0"

    def test_no_versioning(self):
        assert parse_metadata_version("<metadata/>") is None

    def test_not_found_is_none(self):
        http = _http(_response(404))
        client = RepositoryMetadataClient(client=http)
        assert client.latest_version("https://repo.test", Coordinate("g", "a")) is None

    def test_fetches_and_parses(self):
        http = _http(_response(text=METADATA))
        client = RepositoryMetadataClient(client=http)
        assert client.latest_version("https://repo.test", Coordinate("com.example", "lib")) == "2.0.0"
        args, _ = http.get.call_args
        assert args[0] == "https://repo.test/com/example/lib/maven-metadata.xml"

    def test_malformed_xml(self):
        http = _http(_response(text="<metadata>"))
        with pytest.raises(UpstreamUnavailableError, match="maven-metadata"):
            RepositoryMetadataClient(client=http).latest_version("https://repo.test", Coordinate("g", "a"))


# ── plugin portal ────────────────────────────────────────────────────────


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestPortalScraping:
    def test_version_badge(self):
        html = '<div class="version-info"><span class="latest-version"> 1.2.3 </span></div>'
        assert extract_portal_version(_soup(html)) == "1.2.3"

    def test_version_header(self):
        assert extract_portal_version(_soup('<h3 class="version">Version 0.9.1</h3>')) == "0.9.1"

    def test_usage_snippet(self):
        html = (
            '<pre><code class="kotlin">plugins {\n  id("x.y") version "4.5.6"\n}</code></pre>'
            '<h3 class="version">   </h3>'
        )
        assert extract_portal_version(_soup(html)) == "4.5.6"

    def test_meta_description(self):
        html = '<meta name="description" content="Plugin x.y version 7.0 for builds">'
        assert extract_portal_version(_soup(html)) == "7.0"

    def test_nothing_found(self):
        assert extract_portal_version(_soup("<html><body>nothing</body></html>")) is None

    def test_portal_info(self):
        html = (
            '<meta name="description" content="Formats code">'
            '<h3 class="version">Version 2.0</h3>'
            '<a href="https://github.com/acme/formatter">Website</a>'
        )
        http = _http(_response(text=html))
        client = PluginPortalClient("https://portal.test/plugin/", client=http)
        info = client.portal_info("com.acme.formatter")
        assert info.latest_version == "2.0"
        assert info.description == "Formats code"
        assert info.website == "https://github.com/acme/formatter"
        assert info.portal_url == "https://portal.test/plugin/com.acme.formatter"

    def test_unknown_plugin(self):
        http = _http(_response(404))
        assert PluginPortalClient(client=http).latest_version("no.such.plugin") is None


# ── package registry ─────────────────────────────────────────────────────


class TestPackageRegistryClient:
    def test_search(self):
        payload = {
            "objects": [
                {
                    "package": {
                        "name": "left-pad",
                        "version": "1.3.0",
                        "publisher": {"username": "stevemao", "email": "s@example.com"},
                    },
                    "downloads": {"monthly": 10, "weekly": 3},
                    "dependents": 5,
                }
            ]
        }
        http = _http(_response(json=payload))
        (hit,) = PackageRegistryClient("https://registry.test/search", client=http).search("pad", size=5)
        assert hit.package.package_name == "left-pad"
        assert hit.package.description is None
        assert hit.package.license is None
        assert hit.downloads.weekly == 3
        _, kwargs = http.get.call_args
        assert kwargs["params"] == {"text": "pad", "size": 5}

    def test_null_description_and_license(self):
        payload = {
            "objects": [
                {"package": {"name": "pad", "version": "1.0.0", "description": None, "license": None}}
            ]
        }
        (hit,) = PackageRegistryClient(client=_http(_response(json=payload))).search("pad")
        assert hit.package.description is None
        assert hit.package.license is None

    def test_not_found_is_unavailable(self):
        http = _http(_response(404))
        with pytest.raises(UpstreamUnavailableError, match="HTTP 404"):
            PackageRegistryClient(client=http).search("pad")
