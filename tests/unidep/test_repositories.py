"""Tests for repository discovery in build scripts and POMs."""

from __future__ import annotations

import xml.etree.ElementTree as ET

from unidep.engines.dependency_scanner.blocks import mask
from unidep.engines.dependency_scanner.repositories import (
    GOOGLE_URL,
    GRADLE_PLUGIN_PORTAL_URL,
    MAVEN_CENTRAL_URL,
    RepositoryConfig,
    normalize_url,
    pom_repositories,
    read_settings_repositories,
    script_repositories,
    settings_repositories,
)


class TestScriptRepositories:
    def test_groovy_forms(self):
        content = (
            "repositories {\n"
            "    mavenLocal()\n"
            "    mavenCentral()\n"
            "    google()\n"
            "    maven { url 'https://jitpack.io/' }\n"
            "    maven {\n"
            '        url "https://repo.example.com/releases"\n'
            "        credentials { username = 'u' }\n"
            "    }\n"
            "}\n"
        )
        assert script_repositories(mask(content)) == [
            MAVEN_CENTRAL_URL,
            GOOGLE_URL,
            "https://jitpack.io",
            "https://repo.example.com/releases",
        ]

    def test_kotlin_forms(self):
        content = (
            "repositories {\n"
            "    gradlePluginPortal()\n"
            '    maven("https://a.example.com/m2")\n'
            '    maven(url = "https://b.example.com/m2")\n'
            '    maven { url = uri("https://c.example.com/m2") }\n'
            '    maven { setUrl("https://d.example.com/m2") }\n'
            "}\n"
        )
        assert script_repositories(mask(content)) == [
            GRADLE_PLUGIN_PORTAL_URL,
            "https://a.example.com/m2",
            "https://b.example.com/m2",
            "https://c.example.com/m2",
            "https://d.example.com/m2",
        ]

    def test_ignores_local_interpolated_and_duplicate_urls(self):
        content = (
            "repositories {\n"
            "    mavenCentral()\n"
            "    maven { url 'file:///tmp/repo' }\n"
            '    maven { url "https://${host}/m2" }\n'
            "    maven { url 'https://repo.maven.apache.org/maven2/' }\n"
            "}\n"
        )
        assert script_repositories(mask(content)) == [MAVEN_CENTRAL_URL]

    def test_nested_repositories_are_ignored(self):
        content = (
            "buildscript {\n"
            "    repositories {\n"
            "        google()\n"
            "    }\n"
            "}\n"
            "repositories {\n"
            "    mavenCentral()\n"
            "}\n"
        )
        assert script_repositories(mask(content)) == [MAVEN_CENTRAL_URL]


class TestPomRepositories:
    def test_root_repositories(self):
        root = ET.fromstring(
            "<project>"
            "<repositories>"
            "<repository><id>a</id><url> https://repo.example.com/maven/ </url></repository>"
            "<repository><id>b</id></repository>"
            "</repositories>"
            "<profiles><profile><repositories>"
            "<repository><url>https://profile.example.com</url></repository>"
            "</repositories></profile></profiles>"
            "</project>"
        )
        assert pom_repositories(root) == ["https://repo.example.com/maven"]


def test_normalize_url():
    assert normalize_url(" https://x.example.com/m2/ ") == "https://x.example.com/m2"


SETTINGS = """<?xml version="1.0"?>
<settings xmlns="http://maven.apache.org/SETTINGS/1.0.0">
  <servers>
    <server><id>corp</id><username>ci</username><password>s3cret</password></server>
    <server><id>locked</id><username>ci</username><password>{COQLCE6DU6GtcS5P=}</password></server>
  </servers>
  <mirrors>
    <mirror>
      <id>locked</id>
      <mirrorOf>central</mirrorOf>
      <url>https://mirror.example.com/maven2/</url>
    </mirror>
  </mirrors>
  <profiles>
    <profile>
      <id>default</id>
      <repositories>
        <repository><id>corp</id><name>Corporate</name><url>https://nexus.example.com/repo</url></repository>
        <repository><id>local</id><url>file:///tmp/repo</url></repository>
        <repository><url>https://plain.example.com</url></repository>
      </repositories>
    </profile>
  </profiles>
</settings>
"""


class TestSettingsRepositories:
    def test_profiles_then_mirrors_with_credentials(self):
        corp, plain, mirror = settings_repositories(SETTINGS)
        assert corp == RepositoryConfig(
            id="corp",
            url="https://nexus.example.com/repo",
            name="Corporate",
            username="ci",
            password="s3cret",
        )
        assert corp.auth == ("ci", "s3cret")
        assert (plain.id, plain.name, plain.auth) == ("repo-2", "repo-2", None)
        assert mirror.url == "https://mirror.example.com/maven2"
        assert mirror.mirror_of == "central"

    def test_encrypted_password_is_dropped(self):
        mirror = settings_repositories(SETTINGS)[-1]
        assert mirror.auth == ("ci", "")

    def test_read_missing_or_malformed_file(self, tmp_path, write):
        assert read_settings_repositories(None) == []
        assert read_settings_repositories(tmp_path / "absent.xml") == []
        assert read_settings_repositories(write("settings.xml", "<settings>")) == []

    def test_read_file(self, write):
        path = write("settings.xml", SETTINGS)
        assert [r.id for r in read_settings_repositories(path)] == ["corp", "repo-2", "locked"]
