"""Tests for version catalog loading."""

from __future__ import annotations

from unidep.engines.dependency_scanner.catalog import (
    accessor_for,
    find_catalog,
    parse_catalog,
    read_catalog,
)
from unidep.engines.dependency_scanner.models import MANAGED_VERSION, Coordinate

CATALOG = """
[versions]
kotlin = "1.9.21"
spring = { strictly = "6.1.2" }

[libraries]
kotlin-stdlib = { module = "org.jetbrains.kotlin:kotlin-stdlib", version.ref = "kotlin" }
jackson_databind = { group = "com.fasterxml.jackson.core", name = "jackson-databind", version = "2.16.0" }
spring-core = { module = "org.springframework:spring-core", version.ref = "spring" }
slf4j = "org.slf4j:slf4j-api:2.0.9"
bom-managed = { module = "org.example:managed" }

[plugins]
kotlin-jvm = { id = "org.jetbrains.kotlin.jvm", version.ref = "kotlin" }
detekt = "io.gitlab.arturbosch.detekt:1.23.4"
"""


class TestAccessors:
    def test_separators_become_dots(self):
        assert accessor_for("kotlin-stdlib") == "libs.kotlin.stdlib"
        assert accessor_for("jackson_databind") == "libs.jackson.databind"
        assert accessor_for("androidx.core-ktx") == "libs.androidx.core.ktx"

    def test_plugin_table(self):
        assert accessor_for("kotlin-jvm", "plugins") == "libs.plugins.kotlin.jvm"


class TestParseCatalog:
    def test_libraries(self):
        catalog = parse_catalog("libs.versions.toml", CATALOG)
        stdlib = catalog.library("libs.kotlin.stdlib")
        assert stdlib.coordinate == Coordinate("org.jetbrains.kotlin", "kotlin-stdlib")
        assert stdlib.version == "1.9.21"

        jackson = catalog.library("libs.jackson.databind")
        assert jackson.coordinate == Coordinate("com.fasterxml.jackson.core", "jackson-databind")
        assert jackson.version == "2.16.0"

        assert catalog.library("libs.slf4j").version == "2.0.9"

    def test_non_literal_versions_are_managed(self):
        catalog = parse_catalog("libs.versions.toml", CATALOG)
        assert catalog.library("libs.spring.core").version == MANAGED_VERSION
        assert catalog.library("libs.bom.managed").version == MANAGED_VERSION

    def test_plugins(self):
        catalog = parse_catalog("libs.versions.toml", CATALOG)
        jvm = catalog.plugin("libs.plugins.kotlin.jvm")
        assert jvm.plugin_id == "org.jetbrains.kotlin.jvm"
        assert jvm.version == "1.9.21"
        detekt = catalog.plugin("libs.plugins.detekt")
        assert detekt.plugin_id == "io.gitlab.arturbosch.detekt"
        assert detekt.version == "1.23.4"

    def test_unknown_accessor(self):
        assert parse_catalog("x", CATALOG).library("libs.nope") is None


class TestFindCatalog:
    def test_searches_upward_to_root(self, tmp_path, write):
        catalog_path = write("gradle/libs.versions.toml", CATALOG)
        build = write("app/feature/build.gradle.kts", "")
        assert find_catalog(build, tmp_path) == catalog_path.resolve()

    def test_stops_at_root(self, tmp_path, write):
        write("gradle/libs.versions.toml", CATALOG)
        build = write("nested/project/build.gradle", "")
        assert find_catalog(build, tmp_path / "nested" / "project") is None

    def test_read_catalog_invalid_toml(self, write):
        path = write("gradle/libs.versions.toml", "[libraries\nbroken")
        assert read_catalog(path) is None
