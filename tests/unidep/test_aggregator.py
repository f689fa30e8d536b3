"""Tests for the unified package view."""

from __future__ import annotations

from unidep.engines.aggregator import adapters
from unidep.engines.aggregator.models import (
    CentralSearchMetadata,
    NoMetadata,
    PackageRegistryMetadata,
    PackageSource,
    PluginPortalMetadata,
    PluginScriptMetadata,
    ScriptMetadata,
    UnifiedPackage,
    VulnerabilityInfo,
    XmlMetadata,
    XmlPluginMetadata,
)
from unidep.engines.dependency_scanner.models import (
    DIALECT_GROOVY,
    DIALECT_MAVEN,
    Coordinate,
    InstalledDependency,
    InstalledPlugin,
    MavenPlugin,
    PluginSyntax,
    SourceRange,
)
from unidep.engines.update_resolver.clients import PortalPluginInfo
from unidep.engines.update_resolver.models import DependencyUpdate, MavenPluginUpdate, PluginUpdate
from unidep.engines.update_resolver.schemas import CentralDoc, RegistryObject


def _dep(coordinate="g:a", version="1.0", module="root", dialect=DIALECT_GROOVY, **kwargs):
    return InstalledDependency(
        coordinate=Coordinate.parse(coordinate),
        version=version,
        configuration=kwargs.pop("configuration", "implementation"),
        module=module,
        source=SourceRange(f"{module}/build.gradle", 15, 24),
        dialect=dialect,
        **kwargs,
    )


def _plugin(plugin_id="org.springframework.boot", version="3.2.0", syntax=PluginSyntax.ID_VERSION):
    return InstalledPlugin(
        plugin_id=plugin_id,
        version=version,
        module="root",
        source=SourceRange("build.gradle.kts", 12, 40),
        syntax=syntax,
    )


def _maven_plugin(artifact="maven-surefire-plugin", module="root", **kwargs):
    return MavenPlugin(
        coordinate=Coordinate("org.apache.maven.plugins", artifact),
        version=kwargs.pop("version", "3.2.2"),
        module=module,
        source=SourceRange(f"{module}/pom.xml", 310, 180),
        **kwargs,
    )


class TestInstalledAdapters:
    def test_script_metadata(self):
        dep = _dep(is_from_version_catalog=True, catalog_key="libs.a")
        pkg = adapters.from_installed_dependency(dep, "1.1")
        assert pkg.id == "g:a"
        assert pkg.source is PackageSource.GRADLE_INSTALLED
        assert pkg.metadata == ScriptMetadata("root/build.gradle", 15, 24, "implementation", True, "libs.a")
        assert pkg.modules == ("root",)
        assert pkg.has_update
        assert pkg.is_installed

    def test_xml_metadata(self):
        dep = _dep(dialect=DIALECT_MAVEN, configuration="test", optional=True)
        pkg = adapters.from_installed_dependency(dep)
        assert pkg.source is PackageSource.MAVEN_INSTALLED
        assert pkg.metadata == XmlMetadata("root/build.gradle", 15, 24, "test", True)
        assert pkg.scope == "test"
        assert not pkg.has_update

    def test_plugin(self):
        pkg = adapters.from_installed_plugin(_plugin(), "3.2.1")
        assert (pkg.publisher, pkg.name) == ("org.springframework", "boot")
        assert pkg.scope == adapters.PLUGIN_SCOPE
        assert pkg.homepage == "https://plugins.gradle.org/plugin/org.springframework.boot"
        assert isinstance(pkg.metadata, PluginScriptMetadata)
        assert pkg.has_update

    def test_plugin_without_dots(self):
        pkg = adapters.from_installed_plugin(_plugin("java", None, PluginSyntax.GROOVY_SHORTHAND))
        assert pkg.id == "java:java"
        assert not pkg.has_update

    def test_maven_plugin(self):
        plugin = _maven_plugin(phase="test", goals=("test",), is_from_plugin_management=True)
        pkg = adapters.from_maven_plugin(plugin, "3.2.5")
        assert pkg.id == "org.apache.maven.plugins:maven-surefire-plugin"
        assert pkg.source is PackageSource.MAVEN_PLUGIN_INSTALLED
        assert pkg.metadata == XmlPluginMetadata("root/pom.xml", 310, 180, True, "test", ("test",))
        assert pkg.scope == adapters.PLUGIN_SCOPE
        assert pkg.has_update


class TestAggregate:
    def test_groups_by_coordinate_across_modules(self):
        deps = [_dep(module="root"), _dep(module="core"), _dep("g:b", "2.0"), _dep(module="core")]
        updates = [DependencyUpdate(installed=deps[0], latest_version="1.2")]
        packages = adapters.aggregate(deps, updates)
        assert [(p.id, p.modules, p.latest_version) for p in packages] == [
            ("g:a", ("root", "core"), "1.2"),
            ("g:b", ("root",), None),
        ]

    def test_mapping_of_latest_versions_and_plugins(self):
        plugin = _plugin()
        packages = adapters.aggregate(
            [_dep()],
            {"g:a": "1.0"},
            plugins=[plugin],
            plugin_updates=[PluginUpdate(installed=plugin, latest_version="3.3.0")],
        )
        assert [p.source for p in packages] == [
            PackageSource.GRADLE_INSTALLED,
            PackageSource.GRADLE_PLUGIN_INSTALLED,
        ]
        assert not packages[0].has_update
        assert packages[1].latest_version == "3.3.0"

    def test_maven_plugins_group_across_modules(self):
        plugins = [_maven_plugin(), _maven_plugin(module="svc"), _maven_plugin("maven-jar-plugin", version=None)]
        update = MavenPluginUpdate(installed=plugins[0], latest_version="3.2.5")
        packages = adapters.aggregate([], maven_plugins=plugins, maven_plugin_updates=[update])
        assert [(p.name, p.modules, p.latest_version) for p in packages] == [
            ("maven-surefire-plugin", ("root", "svc"), "3.2.5"),
            ("maven-jar-plugin", ("root",), None),
        ]
        assert {p.source for p in packages} == {PackageSource.MAVEN_PLUGIN_INSTALLED}


class TestSearchAdapters:
    def test_central_doc(self):
        doc = CentralDoc.model_validate(
            {"g": "com.google.guava", "a": "guava", "v": "33.0.0-jre", "p": "bundle", "ec": [".jar", ".pom"]}
        )
        pkg = adapters.from_central_doc(doc)
        assert pkg.id == "com.google.guava:guava"
        assert pkg.latest_version == "33.0.0-jre"
        assert pkg.metadata == CentralSearchMetadata("bundle", None, (".jar", ".pom"))
        assert not pkg.is_installed

    def test_registry_package_placeholders(self):
        hit = RegistryObject.model_validate({"package": {"name": "left-pad", "version": "1.3.0"}})
        pkg = adapters.from_registry_package(hit)
        assert pkg.publisher == "Unknown"
        assert pkg.description is None
        assert pkg.license is None
        assert pkg.source is PackageSource.NPM
        assert isinstance(pkg.metadata, PackageRegistryMetadata)

    def test_plugin_portal(self):
        info = PortalPluginInfo("com.acme.fmt", "2.0", "Formats", None, "https://portal.test/com.acme.fmt")
        pkg = adapters.from_plugin_portal(info)
        assert pkg.metadata == PluginPortalMetadata("https://portal.test/com.acme.fmt", None)
        assert pkg.homepage == "https://portal.test/com.acme.fmt"


class TestMerge:
    def test_keeps_search_metadata(self):
        doc = CentralDoc.model_validate({"g": "g", "a": "a", "latestVersion": "2.0"})
        merged = adapters.merge_with_installed(adapters.from_central_doc(doc), _dep(), ["root", "core"])
        assert merged.installed_version == "1.0"
        assert merged.modules == ("root", "core")
        assert merged.source is PackageSource.MAVEN_CENTRAL
        assert isinstance(merged.metadata, CentralSearchMetadata)
        assert merged.has_update

    def test_replaces_other_metadata_with_location(self):
        bare = UnifiedPackage(name="a", publisher="g", installed_version=None, latest_version="2.0", source=PackageSource.GRADLE_PLUGIN)
        assert isinstance(bare.metadata, NoMetadata)
        merged = adapters.merge_with_installed(bare, _dep())
        assert merged.source is PackageSource.GRADLE_INSTALLED
        assert isinstance(merged.metadata, ScriptMetadata)


class TestUnifiedPackage:
    def test_flags(self):
        pkg = UnifiedPackage(
            name="a",
            publisher="g",
            installed_version="1.0.0-RC1",
            latest_version="1.0.0",
            source=PackageSource.MAVEN_INSTALLED,
            vulnerability=VulnerabilityInfo(cve_id="CVE-2024-0001"),
        )
        assert pkg.has_update
        assert pkg.is_prerelease
        assert pkg.is_vulnerable
