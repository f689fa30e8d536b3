"""Tests for build-script dependency and plugin edits."""

from __future__ import annotations

from pathlib import Path

from unidep.engines.dependency_scanner.catalog import parse_catalog
from unidep.engines.dependency_scanner.models import Coordinate, DependencyExclusion
from unidep.engines.dependency_scanner.parsers.gradle_build import GradleBuildParser
from unidep.engines.dependency_scanner.parsers.gradle_kts import GradleKtsParser
from unidep.engines.dependency_scanner.scanner import scan_file
from unidep.engines.mutator import GradleDependencyModifier, GradlePluginModifier, apply_changes

KTS = "build.gradle.kts"
GROOVY = "build.gradle"


def _scan(content: str, name: str = KTS, catalog=None):
    parser = GradleKtsParser() if name.endswith(".kts") else GradleBuildParser()
    return parser.parse(Path(name), content, catalog=catalog)


def _dep(content: str, name: str = KTS, index: int = 0, catalog=None):
    return _scan(content, name, catalog).dependencies[index]


def _plugin(content: str, name: str = KTS, index: int = 0):
    return _scan(content, name).plugins[index]


# ── dependency edits ─────────────────────────────────────────────────────


class TestUpdate:
    def test_replaces_only_the_version(self):
        content = 'dependencies {\n    implementation("com.example:widget:1.2.0")\n}\n'
        new = GradleDependencyModifier().get_updated_content(_dep(content), "1.3.0", text=content)
        assert new == 'dependencies {\n    implementation("com.example:widget:1.3.0")\n}\n'

    def test_map_notation(self):
        content = (
            "dependencies {\n"
            "    implementation group: 'g', name: 'a', version: '1.0' // pinned\n"
            "}\n"
        )
        new = GradleDependencyModifier().get_updated_content(_dep(content, GROOVY), "2.0", text=content)
        assert new == content.replace("'1.0'", "'2.0'")

    def test_stale_range_is_refused(self):
        content = 'dependencies {\n    implementation("com.example:widget:1.2.0")\n}\n'
        dep = _dep(content)
        edited = "// note\n" + content
        assert GradleDependencyModifier().get_updated_content(dep, "1.3.0", text=edited) is None

    def test_changed_version_is_refused(self):
        content = 'dependencies {\n    implementation("g:a:1.0")\n}\n'
        dep = _dep(content)
        assert (
            GradleDependencyModifier().get_updated_content(dep, "3.0", text=content.replace("1.0", "2.0"))
            is None
        )

    def test_artifact_type_is_kept(self):
        content = 'dependencies {\n    implementation("com.example:widget:1.2.0@aar")\n}\n'
        new = GradleDependencyModifier().get_updated_content(_dep(content), "1.3.0", text=content)
        assert new == content.replace("1.2.0@aar", "1.3.0@aar")

    def test_catalog_version_is_refused(self):
        catalog = parse_catalog("libs.versions.toml", '[libraries]\nokhttp = "com.squareup.okhttp3:okhttp:4.12.0"\n')
        content = "dependencies {\n    implementation(libs.okhttp)\n}\n"
        dep = _dep(content, catalog=catalog)
        assert GradleDependencyModifier().get_updated_content(dep, "5.0.0", text=content) is None

    def test_invalid_version_is_refused(self):
        content = 'dependencies {\n    implementation("g:a:1.0")\n}\n'
        assert GradleDependencyModifier().get_updated_content(_dep(content), '2.0"', text=content) is None


class TestRemove:
    def test_removes_the_whole_line(self):
        content = (
            "dependencies {\n"
            '    implementation("g:a:1.0")\n'
            '    testImplementation("g:b:2.0")\n'
            "}\n"
        )
        new = GradleDependencyModifier().get_removed_content(_dep(content), text=content)
        assert new == 'dependencies {\n    testImplementation("g:b:2.0")\n}\n'

    def test_removes_closure_with_declaration(self):
        content = (
            "dependencies {\n"
            "    implementation('g:a:1.0') {\n"
            "        exclude group: 'x'\n"
            "    }\n"
            "    api 'g:b:2.0'\n"
            "}\n"
        )
        new = GradleDependencyModifier().get_removed_content(_dep(content, GROOVY), text=content)
        assert new == "dependencies {\n    api 'g:b:2.0'\n}\n"

    def test_catalog_reference_can_be_removed(self):
        catalog = parse_catalog("libs.versions.toml", '[libraries]\nokhttp = "com.squareup.okhttp3:okhttp:4.12.0"\n')
        content = "dependencies {\n    implementation(libs.okhttp)\n}\n"
        dep = _dep(content, catalog=catalog)
        assert GradleDependencyModifier().get_removed_content(dep, text=content) == "dependencies {\n}\n"

    def test_keeps_crlf(self):
        content = 'dependencies {\r\n    implementation("g:a:1.0")\r\n    api("g:b:1.0")\r\n}\r\n'
        new = GradleDependencyModifier().get_removed_content(_dep(content), text=content)
        assert new == 'dependencies {\r\n    api("g:b:1.0")\r\n}\r\n'


class TestAdd:
    def test_appends_to_existing_block(self):
        content = 'dependencies {\n    implementation("a:b:1")\n}\n'
        new = GradleDependencyModifier().get_added_content(KTS, Coordinate("c", "d"), "2.0", text=content)
        assert new == 'dependencies {\n    implementation("a:b:1")\n    implementation("c:d:2.0")\n}\n'

    def test_groovy_configuration(self):
        content = "dependencies {\n  api 'a:b:1'\n}\n"
        new = GradleDependencyModifier().get_added_content(
            GROOVY, Coordinate("c", "d"), "2.0", "testImplementation", text=content
        )
        assert new == "dependencies {\n  api 'a:b:1'\n  testImplementation 'c:d:2.0'\n}\n"

    def test_empty_block(self):
        new = GradleDependencyModifier().get_added_content(
            GROOVY, Coordinate("c", "d"), "2.0", text="dependencies {}\n"
        )
        assert new == "dependencies {\n    implementation 'c:d:2.0'\n}\n"

    def test_creates_block_when_missing(self):
        content = "plugins {\n    java\n}\n"
        new = GradleDependencyModifier().get_added_content(GROOVY, Coordinate("c", "d"), "2.0", text=content)
        assert new == content + "\ndependencies {\n    implementation 'c:d:2.0'\n}\n"

    def test_empty_file(self):
        new = GradleDependencyModifier().get_added_content(KTS, Coordinate("c", "d"), "2.0", text="")
        assert new == 'dependencies {\n    implementation("c:d:2.0")\n}\n'

    def test_duplicate_coordinate_is_refused(self):
        content = 'dependencies {\n    testImplementation("c:d:1.0")\n}\n'
        assert (
            GradleDependencyModifier().get_added_content(KTS, Coordinate("c", "d"), "2.0", text=content)
            is None
        )

    def test_unclosed_block_is_refused(self):
        content = 'dependencies {\n    implementation("a:b:1")\n'
        assert (
            GradleDependencyModifier().get_added_content(KTS, Coordinate("c", "d"), "2.0", text=content)
            is None
        )

    def test_added_declaration_is_found_by_rescan(self):
        content = 'plugins {\n    `java-library`\n}\n\ndependencies {\n    api("a:b:1")\n}\n'
        new = GradleDependencyModifier().get_added_content(KTS, Coordinate("c", "d"), "2.0", text=content)
        assert [d.full_name for d in _scan(new).dependencies] == ["a:b:1", "c:d:2.0"]
        assert _scan(new).plugins == _scan(content).plugins


class TestExclusions:
    def test_add_creates_closure(self):
        content = 'dependencies {\n    implementation("g:a:1.0")\n}\n'
        new = GradleDependencyModifier().get_content_with_exclusion_added(
            _dep(content), DependencyExclusion("org.x", "y"), text=content
        )
        assert new == (
            "dependencies {\n"
            '    implementation("g:a:1.0") {\n'
            '        exclude(group = "org.x", module = "y")\n'
            "    }\n"
            "}\n"
        )
        assert _dep(new).exclusions == (DependencyExclusion("org.x", "y"),)

    def test_add_to_existing_closure(self):
        content = (
            "dependencies {\n"
            "    implementation('g:a:1.0') {\n"
            "        exclude group: 'org.x'\n"
            "    }\n"
            "}\n"
        )
        new = GradleDependencyModifier().get_content_with_exclusion_added(
            _dep(content, GROOVY), DependencyExclusion("org.y", "z"), text=content
        )
        assert new == (
            "dependencies {\n"
            "    implementation('g:a:1.0') {\n"
            "        exclude group: 'org.x'\n"
            "        exclude group: 'org.y', module: 'z'\n"
            "    }\n"
            "}\n"
        )

    def test_add_existing_exclusion_is_refused(self):
        content = "dependencies {\n    implementation('g:a:1.0') {\n        exclude group: 'org.x'\n    }\n}\n"
        assert (
            GradleDependencyModifier().get_content_with_exclusion_added(
                _dep(content, GROOVY), DependencyExclusion("org.x"), text=content
            )
            is None
        )

    def test_remove_last_exclusion_drops_closure(self):
        content = 'dependencies {\n    implementation("g:a:1.0")\n}\n'
        modifier = GradleDependencyModifier()
        added = modifier.get_content_with_exclusion_added(
            _dep(content), DependencyExclusion("org.x", "y"), text=content
        )
        removed = modifier.get_content_with_exclusion_removed(
            _dep(added), DependencyExclusion("org.x", "y"), text=added
        )
        assert removed == content

    def test_remove_one_of_several(self):
        content = (
            "dependencies {\n"
            "    implementation('g:a:1.0') {\n"
            "        exclude group: 'org.x'\n"
            "        exclude group: 'org.y', module: 'z'\n"
            "    }\n"
            "}\n"
        )
        new = GradleDependencyModifier().get_content_with_exclusion_removed(
            _dep(content, GROOVY), DependencyExclusion("org.x"), text=content
        )
        assert new == content.replace("        exclude group: 'org.x'\n", "")

    def test_remove_missing_exclusion_is_refused(self):
        content = 'dependencies {\n    implementation("g:a:1.0")\n}\n'
        assert (
            GradleDependencyModifier().get_content_with_exclusion_removed(
                _dep(content), DependencyExclusion("org.x"), text=content
            )
            is None
        )


class TestFileRoundTrip:
    def test_reads_and_writes_the_build_file(self, tmp_path, write):
        path = write("build.gradle.kts", 'dependencies {\n    implementation("g:a:1.0")\n}\n')
        (dep,) = scan_file(path, tmp_path).dependencies
        new = GradleDependencyModifier().get_updated_content(dep, "1.1")
        apply_changes(path, new)
        (updated,) = scan_file(path, tmp_path).dependencies
        assert updated.version == "1.1"
        assert list(tmp_path.iterdir()) == [path]


# ── plugin edits ─────────────────────────────────────────────────────────


PLUGINS_KTS = (
    "plugins {\n"
    '    id("org.springframework.boot") version "3.2.0"\n'
    "    `java-library`\n"
    "}\n"
)


class TestPluginEdits:
    def test_update_version(self):
        new = GradlePluginModifier().get_updated_content(_plugin(PLUGINS_KTS), "3.2.1", text=PLUGINS_KTS)
        assert new == PLUGINS_KTS.replace("3.2.0", "3.2.1")

    def test_update_without_version_is_refused(self):
        assert GradlePluginModifier().get_updated_content(_plugin(PLUGINS_KTS, index=1), "1", text=PLUGINS_KTS) is None

    def test_remove(self):
        new = GradlePluginModifier().get_removed_content(_plugin(PLUGINS_KTS, index=1), text=PLUGINS_KTS)
        assert new == 'plugins {\n    id("org.springframework.boot") version "3.2.0"\n}\n'

    def test_remove_legacy_apply(self):
        content = "apply plugin: 'idea'\nrepositories {\n    mavenCentral()\n}\n"
        new = GradlePluginModifier().get_removed_content(_plugin(content, GROOVY), text=content)
        assert new == "repositories {\n    mavenCentral()\n}\n"

    def test_add_to_block(self):
        new = GradlePluginModifier().get_added_content(
            KTS, "io.spring.dependency-management", text=PLUGINS_KTS
        )
        assert new == PLUGINS_KTS.replace("}\n", '    id("io.spring.dependency-management")\n}\n')

    def test_add_kotlin_plugin_uses_shorthand(self):
        new = GradlePluginModifier().get_added_content(
            KTS, "org.jetbrains.kotlin.jvm", "1.9.22", text=PLUGINS_KTS
        )
        assert '    kotlin("jvm") version "1.9.22"\n}\n' in new

    def test_add_duplicate_is_refused(self):
        assert (
            GradlePluginModifier().get_added_content(KTS, "org.springframework.boot", "3.3.0", text=PLUGINS_KTS)
            is None
        )

    def test_add_creates_block_at_top(self):
        content = "dependencies {\n}\n"
        new = GradlePluginModifier().get_added_content(GROOVY, "java", text=content)
        assert new == "plugins {\n    java\n}\n\ndependencies {\n}\n"

    def test_add_after_buildscript(self):
        content = "buildscript {\n    repositories {\n        mavenCentral()\n    }\n}\n\ndependencies {\n}\n"
        new = GradlePluginModifier().get_added_content(GROOVY, "x.y", "1.0", text=content)
        assert new == (
            "buildscript {\n    repositories {\n        mavenCentral()\n    }\n}\n"
            "\nplugins {\n    id 'x.y' version '1.0'\n}\n"
            "\ndependencies {\n}\n"
        )
