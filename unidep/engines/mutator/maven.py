"""Minimal-diff edits for Maven ``pom.xml`` files.

The document is never re-serialized: edits splice text at element spans found
by :func:`~unidep.engines.dependency_scanner.pom.element_spans`, copying the
indentation of neighbouring elements.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping, Sequence
from pathlib import Path
from xml.sax.saxutils import escape

from unidep.core.files import read_text
from unidep.engines.dependency_scanner.blocks import (
    detect_newline,
    indentation_at,
    only_whitespace_before,
)
from unidep.engines.dependency_scanner.models import (
    DEFAULT_MAVEN_PLUGIN_GROUP,
    MANAGED_VERSION,
    Coordinate,
    DependencyExclusion,
    InstalledDependency,
    MavenPlugin,
)
from unidep.engines.dependency_scanner.parsers.maven_pom import DEFAULT_SCOPE
from unidep.engines.dependency_scanner.pom import (
    ElementSpan,
    build_plugin_spans,
    child_span_text,
    child_spans,
    direct_dependency_spans,
    element_spans,
    extract_properties,
    resolve_properties,
    root_dependencies_span,
    root_span,
)
from unidep.engines.mutator.text import (
    DEFAULT_INDENT,
    check_token,
    ensure_range,
    guarded,
    insert_before_closer,
    removal_span,
    splice,
)
from unidep.exceptions import (
    AmbiguousDeclarationError,
    EditRejected,
    StaleRangeError,
    UnsupportedEditError,
)


def _properties(text: str) -> dict[str, str]:
    try:
        return extract_properties(ET.fromstring(text))
    except ET.ParseError as exc:
        raise UnsupportedEditError(f"malformed XML: {exc}") from exc


def _span_coordinate(
    text: str, spans: list[ElementSpan], span: ElementSpan, props: dict[str, str]
) -> Coordinate | None:
    group = child_span_text(text, spans, span, "groupId")
    artifact = child_span_text(text, spans, span, "artifactId")
    if not group or not artifact:
        return None
    return Coordinate(resolve_properties(group, props), resolve_properties(artifact, props))


def _declared_version(text: str, version: ElementSpan | None) -> str:
    """The ``<version>`` value as the scanner reports it: resolved, or ``managed`` when absent."""
    raw = version.inner(text).strip() if version is not None else ""
    if not raw:
        return MANAGED_VERSION
    if "${" in raw:
        return resolve_properties(raw, _properties(text))
    return raw


def _set_version(
    text: str, spans: list[ElementSpan], span: ElementSpan, new_version: str, target: str
) -> str:
    """Replace the ``<version>`` of *span*, or add one right after ``<artifactId>``."""
    versions = child_spans(spans, span, "version")
    if versions:
        version = versions[0]
        if version.self_closing:
            return splice(text, version.start, version.end, _element("version", new_version))
        inner = version.inner(text)
        lead = len(inner) - len(inner.lstrip())
        trail = len(inner) - len(inner.rstrip())
        return splice(text, version.open_end + lead, version.close_start - trail, new_version)

    artifacts = child_spans(spans, span, "artifactId")
    if not artifacts:
        raise StaleRangeError(f"{target}: <artifactId> not found")
    artifact = artifacts[0]
    element = _element("version", new_version)
    if only_whitespace_before(text, artifact.start):
        element = detect_newline(text) + indentation_at(text, artifact.start) + element
    return splice(text, artifact.end, artifact.end, element)


def _child_indent(text: str, spans: list[ElementSpan], parent: ElementSpan) -> str:
    """Indentation used for children of *parent*, copied from an existing child when possible."""
    parent_indent = indentation_at(text, parent.start)
    for span in child_spans(spans, parent):
        if only_whitespace_before(text, span.start):
            indent = indentation_at(text, span.start)
            if len(indent) > len(parent_indent):
                return indent
    return parent_indent + _indent_unit(text, spans)


def _indent_unit(text: str, spans: list[ElementSpan]) -> str:
    """One level of indentation, taken from the root's first child."""
    root = root_span(spans)
    if root is not None:
        for span in child_spans(spans, root):
            if only_whitespace_before(text, span.start):
                indent = indentation_at(text, span.start)
                root_indent = indentation_at(text, root.start)
                if indent.startswith(root_indent) and len(indent) > len(root_indent):
                    return indent[len(root_indent) :]
    return DEFAULT_INDENT


def _element(name: str, value: str) -> str:
    return f"<{name}>{value}</{name}>"


def format_dependency_xml(
    coordinate: Coordinate,
    version: str | None,
    scope: str | None,
    indent: str,
    unit: str,
    newline: str,
) -> str:
    inner = indent + unit
    lines = [
        f"{indent}<dependency>",
        inner + _element("groupId", coordinate.group),
        inner + _element("artifactId", coordinate.artifact),
    ]
    if version:
        lines.append(inner + _element("version", version))
    if scope and scope != DEFAULT_SCOPE:
        lines.append(inner + _element("scope", scope))
    lines.append(f"{indent}</dependency>")
    return newline.join(lines)


def format_exclusion_xml(exclusion: DependencyExclusion, indent: str, unit: str, newline: str) -> str:
    inner = indent + unit
    return newline.join(
        [
            f"{indent}<exclusion>",
            inner + _element("groupId", exclusion.group_id),
            inner + _element("artifactId", exclusion.artifact_id or "*"),
            f"{indent}</exclusion>",
        ]
    )


def _insert_into(
    text: str, parent: ElementSpan, payload: str, newline: str, opening: str, closing: str
) -> str:
    """Insert *payload* as the last child of *parent*, expanding ``<parent/>`` if needed."""
    parent_indent = indentation_at(text, parent.start)
    if parent.self_closing:
        return splice(
            text, parent.start, parent.end, f"{opening}{newline}{payload}{newline}{parent_indent}{closing}"
        )
    return insert_before_closer(text, parent.close_start, parent.open_end, payload, parent_indent, newline)


class MavenDependencyModifier:
    """Compute new ``pom.xml`` text for dependency edits. Never writes files."""

    # ── low-level intents (raise EditRejected) ──────────────────────────

    def remove(self, dependency: InstalledDependency, text: str) -> str:
        _, span = self._locate(dependency, text)
        start, stop = removal_span(text, span.start, span.end)
        return splice(text, start, stop, "")

    def update(self, dependency: InstalledDependency, new_version: str, text: str) -> str:
        check_token(new_version, "version")
        spans, span = self._locate(dependency, text)
        versions = child_spans(spans, span, "version")
        if len(versions) > 1:
            raise AmbiguousDeclarationError(f"{dependency.id} <version>", len(versions))
        current = _declared_version(text, versions[0] if versions else None)
        if current != dependency.version:
            raise StaleRangeError(
                f"{dependency.id}: declares version {current}, expected {dependency.version}"
            )
        return _set_version(text, spans, span, new_version, dependency.id)

    def add(
        self,
        build_file: str | Path,
        coordinate: Coordinate,
        version: str | None,
        scope: str | None,
        text: str,
    ) -> str:
        check_token(coordinate.group, "group")
        check_token(coordinate.artifact, "artifact")
        if version:
            check_token(version, "version")
        if scope:
            check_token(scope, "scope")
        props = _properties(text)
        spans = element_spans(text)
        root = root_span(spans)
        if root is None or root.self_closing:
            raise UnsupportedEditError(f"{build_file}: no closing root element")

        existing = [
            s for s in direct_dependency_spans(spans) if _span_coordinate(text, spans, s, props) == coordinate
        ]
        if existing:
            raise AmbiguousDeclarationError(str(coordinate), len(existing) + 1)

        newline = detect_newline(text)
        unit = _indent_unit(text, spans)
        block = root_dependencies_span(spans)
        if block is not None:
            dep_indent = _child_indent(text, spans, block)
            payload = format_dependency_xml(coordinate, version, scope, dep_indent, unit, newline)
            return _insert_into(text, block, payload, newline, "<dependencies>", "</dependencies>")

        block_indent = _child_indent(text, spans, root)
        payload = newline.join(
            [
                f"{block_indent}<dependencies>",
                format_dependency_xml(coordinate, version, scope, block_indent + unit, unit, newline),
                f"{block_indent}</dependencies>",
            ]
        )
        return insert_before_closer(
            text, root.close_start, root.open_end, payload, indentation_at(text, root.start), newline
        )

    def add_exclusion(
        self, dependency: InstalledDependency, exclusion: DependencyExclusion, text: str
    ) -> str:
        check_token(exclusion.group_id, "group")
        if exclusion.artifact_id:
            check_token(exclusion.artifact_id, "artifact")
        spans, span = self._locate(dependency, text)
        if exclusion in dependency.exclusions:
            raise EditRejected(f"{dependency.id} already excludes {exclusion.display_name}")

        newline = detect_newline(text)
        unit = _indent_unit(text, spans)
        containers = child_spans(spans, span, "exclusions")
        if containers:
            container = containers[0]
            payload = format_exclusion_xml(
                exclusion, _child_indent(text, spans, container), unit, newline
            )
            return _insert_into(text, container, payload, newline, "<exclusions>", "</exclusions>")

        container_indent = _child_indent(text, spans, span)
        payload = newline.join(
            [
                f"{container_indent}<exclusions>",
                format_exclusion_xml(exclusion, container_indent + unit, unit, newline),
                f"{container_indent}</exclusions>",
            ]
        )
        return insert_before_closer(
            text, span.close_start, span.open_end, payload, indentation_at(text, span.start), newline
        )

    def remove_exclusion(
        self, dependency: InstalledDependency, exclusion: DependencyExclusion, text: str
    ) -> str:
        spans, span = self._locate(dependency, text)
        containers = child_spans(spans, span, "exclusions")
        entries = child_spans(spans, containers[0], "exclusion") if containers else []
        matches = []
        for entry in entries:
            group = child_span_text(text, spans, entry, "groupId")
            artifact = child_span_text(text, spans, entry, "artifactId")
            if group and DependencyExclusion(group, None if artifact in (None, "*") else artifact) == exclusion:
                matches.append(entry)
        if not matches:
            raise EditRejected(f"{dependency.id} does not exclude {exclusion.display_name}")
        if len(matches) > 1:
            raise AmbiguousDeclarationError(exclusion.display_name, len(matches))

        # The last exclusion takes its <exclusions> list with it.
        target = containers[0] if len(entries) == 1 else matches[0]
        start, stop = removal_span(text, target.start, target.end)
        return splice(text, start, stop, "")

    # ── facade (returns None on refusal) ────────────────────────────────

    def get_removed_content(
        self, dependency: InstalledDependency, text: str | None = None
    ) -> str | None:
        return guarded(
            "remove",
            dependency.id,
            lambda: self.remove(dependency, _current(dependency.source.file_path, text)),
        )

    def get_updated_content(
        self, dependency: InstalledDependency, new_version: str, text: str | None = None
    ) -> str | None:
        return guarded(
            "update",
            dependency.id,
            lambda: self.update(dependency, new_version, _current(dependency.source.file_path, text)),
        )

    def get_added_content(
        self,
        build_file: str | Path,
        coordinate: Coordinate,
        version: str | None,
        scope: str | None = DEFAULT_SCOPE,
        text: str | None = None,
    ) -> str | None:
        return guarded(
            "add",
            str(coordinate),
            lambda: self.add(build_file, coordinate, version, scope, _current(build_file, text)),
        )

    def get_content_with_exclusion_added(
        self,
        dependency: InstalledDependency,
        exclusion: DependencyExclusion,
        text: str | None = None,
    ) -> str | None:
        return guarded(
            "add_exclusion",
            dependency.id,
            lambda: self.add_exclusion(
                dependency, exclusion, _current(dependency.source.file_path, text)
            ),
        )

    def get_content_with_exclusion_removed(
        self,
        dependency: InstalledDependency,
        exclusion: DependencyExclusion,
        text: str | None = None,
    ) -> str | None:
        return guarded(
            "remove_exclusion",
            dependency.id,
            lambda: self.remove_exclusion(
                dependency, exclusion, _current(dependency.source.file_path, text)
            ),
        )

    # ── internals ───────────────────────────────────────────────────────

    @staticmethod
    def _locate(dependency: InstalledDependency, text: str) -> tuple[list[ElementSpan], ElementSpan]:
        ensure_range(dependency.source, text, dependency.id)
        spans = element_spans(text)
        span = next(
            (
                s
                for s in direct_dependency_spans(spans)
                if s.start == dependency.source.offset and s.end == dependency.source.end
            ),
            None,
        )
        if span is None:
            raise StaleRangeError(f"{dependency.id}: no <dependency> element at recorded range")

        nested = [s for s in spans if s.name == "dependency" and span.contains(s)]
        if len(nested) > 1:
            raise AmbiguousDeclarationError(dependency.id, len(nested))

        group = child_span_text(text, spans, span, "groupId")
        artifact = child_span_text(text, spans, span, "artifactId")
        if group is None or artifact is None:
            raise StaleRangeError(f"{dependency.id}: <dependency> at recorded range has no coordinate")
        found = Coordinate(group, artifact)
        if found != dependency.coordinate and "${" in group + artifact:
            found = _span_coordinate(text, spans, span, _properties(text)) or found
        if found != dependency.coordinate:
            raise StaleRangeError(f"{dependency.id}: <dependency> at recorded range declares {found}")
        return spans, span


# ── build plugins ───────────────────────────────────────────────────────

_CONFIG_KEY_RE = re.compile(r"[A-Za-z_][\w.\-]*")


def format_plugin_xml(
    coordinate: Coordinate,
    version: str | None,
    phase: str | None,
    goals: Sequence[str],
    indent: str,
    unit: str,
    newline: str,
) -> str:
    """A ``<plugin>`` element; ``groupId`` is left out for the default plugin group."""
    inner = indent + unit
    lines = [f"{indent}<plugin>"]
    if coordinate.group != DEFAULT_MAVEN_PLUGIN_GROUP:
        lines.append(inner + _element("groupId", coordinate.group))
    lines.append(inner + _element("artifactId", coordinate.artifact))
    if version:
        lines.append(inner + _element("version", version))
    if phase or goals:
        execution = inner + unit * 2
        lines += [f"{inner}<executions>", f"{inner}{unit}<execution>"]
        if phase:
            lines.append(execution + _element("phase", phase))
        if goals:
            lines.append(f"{execution}<goals>")
            lines += [execution + unit + _element("goal", goal) for goal in goals]
            lines.append(f"{execution}</goals>")
        lines += [f"{inner}{unit}</execution>", f"{inner}</executions>"]
    lines.append(f"{indent}</plugin>")
    return newline.join(lines)


def format_configuration_xml(
    configuration: Mapping[str, str], indent: str, unit: str, newline: str
) -> str:
    lines = [f"{indent}<configuration>"]
    lines += [f"{indent}{unit}<{key}>{escape(value)}</{key}>" for key, value in configuration.items()]
    lines.append(f"{indent}</configuration>")
    return newline.join(lines)


def _plugin_coordinate(
    text: str, spans: list[ElementSpan], span: ElementSpan, props: dict[str, str]
) -> Coordinate | None:
    artifact = child_span_text(text, spans, span, "artifactId")
    if not artifact:
        return None
    group = child_span_text(text, spans, span, "groupId")
    return Coordinate(
        resolve_properties(group, props) if group else DEFAULT_MAVEN_PLUGIN_GROUP,
        resolve_properties(artifact, props),
    )


class MavenPluginModifier:
    """Compute new ``pom.xml`` text for ``<build>`` plugin edits. Never writes files."""

    # ── low-level intents (raise EditRejected) ──────────────────────────

    def remove_plugin(self, plugin: MavenPlugin, text: str) -> str:
        _, span = self._locate(plugin, text)
        start, stop = removal_span(text, span.start, span.end)
        return splice(text, start, stop, "")

    def update_plugin(self, plugin: MavenPlugin, new_version: str, text: str) -> str:
        check_token(new_version, "version")
        spans, span = self._locate(plugin, text)
        versions = child_spans(spans, span, "version")
        if len(versions) > 1:
            raise AmbiguousDeclarationError(f"{plugin.id} <version>", len(versions))
        current = _declared_version(text, versions[0] if versions else None)
        if current != (plugin.version or MANAGED_VERSION):
            raise StaleRangeError(f"{plugin.id}: declares version {current}, expected {plugin.version}")
        return _set_version(text, spans, span, new_version, plugin.id)

    def add_plugin(
        self,
        build_file: str | Path,
        coordinate: Coordinate,
        version: str | None,
        text: str,
        *,
        phase: str | None = None,
        goals: Sequence[str] = (),
    ) -> str:
        """Append a plugin to ``<build><plugins>``, creating the containers when missing."""
        for value, what in ((coordinate.group, "group"), (coordinate.artifact, "artifact")):
            check_token(value, what)
        for value, what in ((version, "version"), (phase, "phase"), *((goal, "goal") for goal in goals)):
            if value is not None:
                check_token(value, what)
        props = _properties(text)
        spans = element_spans(text)
        root = root_span(spans)
        if root is None or root.self_closing:
            raise UnsupportedEditError(f"{build_file}: no closing root element")

        existing = [
            span
            for span, from_management in build_plugin_spans(spans)
            if not from_management and _plugin_coordinate(text, spans, span, props) == coordinate
        ]
        if existing:
            raise AmbiguousDeclarationError(str(coordinate), len(existing) + 1)

        newline = detect_newline(text)
        unit = _indent_unit(text, spans)
        build = next(iter(child_spans(spans, root, "build")), None)
        plugins = next(iter(child_spans(spans, build, "plugins")), None) if build is not None else None
        if plugins is not None:
            indent = _child_indent(text, spans, plugins)
            payload = format_plugin_xml(coordinate, version, phase, goals, indent, unit, newline)
            return _insert_into(text, plugins, payload, newline, "<plugins>", "</plugins>")

        parent = build if build is not None else root
        indent = _child_indent(text, spans, parent)
        wrappers = ["plugins"] if build is not None else ["build", "plugins"]
        opening = [f"{indent}{unit * level}<{name}>" for level, name in enumerate(wrappers)]
        closing = [f"{indent}{unit * level}</{name}>" for level, name in reversed(list(enumerate(wrappers)))]
        body = format_plugin_xml(
            coordinate, version, phase, goals, indent + unit * len(wrappers), unit, newline
        )
        payload = newline.join([*opening, body, *closing])
        if parent.self_closing:
            return _insert_into(text, parent, payload, newline, "<build>", "</build>")
        return insert_before_closer(
            text, parent.close_start, parent.open_end, payload, indentation_at(text, parent.start), newline
        )

    def configure_plugin(self, plugin: MavenPlugin, configuration: Mapping[str, str], text: str) -> str:
        """Replace the plugin's ``<configuration>``, or add one after its version."""
        for key in configuration:
            if not _CONFIG_KEY_RE.fullmatch(key):
                raise UnsupportedEditError(f"invalid configuration key: {key!r}")
        spans, span = self._locate(plugin, text)
        newline = detect_newline(text)
        unit = _indent_unit(text, spans)
        indent = _child_indent(text, spans, span)
        payload = format_configuration_xml(configuration, indent, unit, newline)

        existing = child_spans(spans, span, "configuration")
        if len(existing) > 1:
            raise AmbiguousDeclarationError(f"{plugin.id} <configuration>", len(existing))
        if existing:
            return splice(text, existing[0].start, existing[0].end, payload.lstrip(" \t"))

        anchors = child_spans(spans, span, "version") or child_spans(spans, span, "artifactId")
        if not anchors:
            raise StaleRangeError(f"{plugin.id}: <artifactId> not found")
        anchor = anchors[0]
        if only_whitespace_before(text, anchor.start):
            return splice(text, anchor.end, anchor.end, newline + payload)
        return splice(text, anchor.end, anchor.end, payload.lstrip(" \t"))

    # ── facade (returns None on refusal) ────────────────────────────────

    def get_removed_content(self, plugin: MavenPlugin, text: str | None = None) -> str | None:
        return guarded(
            "remove_plugin",
            plugin.id,
            lambda: self.remove_plugin(plugin, _current(plugin.source.file_path, text)),
        )

    def get_updated_content(
        self, plugin: MavenPlugin, new_version: str, text: str | None = None
    ) -> str | None:
        return guarded(
            "update_plugin",
            plugin.id,
            lambda: self.update_plugin(plugin, new_version, _current(plugin.source.file_path, text)),
        )

    def get_added_content(
        self,
        build_file: str | Path,
        coordinate: Coordinate,
        version: str | None,
        text: str | None = None,
        *,
        phase: str | None = None,
        goals: Sequence[str] = (),
    ) -> str | None:
        return guarded(
            "add_plugin",
            str(coordinate),
            lambda: self.add_plugin(
                build_file, coordinate, version, _current(build_file, text), phase=phase, goals=goals
            ),
        )

    def get_configured_content(
        self, plugin: MavenPlugin, configuration: Mapping[str, str], text: str | None = None
    ) -> str | None:
        return guarded(
            "configure_plugin",
            plugin.id,
            lambda: self.configure_plugin(
                plugin, configuration, _current(plugin.source.file_path, text)
            ),
        )

    # ── internals ───────────────────────────────────────────────────────

    @staticmethod
    def _locate(plugin: MavenPlugin, text: str) -> tuple[list[ElementSpan], ElementSpan]:
        ensure_range(plugin.source, text, plugin.id)
        spans = element_spans(text)
        span = next(
            (
                s
                for s, _ in build_plugin_spans(spans)
                if s.start == plugin.source.offset and s.end == plugin.source.end
            ),
            None,
        )
        if span is None:
            raise StaleRangeError(f"{plugin.id}: no <plugin> element at recorded range")
        found = _plugin_coordinate(text, spans, span, _properties(text))
        if found != plugin.coordinate:
            raise StaleRangeError(f"{plugin.id}: <plugin> at recorded range declares {found}")
        return spans, span


def _current(file_path: str | Path, text: str | None) -> str:
    return text if text is not None else read_text(file_path)
