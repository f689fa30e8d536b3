"""Scanner for build plugins declared in a POM.

Reads ``<build><plugins>`` and ``<build><pluginManagement><plugins>`` of the
root project. Each ``<plugin>`` is parsed from its own span of the raw text,
so the recorded range is exact even when a plugin is declared twice.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from unidep.engines.dependency_scanner.models import (
    DEFAULT_MAVEN_PLUGIN_GROUP,
    Coordinate,
    FileScan,
    MavenPlugin,
    SourceRange,
)
from unidep.engines.dependency_scanner.pom import (
    build_plugin_spans,
    child,
    child_text,
    children,
    element_spans,
    local_name,
    resolve_properties,
)
from unidep.engines.dependency_scanner.registry import report_failure
from unidep.exceptions import ParseFailure


def _resolved(value: str | None, props: dict[str, str]) -> str | None:
    return resolve_properties(value, props) if value else None


def _execution(plugin_el: ET.Element, props: dict[str, str]) -> tuple[str | None, tuple[str, ...]]:
    """Phase and goals of the first ``<execution>``."""
    execution = child(child(plugin_el, "executions"), "execution")
    if execution is None:
        return None, ()
    goals = tuple(
        resolve_properties(goal.text.strip(), props)
        for goal in children(child(execution, "goals"), "goal")
        if goal.text and goal.text.strip()
    )
    return _resolved(child_text(execution, "phase"), props), goals


def _configuration(plugin_el: ET.Element, props: dict[str, str]) -> tuple[tuple[str, str], ...]:
    """Leaf children of ``<configuration>`` as key/value pairs; nested values are skipped."""
    config = child(plugin_el, "configuration")
    if config is None:
        return ()
    pairs: list[tuple[str, str]] = []
    for entry in config:
        if not isinstance(entry.tag, str) or len(entry):
            continue
        value = (entry.text or "").strip()
        if value:
            pairs.append((local_name(entry.tag), resolve_properties(value, props)))
    return tuple(pairs)


def scan_maven_plugins(
    content: str,
    file_path: str,
    module: str,
    props: dict[str, str],
    result: FileScan,
) -> list[MavenPlugin]:
    """Return the build plugins of a well-formed POM, in file order."""
    plugins: list[MavenPlugin] = []
    for span, from_management in build_plugin_spans(element_spans(content)):
        try:
            plugin_el = ET.fromstring(content[span.start : span.end])
        except ET.ParseError as exc:
            report_failure(result, ParseFailure(file_path, f"unreadable <plugin>: {exc}"))
            continue
        artifact = _resolved(child_text(plugin_el, "artifactId"), props)
        if not artifact:
            continue
        group = _resolved(child_text(plugin_el, "groupId"), props) or DEFAULT_MAVEN_PLUGIN_GROUP
        phase, goals = _execution(plugin_el, props)
        plugins.append(
            MavenPlugin(
                coordinate=Coordinate(group, artifact),
                version=_resolved(child_text(plugin_el, "version"), props),
                module=module,
                source=SourceRange(file_path, span.start, span.end - span.start),
                is_from_plugin_management=from_management,
                inherited=(child_text(plugin_el, "inherited") or "true").lower() != "false",
                phase=phase,
                goals=goals,
                configuration=_configuration(plugin_el, props),
            )
        )
    return plugins
