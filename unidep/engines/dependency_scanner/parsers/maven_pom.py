"""Parser for Maven pom.xml files.

Only ``<dependency>`` elements directly under the root-level
``<dependencies>`` are install records; ``<dependencyManagement>``,
``<profiles>`` and plugin dependencies under ``<build>`` are templates.
Build plugins are read by :mod:`.maven_plugins`.

ElementTree has no source positions, so each record's range is recovered from
the raw text. A coordinate gets a range only when it is declared once and
exactly one direct ``<dependency>`` span resolves to it. Duplicated or
unmatched coordinates are returned with offset -1, which every mutator rejects.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections import defaultdict
from pathlib import Path

from unidep.engines.dependency_scanner.catalog import VersionCatalog
from unidep.engines.dependency_scanner.models import (
    DIALECT_MAVEN,
    MANAGED_VERSION,
    Coordinate,
    DependencyExclusion,
    FileScan,
    InstalledDependency,
    SourceRange,
)
from unidep.engines.dependency_scanner.parsers.maven_plugins import scan_maven_plugins
from unidep.engines.dependency_scanner.pom import (
    child,
    child_span_text,
    child_text,
    children,
    direct_dependency_spans,
    element_spans,
    extract_properties,
    resolve_properties,
)
from unidep.engines.dependency_scanner.registry import ROOT_MODULE, register_parser, report_failure
from unidep.engines.dependency_scanner.repositories import pom_repositories
from unidep.exceptions import ParseFailure

DEFAULT_SCOPE = "compile"


def _exclusions(dep_el: ET.Element, props: dict[str, str]) -> tuple[DependencyExclusion, ...]:
    found: list[DependencyExclusion] = []
    for excl in children(child(dep_el, "exclusions"), "exclusion"):
        group = child_text(excl, "groupId")
        if not group:
            continue
        artifact = child_text(excl, "artifactId")
        artifact = resolve_properties(artifact, props) if artifact else None
        found.append(
            DependencyExclusion(resolve_properties(group, props), None if artifact == "*" else artifact)
        )
    return tuple(found)


class MavenPomParser:
    detection_method = "maven-pom"
    file_patterns = ["**/pom.xml"]

    def parse(
        self,
        file_path: Path,
        content: str,
        *,
        module: str = ROOT_MODULE,
        catalog: VersionCatalog | None = None,
    ) -> FileScan:
        path = str(file_path)
        result = FileScan()
        try:
            root = ET.fromstring(content)
        except ET.ParseError as exc:
            report_failure(result, ParseFailure(path, f"malformed XML: {exc}"))
            return result

        props = extract_properties(root)

        parsed: list[tuple[Coordinate, str, str, bool, tuple[DependencyExclusion, ...]]] = []
        for dep_el in children(child(root, "dependencies"), "dependency"):
            group_id = child_text(dep_el, "groupId")
            artifact_id = child_text(dep_el, "artifactId")
            if not group_id or not artifact_id:
                continue
            version = child_text(dep_el, "version")
            parsed.append(
                (
                    Coordinate(resolve_properties(group_id, props), resolve_properties(artifact_id, props)),
                    resolve_properties(version, props) if version else MANAGED_VERSION,
                    child_text(dep_el, "scope") or DEFAULT_SCOPE,
                    (child_text(dep_el, "optional") or "").lower() == "true",
                    _exclusions(dep_el, props),
                )
            )

        offsets = self._recover_ranges(path, content, props, [p[0] for p in parsed], result)
        for (coordinate, version, scope, optional, exclusions), (offset, length) in zip(parsed, offsets):
            result.dependencies.append(
                InstalledDependency(
                    coordinate=coordinate,
                    version=version,
                    configuration=scope,
                    module=module,
                    source=SourceRange(path, offset, length),
                    dialect=DIALECT_MAVEN,
                    exclusions=exclusions,
                    optional=optional,
                )
            )

        result.maven_plugins = scan_maven_plugins(content, path, module, props, result)
        result.repositories = pom_repositories(root)
        return result

    @staticmethod
    def _recover_ranges(
        path: str,
        content: str,
        props: dict[str, str],
        coordinates: list[Coordinate],
        result: FileScan,
    ) -> list[tuple[int, int]]:
        spans = element_spans(content)
        candidates: dict[Coordinate, list[tuple[int, int]]] = defaultdict(list)
        for span in direct_dependency_spans(spans):
            group = child_span_text(content, spans, span, "groupId")
            artifact = child_span_text(content, spans, span, "artifactId")
            if group and artifact:
                key = Coordinate(resolve_properties(group, props), resolve_properties(artifact, props))
                candidates[key].append((span.start, span.end - span.start))

        occurrences: dict[Coordinate, int] = defaultdict(int)
        for coordinate in coordinates:
            occurrences[coordinate] += 1

        ranges: list[tuple[int, int]] = []
        reported: set[Coordinate] = set()
        for coordinate in coordinates:
            found = candidates.get(coordinate, [])
            if occurrences[coordinate] == 1 and len(found) == 1:
                ranges.append(found[0])
                continue
            if coordinate not in reported:
                reported.add(coordinate)
                if occurrences[coordinate] > 1:
                    reason = f"{coordinate} is declared {occurrences[coordinate]} times"
                else:
                    reason = f"cannot locate <dependency> for {coordinate}: {len(found)} found in text"
                report_failure(result, ParseFailure(path, reason))
            ranges.append((-1, 0))
        return ranges


register_parser(MavenPomParser())
