"""Parser for Groovy DSL build scripts (build.gradle).

Extracts dependencies declared in the top-level ``dependencies {}`` block:
  - implementation 'group:artifact:version'
  - implementation("group:artifact:version")
  - implementation group: 'g', name: 'a', version: 'v'
  - implementation libs.some.library          → resolved via the version catalog
  - implementation project(':submodule')      → skipped (internal)

A trailing ``{ exclude group: 'g', module: 'm' }`` closure belongs to the
declaration. Plugins and repositories are collected from the same file.
"""

from __future__ import annotations

from pathlib import Path

from unidep.engines.dependency_scanner.blocks import mask, statement_starts, top_level_blocks
from unidep.engines.dependency_scanner.catalog import VersionCatalog
from unidep.engines.dependency_scanner.models import (
    DIALECT_GROOVY,
    FileScan,
    InstalledDependency,
    SourceRange,
)
from unidep.engines.dependency_scanner.parsers.gradle_plugins import scan_plugins
from unidep.engines.dependency_scanner.registry import (
    ROOT_MODULE,
    line_number,
    register_parser,
    report_failure,
)
from unidep.engines.dependency_scanner.repositories import script_repositories
from unidep.engines.dependency_scanner.statements import DependencyStatement, match_dependency
from unidep.exceptions import ParseFailure


class GradleBuildParser:
    detection_method = "gradle"
    file_patterns = ["**/build.gradle"]
    dialect = DIALECT_GROOVY

    def parse(
        self,
        file_path: Path,
        content: str,
        *,
        module: str = ROOT_MODULE,
        catalog: VersionCatalog | None = None,
    ) -> FileScan:
        path = str(file_path)
        masked = mask(content)
        result = FileScan()

        for block in top_level_blocks(masked, "dependencies"):
            end = block.body_end(masked)
            for pos in statement_starts(masked.code, block.body_start, end):
                stmt = match_dependency(masked, pos, end, self.dialect)
                if stmt is None:
                    continue
                record = self._to_record(stmt, path, module, catalog)
                if record is not None:
                    result.dependencies.append(record)
            if not block.is_closed and masked.is_complete:
                report_failure(
                    result,
                    ParseFailure(
                        path,
                        f"unbalanced 'dependencies' block opened at line "
                        f"{line_number(content, block.start)}",
                    ),
                )

        result.plugins = scan_plugins(masked, path, module, self.dialect, catalog)
        result.repositories = script_repositories(masked)

        if not masked.is_complete:
            report_failure(
                result,
                ParseFailure(
                    path,
                    f"{masked.error_reason} at line {line_number(content, masked.limit)}",
                ),
            )
        return result

    def _to_record(
        self,
        stmt: DependencyStatement,
        path: str,
        module: str,
        catalog: VersionCatalog | None,
    ) -> InstalledDependency | None:
        source = SourceRange(path, stmt.start, stmt.end - stmt.start)
        exclusions = tuple(entry.exclusion for entry in stmt.exclusions)

        if stmt.catalog_ref is not None:
            entry = catalog.library(stmt.catalog_ref) if catalog is not None else None
            if entry is None:
                return None
            return InstalledDependency(
                coordinate=entry.coordinate,
                version=entry.version,
                configuration=stmt.configuration,
                module=module,
                source=source,
                dialect=self.dialect,
                is_from_version_catalog=True,
                catalog_key=stmt.catalog_ref,
                exclusions=exclusions,
            )

        if stmt.coordinate is None or stmt.version is None:
            return None
        return InstalledDependency(
            coordinate=stmt.coordinate,
            version=stmt.version,
            configuration=stmt.configuration,
            module=module,
            source=source,
            dialect=self.dialect,
            exclusions=exclusions,
        )


register_parser(GradleBuildParser())
