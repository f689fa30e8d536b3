"""Parser registry — discover build files and match them to parsers."""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

from unidep.engines.dependency_scanner.catalog import VersionCatalog
from unidep.engines.dependency_scanner.models import FileScan, ScanWarning
from unidep.exceptions import ParseFailure

log = structlog.get_logger("unidep.scanner")

ROOT_MODULE = "root"

SKIPPED_DIRS = frozenset({"build", ".gradle", ".idea", "node_modules", "target", "out", ".git"})


@runtime_checkable
class BuildFileParser(Protocol):
    """Interface that every build-file parser must satisfy."""

    detection_method: str
    file_patterns: list[str]

    def parse(
        self,
        file_path: Path,
        content: str,
        *,
        module: str = ROOT_MODULE,
        catalog: VersionCatalog | None = None,
    ) -> FileScan: ...


PARSER_REGISTRY: dict[str, BuildFileParser] = {}


def register_parser(parser: BuildFileParser) -> None:
    """Register a parser instance by its detection_method."""
    PARSER_REGISTRY[parser.detection_method] = parser


def parser_for(file_path: Path) -> BuildFileParser | None:
    """Return the parser whose file pattern matches *file_path*'s name."""
    for parser in PARSER_REGISTRY.values():
        for pattern in parser.file_patterns:
            if fnmatch(file_path.name, pattern.rsplit("/", 1)[-1]):
                return parser
    return None


def discover_build_files(repo_path: Path) -> list[tuple[BuildFileParser, Path]]:
    """Walk the project and match build files to registered parsers.

    Output directories and tool caches (``build``, ``.gradle``, ``target``,
    ``node_modules`` …) are skipped. Returns (parser, file) pairs sorted by
    path.
    """
    matches: list[tuple[BuildFileParser, Path]] = []
    for parser in PARSER_REGISTRY.values():
        for pattern in parser.file_patterns:
            for hit in repo_path.glob(pattern):
                rel_parts = hit.relative_to(repo_path).parts[:-1]
                if hit.is_file() and not SKIPPED_DIRS.intersection(rel_parts):
                    matches.append((parser, hit))
    matches.sort(key=lambda pair: str(pair[1]))
    return matches


def report_failure(result: FileScan, failure: ParseFailure) -> None:
    """Record a non-fatal parse failure on *result* and log it."""
    log.warning("scanner.parse_failure", file=failure.file_path, reason=failure.reason)
    result.warnings.append(ScanWarning(failure.file_path, failure.reason))


def line_number(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1
