"""Project scan entry points — walk a project and parse every build file."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import structlog

# Ensure parsers are registered before any scan runs.
import unidep.engines.dependency_scanner.parsers  # noqa: F401
from unidep.core.files import read_text
from unidep.engines.dependency_scanner.catalog import VersionCatalog, find_catalog, read_catalog
from unidep.engines.dependency_scanner.models import FileScan, InstalledDependency, ScanResult
from unidep.engines.dependency_scanner.registry import (
    ROOT_MODULE,
    BuildFileParser,
    discover_build_files,
    parser_for,
    report_failure,
)
from unidep.exceptions import ParseFailure

log = structlog.get_logger("unidep.scanner")

DEFAULT_MAX_WORKERS = 8

SETTINGS_FILES = ("settings.gradle.kts", "settings.gradle")


def module_name(file_path: Path, root: Path) -> str:
    """``root`` for the project's own build file, else the directory path relative to *root*."""
    parent = file_path.resolve().parent
    root = root.resolve()
    if parent == root:
        return ROOT_MODULE
    try:
        return parent.relative_to(root).as_posix()
    except ValueError:
        return parent.name


def find_project_root(file_path: Path) -> Path:
    """Nearest directory at or above *file_path* holding a Gradle settings script.

    Falls back to the file's own directory, which is right for standalone
    builds and POMs.
    """
    start = file_path.resolve().parent
    for directory in (start, *start.parents):
        if any((directory / name).is_file() for name in SETTINGS_FILES):
            return directory
    return start


class _CatalogCache:
    """Load each version catalog once per scan."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._loaded: dict[Path, VersionCatalog | None] = {}

    def for_file(self, file_path: Path) -> VersionCatalog | None:
        path = find_catalog(file_path, self._root)
        if path is None:
            return None
        if path not in self._loaded:
            self._loaded[path] = read_catalog(path)
        return self._loaded[path]


def _parse_file(
    parser: BuildFileParser,
    file_path: Path,
    module: str,
    catalog: VersionCatalog | None,
) -> FileScan:
    try:
        content = read_text(file_path)
    except OSError as exc:
        result = FileScan()
        report_failure(result, ParseFailure(str(file_path), f"unreadable: {exc}"))
        return result
    return parser.parse(file_path, content, module=module, catalog=catalog)


def scan_file(file_path: Path, root: Path | None = None) -> FileScan:
    """Scan one build file.

    *root* is used for module naming and catalog lookup; it defaults to
    :func:`find_project_root`, so a submodule sees the root version catalog.
    """
    file_path = file_path.resolve()
    project_root = (root or find_project_root(file_path)).resolve()
    parser = parser_for(file_path)
    if parser is None:
        raise ValueError(f"no parser for {file_path.name}")
    catalog = _CatalogCache(project_root).for_file(file_path)
    return _parse_file(parser, file_path, module_name(file_path, project_root), catalog)


def scan(repo_path: Path, *, max_workers: int = DEFAULT_MAX_WORKERS) -> ScanResult:
    """Scan a local project directory for dependencies, plugins and repositories.

    Files are parsed concurrently; results are merged in path order so two
    scans of an unchanged tree are identical.
    """
    root = repo_path.resolve()
    matches = discover_build_files(root)
    catalogs = _CatalogCache(root)
    jobs = [
        (parser, file_path, module_name(file_path, root), catalogs.for_file(file_path))
        for parser, file_path in matches
    ]

    scans: dict[int, FileScan] = {}
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        future_to_index = {pool.submit(_parse_file, *job): index for index, job in enumerate(jobs)}
        for future in as_completed(future_to_index):
            scans[future_to_index[future]] = future.result()

    result = ScanResult()
    for index, (_, file_path, _, _) in enumerate(jobs):
        file_scan = scans[index]
        result.files.append(str(file_path))
        result.dependencies.extend(file_scan.dependencies)
        result.plugins.extend(file_scan.plugins)
        result.maven_plugins.extend(file_scan.maven_plugins)
        result.warnings.extend(file_scan.warnings)
        for url in file_scan.repositories:
            if url not in result.repositories:
                result.repositories.append(url)

    log.info(
        "scanner.scan_complete",
        root=str(root),
        files=len(result.files),
        dependencies=len(result.dependencies),
        plugins=len(result.plugins),
        maven_plugins=len(result.maven_plugins),
        warnings=len(result.warnings),
    )
    return result


scan_project = scan


def scan_installed_dependencies(repo_path: Path) -> list[InstalledDependency]:
    """All dependency records of a project, in file order."""
    return scan(repo_path).dependencies


def get_module_build_files(repo_path: Path) -> dict[str, Path]:
    """Map module name to its build file (first match wins)."""
    root = repo_path.resolve()
    modules: dict[str, Path] = {}
    for _, file_path in discover_build_files(root):
        modules.setdefault(module_name(file_path, root), file_path)
    return modules
