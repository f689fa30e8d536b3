"""CLI entry point: unidep.

Subcommands:
    unidep scan /path/to/project                       # List declarations
    unidep updates /path/to/project                    # Check upstream for newer versions
    unidep add build.gradle.kts g:a:v -c api           # Add a dependency
    unidep update pom.xml g:a 2.0.0                    # Change a declared version
    unidep remove build.gradle g:a                     # Remove a declaration
    unidep remove pom.xml maven-jar-plugin --plugin    # Remove a build plugin
    unidep exclude build.gradle g:a org.slf4j:*        # Add an exclusion
    unidep unexclude build.gradle g:a org.slf4j:*      # Remove an exclusion
    unidep configure pom.xml maven-jar-plugin a=b      # Set plugin <configuration>
    unidep search okhttp --registry central            # Search a registry

Mutating commands print a unified diff; nothing is written without --write.
"""

from __future__ import annotations

import asyncio
import difflib
import json
import sys
from pathlib import Path
from typing import Any

import click
import structlog

from unidep.core.config import Settings
from unidep.core.files import read_text
from unidep.core.logging import setup_logging
from unidep.engines.aggregator import from_central_doc, from_registry_package
from unidep.engines.dependency_scanner import (
    DEFAULT_MAVEN_PLUGIN_GROUP,
    Coordinate,
    DependencyExclusion,
    InstalledDependency,
    InstalledPlugin,
    MavenPlugin,
    scan_file,
    scan_project,
)
from unidep.engines.dependency_scanner.registry import line_number
from unidep.engines.mutator import (
    GradlePluginModifier,
    MavenPluginModifier,
    apply_changes,
    modifier_for,
)
from unidep.engines.update_resolver import UpdateResolver
from unidep.pipeline import ProjectPipeline


def _dependency_json(dep: InstalledDependency) -> dict[str, Any]:
    return {
        "id": dep.id,
        "version": dep.version,
        "configuration": dep.configuration,
        "module": dep.module,
        "dialect": dep.dialect,
        "file": dep.source.file_path,
        "offset": dep.source.offset,
        "length": dep.source.length,
        "catalog_key": dep.catalog_key,
        "exclusions": [e.display_name for e in dep.exclusions],
        "optional": dep.optional,
    }


def _plugin_json(plugin: InstalledPlugin) -> dict[str, Any]:
    return {
        "id": plugin.plugin_id,
        "version": plugin.version,
        "module": plugin.module,
        "syntax": plugin.syntax.value,
        "applied": plugin.is_applied,
        "file": plugin.source.file_path,
        "offset": plugin.source.offset,
        "length": plugin.source.length,
    }


def _maven_plugin_json(plugin: MavenPlugin) -> dict[str, Any]:
    return {
        "id": plugin.id,
        "version": plugin.version,
        "module": plugin.module,
        "management": plugin.is_from_plugin_management,
        "phase": plugin.phase,
        "goals": list(plugin.goals),
        "configuration": dict(plugin.configuration),
        "file": plugin.source.file_path,
        "offset": plugin.source.offset,
        "length": plugin.source.length,
    }


def _location(file_path: str, offset: int) -> str:
    if offset < 0:
        return f"{file_path}:?"
    try:
        return f"{file_path}:{line_number(read_text(file_path), offset)}"
    except OSError:
        return file_path


def _parse_coordinate(value: str) -> Coordinate:
    try:
        return Coordinate.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _parse_exclusion(value: str) -> DependencyExclusion:
    try:
        return DependencyExclusion.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _find_record(
    build_file: Path, coordinate: Coordinate, configuration: str | None
) -> InstalledDependency:
    records = [
        dep
        for dep in scan_file(build_file).dependencies
        if dep.coordinate == coordinate
        and (configuration is None or dep.configuration == configuration)
    ]
    if not records:
        raise click.ClickException(f"{coordinate} is not declared in {build_file}")
    if len(records) > 1:
        raise click.ClickException(
            f"{coordinate} is declared {len(records)} times in {build_file}; "
            "narrow it down with --configuration"
        )
    return records[0]


def _find_plugin(build_file: Path, plugin_id: str) -> InstalledPlugin:
    records = [p for p in scan_file(build_file).plugins if p.plugin_id == plugin_id]
    if len(records) != 1:
        raise click.ClickException(
            f"plugin {plugin_id} is declared {len(records)} times in {build_file}"
        )
    return records[0]


def _is_pom(build_file: Path) -> bool:
    return build_file.name.endswith(".xml")


def _parse_maven_plugin(value: str) -> tuple[Coordinate, str | None]:
    """Split ``artifact``, ``group:artifact`` or ``group:artifact:version``."""
    parts = value.split(":")
    if len(parts) == 1:
        parts = [DEFAULT_MAVEN_PLUGIN_GROUP, parts[0]]
    version = parts[2] if len(parts) > 2 else None
    return _parse_coordinate(":".join(parts[:2])), version


def _find_maven_plugin(build_file: Path, value: str) -> MavenPlugin:
    coordinate, _ = _parse_maven_plugin(value)
    records = [p for p in scan_file(build_file).maven_plugins if p.coordinate == coordinate]
    if len(records) != 1:
        raise click.ClickException(
            f"plugin {coordinate} is declared {len(records)} times in {build_file}"
        )
    return records[0]


def _parse_setting(value: str) -> tuple[str, str]:
    key, sep, setting = value.partition("=")
    if not sep or not key:
        raise click.BadParameter(f"expected key=value, got {value!r}")
    return key, setting


def _emit(build_file: Path, new_text: str | None, write: bool) -> None:
    """Print the diff for a mutation and optionally persist it."""
    if new_text is None:
        raise click.ClickException("edit refused; rescan the file or edit it manually")
    old_text = read_text(build_file)
    diff = difflib.unified_diff(
        old_text.splitlines(keepends=True),
        new_text.splitlines(keepends=True),
        fromfile=f"a/{build_file.name}",
        tofile=f"b/{build_file.name}",
    )
    click.echo("".join(diff), nl=False)
    if write:
        apply_changes(build_file, new_text)
        click.echo(f"Wrote {build_file}", err=True)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """unidep: index, check and edit dependencies in Gradle and Maven build files."""
    setup_logging(level="DEBUG" if verbose else None)
    ctx.with_resource(structlog.contextvars.bound_contextvars(command=ctx.invoked_subcommand))


@main.command("scan")
@click.argument("project_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
def scan_cmd(project_path: Path, as_json: bool) -> None:
    """List dependency and plugin declarations of a project."""
    result = scan_project(project_path, max_workers=Settings.from_env().max_workers)
    if as_json:
        click.echo(
            json.dumps(
                {
                    "dependencies": [_dependency_json(d) for d in result.dependencies],
                    "plugins": [_plugin_json(p) for p in result.plugins],
                    "maven_plugins": [_maven_plugin_json(p) for p in result.maven_plugins],
                    "repositories": result.repositories,
                    "warnings": [f"{w.file_path}: {w.reason}" for w in result.warnings],
                },
                indent=2,
            )
        )
        return

    for dep in result.dependencies:
        click.echo(
            f"{dep.module:<16} {dep.configuration:<24} {dep.full_name:<60} "
            f"{_location(dep.source.file_path, dep.source.offset)}"
        )
    for plugin in result.plugins:
        version = plugin.version or "-"
        click.echo(f"{plugin.module:<16} {'plugin':<24} {plugin.plugin_id}:{version}")
    for maven_plugin in result.maven_plugins:
        click.echo(
            f"{maven_plugin.module:<16} {'build-plugin':<24} {maven_plugin.full_name:<60} "
            f"{_location(maven_plugin.source.file_path, maven_plugin.source.offset)}"
        )
    for warning in result.warnings:
        click.echo(f"warning: {warning.file_path}: {warning.reason}", err=True)


@main.command("updates")
@click.argument("project_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
def updates_cmd(project_path: Path, as_json: bool) -> None:
    """Show declarations with a newer upstream version."""
    settings = Settings.from_env()
    with UpdateResolver.from_settings(settings) as resolver:
        pipeline = ProjectPipeline(resolver, max_workers=settings.max_workers)
        snapshot = asyncio.run(pipeline.refresh(project_path))

    packages = [pkg for pkg in snapshot.packages if pkg.has_update]
    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "id": pkg.id,
                        "installed": pkg.installed_version,
                        "latest": pkg.latest_version,
                        "modules": list(pkg.modules),
                        "source": pkg.source.value,
                    }
                    for pkg in packages
                ],
                indent=2,
            )
        )
        return
    if not packages:
        click.echo("Everything is up to date.")
        return
    for pkg in packages:
        click.echo(
            f"{pkg.id:<60} {pkg.installed_version} -> {pkg.latest_version}  "
            f"({', '.join(pkg.modules)})"
        )


@main.command("add")
@click.argument("build_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("coordinate")
@click.option("-c", "--configuration", default=None, help="Configuration (Gradle) or scope (Maven)")
@click.option("--plugin", is_flag=True, help="COORDINATE is a plugin id[:version]")
@click.option("--phase", default=None, help="Execution phase of a Maven build plugin")
@click.option("--goal", "goals", multiple=True, help="Execution goal of a Maven build plugin")
@click.option("--write", is_flag=True, help="Write the change to the file")
def add_cmd(
    build_file: Path,
    coordinate: str,
    configuration: str | None,
    plugin: bool,
    phase: str | None,
    goals: tuple[str, ...],
    write: bool,
) -> None:
    """Add COORDINATE (group:artifact[:version]) to BUILD_FILE."""
    if plugin and _is_pom(build_file):
        coord, version = _parse_maven_plugin(coordinate)
        new_text = MavenPluginModifier().get_added_content(
            build_file, coord, version, phase=phase, goals=goals
        )
        _emit(build_file, new_text, write)
        return
    if plugin:
        plugin_id, _, version = coordinate.partition(":")
        new_text = GradlePluginModifier().get_added_content(build_file, plugin_id, version or None)
        _emit(build_file, new_text, write)
        return

    parts = coordinate.split(":")
    coord = _parse_coordinate(":".join(parts[:2]))
    version = parts[2] if len(parts) > 2 else None
    modifier = modifier_for(build_file)
    if _is_pom(build_file):
        new_text = modifier.get_added_content(build_file, coord, version, configuration or "compile")
    else:
        if version is None:
            raise click.BadParameter("Gradle declarations need group:artifact:version")
        new_text = modifier.get_added_content(
            build_file, coord, version, configuration or "implementation"
        )
    _emit(build_file, new_text, write)


@main.command("update")
@click.argument("build_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("coordinate")
@click.argument("version")
@click.option("-c", "--configuration", default=None, help="Only match this configuration/scope")
@click.option("--plugin", is_flag=True, help="COORDINATE is a plugin id")
@click.option("--write", is_flag=True, help="Write the change to the file")
def update_cmd(
    build_file: Path,
    coordinate: str,
    version: str,
    configuration: str | None,
    plugin: bool,
    write: bool,
) -> None:
    """Change the declared VERSION of COORDINATE in BUILD_FILE."""
    if plugin and _is_pom(build_file):
        maven_plugin = _find_maven_plugin(build_file, coordinate)
        _emit(build_file, MavenPluginModifier().get_updated_content(maven_plugin, version), write)
        return
    if plugin:
        record = _find_plugin(build_file, coordinate)
        _emit(build_file, GradlePluginModifier().get_updated_content(record, version), write)
        return
    dep = _find_record(build_file, _parse_coordinate(coordinate), configuration)
    _emit(build_file, modifier_for(build_file).get_updated_content(dep, version), write)


@main.command("remove")
@click.argument("build_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("coordinate")
@click.option("-c", "--configuration", default=None, help="Only match this configuration/scope")
@click.option("--plugin", is_flag=True, help="COORDINATE is a plugin id")
@click.option("--write", is_flag=True, help="Write the change to the file")
def remove_cmd(
    build_file: Path, coordinate: str, configuration: str | None, plugin: bool, write: bool
) -> None:
    """Remove the declaration of COORDINATE from BUILD_FILE."""
    if plugin and _is_pom(build_file):
        maven_plugin = _find_maven_plugin(build_file, coordinate)
        _emit(build_file, MavenPluginModifier().get_removed_content(maven_plugin), write)
        return
    if plugin:
        record = _find_plugin(build_file, coordinate)
        _emit(build_file, GradlePluginModifier().get_removed_content(record), write)
        return
    dep = _find_record(build_file, _parse_coordinate(coordinate), configuration)
    _emit(build_file, modifier_for(build_file).get_removed_content(dep), write)


@main.command("exclude")
@click.argument("build_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("coordinate")
@click.argument("exclusion")
@click.option("-c", "--configuration", default=None, help="Only match this configuration/scope")
@click.option("--write", is_flag=True, help="Write the change to the file")
def exclude_cmd(
    build_file: Path, coordinate: str, exclusion: str, configuration: str | None, write: bool
) -> None:
    """Exclude EXCLUSION (group[:artifact|*]) from COORDINATE's transitive dependencies."""
    dep = _find_record(build_file, _parse_coordinate(coordinate), configuration)
    new_text = modifier_for(build_file).get_content_with_exclusion_added(
        dep, _parse_exclusion(exclusion)
    )
    _emit(build_file, new_text, write)


@main.command("unexclude")
@click.argument("build_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("coordinate")
@click.argument("exclusion")
@click.option("-c", "--configuration", default=None, help="Only match this configuration/scope")
@click.option("--write", is_flag=True, help="Write the change to the file")
def unexclude_cmd(
    build_file: Path, coordinate: str, exclusion: str, configuration: str | None, write: bool
) -> None:
    """Remove the EXCLUSION from COORDINATE's declaration."""
    dep = _find_record(build_file, _parse_coordinate(coordinate), configuration)
    new_text = modifier_for(build_file).get_content_with_exclusion_removed(
        dep, _parse_exclusion(exclusion)
    )
    _emit(build_file, new_text, write)


@main.command("configure")
@click.argument("build_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("plugin")
@click.argument("settings", nargs=-1, required=True)
@click.option("--write", is_flag=True, help="Write the change to the file")
def configure_cmd(build_file: Path, plugin: str, settings: tuple[str, ...], write: bool) -> None:
    """Replace the <configuration> of Maven build PLUGIN with SETTINGS (key=value)."""
    if not _is_pom(build_file):
        raise click.BadParameter("configure only applies to pom.xml build plugins")
    configuration = dict(_parse_setting(value) for value in settings)
    record = _find_maven_plugin(build_file, plugin)
    _emit(build_file, MavenPluginModifier().get_configured_content(record, configuration), write)


@main.command("search")
@click.argument("keyword")
@click.option(
    "--registry",
    type=click.Choice(["central", "npm"]),
    default="central",
    help="Registry to search",
)
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
def search_cmd(keyword: str, registry: str, as_json: bool) -> None:
    """Search a package registry for KEYWORD."""
    with UpdateResolver.from_settings() as resolver:
        if registry == "central":
            packages = [from_central_doc(doc) for doc in resolver.search_central(keyword)]
        else:
            packages = [from_registry_package(hit) for hit in resolver.search_packages(keyword)]

    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "id": pkg.id,
                        "latest": pkg.latest_version,
                        "description": pkg.description,
                        "source": pkg.source.value,
                    }
                    for pkg in packages
                ],
                indent=2,
            )
        )
        return
    if not packages:
        click.echo(f"No results for {keyword!r}.", err=True)
        sys.exit(1)
    for pkg in packages:
        summary = f"  {pkg.description}" if pkg.description else ""
        click.echo(f"{pkg.id:<60} {pkg.latest_version or '-'}{summary}")


if __name__ == "__main__":
    main()
