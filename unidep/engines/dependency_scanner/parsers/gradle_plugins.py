"""Scanner for plugin declarations in Gradle build scripts.

Finds the top-level ``plugins {}`` block and classifies every entry by the way
it is written (see :class:`PluginSyntax`). Legacy ``apply plugin: 'x'``
statements at the top level of the script are recorded as well.
"""

from __future__ import annotations

from unidep.engines.dependency_scanner.blocks import (
    MaskedText,
    statement_starts,
    top_level_blocks,
)
from unidep.engines.dependency_scanner.catalog import VersionCatalog
from unidep.engines.dependency_scanner.models import InstalledPlugin, PluginSyntax, SourceRange
from unidep.engines.dependency_scanner.statements import (
    PluginStatement,
    match_legacy_apply,
    match_plugin,
)


def _to_plugin(
    stmt: PluginStatement,
    file_path: str,
    module: str,
    catalog: VersionCatalog | None,
) -> InstalledPlugin | None:
    plugin_id = stmt.plugin_id
    version = stmt.version
    if stmt.syntax is PluginSyntax.CATALOG_ALIAS:
        entry = catalog.plugin(stmt.catalog_ref) if catalog and stmt.catalog_ref else None
        if entry is None:
            return None
        plugin_id = entry.plugin_id
        version = version or entry.version
    if not plugin_id:
        return None
    return InstalledPlugin(
        plugin_id=plugin_id,
        version=version,
        module=module,
        source=SourceRange(file_path, stmt.start, stmt.end - stmt.start),
        syntax=stmt.syntax,
        is_applied=stmt.is_applied,
        catalog_key=stmt.catalog_ref,
    )


def scan_plugins(
    masked: MaskedText,
    file_path: str,
    module: str,
    dialect: str,
    catalog: VersionCatalog | None = None,
) -> list[InstalledPlugin]:
    """Return the plugins declared in a script, in file order."""
    plugins: list[InstalledPlugin] = []

    for block in top_level_blocks(masked, "plugins"):
        end = block.body_end(masked)
        for pos in statement_starts(masked.code, block.body_start, end):
            stmt = match_plugin(masked, pos, end, dialect)
            if stmt is None:
                continue
            plugin = _to_plugin(stmt, file_path, module, catalog)
            if plugin is not None:
                plugins.append(plugin)

    for pos in statement_starts(masked.code, 0, masked.limit):
        stmt = match_legacy_apply(masked, pos, masked.limit, dialect)
        if stmt is not None:
            plugin = _to_plugin(stmt, file_path, module, catalog)
            if plugin is not None:
                plugins.append(plugin)

    plugins.sort(key=lambda p: p.source.offset)
    return plugins
