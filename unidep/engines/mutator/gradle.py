"""Minimal-diff edits for Gradle build scripts (Groovy and Kotlin DSL).

Every edit re-reads the declaration at the record's range with the same
grammar the scanner uses. If the text there no longer declares the record,
the edit is refused instead of guessing.
"""

from __future__ import annotations

import re
from pathlib import Path

from unidep.core.files import read_text
from unidep.engines.dependency_scanner.blocks import (
    Block,
    MaskedText,
    detect_newline,
    indentation_at,
    mask,
    statement_starts,
    top_level_blocks,
)
from unidep.engines.dependency_scanner.models import (
    DIALECT_GROOVY,
    DIALECT_KOTLIN,
    KOTLIN_PLUGIN_PREFIX,
    Coordinate,
    DependencyExclusion,
    InstalledDependency,
    InstalledPlugin,
    PluginSyntax,
)
from unidep.engines.dependency_scanner.statements import (
    BUILT_IN_PLUGINS,
    DependencyStatement,
    PluginStatement,
    match_dependency,
    match_legacy_apply,
    match_plugin,
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


def _version_token_re(version: str) -> re.Pattern[str]:
    return re.compile(r"(?<![\w.\-])" + re.escape(version) + r"(?![\w.\-])")


def dialect_for(build_file: str | Path) -> str:
    return DIALECT_KOTLIN if str(build_file).endswith(".kts") else DIALECT_GROOVY


def format_dependency(coordinate: Coordinate, version: str, configuration: str, dialect: str) -> str:
    notation = f"{coordinate}:{version}"
    if dialect == DIALECT_KOTLIN:
        return f'{configuration}("{notation}")'
    return f"{configuration} '{notation}'"


def format_exclusion(exclusion: DependencyExclusion, dialect: str) -> str:
    if dialect == DIALECT_KOTLIN:
        if exclusion.artifact_id:
            return f'exclude(group = "{exclusion.group_id}", module = "{exclusion.artifact_id}")'
        return f'exclude(group = "{exclusion.group_id}")'
    if exclusion.artifact_id:
        return f"exclude group: '{exclusion.group_id}', module: '{exclusion.artifact_id}'"
    return f"exclude group: '{exclusion.group_id}'"


def format_plugin(plugin_id: str, version: str | None, dialect: str) -> str:
    if dialect == DIALECT_KOTLIN:
        if plugin_id.startswith(KOTLIN_PLUGIN_PREFIX):
            head = f'kotlin("{plugin_id[len(KOTLIN_PLUGIN_PREFIX):]}")'
        elif version is None and plugin_id in BUILT_IN_PLUGINS:
            return f"`{plugin_id}`"
        else:
            head = f'id("{plugin_id}")'
        return f'{head} version "{version}"' if version is not None else head
    if version is not None:
        return f"id '{plugin_id}' version '{version}'"
    if plugin_id in BUILT_IN_PLUGINS and "-" not in plugin_id:
        return plugin_id
    return f"id '{plugin_id}'"


def _statements_in(masked: MaskedText, block: Block, dialect: str) -> list[DependencyStatement]:
    end = block.body_end(masked)
    found = []
    for pos in statement_starts(masked.code, block.body_start, end):
        stmt = match_dependency(masked, pos, end, dialect)
        if stmt is not None:
            found.append(stmt)
    return found


def _append_to_block(text: str, block: Block, line: str, statement_offsets: list[int]) -> str:
    """Insert *line* as the last statement of a closed block."""
    newline = detect_newline(text)
    block_indent = indentation_at(text, block.start)
    if statement_offsets:
        indent = indentation_at(text, statement_offsets[-1])
        if not indent:
            indent = block_indent + DEFAULT_INDENT
    else:
        indent = block_indent + DEFAULT_INDENT
    return insert_before_closer(
        text, block.close_brace, block.body_start, indent + line, block_indent, newline
    )


def _first_closed(blocks: list[Block], name: str) -> Block | None:
    if not blocks:
        return None
    for block in blocks:
        if block.is_closed:
            return block
    raise EditRejected(f"the '{name}' block is not closed; fix the file before editing")


class GradleDependencyModifier:
    """Compute new build-script text for dependency edits. Never writes files."""

    # ── low-level intents (raise EditRejected) ──────────────────────────

    def remove(self, dependency: InstalledDependency, text: str) -> str:
        stmt = self._locate(dependency, text)
        start, stop = removal_span(text, stmt.start, stmt.end)
        return splice(text, start, stop, "")

    def update(self, dependency: InstalledDependency, new_version: str, text: str) -> str:
        check_token(new_version, "version")
        if dependency.is_from_version_catalog:
            raise UnsupportedEditError(
                f"{dependency.id} takes its version from the version catalog "
                f"({dependency.catalog_key}); edit the catalog instead"
            )
        if dependency.is_version_managed:
            raise UnsupportedEditError(f"{dependency.id} has no version of its own")
        stmt = self._locate(dependency, text)
        if stmt.version_span is None:
            raise UnsupportedEditError(f"{dependency.id} has no literal version to replace")
        v_start, v_end = stmt.version_span
        if text[v_start:v_end] != dependency.version:
            raise StaleRangeError(f"{dependency.id}: version in file is no longer {dependency.version}")
        occurrences = len(_version_token_re(dependency.version).findall(text, stmt.start, stmt.head_end))
        if occurrences > 1:
            raise AmbiguousDeclarationError(f"{dependency.id}:{dependency.version}", occurrences)
        return splice(text, v_start, v_end, new_version)

    def add(
        self,
        build_file: str | Path,
        coordinate: Coordinate,
        version: str,
        configuration: str,
        text: str,
    ) -> str:
        check_token(coordinate.group, "group")
        check_token(coordinate.artifact, "artifact")
        check_token(version, "version")
        check_token(configuration, "configuration")
        dialect = dialect_for(build_file)
        line = format_dependency(coordinate, version, configuration, dialect)

        masked = mask(text)
        blocks = top_level_blocks(masked, "dependencies")
        block = _first_closed(blocks, "dependencies")

        declared = [
            stmt
            for b in blocks
            if b.is_closed
            for stmt in _statements_in(masked, b, dialect)
            if stmt.coordinate == coordinate
        ]
        if declared:
            raise AmbiguousDeclarationError(str(coordinate), len(declared) + 1)

        if block is None:
            newline = detect_newline(text)
            separator = "" if not text else newline if text.endswith(("\n", "\r")) else newline * 2
            return (
                text
                + separator
                + f"dependencies {{{newline}{DEFAULT_INDENT}{line}{newline}}}{newline}"
            )

        offsets = list(statement_starts(masked.code, block.body_start, block.close_brace))
        return _append_to_block(text, block, line, offsets)

    def add_exclusion(
        self, dependency: InstalledDependency, exclusion: DependencyExclusion, text: str
    ) -> str:
        check_token(exclusion.group_id, "group")
        if exclusion.artifact_id:
            check_token(exclusion.artifact_id, "module")
        stmt = self._locate(dependency, text)
        if any(entry.exclusion == exclusion for entry in stmt.exclusions):
            raise EditRejected(f"{dependency.id} already excludes {exclusion.display_name}")

        newline = detect_newline(text)
        indent = indentation_at(text, stmt.start)
        inner = indent + DEFAULT_INDENT
        if stmt.exclusions and indentation_at(text, stmt.exclusions[0].start) != indent:
            inner = indentation_at(text, stmt.exclusions[0].start)
        line = format_exclusion(exclusion, dependency.dialect)

        if stmt.closure is not None:
            open_brace, close_brace = stmt.closure
            return insert_before_closer(
                text, close_brace, open_brace + 1, inner + line, indent, newline
            )
        return splice(
            text,
            stmt.head_end,
            stmt.head_end,
            f" {{{newline}{inner}{line}{newline}{indent}}}",
        )

    def remove_exclusion(
        self, dependency: InstalledDependency, exclusion: DependencyExclusion, text: str
    ) -> str:
        stmt = self._locate(dependency, text)
        matches = [entry for entry in stmt.exclusions if entry.exclusion == exclusion]
        if not matches:
            raise EditRejected(f"{dependency.id} does not exclude {exclusion.display_name}")
        if len(matches) > 1:
            raise AmbiguousDeclarationError(exclusion.display_name, len(matches))
        entry = matches[0]

        if stmt.closure is None:
            raise StaleRangeError(f"{dependency.id}: exclusion block not found")
        open_brace, close_brace = stmt.closure
        leftover = (text[open_brace + 1 : entry.start] + text[entry.end : close_brace]).strip()
        if not leftover:
            # The closure held nothing else: drop it together with the blanks before '{'.
            start = open_brace
            while start > stmt.head_end and text[start - 1] in " \t":
                start -= 1
            return splice(text, start, close_brace + 1, "")
        start, stop = removal_span(text, entry.start, entry.end)
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
        version: str,
        configuration: str = "implementation",
        text: str | None = None,
    ) -> str | None:
        return guarded(
            "add",
            str(coordinate),
            lambda: self.add(
                build_file, coordinate, version, configuration, _current(build_file, text)
            ),
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
    def _locate(dependency: InstalledDependency, text: str) -> DependencyStatement:
        ensure_range(dependency.source, text, dependency.id)
        masked = mask(text)
        stmt = match_dependency(masked, dependency.source.offset, len(text), dependency.dialect)
        if (
            stmt is None
            or stmt.end != dependency.source.end
            or stmt.configuration != dependency.configuration
        ):
            raise StaleRangeError(f"{dependency.id}: declaration at recorded range has changed")

        region = text[stmt.start : stmt.head_end]
        if dependency.is_from_version_catalog:
            if stmt.catalog_ref != dependency.catalog_key:
                raise StaleRangeError(f"{dependency.id}: catalog reference has changed")
            mentions = region.count(dependency.catalog_key or "")
        else:
            if stmt.coordinate != dependency.coordinate:
                raise StaleRangeError(f"{dependency.id}: declaration at recorded range has changed")
            mentions = region.count(f"{dependency.id}:")
        if mentions > 1:
            raise AmbiguousDeclarationError(dependency.id, mentions)
        return stmt


class GradlePluginModifier:
    """Compute new build-script text for plugin edits. Never writes files."""

    def remove_plugin(self, plugin: InstalledPlugin, text: str) -> str:
        stmt = self._locate(plugin, text)
        start, stop = removal_span(text, stmt.start, stmt.end)
        return splice(text, start, stop, "")

    def update_plugin(self, plugin: InstalledPlugin, new_version: str, text: str) -> str:
        check_token(new_version, "version")
        if plugin.version is None:
            raise UnsupportedEditError(f"plugin {plugin.plugin_id} declares no version")
        if plugin.syntax is PluginSyntax.CATALOG_ALIAS:
            raise UnsupportedEditError(
                f"plugin {plugin.plugin_id} takes its version from the version catalog "
                f"({plugin.catalog_key}); edit the catalog instead"
            )
        stmt = self._locate(plugin, text)
        if stmt.version_span is None or text[slice(*stmt.version_span)] != plugin.version:
            raise StaleRangeError(f"plugin {plugin.plugin_id}: version in file has changed")
        return splice(text, *stmt.version_span, new_version)

    def add_plugin(
        self, build_file: str | Path, plugin_id: str, version: str | None, text: str
    ) -> str:
        check_token(plugin_id, "plugin id")
        if version is not None:
            check_token(version, "version")
        dialect = dialect_for(build_file)
        line = format_plugin(plugin_id, version, dialect)
        newline = detect_newline(text)

        masked = mask(text)
        blocks = top_level_blocks(masked, "plugins")
        block = _first_closed(blocks, "plugins")
        if block is not None:
            end = block.close_brace
            statements: list[PluginStatement] = []
            for pos in statement_starts(masked.code, block.body_start, end):
                stmt = match_plugin(masked, pos, end, dialect)
                if stmt is not None:
                    statements.append(stmt)
            duplicates = [s for s in statements if s.plugin_id == plugin_id]
            if duplicates:
                raise AmbiguousDeclarationError(plugin_id, len(duplicates) + 1)
            offsets = list(statement_starts(masked.code, block.body_start, end))
            return _append_to_block(text, block, line, offsets)

        plugins_block = f"plugins {{{newline}{DEFAULT_INDENT}{line}{newline}}}{newline}"
        buildscript = next((b for b in top_level_blocks(masked, "buildscript") if b.is_closed), None)
        if buildscript is not None:
            at = buildscript.close_brace + 1
            terminator = len(newline) if text.startswith(newline, at) else 0
            at += terminator
            prefix = newline if terminator else newline * 2
            return text[:at] + prefix + plugins_block + text[at:]
        if not text:
            return plugins_block
        return plugins_block + newline + text

    # ── facade (returns None on refusal) ────────────────────────────────

    def get_removed_content(self, plugin: InstalledPlugin, text: str | None = None) -> str | None:
        return guarded(
            "remove_plugin",
            plugin.plugin_id,
            lambda: self.remove_plugin(plugin, _current(plugin.source.file_path, text)),
        )

    def get_updated_content(
        self, plugin: InstalledPlugin, new_version: str, text: str | None = None
    ) -> str | None:
        return guarded(
            "update_plugin",
            plugin.plugin_id,
            lambda: self.update_plugin(plugin, new_version, _current(plugin.source.file_path, text)),
        )

    def get_added_content(
        self,
        build_file: str | Path,
        plugin_id: str,
        version: str | None = None,
        text: str | None = None,
    ) -> str | None:
        return guarded(
            "add_plugin",
            plugin_id,
            lambda: self.add_plugin(build_file, plugin_id, version, _current(build_file, text)),
        )

    # ── internals ───────────────────────────────────────────────────────

    @staticmethod
    def _locate(plugin: InstalledPlugin, text: str) -> PluginStatement:
        ensure_range(plugin.source, text, plugin.plugin_id)
        masked = mask(text)
        dialect = dialect_for(plugin.source.file_path)
        if plugin.syntax is PluginSyntax.LEGACY_APPLY:
            stmt = match_legacy_apply(masked, plugin.source.offset, len(text), dialect)
        else:
            stmt = match_plugin(masked, plugin.source.offset, len(text), dialect)
        if stmt is None or stmt.end != plugin.source.end:
            raise StaleRangeError(f"plugin {plugin.plugin_id}: declaration at recorded range has changed")
        if plugin.syntax is PluginSyntax.CATALOG_ALIAS:
            if stmt.catalog_ref != plugin.catalog_key:
                raise StaleRangeError(f"plugin {plugin.plugin_id}: catalog reference has changed")
        elif stmt.plugin_id != plugin.plugin_id:
            raise StaleRangeError(f"plugin {plugin.plugin_id}: declaration at recorded range has changed")
        return stmt


def _current(file_path: str | Path, text: str | None) -> str:
    return text if text is not None else read_text(file_path)
