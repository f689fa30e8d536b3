"""Statement grammar for dependency and plugin declarations in Gradle scripts.

Both the scanners and the mutators use these matchers: the scanners to find
declarations, the mutators to re-read a declaration at its recorded range
before touching it. Every matcher is anchored at a statement start and works
on a :class:`~unidep.engines.dependency_scanner.blocks.MaskedText`, so
offsets in the results always index the original text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from unidep.engines.dependency_scanner.blocks import MaskedText, extend_statement, match_brace
from unidep.engines.dependency_scanner.models import (
    DIALECT_KOTLIN,
    KOTLIN_PLUGIN_PREFIX,
    Coordinate,
    DependencyExclusion,
    PluginSyntax,
)

# Gradle configuration names (not exhaustive, but covers the common ones)
CONFIGURATIONS = (
    "implementation",
    "api",
    "compileOnly",
    "compileOnlyApi",
    "runtimeOnly",
    "annotationProcessor",
    "kapt",
    "ksp",
    "testImplementation",
    "testCompileOnly",
    "testRuntimeOnly",
    "androidTestImplementation",
    "debugImplementation",
    "releaseImplementation",
    "testFixturesImplementation",
    "testFixturesApi",
    "compile",
    "runtime",
    "testCompile",
    "testRuntime",
    "provided",
)

_CONFIGS = (
    r"(?P<conf>"
    + "|".join(sorted(CONFIGURATIONS, key=len, reverse=True))
    + r"|\w+Implementation|\w+Api|\w+CompileOnly|\w+RuntimeOnly)\b"
)

BUILT_IN_PLUGINS = frozenset(
    {
        "java",
        "java-library",
        "application",
        "groovy",
        "scala",
        "war",
        "ear",
        "maven-publish",
        "ivy-publish",
        "signing",
        "jacoco",
        "checkstyle",
        "pmd",
        "findbugs",
        "codenarc",
        "antlr",
        "idea",
        "eclipse",
        "project-report",
        "build-dashboard",
        "base",
        "distribution",
    }
)

_CATALOG_REF = r"(?P<ref>libs(?:\.[A-Za-z_]\w*)+)(?![\w.(])"

# ── dependency declarations ─────────────────────────────────────────────

# implementation 'g:a:v' / implementation("g:a:v")
_GROOVY_LITERAL_RE = re.compile(
    _CONFIGS
    + r"[ \t]*(?P<paren>\(\s*)?"
    r"(?P<q>['\"])(?P<coord>[^'\"\r\n]*)(?P=q)"
    r"(?(paren)\s*\))"
)

# implementation group: 'g', name: 'a', version: 'v'
_GROOVY_MAP_RE = re.compile(
    _CONFIGS
    + r"[ \t]*(?P<paren>\(\s*)?"
    r"group\s*:\s*(?P<q1>['\"])(?P<group>[^'\"\r\n]*)(?P=q1)\s*,\s*"
    r"name\s*:\s*(?P<q2>['\"])(?P<name>[^'\"\r\n]*)(?P=q2)\s*,\s*"
    r"version\s*:\s*(?P<q3>['\"])(?P<version>[^'\"\r\n]*)(?P=q3)"
    r"(?(paren)\s*\))"
)

_GROOVY_CATALOG_RE = re.compile(
    _CONFIGS + r"[ \t]*(?P<paren>\(\s*)?" + _CATALOG_REF + r"(?(paren)\s*\))"
)

_KOTLIN_LITERAL_RE = re.compile(_CONFIGS + r"\s*\(\s*\"(?P<coord>[^\"\r\n]*)\"\s*\)")

_KOTLIN_NAMED_RE = re.compile(
    _CONFIGS + r"\s*\(\s*"
    r"group\s*=\s*\"(?P<group>[^\"\r\n]*)\"\s*,\s*"
    r"name\s*=\s*\"(?P<name>[^\"\r\n]*)\"\s*,\s*"
    r"version\s*=\s*\"(?P<version>[^\"\r\n]*)\"\s*\)"
)

_KOTLIN_CATALOG_RE = re.compile(_CONFIGS + r"\s*\(\s*" + _CATALOG_REF + r"\s*\)")

_GROOVY_EXCLUDE_RE = re.compile(
    r"exclude[ \t]*(?P<paren>\(\s*)?group\s*:\s*(?P<q1>['\"])(?P<group>[^'\"\r\n]+)(?P=q1)"
    r"(?:\s*,\s*module\s*:\s*(?P<q2>['\"])(?P<module>[^'\"\r\n]+)(?P=q2))?(?(paren)\s*\))"
)

_KOTLIN_EXCLUDE_RE = re.compile(
    r"exclude\s*\(\s*group\s*=\s*\"(?P<group>[^\"\r\n]+)\""
    r"(?:\s*,\s*module\s*=\s*\"(?P<module>[^\"\r\n]+)\")?\s*\)"
)


@dataclass(frozen=True)
class ExclusionEntry:
    exclusion: DependencyExclusion
    start: int
    end: int


@dataclass(frozen=True)
class DependencyStatement:
    """One dependency declaration as it is spelled in the script."""

    configuration: str
    start: int
    head_end: int
    end: int
    coordinate: Coordinate | None
    version: str | None
    version_span: tuple[int, int] | None
    catalog_ref: str | None = None
    closure: tuple[int, int] | None = None
    exclusions: tuple[ExclusionEntry, ...] = ()


def _closure_after(masked: MaskedText, head_end: int, limit: int) -> tuple[int, int] | None:
    code = masked.code
    j = head_end
    while j < limit and code[j] in " \t":
        j += 1
    if j >= limit or code[j] != "{":
        return None
    close = match_brace(code, j, limit)
    if close < 0:
        return None
    return j, close


def _exclusions_in(
    masked: MaskedText, closure: tuple[int, int]
) -> tuple[ExclusionEntry, ...]:
    text, code = masked.text, masked.code
    found: dict[int, ExclusionEntry] = {}
    for pattern in (_GROOVY_EXCLUDE_RE, _KOTLIN_EXCLUDE_RE):
        for m in pattern.finditer(text, closure[0] + 1, closure[1]):
            # Skip matches that start inside a comment or string.
            if code[m.start()] != "e" or m.start() in found:
                continue
            exclusion = DependencyExclusion(m.group("group"), m.group("module"))
            found[m.start()] = ExclusionEntry(exclusion, m.start(), m.end())
    return tuple(found[k] for k in sorted(found))


def match_dependency(
    masked: MaskedText, pos: int, limit: int, dialect: str
) -> DependencyStatement | None:
    """Match a dependency declaration starting exactly at *pos*.

    Returns ``None`` for anything that is not a static declaration: project
    dependencies, interpolated strings, coordinates with fewer than three
    parts and bundle/plugin catalog references are all ignored.
    """
    text = masked.text
    if dialect == DIALECT_KOTLIN:
        patterns = (_KOTLIN_LITERAL_RE, _KOTLIN_NAMED_RE, _KOTLIN_CATALOG_RE)
    else:
        patterns = (_GROOVY_LITERAL_RE, _GROOVY_MAP_RE, _GROOVY_CATALOG_RE)

    for pattern in patterns:
        m = pattern.match(text, pos, limit)
        if m is None:
            continue
        groups = m.groupdict()
        coordinate: Coordinate | None = None
        version: str | None = None
        version_span: tuple[int, int] | None = None
        catalog_ref: str | None = None

        if groups.get("coord") is not None:
            literal = groups["coord"]
            parts = literal.split(":")
            if "$" in literal or len(parts) < 3 or not all(parts[:3]):
                return None
            # `g:a:1.0@aar` names an artifact type; the type is not part of the version.
            version = parts[2].split("@", 1)[0]
            if not version:
                return None
            coordinate = Coordinate(parts[0], parts[1])
            v_start = m.start("coord") + len(parts[0]) + len(parts[1]) + 2
            version_span = (v_start, v_start + len(version))
        elif groups.get("ref") is not None:
            catalog_ref = groups["ref"]
            if catalog_ref.startswith(("libs.bundles.", "libs.plugins.", "libs.versions.")):
                return None
        else:
            values = (groups["group"], groups["name"], groups["version"])
            if any("$" in v or not v for v in values):
                return None
            coordinate = Coordinate(values[0], values[1])
            version = values[2]
            version_span = m.span("version")

        head_end = m.end()
        closure = _closure_after(masked, head_end, limit)
        syntax_end = closure[1] + 1 if closure else head_end
        return DependencyStatement(
            configuration=m.group("conf"),
            start=pos,
            head_end=head_end,
            end=extend_statement(masked, syntax_end, limit),
            coordinate=coordinate,
            version=version,
            version_span=version_span,
            catalog_ref=catalog_ref,
            closure=closure,
            exclusions=_exclusions_in(masked, closure) if closure else (),
        )
    return None


# ── plugin declarations ─────────────────────────────────────────────────

_KOTLIN_TAIL = (
    r"(?:[ \t]+version[ \t]*(?P<vparen>\(\s*)?\"(?P<version>[^\"\r\n]*)\"(?(vparen)\s*\)))?"
    r"(?:[ \t]+apply[ \t]*(?P<aparen>\(\s*)?(?P<apply>true|false)(?(aparen)\s*\)))?"
)

_GROOVY_TAIL = (
    r"(?:[ \t]+version[ \t]*(?P<vparen>\(\s*)?(?P<vq>['\"])(?P<version>[^'\"\r\n]*)(?P=vq)"
    r"(?(vparen)\s*\)))?"
    r"(?:[ \t]+apply[ \t]*(?P<aparen>\(\s*)?(?P<apply>true|false)(?(aparen)\s*\)))?"
)

_BUILT_IN_ALTERNATION = "|".join(
    re.escape(p) for p in sorted(BUILT_IN_PLUGINS, key=len, reverse=True)
)

_KOTLIN_PLUGIN_PATTERNS: tuple[tuple[re.Pattern[str], PluginSyntax], ...] = (
    (re.compile(r"id\s*\(\s*\"(?P<id>[^\"\r\n]+)\"\s*\)" + _KOTLIN_TAIL), PluginSyntax.ID_VERSION),
    (
        re.compile(r"kotlin\s*\(\s*\"(?P<id>[^\"\r\n]+)\"\s*\)" + _KOTLIN_TAIL),
        PluginSyntax.KOTLIN_SHORTHAND,
    ),
    (re.compile(r"`(?P<id>[\w.-]+)`" + _KOTLIN_TAIL), PluginSyntax.BACKTICK),
    (
        re.compile(r"alias\s*\(\s*" + _CATALOG_REF + r"\s*\)" + _KOTLIN_TAIL),
        PluginSyntax.CATALOG_ALIAS,
    ),
    (
        re.compile(r"(?P<id>" + _BUILT_IN_ALTERNATION + r")(?![\w\-.(`])" + _KOTLIN_TAIL),
        PluginSyntax.KOTLIN_ACCESSOR,
    ),
)

_GROOVY_PLUGIN_PATTERNS: tuple[tuple[re.Pattern[str], PluginSyntax], ...] = (
    (
        re.compile(
            r"id[ \t]*(?P<paren>\(\s*)?(?P<q>['\"])(?P<id>[^'\"\r\n]+)(?P=q)(?(paren)\s*\))"
            + _GROOVY_TAIL
        ),
        PluginSyntax.GROOVY_ID_VERSION,
    ),
    (
        re.compile(r"alias\s*\(\s*" + _CATALOG_REF + r"\s*\)" + _GROOVY_TAIL),
        PluginSyntax.CATALOG_ALIAS,
    ),
    (
        re.compile(r"(?P<id>" + _BUILT_IN_ALTERNATION + r")(?![\w\-.('\"])" + _GROOVY_TAIL),
        PluginSyntax.GROOVY_SHORTHAND,
    ),
)

_GROOVY_APPLY_RE = re.compile(
    r"apply[ \t]*(?P<paren>\(\s*)?plugin\s*:\s*(?P<q>['\"])(?P<id>[^'\"\r\n]+)(?P=q)(?(paren)\s*\))"
)
_KOTLIN_APPLY_RE = re.compile(r"apply\s*\(\s*plugin\s*=\s*\"(?P<id>[^\"\r\n]+)\"\s*\)")


@dataclass(frozen=True)
class PluginStatement:
    """One plugin entry as it is spelled in the script."""

    plugin_id: str | None
    version: str | None
    version_span: tuple[int, int] | None
    syntax: PluginSyntax
    is_applied: bool
    start: int
    end: int
    catalog_ref: str | None = None


def match_plugin(
    masked: MaskedText, pos: int, limit: int, dialect: str
) -> PluginStatement | None:
    """Match a ``plugins {}`` entry starting exactly at *pos*."""
    text = masked.text
    patterns = _KOTLIN_PLUGIN_PATTERNS if dialect == DIALECT_KOTLIN else _GROOVY_PLUGIN_PATTERNS
    for pattern, syntax in patterns:
        m = pattern.match(text, pos, limit)
        if m is None:
            continue
        groups = m.groupdict()
        plugin_id = groups.get("id")
        if plugin_id is not None and "$" in plugin_id:
            return None

        version = groups.get("version")
        version_span = m.span("version") if version is not None else None
        if version is not None and ("$" in version or not version):
            # Interpolated versions are kept in the range but cannot be edited.
            version, version_span = None, None

        if syntax is PluginSyntax.KOTLIN_SHORTHAND and plugin_id is not None:
            plugin_id = KOTLIN_PLUGIN_PREFIX + plugin_id
        elif syntax is PluginSyntax.ID_VERSION and groups.get("version") is None:
            syntax = PluginSyntax.ID_ONLY
        elif syntax is PluginSyntax.GROOVY_ID_VERSION and groups.get("version") is None:
            syntax = PluginSyntax.GROOVY_ID_ONLY

        return PluginStatement(
            plugin_id=plugin_id,
            version=version,
            version_span=version_span,
            syntax=syntax,
            is_applied=groups.get("apply") != "false",
            start=pos,
            end=extend_statement(masked, m.end(), limit),
            catalog_ref=groups.get("ref"),
        )
    return None


def match_legacy_apply(
    masked: MaskedText, pos: int, limit: int, dialect: str
) -> PluginStatement | None:
    """Match ``apply plugin: 'x'`` (Groovy) or ``apply(plugin = "x")`` (Kotlin)."""
    pattern = _KOTLIN_APPLY_RE if dialect == DIALECT_KOTLIN else _GROOVY_APPLY_RE
    m = pattern.match(masked.text, pos, limit)
    if m is None or "$" in m.group("id"):
        return None
    return PluginStatement(
        plugin_id=m.group("id"),
        version=None,
        version_span=None,
        syntax=PluginSyntax.LEGACY_APPLY,
        is_applied=True,
        start=pos,
        end=extend_statement(masked, m.end(), limit),
    )
