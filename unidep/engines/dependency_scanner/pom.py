"""POM helpers: namespace-agnostic ElementTree access and raw element spans.

ElementTree gives the structure of a POM but no source positions, so the
scanner and the XML mutator also tokenize the raw text into
:class:`ElementSpan` records. Comments, CDATA sections, processing
instructions and doctypes are blanked before tokenizing.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from dataclasses import dataclass

_PROP_RE = re.compile(r"\$\{([^}]+)\}")

_NON_ELEMENT_RE = re.compile(r"<!--.*?-->|<!\[CDATA\[.*?\]\]>|<\?.*?\?>|<!DOCTYPE[^>]*>", re.S)

_TAG_RE = re.compile(
    r"<(?P<close>/)?(?P<name>[A-Za-z_][\w.\-]*(?::[A-Za-z_][\w.\-]*)?)"
    r"(?:\s[^<>]*?)?(?P<self>/)?\s*>"
)

MAX_PROPERTY_PASSES = 10


# ── ElementTree helpers ─────────────────────────────────────────────────


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` part of an ElementTree tag."""
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def children(element: ET.Element | None, name: str) -> Iterator[ET.Element]:
    if element is None:
        return
    for child in element:
        if isinstance(child.tag, str) and local_name(child.tag) == name:
            yield child


def child(element: ET.Element | None, name: str) -> ET.Element | None:
    return next(children(element, name), None)


def child_text(element: ET.Element | None, name: str) -> str | None:
    found = child(element, name)
    if found is None or found.text is None:
        return None
    return found.text.strip() or None


def resolve_properties(value: str, props: dict[str, str]) -> str:
    """Replace ``${property}`` placeholders; unknown ones are kept literally."""

    def _replace(m: re.Match) -> str:
        return props.get(m.group(1), m.group(0))

    return _PROP_RE.sub(_replace, value)


def extract_properties(root: ET.Element) -> dict[str, str]:
    """Build the property table used for ``${...}`` substitution.

    Holds ``project.*``/``pom.*`` coordinates (falling back to ``<parent>``),
    the parent version and every child of ``<properties>``. References between
    properties are resolved iteratively, at most ``MAX_PROPERTY_PASSES``
    times.
    """
    parent = child(root, "parent")
    props: dict[str, str] = {}

    for key in ("version", "groupId", "artifactId"):
        value = child_text(root, key)
        if value is None and key != "artifactId":
            value = child_text(parent, key)
        if value is not None:
            props[f"project.{key}"] = value
            props[f"pom.{key}"] = value

    parent_version = child_text(parent, "version")
    if parent_version is not None:
        props["parent.version"] = parent_version
        props["project.parent.version"] = parent_version

    properties = child(root, "properties")
    if properties is not None:
        for prop in properties:
            if isinstance(prop.tag, str):
                props[local_name(prop.tag)] = (prop.text or "").strip()

    for _ in range(MAX_PROPERTY_PASSES):
        changed = False
        for key, value in props.items():
            if "${" not in value:
                continue
            resolved = resolve_properties(value, props)
            if resolved != value:
                props[key] = resolved
                changed = True
        if not changed:
            break
    return props


# ── raw text spans ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class ElementSpan:
    """Source position of one element in the raw POM text."""

    name: str
    path: tuple[str, ...]  # local names of the ancestors, root first
    start: int  # '<' of the opening tag
    open_end: int  # just past the opening tag
    close_start: int  # '<' of the closing tag (== open_end when self-closing)
    end: int  # just past the closing tag

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def self_closing(self) -> bool:
        return self.close_start == self.end

    def inner(self, text: str) -> str:
        return text[self.open_end : self.close_start]

    def contains(self, other: ElementSpan) -> bool:
        return self.start <= other.start and other.end <= self.end


def mask_xml(text: str) -> str:
    """Blank comments, CDATA, processing instructions and doctypes, keeping offsets."""

    def _blank(m: re.Match) -> str:
        return re.sub(r"[^\r\n]", " ", m.group(0))

    return _NON_ELEMENT_RE.sub(_blank, text)


def element_spans(text: str) -> list[ElementSpan]:
    """Tokenize *text* into element spans, ordered by opening tag.

    Elements that are never closed are dropped; a stray closing tag closes
    the nearest open element with the same name.
    """
    masked = mask_xml(text)
    stack: list[tuple[str, int, int]] = []
    found: list[ElementSpan] = []
    for m in _TAG_RE.finditer(masked):
        name = m.group("name").rsplit(":", 1)[-1]
        if m.group("self"):
            path = tuple(entry[0] for entry in stack)
            found.append(ElementSpan(name, path, m.start(), m.end(), m.end(), m.end()))
        elif not m.group("close"):
            stack.append((name, m.start(), m.end()))
        else:
            for idx in range(len(stack) - 1, -1, -1):
                if stack[idx][0] == name:
                    _, start, open_end = stack[idx]
                    del stack[idx:]
                    path = tuple(entry[0] for entry in stack)
                    found.append(ElementSpan(name, path, start, open_end, m.start(), m.end()))
                    break
    found.sort(key=lambda span: span.start)
    return found


def child_spans(spans: list[ElementSpan], parent: ElementSpan, name: str | None = None) -> list[ElementSpan]:
    """Direct children of *parent*, optionally filtered by local name."""
    want_depth = parent.depth + 1
    return [
        s
        for s in spans
        if s.depth == want_depth
        and parent.start < s.start
        and s.end <= parent.close_start
        and (name is None or s.name == name)
    ]


def child_span_text(text: str, spans: list[ElementSpan], parent: ElementSpan, name: str) -> str | None:
    found = child_spans(spans, parent, name)
    if not found:
        return None
    return found[0].inner(text).strip() or None


def root_span(spans: list[ElementSpan]) -> ElementSpan | None:
    return next((s for s in spans if s.depth == 0), None)


def root_dependencies_span(spans: list[ElementSpan]) -> ElementSpan | None:
    """The ``<dependencies>`` element that is a direct child of the root."""
    return next((s for s in spans if s.depth == 1 and s.name == "dependencies"), None)


def direct_dependency_spans(spans: list[ElementSpan]) -> list[ElementSpan]:
    """``<dependency>`` elements directly under the root-level ``<dependencies>``.

    Entries under ``<dependencyManagement>``, ``<profiles>`` and ``<build>``
    have longer paths and are excluded.
    """
    return [s for s in spans if s.name == "dependency" and len(s.path) == 2 and s.path[1] == "dependencies"]


def build_plugin_spans(spans: list[ElementSpan]) -> list[tuple[ElementSpan, bool]]:
    """``<plugin>`` elements of the root ``<build>``, flagged when under ``<pluginManagement>``.

    Plugins declared inside ``<profiles>`` or nested in reporting sections
    have other paths and are excluded.
    """
    found: list[tuple[ElementSpan, bool]] = []
    for span in spans:
        if span.name != "plugin":
            continue
        if span.path[1:] == ("build", "plugins"):
            found.append((span, False))
        elif span.path[1:] == ("build", "pluginManagement", "plugins"):
            found.append((span, True))
    return found
