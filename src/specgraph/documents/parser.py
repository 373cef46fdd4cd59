"""
specgraph — document parser

File: src/specgraph/documents/parser.py

Purpose
- Turn raw specification text into a ``Document``: front matter, ``##`` sections,
  clarification markers and inline mentions.

Functional requirements
- ``parse`` is total: malformed input degrades to sentinel defaults and never raises.
- Fenced code blocks are non-semantic for heading detection.

Non-functional requirements
- Deterministic and side-effect free; no filesystem access.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import TYPE_CHECKING, Final

from specgraph.documents.model import (
    ARTIFACT_NAME_PATTERN,
    DEFAULT_PHASE,
    PHASE_TAG_PATTERN,
    UNKNOWN_ARTIFACT,
    Document,
    FrontMatter,
    Phase,
    Reference,
    parse_spec_file_name,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

FRONT_MATTER_DELIMITER: Final[str] = "---"
BYTE_ORDER_MARK: Final[str] = "\ufeff"
CLARIFY_MARKER: Final[str] = "AI-CLARIFY"

_KEY_ALIASES: Final[dict[str, str]] = {
    "artifact": "artifact",
    "phase": "phase",
    "depends-on": "depends_on",
    "dependsOn": "depends_on",
    "references": "references",
    "version": "version",
    "last-updated": "last_updated",
    "lastUpdated": "last_updated",
}

_SECTION_HEADING_RE: Final[re.Pattern[str]] = re.compile(r"^## (?P<title>.+)$")
_ATX_HEADING_RE: Final[re.Pattern[str]] = re.compile(r"^(?P<marks>#{1,6})\s+(?P<text>.*?)\s*$")
_FENCE_START_RE: Final[re.Pattern[str]] = re.compile(
    r"^(?P<indent>[ ]{0,3})(?P<marker>`{3,}|~{3,}).*$"
)
_FENCE_CLOSE_RE: Final[re.Pattern[str]] = re.compile(r"^[ ]{0,3}(?P<marker>`{3,}|~{3,})\s*$")
_CLARIFY_RE: Final[re.Pattern[str]] = re.compile(rf"\[{CLARIFY_MARKER}:\s*(?P<text>[^\]]+)\]")

MENTION_SIGIL: Final[str] = "@"
_SIGIL_MENTION_RE: Final[re.Pattern[str]] = re.compile(
    rf"{MENTION_SIGIL}(?P<artifact>{ARTIFACT_NAME_PATTERN})\.(?P<tag>{PHASE_TAG_PATTERN})"
    r"(?P<qualifier>[^\s]*)"
)
_FILENAME_MENTION_RE: Final[re.Pattern[str]] = re.compile(
    rf"(?<![\w.@-])(?P<artifact>{ARTIFACT_NAME_PATTERN})\.(?P<tag>{PHASE_TAG_PATTERN})\.md\b"
)
_FILENAME_SUFFIX: Final[str] = ".md"
_QUOTES: Final[tuple[str, str]] = ("\"", "'")
_TRAILING_PUNCTUATION: Final[str] = ".,;:!?)'\""


@dataclass(frozen=True, slots=True)
class FrontMatterBlock:
    """Line bounds of a front-matter block (delimiter lines included)."""

    start_line: int
    end_line: int
    body: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Heading:
    line: int
    depth: int
    text: str


@dataclass(frozen=True, slots=True)
class MentionMatch:
    """A mention found in text; ``line`` and ``column`` are zero-based."""

    reference: Reference
    line: int
    column: int
    length: int
    raw: str


def parse(raw_text: str, path: str | PurePath | None = None) -> Document:
    """
    Parse ``raw_text`` into a ``Document``.

    When ``path`` follows the ``<artifact>.<tag>.md`` convention its phase is
    authoritative over the front-matter ``phase`` value.
    """
    text = raw_text.removeprefix(BYTE_ORDER_MARK) if isinstance(raw_text, str) else ""
    lines = text.splitlines()

    block = find_front_matter(lines)
    front_matter = parse_front_matter(block.body) if block is not None else FrontMatter()
    body_start = block.end_line + 1 if block is not None else 0

    artifact = (front_matter.artifact or "").strip() or UNKNOWN_ARTIFACT
    phase = _coerce_phase(front_matter.phase)
    file_phase = phase_from_path(path) if path is not None else None
    if file_phase is not None:
        phase = file_phase

    return Document(
        artifact=artifact,
        phase=phase,
        depends_on=front_matter.depends_on or (),
        references=front_matter.references or (),
        version=front_matter.version,
        last_updated=front_matter.last_updated,
        sections=extract_sections(lines[body_start:]),
        clarifications=extract_clarifications(text),
        mentions=tuple(match.reference for match in find_mentions(lines, start_line=body_start)),
        front_matter=front_matter,
        content=text,
    )


def find_front_matter(lines: Sequence[str]) -> FrontMatterBlock | None:
    """Locate the leading ``---`` block; ``None`` when either delimiter is missing."""
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        return None
    for index in range(1, len(lines)):
        if lines[index].strip() == FRONT_MATTER_DELIMITER:
            return FrontMatterBlock(start_line=0, end_line=index, body=tuple(lines[1:index]))
    return None


def parse_front_matter(body: Sequence[str]) -> FrontMatter:
    """Parse the restricted ``key: value`` / ``key: [a, b]`` grammar."""
    known: dict[str, str | tuple[str, ...]] = {}
    extras: dict[str, str | tuple[str, ...]] = {}

    for raw_line in body:
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if ":" not in line:
            continue
        key, _, raw_value = line.partition(":")
        key = key.strip()
        if not key:
            continue
        value = parse_front_matter_value(raw_value)
        field_name = _KEY_ALIASES.get(key)
        if field_name is None:
            extras[key] = value
        else:
            known[field_name] = value

    return FrontMatter(
        artifact=_as_scalar(known.get("artifact")),
        phase=_as_scalar(known.get("phase")),
        depends_on=_as_list(known.get("depends_on")),
        references=_as_list(known.get("references")),
        version=_as_scalar(known.get("version")),
        last_updated=_as_scalar(known.get("last_updated")),
        extras=extras,
    )


def parse_front_matter_value(raw_value: str) -> str | tuple[str, ...]:
    value = raw_value.strip()
    if value.startswith("[") and value.endswith("]") and len(value) >= 2:
        inner = value[1:-1].strip()
        if not inner:
            return ()
        return tuple(_strip_quotes(item.strip()) for item in inner.split(",") if item.strip())
    return _strip_quotes(value)


def extract_sections(lines: Sequence[str]) -> dict[str, str]:
    """Map each ``## `` heading to its trimmed body, in order of first occurrence."""
    sections: dict[str, str] = {}
    current_title: str | None = None
    current_body: list[str] = []

    for line, fenced in _iter_fence_state(lines):
        match = None if fenced else _SECTION_HEADING_RE.match(line)
        if match is not None:
            if current_title is not None:
                sections[current_title] = "\n".join(current_body).strip()
            current_title = match.group("title").strip()
            current_body = []
            continue
        if current_title is not None:
            current_body.append(line)

    if current_title is not None:
        sections[current_title] = "\n".join(current_body).strip()
    return sections


def extract_clarifications(text: str) -> tuple[str, ...]:
    return tuple(match.group("text").strip() for match in _CLARIFY_RE.finditer(text))


def find_headings(lines: Sequence[str]) -> tuple[Heading, ...]:
    """ATX headings outside fenced code blocks, with zero-based line numbers."""
    headings: list[Heading] = []
    for index, (line, fenced) in enumerate(_iter_fence_state(lines)):
        if fenced:
            continue
        match = _ATX_HEADING_RE.match(line)
        if match is None:
            continue
        headings.append(
            Heading(line=index, depth=len(match.group("marks")), text=match.group("text"))
        )
    return tuple(headings)


def find_mentions(lines: Sequence[str], *, start_line: int = 0) -> tuple[MentionMatch, ...]:
    """Find sigil and filename-style mentions from ``start_line`` onwards."""
    found: list[MentionMatch] = []
    for index in range(start_line, len(lines)):
        found.extend(_mentions_in_line(lines[index], index))
    return tuple(found)


def _mentions_in_line(line: str, line_number: int) -> list[MentionMatch]:
    matches: list[MentionMatch] = []
    for match in _SIGIL_MENTION_RE.finditer(line):
        trailing = match.group("qualifier").rstrip(_TRAILING_PUNCTUATION)
        qualifier = "" if trailing == _FILENAME_SUFFIX else trailing
        raw = line[match.start() : match.start("qualifier")] + trailing
        reference = Reference(
            artifact=match.group("artifact"),
            phase=Phase.from_tag(match.group("tag")),
            qualifier=qualifier,
        )
        matches.append(
            MentionMatch(
                reference=reference,
                line=line_number,
                column=match.start(),
                length=len(raw),
                raw=raw,
            )
        )
    for match in _FILENAME_MENTION_RE.finditer(line):
        reference = Reference(
            artifact=match.group("artifact"), phase=Phase.from_tag(match.group("tag"))
        )
        matches.append(
            MentionMatch(
                reference=reference,
                line=line_number,
                column=match.start(),
                length=match.end() - match.start(),
                raw=match.group(0),
            )
        )
    matches.sort(key=lambda item: item.column)
    return matches


def phase_from_path(path: str | PurePath) -> Phase | None:
    """Phase implied by an ``<artifact>.<tag>.md`` file name, if any."""
    reference = parse_spec_file_name(PurePath(path).name)
    return reference.phase if reference is not None else None


def _iter_fence_state(lines: Sequence[str]) -> list[tuple[str, bool]]:
    """Pair each line with whether it belongs to a fenced code block."""
    states: list[tuple[str, bool]] = []
    fence: tuple[str, int] | None = None
    for line in lines:
        if fence is not None:
            close = _FENCE_CLOSE_RE.match(line)
            if close is not None:
                marker = close.group("marker")
                if marker[0] == fence[0] and len(marker) >= fence[1]:
                    fence = None
            states.append((line, True))
            continue
        start = _FENCE_START_RE.match(line)
        if start is not None:
            marker = start.group("marker")
            fence = (marker[0], len(marker))
            states.append((line, True))
            continue
        states.append((line, False))
    return states


def _strip_quotes(value: str) -> str:
    # One leading and one trailing quote character, matched or not.
    if value.startswith(_QUOTES):
        value = value[1:]
    if value.endswith(_QUOTES):
        value = value[:-1]
    return value


def _as_scalar(value: str | tuple[str, ...] | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, tuple):
        return ", ".join(value)
    return value


def _as_list(value: str | tuple[str, ...] | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, tuple):
        return value
    stripped = value.strip()
    if not stripped:
        return ()
    return (stripped,)


def _coerce_phase(raw_phase: str | None) -> Phase:
    if raw_phase is None:
        return DEFAULT_PHASE
    try:
        return Phase.from_label(raw_phase)
    except ValueError:
        return DEFAULT_PHASE


__all__ = [
    "BYTE_ORDER_MARK",
    "CLARIFY_MARKER",
    "FRONT_MATTER_DELIMITER",
    "FrontMatterBlock",
    "Heading",
    "MENTION_SIGIL",
    "MentionMatch",
    "extract_clarifications",
    "extract_sections",
    "find_front_matter",
    "find_headings",
    "find_mentions",
    "parse",
    "parse_front_matter",
    "parse_front_matter_value",
    "phase_from_path",
]
