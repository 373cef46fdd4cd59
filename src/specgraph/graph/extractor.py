"""
specgraph — reference extraction

File: src/specgraph/graph/extractor.py

Purpose
- Collect every reference a document makes, with editor-ready source spans.
- Classify a cursor position for completion (front-matter list vs body).

Functional requirements
- Front-matter relations (``depends-on`` and ``references``) are reported item by item;
  the span covers the item text without surrounding quotes.
- When a key is repeated the last occurrence wins, matching the parser.
- Items that are not even ``artifact.tag`` shaped are kept with ``reference=None`` so the
  validator can still report them.
- Mentions are reported from the body only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Final

from specgraph.documents.model import Reference
from specgraph.documents.parser import (
    FRONT_MATTER_DELIMITER,
    find_front_matter,
    find_mentions,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

DEPENDS_ON_KEYS: Final[frozenset[str]] = frozenset({"depends-on", "dependsOn"})
REFERENCES_KEYS: Final[frozenset[str]] = frozenset({"references"})
_QUOTE_CHARS: Final[str] = "\"'"


class Relation(Enum):
    DEPENDS_ON = "depends-on"
    REFERENCES = "references"
    MENTION = "mention"


class CompletionContext(Enum):
    DEPENDS_ON = "depends-on"
    REFERENCES = "references"
    FRONT_MATTER = "front-matter"
    BODY = "body"


@dataclass(frozen=True, slots=True)
class SourceSpan:
    """Zero-based ``line``/``column`` plus ``length`` in characters."""

    line: int
    column: int
    length: int

    @property
    def end_column(self) -> int:
        return self.column + self.length


@dataclass(frozen=True, slots=True)
class ReferenceSite:
    relation: Relation
    raw: str
    reference: Reference | None
    span: SourceSpan

    @property
    def is_over_specified(self) -> bool:
        return self.reference is None or self.reference.is_over_specified


@dataclass(frozen=True, slots=True)
class ExtractedReferences:
    depends_on: tuple[ReferenceSite, ...] = ()
    references: tuple[ReferenceSite, ...] = ()
    mentions: tuple[ReferenceSite, ...] = ()

    def all_sites(self) -> tuple[ReferenceSite, ...]:
        return self.depends_on + self.references + self.mentions


def extract_references(raw_text: str) -> ExtractedReferences:
    lines = raw_text.splitlines()
    block = find_front_matter(lines)

    depends_on: tuple[ReferenceSite, ...] = ()
    references: tuple[ReferenceSite, ...] = ()
    body_start = 0
    if block is not None:
        body_start = block.end_line + 1
        for index in range(block.start_line + 1, block.end_line):
            line = lines[index]
            key, separator, _ = line.partition(":")
            if not separator:
                continue
            key = key.strip()
            value_offset = line.index(":") + 1
            if key in DEPENDS_ON_KEYS:
                depends_on = _list_item_sites(Relation.DEPENDS_ON, line, index, value_offset)
            elif key in REFERENCES_KEYS:
                references = _list_item_sites(Relation.REFERENCES, line, index, value_offset)

    mentions = tuple(
        ReferenceSite(
            relation=Relation.MENTION,
            raw=match.raw,
            reference=match.reference,
            span=SourceSpan(line=match.line, column=match.column, length=match.length),
        )
        for match in find_mentions(lines, start_line=body_start)
    )
    return ExtractedReferences(depends_on=depends_on, references=references, mentions=mentions)


def completion_context(raw_text: str, line: int, column: int = 0) -> CompletionContext:
    """
    Classify the cursor at (``line``, ``column``).

    The cursor is inside front matter when an odd number of ``---`` lines precede its
    line. Inside front matter the nearest line at or above the cursor naming
    ``depends-on`` or ``references`` selects the list being edited.
    """
    del column  # the decision is line-based
    lines = raw_text.splitlines()
    if line < 0:
        return CompletionContext.BODY
    preceding = lines[: min(line, len(lines))]
    delimiters = sum(1 for text in preceding if text.strip() == FRONT_MATTER_DELIMITER)
    if delimiters % 2 == 0:
        return CompletionContext.BODY

    for index in range(min(line, len(lines) - 1), -1, -1):
        text = lines[index]
        if "depends-on" in text or "dependsOn" in text:
            return CompletionContext.DEPENDS_ON
        if "references" in text:
            return CompletionContext.REFERENCES
    return CompletionContext.FRONT_MATTER


def _list_item_sites(
    relation: Relation, line: str, line_number: int, value_offset: int
) -> tuple[ReferenceSite, ...]:
    value = line[value_offset:]
    stripped = value.strip()
    if not stripped:
        return ()
    start = value_offset + (len(value) - len(value.lstrip()))
    if stripped.startswith("[") and stripped.endswith("]"):
        inner_start = start + 1
        segments = _split_with_offsets(line[inner_start : start + len(stripped) - 1], inner_start)
    else:
        segments = [(stripped, start)]

    sites: list[ReferenceSite] = []
    for segment, offset in segments:
        item, column = _trim_item(segment, offset)
        if not item:
            continue
        sites.append(
            ReferenceSite(
                relation=relation,
                raw=item,
                reference=Reference.try_parse(item),
                span=SourceSpan(line=line_number, column=column, length=len(item)),
            )
        )
    return tuple(sites)


def _split_with_offsets(text: str, base: int) -> list[tuple[str, int]]:
    segments: list[tuple[str, int]] = []
    cursor = 0
    for part in text.split(","):
        segments.append((part, base + cursor))
        cursor += len(part) + 1
    return segments


def _trim_item(segment: str, offset: int) -> tuple[str, int]:
    leading = len(segment) - len(segment.lstrip())
    item = segment.strip()
    column = offset + leading
    if item[:1] and item[0] in _QUOTE_CHARS:
        item = item[1:]
        column += 1
    if item[-1:] and item[-1] in _QUOTE_CHARS:
        item = item[:-1]
    return item, column


def site_at(sites: Sequence[ReferenceSite], line: int, column: int) -> ReferenceSite | None:
    """The site whose span covers (``line``, ``column``), if any."""
    for site in sites:
        span = site.span
        if span.line == line and span.column <= column <= span.end_column:
            return site
    return None


__all__ = [
    "CompletionContext",
    "ExtractedReferences",
    "ReferenceSite",
    "Relation",
    "SourceSpan",
    "completion_context",
    "extract_references",
    "site_at",
]
