"""
specgraph — query service

File: src/specgraph/query/navigation.py

Purpose
- Point queries for editor front ends: resolve, hover, element blocks, find-references,
  implementation lookup, document links and edge suggestions.

Functional requirements
- Navigation-style queries (hover, implementations) never raise for resolution failures;
  they log at debug level and return ``None`` or an empty list.
- Find-references is a textual whole-token scan over every corpus file.
- Every query recomputes from the corpus; nothing is cached between calls.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Final

from specgraph.documents.model import Phase, Reference
from specgraph.documents.parser import find_headings
from specgraph.graph.extractor import SourceSpan, extract_references
from specgraph.observability.logging import get_logger
from specgraph.query import suggestions
from specgraph.resolution.identifiers import ResolutionError, ResolvedTarget, resolve_target
from specgraph.workspace.corpus import SearchableCorpus, list_all_files, read_optional
from specgraph.workspace.layout import KnownReferences, SpecLayout

if TYPE_CHECKING:
    from collections.abc import Iterable

    from specgraph.workspace.corpus import SpecCorpus

ELEMENT_HEADING_MIN_DEPTH: Final[int] = 3
_TOKEN_CHARS: Final[str] = r"A-Za-z0-9_-"


@dataclass(frozen=True, slots=True)
class Location:
    path: str
    span: SourceSpan


@dataclass(frozen=True, slots=True)
class HoverResult:
    target: ResolvedTarget
    block: str


@dataclass(frozen=True, slots=True)
class DocumentLink:
    span: SourceSpan
    reference: Reference
    target_path: str


def token_pattern(token: str) -> re.Pattern[str]:
    """Match ``token`` only where it is not part of a longer identifier."""
    return re.compile(rf"(?<![{_TOKEN_CHARS}]){re.escape(token)}(?![{_TOKEN_CHARS}])")


def locate_element_block(text: str, element_id: str) -> str | None:
    """
    Body of the element's defining heading, trimmed.

    The defining heading is the first heading of depth >= 3 containing ``element_id`` as a
    whole token. The body runs to the next heading of equal or shallower depth, or to the
    end of the document; the heading line itself is excluded.
    """
    lines = text.splitlines()
    pattern = token_pattern(element_id)
    headings = find_headings(lines)
    for index, heading in enumerate(headings):
        if heading.depth < ELEMENT_HEADING_MIN_DEPTH or not pattern.search(heading.text):
            continue
        end = len(lines)
        for following in headings[index + 1 :]:
            if following.depth <= heading.depth:
                end = following.line
                break
        return "\n".join(lines[heading.line + 1 : end]).strip()
    return None


def scan_for_pattern(
    corpus: SpecCorpus,
    paths: Iterable[str],
    pattern: re.Pattern[str],
    *,
    logger: logging.Logger | None = None,
) -> list[Location]:
    locations: list[Location] = []
    for path in paths:
        text = read_optional(corpus, path, logger=logger)
        if text is None:
            continue
        for line_number, line in enumerate(text.splitlines()):
            for match in pattern.finditer(line):
                span = SourceSpan(
                    line=line_number, column=match.start(), length=match.end() - match.start()
                )
                locations.append(Location(path=path, span=span))
    return locations


class SpecQueryService:
    """Read-only queries over one corpus."""

    def __init__(
        self,
        corpus: SpecCorpus,
        *,
        layout: SpecLayout | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._corpus = corpus
        self._layout = layout or SpecLayout()
        self._logger = logger or get_logger("query")

    @property
    def layout(self) -> SpecLayout:
        return self._layout

    def known_references(self) -> KnownReferences:
        return self._layout.known_references(self._corpus)

    def resolve(
        self, element_id: str, line_text: str = "", current_file: str | None = None
    ) -> ResolvedTarget | None:
        """Resolve ``element_id``; ``ResolutionError`` propagates to the caller."""
        return resolve_target(element_id, line_text, current_file, layout=self._layout)

    def locate_element_block(self, text: str, element_id: str) -> str | None:
        return locate_element_block(text, element_id)

    def hover(
        self, element_id: str, line_text: str = "", current_file: str | None = None
    ) -> HoverResult | None:
        target = self._resolve_quietly(element_id, line_text, current_file)
        if target is None:
            return None
        text = read_optional(self._corpus, target.path, logger=self._logger)
        if text is None:
            return None
        block = locate_element_block(text, element_id)
        if block is None:
            return None
        return HoverResult(target=target, block=block)

    def find_all_referencing_locations(self, element_id: str) -> list[Location]:
        pattern = token_pattern(element_id)
        locations = scan_for_pattern(
            self._corpus, list_all_files(self._corpus), pattern, logger=self._logger
        )
        self._logger.debug(
            "find references", extra={"element_id": element_id, "matches": len(locations)}
        )
        return locations

    def find_implementations(
        self, element_id: str, line_text: str = "", current_file: str | None = None
    ) -> list[Location]:
        """
        Places that implement ``element_id`` one phase further down.

        - requirement elements: ``<artifact>.req/<ID>`` in design documents
        - design elements: ``<artifact>.design/<ID>`` in implementation documents
        - implementation elements: ``// <artifact>/<ID>`` in non-spec source files
        """
        target = self._resolve_quietly(element_id, line_text, current_file)
        if target is None:
            return []

        escaped_id = re.escape(element_id)
        artifact = re.escape(target.artifact)
        if target.phase is Phase.IMPLEMENTATION:
            pattern = re.compile(rf"//\s*{artifact}/{escaped_id}(?![{_TOKEN_CHARS}])")
            paths: Iterable[str] = (
                self._corpus.list_source_files()
                if isinstance(self._corpus, SearchableCorpus)
                else ()
            )
        else:
            searched_phase = (
                Phase.DESIGN if target.phase is Phase.REQUIREMENT else Phase.IMPLEMENTATION
            )
            pattern = re.compile(
                rf"(?<![{_TOKEN_CHARS}]){artifact}\.{target.phase.tag}/{escaped_id}"
                rf"(?![{_TOKEN_CHARS}])"
            )
            folder = PurePosixPath(self._layout.specs_dir) / searched_phase.folder
            paths = [
                path
                for path in self._corpus.list_artifact_files()
                if PurePosixPath(path).parent == folder
            ]

        locations = scan_for_pattern(self._corpus, paths, pattern, logger=self._logger)
        self._logger.debug(
            "find implementations",
            extra={
                "element_id": element_id,
                "pattern": pattern.pattern,
                "matches": len(locations),
            },
        )
        return locations

    def document_links(self, path: str, text: str | None = None) -> list[DocumentLink]:
        """Links from mentions and front-matter references to documents that exist."""
        source = text
        if source is None:
            source = read_optional(self._corpus, path, logger=self._logger)
        if source is None:
            return []
        links: list[DocumentLink] = []
        for site in extract_references(source).all_sites():
            reference = site.reference
            if reference is None or reference.is_over_specified:
                continue
            target_path = self._layout.path_for(reference)
            if read_optional(self._corpus, target_path, logger=self._logger) is None:
                continue
            links.append(
                DocumentLink(span=site.span, reference=reference, target_path=target_path)
            )
        return links

    def suggest_depends_on_candidates(self, path: str, text: str | None = None) -> list[Reference]:
        return suggestions.suggest_depends_on_candidates(
            path, self._corpus, self._layout, text=text, logger=self._logger
        )

    def suggest_reference_candidates(self, path: str, text: str | None = None) -> list[Reference]:
        return suggestions.suggest_reference_candidates(
            path, self._corpus, self._layout, text=text, logger=self._logger
        )

    def suggest_mention_candidates(
        self,
        path: str,
        is_summary_document: bool | None = None,
        text: str | None = None,
    ) -> list[Reference]:
        return suggestions.suggest_mention_candidates(
            path,
            self._corpus,
            self._layout,
            is_summary_document=is_summary_document,
            text=text,
            logger=self._logger,
        )

    def _resolve_quietly(
        self, element_id: str, line_text: str, current_file: str | None
    ) -> ResolvedTarget | None:
        try:
            return self.resolve(element_id, line_text, current_file)
        except ResolutionError as exc:
            self._logger.debug(
                "element not resolvable", extra={"element_id": element_id, "reason": str(exc)}
            )
            return None


__all__ = [
    "DocumentLink",
    "HoverResult",
    "Location",
    "SpecQueryService",
    "locate_element_block",
    "scan_for_pattern",
    "token_pattern",
]
