"""
specgraph — edge suggestions

File: src/specgraph/query/suggestions.py

Purpose
- Candidate identifiers for a new ``depends-on`` entry, ``references`` entry or mention.

Functional requirements
- Implementation documents and the document itself are never candidates.
- Phase ordering is applied here, not in validation: requirements depend on requirements,
  designs on requirements or designs, implementations on anything.
- ``depends-on`` candidates additionally exclude anything that would close a cycle.
- The summary document is requirement-level and never gets ``depends-on`` candidates.
- Mentions: the summary document mentions only requirements; requirement documents never
  mention designs.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from specgraph.documents.model import Phase, Reference
from specgraph.documents.parser import parse
from specgraph.graph.dependency_graph import DependencyGraph, dependency_keys
from specgraph.workspace.corpus import read_optional

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable

    from specgraph.workspace.corpus import SpecCorpus
    from specgraph.workspace.layout import SpecLayout

ALLOWED_DEPENDENCY_PHASES: Final[MappingProxyType[Phase, frozenset[Phase]]] = MappingProxyType(
    {
        Phase.REQUIREMENT: frozenset({Phase.REQUIREMENT}),
        Phase.DESIGN: frozenset({Phase.REQUIREMENT, Phase.DESIGN}),
        Phase.IMPLEMENTATION: frozenset(Phase),
    }
)


@dataclass(frozen=True, slots=True)
class DocumentIdentity:
    """Who is asking: the file's own key (if any), its phase and whether it is the summary."""

    key: str | None
    phase: Phase
    is_summary: bool


def identify(
    path: str,
    corpus: SpecCorpus,
    layout: SpecLayout,
    *,
    text: str | None = None,
    logger: logging.Logger | None = None,
) -> DocumentIdentity:
    if layout.is_summary(path):
        return DocumentIdentity(key=None, phase=Phase.REQUIREMENT, is_summary=True)
    own = layout.reference_for(path)
    if own is not None:
        return DocumentIdentity(key=own.key, phase=own.phase, is_summary=False)
    source = text if text is not None else read_optional(corpus, path, logger=logger)
    return DocumentIdentity(key=None, phase=parse(source or "").phase, is_summary=False)


def suggest_depends_on_candidates(
    path: str,
    corpus: SpecCorpus,
    layout: SpecLayout,
    *,
    text: str | None = None,
    logger: logging.Logger | None = None,
) -> list[Reference]:
    identity = identify(path, corpus, layout, text=text, logger=logger)
    if identity.is_summary:
        return []
    known = layout.known_references(corpus).references
    candidates = _ordered_candidates(known, identity)

    if identity.key is None:
        return candidates
    graph = DependencyGraph.lazy(corpus, layout=layout, logger=logger)
    if text is not None:
        graph.set_dependencies(identity.key, dependency_keys(parse(text, path).depends_on))
    return [
        candidate
        for candidate in candidates
        if not graph.would_create_cycle(identity.key, candidate.key)
    ]


def suggest_reference_candidates(
    path: str,
    corpus: SpecCorpus,
    layout: SpecLayout,
    *,
    text: str | None = None,
    logger: logging.Logger | None = None,
) -> list[Reference]:
    identity = identify(path, corpus, layout, text=text, logger=logger)
    return _ordered_candidates(layout.known_references(corpus).references, identity)


def suggest_mention_candidates(
    path: str,
    corpus: SpecCorpus,
    layout: SpecLayout,
    *,
    is_summary_document: bool | None = None,
    text: str | None = None,
    logger: logging.Logger | None = None,
) -> list[Reference]:
    identity = identify(path, corpus, layout, text=text, logger=logger)
    is_summary = identity.is_summary if is_summary_document is None else is_summary_document

    allowed: set[Phase] = {Phase.REQUIREMENT, Phase.DESIGN}
    if is_summary:
        allowed = {Phase.REQUIREMENT}
    elif identity.phase is Phase.REQUIREMENT:
        allowed.discard(Phase.DESIGN)

    return [
        candidate
        for candidate in layout.known_references(corpus).references
        if candidate.phase in allowed and candidate.key != identity.key
    ]


def _ordered_candidates(
    known: Iterable[Reference], identity: DocumentIdentity
) -> list[Reference]:
    allowed = ALLOWED_DEPENDENCY_PHASES[identity.phase] - {Phase.IMPLEMENTATION}
    return [
        candidate
        for candidate in known
        if candidate.phase in allowed and candidate.key != identity.key
    ]


__all__ = [
    "ALLOWED_DEPENDENCY_PHASES",
    "DocumentIdentity",
    "identify",
    "suggest_depends_on_candidates",
    "suggest_mention_candidates",
    "suggest_reference_candidates",
]
