"""
specgraph — document validation

File: src/specgraph/graph/validator.py

Purpose
- Validate one document's references against the current corpus snapshot.

Functional requirements
- Every front-matter item and every mention is checked on its own and attributed to its
  own source span.
- Over-specification is checked first; an over-specified site is not checked further.
- Missing targets are reported for well-formed references with no document on disk.
- Circularity is checked only for ``depends-on`` sites whose target exists: ``D -> T`` is
  circular iff ``D`` is reachable from ``T``.
- Findings are returned as values; nothing here raises for graph defects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Final

from specgraph.documents.parser import parse
from specgraph.graph.dependency_graph import DependencyGraph, dependency_keys
from specgraph.graph.extractor import Relation, ReferenceSite, SourceSpan, extract_references
from specgraph.observability.logging import get_logger
from specgraph.workspace.corpus import read_optional
from specgraph.workspace.layout import SpecLayout

if TYPE_CHECKING:
    from specgraph.workspace.corpus import SpecCorpus


class IssueKind(Enum):
    OVER_SPECIFIED = "over-specified"
    MISSING_TARGET = "missing-target"
    CIRCULAR_DEPENDENCY = "circular-dependency"


_SUBJECTS: Final[dict[Relation, str]] = {
    Relation.DEPENDS_ON: "Dependency",
    Relation.REFERENCES: "Reference",
    Relation.MENTION: "Mention",
}
_OVER_SPECIFIED_SUBJECTS: Final[dict[Relation, str]] = {
    **_SUBJECTS,
    Relation.DEPENDS_ON: "Depends-on",
}


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    kind: IssueKind
    site: ReferenceSite
    message: str

    @property
    def span(self) -> SourceSpan:
        return self.site.span

    @property
    def relation(self) -> Relation:
        return self.site.relation


class DocumentValidator:
    """Validates documents against one corpus; holds no state between calls."""

    def __init__(
        self,
        corpus: SpecCorpus,
        *,
        layout: SpecLayout | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._corpus = corpus
        self._layout = layout or SpecLayout()
        self._logger = logger or get_logger("graph.validator")

    def validate(self, path: str, text: str | None = None) -> list[ValidationIssue]:
        """
        Validate the document at ``path``; ``text`` overrides the stored content.

        An unreadable document has no references and therefore no issues.
        """
        source = text
        if source is None:
            source = read_optional(self._corpus, path, logger=self._logger)
        if source is None:
            return []

        extracted = extract_references(source)
        document = parse(source, path)
        own = self._layout.reference_for(path)

        graph = DependencyGraph.lazy(self._corpus, layout=self._layout, logger=self._logger)
        if own is not None:
            graph.set_dependencies(own.key, dependency_keys(document.depends_on))

        own_key = own.key if own is not None else None
        exists: dict[str, bool] = {}
        issues: list[ValidationIssue] = []
        for site in extracted.all_sites():
            issue = self._check_site(site, own_key=own_key, graph=graph, exists=exists)
            if issue is not None:
                issues.append(issue)

        self._logger.debug(
            "validated document",
            extra={"path": str(PurePosixPath(path)), "issue_count": len(issues)},
        )
        return issues

    def _check_site(
        self,
        site: ReferenceSite,
        *,
        own_key: str | None,
        graph: DependencyGraph,
        exists: dict[str, bool],
    ) -> ValidationIssue | None:
        reference = site.reference
        if reference is None or reference.is_over_specified:
            subject = _OVER_SPECIFIED_SUBJECTS[site.relation]
            return ValidationIssue(
                IssueKind.OVER_SPECIFIED, site, f"{subject} '{site.raw}' is over-specified"
            )

        key = reference.key
        if key not in exists:
            target_path = self._layout.path_for(reference)
            exists[key] = read_optional(self._corpus, target_path, logger=self._logger) is not None
        subject = _SUBJECTS[site.relation]
        if not exists[key]:
            return ValidationIssue(IssueKind.MISSING_TARGET, site, f"{subject} '{key}' not found")

        if (
            site.relation is Relation.DEPENDS_ON
            and own_key is not None
            and graph.would_create_cycle(own_key, key)
        ):
            return ValidationIssue(
                IssueKind.CIRCULAR_DEPENDENCY,
                site,
                f"{subject} '{key}' creates a circular dependency",
            )
        return None


def validate_document(
    path: str,
    corpus: SpecCorpus,
    text: str | None = None,
    *,
    layout: SpecLayout | None = None,
    logger: logging.Logger | None = None,
) -> list[ValidationIssue]:
    return DocumentValidator(corpus, layout=layout, logger=logger).validate(path, text)


__all__ = ["DocumentValidator", "IssueKind", "ValidationIssue", "validate_document"]
