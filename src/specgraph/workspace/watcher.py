"""
specgraph — change handling

File: src/specgraph/workspace/watcher.py

Purpose
- Turn external create/modify/delete events into published diagnostics.

What should be included in this file
- ``ChangeEvent`` / ``ChangeKind`` as delivered by the host's file watcher.
- ``Diagnostic`` and the ``DiagnosticsSink`` port.
- ``SpecChangeHandler``: debounced per path, optional metadata refresh before validation.

Functional requirements
- A newer event for a path replaces that path's pending run.
- Deletion cancels any pending run and retracts the path's published diagnostics.
- Only spec documents (``.md`` under the specs directory) are handled.
- An unreadable document is treated as deleted.

Non-functional requirements
- Runs on the host's asyncio loop; validation itself is synchronous.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Protocol

from specgraph.documents.front_matter import convert_filename_mentions, refresh_metadata
from specgraph.graph.validator import DocumentValidator, IssueKind, ValidationIssue
from specgraph.observability.logging import correlation_scope, get_logger
from specgraph.utils.concurrency import DebounceManager, close_debouncer
from specgraph.workspace.corpus import WritableCorpus, read_optional
from specgraph.workspace.layout import SpecLayout

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from specgraph.graph.extractor import SourceSpan
    from specgraph.workspace.corpus import SpecCorpus


@dataclass(frozen=True, slots=True)
class WatchSettings:
    """Handler options as configured under ``[watch]``."""

    debounce_seconds: float = 0.5
    rewrite_metadata: bool = True
    sync_references: bool = False


class ChangeKind(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    path: str
    kind: ChangeKind


@dataclass(frozen=True, slots=True)
class Diagnostic:
    span: SourceSpan
    message: str
    severity: str = "warning"
    code: str | None = None

    @classmethod
    def from_issue(cls, issue: ValidationIssue) -> Diagnostic:
        return cls(span=issue.span, message=issue.message, code=issue.kind.value)


class DiagnosticsSink(Protocol):
    def publish(self, path: str, diagnostics: Sequence[Diagnostic]) -> None: ...


class RecordingDiagnosticsSink:
    """Keeps the last published list per path; an empty list removes the entry."""

    def __init__(self) -> None:
        self.published: dict[str, tuple[Diagnostic, ...]] = {}
        self.history: list[tuple[str, tuple[Diagnostic, ...]]] = []

    def publish(self, path: str, diagnostics: Sequence[Diagnostic]) -> None:
        snapshot = tuple(diagnostics)
        self.history.append((path, snapshot))
        if snapshot:
            self.published[path] = snapshot
        else:
            self.published.pop(path, None)


class SpecChangeHandler:
    """Debounced validation of changed documents, publishing replace-in-full diagnostics."""

    def __init__(
        self,
        corpus: SpecCorpus,
        sink: DiagnosticsSink,
        *,
        layout: SpecLayout | None = None,
        debounce_seconds: float = 0.5,
        rewrite_metadata: bool = True,
        sync_references: bool = False,
        today: Callable[[], date] = date.today,
        logger: logging.Logger | None = None,
    ) -> None:
        self._corpus = corpus
        self._sink = sink
        self._layout = layout or SpecLayout()
        self._debouncer = DebounceManager(debounce_seconds)
        self._rewrite_metadata = rewrite_metadata
        self._sync_references = sync_references
        self._today = today
        self._logger = logger or get_logger("workspace.watcher")
        self._validator = DocumentValidator(corpus, layout=self._layout, logger=self._logger)
        self._published: set[str] = set()

    @classmethod
    def from_settings(
        cls,
        corpus: SpecCorpus,
        sink: DiagnosticsSink,
        settings: WatchSettings,
        *,
        layout: SpecLayout | None = None,
        today: Callable[[], date] = date.today,
        logger: logging.Logger | None = None,
    ) -> SpecChangeHandler:
        return cls(
            corpus,
            sink,
            layout=layout,
            debounce_seconds=settings.debounce_seconds,
            rewrite_metadata=settings.rewrite_metadata,
            sync_references=settings.sync_references,
            today=today,
            logger=logger,
        )

    @property
    def debouncer(self) -> DebounceManager:
        return self._debouncer

    def handle_event(self, event: ChangeEvent) -> None:
        """Schedule or retract work for ``event``; must be called on the running loop."""
        path = PurePosixPath(event.path).as_posix()
        if not self._layout.is_spec_path(path):
            return
        if event.kind is ChangeKind.DELETED:
            self._debouncer.cancel(path)
            self.retract(path)
            return
        self._debouncer.schedule(path, lambda: self.process(path))

    def process(self, path: str) -> list[Diagnostic]:
        """Refresh (if enabled), validate and publish ``path`` now."""
        with correlation_scope(document=path):
            text = read_optional(self._corpus, path, logger=self._logger)
            if text is None:
                self.retract(path)
                return []

            if self._rewrite_metadata and isinstance(self._corpus, WritableCorpus):
                text = self._refresh(self._corpus, path, text)

            issues = self._validator.validate(path, text)
            diagnostics = [Diagnostic.from_issue(issue) for issue in issues]
            self._sink.publish(path, diagnostics)
            self._published.add(path)

            circular = sum(1 for issue in issues if issue.kind is IssueKind.CIRCULAR_DEPENDENCY)
            self._logger.info(
                "document validated",
                extra={"issue_count": len(issues), "circular_count": circular},
            )
            return diagnostics

    def retract(self, path: str) -> None:
        if path not in self._published:
            return
        self._published.discard(path)
        self._sink.publish(path, [])
        self._logger.info("diagnostics retracted", extra={"document": path})

    async def aclose(self) -> None:
        await close_debouncer(self._debouncer)

    def _refresh(self, corpus: WritableCorpus, path: str, text: str) -> str:
        refreshed = refresh_metadata(
            convert_filename_mentions(text),
            path,
            today=self._today(),
            sync_references=self._sync_references,
        )
        if refreshed != text:
            corpus.write_file(path, refreshed)
            self._logger.debug("metadata refreshed")
        return refreshed


__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "Diagnostic",
    "DiagnosticsSink",
    "RecordingDiagnosticsSink",
    "SpecChangeHandler",
    "WatchSettings",
]
