"""
specgraph — unit tests for change handling

File: tests/unit/workspace/test_watcher.py

Purpose
- Validate debounced validation, retraction on delete and the metadata refresh on save.

What this test file should cover
- Coalescing of bursts of events for one path.
- Deletion cancelling pending work and retracting diagnostics.
- Non-spec paths being ignored.
- Refresh writing back only when the text changed.
- Handlers built from configured `[watch]` settings.

Non-functional requirements
- Short real delays only; no reliance on wall-clock ordering across paths.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any

import pytest

from specgraph.graph.extractor import ReferenceSite, Relation, SourceSpan
from specgraph.graph.validator import IssueKind, ValidationIssue
from specgraph.workspace.corpus import InMemoryCorpus
from specgraph.workspace.watcher import (
    ChangeEvent,
    ChangeKind,
    Diagnostic,
    RecordingDiagnosticsSink,
    SpecChangeHandler,
    WatchSettings,
)

pytestmark = pytest.mark.unit

A_REQ = "specs/requirements/a.req.md"
B_DESIGN = "specs/design/b.design.md"
DELAY = 0.01


async def _settle() -> None:
    await asyncio.sleep(DELAY * 5)


def _handler(
    corpus: InMemoryCorpus, **kwargs: Any
) -> tuple[SpecChangeHandler, RecordingDiagnosticsSink]:
    sink = RecordingDiagnosticsSink()
    kwargs.setdefault("rewrite_metadata", False)
    handler = SpecChangeHandler(corpus, sink, debounce_seconds=DELAY, **kwargs)
    return handler, sink


@pytest.mark.asyncio
async def test_burst_of_events_is_validated_once() -> None:
    corpus = InMemoryCorpus({B_DESIGN: "---\ndepends-on: [ghost.req]\n---\n"})
    handler, sink = _handler(corpus)

    for _ in range(5):
        handler.handle_event(ChangeEvent(B_DESIGN, ChangeKind.MODIFIED))
    assert handler.debouncer.pending_keys == (B_DESIGN,)
    await _settle()

    assert len(sink.history) == 1
    (diagnostic,) = sink.published[B_DESIGN]
    assert diagnostic.code == IssueKind.MISSING_TARGET.value
    assert diagnostic.severity == "warning"
    assert diagnostic.message == "Dependency 'ghost.req' not found"
    await handler.aclose()


@pytest.mark.asyncio
async def test_latest_content_wins_within_the_debounce_window() -> None:
    corpus = InMemoryCorpus({A_REQ: "", B_DESIGN: "---\ndepends-on: [ghost.req]\n---\n"})
    handler, sink = _handler(corpus)

    handler.handle_event(ChangeEvent(B_DESIGN, ChangeKind.MODIFIED))
    corpus.write_file(B_DESIGN, "---\ndepends-on: [a.req]\n---\n")
    handler.handle_event(ChangeEvent(B_DESIGN, ChangeKind.MODIFIED))
    await _settle()

    assert sink.history == [(B_DESIGN, ())]
    assert B_DESIGN not in sink.published
    await handler.aclose()


@pytest.mark.asyncio
async def test_delete_cancels_pending_run_and_retracts() -> None:
    corpus = InMemoryCorpus({B_DESIGN: "---\nreferences: [ghost.req]\n---\n"})
    handler, sink = _handler(corpus)

    handler.process(B_DESIGN)
    assert B_DESIGN in sink.published

    handler.handle_event(ChangeEvent(B_DESIGN, ChangeKind.MODIFIED))
    corpus.delete_file(B_DESIGN)
    handler.handle_event(ChangeEvent(B_DESIGN, ChangeKind.DELETED))
    assert not handler.debouncer.is_pending(B_DESIGN)
    await _settle()

    assert sink.history[-1] == (B_DESIGN, ())
    assert B_DESIGN not in sink.published
    assert len(sink.history) == 2
    await handler.aclose()


@pytest.mark.asyncio
async def test_delete_of_unpublished_path_publishes_nothing() -> None:
    handler, sink = _handler(InMemoryCorpus())
    handler.handle_event(ChangeEvent(A_REQ, ChangeKind.DELETED))
    await _settle()
    assert sink.history == []
    await handler.aclose()


@pytest.mark.asyncio
async def test_non_spec_paths_are_ignored() -> None:
    handler, sink = _handler(InMemoryCorpus({"src/app.py": "x"}))
    handler.handle_event(ChangeEvent("src/app.py", ChangeKind.MODIFIED))
    handler.handle_event(ChangeEvent("specs/notes.txt", ChangeKind.CREATED))
    assert handler.debouncer.pending_keys == ()
    await _settle()
    assert sink.history == []
    await handler.aclose()


@pytest.mark.asyncio
async def test_unreadable_document_is_treated_as_deleted() -> None:
    corpus = InMemoryCorpus({B_DESIGN: "---\nreferences: [ghost.req]\n---\n"})
    handler, sink = _handler(corpus)
    handler.process(B_DESIGN)

    corpus.delete_file(B_DESIGN)
    handler.handle_event(ChangeEvent(B_DESIGN, ChangeKind.MODIFIED))
    await _settle()

    assert sink.history[-1] == (B_DESIGN, ())
    await handler.aclose()


@pytest.mark.asyncio
async def test_refresh_rewrites_metadata_before_validation() -> None:
    corpus = InMemoryCorpus({A_REQ: "---\nartifact: unknown\n---\nSee a.req.md\n"})
    handler, sink = _handler(
        corpus, rewrite_metadata=True, sync_references=True, today=lambda: date(2026, 2, 1)
    )

    handler.handle_event(ChangeEvent(A_REQ, ChangeKind.CREATED))
    await _settle()

    stored = corpus.read_file(A_REQ)
    assert "artifact: a" in stored
    assert "phase: requirement" in stored
    assert "last-updated: 2026-02-01" in stored
    assert 'references: ["a.req"]' in stored
    assert stored.endswith("See @a.req\n")
    assert sink.history == [(A_REQ, ())]
    await handler.aclose()


@pytest.mark.asyncio
async def test_handler_built_from_settings_refreshes_by_default() -> None:
    corpus = InMemoryCorpus({A_REQ: "---\nartifact: unknown\n---\n"})
    sink = RecordingDiagnosticsSink()
    handler = SpecChangeHandler.from_settings(
        corpus, sink, WatchSettings(debounce_seconds=DELAY), today=lambda: date(2026, 3, 4)
    )

    assert handler.debouncer.delay_seconds == DELAY
    handler.handle_event(ChangeEvent(A_REQ, ChangeKind.MODIFIED))
    await _settle()

    stored = corpus.read_file(A_REQ)
    assert "artifact: a" in stored
    assert "last-updated: 2026-03-04" in stored
    assert sink.history == [(A_REQ, ())]
    await handler.aclose()


@pytest.mark.asyncio
async def test_aclose_cancels_pending_work() -> None:
    handler, sink = _handler(InMemoryCorpus({A_REQ: ""}))
    handler.handle_event(ChangeEvent(A_REQ, ChangeKind.MODIFIED))
    await handler.aclose()
    await _settle()
    assert sink.history == []


def test_diagnostic_from_issue_carries_kind_and_span() -> None:
    span = SourceSpan(line=1, column=2, length=3)
    site = ReferenceSite(relation=Relation.MENTION, raw="@x.req", reference=None, span=span)
    issue = ValidationIssue(IssueKind.OVER_SPECIFIED, site, "Mention '@x.req' is over-specified")

    assert Diagnostic.from_issue(issue) == Diagnostic(
        span=span,
        message="Mention '@x.req' is over-specified",
        severity="warning",
        code="over-specified",
    )
