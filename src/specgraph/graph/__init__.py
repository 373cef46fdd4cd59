"""
specgraph — graph

File: src/specgraph/graph/__init__.py

Purpose
- Reference extraction, the ``depends-on`` graph and per-document validation.
"""

from specgraph.graph.dependency_graph import DependencyGraph
from specgraph.graph.extractor import (
    CompletionContext,
    ExtractedReferences,
    ReferenceSite,
    Relation,
    SourceSpan,
    completion_context,
    extract_references,
)
from specgraph.graph.validator import (
    DocumentValidator,
    IssueKind,
    ValidationIssue,
    validate_document,
)

__all__ = [
    "CompletionContext",
    "DependencyGraph",
    "DocumentValidator",
    "ExtractedReferences",
    "IssueKind",
    "ReferenceSite",
    "Relation",
    "SourceSpan",
    "ValidationIssue",
    "completion_context",
    "extract_references",
    "validate_document",
]
