"""
specgraph — documents

File: src/specgraph/documents/__init__.py

Purpose
- Document model, the total parser and front-matter rewriting.
"""

from specgraph.documents.front_matter import (
    convert_filename_mentions,
    refresh_metadata,
    render_front_matter,
)
from specgraph.documents.model import (
    DEFAULT_PHASE,
    UNKNOWN_ARTIFACT,
    Document,
    FrontMatter,
    Phase,
    Reference,
    is_bare_reference,
    parse_spec_file_name,
)
from specgraph.documents.parser import parse

__all__ = [
    "DEFAULT_PHASE",
    "Document",
    "FrontMatter",
    "Phase",
    "Reference",
    "UNKNOWN_ARTIFACT",
    "convert_filename_mentions",
    "is_bare_reference",
    "parse",
    "parse_spec_file_name",
    "refresh_metadata",
    "render_front_matter",
]
