"""Workspace: on-disk layout, corpus access and change handling."""

from specgraph.workspace.corpus import (
    FileSystemCorpus,
    InMemoryCorpus,
    SearchableCorpus,
    SpecCorpus,
    WritableCorpus,
    read_optional,
)
from specgraph.workspace.layout import KnownReferences, SpecLayout

__all__ = [
    "FileSystemCorpus",
    "InMemoryCorpus",
    "KnownReferences",
    "SearchableCorpus",
    "SpecCorpus",
    "SpecLayout",
    "WritableCorpus",
    "read_optional",
]
