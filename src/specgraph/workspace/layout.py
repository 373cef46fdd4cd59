"""
specgraph — on-disk layout

File: src/specgraph/workspace/layout.py

Purpose
- Map references to ``<specs_dir>/<folder>/<artifact>.<tag>.md`` paths and back.
- Enumerate the artifact-phase identifiers present in a corpus.

Functional requirements
- Paths are POSIX strings relative to the project root.
- The summary document sits at ``<specs_dir>/<summary_document>`` and is never an artifact.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Final

from specgraph.documents.model import SPEC_EXTENSION, Phase, Reference, parse_spec_file_name

if TYPE_CHECKING:
    from specgraph.workspace.corpus import SpecCorpus

DEFAULT_SPECS_DIR: Final[str] = "specs"
DEFAULT_SUMMARY_DOCUMENT: Final[str] = "ConOps.md"


@dataclass(frozen=True, slots=True)
class KnownReferences:
    references: tuple[Reference, ...]
    summary_path: str | None


@dataclass(frozen=True, slots=True)
class SpecLayout:
    specs_dir: str = DEFAULT_SPECS_DIR
    summary_document: str = DEFAULT_SUMMARY_DOCUMENT

    def document_path(self, artifact: str, phase: Phase) -> str:
        name = f"{artifact}.{phase.tag}.{SPEC_EXTENSION}"
        return str(PurePosixPath(self.specs_dir) / phase.folder / name)

    def path_for(self, reference: Reference) -> str:
        return self.document_path(reference.artifact, reference.phase)

    @property
    def summary_path(self) -> str:
        return str(PurePosixPath(self.specs_dir) / self.summary_document)

    def is_summary(self, path: str | PurePosixPath) -> bool:
        return PurePosixPath(path) == PurePosixPath(self.summary_path)

    def reference_for(self, path: str | PurePosixPath) -> Reference | None:
        """Identity of a spec file, taken from its file name alone."""
        return parse_spec_file_name(PurePosixPath(path).name)

    def is_spec_path(self, path: str | PurePosixPath) -> bool:
        candidate = PurePosixPath(path)
        return candidate.suffix == f".{SPEC_EXTENSION}" and _is_under(candidate, self.specs_dir)

    def known_references(self, corpus: SpecCorpus) -> KnownReferences:
        """Identifiers whose document sits in its phase folder, ordered by artifact then phase."""
        found: set[Reference] = set()
        summary: str | None = None
        for path in corpus.list_artifact_files():
            normalized = str(PurePosixPath(path))
            if normalized == self.summary_path:
                summary = normalized
                continue
            reference = self.reference_for(normalized)
            if reference is not None and self.path_for(reference) == normalized:
                found.add(reference)
        ordered = sorted(found, key=lambda item: (item.artifact, item.phase.rank))
        return KnownReferences(references=tuple(ordered), summary_path=summary)


def _is_under(path: PurePosixPath, directory: str) -> bool:
    try:
        path.relative_to(directory)
    except ValueError:
        return False
    return True


__all__ = ["DEFAULT_SPECS_DIR", "DEFAULT_SUMMARY_DOCUMENT", "KnownReferences", "SpecLayout"]
