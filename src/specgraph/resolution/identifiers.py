"""
specgraph — element identifier resolution

File: src/specgraph/resolution/identifiers.py

Purpose
- Map a ``TYPE-NNNN`` element identifier to the document that should define it.

Functional requirements
- The type prefix table is fixed: FR and NFR are requirements, DES is design, IMP is
  implementation. Unknown upper-case prefixes are not resolvable (``None``).
- A prefix that is not upper-case is a malformed identifier and raises ``ElementIdError``.
- The owning artifact comes from an explicit ``// <artifact>/<ID>`` annotation on the
  reference line, else from the current file name when it follows the
  ``<artifact>.<tag>.md`` convention, else ``ArtifactInferenceError`` is raised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath
from types import MappingProxyType
from typing import Final

from specgraph.documents.model import (
    ARTIFACT_NAME_PATTERN,
    SPEC_EXTENSION,
    Phase,
    Reference,
    parse_spec_file_name,
)
from specgraph.workspace.layout import SpecLayout

ELEMENT_ID_PATTERN: Final[str] = r"[A-Za-z]+-\d+"
_ELEMENT_ID_RE: Final[re.Pattern[str]] = re.compile(rf"^{ELEMENT_ID_PATTERN}$")

ELEMENT_TYPES: Final[MappingProxyType[str, Phase]] = MappingProxyType(
    {
        "FR": Phase.REQUIREMENT,
        "NFR": Phase.REQUIREMENT,
        "DES": Phase.DESIGN,
        "IMP": Phase.IMPLEMENTATION,
    }
)


class ResolutionError(ValueError):
    """Base class for identifier resolution failures."""


class ElementIdError(ResolutionError):
    """Raised for a malformed element identifier (for example a lower-case type prefix)."""

    def __init__(self, element_id: str, reason: str) -> None:
        self.element_id = element_id
        self.reason = reason
        super().__init__(f"invalid element id {element_id!r}: {reason}")


class ArtifactInferenceError(ResolutionError):
    """Raised when neither an annotation nor the current file name names the artifact."""

    def __init__(self, element_id: str, current_file: str | None) -> None:
        self.element_id = element_id
        self.current_file = current_file
        where = f"file {current_file!r}" if current_file else "no current file"
        super().__init__(
            f"cannot determine artifact for {element_id}: no '// <artifact>/{element_id}' "
            f"annotation and {where} does not follow the <artifact>.<tag>.{SPEC_EXTENSION} "
            "naming convention"
        )


@dataclass(frozen=True, slots=True)
class ElementTypeInfo:
    phase: Phase

    @property
    def folder(self) -> str:
        return self.phase.folder

    @property
    def extension(self) -> str:
        return f"{self.phase.tag}.{SPEC_EXTENSION}"


@dataclass(frozen=True, slots=True)
class ResolvedTarget:
    """Where an element's defining heading is expected to live."""

    element_id: str
    artifact: str
    phase: Phase
    folder: str
    extension: str
    path: str

    @property
    def reference(self) -> Reference:
        return Reference(artifact=self.artifact, phase=self.phase)


def element_type_info(element_type: str) -> ElementTypeInfo | None:
    phase = ELEMENT_TYPES.get(element_type)
    return ElementTypeInfo(phase=phase) if phase is not None else None


def element_type_of(element_id: str) -> str:
    """Type prefix of ``element_id``; raise ``ElementIdError`` if it is not upper-case."""
    if not _ELEMENT_ID_RE.match(element_id):
        raise ElementIdError(element_id, "expected TYPE-NNNN")
    prefix = element_id.split("-", 1)[0]
    if prefix != prefix.upper():
        raise ElementIdError(element_id, "type prefix must be upper-case")
    return prefix


def artifact_from_file_name(name: str | PurePath) -> str | None:
    """Artifact named by an ``<artifact>.<tag>.md`` file name, else ``None``."""
    reference = parse_spec_file_name(PurePath(name).name)
    return reference.artifact if reference is not None else None


def annotated_artifact(line_text: str, element_id: str) -> str | None:
    """Artifact from a ``// <artifact>/<element_id>`` annotation on ``line_text``."""
    pattern = rf"//\s*(?P<artifact>{ARTIFACT_NAME_PATTERN})/\s*{re.escape(element_id)}\b"
    match = re.search(pattern, line_text)
    return match.group("artifact") if match is not None else None


def resolve_target(
    element_id: str,
    line_text: str = "",
    current_file: str | PurePath | None = None,
    *,
    layout: SpecLayout | None = None,
) -> ResolvedTarget | None:
    """
    Resolve ``element_id`` to its defining document.

    Returns ``None`` for an unknown type prefix. Raises ``ElementIdError`` for a malformed
    identifier and ``ArtifactInferenceError`` when the artifact cannot be determined.
    """
    info = element_type_info(element_type_of(element_id))
    if info is None:
        return None

    artifact = annotated_artifact(line_text, element_id)
    if artifact is None and current_file is not None:
        artifact = artifact_from_file_name(current_file)
    if artifact is None:
        raise ArtifactInferenceError(
            element_id, str(current_file) if current_file is not None else None
        )

    spec_layout = layout or SpecLayout()
    return ResolvedTarget(
        element_id=element_id,
        artifact=artifact,
        phase=info.phase,
        folder=info.folder,
        extension=info.extension,
        path=spec_layout.document_path(artifact, info.phase),
    )


__all__ = [
    "ELEMENT_ID_PATTERN",
    "ELEMENT_TYPES",
    "ArtifactInferenceError",
    "ElementIdError",
    "ElementTypeInfo",
    "ResolutionError",
    "ResolvedTarget",
    "annotated_artifact",
    "artifact_from_file_name",
    "element_type_info",
    "element_type_of",
    "resolve_target",
]
