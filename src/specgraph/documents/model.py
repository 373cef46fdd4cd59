"""
specgraph — document model

File: src/specgraph/documents/model.py

Purpose
- Typed records for parsed specification documents and the references between them.

What should be included in this file
- Phase conventions (tag, folder, front-matter value) as one closed enum.
- ``Reference`` with exact text round-tripping for bare ``artifact.tag`` forms.
- ``FrontMatter`` as a closed struct plus an explicit side mapping for unknown keys.
- ``Document`` as the total output of the parser.

Non-functional requirements
- Records are immutable; every collection is a tuple or a read-only mapping copy.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

UNKNOWN_ARTIFACT: Final[str] = "unknown"
SPEC_EXTENSION: Final[str] = "md"

ARTIFACT_NAME_PATTERN: Final[str] = r"[A-Za-z0-9-]+"
PHASE_TAG_PATTERN: Final[str] = r"req|design|impl"

_REFERENCE_RE: Final[re.Pattern[str]] = re.compile(
    rf"^(?P<artifact>{ARTIFACT_NAME_PATTERN})\.(?P<tag>{PHASE_TAG_PATTERN})(?P<qualifier>.*)$",
    flags=re.DOTALL,
)


class Phase(Enum):
    """Document phase with its file-naming conventions."""

    REQUIREMENT = ("requirement", "req", "requirements")
    DESIGN = ("design", "design", "design")
    IMPLEMENTATION = ("implementation", "impl", "implementation")

    def __init__(self, label: str, tag: str, folder: str) -> None:
        self.label = label
        self.tag = tag
        self.folder = folder

    @classmethod
    def from_tag(cls, tag: str) -> Phase:
        for phase in cls:
            if phase.tag == tag:
                return phase
        raise ValueError(f"unknown phase tag {tag!r}")

    @classmethod
    def from_label(cls, label: str) -> Phase:
        normalized = label.strip().lower()
        for phase in cls:
            if phase.label == normalized:
                return phase
        raise ValueError(f"unknown phase {label!r}")

    @property
    def rank(self) -> int:
        return _PHASE_ORDER.index(self)


_PHASE_ORDER: Final[tuple[Phase, ...]] = (
    Phase.REQUIREMENT,
    Phase.DESIGN,
    Phase.IMPLEMENTATION,
)

DEFAULT_PHASE: Final[Phase] = Phase.REQUIREMENT


@dataclass(frozen=True, slots=True)
class Reference:
    """A reference to an artifact-phase document, serialized as ``artifact.tag``."""

    artifact: str
    phase: Phase
    qualifier: str = ""

    def __post_init__(self) -> None:
        if re.fullmatch(ARTIFACT_NAME_PATTERN, self.artifact) is None:
            raise ValueError(f"invalid artifact name {self.artifact!r}")

    @classmethod
    def parse(cls, text: str) -> Reference:
        """Parse ``artifact.tag[qualifier]``; raise ``ValueError`` if no phase tag is present."""
        match = _REFERENCE_RE.match(text)
        if match is None:
            raise ValueError(f"not an artifact reference: {text!r}")
        return cls(
            artifact=match.group("artifact"),
            phase=Phase.from_tag(match.group("tag")),
            qualifier=match.group("qualifier"),
        )

    @classmethod
    def try_parse(cls, text: str) -> Reference | None:
        try:
            return cls.parse(text)
        except ValueError:
            return None

    @property
    def is_over_specified(self) -> bool:
        return bool(self.qualifier)

    @property
    def bare(self) -> Reference:
        if not self.qualifier:
            return self
        return Reference(artifact=self.artifact, phase=self.phase)

    @property
    def key(self) -> str:
        """Bare ``artifact.tag`` identity, ignoring any qualifier."""
        return f"{self.artifact}.{self.phase.tag}"

    def __str__(self) -> str:
        return f"{self.key}{self.qualifier}"


def is_bare_reference(text: str) -> bool:
    reference = Reference.try_parse(text)
    return reference is not None and not reference.is_over_specified


def parse_spec_file_name(name: str) -> Reference | None:
    """Reference named by an ``<artifact>.<tag>.md`` file name, or ``None``."""
    match = _SPEC_FILE_NAME_RE.match(name)
    if match is None:
        return None
    return Reference(artifact=match.group("artifact"), phase=Phase.from_tag(match.group("tag")))


_SPEC_FILE_NAME_RE: Final[re.Pattern[str]] = re.compile(
    rf"^(?P<artifact>{ARTIFACT_NAME_PATTERN})\.(?P<tag>{PHASE_TAG_PATTERN})\.{SPEC_EXTENSION}$"
)


@dataclass(frozen=True, slots=True)
class FrontMatter:
    """Recognized front-matter fields plus the unrecognized keys, kept verbatim."""

    artifact: str | None = None
    phase: str | None = None
    depends_on: tuple[str, ...] | None = None
    references: tuple[str, ...] | None = None
    version: str | None = None
    last_updated: str | None = None
    extras: dict[str, str | tuple[str, ...]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return (
            self.artifact is None
            and self.phase is None
            and self.depends_on is None
            and self.references is None
            and self.version is None
            and self.last_updated is None
            and not self.extras
        )


@dataclass(frozen=True, slots=True)
class Document:
    """Parsed representation of one specification file."""

    artifact: str = UNKNOWN_ARTIFACT
    phase: Phase = DEFAULT_PHASE
    depends_on: tuple[str, ...] = ()
    references: tuple[str, ...] = ()
    version: str | None = None
    last_updated: str | None = None
    sections: dict[str, str] = field(default_factory=dict)
    clarifications: tuple[str, ...] = ()
    mentions: tuple[Reference, ...] = ()
    front_matter: FrontMatter = field(default_factory=FrontMatter)
    content: str = ""

    @property
    def extras(self) -> dict[str, str | tuple[str, ...]]:
        return dict(self.front_matter.extras)

    @property
    def reference_key(self) -> str:
        return f"{self.artifact}.{self.phase.tag}"


__all__ = [
    "ARTIFACT_NAME_PATTERN",
    "DEFAULT_PHASE",
    "Document",
    "FrontMatter",
    "PHASE_TAG_PATTERN",
    "Phase",
    "Reference",
    "SPEC_EXTENSION",
    "UNKNOWN_ARTIFACT",
    "is_bare_reference",
    "parse_spec_file_name",
]
