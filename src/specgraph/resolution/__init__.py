"""Element identifier resolution (``FR-0001`` and friends) to defining documents."""

from specgraph.resolution.identifiers import (
    ArtifactInferenceError,
    ElementIdError,
    ResolutionError,
    ResolvedTarget,
    artifact_from_file_name,
    element_type_info,
    resolve_target,
)

__all__ = [
    "ArtifactInferenceError",
    "ElementIdError",
    "ResolutionError",
    "ResolvedTarget",
    "artifact_from_file_name",
    "element_type_info",
    "resolve_target",
]
