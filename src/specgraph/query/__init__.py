"""Query layer: suggestions, element blocks, references, hover and implementation lookup."""

from specgraph.query.navigation import (
    DocumentLink,
    HoverResult,
    Location,
    SpecQueryService,
    locate_element_block,
)

__all__ = ["DocumentLink", "HoverResult", "Location", "SpecQueryService", "locate_element_block"]
