"""
Annotation anchoring: text selections to character spans and back.
"""

from .anchors import (
    Anchored,
    Position,
    Segment,
    TextNodeIndex,
    UNANCHORED,
    Unanchored,
    position_from_dict,
    render_segments,
)

__all__ = [
    "Anchored",
    "Position",
    "Segment",
    "TextNodeIndex",
    "UNANCHORED",
    "Unanchored",
    "position_from_dict",
    "render_segments",
]
