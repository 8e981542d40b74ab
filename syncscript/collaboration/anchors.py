"""
Annotation anchor model.

A selection made over the rendered text of a source is captured as a pair of
global character offsets into the source's plain-text content plus the exact
substring selected. Stored spans are rendered back by partitioning the content
into ordered, non-overlapping plain and highlighted segments.

Offsets are only meaningful for the content as it was when captured; nothing
here shifts them if the content later changes.
"""

from dataclasses import dataclass
from itertools import accumulate
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class Unanchored:
    """The annotation applies to the whole source."""
    
    is_anchored = False
    
    def to_dict(self) -> None:
        return None


UNANCHORED = Unanchored()


@dataclass(frozen=True)
class Anchored:
    """A half-open character span ``[start_offset, end_offset)`` of the content."""
    
    start_offset: int
    end_offset: int
    selected_text: str = ""
    
    is_anchored = True
    
    def __post_init__(self):
        for name in ("start_offset", "end_offset"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if self.start_offset > self.end_offset:
            raise ValueError(
                f"start_offset ({self.start_offset}) must not exceed end_offset ({self.end_offset})"
            )
        if not isinstance(self.selected_text, str):
            raise TypeError("selected_text must be a string")
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
            "selectedText": self.selected_text,
        }


Position = Union[Unanchored, Anchored]


def position_from_dict(data: Optional[Dict[str, Any]]) -> Position:
    """
    Rebuild a stored position.

    Anything without two valid integer offsets is treated as unanchored, so a
    malformed stored blob degrades to a whole-source note instead of breaking
    rendering.
    """
    if not data or not isinstance(data, dict):
        return UNANCHORED
    try:
        return Anchored(
            start_offset=data["startOffset"],
            end_offset=data["endOffset"],
            selected_text=data.get("selectedText") or "",
        )
    except (KeyError, TypeError, ValueError):
        return UNANCHORED


class TextNodeIndex:
    """
    Document-ordered text nodes of a rendered container, flattened once.

    Nodes are addressed by their index in document order. Prefix sums of the
    node lengths are computed up front so each endpoint lookup is O(1) and
    building the index is O(n) in the number of nodes.
    """
    
    def __init__(self, texts: Sequence[str]):
        self._texts: List[str] = list(texts)
        lengths = [len(text) for text in self._texts]
        self._starts: List[int] = [0] + list(accumulate(lengths))
        self._content = "".join(self._texts)
    
    @classmethod
    def from_segments(cls, segments: Iterable["Segment"]) -> "TextNodeIndex":
        """One text node per rendered segment, as the highlight view lays them out."""
        return cls([segment.text for segment in segments])
    
    @property
    def content(self) -> str:
        return self._content
    
    def __len__(self) -> int:
        return len(self._texts)
    
    def global_offset(self, node: int, local_offset: int) -> int:
        """Character offset of ``local_offset`` inside ``node`` within the whole container."""
        if not 0 <= node < len(self._texts):
            raise IndexError(f"text node {node} out of range")
        if not 0 <= local_offset <= len(self._texts[node]):
            raise ValueError(
                f"offset {local_offset} outside text node {node} of length {len(self._texts[node])}"
            )
        return self._starts[node] + local_offset
    
    def capture(self, anchor: Tuple[int, int], focus: Tuple[int, int]) -> Position:
        """
        Turn a selection into a position.

        ``anchor`` and ``focus`` are ``(node, local_offset)`` pairs in the order the
        user dragged; a backwards selection is normalised. A collapsed selection, or
        one covering only whitespace, produces no anchor.
        """
        start = self.global_offset(*anchor)
        end = self.global_offset(*focus)
        if start > end:
            start, end = end, start
        if start == end:
            return UNANCHORED
        selected = self._content[start:end]
        if not selected.strip():
            return UNANCHORED
        return Anchored(start_offset=start, end_offset=end, selected_text=selected)


@dataclass(frozen=True)
class Segment:
    """A contiguous slice of the content, highlighted when it carries an annotation id."""
    
    start: int
    end: int
    text: str
    annotation_id: Optional[str] = None
    
    @property
    def highlighted(self) -> bool:
        return self.annotation_id is not None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "highlight" if self.highlighted else "text",
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "annotationId": self.annotation_id,
        }


def render_segments(content: str, anchors: Iterable[Tuple[str, Position]]) -> List[Segment]:
    """
    Partition ``content`` into plain and highlighted segments.

    ``anchors`` is an iterable of ``(annotation_id, position)``. Unanchored
    positions are skipped. Spans are swept left to right by start offset (ties
    keep input order) with end offsets clamped to the content length; where
    spans overlap the earlier-starting one keeps the overlap and the later one
    is highlighted only from the previous boundary on. Segment lengths always
    sum to ``len(content)``.
    """
    length = len(content)
    ordered = sorted(
        ((annotation_id, position) for annotation_id, position in anchors if position.is_anchored),
        key=lambda item: item[1].start_offset,
    )
    
    segments: List[Segment] = []
    boundary = 0
    for annotation_id, position in ordered:
        start = min(position.start_offset, length)
        end = min(position.end_offset, length)
        if start > boundary:
            segments.append(Segment(boundary, start, content[boundary:start]))
            boundary = start
        highlight_start = max(start, boundary)
        if end > highlight_start:
            segments.append(Segment(highlight_start, end, content[highlight_start:end], annotation_id))
        boundary = max(boundary, end)
    
    if boundary < length:
        segments.append(Segment(boundary, length, content[boundary:length]))
    return segments
