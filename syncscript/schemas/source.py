"""
Pydantic schemas for sources and their rendered highlights
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
from pydantic import Field, field_validator, model_validator

from syncscript.schemas.annotation import AnnotationResponse
from syncscript.schemas.base import APIModel


def _check_http_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be an absolute http(s) URL")
    return value


class SourceCreate(APIModel):
    vault_id: str = Field(..., min_length=1)
    url: Optional[str] = None
    file_url: Optional[str] = None
    title: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = None
    
    @field_validator("url", "file_url")
    @classmethod
    def check_urls(cls, value: Optional[str]) -> Optional[str]:
        return _check_http_url(value)

    @model_validator(mode="after")
    def require_location(self) -> "SourceCreate":
        if not self.url and not self.file_url:
            raise ValueError("Either url or fileUrl is required")
        return self


class SourceUpdate(APIModel):
    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    content: Optional[str] = None
    
    @model_validator(mode="after")
    def require_change(self) -> "SourceUpdate":
        if self.title is None and self.description is None and self.content is None:
            raise ValueError("Nothing to update")
        return self


class SourceResponse(APIModel):
    id: str
    vault_id: str
    url: Optional[str] = None
    file_url: Optional[str] = None
    title: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    has_content: bool = False
    added_by_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    annotations: List[AnnotationResponse] = Field(default_factory=list)
    
    @classmethod
    def from_model(cls, source, include_annotations: bool = True) -> "SourceResponse":
        return cls(
            id=source.id,
            vault_id=source.vault_id,
            url=source.url,
            file_url=source.file_url,
            title=source.title,
            metadata=source.source_metadata or {},
            has_content=source.content is not None,
            added_by_id=source.added_by_id,
            created_at=source.created_at,
            updated_at=source.updated_at,
            annotations=[AnnotationResponse.from_model(a) for a in source.annotations] if include_annotations else [],
        )


class SegmentResponse(APIModel):
    type: str
    start: int
    end: int
    text: str
    annotation_id: Optional[str] = None


class HighlightsResponse(APIModel):
    source_id: str
    length: int
    segments: List[SegmentResponse]
    unanchored: List[AnnotationResponse] = Field(default_factory=list)
