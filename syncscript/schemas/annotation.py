"""
Pydantic schemas for annotations and their positions
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import Field, model_validator

from syncscript.collaboration.anchors import Anchored
from syncscript.schemas.base import APIModel
from syncscript.schemas.user import PublicUser


class PositionIn(APIModel):
    start_offset: int = Field(..., ge=0)
    end_offset: int = Field(..., ge=0)
    selected_text: str = Field(..., min_length=1)
    
    @model_validator(mode="after")
    def check_order(self) -> "PositionIn":
        if self.start_offset > self.end_offset:
            raise ValueError("startOffset must not exceed endOffset")
        if self.start_offset == self.end_offset:
            raise ValueError("position must cover at least one character")
        if not self.selected_text.strip():
            raise ValueError("selectedText must not be blank")
        return self
    
    def to_anchor(self) -> Anchored:
        return Anchored(self.start_offset, self.end_offset, self.selected_text)


class AnnotationCreate(APIModel):
    source_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    position: Optional[PositionIn] = None


class AnnotationResponse(APIModel):
    id: str
    source_id: str
    user_id: str
    content: str
    position: Optional[Dict[str, Any]] = None
    created_at: datetime
    user: Optional[PublicUser] = None
    
    @classmethod
    def from_model(cls, annotation, include_user: bool = False) -> "AnnotationResponse":
        return cls(
            id=annotation.id,
            source_id=annotation.source_id,
            user_id=annotation.user_id,
            content=annotation.content,
            position=annotation.anchor.to_dict(),
            created_at=annotation.created_at,
            user=PublicUser(**annotation.user.public_identity()) if include_user and annotation.user else None,
        )
