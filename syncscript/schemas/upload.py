from typing import Optional
from pydantic import Field

from syncscript.schemas.base import APIModel


class PresignRequest(APIModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., min_length=1, max_length=255)


class PresignResponse(APIModel):
    upload_url: str
    file_url: str
    key: str


class ViewUrlRequest(APIModel):
    file_url: str = Field(..., min_length=1)


class ViewUrlResponse(APIModel):
    view_url: str


class FileUploadResponse(APIModel):
    file_url: str
    key: str
    content_type: str
    size: int
    # Decoded body for text/plain uploads, ready to be sent as source content
    text: Optional[str] = None
