from fastapi import APIRouter, Depends, File, UploadFile
from loguru import logger

from syncscript.api.deps import get_current_user, get_services
from syncscript.core.error_handlers import ValidationException
from syncscript.models.user import User
from syncscript.schemas.upload import (
    FileUploadResponse,
    PresignRequest,
    PresignResponse,
    ViewUrlRequest,
    ViewUrlResponse,
)
from syncscript.services.container import ServiceContainer

router = APIRouter(prefix="/upload", tags=["upload"])


@router.post("/presigned-url", response_model=PresignResponse)
async def create_presigned_url(
    request: PresignRequest,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Get a short-lived URL the client can PUT the file to directly
    """
    storage = services.storage
    key = storage.new_key(request.file_name)
    upload_url = await storage.presign_put(key, request.file_type)
    logger.info(f"Issued upload URL for {key} to user {current_user.id}")
    return PresignResponse(upload_url=upload_url, file_url=storage.file_url(key), key=key)


@router.post("/view-url", response_model=ViewUrlResponse)
async def create_view_url(
    request: ViewUrlRequest,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Get a short-lived URL for reading a previously uploaded file
    """
    storage = services.storage
    key = storage.key_from_file_url(request.file_url)
    if key is None:
        raise ValidationException("Invalid file URL", details={"fileUrl": request.file_url})
    return ViewUrlResponse(view_url=await storage.presign_get(key))


@router.post("/file", response_model=FileUploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Upload a file through the API. Plain-text files come back decoded so the
    client can create a source whose annotations are anchored to that text.
    """
    if not file.filename:
        raise ValidationException("No file provided")
    
    storage = services.storage
    max_size = services.settings.max_upload_size
    data = await file.read(max_size + 1)
    if len(data) > max_size:
        raise ValidationException(
            "File too large", details={"maxBytes": max_size}, error_code="FILE_TOO_LARGE", status_code=413
        )
    
    content_type = file.content_type or "application/octet-stream"
    text = None
    if content_type.startswith("text/plain"):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationException("Text files must be UTF-8 encoded")
    
    key = storage.new_key(file.filename)
    await storage.put(key, data, content_type)
    return FileUploadResponse(
        file_url=storage.file_url(key),
        key=key,
        content_type=content_type,
        size=len(data),
        text=text,
    )
