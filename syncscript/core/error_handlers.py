"""
Error taxonomy and exception handlers
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError
import traceback
from datetime import datetime
from typing import Optional
from loguru import logger

from syncscript.core.config import get_settings


class APIError(Exception):
    """Custom API error class"""
    def __init__(self, message: str, status_code: int = 500, error_code: str = None):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class UnauthorizedError(APIError):
    """Missing or invalid bearer credential"""
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401, error_code="UNAUTHORIZED")


class ForbiddenError(APIError):
    """Authenticated but lacking membership or role"""
    def __init__(self, message: str = "Access denied", error_code: str = "FORBIDDEN"):
        super().__init__(message, status_code=403, error_code=error_code)


class NotFoundError(APIError):
    """Referenced record does not exist"""
    def __init__(self, message: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(message, status_code=404, error_code=error_code)


class ConflictError(APIError):
    """Write would violate a uniqueness rule"""
    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(message, status_code=409, error_code=error_code)


class ValidationException(APIError):
    """Validation error"""
    def __init__(self, message: str, details: dict = None,
                 error_code: str = "VALIDATION_ERROR", status_code: int = 422):
        super().__init__(message, status_code=status_code, error_code=error_code)
        self.details = details


class StorageNotConfiguredError(APIError):
    """Object storage bucket or credentials are missing"""
    def __init__(self, message: str = "S3 not configured"):
        super().__init__(message, status_code=503, error_code="STORAGE_NOT_CONFIGURED")


class StorageError(APIError):
    """Object storage rejected or failed a primary operation"""
    def __init__(self, message: str = "Object storage request failed"):
        super().__init__(message, status_code=502, error_code="STORAGE_ERROR")


def create_error_response(
    status_code: int, 
    message: str, 
    error_code: str = None,
    details: dict = None,
    request_id: str = None
) -> JSONResponse:
    """Create standardized error response"""
    settings = get_settings()
    
    error_response = {
        "error": {
            "message": message,
            "status_code": status_code,
            "timestamp": datetime.utcnow().isoformat(),
        }
    }
    
    if error_code:
        error_response["error"]["error_code"] = error_code
        
    if details and settings.environment != "production":
        error_response["error"]["details"] = details
        
    if request_id:
        error_response["error"]["request_id"] = request_id
        
    return JSONResponse(
        status_code=status_code,
        content=error_response
    )


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


# Exception handlers
async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors"""
    if exc.status_code >= 500:
        logger.error(f"API Error: {exc.message} (Status: {exc.status_code})")
    else:
        logger.info(f"API Error: {exc.message} (Status: {exc.status_code}, code: {exc.error_code})")
    
    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=getattr(exc, "details", None),
        request_id=_request_id(request)
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions"""
    logger.warning(f"HTTP Exception: {exc.detail} (Status: {exc.status_code})")
    
    error_code = "UNAUTHORIZED" if exc.status_code == 401 else "HTTP_ERROR"
    return create_error_response(
        status_code=exc.status_code,
        message=exc.detail or "An error occurred",
        error_code=error_code,
        request_id=_request_id(request)
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors"""
    logger.warning(f"Validation Error: {exc.errors()}")
    
    formatted_errors = []
    for error in exc.errors():
        formatted_errors.append({
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })
    
    return create_error_response(
        status_code=422,
        message="Validation failed",
        error_code="VALIDATION_ERROR",
        details={"validation_errors": formatted_errors},
        request_id=_request_id(request)
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle database errors that escaped the service layer"""
    logger.error(f"Database Error: {str(exc)}")
    
    if isinstance(exc, OperationalError):
        message = "Database temporarily unavailable. Please try again later."
        error_code = "DB_CONNECTION_ERROR"
        status_code = 503
    elif isinstance(exc, IntegrityError):
        message = "Data integrity error. Please check your input."
        error_code = "DB_INTEGRITY_ERROR"
        status_code = 409
    else:
        message = "Database error occurred"
        error_code = "DB_ERROR"
        status_code = 500
    
    details = None
    if get_settings().environment == "development":
        details = {"database_error": str(exc)}
    
    return create_error_response(
        status_code=status_code,
        message=message,
        error_code=error_code,
        details=details,
        request_id=_request_id(request)
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions"""
    error_id = f"ERR_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}_{id(exc)}"
    
    logger.error(
        f"Unhandled Exception [{error_id}]: {str(exc)}\n"
        f"Request: {request.method} {request.url}\n"
        f"Traceback: {''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))}"
    )
    
    details = None
    if get_settings().environment == "development":
        details = {
            "error_id": error_id,
            "exception_type": type(exc).__name__,
            "exception_message": str(exc)
        }
    
    return create_error_response(
        status_code=500,
        message="An internal error occurred",
        error_code="INTERNAL_ERROR",
        details=details,
        request_id=_request_id(request)
    )
