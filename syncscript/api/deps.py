"""
Shared FastAPI dependencies
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from syncscript.core.error_handlers import UnauthorizedError
from syncscript.db.database import get_db
from syncscript.models.user import User
from syncscript.services.container import ServiceContainer

# auto_error=False so a missing header goes through our own 401 envelope
security = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
) -> User:
    """
    Get current authenticated user
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Missing bearer token")
    
    user = services.users.get_user_from_token(db, credentials.credentials)
    if user is None:
        raise UnauthorizedError("Invalid authentication credentials")
    
    return user
