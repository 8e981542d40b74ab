from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from syncscript.api.deps import get_current_user, get_services
from syncscript.db.database import get_db
from syncscript.models.user import User
from syncscript.schemas.user import AuthResponse, UserCreate, UserLogin, UserResponse
from syncscript.services.container import ServiceContainer

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Register a new user and return a bearer token
    """
    return services.users.register(db, user_data)


@router.post("/login", response_model=AuthResponse)
async def login_user(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Login user and get access token
    """
    return services.users.login(db, login_data)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """
    Get current user information
    """
    return UserResponse.model_validate(current_user)
