from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from loguru import logger

from syncscript.core.config import Settings, get_settings
from syncscript.core.error_handlers import ConflictError, UnauthorizedError
from syncscript.core.security import (
    create_access_token,
    extract_user_id_from_token,
    get_password_hash,
    verify_password,
)
from syncscript.models.user import User
from syncscript.schemas.user import AuthResponse, UserCreate, UserLogin, UserResponse


class UserService:
    """
    Service for managing users and authentication
    """
    
    def __init__(self, settings: Optional[Settings] = None):
        # Tokens are signed and verified with these settings
        self.settings = settings or get_settings()
    
    def get_user(self, db: Session, user_id: str) -> Optional[User]:
        return db.get(User, user_id)
    
    def get_user_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.strip().lower()).first()
    
    def issue_token(self, user: User) -> str:
        return create_access_token({"sub": user.id, "email": user.email}, settings=self.settings)
    
    def register(self, db: Session, user_data: UserCreate) -> AuthResponse:
        """
        Create a new user and sign them in
        """
        if self.get_user_by_email(db, user_data.email):
            raise ConflictError("User already exists", error_code="EMAIL_TAKEN")
        
        user = User(
            email=user_data.email,
            name=user_data.name,
            hashed_password=get_password_hash(user_data.password)
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration of the same email
            db.rollback()
            raise ConflictError("User already exists", error_code="EMAIL_TAKEN")
        db.refresh(user)
        
        logger.info(f"Registered user {user.id} ({user.email})")
        return AuthResponse(user=UserResponse.model_validate(user), token=self.issue_token(user))
    
    def login(self, db: Session, login_data: UserLogin) -> AuthResponse:
        user = self.get_user_by_email(db, login_data.email)
        if not user or not verify_password(login_data.password, user.hashed_password):
            raise UnauthorizedError("Invalid credentials")
        
        logger.info(f"User authenticated: {user.id}")
        return AuthResponse(user=UserResponse.model_validate(user), token=self.issue_token(user))
    
    def get_user_from_token(self, db: Session, token: str) -> Optional[User]:
        user_id = extract_user_id_from_token(token, self.settings)
        if not user_id:
            return None
        return self.get_user(db, user_id)
