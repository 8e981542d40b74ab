from passlib.context import CryptContext
from jose import JWTError, jwt
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from syncscript.core.config import Settings, get_settings

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash
    
    Args:
        plain_password: Plain text password
        hashed_password: Hashed password
        
    Returns:
        True if password matches
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password
    """
    return pwd_context.hash(password)


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None
) -> str:
    """
    Create JWT access token
    
    Args:
        data: Claims to encode; ``sub`` must be the user id
        expires_delta: Token lifetime, defaults to the configured one
        settings: Signing settings, defaults to the cached application settings
        
    Returns:
        JWT token string
    """
    settings = settings or get_settings()
    to_encode = data.copy()
    
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str, settings: Optional[Settings] = None) -> Optional[Dict[str, Any]]:
    """
    Verify and decode JWT token
    
    Returns:
        Decoded token payload or None if invalid or expired
    """
    settings = settings or get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def extract_user_id_from_token(token: str, settings: Optional[Settings] = None) -> Optional[str]:
    """
    Extract the user id (``sub`` claim) from a JWT token
    """
    payload = verify_token(token, settings)
    if payload:
        return payload.get("sub")
    return None
