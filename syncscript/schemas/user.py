"""
Pydantic schemas for registration and login
"""

from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field, field_validator

from syncscript.schemas.base import APIModel


class UserCreate(APIModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    name: Optional[str] = Field(None, max_length=255)
    
    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserLogin(APIModel):
    email: EmailStr
    password: str
    
    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserResponse(APIModel):
    id: str
    email: str
    name: Optional[str] = None
    created_at: datetime


class PublicUser(APIModel):
    """Identity other vault members are allowed to see"""
    id: str
    name: Optional[str] = None


class AuthResponse(APIModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
