"""
Pydantic schemas for vaults, memberships and invitations
"""

from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field, field_validator

from syncscript.models.membership import Role
from syncscript.schemas.base import APIModel


class VaultCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class MembershipResponse(APIModel):
    user_id: str
    vault_id: str
    role: Role
    joined_at: datetime


class VaultResponse(APIModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    users: List[MembershipResponse] = Field(default_factory=list)
    
    @classmethod
    def from_model(cls, vault) -> "VaultResponse":
        return cls(
            id=vault.id,
            name=vault.name,
            description=vault.description,
            created_at=vault.created_at,
            users=[MembershipResponse.model_validate(m) for m in vault.memberships],
        )


class VaultMemberResponse(APIModel):
    user_id: str
    name: Optional[str] = None
    email: str
    role: Role
    joined_at: datetime


class InviteRequest(APIModel):
    email: EmailStr
    # Missing or unrecognised roles fall back to VIEWER
    role: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def requested_role(self) -> Role:
        try:
            return Role((self.role or "").upper())
        except ValueError:
            return Role.VIEWER


class InvitedUser(APIModel):
    id: str
    name: Optional[str] = None
    email: str
    role: Role


class InviteResponse(APIModel):
    message: str = "Invitation successful"
    user: InvitedUser
