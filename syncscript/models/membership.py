from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from syncscript.db.database import Base


class Role(str, Enum):
    """Per-vault roles"""
    OWNER = "OWNER"
    CONTRIBUTOR = "CONTRIBUTOR"
    VIEWER = "VIEWER"
    
    @property
    def can_write(self) -> bool:
        return self in (Role.OWNER, Role.CONTRIBUTOR)
    
    @property
    def can_invite(self) -> bool:
        return self in (Role.OWNER, Role.CONTRIBUTOR)


class Membership(Base):
    """(user, vault) pair carrying the user's role in that vault"""
    __tablename__ = "memberships"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    vault_id = Column(String(36), ForeignKey("vaults.id"), nullable=False)
    role = Column(String(20), nullable=False, default=Role.VIEWER.value)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    user = relationship("User", back_populates="memberships")
    vault = relationship("Vault", back_populates="memberships")
    
    __table_args__ = (
        UniqueConstraint("user_id", "vault_id", name="uq_membership_user_vault"),
        Index("idx_memberships_vault", "vault_id"),
        CheckConstraint("role IN ('OWNER', 'CONTRIBUTOR', 'VIEWER')", name="check_membership_role"),
    )
    
    @property
    def role_enum(self) -> Role:
        return Role(self.role)
