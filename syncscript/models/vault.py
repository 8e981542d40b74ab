from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from syncscript.db.database import Base


class Vault(Base):
    """A collaborative workspace holding sources"""
    __tablename__ = "vaults"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    memberships = relationship("Membership", back_populates="vault", cascade="all, delete-orphan")
    sources = relationship("Source", back_populates="vault", cascade="all, delete-orphan")
