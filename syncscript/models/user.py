from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from syncscript.db.database import Base


class User(Base):
    """SQLAlchemy model for users"""
    __tablename__ = "users"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    memberships = relationship("Membership", back_populates="user")
    
    def public_identity(self) -> dict:
        return {"id": self.id, "name": self.name}
