from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from syncscript.db.database import Base


class Source(Base):
    """A web link or uploaded file added to a vault"""
    __tablename__ = "sources"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    vault_id = Column(String(36), ForeignKey("vaults.id"), nullable=False)
    url = Column(Text, nullable=True)
    file_url = Column(Text, nullable=True)
    title = Column(String(500), nullable=True)
    # "metadata" is reserved on declarative classes
    source_metadata = Column("metadata", JSON, nullable=True)
    # Plain text the annotation offsets are measured against
    content = Column(Text, nullable=True)
    added_by_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)
    
    vault = relationship("Vault", back_populates="sources")
    added_by = relationship("User")
    annotations = relationship(
        "Annotation",
        back_populates="source",
        cascade="all, delete-orphan",
        order_by="Annotation.created_at"
    )
    
    __table_args__ = (
        Index("idx_sources_vault", "vault_id"),
    )
