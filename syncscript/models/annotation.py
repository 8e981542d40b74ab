from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from syncscript.db.database import Base
from syncscript.collaboration.anchors import Position, position_from_dict


class Annotation(Base):
    """A user note on a source, optionally anchored to a character span"""
    __tablename__ = "annotations"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    source_id = Column(String(36), ForeignKey("sources.id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    position = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    source = relationship("Source", back_populates="annotations")
    user = relationship("User")
    
    __table_args__ = (
        Index("idx_annotations_source", "source_id"),
    )
    
    @property
    def anchor(self) -> Position:
        return position_from_dict(self.position)
