from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from datetime import datetime

from syncscript.db.database import Base


class AuditLog(Base):
    """Append-only record of vault mutations"""
    __tablename__ = "audit_logs"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    vault_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False)
    action = Column(String(50), nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    __table_args__ = (
        Index("idx_audit_logs_vault", "vault_id", "created_at"),
    )
