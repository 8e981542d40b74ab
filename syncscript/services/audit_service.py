from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from loguru import logger

from syncscript.models.audit import AuditLog


class AuditAction:
    VAULT_CREATED = "VAULT_CREATED"
    USER_INVITED = "USER_INVITED"
    SOURCE_ADDED = "SOURCE_ADDED"
    SOURCE_UPDATED = "SOURCE_UPDATED"
    ANNOTATION_ADDED = "ANNOTATION_ADDED"


class AuditService:
    """
    Append-only audit trail. Appends run after the primary write has been
    committed, in their own transaction, so a failure here never rolls the
    primary record back.
    """
    
    def append(
        self,
        db: Session,
        vault_id: str,
        user_id: str,
        action: str,
        details: Optional[Dict[str, Any]] = None
    ) -> bool:
        try:
            db.add(AuditLog(vault_id=vault_id, user_id=user_id, action=action, details=details or {}))
            db.commit()
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Audit append {action} for vault {vault_id} failed: {e}")
            return False
    
    def list_for_vault(self, db: Session, vault_id: str, limit: int = 100) -> List[AuditLog]:
        return (
            db.query(AuditLog)
            .filter(AuditLog.vault_id == vault_id)
            .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
            .limit(limit)
            .all()
        )
