from typing import List, Optional
from sqlalchemy.orm import Session, joinedload

from syncscript.core.error_handlers import ForbiddenError
from syncscript.models.membership import Membership, Role


class MembershipService:
    """
    Per-vault role lookups and the authorization rules built on them.

    A missing membership row is always Forbidden, whether or not the vault
    exists, so non-members learn nothing about other vaults.
    """
    
    def get_role(self, db: Session, user_id: str, vault_id: str) -> Optional[Role]:
        membership = (
            db.query(Membership)
            .filter(Membership.user_id == user_id, Membership.vault_id == vault_id)
            .first()
        )
        return membership.role_enum if membership else None
    
    def require_member(self, db: Session, user_id: str, vault_id: str) -> Role:
        role = self.get_role(db, user_id, vault_id)
        if role is None:
            raise ForbiddenError("Access denied to this vault")
        return role
    
    def require_writer(self, db: Session, user_id: str, vault_id: str) -> Role:
        role = self.require_member(db, user_id, vault_id)
        if not role.can_write:
            raise ForbiddenError("Insufficient permissions", error_code="INSUFFICIENT_ROLE")
        return role
    
    def list_members(self, db: Session, vault_id: str) -> List[Membership]:
        return (
            db.query(Membership)
            .options(joinedload(Membership.user))
            .filter(Membership.vault_id == vault_id)
            .order_by(Membership.joined_at.asc())
            .all()
        )
    
    def member_ids(self, db: Session, vault_id: str) -> List[str]:
        rows = db.query(Membership.user_id).filter(Membership.vault_id == vault_id).all()
        return [row[0] for row in rows]
