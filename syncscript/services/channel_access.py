from typing import Any, Callable, Dict, Optional
from sqlalchemy.orm import Session

from syncscript.models.source import Source
from syncscript.services.membership_service import MembershipService
from syncscript.services.user_service import UserService


class ChannelAccess:
    """
    Store-backed authorization for the socket layer. Each check opens and
    closes its own short-lived session.
    """
    
    def __init__(
        self,
        session_factory: Callable[[], Session],
        users: UserService,
        membership: MembershipService
    ):
        self.session_factory = session_factory
        self.users = users
        self.membership = membership
    
    def authenticate(self, token: str) -> Optional[Dict[str, Any]]:
        db = self.session_factory()
        try:
            user = self.users.get_user_from_token(db, token)
            return user.public_identity() if user else None
        finally:
            db.close()
    
    def can_view_vault(self, user_id: str, vault_id: str) -> bool:
        db = self.session_factory()
        try:
            return self.membership.get_role(db, user_id, vault_id) is not None
        finally:
            db.close()
    
    def vault_of_source(self, source_id: str) -> Optional[str]:
        db = self.session_factory()
        try:
            row = db.query(Source.vault_id).filter(Source.id == source_id).first()
            return row[0] if row else None
        finally:
            db.close()
