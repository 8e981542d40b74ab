"""
Vault lifecycle, membership listing and invitations
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from loguru import logger

from syncscript.core.error_handlers import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationException,
)
from syncscript.db.cache import CacheKey, RedisCache
from syncscript.models.membership import Membership, Role
from syncscript.models.vault import Vault
from syncscript.schemas.vault import (
    InviteResponse,
    InvitedUser,
    VaultCreate,
    VaultMemberResponse,
    VaultResponse,
)
from syncscript.services.audit_service import AuditAction, AuditService
from syncscript.services.base import CollaborativeService
from syncscript.services.membership_service import MembershipService
from syncscript.services.outcome import WriteOutcome
from syncscript.services.user_service import UserService
from syncscript.websocket.connection_manager import ChannelManager


class VaultService(CollaborativeService):
    """
    Service for creating vaults and managing who belongs to them
    """

    def __init__(
        self,
        membership: MembershipService,
        audit: AuditService,
        users: UserService,
        cache: Optional[RedisCache] = None,
        channel: Optional[ChannelManager] = None,
        cache_ttl: int = 300
    ):
        super().__init__(cache=cache, channel=channel, cache_ttl=cache_ttl)
        self.membership = membership
        self.audit = audit
        self.users = users

    async def create_vault(self, db: Session, owner_id: str, vault_data: VaultCreate) -> WriteOutcome[VaultResponse]:
        """
        Create a vault with its creator as OWNER. Both rows are committed in
        the same transaction.
        """
        vault = Vault(name=vault_data.name.strip(), description=vault_data.description)
        vault.memberships.append(Membership(user_id=owner_id, role=Role.OWNER.value))
        db.add(vault)
        db.commit()
        db.refresh(vault)

        outcome = WriteOutcome(VaultResponse.from_model(vault))
        logger.info(f"Vault {vault.id} created by {owner_id}")

        outcome.note("audit", self.audit.append(
            db, vault.id, owner_id, AuditAction.VAULT_CREATED, {"name": vault.name}
        ))
        await self.invalidate(outcome, CacheKey.vaults_pattern(owner_id))
        return outcome

    def _load_vaults(self, db: Session, user_id: str) -> List[Dict[str, Any]]:
        vaults = (
            db.query(Vault)
            .join(Membership, Membership.vault_id == Vault.id)
            .filter(Membership.user_id == user_id)
            .options(selectinload(Vault.memberships))
            .order_by(Vault.created_at.desc())
            .all()
        )
        return [VaultResponse.from_model(vault).to_json_dict() for vault in vaults]

    async def get_vaults_for_user(self, db: Session, user_id: str) -> List[Dict[str, Any]]:
        """Every vault the user belongs to, served from the cache when possible"""
        return await self.cached(CacheKey.vaults(user_id), lambda: self._load_vaults(db, user_id))

    def get_vault(self, db: Session, user_id: str, vault_id: str) -> VaultResponse:
        self.membership.require_member(db, user_id, vault_id)
        vault = db.get(Vault, vault_id)
        if vault is None:
            raise NotFoundError("Vault not found")
        return VaultResponse.from_model(vault)

    def get_vault_members(self, db: Session, user_id: str, vault_id: str) -> List[VaultMemberResponse]:
        self.membership.require_member(db, user_id, vault_id)
        return [
            VaultMemberResponse(
                user_id=m.user_id,
                name=m.user.name,
                email=m.user.email,
                role=m.role_enum,
                joined_at=m.joined_at,
            )
            for m in self.membership.list_members(db, vault_id)
        ]

    async def invite_to_vault(
        self,
        db: Session,
        inviter_id: str,
        vault_id: str,
        email: str,
        role: Role = Role.VIEWER
    ) -> WriteOutcome[InviteResponse]:
        """
        Add a registered user to a vault.

        Only OWNERs and CONTRIBUTORs may invite, and only an OWNER may grant
        OWNER. Re-inviting a member is a conflict, never a silent success.
        """
        email = (email or "").strip().lower()
        if not email:
            raise ValidationException("Email is required")

        inviter_role = self.membership.get_role(db, inviter_id, vault_id)
        if inviter_role is None:
            raise ForbiddenError("Access denied to this vault")
        if not inviter_role.can_invite:
            raise ForbiddenError("Only owners and contributors can invite members", error_code="INSUFFICIENT_ROLE")
        if role == Role.OWNER and inviter_role != Role.OWNER:
            raise ForbiddenError("Only owners can grant the OWNER role", error_code="INSUFFICIENT_ROLE")

        invitee = self.users.get_user_by_email(db, email)
        if invitee is None:
            raise NotFoundError(
                "No user found with that email. They must register first.",
                error_code="USER_NOT_REGISTERED"
            )
        if invitee.id == inviter_id:
            raise ValidationException("You are already in this vault", error_code="SELF_INVITE", status_code=400)
        if self.membership.get_role(db, invitee.id, vault_id) is not None:
            raise ConflictError("This user is already a member", error_code="ALREADY_MEMBER")

        db.add(Membership(user_id=invitee.id, vault_id=vault_id, role=role.value))
        try:
            db.commit()
        except IntegrityError:
            # A concurrent invite for the same pair won the insert
            db.rollback()
            raise ConflictError("This user is already a member", error_code="ALREADY_MEMBER")

        outcome = WriteOutcome(InviteResponse(
            user=InvitedUser(id=invitee.id, name=invitee.name, email=invitee.email, role=role)
        ))
        logger.info(f"User {invitee.id} invited to vault {vault_id} as {role.value} by {inviter_id}")

        outcome.note("audit", self.audit.append(
            db, vault_id, inviter_id, AuditAction.USER_INVITED,
            {"invitedUserId": invitee.id, "email": invitee.email, "role": role.value}
        ))
        # Every member's listing embeds the member set, not just the invitee's
        member_ids = self.membership.member_ids(db, vault_id)
        await self.invalidate(outcome, *[CacheKey.vaults_pattern(uid) for uid in member_ids])
        return outcome
