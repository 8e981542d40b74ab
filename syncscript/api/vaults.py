from typing import Any, Dict, List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from syncscript.api.deps import get_current_user, get_services
from syncscript.db.database import get_db
from syncscript.models.user import User
from syncscript.schemas.vault import (
    InviteRequest,
    InviteResponse,
    VaultCreate,
    VaultMemberResponse,
    VaultResponse,
)
from syncscript.services.container import ServiceContainer

router = APIRouter(prefix="/vaults", tags=["vaults"])


@router.post("", response_model=VaultResponse, status_code=status.HTTP_201_CREATED)
async def create_vault(
    vault_data: VaultCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Create a vault owned by the current user
    """
    outcome = await services.vaults.create_vault(db, current_user.id, vault_data)
    outcome.log_degraded("create_vault")
    return outcome.record


@router.get("", response_model=List[Dict[str, Any]])
async def list_vaults(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    List the vaults the current user is a member of
    """
    return await services.vaults.get_vaults_for_user(db, current_user.id)


@router.get("/{vault_id}", response_model=VaultResponse)
async def get_vault(
    vault_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    return services.vaults.get_vault(db, current_user.id, vault_id)


@router.get("/{vault_id}/members", response_model=List[VaultMemberResponse])
async def list_members(
    vault_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    List the members of a vault with their roles
    """
    return services.vaults.get_vault_members(db, current_user.id, vault_id)


@router.post("/{vault_id}/invite", response_model=InviteResponse)
async def invite_member(
    vault_id: str,
    invite: InviteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Invite a registered user to the vault
    """
    outcome = await services.vaults.invite_to_vault(
        db, current_user.id, vault_id, invite.email, invite.requested_role
    )
    outcome.log_degraded("invite_to_vault")
    return outcome.record
