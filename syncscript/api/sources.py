from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from syncscript.api.deps import get_current_user, get_services
from syncscript.db.database import get_db
from syncscript.models.user import User
from syncscript.schemas.source import HighlightsResponse, SourceCreate, SourceResponse, SourceUpdate
from syncscript.services.container import ServiceContainer

router = APIRouter(prefix="/sources", tags=["sources"])


@router.post("", response_model=SourceResponse, status_code=status.HTTP_201_CREATED)
async def create_source(
    source_data: SourceCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Add a link or an uploaded file to a vault
    """
    outcome = await services.sources.create_source(db, current_user.id, source_data)
    outcome.log_degraded("create_source")
    return outcome.record


@router.get("", response_model=List[Dict[str, Any]])
async def list_sources(
    vault_id: str = Query(..., alias="vaultId", min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    List a vault's sources, newest first, with their annotations
    """
    return await services.sources.get_sources_for_vault(db, current_user.id, vault_id)


@router.patch("/{source_id}", response_model=SourceResponse)
async def update_source(
    source_id: str,
    update: SourceUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    outcome = await services.sources.update_source_content(db, current_user.id, source_id, update)
    outcome.log_degraded("update_source_content")
    return outcome.record


@router.get("/{source_id}/highlights", response_model=HighlightsResponse)
async def get_highlights(
    source_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Render the source text as plain and highlighted segments
    """
    return services.sources.render_highlights(db, current_user.id, source_id)
