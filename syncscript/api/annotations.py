from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from syncscript.api.deps import get_current_user, get_services
from syncscript.db.database import get_db
from syncscript.models.user import User
from syncscript.schemas.annotation import AnnotationCreate, AnnotationResponse
from syncscript.services.container import ServiceContainer

router = APIRouter(prefix="/annotations", tags=["annotations"])


@router.post("", response_model=AnnotationResponse, status_code=status.HTTP_201_CREATED)
async def create_annotation(
    annotation_data: AnnotationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Add a note to a source, optionally anchored to a span of its text
    """
    outcome = await services.annotations.create_annotation(db, current_user.id, annotation_data)
    outcome.log_degraded("create_annotation")
    return outcome.record


@router.get("", response_model=List[AnnotationResponse])
async def list_annotations(
    source_id: str = Query(..., alias="sourceId", min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    return services.annotations.list_annotations(db, current_user.id, source_id)
