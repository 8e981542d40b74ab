from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from loguru import logger

from syncscript.collaboration.anchors import UNANCHORED, Anchored
from syncscript.core.error_handlers import NotFoundError, ValidationException
from syncscript.db.cache import CacheKey, RedisCache
from syncscript.models.annotation import Annotation
from syncscript.models.source import Source
from syncscript.schemas.annotation import AnnotationCreate, AnnotationResponse
from syncscript.services.audit_service import AuditAction, AuditService
from syncscript.services.base import CollaborativeService
from syncscript.services.membership_service import MembershipService
from syncscript.services.outcome import WriteOutcome
from syncscript.websocket.connection_manager import ChannelManager
from syncscript.websocket.events import EventType


class AnnotationService(CollaborativeService):
    """
    Service for notes attached to sources
    """

    def __init__(
        self,
        membership: MembershipService,
        audit: AuditService,
        cache: Optional[RedisCache] = None,
        channel: Optional[ChannelManager] = None,
        cache_ttl: int = 300
    ):
        super().__init__(cache=cache, channel=channel, cache_ttl=cache_ttl)
        self.membership = membership
        self.audit = audit

    async def create_annotation(
        self,
        db: Session,
        user_id: str,
        annotation_data: AnnotationCreate
    ) -> WriteOutcome[AnnotationResponse]:
        """
        Attach a note to a source, optionally anchored to a span of its text.

        When the source's text is known the span must lie inside it and
        ``selectedText`` must be exactly the text it covers.
        """
        source = db.get(Source, annotation_data.source_id)
        if source is None:
            raise NotFoundError("Source not found")
        self.membership.require_writer(db, user_id, source.vault_id)

        position = annotation_data.position.to_anchor() if annotation_data.position else UNANCHORED
        if position.is_anchored and source.content is not None:
            self._check_span(source.content, position)

        annotation = Annotation(
            source_id=source.id,
            user_id=user_id,
            content=annotation_data.content,
            position=position.to_dict(),
        )
        db.add(annotation)
        db.commit()
        db.refresh(annotation)

        outcome = WriteOutcome(AnnotationResponse.from_model(annotation, include_user=True))
        logger.info(f"Annotation {annotation.id} added to source {source.id} by {user_id}")

        outcome.note("audit", self.audit.append(
            db, source.vault_id, user_id, AuditAction.ANNOTATION_ADDED,
            {"sourceId": source.id, "annotationId": annotation.id, "anchored": position.is_anchored}
        ))
        # Source listings embed their annotations
        await self.invalidate(outcome, CacheKey.sources_pattern(source.vault_id))
        payload = outcome.record.to_json_dict()
        await self.broadcast(
            outcome, lambda channel: channel.emit_to_source(source.id, EventType.ANNOTATION_ADDED, payload)
        )
        return outcome

    @staticmethod
    def _check_span(content: str, position: Anchored):
        if position.end_offset > len(content):
            raise ValidationException(
                "Position extends past the end of the source text",
                details={"endOffset": position.end_offset, "length": len(content)},
                error_code="OFFSET_OUT_OF_RANGE"
            )
        covered = content[position.start_offset:position.end_offset]
        if position.selected_text != covered:
            raise ValidationException(
                "selectedText does not match the source text at that position",
                details={"selectedText": position.selected_text, "expected": covered},
                error_code="SELECTED_TEXT_MISMATCH"
            )

    def list_annotations(self, db: Session, user_id: str, source_id: str) -> List[AnnotationResponse]:
        source = db.get(Source, source_id)
        if source is None:
            raise NotFoundError("Source not found")
        self.membership.require_member(db, user_id, source.vault_id)

        annotations = (
            db.query(Annotation)
            .options(joinedload(Annotation.user))
            .filter(Annotation.source_id == source_id)
            .order_by(Annotation.created_at.asc())
            .all()
        )
        return [AnnotationResponse.from_model(a, include_user=True) for a in annotations]
