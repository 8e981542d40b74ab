"""
Sources: creation with link enrichment, cached listing, content updates and
highlight rendering
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session, selectinload
from loguru import logger

from syncscript.collaboration.anchors import render_segments
from syncscript.core.error_handlers import NotFoundError, ValidationException
from syncscript.db.cache import CacheKey, RedisCache
from syncscript.models.annotation import Annotation
from syncscript.models.source import Source
from syncscript.schemas.annotation import AnnotationResponse
from syncscript.schemas.source import (
    HighlightsResponse,
    SegmentResponse,
    SourceCreate,
    SourceResponse,
    SourceUpdate,
)
from syncscript.services.audit_service import AuditAction, AuditService
from syncscript.services.base import CollaborativeService
from syncscript.services.membership_service import MembershipService
from syncscript.services.metadata_service import MetadataFetcher
from syncscript.services.outcome import WriteOutcome
from syncscript.websocket.connection_manager import ChannelManager
from syncscript.websocket.events import EventType


class SourceService(CollaborativeService):
    """
    Service for the sources of a vault
    """

    def __init__(
        self,
        membership: MembershipService,
        audit: AuditService,
        metadata_fetcher: Optional[MetadataFetcher] = None,
        cache: Optional[RedisCache] = None,
        channel: Optional[ChannelManager] = None,
        cache_ttl: int = 300
    ):
        super().__init__(cache=cache, channel=channel, cache_ttl=cache_ttl)
        self.membership = membership
        self.audit = audit
        self.metadata_fetcher = metadata_fetcher

    def get_source(self, db: Session, source_id: str) -> Source:
        source = db.get(Source, source_id)
        if source is None:
            raise NotFoundError("Source not found")
        return source

    async def create_source(self, db: Session, user_id: str, source_data: SourceCreate) -> WriteOutcome[SourceResponse]:
        """
        Add a link or uploaded file to a vault.

        A bare link is enriched with the page's title and description. The
        fetch is bounded and best-effort: on failure the title falls back to
        the URL and the description stays empty.
        """
        self.membership.require_writer(db, user_id, source_data.vault_id)

        title = source_data.title
        description = None
        enrichment_ok = True
        if source_data.url and not source_data.file_url:
            page = await self.metadata_fetcher.fetch(source_data.url) if self.metadata_fetcher else None
            if page is None:
                enrichment_ok = False
            else:
                title = title or page.title
                description = page.description

        source = Source(
            vault_id=source_data.vault_id,
            url=source_data.url or source_data.file_url,
            file_url=source_data.file_url,
            title=title or source_data.url or source_data.file_url,
            source_metadata={"description": description},
            content=source_data.content,
            added_by_id=user_id,
        )
        db.add(source)
        db.commit()
        db.refresh(source)

        outcome = WriteOutcome(SourceResponse.from_model(source))
        outcome.note("metadata", enrichment_ok)
        logger.info(f"Source {source.id} added to vault {source.vault_id} by {user_id}")

        outcome.note("audit", self.audit.append(
            db, source.vault_id, user_id, AuditAction.SOURCE_ADDED,
            {"sourceId": source.id, "title": source.title}
        ))
        await self.invalidate(outcome, CacheKey.sources_pattern(source.vault_id))
        payload = outcome.record.to_json_dict()
        await self.broadcast(
            outcome, lambda channel: channel.emit_to_vault(source.vault_id, EventType.SOURCE_ADDED, payload)
        )
        return outcome

    def _load_sources(self, db: Session, vault_id: str) -> List[Dict[str, Any]]:
        sources = (
            db.query(Source)
            .filter(Source.vault_id == vault_id)
            .options(selectinload(Source.annotations))
            .order_by(Source.created_at.desc())
            .all()
        )
        return [SourceResponse.from_model(source).to_json_dict() for source in sources]

    async def get_sources_for_vault(self, db: Session, user_id: str, vault_id: str) -> List[Dict[str, Any]]:
        """Sources of a vault, newest first, with their annotations"""
        self.membership.require_member(db, user_id, vault_id)
        return await self.cached(CacheKey.sources(vault_id), lambda: self._load_sources(db, vault_id))

    async def update_source_content(
        self,
        db: Session,
        user_id: str,
        source_id: str,
        update: SourceUpdate
    ) -> WriteOutcome[SourceResponse]:
        source = self.get_source(db, source_id)
        self.membership.require_writer(db, user_id, source.vault_id)

        if update.title is not None:
            source.title = update.title
        if update.content is not None:
            source.content = update.content
        if update.description is not None:
            # Reassign so the JSON column is flagged dirty
            source.source_metadata = {**(source.source_metadata or {}), "description": update.description}
        source.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(source)

        outcome = WriteOutcome(SourceResponse.from_model(source))
        logger.info(f"Source {source.id} updated by {user_id}")

        changed = [name for name in ("title", "description", "content") if getattr(update, name) is not None]
        outcome.note("audit", self.audit.append(
            db, source.vault_id, user_id, AuditAction.SOURCE_UPDATED,
            {"sourceId": source.id, "fields": changed}
        ))
        await self.invalidate(outcome, CacheKey.sources_pattern(source.vault_id))
        payload = outcome.record.to_json_dict()
        await self.broadcast(
            outcome, lambda channel: channel.emit_to_vault(source.vault_id, EventType.SOURCE_UPDATED, payload)
        )
        return outcome

    def render_highlights(self, db: Session, user_id: str, source_id: str) -> HighlightsResponse:
        """Partition the source's text into plain and highlighted segments"""
        source = self.get_source(db, source_id)
        self.membership.require_member(db, user_id, source.vault_id)
        if source.content is None:
            raise ValidationException("Source has no text content to highlight", error_code="NO_TEXT_CONTENT")

        annotations: List[Annotation] = list(source.annotations)
        segments = render_segments(source.content, [(a.id, a.anchor) for a in annotations])
        return HighlightsResponse(
            source_id=source.id,
            length=len(source.content),
            segments=[SegmentResponse(**segment.to_dict()) for segment in segments],
            unanchored=[
                AnnotationResponse.from_model(a, include_user=True)
                for a in annotations if not a.anchor.is_anchored
            ],
        )
