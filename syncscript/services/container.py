from dataclasses import dataclass
from typing import Optional

from syncscript.core.config import Settings
from syncscript.db.cache import RedisCache
from syncscript.services.annotation_service import AnnotationService
from syncscript.services.audit_service import AuditService
from syncscript.services.membership_service import MembershipService
from syncscript.services.metadata_service import MetadataFetcher
from syncscript.services.source_service import SourceService
from syncscript.services.storage_service import ObjectStorage
from syncscript.services.user_service import UserService
from syncscript.services.vault_service import VaultService
from syncscript.websocket.connection_manager import ChannelManager


@dataclass
class ServiceContainer:
    """Everything the routers need, built once per application"""
    settings: Settings
    channel: ChannelManager
    storage: ObjectStorage
    users: UserService
    membership: MembershipService
    audit: AuditService
    vaults: VaultService
    sources: SourceService
    annotations: AnnotationService
    cache: Optional[RedisCache] = None
    
    @classmethod
    def build(
        cls,
        settings: Settings,
        channel: ChannelManager,
        storage: ObjectStorage,
        cache: Optional[RedisCache] = None,
        metadata_fetcher: Optional[MetadataFetcher] = None
    ) -> "ServiceContainer":
        users = UserService(settings)
        membership = MembershipService()
        audit = AuditService()
        shared = dict(cache=cache, channel=channel, cache_ttl=settings.cache_ttl_seconds)
        return cls(
            settings=settings,
            channel=channel,
            storage=storage,
            users=users,
            membership=membership,
            audit=audit,
            vaults=VaultService(membership, audit, users, **shared),
            sources=SourceService(membership, audit, metadata_fetcher, **shared),
            annotations=AnnotationService(membership, audit, **shared),
            cache=cache,
        )
