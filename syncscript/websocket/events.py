"""
Real-time event names and group naming.
"""

from enum import Enum


class EventType(str, Enum):
    """Socket.IO event names."""
    
    # client -> server
    JOIN_VAULT = "join_vault"
    LEAVE_VAULT = "leave_vault"
    JOIN_SOURCE = "join_source"
    LEAVE_SOURCE = "leave_source"
    
    # server -> client
    SOURCE_ADDED = "source_added"
    SOURCE_UPDATED = "source_updated"
    ANNOTATION_ADDED = "annotation_added"
    USER_JOINED = "user_joined"
    USER_LEFT = "user_left"


VAULT_PREFIX = "vault:"
SOURCE_PREFIX = "source:"


def vault_room(vault_id: str) -> str:
    return f"{VAULT_PREFIX}{vault_id}"


def source_room(source_id: str) -> str:
    return f"{SOURCE_PREFIX}{source_id}"


def is_vault_room(room: str) -> bool:
    return room.startswith(VAULT_PREFIX)

