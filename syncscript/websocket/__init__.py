"""
Real-time channel: vault and source groups over Socket.IO.
"""

from .connection_manager import ChannelManager, ClientConnection
from .events import EventType, source_room, vault_room
from .server import ChannelServer

__all__ = [
    "ChannelManager",
    "ClientConnection",
    "EventType",
    "ChannelServer",
    "source_room",
    "vault_room",
]
