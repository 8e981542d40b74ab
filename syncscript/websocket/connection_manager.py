"""
Channel manager for the real-time broadcast groups.

One instance is built by the application's composition root and handed to
every component that joins clients to groups or emits events. Group
membership is ephemeral and process-local; it starts empty on every connect.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from .events import EventType, source_room, vault_room

logger = logging.getLogger(__name__)


@dataclass
class ClientConnection:
    """A connected Socket.IO client and the groups it is in."""
    sid: str
    user_id: str
    name: Optional[str] = None
    connected_at: datetime = field(default_factory=datetime.utcnow)
    rooms: Set[str] = field(default_factory=set)
    
    def public_identity(self) -> Dict[str, Any]:
        return {"id": self.user_id, "name": self.name}


class ChannelManager:
    """Tracks group membership and delivers events to groups."""
    
    def __init__(self, server=None):
        # socketio.AsyncServer, or anything with enter_room/leave_room/emit coroutines
        self.server = server
        self.connections: Dict[str, ClientConnection] = {}  # sid -> ClientConnection
        self.room_members: Dict[str, Set[str]] = {}  # room -> sids
        self.stats = {
            "total_connections": 0,
            "events_emitted": 0,
            "events_dropped": 0,
        }
    
    def attach(self, server):
        self.server = server
    
    def register(self, sid: str, user_id: str, name: Optional[str] = None) -> ClientConnection:
        connection = ClientConnection(sid=sid, user_id=user_id, name=name)
        self.connections[sid] = connection
        self.stats["total_connections"] += 1
        logger.info(f"Client {sid} connected as user {user_id}")
        return connection
    
    def get_connection(self, sid: str) -> Optional[ClientConnection]:
        return self.connections.get(sid)
    
    def members(self, room: str) -> Set[str]:
        return set(self.room_members.get(room, set()))
    
    async def join(self, sid: str, room: str) -> bool:
        """Add a connected client to a group."""
        connection = self.connections.get(sid)
        if connection is None:
            return False
        
        if self.server is not None:
            await self.server.enter_room(sid, room)
        connection.rooms.add(room)
        self.room_members.setdefault(room, set()).add(sid)
        logger.debug(f"Client {sid} joined {room}")
        return True
    
    async def leave(self, sid: str, room: str) -> bool:
        """Remove a client from a group."""
        connection = self.connections.get(sid)
        if connection is None or room not in connection.rooms:
            return False
        
        connection.rooms.discard(room)
        members = self.room_members.get(room)
        if members is not None:
            members.discard(sid)
            if not members:
                del self.room_members[room]
        if self.server is not None:
            await self.server.leave_room(sid, room)
        logger.debug(f"Client {sid} left {room}")
        return True
    
    async def disconnect(self, sid: str) -> List[str]:
        """Forget a client; returns the groups it was in."""
        connection = self.connections.pop(sid, None)
        if connection is None:
            return []
        
        rooms = sorted(connection.rooms)
        for room in rooms:
            members = self.room_members.get(room)
            if members is not None:
                members.discard(sid)
                if not members:
                    del self.room_members[room]
        connection.rooms.clear()
        logger.info(f"Client {sid} disconnected")
        return rooms
    
    async def emit(
        self,
        event: EventType,
        payload: Dict[str, Any],
        room: str,
        skip_sid: Optional[str] = None
    ) -> bool:
        """
        Deliver an event to every current member of a group.

        Fire-and-forget: a failure is logged and reported as ``False``, never raised.
        """
        if self.server is None:
            self.stats["events_dropped"] += 1
            logger.warning(f"Channel unavailable, dropped {event.value} for {room}")
            return False
        try:
            await self.server.emit(event.value, payload, to=room, skip_sid=skip_sid)
        except Exception as e:
            self.stats["events_dropped"] += 1
            logger.warning(f"Emit {event.value} to {room} failed: {e}")
            return False
        self.stats["events_emitted"] += 1
        return True
    
    async def emit_to_vault(self, vault_id: str, event: EventType, payload: Dict[str, Any]) -> bool:
        return await self.emit(event, payload, vault_room(vault_id))
    
    async def emit_to_source(self, source_id: str, event: EventType, payload: Dict[str, Any]) -> bool:
        return await self.emit(event, payload, source_room(source_id))
    
    def get_statistics(self) -> Dict[str, Any]:
        return {
            **self.stats,
            "active_connections": len(self.connections),
            "active_rooms": len(self.room_members),
        }
