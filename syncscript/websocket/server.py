"""
Socket.IO server exposing vault and source groups.

The server is a relay: it keeps no presence roster. Join and leave of a vault
group are re-broadcast to the other members as ``user_joined``/``user_left``
so clients can rebuild who is present; clients backfill history over HTTP.
"""

import logging
from typing import Any, Dict, Optional, Protocol
from urllib.parse import parse_qs

import socketio
from socketio.exceptions import ConnectionRefusedError

from .connection_manager import ChannelManager
from .events import EventType, is_vault_room, source_room, vault_room

logger = logging.getLogger(__name__)


class ChannelAccessPolicy(Protocol):
    """Authorization hooks the socket layer needs from the store."""
    
    def authenticate(self, token: str) -> Optional[Dict[str, Any]]: ...
    
    def can_view_vault(self, user_id: str, vault_id: str) -> bool: ...
    
    def vault_of_source(self, source_id: str) -> Optional[str]: ...


def _extract_id(data: Any, key: str) -> Optional[str]:
    """Accept either a bare id or ``{key: id}``."""
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        value = data.get(key) or data.get("id")
        return str(value) if value else None
    return None


def _token_from_handshake(environ: Dict[str, Any], auth: Any) -> Optional[str]:
    if isinstance(auth, dict) and auth.get("token"):
        return auth["token"]
    header = environ.get("HTTP_AUTHORIZATION", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    query = parse_qs(environ.get("QUERY_STRING", ""))
    tokens = query.get("token")
    return tokens[0] if tokens else None


class ChannelServer:
    """Wires Socket.IO events to a ChannelManager."""
    
    def __init__(
        self,
        channel: ChannelManager,
        access: ChannelAccessPolicy,
        sio: Optional[socketio.AsyncServer] = None,
        cors_allowed_origins="*"
    ):
        self.channel = channel
        self.access = access
        self.sio = sio or socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=cors_allowed_origins,
            logger=False,
            engineio_logger=False,
            ping_timeout=60,
            ping_interval=25
        )
        # An emitter supplied with the channel wins over our own server
        if self.channel.server is None:
            self.channel.attach(self.sio)
        self._register_handlers()
    
    def _register_handlers(self):
        self.sio.on("connect", self.on_connect)
        self.sio.on("disconnect", self.on_disconnect)
        self.sio.on(EventType.JOIN_VAULT.value, self.on_join_vault)
        self.sio.on(EventType.LEAVE_VAULT.value, self.on_leave_vault)
        self.sio.on(EventType.JOIN_SOURCE.value, self.on_join_source)
        self.sio.on(EventType.LEAVE_SOURCE.value, self.on_leave_source)
    
    def asgi_app(self, other_asgi_app=None) -> socketio.ASGIApp:
        return socketio.ASGIApp(self.sio, other_asgi_app=other_asgi_app)
    
    async def on_connect(self, sid: str, environ: Dict[str, Any], auth: Any = None):
        token = _token_from_handshake(environ or {}, auth)
        identity = self.access.authenticate(token) if token else None
        if not identity:
            logger.warning(f"Socket connection {sid} rejected: missing or invalid token")
            raise ConnectionRefusedError("unauthorized")
        
        self.channel.register(sid, identity["id"], identity.get("name"))
    
    async def on_disconnect(self, sid: str, *args):
        connection = self.channel.get_connection(sid)
        rooms = await self.channel.disconnect(sid)
        if connection is None:
            return
        for room in rooms:
            if is_vault_room(room):
                await self.channel.emit(
                    EventType.USER_LEFT, connection.public_identity(), room, skip_sid=sid
                )
    
    async def on_join_vault(self, sid: str, data: Any = None, *args) -> Dict[str, Any]:
        connection = self.channel.get_connection(sid)
        vault_id = _extract_id(data, "vaultId")
        if connection is None or not vault_id:
            return {"error": "vaultId required"}
        if not self.access.can_view_vault(connection.user_id, vault_id):
            logger.info(f"User {connection.user_id} denied join of vault {vault_id}")
            return {"error": "Access denied"}
        
        room = vault_room(vault_id)
        if room in connection.rooms:
            return {"status": "joined", "room": room}
        await self.channel.join(sid, room)
        await self.channel.emit(EventType.USER_JOINED, connection.public_identity(), room, skip_sid=sid)
        return {"status": "joined", "room": room}
    
    async def on_leave_vault(self, sid: str, data: Any = None, *args) -> Dict[str, Any]:
        connection = self.channel.get_connection(sid)
        vault_id = _extract_id(data, "vaultId")
        if connection is None or not vault_id:
            return {"error": "vaultId required"}
        
        room = vault_room(vault_id)
        if await self.channel.leave(sid, room):
            await self.channel.emit(EventType.USER_LEFT, connection.public_identity(), room, skip_sid=sid)
        return {"status": "left", "room": room}
    
    async def on_join_source(self, sid: str, data: Any = None, *args) -> Dict[str, Any]:
        connection = self.channel.get_connection(sid)
        source_id = _extract_id(data, "sourceId")
        if connection is None or not source_id:
            return {"error": "sourceId required"}
        vault_id = self.access.vault_of_source(source_id)
        if vault_id is None or not self.access.can_view_vault(connection.user_id, vault_id):
            return {"error": "Access denied"}
        
        room = source_room(source_id)
        await self.channel.join(sid, room)
        return {"status": "joined", "room": room}
    
    async def on_leave_source(self, sid: str, data: Any = None, *args) -> Dict[str, Any]:
        source_id = _extract_id(data, "sourceId")
        if not source_id:
            return {"error": "sourceId required"}
        
        room = source_room(source_id)
        await self.channel.leave(sid, room)
        return {"status": "left", "room": room}
