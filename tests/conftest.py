"""
Pytest configuration and shared fixtures for the SyncScript tests.
"""

import fnmatch
import json
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from syncscript.core.config import Settings
from syncscript.db.database import build_engine, build_session_factory, drop_tables, init_db
from syncscript.main import create_app
from syncscript.models.membership import Membership, Role
from syncscript.models.user import User
from syncscript.services.container import ServiceContainer
from syncscript.services.metadata_service import PageMetadata
from syncscript.services.storage_service import ObjectStorage, StorageConfig
from syncscript.services.user_service import UserService
from syncscript.schemas.user import UserCreate
from syncscript.websocket.connection_manager import ChannelManager


class FakeCache:
    """In-memory stand-in for RedisCache with the same contract."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.available = True
        self.gets = 0
        self.hits = 0

    async def get(self, key: str) -> Optional[Any]:
        self.gets += 1
        if not self.available or key not in self.store:
            return None
        self.hits += 1
        return json.loads(self.store[key])

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.available:
            return False
        self.store[key] = json.dumps(value)
        return True

    async def delete(self, key: str) -> bool:
        if not self.available:
            return False
        self.store.pop(key, None)
        return True

    async def delete_pattern(self, pattern: str) -> bool:
        if not self.available:
            return False
        for key in fnmatch.filter(list(self.store), pattern):
            del self.store[key]
        return True

    async def ping(self) -> bool:
        return self.available

    async def close(self):
        pass


class FakeSocketServer:
    """Records what a socketio.AsyncServer would have been asked to do."""

    def __init__(self):
        self.emitted: List[Dict[str, Any]] = []
        self.rooms: Dict[str, set] = {}
        self.fail = False

    async def enter_room(self, sid, room):
        self.rooms.setdefault(room, set()).add(sid)

    async def leave_room(self, sid, room):
        self.rooms.get(room, set()).discard(sid)

    async def emit(self, event, data, to=None, skip_sid=None):
        if self.fail:
            raise ConnectionError("socket server unavailable")
        self.emitted.append({"event": event, "data": data, "to": to, "skip_sid": skip_sid})

    def events(self, name: str) -> List[Dict[str, Any]]:
        return [e for e in self.emitted if e["event"] == name]


@pytest.fixture
def test_settings():
    return Settings(
        environment="testing",
        database_url="sqlite://",
        secret_key="test-secret-key",
        cache_enabled=True,
        aws_bucket_name="syncscript-test",
        aws_access_key_id="test-access",
        aws_secret_access_key="test-secret",
        aws_region="us-east-1",
        max_upload_size=1024,
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    drop_tables(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def socket_server():
    return FakeSocketServer()


@pytest.fixture
def channel(socket_server):
    return ChannelManager(socket_server)


@pytest.fixture
def metadata_fetcher():
    fetcher = Mock()
    fetcher.fetch = AsyncMock(return_value=PageMetadata(title="Example Domain", description="An example page"))
    return fetcher


@pytest.fixture
def s3_client():
    client = Mock()
    client.generate_presigned_url.return_value = "https://signed.example/url?X-Amz-Signature=abc"
    return client


@pytest.fixture
def storage(test_settings, s3_client):
    return ObjectStorage(
        StorageConfig(
            bucket=test_settings.aws_bucket_name,
            region=test_settings.aws_region,
            access_key=test_settings.aws_access_key_id,
            secret_key=test_settings.aws_secret_access_key,
        ),
        client=s3_client,
    )


@pytest.fixture
def services(test_settings, channel, storage, fake_cache, metadata_fetcher):
    return ServiceContainer.build(
        test_settings,
        channel=channel,
        storage=storage,
        cache=fake_cache,
        metadata_fetcher=metadata_fetcher,
    )


@pytest.fixture
def make_user(db, test_settings):
    """Register a user directly through the service layer."""
    users = UserService(test_settings)

    def _make(email: str, name: str = None, password: str = "correct-horse") -> User:
        auth = users.register(db, UserCreate(email=email, password=password, name=name or email.split("@")[0]))
        return users.get_user(db, auth.user.id)

    return _make


@pytest.fixture
def add_member(db):
    def _add(user: User, vault_id: str, role: Role) -> Membership:
        membership = Membership(user_id=user.id, vault_id=vault_id, role=role.value)
        db.add(membership)
        db.commit()
        return membership

    return _add


@pytest.fixture
def app(test_settings, fake_cache, storage, metadata_fetcher, channel, session_factory):
    return create_app(
        settings=test_settings,
        cache=fake_cache,
        storage=storage,
        metadata_fetcher=metadata_fetcher,
        channel=channel,
        session_factory=session_factory,
    )


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register(client):
    """Register over HTTP and return (user json, auth headers)."""

    def _register(email: str, name: str = None, password: str = "correct-horse"):
        response = client.post(
            "/api/users/register",
            json={"email": email, "password": password, "name": name or email.split("@")[0]},
        )
        assert response.status_code == 201, response.text
        data = response.json()
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register
