import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from main import create_app
from services.chat_hub import ChatHub
from services.connection_manager import ConnectionManager
from services.message_store import InMemoryMessageStore
from services.presence_tracker import PresenceTracker
from services.room_registry import RoomRegistry


class FakeWebSocket:
    """Stands in for a Starlette WebSocket: records every frame sent to it."""

    def __init__(self, name: str = "ws"):
        self.name = name
        self.accepted = False
        self.closed = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.closed:
            raise RuntimeError("Cannot call send once a close message has been sent.")
        self.sent.append(data)

    def types(self):
        return [f["type"] for f in self.sent]

    def data_of(self, event):
        return [f["data"] for f in self.sent if f["type"] == event]

    def last(self, event):
        frames = self.data_of(event)
        return frames[-1] if frames else None

    def clear(self):
        self.sent.clear()


@pytest.fixture
def settings() -> Settings:
    """In-memory store, fixed signing secret."""
    s = Settings()
    s.MESSAGE_STORE = "memory"
    s.JWT_SECRET = "test-secret"
    s.JWT_ALGORITHM = "HS256"
    s.WS_REQUIRE_AUTH = True
    s.HISTORY_LIMIT = 50
    s.HISTORY_MAX_LIMIT = 200
    s.CORS_ORIGINS = ["*"]
    return s


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def hub(store) -> ChatHub:
    return ChatHub(
        room_registry=RoomRegistry(),
        presence=PresenceTracker(),
        connection_manager=ConnectionManager(),
        message_store=store,
        history_limit=50,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def chat(app):
    return app.state.chat


def guest_token(client: TestClient, username: str) -> str:
    response = client.post("/auth/guest", json={"username": username})
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture
def token_for(client):
    """Returns a function issuing a guest token for a username."""
    def _token(username: str) -> str:
        return guest_token(client, username)
    return _token


@pytest.fixture
def connect(hub):
    """Async factory: opens a hub connection on a FakeWebSocket."""
    async def _connect(name: str = "ws"):
        websocket = FakeWebSocket(name)
        connection = await hub.connect(websocket)
        return connection, websocket
    return _connect
