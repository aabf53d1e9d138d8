# backend/core/state.py
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Request

from core.config import Settings
from services.auth_service import AuthService
from services.chat_hub import ChatHub
from services.connection_manager import ConnectionManager
from services.message_store import build_message_store
from services.presence_tracker import PresenceTracker
from services.room_registry import RoomRegistry


class ChatState:
    """
    Everything the app shares across connections, built once per app.

    Held on ``app.state.chat`` and handed to routes through ``get_state`` so
    handlers never reach for module-level singletons.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.room_registry = RoomRegistry()
        self.presence = PresenceTracker()
        self.connection_manager = ConnectionManager()
        self.message_store = build_message_store(settings)
        self.auth = AuthService(settings)
        self.hub = ChatHub(
            room_registry=self.room_registry,
            presence=self.presence,
            connection_manager=self.connection_manager,
            message_store=self.message_store,
            history_limit=settings.HISTORY_LIMIT,
        )
        self.app_start_time: datetime = datetime.now(timezone.utc)


def get_state(request: Request) -> ChatState:
    return request.app.state.chat
