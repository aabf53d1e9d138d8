# backend/services/message_store.py

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from core.config import Settings
from core.errors import StoreError
from models.models import ChatMessage

logger = logging.getLogger(__name__)

# ============================================================================
# MESSAGE STORE
# ============================================================================

class MessageStore:
    """
    Append-only chat log.

    Implementations assign ``created_at`` when a message is persisted and
    return history oldest-first. Both methods may suspend; callers must not
    assume room or presence state is unchanged across them.
    """

    async def connect(self) -> None:
        pass

    async def append(self, room: str, username: str, text: str) -> ChatMessage:
        raise NotImplementedError

    async def recent(self, room: str, limit: int) -> List[ChatMessage]:
        """The newest ``limit`` messages of ``room``, oldest first."""
        raise NotImplementedError

    async def close(self) -> None:
        pass


def _now(previous: Optional[datetime]) -> datetime:
    # Wall clock can step backwards; keep timestamps non-decreasing
    now = datetime.now(timezone.utc)
    if previous is not None and now < previous:
        return previous
    return now


class InMemoryMessageStore(MessageStore):
    """Process-local store. Used by default and in tests."""

    def __init__(self) -> None:
        self.messages: Dict[str, List[ChatMessage]] = {}
        self._last: Optional[datetime] = None

    async def append(self, room: str, username: str, text: str) -> ChatMessage:
        self._last = _now(self._last)
        message = ChatMessage(room=room, username=username, text=text, created_at=self._last)
        self.messages.setdefault(room, []).append(message)
        return message

    async def recent(self, room: str, limit: int) -> List[ChatMessage]:
        if limit <= 0:
            return []
        return list(self.messages.get(room, [])[-limit:])


class RedisMessageStore(MessageStore):
    """
    Redis-backed store: one list per room, appended with RPUSH.

    List order is insertion order, so messages sharing a timestamp still
    come back in the order they were written.

    Keys:
        chat:room:<room>:messages -> JSON {"username", "text", "createdAt"}
    """

    KEY = "chat:room:{room}:messages"

    def __init__(self, host: str = "localhost", port: int = 6379, access_key: str = "", ssl: bool = False):
        self.host = host
        self.port = port
        self.access_key = access_key
        self.ssl = ssl
        self.client = None
        self._last: Optional[datetime] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisMessageStore":
        return cls(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            access_key=settings.REDIS_ACCESS_KEY,
            ssl=settings.REDIS_SSL,
        )

    async def connect(self) -> None:
        """Establish async connection to Redis."""
        scheme = "rediss" if self.ssl else "redis"
        auth = f":{self.access_key}@" if self.access_key else ""
        self.client = redis.from_url(
            f"{scheme}://{auth}{self.host}:{self.port}",
            decode_responses=True,
        )
        try:
            await self.client.ping()
        except (RedisError, OSError) as e:
            raise StoreError(f"Redis unavailable: {e}") from e
        logger.info("✓ Connected to Redis at %s:%s", self.host, self.port)

    async def append(self, room: str, username: str, text: str) -> ChatMessage:
        self._last = _now(self._last)
        message = ChatMessage(room=room, username=username, text=text, created_at=self._last)
        record = {"username": username, "text": text, "createdAt": message.created_at.isoformat()}
        try:
            await self.client.rpush(self.KEY.format(room=room), json.dumps(record))
        except (RedisError, OSError) as e:
            logger.error("Redis append failed for room %s: %s", room, e)
            raise StoreError("Message could not be saved") from e
        return message

    async def recent(self, room: str, limit: int) -> List[ChatMessage]:
        if limit <= 0:
            return []
        try:
            raw = await self.client.lrange(self.KEY.format(room=room), -limit, -1)
        except (RedisError, OSError) as e:
            logger.error("Redis history read failed for room %s: %s", room, e)
            raise StoreError("History unavailable") from e

        messages = []
        for item in raw:
            data = json.loads(item)
            messages.append(
                ChatMessage(
                    room=room,
                    username=data["username"],
                    text=data["text"],
                    created_at=datetime.fromisoformat(data["createdAt"]),
                )
            )
        return messages

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
        logger.info("Redis connection closed")


def build_message_store(settings: Settings) -> MessageStore:
    if settings.MESSAGE_STORE == "redis":
        return RedisMessageStore.from_settings(settings)
    return InMemoryMessageStore()
