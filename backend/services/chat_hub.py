# backend/services/chat_hub.py

from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import WebSocket

from core.errors import RoomNotFound, ValidationError
from models.models import ChatMessage, Identity
from services.connection_manager import Connection, ConnectionManager
from services.message_store import MessageStore
from services.presence_tracker import PresenceTracker
from services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


def frame(event: str, data: Any) -> dict:
    """Outgoing hub -> client frame."""
    return {"type": event, "data": data}

# ============================================================================
# CHAT HUB
# ============================================================================

class ChatHub:
    """
    Connection-scoped real-time engine.

    Binds a live connection to a room and a username, relays chat messages
    and typing events to the room's subscribers, persists messages through
    the MessageStore and keeps presence / room lists in sync.

    Connection lifecycle:
        connect     -> Connected (no room)
        join_room   -> Joined(room, username); joining another room leaves
                       the previous one first
        leave_room  -> Connected (no room)
        disconnect  -> gone; presence removed and re-broadcast

    Suspension points:
        Only MessageStore calls and socket sends await. Registry and presence
        mutations never straddle an await: a join loads the history first and
        only then rebinds the connection, so a failed or abandoned join leaves
        the previous binding untouched.

    Errors:
        ChatError subclasses are raised to the caller (the WebSocket or REST
        layer), which reports them to the originating client. Nothing is
        mutated when validation fails.
    """

    def __init__(
        self,
        room_registry: RoomRegistry,
        presence: PresenceTracker,
        connection_manager: ConnectionManager,
        message_store: MessageStore,
        history_limit: int = 50,
    ) -> None:
        self.room_registry = room_registry
        self.presence = presence
        self.connection_manager = connection_manager
        self.message_store = message_store
        self.history_limit = history_limit

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def connect(self, websocket: WebSocket, identity: Optional[Identity] = None) -> Connection:
        connection = await self.connection_manager.connect(websocket, identity.id if identity else None)
        await self.connection_manager.send(connection, frame("roomsUpdated", self.room_registry.list()))
        return connection

    async def disconnect(self, connection: Connection) -> None:
        room, username = connection.current_room, connection.username
        connection.current_room = None
        self.connection_manager.disconnect(connection)
        if room:
            await self._remove_presence(connection, room, username)

    async def join_room(self, connection: Connection, room: Optional[str], username: Optional[str]) -> List[str]:
        """
        Bind ``connection`` to ``room`` as ``username``.

        Process:
            1. Validate payload and that the room exists
            2. Load the last ``history_limit`` messages (the only suspension point)
            3. Re-check the room, then in one step: leave the previously
               joined room, subscribe, record the binding, join presence
            4. Tell the old room who is left
            5. Send the history to this connection only
            6. Broadcast the presence snapshot to the whole room

        Nothing is mutated before the history is loaded, so a failed join
        leaves the connection exactly as it was.

        Returns:
            The room's presence snapshot after joining. Empty if the
            connection closed while the history was loading.

        Raises:
            ValidationError: room or username empty
            RoomNotFound: room is not registered, or was deleted mid-join
            StoreError: history could not be loaded
        """
        room = room or ""
        username = (username or "").strip()
        if not room.strip() or not username:
            raise ValidationError("room and username are required")
        if not self.room_registry.exists(room):
            raise RoomNotFound("Room not found", {"room": room})

        history = await self.message_store.recent(room, self.history_limit)

        if not self.room_registry.exists(room):
            raise RoomNotFound("Room was deleted", {"room": room})
        if not self.connection_manager.is_connected(connection):
            return []

        previous_room, previous_name = connection.current_room, connection.username
        left_users = None
        if previous_room and previous_room != room:
            self.connection_manager.unsubscribe(connection, previous_room)
            left_users = self._unbind_presence(connection, previous_room, previous_name)
        elif previous_room == room and previous_name and previous_name != username:
            # Same room under a new name: the old name goes offline
            self._unbind_presence(connection, room, previous_name)

        self.connection_manager.subscribe(connection, room)
        connection.current_room = room
        connection.username = username
        users = self.presence.join(room, username)
        logger.info("→ %s joined '%s' (%d online)", username, room, len(users))

        if left_users is not None:
            await self.connection_manager.broadcast_to_room(previous_room, frame("onlineUsers", left_users))
        await self.connection_manager.send(
            connection, frame("chatHistory", [m.history_payload() for m in history])
        )
        await self.connection_manager.broadcast_to_room(room, frame("onlineUsers", self.presence.snapshot(room)))
        return users

    async def leave_room(self, connection: Connection) -> None:
        room = connection.current_room
        if not room:
            return
        connection.current_room = None
        self.connection_manager.unsubscribe(connection, room)
        await self._remove_presence(connection, room, connection.username)

    # ------------------------------------------------------------------
    # rooms
    # ------------------------------------------------------------------

    def list_rooms(self) -> List[str]:
        return self.room_registry.list()

    async def create_room(self, name: Optional[str]) -> List[str]:
        """
        Create a room and tell every connection about the new room list.

        Raises:
            InvalidRoomName / RoomAlreadyExists: nothing is broadcast
        """
        room = self.room_registry.create(name)
        self.presence.ensure_room(room.name)
        rooms = self.room_registry.list()
        await self.connection_manager.broadcast_all(frame("roomsUpdated", rooms))
        return rooms

    async def delete_room(self, name: Optional[str]) -> List[str]:
        """
        Delete a room, evict its members and broadcast the new room list.

        Connections joined to the room are unsubscribed, lose their room
        binding and receive a ``roomDeleted`` frame.

        Raises:
            RoomProtected / RoomNotFound: nothing is broadcast
        """
        name = (name or "").strip()
        self.room_registry.delete(name)
        self.presence.drop_room(name)
        self.connection_manager.drop_room(name)

        evicted = [
            c for c in self.connection_manager.connections.values() if c.current_room == name
        ]
        for connection in evicted:
            connection.current_room = None
        for connection in evicted:
            await self.connection_manager.send(connection, frame("roomDeleted", {"room": name}))

        rooms = self.room_registry.list()
        await self.connection_manager.broadcast_all(frame("roomsUpdated", rooms))
        return rooms

    async def history(self, room: str, limit: Optional[int] = None) -> List[ChatMessage]:
        return await self.message_store.recent(room, self.history_limit if limit is None else limit)

    # ------------------------------------------------------------------
    # messaging
    # ------------------------------------------------------------------

    async def send_message(
        self,
        connection: Optional[Connection],
        room: Optional[str],
        username: Optional[str],
        text: Optional[str],
    ) -> Optional[ChatMessage]:
        """
        Persist a chat message and broadcast it to the room, sender included.

        Returns:
            The stored message, or None when the message was dropped
            because a field was empty.

        Raises:
            RoomNotFound: the room no longer exists
            StoreError: the message could not be persisted; nothing is sent
        """
        if not room or not username or not text or not text.strip():
            return None
        if not self.room_registry.exists(room):
            raise RoomNotFound("Room not found", {"room": room})

        message = await self.message_store.append(room, username, text)
        await self.connection_manager.broadcast_to_room(room, frame("chatMessage", message.broadcast_payload()))
        return message

    async def typing(
        self,
        connection: Connection,
        room: Optional[str],
        username: Optional[str],
        is_typing: bool,
    ) -> None:
        """Relay a typing indicator to everyone in the room but the sender."""
        if not room or not username or not self.room_registry.exists(room):
            return
        await self.connection_manager.broadcast_to_room(
            room,
            frame("typing", {"username": username, "isTyping": bool(is_typing)}),
            exclude=connection,
        )

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _has_other_session(self, connection: Connection, room: str, username: str) -> bool:
        for other in self.connection_manager.subscribers(room):
            if other.id != connection.id and other.current_room == room and other.username == username:
                return True
        return False

    def _unbind_presence(self, connection: Connection, room: str, username: Optional[str]) -> Optional[List[str]]:
        if not username or not self.room_registry.exists(room):
            return None
        if self._has_other_session(connection, room, username):
            # Same user still online in this room from another socket
            return None
        users = self.presence.leave(room, username)
        logger.info("← %s left '%s' (%d online)", username, room, len(users))
        return users

    async def _remove_presence(self, connection: Connection, room: str, username: Optional[str]) -> None:
        users = self._unbind_presence(connection, room, username)
        if users is not None:
            await self.connection_manager.broadcast_to_room(room, frame("onlineUsers", users))

    def stats(self) -> dict:
        return {
            "connections": len(self.connection_manager.connections),
            "rooms": len(self.room_registry.rooms),
            "active_rooms_with_members": len(self.connection_manager.rooms),
            "online_users": self.presence.online_count(),
        }
