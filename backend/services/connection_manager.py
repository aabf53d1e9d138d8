# backend/services/connection_manager.py

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Connection:
    """
    One live WebSocket and the room/identity it is bound to.

    ``current_room`` and ``username`` stay None until the first join.
    """
    websocket: WebSocket
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user_id: Optional[str] = None
    current_room: Optional[str] = None
    username: Optional[str] = None

# ============================================================================
# WEBSOCKET CONNECTION MANAGER
# ============================================================================

class ConnectionManager:
    """
    Manages WebSocket connections and room broadcast groups.

    This class knows nothing about chat semantics. It keeps track of which
    connections are alive and which ones are subscribed to which room, and
    delivers JSON frames to them.

    Data Structures:
        connections: Maps connection id -> Connection
                     Example: {"9f2c...": Connection(...)}

        rooms: Maps room name -> Set of connection ids subscribed to it
               Example: {"main": {"9f2c...", "a71b..."}}

    Delivery:
        Sending to a closed socket is not an error for the caller. The
        failing connection is dropped from every broadcast group and the
        receive loop performs the full disconnect when it notices.
    """

    def __init__(self) -> None:
        self.connections: Dict[str, Connection] = {}
        self.rooms: Dict[str, Set[str]] = {}

    async def connect(self, websocket: WebSocket, user_id: Optional[str] = None) -> Connection:
        """Accept a new WebSocket connection. It is not subscribed to any room."""
        await websocket.accept()

        connection = Connection(websocket=websocket, user_id=user_id)
        self.connections[connection.id] = connection

        logger.info("✓ Connection %s (%s) opened. Total: %d", connection.id, user_id or "anonymous", len(self.connections))
        return connection

    def disconnect(self, connection: Connection) -> None:
        """Forget a connection and remove it from every broadcast group."""
        self.unsubscribe_all(connection)
        if self.connections.pop(connection.id, None) is not None:
            logger.info("✗ Connection %s closed. Total: %d", connection.id, len(self.connections))

    def is_connected(self, connection: Connection) -> bool:
        return connection.id in self.connections

    def subscribe(self, connection: Connection, room: str) -> None:
        if connection.id not in self.connections:
            return  # Connection already closed
        self.rooms.setdefault(room, set()).add(connection.id)

    def unsubscribe(self, connection: Connection, room: str) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(connection.id)
        # Clean up empty group
        if not members:
            del self.rooms[room]

    def unsubscribe_all(self, connection: Connection) -> None:
        for room in [r for r, members in self.rooms.items() if connection.id in members]:
            self.unsubscribe(connection, room)

    def subscribers(self, room: str) -> List[Connection]:
        return [self.connections[cid] for cid in self.rooms.get(room, ()) if cid in self.connections]

    def drop_room(self, room: str) -> List[Connection]:
        """Remove a whole broadcast group, returning the connections that were in it."""
        members = self.subscribers(room)
        self.rooms.pop(room, None)
        return members

    async def send(self, connection: Connection, message: dict) -> bool:
        """
        Deliver one frame to one connection.

        Returns:
            False if the socket is gone; the connection is then dropped from
            its broadcast groups.
        """
        if connection.id not in self.connections:
            return False
        try:
            await connection.websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning("Send to %s failed: %s", connection.id, e)
            self.unsubscribe_all(connection)
            return False

    async def broadcast_to_room(self, room: str, message: dict, exclude: Optional[Connection] = None) -> None:
        """
        Send a frame to every connection subscribed to ``room``.

        Args:
            room: Target room name
            message: Frame to send (JSON serialized)
            exclude: Connection to skip, e.g. the sender of a typing event
        """
        connections = self.subscribers(room)  # Copy to avoid modification during iteration
        if not connections:
            logger.debug("[routing] Skipped broadcast: room=%s has 0 subscribers", room)
            return

        logger.debug("📨 Broadcasting %s to room %s: %d clients", message.get("type"), room, len(connections))
        await self._send_many(connections, message, exclude)

    async def broadcast_all(self, message: dict) -> None:
        """Send a frame to every open connection, process-wide."""
        await self._send_many(list(self.connections.values()), message, None)

    async def _send_many(self, connections: Iterable[Connection], message: dict, exclude: Optional[Connection]) -> None:
        for connection in connections:
            if exclude is not None and connection.id == exclude.id:
                continue
            await self.send(connection, message)
