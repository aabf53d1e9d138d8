# backend/services/room_registry.py

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from core.errors import InvalidRoomName, RoomAlreadyExists, RoomNotFound, RoomProtected
from models.models import Room

logger = logging.getLogger(__name__)

DEFAULT_ROOMS = ("main", "chil", "work", "fun")

# ============================================================================
# ROOM REGISTRY
# ============================================================================

class RoomRegistry:
    """
    Owns the set of known room names.

    Built-in rooms exist from construction, are protected and can never be
    deleted. User rooms are appended on create and removed on delete. Names
    are compared exactly (case-sensitive) after trimming surrounding
    whitespace.

    All methods are synchronous: callers on the event loop never suspend
    while the registry is being mutated.

    Usage:
        registry = RoomRegistry()
        registry.create("design")
        registry.list()   # ["main", "chil", "work", "fun", "design"]
    """

    def __init__(self, builtin: Iterable[str] = DEFAULT_ROOMS) -> None:
        # Insertion ordered: dict keeps creation order for list()
        self.rooms: Dict[str, Room] = {}
        for name in builtin:
            self.rooms[name] = Room(name=name, protected=True)
        self.protected = frozenset(self.rooms)

    def list(self) -> List[str]:
        """Room names in creation order."""
        return list(self.rooms.keys())

    def get(self, name: str) -> Optional[Room]:
        return self.rooms.get(name)

    def exists(self, name: str) -> bool:
        return name in self.rooms

    def create(self, name: Optional[str]) -> Room:
        """
        Register a new, unprotected room.

        Raises:
            InvalidRoomName: name is missing, empty or whitespace only
            RoomAlreadyExists: a room with the trimmed name is registered
        """
        clean = (name or "").strip()
        if not clean:
            raise InvalidRoomName("Room name required")
        if clean in self.rooms:
            raise RoomAlreadyExists("Room already exists", {"room": clean})

        room = Room(name=clean, protected=False)
        self.rooms[clean] = room
        logger.info("✓ Created room: %s", clean)
        return room

    def delete(self, name: str) -> Room:
        """
        Remove a user room.

        Raises:
            RoomProtected: name is one of the built-in rooms
            RoomNotFound: no such room
        """
        if name in self.protected:
            raise RoomProtected("Default rooms cannot be deleted", {"room": name})
        room = self.rooms.pop(name, None)
        if room is None:
            raise RoomNotFound("Room not found", {"room": name})
        logger.info("✓ Deleted room: %s", name)
        return room
