# backend/services/presence_tracker.py

from __future__ import annotations

from typing import Dict, List


class PresenceTracker:
    """
    Tracks which usernames are currently joined to each room.

    Data Structures:
        rooms: Maps room name -> insertion-ordered usernames
               Example: {"main": {"alice": None, "bob": None}}

    A plain dict is used as an ordered set so snapshots come back in join
    order. Nothing here awaits, so every call is atomic on the event loop.
    """

    def __init__(self) -> None:
        self.rooms: Dict[str, Dict[str, None]] = {}

    def ensure_room(self, room: str) -> None:
        self.rooms.setdefault(room, {})

    def join(self, room: str, username: str) -> List[str]:
        """Add ``username`` to ``room``. Joining twice is a no-op."""
        members = self.rooms.setdefault(room, {})
        members.setdefault(username, None)
        return list(members)

    def leave(self, room: str, username: str) -> List[str]:
        members = self.rooms.get(room)
        if members is None:
            return []
        members.pop(username, None)
        return list(members)

    def snapshot(self, room: str) -> List[str]:
        return list(self.rooms.get(room, {}))

    def drop_room(self, room: str) -> None:
        self.rooms.pop(room, None)

    def online_count(self) -> int:
        return sum(len(members) for members in self.rooms.values())
