# backend/models/models.py
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel

# ============================================================================
# DOMAIN
# ============================================================================

class Room(BaseModel):
    name: str
    protected: bool = False

class ChatMessage(BaseModel):
    """A persisted chat message. Never mutated once stored."""
    room: str
    username: str
    text: str
    created_at: datetime

    def broadcast_payload(self) -> dict:
        """Payload of the ``chatMessage`` event sent to room subscribers."""
        return {
            "username": self.username,
            "text": self.text,
            "createdAt": self.created_at.isoformat(),
        }

    def history_payload(self) -> dict:
        return {"room": self.room, **self.broadcast_payload()}

class Identity(BaseModel):
    id: str
    username: str

# ============================================================================
# REST REQUESTS / RESPONSES
# ============================================================================

class CreateRoomRequest(BaseModel):
    name: Optional[str] = ""

class RoomsResponse(BaseModel):
    success: bool = True
    rooms: List[str]

class RegisterRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None

class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None

class GuestRequest(BaseModel):
    username: Optional[str] = ""

class UserOut(BaseModel):
    id: str
    username: str
    email: Optional[str] = None

class TokenResponse(BaseModel):
    token: str
    user: UserOut

# ============================================================================
# WEBSOCKET FRAMES
# ============================================================================

class ClientFrame(BaseModel):
    """Incoming frame: {"action": ..., "data": {...}, "ack": optional id}."""
    action: Optional[str] = None
    data: Any = None
    ack: Optional[Any] = None

class JoinRoomPayload(BaseModel):
    room: Optional[str] = ""
    username: Optional[str] = ""

class RoomNamePayload(BaseModel):
    name: Optional[str] = ""

class ChatMessagePayload(BaseModel):
    room: Optional[str] = ""
    username: Optional[str] = ""
    text: Optional[str] = ""

class TypingPayload(BaseModel):
    room: Optional[str] = ""
    username: Optional[str] = ""
    isTyping: bool = False
