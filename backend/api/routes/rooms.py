# backend/api/routes/rooms.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.state import ChatState, get_state
from models.models import CreateRoomRequest, Identity, RoomsResponse
from services.auth_service import get_current_user

router = APIRouter(tags=["Rooms"])

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@router.get("/rooms", response_model=List[str])
async def list_rooms(chat: ChatState = Depends(get_state)):
    """
    List all room names in creation order.

    Returns:
        List[str]: Built-in rooms first, then user rooms
    """
    return chat.hub.list_rooms()

@router.post("/rooms", response_model=RoomsResponse)
async def create_room(request: CreateRoomRequest, chat: ChatState = Depends(get_state)):
    """
    Create a new chatroom.

    Args:
        request: CreateRoomRequest with the room name

    Returns:
        RoomsResponse: the full room list after creation

    Raises:
        InvalidRoomName (400): name is empty
        RoomAlreadyExists (409): name is taken

    Side Effects:
        - "roomsUpdated" broadcast to all WebSocket clients
    """
    rooms = await chat.hub.create_room(request.name)
    return RoomsResponse(rooms=rooms)

@router.delete("/rooms/{name}", response_model=RoomsResponse)
async def delete_room(name: str, chat: ChatState = Depends(get_state)):
    """
    Delete a room.

    Raises:
        RoomProtected (403): one of the default rooms
        RoomNotFound (404): no such room

    Side Effects:
        - Members of the room receive "roomDeleted" and lose their binding
        - "roomsUpdated" broadcast to all clients
    """
    rooms = await chat.hub.delete_room(name)
    return RoomsResponse(rooms=rooms)

@router.get("/rooms/{room}/messages")
async def room_history(
    room: str,
    limit: Optional[int] = Query(default=None),
    chat: ChatState = Depends(get_state),
    user: Identity = Depends(get_current_user),
):
    """
    Most recent messages of a room, oldest first.

    Args:
        limit: number of messages (default HISTORY_LIMIT, capped at HISTORY_MAX_LIMIT)
    """
    settings = chat.settings
    limit = settings.HISTORY_LIMIT if limit is None else limit
    limit = max(1, min(limit, settings.HISTORY_MAX_LIMIT))

    messages = await chat.hub.history(room, limit)
    return [m.history_payload() for m in messages]
