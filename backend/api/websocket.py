# backend/api/websocket.py

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import pydantic
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from core.errors import ChatError, Unauthorized
from core.state import ChatState
from models.models import (
    ChatMessagePayload,
    ClientFrame,
    Identity,
    JoinRoomPayload,
    RoomNamePayload,
    TypingPayload,
)
from services.chat_hub import ChatHub, frame
from services.connection_manager import Connection

logger = logging.getLogger(__name__)

router = APIRouter()

Handler = Callable[[ChatHub, Connection, Optional[Identity], Any], Awaitable[Optional[dict]]]

# ============================================================================
# ACTION HANDLERS
# ============================================================================

def _check_username(identity: Optional[Identity], username: Optional[str]) -> None:
    # An authenticated socket may only speak as its own user
    if identity is not None and username and username.strip() != identity.username:
        raise Unauthorized("username does not match token")


def _room_name(data: Any) -> RoomNamePayload:
    # Older clients send the bare room name instead of {"name": ...}
    if isinstance(data, str):
        return RoomNamePayload(name=data)
    return RoomNamePayload.model_validate(data or {})


async def handle_join(hub: ChatHub, connection: Connection, identity: Optional[Identity], data: Any) -> dict:
    payload = JoinRoomPayload.model_validate(data or {})
    _check_username(identity, payload.username)
    users = await hub.join_room(connection, payload.room, payload.username)
    return {"success": True, "room": payload.room, "users": users}


async def handle_leave(hub: ChatHub, connection: Connection, identity: Optional[Identity], data: Any) -> dict:
    await hub.leave_room(connection)
    return {"success": True}


async def handle_create_room(hub: ChatHub, connection: Connection, identity: Optional[Identity], data: Any) -> dict:
    rooms = await hub.create_room(_room_name(data).name)
    return {"success": True, "rooms": rooms}


async def handle_delete_room(hub: ChatHub, connection: Connection, identity: Optional[Identity], data: Any) -> dict:
    rooms = await hub.delete_room(_room_name(data).name)
    return {"success": True, "rooms": rooms}


async def handle_list_rooms(hub: ChatHub, connection: Connection, identity: Optional[Identity], data: Any) -> None:
    await hub.connection_manager.send(connection, frame("roomsUpdated", hub.list_rooms()))


async def handle_chat_message(hub: ChatHub, connection: Connection, identity: Optional[Identity], data: Any) -> dict:
    payload = ChatMessagePayload.model_validate(data or {})
    _check_username(identity, payload.username)
    message = await hub.send_message(connection, payload.room, payload.username, payload.text)
    if message is None:
        return {"success": False, "dropped": True}
    return {"success": True, "createdAt": message.created_at.isoformat()}


async def handle_typing(hub: ChatHub, connection: Connection, identity: Optional[Identity], data: Any) -> None:
    payload = TypingPayload.model_validate(data or {})
    _check_username(identity, payload.username)
    await hub.typing(connection, payload.room, payload.username, payload.isTyping)


HANDLERS: Dict[str, Handler] = {
    "joinRoom": handle_join,
    "leaveRoom": handle_leave,
    "createRoom": handle_create_room,
    "deleteRoom": handle_delete_room,
    "listRooms": handle_list_rooms,
    "chatMessage": handle_chat_message,
    "typing": handle_typing,
}


async def dispatch(hub: ChatHub, connection: Connection, identity: Optional[Identity], raw: str) -> None:
    """
    Decode one client frame and run its handler.

    Every error is recovered here and reported to this connection only:
    as an ack when the client sent an ack id, otherwise as an error frame.
    """
    try:
        message = ClientFrame.model_validate(json.loads(raw))
    except (json.JSONDecodeError, pydantic.ValidationError):
        await hub.connection_manager.send(
            connection, {"type": "error", "code": "invalid_json", "message": "Invalid JSON"}
        )
        return

    action = message.action
    logger.debug("Websocket input: connection=%s action=%s", connection.id, action)

    handler = HANDLERS.get(action or "")
    if handler is None:
        await _report(hub, connection, message, "unknown_action", f"Unknown action: {action}")
        return

    try:
        result = await handler(hub, connection, identity, message.data)
    except ChatError as e:
        logger.info("%s rejected for %s: %s", action, connection.id, e.message)
        await _report(hub, connection, message, e.code, e.message)
        return
    except pydantic.ValidationError as e:
        await _report(hub, connection, message, "validation_error", f"Malformed {action} payload: {e.errors()[0]['msg']}")
        return
    except Exception:
        logger.exception("Unhandled error in %s for %s", action, connection.id)
        await _report(hub, connection, message, "internal_error", f"{action} failed")
        return

    if message.ack is not None:
        await hub.connection_manager.send(
            connection, {"type": "ack", "ack": message.ack, "data": result or {"success": True}}
        )


async def _report(hub: ChatHub, connection: Connection, message: ClientFrame, code: str, text: str) -> None:
    if message.ack is not None:
        await hub.connection_manager.send(
            connection, {"type": "ack", "ack": message.ack, "data": {"error": text, "code": code}}
        )
    else:
        await hub.connection_manager.send(
            connection, {"type": "error", "action": message.action, "code": code, "message": text}
        )

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = None):
    """
    WebSocket endpoint for real-time chat.

    Protocol:
    =========

    Client -> Server:
        {"action": "<name>", "data": {...}, "ack": <optional id>}

        joinRoom     {"room": "main", "username": "alice"}
        leaveRoom    {}
        createRoom   {"name": "design"}
        deleteRoom   {"name": "design"}
        listRooms    {}
        chatMessage  {"room": "main", "username": "alice", "text": "hi"}
        typing       {"room": "main", "username": "alice", "isTyping": true}

    Server -> Client:
        {"type": "<name>", "data": ...}

        chatHistory  [{"room", "username", "text", "createdAt"}, ...]  (joiner only)
        onlineUsers  ["alice", "bob"]                                  (room)
        roomsUpdated ["main", "chil", ...]                             (everyone)
        chatMessage  {"username", "text", "createdAt"}                 (room)
        typing       {"username", "isTyping"}                          (room minus sender)
        roomDeleted  {"room"}                                          (members of deleted room)

        Ack:   {"type": "ack", "ack": <id>, "data": {"success": true, ...}}
               {"type": "ack", "ack": <id>, "data": {"error": "...", "code": "..."}}
        Error: {"type": "error", "action": "...", "code": "...", "message": "..."}

    Lifecycle:
    ==========
    1. Client connects with ?token=<jwt> (required unless WS_REQUIRE_AUTH=false)
    2. Invalid token: socket closed with 1008 before anything is tracked
    3. Server sends the current room list
    4. Frames are handled one at a time, in arrival order
    5. On disconnect, presence is removed and the room is notified
    """
    chat: ChatState = websocket.app.state.chat

    identity: Optional[Identity] = None
    if token or chat.settings.WS_REQUIRE_AUTH:
        try:
            identity = chat.auth.verify(token)
        except Unauthorized as e:
            logger.info("Rejected websocket: %s", e.message)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
            return

    connection = await chat.hub.connect(websocket, identity)

    try:
        while True:
            data = await websocket.receive_text()
            await dispatch(chat.hub, connection, identity, data)

    except WebSocketDisconnect:
        await chat.hub.disconnect(connection)
    except Exception as e:
        logger.error("WebSocket error: %s", e)
        await chat.hub.disconnect(connection)
