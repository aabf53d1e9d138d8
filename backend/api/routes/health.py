# backend/api/routes/health.py

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from core.state import ChatState, get_state

router = APIRouter()

@router.get("/health")
async def health(chat: ChatState = Depends(get_state)):
    """
    Health check endpoint.

    Returns current system status, connection counts and room counts.

    Returns:
        dict: Status, connections, rooms, active rooms, online users, uptime
    """
    uptime_seconds = (datetime.now(timezone.utc) - chat.app_start_time).total_seconds()
    return {
        "status": "healthy",
        **chat.hub.stats(),
        "message_store": chat.settings.MESSAGE_STORE,
        "uptime_seconds": round(uptime_seconds, 1),
    }
