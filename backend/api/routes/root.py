# backend/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the API and its features.
    """
    return {
        "message": "Realtime Chat Server running!",
        "version": "1.0",
        "features": ["rooms", "presence", "typing", "history", "guest_login"],
        "endpoints": {
            "websocket": "/ws",
            "auth": "/auth",
            "rooms": "/rooms",
            "history": "/rooms/{room}/messages",
            "health": "/health",
        },
    }
