# backend/main.py

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import Settings, settings as default_settings
from core.errors import ChatError, chat_error_handler
from core.logging import setup_logging, get_logger
from core.state import ChatState
from api.routes import root, health, rooms, auth
from api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI app with its own room registry, presence tracker,
    connection manager and message store.
    """
    settings = settings or default_settings

    app = FastAPI(title="Realtime Chat Rooms")
    app.state.chat = ChatState(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(ChatError, chat_error_handler)

    # REST routes
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(rooms.router)

    # WebSocket routes
    app.include_router(websocket_module.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info("🚀 Application starting - message store: %s", settings.MESSAGE_STORE)
        await app.state.chat.message_store.connect()

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.chat.message_store.close()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=default_settings.PORT)
