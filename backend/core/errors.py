# backend/core/errors.py

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

# ============================================================================
# CHAT ERROR TAXONOMY
# ============================================================================

class ChatError(Exception):
    """
    Base class for every error the chat core reports back to a caller.

    Each subclass carries a stable machine-readable ``code`` and the HTTP
    status the REST layer maps it to. The WebSocket layer uses the same
    ``code`` in ack / error frames.
    """

    code: str = "chat_error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for an HTTP response body."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "status_code": self.status_code,
        }


class ValidationError(ChatError):
    """Missing or empty required field."""
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidRoomName(ValidationError):
    code = "invalid_name"


class RoomAlreadyExists(ChatError):
    code = "already_exists"
    status_code = status.HTTP_409_CONFLICT


class RoomNotFound(ChatError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class RoomProtected(ChatError):
    code = "protected"
    status_code = status.HTTP_403_FORBIDDEN


class Unauthorized(ChatError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class UsernameTaken(ChatError):
    code = "username_taken"
    status_code = status.HTTP_409_CONFLICT


class StoreError(ChatError):
    """The message store is unavailable or rejected the operation."""
    code = "store_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """FastAPI exception handler turning a ChatError into a JSON response."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)
