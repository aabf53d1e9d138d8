"""
Bearer-token authentication.

Features:
- Registered accounts (password hashed with passlib)
- Guest identities (no account, longer-lived token)
- JWT bearer tokens carrying {id, username}
- FastAPI dependency resolving the current user from the Authorization header
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from core.config import Settings
from core.errors import Unauthorized, UsernameTaken, ValidationError
from core.logging import get_logger
from models.models import Identity, TokenResponse, UserOut

logger = get_logger(__name__)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 24
GUEST_PREFIX = "guest:"

bearer_scheme = HTTPBearer(auto_error=False)


class AuthService:
    """
    Issues and verifies bearer tokens.

    Accounts are kept in memory for the lifetime of the process
    (``users`` maps username -> record). Guests are never stored: their
    identity lives entirely in the token.
    """

    def __init__(self, settings: Settings):
        self.secret = settings.JWT_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.token_ttl = timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)
        self.guest_ttl = timedelta(days=settings.GUEST_TOKEN_EXPIRE_DAYS)
        self.pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
        self.users: Dict[str, Dict[str, Any]] = {}

    def issue_token(self, identity: Identity, ttl: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (ttl or self.token_ttl)
        claims = {"id": identity.id, "username": identity.username, "exp": expire}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> Identity:
        """
        Decode a bearer token.

        Raises:
            Unauthorized: token missing, malformed, expired or lacking claims
        """
        if not token:
            raise Unauthorized("Not authenticated")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.info("Rejected token: %s", e)
            raise Unauthorized("Invalid or expired token")

        user_id = payload.get("id")
        username = payload.get("username")
        if not user_id or not username:
            raise Unauthorized("Invalid token claims")
        return Identity(id=str(user_id), username=username)

    def register(self, username: Optional[str], password: Optional[str], email: Optional[str] = None) -> TokenResponse:
        username = (username or "").strip()
        if not username or not password:
            raise ValidationError("Username and password required")
        if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            raise ValidationError(
                f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters"
            )
        if username in self.users:
            raise UsernameTaken("Username already taken")

        record = {
            "id": uuid.uuid4().hex,
            "username": username,
            "email": (email or "").strip() or None,
            "password": self.pwd_context.hash(password),
        }
        self.users[username] = record
        logger.info("Registered user %s", username)
        return self._token_response(record)

    def login(self, username: Optional[str], password: Optional[str]) -> TokenResponse:
        if not username or not password:
            raise ValidationError("Username and password required")

        record = self.users.get(username)
        if record is None or not self.pwd_context.verify(password, record["password"]):
            raise Unauthorized("Invalid credentials")
        return self._token_response(record)

    def guest(self, username: Optional[str]) -> TokenResponse:
        username = (username or "").strip()
        if len(username) < USERNAME_MIN_LENGTH:
            raise ValidationError("username required")

        identity = Identity(id=f"{GUEST_PREFIX}{username}", username=username)
        token = self.issue_token(identity, ttl=self.guest_ttl)
        return TokenResponse(token=token, user=UserOut(id=identity.id, username=username))

    def _token_response(self, record: Dict[str, Any]) -> TokenResponse:
        identity = Identity(id=record["id"], username=record["username"])
        return TokenResponse(
            token=self.issue_token(identity),
            user=UserOut(id=record["id"], username=record["username"], email=record["email"]),
        )


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.chat.auth


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Identity:
    """
    Get current authenticated user from the Authorization header.
    Use as dependency for protected endpoints.
    """
    token = credentials.credentials if credentials else None
    return auth.verify(token)
