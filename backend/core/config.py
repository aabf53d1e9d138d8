# backend/core/config.py
import os
from typing import List, Literal
from dotenv import load_dotenv

class Settings:
    """
    Setup environment variables.
        - MESSAGE_STORE where chat history is kept: "memory" or "redis"
        - JWT_SECRET / JWT_ALGORITHM used to sign bearer tokens
        - HISTORY_LIMIT messages replayed on join, HISTORY_MAX_LIMIT cap for REST history
        - WS_REQUIRE_AUTH reject websocket connections without a valid token
    """

    # Load environment variables from the .env file
    load_dotenv()

    MESSAGE_STORE: Literal["memory", "redis"] = os.getenv("MESSAGE_STORE", "memory")

    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_ACCESS_KEY: str = os.getenv("REDIS_ACCESS_KEY", "")
    REDIS_SSL: bool = os.getenv("REDIS_SSL", "false").lower() == "true"

    JWT_SECRET: str = os.getenv("JWT_SECRET", "change_me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_HOURS: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "168"))
    GUEST_TOKEN_EXPIRE_DAYS: int = int(os.getenv("GUEST_TOKEN_EXPIRE_DAYS", "7"))

    HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "50"))
    HISTORY_MAX_LIMIT: int = int(os.getenv("HISTORY_MAX_LIMIT", "200"))

    WS_REQUIRE_AUTH: bool = os.getenv("WS_REQUIRE_AUTH", "true").lower() == "true"
    CORS_ORIGINS: List[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    PORT: int = int(os.getenv("PORT", "5000"))

settings = Settings()
