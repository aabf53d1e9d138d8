# backend/api/routes/auth.py

from fastapi import APIRouter, Depends

from models.models import GuestRequest, Identity, LoginRequest, RegisterRequest, TokenResponse
from services.auth_service import AuthService, get_auth_service, get_current_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=TokenResponse)
async def register(request: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Create an account and return a bearer token."""
    return auth.register(request.username, request.password, request.email)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    return auth.login(request.username, request.password)


@router.post("/guest", response_model=TokenResponse)
async def guest(request: GuestRequest, auth: AuthService = Depends(get_auth_service)):
    """Token for a guest identity ``guest:<username>``; nothing is stored."""
    return auth.guest(request.username)


@router.get("/me")
async def me(current_user: Identity = Depends(get_current_user)):
    """Get current user profile."""
    return {
        "authenticated": True,
        "user": current_user.model_dump(),
    }
