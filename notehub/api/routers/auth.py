"""Rutas de autenticación local: registro y login."""
from fastapi import APIRouter, Depends, Request, status

from notehub.api.deps import get_auth_service
from notehub.api.schemas.auth import LoginPayload, RegisterPayload, TokenOut
from notehub.core import rate_limit
from notehub.core.config import settings
from notehub.core.exceptions import RateLimited
from notehub.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=TokenOut,
    status_code=status.HTTP_201_CREATED,
    summary="Registrar usuario",
    description="Crea un usuario local (username/email únicos) y devuelve un access token.",
)
def register(payload: RegisterPayload, svc: AuthService = Depends(get_auth_service)) -> TokenOut:
    res = svc.register(username=payload.username, email=payload.email, password=payload.password)
    return TokenOut(**res)


@router.post("/login", response_model=TokenOut, summary="Login con email y password")
def login(payload: LoginPayload, request: Request, svc: AuthService = Depends(get_auth_service)) -> TokenOut:
    ip = request.client.host if request.client else ""
    key = (ip, "/auth/login")
    if not rate_limit.allow(key, limit=settings.login_rate_per_min, window_seconds=60):
        raise RateLimited(
            "Too many login attempts, try again later",
            retry_after=rate_limit.retry_after(key, window_seconds=60),
        )
    return TokenOut(**svc.login(email=payload.email, password=payload.password))
