"""
api/routes/v1/auth.py -- Registration, login and profile endpoints.

Routes:
  POST /api/v1/auth/register  -- create account; returns user + session token
  POST /api/v1/auth/login     -- email/password login; returns user + session token
  GET  /api/v1/auth/profile   -- current user (requires auth)

Security:
  register and login are rate-limited per client IP (Settings.*_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline.
  Wrong email and wrong password return the same "bad_credentials" error.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.errors import error_response
from api.limiter import limiter
from api.models import AuthResponse, ErrorDetail, LoginRequest, RegisterRequest, UserResponse
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, hash_password
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public
# - GET  /api/v1/auth/profile:  requires auth (get_current_user)
router = APIRouter()

logger = logging.getLogger("herdwatch.api.auth")

_settings = get_settings()


def _token_response(user: User, status_code: int) -> JSONResponse:
    token = create_access_token(user.id, user.email)
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(
            user=UserResponse.model_validate(user),
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=_settings.token_expire_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(_settings.register_rate_limit)
@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and log it in.

    Duplicate emails are detected by the UNIQUE constraint, not a prior
    SELECT, so two concurrent registrations cannot both succeed.
    """
    user_store: UserStore = request.app.state.user_store
    new_user = User(
        name=body.name,
        email=body.email,
        role=body.role.value,
        hashed_password=hash_password(body.password),
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail=ErrorDetail(code="email_taken", message="An account with that email already exists.").model_dump(),
        ) from exc

    created = user_store.get_by_id(user_id)
    logger.info("Registered user %d (%s)", user_id, created.role)
    return _token_response(created, status_code=201)


@limiter.limit(_settings.login_rate_limit)
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a session token."""
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        return error_response(
            401,
            "bad_credentials",
            "Invalid email or password.",
            headers={"Cache-Control": "no-store"},
        )
    return _token_response(user, status_code=200)


@router.get("/auth/profile", response_model=UserResponse)
def profile(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated user's account details."""
    return UserResponse.model_validate(current_user)
