"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Protected routes expect an "Authorization: Bearer <token>" header carrying a
session JWT issued by POST /auth/login or POST /auth/register.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.
The 401 detail dicts have the same keys as api.models.ErrorDetail (code,
message, detail).

Layer rule: no imports from api/ or herd/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import User
from auth.tokens import decode_access_token


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def try_get_current_user(request: Request) -> User | None:
    """Attempt to authenticate the request via its Bearer token.

    Returns the authenticated User on success, None on any failure.
    Never raises -- callers that need a hard 401 should use get_current_user().
    """
    token = _bearer_token(request)
    if token is None:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None
    return request.app.state.user_store.get_by_id(payload["user_id"])


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/farms")
        def route(user: User = Depends(get_current_user)): ...
    """
    if _bearer_token(request) is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "missing_token", "message": "No token provided.", "detail": None},
        )
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "invalid_token", "message": "Invalid or expired token.", "detail": None},
        )
    return user
