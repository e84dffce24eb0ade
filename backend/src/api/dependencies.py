"""
API dependencies for FastAPI dependency injection.

Provides database sessions and the authenticated Actor for route handlers.
"""
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import InvalidTokenError
from sqlalchemy.orm import Session

from src.lib.db import get_db as get_db_session
from src.lib.jwt import verify_token
from src.lib.logging import set_actor_id
from src.models.users import User
from src.services.actor import Actor


# Re-export get_db for convenience
get_db = get_db_session


# HTTP Bearer token security scheme; missing credentials are reported as 401 below
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(token: Optional[str], db: Session) -> User:
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        payload = verify_token(token)
        user_id = UUID(payload["sub"])
    except (InvalidTokenError, KeyError, ValueError):
        raise _unauthorized("Invalid authentication token")

    user = db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")

    set_actor_id(str(user.id))
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency to get current authenticated user from JWT token.

    Raises:
        HTTPException: 401 if token missing, invalid or user not found
    """
    return _user_from_token(credentials.credentials if credentials else None, db)


def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor.from_user(user)


def get_stream_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    access_token: Optional[str] = Query(None, description="Bearer token for EventSource clients"),
    db: Session = Depends(get_db),
) -> Actor:
    """Like get_current_actor, but also accepts ?access_token= (EventSource cannot set headers)."""
    token = credentials.credentials if credentials else access_token
    return Actor.from_user(_user_from_token(token, db))


def _require(actor: Actor, allowed: bool, message: str) -> Actor:
    if not allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
    return actor


def require_customer(actor: Actor = Depends(get_current_actor)) -> Actor:
    return _require(actor, actor.is_customer, "Customer account required")


def require_provider(actor: Actor = Depends(get_current_actor)) -> Actor:
    return _require(actor, actor.is_provider, "Provider account required")


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    return _require(actor, actor.is_admin, "Admin access required")

