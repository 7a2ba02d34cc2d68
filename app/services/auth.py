"""
Session lookup for authenticated actions.

A session token arrives in the session cookie or as a bearer token and is
resolved against the auth_sessions collection written by the login flow.
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request

from app.models.models import AuthResult, AuthUser
from app.services.db import auth_sessions_coll
from app.utils import config
from app.utils.exceptions import ExceptionContext, Unauthenticated
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def _extract_token(request: Request) -> Optional[str]:
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def _is_expired(expires_at) -> bool:
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= datetime.now(timezone.utc)


async def check_auth(request: Request) -> AuthResult:
    token = _extract_token(request)
    if not token:
        return AuthResult(authenticated=False)

    with ExceptionContext("find_session", collection="auth_sessions", logger=logger):
        session = await auth_sessions_coll.find_one({"token": token})

    if not session or not session.get("user_id") or _is_expired(session.get("expires_at")):
        logger.debug("Session token rejected")
        return AuthResult(authenticated=False)

    return AuthResult(
        authenticated=True,
        user=AuthUser(id=session["user_id"], email=session.get("email")),
    )


async def require_user(request: Request) -> AuthUser:
    """FastAPI dependency for actions that need a signed-in user"""
    result = await check_auth(request)
    if not result.authenticated or result.user is None:
        raise Unauthenticated()
    return result.user
