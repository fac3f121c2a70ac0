"""
Authentication for the gymtime API and session access for the parser.

Provides FastAPI dependencies validating Supabase access tokens or API keys,
plus the session providers the workout parser uses to resolve the owner of
new entries.
"""
import logging
import os
from typing import Any, Optional, Protocol

import jwt
from fastapi import Header, HTTPException

from gymtime.config import settings

logger = logging.getLogger(__name__)

# Supabase signs access tokens for signed-in users with this audience
SUPABASE_AUDIENCE = "authenticated"


class SessionProvider(Protocol):
    """Supplies the id of the currently authenticated user, if any."""

    def current_user_id(self) -> Optional[str]:
        ...


class StaticSessionProvider:
    """Session provider for a user id that is already known (e.g. from a request)."""

    def __init__(self, user_id: Optional[str]):
        self._user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self._user_id


class SupabaseSessionProvider:
    """Reads the signed-in user from a supabase-py client's auth session."""

    def __init__(self, client: Any):
        self._client = client

    def current_user_id(self) -> Optional[str]:
        try:
            session = self._client.auth.get_session()
        except Exception as e:
            logger.warning(f"Could not read Supabase session: {e}")
            return None
        if not session or not session.user:
            return None
        return str(session.user.id)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> str:
    """
    Authenticate via API key OR Supabase JWT.
    Returns user_id string.

    Usage:
        @router.get("/protected")
        async def protected_route(user_id: str = Depends(get_current_user)):
            return {"user_id": user_id}
    """
    if x_api_key:
        return validate_api_key(x_api_key)

    if authorization:
        return validate_jwt(authorization)

    raise HTTPException(
        status_code=401,
        detail="Missing authentication. Provide Authorization header or X-API-Key."
    )


def validate_api_key(api_key: str) -> str:
    """
    Validate API key and return user_id.

    API key format options:
    - Simple: "sk_test_abc123" -> returns "admin"
    - With user: "sk_test_abc123:user_12345" -> returns "user_12345"
    """
    valid_keys = [k.strip() for k in os.getenv("API_KEYS", "").split(",") if k.strip()]

    if not valid_keys:
        logger.warning("No API keys configured (API_KEYS env var empty)")
        raise HTTPException(status_code=401, detail="API key authentication not configured")

    key_part = api_key.split(":")[0]

    if key_part not in valid_keys:
        raise HTTPException(status_code=401, detail="Invalid API key")

    if ":" in api_key:
        return api_key.split(":", 1)[1]

    return "admin"


def validate_jwt(authorization: str) -> str:
    """Validate a Supabase access token and return the user id (``sub``)."""
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = authorization.split(" ", 1)[1]
    secret = settings.SUPABASE_JWT_SECRET

    if not secret:
        raise HTTPException(
            status_code=500,
            detail="JWT validation not configured (missing SUPABASE_JWT_SECRET)"
        )

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=SUPABASE_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token missing user ID")
    return user_id
