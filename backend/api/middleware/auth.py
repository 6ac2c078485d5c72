"""
Bearer-token authentication for API routes.

Supabase issues HS256 JWTs with audience "authenticated". Routes that
spend or show coins use get_current_user; the public request view uses
get_optional_user, so a bad or missing token just means "anonymous".
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from shared.config import get_settings
from shared.models import AuthenticatedUser
from ..models.user import TokenPayload

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"

# Supabase roles that map to a plain marketplace user
_DEFAULT_ROLES = {None, "", "authenticated", "anon"}

bearer_scheme = HTTPBearer(auto_error=False)


class AuthError(HTTPException):
    """401 with a WWW-Authenticate challenge."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def decode_token(token: str) -> TokenPayload:
    """
    Verify a Supabase access token and return its claims.

    Raises:
        AuthError: If the server has no JWT secret, or the token is
            expired, malformed or signed with another key
    """
    secret = get_settings().supabase_jwt_secret
    if not secret:
        raise AuthError("Server authentication not configured")

    try:
        claims = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE)
    except ExpiredSignatureError:
        raise AuthError("Token has expired")
    except JWTError as e:
        raise AuthError(f"Invalid token: {e}")

    return TokenPayload(**claims)


def get_user_from_payload(payload: TokenPayload) -> AuthenticatedUser:
    """Build the request's user from verified claims."""
    return AuthenticatedUser(
        id=payload.sub,
        email=payload.email,
        email_verified=payload.email_confirmed_at is not None,
        last_sign_in=datetime.fromtimestamp(payload.iat, tz=timezone.utc),
        role="user" if payload.role in _DEFAULT_ROLES else payload.role,
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """Dependency for routes that need a signed-in user."""
    if credentials is None:
        raise AuthError("Missing authorization header")
    return get_user_from_payload(decode_token(credentials.credentials))


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthenticatedUser]:
    """Dependency for routes that also serve anonymous viewers."""
    if credentials is None:
        return None

    try:
        return get_user_from_payload(decode_token(credentials.credentials))
    except AuthError as e:
        logger.debug(f"Treating request as anonymous: {e.detail}")
        return None
