"""
    Bearer token authentication.

    Tokens are issued elsewhere; this service only verifies them and resolves
    the ``sub`` claim to a user in the directory.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gallery.settings import settings
from gallery.exceptions import AuthenticationException
from gallery.users.directory import User, UserDirectory
from gallery.dependencies.dependencies import get_user_directory

log = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    """Signs a token for ``user_id``; used by tooling and tests."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        log.warning("JWT token expired")
        return None
    except jwt.InvalidTokenError:
        log.warning("JWT token invalid")
        return None

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    users: UserDirectory = Depends(get_user_directory),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("No token, authorization denied")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise AuthenticationException()

    user_id = payload.get("sub")
    if not user_id:
        log.warning("JWT token missing user ID")
        raise AuthenticationException("Invalid token: missing user ID")

    user = users.get(str(user_id))
    if user is None:
        log.warning("JWT token for unknown user %s", user_id)
        raise AuthenticationException("Invalid token: unknown user")
    return user
