"""Authentication helpers and FastAPI security dependency.

This module decodes JWT bearer tokens and provides the dependency
`get_current_user`, which every resource route uses. Any problem with
the credentials (missing header, bad signature, expired token, unknown
user) is rejected the same way: HTTP 401.
"""

from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models, repositories, schemas
from .config import settings
from .database import get_session

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("token expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("invalid token")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user."""
    if credentials is None:
        raise _unauthorized("not authenticated")
    payload = decode_token(credentials.credentials)
    user_id = payload.get("user_id")
    if not isinstance(user_id, int) or not 1 <= user_id <= schemas.MAX_ROW_ID:
        raise _unauthorized("invalid token payload")
    user = repositories.UserRepository(db).get(user_id)
    if not user:
        raise _unauthorized("user not found")
    return user
