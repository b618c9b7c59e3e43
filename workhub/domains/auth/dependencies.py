# workhub/domains/auth/dependencies.py
import logging
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt import PyJWKClient

from workhub.core.database import PrismaClient, get_db
from workhub.core.settings import settings
from workhub.shared.exceptions import InvalidTokenError, NotAuthenticatedError

from .models import User
from .types import AuthJwtPayload

logger = logging.getLogger(__name__)

JWKS_URL = f"{settings.SUPABASE_URL}/auth/v1/jwks" if settings.SUPABASE_URL else None

_jwks_client = PyJWKClient(JWKS_URL) if JWKS_URL else None


def decode_access_token(token: str) -> AuthJwtPayload:
    """
    Verifies JWT token. Uses JWT_SECRET for development mode if available,
    otherwise falls back to the provider's JWKS for production.
    """
    # Development mode: prefer JWT_SECRET if available
    if settings.JWT_SECRET:
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET,
                algorithms=["HS256"],
                options={"verify_aud": False},
            )
            return AuthJwtPayload(**dict(payload))
        except jwt.PyJWTError:
            raise InvalidTokenError()

    # Production mode: use provider JWKS
    if not _jwks_client:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Token verification not configured",
        )
    try:
        signing_key = _jwks_client.get_signing_key_from_jwt(token).key
        payload = jwt.decode(
            token,
            signing_key,
            algorithms=["RS256"],
            options={"verify_aud": False},
        )
        return AuthJwtPayload(**dict(payload))
    except jwt.PyJWTError:
        raise InvalidTokenError()


def get_optional_auth_id(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """
    Extracts the user id (`sub` claim) from a Bearer token.
    Returns None when no token is sent; a malformed or invalid token is a 401.
    """
    if not authorization:
        return None
    if not authorization.startswith("Bearer "):
        raise InvalidTokenError()

    token = authorization.split(" ")[1]
    payload = decode_access_token(token)
    return payload.sub or None


async def get_optional_user(
    auth_id: Optional[str] = Depends(get_optional_auth_id),
    db: PrismaClient = Depends(get_db),
) -> Optional[User]:
    """
    Loads the user record for the token subject.
    A missing token or an unknown subject yields None rather than an error.
    """
    if auth_id is None:
        return None
    record = await db.user.find_unique(where={"id": auth_id})
    if record is None:
        logger.info(f"Token subject {auth_id} has no user record")
        return None
    return User.from_prisma(record)


async def get_lifecycle_user(
    auth_id: Optional[str] = Depends(get_optional_auth_id),
    db: PrismaClient = Depends(get_db),
) -> Optional[User]:
    """
    Fail-closed user loader for lifecycle resolution.

    A failed read or an unparsable user record yields None, so the caller
    resolves to UNAUTHENTICATED instead of erroring. Token errors still 401.
    """
    try:
        return await get_optional_user(auth_id, db)
    except Exception as e:
        logger.error(f"Could not load user {auth_id} for lifecycle resolution: {e}")
        return None


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise NotAuthenticatedError()
    return user
