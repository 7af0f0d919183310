"""
JWT utilities for the delivery catalog.

Tokens are issued by the authentication service; this module only validates
them and pulls out the identity claims (sub = email, userId, role).
`create_access_token` issues compatible tokens for tests and local tooling.
"""
import logging
import jwt
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from django.conf import settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 60


@dataclass(frozen=True)
class TokenClaims:
    user_id: Optional[int]
    email: Optional[str]
    role: Optional[str]


def _secret() -> str:
    return getattr(settings, 'JWT_SECRET', None) or settings.SECRET_KEY


def _algorithms() -> list:
    return list(getattr(settings, 'JWT_ALGORITHMS', ['HS256']))


def create_access_token(
    user_id: Optional[int],
    email: str,
    role: Optional[str],
    expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
) -> str:
    """Create a signed access token carrying sub, userId and role."""
    now = datetime.now(timezone.utc)
    payload = {
        'sub': email,
        'iat': now,
        'exp': now + timedelta(minutes=expires_minutes),
    }
    if user_id is not None:
        payload['userId'] = user_id
    if role is not None:
        payload['role'] = role
    return jwt.encode(payload, _secret(), algorithm=_algorithms()[0])


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT token.

    Returns:
        Decoded payload if valid, None if invalid/expired.
    """
    try:
        return jwt.decode(token, _secret(), algorithms=_algorithms())
    except jwt.ExpiredSignatureError:
        logger.debug("JWT token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"JWT token rejected: {e}")
        return None


def _parse_user_id(value) -> Optional[int]:
    if value is None:
        return None
    # bool is an int subclass, never a user id
    if isinstance(value, bool):
        logger.warning(f"Unexpected userId type in token: {type(value).__name__}")
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            logger.warning(f"Could not parse userId from token: {value}")
            return None
    logger.warning(f"Unexpected userId type in token: {type(value).__name__}")
    return None


def extract_claims(token: str) -> Optional[TokenClaims]:
    """Validate the token and return its identity claims, or None."""
    payload = decode_token(token)
    if payload is None:
        return None

    role = payload.get('role')
    return TokenClaims(
        user_id=_parse_user_id(payload.get('userId')),
        email=payload.get('sub'),
        role=role if isinstance(role, str) else None,
    )


def get_bearer_token(request) -> Optional[str]:
    """Return the raw token from an `Authorization: Bearer ...` header."""
    header = request.META.get('HTTP_AUTHORIZATION', '')
    if not header.startswith('Bearer '):
        return None
    token = header[len('Bearer '):].strip()
    return token or None
