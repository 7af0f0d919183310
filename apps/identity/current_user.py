"""Accessors for the identity headers set by JwtClaimsMiddleware."""
import logging
from typing import Optional

from ninja.errors import HttpError

logger = logging.getLogger(__name__)

USER_ID_HEADER = 'X-User-Id'
USER_EMAIL_HEADER = 'X-User-Email'
USER_ROLE_HEADER = 'X-User-Role'


def get_current_user_id(request) -> Optional[int]:
    value = request.headers.get(USER_ID_HEADER)
    if not value:
        logger.warning(f"{USER_ID_HEADER} header not found")
        return None
    try:
        return int(value)
    except ValueError:
        logger.error(f"Invalid {USER_ID_HEADER} header: {value}")
        return None


def get_current_user_email(request) -> Optional[str]:
    return request.headers.get(USER_EMAIL_HEADER)


def get_current_user_role(request) -> Optional[str]:
    return request.headers.get(USER_ROLE_HEADER)


def require_user_id(request) -> int:
    """
    Require a forwarded user id. Raises 401 if absent.
    """
    user_id = get_current_user_id(request)
    if user_id is None:
        raise HttpError(401, "Authentication required")
    return user_id
