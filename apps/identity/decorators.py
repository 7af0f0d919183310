import logging
from ninja.errors import HttpError
from django.http import HttpRequest

from .current_user import get_current_user_role
from .permissions import get_role_permissions

logger = logging.getLogger(__name__)


def require_permission(request: HttpRequest, required_perm: str) -> None:
    """
    Raise 403 unless the X-User-Role header grants `required_perm`.

    A missing role is a 403 as well: this service never authenticates,
    it only trusts the claims forwarded by JwtClaimsMiddleware.
    """
    role = get_current_user_role(request)
    if required_perm not in get_role_permissions(role):
        logger.warning(f"Permission {required_perm} denied for role {role!r} on {request.path}")
        raise HttpError(403, "Permission denied")

