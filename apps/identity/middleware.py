import logging
from django.utils.deprecation import MiddlewareMixin

from .jwt_auth import extract_claims, get_bearer_token

logger = logging.getLogger(__name__)

API_PREFIX = '/api/'
IDENTITY_HEADERS = ('HTTP_X_USER_ID', 'HTTP_X_USER_EMAIL', 'HTTP_X_USER_ROLE')


class JwtClaimsMiddleware(MiddlewareMixin):
    """
    Copies JWT identity claims into X-User-* request headers.

    For /api/ requests carrying a valid `Authorization: Bearer` token:
    - X-User-Id: userId claim (omitted when absent or unparsable)
    - X-User-Email: sub claim
    - X-User-Role: role claim

    Requests without a valid token pass through untouched; endpoints decide
    whether they need an identity.
    """

    def process_request(self, request):
        if not request.path.startswith(API_PREFIX):
            return None

        token = get_bearer_token(request)
        if not token:
            return None

        claims = extract_claims(token)
        if claims is None:
            logger.debug(f"Ignoring invalid bearer token on {request.path}")
            return None

        # token claims replace any X-User-* headers sent by the client
        for key in IDENTITY_HEADERS:
            request.META.pop(key, None)

        if claims.user_id is not None:
            request.META['HTTP_X_USER_ID'] = str(claims.user_id)
        if claims.email:
            request.META['HTTP_X_USER_EMAIL'] = claims.email
        if claims.role:
            request.META['HTTP_X_USER_ROLE'] = claims.role

        # request.headers is a cached_property built from META
        request.__dict__.pop('headers', None)
        return None
