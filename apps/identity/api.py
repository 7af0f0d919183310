"""
Diagnostic endpoints for integration configuration and JWT claim forwarding.

Nothing here exposes secret values, only whether they are set.
"""
import logging
from typing import Optional

from ninja import Router, Schema
from django.conf import settings
from django.http import HttpRequest

from config.storage import is_cloudinary_configured

from .current_user import get_current_user_email, get_current_user_id, get_current_user_role
from .jwt_auth import decode_token, get_bearer_token

logger = logging.getLogger(__name__)

router = Router(tags=["Diagnostics"])

NOT_SET = "NOT_SET"


# =============================================================================
# Schemas
# =============================================================================

class ConfigStatusOut(Schema):
    cloud_name: str
    api_key_set: bool
    api_secret_set: bool
    mapbox_token_set: bool
    status: str


class JwtInfoOut(Schema):
    user_id_from_jwt: str
    email_from_jwt: str
    role_from_jwt: str
    jwt_filter_working: bool


class DebugTokenOut(Schema):
    message: Optional[str] = None
    error: Optional[str] = None


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/cloudinary-config", response=ConfigStatusOut)
def cloudinary_config(request: HttpRequest):
    return {
        'cloud_name': getattr(settings, 'CLOUDINARY_CLOUD_NAME', '') or NOT_SET,
        'api_key_set': bool(getattr(settings, 'CLOUDINARY_API_KEY', '')),
        'api_secret_set': bool(getattr(settings, 'CLOUDINARY_API_SECRET', '')),
        'mapbox_token_set': bool(getattr(settings, 'MAPBOX_ACCESS_TOKEN', '')),
        'status': "OK" if is_cloudinary_configured() else "INCOMPLETE",
    }


@router.get("/jwt-info", response=JwtInfoOut)
def jwt_info(request: HttpRequest):
    user_id = get_current_user_id(request)
    return {
        'user_id_from_jwt': str(user_id) if user_id is not None else NOT_SET,
        'email_from_jwt': get_current_user_email(request) or NOT_SET,
        'role_from_jwt': get_current_user_role(request) or NOT_SET,
        'jwt_filter_working': bool(request.headers.get('X-User-Id')),
    }


@router.get("/debug-token", response=DebugTokenOut, exclude_none=True)
def debug_token(request: HttpRequest):
    token = get_bearer_token(request)
    if not token:
        return {'error': "No Authorization header found"}

    claims = decode_token(token)
    if claims is None:
        logger.info("Bearer token present but could not be decoded")
    else:
        logger.info(f"JWT sub: {claims.get('sub')}")
        logger.info(f"JWT userId: {claims.get('userId')}")
        logger.info(f"JWT role: {claims.get('role')}")
        logger.info(f"JWT claims: {claims}")
    return {'message': "Token details logged to console"}
