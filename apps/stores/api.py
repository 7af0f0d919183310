"""
Stores API endpoints.

Listing and lookup are public. Creating and modifying stores requires the
ROLE_BUSINESS role forwarded by JwtClaimsMiddleware; the owner is X-User-Id.
"""
import logging
from typing import Optional

from django.http import HttpRequest
from ninja import File, Form, Query, Router
from ninja.errors import HttpError
from ninja.files import UploadedFile

from apps.core.exceptions import DuplicateEntityError, StorageError
from apps.core.pagination import list_envelope, page_envelope, single_envelope, single_not_found
from apps.core.schemas import ErrorOut
from apps.core.storage_service import validate_image_upload
from apps.identity.current_user import require_user_id
from apps.identity.decorators import require_permission
from apps.identity.permissions import Permissions
from .dtos import NearbyStoreQuery, StoreCreateIn, StoreFormIn, StoreUpdateIn
from .schemas import NearbyStoreListOut, SingleStoreOut, StoreOut, StorePageOut, StoreUIListOut
from .services import (
    StoreAddressError,
    create_store,
    deactivate_store,
    find_nearby_stores,
    get_store,
    list_active_stores,
    list_stores_by_owner,
    list_stores_for_ui,
    update_store,
)

logger = logging.getLogger(__name__)

router = Router(tags=["Stores"])

STORE_KEY = 'stores'
SINGLE_KEY = 'store'


def _create(request: HttpRequest, payload: StoreCreateIn, image: Optional[UploadedFile]):
    require_permission(request, Permissions.STORE_CREATE)
    owner_id = require_user_id(request)

    if image is not None:
        is_valid, error = validate_image_upload(image)
        if not is_valid:
            raise HttpError(400, error)

    try:
        return 201, create_store(payload, owner_id, image)
    except DuplicateEntityError as e:
        raise HttpError(409, str(e))
    except StoreAddressError as e:
        raise HttpError(400, str(e))
    except StorageError as e:
        logger.error(f"Image upload failed while creating store: {e}")
        raise HttpError(500, str(e))
    except ValueError as e:
        message = str(e)
        if 'geocode' in message or 'address' in message:
            raise HttpError(400, message)
        raise HttpError(500, message)


# =============================================================================
# Queries
# =============================================================================

@router.get("", response=StorePageOut, auth=None)
def list_stores_api(request: HttpRequest, page: int = 0, size: int = 20):
    return page_envelope(STORE_KEY, list_active_stores(page, size))


@router.get("/my", response=StorePageOut, auth=None)
def my_stores_api(request: HttpRequest, page: int = 0, size: int = 20):
    owner_id = require_user_id(request)
    return page_envelope(STORE_KEY, list_stores_by_owner(owner_id, page, size))


@router.get("/owner/{int:owner_id}", response=StorePageOut, auth=None)
def owner_stores_api(request: HttpRequest, owner_id: int, page: int = 0, size: int = 20):
    return page_envelope(STORE_KEY, list_stores_by_owner(owner_id, page, size))


@router.get("/ui", response=StoreUIListOut, auth=None)
def ui_stores_api(request: HttpRequest):
    """Top rated stores for the home screen. Failures still answer 200."""
    try:
        return list_envelope(STORE_KEY, list_stores_for_ui())
    except Exception as e:
        logger.error(f"Failed to load UI stores: {e}", exc_info=True)
        return list_envelope(STORE_KEY, [], success=False, message=f"Failed to load stores: {e}")


@router.get("/nearby", response=NearbyStoreListOut, auth=None)
def nearby_stores_api(request: HttpRequest, filters: Query[NearbyStoreQuery]):
    return list_envelope(STORE_KEY, find_nearby_stores(filters))


@router.get("/health", response=str, auth=None)
def health_api(request: HttpRequest):
    return "Stores API is up and running!"


@router.get("/{int:store_id}", response={200: SingleStoreOut, 404: SingleStoreOut}, auth=None)
def get_store_api(request: HttpRequest, store_id: int):
    store = get_store(store_id)
    if store is None:
        logger.warning(f"Store not found with ID: {store_id}")
        return 404, single_not_found(SINGLE_KEY, "Store", store_id)
    return 200, single_envelope(SINGLE_KEY, store)


# =============================================================================
# Commands
# =============================================================================

@router.post("", response={201: StoreOut, 400: ErrorOut, 403: ErrorOut, 409: ErrorOut, 500: ErrorOut}, auth=None)
def create_store_api(request: HttpRequest, payload: Form[StoreFormIn], image: Optional[UploadedFile] = File(None)):
    """Create a store from multipart form fields with an optional `image` file."""
    return _create(request, payload.to_create(), image)


@router.post("/simple", response={201: StoreOut, 400: ErrorOut, 403: ErrorOut, 409: ErrorOut, 500: ErrorOut}, auth=None)
def create_store_simple_api(request: HttpRequest, payload: StoreCreateIn):
    return _create(request, payload, None)


@router.put("/{int:store_id}", response={200: StoreOut, 403: ErrorOut, 404: ErrorOut}, auth=None)
def update_store_api(request: HttpRequest, store_id: int, payload: StoreUpdateIn):
    require_permission(request, Permissions.STORE_CREATE)
    owner_id = require_user_id(request)

    try:
        store = update_store(store_id, owner_id, payload)
    except PermissionError as e:
        raise HttpError(403, str(e))
    except StoreAddressError as e:
        raise HttpError(400, str(e))

    if store is None:
        raise HttpError(404, f"Store not found with ID: {store_id}")
    return 200, store


@router.delete("/{int:store_id}", response={204: None, 403: ErrorOut, 404: ErrorOut}, auth=None)
def delete_store_api(request: HttpRequest, store_id: int):
    require_permission(request, Permissions.STORE_CREATE)
    owner_id = require_user_id(request)

    try:
        deleted = deactivate_store(store_id, owner_id)
    except PermissionError as e:
        raise HttpError(403, str(e))

    if not deleted:
        raise HttpError(404, f"Store not found with ID: {store_id}")
    return 204, None
