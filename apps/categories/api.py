import logging
from typing import List, Optional

from django.http import HttpRequest
from ninja import Body, File, Form, Router
from ninja.errors import HttpError
from ninja.files import UploadedFile

from apps.core.exceptions import DuplicateEntityError, StorageError
from apps.core.pagination import api_response
from apps.core.schemas import ErrorOut
from apps.core.storage_service import validate_image_upload
from apps.identity.decorators import require_permission
from apps.identity.permissions import Permissions
from .dtos import CategoryIn
from .schemas import CategoryBriefOut, CategoryInfoOut, CategoryOut, CategoryResponseOut, CategoryStatsOut
from .services import (
    category_stats,
    count_active_categories,
    create_category,
    delete_category,
    get_category,
    get_category_brief,
    list_active_categories,
    list_active_category_briefs,
    list_all_categories,
    list_category_briefs_by_ids,
    search_categories,
    toggle_category_status,
    update_category,
)

logger = logging.getLogger(__name__)

router = Router(tags=["Categories"])


def _validate_image(image: Optional[UploadedFile]) -> None:
    if image is None:
        return
    is_valid, error = validate_image_upload(image)
    if not is_valid:
        logger.warning(f"Rejected category image {image.name}: {error}")
        raise HttpError(400, error)


# =============================================================================
# Queries
# =============================================================================

@router.get("", response=List[CategoryOut], auth=None)
def list_categories_api(request: HttpRequest):
    return list_active_categories()


@router.get("/all", response=List[CategoryOut], auth=None)
def list_all_categories_api(request: HttpRequest):
    require_permission(request, Permissions.CATEGORY_VIEW_ALL)
    return list_all_categories()


@router.get("/search", response=List[CategoryOut], auth=None)
def search_categories_api(request: HttpRequest, name: str):
    return search_categories(name)


@router.get("/brief", response=List[CategoryBriefOut], auth=None)
def list_category_briefs_api(request: HttpRequest):
    return list_active_category_briefs()


@router.post("/brief/by-ids", response={200: List[CategoryBriefOut], 400: ErrorOut}, auth=None)
def category_briefs_by_ids_api(request: HttpRequest, ids: Body[List[int]]):
    if not ids:
        raise HttpError(400, "Category ids must not be empty")
    return 200, list_category_briefs_by_ids(ids)


@router.get("/stats", response=List[CategoryStatsOut], auth=None)
def category_stats_api(request: HttpRequest):
    return category_stats()


@router.get("/count", response=int, auth=None)
def count_categories_api(request: HttpRequest):
    return count_active_categories()


@router.get("/health", response=str, auth=None)
def health_api(request: HttpRequest):
    return "Categories API is up and running!"


@router.get("/info", response=CategoryInfoOut, auth=None)
def info_api(request: HttpRequest):
    return {
        'service_name': "Categories Service",
        'version': "1.0.0",
        'active_categories_count': count_active_categories(),
        'status': "Active",
    }


@router.get("/{int:category_id}", response={200: CategoryOut, 404: ErrorOut}, auth=None)
def get_category_api(request: HttpRequest, category_id: int):
    category = get_category(category_id)
    if category is None:
        raise HttpError(404, f"Category not found with ID: {category_id}")
    return 200, category


@router.get("/{int:category_id}/brief", response={200: CategoryBriefOut, 404: ErrorOut}, auth=None)
def get_category_brief_api(request: HttpRequest, category_id: int):
    brief = get_category_brief(category_id)
    if brief is None:
        raise HttpError(404, f"Category not found with ID: {category_id}")
    return 200, brief


# =============================================================================
# Commands (admin only)
# =============================================================================

@router.post("", response={201: CategoryOut, 400: ErrorOut, 403: ErrorOut, 409: ErrorOut, 500: ErrorOut}, auth=None)
def create_category_api(request: HttpRequest, payload: Form[CategoryIn], image: Optional[UploadedFile] = File(None)):
    require_permission(request, Permissions.CATEGORY_CREATE)
    _validate_image(image)
    try:
        return 201, create_category(payload, image)
    except DuplicateEntityError as e:
        raise HttpError(409, str(e))
    except (StorageError, ValueError) as e:
        logger.error(f"Failed to create category: {e}", exc_info=True)
        raise HttpError(500, f"Failed to create category: {e}")


@router.put("/{int:category_id}", response={200: CategoryOut, 400: ErrorOut, 403: ErrorOut, 404: ErrorOut, 409: ErrorOut, 500: ErrorOut}, auth=None)
def update_category_api(
    request: HttpRequest,
    category_id: int,
    payload: Form[CategoryIn],
    image: Optional[UploadedFile] = File(None),
):
    require_permission(request, Permissions.CATEGORY_UPDATE)
    _validate_image(image)
    try:
        category = update_category(category_id, payload, image)
    except DuplicateEntityError as e:
        raise HttpError(409, str(e))
    except (StorageError, ValueError) as e:
        logger.error(f"Failed to update category {category_id}: {e}", exc_info=True)
        raise HttpError(500, f"Failed to update category: {e}")

    if category is None:
        raise HttpError(404, f"Category not found with ID: {category_id}")
    return 200, category


@router.patch("/{int:category_id}/toggle", response={200: CategoryResponseOut, 403: ErrorOut, 404: CategoryResponseOut}, auth=None)
def toggle_category_api(request: HttpRequest, category_id: int):
    require_permission(request, Permissions.CATEGORY_UPDATE)
    category = toggle_category_status(category_id)
    if category is None:
        return 404, api_response(None, success=False, message=f"Category not found with ID: {category_id}")

    message = "Category activated" if category.is_active else "Category deactivated"
    return 200, api_response(category, message=message)


@router.delete("/{int:category_id}", response={204: None, 403: ErrorOut, 404: ErrorOut}, auth=None)
def delete_category_api(request: HttpRequest, category_id: int):
    require_permission(request, Permissions.CATEGORY_DELETE)
    if not delete_category(category_id):
        raise HttpError(404, f"Category not found with ID: {category_id}")
    return 204, None
