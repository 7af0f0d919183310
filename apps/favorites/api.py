"""
Favorites API endpoints.

All endpoints act on the user from X-User-Id and answer with the
{data, success, message, timestamp} envelope, errors included.
"""
import logging
from typing import Optional

from django.http import HttpRequest
from ninja import Router

from apps.core.pagination import api_response
from apps.identity.current_user import get_current_user_id
from .dtos import FavoriteIn
from .schemas import (
    BoolResponseOut,
    CountResponseOut,
    FavoriteListResponseOut,
    FavoriteResponseOut,
    MessageResponseOut,
)
from .services import (
    FavoriteError,
    add_to_favorites,
    count_store_favorites,
    count_user_favorites,
    is_favorite,
    list_user_active_favorites,
    list_user_favorites,
    remove_from_favorites,
    toggle_favorite,
)

logger = logging.getLogger(__name__)

router = Router(tags=["Favorites"])

AUTH_REQUIRED = "Authentication required"


def _unauthorized():
    logger.warning("Favorites request without a user id")
    return 401, api_response(None, success=False, message=AUTH_REQUIRED)


def _add(user_id: Optional[int], store_id: int):
    if user_id is None:
        return _unauthorized()
    try:
        favorite = add_to_favorites(user_id, store_id)
    except FavoriteError as e:
        logger.warning(f"Could not add store {store_id} to favorites of user {user_id}: {e}")
        return 400, api_response(None, success=False, message=str(e))
    return 201, api_response(favorite, message="Store added to favorites")


@router.get("", response={200: FavoriteListResponseOut, 401: FavoriteListResponseOut}, auth=None)
def my_favorites_api(request: HttpRequest):
    user_id = get_current_user_id(request)
    if user_id is None:
        return _unauthorized()
    favorites = list_user_favorites(user_id)
    return 200, api_response(favorites, message=f"Found {len(favorites)} favorite stores")


@router.get("/active", response={200: FavoriteListResponseOut, 401: FavoriteListResponseOut}, auth=None)
def my_active_favorites_api(request: HttpRequest):
    user_id = get_current_user_id(request)
    if user_id is None:
        return _unauthorized()
    favorites = list_user_active_favorites(user_id)
    return 200, api_response(favorites, message=f"Found {len(favorites)} active favorite stores")


@router.get("/count", response={200: CountResponseOut, 401: CountResponseOut}, auth=None)
def my_favorites_count_api(request: HttpRequest):
    user_id = get_current_user_id(request)
    if user_id is None:
        return _unauthorized()
    count = count_user_favorites(user_id)
    return 200, api_response(count, message=f"User has {count} favorite stores")


@router.get("/stores/{int:store_id}/status", response={200: BoolResponseOut, 401: BoolResponseOut}, auth=None)
def favorite_status_api(request: HttpRequest, store_id: int):
    user_id = get_current_user_id(request)
    if user_id is None:
        return _unauthorized()
    favorite = is_favorite(user_id, store_id)
    message = "Store is in favorites" if favorite else "Store is not in favorites"
    return 200, api_response(favorite, message=message)


@router.get("/stores/{int:store_id}/count", response={200: CountResponseOut, 401: CountResponseOut}, auth=None)
def store_favorites_count_api(request: HttpRequest, store_id: int):
    user_id = get_current_user_id(request)
    if user_id is None:
        return _unauthorized()
    count = count_store_favorites(store_id)
    return 200, api_response(count, message=f"Store was added to favorites {count} times")


@router.post("/stores/{int:store_id}", response={201: FavoriteResponseOut, 400: FavoriteResponseOut, 401: FavoriteResponseOut}, auth=None)
def add_favorite_api(request: HttpRequest, store_id: int):
    return _add(get_current_user_id(request), store_id)


@router.post("", response={201: FavoriteResponseOut, 400: FavoriteResponseOut, 401: FavoriteResponseOut}, auth=None)
def add_favorite_body_api(request: HttpRequest, payload: FavoriteIn):
    return _add(get_current_user_id(request), payload.store_id)


@router.delete("/stores/{int:store_id}", response={200: MessageResponseOut, 401: MessageResponseOut, 404: MessageResponseOut}, auth=None)
def remove_favorite_api(request: HttpRequest, store_id: int):
    user_id = get_current_user_id(request)
    if user_id is None:
        return _unauthorized()
    if not remove_from_favorites(user_id, store_id):
        return 404, api_response(None, success=False, message="Store not found in favorites")
    return 200, api_response("removed", message="Store removed from favorites")


@router.put("/stores/{int:store_id}/toggle", response={200: FavoriteResponseOut, 400: FavoriteResponseOut, 401: FavoriteResponseOut}, auth=None)
def toggle_favorite_api(request: HttpRequest, store_id: int):
    user_id = get_current_user_id(request)
    if user_id is None:
        return _unauthorized()
    try:
        favorite = toggle_favorite(user_id, store_id)
    except FavoriteError as e:
        return 400, api_response(None, success=False, message=str(e))

    if favorite is None:
        return 200, api_response(None, message="Store removed from favorites")
    return 200, api_response(favorite, message="Store added to favorites")
