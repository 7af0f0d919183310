import logging
from decimal import Decimal
from typing import List, Optional

from django.db import IntegrityError, transaction

from apps.stores.models import Store
from .dtos import FavoriteDTO, FavoriteStatsDTO, FavoriteStoreInfoDTO
from .models import FavoriteStore

logger = logging.getLogger(__name__)


class FavoriteError(ValueError):
    """A favorites business rule was violated."""


def _to_store_info(store: Store) -> FavoriteStoreInfoDTO:
    return FavoriteStoreInfoDTO(
        id=store.id,
        name=store.name,
        description=store.description,
        pic_url=store.pic_url,
        is_active=store.is_active,
        rating=store.rating,
        delivery_radius=store.delivery_radius,
        estimated_delivery_time=store.estimated_delivery_time,
        created_at=store.created_at,
        updated_at=store.updated_at,
    )


def to_favorite_dto(favorite: FavoriteStore) -> FavoriteDTO:
    return FavoriteDTO(
        id=favorite.id,
        user_id=favorite.user_id,
        store=_to_store_info(favorite.store),
        created_at=favorite.created_at,
    )


def _user_favorites(user_id: int):
    return FavoriteStore.objects.filter(user_id=user_id).select_related('store').order_by('-created_at', '-id')


# =============================================================================
# Commands
# =============================================================================

def add_to_favorites(user_id: int, store_id: int) -> FavoriteDTO:
    """
    Raises:
        FavoriteError: If already a favorite, the store is missing, or inactive
    """
    if FavoriteStore.objects.filter(user_id=user_id, store_id=store_id).exists():
        raise FavoriteError("Store is already in favorites")

    try:
        store = Store.objects.get(id=store_id)
    except Store.DoesNotExist:
        raise FavoriteError("Store not found")

    if not store.is_active:
        raise FavoriteError("Cannot add an inactive store to favorites")

    try:
        with transaction.atomic():
            favorite = FavoriteStore.objects.create(user_id=user_id, store=store)
    except IntegrityError:
        # Concurrent add of the same pair
        raise FavoriteError("Store is already in favorites")

    logger.info(f"Store {store_id} added to favorites of user {user_id}")
    return to_favorite_dto(favorite)


def remove_from_favorites(user_id: int, store_id: int) -> bool:
    deleted, _ = FavoriteStore.objects.filter(user_id=user_id, store_id=store_id).delete()
    if deleted:
        logger.info(f"Store {store_id} removed from favorites of user {user_id}")
    return bool(deleted)


def toggle_favorite(user_id: int, store_id: int) -> Optional[FavoriteDTO]:
    """Remove the favorite if present (returns None), otherwise add it."""
    if remove_from_favorites(user_id, store_id):
        return None
    return add_to_favorites(user_id, store_id)


# =============================================================================
# Queries
# =============================================================================

def list_user_favorites(user_id: int) -> List[FavoriteDTO]:
    return [to_favorite_dto(f) for f in _user_favorites(user_id)]


def list_user_active_favorites(user_id: int) -> List[FavoriteDTO]:
    return [to_favorite_dto(f) for f in _user_favorites(user_id).filter(store__is_active=True)]


def is_favorite(user_id: int, store_id: int) -> bool:
    return FavoriteStore.objects.filter(user_id=user_id, store_id=store_id).exists()


def count_user_favorites(user_id: int) -> int:
    return FavoriteStore.objects.filter(user_id=user_id).count()


def count_store_favorites(store_id: int) -> int:
    return FavoriteStore.objects.filter(store_id=store_id).count()


def list_user_favorites_by_city(user_id: int, city: str) -> List[FavoriteDTO]:
    return [to_favorite_dto(f) for f in _user_favorites(user_id).filter(store__city__iexact=city)]


def list_user_favorites_by_min_rating(user_id: int, min_rating: Decimal) -> List[FavoriteDTO]:
    queryset = _user_favorites(user_id).filter(store__rating__gte=min_rating).order_by('-store__rating', '-created_at')
    return [to_favorite_dto(f) for f in queryset]


def list_recent_user_favorites(user_id: int, limit: int = 5) -> List[FavoriteDTO]:
    return [to_favorite_dto(f) for f in _user_favorites(user_id)[:limit]]


def favorite_stats_for_user(user_id: int) -> FavoriteStatsDTO:
    favorites = FavoriteStore.objects.filter(user_id=user_id)
    active = favorites.filter(store__is_active=True).count()
    return FavoriteStatsDTO(active_count=active, inactive_count=favorites.count() - active)


def list_user_ids_by_store(store_id: int) -> List[int]:
    return list(
        FavoriteStore.objects.filter(store_id=store_id).order_by('user_id').values_list('user_id', flat=True).distinct()
    )
