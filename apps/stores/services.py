import logging
import secrets
import time
from typing import List, Optional

from django.db import DatabaseError, IntegrityError, transaction

from apps.core import storage_service
from apps.core.dtos import haversine_km
from apps.core.exceptions import DuplicateEntityError, GeocodingError
from apps.core.geocoding import get_geocoding_service
from apps.core.pagination import Slice, paginate
from .dtos import AddressIn, NearbyStoreDTO, NearbyStoreQuery, StoreCreateIn, StoreDTO, StoreUIDTO, StoreUpdateIn
from .models import Store

logger = logging.getLogger(__name__)

STORE_IMAGE_FOLDER = "stores"
DEFAULT_STORE_IMAGE_URL = "https://via.placeholder.com/800x600/f0f0f0/999999?text=Store+Image"
UI_STORE_LIMIT = 6


class StoreAddressError(ValueError):
    """The store address could not be turned into coordinates."""


# =============================================================================
# Mapping
# =============================================================================

def to_store_dto(store: Store) -> StoreDTO:
    return StoreDTO(
        id=store.id,
        owner_id=store.owner_id,
        name=store.name,
        description=store.description,
        address=store.address,
        phone=store.phone,
        email=store.email,
        is_active=store.is_active,
        rating=store.rating,
        delivery_radius=store.delivery_radius,
        delivery_fee=store.delivery_fee,
        estimated_delivery_time=store.estimated_delivery_time,
        pic_url=store.pic_url,
        created_at=store.created_at,
        updated_at=store.updated_at,
    )


def _to_ui_dto(store: Store) -> StoreUIDTO:
    return StoreUIDTO(
        id=store.id,
        name=store.name,
        pic_url=store.pic_url,
        rating=store.rating,
        estimated_delivery_time=store.estimated_delivery_time,
    )


# =============================================================================
# Helpers
# =============================================================================

def _default_pic_id(owner_id: int) -> str:
    # random suffix keeps the id unique when one owner creates stores in the same millisecond
    return f"default_store_{int(time.time() * 1000)}_{owner_id}_{secrets.token_hex(3)}"


def _build_address(address: AddressIn):
    try:
        return get_geocoding_service().create_address_with_coordinates(address)
    except (GeocodingError, ValueError, ArithmeticError) as e:
        logger.error(f"Failed to geocode store address: {e}", exc_info=True)
        raise StoreAddressError(f"Failed to geocode store address: {e}") from e


def _address_changed(store: Store, address: AddressIn) -> bool:
    if address.latitude is not None and address.longitude is not None:
        return True
    return (
        store.street != address.street
        or store.city != address.city
        or (store.region or None) != (address.region or None)
        or (store.country or None) != (address.country or None)
        or (store.postal_code or None) != (address.postal_code or None)
    )


def _discard_image(pic_id: Optional[str]) -> None:
    if not pic_id or storage_service.is_default_image(pic_id):
        return
    if not storage_service.delete_image(pic_id):
        logger.warning(f"Could not delete store image: {pic_id}")


# =============================================================================
# Commands
# =============================================================================

def create_store(payload: StoreCreateIn, owner_id: int, image_file=None) -> StoreDTO:
    """
    Create a store for `owner_id`.

    The address is geocoded (or resolved from the fallback table) before
    anything is uploaded, so a bad address never leaves an orphan image.

    Raises:
        StoreAddressError: If the address cannot be resolved
        StorageError: If the image upload fails
        DuplicateEntityError: If the image id is already taken
    """
    logger.info(f"Creating store '{payload.name}' for owner {owner_id}")
    address = _build_address(payload.address)

    if image_file is not None:
        uploaded = storage_service.upload_image(image_file, folder=STORE_IMAGE_FOLDER)
        pic_url, pic_id = uploaded.url, uploaded.image_id
    else:
        pic_url, pic_id = DEFAULT_STORE_IMAGE_URL, _default_pic_id(owner_id)
        logger.info("No store image provided, using default image")

    store = Store(
        owner_id=owner_id,
        name=payload.name,
        description=payload.description,
        phone=payload.phone,
        email=payload.email,
        is_active=payload.is_active,
        rating=0,
        delivery_radius=payload.delivery_radius,
        delivery_fee=payload.delivery_fee,
        estimated_delivery_time=payload.estimated_delivery_time,
        pic_url=pic_url,
        pic_id=pic_id,
    )
    store.set_address(address)

    try:
        with transaction.atomic():
            store.save()
    except DatabaseError as e:
        if image_file is not None:
            _discard_image(pic_id)
        if isinstance(e, IntegrityError):
            raise DuplicateEntityError(f"Store image already exists: {pic_id}") from e
        raise

    logger.info(
        f"Store created: id={store.id}, name='{store.name}', owner={owner_id}, "
        f"address='{store.full_address}', coordinates=[{store.latitude}, {store.longitude}], "
        f"image={'custom' if image_file is not None else 'default'}"
    )
    return to_store_dto(store)


def update_store(store_id: int, owner_id: int, payload: StoreUpdateIn, image_file=None) -> Optional[StoreDTO]:
    """
    Partially update a store owned by `owner_id`.

    Returns None if the store does not exist.

    Raises:
        PermissionError: If the caller does not own the store
        StoreAddressError: If a new address cannot be resolved
    """
    try:
        store = Store.objects.get(id=store_id)
    except Store.DoesNotExist:
        return None

    if store.owner_id != owner_id:
        logger.warning(f"User {owner_id} tried to update store {store_id} owned by {store.owner_id}")
        raise PermissionError("You can only modify your own stores")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={'address'})
    for attr, value in changes.items():
        setattr(store, attr, value)

    if payload.address is not None and _address_changed(store, payload.address):
        store.set_address(_build_address(payload.address))
        logger.info(f"Store {store_id} address re-geocoded: [{store.latitude}, {store.longitude}]")

    previous_pic_id = None
    if image_file is not None:
        uploaded = storage_service.upload_image(image_file, folder=STORE_IMAGE_FOLDER)
        previous_pic_id = store.pic_id
        store.pic_url, store.pic_id = uploaded.url, uploaded.image_id

    try:
        with transaction.atomic():
            store.save()
    except DatabaseError:
        if image_file is not None:
            _discard_image(store.pic_id)
        raise
    _discard_image(previous_pic_id)

    logger.info(f"Store {store_id} updated by owner {owner_id}")
    return to_store_dto(store)


def deactivate_store(store_id: int, owner_id: int) -> bool:
    """Soft delete. Returns False if the store does not exist."""
    try:
        store = Store.objects.get(id=store_id, is_active=True)
    except Store.DoesNotExist:
        return False

    if store.owner_id != owner_id:
        logger.warning(f"User {owner_id} tried to delete store {store_id} owned by {store.owner_id}")
        raise PermissionError("You can only modify your own stores")

    store.is_active = False
    store.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Store {store_id} deactivated by owner {owner_id}")
    return True


# =============================================================================
# Queries
# =============================================================================

def list_active_stores(page: int = 0, size: int = 20) -> Slice:
    queryset = Store.objects.filter(is_active=True).order_by('-created_at', '-id')
    return paginate(queryset, page, size, mapper=to_store_dto)


def list_stores_by_owner(owner_id: int, page: int = 0, size: int = 20) -> Slice:
    queryset = Store.objects.filter(owner_id=owner_id, is_active=True).order_by('-created_at', '-id')
    return paginate(queryset, page, size, mapper=to_store_dto)


def get_store(store_id: int) -> Optional[StoreDTO]:
    try:
        return to_store_dto(Store.objects.get(id=store_id, is_active=True))
    except Store.DoesNotExist:
        return None


def list_stores_for_ui() -> List[StoreUIDTO]:
    """Top rated active stores for the home screen."""
    queryset = Store.objects.filter(is_active=True).order_by('-rating', '-created_at')[:UI_STORE_LIMIT]
    return [_to_ui_dto(store) for store in queryset]


_NEARBY_SORT_KEYS = {
    'distance': lambda item: item.distance_km,
    'rating': lambda item: (-item.store.rating, item.distance_km),
    'deliveryTime': lambda item: (item.store.estimated_delivery_time, item.distance_km),
    'deliveryFee': lambda item: (item.store.delivery_fee, item.distance_km),
}


def find_nearby_stores(query: NearbyStoreQuery) -> List[NearbyStoreDTO]:
    """
    Active stores within `radius_km` of (lat, lon).

    Distances are computed in Python with the haversine formula over all
    active stores; filters are applied in the database where possible.
    """
    queryset = Store.objects.filter(is_active=True)
    if query.max_delivery_fee is not None:
        queryset = queryset.filter(delivery_fee__lte=query.max_delivery_fee)
    if query.max_delivery_time is not None:
        queryset = queryset.filter(estimated_delivery_time__lte=query.max_delivery_time)
    if query.min_rating is not None:
        queryset = queryset.filter(rating__gte=query.min_rating)

    results = []
    for store in queryset:
        distance = haversine_km(query.lat, query.lon, float(store.latitude), float(store.longitude))
        if distance <= query.radius_km:
            results.append(NearbyStoreDTO(store=to_store_dto(store), distance_km=round(distance, 2)))

    results.sort(key=_NEARBY_SORT_KEYS[query.sort_by])
    logger.info(f"Found {len(results)} stores within {query.radius_km} km of [{query.lat}, {query.lon}]")
    return results[:query.limit]
