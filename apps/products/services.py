import logging
import secrets
import time
from typing import Optional

from django.db import DatabaseError, transaction

from apps.core import storage_service
from apps.core.image_converter import process_product_image
from apps.core.pagination import Slice, paginate
from apps.core.storage_service import StorageResult
from .dtos import ProductBriefDTO, ProductDTO, ProductIn
from .models import Product

logger = logging.getLogger(__name__)

PRODUCT_IMAGE_FOLDER = "products"
DEFAULT_PRODUCT_IMAGE_URL = "https://via.placeholder.com/400x400/f0f0f0/999999?text=No+Image"


# =============================================================================
# Mapping
# =============================================================================

def to_product_dto(product: Product) -> ProductDTO:
    return ProductDTO(
        id=product.id,
        store_id=product.store_id,
        category_id=product.category_id,
        name=product.name,
        description=product.description,
        price=product.price,
        discount_price=product.discount_price,
        pic_url=product.pic_url,
        is_popular=product.is_popular,
        is_available=product.is_available,
        rating=product.rating,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def to_product_brief(product: Product) -> ProductBriefDTO:
    return ProductBriefDTO(
        id=product.id,
        name=product.name,
        price=product.price,
        discount_price=product.discount_price,
        pic_url=product.pic_url,
        is_available=product.is_available,
        rating=product.rating,
    )


# =============================================================================
# Images
# =============================================================================

def _default_pic_id() -> str:
    return f"default_product_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


def upload_product_image(image_file) -> StorageResult:
    """
    Validate, normalize (HEIF -> JPEG, resize) and upload a product image.

    Raises:
        ValueError: If the file is empty, too large or not an image type we accept
        ImageConversionError: If the image cannot be decoded or re-encoded
        StorageError: If the upload fails
    """
    is_valid, error = storage_service.validate_image_upload(image_file)
    if not is_valid:
        raise ValueError(error)

    processed = process_product_image(image_file)
    result = storage_service.upload_processed_image(processed, folder=PRODUCT_IMAGE_FOLDER)
    logger.info(f"Product image uploaded: {result.image_id} ({processed.size} bytes)")
    return result


def _delete_image_quietly(pic_id: Optional[str]) -> None:
    if not pic_id or storage_service.is_default_image(pic_id):
        return
    try:
        if not storage_service.delete_image(pic_id):
            logger.warning(f"Could not delete product image: {pic_id}")
    except Exception as e:
        logger.error(f"Error deleting product image {pic_id}: {e}", exc_info=True)


# =============================================================================
# Commands
# =============================================================================

def create_product(payload: ProductIn, image_file=None) -> ProductDTO:
    if image_file is not None:
        uploaded = upload_product_image(image_file)
        pic_url, pic_id = uploaded.url, uploaded.image_id
    else:
        pic_url, pic_id = DEFAULT_PRODUCT_IMAGE_URL, _default_pic_id()

    try:
        with transaction.atomic():
            product = Product.objects.create(pic_url=pic_url, pic_id=pic_id, **payload.dict())
    except DatabaseError:
        _delete_image_quietly(pic_id)
        raise

    logger.info(f"Product created: id={product.id}, name='{product.name}', store={product.store_id}")
    return to_product_dto(product)


def update_product(product_id: int, payload: ProductIn, image_file=None) -> Optional[ProductDTO]:
    """
    Overwrite the editable fields of a product (including unavailable ones).

    store_id and category_id are never moved by an update.
    """
    try:
        product = Product.objects.get(id=product_id)
    except Product.DoesNotExist:
        return None

    product.name = payload.name
    product.description = payload.description
    product.price = payload.price
    product.discount_price = payload.discount_price
    product.is_available = payload.is_available
    product.is_popular = payload.is_popular

    previous_pic_id = None
    if image_file is not None:
        uploaded = upload_product_image(image_file)
        previous_pic_id = product.pic_id
        product.pic_url, product.pic_id = uploaded.url, uploaded.image_id

    try:
        with transaction.atomic():
            product.save()
    except DatabaseError:
        if image_file is not None:
            _delete_image_quietly(product.pic_id)
        raise
    _delete_image_quietly(previous_pic_id)

    logger.info(f"Product updated: id={product.id}")
    return to_product_dto(product)


def soft_delete_product(product_id: int) -> bool:
    updated = Product.objects.filter(id=product_id).update(is_available=False)
    if updated:
        logger.info(f"Product {product_id} marked unavailable")
    return bool(updated)


def hard_delete_product(product_id: int) -> bool:
    try:
        product = Product.objects.get(id=product_id)
    except Product.DoesNotExist:
        return False

    pic_id = product.pic_id
    product.delete()
    _delete_image_quietly(pic_id)

    logger.info(f"Product {product_id} permanently deleted")
    return True


# =============================================================================
# Queries
# =============================================================================

def _available():
    return Product.objects.filter(is_available=True).order_by('-created_at', '-id')


def get_product(product_id: int) -> Optional[ProductDTO]:
    try:
        return to_product_dto(Product.objects.get(id=product_id, is_available=True))
    except Product.DoesNotExist:
        return None


def list_available_products(page: int = 0, size: int = 20) -> Slice:
    return paginate(_available(), page, size, mapper=to_product_dto)


def list_products_by_store(store_id: int, page: int = 0, size: int = 20) -> Slice:
    return paginate(_available().filter(store_id=store_id), page, size, mapper=to_product_dto)


def list_products_by_category(category_id: int, page: int = 0, size: int = 20) -> Slice:
    return paginate(_available().filter(category_id=category_id), page, size, mapper=to_product_dto)


def search_products(name: str, page: int = 0, size: int = 20) -> Slice:
    return paginate(_available().filter(name__icontains=name), page, size, mapper=to_product_dto)


def list_product_briefs_by_store(store_id: int, page: int = 0, size: int = 20) -> Slice:
    queryset = _available().filter(store_id=store_id).only(
        'id', 'name', 'price', 'discount_price', 'pic_url', 'is_available', 'rating', 'created_at',
    )
    return paginate(queryset, page, size, mapper=to_product_brief)
