"""
Products API endpoints.

Reads are public and only ever show available products. Writes need
ROLE_BUSINESS; permanent deletion needs ROLE_ADMIN.
"""
import logging
from typing import Optional

from django.http import HttpRequest
from ninja import File, Form, Router
from ninja.errors import HttpError
from ninja.files import UploadedFile

from apps.core.exceptions import StorageError
from apps.core.pagination import page_envelope, page_error, single_envelope, single_error, single_not_found
from apps.core.schemas import ErrorOut
from apps.identity.decorators import require_permission
from apps.identity.permissions import Permissions
from .dtos import ProductIn
from .schemas import ProductBriefPageOut, ProductPageOut, SingleProductOut
from .services import (
    create_product,
    get_product,
    hard_delete_product,
    list_available_products,
    list_product_briefs_by_store,
    list_products_by_category,
    list_products_by_store,
    search_products,
    soft_delete_product,
    update_product,
)

logger = logging.getLogger(__name__)

router = Router(tags=["Products"])

PRODUCTS_KEY = 'products'
SINGLE_KEY = 'product'

WRITE_RESPONSES = {201: SingleProductOut, 400: SingleProductOut, 403: ErrorOut, 500: SingleProductOut}


def _create(request: HttpRequest, payload: ProductIn, image: Optional[UploadedFile]):
    require_permission(request, Permissions.PRODUCT_CREATE)
    try:
        product = create_product(payload, image)
    except StorageError as e:
        logger.error(f"Failed to create product: {e}", exc_info=True)
        return 500, single_error(SINGLE_KEY, f"Failed to create product: {e}")
    except ValueError as e:
        logger.warning(f"Rejected product image: {e}")
        return 400, single_error(SINGLE_KEY, str(e))
    except Exception as e:
        logger.error(f"Failed to create product: {e}", exc_info=True)
        return 500, single_error(SINGLE_KEY, f"Failed to create product: {e}")
    return 201, single_envelope(SINGLE_KEY, product, message="Product created successfully")


# =============================================================================
# Queries
# =============================================================================

@router.get("", response=ProductPageOut, auth=None)
def list_products_api(request: HttpRequest, page: int = 0, size: int = 20):
    return page_envelope(PRODUCTS_KEY, list_available_products(page, size))


@router.get("/store/{int:store_id}", response=ProductPageOut, auth=None)
def store_products_api(request: HttpRequest, store_id: int, page: int = 0, size: int = 20):
    return page_envelope(PRODUCTS_KEY, list_products_by_store(store_id, page, size))


@router.get("/store/{int:store_id}/brief", response=ProductBriefPageOut, auth=None)
def store_product_briefs_api(request: HttpRequest, store_id: int, page: int = 0, size: int = 20):
    return page_envelope(PRODUCTS_KEY, list_product_briefs_by_store(store_id, page, size))


@router.get("/category/{int:category_id}", response=ProductPageOut, auth=None)
def category_products_api(request: HttpRequest, category_id: int, page: int = 0, size: int = 20):
    return page_envelope(PRODUCTS_KEY, list_products_by_category(category_id, page, size))


@router.get("/search", response={200: ProductPageOut, 400: ProductPageOut}, auth=None)
def search_products_api(request: HttpRequest, name: str = "", page: int = 0, size: int = 20):
    if not name.strip():
        return 400, page_error(PRODUCTS_KEY, "Search query cannot be empty")
    return 200, page_envelope(PRODUCTS_KEY, search_products(name.strip(), page, size))


@router.get("/health", response=str, auth=None)
def health_api(request: HttpRequest):
    return "Products API is up and running!"


@router.get("/{int:product_id}", response={200: SingleProductOut, 404: SingleProductOut}, auth=None)
def get_product_api(request: HttpRequest, product_id: int):
    product = get_product(product_id)
    if product is None:
        logger.warning(f"Product not found with ID: {product_id}")
        return 404, single_not_found(SINGLE_KEY, "Product", product_id)
    return 200, single_envelope(SINGLE_KEY, product)


# =============================================================================
# Commands
# =============================================================================

@router.post("", response=WRITE_RESPONSES, auth=None)
def create_product_api(request: HttpRequest, payload: Form[ProductIn], image: Optional[UploadedFile] = File(None)):
    """Create a product from multipart form fields with an optional `image` file."""
    return _create(request, payload, image)


@router.post("/simple", response=WRITE_RESPONSES, auth=None)
def create_product_simple_api(request: HttpRequest, payload: ProductIn):
    return _create(request, payload, None)


@router.put(
    "/{int:product_id}",
    response={200: SingleProductOut, 400: SingleProductOut, 403: ErrorOut, 404: SingleProductOut, 500: SingleProductOut},
    auth=None,
)
def update_product_api(
    request: HttpRequest,
    product_id: int,
    payload: Form[ProductIn],
    image: Optional[UploadedFile] = File(None),
):
    require_permission(request, Permissions.PRODUCT_UPDATE)
    try:
        product = update_product(product_id, payload, image)
    except StorageError as e:
        logger.error(f"Failed to update product {product_id}: {e}", exc_info=True)
        return 500, single_error(SINGLE_KEY, f"Failed to update product: {e}")
    except ValueError as e:
        return 400, single_error(SINGLE_KEY, str(e))

    if product is None:
        return 404, single_not_found(SINGLE_KEY, "Product", product_id)
    return 200, single_envelope(SINGLE_KEY, product, message="Product updated successfully")


@router.delete("/{int:product_id}", response={204: None, 403: ErrorOut, 404: ErrorOut}, auth=None)
def delete_product_api(request: HttpRequest, product_id: int):
    require_permission(request, Permissions.PRODUCT_DELETE)
    if not soft_delete_product(product_id):
        raise HttpError(404, f"Product not found with ID: {product_id}")
    return 204, None


@router.delete("/{int:product_id}/hard", response={204: None, 403: ErrorOut, 404: ErrorOut}, auth=None)
def hard_delete_product_api(request: HttpRequest, product_id: int):
    require_permission(request, Permissions.PRODUCT_HARD_DELETE)
    if not hard_delete_product(product_id):
        raise HttpError(404, f"Product not found with ID: {product_id}")
    return 204, None
