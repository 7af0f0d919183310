import logging
from typing import List, Optional

from django.db import DatabaseError, transaction
from django.db.models import Count

from apps.core import storage_service
from apps.core.exceptions import DuplicateEntityError
from .dtos import CategoryBriefDTO, CategoryDTO, CategoryIn, CategoryStatsDTO
from .models import Category

logger = logging.getLogger(__name__)

CATEGORY_IMAGE_FOLDER = "categories"
BRIEF_FIELDS = ('id', 'name', 'is_active', 'sort_order')


def to_category_dto(category: Category) -> CategoryDTO:
    return CategoryDTO(
        id=category.id,
        name=category.name,
        description=category.description,
        image_url=category.image_url,
        is_active=category.is_active,
        sort_order=category.sort_order,
        created_at=category.created_at,
        updated_at=category.updated_at,
    )


def _to_brief(row: dict) -> CategoryBriefDTO:
    return CategoryBriefDTO(**row)


def exists_active_category_by_name(name: str) -> bool:
    return Category.objects.filter(name__iexact=name, is_active=True).exists()


def _ensure_unique_name(name: str) -> None:
    if exists_active_category_by_name(name):
        raise DuplicateEntityError(f"Category with name '{name}' already exists")


def _delete_image_quietly(image_id: Optional[str]) -> None:
    if not image_id:
        return
    try:
        storage_service.delete_image(image_id)
    except Exception as e:
        logger.error(f"Error deleting category image {image_id}: {e}", exc_info=True)


def _save_or_discard_upload(category: Category, image_file) -> None:
    try:
        with transaction.atomic():
            category.save()
    except DatabaseError:
        if image_file is not None:
            _delete_image_quietly(category.image_id)
        raise


# =============================================================================
# Commands
# =============================================================================

def create_category(payload: CategoryIn, image_file=None) -> CategoryDTO:
    """
    Create a category. Active names are unique (case-insensitive).

    Raises:
        DuplicateEntityError: If an active category already uses the name
        StorageError: If the image upload fails
    """
    _ensure_unique_name(payload.name)

    category = Category(
        name=payload.name,
        description=payload.description,
        image_url=payload.image_url,
        is_active=True if payload.is_active is None else payload.is_active,
        sort_order=payload.sort_order or 0,
    )

    if image_file is not None:
        uploaded = storage_service.upload_image(image_file, folder=CATEGORY_IMAGE_FOLDER)
        category.image_url, category.image_id = uploaded.url, uploaded.image_id

    _save_or_discard_upload(category, image_file)
    logger.info(f"Category created: id={category.id}, name='{category.name}'")
    return to_category_dto(category)


def update_category(category_id: int, payload: CategoryIn, image_file=None) -> Optional[CategoryDTO]:
    try:
        category = Category.objects.get(id=category_id)
    except Category.DoesNotExist:
        return None

    if category.name.lower() != payload.name.lower():
        _ensure_unique_name(payload.name)

    category.name = payload.name
    category.description = payload.description
    if payload.is_active is not None:
        category.is_active = payload.is_active
    if payload.sort_order is not None:
        category.sort_order = payload.sort_order

    previous_image_id = None
    if image_file is not None:
        uploaded = storage_service.upload_image(image_file, folder=CATEGORY_IMAGE_FOLDER)
        previous_image_id = category.image_id
        category.image_url, category.image_id = uploaded.url, uploaded.image_id
    elif payload.image_url:
        category.image_url = payload.image_url

    _save_or_discard_upload(category, image_file)
    _delete_image_quietly(previous_image_id)
    logger.info(f"Category updated: id={category.id}")
    return to_category_dto(category)


def delete_category(category_id: int) -> bool:
    """Soft delete; the stored image is removed."""
    try:
        category = Category.objects.get(id=category_id)
    except Category.DoesNotExist:
        return False

    _delete_image_quietly(category.image_id)
    category.is_active = False
    category.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Category {category_id} deactivated")
    return True


def toggle_category_status(category_id: int) -> Optional[CategoryDTO]:
    try:
        category = Category.objects.get(id=category_id)
    except Category.DoesNotExist:
        return None

    category.is_active = not category.is_active
    category.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Category {category_id} is_active -> {category.is_active}")
    return to_category_dto(category)


# =============================================================================
# Queries
# =============================================================================

def get_category(category_id: int) -> Optional[CategoryDTO]:
    try:
        return to_category_dto(Category.objects.get(id=category_id))
    except Category.DoesNotExist:
        return None


def list_active_categories() -> List[CategoryDTO]:
    return [to_category_dto(c) for c in Category.objects.filter(is_active=True).order_by('sort_order')]


def list_all_categories() -> List[CategoryDTO]:
    return [to_category_dto(c) for c in Category.objects.order_by('sort_order')]


def search_categories(name: str) -> List[CategoryDTO]:
    queryset = Category.objects.filter(is_active=True, name__icontains=name).order_by('sort_order')
    return [to_category_dto(c) for c in queryset]


def list_active_category_briefs() -> List[CategoryBriefDTO]:
    rows = Category.objects.filter(is_active=True).order_by('sort_order').values(*BRIEF_FIELDS)
    return [_to_brief(row) for row in rows]


def list_all_category_briefs() -> List[CategoryBriefDTO]:
    return [_to_brief(row) for row in Category.objects.order_by('sort_order').values(*BRIEF_FIELDS)]


def get_category_brief(category_id: int) -> Optional[CategoryBriefDTO]:
    row = Category.objects.filter(id=category_id).values(*BRIEF_FIELDS).first()
    return _to_brief(row) if row else None


def list_category_briefs_by_ids(ids: List[int]) -> List[CategoryBriefDTO]:
    rows = Category.objects.filter(id__in=ids).order_by('sort_order').values(*BRIEF_FIELDS)
    return [_to_brief(row) for row in rows]


def category_stats() -> List[CategoryStatsDTO]:
    rows = Category.objects.order_by().values('is_active').annotate(count=Count('id')).order_by('-is_active')
    return [CategoryStatsDTO(is_active=row['is_active'], count=row['count']) for row in rows]


def count_active_categories() -> int:
    return Category.objects.filter(is_active=True).count()
