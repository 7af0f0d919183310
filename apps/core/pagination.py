"""
Slice pagination and response envelopes.

A Slice only knows whether a next page exists (it fetches one extra row),
so listing endpoints never issue a COUNT query. `total_count` in the
envelope is the number of items on the returned page.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from django.utils import timezone

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Slice:
    items: List[Any] = field(default_factory=list)
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    has_next: bool = False

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    @property
    def count(self) -> int:
        return len(self.items)


def normalize_page(page: int, size: int) -> Tuple[int, int]:
    """Clamp page to >= 0 and size to 1..MAX_PAGE_SIZE."""
    page = max(int(page or 0), 0)
    size = min(max(int(size or DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
    return page, size


def paginate(queryset, page: int, size: int, mapper: Optional[Callable] = None) -> Slice:
    """Fetch one page of an ordered queryset, mapping rows with `mapper` if given."""
    page, size = normalize_page(page, size)
    offset = page * size

    rows = list(queryset[offset:offset + size + 1])
    has_next = len(rows) > size
    rows = rows[:size]

    items = [mapper(row) for row in rows] if mapper else rows
    return Slice(items=items, page=page, size=size, has_next=has_next)


# =============================================================================
# Envelopes
# =============================================================================

def page_envelope(key: str, page_slice: Slice, message: Optional[str] = None) -> dict:
    return {
        key: page_slice.items,
        'total_count': page_slice.count,
        'has_next': page_slice.has_next,
        'has_previous': page_slice.has_previous,
        'current_page': page_slice.page,
        'page_size': page_slice.size,
        'success': True,
        'message': message,
        'timestamp': timezone.now(),
    }


def page_error(key: str, message: str) -> dict:
    return {
        key: [],
        'total_count': 0,
        'has_next': False,
        'has_previous': False,
        'current_page': None,
        'page_size': None,
        'success': False,
        'message': message,
        'timestamp': timezone.now(),
    }


def list_envelope(key: str, items: list, success: bool = True, message: Optional[str] = None) -> dict:
    """Unpaged list envelope (UI and nearby listings)."""
    return {
        key: items,
        'total_count': len(items),
        'success': success,
        'message': message,
        'timestamp': timezone.now(),
    }


def single_envelope(key: str, item: Any, message: Optional[str] = None) -> dict:
    return {
        key: item,
        'success': True,
        'message': message,
        'timestamp': timezone.now(),
    }


def single_error(key: str, message: str) -> dict:
    return {
        key: None,
        'success': False,
        'message': message,
        'timestamp': timezone.now(),
    }


def single_not_found(key: str, label: str, entity_id: Any) -> dict:
    return single_error(key, f"{label} not found with ID: {entity_id}")


def api_response(data: Any = None, success: bool = True, message: Optional[str] = None) -> dict:
    """Generic {data, success, message, timestamp} envelope."""
    return {
        'data': data,
        'success': success,
        'message': message,
        'timestamp': timezone.now(),
    }
