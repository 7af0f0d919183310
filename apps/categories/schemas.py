from datetime import datetime
from typing import Optional

from ninja import Schema

from apps.core.schemas import EnvelopeOut


class CategoryOut(Schema):
    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool
    sort_order: int
    created_at: datetime
    updated_at: datetime


class CategoryBriefOut(Schema):
    id: int
    name: str
    is_active: bool
    sort_order: int


class CategoryStatsOut(Schema):
    is_active: bool
    count: int


class CategoryInfoOut(Schema):
    service_name: str
    version: str
    active_categories_count: int
    status: str


class CategoryResponseOut(EnvelopeOut):
    data: Optional[CategoryOut] = None
