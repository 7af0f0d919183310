from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ninja import Schema
from pydantic import Field


@dataclass(frozen=True)
class CategoryDTO:
    id: int
    name: str
    description: Optional[str]
    image_url: Optional[str]
    is_active: bool
    sort_order: int
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class CategoryBriefDTO:
    id: int
    name: str
    is_active: bool
    sort_order: int


@dataclass(frozen=True)
class CategoryStatsDTO:
    is_active: bool
    count: int


class CategoryIn(Schema):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
