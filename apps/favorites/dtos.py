from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ninja import Schema


@dataclass(frozen=True)
class FavoriteStoreInfoDTO:
    id: int
    name: str
    description: Optional[str]
    pic_url: str
    is_active: bool
    rating: Decimal
    delivery_radius: int
    estimated_delivery_time: int
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class FavoriteDTO:
    id: int
    user_id: int
    store: FavoriteStoreInfoDTO
    created_at: datetime


@dataclass(frozen=True)
class FavoriteStatsDTO:
    active_count: int
    inactive_count: int


class FavoriteIn(Schema):
    store_id: int
