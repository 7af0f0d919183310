from datetime import datetime
from typing import List, Optional

from ninja import Schema

from apps.core.schemas import EnvelopeOut


class FavoriteStoreInfoOut(Schema):
    id: int
    name: str
    description: Optional[str] = None
    pic_url: str
    is_active: bool
    rating: float
    delivery_radius: int
    estimated_delivery_time: int
    created_at: datetime
    updated_at: datetime


class FavoriteOut(Schema):
    id: int
    user_id: int
    store: FavoriteStoreInfoOut
    created_at: datetime


class FavoriteResponseOut(EnvelopeOut):
    data: Optional[FavoriteOut] = None


class FavoriteListResponseOut(EnvelopeOut):
    data: Optional[List[FavoriteOut]] = None


class BoolResponseOut(EnvelopeOut):
    data: Optional[bool] = None


class CountResponseOut(EnvelopeOut):
    data: Optional[int] = None


class MessageResponseOut(EnvelopeOut):
    data: Optional[str] = None
