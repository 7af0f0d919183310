from datetime import datetime
from typing import List, Optional

from ninja import Schema

from apps.core.schemas import EnvelopeOut, PageEnvelopeOut


class ProductOut(Schema):
    id: int
    store_id: int
    category_id: int
    name: str
    description: Optional[str] = None
    price: float
    discount_price: Optional[float] = None
    pic_url: str
    is_popular: bool
    is_available: bool
    rating: float
    has_discount: bool
    final_price: float
    created_at: datetime
    updated_at: datetime


class ProductBriefOut(Schema):
    id: int
    name: str
    price: float
    discount_price: Optional[float] = None
    pic_url: str
    is_available: bool
    rating: float


class ProductPageOut(PageEnvelopeOut):
    products: List[ProductOut] = []


class ProductBriefPageOut(PageEnvelopeOut):
    products: List[ProductBriefOut] = []


class SingleProductOut(EnvelopeOut):
    product: Optional[ProductOut] = None
