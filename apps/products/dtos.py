from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ninja import Schema
from pydantic import Field


@dataclass(frozen=True)
class ProductDTO:
    """Data Transfer Object for Product - used for responses and cross-app calls."""
    id: int
    store_id: int
    category_id: int
    name: str
    description: Optional[str]
    price: Decimal
    discount_price: Optional[Decimal]
    pic_url: str
    is_popular: bool
    is_available: bool
    rating: Decimal
    created_at: datetime
    updated_at: datetime

    @property
    def has_discount(self) -> bool:
        return self.discount_price is not None and self.discount_price > 0

    @property
    def final_price(self) -> Decimal:
        return self.discount_price if self.has_discount else self.price


@dataclass(frozen=True)
class ProductBriefDTO:
    id: int
    name: str
    price: Decimal
    discount_price: Optional[Decimal]
    pic_url: str
    is_available: bool
    rating: Decimal


class ProductIn(Schema):
    """Used for both create and update (form or JSON)."""
    store_id: int
    category_id: int
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    price: Decimal = Field(..., ge=Decimal('0.01'), le=Decimal('99999999.99'))
    discount_price: Optional[Decimal] = Field(None, ge=0, le=Decimal('99999999.99'))
    is_available: bool = True
    is_popular: bool = False
