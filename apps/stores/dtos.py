from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from ninja import Schema
from pydantic import Field

from apps.core.dtos import Address  # noqa: F401 - re-exported for store callers

PHONE_PATTERN = r'^\+?[1-9]\d{1,14}$'
EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'


# =============================================================================
# DTOs (cross-app)
# =============================================================================

@dataclass(frozen=True)
class StoreDTO:
    """Data Transfer Object for Store - used for responses and cross-app calls."""
    id: int
    owner_id: int
    name: str
    description: Optional[str]
    address: Address
    phone: Optional[str]
    email: Optional[str]
    is_active: bool
    rating: Decimal
    delivery_radius: int
    delivery_fee: Decimal
    estimated_delivery_time: int
    pic_url: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class StoreUIDTO:
    id: int
    name: str
    pic_url: str
    rating: Decimal
    estimated_delivery_time: int


@dataclass(frozen=True)
class NearbyStoreDTO:
    store: StoreDTO
    distance_km: float


# =============================================================================
# Request schemas
# =============================================================================

class AddressIn(Schema):
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    region: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)
    auto_geocode: bool = True


class StoreCreateIn(Schema):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    address: AddressIn
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=100, pattern=EMAIL_PATTERN)
    is_active: bool = True
    delivery_radius: int = Field(5, ge=1, le=50)
    delivery_fee: Decimal = Field(Decimal('0'), ge=0, le=Decimal('99999.99'))
    estimated_delivery_time: int = Field(30, ge=10, le=180)


class StoreFormIn(Schema):
    """Flat multipart variant of StoreCreateIn (address fields inlined)."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    region: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)
    auto_geocode: bool = True
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=100, pattern=EMAIL_PATTERN)
    is_active: bool = True
    delivery_radius: int = Field(5, ge=1, le=50)
    delivery_fee: Decimal = Field(Decimal('0'), ge=0, le=Decimal('99999.99'))
    estimated_delivery_time: int = Field(30, ge=10, le=180)

    def to_create(self) -> StoreCreateIn:
        address_fields = set(AddressIn.model_fields)
        data = self.model_dump()
        address = {key: data.pop(key) for key in address_fields}
        return StoreCreateIn(address=AddressIn(**address), **data)


class StoreUpdateIn(Schema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    address: Optional[AddressIn] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[str] = Field(None, max_length=100, pattern=EMAIL_PATTERN)
    is_active: Optional[bool] = None
    delivery_radius: Optional[int] = Field(None, ge=1, le=50)
    delivery_fee: Optional[Decimal] = Field(None, ge=0, le=Decimal('99999.99'))
    estimated_delivery_time: Optional[int] = Field(None, ge=10, le=180)


class NearbyStoreQuery(Schema):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    radius_km: float = Field(10, ge=1, le=50)
    limit: int = Field(20, ge=1, le=100)
    sort_by: Literal['distance', 'rating', 'deliveryTime', 'deliveryFee'] = 'distance'
    max_delivery_fee: Optional[Decimal] = Field(None, ge=0)
    max_delivery_time: Optional[int] = Field(None, ge=1)
    min_rating: Optional[Decimal] = Field(None, ge=0, le=5)
