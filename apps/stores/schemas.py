from datetime import datetime
from typing import List, Optional

from ninja import Schema

from apps.core.schemas import EnvelopeOut, ListEnvelopeOut, PageEnvelopeOut


class AddressOut(Schema):
    street: str
    city: str
    region: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: float
    longitude: float
    full_address: Optional[str] = None


class StoreOut(Schema):
    id: int
    owner_id: int
    name: str
    description: Optional[str] = None
    address: AddressOut
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: bool
    rating: float
    delivery_radius: int
    delivery_fee: float
    estimated_delivery_time: int
    pic_url: str
    created_at: datetime
    updated_at: datetime


class StoreUIOut(Schema):
    id: int
    name: str
    pic_url: str
    rating: float
    estimated_delivery_time: int


class NearbyStoreOut(Schema):
    store: StoreOut
    distance_km: float


class StorePageOut(PageEnvelopeOut):
    stores: List[StoreOut] = []


class SingleStoreOut(EnvelopeOut):
    store: Optional[StoreOut] = None


class StoreUIListOut(ListEnvelopeOut):
    stores: List[StoreUIOut] = []


class NearbyStoreListOut(ListEnvelopeOut):
    stores: List[NearbyStoreOut] = []
