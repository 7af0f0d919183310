"""Geographic value objects shared by the geocoding service and the stores app."""
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometers."""
    lat_distance = math.radians(lat2 - lat1)
    lon_distance = math.radians(lon2 - lon1)
    a = (
        math.sin(lat_distance / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(lon_distance / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def format_address(street: str, city: str, region: Optional[str] = None, country: Optional[str] = None) -> str:
    """'street, city[, region][, country]' - blank parts are skipped."""
    parts = [street, city]
    if region:
        parts.append(region)
    if country:
        parts.append(country)
    return ", ".join(parts)


@dataclass(frozen=True)
class GeoLocation:
    latitude: Decimal
    longitude: Decimal


@dataclass(frozen=True)
class MapboxPlace:
    name: Optional[str]
    full_name: Optional[str]
    longitude: Decimal
    latitude: Decimal


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    latitude: Decimal
    longitude: Decimal
    region: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    full_address: Optional[str] = None

    @property
    def formatted_address(self) -> str:
        return format_address(self.street, self.city, self.region, self.country)

    def distance_to_km(self, other: "Address") -> float:
        return haversine_km(
            float(self.latitude), float(self.longitude),
            float(other.latitude), float(other.longitude),
        )
