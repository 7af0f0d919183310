"""
Mapbox geocoding client.

Turns store addresses into coordinates. When Mapbox is unavailable (no token,
failed token validation, or a failed lookup) coordinates come from a static
per-city table instead, so store creation never depends on the external API.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import List, Optional, Tuple
from urllib.parse import quote

import requests
from django.conf import settings

from .dtos import Address, GeoLocation, MapboxPlace, format_address
from .exceptions import GeocodingError

logger = logging.getLogger(__name__)

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
TOKEN_VALIDATION_QUERY = "New York"
COORDINATE_SCALE = Decimal('0.00000001')

# (substrings matched against lower-cased "city, country", latitude, longitude)
FALLBACK_COORDINATES: List[Tuple[Tuple[str, ...], str, str]] = [
    (("харьков", "kharkiv", "kharkov"), "49.9935", "36.2304"),
    (("киев", "kiev", "kyiv"), "50.4501", "30.5234"),
    (("одесса", "odesa", "odessa"), "46.4825", "30.7233"),
    (("москва", "moscow"), "55.7558", "37.6176"),
    (("петербург", "spb", "petersburg"), "59.9311", "30.3609"),
    (("new york",), "40.7128", "-74.0060"),
    (("los angeles",), "34.0522", "-118.2437"),
    (("berlin",), "52.5200", "13.4050"),
]
DEFAULT_FALLBACK = ("50.0000", "20.0000")


def mask_token(token: Optional[str]) -> str:
    if not token or len(token) < 8:
        return "***invalid***"
    return f"{token[:8]}...{token[-4:]} (length: {len(token)})"


def get_fallback_coordinates(city: Optional[str], country: Optional[str]) -> GeoLocation:
    key = f"{city or ''}, {country or ''}".lower()
    for needles, lat, lon in FALLBACK_COORDINATES:
        if any(needle in key for needle in needles):
            return GeoLocation(latitude=Decimal(lat), longitude=Decimal(lon))
    return GeoLocation(latitude=Decimal(DEFAULT_FALLBACK[0]), longitude=Decimal(DEFAULT_FALLBACK[1]))


def _scale(value) -> Decimal:
    return Decimal(str(value)).quantize(COORDINATE_SCALE, rounding=ROUND_HALF_UP)


class MapboxGeocodingService:
    """Forward/reverse geocoding against the Mapbox places API."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        validate_token: Optional[bool] = None,
    ):
        if access_token is None:
            access_token = getattr(settings, 'MAPBOX_ACCESS_TOKEN', '')
        if timeout is None:
            timeout = getattr(settings, 'MAPBOX_TIMEOUT_SECONDS', 10)
        if validate_token is None:
            validate_token = getattr(settings, 'MAPBOX_VALIDATE_ON_STARTUP', True)

        self.access_token = (access_token or '').strip()
        self.timeout = timeout
        self.geocoding_available = False
        self._initialize(validate_token)

    def _initialize(self, validate_token: bool) -> None:
        if not self.access_token:
            logger.warning("Mapbox access token is not configured (set MAPBOX_ACCESS_TOKEN)")
            logger.warning("Get a token at https://account.mapbox.com/access-tokens/")
            logger.warning("Geocoding will use fallback coordinates")
            return

        logger.info(f"Mapbox token loaded: {mask_token(self.access_token)}")

        if not validate_token:
            self.geocoding_available = True
            return

        try:
            self._validate_token()
            self.geocoding_available = True
            logger.info("Mapbox geocoding is enabled")
        except GeocodingError as e:
            logger.error(f"Mapbox token validation failed: {e}")
            logger.warning("Geocoding will use fallback coordinates")

    def _validate_token(self) -> None:
        data = self._request(TOKEN_VALIDATION_QUERY, {'limit': 1})
        if not isinstance(data.get('features'), list):
            raise GeocodingError("Invalid response from Mapbox API")

    def _request(self, query: str, params: dict, quoted: bool = True) -> dict:
        path = quote(query, safe='') if quoted else query
        url = f"{MAPBOX_GEOCODING_URL}/{path}.json"
        try:
            response = requests.get(
                url,
                params={'access_token': self.access_token, **params},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise GeocodingError(f"Mapbox request failed: {e}") from e

        if not isinstance(data, dict):
            raise GeocodingError(f"Unexpected Mapbox response type: {type(data).__name__}")
        return data

    # =========================================================================
    # Public API
    # =========================================================================

    def create_address_with_coordinates(self, request) -> Address:
        """
        Build an Address from an address request.

        Provided coordinates win; otherwise geocode when possible, falling
        back to the per-city table.
        """
        formatted = format_address(request.street, request.city, request.region, request.country)
        base = {
            'street': request.street,
            'city': request.city,
            'region': request.region,
            'country': request.country,
            'postal_code': request.postal_code,
        }

        if request.latitude is not None and request.longitude is not None:
            logger.info(f"Using provided coordinates: {request.latitude}, {request.longitude}")
            return Address(latitude=Decimal(str(request.latitude)), longitude=Decimal(str(request.longitude)), **base)

        auto_geocode = request.auto_geocode is None or request.auto_geocode
        if self.geocoding_available and auto_geocode:
            try:
                location = self.geocode_address(formatted)
                logger.info(f"Geocoded '{formatted}' -> [{location.latitude}, {location.longitude}]")
                return Address(
                    latitude=location.latitude,
                    longitude=location.longitude,
                    full_address=formatted,
                    **base,
                )
            except GeocodingError as e:
                logger.warning(f"Geocoding failed: {e}, using fallback")
        else:
            logger.info("Using fallback coordinates (geocoding unavailable or disabled)")

        location = get_fallback_coordinates(request.city, request.country)
        logger.info(f"Fallback coordinates for {request.city}: [{location.latitude}, {location.longitude}]")
        return Address(
            latitude=location.latitude,
            longitude=location.longitude,
            full_address=formatted,
            **base,
        )

    def geocode_address(self, address: str) -> GeoLocation:
        data = self._request(address, {'limit': 1, 'types': 'address,poi'})
        features = data.get('features') or []
        if not features:
            raise GeocodingError(f"No results found for address: {address}")

        try:
            longitude, latitude = features[0]['geometry']['coordinates'][:2]
            return GeoLocation(latitude=_scale(latitude), longitude=_scale(longitude))
        except (KeyError, IndexError, TypeError, ValueError, ArithmeticError) as e:
            raise GeocodingError(f"Malformed Mapbox response for address: {address}") from e

    def reverse_geocode(self, longitude, latitude) -> str:
        data = self._request(f"{longitude},{latitude}", {'types': 'address'}, quoted=False)
        features = data.get('features') or []
        if not features:
            raise GeocodingError("No address found for coordinates")
        return features[0].get('place_name')

    def search_nearby_places(self, longitude, latitude, query: str, limit: int = 10) -> List[MapboxPlace]:
        try:
            data = self._request(query, {
                'proximity': f"{longitude},{latitude}",
                'limit': limit,
                'types': 'poi',
            })
            return [
                MapboxPlace(
                    name=feature.get('text'),
                    full_name=feature.get('place_name'),
                    longitude=Decimal(str(feature['geometry']['coordinates'][0])),
                    latitude=Decimal(str(feature['geometry']['coordinates'][1])),
                )
                for feature in data.get('features') or []
            ]
        except (GeocodingError, KeyError, TypeError, IndexError, ArithmeticError) as e:
            logger.error(f"Error searching nearby places: {e}")
            return []


@lru_cache(maxsize=1)
def get_geocoding_service() -> MapboxGeocodingService:
    """Process-wide geocoding service; the token is validated once."""
    return MapboxGeocodingService()
