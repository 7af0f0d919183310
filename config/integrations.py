"""
Third-party integration settings (Mapbox geocoding).
"""
import os


def get_integration_settings() -> dict:
    return {
        'MAPBOX_ACCESS_TOKEN': os.getenv('MAPBOX_ACCESS_TOKEN', ''),
        'MAPBOX_TIMEOUT_SECONDS': float(os.getenv('MAPBOX_TIMEOUT_SECONDS', '10')),
        'MAPBOX_VALIDATE_ON_STARTUP': os.getenv('MAPBOX_VALIDATE_ON_STARTUP', 'true').lower() == 'true',
    }
