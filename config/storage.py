"""
Image storage configuration.
Uses Cloudinary in production and Django's local file storage for development.
"""
import os
from pathlib import Path

STORAGE_BACKEND = os.getenv('IMAGE_STORAGE_BACKEND', 'cloudinary').lower()


def get_storage_settings(base_dir: Path) -> dict:
    """
    Returns storage-related settings based on environment configuration.

    Args:
        base_dir: The BASE_DIR from Django settings

    Returns:
        Dictionary of storage settings to be merged into Django settings
    """
    return {
        'IMAGE_STORAGE_BACKEND': STORAGE_BACKEND,
        'CLOUDINARY_CLOUD_NAME': os.getenv('CLOUDINARY_CLOUD_NAME', ''),
        'CLOUDINARY_API_KEY': os.getenv('CLOUDINARY_API_KEY', ''),
        'CLOUDINARY_API_SECRET': os.getenv('CLOUDINARY_API_SECRET', ''),
        # Local backend (and Django admin uploads) write here
        'MEDIA_URL': '/media/',
        'MEDIA_ROOT': Path(os.getenv('MEDIA_ROOT', base_dir / 'media')),
    }


def is_cloudinary_configured() -> bool:
    """Check that all three Cloudinary credentials are present."""
    from django.conf import settings

    return all([
        getattr(settings, 'CLOUDINARY_CLOUD_NAME', ''),
        getattr(settings, 'CLOUDINARY_API_KEY', ''),
        getattr(settings, 'CLOUDINARY_API_SECRET', ''),
    ])
