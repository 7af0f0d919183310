"""
Image storage - Abstraction over the CDN used for store, product and category images.

The actual backend is determined by the IMAGE_STORAGE_BACKEND setting.

Usage:
    from apps.core import storage_service

    result = storage_service.upload_image(uploaded_file, folder="stores")
    storage_service.delete_image(result.image_id)

Environment Configuration:
    IMAGE_STORAGE_BACKEND=cloudinary  # Cloudinary CDN (production)
    IMAGE_STORAGE_BACKEND=local       # Django default_storage (development/tests)
"""
import io
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import cloudinary
import cloudinary.api
import cloudinary.uploader
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils import timezone

from .exceptions import StorageConfigurationError, StorageError
from .image_converter import ProcessedImage

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "stores"
IMAGE_TAG = "store_image"


@dataclass(frozen=True)
class StorageResult:
    url: str
    image_id: str


def generate_public_id(folder: str) -> str:
    """<folder>/<YYYYmmdd_HHMMSS>_<6 digits>"""
    stamp = timezone.now().strftime('%Y%m%d_%H%M%S')
    return f"{folder}/{stamp}_{secrets.randbelow(10 ** 6):06d}"


class ImageStorageBackend(ABC):
    """
    Abstract interface for image storage.

    Implementations:
    - CloudinaryStorageBackend: Cloudinary CDN
    - LocalStorageBackend: Django default_storage for development/testing
    """

    @abstractmethod
    def upload(self, content: bytes, file_name: str, content_type: str, folder: str) -> StorageResult:
        """Store the image and return its public URL and identifier."""

    @abstractmethod
    def delete(self, image_id: str) -> bool:
        """Delete the image. Returns False instead of raising on failure."""

    @abstractmethod
    def get_info(self, image_id: str) -> Dict[str, Any]:
        """Return backend metadata for the image, or {} on failure."""


class CloudinaryStorageBackend(ImageStorageBackend):

    def __init__(self):
        cloud_name = getattr(settings, 'CLOUDINARY_CLOUD_NAME', '')
        api_key = getattr(settings, 'CLOUDINARY_API_KEY', '')
        api_secret = getattr(settings, 'CLOUDINARY_API_SECRET', '')

        if not (cloud_name and api_key and api_secret):
            raise StorageConfigurationError(
                "Cloudinary is not configured. Set CLOUDINARY_CLOUD_NAME, "
                "CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET."
            )

        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    def upload(self, content: bytes, file_name: str, content_type: str, folder: str) -> StorageResult:
        public_id = generate_public_id(folder)
        logger.info(f"Uploading image to Cloudinary: {file_name}")

        stream = io.BytesIO(content)
        stream.name = file_name or "image"
        try:
            result = cloudinary.uploader.upload(
                stream,
                resource_type="image",
                public_id=public_id,
                overwrite=False,
                quality="auto:good",
                format="auto",
                tags=IMAGE_TAG,
            )
        except Exception as e:
            logger.error(f"Cloudinary upload failed: {e}", exc_info=True)
            raise StorageError(f"Failed to upload image to Cloudinary: {e}") from e

        logger.info(f"Image uploaded. URL: {result.get('secure_url')}, Public ID: {result.get('public_id')}")
        return StorageResult(url=result.get('secure_url'), image_id=result.get('public_id'))

    def delete(self, image_id: str) -> bool:
        logger.info(f"Deleting image from Cloudinary. Public ID: {image_id}")
        try:
            result = cloudinary.uploader.destroy(image_id)
        except Exception:
            logger.exception(f"Error deleting image. Public ID: {image_id}")
            return False

        success = result.get('result') == 'ok'
        if not success:
            logger.warning(f"Could not delete image. Public ID: {image_id}, result: {result}")
        return success

    def get_info(self, image_id: str) -> Dict[str, Any]:
        try:
            return dict(cloudinary.api.resource(image_id))
        except Exception:
            logger.exception(f"Error fetching image info. Public ID: {image_id}")
            return {}


class LocalStorageBackend(ImageStorageBackend):

    def upload(self, content: bytes, file_name: str, content_type: str, folder: str) -> StorageResult:
        extension = ''
        if file_name and '.' in file_name:
            extension = file_name[file_name.rindex('.'):].lower()

        saved_path = default_storage.save(generate_public_id(folder) + extension, ContentFile(content))
        logger.warning(f"Cloudinary not in use. Stored image locally at {saved_path}")
        return StorageResult(url=default_storage.url(saved_path), image_id=saved_path)

    def delete(self, image_id: str) -> bool:
        if not default_storage.exists(image_id):
            return False
        default_storage.delete(image_id)
        return True

    def get_info(self, image_id: str) -> Dict[str, Any]:
        if not default_storage.exists(image_id):
            return {}
        return {
            'public_id': image_id,
            'url': default_storage.url(image_id),
            'bytes': default_storage.size(image_id),
        }


def _get_backend() -> ImageStorageBackend:
    """Get the configured storage backend based on IMAGE_STORAGE_BACKEND."""
    backend = getattr(settings, 'IMAGE_STORAGE_BACKEND', 'cloudinary')

    if backend == 'cloudinary':
        return CloudinaryStorageBackend()
    elif backend == 'local':
        return LocalStorageBackend()
    else:
        raise StorageConfigurationError(f"Unknown IMAGE_STORAGE_BACKEND: {backend}")


# =============================================================================
# Facade
# =============================================================================

def upload_image(file, folder: str = DEFAULT_FOLDER) -> StorageResult:
    """
    Upload an uploaded file as-is.

    Raises:
        ValueError: If the file is missing or empty
        StorageError: If the backend rejects the upload
    """
    if file is None or not getattr(file, 'size', 0):
        raise ValueError("File is missing or empty")

    if hasattr(file, 'seek'):
        file.seek(0)
    content = file.read()
    return _get_backend().upload(content, file.name, getattr(file, 'content_type', ''), folder)


def upload_processed_image(processed: ProcessedImage, folder: str = DEFAULT_FOLDER) -> StorageResult:
    if not processed.content:
        raise ValueError("File is missing or empty")
    return _get_backend().upload(processed.content, processed.file_name, processed.content_type, folder)


def delete_image(image_id: str) -> bool:
    if not image_id:
        logger.warning("Attempted to delete an image with an empty id")
        return False
    return _get_backend().delete(image_id)


def get_image_info(image_id: str) -> Dict[str, Any]:
    if not image_id:
        raise ValueError("Image id must not be empty")
    return _get_backend().get_info(image_id)


def is_default_image(image_id: str) -> bool:
    """Placeholder images are never stored in the CDN."""
    return bool(image_id) and image_id.startswith("default_")


# =============================================================================
# Validation
# =============================================================================

ALLOWED_IMAGE_TYPES = frozenset({
    'image/jpeg',
    'image/jpg',
    'image/png',
    'image/gif',
    'image/webp',
    'image/heif',
    'image/heic',
})

INVALID_FORMAT_MESSAGE = "Invalid image format. Only JPG, PNG, GIF, WEBP are allowed"


def validate_image_upload(file) -> Tuple[bool, Optional[str]]:
    """
    Validate an uploaded image before processing.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if file is None or not getattr(file, 'size', 0):
        return False, "File is missing or empty"

    max_size = getattr(settings, 'MAX_IMAGE_UPLOAD_SIZE', 10 * 1024 * 1024)
    if file.size > max_size:
        return False, f"File too large. Maximum size is {max_size // (1024 * 1024)} MB"

    content_type = (getattr(file, 'content_type', '') or '').lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        return False, INVALID_FORMAT_MESSAGE

    return True, None
