"""
Product image processing.

HEIF/HEIC uploads (iPhone photos) are converted to JPEG, oversized images are
scaled down to fit 1200x1200 preserving aspect ratio, and PNGs are re-encoded
as JPEG on a white background. Everything else passes through untouched.
"""
import io
import logging
import os
from dataclasses import dataclass
from typing import Tuple

import pillow_heif
from PIL import Image

from .exceptions import ImageConversionError

logger = logging.getLogger(__name__)

pillow_heif.register_heif_opener()

CONVERTIBLE_TYPES = frozenset({'image/heif', 'image/heic'})
TARGET_FORMAT = 'JPEG'
TARGET_CONTENT_TYPE = 'image/jpeg'
TARGET_EXTENSION = '.jpg'
PRODUCT_IMAGE_MAX_WIDTH = 1200
PRODUCT_IMAGE_MAX_HEIGHT = 1200
JPEG_QUALITY = 85
HEIF_JPEG_QUALITY = 90


@dataclass(frozen=True)
class ProcessedImage:
    content: bytes
    content_type: str
    file_name: str
    extension: str
    original_file_name: str
    original_content_type: str

    @property
    def size(self) -> int:
        return len(self.content) if self.content else 0


def needs_conversion(content_type: str) -> bool:
    return (content_type or '').lower() in CONVERTIBLE_TYPES


def replace_extension(file_name: str, default_name: str) -> str:
    if not file_name:
        return default_name + TARGET_EXTENSION
    stem, _ = os.path.splitext(file_name)
    return stem + TARGET_EXTENSION


def extension_of(file_name: str) -> str:
    if not file_name or '.' not in file_name:
        return ''
    return file_name[file_name.rindex('.'):]


def calculate_resized_dimensions(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """Fit (width, height) inside the bounds, keeping the aspect ratio (int truncation)."""
    aspect_ratio = width / height

    if width > height:
        new_width = min(max_width, width)
        new_height = int(new_width / aspect_ratio)
        if new_height > max_height:
            new_height = max_height
            new_width = int(new_height * aspect_ratio)
    else:
        new_height = min(max_height, height)
        new_width = int(new_height * aspect_ratio)
        if new_width > max_width:
            new_width = max_width
            new_height = int(new_width / aspect_ratio)

    return max(new_width, 1), max(new_height, 1)


def _read_bytes(file) -> bytes:
    if hasattr(file, 'seek'):
        file.seek(0)
    return file.read()


def _open_image(content: bytes, file_name: str) -> Image.Image:
    image = Image.open(io.BytesIO(content))
    image.load()
    if image.width <= 0 or image.height <= 0:
        raise ImageConversionError(f"Could not read image file: {file_name}")
    return image


def _flatten_to_rgb(image: Image.Image) -> Image.Image:
    """Composite onto a white background so transparency does not turn black."""
    if image.mode == 'RGB':
        return image
    rgba = image.convert('RGBA')
    background = Image.new('RGB', rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.getchannel('A'))
    return background


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    _flatten_to_rgb(image).save(buffer, format=TARGET_FORMAT, quality=quality, optimize=True)
    return buffer.getvalue()


def _exceeds_bounds(image: Image.Image) -> bool:
    return image.width > PRODUCT_IMAGE_MAX_WIDTH or image.height > PRODUCT_IMAGE_MAX_HEIGHT


def _resize_with_aspect_ratio(image: Image.Image) -> Image.Image:
    new_width, new_height = calculate_resized_dimensions(
        image.width, image.height, PRODUCT_IMAGE_MAX_WIDTH, PRODUCT_IMAGE_MAX_HEIGHT
    )
    logger.info(f"Resized image from {image.width}x{image.height} to {new_width}x{new_height}")
    return _flatten_to_rgb(image).resize((new_width, new_height), Image.Resampling.BILINEAR)


# =============================================================================
# Public API
# =============================================================================

def process_product_image(file) -> ProcessedImage:
    """Normalize an uploaded product image before it is stored."""
    file_name = getattr(file, 'name', '') or ''
    content_type = getattr(file, 'content_type', '') or ''
    logger.info(f"Processing product image: {file_name}, type: {content_type}, size: {getattr(file, 'size', 0)} bytes")

    try:
        if needs_conversion(content_type):
            logger.info(f"Converting HEIF/HEIC to JPEG for file: {file_name}")
            return _resize_if_needed(convert_to_standard_format(file))
        return _process_standard_image(file, file_name, content_type)
    except (ImageConversionError, OSError, ValueError, Image.DecompressionBombError) as e:
        logger.error(f"Failed to process product image {file_name}: {e}", exc_info=True)
        raise ImageConversionError(f"Failed to process product image: {e}") from e


def convert_to_standard_format(file) -> ProcessedImage:
    """Decode a HEIF/HEIC upload and re-encode it as JPEG."""
    file_name = getattr(file, 'name', '') or ''
    content_type = getattr(file, 'content_type', '') or ''

    try:
        image = _open_image(_read_bytes(file), file_name)
        converted = _encode_jpeg(image, HEIF_JPEG_QUALITY)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.error(f"Failed to convert image {file_name}: {e}")
        raise ImageConversionError(f"Failed to convert HEIF image to JPEG: {e}") from e

    logger.info(f"Converted {file_name} to JPEG, size: {len(converted)} bytes")
    return ProcessedImage(
        content=converted,
        content_type=TARGET_CONTENT_TYPE,
        file_name=replace_extension(file_name, 'converted_image'),
        extension=TARGET_EXTENSION,
        original_file_name=file_name,
        original_content_type=content_type,
    )


def _resize_if_needed(converted: ProcessedImage) -> ProcessedImage:
    image = _open_image(converted.content, converted.file_name)
    if not _exceeds_bounds(image):
        return converted

    resized = _encode_jpeg(_resize_with_aspect_ratio(image), JPEG_QUALITY)
    return ProcessedImage(
        content=resized,
        content_type=converted.content_type,
        file_name=converted.file_name,
        extension=converted.extension,
        original_file_name=converted.original_file_name,
        original_content_type=converted.original_content_type,
    )


def _process_standard_image(file, file_name: str, content_type: str) -> ProcessedImage:
    content = _read_bytes(file)
    image = _open_image(content, file_name)
    needs_resize = _exceeds_bounds(image)

    if not needs_resize and content_type.lower() != 'image/png':
        logger.info(f"Image {file_name} doesn't need processing")
        return ProcessedImage(
            content=content,
            content_type=content_type,
            file_name=file_name,
            extension=extension_of(file_name),
            original_file_name=file_name,
            original_content_type=content_type,
        )

    processed = _resize_with_aspect_ratio(image) if needs_resize else image
    optimized = _encode_jpeg(processed, JPEG_QUALITY)
    new_name = replace_extension(file_name, 'product_image')

    logger.info(
        f"Processed standard image: {file_name} -> {new_name}, "
        f"original size: {len(content)} bytes, new size: {len(optimized)} bytes"
    )
    return ProcessedImage(
        content=optimized,
        content_type=TARGET_CONTENT_TYPE,
        file_name=new_name,
        extension=TARGET_EXTENSION,
        original_file_name=file_name,
        original_content_type=content_type,
    )
