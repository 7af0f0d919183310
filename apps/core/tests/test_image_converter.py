import io

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase
from PIL import Image

from apps.core.exceptions import ImageConversionError
from apps.core.image_converter import (
    calculate_resized_dimensions,
    convert_to_standard_format,
    needs_conversion,
    process_product_image,
    replace_extension,
)


def upload(name, size=(100, 80), fmt="JPEG", content_type="image/jpeg", mode="RGB", color=(10, 120, 200)):
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return SimpleUploadedFile(name, buffer.getvalue(), content_type=content_type)


def decode(content: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(content))
    image.load()
    return image


class HelpersTest(SimpleTestCase):
    def test_needs_conversion(self):
        self.assertTrue(needs_conversion("image/HEIC"))
        self.assertTrue(needs_conversion("image/heif"))
        self.assertFalse(needs_conversion("image/jpeg"))
        self.assertFalse(needs_conversion(None))

    def test_replace_extension(self):
        self.assertEqual(replace_extension("IMG_0001.HEIC", "converted_image"), "IMG_0001.jpg")
        self.assertEqual(replace_extension("archive.tar.png", "x"), "archive.tar.jpg")
        self.assertEqual(replace_extension("", "product_image"), "product_image.jpg")
        self.assertEqual(replace_extension(None, "converted_image"), "converted_image.jpg")

    def test_resized_dimensions(self):
        self.assertEqual(calculate_resized_dimensions(2400, 1200, 1200, 1200), (1200, 600))
        self.assertEqual(calculate_resized_dimensions(1000, 2000, 1200, 1200), (600, 1200))
        self.assertEqual(calculate_resized_dimensions(1500, 1500, 1200, 1200), (1200, 1200))
        self.assertEqual(calculate_resized_dimensions(4000, 2000, 1200, 500), (1000, 500))


class ProcessProductImageTest(SimpleTestCase):
    def test_small_jpeg_passes_through(self):
        original = upload("dish.jpeg")
        original_bytes = original.read()
        processed = process_product_image(original)

        self.assertEqual(processed.content, original_bytes)
        self.assertEqual(processed.file_name, "dish.jpeg")
        self.assertEqual(processed.extension, ".jpeg")
        self.assertEqual(processed.content_type, "image/jpeg")
        self.assertEqual(processed.size, len(original_bytes))

    def test_png_is_flattened_to_jpeg(self):
        processed = process_product_image(
            upload("logo.png", fmt="PNG", content_type="image/png", mode="RGBA", color=(0, 0, 0, 0))
        )
        self.assertEqual(processed.content_type, "image/jpeg")
        self.assertEqual(processed.file_name, "logo.jpg")
        self.assertEqual(processed.original_content_type, "image/png")

        image = decode(processed.content)
        self.assertEqual(image.format, "JPEG")
        self.assertEqual(image.mode, "RGB")
        # transparent pixels land on white, not black
        self.assertGreater(sum(image.getpixel((5, 5))), 700)

    def test_png_content_type_is_case_insensitive(self):
        processed = process_product_image(upload("icon.png", fmt="PNG", content_type="IMAGE/PNG"))
        self.assertEqual(processed.content_type, "image/jpeg")
        self.assertEqual(processed.file_name, "icon.jpg")

    def test_large_image_is_resized(self):
        processed = process_product_image(upload("big.webp", size=(3000, 1500), fmt="WEBP", content_type="image/webp"))
        image = decode(processed.content)
        self.assertEqual(image.size, (1200, 600))
        self.assertEqual(processed.file_name, "big.jpg")

    def test_heic_content_type_is_converted(self):
        processed = process_product_image(upload("IMG_1234.HEIC", size=(1500, 3000), content_type="image/heic"))
        self.assertEqual(processed.file_name, "IMG_1234.jpg")
        self.assertEqual(processed.extension, ".jpg")
        self.assertEqual(processed.original_content_type, "image/heic")
        self.assertEqual(decode(processed.content).size, (600, 1200))

    def test_garbage_raises_conversion_error(self):
        garbage = SimpleUploadedFile("broken.jpg", b"not an image at all", content_type="image/jpeg")
        with self.assertRaises(ImageConversionError) as ctx:
            process_product_image(garbage)
        self.assertIn("Failed to process product image", str(ctx.exception))


class ConvertToStandardFormatTest(SimpleTestCase):
    def test_converts_to_jpeg(self):
        processed = convert_to_standard_format(upload("screenshot.heif", content_type="image/heif", fmt="PNG"))
        self.assertEqual(processed.file_name, "screenshot.jpg")
        self.assertEqual(processed.content_type, "image/jpeg")
        self.assertEqual(decode(processed.content).format, "JPEG")

    def test_undecodable_heif(self):
        broken = SimpleUploadedFile("x.heic", b"definitely not heif", content_type="image/heic")
        with self.assertRaisesMessage(ImageConversionError, "Failed to convert HEIF image to JPEG"):
            convert_to_standard_format(broken)
