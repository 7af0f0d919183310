"""
Unit tests for product services: image pipeline, updates and availability rules.
"""
import shutil
import tempfile
from decimal import Decimal
from unittest.mock import patch

from django.core.files.storage import default_storage
from django.db import DatabaseError
from django.test import TestCase, override_settings
from PIL import Image

from apps.products.dtos import ProductIn
from apps.products.models import Product
from apps.products.services import (
    DEFAULT_PRODUCT_IMAGE_URL,
    create_product,
    get_product,
    hard_delete_product,
    list_available_products,
    list_product_briefs_by_store,
    list_products_by_category,
    list_products_by_store,
    search_products,
    soft_delete_product,
    update_product,
)
from apps.stores.tests.factories import make_image_file

MEDIA_ROOT = tempfile.mkdtemp()


def make_product(**overrides) -> Product:
    fields = {
        'store_id': 1,
        'category_id': 1,
        'name': "Margherita",
        'price': Decimal('9.90'),
        'pic_url': "https://via.placeholder.com/400x400",
        'pic_id': None,
    }
    fields.update(overrides)
    return Product.objects.create(**fields)


def product_in(**overrides) -> ProductIn:
    fields = {'store_id': 1, 'category_id': 2, 'name': "Pepperoni", 'price': Decimal('11.50')}
    fields.update(overrides)
    return ProductIn(**fields)


@override_settings(IMAGE_STORAGE_BACKEND='local', MEDIA_ROOT=MEDIA_ROOT)
class ProductServiceTestCase(TestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()


class CreateProductTest(ProductServiceTestCase):
    def test_default_image(self):
        product = create_product(product_in())
        row = Product.objects.get(id=product.id)
        self.assertEqual(row.pic_url, DEFAULT_PRODUCT_IMAGE_URL)
        self.assertTrue(row.pic_id.startswith("default_product_"))

    def test_default_image_ids_are_unique(self):
        first = create_product(product_in())
        second = create_product(product_in())
        self.assertNotEqual(Product.objects.get(id=first.id).pic_id, Product.objects.get(id=second.id).pic_id)

    def test_discount_fields(self):
        product = create_product(product_in(discount_price=Decimal('8.00')))
        self.assertTrue(product.has_discount)
        self.assertEqual(product.final_price, Decimal('8.00'))

        product = create_product(product_in(discount_price=Decimal('0')))
        self.assertFalse(product.has_discount)
        self.assertEqual(product.final_price, Decimal('11.50'))

    def test_large_png_is_resized_to_jpeg(self):
        image = make_image_file("menu.png", size=(1600, 800), fmt="PNG", content_type="image/png")
        product = create_product(product_in(), image_file=image)
        row = Product.objects.get(id=product.id)

        self.assertTrue(row.pic_id.startswith("products/"))
        self.assertTrue(row.pic_id.endswith(".jpg"))
        with default_storage.open(row.pic_id) as stored:
            with Image.open(stored) as saved:
                self.assertEqual(saved.format, "JPEG")
                self.assertEqual(saved.size, (1200, 600))

    def test_rejects_unsupported_type(self):
        image = make_image_file("menu.bmp", fmt="BMP", content_type="image/bmp")
        with self.assertRaises(ValueError) as ctx:
            create_product(product_in(), image_file=image)
        self.assertEqual(str(ctx.exception), "Invalid image format. Only JPG, PNG, GIF, WEBP are allowed")
        self.assertEqual(Product.objects.count(), 0)

    @override_settings(MAX_IMAGE_UPLOAD_SIZE=10)
    def test_rejects_oversized_file(self):
        with self.assertRaises(ValueError) as ctx:
            create_product(product_in(), image_file=make_image_file())
        self.assertIn("File too large", str(ctx.exception))

    def test_failed_insert_discards_uploaded_image(self):
        with patch('apps.products.services.storage_service.delete_image', return_value=True) as delete_image, \
                patch('apps.products.services.Product.objects.create', side_effect=DatabaseError("db down")):
            with self.assertRaises(DatabaseError):
                create_product(product_in(), image_file=make_image_file())
        delete_image.assert_called_once()
        self.assertTrue(delete_image.call_args.args[0].startswith("products/"))


class UpdateProductTest(ProductServiceTestCase):
    def test_overwrites_fields_but_not_store_or_category(self):
        product = make_product(store_id=1, category_id=1, is_available=False)
        updated = update_product(product.id, product_in(store_id=99, category_id=98, name="Diavola", is_popular=True))

        self.assertEqual(updated.name, "Diavola")
        self.assertEqual(updated.price, Decimal('11.50'))
        self.assertTrue(updated.is_popular)
        self.assertTrue(updated.is_available)
        self.assertEqual(updated.store_id, 1)
        self.assertEqual(updated.category_id, 1)

    def test_missing_product(self):
        self.assertIsNone(update_product(404404, product_in()))

    def test_new_image_replaces_and_deletes_old(self):
        product = make_product(pic_id="products/old")
        with patch('apps.products.services.storage_service.delete_image', return_value=True) as delete_image:
            updated = update_product(product.id, product_in(), image_file=make_image_file())
        delete_image.assert_called_once_with("products/old")
        self.assertNotEqual(Product.objects.get(id=updated.id).pic_id, "products/old")

    def test_failed_delete_of_old_image_is_only_logged(self):
        product = make_product(pic_id="products/old")
        with patch('apps.products.services.storage_service.delete_image', side_effect=RuntimeError("cdn down")):
            updated = update_product(product.id, product_in(), image_file=make_image_file())
        self.assertIsNotNone(updated)

    def test_failed_save_discards_new_image_and_keeps_old(self):
        product = make_product(pic_id="products/old")
        with patch('apps.products.services.storage_service.delete_image', return_value=True) as delete_image, \
                patch.object(Product, 'save', side_effect=DatabaseError("disk full")):
            with self.assertRaises(DatabaseError):
                update_product(product.id, product_in(), image_file=make_image_file())
        delete_image.assert_called_once()
        self.assertTrue(delete_image.call_args.args[0].startswith("products/"))
        self.assertNotEqual(delete_image.call_args.args[0], "products/old")
        self.assertEqual(Product.objects.get(id=product.id).pic_id, "products/old")


class DeleteProductTest(ProductServiceTestCase):
    def test_soft_delete(self):
        product = make_product()
        self.assertTrue(soft_delete_product(product.id))
        self.assertIsNone(get_product(product.id))
        self.assertTrue(Product.objects.filter(id=product.id).exists())
        self.assertFalse(soft_delete_product(777777))

    def test_hard_delete_removes_row_and_image(self):
        product = make_product(pic_id="products/abc")
        with patch('apps.products.services.storage_service.delete_image', return_value=True) as delete_image:
            self.assertTrue(hard_delete_product(product.id))
        delete_image.assert_called_once_with("products/abc")
        self.assertFalse(Product.objects.filter(id=product.id).exists())

    def test_hard_delete_keeps_default_image(self):
        product = make_product(pic_id="default_product_1")
        with patch('apps.products.services.storage_service.delete_image') as delete_image:
            self.assertTrue(hard_delete_product(product.id))
        delete_image.assert_not_called()
        self.assertFalse(hard_delete_product(product.id))


class ProductQueryTest(ProductServiceTestCase):
    def setUp(self):
        self.pizza = make_product(store_id=1, category_id=10, name="Pizza Napoli")
        self.soup = make_product(store_id=2, category_id=20, name="Tomato Soup")
        self.hidden = make_product(store_id=1, category_id=10, name="Secret Pizza", is_available=False)

    def test_available_newest_first(self):
        page = list_available_products()
        self.assertEqual([p.id for p in page.items], [self.soup.id, self.pizza.id])

    def test_by_store_and_category(self):
        self.assertEqual([p.id for p in list_products_by_store(1).items], [self.pizza.id])
        self.assertEqual([p.id for p in list_products_by_category(20).items], [self.soup.id])

    def test_search_is_case_insensitive(self):
        self.assertEqual([p.id for p in search_products("PIZZA").items], [self.pizza.id])

    def test_briefs(self):
        briefs = list_product_briefs_by_store(1).items
        self.assertEqual(len(briefs), 1)
        self.assertEqual(briefs[0].name, "Pizza Napoli")
        self.assertFalse(hasattr(briefs[0], 'store_id'))
