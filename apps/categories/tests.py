import json
import shutil
import tempfile
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase, Client, override_settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test.client import BOUNDARY, MULTIPART_CONTENT, encode_multipart

from apps.core.exceptions import DuplicateEntityError
from apps.core.storage_service import INVALID_FORMAT_MESSAGE
from apps.stores.tests.factories import make_image_file
from .dtos import CategoryIn
from .models import Category
from .services import (
    category_stats,
    create_category,
    delete_category,
    exists_active_category_by_name,
    get_category_brief,
    list_active_categories,
    list_all_category_briefs,
    list_category_briefs_by_ids,
    search_categories,
    toggle_category_status,
    update_category,
)

MEDIA_ROOT = tempfile.mkdtemp()

ADMIN = {'HTTP_X_USER_ID': '1', 'HTTP_X_USER_ROLE': 'ROLE_ADMIN'}
BUSINESS = {'HTTP_X_USER_ID': '2', 'HTTP_X_USER_ROLE': 'ROLE_BUSINESS'}


@override_settings(IMAGE_STORAGE_BACKEND='local', MEDIA_ROOT=MEDIA_ROOT)
class CategoryServiceTest(TestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def test_create_with_defaults(self):
        category = create_category(CategoryIn(name="Pizza"))
        self.assertTrue(category.is_active)
        self.assertEqual(category.sort_order, 0)

    def test_duplicate_name_is_case_insensitive(self):
        create_category(CategoryIn(name="Sushi"))
        with self.assertRaises(DuplicateEntityError) as ctx:
            create_category(CategoryIn(name="SUSHI"))
        self.assertEqual(str(ctx.exception), "Category with name 'SUSHI' already exists")

    def test_inactive_name_can_be_reused(self):
        Category.objects.create(name="Burgers", is_active=False)
        self.assertFalse(exists_active_category_by_name("burgers"))
        create_category(CategoryIn(name="Burgers"))

    def test_create_with_image_upload(self):
        category = create_category(CategoryIn(name="Drinks"), image_file=make_image_file("cola.jpg"))
        row = Category.objects.get(id=category.id)
        self.assertTrue(row.image_id.startswith("categories/"))
        self.assertEqual(category.image_url, row.image_url)

    def test_failed_save_discards_uploaded_image(self):
        with patch('apps.categories.services.storage_service.delete_image', return_value=True) as delete_image, \
                patch.object(Category, 'save', side_effect=DatabaseError("db down")):
            with self.assertRaises(DatabaseError):
                create_category(CategoryIn(name="Salads"), image_file=make_image_file("salad.jpg"))
        delete_image.assert_called_once()
        self.assertTrue(delete_image.call_args.args[0].startswith("categories/"))

    def test_update_keeps_flags_when_omitted(self):
        category = Category.objects.create(name="Soups", is_active=False, sort_order=4)
        updated = update_category(category.id, CategoryIn(name="Soups", description="Hot"))
        self.assertFalse(updated.is_active)
        self.assertEqual(updated.sort_order, 4)
        self.assertEqual(updated.description, "Hot")

    def test_update_rename_checks_duplicates(self):
        Category.objects.create(name="Salads")
        category = Category.objects.create(name="Bowls")
        with self.assertRaises(DuplicateEntityError):
            update_category(category.id, CategoryIn(name="salads"))
        self.assertIsNone(update_category(999, CategoryIn(name="X")))

    def test_update_with_image_deletes_previous(self):
        category = Category.objects.create(name="Desserts", image_id="categories/old")
        with patch('apps.categories.services.storage_service.delete_image', return_value=True) as delete_image:
            update_category(category.id, CategoryIn(name="Desserts"), image_file=make_image_file())
        delete_image.assert_called_once_with("categories/old")

    def test_delete_is_soft_and_survives_storage_errors(self):
        category = Category.objects.create(name="Noodles", image_id="categories/n")
        with patch('apps.categories.services.storage_service.delete_image', side_effect=RuntimeError("cdn")):
            self.assertTrue(delete_category(category.id))
        category.refresh_from_db()
        self.assertFalse(category.is_active)
        self.assertFalse(delete_category(12345))

    def test_toggle(self):
        category = Category.objects.create(name="Tea")
        self.assertFalse(toggle_category_status(category.id).is_active)
        self.assertTrue(toggle_category_status(category.id).is_active)
        self.assertIsNone(toggle_category_status(9999))

    def test_queries_ordered_by_sort_order(self):
        second = Category.objects.create(name="Coffee", sort_order=2)
        first = Category.objects.create(name="Cakes", sort_order=1)
        hidden = Category.objects.create(name="Cocktails", sort_order=0, is_active=False)

        self.assertEqual([c.id for c in list_active_categories()], [first.id, second.id])
        self.assertEqual([b.id for b in list_all_category_briefs()], [hidden.id, first.id, second.id])
        self.assertEqual([c.id for c in search_categories("co")], [second.id])
        self.assertEqual([b.id for b in list_category_briefs_by_ids([second.id, hidden.id])], [hidden.id, second.id])
        self.assertEqual(get_category_brief(first.id).name, "Cakes")
        self.assertIsNone(get_category_brief(424242))

    def test_stats(self):
        Category.objects.create(name="A")
        Category.objects.create(name="B")
        Category.objects.create(name="C", is_active=False)
        stats = {s.is_active: s.count for s in category_stats()}
        self.assertEqual(stats, {True: 2, False: 1})


@override_settings(IMAGE_STORAGE_BACKEND='local', MEDIA_ROOT=MEDIA_ROOT)
class CategoryAPITest(TestCase):
    def setUp(self):
        self.client = Client()
        self.pizza = Category.objects.create(name="Pizza", sort_order=1)
        self.closed = Category.objects.create(name="Closed", sort_order=2, is_active=False)

    def test_list_active(self):
        response = self.client.get('/api/categories')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([c['name'] for c in response.json()], ["Pizza"])

    def test_list_all_is_admin_only(self):
        self.assertEqual(self.client.get('/api/categories/all', **BUSINESS).status_code, 403)
        response = self.client.get('/api/categories/all', **ADMIN)
        self.assertEqual(len(response.json()), 2)

    def test_briefs_by_ids(self):
        response = self.client.post('/api/categories/brief/by-ids', json.dumps([self.pizza.id]),
                                    content_type='application/json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [{'id': self.pizza.id, 'name': "Pizza", 'is_active': True, 'sort_order': 1}])

        response = self.client.post('/api/categories/brief/by-ids', json.dumps([]), content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_count_and_info(self):
        self.assertEqual(self.client.get('/api/categories/count').json(), 1)
        info = self.client.get('/api/categories/info').json()
        self.assertEqual(info, {
            'service_name': "Categories Service",
            'version': "1.0.0",
            'active_categories_count': 1,
            'status': "Active",
        })

    def test_get_and_missing(self):
        self.assertEqual(self.client.get(f'/api/categories/{self.closed.id}').status_code, 200)
        self.assertEqual(self.client.get('/api/categories/9999').status_code, 404)
        self.assertEqual(self.client.get(f'/api/categories/{self.pizza.id}/brief').json()['name'], "Pizza")

    def test_create_is_admin_only(self):
        response = self.client.post('/api/categories', {'name': "Wok"}, **BUSINESS)
        self.assertEqual(response.status_code, 403)

        response = self.client.post('/api/categories', {'name': "Wok", 'sort_order': "3"}, **ADMIN)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['sort_order'], 3)

        response = self.client.post('/api/categories', {'name': "wok"}, **ADMIN)
        self.assertEqual(response.status_code, 409)

    def test_update(self):
        body = encode_multipart(BOUNDARY, {'name': "Pizza & Pasta"})
        response = self.client.put(f'/api/categories/{self.pizza.id}', body, content_type=MULTIPART_CONTENT, **ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['name'], "Pizza & Pasta")

    def test_toggle_envelope(self):
        response = self.client.patch(f'/api/categories/{self.pizza.id}/toggle', **ADMIN)
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['message'], "Category deactivated")
        self.assertFalse(data['data']['is_active'])
        self.assertTrue(data['success'])

    def test_delete(self):
        self.assertEqual(self.client.delete(f'/api/categories/{self.pizza.id}', **ADMIN).status_code, 204)
        self.assertEqual(self.client.delete('/api/categories/9999', **ADMIN).status_code, 404)

    def test_create_rejects_non_image_upload(self):
        notes = SimpleUploadedFile("notes.txt", b"not an image", content_type="text/plain")
        response = self.client.post('/api/categories', {'name': "Soups", 'image': notes}, **ADMIN)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'], INVALID_FORMAT_MESSAGE)
        self.assertFalse(Category.objects.filter(name="Soups").exists())

    @override_settings(MAX_IMAGE_UPLOAD_SIZE=1024 * 1024)
    def test_update_rejects_oversized_image(self):
        big = SimpleUploadedFile("big.png", b"x" * (1024 * 1024 + 1), content_type="image/png")
        body = encode_multipart(BOUNDARY, {'name': "Pizza", 'image': big})
        response = self.client.put(f'/api/categories/{self.pizza.id}', body, content_type=MULTIPART_CONTENT, **ADMIN)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'], "File too large. Maximum size is 1 MB")
        self.pizza.refresh_from_db()
        self.assertIsNone(self.pizza.image_id)
