"""
Integration tests for store API endpoints.
Tests envelopes, role checks, ownership and multipart creation.
"""
import json
import shutil
import tempfile
from decimal import Decimal

from django.test import TestCase, Client, override_settings

from apps.core.geocoding import get_geocoding_service
from apps.identity.jwt_auth import create_access_token
from apps.identity.roles import UserRole
from apps.stores.models import Store
from .factories import make_image_file, make_store

MEDIA_ROOT = tempfile.mkdtemp()

BUSINESS_HEADERS = {'HTTP_X_USER_ID': '11', 'HTTP_X_USER_ROLE': UserRole.BUSINESS.value}
USER_HEADERS = {'HTTP_X_USER_ID': '12', 'HTTP_X_USER_ROLE': UserRole.USER.value}


@override_settings(MAPBOX_ACCESS_TOKEN='', IMAGE_STORAGE_BACKEND='local', MEDIA_ROOT=MEDIA_ROOT)
class StoreAPITest(TestCase):
    """Test store API endpoints."""

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.client = Client()
        get_geocoding_service.cache_clear()

    def tearDown(self):
        get_geocoding_service.cache_clear()

    def _simple_payload(self, **overrides):
        payload = {
            'name': "Sushi Bar",
            'description': "Fresh rolls",
            'address': {'street': "Khreshchatyk 1", 'city': "Kyiv", 'country': "Ukraine"},
            'email': "sushi@example.com",
            'delivery_radius': 7,
            'delivery_fee': "4.50",
            'estimated_delivery_time': 45,
        }
        payload.update(overrides)
        return payload

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def test_list_envelope(self):
        make_store(name="Alpha")
        response = self.client.get('/api/stores?page=0&size=10')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['total_count'], 1)
        self.assertEqual(data['current_page'], 0)
        self.assertEqual(data['page_size'], 10)
        self.assertFalse(data['has_next'])
        self.assertEqual(data['stores'][0]['name'], "Alpha")
        self.assertEqual(data['stores'][0]['address']['city'], "Berlin")
        self.assertIn('timestamp', data)

    def test_get_store_found_and_missing(self):
        store = make_store(name="Found")
        response = self.client.get(f'/api/stores/{store.id}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['store']['name'], "Found")

        response = self.client.get('/api/stores/424242')
        self.assertEqual(response.status_code, 404)
        data = response.json()
        self.assertIsNone(data['store'])
        self.assertFalse(data['success'])
        self.assertEqual(data['message'], "Store not found with ID: 424242")

    def test_my_stores_requires_user(self):
        response = self.client.get('/api/stores/my')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['detail'], "Authentication required")

    def test_my_stores_with_bearer_token(self):
        make_store(owner_id=11, name="Mine")
        make_store(owner_id=99, name="Theirs")
        token = create_access_token(11, "biz@example.com", UserRole.BUSINESS)
        response = self.client.get('/api/stores/my', HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([s['name'] for s in response.json()['stores']], ["Mine"])

    def test_owner_stores(self):
        make_store(owner_id=21)
        response = self.client.get('/api/stores/owner/21')
        self.assertEqual(response.json()['total_count'], 1)

    def test_ui_stores(self):
        make_store(rating=Decimal('4.70'))
        response = self.client.get('/api/stores/ui')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['total_count'], 1)
        self.assertEqual(set(data['stores'][0]), {'id', 'name', 'pic_url', 'rating', 'estimated_delivery_time'})
        self.assertEqual(data['stores'][0]['rating'], 4.7)

    def test_nearby_stores(self):
        make_store(latitude=Decimal('52.52000000'), longitude=Decimal('13.40500000'))
        response = self.client.get('/api/stores/nearby?lat=52.52&lon=13.40&radius_km=5')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['total_count'], 1)
        self.assertIn('distance_km', data['stores'][0])

    def test_nearby_rejects_bad_latitude(self):
        response = self.client.get('/api/stores/nearby?lat=120&lon=13.40')
        self.assertEqual(response.status_code, 422)

    def test_health(self):
        response = self.client.get('/api/stores/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), "Stores API is up and running!")

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def test_create_simple_requires_business_role(self):
        response = self.client.post(
            '/api/stores/simple', json.dumps(self._simple_payload()),
            content_type='application/json', **USER_HEADERS,
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(Store.objects.count(), 0)

    def test_create_simple_as_business(self):
        response = self.client.post(
            '/api/stores/simple', json.dumps(self._simple_payload()),
            content_type='application/json', **BUSINESS_HEADERS,
        )
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['owner_id'], 11)
        self.assertEqual(data['address']['latitude'], 50.4501)
        self.assertEqual(data['delivery_fee'], 4.5)
        self.assertEqual(data['rating'], 0)

    def test_create_simple_validates_bounds(self):
        response = self.client.post(
            '/api/stores/simple', json.dumps(self._simple_payload(delivery_radius=80)),
            content_type='application/json', **BUSINESS_HEADERS,
        )
        self.assertEqual(response.status_code, 422)

    def test_create_multipart_with_image(self):
        form = {
            'name': "Bakery",
            'street': "Unter den Linden 5",
            'city': "Berlin",
            'delivery_fee': "1.50",
            'image': make_image_file("bread.png", fmt="PNG", content_type="image/png"),
        }
        response = self.client.post('/api/stores', form, **BUSINESS_HEADERS)
        self.assertEqual(response.status_code, 201)
        store = Store.objects.get(name="Bakery")
        self.assertTrue(store.pic_id.startswith("stores/"))
        self.assertEqual(store.city, "Berlin")

    def test_create_multipart_rejects_bad_image_type(self):
        form = {
            'name': "Bakery",
            'street': "Unter den Linden 5",
            'city': "Berlin",
            'image': make_image_file("bread.bmp", fmt="BMP", content_type="image/bmp"),
        }
        response = self.client.post('/api/stores', form, **BUSINESS_HEADERS)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()['detail'],
            "Invalid image format. Only JPG, PNG, GIF, WEBP are allowed",
        )

    def test_update_by_owner_and_stranger(self):
        store = make_store(owner_id=11)
        body = json.dumps({'name': "New Name", 'phone': "+4930123456"})

        response = self.client.put(f'/api/stores/{store.id}', body, content_type='application/json',
                                   HTTP_X_USER_ID='55', HTTP_X_USER_ROLE='ROLE_BUSINESS')
        self.assertEqual(response.status_code, 403)

        response = self.client.put(f'/api/stores/{store.id}', body, content_type='application/json',
                                   **BUSINESS_HEADERS)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['name'], "New Name")

    def test_update_rejects_bad_phone(self):
        store = make_store(owner_id=11)
        response = self.client.put(f'/api/stores/{store.id}', json.dumps({'phone': "0123"}),
                                   content_type='application/json', **BUSINESS_HEADERS)
        self.assertEqual(response.status_code, 422)

    def test_update_ignores_explicit_nulls(self):
        store = make_store(owner_id=11, name="Keep Me")
        response = self.client.put(f'/api/stores/{store.id}', json.dumps({'name': None, 'delivery_radius': 9}),
                                   content_type='application/json', **BUSINESS_HEADERS)
        self.assertEqual(response.status_code, 200)
        store.refresh_from_db()
        self.assertEqual(store.name, "Keep Me")
        self.assertEqual(store.delivery_radius, 9)

    def test_update_missing_store(self):
        response = self.client.put('/api/stores/999999', json.dumps({'name': "X"}),
                                   content_type='application/json', **BUSINESS_HEADERS)
        self.assertEqual(response.status_code, 404)

    def test_delete_soft_deletes(self):
        store = make_store(owner_id=11)
        response = self.client.delete(f'/api/stores/{store.id}', **BUSINESS_HEADERS)
        self.assertEqual(response.status_code, 204)
        store.refresh_from_db()
        self.assertFalse(store.is_active)

        response = self.client.delete(f'/api/stores/{store.id}', **BUSINESS_HEADERS)
        self.assertEqual(response.status_code, 404)
