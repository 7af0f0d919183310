import json
from decimal import Decimal

from django.test import TestCase, Client

from apps.stores.tests.factories import make_store
from .models import FavoriteStore
from .services import (
    FavoriteError,
    add_to_favorites,
    count_store_favorites,
    count_user_favorites,
    favorite_stats_for_user,
    is_favorite,
    list_recent_user_favorites,
    list_user_active_favorites,
    list_user_favorites,
    list_user_favorites_by_city,
    list_user_favorites_by_min_rating,
    list_user_ids_by_store,
    remove_from_favorites,
    toggle_favorite,
)

USER = {'HTTP_X_USER_ID': '77', 'HTTP_X_USER_ROLE': 'ROLE_USER'}


class FavoriteServiceTest(TestCase):
    def setUp(self):
        self.store = make_store(name="Dumplings", city="Kyiv", rating=Decimal('4.20'))
        self.other = make_store(name="Tacos", city="Berlin", rating=Decimal('4.80'))
        self.closed = make_store(name="Closed", is_active=False)

    def test_add_and_list(self):
        favorite = add_to_favorites(1, self.store.id)
        self.assertEqual(favorite.user_id, 1)
        self.assertEqual(favorite.store.name, "Dumplings")
        self.assertTrue(is_favorite(1, self.store.id))
        self.assertEqual([f.store.id for f in list_user_favorites(1)], [self.store.id])

    def test_add_rejections_in_order(self):
        add_to_favorites(1, self.store.id)
        with self.assertRaisesMessage(FavoriteError, "Store is already in favorites"):
            add_to_favorites(1, self.store.id)
        with self.assertRaisesMessage(FavoriteError, "Store not found"):
            add_to_favorites(1, 987654)
        with self.assertRaisesMessage(FavoriteError, "Cannot add an inactive store to favorites"):
            add_to_favorites(1, self.closed.id)

    def test_existing_favorite_of_deactivated_store_reports_duplicate(self):
        add_to_favorites(1, self.store.id)
        self.store.is_active = False
        self.store.save()
        with self.assertRaisesMessage(FavoriteError, "Store is already in favorites"):
            add_to_favorites(1, self.store.id)

    def test_remove_and_toggle(self):
        self.assertFalse(remove_from_favorites(1, self.store.id))
        self.assertIsNotNone(toggle_favorite(1, self.store.id))
        self.assertIsNone(toggle_favorite(1, self.store.id))
        self.assertFalse(is_favorite(1, self.store.id))

    def test_active_favorites_and_stats(self):
        add_to_favorites(1, self.store.id)
        add_to_favorites(1, self.other.id)
        self.other.is_active = False
        self.other.save()

        self.assertEqual([f.store.id for f in list_user_active_favorites(1)], [self.store.id])
        stats = favorite_stats_for_user(1)
        self.assertEqual((stats.active_count, stats.inactive_count), (1, 1))

    def test_counts_and_user_ids(self):
        add_to_favorites(1, self.store.id)
        add_to_favorites(2, self.store.id)
        add_to_favorites(2, self.other.id)
        self.assertEqual(count_user_favorites(2), 2)
        self.assertEqual(count_store_favorites(self.store.id), 2)
        self.assertEqual(list_user_ids_by_store(self.store.id), [1, 2])

    def test_filters(self):
        add_to_favorites(1, self.store.id)
        add_to_favorites(1, self.other.id)
        self.assertEqual([f.store.id for f in list_user_favorites_by_city(1, "kyiv")], [self.store.id])
        by_rating = list_user_favorites_by_min_rating(1, Decimal('4.0'))
        self.assertEqual([f.store.id for f in by_rating], [self.other.id, self.store.id])
        self.assertEqual([f.store.id for f in list_recent_user_favorites(1, limit=1)], [self.other.id])

    def test_favorites_cascade_with_store(self):
        add_to_favorites(1, self.store.id)
        self.store.delete()
        self.assertEqual(FavoriteStore.objects.count(), 0)


class FavoriteAPITest(TestCase):
    def setUp(self):
        self.client = Client()
        self.store = make_store(name="Falafel")

    def test_requires_user(self):
        response = self.client.get('/api/favorites')
        self.assertEqual(response.status_code, 401)
        data = response.json()
        self.assertFalse(data['success'])
        self.assertEqual(data['message'], "Authentication required")

    def test_add_list_remove(self):
        response = self.client.post(f'/api/favorites/stores/{self.store.id}', **USER)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['data']['store']['name'], "Falafel")

        response = self.client.post(f'/api/favorites/stores/{self.store.id}', **USER)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Store is already in favorites")

        data = self.client.get('/api/favorites', **USER).json()
        self.assertEqual(len(data['data']), 1)
        self.assertEqual(self.client.get('/api/favorites/count', **USER).json()['data'], 1)
        self.assertTrue(self.client.get(f'/api/favorites/stores/{self.store.id}/status', **USER).json()['data'])
        self.assertEqual(self.client.get(f'/api/favorites/stores/{self.store.id}/count', **USER).json()['data'], 1)

        response = self.client.delete(f'/api/favorites/stores/{self.store.id}', **USER)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data'], "removed")

        response = self.client.delete(f'/api/favorites/stores/{self.store.id}', **USER)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], "Store not found in favorites")

    def test_add_with_body(self):
        response = self.client.post('/api/favorites', json.dumps({'store_id': self.store.id}),
                                    content_type='application/json', **USER)
        self.assertEqual(response.status_code, 201)

    def test_add_missing_store(self):
        response = self.client.post('/api/favorites/stores/55555', **USER)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], "Store not found")

    def test_toggle(self):
        response = self.client.put(f'/api/favorites/stores/{self.store.id}/toggle', **USER)
        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(response.json()['data'])

        response = self.client.put(f'/api/favorites/stores/{self.store.id}/toggle', **USER)
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()['data'])
        self.assertEqual(response.json()['message'], "Store removed from favorites")

    def test_active_list(self):
        self.client.post(f'/api/favorites/stores/{self.store.id}', **USER)
        self.store.is_active = False
        self.store.save()
        self.assertEqual(self.client.get('/api/favorites/active', **USER).json()['data'], [])
