"""
Unit tests for store services: creation, geocoding fallback, ownership and nearby search.
"""
import shutil
import tempfile
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError, IntegrityError
from django.test import TestCase, override_settings

from apps.core.exceptions import DuplicateEntityError, GeocodingError
from apps.core.geocoding import get_geocoding_service
from apps.stores.dtos import AddressIn, NearbyStoreQuery, StoreCreateIn, StoreUpdateIn
from apps.stores.models import Store
from apps.stores.services import (
    DEFAULT_STORE_IMAGE_URL,
    StoreAddressError,
    create_store,
    deactivate_store,
    find_nearby_stores,
    get_store,
    list_active_stores,
    list_stores_by_owner,
    list_stores_for_ui,
    update_store,
)
from .factories import make_image_file, make_store

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MAPBOX_ACCESS_TOKEN='', IMAGE_STORAGE_BACKEND='local', MEDIA_ROOT=MEDIA_ROOT)
class StoreServiceTestCase(TestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        get_geocoding_service.cache_clear()

    def tearDown(self):
        get_geocoding_service.cache_clear()


class CreateStoreTest(StoreServiceTestCase):
    def _payload(self, **address):
        address_fields = {'street': "Alexanderplatz 1", 'city': "Berlin", 'country': "Germany"}
        address_fields.update(address)
        return StoreCreateIn(
            name="Pizza Place",
            address=AddressIn(**address_fields),
            delivery_fee=Decimal('3.99'),
        )

    def test_uses_provided_coordinates(self):
        store = create_store(self._payload(latitude=Decimal('52.1'), longitude=Decimal('13.1')), owner_id=5)
        self.assertEqual(store.address.latitude, Decimal('52.10000000'))
        self.assertEqual(store.address.longitude, Decimal('13.10000000'))
        self.assertEqual(store.owner_id, 5)
        self.assertEqual(store.rating, Decimal('0'))

    def test_full_address_generated_on_save(self):
        store = create_store(self._payload(latitude=Decimal('52.1'), longitude=Decimal('13.1')), owner_id=5)
        self.assertEqual(store.address.full_address, "Alexanderplatz 1, Berlin, Germany")

    def test_failed_save_discards_uploaded_image(self):
        with patch('apps.stores.services.storage_service.delete_image', return_value=True) as delete_image, \
                patch.object(Store, 'save', side_effect=DatabaseError("db down")):
            with self.assertRaises(DatabaseError):
                create_store(self._payload(), owner_id=5, image_file=make_image_file())
        delete_image.assert_called_once()
        self.assertTrue(delete_image.call_args.args[0].startswith("stores/"))

    def test_integrity_error_becomes_duplicate(self):
        with patch('apps.stores.services.storage_service.delete_image', return_value=True), \
                patch.object(Store, 'save', side_effect=IntegrityError("unique pic_id")):
            with self.assertRaises(DuplicateEntityError):
                create_store(self._payload(), owner_id=5, image_file=make_image_file())

    def test_falls_back_to_city_table_without_token(self):
        store = create_store(self._payload(), owner_id=5)
        self.assertEqual(store.address.latitude, Decimal('52.5200'))
        self.assertEqual(store.address.longitude, Decimal('13.4050'))

    def test_default_image_when_none_uploaded(self):
        store = create_store(self._payload(), owner_id=9)
        row = Store.objects.get(id=store.id)
        self.assertEqual(row.pic_url, DEFAULT_STORE_IMAGE_URL)
        self.assertTrue(row.pic_id.startswith("default_store_"))
        self.assertIn("_9_", row.pic_id)

    def test_two_default_images_do_not_collide(self):
        first = create_store(self._payload(), owner_id=9)
        second = create_store(self._payload(), owner_id=9)
        self.assertNotEqual(
            Store.objects.get(id=first.id).pic_id,
            Store.objects.get(id=second.id).pic_id,
        )

    def test_uploaded_image_is_stored_in_stores_folder(self):
        store = create_store(self._payload(), owner_id=5, image_file=make_image_file())
        row = Store.objects.get(id=store.id)
        self.assertTrue(row.pic_id.startswith("stores/"))
        self.assertTrue(row.pic_id.endswith(".jpg"))

    def test_geocoding_failure_raises_address_error(self):
        with patch('apps.stores.services.get_geocoding_service') as service:
            service.return_value.create_address_with_coordinates.side_effect = GeocodingError("boom")
            with self.assertRaises(StoreAddressError) as ctx:
                create_store(self._payload(), owner_id=5)
        self.assertIn("Failed to geocode store address", str(ctx.exception))
        self.assertEqual(Store.objects.count(), 0)


class StoreQueryTest(StoreServiceTestCase):
    def test_list_active_newest_first(self):
        older = make_store(name="Older")
        newer = make_store(name="Newer")
        make_store(name="Closed", is_active=False)

        page = list_active_stores(0, 20)
        self.assertEqual([s.id for s in page.items], [newer.id, older.id])
        self.assertFalse(page.has_next)
        self.assertFalse(page.has_previous)

    def test_list_has_next_without_count(self):
        for _ in range(3):
            make_store()
        page = list_active_stores(0, 2)
        self.assertEqual(page.count, 2)
        self.assertTrue(page.has_next)

        last = list_active_stores(1, 2)
        self.assertEqual(last.count, 1)
        self.assertFalse(last.has_next)
        self.assertTrue(last.has_previous)

    def test_list_by_owner(self):
        mine = make_store(owner_id=7)
        make_store(owner_id=8)
        page = list_stores_by_owner(7)
        self.assertEqual([s.id for s in page.items], [mine.id])

    def test_get_store_ignores_inactive(self):
        closed = make_store(is_active=False)
        self.assertIsNone(get_store(closed.id))
        self.assertIsNone(get_store(999999))

    def test_ui_list_is_top_six_by_rating(self):
        for rating in ['1.0', '2.0', '3.0', '4.0', '4.5', '4.8', '5.0']:
            make_store(rating=Decimal(rating))
        items = list_stores_for_ui()
        self.assertEqual(len(items), 6)
        self.assertEqual(items[0].rating, Decimal('5.00'))
        self.assertEqual(items[-1].rating, Decimal('2.00'))


class UpdateStoreTest(StoreServiceTestCase):
    def test_owner_can_update(self):
        store = make_store(owner_id=3)
        updated = update_store(store.id, 3, StoreUpdateIn(name="Renamed", delivery_radius=10))
        self.assertEqual(updated.name, "Renamed")
        self.assertEqual(updated.delivery_radius, 10)

    def test_null_fields_keep_current_values(self):
        store = make_store(owner_id=3, name="Original")
        updated = update_store(store.id, 3, StoreUpdateIn(name=None, email=None, delivery_radius=4))
        self.assertEqual(updated.name, "Original")
        self.assertEqual(updated.delivery_radius, 4)

    def test_non_owner_is_rejected(self):
        store = make_store(owner_id=3)
        with self.assertRaises(PermissionError):
            update_store(store.id, 4, StoreUpdateIn(name="Hijacked"))

    def test_missing_store_returns_none(self):
        self.assertIsNone(update_store(123456, 3, StoreUpdateIn(name="X")))

    def test_changed_address_is_regeocoded(self):
        store = make_store(owner_id=3)
        updated = update_store(store.id, 3, StoreUpdateIn(address=AddressIn(street="Deribasovskaya 1", city="Odesa")))
        self.assertEqual(updated.address.latitude, Decimal('46.4825'))
        self.assertEqual(updated.address.city, "Odesa")

    def test_replacing_image_deletes_previous(self):
        store = make_store(owner_id=3, pic_id="stores/old_image")
        with patch('apps.stores.services.storage_service.delete_image', return_value=True) as delete_image:
            update_store(store.id, 3, StoreUpdateIn(), image_file=make_image_file())
        delete_image.assert_called_once_with("stores/old_image")

    def test_failed_save_keeps_previous_image(self):
        store = make_store(owner_id=3, pic_id="stores/old_image")
        with patch('apps.stores.services.storage_service.delete_image', return_value=True) as delete_image, \
                patch.object(Store, 'save', side_effect=DatabaseError("db down")):
            with self.assertRaises(DatabaseError):
                update_store(store.id, 3, StoreUpdateIn(), image_file=make_image_file())
        delete_image.assert_called_once()
        self.assertNotEqual(delete_image.call_args.args[0], "stores/old_image")
        store.refresh_from_db()
        self.assertEqual(store.pic_id, "stores/old_image")

    def test_replacing_default_image_skips_delete(self):
        store = make_store(owner_id=3)
        with patch('apps.stores.services.storage_service.delete_image') as delete_image:
            update_store(store.id, 3, StoreUpdateIn(), image_file=make_image_file())
        delete_image.assert_not_called()

    def test_deactivate(self):
        store = make_store(owner_id=3)
        with self.assertRaises(PermissionError):
            deactivate_store(store.id, 4)
        self.assertTrue(deactivate_store(store.id, 3))
        self.assertFalse(deactivate_store(store.id, 3))
        self.assertIsNone(get_store(store.id))


class NearbyStoresTest(StoreServiceTestCase):
    def setUp(self):
        super().setUp()
        # Alexanderplatz, Berlin
        self.center = {'lat': 52.5219, 'lon': 13.4132}
        self.close = make_store(
            latitude=Decimal('52.52000000'), longitude=Decimal('13.40500000'),
            rating=Decimal('3.50'), delivery_fee=Decimal('1.00'), estimated_delivery_time=40,
        )
        self.farther = make_store(
            latitude=Decimal('52.48000000'), longitude=Decimal('13.35000000'),
            rating=Decimal('4.90'), delivery_fee=Decimal('4.00'), estimated_delivery_time=20,
        )
        self.potsdam = make_store(latitude=Decimal('52.39060000'), longitude=Decimal('13.06450000'))
        make_store(latitude=Decimal('52.52000000'), longitude=Decimal('13.40500000'), is_active=False)

    def test_radius_and_distance_order(self):
        results = find_nearby_stores(NearbyStoreQuery(radius_km=10, **self.center))
        self.assertEqual([r.store.id for r in results], [self.close.id, self.farther.id])
        self.assertLess(results[0].distance_km, 1)
        self.assertEqual(results[0].distance_km, round(results[0].distance_km, 2))

    def test_sort_by_rating_descending(self):
        results = find_nearby_stores(NearbyStoreQuery(radius_km=10, sort_by='rating', **self.center))
        self.assertEqual([r.store.id for r in results], [self.farther.id, self.close.id])

    def test_sort_by_delivery_time(self):
        results = find_nearby_stores(NearbyStoreQuery(radius_km=10, sort_by='deliveryTime', **self.center))
        self.assertEqual(results[0].store.id, self.farther.id)

    def test_filters_and_limit(self):
        results = find_nearby_stores(NearbyStoreQuery(radius_km=50, max_delivery_fee=Decimal('2'), **self.center))
        self.assertNotIn(self.farther.id, [r.store.id for r in results])

        results = find_nearby_stores(NearbyStoreQuery(radius_km=50, limit=1, **self.center))
        self.assertEqual(len(results), 1)

    def test_wide_radius_includes_potsdam(self):
        results = find_nearby_stores(NearbyStoreQuery(radius_km=50, **self.center))
        self.assertIn(self.potsdam.id, [r.store.id for r in results])
