from decimal import Decimal
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.categories.models import Category
from apps.favorites.models import FavoriteStore
from apps.products.models import Product
from apps.stores.models import Store

SEED_OWNER_ID = 1
SEED_PIC_PREFIX = 'default_seed_'


class Command(BaseCommand):
    help = 'Seeds the database with a sample category, store and products.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clean',
            action='store_true',
            help='Delete existing catalog data before seeding',
        )
        parser.add_argument(
            '--owner-id',
            type=int,
            default=SEED_OWNER_ID,
            help='Owner id for the seeded store',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clean']:
            self.stdout.write(self.style.WARNING('Cleaning database...'))
            self._clean_database()
            self.stdout.write(self.style.SUCCESS('Database cleaned.'))

        category = self._seed_category()
        store = self._seed_store(options['owner_id'])
        created = self._seed_products(store, category)

        self.stdout.write(self.style.SUCCESS(
            f"Seeded category '{category.name}', store '{store.name}' and {created} products."
        ))

    def _clean_database(self):
        FavoriteStore.objects.all().delete()
        Product.objects.all().delete()
        Store.objects.all().delete()
        Category.objects.all().delete()

    def _seed_category(self) -> Category:
        category, _ = Category.objects.get_or_create(
            name='Pizza',
            defaults={'description': 'Italian pizza', 'sort_order': 1},
        )
        return category

    def _seed_store(self, owner_id: int) -> Store:
        store, created = Store.objects.get_or_create(
            pic_id=f'{SEED_PIC_PREFIX}store',
            defaults={
                'owner_id': owner_id,
                'name': 'Napoli Express',
                'description': 'Wood-fired pizza delivered hot',
                'street': 'Khreshchatyk 22',
                'city': 'Kyiv',
                'country': 'Ukraine',
                'latitude': Decimal('50.4501'),
                'longitude': Decimal('30.5234'),
                'phone': '+380441234567',
                'email': 'napoli@example.com',
                'rating': Decimal('4.60'),
                'delivery_radius': 7,
                'delivery_fee': Decimal('2.99'),
                'estimated_delivery_time': 35,
                'pic_url': 'https://via.placeholder.com/800x600/f0f0f0/999999?text=Store+Image',
            },
        )
        if created:
            self.stdout.write(f"  Created store: {store.name}")
        return store

    def _seed_products(self, store: Store, category: Category) -> int:
        items = [
            ('Margherita', Decimal('8.50'), None, True),
            ('Pepperoni', Decimal('10.00'), Decimal('8.90'), True),
            ('Quattro Formaggi', Decimal('11.50'), None, False),
        ]
        created_count = 0
        for name, price, discount, popular in items:
            _, created = Product.objects.get_or_create(
                pic_id=f"{SEED_PIC_PREFIX}{name.lower().replace(' ', '_')}",
                defaults={
                    'store_id': store.id,
                    'category_id': category.id,
                    'name': name,
                    'price': price,
                    'discount_price': discount,
                    'is_popular': popular,
                    'pic_url': 'https://via.placeholder.com/400x400/f0f0f0/999999?text=No+Image',
                },
            )
            if created:
                created_count += 1
                self.stdout.write(f"  Created product: {name}")
        return created_count
