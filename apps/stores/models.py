from decimal import Decimal
from django.db import models

from apps.core.dtos import Address, format_address


class Store(models.Model):
    """
    A merchant on the marketplace.

    The address is stored as embedded columns; `full_address` is filled in
    on save when the caller did not provide one.
    """
    owner_id = models.BigIntegerField()  # No FK - users live in the auth service
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True, null=True)

    # Address
    street = models.CharField(max_length=200)
    city = models.CharField(max_length=100)
    region = models.CharField(max_length=100, blank=True, null=True)
    country = models.CharField(max_length=100, blank=True, null=True)
    postal_code = models.CharField(max_length=20, blank=True, null=True)
    latitude = models.DecimalField(max_digits=10, decimal_places=8)
    longitude = models.DecimalField(max_digits=11, decimal_places=8)
    full_address = models.CharField(max_length=500, blank=True)

    phone = models.CharField(max_length=20, blank=True, null=True)
    email = models.CharField(max_length=100, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal('0.00'))

    # Delivery
    delivery_radius = models.IntegerField(help_text="Kilometers")
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2)
    estimated_delivery_time = models.IntegerField(help_text="Minutes")

    pic_url = models.CharField(max_length=500)
    pic_id = models.CharField(max_length=255, unique=True, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stores'
        indexes = [
            models.Index(fields=['owner_id', 'is_active'], name='idx_store_owner_active'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.full_address:
            self.full_address = format_address(self.street, self.city, self.region, self.country)
        super().save(*args, **kwargs)

    @property
    def address(self) -> Address:
        return Address(
            street=self.street,
            city=self.city,
            latitude=self.latitude,
            longitude=self.longitude,
            region=self.region,
            country=self.country,
            postal_code=self.postal_code,
            full_address=self.full_address,
        )

    def set_address(self, address: Address) -> None:
        self.street = address.street
        self.city = address.city
        self.region = address.region
        self.country = address.country
        self.postal_code = address.postal_code
        self.latitude = address.latitude
        self.longitude = address.longitude
        self.full_address = address.full_address or ''
