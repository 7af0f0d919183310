from decimal import Decimal
from django.db import models


class Product(models.Model):
    """A menu item sold by a store, classified under a category."""
    store_id = models.BigIntegerField(db_index=True)  # No FK - modular boundary
    category_id = models.BigIntegerField(db_index=True)  # No FK - modular boundary
    name = models.CharField(max_length=200)
    description = models.CharField(max_length=1000, blank=True, null=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    pic_url = models.CharField(max_length=500)
    pic_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    is_popular = models.BooleanField(default=False)
    is_available = models.BooleanField(default=True)
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'

    def __str__(self):
        return self.name

    @property
    def has_discount(self) -> bool:
        return self.discount_price is not None and self.discount_price > 0

    @property
    def final_price(self) -> Decimal:
        return self.discount_price if self.has_discount else self.price
