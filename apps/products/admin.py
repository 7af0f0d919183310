from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'store_id', 'category_id', 'price', 'discount_price', 'is_available', 'is_popular']
    list_filter = ['is_available', 'is_popular']
    search_fields = ['name', 'description']
    readonly_fields = ['created_at', 'updated_at']
