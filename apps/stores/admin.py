from django.contrib import admin
from .models import Store


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner_id', 'city', 'rating', 'delivery_fee', 'is_active', 'created_at']
    list_filter = ['is_active', 'city', 'country']
    search_fields = ['name', 'street', 'city', 'full_address', 'email']
    readonly_fields = ['created_at', 'updated_at']
