from django.contrib import admin
from .models import FavoriteStore


@admin.register(FavoriteStore)
class FavoriteStoreAdmin(admin.ModelAdmin):
    list_display = ['user_id', 'store', 'created_at']
    list_filter = ['store__is_active', 'store__city']
    search_fields = ['user_id', 'store__name']
    raw_id_fields = ['store']
