from django.contrib import admin
from .models import Category


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'sort_order', 'is_active', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['name', 'description']
    ordering = ['sort_order']
