"""
URL configuration for the Delivery Catalog service.
"""
from django.contrib import admin
from django.urls import path
from django.conf import settings
from django.conf.urls.static import static
from ninja import NinjaAPI

api = NinjaAPI(
    title="Delivery Catalog API",
    version="1.0.0",
    description="Stores, products, categories and favorites for the delivery marketplace",
    docs_url="/docs",
)

from apps.identity.api import router as diagnostics_router
from apps.stores.api import router as stores_router
from apps.products.api import router as products_router
from apps.categories.api import router as categories_router
from apps.favorites.api import router as favorites_router

api.add_router("/test", diagnostics_router)
api.add_router("/stores", stores_router)
api.add_router("/products", products_router)
api.add_router("/categories", categories_router)
api.add_router("/favorites", favorites_router)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', api.urls),
]

# Serve locally stored images in development
if settings.DEBUG:
    urlpatterns += static(
        getattr(settings, 'MEDIA_URL', '/media/'),
        document_root=getattr(settings, 'MEDIA_ROOT', settings.BASE_DIR / 'media')
    )
