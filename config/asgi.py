"""
ASGI config for the Delivery Catalog service.

Works with any ASGI server (Uvicorn, Daphne).
"""
import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

from django.core.asgi import get_asgi_application

# Initialize Django at import time so the first request does not pay for it
application = get_asgi_application()
