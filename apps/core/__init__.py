"""
Core app - Shared building blocks for the catalog apps.

This app provides:
- Response envelopes and slice pagination
- Mapbox geocoding with a per-city fallback table
- Product image processing (HEIF/HEIC to JPEG, resize)
- Image storage (Cloudinary, or local storage for development)
"""
