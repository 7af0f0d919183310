"""Favorites: per-user favorite stores."""
