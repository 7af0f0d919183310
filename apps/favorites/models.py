from django.db import models

from apps.stores.models import Store


class FavoriteStore(models.Model):
    """A store a user marked as favorite."""
    user_id = models.BigIntegerField()  # No FK - users live in the auth service
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name='favorites')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'favorite_stores'
        constraints = [
            models.UniqueConstraint(fields=['user_id', 'store'], name='uk_user_store'),
        ]
        indexes = [
            models.Index(fields=['user_id'], name='idx_favorite_user_id'),
            models.Index(fields=['store'], name='idx_favorite_store_id'),
            models.Index(fields=['user_id', 'store'], name='idx_favorite_user_store'),
        ]

    def __str__(self):
        return f"User {self.user_id} -> {self.store_id}"
