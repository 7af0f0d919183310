from django.db import models


class UserRole(models.TextChoices):
    USER = 'ROLE_USER', 'User'
    BUSINESS = 'ROLE_BUSINESS', 'Business'
    ADMIN = 'ROLE_ADMIN', 'Admin'
