"""
User account models.
"""
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.
    Used for dashboard user authentication; the primary key is the owner id
    of every generated site.
    """
    ROLE_STANDARD = 'standard'
    ROLE_ELEVATED = 'elevated'
    ROLE_CHOICES = [
        (ROLE_STANDARD, 'Standard'),
        (ROLE_ELEVATED, 'Elevated'),
    ]

    email = models.EmailField(unique=True)
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_STANDARD,
        help_text="Coarse role flag; gates UI features only"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']

    def __str__(self):
        return self.email

    @property
    def is_elevated(self):
        return self.role == self.ROLE_ELEVATED
