from decimal import Decimal

from django.conf import settings
from django.db import models


class Theater(models.Model):
    """A canteen tenant. Every product, ledger and order belongs to exactly one theater."""
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, unique=True)
    email = models.EmailField(blank=True, help_text="Recipient of stock alerts and daily reports")
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('5.00'))
    currency = models.CharField(max_length=3, default='INR')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'theaters'
        ordering = ['name']


class TheaterUser(models.Model):
    """Membership of a user in a theater with a role"""
    ROLE_ADMIN = 'admin'
    ROLE_MANAGER = 'manager'
    ROLE_STAFF = 'staff'
    ROLE_KIOSK = 'kiosk'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Theater Admin'),
        (ROLE_MANAGER, 'Manager'),
        (ROLE_STAFF, 'Staff'),
        (ROLE_KIOSK, 'Kiosk'),
    ]

    theater = models.ForeignKey(Theater, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='theater_memberships')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_STAFF)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user} @ {self.theater} ({self.role})"

    class Meta:
        db_table = 'theater_users'
        unique_together = [['theater', 'user']]
        indexes = [
            models.Index(fields=['user', 'is_active'], name='idx_theateruser_user_active'),
        ]
