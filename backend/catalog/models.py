from decimal import Decimal

from django.conf import settings
from django.db import models


class Category(models.Model):
    """Product categories"""
    theater = models.ForeignKey('theaters.Theater', on_delete=models.CASCADE, related_name='categories')
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    sort_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['sort_order', 'name']
        unique_together = [['theater', 'name']]


class Product(models.Model):
    """Canteen product. ``current_stock`` mirrors the latest monthly ledger closing balance."""
    GST_INCLUDE = 'INCLUDE'
    GST_EXCLUDE = 'EXCLUDE'
    GST_TYPE_CHOICES = [
        (GST_INCLUDE, 'Tax included in price'),
        (GST_EXCLUDE, 'Tax added on top of price'),
    ]

    theater = models.ForeignKey('theaters.Theater', on_delete=models.CASCADE, related_name='products')
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    name = models.CharField(max_length=200, db_index=True)
    sku = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    description = models.TextField(blank=True)
    unit = models.CharField(max_length=20, default='pcs')
    base_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))  # e.g., 5.00 for 5%
    gst_type = models.CharField(max_length=10, choices=GST_TYPE_CHOICES, default=GST_EXCLUDE)
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    track_stock = models.BooleanField(default=True)
    current_stock = models.IntegerField(default=0)
    min_stock = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku or 'NO-SKU'})"

    @property
    def low_stock_threshold(self):
        """Configured minimum, or the global default when none is set"""
        return self.min_stock if self.min_stock > 0 else settings.STOCK_DEFAULT_MIN_STOCK

    @property
    def stock_status(self):
        if not self.track_stock:
            return 'untracked'
        if self.current_stock <= 0:
            return 'out_of_stock'
        if self.current_stock <= self.low_stock_threshold:
            return 'low_stock'
        return 'in_stock'

    class Meta:
        db_table = 'products'
        constraints = [
            models.UniqueConstraint(fields=['theater', 'sku'], name='unique_product_sku_per_theater'),
        ]
        indexes = [
            models.Index(fields=['theater', 'is_active'], name='idx_product_theater_active'),
        ]
