import calendar

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class MonthlyStock(models.Model):
    """
    Stock ledger of one product in one theater for one calendar month.

    ``old_stock`` is the opening balance carried from the previous month's
    closing balance. Totals and ``closing_balance`` are derived from the
    entries by ``StockService.recalculate_balances`` and never edited directly.
    """
    theater = models.ForeignKey('theaters.Theater', on_delete=models.CASCADE, related_name='monthly_stocks')
    product = models.ForeignKey('catalog.Product', on_delete=models.CASCADE, related_name='monthly_stocks')
    year = models.PositiveIntegerField()
    month_number = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(12)])
    old_stock = models.IntegerField(default=0)
    total_invord_stock = models.IntegerField(default=0)
    total_sales = models.IntegerField(default=0)
    total_expired_stock = models.IntegerField(default=0)
    total_damage_stock = models.IntegerField(default=0)
    closing_balance = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product} {self.month} {self.year}"

    @property
    def month(self):
        return calendar.month_name[self.month_number]

    @property
    def period(self):
        return (self.year, self.month_number)

    class Meta:
        db_table = 'monthly_stocks'
        ordering = ['year', 'month_number']
        constraints = [
            models.UniqueConstraint(fields=['theater', 'product', 'year', 'month_number'],
                                    name='unique_monthly_stock_period'),
        ]
        indexes = [
            models.Index(fields=['theater', 'year', 'month_number'], name='idx_monthly_theater_period'),
            models.Index(fields=['product', 'year', 'month_number'], name='idx_monthly_product_period'),
        ]


class StockEntry(models.Model):
    """One ledger line of a monthly stock document"""
    TYPE_ADDED = 'ADDED'
    TYPE_SOLD = 'SOLD'
    TYPE_EXPIRED = 'EXPIRED'
    TYPE_DAMAGED = 'DAMAGED'
    TYPE_RETURNED = 'RETURNED'
    TYPE_ADJUSTMENT = 'ADJUSTMENT'
    TYPE_CHOICES = [
        (TYPE_ADDED, 'Stock Added'),
        (TYPE_SOLD, 'Sold'),
        (TYPE_EXPIRED, 'Expired'),
        (TYPE_DAMAGED, 'Damaged'),
        (TYPE_RETURNED, 'Returned'),
        (TYPE_ADJUSTMENT, 'Adjustment'),
    ]
    # Entries that bring in stock FIFO sales can draw from
    BATCH_TYPES = (TYPE_ADDED, TYPE_RETURNED)

    monthly_stock = models.ForeignKey(MonthlyStock, on_delete=models.CASCADE, related_name='entries')
    date = models.DateField(db_index=True)
    entry_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    quantity = models.IntegerField()
    invord_stock = models.IntegerField(default=0)
    sales = models.IntegerField(default=0)
    expired_stock = models.IntegerField(default=0)
    damage_stock = models.IntegerField(default=0)
    old_stock = models.IntegerField(default=0)
    balance = models.IntegerField(default=0)
    expire_date = models.DateField(null=True, blank=True)
    batch_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    consumed_stock = models.IntegerField(default=0)
    written_off_stock = models.IntegerField(default=0)
    fifo_details = models.JSONField(default=list, blank=True)
    source_entry = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='write_offs')
    reference = models.CharField(max_length=100, blank=True, help_text="Order number or other origin of the entry")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='stock_entries')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.entry_type} {self.quantity} on {self.date}"

    @property
    def is_batch(self):
        return self.entry_type in self.BATCH_TYPES

    @property
    def is_auto_expiry(self):
        return self.entry_type == self.TYPE_EXPIRED and self.source_entry_id is not None

    @property
    def remaining_stock(self):
        """Units of a batch not yet sold or written off"""
        if not self.is_batch:
            return 0
        return max(0, self.invord_stock - self.consumed_stock - self.written_off_stock)

    class Meta:
        db_table = 'stock_entries'
        ordering = ['date', 'id']
        verbose_name_plural = 'stock entries'
        indexes = [
            models.Index(fields=['monthly_stock', 'date'], name='idx_entry_monthly_date'),
            models.Index(fields=['entry_type', 'expire_date'], name='idx_entry_type_expire'),
        ]
