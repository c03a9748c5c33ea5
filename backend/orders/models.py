import secrets
import uuid
from decimal import Decimal
from django.db import models
from django.utils import timezone
from backend.catalog.models import Product
from backend.core.models import User
from backend.theaters.models import Theater


def generate_qr_token():
    return secrets.token_urlsafe(16)


class QRCode(models.Model):
    """Seat or screen QR code customers scan to order from their seat"""
    TYPE_SINGLE = 'single'
    TYPE_SCREEN = 'screen'
    TYPE_CHOICES = [
        (TYPE_SINGLE, 'Single Seat'),
        (TYPE_SCREEN, 'Screen'),
    ]

    theater = models.ForeignKey(Theater, on_delete=models.CASCADE, related_name='qr_codes')
    name = models.CharField(max_length=255)
    seat_class = models.CharField(max_length=100, blank=True)
    qr_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_SINGLE)
    seat = models.CharField(max_length=50, blank=True)
    token = models.CharField(max_length=64, unique=True, default=generate_qr_token, editable=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.theater.name} - {self.name}"

    class Meta:
        db_table = 'qr_codes'
        ordering = ['name', 'id']


class Order(models.Model):
    """Canteen order placed at the counter, a kiosk or from a seat"""
    SOURCE_POS = 'pos'
    SOURCE_QR = 'qr'
    SOURCE_KIOSK = 'kiosk'
    SOURCE_CHOICES = [
        (SOURCE_POS, 'Point of Sale'),
        (SOURCE_QR, 'QR Seat Order'),
        (SOURCE_KIOSK, 'Kiosk'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_PREPARING = 'preparing'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_PREPARING, 'Preparing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    PAYMENT_CHOICES = [
        ('cash', 'Cash'),
        ('upi', 'UPI'),
        ('card', 'Card'),
        ('online', 'Online'),
    ]

    order_number = models.CharField(max_length=100, unique=True)
    theater = models.ForeignKey(Theater, on_delete=models.CASCADE, related_name='orders')
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default=SOURCE_POS)
    qr_code = models.ForeignKey(QRCode, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    seat = models.CharField(max_length=50, blank=True)
    customer_name = models.CharField(max_length=255, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_CHOICES, default='cash')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return self.order_number

    @staticmethod
    def generate_order_number():
        order_number = f"ORD-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
        while Order.objects.filter(order_number=order_number).exists():
            order_number = f"ORD-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
        return order_number

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['theater', 'status'], name='idx_order_theater_status'),
            models.Index(fields=['theater', 'created_at'], name='idx_order_theater_created'),
        ]


class OrderItem(models.Model):
    """Order line; price, tax and discount are copied from the product at order time"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, related_name='order_items')
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    gst_type = models.CharField(max_length=10, choices=Product.GST_TYPE_CHOICES, default=Product.GST_EXCLUDE)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    line_total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return f"{self.product_name} x{self.quantity}"

    class Meta:
        db_table = 'order_items'
        ordering = ['id']
