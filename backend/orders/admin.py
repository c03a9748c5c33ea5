from django.contrib import admin
from .models import QRCode, Order, OrderItem


@admin.register(QRCode)
class QRCodeAdmin(admin.ModelAdmin):
    list_display = ['name', 'theater', 'qr_type', 'seat_class', 'seat', 'is_active']
    list_filter = ['qr_type', 'is_active', 'theater']
    search_fields = ['name', 'seat', 'token']
    readonly_fields = ['token', 'created_at', 'updated_at']


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'quantity', 'unit_price', 'gst_type', 'tax_rate',
                       'discount_percentage', 'discount_amount', 'tax_amount', 'line_total']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'theater', 'source', 'status', 'total', 'created_at']
    list_filter = ['status', 'source', 'payment_method', 'theater']
    search_fields = ['order_number', 'customer_name', 'customer_phone', 'seat']
    readonly_fields = ['order_number', 'subtotal', 'discount_amount', 'tax_amount', 'total',
                       'created_at', 'updated_at', 'cancelled_at']
    inlines = [OrderItemInline]
