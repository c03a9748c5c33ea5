from rest_framework import serializers
from backend.catalog.models import Product
from .models import QRCode, Order, OrderItem


class QRCodeSerializer(serializers.ModelSerializer):
    class Meta:
        model = QRCode
        fields = ['id', 'theater', 'name', 'seat_class', 'qr_type', 'seat', 'token', 'is_active',
                  'created_at', 'updated_at']
        read_only_fields = ['theater', 'token', 'created_at', 'updated_at']

    def validate(self, attrs):
        qr_type = attrs.get('qr_type', self.instance.qr_type if self.instance else QRCode.TYPE_SINGLE)
        seat = attrs.get('seat', self.instance.seat if self.instance else '')
        if qr_type == QRCode.TYPE_SINGLE and not seat:
            raise serializers.ValidationError({"seat": "Single seat QR codes need a seat"})
        return attrs


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_name', 'quantity', 'unit_price', 'gst_type', 'tax_rate',
                  'discount_percentage', 'discount_amount', 'tax_amount', 'line_total']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    qr_code_name = serializers.CharField(source='qr_code.name', read_only=True, default=None)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'theater', 'source', 'qr_code', 'qr_code_name', 'seat',
                  'customer_name', 'customer_phone', 'payment_method', 'status',
                  'subtotal', 'discount_amount', 'tax_amount', 'total', 'notes', 'items',
                  'created_by_username', 'created_at', 'updated_at', 'cancelled_at']
        read_only_fields = fields


class OrderItemInputSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class OrderCreateSerializer(serializers.Serializer):
    """Payload of counter and kiosk orders"""
    source = serializers.ChoiceField(choices=[Order.SOURCE_POS, Order.SOURCE_KIOSK], default=Order.SOURCE_POS)
    items = OrderItemInputSerializer(many=True)
    seat = serializers.CharField(required=False, allow_blank=True, max_length=50)
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    customer_phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_CHOICES, default='cash')
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Order must contain at least one item")
        return value


class QROrderCreateSerializer(OrderCreateSerializer):
    """Payload of seat orders placed by scanning a QR code"""
    source = None
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_CHOICES, default='online')


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class MenuProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'unit', 'category', 'category_name', 'base_price',
                  'tax_rate', 'gst_type', 'discount_percentage', 'in_stock']
        read_only_fields = fields

    def get_in_stock(self, obj):
        return not obj.track_stock or obj.current_stock > 0
