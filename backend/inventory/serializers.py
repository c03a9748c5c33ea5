from rest_framework import serializers
from .models import MonthlyStock, StockEntry


class StockEntrySerializer(serializers.ModelSerializer):
    remaining_stock = serializers.IntegerField(read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = StockEntry
        fields = ['id', 'date', 'entry_type', 'quantity', 'old_stock', 'invord_stock', 'sales',
                  'damage_stock', 'expired_stock', 'balance', 'expire_date', 'batch_number', 'notes',
                  'consumed_stock', 'written_off_stock', 'remaining_stock', 'fifo_details',
                  'source_entry', 'reference', 'created_by_username', 'created_at', 'updated_at']
        read_only_fields = fields


class StockEntryInputSerializer(serializers.Serializer):
    """Payload of stock entry create/update requests"""
    date = serializers.DateField(required=False)
    entry_type = serializers.ChoiceField(choices=StockEntry.TYPE_CHOICES)
    quantity = serializers.IntegerField()
    expire_date = serializers.DateField(required=False, allow_null=True)
    batch_number = serializers.CharField(required=False, allow_blank=True, max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_quantity(self, value):
        if value == 0:
            raise serializers.ValidationError("Quantity cannot be zero")
        return value

    def validate(self, attrs):
        entry_type = attrs.get('entry_type')
        quantity = attrs.get('quantity')
        if entry_type and quantity is not None and quantity < 0 and entry_type != StockEntry.TYPE_ADJUSTMENT:
            raise serializers.ValidationError({"quantity": "Only ADJUSTMENT entries may have a negative quantity"})
        entry_date = attrs.get('date')
        expire_date = attrs.get('expire_date')
        if entry_date and expire_date and expire_date < entry_date:
            raise serializers.ValidationError({"expire_date": "Expire date cannot be before the entry date"})
        return attrs


class MonthlyStockSerializer(serializers.ModelSerializer):
    month = serializers.CharField(read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = MonthlyStock
        fields = ['id', 'theater', 'product', 'product_name', 'year', 'month_number', 'month', 'old_stock',
                  'total_invord_stock', 'total_sales', 'total_expired_stock', 'total_damage_stock',
                  'closing_balance', 'updated_at']
        read_only_fields = fields
