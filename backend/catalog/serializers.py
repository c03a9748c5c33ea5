from decimal import Decimal
from rest_framework import serializers
from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Category
        fields = ['id', 'theater', 'name', 'description', 'sort_order', 'is_active',
                  'product_count', 'created_at', 'updated_at']
        read_only_fields = ['theater', 'created_at', 'updated_at']

    def validate_name(self, value):
        theater = self.context.get('theater')
        if theater is None:
            return value
        existing = Category.objects.filter(theater=theater, name__iexact=value)
        if self.instance:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError("A category with this name already exists")
        return value


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    stock_status = serializers.CharField(read_only=True)
    low_stock_threshold = serializers.IntegerField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'theater', 'category', 'category_name', 'name', 'sku', 'description', 'unit',
                  'base_price', 'tax_rate', 'gst_type', 'discount_percentage',
                  'track_stock', 'current_stock', 'min_stock', 'low_stock_threshold', 'stock_status',
                  'is_active', 'is_available', 'created_at', 'updated_at']
        # current_stock is owned by the stock ledger
        read_only_fields = ['theater', 'current_stock', 'created_at', 'updated_at']

    def validate_sku(self, value):
        if not value:
            return None
        theater = self.context.get('theater')
        if theater is not None:
            existing = Product.objects.filter(theater=theater, sku=value)
            if self.instance:
                existing = existing.exclude(pk=self.instance.pk)
            if existing.exists():
                raise serializers.ValidationError("A product with this SKU already exists")
        return value

    def validate_category(self, value):
        theater = self.context.get('theater')
        if value is not None and theater is not None and value.theater_id != theater.id:
            raise serializers.ValidationError("Category belongs to another theater")
        return value

    def validate_base_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative")
        return value

    def validate_discount_percentage(self, value):
        if value < 0 or value > Decimal('100'):
            raise serializers.ValidationError("Discount must be between 0 and 100")
        return value

    def validate_min_stock(self, value):
        if value < 0:
            raise serializers.ValidationError("Minimum stock cannot be negative")
        return value
