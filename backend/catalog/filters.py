import django_filters
from django.conf import settings
from django.db.models import Q, F, Case, When, IntegerField, Value
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for Product model using django-filter"""

    # Basic search - searches across name, SKU, description, category
    search = django_filters.CharFilter(method='filter_search', label='Search')

    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    active = django_filters.BooleanFilter(field_name='is_active')
    available = django_filters.BooleanFilter(field_name='is_available')
    track_stock = django_filters.BooleanFilter(field_name='track_stock')
    gst_type = django_filters.ChoiceFilter(field_name='gst_type', choices=Product.GST_TYPE_CHOICES)
    min_price = django_filters.NumberFilter(field_name='base_price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='base_price', lookup_expr='lte')

    # Stock status filters
    in_stock = django_filters.BooleanFilter(method='filter_in_stock', label='In Stock')
    low_stock = django_filters.BooleanFilter(method='filter_low_stock', label='Low Stock')
    out_of_stock = django_filters.BooleanFilter(method='filter_out_of_stock', label='Out of Stock')

    class Meta:
        model = Product
        fields = ['search', 'category', 'active', 'available', 'track_stock', 'gst_type',
                  'min_price', 'max_price', 'in_stock', 'low_stock', 'out_of_stock']

    def filter_search(self, queryset, name, value):
        """Match every word of the search term against name, SKU, description or category"""
        words = [w for w in (value or '').split() if w]
        for word in words:
            queryset = queryset.filter(
                Q(name__icontains=word) |
                Q(sku__icontains=word) |
                Q(description__icontains=word) |
                Q(category__name__icontains=word)
            )
        return queryset.distinct() if words else queryset

    def filter_in_stock(self, queryset, name, value):
        if value is None:
            return queryset
        tracked = queryset.filter(track_stock=True)
        return tracked.filter(current_stock__gt=0) if value else tracked.filter(current_stock__lte=0)

    def filter_low_stock(self, queryset, name, value):
        if not value:
            return queryset
        threshold = Case(
            When(min_stock__gt=0, then=F('min_stock')),
            default=Value(settings.STOCK_DEFAULT_MIN_STOCK),
            output_field=IntegerField(),
        )
        return queryset.filter(track_stock=True, current_stock__gt=0).annotate(
            effective_min_stock=threshold
        ).filter(current_stock__lte=F('effective_min_stock'))

    def filter_out_of_stock(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(track_stock=True, current_stock__lte=0)
