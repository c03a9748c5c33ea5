from django.contrib import admin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'theater', 'sort_order', 'is_active', 'created_at']
    list_filter = ['theater', 'is_active']
    search_fields = ['name']
    ordering = ['theater', 'sort_order', 'name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'theater', 'category', 'base_price', 'gst_type',
                    'current_stock', 'min_stock', 'track_stock', 'is_active']
    list_filter = ['theater', 'category', 'gst_type', 'track_stock', 'is_active']
    search_fields = ['name', 'sku', 'description']
    readonly_fields = ['current_stock', 'created_at', 'updated_at']
