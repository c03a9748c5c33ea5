from django.contrib import admin
from .models import MonthlyStock, StockEntry


class StockEntryInline(admin.TabularInline):
    model = StockEntry
    fk_name = 'monthly_stock'
    extra = 0
    fields = ['date', 'entry_type', 'quantity', 'old_stock', 'balance', 'expire_date', 'batch_number',
              'consumed_stock', 'written_off_stock']
    readonly_fields = fields
    can_delete = False
    show_change_link = True


@admin.register(MonthlyStock)
class MonthlyStockAdmin(admin.ModelAdmin):
    list_display = ['product', 'theater', 'year', 'month_number', 'old_stock', 'total_invord_stock',
                    'total_sales', 'total_expired_stock', 'total_damage_stock', 'closing_balance']
    list_filter = ['theater', 'year', 'month_number']
    search_fields = ['product__name', 'product__sku']
    ordering = ['-year', '-month_number']
    # Figures are derived by the stock service
    readonly_fields = ['old_stock', 'total_invord_stock', 'total_sales', 'total_expired_stock',
                       'total_damage_stock', 'closing_balance', 'created_at', 'updated_at']
    inlines = [StockEntryInline]


@admin.register(StockEntry)
class StockEntryAdmin(admin.ModelAdmin):
    list_display = ['date', 'entry_type', 'quantity', 'balance', 'monthly_stock', 'batch_number', 'expire_date',
                    'reference', 'created_by']
    list_filter = ['entry_type', 'date']
    search_fields = ['batch_number', 'reference', 'notes', 'monthly_stock__product__name']
    ordering = ['-date', '-id']
    readonly_fields = ['old_stock', 'balance', 'consumed_stock', 'written_off_stock', 'fifo_details',
                       'source_entry', 'created_at', 'updated_at']
