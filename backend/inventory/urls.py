from django.urls import path
from .views import (
    product_stock, stock_entry_detail, clear_month, rebuild_product_stock,
    theater_stock_overview, export_product_stock, export_theater_stock,
)

urlpatterns = [
    # Excel exports
    path('stock/excel/<int:theater_id>/', export_theater_stock, name='stock-excel-theater'),
    path('stock/excel/<int:theater_id>/<int:product_id>/', export_product_stock, name='stock-excel-product'),

    # Monthly ledger
    path('stock/<int:theater_id>/', theater_stock_overview, name='stock-theater-overview'),
    path('stock/<int:theater_id>/<int:product_id>/', product_stock, name='stock-product'),
    path('stock/<int:theater_id>/<int:product_id>/clear-month/', clear_month, name='stock-clear-month'),
    path('stock/<int:theater_id>/<int:product_id>/rebuild/', rebuild_product_stock, name='stock-rebuild'),
    path('stock/<int:theater_id>/<int:product_id>/<int:entry_id>/', stock_entry_detail, name='stock-entry-detail'),
]
