"""
URL configuration for the theater canteen backend.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Theater Canteen Admin Panel"
admin.site.site_title = "Theater Canteen Admin Portal"
admin.site.index_title = "Welcome to the Theater Canteen Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.theaters.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.inventory.urls')),
    path('api/v1/', include('backend.orders.urls')),
]
