from django.urls import path
from .views import (
    category_list_create, category_detail,
    product_list_create, product_detail,
)

urlpatterns = [
    path('theaters/<int:theater_id>/categories/', category_list_create, name='category-list-create'),
    path('theaters/<int:theater_id>/categories/<int:pk>/', category_detail, name='category-detail'),
    path('theaters/<int:theater_id>/products/', product_list_create, name='product-list-create'),
    path('theaters/<int:theater_id>/products/<int:pk>/', product_detail, name='product-detail'),
]
