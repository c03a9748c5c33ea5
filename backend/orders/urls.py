from django.urls import path
from . import views

urlpatterns = [
    path('theaters/<int:theater_id>/orders/', views.order_list_create, name='order-list-create'),
    path('theaters/<int:theater_id>/orders/<int:pk>/', views.order_detail, name='order-detail'),
    path('theaters/<int:theater_id>/orders/<int:pk>/status/', views.order_status, name='order-status'),
    path('theaters/<int:theater_id>/qrcodes/', views.qr_code_list_create, name='qrcode-list-create'),
    path('theaters/<int:theater_id>/qrcodes/<int:pk>/', views.qr_code_detail, name='qrcode-detail'),
    path('qr/<str:token>/', views.qr_menu, name='qr-menu'),
    path('qr/<str:token>/orders/', views.qr_order_create, name='qr-order-create'),
]
