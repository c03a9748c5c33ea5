from django.urls import path
from .views import (
    theater_list_create, theater_detail,
    theater_user_list_create, theater_user_detail,
)

urlpatterns = [
    path('theaters/', theater_list_create, name='theater-list-create'),
    path('theaters/<int:theater_id>/', theater_detail, name='theater-detail'),
    path('theaters/<int:theater_id>/users/', theater_user_list_create, name='theater-user-list-create'),
    path('theaters/<int:theater_id>/users/<int:pk>/', theater_user_detail, name='theater-user-detail'),
]
