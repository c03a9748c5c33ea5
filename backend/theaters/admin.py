from django.contrib import admin
from .models import Theater, TheaterUser


class TheaterUserInline(admin.TabularInline):
    model = TheaterUser
    extra = 0
    autocomplete_fields = ['user']


@admin.register(Theater)
class TheaterAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'email', 'phone', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'code', 'email']
    ordering = ['name']
    inlines = [TheaterUserInline]


@admin.register(TheaterUser)
class TheaterUserAdmin(admin.ModelAdmin):
    list_display = ['user', 'theater', 'role', 'is_active', 'created_at']
    list_filter = ['role', 'is_active']
    search_fields = ['user__username', 'theater__name']
