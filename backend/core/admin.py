from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from backend.theaters.models import TheaterUser
from .models import User, AuditLog


class TheaterMembershipInline(admin.TabularInline):
    model = TheaterUser
    fk_name = 'user'
    extra = 0
    fields = ['theater', 'role', 'is_active']
    autocomplete_fields = ['theater']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'phone', 'is_active', 'is_staff', 'last_login']
    list_filter = ['is_active', 'is_staff', 'theater_memberships__role']
    search_fields = ['username', 'email', 'phone']
    ordering = ['username']
    inlines = [TheaterMembershipInline]
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Contact', {'fields': ('phone',)}),
    )


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'theater', 'user', 'action', 'object_name', 'object_reference']
    list_filter = ['action', 'theater', 'model_name']
    search_fields = ['user__username', 'object_name', 'object_reference']
    date_hierarchy = 'created_at'
    list_select_related = ['user', 'theater']

    # Audit rows are written by the application only
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
