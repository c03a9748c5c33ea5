"""
Theater-scoped role permissions.

Every theater route carries a ``theater_id`` URL kwarg. Superusers and staff can
reach every theater; everyone else needs an active membership whose role grants
the capability the view asks for.
"""
import logging

from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import TheaterUser

logger = logging.getLogger(__name__)

CAPABILITIES = (
    'view_stock',
    'manage_stock',
    'manage_products',
    'manage_orders',
    'view_reports',
    'manage_users',
)

ROLE_CAPABILITIES = {
    TheaterUser.ROLE_ADMIN: frozenset(CAPABILITIES),
    TheaterUser.ROLE_MANAGER: frozenset({
        'view_stock', 'manage_stock', 'manage_products', 'manage_orders', 'view_reports',
    }),
    TheaterUser.ROLE_STAFF: frozenset({'view_stock', 'manage_orders'}),
    TheaterUser.ROLE_KIOSK: frozenset({'manage_orders'}),
}


def is_platform_admin(user):
    return bool(user and user.is_authenticated and (user.is_superuser or user.is_staff))


def user_theater_role(user, theater_id):
    """Role of the user in the theater, or None without an active membership"""
    if not user or not user.is_authenticated:
        return None
    return TheaterUser.objects.filter(
        user=user, theater_id=theater_id, is_active=True, theater__is_active=True
    ).values_list('role', flat=True).first()


def has_capability(user, theater_id, capability=None):
    """Check whether the user may act on the theater (optionally with a capability)"""
    if is_platform_admin(user):
        return True
    role = user_theater_role(user, theater_id)
    if role is None:
        return False
    if capability is None:
        return True
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def accessible_theater_ids(user, capability=None):
    """Ids of theaters where the user holds the capability (all roles when None)"""
    memberships = TheaterUser.objects.filter(user=user, is_active=True, theater__is_active=True)
    return [
        theater_id for theater_id, role in memberships.values_list('theater_id', 'role')
        if capability is None or capability in ROLE_CAPABILITIES.get(role, frozenset())
    ]


class HasTheaterAccess(BasePermission):
    """Grants access to platform admins and active members of the theater in the URL"""
    capability = None
    write_capability = None
    message = 'You do not have access to this theater.'

    def required_capability(self, request):
        if request.method not in SAFE_METHODS and self.write_capability:
            return self.write_capability
        return self.capability

    def has_permission(self, request, view):
        theater_id = getattr(view, 'kwargs', {}).get('theater_id')
        if theater_id is None:
            return is_platform_admin(request.user)
        capability = self.required_capability(request)
        allowed = has_capability(request.user, theater_id, capability)
        if not allowed:
            if capability:
                self.message = f"You need the {capability} permission for this theater."
            logger.warning(
                f"User {getattr(request.user, 'username', None)} denied "
                f"{capability or 'access'} on theater {theater_id}"
            )
        return allowed


def require_capability(capability, write_capability=None):
    """
    Build a HasTheaterAccess subclass narrowed to a capability.
    ``write_capability`` applies to unsafe methods (POST/PUT/PATCH/DELETE).
    """
    for name in (capability, write_capability):
        if name is not None and name not in CAPABILITIES:
            raise ValueError(f"Unknown capability: {name}")
    return type(
        f"HasTheaterAccess_{capability}",
        (HasTheaterAccess,),
        {
            'capability': capability,
            'write_capability': write_capability,
        },
    )
