from rest_framework.permissions import BasePermission

OFFICE_ROLES = ('owner', 'admin', 'recept', 'finance')
FINANCE_ROLES = ('owner', 'admin', 'finance')
ADMIN_ROLES = ('owner', 'admin')
FIELD_ROLES = ('worker', 'maintenance')


def has_role(user, *roles):
    """True when the authenticated user carries one of the given roles.

    Superusers pass every role check.
    """
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return getattr(user, 'role', None) in roles


def is_admin_user(user):
    """
    Check if user is an admin user.
    Returns True if:
    - User has the 'owner' or 'admin' role, OR
    - User is superuser/staff (Django admin access)
    """
    if has_role(user, *ADMIN_ROLES):
        return True
    return bool(user and user.is_authenticated and user.is_staff)


def is_field_user(user):
    return not user.is_superuser and getattr(user, 'role', None) in FIELD_ROLES


class IsAdminRole(BasePermission):
    message = 'Only owners and administrators can perform this action.'

    def has_permission(self, request, view):
        return is_admin_user(request.user)


class IsOfficeStaff(BasePermission):
    message = 'Office staff role required.'

    def has_permission(self, request, view):
        return has_role(request.user, *OFFICE_ROLES) or is_admin_user(request.user)


class IsFinanceStaff(BasePermission):
    message = 'Finance role required.'

    def has_permission(self, request, view):
        return has_role(request.user, *FINANCE_ROLES) or is_admin_user(request.user)
