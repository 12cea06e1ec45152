"""
Role based permission classes.

The identity service supplies the role on every request; these classes
only check it.  Object-level rules (e.g. "only the admitting doctor may
write notes") live in the services.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import User

ADMIN_ROLES = {User.ROLE_ADMIN}
DOCTOR_ROLES = {User.ROLE_DOCTOR}
STAFF_ROLES = ADMIN_ROLES | DOCTOR_ROLES


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to hospital administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES


class IsDoctorRole(BasePermission):
    """Allow access only to doctors."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in DOCTOR_ROLES


class IsStaffRole(BasePermission):
    """Doctors and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in STAFF_ROLES


class IsStaffReadAdminWrite(BasePermission):
    """Staff may read; only administrators may write (facility registry)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        role = _role(request)
        if request.method in SAFE_METHODS:
            return role in STAFF_ROLES
        return role in ADMIN_ROLES
