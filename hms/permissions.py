"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

ADMIN_ROLES = {"admin", "sub_admin", "master_admin"}
STAFF_ROLES = {"doctor", "receptionist"} | ADMIN_ROLES


def role_of(request) -> str | None:
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class HasRole(BasePermission):
    """Base class: allow users whose role is in ``roles``."""
    roles: set[str] = set()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return role_of(request) in self.roles


class IsStaffRole(HasRole):
    """Any clinic staff member."""
    roles = STAFF_ROLES


class IsAdminRole(HasRole):
    """Allow access only to users with an administrative role."""
    roles = ADMIN_ROLES


class IsDoctorOrAdmin(HasRole):
    roles = {"doctor"} | ADMIN_ROLES


class IsReceptionistOrAdmin(HasRole):
    roles = {"receptionist"} | ADMIN_ROLES


class ReadOnly(BasePermission):
    """Allow read-only access (GET, HEAD, OPTIONS)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return request.method in SAFE_METHODS


def is_admin(user) -> bool:
    return getattr(user, "role", None) in ADMIN_ROLES


class StaffReadsRoleWrites(BasePermission):
    """Any staff member may read; only ``write_roles`` may change data."""
    write_roles: set[str] = set()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        role = role_of(request)
        if request.method in SAFE_METHODS:
            return role in STAFF_ROLES
        return role in self.write_roles


class ReceptionWrites(StaffReadsRoleWrites):
    write_roles = IsReceptionistOrAdmin.roles


class DoctorWrites(StaffReadsRoleWrites):
    write_roles = IsDoctorOrAdmin.roles


class ClinicianWrites(StaffReadsRoleWrites):
    """Bedside data: recorded by doctors and receptionists, read by all staff."""
    write_roles = {"doctor", "receptionist"}
