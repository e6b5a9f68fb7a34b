import logging

from rest_framework.permissions import AllowAny, BasePermission

from core.models import User

logger = logging.getLogger("security.authorization")

ALL_ROLES = {User.Role.STAFF, User.Role.TECHNICIAN, User.Role.ADMIN}
FRONT_DESK = {User.Role.STAFF, User.Role.ADMIN}

ROLE_CAPABILITY_MATRIX = {
    "repairs.view": ALL_ROLES,
    "repairs.manage": ALL_ROLES,
    "repairs.delete": {User.Role.ADMIN},
    "warranty.manage": FRONT_DESK,
    "warranty.void": {User.Role.ADMIN},
    "billing.view": FRONT_DESK,
    "billing.manage": FRONT_DESK,
    "billing.delete": {User.Role.ADMIN},
    "customers.view": FRONT_DESK,
    "customers.manage": FRONT_DESK,
    "catalog.manage": {User.Role.ADMIN},
    "contacts.manage": FRONT_DESK,
    "settings.manage": {User.Role.ADMIN},
    "analytics.view": FRONT_DESK,
    "admin.records.manage": {User.Role.ADMIN},
}


def get_user_role(user):
    if not user or not user.is_authenticated:
        return None
    if user.is_superuser:
        return User.Role.ADMIN
    role = getattr(user, "role", None)
    if role:
        return role
    if getattr(user, "is_staff", False):
        return User.Role.ADMIN
    return User.Role.STAFF


def user_has_capability(user, capability):
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    allowed_roles = ROLE_CAPABILITY_MATRIX.get(capability)
    if not allowed_roles:
        return False
    return get_user_role(user) in allowed_roles


class RoleCapabilityPermission(BasePermission):
    """Permission class that validates role capability by action/method and logs denied attempts."""

    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        capability_map = getattr(view, "permission_action_map", {})
        action_key = getattr(view, "action", None) or request.method.lower()
        capability = capability_map.get(action_key)
        if capability is None:
            return True

        allowed = user_has_capability(request.user, capability)
        if not allowed:
            logger.warning(
                "permission_denied capability=%s user=%s role=%s method=%s path=%s view=%s action=%s",
                capability,
                getattr(request.user, "username", "anonymous"),
                get_user_role(request.user),
                request.method,
                request.path,
                view.__class__.__name__,
                action_key,
            )
        return allowed


class PublicActionsMixin:
    """Open the listed view actions to anonymous visitors of the shop website."""

    public_actions = ()

    def get_permissions(self):
        action_key = getattr(self, "action", None) or self.request.method.lower()
        if action_key in self.public_actions:
            return [AllowAny()]
        return super().get_permissions()
