# backoffice/services/approval/capabilities.py

from typing import Mapping, Protocol

from backoffice.constants.permissions import ROLE_PERMISSIONS


class CapabilityChecker(Protocol):
    def has_capability(self, actor, capability: str) -> bool:
        ...


class RolePermissionChecker:
    """Grants a capability when the actor's role carries the permission."""

    def __init__(self, role_permissions: Mapping[str, frozenset] = ROLE_PERMISSIONS):
        self.role_permissions = role_permissions

    def has_capability(self, actor, capability: str) -> bool:
        if not getattr(actor, "is_active", True):
            return False
        role = (actor.role or "").lower()
        return capability in self.role_permissions.get(role, frozenset())


_default_checker = RolePermissionChecker()


def get_capability_checker() -> CapabilityChecker:
    return _default_checker
