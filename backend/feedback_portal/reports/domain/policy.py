"""Authorization policy for operations meant for administrators.

Listing every report, setting the resolved flag and replying are intended to be
administrator operations, but the service has no way to authenticate an
administrator. The service therefore asks an injected ``AuthorizationPolicy``
and never decides by itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol


class Permission(str, Enum):
    LIST_ALL = "reports.list_all"
    SET_RESOLVED = "reports.set_resolved"
    APPEND_REPLY = "reports.append_reply"


@dataclass(frozen=True, slots=True)
class Principal:
    user_id: Optional[str] = None
    roles: tuple[str, ...] = ()

    def has_role(self, role: str) -> bool:
        return role in self.roles


ANONYMOUS = Principal()


class AuthorizationPolicy(Protocol):
    async def is_allowed(self, principal: Principal, permission: Permission) -> bool:
        ...


class OpenPolicy:
    """Allows every caller."""

    async def is_allowed(self, principal: Principal, permission: Permission) -> bool:
        return True


class RolePolicy:
    """Allows callers carrying the configured administrator role."""

    def __init__(self, admin_role: str = "admin") -> None:
        self.admin_role = admin_role

    async def is_allowed(self, principal: Principal, permission: Permission) -> bool:
        return principal.has_role(self.admin_role)


def build_policy(name: str, *, admin_role: str = "admin") -> AuthorizationPolicy:
    if name == "open":
        return OpenPolicy()
    if name == "role":
        return RolePolicy(admin_role)
    raise ValueError(f"unknown authorization policy: {name}")
