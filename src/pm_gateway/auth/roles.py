"""Access-control collaborator.

The engine only asks "does caller hold role R"; who grants roles is
outside this service.
"""

from typing import Protocol

from src.pm_common.enums import Role
from src.pm_common.errors import PermissionDeniedError


class RoleCheckerProtocol(Protocol):
    def require(self, caller: str, role: Role) -> None: ...


class AllowAllRoleChecker:
    """Default for local development and tests: every caller holds every role."""

    def require(self, caller: str, role: Role) -> None:
        return None


class StaticRoleChecker:
    def __init__(self, grants: dict[str, set[Role]] | None = None) -> None:
        self._grants: dict[str, set[Role]] = {k: set(v) for k, v in (grants or {}).items()}

    def grant(self, caller: str, role: Role) -> None:
        self._grants.setdefault(caller, set()).add(role)

    def require(self, caller: str, role: Role) -> None:
        if role not in self._grants.get(caller, set()):
            raise PermissionDeniedError(caller, role.value)
