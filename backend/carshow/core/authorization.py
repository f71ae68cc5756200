"""Role model and the authorization gate.

Every gated route is described once in a route table mapping
``(method, path template)`` to a :class:`Requirement`. The gate consumes that
table for every request; nothing else in the codebase compares role strings.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping

from starlette.routing import compile_path

from .exceptions import AuthenticationFailure, AuthorizationFailure

if TYPE_CHECKING:
    from carshow.schemas.auth import Principal

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Closed set of roles a principal may hold."""

    ADMIN = "admin"
    JUDGE = "judge"
    REGISTRAR = "registrar"
    VENDOR = "vendor"
    USER = "user"

    @classmethod
    def parse(cls, value: object) -> Role | None:
        """Return the matching role, or ``None`` for anything outside the set."""

        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


ALL_ROLES: frozenset[Role] = frozenset(Role)
# Roles that may be granted chat access.
PRIVILEGED_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.JUDGE, Role.REGISTRAR, Role.VENDOR})

ROLE_HOME: dict[Role, str] = {
    Role.ADMIN: "/admin",
    Role.JUDGE: "/judge",
    Role.REGISTRAR: "/registrar",
    Role.VENDOR: "/vendor",
    Role.USER: "/user",
}


def home_for(role: object) -> str:
    parsed = Role.parse(role)
    return ROLE_HOME.get(parsed, "/user") if parsed else "/login"


@dataclass(frozen=True)
class Requirement:
    """Set of roles allowed to use a route."""

    roles: frozenset[Role]

    def allows(self, role: object) -> bool:
        parsed = Role.parse(role)
        return parsed is not None and parsed in self.roles

    def __str__(self) -> str:
        if self.roles == ALL_ROLES:
            return "any authenticated"
        return "any of {" + ", ".join(sorted(role.value for role in self.roles)) + "}"


def any_of(*roles: Role) -> Requirement:
    return Requirement(frozenset(roles))


AUTHENTICATED = Requirement(ALL_ROLES)
ADMIN_ONLY = any_of(Role.ADMIN)
JUDGE_ONLY = any_of(Role.JUDGE)
REGISTRAR_ONLY = any_of(Role.REGISTRAR)
VENDOR_ONLY = any_of(Role.VENDOR)
PRIVILEGED = Requirement(PRIVILEGED_ROLES)


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


RouteKey = tuple[str, str]


class AuthorizationGate:
    """Evaluate route requirements against the request principal."""

    def __init__(self, policies: Mapping[RouteKey, Requirement]) -> None:
        self._policies = dict(policies)
        # Path templates compiled for matching concrete request paths.
        self._patterns: list[tuple[str, re.Pattern[str], Requirement]] = [
            (method, compile_path(template)[0], requirement)
            for (method, template), requirement in self._policies.items()
        ]

    @property
    def routes(self) -> Iterable[RouteKey]:
        return self._policies.keys()

    def requirement_for(self, method: str, path: str) -> Requirement | None:
        method = method.upper()
        if method == "HEAD":
            method = "GET"
        exact = self._policies.get((method, path))
        if exact is not None:
            return exact
        for route_method, pattern, requirement in self._patterns:
            if route_method == method and pattern.match(path):
                return requirement
        return None

    def decide(self, principal: Principal | None, requirement: Requirement | None) -> Decision:
        if principal is None or requirement is None:
            return Decision.DENY
        if not principal.is_active:
            return Decision.DENY
        return Decision.ALLOW if requirement.allows(principal.role) else Decision.DENY

    def check(self, principal: Principal | None, method: str, path: str) -> None:
        """Raise unless ``principal`` may call ``method path``."""

        if principal is None:
            raise AuthenticationFailure("Not authenticated")
        requirement = self.requirement_for(method, path)
        if requirement is None:
            logger.warning("No access policy declared for %s %s; denying", method, path)
        if self.decide(principal, requirement) is Decision.DENY:
            logger.info(
                "Denied %s %s for %s (role=%s, needs %s)",
                method,
                path,
                principal.username,
                principal.role,
                requirement,
            )
            raise AuthorizationFailure()

    @staticmethod
    def is_self(principal: Principal, target_user_id: int) -> bool:
        return principal.id == target_user_id

    @staticmethod
    def ensure_owner(principal: Principal, owner_id: int | None, *, admin_override: bool = True) -> None:
        """Require ``principal`` to own the resource, unless it is an admin."""

        if owner_id is not None and principal.id == owner_id:
            return
        if admin_override and Role.parse(principal.role) is Role.ADMIN:
            return
        raise AuthorizationFailure("Not the owner of this resource")

    @staticmethod
    def can_be_granted_chat(role: object) -> bool:
        return PRIVILEGED.allows(role)
