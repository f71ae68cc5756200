"""Access policy for every gated API route.

Keys are ``(method, path template)`` exactly as FastAPI reports the matched
route. Routes mounted on a gated router but missing here are denied.
"""
from __future__ import annotations

from carshow.core.authorization import (
    ADMIN_ONLY,
    AUTHENTICATED,
    JUDGE_ONLY,
    REGISTRAR_ONLY,
    VENDOR_ONLY,
    Requirement,
    Role,
    RouteKey,
    any_of,
)

API_PREFIX = "/api"

STAFF = any_of(Role.ADMIN, Role.JUDGE, Role.REGISTRAR)


def _api(method: str, path: str) -> RouteKey:
    return method, API_PREFIX + path


ROUTE_POLICIES: dict[RouteKey, Requirement] = {
    # Session
    _api("GET", "/auth/me"): AUTHENTICATED,
    _api("GET", "/auth/dashboard"): AUTHENTICATED,
    # Self-service profile
    _api("GET", "/profile"): AUTHENTICATED,
    _api("POST", "/profile/photo"): AUTHENTICATED,
    _api("DELETE", "/profile/photo"): AUTHENTICATED,
    _api("PUT", "/profile/email"): AUTHENTICATED,
    _api("PUT", "/profile/password"): AUTHENTICATED,
    # Chat (the handler also requires the principal's chat flag)
    _api("GET", "/chat/access"): AUTHENTICATED,
    # Vehicle owners
    _api("GET", "/user"): AUTHENTICATED,
    _api("GET", "/user/vehicles"): AUTHENTICATED,
    _api("POST", "/user/vehicles"): AUTHENTICATED,
    _api("PUT", "/user/vehicles/{vehicle_id}"): AUTHENTICATED,
    _api("DELETE", "/user/vehicles/{vehicle_id}"): AUTHENTICATED,
    # Staff directory
    _api("GET", "/staff/users"): STAFF,
    # Admin
    _api("GET", "/admin"): ADMIN_ONLY,
    _api("GET", "/admin/users"): ADMIN_ONLY,
    _api("POST", "/admin/users"): ADMIN_ONLY,
    _api("PUT", "/admin/users/{user_id}"): ADMIN_ONLY,
    _api("DELETE", "/admin/users/{user_id}"): ADMIN_ONLY,
    _api("GET", "/admin/vehicles"): ADMIN_ONLY,
    _api("PUT", "/admin/vehicles/{vehicle_id}"): ADMIN_ONLY,
    _api("DELETE", "/admin/vehicles/{vehicle_id}"): ADMIN_ONLY,
    _api("POST", "/admin/backgrounds/{slot}"): ADMIN_ONLY,
    _api("DELETE", "/admin/backgrounds/{slot}"): ADMIN_ONLY,
    # Judge
    _api("GET", "/judge"): JUDGE_ONLY,
    _api("POST", "/judge/users/{user_id}/reset-password"): JUDGE_ONLY,
    # Registrar
    _api("GET", "/registrar"): REGISTRAR_ONLY,
    _api("GET", "/registrar/vehicles"): REGISTRAR_ONLY,
    _api("PUT", "/registrar/vehicles/{vehicle_id}"): REGISTRAR_ONLY,
    _api("POST", "/registrar/users/{user_id}/reset-password"): REGISTRAR_ONLY,
    # Vendor
    _api("GET", "/vendor"): VENDOR_ONLY,
}
