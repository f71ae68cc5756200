"""
Unit tests for roles, the route policy table and the authorization gate
"""
import pytest

from carshow.api.policies import ROUTE_POLICIES
from carshow.core.authorization import (
    ADMIN_ONLY,
    AUTHENTICATED,
    JUDGE_ONLY,
    AuthorizationGate,
    Decision,
    Role,
    home_for,
)
from carshow.core.exceptions import AuthenticationFailure, AuthorizationFailure
from carshow.schemas.auth import Principal


def principal(role: str = 'user', user_id: int = 1, is_active: bool = True) -> Principal:
    return Principal(
        id=user_id,
        username=f'{role}-{user_id}',
        name='Test Person',
        email='test@example.com',
        role=role,
        is_active=is_active,
    )


@pytest.fixture
def gate() -> AuthorizationGate:
    return AuthorizationGate(ROUTE_POLICIES)


class TestRoles:
    """Tests for role parsing and landing pages"""

    def test_parse_known_roles(self):
        for role in Role:
            assert Role.parse(role.value) is role

    @pytest.mark.parametrize('value', ['superuser', 'ADMIN', '', None, 3])
    def test_parse_unknown_role(self, value):
        assert Role.parse(value) is None

    @pytest.mark.parametrize('role,home', [
        ('admin', '/admin'),
        ('judge', '/judge'),
        ('registrar', '/registrar'),
        ('vendor', '/vendor'),
        ('user', '/user'),
        ('superuser', '/login'),
    ])
    def test_home_for(self, role, home):
        assert home_for(role) == home


class TestGateDecisions:
    """Every declared route evaluated against every role"""

    @pytest.mark.parametrize('route', sorted(ROUTE_POLICIES))
    @pytest.mark.parametrize('role', [role.value for role in Role])
    def test_decision_matches_requirement(self, gate, route, role):
        method, path = route
        requirement = gate.requirement_for(method, path)
        expected = Decision.ALLOW if role in {r.value for r in requirement.roles} else Decision.DENY
        assert gate.decide(principal(role), requirement) is expected

    @pytest.mark.parametrize('route', sorted(ROUTE_POLICIES))
    def test_unknown_role_denied_everywhere(self, gate, route):
        requirement = gate.requirement_for(*route)
        assert gate.decide(principal('superuser'), requirement) is Decision.DENY

    @pytest.mark.parametrize('route', sorted(ROUTE_POLICIES))
    def test_inactive_principal_denied_everywhere(self, gate, route):
        requirement = gate.requirement_for(*route)
        assert gate.decide(principal('admin', is_active=False), requirement) is Decision.DENY

    def test_undeclared_route_denied(self, gate):
        assert gate.requirement_for('GET', '/api/not-declared') is None
        assert gate.decide(principal('admin'), None) is Decision.DENY

    @pytest.mark.parametrize('method,path,expected', [
        ('GET', '/api/user/vehicles', AUTHENTICATED),
        ('PUT', '/api/user/vehicles/12', AUTHENTICATED),
        ('DELETE', '/api/admin/users/3', ADMIN_ONLY),
        ('POST', '/api/judge/users/9/reset-password', JUDGE_ONLY),
        ('GET', '/api/admin/users/3', None),
        ('PUT', '/api/admin/users/3/extra', None),
        ('GET', '/user/vehicles', None),
    ])
    def test_concrete_request_paths_resolve(self, gate, method, path, expected):
        assert gate.requirement_for(method, path) == expected

    def test_head_uses_get_policy(self, gate):
        assert gate.requirement_for('HEAD', '/api/admin') == ADMIN_ONLY

    def test_staff_directory_excludes_vendor_and_user(self, gate):
        requirement = gate.requirement_for('GET', '/api/staff/users')
        assert requirement.allows('judge')
        assert requirement.allows('registrar')
        assert requirement.allows('admin')
        assert not requirement.allows('vendor')
        assert not requirement.allows('user')

    def test_profile_open_to_every_role(self, gate):
        assert gate.requirement_for('PUT', '/api/profile/email') == AUTHENTICATED


class TestGateCheck:
    """Tests for the raising entry point used by the request layer"""

    def test_anonymous_raises_authentication_failure(self, gate):
        with pytest.raises(AuthenticationFailure):
            gate.check(None, 'GET', '/api/admin')

    def test_wrong_role_raises_authorization_failure(self, gate):
        with pytest.raises(AuthorizationFailure):
            gate.check(principal('user'), 'GET', '/api/admin')

    def test_allowed_role_passes(self, gate):
        gate.check(principal('admin'), 'GET', '/api/admin')

    def test_undeclared_route_raises(self, gate):
        with pytest.raises(AuthorizationFailure):
            gate.check(principal('admin'), 'GET', '/api/admin/secret')


class TestOwnership:
    """Tests for ownership and self checks"""

    def test_owner_allowed(self):
        AuthorizationGate.ensure_owner(principal('user', user_id=5), 5)

    def test_other_user_rejected(self):
        with pytest.raises(AuthorizationFailure):
            AuthorizationGate.ensure_owner(principal('user', user_id=5), 6)

    def test_admin_override(self):
        AuthorizationGate.ensure_owner(principal('admin', user_id=1), 6)

    def test_admin_override_can_be_disabled(self):
        with pytest.raises(AuthorizationFailure):
            AuthorizationGate.ensure_owner(principal('admin', user_id=1), 6, admin_override=False)

    def test_is_self(self):
        assert AuthorizationGate.is_self(principal(user_id=3), 3)
        assert not AuthorizationGate.is_self(principal(user_id=3), 4)

    @pytest.mark.parametrize('role,allowed', [
        ('admin', True),
        ('judge', True),
        ('registrar', True),
        ('vendor', True),
        ('user', False),
    ])
    def test_chat_grant_by_role(self, role, allowed):
        assert AuthorizationGate.can_be_granted_chat(role) is allowed
