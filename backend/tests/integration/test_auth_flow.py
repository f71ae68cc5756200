"""
Integration tests for setup, registration, login and logout
"""
from urllib.parse import parse_qs, urlsplit

from carshow.core.authorization import Role

PASSWORD = 'correct-horse-battery'


def account(username: str, **extra) -> dict:
    return {
        'username': username,
        'name': 'Pat Driver',
        'email': f'{username}@example.com',
        'password': PASSWORD,
        'confirm_password': PASSWORD,
        **extra,
    }


class TestInitialSetup:
    """First-run admin creation and recovery"""

    async def test_status_reports_empty_database(self, client):
        response = await client.get('/api/auth/status')
        assert response.status_code == 200
        assert response.json() == {'has_users': False}

    async def test_setup_creates_admin_once(self, client):
        response = await client.post('/api/auth/setup', json=account('founder'))
        assert response.status_code == 201
        body = response.json()
        assert body['user']['role'] == 'admin'
        assert '/admin/recover?token=' in body['recovery_url']

        again = await client.post('/api/auth/setup', json=account('intruder'))
        assert again.status_code == 409
        assert (await client.get('/api/auth/status')).json() == {'has_users': True}

    async def test_recovery_token_is_single_use(self, client, settings):
        setup = await client.post('/api/auth/setup', json=account('founder'))
        token = parse_qs(urlsplit(setup.json()['recovery_url']).query)['token'][0]
        assert token not in settings.recovery_token_file.read_text()

        recovered = await client.post('/api/auth/recover', json=account('rescuer', token=token))
        assert recovered.status_code == 201
        assert recovered.json()['user']['role'] == 'admin'

        replay = await client.post('/api/auth/recover', json=account('replayer', token=token))
        assert replay.status_code == 403

    async def test_recover_rejects_unknown_token(self, client):
        await client.post('/api/auth/setup', json=account('founder'))
        response = await client.post('/api/auth/recover', json=account('rescuer', token='bogus'))
        assert response.status_code == 403


class TestRegistration:
    """Self-registration over HTTP"""

    async def test_register_ignores_requested_role(self, client):
        response = await client.post('/api/auth/register', json=account('newbie', role='admin'))
        assert response.status_code == 201
        assert response.json()['role'] == Role.USER.value

    async def test_register_password_mismatch(self, client):
        response = await client.post(
            '/api/auth/register', json={**account('newbie'), 'confirm_password': 'different-pass'}
        )
        assert response.status_code == 400
        assert response.json()['detail'] == 'Passwords do not match!'

    async def test_register_duplicate_username(self, client, make_user):
        await make_user(username='taken')
        response = await client.post('/api/auth/register', json=account('taken'))
        assert response.status_code == 409

    async def test_register_rejects_password_bcrypt_would_truncate(self, client):
        long_password = 'a' * 72 + 'tail'
        response = await client.post(
            '/api/auth/register',
            json={**account('longpass'), 'password': long_password, 'confirm_password': long_password},
        )
        assert response.status_code == 422

    async def test_register_never_returns_hash(self, client):
        response = await client.post('/api/auth/register', json=account('newbie'))
        assert 'password_hash' not in response.json()


class TestLogin:
    """Login, session cookie and logout"""

    async def test_login_sets_cookie_and_redirects_to_role_home(self, client, make_user, settings):
        judge = await make_user(role=Role.JUDGE)
        response = await client.post('/api/auth/login', json={'username': judge.username, 'password': PASSWORD})

        assert response.status_code == 200
        assert response.json()['redirect'] == '/judge'
        set_cookie = response.headers['set-cookie']
        assert settings.session_cookie_name in set_cookie
        assert 'httponly' in set_cookie.lower()
        assert 'samesite=strict' in set_cookie.lower()

    async def test_wrong_password_is_generic_401(self, client, make_user):
        user = await make_user()
        response = await client.post('/api/auth/login', json={'username': user.username, 'password': 'nope'})
        assert response.status_code == 401
        assert response.json()['detail'] == 'Invalid username or password'

    async def test_unknown_user_gets_same_error(self, client):
        response = await client.post('/api/auth/login', json={'username': 'ghost', 'password': PASSWORD})
        assert response.status_code == 401
        assert response.json()['detail'] == 'Invalid username or password'

    async def test_inactive_user_cannot_login(self, client, make_user):
        user = await make_user(is_active=False)
        response = await client.post('/api/auth/login', json={'username': user.username, 'password': PASSWORD})
        assert response.status_code == 401

    async def test_me_returns_principal(self, client, make_user, login):
        user = await make_user(name='Ada Lovelace')
        await login(user)
        response = await client.get('/api/auth/me')
        assert response.status_code == 200
        body = response.json()
        assert body['username'] == user.username
        assert body['role'] == 'user'
        assert 'password_hash' not in body

    async def test_dashboard_redirects_by_role(self, client, make_user, login):
        await login(await make_user(role=Role.REGISTRAR))
        response = await client.get('/api/auth/dashboard')
        assert response.status_code == 303
        assert response.headers['location'] == '/registrar'

    async def test_logout_ends_session(self, client, make_user, login):
        await login(await make_user())
        response = await client.post('/api/auth/logout')
        assert response.status_code == 200
        assert response.json() == {'redirect': '/login'}

        after = await client.get('/api/auth/me')
        assert after.status_code == 303
        assert after.headers['location'] == '/login'

    async def test_forged_cookie_is_anonymous(self, client, settings):
        client.cookies.set(settings.session_cookie_name, 'forged.token.value')
        response = await client.get('/api/profile')
        assert response.status_code == 303
        assert response.headers['location'] == '/login'
