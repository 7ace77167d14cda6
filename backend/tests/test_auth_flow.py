from tests.test_utils_seed import ensure_admin, ensure_technician, unique, DEFAULT_PASSWORD
from tests.test_lifecycle_helpers import admin_headers, staff_headers


def test_admin_login_and_me(app_context):
    client = app_context.test_client()
    ensure_admin('login_admin@example.com', name='Root')

    resp = client.post('/auth/login', json={'email': 'login_admin@example.com', 'password': DEFAULT_PASSWORD, 'userType': 'admin'})
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['user']['type'] == 'admin'
    token = body['access_token']

    me = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    body = me.get_json()
    assert body['email'] == 'login_admin@example.com'
    assert 'ADMIN.WON.HIDE' in body['perms']
    assert 'TKT.WIN' not in body['perms']


def test_admin_login_updates_last_login(app_context):
    client = app_context.test_client()
    admin = ensure_admin('last_login@example.com')
    assert admin.last_login is None
    client.post('/auth/login', json={'credential': 'last_login@example.com', 'password': DEFAULT_PASSWORD, 'userType': 'admin'})
    from techservice import get_db
    get_db().refresh(admin)
    assert admin.last_login is not None


def test_staff_login_by_username(app_context):
    client = app_context.test_client()
    tech = ensure_technician(unique('staff'))
    resp = client.post('/auth/login', json={'username': tech.username, 'password': DEFAULT_PASSWORD, 'userType': 'staff'})
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['user']['id'] == tech.id
    me = client.get('/auth/me', headers={'Authorization': f"Bearer {body['access_token']}"})
    assert me.get_json()['username'] == tech.username
    assert 'TKT.WIN' in me.get_json()['perms']


def test_bad_credentials(app_context):
    client = app_context.test_client()
    tech = ensure_technician(unique('staff'))
    resp = client.post('/auth/login', json={'username': tech.username, 'password': 'wrong-password', 'userType': 'staff'})
    assert resp.status_code == 401
    assert resp.get_json()['error']['reason'] == 'invalid_credentials'
    resp = client.post('/auth/login', json={'username': tech.username, 'password': DEFAULT_PASSWORD, 'userType': 'owner'})
    assert resp.status_code == 400


def test_inactive_staff_cannot_login(app_context):
    client = app_context.test_client()
    tech = ensure_technician(unique('gone'), active=False)
    resp = client.post('/auth/login', json={'username': tech.username, 'password': DEFAULT_PASSWORD, 'userType': 'staff'})
    assert resp.status_code == 401


def test_staff_without_password_cannot_login(app_context):
    client = app_context.test_client()
    tech = ensure_technician(unique('nopw'), password=None)
    resp = client.post('/auth/login', json={'username': tech.username, 'password': 'anything-long', 'userType': 'staff'})
    assert resp.status_code == 401


def test_set_password(app_context):
    client = app_context.test_client()
    tech = ensure_technician(unique('reset'), password=None)
    headers = admin_headers()
    short = client.post('/auth/set-password', json={'technicianId': tech.id, 'password': 'short'}, headers=headers)
    assert short.status_code == 400
    assert 'password' in short.get_json()['error']['fields']
    ok = client.post('/auth/set-password', json={'technicianId': tech.id, 'password': 'brand-new-pw'}, headers=headers)
    assert ok.status_code == 200, ok.get_json()
    login = client.post('/auth/login', json={'username': tech.username, 'password': 'brand-new-pw', 'userType': 'staff'})
    assert login.status_code == 200


def test_staff_cannot_set_passwords(app_context):
    client = app_context.test_client()
    tech = ensure_technician(unique('other'))
    resp = client.post('/auth/set-password', json={'technicianId': tech.id, 'password': 'brand-new-pw'}, headers=staff_headers())
    assert resp.status_code == 403
