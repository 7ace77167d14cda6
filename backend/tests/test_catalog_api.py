from techservice.models.accounts import Technician
from tests.test_lifecycle_helpers import admin_headers, staff_headers
from tests.test_utils_seed import unique


def test_device_crud(app_context):
    client = app_context.test_client()
    headers = admin_headers()
    name = unique('Scanner')
    assert client.post('/devices', json={'device_type': '  '}, headers=headers).status_code == 400
    created = client.post('/devices', json={'device_type': name}, headers=headers)
    assert created.status_code == 201, created.get_json()
    device_id = created.get_json()['id']
    listed = client.get('/devices', headers=staff_headers()).get_json()['data']
    assert name in [d['device_type'] for d in listed]
    assert client.delete(f'/devices/{device_id}', headers=headers).status_code == 200
    assert client.delete(f'/devices/{device_id}', headers=headers).status_code == 404


def test_staff_cannot_manage_devices(app_context):
    client = app_context.test_client()
    resp = client.post('/devices', json={'device_type': 'Nope'}, headers=staff_headers())
    assert resp.status_code == 403


def test_technician_onboarding(app_context):
    client = app_context.test_client()
    headers = admin_headers()
    username = unique('newtech')
    payload = {'name': 'Mert', 'username': username, 'password': 'long-enough', 'specialty': 'Shredders'}
    resp = client.post('/technicians', json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['username'] == username
    assert body['has_password'] is True
    assert body['avatar_color'] in Technician.AVATAR_COLORS
    assert 'password_hash' not in body
    dup = client.post('/technicians', json=payload, headers=headers)
    assert dup.status_code == 400
    assert dup.get_json()['error']['fields']['username'] == 'already in use'
    short = client.post('/technicians', json={**payload, 'username': unique('x'), 'password': 'short'}, headers=headers)
    assert short.status_code == 400
    listed = client.get('/technicians?active=true', headers=headers).get_json()['data']
    assert username in [t['username'] for t in listed]


def test_technician_credentials_and_delete(app_context):
    client = app_context.test_client()
    headers = admin_headers()
    first = client.post('/technicians', json={'name': 'Ece', 'username': unique('ece'), 'password': 'long-enough'},
                        headers=headers).get_json()
    other = client.post('/technicians', json={'name': 'Can', 'username': unique('can'), 'password': 'long-enough'},
                        headers=headers).get_json()
    clash = client.put(f"/technicians/{first['id']}/credentials", json={'username': other['username']}, headers=headers)
    assert clash.status_code == 400
    renamed = unique('ece2')
    ok = client.put(f"/technicians/{first['id']}/credentials", json={'username': renamed, 'password': 'another-pass'},
                    headers=headers)
    assert ok.status_code == 200
    login = client.post('/auth/login', json={'username': renamed, 'password': 'another-pass', 'userType': 'staff'})
    assert login.status_code == 200
    assert client.delete(f"/technicians/{other['id']}", headers=headers).status_code == 200
    assert client.delete(f"/technicians/{other['id']}", headers=headers).status_code == 404
