import json
from techservice.services.portal_session import PortalSession, session_key


def test_login_persists_and_reloads():
    storage = {}
    session = PortalSession(storage)
    assert session.portal is None
    session.login('staff', {'id': 'S1', 'name': 'Ayla'})
    assert json.loads(storage[session_key('staff')])['id'] == 'S1'
    reloaded = PortalSession(storage)
    assert reloaded.portal == 'staff'
    assert reloaded.current('staff')['name'] == 'Ayla'


def test_roles_are_independent():
    storage = {}
    session = PortalSession(storage)
    session.login('staff', {'id': 'S1'})
    session.login('admin', {'id': 'A1'})
    assert session.portal == 'admin'
    session.logout('admin')
    assert session_key('admin') not in storage
    assert session.portal == 'staff'
    assert PortalSession(storage).current('staff') == {'id': 'S1'}


def test_corrupt_entry_is_discarded():
    storage = {session_key('admin'): '{not json'}
    session = PortalSession(storage)
    assert session.portal is None
    assert session_key('admin') not in storage


def test_unknown_role_rejected():
    import pytest
    with pytest.raises(ValueError):
        PortalSession({}).login('owner', {'id': 'X'})
