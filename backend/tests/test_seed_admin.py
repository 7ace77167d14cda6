import importlib.util
import os
from techservice import get_db
from techservice.models.accounts import AdminUser

SCRIPT = os.path.join(os.path.dirname(__file__), '..', 'scripts', 'seed_admin.py')


def _load():
    spec = importlib.util.spec_from_file_location('seed_admin', SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_dry_run_writes_nothing(app_instance, monkeypatch):
    monkeypatch.setenv('SEED_ADMIN_EMAIL', 'seed-dry@example.com')
    seed = _load()
    created_admin, _ = seed.main(['--dry-run'], app=app_instance)
    assert created_admin is True
    with app_instance.app_context():
        assert get_db().query(AdminUser).filter_by(email='seed-dry@example.com').count() == 0


def test_seed_is_idempotent(app_instance, monkeypatch):
    monkeypatch.setenv('SEED_ADMIN_EMAIL', 'seed-real@example.com')
    seed = _load()
    seed.main([], app=app_instance)
    created_admin, created_devices = seed.main([], app=app_instance)
    assert created_admin is False
    assert created_devices == 0
    with app_instance.app_context():
        admin = get_db().query(AdminUser).filter_by(email='seed-real@example.com').one()
        assert admin.verify_password('ChangeMe123!')
