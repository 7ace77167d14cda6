import os, sys, pytest
# Ensure the backend directory is on path so 'tests' helpers import as a package
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from techservice import create_app, get_db
from techservice.models.accounts import Base
# Import all model modules to ensure tables are registered before create_all
import techservice.models.ticket  # noqa: F401
import techservice.models.audit  # noqa: F401

TEST_CONFIG = {
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'JWT_SECRET_KEY': 'techservice-test-secret-key-0123456789abcdef',
    'LOG_LEVEL': 'WARNING',
}


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app(TEST_CONFIG)
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def app_context(app_instance):
    with app_instance.app_context():
        yield app_instance


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
