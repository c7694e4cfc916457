"""
Shared fixtures: an app wired to the in-memory Firestore double, a test
client, and helpers to create accounts and log in as each role.
"""
import pytest
from flask import Flask
from flask_bcrypt import Bcrypt

from echotube.app import create_app
from echotube.accounts import AccountStore

from tests.fake_firestore import FakeFirestore

TEST_CONFIG = {
    'TESTING': True,
    'JWT_SECRET': 'test-secret-key-with-enough-length-for-hs256',
    'JWT_EXPIRES_DAYS': 7,
    'BCRYPT_LOG_ROUNDS': 4,
    'ALLOWED_ORIGINS': ['http://localhost:3000'],
    'BOOTSTRAP_ADMIN': True,
    'DEFAULT_ADMIN_USERNAME': 'admin',
    'DEFAULT_ADMIN_PASSWORD': 'admin123',
}


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def app(fake_db):
    return create_app(TEST_CONFIG, db=fake_db)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions['echotube']


@pytest.fixture
def hasher():
    """A Bcrypt configured like the app, with cheap rounds."""
    hashing_app = Flask(__name__)
    hashing_app.config.update(BCRYPT_LOG_ROUNDS=4, BCRYPT_HANDLE_LONG_PASSWORDS=True)
    return Bcrypt(hashing_app)


@pytest.fixture
def account_store(fake_db, hasher):
    """AccountStore without the Flask app."""
    return AccountStore(fake_db, hasher=hasher)


@pytest.fixture
def create_account(services):
    def _create(username, password='secret-pass', role='user', expiry_date=None):
        return services.accounts.create(username, password, role=role, expiry_date=expiry_date)
    return _create


@pytest.fixture
def login(client):
    def _login(username, password='secret-pass'):
        response = client.post('/api/auth/login', json={'username': username, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response.get_json()['token']
    return _login


@pytest.fixture
def auth_header():
    def _header(token):
        return {'Authorization': f'Bearer {token}'}
    return _header


@pytest.fixture
def admin_token(login):
    return login('admin', 'admin123')


@pytest.fixture
def tokens(create_account, login, admin_token):
    """One token per role, plus a second author."""
    create_account('alice', role='author')
    create_account('bob', role='author')
    create_account('carol', role='user')
    create_account('victor', role='viewer')
    return {
        'admin': admin_token,
        'author': login('alice'),
        'other_author': login('bob'),
        'user': login('carol'),
        'viewer': login('victor'),
    }
