import jwt
import pytest
from fastapi.testclient import TestClient

from qa_admin.config import settings
from qa_admin.main import app

client = TestClient(app)

PROTECTED = [
    ('get', '/users'),
    ('get', '/categories'),
    ('post', '/categories'),
    ('get', '/categories/latest'),
    ('get', '/categories/1'),
    ('put', '/categories/1'),
    ('delete', '/categories/1'),
    ('get', '/avatars'),
    ('post', '/avatars'),
    ('get', '/avatars/1'),
    ('put', '/avatars/1'),
    ('delete', '/avatars/1'),
    ('get', '/qa'),
    ('post', '/qa'),
    ('get', '/qa/1'),
    ('put', '/qa/1'),
    ('delete', '/qa/1'),
]


def test_register_login_and_list_users():
    r = client.post('/auth/register', json={'username': 'editor', 'password': 'pass123'})
    assert r.status_code == 200
    user_id = r.json()['id']
    # registering again returns the same user
    again = client.post('/auth/register', json={'username': 'editor', 'password': 'pass123'})
    assert again.json()['id'] == user_id

    r2 = client.post('/auth/login', json={'username': 'editor', 'password': 'pass123'})
    assert r2.status_code == 200
    token = r2.json()['access_token']
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    assert payload['user_id'] == user_id

    users = client.get('/users', headers={'Authorization': f'Bearer {token}'})
    assert users.status_code == 200
    assert 'editor' in [u['username'] for u in users.json()]
    assert all('password_hash' not in u for u in users.json())


def test_login_rejects_bad_password():
    client.post('/auth/register', json={'username': 'carol', 'password': 'right'})
    r = client.post('/auth/login', json={'username': 'carol', 'password': 'wrong'})
    assert r.status_code == 401


@pytest.mark.parametrize('method,path', PROTECTED)
def test_resource_routes_require_token(method, path):
    r = getattr(client, method)(path)
    assert r.status_code == 401
    bad = getattr(client, method)(path, headers={'Authorization': 'Bearer not-a-jwt'})
    assert bad.status_code == 401


def test_expired_token_is_rejected():
    token = jwt.encode({'user_id': 1, 'exp': 1}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    r = client.get('/categories', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 401
    assert r.json()['detail'] == 'token expired'


def test_token_for_unknown_user_is_rejected():
    token = jwt.encode({'user_id': 999999}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    r = client.get('/avatars', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 401


def test_login_rate_limit(monkeypatch):
    monkeypatch.setattr(settings, 'LOGIN_RATE_LIMIT_PER_MIN', 2)
    creds = {'username': 'nobody', 'password': 'x'}
    assert client.post('/auth/login', json=creds).status_code == 401
    assert client.post('/auth/login', json=creds).status_code == 401
    r = client.post('/auth/login', json=creds)
    assert r.status_code == 429
    assert int(r.headers['Retry-After']) >= 1


def test_health_and_request_id():
    r = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r.status_code == 200
    assert r.json() == {'status': 'ok'}
    assert r.headers['X-Request-ID'] == 'abc123'
    assert client.get('/health').headers['X-Request-ID']
