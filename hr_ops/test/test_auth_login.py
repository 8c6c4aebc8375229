"""
JSON login endpoint with account lockout
"""
from datetime import timedelta

from hr_ops.test.conftest import DEFAULT_PASSWORD
from hr_ops.utils.time_utils import utcnow_naive


def login(client, username, password):
    return client.post('/login', json={'username': username, 'password': password})


def test_successful_login_resets_attempts(app, client, manager):
    login(client, manager.username, 'wrong-password')
    login(client, manager.username, 'wrong-password')
    assert manager.login_attempts == 2

    response = login(client, manager.username, DEFAULT_PASSWORD)

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['user']['username'] == manager.username
    assert 'password_hash' not in body['user']
    assert manager.login_attempts == 0
    assert manager.last_login is not None


def test_bad_password_is_counted(app, client, manager):
    response = login(client, manager.username, 'wrong-password')
    assert response.status_code == 401
    assert manager.login_attempts == 1


def test_unknown_user(app, client):
    assert login(client, 'nobody_here', 'whatever').status_code == 401


def test_missing_credentials(app, client):
    assert client.post('/login', json={'username': 'x'}).status_code == 400


def test_locked_account_is_refused_even_with_correct_password(app, client, manager):
    for _ in range(5):
        login(client, manager.username, 'wrong-password')
    assert manager.lock_until is not None

    response = login(client, manager.username, DEFAULT_PASSWORD)

    assert response.status_code == 423
    # The refusal does not count as another attempt
    assert manager.login_attempts == 5


def test_login_works_again_after_lock_expires(app, db, client, manager):
    manager.login_attempts = 5
    manager.lock_until = utcnow_naive() - timedelta(minutes=1)
    db.session.commit()

    assert login(client, manager.username, DEFAULT_PASSWORD).status_code == 200
    assert manager.lock_until is None


def test_logout_requires_login(app, client, manager):
    assert client.post('/logout').status_code == 401
    login(client, manager.username, DEFAULT_PASSWORD)
    assert client.post('/logout').status_code == 200
