"""
Pytest configuration and fixtures for the lifecycle tests
"""
import itertools
import os

import pytest

os.environ.setdefault('SECRET_KEY', 'test_secret_key_for_lifecycle_testing')

from hr_ops import create_app
from hr_ops import db as _db
from hr_ops.buisness.core.user_context import UserContext

DEFAULT_PASSWORD = 'correct-horse-battery'

_usernames = itertools.count(1)


@pytest.fixture(scope='function')
def app(tmp_path):
    """Flask application backed by a throwaway SQLite file"""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'hr_ops_test.db'}",
        'RATELIMIT_ENABLED': False,
        'STORE_TIMEOUT_SECONDS': 30,
    })

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()
        _db.engine.dispose()


@pytest.fixture(scope='function')
def db(app):
    return _db


@pytest.fixture(scope='function')
def client(app):
    """Create Flask test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def make_user(app):
    """Factory creating a committed user for the given role"""
    def _make_user(role, department='Engineering', password=DEFAULT_PASSWORD, **kwargs):
        username = kwargs.pop('username', None) or f"{role}_{next(_usernames)}"
        return UserContext.create(
            username=username,
            email=kwargs.pop('email', None) or f"{username}@example.com",
            password=password,
            role=role,
            first_name=kwargs.pop('first_name', 'Test'),
            last_name=kwargs.pop('last_name', role.title()),
            department=department,
            **kwargs
        ).user
    return _make_user


@pytest.fixture
def manager(make_user):
    return make_user('manager')


@pytest.fixture
def procurement_user(make_user):
    return make_user('procurement')


@pytest.fixture
def asset_manager(make_user):
    return make_user('asset_team', department='IT Assets')


@pytest.fixture
def branch_user(make_user):
    return make_user('branch_ops')
