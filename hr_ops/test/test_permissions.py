"""
Role-derived permissions and the user credential rules
"""
import pytest

from hr_ops.buisness.core.errors import ValidationFailure
from hr_ops.buisness.core.permissions import PERMISSIONS, ROLES, permissions_for_role
from hr_ops.buisness.core.user_context import UserContext
from hr_ops.data.core.user_info.password_validator import PasswordValidator
from hr_ops.data.core.user_info.user import User


@pytest.mark.parametrize('role', ROLES)
def test_every_role_gets_the_full_permission_set(role):
    permissions = permissions_for_role(role)
    assert set(permissions) == set(PERMISSIONS)
    assert permissions['can_view_reports']


def test_role_grants():
    assert all(permissions_for_role('admin').values())
    manager = permissions_for_role('manager')
    assert manager['can_create_jobs'] and manager['can_approve_jobs']
    assert not manager['can_manage_assets']
    assert permissions_for_role('procurement')['can_access_procurement']
    assert permissions_for_role('asset_team')['can_manage_assets']
    assert not any(v for k, v in permissions_for_role('branch_ops').items() if k != 'can_view_reports')


def test_unknown_role_is_rejected():
    with pytest.raises(ValidationFailure):
        permissions_for_role('janitor')


def test_role_change_replaces_permissions(app, make_user):
    user = make_user('admin')
    assert user.has_permission('can_manage_users')

    UserContext(user).change_role('it_team')

    assert user.role == 'it_team'
    assert user.permissions == permissions_for_role('it_team')
    assert not user.has_permission('can_manage_users')


def test_inactive_user_has_no_permissions(app, make_user):
    user = make_user('admin')
    UserContext(user).deactivate()
    assert not user.has_permission('can_view_reports')


def test_password_is_stored_hashed_and_hidden(app, make_user):
    user = make_user('manager', password='s3cret-pass')

    assert user.password_hash != 's3cret-pass'
    assert user.check_password('s3cret-pass')
    assert not user.check_password('wrong-pass')
    assert 'password_hash' not in user.to_dict()


def test_password_policy():
    assert PasswordValidator.validate('abc12')[0] is False
    assert PasswordValidator.validate('abc123')[0] is True
    assert PasswordValidator.validate('x' * 129)[0] is False


def test_weak_password_is_rejected(app, make_user):
    with pytest.raises(ValidationFailure):
        make_user('manager', password='123')
    assert User.query.count() == 0


def test_duplicate_username_is_rejected(app, make_user):
    make_user('manager', username='jdoe')
    with pytest.raises(ValidationFailure):
        make_user('manager', username='jdoe', email='other@example.com')


@pytest.mark.parametrize('username, email', [
    ('ab', 'ab@example.com'),
    ('valid_name', 'not-an-email'),
])
def test_username_and_email_are_validated(app, make_user, username, email):
    with pytest.raises(ValidationFailure):
        make_user('manager', username=username, email=email)


def test_department_managers_lookup(app, make_user):
    make_user('manager', department='Finance', username='fin_manager')
    make_user('procurement', department='Finance')
    make_user('manager', department='Sales')

    assert [u.username for u in User.find_department_managers('Finance')] == ['fin_manager']
    assert len(User.find_by_role('manager')) == 2


def test_duplicates_are_detected_after_normalisation(app, make_user):
    make_user('manager', username='alice', email='alice@example.com')

    with pytest.raises(ValidationFailure):
        make_user('manager', username=' alice ', email='alice2@example.com')
    with pytest.raises(ValidationFailure):
        make_user('manager', username='alice_two', email=' Alice@Example.com ')

    assert User.query.count() == 1


def test_reporting_manager_and_direct_reports(app, make_user):
    boss = make_user('manager', username='boss', first_name='Zara')
    report = make_user('it_team', username='report', first_name='Amit', reporting_manager_id=str(boss.id))
    make_user('it_team', username='loner')

    assert report.reporting_manager_id == boss.id
    assert report.reporting_manager is boss
    assert [u.username for u in User.find_direct_reports(boss.id)] == ['report']

    with pytest.raises(ValidationFailure):
        make_user('it_team', username='orphan', reporting_manager_id=9999)


def test_user_search(app, make_user):
    make_user('manager', department='Finance', username='fin_lead', first_name='Bela', last_name='Kaur')
    make_user('procurement', department='Finance', username='buyer', first_name='Arjun', employee_id='EMP-0042')
    retired = make_user('manager', department='Sales', username='retired', first_name='Chen')
    UserContext(retired).deactivate()

    assert [u.username for u in User.search(department='Finance')] == ['buyer', 'fin_lead']
    assert [u.username for u in User.search(role='manager')] == ['fin_lead']
    assert [u.username for u in User.search(text='emp-0042')] == ['buyer']
    assert [u.username for u in User.search(text='kaur')] == ['fin_lead']
    assert [u.username for u in User.search(is_active=False)] == ['retired']
    assert [u.username for u in User.search(department='Finance', limit=1, page=2)] == ['fin_lead']
