"""
Optimistic concurrency, store failures and error rendering
"""
from datetime import timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from hr_ops.buisness.core.errors import (
    ConflictRetryExhausted,
    InvalidTransition,
    ResourceUnavailable,
    ValidationFailure,
)
from hr_ops.buisness.core.unit_of_work import run_atomic
from hr_ops.buisness.requisitions.job_posting_context import JobPostingContext
from hr_ops.data.core.user_info.user import User
from hr_ops.data.requisitions.job_posting import JobPosting
from hr_ops.utils.time_utils import utcnow_naive


def draft_posting(manager):
    return JobPostingContext.create(
        manager,
        position_title='QA Engineer',
        job_description='Own the regression suite',
        expected_doj=utcnow_naive() + timedelta(days=30),
    )


def bump_version_elsewhere(db, posting_id, **values):
    """Simulate another worker committing a change to the same row"""
    table = JobPosting.__table__
    with db.engine.begin() as connection:
        connection.execute(
            update(table)
            .where(table.c.id == posting_id)
            .values(version_id=table.c.version_id + 1, **values)
        )


def test_conflicting_write_is_retried_against_fresh_state(app, db, manager):
    context = draft_posting(manager)
    posting = context.job_posting
    assert posting.status == 'draft'

    # Another worker submits while this copy still believes it is a draft
    bump_version_elsewhere(db, posting.id, status='pending_approval')

    with pytest.raises(InvalidTransition) as excinfo:
        context.submit(manager)

    assert excinfo.value.current_status == 'pending_approval'
    assert [e.action for e in posting.workflow_history] == ['created']


def test_conflict_retry_then_success(app, db, manager):
    context = draft_posting(manager)
    posting = context.job_posting
    bump_version_elsewhere(db, posting.id, priority='urgent')

    context.submit(manager)

    assert posting.status == 'pending_approval'
    assert posting.priority == 'urgent'
    assert [e.action for e in posting.workflow_history] == ['created', 'submitted']


def test_retries_are_bounded(app, db, manager):
    app.config['MAX_CONFLICT_RETRIES'] = 2
    context = draft_posting(manager)
    posting = context.job_posting
    attempts = []

    def always_conflicting():
        attempts.append(posting.version_id)
        posting.priority = 'low' if posting.priority != 'low' else 'high'
        bump_version_elsewhere(db, posting.id)

    with pytest.raises(ConflictRetryExhausted) as excinfo:
        run_atomic(always_conflicting, action='edit', entity_id=posting.job_id, status_of=lambda: posting.status)

    assert len(attempts) == 3
    assert excinfo.value.retryable
    assert excinfo.value.current_status == 'draft'
    assert excinfo.value.entity_id == posting.job_id


def test_store_errors_become_resource_unavailable(app, manager):
    context = draft_posting(manager)

    def failing():
        raise OperationalError("UPDATE job_postings", {}, Exception("database is locked"))

    with pytest.raises(ResourceUnavailable) as excinfo:
        run_atomic(failing, action='submit', entity_id=context.job_id, status_of=lambda: context.status)

    assert excinfo.value.current_status == 'draft'
    assert excinfo.value.retryable


def test_domain_errors_render_as_json(app, manager):
    context = draft_posting(manager)

    @app.route('/_fill/<job_id>', methods=['POST'])
    def fill(job_id):
        JobPostingContext(job_id).fill(manager, filled_by_ref='EMP-1')
        return {'success': True}

    response = app.test_client().post(f'/_fill/{context.job_id}')

    assert response.status_code == 409
    body = response.get_json()
    assert body['error'] == 'InvalidTransition'
    assert body['entity_id'] == context.job_id
    assert body['action'] == 'fill'
    assert body['current_status'] == 'draft'


def test_constraint_violation_becomes_validation_failure(app, db, manager):
    duplicate = User(username=manager.username, email='someone.else@example.com', first_name='Dup',
                     last_name='User', role='manager', password='another-pass')

    with pytest.raises(ValidationFailure) as excinfo:
        run_atomic(lambda: db.session.add(duplicate), action='create', entity_id=manager.username)

    assert excinfo.value.action == 'create'
    assert excinfo.value.entity_id == manager.username
    # The session was rolled back and stays usable
    assert User.query.count() == 1


def test_unexpected_errors_roll_back(app, db, manager):
    context = draft_posting(manager)
    posting = context.job_posting

    def half_done():
        posting.priority = 'low'
        raise RuntimeError('boom')

    with pytest.raises(RuntimeError):
        run_atomic(half_done, action='edit', entity_id=posting.job_id, status_of=lambda: posting.status)

    assert posting.priority == 'medium'
    assert JobPosting.query.count() == 1


def test_domain_errors_get_missing_context(app, manager):
    context = draft_posting(manager)

    def reject_input():
        raise ValidationFailure("Bad input")

    with pytest.raises(ValidationFailure) as excinfo:
        run_atomic(reject_input, action='edit', entity_id=context.job_id, status_of=lambda: context.status)

    error = excinfo.value
    assert (error.entity_id, error.action, error.current_status) == (context.job_id, 'edit', 'draft')
    assert 'status=draft' in str(error)


def test_validation_during_a_transition_reports_full_context(app, manager):
    context = draft_posting(manager)
    context.submit(manager)

    with pytest.raises(ValidationFailure) as excinfo:
        context.approve(manager, comments='x' * 1001)

    assert excinfo.value.to_dict()['entity_id'] == context.job_id
    assert excinfo.value.to_dict()['action'] == 'approve'
    assert excinfo.value.to_dict()['current_status'] == 'pending_approval'
    assert context.status == 'pending_approval'
