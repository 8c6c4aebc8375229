"""
Job Posting Context
Provides a clean interface for the requisition lifecycle of a JobPosting.

Handles:
- Creation with an allocated JOB identifier and an initial history entry
- Workflow transitions (submit, approve, reject, assign_procurement, fill, cancel)
- Free-form audit comments
"""

from typing import Any, Callable, Dict, List, Optional, Union

from flask import current_app

from hr_ops import db
from hr_ops.buisness.core.errors import Forbidden, ValidationFailure
from hr_ops.buisness.core.identifier_allocator import IdentifierAllocator
from hr_ops.buisness.core.permissions import (
    CAN_ACCESS_PROCUREMENT,
    CAN_APPROVE_JOBS,
    CAN_CREATE_JOBS,
)
from hr_ops.buisness.core.unit_of_work import run_atomic
from hr_ops.buisness.core.validation import optional_text, require_text, to_datetime, to_decimal, to_user_id
from hr_ops.buisness.requisitions.state_machine import JobPostingStateMachine
from hr_ops.data.core.user_info.user import User
from hr_ops.data.requisitions.job_posting import JobPosting, JobPostingWorkflowEntry
from hr_ops.logger import get_logger
from hr_ops.utils.time_utils import utcnow_naive

logger = get_logger("hr_ops.buisness.requisitions.job_posting_context")

UserLookup = Callable[[int], Optional[User]]

# Fields a caller may supply at creation; everything else is owned by the workflow
CREATE_FIELDS = frozenset({
    'hod_id', 'department', 'position_title', 'expected_experience', 'expected_doj',
    'job_description', 'hardware_requirements', 'software_requirements', 'budget_approved',
    'currency', 'priority', 'urgency_reason', 'special_instructions',
})

# Extra keyword fields each action accepts
ACTION_FIELDS = {
    JobPostingStateMachine.SUBMIT: frozenset(),
    JobPostingStateMachine.APPROVE: frozenset(),
    JobPostingStateMachine.REJECT: frozenset({'reason'}),
    JobPostingStateMachine.ASSIGN_PROCUREMENT: frozenset({'assignee_id', 'notes'}),
    JobPostingStateMachine.FILL: frozenset({'filled_by_ref'}),
    JobPostingStateMachine.CANCEL: frozenset(),
}

COMMENT_PERMISSIONS = (CAN_CREATE_JOBS, CAN_APPROVE_JOBS, CAN_ACCESS_PROCUREMENT)


def default_user_lookup(user_id: int) -> Optional[User]:
    return db.session.get(User, user_id)


class JobPostingContext:
    """
    Context for one JobPosting.

    Every mutation validates against the state machine before touching a field,
    then changes status, side fields and history in a single commit.
    """

    state_machine = JobPostingStateMachine

    def __init__(self, job_posting: Union[JobPosting, int, str]):
        """
        Args:
            job_posting: JobPosting instance, primary key, or JOB identifier
        """
        if isinstance(job_posting, JobPosting):
            self._job_posting = job_posting
        else:
            if isinstance(job_posting, int):
                found = db.session.get(JobPosting, job_posting)
            else:
                found = JobPosting.query.filter_by(job_id=job_posting).first()
            if found is None:
                raise ValidationFailure("Job posting not found", entity_id=str(job_posting))
            self._job_posting = found

    @property
    def job_posting(self) -> JobPosting:
        return self._job_posting

    @property
    def job_id(self) -> str:
        return self._job_posting.job_id

    @property
    def status(self) -> str:
        return self._job_posting.status

    @property
    def history(self) -> List[JobPostingWorkflowEntry]:
        return list(self._job_posting.workflow_history)

    def allowed_actions(self, actor: Optional[User] = None):
        actions = self.state_machine.allowed_actions(self.status)
        if actor is None:
            return actions
        return {a for a in actions if self.state_machine.actor_permitted(a, actor)}

    @classmethod
    def create(
        cls,
        actor: User,
        user_lookup: Optional[UserLookup] = None,
        year: Optional[int] = None,
        now=None,
        **fields
    ) -> 'JobPostingContext':
        """
        Create a draft requisition.

        The HOD defaults to the actor. The department, when not given, is read from
        the HOD through user_lookup; no other user record is consulted.

        Raises:
            Forbidden: If the actor cannot create jobs
            ValidationFailure: For unknown or invalid fields
            ResourceUnavailable: If no identifier could be allocated
        """
        if actor is None or not actor.has_permission(CAN_CREATE_JOBS):
            raise Forbidden(
                f"Actor {getattr(actor, 'username', None)!r} is not permitted to create job postings",
                action="create",
            )
        unknown = set(fields) - CREATE_FIELDS
        if unknown:
            raise ValidationFailure(f"Unknown job posting fields: {', '.join(sorted(unknown))}", action="create")

        now = to_datetime(now, 'now') or utcnow_naive()
        values = cls._validated_create_fields(actor, user_lookup or default_user_lookup, now, fields)

        def create_posting():
            # Allocation is the first write of the transaction
            job_id = IdentifierAllocator.allocate('JobPosting', year)
            posting = JobPosting.from_dict(
                dict(values, job_id=job_id, status=JobPostingStateMachine.DRAFT),
                user_id=actor.id,
            )
            posting.workflow_history.append(JobPostingWorkflowEntry(
                action='created',
                performed_by_id=actor.id,
                performed_at=now,
                from_status=JobPostingStateMachine.DRAFT,
                to_status=JobPostingStateMachine.DRAFT,
            ))
            db.session.add(posting)
            return posting

        posting = run_atomic(create_posting, action="create", entity_id='JobPosting')
        logger.info(f"Created job posting {posting.job_id} for {posting.department} by {actor.username}")
        return cls(posting)

    @staticmethod
    def _validated_create_fields(actor, user_lookup, now, fields) -> Dict[str, Any]:
        values = dict(fields)
        values['hod_id'] = to_user_id(fields.get('hod_id'), 'HOD', action="create") or actor.id
        values['position_title'] = require_text(fields.get('position_title'), 'Position title', 200, action="create")
        values['job_description'] = require_text(fields.get('job_description'), 'Job description', 2000, action="create")

        doj = to_datetime(fields.get('expected_doj'), 'Expected date of joining', action="create")
        if doj is None:
            raise ValidationFailure("Expected date of joining is required", action="create")
        if doj <= now:
            raise ValidationFailure("Expected date of joining must be in the future", action="create")
        values['expected_doj'] = doj

        if 'budget_approved' in fields:
            values['budget_approved'] = to_decimal(fields['budget_approved'], 'Budget', action="create", minimum=0)

        department = optional_text(fields.get('department'), 'Department', 100, action="create")
        if department is None:
            hod = user_lookup(values['hod_id'])
            if hod is None:
                raise ValidationFailure(f"HOD user {values['hod_id']} not found", action="create")
            department = hod.department
        if not department:
            raise ValidationFailure("Department is required", action="create")
        values['department'] = department
        values.setdefault('currency', current_app.config.get('DEFAULT_CURRENCY', 'INR'))
        return values

    def apply_transition(self, action: str, actor: User, comments: Optional[str] = None, **fields) -> JobPosting:
        """
        Apply a workflow action.

        Args:
            action: One of submit, approve, reject, assign_procurement, fill, cancel
            actor: User performing the action
            comments: Free-form comments recorded in history
            **fields: Action inputs (reason, assignee_id, notes, filled_by_ref)

        Returns:
            The updated JobPosting, already committed

        Raises:
            InvalidTransition, Forbidden, ValidationFailure, ConflictRetryExhausted, ResourceUnavailable
        """
        posting = self._job_posting

        def transition():
            current = posting.status
            target = self.state_machine.validate(current, action, actor, entity_id=posting.job_id)
            now = utcnow_naive()
            side_fields, history_comments = self._side_fields(action, actor, comments, fields, current, now)

            posting.status = target
            for key, value in side_fields.items():
                setattr(posting, key, value)
            posting.updated_by_id = actor.id
            posting.workflow_history.append(JobPostingWorkflowEntry(
                action=self.state_machine.HISTORY_ACTIONS[action],
                performed_by_id=actor.id,
                performed_at=now,
                from_status=current,
                to_status=target,
                comments=history_comments,
            ))
            return current, target

        previous, target = run_atomic(
            transition,
            action=action,
            entity_id=posting.job_id,
            status_of=lambda: posting.status,
        )
        logger.info(f"Job posting {posting.job_id}: {previous} -> {target} via {action} by {actor.username}",
                    extra={"entity_id": posting.job_id, "action": action, "status": target})
        return posting

    def _side_fields(self, action, actor, comments, fields, current, now):
        job_id = self._job_posting.job_id
        unknown = set(fields) - ACTION_FIELDS[action]
        if unknown:
            raise ValidationFailure(
                f"Unexpected fields for {action}: {', '.join(sorted(unknown))}",
                entity_id=job_id, action=action, current_status=current,
            )
        comments = optional_text(comments, 'Comments', 1000, entity_id=job_id, action=action, current_status=current)
        sm = self.state_machine

        if action == sm.SUBMIT:
            return {'submitted_at': now}, comments

        if action == sm.APPROVE:
            return {
                'approved_by_id': actor.id,
                'approved_at': now,
                'approval_comments': comments,
            }, comments

        if action == sm.REJECT:
            reason = optional_text(fields.get('reason'), 'Rejection reason', 900, entity_id=job_id, action=action, current_status=current) or comments
            if not reason:
                raise ValidationFailure("A rejection reason is required", entity_id=job_id, action=action, current_status=current)
            # The reason survives only in history
            return {'rejected_by_id': actor.id, 'rejected_at': now}, f"Rejected: {reason}"

        if action == sm.ASSIGN_PROCUREMENT:
            notes = optional_text(fields.get('notes'), 'Procurement notes', 900, entity_id=job_id, action=action, current_status=current) or comments
            assignee_id = to_user_id(fields.get('assignee_id'), 'Procurement assignee',
                                     entity_id=job_id, action=action, current_status=current) or actor.id
            if assignee_id != actor.id:
                assignee = db.session.get(User, assignee_id)
                if assignee is None or not assignee.has_permission(CAN_ACCESS_PROCUREMENT):
                    raise ValidationFailure(
                        f"User {assignee_id} cannot be assigned procurement",
                        entity_id=job_id, action=action, current_status=current,
                    )
            history = f"Assigned to procurement: {notes}" if notes else "Assigned to procurement"
            return {
                'procurement_assigned_to_id': assignee_id,
                'procurement_assigned_at': now,
                'procurement_notes': notes,
            }, history

        if action == sm.FILL:
            filled_by = optional_text(fields.get('filled_by_ref'), 'Filled by', 50, entity_id=job_id, action=action, current_status=current)
            if not filled_by:
                raise ValidationFailure("The joining associate reference is required", entity_id=job_id, action=action, current_status=current)
            return {'filled_by_ref': filled_by, 'filled_at': now}, comments

        # cancel
        return {}, comments

    def submit(self, actor: User, comments: Optional[str] = None) -> JobPosting:
        return self.apply_transition(JobPostingStateMachine.SUBMIT, actor, comments)

    def approve(self, actor: User, comments: Optional[str] = None) -> JobPosting:
        return self.apply_transition(JobPostingStateMachine.APPROVE, actor, comments)

    def reject(self, actor: User, reason: str) -> JobPosting:
        return self.apply_transition(JobPostingStateMachine.REJECT, actor, reason=reason)

    def assign_procurement(self, actor: User, assignee_id: Optional[int] = None, notes: Optional[str] = None) -> JobPosting:
        return self.apply_transition(JobPostingStateMachine.ASSIGN_PROCUREMENT, actor, assignee_id=assignee_id, notes=notes)

    def fill(self, actor: User, filled_by_ref: str, comments: Optional[str] = None) -> JobPosting:
        return self.apply_transition(JobPostingStateMachine.FILL, actor, comments, filled_by_ref=filled_by_ref)

    def cancel(self, actor: User, comments: Optional[str] = None) -> JobPosting:
        return self.apply_transition(JobPostingStateMachine.CANCEL, actor, comments)

    def add_comment(self, actor: User, comments: str) -> JobPostingWorkflowEntry:
        """Record an audit note without changing status"""
        posting = self._job_posting

        def comment():
            status = posting.status
            if actor is None or not any(actor.has_permission(p) for p in COMMENT_PERMISSIONS):
                raise Forbidden(
                    "Actor is not permitted to comment on this job posting",
                    entity_id=posting.job_id, action="comment", current_status=status,
                )
            text = require_text(comments, 'Comments', 1000, entity_id=posting.job_id, action="comment",
                                current_status=status)
            entry = JobPostingWorkflowEntry(
                action='commented',
                performed_by_id=actor.id,
                performed_at=utcnow_naive(),
                from_status=status,
                to_status=status,
                comments=text,
            )
            posting.workflow_history.append(entry)
            return entry

        return run_atomic(comment, action="comment", entity_id=posting.job_id, status_of=lambda: posting.status)

    def to_dict(self) -> Dict[str, Any]:
        data = self._job_posting.to_dict()
        data['status_display'] = self._job_posting.status_display
        data['days_until_doj'] = self._job_posting.days_until_doj
        data['is_overdue'] = self._job_posting.is_overdue
        data['workflow_history'] = [entry.to_dict() for entry in self._job_posting.workflow_history]
        return data

