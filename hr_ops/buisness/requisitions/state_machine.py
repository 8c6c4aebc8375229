"""
State machine for JobPosting status transitions
"""

from hr_ops.buisness.core.state_machine import WorkflowStateMachine, transitions_from
from hr_ops.buisness.core.permissions import (
    CAN_ACCESS_PROCUREMENT,
    CAN_APPROVE_JOBS,
    CAN_CREATE_JOBS,
)


class JobPostingStateMachine(WorkflowStateMachine):
    """
    Requisition lifecycle:
    draft -> pending_approval -> approved -> in_procurement -> filled

    Rejection sends a posting back to draft for revision. Anything still open can be cancelled.
    """

    ENTITY_NAME = 'job posting'

    DRAFT = 'draft'
    PENDING_APPROVAL = 'pending_approval'
    APPROVED = 'approved'
    IN_PROCUREMENT = 'in_procurement'
    FILLED = 'filled'
    CANCELLED = 'cancelled'

    SUBMIT = 'submit'
    APPROVE = 'approve'
    REJECT = 'reject'
    ASSIGN_PROCUREMENT = 'assign_procurement'
    FILL = 'fill'
    CANCEL = 'cancel'

    STATES = frozenset({DRAFT, PENDING_APPROVAL, APPROVED, IN_PROCUREMENT, FILLED, CANCELLED})
    TERMINAL_STATES = frozenset({FILLED, CANCELLED})

    TRANSITIONS = {
        (DRAFT, SUBMIT): PENDING_APPROVAL,
        (PENDING_APPROVAL, APPROVE): APPROVED,
        (PENDING_APPROVAL, REJECT): DRAFT,
        (APPROVED, ASSIGN_PROCUREMENT): IN_PROCUREMENT,
        (IN_PROCUREMENT, FILL): FILLED,
        **transitions_from((DRAFT, PENDING_APPROVAL, APPROVED, IN_PROCUREMENT), CANCEL, CANCELLED),
    }

    GUARDS = {
        SUBMIT: (CAN_CREATE_JOBS,),
        APPROVE: (CAN_APPROVE_JOBS,),
        REJECT: (CAN_APPROVE_JOBS,),
        ASSIGN_PROCUREMENT: (CAN_APPROVE_JOBS, CAN_ACCESS_PROCUREMENT),
        FILL: (CAN_ACCESS_PROCUREMENT,),
        CANCEL: (CAN_CREATE_JOBS, CAN_APPROVE_JOBS),
    }

    # Vocabulary recorded in workflow history
    HISTORY_ACTIONS = {
        SUBMIT: 'submitted',
        APPROVE: 'approved',
        REJECT: 'rejected',
        ASSIGN_PROCUREMENT: 'assigned_procurement',
        FILL: 'filled',
        CANCEL: 'cancelled',
    }
