"""
State machine for Asset status transitions
"""

from hr_ops.buisness.core.state_machine import WorkflowStateMachine, transitions_from
from hr_ops.buisness.core.permissions import CAN_MANAGE_ASSETS


class AssetStateMachine(WorkflowStateMachine):
    """
    Hardware lifecycle. Disposal is the only terminal state.

    Damage marking never overrides maintenance in progress, so mark_damaged
    is not offered from under_maintenance.
    """

    ENTITY_NAME = 'asset'

    AVAILABLE = 'available'
    ALLOCATED = 'allocated'
    UNDER_MAINTENANCE = 'under_maintenance'
    DAMAGED = 'damaged'
    DISPOSED = 'disposed'
    LOST = 'lost'
    IN_TRANSIT = 'in_transit'

    ASSIGN = 'assign'
    RETURN = 'return'
    SEND_TO_MAINTENANCE = 'send_to_maintenance'
    COMPLETE_MAINTENANCE = 'complete_maintenance'
    MARK_DAMAGED = 'mark_damaged'
    DISPOSE = 'dispose'
    MARK_LOST = 'mark_lost'
    RECOVER = 'recover'
    SHIP = 'ship'
    RECEIVE = 'receive'

    STATES = frozenset({AVAILABLE, ALLOCATED, UNDER_MAINTENANCE, DAMAGED, DISPOSED, LOST, IN_TRANSIT})
    TERMINAL_STATES = frozenset({DISPOSED})
    NON_TERMINAL_STATES = STATES - TERMINAL_STATES

    TRANSITIONS = {
        (AVAILABLE, ASSIGN): ALLOCATED,
        (ALLOCATED, RETURN): AVAILABLE,
        **transitions_from(NON_TERMINAL_STATES - {UNDER_MAINTENANCE}, SEND_TO_MAINTENANCE, UNDER_MAINTENANCE),
        (UNDER_MAINTENANCE, COMPLETE_MAINTENANCE): AVAILABLE,
        **transitions_from(NON_TERMINAL_STATES - {UNDER_MAINTENANCE, DAMAGED}, MARK_DAMAGED, DAMAGED),
        **transitions_from(NON_TERMINAL_STATES, DISPOSE, DISPOSED),
        **transitions_from(NON_TERMINAL_STATES - {LOST}, MARK_LOST, LOST),
        (LOST, RECOVER): AVAILABLE,
        (AVAILABLE, SHIP): IN_TRANSIT,
        (IN_TRANSIT, RECEIVE): AVAILABLE,
    }

    GUARDS = {action: (CAN_MANAGE_ASSETS,) for (_, action) in TRANSITIONS}
