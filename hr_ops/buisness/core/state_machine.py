"""
Generic workflow state machine

Encodes valid (state, action) -> state transitions plus a permission guard per action.
Keeps "what is allowed" separate from "how persistence occurs": nothing here touches
an entity, so a rejected action leaves every field exactly as it was.
"""

from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple

from hr_ops.buisness.core.errors import Forbidden, InvalidTransition


def transitions_from(sources: Iterable[str], action: str, target: str) -> Dict[Tuple[str, str], str]:
    """Expand one action reachable from several states into table rows"""
    return {(source, action): target for source in sources}


class WorkflowStateMachine:
    """
    Base state machine. Subclasses fill in the class attributes.

    TRANSITIONS maps (current state, action) to the next state.
    GUARDS maps an action to the permissions that allow it; holding any one is enough.
    """

    ENTITY_NAME = 'entity'
    STATES: FrozenSet[str] = frozenset()
    TERMINAL_STATES: FrozenSet[str] = frozenset()
    TRANSITIONS: Dict[Tuple[str, str], str] = {}
    GUARDS: Dict[str, Tuple[str, ...]] = {}

    @classmethod
    def actions(cls) -> Set[str]:
        return {action for (_, action) in cls.TRANSITIONS}

    @classmethod
    def next_state(cls, current: str, action: str) -> Optional[str]:
        if current in cls.TERMINAL_STATES:
            return None
        return cls.TRANSITIONS.get((current, action))

    @classmethod
    def can_transition(cls, current: str, action: str) -> bool:
        return cls.next_state(current, action) is not None

    @classmethod
    def allowed_actions(cls, current: str) -> Set[str]:
        """Get set of actions valid from the current state"""
        if current in cls.TERMINAL_STATES:
            return set()
        return {action for (state, action) in cls.TRANSITIONS if state == current}

    @classmethod
    def actor_permitted(cls, action: str, actor) -> bool:
        required = cls.GUARDS.get(action, ())
        if not required:
            return actor is not None
        if actor is None:
            return False
        return any(actor.has_permission(permission) for permission in required)

    @classmethod
    def validate(cls, current: str, action: str, actor, entity_id: Optional[str] = None) -> str:
        """
        Check the table first, then the actor's permission.

        Returns:
            str: The state the entity moves to

        Raises:
            InvalidTransition: If the action is not valid from the current state
            Forbidden: If the actor lacks the permission the action requires
        """
        target = cls.next_state(current, action)
        if target is None:
            if action not in cls.actions():
                message = f"Unknown {cls.ENTITY_NAME} action"
            elif current in cls.TERMINAL_STATES:
                message = f"{cls.ENTITY_NAME} is in terminal state"
            else:
                message = f"Invalid {cls.ENTITY_NAME} transition"
            raise InvalidTransition(message, entity_id=entity_id, action=action, current_status=current)

        if not cls.actor_permitted(action, actor):
            raise Forbidden(
                f"Actor {getattr(actor, 'username', None)!r} is not permitted to {action} this {cls.ENTITY_NAME}",
                entity_id=entity_id,
                action=action,
                current_status=current,
            )
        return target
