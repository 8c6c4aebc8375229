"""
Domain exceptions for entity lifecycle operations

These exceptions represent business rule violations and store failures.
They are raised by the business layer before or instead of any persisted change,
so the entity named in the error is always left as it was.
"""

from typing import Any, Dict, Optional


class LifecycleDomainError(Exception):
    """Base exception for all lifecycle domain errors"""

    http_status = 400
    retryable = False

    def __init__(
        self,
        message: str,
        entity_id: Optional[str] = None,
        action: Optional[str] = None,
        current_status: Optional[str] = None,
    ):
        self.detail = message
        self.entity_id = entity_id
        self.action = action
        self.current_status = current_status
        super().__init__(self._compose())

    def _compose(self) -> str:
        parts = [self.detail]
        context = []
        if self.entity_id:
            context.append(f"entity={self.entity_id}")
        if self.action:
            context.append(f"action={self.action}")
        if self.current_status:
            context.append(f"status={self.current_status}")
        if context:
            parts.append(f"({', '.join(context)})")
        return " ".join(parts)

    def fill_context(self, entity_id=None, action=None, current_status=None) -> 'LifecycleDomainError':
        """Set whichever of entity id, action and status the raiser left empty"""
        self.entity_id = self.entity_id or entity_id
        self.action = self.action or action
        self.current_status = self.current_status or current_status
        self.args = (self._compose(),)
        return self

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': False,
            'error': self.error_type,
            'message': self.detail,
            'entity_id': self.entity_id,
            'action': self.action,
            'current_status': self.current_status,
            'retryable': self.retryable,
        }


class InvalidTransition(LifecycleDomainError):
    """Raised when an action is not valid for the entity's current state"""
    http_status = 409


class Forbidden(LifecycleDomainError):
    """Raised when the actor lacks the permission an action requires"""
    http_status = 403


class ValidationFailure(LifecycleDomainError):
    """Raised for malformed input such as a negative cost"""
    http_status = 400


class ResourceUnavailable(LifecycleDomainError):
    """Raised when an atomic store primitive could not complete or timed out"""
    http_status = 503
    retryable = True


class ConflictRetryExhausted(LifecycleDomainError):
    """Raised when optimistic concurrency retries are used up"""
    http_status = 409
    retryable = True
