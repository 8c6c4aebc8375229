"""
Unit of work

Runs one entity mutation and commits it exactly once. Status change and history
append are flushed in the same transaction, so a failure leaves neither behind.

Handles:
- Optimistic concurrency conflicts (StaleDataError from the version column): rollback and retry
- Domain errors raised mid-operation: rollback, fill in missing entity context, re-raise
- Constraint violations (IntegrityError, DataError): rollback and raise ValidationFailure
- Store errors and pool timeouts: rollback and raise ResourceUnavailable
- Anything else: rollback and re-raise
"""

from typing import Callable, Optional, TypeVar

from flask import current_app
from sqlalchemy.exc import DataError, IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError

from hr_ops import db
from hr_ops.buisness.core.errors import (
    ConflictRetryExhausted,
    LifecycleDomainError,
    ResourceUnavailable,
    ValidationFailure,
)
from hr_ops.logger import get_logger
from hr_ops.utils.logging_sanitizer import sanitize_exception_message

logger = get_logger("hr_ops.buisness.core.unit_of_work")

T = TypeVar('T')


def conflict_retry_limit() -> int:
    return int(current_app.config.get('MAX_CONFLICT_RETRIES', 3))


def run_atomic(
    operation: Callable[[], T],
    action: Optional[str] = None,
    entity_id: Optional[str] = None,
    status_of: Optional[Callable[[], Optional[str]]] = None,
    max_retries: Optional[int] = None,
) -> T:
    """
    Run operation() and commit.

    The operation is re-run from scratch after a version conflict, against the
    freshly reloaded entity, so it must read current state rather than capture it.

    Args:
        operation: Callable performing the in-memory mutation; its return value is passed through
        action: Action name used in errors and logs
        entity_id: Business identifier of the entity, for errors and logs
        status_of: Callable returning the entity's current status
        max_retries: Override for MAX_CONFLICT_RETRIES

    Raises:
        ConflictRetryExhausted: If every retry hit a version conflict
        ResourceUnavailable: If the store failed or timed out
        ValidationFailure: If a unique or column constraint rejected the write
        LifecycleDomainError: Whatever the operation raised, after rollback
    """
    retries = conflict_retry_limit() if max_retries is None else max_retries
    attempt = 0
    while True:
        current_status = status_of() if status_of else None
        try:
            result = operation()
            db.session.commit()
            return result
        except StaleDataError:
            db.session.rollback()
            attempt += 1
            if attempt > retries:
                logger.error(f"Conflict retries exhausted for {entity_id} during {action} after {attempt} attempts")
                raise ConflictRetryExhausted(
                    "Entity was modified concurrently; retry the operation",
                    entity_id=entity_id,
                    action=action,
                    current_status=status_of() if status_of else current_status,
                )
            logger.warning(f"Version conflict on {entity_id} during {action}, retry {attempt}/{retries}")
        except LifecycleDomainError as e:
            db.session.rollback()
            e.fill_context(entity_id=entity_id, action=action, current_status=current_status)
            logger.warning(f"Rejected {action} on {e.entity_id}: {e.detail}",
                           extra={"entity_id": e.entity_id, "action": e.action, "status": e.current_status})
            raise
        except (IntegrityError, DataError) as e:
            db.session.rollback()
            logger.warning(f"Constraint violation during {action} on {entity_id}: {sanitize_exception_message(e.orig)}")
            raise ValidationFailure(
                "The change conflicts with an existing record or a column constraint",
                entity_id=entity_id,
                action=action,
                current_status=current_status,
            ) from e
        except (OperationalError, PoolTimeoutError) as e:
            db.session.rollback()
            logger.error(f"Store unavailable during {action} on {entity_id}: {sanitize_exception_message(e)}")
            raise ResourceUnavailable(
                "The store could not complete the operation",
                entity_id=entity_id,
                action=action,
                current_status=current_status,
            ) from e
        except Exception:
            db.session.rollback()
            raise
