"""
Input coercion shared by the contexts. Everything here raises ValidationFailure
before any entity field is touched.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from hr_ops.buisness.core.errors import ValidationFailure
from hr_ops.utils.time_utils import to_naive_utc


def to_decimal(value, field, entity_id=None, action=None, minimum=None, maximum=None, current_status=None):
    if value is None:
        return None
    context = dict(entity_id=entity_id, action=action, current_status=current_status)
    if isinstance(value, bool):
        raise ValidationFailure(f"{field} must be a number", **context)
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailure(f"{field} must be a number", **context) from None
    if not number.is_finite():
        raise ValidationFailure(f"{field} must be a finite number", **context)
    if minimum is not None and number < minimum:
        raise ValidationFailure(f"{field} cannot be less than {minimum}", **context)
    if maximum is not None and number > maximum:
        raise ValidationFailure(f"{field} cannot be greater than {maximum}", **context)
    return number


def to_datetime(value, field, entity_id=None, action=None, current_status=None):
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return to_naive_utc(datetime.fromisoformat(value))
        except ValueError:
            pass
    raise ValidationFailure(f"{field} must be a date", entity_id=entity_id, action=action,
                            current_status=current_status)


def to_user_id(value, field, entity_id=None, action=None, current_status=None):
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationFailure(f"{field} must be a user id", entity_id=entity_id, action=action,
                                current_status=current_status)
    try:
        user_id = int(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{field} must be a user id", entity_id=entity_id, action=action,
                                current_status=current_status) from None
    if isinstance(value, float) and value != user_id:
        raise ValidationFailure(f"{field} must be a user id", entity_id=entity_id, action=action,
                                current_status=current_status)
    return user_id


def require_text(value, field, max_length=None, entity_id=None, action=None, current_status=None):
    context = dict(entity_id=entity_id, action=action, current_status=current_status)
    text = (value or '').strip() if isinstance(value, str) or value is None else None
    if text is None:
        raise ValidationFailure(f"{field} must be text", **context)
    if not text:
        raise ValidationFailure(f"{field} is required", **context)
    if max_length is not None and len(text) > max_length:
        raise ValidationFailure(f"{field} cannot exceed {max_length} characters", **context)
    return text


def optional_text(value, field, max_length=None, entity_id=None, action=None, current_status=None):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_text(value, field, max_length=max_length, entity_id=entity_id, action=action,
                        current_status=current_status)
