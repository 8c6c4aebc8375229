"""
Logging Sanitizer Utility

Redacts credentials from request payloads before they reach the JSON logs.
"""

from typing import Any, Dict, Mapping


# Fields that should never be logged
SENSITIVE_FIELDS = {
    'password',
    'password_hash',
    'confirm_password',
    'current_password',
    'new_password',
    'secret',
    'secret_key',
    'token',
    'api_key',
    'auth_token',
    'access_token',
    'refresh_token',
    'session_id',
}


def sanitize_dict(data: Mapping[str, Any], redact_text: str = '[REDACTED]') -> Dict[str, Any]:
    """
    Replace sensitive values, at any nesting depth, with redact_text.

    Example:
        >>> sanitize_dict({'username': 'admin', 'password': 'secret123'})
        {'username': 'admin', 'password': '[REDACTED]'}
    """
    if not data:
        return data

    sanitized = {}
    for key, value in data.items():
        if str(key).lower() in SENSITIVE_FIELDS:
            sanitized[key] = redact_text
        elif isinstance(value, Mapping):
            sanitized[key] = sanitize_dict(value, redact_text)
        elif isinstance(value, list):
            sanitized[key] = [sanitize_dict(item, redact_text) if isinstance(item, Mapping) else item
                              for item in value]
        else:
            sanitized[key] = value

    return sanitized


def sanitize_exception_message(exception: Exception) -> str:
    """Drop the message of an exception that mentions a sensitive field"""
    message = str(exception)
    if any(field in message.lower() for field in SENSITIVE_FIELDS):
        return f"{type(exception).__name__}: [Message contains sensitive data]"
    return message
