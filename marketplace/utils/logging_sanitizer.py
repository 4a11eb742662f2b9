"""
Logging Sanitizer Utility

Redacts credentials and payment details from request payloads before they
reach the log files.
"""

from typing import Dict, Any, Optional
from werkzeug.datastructures import MultiDict


# Fields that should never be logged
SENSITIVE_FIELDS = {
    'password',
    'password_confirm',
    'confirm_password',
    'current_password',
    'new_password',
    'old_password',
    'secret',
    'token',
    'api_key',
    'access_token',
    'refresh_token',
    'session_id',
    'csrf_token',
    'card_number',
    'credit_card',
    'cvv',
    'upi_pin',
}


def _sanitize_value(value: Any, redact_text: str) -> Any:
    if isinstance(value, dict):
        return sanitize_dict(value, redact_text)
    if isinstance(value, list):
        return [_sanitize_value(item, redact_text) for item in value]
    return value


def sanitize_dict(data: Optional[Dict[str, Any]], redact_text: str = '[REDACTED]') -> Optional[Dict[str, Any]]:
    """
    Replace sensitive field values with redaction text.

    Nested dictionaries and lists of dictionaries (checkout payloads carry
    both) are sanitized recursively. Key matching is case-insensitive.

    Example:
        >>> sanitize_dict({'email': 'a@b.c', 'password': 'secret123'})
        {'email': 'a@b.c', 'password': '[REDACTED]'}
    """
    if not data:
        return data

    sanitized = {}
    for key, value in data.items():
        if str(key).lower() in SENSITIVE_FIELDS:
            sanitized[key] = redact_text
        else:
            sanitized[key] = _sanitize_value(value, redact_text)
    return sanitized


def sanitize_request_payload(payload: Any, redact_text: str = '[REDACTED]') -> Any:
    """
    Sanitize a request body for logging.

    Accepts the result of ``request.get_json(silent=True)`` (dict, list or
    None) or ``request.form``.
    """
    if isinstance(payload, MultiDict):
        return sanitize_dict(payload.to_dict(), redact_text)
    return _sanitize_value(payload, redact_text)


def sanitize_exception_message(exception: Exception) -> str:
    """Return the exception message unless it mentions a sensitive field name."""
    message = str(exception)
    if any(field in message.lower() for field in SENSITIVE_FIELDS):
        return f"{type(exception).__name__}: [Message contains sensitive data]"
    return message
