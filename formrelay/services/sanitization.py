"""Input sanitization and honeypot spam detection"""
from typing import Any, Dict

# Hidden fields real visitors never fill in
HONEYPOT_FIELDS = ("_hp", "_honeypot", "website")

_HTML_ESCAPES = str.maketrans({
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
})


def sanitize_string(value: str) -> str:
    return value.translate(_HTML_ESCAPES).strip()


def sanitize_form_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Escape HTML-special characters in submitted strings

    Returns a new dict; strings (also inside lists) are escaped and trimmed,
    every other value is copied as is.
    """
    sanitized: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            sanitized[key] = sanitize_string(value)
        elif isinstance(value, list):
            sanitized[key] = [sanitize_string(v) if isinstance(v, str) else v for v in value]
        else:
            sanitized[key] = value
    return sanitized


def is_spam_submission(data: Dict[str, Any]) -> bool:
    """Check the honeypot fields"""
    for key in HONEYPOT_FIELDS:
        value = data.get(key)
        if value and str(value).strip():
            return True
    return False
