"""
Server Utilities

Generic, context-agnostic utility functions.
"""

import re
import uuid

# Try Python's uuid.uuid7() first (3.14+), fall back to uuid6 package
if hasattr(uuid, "uuid7"):
    _uuid7_func = uuid.uuid7
else:
    import uuid6
    _uuid7_func = uuid6.uuid7


def uuid7_str() -> str:
    """
    Generate a UUID v7 string (time-sortable UUID).

    Returns a 32-character hex string (no hyphens).
    """
    return _uuid7_func().hex


def sanitize_error_message(error: Exception | str) -> str:
    """
    Sanitize error message to prevent sensitive info leakage.
    Removes API keys, tokens, file paths with usernames.
    """
    msg = str(error)

    # Provider API keys and bearer tokens
    msg = re.sub(r'sk-[a-zA-Z0-9_-]{20,}', '[API_KEY_REDACTED]', msg)
    msg = re.sub(r'xox[abpr]-[a-zA-Z0-9-]{10,}', '[TOKEN_REDACTED]', msg)
    msg = re.sub(r'(Bearer\s+)[A-Za-z0-9._~+/=-]{8,}', r'\1[REDACTED]', msg)
    msg = re.sub(
        r'(api[_-]?key|access[_-]?token|refresh[_-]?token|client[_-]?secret|bot[_-]?token)'
        r'(["\']?\s*[:=]\s*["\']?)[A-Za-z0-9._~+/=-]+',
        r'\1\2[REDACTED]',
        msg,
        flags=re.IGNORECASE,
    )

    # Remove full file paths that might contain usernames
    msg = re.sub(r'/home/[^/\s]+', '/home/[USER]', msg)
    msg = re.sub(r'/Users/[^/\s]+', '/Users/[USER]', msg)
    msg = re.sub(r'C:\\Users\\[^\\]+', r'C:\\Users\\[USER]', msg)

    return msg

