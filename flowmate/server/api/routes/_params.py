"""
Lenient query-parameter parsing shared by the listing routes.
"""

from typing import Optional


def parse_int(value: Optional[str], default: int) -> int:
    """Parse an integer query value; anything malformed yields the default."""
    if value is None:
        return default
    try:
        return int(value.strip())
    except (TypeError, ValueError):
        return default
