"""
HTTP-date helpers (RFC 7231 section 7.1.1.1).

    Wed, 15 Jun 2024 10:00:00 GMT

HTTP dates are always GMT. Parsing is lenient about the obsolete RFC 850
and asctime forms because email.utils already understands them.
"""

import time
from datetime import timezone
from email.utils import formatdate, parsedate_to_datetime
from typing import Optional


def format_http_date(timestamp: Optional[float] = None) -> str:
    """
    Format a POSIX timestamp (default: now) as an HTTP-date.

    Example:
        >>> format_http_date(0)
        'Thu, 01 Jan 1970 00:00:00 GMT'
    """
    if timestamp is None:
        timestamp = time.time()
    return formatdate(timestamp, usegmt=True)


def parse_http_date(value: Optional[str]) -> Optional[float]:
    """
    Parse an HTTP-date into a POSIX timestamp.

    Returns None for missing or unparseable values instead of raising;
    callers treat an unreadable date as "no date".
    """
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()
