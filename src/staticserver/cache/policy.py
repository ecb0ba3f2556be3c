"""
=============================================================================
CACHE POLICY RESOLUTION
=============================================================================

Decides which max-age applies to a served file and whether a conditional
request can be answered with 304 Not Modified.

=============================================================================
WHERE CAN A MAX-AGE COME FROM?
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 EFFECTIVE POLICY PRECEDENCE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Explicit override     responder.stream_file(p, max_age=600)    │
    │          │ 0?                                                        │
    │          ▼                                                           │
    │   2. Request header        Cache-Control: max-age=60                │
    │          │ 0?                                                        │
    │          ▼                                                           │
    │   3. Discovered            <meta http-equiv="Cache-Control"         │
    │          │ absent?               content="max-age=120">             │
    │          ▼                                                           │
    │   4. Server default        ServerConfig.max_age (0 = no headers)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The first source with a value wins. Values are never averaged or merged.

Note on (2): letting a client's own Cache-Control decide the response
policy is unusual; most servers ignore request directives here. It is
kept because existing deployments depend on it.

Note on (4): ServerConfig.max_age is only a fallback. A page's own meta
declaration, including max-age=0, always ranks above it, so a global
default never overrides what a page asks for. Use the explicit override
(1) to force a lifetime for every file.

=============================================================================
CONDITIONAL GET
=============================================================================

    If-Modified-Since: Wed, 15 Jun 2024 10:00:00 GMT      (client copy)
                                 │
                                 ▼
        deadline = seconds(If-Modified-Since) + max_age
        now      = seconds(current time)

        now <= deadline  →  304 Not Modified
        otherwise        →  200 with the full file

The comparison is in whole seconds. Last-Modified is stamped with the
time the response was sent, not the file's mtime, so the client's copy
is considered fresh for max_age seconds after it was fetched.

=============================================================================
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Union

from ..http.dates import parse_http_date


logger = logging.getLogger(__name__)

CacheDirectives = Dict[str, Union[str, bool, int]]


@dataclass(frozen=True)
class CachePolicy:
    """
    A discovered caching policy for one file.

    max_age == 0 is a real answer ("the page asked for no caching"), not
    the same thing as having no entry at all.
    """

    max_age: int = 0

    def __post_init__(self):
        if self.max_age < 0:
            raise ValueError(f"max_age must be >= 0, got {self.max_age}")


class CachePolicyStore:
    """
    Thread-safe map of absolute file path → CachePolicy.

    One store is created per server and handed to every Responder, so
    a tag discovered while serving one request benefits the next ones.
    Tests build their own store for isolation.

    Entries are never evicted. If a file changes on disk its old entry is
    served until the process restarts.

    Concurrent writes for the same path are a benign race: both writers
    read the same file, so the last write wins.
    """

    def __init__(self):
        self._entries: Dict[str, CachePolicy] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(path) -> str:
        return str(path)

    def get(self, path) -> Optional[CachePolicy]:
        with self._lock:
            return self._entries.get(self._key(path))

    def set(self, path, max_age: int) -> CachePolicy:
        policy = CachePolicy(max_age=max(0, int(max_age)))
        with self._lock:
            self._entries[self._key(path)] = policy
        return policy

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, path) -> bool:
        with self._lock:
            return self._key(path) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._entries))


def parse_cache_control_header(raw: Optional[str]) -> CacheDirectives:
    """
    Parse a Cache-Control header into a directive mapping.

    Directive names are lowercased, double quotes are stripped from
    values, and flag directives map to True. The result always has a
    "max-age" key; it stays 0 when the header does not set one.

    Examples:
        >>> parse_cache_control_header("max-age=300, no-cache")
        {'max-age': '300', 'no-cache': True}
        >>> parse_cache_control_header(None)
        {'max-age': 0}
    """
    result: CacheDirectives = {"max-age": 0}
    if not raw or not raw.strip():
        return result

    for directive in raw.split(","):
        directive = directive.strip()
        if not directive:
            continue
        name, sep, value = directive.partition("=")
        name = name.strip().lower()
        if not name:
            continue
        if sep:
            result[name] = value.strip().replace('"', "")
        else:
            result[name] = True
    return result


def max_age_from_directives(directives: CacheDirectives) -> int:
    """
    Extract max-age as a non-negative integer.

    Missing, flag-only ("max-age" without a value), non-numeric or
    negative values all count as 0.
    """
    value = directives.get("max-age", 0)
    if isinstance(value, bool):
        return 0
    try:
        max_age = int(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring invalid max-age value: {value!r}")
        return 0
    return max(0, max_age)


def is_conditional_hit(
    if_modified_since: Optional[str],
    max_age: int,
    now: Optional[float] = None,
) -> bool:
    """
    Decide whether a conditional request can be answered with 304.

    Args:
        if_modified_since: Raw If-Modified-Since header value.
        max_age: Effective max-age in seconds for this response.
        now: Current POSIX time; defaults to time.time().

    Returns:
        True when the client's copy is still within max_age. False when
        the header is absent or cannot be parsed (send the full file).
    """
    if not if_modified_since:
        return False

    client_time = parse_http_date(if_modified_since)
    if client_time is None:
        logger.debug(f"Unparseable If-Modified-Since: {if_modified_since!r}")
        return False

    if now is None:
        now = time.time()

    client_deadline = math.floor(client_time) + max_age
    return math.floor(now) <= client_deadline


def resolve_max_age(
    explicit: Optional[int] = None,
    request_directives: Optional[CacheDirectives] = None,
    stored: Optional[CachePolicy] = None,
    default: int = 0,
) -> int:
    """
    Pick the effective max-age for one response.

    Args:
        explicit: Per-call override from the caller of the responder.
        request_directives: Parsed Cache-Control of the incoming request.
        stored: Policy discovered from the file's own meta tag.
        default: Server-wide default from configuration.

    Returns:
        The first non-zero explicit/request value, else the stored value,
        else the default.
    """
    if explicit:
        return max(0, int(explicit))

    if request_directives:
        requested = max_age_from_directives(request_directives)
        if requested:
            return requested

    if stored is not None:
        return stored.max_age

    return max(0, int(default or 0))
