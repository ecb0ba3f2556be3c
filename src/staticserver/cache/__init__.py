"""
=============================================================================
CACHE POLICY ENGINE
=============================================================================

Everything that decides how long a client may keep a served file.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ POLICY (policy.py)                                                  │
    │ ─────────────────────────────────────────────────────────────────── │
    │ CachePolicyStore      path → CachePolicy, shared by all requests    │
    │ resolve_max_age()     override → request → discovered → default    │
    │ is_conditional_hit()  If-Modified-Since + max_age → 304 or not     │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ META SCANNER (meta_scanner.py)                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Watches HTML chunks on their way to the socket and reports the     │
    │ first <meta http-equiv="Cache-Control" content="..."> it sees.     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .meta_scanner import MetaScanner, find_cache_control_meta
from .policy import (
    CachePolicy,
    CachePolicyStore,
    is_conditional_hit,
    max_age_from_directives,
    parse_cache_control_header,
    resolve_max_age,
)

__all__ = [
    "CachePolicy",
    "CachePolicyStore",
    "MetaScanner",
    "find_cache_control_meta",
    "is_conditional_hit",
    "max_age_from_directives",
    "parse_cache_control_header",
    "resolve_max_age",
]
