"""
=============================================================================
HANDLERS MODULE
=============================================================================

The code that decides what to send for a request.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 REQUEST → RESPONDER → RESPONSE                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    Request                 Responder                Response        │
    │   ┌─────────┐           ┌───────────┐           ┌─────────┐        │
    │   │ GET     │           │ resolve   │           │ 200 OK  │        │
    │   │ /docs/  │ ────────▶ │ cache     │ ────────▶ │ chunks  │        │
    │   │         │           │ stream    │           │ ...     │        │
    │   └─────────┘           └───────────┘           └─────────┘        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

1. Responder (static.py)
   - Path containment, default documents, listings
   - Conditional GET (304) and Cache-Control headers
   - Meta tag discovery while streaming HTML
   - JSON, redirects, error pages, downloads, CORS

2. Directory helpers (listing.py)
   - find_default_document()
   - render_directory_listing()

=============================================================================
"""

from .listing import find_default_document, list_directory, render_directory_listing
from .static import Responder, error_page

__all__ = [
    "Responder",
    "error_page",
    "find_default_document",
    "list_directory",
    "render_directory_listing",
]
