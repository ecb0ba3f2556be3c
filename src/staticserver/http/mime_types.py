"""
=============================================================================
MIME TYPE LOOKUP
=============================================================================

Maps file extensions to MIME types for the Content-Type header.

    ┌────────────────────────────────────────────────────────────────────┐
    │                WHY THE RESPONDER CARES ABOUT MIME                  │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  text/html      → streamed through the meta tag scanner           │
    │  anything else  → piped straight from disk to the socket          │
    │  unknown        → application/octet-stream (browser downloads it) │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

Two kinds of answers are offered:

    content_type_for(".css")   →  "text/css"        (None when unknown)
    get_mime_type("a/b.css")   →  "text/css"        (default when unknown)
    get_content_type("b.css")  →  "text/css; charset=utf-8"

The bare MIME type drives decisions (is this HTML?); the full Content-Type
with charset is what goes on the wire.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".xhtml": "application/xhtml+xml",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",

    # Other
    ".wasm": "application/wasm",
    ".map": "application/json",    # Source maps
    ".webmanifest": "application/manifest+json",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* types that are really text and deserve a charset
_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/xhtml+xml",
    "application/manifest+json",
    "image/svg+xml",
}


def content_type_for(extension: str) -> Optional[str]:
    """
    Look up the MIME type for an extension.

    Args:
        extension: ".html", "html" or ".HTML" are all accepted.

    Returns:
        The MIME type, or None when the extension is unknown.
    """
    if not extension:
        return None
    if not extension.startswith("."):
        extension = "." + extension
    return MIME_TYPES.get(extension.lower())


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("/srv/www/index.HTML")
        'text/html'
        >>> get_mime_type("archive.unknown")
        'application/octet-stream'
    """
    return content_type_for(Path(path).suffix) or default or DEFAULT_MIME_TYPE


def is_text_type(mime_type: str) -> bool:
    """Check if a MIME type is text-based and should carry a charset."""
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def get_content_type(path: Union[str, Path], charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for a file.

    Examples:
        >>> get_content_type("page.html")
        'text/html; charset=utf-8'
        >>> get_content_type("image.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
