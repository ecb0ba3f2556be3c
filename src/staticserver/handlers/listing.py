"""
=============================================================================
DIRECTORY RESOLUTION
=============================================================================

What to send when the requested path is a directory:

    GET /docs/
        │
        ├── /docs/index.html exists?  ──yes──► serve it
        ├── /docs/index.htm exists?   ──yes──► serve it
        │
        └── neither ──► HTML listing of /docs/

The candidate names come from ServerConfig.default_files and are tried in
order. Only regular files count: a directory called "index.html" is
skipped.

=============================================================================
LISTING FORMAT
=============================================================================

    <h1>Index of /docs</h1>
    <ul>
      <li><a href="/docs/guide.html">guide.html</a></li>
      <li><a href="/docs/images">images/</a></li>
    </ul>

Links are absolute so they work with or without a trailing slash on the
requested URL. Names are HTML-escaped and hrefs are percent-encoded, so a
file called <script>.html is shown as text, not run.

Every entry is listed, hidden files included. Large directories are not
paginated.

=============================================================================
"""

import html
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union
from urllib.parse import quote


logger = logging.getLogger(__name__)


LISTING_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>
      body {{ font-family: sans-serif; margin: 2rem; }}
      h1 {{ margin-bottom: 1rem; }}
      ul {{ list-style: none; padding: 0; }}
      li {{ margin: 0.5rem 0; }}
      a {{ text-decoration: none; color: #0366d6; }}
      a:hover {{ text-decoration: underline; }}
    </style>
  </head>
  <body>
    <h1>{title}</h1>
    <ul>
{items}
    </ul>
  </body>
</html>
"""


def find_default_document(
    directory: Union[str, Path],
    default_files: Iterable[str],
) -> Optional[Path]:
    """
    Return the first default document in directory that is a regular file.

    Args:
        directory: Directory to look in.
        default_files: Candidate names, in priority order.

    Returns:
        Path of the document, or None when no candidate exists.
    """
    directory = Path(directory)
    for name in default_files:
        candidate = directory / name
        try:
            if candidate.is_file():
                return candidate
        except OSError as e:
            logger.debug(f"Skipping default document {candidate}: {e}")
    return None


def list_directory(directory: Union[str, Path]) -> List[str]:
    """Names of all entries in directory, sorted."""
    return sorted(entry.name for entry in Path(directory).iterdir())


def _href(url_path: str, name: str) -> str:
    base = url_path.strip("/")
    joined = f"/{base}/{name}" if base else f"/{name}"
    return quote(joined)


def render_directory_listing(
    url_path: str,
    directory: Union[str, Path],
    entries: Iterable[str],
) -> str:
    """
    Render an HTML index page for a directory.

    Args:
        url_path: The requested URL path, used for the title and links.
        directory: Filesystem directory the entries live in; used to tell
                   sub-directories (shown with a trailing "/") from files.
        entries: Entry names, rendered in the order given.

    Returns:
        The complete HTML document.
    """
    directory = Path(directory)
    title = html.escape(f"Index of {url_path}")

    items = []
    for name in entries:
        try:
            suffix = "/" if (directory / name).is_dir() else ""
        except OSError:
            suffix = ""
        items.append(
            f'      <li><a href="{html.escape(_href(url_path, name))}">'
            f"{html.escape(name)}{suffix}</a></li>"
        )

    return LISTING_TEMPLATE.format(title=title, items="\n".join(items))
