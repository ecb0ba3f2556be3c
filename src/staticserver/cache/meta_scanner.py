"""
=============================================================================
STREAMING META TAG SCANNER
=============================================================================

Finds a cache directive embedded in an HTML page while the page is being
sent, without holding the whole page in memory:

    <head>
      <meta http-equiv="Cache-Control" content="max-age=120">
    </head>

=============================================================================
HOW IT SITS IN THE PIPELINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      PASS-THROUGH OBSERVER                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   file ──chunk──► MetaScanner.feed() ──same chunk──► socket         │
    │                          │                                           │
    │                          │ first match only                          │
    │                          ▼                                           │
    │                  on_discovery("max-age=120")                         │
    │                          │                                           │
    │                          ▼                                           │
    │                  CachePolicyStore.set(path, 120)                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The scanner never changes, drops or reorders bytes. It only looks.

=============================================================================
CHUNK BOUNDARIES
=============================================================================

A tag can be split across reads:

    chunk 1:  ...<meta http-equiv="Cache-Con
    chunk 2:  trol" content="max-age=120">...

Matching each chunk on its own would miss it, so the scanner keeps the
bytes seen so far in a buffer and searches the buffer. A tag only matches
once its closing ">" has arrived, so a half-received value is never
reported.

The buffer stops growing at `limit` bytes (64 KiB by default). The tag
belongs in <head>, and a page that has not declared it by then is treated
as having no tag at all. After a match or after giving up, the buffer is
dropped and every later chunk passes straight through.

=============================================================================
WHAT COUNTS AS A MATCH
=============================================================================

    <meta http-equiv="Cache-Control" content="max-age=60">     yes
    <META CONTENT='max-age=60' HTTP-EQUIV='cache-control'>     yes
    <meta http-equiv=Cache-Control content=max-age=60>         yes
    <meta http-equiv="Cache-Control">                          no (no content)
    <meta name="Cache-Control" content="max-age=60">           no

The first matching tag wins; later ones are ignored.

=============================================================================
"""

import logging
import re
from typing import Callable, Iterable, Iterator, Optional


logger = logging.getLogger(__name__)

META_TAG_PATTERN = re.compile(rb"<meta\b[^>]*>", re.IGNORECASE)

ATTRIBUTE_PATTERN = re.compile(
    rb"""([a-z][a-z0-9_:.-]*)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""",
    re.IGNORECASE,
)


def _tag_attributes(tag: bytes) -> dict:
    attributes = {}
    for match in ATTRIBUTE_PATTERN.finditer(tag):
        name = match.group(1).lower()
        value = next(v for v in match.groups()[1:] if v is not None)
        attributes.setdefault(name, value)
    return attributes


def find_cache_control_meta(data: bytes) -> Optional[bytes]:
    """
    Return the content of the first Cache-Control meta tag in data.

    Returns:
        The raw content attribute value, or None when no complete tag
        with both http-equiv="Cache-Control" and content is present.
    """
    for tag in META_TAG_PATTERN.finditer(data):
        attributes = _tag_attributes(tag.group(0))
        equiv = attributes.get(b"http-equiv")
        if equiv is None or equiv.strip().lower() != b"cache-control":
            continue
        content = attributes.get(b"content")
        if content is not None:
            return content
    return None


class MetaScanner:
    """
    Pass-through observer that reports the first Cache-Control meta tag.

    =========================================================================
    USAGE
    =========================================================================

        scanner = MetaScanner(on_discovery=print, limit=64 * 1024)

        for chunk in scanner.scan(read_chunks(f)):
            sock.sendall(chunk)          # bytes are untouched

        scanner.discovered   # True if a tag was found
        scanner.value        # "max-age=120"

    on_discovery is called at most once per scanner, with the decoded
    content attribute. One scanner is used for one file read.

    =========================================================================
    """

    def __init__(
        self,
        on_discovery: Callable[[str], None],
        limit: int = 64 * 1024,
        encoding: str = "utf-8",
    ):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.on_discovery = on_discovery
        self.limit = limit
        self.encoding = encoding
        self.value: Optional[str] = None
        self.discovered = False
        self.done = False
        self._buffer = b""

    def feed(self, chunk: bytes) -> bytes:
        """
        Observe one chunk and return it unchanged.

        Once a tag is found or the limit is reached, this is a no-op.
        """
        if self.done or not chunk:
            return chunk

        room = self.limit - len(self._buffer)
        self._buffer += chunk[:room]

        content = find_cache_control_meta(self._buffer)
        if content is not None:
            self._discover(content)
        elif len(self._buffer) >= self.limit:
            logger.debug(
                f"No Cache-Control meta tag in the first {self.limit} bytes"
            )
            self._finish()

        return chunk

    def scan(self, chunks: Iterable[bytes]) -> Iterator[bytes]:
        """Yield every chunk of `chunks` in order, observing each one."""
        for chunk in chunks:
            yield self.feed(chunk)

    def _discover(self, content: bytes) -> None:
        self.value = content.decode(self.encoding, errors="replace").strip()
        self.discovered = True
        self._finish()
        logger.debug(f"Discovered Cache-Control meta tag: {self.value!r}")
        self.on_discovery(self.value)

    def _finish(self) -> None:
        self.done = True
        self._buffer = b""
