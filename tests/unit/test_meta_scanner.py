"""
Unit tests for the streaming meta tag scanner.
"""

import pytest

from staticserver.cache.meta_scanner import MetaScanner, find_cache_control_meta


PAGE = (
    b"<!DOCTYPE html><html><head><title>t</title>"
    b'<meta charset="utf-8">'
    b'<meta http-equiv="Cache-Control" content="max-age=120">'
    b"</head><body>" + b"x" * 500 + b"</body></html>"
)


def chunked(data: bytes, size: int):
    return [data[i:i + size] for i in range(0, len(data), size)]


class Recorder:
    def __init__(self):
        self.values = []

    def __call__(self, value):
        self.values.append(value)


class TestFindCacheControlMeta:
    """Tests for the tag matcher."""

    def test_double_quotes(self):
        assert find_cache_control_meta(PAGE) == b"max-age=120"

    def test_single_quotes_any_order(self):
        html = b"<META CONTENT='max-age=60' HTTP-EQUIV='cache-control'>"
        assert find_cache_control_meta(html) == b"max-age=60"

    def test_unquoted(self):
        html = b"<meta http-equiv=Cache-Control content=max-age=30>"
        assert find_cache_control_meta(html) == b"max-age=30"

    def test_self_closing(self):
        html = b'<meta http-equiv="Cache-Control" content="no-cache" />'
        assert find_cache_control_meta(html) == b"no-cache"

    def test_tag_without_content_is_skipped(self):
        html = (
            b'<meta http-equiv="Cache-Control">'
            b'<meta http-equiv="Cache-Control" content="max-age=5">'
        )
        assert find_cache_control_meta(html) == b"max-age=5"

    def test_other_meta_tags_ignored(self):
        html = (
            b'<meta name="Cache-Control" content="max-age=60">'
            b'<meta http-equiv="refresh" content="5">'
        )
        assert find_cache_control_meta(html) is None

    def test_first_tag_wins(self):
        html = (
            b'<meta http-equiv="Cache-Control" content="max-age=1">'
            b'<meta http-equiv="Cache-Control" content="max-age=2">'
        )
        assert find_cache_control_meta(html) == b"max-age=1"

    def test_unclosed_tag_not_matched(self):
        html = b'<meta http-equiv="Cache-Control" content="max-age=12'
        assert find_cache_control_meta(html) is None


class TestMetaScanner:
    """Tests for MetaScanner."""

    def test_discovers_value(self):
        recorder = Recorder()
        scanner = MetaScanner(recorder)

        scanner.feed(PAGE)

        assert recorder.values == ["max-age=120"]
        assert scanner.discovered is True
        assert scanner.done is True
        assert scanner.value == "max-age=120"

    def test_feed_returns_chunk_unchanged(self):
        scanner = MetaScanner(Recorder())
        chunk = b"<html><head>"
        assert scanner.feed(chunk) is chunk

    def test_scan_forwards_every_chunk_in_order(self):
        scanner = MetaScanner(Recorder())
        chunks = chunked(PAGE, 7)

        assert list(scanner.scan(chunks)) == chunks

    def test_callback_fires_once(self):
        recorder = Recorder()
        scanner = MetaScanner(recorder)
        html = PAGE + b'<meta http-equiv="Cache-Control" content="max-age=999">'

        for chunk in chunked(html, 10):
            scanner.feed(chunk)
        scanner.feed(PAGE)

        assert recorder.values == ["max-age=120"]

    def test_one_byte_chunks(self):
        recorder = Recorder()
        scanner = MetaScanner(recorder)

        forwarded = b"".join(scanner.scan(chunked(PAGE, 1)))

        assert forwarded == PAGE
        assert recorder.values == ["max-age=120"]

    def test_every_split_point(self):
        """Two-chunk splits anywhere give the same single discovery."""
        for split in range(1, len(PAGE)):
            recorder = Recorder()
            scanner = MetaScanner(recorder)

            forwarded = b"".join(scanner.scan([PAGE[:split], PAGE[split:]]))

            assert forwarded == PAGE
            assert recorder.values == ["max-age=120"], f"split at {split}"

    def test_no_tag(self):
        recorder = Recorder()
        scanner = MetaScanner(recorder)

        list(scanner.scan(chunked(b"<html><body>nothing</body></html>", 4)))

        assert recorder.values == []
        assert scanner.discovered is False
        assert scanner.value is None

    def test_tag_beyond_limit_is_ignored(self):
        recorder = Recorder()
        scanner = MetaScanner(recorder, limit=32)
        html = b"<html><head>" + b" " * 64 + b'<meta http-equiv="Cache-Control" content="max-age=9">'

        forwarded = b"".join(scanner.scan(chunked(html, 8)))

        assert forwarded == html
        assert recorder.values == []
        assert scanner.done is True

    def test_tag_straddling_limit_is_ignored(self):
        recorder = Recorder()
        tag = b'<meta http-equiv="Cache-Control" content="max-age=9">'
        scanner = MetaScanner(recorder, limit=len(tag) - 1)

        scanner.feed(tag)

        assert recorder.values == []
        assert scanner.done is True

    def test_tag_exactly_at_limit(self):
        recorder = Recorder()
        tag = b'<meta http-equiv="Cache-Control" content="max-age=9">'
        scanner = MetaScanner(recorder, limit=len(tag))

        scanner.feed(tag + b"<body>")

        assert recorder.values == ["max-age=9"]

    def test_value_decoded_with_encoding(self):
        recorder = Recorder()
        scanner = MetaScanner(recorder, encoding="latin-1")

        scanner.feed(b'<meta http-equiv="Cache-Control" content="caf\xe9">')

        assert recorder.values == ["café"]

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            MetaScanner(Recorder(), limit=0)

    def test_empty_chunks_pass_through(self):
        scanner = MetaScanner(Recorder())
        assert scanner.feed(b"") == b""
        assert scanner.done is False
