"""
Unit tests for default documents and directory listings.
"""

from staticserver.handlers.listing import (
    find_default_document,
    list_directory,
    render_directory_listing,
)


class TestFindDefaultDocument:
    """Tests for find_default_document()."""

    def test_first_candidate_wins(self, tmp_path):
        (tmp_path / "index.html").write_text("html")
        (tmp_path / "index.htm").write_text("htm")

        result = find_default_document(tmp_path, ["index.html", "index.htm"])

        assert result == tmp_path / "index.html"

    def test_falls_back_in_order(self, tmp_path):
        (tmp_path / "index.htm").write_text("htm")

        result = find_default_document(tmp_path, ["index.html", "index.htm"])

        assert result == tmp_path / "index.htm"

    def test_directories_do_not_count(self, tmp_path):
        (tmp_path / "index.html").mkdir()
        (tmp_path / "index.htm").write_text("htm")

        result = find_default_document(tmp_path, ["index.html", "index.htm"])

        assert result == tmp_path / "index.htm"

    def test_none_found(self, tmp_path):
        (tmp_path / "readme.txt").write_text("hi")
        assert find_default_document(tmp_path, ["index.html"]) is None

    def test_empty_candidate_list(self, tmp_path):
        (tmp_path / "index.html").write_text("html")
        assert find_default_document(tmp_path, []) is None


class TestListDirectory:
    def test_sorted_and_includes_hidden(self, tmp_path):
        for name in ["b.txt", ".hidden", "a.txt"]:
            (tmp_path / name).write_text(name)

        assert list_directory(tmp_path) == [".hidden", "a.txt", "b.txt"]


class TestRenderDirectoryListing:
    """Tests for render_directory_listing()."""

    def test_one_item_per_entry(self, site):
        docs = site / "docs"
        html = render_directory_listing("/docs", docs, list_directory(docs))

        assert html.count("<li>") == 3
        assert "<title>Index of /docs</title>" in html
        assert "<h1>Index of /docs</h1>" in html

    def test_directories_get_trailing_slash(self, site):
        docs = site / "docs"
        html = render_directory_listing("/docs", docs, ["a.txt", "images"])

        assert '<a href="/docs/a.txt">a.txt</a>' in html
        assert '<a href="/docs/images">images/</a>' in html

    def test_root_links(self, site):
        html = render_directory_listing("/", site, ["style.css"])
        assert '<a href="/style.css">style.css</a>' in html

    def test_trailing_slash_in_url(self, site):
        html = render_directory_listing("/docs/", site / "docs", ["a.txt"])
        assert 'href="/docs/a.txt"' in html

    def test_names_are_escaped(self, tmp_path):
        name = "<b>&.txt"
        (tmp_path / name).write_text("x")

        html = render_directory_listing("/", tmp_path, [name])

        assert "<b>&" not in html
        assert "&lt;b&gt;&amp;.txt" in html

    def test_hrefs_are_quoted(self, tmp_path):
        (tmp_path / "my file.txt").write_text("x")

        html = render_directory_listing("/", tmp_path, ["my file.txt"])

        assert 'href="/my%20file.txt"' in html

    def test_empty_directory(self, tmp_path):
        html = render_directory_listing("/empty", tmp_path, [])
        assert "<li>" not in html
        assert "Index of /empty" in html
