"""
Tests for the parse module.

Tests cover:
- News item extraction from announcement listings
- Date probing (previous sibling, parent's sibling, ancestor block)
- Title normalization
- Relevance filtering and URL resolution
- Sorting by date
- Edge cases and malformed HTML
"""

from datetime import date

import pytest
from bs4 import BeautifulSoup

from uec_news.parse import (
    AncestorBlockProbe,
    DateProbe,
    NewsItem,
    ParentPreviousSiblingProbe,
    PreviousSiblingProbe,
    extract_news_items,
    extract_title,
    find_date_token,
    is_relevant_link,
    parse_date,
    resolve_date,
    sort_news_items,
)


SCENARIO_HTML = """
<html>
<body>
    <ul class="news-list">
        <li><span class="date">2024.05.01</span><a href="/news/a">2024.05.01 Item A</a></li>
        <li><span class="date">2024.04.30</span><a href="/news/b">2024.04.30 Item B</a></li>
    </ul>
</body>
</html>
"""


def first_anchor(html):
    """Parse html and return its first link."""
    return BeautifulSoup(html, "html.parser").find("a")


class TestNewsItem:
    """Tests for the NewsItem value type."""

    def test_date_text(self):
        """Test that the date renders in the page's YYYY.MM.DD form."""
        item = NewsItem(title="T", url="https://www.uec.ac.jp/news/t", date_text="2024.05.01")
        assert item.date_text == "2024.05.01"

    def test_is_immutable(self):
        """Test that items cannot be modified after construction."""
        item = NewsItem(title="T", url="https://www.uec.ac.jp/news/t", date_text="2024.05.01")
        with pytest.raises(AttributeError):
            item.title = "changed"


class TestExtractNewsItems:
    """Tests for full-page extraction."""

    def test_scenario_listing(self):
        """Test the basic two-item listing."""
        items = extract_news_items(SCENARIO_HTML)

        assert items == [
            NewsItem(title="Item A", url="https://www.uec.ac.jp/news/a", date_text="2024.05.01"),
            NewsItem(title="Item B", url="https://www.uec.ac.jp/news/b", date_text="2024.04.30"),
        ]

    def test_sorted_newest_first(self):
        """Test that items are sorted by date descending regardless of page order."""
        html = """
        <ul>
            <li><span>2023.12.01</span><a href="/news/old">Old</a></li>
            <li><span>2024.03.15</span><a href="/news/new">New</a></li>
            <li><span>2024.01.20</span><a href="/news/mid">Mid</a></li>
        </ul>
        """
        items = extract_news_items(html)

        assert [i.title for i in items] == ["New", "Mid", "Old"]
        for earlier, later in zip(items, items[1:]):
            assert earlier.date >= later.date

    def test_equal_dates_keep_page_order(self):
        """Test that items sharing a date stay in document order."""
        html = """
        <ul>
            <li><span>2024.01.01</span><a href="/news/1">First</a></li>
            <li><span>2024.02.01</span><a href="/news/2">Newest</a></li>
            <li><span>2024.01.01</span><a href="/news/3">Second</a></li>
        </ul>
        """
        items = extract_news_items(html)

        assert [i.title for i in items] == ["Newest", "First", "Second"]

    def test_date_from_parent_sibling(self):
        """Test definition-list layouts where the date precedes the link's parent."""
        html = """
        <dl>
            <dt>2024.03.01</dt>
            <dd><a href="/announcement/c">Item C</a></dd>
        </dl>
        """
        items = extract_news_items(html)

        assert len(items) == 1
        assert items[0].date == date(2024, 3, 1)
        assert items[0].url == "https://www.uec.ac.jp/announcement/c"

    def test_date_from_ancestor_block(self):
        """Test that a date elsewhere in the enclosing block is found."""
        html = '<div class="entry"><a href="/news/x">Item X</a><span>posted 2024.02.10</span></div>'
        items = extract_news_items(html)

        assert len(items) == 1
        assert items[0].date == date(2024, 2, 10)

    def test_leading_date_and_whitespace_removed_from_title(self):
        """Test title normalization."""
        html = """
        <li><span>2024.05.01</span><a href="/news/a">
            2024.05.01
            Entrance   ceremony
            notice
        </a></li>
        """
        items = extract_news_items(html)

        assert items[0].title == "Entrance ceremony notice"

    def test_skip_links_without_title(self):
        """Test that links with no visible text are skipped."""
        html = """
        <li><span>2024.05.01</span><a href="/news/image"><img src="x.png"></a></li>
        <li><span>2024.05.01</span><a href="/news/date-only">2024.05.01</a></li>
        """
        assert extract_news_items(html) == []

    def test_skip_links_without_date(self):
        """Test that links with no nearby date are skipped."""
        html = '<nav><a href="/news/">News top</a></nav>'
        assert extract_news_items(html) == []

    def test_skip_irrelevant_links(self):
        """Test that dated links outside news paths are skipped."""
        html = """
        <li><span>2024.05.01</span><a href="/about/access">Access</a></li>
        <li><span>2024.05.01</span><a href="https://twitter.com/uec">Twitter</a></li>
        <li><span>2024.05.01</span><a href="#top">Top</a></li>
        """
        assert extract_news_items(html) == []

    def test_absolute_urls_kept(self):
        """Test that hrefs with a scheme are not rewritten."""
        html = '<li><span>2024.05.01</span><a href="https://example.ac.jp/news/1">External</a></li>'
        items = extract_news_items(html)

        assert items[0].url == "https://example.ac.jp/news/1"

    def test_protocol_relative_urls_keep_host(self):
        """Test that "//host" hrefs are not glued onto the site origin."""
        html = '<li><span>2024.05.01</span><a href="//cdn.example.ac.jp/news/1">Mirror</a></li>'
        items = extract_news_items(html)

        assert items[0].url == "https://cdn.example.ac.jp/news/1"

    def test_links_without_href_ignored(self):
        """Test that anchors without an href are not considered."""
        html = '<li><span>2024.05.01</span><a name="news">/news/ anchor</a></li>'
        assert extract_news_items(html) == []

    def test_invalid_calendar_date_kept(self):
        """Test that dates matching the pattern are kept even if not real dates."""
        html = '<li><span>2024.02.30</span><a href="/news/x">Feb thirtieth</a></li>'
        items = extract_news_items(html)

        assert len(items) == 1
        assert items[0].title == "Feb thirtieth"
        assert items[0].date_text == "2024.02.30"
        assert items[0].date is None

    def test_invalid_calendar_date_sorted_by_numbers(self):
        """Test that unreal dates still sort among real ones."""
        html = """
        <ul>
            <li><span>2024.02.01</span><a href="/news/1">Feb first</a></li>
            <li><span>2024.02.30</span><a href="/news/2">Feb thirtieth</a></li>
            <li><span>2024.03.01</span><a href="/news/3">Mar first</a></li>
        </ul>
        """
        items = extract_news_items(html)

        assert [i.title for i in items] == ["Mar first", "Feb thirtieth", "Feb first"]

    def test_empty_html(self):
        """Test handling of empty HTML."""
        assert extract_news_items("") == []
        assert extract_news_items(None) == []

    def test_no_anchors(self):
        """Test a document without links."""
        assert extract_news_items("<html><body><p>2024.05.01 nothing</p></body></html>") == []

    def test_malformed_html(self):
        """Test that unclosed tags are recovered instead of raising."""
        html = "<div><a href='/news/a'>2024.01.01 Unclosed item"
        items = extract_news_items(html)

        assert len(items) == 1
        assert items[0].title == "Unclosed item"
        assert items[0].date == date(2024, 1, 1)

    def test_custom_origin_and_filters(self):
        """Test configurable origin and path filters."""
        html = """
        <li><span>2024.05.01</span><a href="/topics/1">Topic</a></li>
        <li><span>2024.05.01</span><a href="/news/1">News</a></li>
        """
        items = extract_news_items(html, base_origin="https://example.ac.jp", path_filters=("/topics/",))

        assert len(items) == 1
        assert items[0].url == "https://example.ac.jp/topics/1"

    def test_custom_probes(self):
        """Test that the probe list can be replaced."""
        class FixedProbe(DateProbe):
            name = "fixed"

            def candidate_text(self, anchor):
                return "1999.12.31"

        html = '<a href="/news/1">Undated</a>'
        items = extract_news_items(html, probes=[FixedProbe()])

        assert items[0].date == date(1999, 12, 31)


class TestDateProbes:
    """Tests for individual date probes."""

    def test_previous_sibling_probe(self):
        """Test date lookup in the preceding element."""
        anchor = first_anchor("<li><span>2024.05.01</span> <a href='/news/a'>A</a></li>")
        assert PreviousSiblingProbe().probe(anchor) == "2024.05.01"

    def test_previous_sibling_probe_no_sibling(self):
        """Test that a link without a preceding element yields nothing."""
        anchor = first_anchor("<li>2024.05.01 <a href='/news/a'>A</a></li>")
        assert PreviousSiblingProbe().probe(anchor) is None

    def test_parent_previous_sibling_probe(self):
        """Test date lookup before the link's parent."""
        anchor = first_anchor("<dl><dt>2024.05.01</dt><dd><a href='/news/a'>A</a></dd></dl>")
        assert ParentPreviousSiblingProbe().probe(anchor) == "2024.05.01"

    def test_ancestor_block_probe(self):
        """Test date lookup in the closest block ancestor."""
        anchor = first_anchor("<p><span><a href='/news/a'>A</a></span> 2024.05.01</p>")
        assert AncestorBlockProbe().probe(anchor) == "2024.05.01"

    def test_ancestor_block_probe_no_block(self):
        """Test that a link outside any block yields nothing."""
        anchor = first_anchor("<span>2024.05.01</span><a href='/news/a'>A</a>")
        assert AncestorBlockProbe().probe(anchor) is None

    def test_first_matching_probe_wins(self):
        """Test that the previous sibling beats the ancestor block."""
        anchor = first_anchor("<li><span>2024.01.01</span><a href='/news/z'>Z</a> updated 2024.06.06</li>")
        assert resolve_date(anchor) == "2024.01.01"

    def test_no_probe_matches(self):
        """Test that None is returned when no probe finds a date."""
        anchor = first_anchor("<li><span>new</span><a href='/news/z'>Z</a></li>")
        assert resolve_date(anchor) is None


class TestHelpers:
    """Tests for parsing helpers."""

    def test_find_date_token(self):
        """Test date token search."""
        assert find_date_token("Posted 2024.05.01 (Wed)") == "2024.05.01"
        assert find_date_token("2024-05-01") is None
        assert find_date_token("") is None
        assert find_date_token(None) is None

    def test_extract_title(self):
        """Test title extraction from link text."""
        assert extract_title(first_anchor("<a href='#'>  2024.05.01   Hello\n world </a>")) == "Hello world"
        assert extract_title(first_anchor("<a href='#'>Hello 2024.05.01</a>")) == "Hello 2024.05.01"

    def test_is_relevant_link(self):
        """Test the path filter."""
        assert is_relevant_link("/news/announcement/20240501.html") is True
        assert is_relevant_link("https://www.uec.ac.jp/news/a") is True
        assert is_relevant_link("/education/") is False

    def test_parse_date(self):
        """Test date token conversion."""
        assert parse_date("2024.02.29") == date(2024, 2, 29)
        assert parse_date("2023.02.29") is None

    def test_sort_news_items(self):
        """Test sorting without mutating the input."""
        older = NewsItem(title="old", url="u1", date_text="2024.01.01")
        newer = NewsItem(title="new", url="u2", date_text="2024.02.01")
        items = [older, newer]

        assert sort_news_items(items) == [newer, older]
        assert items == [older, newer]
