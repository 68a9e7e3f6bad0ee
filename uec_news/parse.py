"""
Parse module for the UEC News Watcher.

This module extracts news items (title, URL, date) from the announcements
page. The page has no reliable semantic markup, so every link is examined
and its date is looked up near the link using an ordered list of probes.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag

from uec_news.utils import get_logger, normalize_url, sanitize_text


# Module logger
logger = get_logger("parse")

# Site origin used to make relative hrefs absolute
SITE_ORIGIN = "https://www.uec.ac.jp"

# Href substrings that mark a link as a news entry
DEFAULT_PATH_FILTERS = ("/news/", "/announcement/")

# Ancestor tags whose text groups a link with its date
BLOCK_TAGS = ["div", "p", "li"]

DATE_PATTERN = re.compile(r"(\d{4}\.\d{2}\.\d{2})")
LEADING_DATE_PATTERN = re.compile(r"^\d{4}\.\d{2}\.\d{2}\s*")
DATE_FORMAT = "%Y.%m.%d"


@dataclass(frozen=True)
class NewsItem:
    """
    A single entry scraped from the announcements page.

    Attributes:
        title: Link text with any leading date removed.
        url: Absolute URL of the entry.
        date_text: Publication date as found next to the link (YYYY.MM.DD).
            Only the pattern is checked, so it may not be a real calendar date.
    """
    title: str
    url: str
    date_text: str

    @property
    def date(self) -> Optional[date]:
        """Publication date, or None if date_text is not a real calendar date."""
        return parse_date(self.date_text)

    @property
    def sort_key(self) -> Tuple[int, int, int]:
        """Numeric (year, month, day) ordering key, defined for any YYYY.MM.DD token."""
        year, month, day = self.date_text.split(".")
        return int(year), int(month), int(day)


def find_date_token(text: Optional[str]) -> Optional[str]:
    """Return the first YYYY.MM.DD token in text, if any."""
    if not text:
        return None
    match = DATE_PATTERN.search(text)
    return match.group(1) if match else None


def _previous_tag(element: Optional[Tag]) -> Optional[Tag]:
    """Previous sibling element of element, skipping bare text nodes."""
    if element is None:
        return None
    for sibling in element.previous_siblings:
        if isinstance(sibling, Tag):
            return sibling
    return None


class DateProbe:
    """
    Looks for a date token in some text near a link.

    Subclasses choose where to look by overriding candidate_text().
    """

    name = "probe"

    def candidate_text(self, anchor: Tag) -> Optional[str]:
        raise NotImplementedError

    def probe(self, anchor: Tag) -> Optional[str]:
        """Return the date token found by this probe, or None."""
        return find_date_token(self.candidate_text(anchor))


class PreviousSiblingProbe(DateProbe):
    """Date in the element right before the link, e.g. <span>date</span><a>."""

    name = "previous-sibling"

    def candidate_text(self, anchor: Tag) -> Optional[str]:
        sibling = _previous_tag(anchor)
        return sibling.get_text() if sibling is not None else None


class ParentPreviousSiblingProbe(DateProbe):
    """Date in the element right before the link's parent, e.g. <dt>date</dt><dd><a></dd>."""

    name = "parent-previous-sibling"

    def candidate_text(self, anchor: Tag) -> Optional[str]:
        sibling = _previous_tag(anchor.parent)
        return sibling.get_text() if sibling is not None else None


class AncestorBlockProbe(DateProbe):
    """Date anywhere in the closest enclosing block element."""

    name = "ancestor-block"

    def __init__(self, block_tags: Sequence[str] = BLOCK_TAGS):
        self.block_tags = list(block_tags)

    def candidate_text(self, anchor: Tag) -> Optional[str]:
        block = anchor.find_parent(self.block_tags)
        return block.get_text() if block is not None else None


DEFAULT_PROBES = (
    PreviousSiblingProbe(),
    ParentPreviousSiblingProbe(),
    AncestorBlockProbe(),
)


def resolve_date(anchor: Tag, probes: Iterable[DateProbe] = DEFAULT_PROBES) -> Optional[str]:
    """
    Find the date token for a link.

    Probes are tried in order and the first one that finds a token wins.

    Args:
        anchor: The <a> element.
        probes: Ordered date probes.

    Returns:
        The YYYY.MM.DD token, or None if no probe matched.
    """
    for date_probe in probes:
        token = date_probe.probe(anchor)
        if token:
            logger.debug(f"Date {token} found by {date_probe.name} probe")
            return token
    return None


def extract_title(anchor: Tag) -> str:
    """
    Build the item title from the link text.

    A leading YYYY.MM.DD token is removed and whitespace is collapsed.

    Args:
        anchor: The <a> element.

    Returns:
        Normalized title, possibly empty.
    """
    text = anchor.get_text().strip()
    text = LEADING_DATE_PATTERN.sub("", text, count=1)
    return sanitize_text(text)


def is_relevant_link(href: str, path_filters: Sequence[str] = DEFAULT_PATH_FILTERS) -> bool:
    """Check whether an href points at a news entry."""
    return any(path in href for path in path_filters)


def parse_date(token: str) -> Optional[date]:
    """Convert a YYYY.MM.DD token into a date, or None if it is not a real date."""
    try:
        return datetime.strptime(token, DATE_FORMAT).date()
    except ValueError:
        return None


def sort_news_items(items: List[NewsItem]) -> List[NewsItem]:
    """Sort items newest first, keeping page order for equal dates."""
    return sorted(items, key=lambda item: item.sort_key, reverse=True)


def extract_news_items(
    html: Optional[str],
    base_origin: str = SITE_ORIGIN,
    path_filters: Sequence[str] = DEFAULT_PATH_FILTERS,
    probes: Iterable[DateProbe] = DEFAULT_PROBES
) -> List[NewsItem]:
    """
    Extract news items from the announcements page HTML.

    Every link with an href is considered. A link becomes a NewsItem when
    it has a non-empty title, a date can be found near it, and its href
    contains one of the path filters.

    Args:
        html: Raw HTML content string.
        base_origin: Origin prepended to relative hrefs.
        path_filters: Href substrings that mark news links.
        probes: Ordered date probes.

    Returns:
        News items sorted by date, newest first. Empty if nothing matched.
    """
    if not html:
        logger.warning("Empty HTML content, no news items to extract")
        return []

    probes = list(probes)
    soup = BeautifulSoup(html, "html.parser")
    items: List[NewsItem] = []

    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"])

        title = extract_title(anchor)
        if not title:
            continue

        token = resolve_date(anchor, probes)
        if not token or not is_relevant_link(href, path_filters):
            continue

        items.append(NewsItem(
            title=title,
            url=normalize_url(href, base_origin),
            date_text=token
        ))

    items = sort_news_items(items)
    logger.info(f"Extracted {len(items)} news item(s)")

    return items
