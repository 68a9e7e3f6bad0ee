"""
Compare module for the UEC News Watcher.

This module decides which of the freshly extracted items are new since the
last run. Only one marker is stored: the URL of the newest item seen last
time. Items in front of that URL are new, the marker item and everything
after it were already notified.
"""

from typing import Any, Dict, List, Optional

from uec_news.parse import NewsItem
from uec_news.utils import get_logger


# Module logger
logger = get_logger("compare")


def get_item_identifier(item: NewsItem) -> str:
    """
    Generate a unique identifier for a news item.

    Uses the URL as the identifier since it should be unique on the page.

    Args:
        item: The news item.

    Returns:
        Unique identifier string (the URL).
    """
    return item.url


def find_new_items(items: List[NewsItem], last_url: Optional[str]) -> List[NewsItem]:
    """
    Find the items published since the stored marker.

    Scans the newest-first sequence from the front and stops at the first
    item whose URL equals the marker. If the marker is empty or not on the
    page, every item is new.

    Args:
        items: Extracted items, newest first.
        last_url: URL of the newest item notified on the previous run.

    Returns:
        New items, newest first.
    """
    new_items: List[NewsItem] = []

    for item in items:
        if last_url and get_item_identifier(item) == last_url:
            break
        new_items.append(item)
    else:
        if last_url and items:
            logger.info("Last announcement not found on page, treating all items as new")

    logger.info(f"Found {len(new_items)} new item(s)")

    return new_items


def order_for_delivery(new_items: List[NewsItem]) -> List[NewsItem]:
    """Return new items oldest first, the order they are posted in."""
    return list(reversed(new_items))


def get_newest_url(items: List[NewsItem]) -> str:
    """URL of the newest item, or an empty string for an empty sequence."""
    return get_item_identifier(items[0]) if items else ""


def get_comparison_summary(
    items: List[NewsItem],
    new_items: List[NewsItem],
    last_url: Optional[str]
) -> Dict[str, Any]:
    """
    Generate a summary of the comparison results.

    Args:
        items: All extracted items.
        new_items: Items classified as new.
        last_url: Marker used for the comparison.

    Returns:
        Dictionary with comparison statistics.
    """
    return {
        "fetched_count": len(items),
        "new_count": len(new_items),
        "already_notified_count": len(items) - len(new_items),
        "previous_marker": last_url or "",
        "marker_found": bool(last_url) and len(new_items) < len(items),
        "newest_url": get_newest_url(items),
    }
