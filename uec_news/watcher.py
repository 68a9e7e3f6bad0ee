"""
Watcher module for the UEC News Watcher.

Coordinates one run: fetch → extract → compare → persist marker → notify.
Errors from any step are caught once, logged, and reported to Slack as a
single best-effort error message. A run never raises.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from uec_news.compare import find_new_items, get_comparison_summary, get_newest_url, order_for_delivery
from uec_news.config import LAST_ANNOUNCEMENT_LINK, PropertyStore, WatcherSettings
from uec_news.fetch import FetchError, fetch_page
from uec_news.notify import DeliveryError, SendResult, format_error_message, format_news_message
from uec_news.parse import NewsItem, extract_news_items
from uec_news.utils import get_logger


# Module logger
logger = get_logger("watcher")


class RunState(Enum):
    """Final state of a run before it ends."""
    FAILED = "failed"
    NO_ITEMS = "no_items"
    NO_NEW = "no_new"
    NOTIFIED = "notified"


@dataclass
class RunReport:
    """
    Summary of one run.

    Attributes:
        state: Where the run ended.
        new_count: Number of items classified as new.
        delivered: Number of news messages Slack accepted.
        error: The error that failed the run, if any.
    """
    state: RunState
    new_count: int = 0
    delivered: int = 0
    error: Optional[BaseException] = None


class AnnouncementWatcher:
    """
    Checks the announcements page once and posts new items.

    Args:
        store: Property store holding the last-announcement marker.
        sink: Object with a send(message) -> SendResult method.
        settings: Runtime settings.
        fetch: Function returning the page HTML for a URL.
        sleep: Function used to wait between messages.
    """

    def __init__(
        self,
        store: PropertyStore,
        sink,
        settings: Optional[WatcherSettings] = None,
        fetch: Callable[[str], str] = fetch_page,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.store = store
        self.sink = sink
        self.settings = settings or WatcherSettings()
        self._fetch = fetch
        self._sleep = sleep

    def run(self) -> RunReport:
        """
        Execute one check.

        Returns:
            RunReport describing how the run ended.
        """
        last_url = self.store.get_property(LAST_ANNOUNCEMENT_LINK)
        logger.debug(f"Last announcement link: {last_url or '(none)'}")

        try:
            items = self._fetch_items()

            if not items:
                logger.info("No news items found")
                return RunReport(state=RunState.NO_ITEMS)

            new_items = find_new_items(items, last_url)
            logger.debug(f"Comparison summary: {get_comparison_summary(items, new_items, last_url)}")

            self.store.set_property(LAST_ANNOUNCEMENT_LINK, get_newest_url(items))

            if not new_items:
                logger.info("No new announcements")
                return RunReport(state=RunState.NO_NEW)

            delivered = self._deliver(order_for_delivery(new_items))
            logger.info(f"Sent {delivered} new announcement(s) to Slack")

            return RunReport(state=RunState.NOTIFIED, new_count=len(new_items), delivered=delivered)

        except Exception as e:
            logger.error(f"Error while checking and notifying news: {e}")
            self._notify_error(e)
            return RunReport(state=RunState.FAILED, error=e)

    def _fetch_items(self) -> List[NewsItem]:
        try:
            html = self._fetch(self.settings.announcement_url)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(str(e)) from e

        return extract_news_items(
            html,
            base_origin=self.settings.site_origin,
            path_filters=self.settings.path_filters
        )

    def _deliver(self, items: List[NewsItem]) -> int:
        """Send items in order, pausing between messages. Stops at the first failure."""
        delivered = 0

        for index, item in enumerate(items):
            if index > 0:
                self._sleep(self.settings.notify_delay)

            result: SendResult = self.sink.send(format_news_message(item))
            if not result.ok:
                raise DeliveryError(f"Failed to deliver {item.url}: {result.error}", result=result)
            delivered += 1

        return delivered

    def _notify_error(self, error: BaseException) -> None:
        try:
            result = self.sink.send(format_error_message(error))
        except Exception as e:
            logger.error(f"Error notification raised: {e}")
            return

        if not result.ok:
            logger.error(f"Error notification was not delivered: {result.error}")
