"""
Fetch module for the UEC News Watcher.

This module handles fetching the announcements page with proper error
handling, retries, and exponential backoff. Every transport failure is
reported as a FetchError so the watcher has a single error type to catch.
"""

from typing import Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from uec_news.utils import get_logger


# Module logger
logger = get_logger("fetch")

# Default configuration
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 1.0  # exponential backoff multiplier
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Announcements listing page
ANNOUNCEMENT_URL = "https://www.uec.ac.jp/news/announcement/"


class FetchError(Exception):
    """Raised when the announcements page cannot be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def create_session(
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
) -> requests.Session:
    """
    Create a requests session with retry configuration.

    Configures automatic retries with exponential backoff for
    transient failures (429, 5xx errors, connection errors).

    Args:
        max_retries: Maximum number of retry attempts.
        backoff_factor: Multiplier for exponential backoff between retries.
                       Sleep time = backoff_factor * (2 ** retry_number)

    Returns:
        Configured requests.Session instance.
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET", "HEAD"],
        raise_on_status=False
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "ja,en-US;q=0.7,en;q=0.3",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    })

    return session


def validate_url(url: str) -> bool:
    """
    Validate that a URL is well-formed and uses HTTP/HTTPS.

    Args:
        url: URL string to validate.

    Returns:
        True if URL is valid, False otherwise.
    """
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False


def fetch_page(
    url: str = ANNOUNCEMENT_URL,
    session: Optional[requests.Session] = None,
    timeout: int = DEFAULT_TIMEOUT
) -> str:
    """
    Fetch a single page and return its HTML.

    When no session is given a retrying session is created and closed
    after the request.

    Args:
        url: URL to fetch.
        session: Optional configured requests session.
        timeout: Request timeout in seconds.

    Returns:
        Decoded HTML text of the page.

    Raises:
        FetchError: If the URL is invalid, the server answers with a
            non-200 status, or the request fails at the transport level.
    """
    logger.debug(f"Fetching URL: {url}")

    if not validate_url(url):
        logger.warning(f"Invalid URL format: {url}")
        raise FetchError(f"Invalid URL format: {url}")

    owns_session = session is None
    if session is None:
        session = create_session()

    try:
        response = session.get(url, timeout=timeout)

        if response.status_code != 200:
            logger.warning(f"HTTP {response.status_code} for {url}")
            raise FetchError(
                f"HTTP {response.status_code} for {url}",
                status_code=response.status_code
            )

        # Servers that omit a charset default to ISO-8859-1 in requests
        if response.encoding is None or response.encoding.lower() == "iso-8859-1":
            response.encoding = response.apparent_encoding

        logger.info(f"Successfully fetched {url} ({len(response.text)} chars)")
        return response.text

    except requests.exceptions.Timeout as e:
        logger.warning(f"Timeout fetching {url}")
        raise FetchError(f"Request timeout: {url}") from e

    except requests.exceptions.ConnectionError as e:
        logger.warning(f"Connection error for {url}: {e}")
        raise FetchError(f"Connection error: {e}") from e

    except requests.exceptions.RequestException as e:
        logger.error(f"Request exception for {url}: {e}")
        raise FetchError(f"Request failed: {e}") from e

    finally:
        if owns_session:
            session.close()
