"""
Notify module for the UEC News Watcher.

This module posts messages to a Slack channel through the
chat.postMessage Web API. Sending never raises: every failure is returned
as an unsuccessful SendResult and logged, and callers decide whether a
failure matters.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from uec_news.parse import NewsItem
from uec_news.utils import get_logger


# Module logger
logger = get_logger("notify")

# Slack API configuration
SLACK_API_BASE = "https://slack.com/api"
SLACK_TIMEOUT = 30  # seconds

# Rate limit retry configuration
MAX_RATE_LIMIT_RETRIES = 3
RATE_LIMIT_WAIT_SECONDS = 30

NEWS_MESSAGE_TEMPLATE = "【新着ニュース】\nタイトル: {title}\nURL: {url}\n日付: {date}"
ERROR_MESSAGE_PREFIX = "ニュースの確認中にエラーが発生しました: "


@dataclass
class SendResult:
    """
    Outcome of a single Slack send.

    Attributes:
        ok: Whether Slack accepted the message.
        error: Error description if the send failed, None otherwise.
        status_code: HTTP status code if a response was received.
        response: Decoded Slack response body, if any.
    """
    ok: bool
    error: Optional[str] = None
    status_code: Optional[int] = None
    response: Optional[Dict[str, Any]] = None


class DeliveryError(Exception):
    """Raised when a news notification could not be delivered."""

    def __init__(self, message: str, result: Optional[SendResult] = None):
        super().__init__(message)
        self.result = result


def format_news_message(item: NewsItem) -> str:
    """
    Format the Slack message for one news item.

    Args:
        item: The news item.

    Returns:
        Message text.
    """
    return NEWS_MESSAGE_TEMPLATE.format(title=item.title, url=item.url, date=item.date_text)


def format_error_message(error: BaseException) -> str:
    """Format the Slack message sent when a run fails."""
    return ERROR_MESSAGE_PREFIX + str(error)


def build_payload(message: str, channel: str, username: str, icon_emoji: str) -> Dict[str, Any]:
    """
    Build the chat.postMessage payload.

    The plain text doubles as the fallback shown in push notifications;
    the block renders it as mrkdwn in the channel.
    """
    return {
        "channel": channel,
        "text": message,
        "username": username,
        "icon_emoji": icon_emoji,
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": message,
                },
            }
        ],
    }


def create_slack_session(token: str) -> requests.Session:
    """
    Create a requests session configured for the Slack Web API.

    Args:
        token: Slack bot token (xoxb-...).

    Returns:
        Configured requests.Session instance.
    """
    session = requests.Session()
    session.headers.update({
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json; charset=utf-8",
        "User-Agent": "UECNewsWatcher/1.0"
    })
    return session


def check_rate_limit(response: requests.Response) -> Tuple[bool, int]:
    """
    Check if response indicates rate limiting.

    Args:
        response: Response object from the Slack API.

    Returns:
        Tuple of (is_rate_limited, seconds_to_wait).
    """
    if response.status_code != 429:
        return False, 0

    retry_after = response.headers.get("Retry-After", "")
    try:
        return True, max(0, int(retry_after))
    except ValueError:
        return True, RATE_LIMIT_WAIT_SECONDS


class SlackNotifier:
    """
    Notification sink posting messages to one Slack channel.

    Args:
        token: Slack bot token.
        channel: Channel ID to post to.
        username: Display name of the bot.
        icon_emoji: Emoji used as the bot icon.
        dry_run: If True, log messages instead of posting them.
        session: Optional pre-configured session, created from the token if omitted.
        sleep: Function used to wait on rate limits.
    """

    def __init__(
        self,
        token: str,
        channel: str,
        username: str,
        icon_emoji: str,
        dry_run: bool = False,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.channel = channel
        self.username = username
        self.icon_emoji = icon_emoji
        self.dry_run = dry_run
        self.session = session if session is not None else create_slack_session(token)
        self._sleep = sleep

    def close(self) -> None:
        self.session.close()

    def send(self, message: str) -> SendResult:
        """
        Post a message to the channel.

        Args:
            message: Message text.

        Returns:
            SendResult describing the outcome. Never raises for API or
            transport failures.
        """
        if self.dry_run:
            logger.info(f"[DRY RUN] Would send Slack message:\n{message}")
            return SendResult(ok=True)

        payload = build_payload(message, self.channel, self.username, self.icon_emoji)
        url = f"{SLACK_API_BASE}/chat.postMessage"

        result = SendResult(ok=False, error="Rate limited after retries")

        for attempt in range(MAX_RATE_LIMIT_RETRIES):
            try:
                response = self.session.post(url, json=payload, timeout=SLACK_TIMEOUT)
            except requests.exceptions.RequestException as e:
                result = SendResult(ok=False, error=f"Slack request failed: {e}")
                break

            is_limited, wait_time = check_rate_limit(response)
            if is_limited:
                result = SendResult(ok=False, error="ratelimited", status_code=429)
                if attempt < MAX_RATE_LIMIT_RETRIES - 1:
                    logger.warning(f"Rate limited, waiting {wait_time}s (attempt {attempt + 1})")
                    self._sleep(min(wait_time, RATE_LIMIT_WAIT_SECONDS))
                    continue
                break

            result = self._read_response(response)
            break

        if result.ok:
            logger.info("Slack message sent")
        else:
            logger.error(f"Error sending Slack message: {result.error}")

        return result

    @staticmethod
    def _read_response(response: requests.Response) -> SendResult:
        if response.status_code != 200:
            return SendResult(
                ok=False,
                error=f"HTTP {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError:
            return SendResult(ok=False, error="Invalid JSON response", status_code=200)

        if not data.get("ok"):
            return SendResult(
                ok=False,
                error=data.get("error", "unknown_error"),
                status_code=200,
                response=data
            )

        return SendResult(ok=True, status_code=200, response=data)


def check_slack_connection(token: str, session: Optional[requests.Session] = None) -> bool:
    """
    Verify that the Slack token is valid via auth.test.

    Args:
        token: Slack bot token.
        session: Optional pre-configured session.

    Returns:
        True if Slack accepted the token, False otherwise.
    """
    owns_session = session is None
    if session is None:
        session = create_slack_session(token)

    try:
        response = session.post(f"{SLACK_API_BASE}/auth.test", timeout=SLACK_TIMEOUT)
        data = response.json() if response.status_code == 200 else {}
        if data.get("ok"):
            logger.info(f"Slack connection verified for team {data.get('team', 'unknown')}")
            return True
        logger.warning(f"Slack auth.test failed: {data.get('error', f'HTTP {response.status_code}')}")
        return False
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Slack connection check failed: {e}")
        return False
    finally:
        if owns_session:
            session.close()
