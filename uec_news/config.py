"""
Configuration for the UEC News Watcher.

Two kinds of configuration live here:
- Persisted properties (Slack credentials, bot identity and the
  last-announcement marker) kept in a key-value store that survives
  between runs.
- Runtime settings read from environment variables.
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from uec_news.fetch import ANNOUNCEMENT_URL
from uec_news.parse import DEFAULT_PATH_FILTERS, SITE_ORIGIN
from uec_news.utils import get_env_var, get_logger, safe_read_json, safe_write_json, split_csv


# Module logger
logger = get_logger("config")

# Default path of the property file
DEFAULT_PROPERTIES_PATH = "data/properties.json"

# Property keys
SLACK_TOKEN = "SLACK_TOKEN"
SLACK_CHANNEL_ID = "SLACK_CHANNEL_ID"
LAST_ANNOUNCEMENT_LINK = "LAST_ANNOUNCEMENT_LINK"
BOT_NAME = "BOT_NAME"
BOT_ICON = "BOT_ICON"

# Values written by initialize_properties(); token and channel are placeholders
DEFAULT_PROPERTIES: Dict[str, str] = {
    SLACK_TOKEN: "xoxb-",
    SLACK_CHANNEL_ID: "C0000000000",
    LAST_ANNOUNCEMENT_LINK: "",
    BOT_NAME: "UEC News Bot",
    BOT_ICON: ":uec:",
}

DEFAULT_NOTIFY_DELAY = 1.0  # seconds between Slack messages


class PropertyStore:
    """Key-value storage for properties that must survive between runs."""

    def load(self) -> Dict[str, str]:
        raise NotImplementedError

    def save(self, properties: Dict[str, str]) -> None:
        raise NotImplementedError

    def get_property(self, key: str, default: str = "") -> str:
        value = self.load().get(key)
        return default if value is None else str(value)

    def set_property(self, key: str, value: str) -> None:
        properties = self.load()
        properties[key] = value
        self.save(properties)


class JsonPropertyStore(PropertyStore):
    """Property store backed by a JSON file, written atomically."""

    def __init__(self, filepath: str = DEFAULT_PROPERTIES_PATH):
        self.filepath = filepath

    def __repr__(self) -> str:
        return f"JsonPropertyStore(filepath={self.filepath!r})"

    def exists(self) -> bool:
        return os.path.exists(self.filepath)

    def load(self) -> Dict[str, str]:
        data = safe_read_json(self.filepath, default={})
        if not isinstance(data, dict):
            logger.warning(f"Unexpected data format in {self.filepath}, ignoring it")
            return {}
        return dict(data)

    def save(self, properties: Dict[str, str]) -> None:
        if not safe_write_json(self.filepath, properties):
            raise OSError(f"Failed to save properties to {self.filepath}")
        logger.debug(f"Saved {len(properties)} propert(ies) to {self.filepath}")


class MemoryPropertyStore(PropertyStore):
    """Property store kept in memory, for dry runs and tests."""

    def __init__(self, properties: Optional[Dict[str, str]] = None):
        self.properties: Dict[str, str] = dict(properties or {})
        self.save_count = 0

    def load(self) -> Dict[str, str]:
        return dict(self.properties)

    def save(self, properties: Dict[str, str]) -> None:
        self.properties = dict(properties)
        self.save_count += 1


def initialize_properties(store: PropertyStore) -> Dict[str, str]:
    """
    Write the default value of every property to the store.

    Real deployments must replace the Slack token and channel ID with live
    values before the first run.

    Args:
        store: Store to initialize.

    Returns:
        The properties that were written.
    """
    properties = dict(DEFAULT_PROPERTIES)
    store.save(properties)
    logger.info(f"Initialized {len(properties)} properties in {store!r}")
    return properties


@dataclass
class SlackConfig:
    """Credentials and identity used to post to Slack."""
    token: str
    channel: str
    username: str
    icon_emoji: str


def resolve_slack_config(properties: Dict[str, str], require_credentials: bool = True) -> SlackConfig:
    """
    Merge stored properties with environment overrides.

    Environment variables named like the property keys take precedence, so
    the token can be kept out of the property file.

    Args:
        properties: Properties loaded from the store.
        require_credentials: Reject a missing or placeholder token and channel.
            Dry runs never post, so they pass False.

    Returns:
        SlackConfig for the notifier.

    Raises:
        ValueError: If credentials are required and the token or channel is
            missing or still a placeholder.
    """
    def _value(key: str) -> str:
        env_value = get_env_var(key, required=False)
        if env_value is not None:
            return env_value
        return str(properties.get(key) or "").strip()

    token = _value(SLACK_TOKEN)
    channel = _value(SLACK_CHANNEL_ID)

    if require_credentials:
        if not token or token == DEFAULT_PROPERTIES[SLACK_TOKEN]:
            raise ValueError(f"{SLACK_TOKEN} is not configured")
        if not channel or channel == DEFAULT_PROPERTIES[SLACK_CHANNEL_ID]:
            raise ValueError(f"{SLACK_CHANNEL_ID} is not configured")

    return SlackConfig(
        token=token,
        channel=channel,
        username=_value(BOT_NAME) or DEFAULT_PROPERTIES[BOT_NAME],
        icon_emoji=_value(BOT_ICON) or DEFAULT_PROPERTIES[BOT_ICON],
    )


@dataclass
class WatcherSettings:
    """Runtime settings for one watcher run."""
    announcement_url: str = ANNOUNCEMENT_URL
    site_origin: str = SITE_ORIGIN
    path_filters: Tuple[str, ...] = DEFAULT_PATH_FILTERS
    notify_delay: float = DEFAULT_NOTIFY_DELAY


def get_properties_path() -> str:
    """Path of the property file, from PROPERTIES_PATH or the default."""
    return get_env_var("PROPERTIES_PATH", required=False, default=DEFAULT_PROPERTIES_PATH) or DEFAULT_PROPERTIES_PATH


def load_settings() -> WatcherSettings:
    """
    Build runtime settings from environment variables.

    Unset or invalid values fall back to the defaults.

    Returns:
        WatcherSettings instance.
    """
    settings = WatcherSettings()

    url = get_env_var("ANNOUNCEMENT_URL", required=False)
    if url:
        settings.announcement_url = url

    origin = get_env_var("SITE_ORIGIN", required=False)
    if origin:
        settings.site_origin = origin

    paths = split_csv(get_env_var("RELEVANT_PATHS", required=False, default="") or "")
    if paths:
        settings.path_filters = tuple(paths)

    delay = get_env_var("NOTIFY_DELAY", required=False)
    if delay:
        try:
            settings.notify_delay = max(0.0, float(delay))
        except ValueError:
            logger.warning(f"Invalid NOTIFY_DELAY '{delay}', using {DEFAULT_NOTIFY_DELAY}")

    logger.debug(f"Loaded settings: {settings}")
    return settings
