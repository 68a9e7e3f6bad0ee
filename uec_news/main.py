#!/usr/bin/env python3
"""
Main entry point for the UEC News Watcher.

Commands:
    init  Write default properties (Slack placeholders, empty marker).
    run   Check the announcements page once and post new items (default).

Scheduling is left to cron, a CI schedule or a systemd timer; runs must
not overlap.
"""

import argparse
import os
import sys
from typing import List, Optional

from uec_news.config import (
    JsonPropertyStore,
    MemoryPropertyStore,
    PropertyStore,
    get_properties_path,
    initialize_properties,
    load_settings,
    resolve_slack_config,
)
from uec_news.notify import SlackNotifier, check_slack_connection
from uec_news.utils import get_logger, setup_logging
from uec_news.watcher import AnnouncementWatcher, RunState


# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_ENV_ERROR = 2


def is_dry_run() -> bool:
    """Whether DRY_RUN asks to log messages instead of posting them."""
    return os.environ.get("DRY_RUN", "").lower() in ("true", "1", "yes")


def run_init(store: JsonPropertyStore, force: bool = False) -> int:
    """
    Write the default properties.

    An existing property file is kept unless force is set, so a live token
    and marker are not wiped by accident.

    Args:
        store: Store to initialize.
        force: Overwrite an existing file.

    Returns:
        Exit code.
    """
    logger = get_logger("main")

    if store.exists() and not force:
        logger.warning(f"{store.filepath} already exists, use --force to overwrite")
        return EXIT_FAILURE

    try:
        initialize_properties(store)
    except OSError as e:
        logger.error(f"Failed to initialize properties: {e}")
        return EXIT_FAILURE

    logger.info(f"Set SLACK_TOKEN and SLACK_CHANNEL_ID in {store.filepath} before the first run")
    return EXIT_SUCCESS


def run_watcher(store: JsonPropertyStore, dry_run: bool = False) -> int:
    """
    Run the watcher once.

    Args:
        store: Store holding the Slack properties and marker.
        dry_run: Log messages instead of posting them, skip the credential
            check, and keep the stored marker unchanged.

    Returns:
        Exit code.
    """
    logger = get_logger("main")
    properties = store.load()

    try:
        slack_config = resolve_slack_config(properties, require_credentials=not dry_run)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_ENV_ERROR

    settings = load_settings()

    # Dry runs must not advance the stored marker
    watcher_store: PropertyStore = MemoryPropertyStore(properties) if dry_run else store

    notifier = SlackNotifier(
        token=slack_config.token,
        channel=slack_config.channel,
        username=slack_config.username,
        icon_emoji=slack_config.icon_emoji,
        dry_run=dry_run
    )

    try:
        if not dry_run and not check_slack_connection(slack_config.token, session=notifier.session):
            logger.warning("Slack connection check failed, notifications may fail")

        report = AnnouncementWatcher(watcher_store, notifier, settings=settings).run()
    finally:
        notifier.close()

    logger.info(f"Run finished: {report.state.value} ({report.delivered}/{report.new_count} delivered)")

    if report.state is RunState.FAILED:
        logger.warning("Run failed, the next scheduled run will retry")

    return EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Sets up logging and dispatches the command with top-level error handling.

    Args:
        argv: Command-line arguments, sys.argv[1:] if None.

    Returns:
        Exit code for the process.
    """
    parser = argparse.ArgumentParser(prog="uec-news", description="Post new UEC announcements to Slack")
    parser.add_argument("command", nargs="?", choices=["init", "run"], default="run")
    parser.add_argument("--force", action="store_true", help="overwrite existing properties on init")
    args = parser.parse_args(argv)

    setup_logging(os.environ.get("LOG_LEVEL", "INFO").upper())
    logger = get_logger("main")

    store = JsonPropertyStore(get_properties_path())

    try:
        if args.command == "init":
            return run_init(store, force=args.force)

        dry_run = is_dry_run()
        if dry_run:
            logger.info("Running in DRY RUN mode - Slack messages will be logged only")
        return run_watcher(store, dry_run=dry_run)

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_FAILURE

    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
