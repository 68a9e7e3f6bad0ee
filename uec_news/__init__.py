"""
UEC News Watcher - Slack notifications for new university announcements.

This package provides functionality to:
- Fetch the UEC announcements page
- Extract news items (title, URL, date) from its HTML
- Detect items published since the last run
- Post new items to a Slack channel, oldest first
"""

__version__ = "1.0.0"
__author__ = "UEC News Watcher Team"
