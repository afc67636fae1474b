"""
plugins/alert/__init__.py

Event alert plugin for Rosey.

Provides server event announcements with:
- Chat broadcasts from per-event message templates
- On-screen title countdown to every connected player
- Soonest-wins merging of overlapping countdowns
- Cancellation and live configuration reload
"""

from .config import AlertConfig, AlertSettings, ConfigError, ConfigStore
from .countdown import CountdownCoordinator, CountdownTask, format_subtitle, parse_event_args
from .display import DisplaySink, NatsTitleDisplay, TitleDirective
from .plugin import AlertPlugin
from .scheduler import TickScheduler

__all__ = [
    "AlertConfig",
    "AlertPlugin",
    "AlertSettings",
    "ConfigError",
    "ConfigStore",
    "CountdownCoordinator",
    "CountdownTask",
    "DisplaySink",
    "NatsTitleDisplay",
    "TickScheduler",
    "TitleDirective",
    "format_subtitle",
    "parse_event_args",
]
