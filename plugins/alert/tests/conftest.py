"""
tests/conftest.py

Shared fixtures for alert plugin tests.
"""

import sys
from pathlib import Path

# Add plugin directory to path for local imports
PLUGIN_DIR = Path(__file__).parent.parent
if str(PLUGIN_DIR) not in sys.path:
    sys.path.insert(0, str(PLUGIN_DIR))

import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from config import AlertConfig, ConfigStore
from display import DisplaySink
from scheduler import TickScheduler


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingDisplay(DisplaySink):
    """Display sink that records every directive as a tuple."""

    def __init__(self):
        self.calls = []

    def set_timing(self, fade_in_ticks, display_ticks, fade_out_ticks):
        self.calls.append(("times", fade_in_ticks, display_ticks, fade_out_ticks))

    def set_title(self, text):
        self.calls.append(("title", text))

    def set_subtitle(self, text):
        self.calls.append(("subtitle", text))

    @property
    def subtitles(self):
        return [call[1] for call in self.calls if call[0] == "subtitle"]

    def clear(self):
        self.calls.clear()


@pytest.fixture
def settings_data():
    """Event settings as they would appear in config.yaml."""
    return {
        "event": {
            "broadcast": {"show": True},
            "title": {
                "show": True,
                "seconds": 10,
                "fade_in_ticks": 5,
                "display_ticks": 40,
                "fade_out_ticks": 15,
            },
            "subtitle": {
                "now": "now!",
                "minute": "in %d minute",
                "minutes": "in %d minutes",
                "second": "in %d second",
                "seconds": "in %d seconds",
            },
            "messages": {
                "restart": {
                    "broadcast": "&cRestarting in %s %s",
                    "title": "&cRestart",
                },
                "cancel": {
                    "broadcast": "Restart cancelled",
                },
            },
        }
    }


@pytest.fixture
def alert_config(settings_data):
    """Loaded AlertConfig backed by an in-memory store."""
    config = AlertConfig(ConfigStore(data=settings_data))
    config.reload()
    return config


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def display():
    return RecordingDisplay()


@pytest.fixture
def scheduler():
    """Scheduler driven by calling tick() directly."""
    return TickScheduler()


@pytest.fixture
def mock_nats():
    """Create a mock NATS client for testing."""
    nats = AsyncMock()
    nats.publish = AsyncMock()

    # Track subscriptions
    nats._subscriptions = []

    async def mock_subscribe(subject, cb=None):
        sub = MagicMock()
        sub.subject = subject
        sub.callback = cb
        sub.unsubscribe = AsyncMock()
        nats._subscriptions.append(sub)
        return sub

    nats.subscribe = mock_subscribe
    return nats


@pytest.fixture
def mock_message():
    """Factory for creating mock NATS messages."""
    def _make_message(data: dict, reply_to: str = None):
        msg = MagicMock()
        msg.data = json.dumps(data).encode()
        msg.reply = reply_to
        return msg
    return _make_message


@pytest.fixture
def published(mock_nats):
    """Return decoded JSON payloads published to a subject, in order."""
    def _published(subject):
        return [
            json.loads(call.args[1].decode())
            for call in mock_nats.publish.call_args_list
            if call.args[0] == subject
        ]
    return _published
