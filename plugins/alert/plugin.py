"""
plugins/alert/plugin.py

Event alert plugin using NATS-based architecture.

Announces scheduled server events (restarts, shutdowns) in chat and shows
a title countdown to every connected player.

NATS Subjects:
    Command Handlers:
        rosey.command.alert.event - Announce an event, start/revise/cancel the countdown
        rosey.command.alert.reload - Reload configuration

    Game Bridge (Published):
        rosey.game.chat.broadcast - Chat message to every player
        rosey.game.title - Title/subtitle/timing directives

    Events (Published):
        rosey.event.alert.countdown.started - Countdown started
        rosey.event.alert.countdown.revised - Countdown moved to an earlier time
        rosey.event.alert.countdown.cancelled - Countdown cancelled
"""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from nats.aio.client import Client as NATS

try:
    from .config import AlertConfig, ConfigError, ConfigStore
    from .countdown import CountdownCoordinator, parse_event_args
    from .display import NatsTitleDisplay, format_message, translate_color_codes
    from .scheduler import DEFAULT_TICK_INTERVAL, TickScheduler
except ImportError:
    from config import AlertConfig, ConfigError, ConfigStore
    from countdown import CountdownCoordinator, parse_event_args
    from display import NatsTitleDisplay, format_message, translate_color_codes
    from scheduler import DEFAULT_TICK_INTERVAL, TickScheduler


class AlertPlugin:
    """
    Event alert plugin.

    Commands:
        !event <key> - Announce an event happening now
        !event <key> <amount> <unit> - Announce an event and count down to it
                                        (unit: seconds, minutes or hours)
        !event cancel [reason...] - Announce a cancellation and stop the countdown
        !alert reload - Reload configuration

    Configuration:
        config_path: YAML file holding event.* settings and messages
                     (default: the bundled config.yaml)
        settings: Inline event.* settings, used when config_path is unset
        tick_interval: Seconds per scheduler tick (default: 0.05)
        broadcast_subject: Subject for chat broadcasts
        title_subject: Subject for title directives
        emit_events: Whether to emit countdown events (default: true)
    """

    # Plugin metadata
    NAMESPACE = "alert"
    VERSION = "1.0.0"
    DESCRIPTION = "Announce server events with chat broadcasts and title countdowns"

    # NATS subjects - Commands
    SUBJECT_EVENT = "rosey.command.alert.event"
    SUBJECT_RELOAD = "rosey.command.alert.reload"

    # NATS subjects - Events
    EVENT_STARTED = "rosey.event.alert.countdown.started"
    EVENT_REVISED = "rosey.event.alert.countdown.revised"
    EVENT_CANCELLED = "rosey.event.alert.countdown.cancelled"

    # Game bridge defaults
    DEFAULT_BROADCAST_SUBJECT = "rosey.game.chat.broadcast"
    DEFAULT_TITLE_SUBJECT = "rosey.game.title"

    # Bundled settings, used when neither config_path nor settings is given
    DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

    def __init__(
        self,
        nats_client: NATS,
        config: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the alert plugin.

        Args:
            nats_client: Connected NATS client for messaging.
            config: Optional configuration dictionary.
            clock: Clock used for countdown timing.
        """
        self.nats = nats_client
        self.config = config or {}
        self.logger = logging.getLogger(f"plugin.{self.NAMESPACE}")

        # Configuration with defaults
        self.tick_interval = self.config.get("tick_interval", DEFAULT_TICK_INTERVAL)
        self.broadcast_subject = self.config.get(
            "broadcast_subject", self.DEFAULT_BROADCAST_SUBJECT
        )
        self.title_subject = self.config.get("title_subject", self.DEFAULT_TITLE_SUBJECT)
        self.emit_events = self.config.get("emit_events", True)

        config_path = self.config.get("config_path")
        if not config_path and "settings" not in self.config:
            config_path = self.DEFAULT_CONFIG_PATH
        self.settings = AlertConfig(ConfigStore(
            path=config_path,
            data=self.config.get("settings"),
        ))
        self.scheduler = TickScheduler(tick_interval=self.tick_interval)
        self.display = NatsTitleDisplay(self.nats, self.title_subject)
        self.countdowns = CountdownCoordinator(
            self.settings, self.scheduler, self.display, clock=clock
        )

        # Subscription tracking
        self._subscriptions = []
        self._initialized = False

    async def initialize(self) -> None:
        """
        Initialize the plugin.

        - Loads configuration
        - Starts the tick scheduler
        - Subscribes to NATS subjects

        Raises:
            ConfigError: If the configuration file cannot be read.
        """
        self.logger.info(f"Initializing {self.NAMESPACE} plugin v{self.VERSION}")

        self.settings.reload()
        await self.scheduler.start()

        sub = await self.nats.subscribe(self.SUBJECT_EVENT, cb=self._handle_event)
        self._subscriptions.append(sub)

        sub = await self.nats.subscribe(self.SUBJECT_RELOAD, cb=self._handle_reload)
        self._subscriptions.append(sub)

        self._initialized = True
        self.logger.info(f"{self.NAMESPACE} plugin loaded")

    async def shutdown(self) -> None:
        """
        Shutdown the plugin.

        - Cancels the countdown and anything else left on the scheduler
        - Stops the scheduler
        - Flushes pending title directives
        - Unsubscribes from NATS subjects
        """
        self.countdowns.shutdown()
        self.scheduler.cancel_all()
        await self.scheduler.stop()
        await self.display.drain()

        for sub in self._subscriptions:
            await sub.unsubscribe()
        self._subscriptions.clear()

        self._initialized = False
        self.logger.info(f"{self.NAMESPACE} plugin unloaded")

    # =========================================================================
    # Command Handlers
    # =========================================================================

    async def _handle_event(self, msg) -> None:
        """
        Handle !event <key> [<amount> <unit>] command.

        Message format:
        {
            "user": "string",
            "args": "restart 5 minutes",
            "reply_to": "rosey.reply.xyz"
        }
        """
        reply_to = None
        try:
            data = json.loads(msg.data.decode())
            user = data.get("user", "console")
            args = data.get("args", "").split()
            reply_to = data.get("reply_to")

            if not args:
                await self._send_reply(reply_to, {
                    "success": False,
                    "error": (
                        "Usage: !event <key> [<amount> <seconds|minutes|hours>]\n"
                        "       !event cancel [reason...]"
                    )
                })
                return

            key, seconds = parse_event_args(args)

            if self.settings.broadcast_show:
                await self._broadcast(key, args[1:])

            result: Dict[str, Any] = {"event": key, "seconds": seconds}
            if key.lower().startswith("cancel"):
                cancelled = self.countdowns.cancel_countdown()
                result["countdown"] = "cancelled" if cancelled else "none"
                if cancelled and self.emit_events:
                    await self._emit_event(self.EVENT_CANCELLED, {
                        "event": key,
                        "user": user,
                    })
            elif self.settings.title_show:
                title = self.settings.message(f"event.messages.{key}.title", key)
                outcome = self.countdowns.show_countdown(title, seconds)
                result["countdown"] = outcome
                if outcome != "unchanged" and self.emit_events:
                    event_type = (
                        self.EVENT_STARTED if outcome == "started" else self.EVENT_REVISED
                    )
                    await self._emit_event(event_type, {
                        "event": key,
                        "title": title,
                        "seconds": seconds,
                        "user": user,
                    })
            else:
                result["countdown"] = "disabled"

            self.logger.info(f"Event '{key}' ({seconds}s) from {user}: {result['countdown']}")
            await self._send_reply(reply_to, {"success": True, "result": result})

        except Exception as e:
            self.logger.exception(f"Error handling event command: {e}")
            await self._send_reply(reply_to, {
                "success": False,
                "error": "Failed to process event command"
            })

    async def _handle_reload(self, msg) -> None:
        """
        Handle !alert reload command.

        Keeps the previous settings if the configuration cannot be read.
        """
        reply_to = None
        try:
            data = json.loads(msg.data.decode())
            reply_to = data.get("reply_to")

            settings = self.settings.reload()
            self.logger.info("Configuration reloaded")
            await self._send_reply(reply_to, {
                "success": True,
                "result": {
                    "broadcast_show": settings.broadcast_show,
                    "title_show": settings.title_show,
                    "title_seconds": settings.title_seconds,
                }
            })

        except ConfigError as e:
            self.logger.error(f"Configuration reload failed: {e}")
            await self._send_reply(reply_to, {"success": False, "error": str(e)})
        except Exception as e:
            self.logger.exception(f"Error handling reload command: {e}")
            await self._send_reply(reply_to, {
                "success": False,
                "error": "Failed to reload configuration"
            })

    # =========================================================================
    # Utility Methods
    # =========================================================================

    async def _broadcast(self, key: str, format_args: List[str]) -> None:
        """
        Broadcast the event's chat message to every player.

        Args:
            key: Event key; its broadcast template falls back to the key itself.
            format_args: Command arguments after the key.
        """
        template = self.settings.message(f"event.messages.{key}.broadcast", key)
        message = translate_color_codes(format_message(template, format_args))
        await self.nats.publish(
            self.broadcast_subject,
            json.dumps({
                "message": message,
                "type": "alert_broadcast",
                "event": key,
            }).encode()
        )

    async def _send_reply(self, reply_to: Optional[str], response: dict) -> None:
        """
        Send a reply to a command.

        Args:
            reply_to: NATS subject to reply to.
            response: Response dictionary.
        """
        if reply_to:
            await self.nats.publish(reply_to, json.dumps(response).encode())

    async def _emit_event(self, event_type: str, data: dict) -> None:
        """
        Emit an event via NATS.

        Args:
            event_type: The event subject.
            data: Event data.
        """
        event = {
            "event_type": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **data
        }
        await self.nats.publish(event_type, json.dumps(event).encode())
