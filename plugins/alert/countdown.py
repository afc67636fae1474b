"""
plugins/alert/countdown.py

Countdown title task and its coordinator.

Provides:
- CountdownTask: shows a title countdown, refreshed from a tick callback
- CountdownCoordinator: owns at most one live CountdownTask
- format_subtitle / subtitle_key: "in 5 minutes" style subtitles
- parse_event_args: "<key> [<amount> <unit>]" command arguments
"""

import logging
import time
from typing import Callable, Optional, Sequence, Tuple

try:
    from .config import AlertConfig
    from .display import DisplaySink, translate_color_codes
    from .scheduler import TickScheduler
except ImportError:
    from config import AlertConfig
    from display import DisplaySink, translate_color_codes
    from scheduler import TickScheduler


logger = logging.getLogger(__name__)


# =============================================================================
# Argument Parsing
# =============================================================================

# Unit prefixes accepted after the amount (matched case-insensitively)
TIME_UNITS = (
    ("second", 1),
    ("minute", 60),
    ("hour", 3600),
)


def parse_event_args(args: Sequence[str]) -> Tuple[str, int]:
    """
    Parse event command arguments.

    Supported forms:
    - "<key>" - countdown of zero seconds
    - "<key> <amount> <unit>" - unit starts with second, minute or hour,
      e.g. "restart 5 minutes", "shutdown 1 hour", "restart 30 seconds"

    Any other shape, an unknown unit or a non-numeric amount gives
    zero seconds. Negative amounts are clamped to zero.

    Args:
        args: Argument words, event key first.

    Returns:
        (event key, countdown seconds)

    Raises:
        ValueError: If no event key is given.
    """
    if not args:
        raise ValueError("Missing event key")

    key = args[0]
    seconds = 0
    if len(args) == 3:
        amount, units = args[1], args[2].lower()
        try:
            number = int(amount)
        except ValueError:
            logger.warning(f"Passed a weird number argument: {amount}")
        else:
            for unit, multiplier in TIME_UNITS:
                if units.startswith(unit):
                    seconds = max(number * multiplier, 0)
                    break

    return key, seconds


# =============================================================================
# Subtitle Formatting
# =============================================================================

# Built-in subtitle templates, used when config has none (or a broken one)
DEFAULT_SUBTITLES = {
    "now": "now",
    "minute": "in %d minute",
    "minutes": "in %d minutes",
    "second": "in %d second",
    "seconds": "in %d seconds",
}


def subtitle_key(seconds: int) -> Tuple[str, int]:
    """
    Pick the subtitle template key and the number to show.

    Returns:
        ("now", 0) at zero, ("minute"/"minutes", minutes) on whole minutes,
        otherwise ("second"/"seconds", seconds).
    """
    if seconds == 0:
        return "now", 0
    if seconds % 60 == 0:
        number = seconds // 60
        return ("minute" if number == 1 else "minutes"), number
    return ("second" if seconds == 1 else "seconds"), seconds


def format_subtitle(config: AlertConfig, seconds: int) -> str:
    """
    Format the subtitle as singular or plural minutes or seconds.

    Templates come from event.subtitle.<key> and take one numeric
    placeholder.
    """
    key, number = subtitle_key(seconds)
    default = DEFAULT_SUBTITLES[key]
    template = config.message(f"event.subtitle.{key}", default)
    try:
        text = template % number if "%" in template else template
    except (TypeError, ValueError) as e:
        logger.warning(f"Bad subtitle template event.subtitle.{key}={template!r}: {e}")
        text = default % number if "%" in default else default
    return translate_color_codes(text)


# =============================================================================
# Countdown Task
# =============================================================================

class CountdownTask:
    """
    Shows a countdown using the client title display.

    The task wakes up every tick and recomputes the remaining time from
    the clock, so the display stays accurate when the server is lagging.
    The title is redrawn on the first tick, on every whole minute and on
    every second once at or below the configured threshold.

    Args:
        config: Plugin configuration.
        title: Title text (colour codes allowed).
        seconds: Total countdown duration in seconds.
        display: Where titles are drawn.
        clock: Seconds-resolution monotonic clock (default: time.monotonic).
        on_finish: Called once when the countdown reaches zero.
    """

    def __init__(
        self,
        config: AlertConfig,
        title: str,
        seconds: int,
        display: DisplaySink,
        clock: Callable[[], float] = time.monotonic,
        on_finish: Optional[Callable[["CountdownTask"], None]] = None
    ):
        self.config = config
        self.display = display
        self.clock = clock
        self.on_finish = on_finish
        self.handle: Optional[int] = None
        self._scheduler: Optional[TickScheduler] = None
        self._initialise(title, seconds)

    @property
    def is_running(self) -> bool:
        return self.handle is not None

    @property
    def remaining(self) -> int:
        """Remaining seconds as of the last tick (duration before the first)."""
        return self.duration if self.last_seconds < 0 else self.last_seconds

    def revise(self, title: str, seconds: int) -> bool:
        """
        Retarget the countdown to a new event time.

        Only an earlier deadline changes the display, so the soonest of
        several announced events wins. A finished countdown accepts any
        new duration and starts ticking again on its last scheduler.

        Returns:
            True if the countdown was reinitialised.
        """
        if seconds < self.remaining or self.remaining <= 0:
            self._initialise(title, seconds)
            if self.handle is None and self._scheduler is not None:
                self.start(self._scheduler)
            return True
        return False

    def start(self, scheduler: TickScheduler) -> None:
        """Start ticking every server tick, unless already running."""
        if self.handle is None:
            self._scheduler = scheduler
            self.handle = scheduler.schedule_periodic(self.on_tick, period=1)

    def cancel(self) -> None:
        """Stop ticking. Safe to call repeatedly."""
        if self.handle is not None:
            self._scheduler.cancel(self.handle)
            self.handle = None

    def on_tick(self) -> None:
        if self.handle is None:
            return

        now_ms = int(self.clock() * 1000)
        elapsed = (now_ms + self.config.early_ms - self.start_ms) // 1000
        remaining = max(self.duration - elapsed, 0)

        if remaining != self.last_seconds:
            first = self.last_seconds < 0
            self.last_seconds = remaining

            if (first
                    or remaining <= self.config.title_seconds
                    or remaining % 60 == 0):
                self.show(self.title, format_subtitle(self.config, remaining))

        if remaining <= 0:
            self.cancel()
            if self.on_finish:
                self.on_finish(self)

    def show(self, title: str, subtitle: Optional[str]) -> None:
        """Draw the title, and the subtitle if given, for every player."""
        self.display.set_timing(
            self.config.fade_in_ticks,
            self.config.display_ticks,
            self.config.fade_out_ticks,
        )
        self.display.set_title(translate_color_codes(title))
        if subtitle is not None:
            self.display.set_subtitle(translate_color_codes(subtitle))

    def _initialise(self, title: str, seconds: int) -> None:
        # Force display of the title on the next tick
        self.last_seconds = -1
        self.title = title
        self.duration = max(seconds, 0)
        self.start_ms = int(self.clock() * 1000)

    def __repr__(self) -> str:
        state = "running" if self.is_running else "idle"
        return f"<CountdownTask {self.title!r} {self.remaining}/{self.duration}s ({state})>"


# =============================================================================
# Coordinator
# =============================================================================

class CountdownCoordinator:
    """
    Owns the single live countdown.

    Args:
        config: Plugin configuration.
        scheduler: Scheduler the countdown ticks on.
        display: Where titles are drawn.
        clock: Clock handed to each countdown.
    """

    def __init__(
        self,
        config: AlertConfig,
        scheduler: TickScheduler,
        display: DisplaySink,
        clock: Callable[[], float] = time.monotonic
    ):
        self.config = config
        self.scheduler = scheduler
        self.display = display
        self.clock = clock
        self._task: Optional[CountdownTask] = None

    @property
    def active(self) -> Optional[CountdownTask]:
        """The running countdown, if any."""
        return self._task

    def show_countdown(self, title: str, seconds: int) -> str:
        """
        Start the countdown, or retarget the running one.

        Returns:
            "started", "revised" or "unchanged".
        """
        if self._task is None:
            self._task = CountdownTask(
                self.config, title, seconds, self.display,
                clock=self.clock, on_finish=self._on_finish,
            )
            self._task.start(self.scheduler)
            logger.info(f"Countdown started: {title!r} in {seconds}s")
            return "started"

        if self._task.revise(title, seconds):
            logger.info(f"Countdown revised: {title!r} in {seconds}s")
            return "revised"

        logger.debug(
            f"Countdown unchanged: {seconds}s is not sooner than "
            f"{self._task.remaining}s remaining"
        )
        return "unchanged"

    def cancel_countdown(self) -> bool:
        """
        Cancel the running countdown.

        Returns:
            True if a countdown was running.
        """
        if self._task is None:
            return False

        self._task.cancel()
        logger.info(f"Countdown cancelled: {self._task.title!r}")
        self._task = None
        return True

    def shutdown(self) -> None:
        """Drop the countdown unconditionally."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _on_finish(self, task: CountdownTask) -> None:
        if self._task is task:
            logger.info(f"Countdown finished: {task.title!r}")
            self._task = None
