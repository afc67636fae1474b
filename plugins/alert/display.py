"""
plugins/alert/display.py

On-screen title display for connected players.

Provides:
- TitleDirective: typed title/subtitle/timing directive
- DisplaySink: interface the countdown draws through
- NatsTitleDisplay: sink that publishes directives to the game bridge
- translate_color_codes / format_message: text helpers shared with broadcasts
"""

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Set


logger = logging.getLogger(__name__)

# Target selector for every connected player
ALL_PLAYERS = "@a"

SECTION_SIGN = "§"

_COLOR_CODE = re.compile(r"&([0-9a-fk-orA-FK-OR])")

# printf conversions, with "%%" matched separately so it is not counted
_CONVERSION = re.compile(r"%%|%[-#0 +]*\d*(?:\.\d+)?[sdif]")


def translate_color_codes(text: str, alt_char: str = "&") -> str:
    """
    Convert "&c"-style colour codes to the section-sign form the client renders.

    Args:
        text: Text possibly containing colour codes.
        alt_char: Character used in config files in place of the section sign.

    Returns:
        Text with colour codes translated. Unknown codes are left alone.
    """
    if alt_char == "&":
        pattern = _COLOR_CODE
    else:
        pattern = re.compile(re.escape(alt_char) + r"([0-9a-fk-orA-FK-OR])")
    return pattern.sub(lambda m: SECTION_SIGN + m.group(1).lower(), text)


def format_message(template: str, args: Sequence[Any]) -> str:
    """
    Apply printf-style formatting, tolerating surplus arguments.

    Only as many arguments as the template has conversions are used.
    If formatting still fails (too few arguments, "%d" given a word),
    the template is returned unformatted.

    Args:
        template: Format string, e.g. "Restart in %s %s!".
        args: Values to substitute.

    Returns:
        Formatted string.
    """
    wanted = sum(1 for m in _CONVERSION.finditer(template) if m.group() != "%%")
    try:
        return template % tuple(args[:wanted])
    except (TypeError, ValueError) as e:
        logger.warning(f"Cannot format {template!r} with {list(args)!r}: {e}")
        return template


# =============================================================================
# Directives
# =============================================================================

@dataclass(frozen=True)
class TitleDirective:
    """
    A single instruction to the client title display.

    Attributes:
        action: "times", "title" or "subtitle".
        target: Player selector (default: every player).
        text: Title or subtitle text (title/subtitle actions).
        timing: (fade_in, display, fade_out) ticks (times action).
    """

    action: str
    target: str = ALL_PLAYERS
    text: Optional[str] = None
    timing: Optional[tuple] = field(default=None)

    def to_command(self) -> str:
        """Render as a server console /title command."""
        if self.action == "times":
            fade_in, display, fade_out = self.timing
            return f"title {self.target} times {fade_in} {display} {fade_out}"
        return f"title {self.target} {self.action} {json.dumps({'text': self.text})}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "action": self.action,
            "target": self.target,
            "command": self.to_command(),
        }
        if self.action == "times":
            fade_in, display, fade_out = self.timing
            data.update(fade_in=fade_in, display=display, fade_out=fade_out)
        else:
            data["text"] = self.text
        return data


class DisplaySink(ABC):
    """
    Where countdown titles are drawn.

    Methods are synchronous so they can be called from a tick callback.
    """

    @abstractmethod
    def set_timing(self, fade_in_ticks: int, display_ticks: int, fade_out_ticks: int) -> None:
        """Set fade-in, hold and fade-out times for following titles."""

    @abstractmethod
    def set_title(self, text: str) -> None:
        """Show the main title text."""

    @abstractmethod
    def set_subtitle(self, text: str) -> None:
        """Show the subtitle text."""


class NatsTitleDisplay(DisplaySink):
    """
    Publishes title directives to the game server bridge over NATS.

    Publishing is scheduled on the running event loop so the calling
    tick never awaits. Call drain() before disconnecting to flush
    directives still in flight.

    Args:
        nats_client: Connected NATS client.
        subject: Subject the game bridge listens on.
        target: Player selector for every directive.
    """

    def __init__(self, nats_client, subject: str, target: str = ALL_PLAYERS):
        self.nats = nats_client
        self.subject = subject
        self.target = target
        self._pending: Set[asyncio.Task] = set()

    def set_timing(self, fade_in_ticks: int, display_ticks: int, fade_out_ticks: int) -> None:
        self.send(TitleDirective(
            action="times",
            target=self.target,
            timing=(fade_in_ticks, display_ticks, fade_out_ticks),
        ))

    def set_title(self, text: str) -> None:
        self.send(TitleDirective(action="title", target=self.target, text=text))

    def set_subtitle(self, text: str) -> None:
        self.send(TitleDirective(action="subtitle", target=self.target, text=text))

    def send(self, directive: TitleDirective) -> None:
        """Queue one directive for publishing."""
        payload = json.dumps(directive.to_dict()).encode()
        task = asyncio.get_running_loop().create_task(self._publish(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every queued directive to be published."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _publish(self, payload: bytes) -> None:
        try:
            await self.nats.publish(self.subject, payload)
        except Exception as e:
            logger.error(f"Failed to publish title directive to {self.subject}: {e}")
