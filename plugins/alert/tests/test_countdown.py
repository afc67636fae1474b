"""
tests/test_countdown.py

Unit tests for the countdown task, its coordinator and argument parsing.

Tests cover:
- Event argument parsing
- Subtitle key selection and formatting
- Tick behaviour, refresh points and self-cancellation
- Soonest-wins revision
- Coordinator create/revise/cancel
"""

import pytest
from unittest.mock import MagicMock

from config import AlertConfig, ConfigStore
from countdown import (
    CountdownCoordinator,
    CountdownTask,
    format_subtitle,
    parse_event_args,
    subtitle_key,
)


def run_seconds(scheduler, clock, seconds):
    """Advance the clock one second per tick."""
    for _ in range(seconds):
        clock.advance(1)
        scheduler.tick()


# =============================================================================
# Argument Parsing Tests
# =============================================================================

class TestParseEventArgs:
    """Tests for parse_event_args()."""

    @pytest.mark.parametrize("args,expected", [
        (["restart", "30", "seconds"], 30),
        (["restart", "5", "minutes"], 300),
        (["restart", "1", "minute"], 60),
        (["restart", "2", "hours"], 7200),
        (["restart", "10", "SECONDS"], 10),
        (["restart", "10", "sec"], 0),
        (["restart", "3", "Minutes"], 180),
        (["restart", "1", "h"], 0),
        (["restart", "5", "days"], 0),
        (["restart", "-5", "minutes"], 0),
    ])
    def test_units(self, args, expected):
        assert parse_event_args(args) == ("restart", expected)

    def test_key_only(self):
        assert parse_event_args(["restart"]) == ("restart", 0)

    def test_other_shapes_are_zero(self):
        assert parse_event_args(["restart", "5"]) == ("restart", 0)
        assert parse_event_args(["restart", "5", "minutes", "now"]) == ("restart", 0)

    def test_non_numeric_amount(self, caplog):
        assert parse_event_args(["restart", "five", "minutes"]) == ("restart", 0)
        assert "weird number" in caplog.text

    def test_missing_key_raises(self):
        with pytest.raises(ValueError):
            parse_event_args([])


# =============================================================================
# Subtitle Tests
# =============================================================================

class TestSubtitle:
    """Tests for subtitle key selection and formatting."""

    @pytest.mark.parametrize("seconds,expected", [
        (0, ("now", 0)),
        (120, ("minutes", 2)),
        (60, ("minute", 1)),
        (45, ("seconds", 45)),
        (1, ("second", 1)),
        (90, ("seconds", 90)),
    ])
    def test_subtitle_key(self, seconds, expected):
        assert subtitle_key(seconds) == expected

    def test_format_from_config(self, alert_config):
        assert format_subtitle(alert_config, 300) == "in 5 minutes"
        assert format_subtitle(alert_config, 0) == "now!"
        assert format_subtitle(alert_config, 1) == "in 1 second"

    def test_missing_template_uses_builtin(self):
        config = AlertConfig(ConfigStore(data={}))
        assert format_subtitle(config, 60) == "in 1 minute"
        assert format_subtitle(config, 0) == "now"

    def test_broken_template_uses_builtin(self):
        config = AlertConfig(ConfigStore(data={
            "event": {"subtitle": {"seconds": "in %d %d seconds"}}
        }))
        assert format_subtitle(config, 5) == "in 5 seconds"

    def test_template_without_placeholder(self):
        config = AlertConfig(ConfigStore(data={
            "event": {"subtitle": {"minutes": "soon"}}
        }))
        assert format_subtitle(config, 120) == "soon"

    def test_color_codes_translated(self):
        config = AlertConfig(ConfigStore(data={
            "event": {"subtitle": {"second": "&cin %d second"}}
        }))
        assert format_subtitle(config, 1) == "§cin 1 second"


# =============================================================================
# CountdownTask Tests
# =============================================================================

class TestCountdownTask:
    """Tests for tick behaviour."""

    def test_not_started_on_construction(self, alert_config, display, clock):
        task = CountdownTask(alert_config, "Restart", 30, display, clock=clock)
        assert task.is_running is False
        assert task.remaining == 30

    def test_start_registers_once(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 30, display, clock=clock)
        task.start(scheduler)
        handle = task.handle
        task.start(scheduler)

        assert task.handle == handle
        assert scheduler.pending_count == 1

    def test_first_tick_shows_title(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "&cRestart", 300, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()

        assert display.calls == [
            ("times", 5, 40, 15),
            ("title", "§cRestart"),
            ("subtitle", "in 5 minutes"),
        ]

    def test_no_redundant_refresh(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 5, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()
        display.clear()

        # Many ticks within the same second
        clock.advance(0.4)
        scheduler.tick()
        clock.advance(0.4)
        scheduler.tick()

        assert display.calls == []
        assert task.remaining == 5

    def test_refresh_schedule_for_five_minutes(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 300, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()
        shown = [task.remaining]

        for _ in range(300):
            display.clear()
            clock.advance(1)
            scheduler.tick()
            if display.calls:
                shown.append(task.remaining)

        assert shown == [300, 240, 180, 120, 60] + list(range(10, -1, -1))
        assert display.subtitles[-1] == "now!"
        assert task.is_running is False

    def test_exactly_one_cancellation(self, alert_config, display, clock, scheduler):
        for duration in (0, 1, 7, 61):
            scheduler.cancel_all()
            on_finish = MagicMock()
            task = CountdownTask(
                alert_config, "Restart", duration, display,
                clock=clock, on_finish=on_finish,
            )
            task.start(scheduler)

            scheduler.tick()
            run_seconds(scheduler, clock, duration)

            on_finish.assert_called_once_with(task)
            assert scheduler.pending_count == 0

    def test_zero_duration_shows_now_once(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 0, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()
        scheduler.tick()

        assert display.subtitles == ["now!"]
        assert task.is_running is False

    def test_lagging_server_skips_to_correct_second(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 100, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()

        # One tick after a 40 second stall lands on the whole minute
        clock.advance(40)
        scheduler.tick()

        assert task.remaining == 60
        assert display.subtitles[-1] == "in 1 minute"

    def test_stall_before_first_tick_still_shows_title(
        self, alert_config, display, clock, scheduler
    ):
        task = CountdownTask(alert_config, "Restart", 300, display, clock=clock)
        task.start(scheduler)

        clock.advance(1.2)
        scheduler.tick()

        assert task.remaining == 299
        assert display.subtitles == ["in 299 seconds"]

    def test_large_early_ms_still_shows_title(self, display, clock, scheduler):
        config = AlertConfig(ConfigStore(data={"event.title.early_ms": 1000}))
        config.reload()
        task = CountdownTask(config, "Restart", 300, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()

        assert task.remaining == 299
        assert len(display.subtitles) == 1

    def test_lag_past_zero_ends_on_now(self, alert_config, display, clock, scheduler):
        on_finish = MagicMock()
        task = CountdownTask(
            alert_config, "Restart", 3, display, clock=clock, on_finish=on_finish,
        )
        task.start(scheduler)
        scheduler.tick()

        clock.advance(4.5)
        scheduler.tick()

        assert task.remaining == 0
        assert display.subtitles[-1] == "now!"
        on_finish.assert_called_once_with(task)

    def test_negative_duration_is_clamped(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", -300, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()

        assert task.duration == 0
        assert display.subtitles == ["now!"]
        assert task.is_running is False

    def test_early_ms_shifts_display(self, display, clock, scheduler):
        config = AlertConfig(ConfigStore(data={"event.title.early_ms": 300}))
        config.reload()
        task = CountdownTask(config, "Restart", 10, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()

        clock.advance(0.75)
        scheduler.tick()

        assert task.remaining == 9

    def test_cancel_is_idempotent(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 30, display, clock=clock)
        task.start(scheduler)
        task.cancel()
        task.cancel()

        assert task.is_running is False
        assert scheduler.pending_count == 0

    def test_tick_after_cancel_is_noop(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 30, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()
        task.cancel()
        display.clear()

        clock.advance(25)
        task.on_tick()

        assert display.calls == []


# =============================================================================
# Revise Tests
# =============================================================================

class TestRevise:
    """Tests for soonest-wins revision."""

    def test_sooner_wins(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 300, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()

        assert task.revise("Shutdown", 120) is True
        assert task.title == "Shutdown"
        assert task.duration == 120

        display.clear()
        scheduler.tick()
        assert display.subtitles == ["in 2 minutes"]

    def test_later_is_ignored(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 120, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()

        assert task.revise("Shutdown", 300) is False
        assert task.revise("Shutdown", 120) is False
        assert task.title == "Restart"
        assert task.duration == 120

    def test_later_is_ignored_before_first_tick(self, alert_config, display, clock):
        task = CountdownTask(alert_config, "Restart", 120, display, clock=clock)
        assert task.revise("Shutdown", 300) is False

    def test_finished_task_accepts_any_duration(self, alert_config, display, clock, scheduler):
        task = CountdownTask(alert_config, "Restart", 0, display, clock=clock)
        task.start(scheduler)
        scheduler.tick()

        assert task.revise("Restart", 600) is True
        assert task.remaining == 600
        assert task.is_running is True
        assert scheduler.pending_count == 1

        display.clear()
        scheduler.tick()
        assert display.subtitles == ["in 10 minutes"]


# =============================================================================
# Coordinator Tests
# =============================================================================

class TestCountdownCoordinator:
    """Tests for create-or-revise and cancel."""

    @pytest.fixture
    def coordinator(self, alert_config, scheduler, display, clock):
        return CountdownCoordinator(alert_config, scheduler, display, clock=clock)

    def test_show_starts_countdown(self, coordinator, scheduler):
        assert coordinator.show_countdown("Restart", 60) == "started"
        assert coordinator.active is not None
        assert coordinator.active.is_running
        assert scheduler.pending_count == 1

    def test_show_revises_running_countdown(self, coordinator, scheduler):
        coordinator.show_countdown("Restart", 300)
        task = coordinator.active
        scheduler.tick()

        assert coordinator.show_countdown("Shutdown", 60) == "revised"
        assert coordinator.show_countdown("Later", 600) == "unchanged"
        assert coordinator.active is task
        assert task.title == "Shutdown"
        assert scheduler.pending_count == 1

    def test_cancel(self, coordinator, scheduler):
        coordinator.show_countdown("Restart", 300)

        assert coordinator.cancel_countdown() is True
        assert coordinator.active is None
        assert scheduler.pending_count == 0
        assert coordinator.cancel_countdown() is False

    def test_cancelled_task_ignores_stray_tick(self, coordinator, display, clock):
        coordinator.show_countdown("Restart", 300)
        task = coordinator.active
        coordinator.cancel_countdown()

        clock.advance(60)
        task.on_tick()

        assert display.calls == []

    def test_finished_countdown_is_released(self, coordinator, scheduler, clock):
        coordinator.show_countdown("Restart", 2)
        scheduler.tick()
        run_seconds(scheduler, clock, 2)

        assert coordinator.active is None
        assert coordinator.show_countdown("Restart", 600) == "started"
        assert coordinator.active.remaining == 600

    def test_shutdown(self, coordinator, scheduler):
        coordinator.show_countdown("Restart", 300)
        coordinator.shutdown()

        assert coordinator.active is None
        assert scheduler.pending_count == 0
