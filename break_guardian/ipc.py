import logging
from typing import Any, Callable

from .broadcast import BREAK_END, SOUND_END_PLAY, SOUND_START_PLAY
from .logging_setup import get_logger

ALLOW_POSTPONE_GET = "allow-postpone-get"
BREAK_POSTPONE = "break-postpone"
BREAK_START = "break-start"
BREAK_PAUSE = "break-pause"
BREAK_RESUME = "break-resume"
BREAK_ADJUST_DURATION = "break-adjust-duration"
BREAK_END_REQUEST = "break-end"
CURRENT_BREAK_MESSAGE_GET = "current-break-message-get"
BREAK_MESSAGE_NEXT = "break-message-next"
BREAK_MESSAGE_PREVIOUS = "break-message-previous"
TIME_SINCE_LAST_BREAK_GET = "time-since-last-break-get"
BREAK_TRACKING_COMPLETE = "break-tracking-complete"
WAS_STARTED_FROM_TRAY_GET = "was-started-from-tray-get"
BREAK_LENGTH_GET = "break-length-get"
SETTINGS_GET = "settings-get"
SETTINGS_SET = "settings-set"


class BreakIpc:
    """Request/response entry point for the presentation layer.

    Every inbound operation is looked up by channel name and routed to the
    scheduler or the settings store.
    """

    def __init__(self, scheduler, settings_store, broadcaster, logger: logging.Logger | None = None):
        self._scheduler = scheduler
        self._store = settings_store
        self._broadcaster = broadcaster
        self._logger = logger or get_logger()

        self._handlers: dict[str, Callable[..., Any]] = {
            ALLOW_POSTPONE_GET: scheduler.get_allow_postpone,
            BREAK_POSTPONE: self._postpone,
            BREAK_START: self._start_countdown,
            BREAK_PAUSE: self._pause,
            BREAK_RESUME: self._resume,
            BREAK_ADJUST_DURATION: self._adjust_duration,
            BREAK_END_REQUEST: self._end,
            CURRENT_BREAK_MESSAGE_GET: scheduler.get_current_message,
            BREAK_MESSAGE_NEXT: scheduler.next_message,
            BREAK_MESSAGE_PREVIOUS: scheduler.previous_message,
            TIME_SINCE_LAST_BREAK_GET: scheduler.get_time_since_last_break,
            BREAK_TRACKING_COMPLETE: scheduler.complete_break_tracking,
            WAS_STARTED_FROM_TRAY_GET: scheduler.was_started_from_manual_trigger,
            BREAK_LENGTH_GET: scheduler.get_break_length_seconds,
            SETTINGS_GET: settings_store.get_settings,
            SETTINGS_SET: self._set_settings,
            SOUND_START_PLAY: self._relay_sound(SOUND_START_PLAY),
            SOUND_END_PLAY: self._relay_sound(SOUND_END_PLAY),
        }

    def channels(self) -> list[str]:
        return sorted(self._handlers)

    def handle(self, channel: str, *args):
        handler = self._handlers.get(channel)
        if handler is None:
            raise KeyError(f"Unknown channel: {channel}")
        self._logger.info(f"{channel} {list(args) if args else ''}".rstrip())
        return handler(*args)

    def _postpone(self, action: str | None = None) -> bool:
        return self._scheduler.postpone_break(action or "snoozed")

    def _start_countdown(self):
        state = self._scheduler.begin_countdown()
        if state is None:
            self._logger.warning("No active break when attempting to start countdown")
        return state

    def _pause(self):
        state = self._scheduler.pause()
        if state is None:
            self._logger.warning("No active break when attempting to pause")
        return state

    def _resume(self):
        state = self._scheduler.resume()
        if state is None:
            self._logger.warning("No active break when attempting to resume")
        return state

    def _adjust_duration(self, delta_ms=0):
        result = self._scheduler.adjust_duration(delta_ms)
        if result is None:
            self._logger.warning("Failed to adjust break duration")
        return result

    def _end(self) -> None:
        if not self._scheduler.is_having_break():
            # closing an already-finished break still tells windows to go away
            self._broadcaster.send(BREAK_END, {})
        self._scheduler.end_break()

    def _set_settings(self, settings: dict) -> None:
        self._store.set_settings(settings)

    def _relay_sound(self, channel: str):
        def relay(sound_type: str, volume: float = 1.0) -> None:
            self._broadcaster.send(channel, {"type": sound_type, "volume": volume})
        return relay
