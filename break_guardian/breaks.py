import datetime
import logging
import random
import threading
import time
from contextlib import contextmanager
from typing import Callable

from .broadcast import (
    BREAK_END,
    BREAK_MESSAGE_UPDATE,
    BREAK_PAUSE,
    BREAK_SCHEDULED,
    BREAK_START,
    SOUND_END_PLAY,
    SOUND_START_PLAY,
)
from .config import (
    BREAK_COMPLETION_RATIO,
    BREAK_NOTIFICATION_TITLE,
    IDLE_NOTIFICATION_TITLE,
    MIN_BREAK_DURATION_MS,
    TICK_INTERVAL_SEC,
)
from .idle_monitor import STATE_IDLE, STATE_LOCKED
from .logging_setup import get_logger
from .messages import clone_message, resolve_duration_ms, select_next
from .settings import NOTIFICATION_SIMPLE, SOUND_NONE
from .utils import seconds_to_hhmmss, strip_html, to_finite_number
from .working_hours import is_within_working_hours


def _positive_seconds(value) -> float:
    return max(1.0, to_finite_number(value))


class BreakSession:
    """In-memory state of the break cycle. Owned by a single BreakScheduler."""

    def __init__(self, now: float):
        self.is_active = False
        self.scheduled_at: float | None = None
        self.postponed_count = 0
        self.idle_started_at: float | None = None
        self.lock_started_at: float | None = None
        self.last_tick_at: float | None = None
        self.started_from_manual_trigger = False

        self.last_completed_at = now
        self.break_started_at: float | None = None
        self.skipped_or_snoozed_since_last_break = False

        self.current_message: dict | None = None
        self.total_duration_ms: int | None = None
        self.remaining_ms: int | None = None
        self.is_paused = False
        self.end_timestamp: int | None = None
        self.message_history: list[dict] = []
        self.history_cursor = -1

        # bumped on every break start; stale async completions compare against it
        self.generation = 0

    def reset_countdown(self) -> None:
        self.end_timestamp = None
        self.remaining_ms = None
        self.total_duration_ms = None
        self.is_paused = False
        self.current_message = None
        self.message_history = []
        self.history_cursor = -1


class BreakScheduler:
    """Decides when breaks happen and runs the countdown of the active one.

    Every public method is a critical section over the session. Calls into
    collaborators (broadcasts, notifications, break windows) are queued while
    the lock is held and delivered once it is released, so listeners are free
    to call back into the scheduler.
    """

    def __init__(
        self,
        settings_store,
        idle_monitor,
        broadcaster,
        notifier=None,
        presenter=None,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ):
        self._store = settings_store
        self._idle = idle_monitor
        self._broadcaster = broadcaster
        self._notifier = notifier
        self._presenter = presenter
        self._logger = logger or get_logger()
        self._clock = clock
        self._rng = rng or random.Random()

        self._lock = threading.Lock()
        self._outbox: list[tuple[Callable, tuple]] = []
        self._session = BreakSession(clock())

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def session(self) -> BreakSession:
        return self._session

    def set_presenter(self, presenter) -> None:
        with self._critical():
            self._presenter = presenter

    # Plumbing
    @contextmanager
    def _critical(self):
        with self._lock:
            try:
                yield
            finally:
                pending, self._outbox = self._outbox, []
        for fn, args in pending:
            try:
                fn(*args)
            except Exception:
                self._logger.exception(f"Collaborator call failed [fn={getattr(fn, '__name__', fn)}]")

    def _defer(self, fn: Callable, *args) -> None:
        self._outbox.append((fn, args))

    def _emit(self, channel: str, payload: dict | None = None) -> None:
        self._defer(self._broadcaster.send, channel, payload or {})

    def _now(self) -> float:
        return self._clock()

    def _now_ms(self) -> int:
        return int(round(self._clock() * 1000))

    def _settings(self) -> dict:
        return self._store.get_settings()

    # Tick driver
    def start(self, interval: float = TICK_INTERVAL_SEC) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, args=(interval,), daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _run(self, interval: float) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(interval)

    def init_breaks(self) -> None:
        with self._critical():
            settings = self._settings()
            if not to_finite_number(settings.get("postpone_limit")):
                self._session.postponed_count = 0
            if settings.get("breaks_enabled"):
                self._schedule_next_break(settings)
            else:
                self._session.scheduled_at = None
                self._emit(BREAK_SCHEDULED, {"scheduled_at": None})

    # Scheduling
    def schedule_next_break(self, is_postpone: bool = False) -> None:
        with self._critical():
            self._schedule_next_break(self._settings(), is_postpone)

    def _schedule_next_break(self, settings: dict, is_postpone: bool = False) -> None:
        s = self._session
        now = self._now()
        s.started_from_manual_trigger = False

        if s.idle_started_at is not None:
            self._create_idle_notification(settings, now)
            s.idle_started_at = None
            s.postponed_count = 0
            s.last_completed_at = now
            s.skipped_or_snoozed_since_last_break = False
            self._logger.info("Break auto-detected via idle reset")

        raw = settings.get("postpone_length_seconds") if is_postpone else settings.get("break_frequency_seconds")
        seconds = _positive_seconds(raw)
        s.scheduled_at = now + seconds

        when = datetime.datetime.fromtimestamp(s.scheduled_at).strftime("%H:%M:%S")
        self._logger.info(f"Scheduling next break [is_postpone={is_postpone}] [seconds={seconds:g}] [scheduled_for={when}]")
        self._emit(BREAK_SCHEDULED, {"scheduled_at": s.scheduled_at})

    def _create_idle_notification(self, settings: dict, now: float) -> None:
        s = self._session
        if not settings.get("idle_reset_enabled") or s.idle_started_at is None:
            return
        if settings.get("idle_reset_notification") and self._notifier is not None:
            away = seconds_to_hhmmss(now - s.idle_started_at)
            self._defer(self._notifier.notify, IDLE_NOTIFICATION_TITLE, f"Away for {away}")

    def _check_idle(self, settings: dict, now: float) -> bool:
        s = self._session
        threshold = _positive_seconds(settings.get("idle_reset_length_seconds"))
        state = self._idle.get_idle_state(threshold)

        if state == STATE_LOCKED:
            if not settings.get("idle_reset_enabled"):
                s.lock_started_at = None
                return False
            if s.lock_started_at is None:
                s.lock_started_at = now
                return False
            return (now - s.lock_started_at) > threshold

        s.lock_started_at = None
        if not settings.get("idle_reset_enabled"):
            return False
        return state == STATE_IDLE

    def tick(self) -> None:
        prepared = None
        with self._critical():
            try:
                # a due break is marked active before the lock is released
                if self._tick(self._settings(), self._now()):
                    prepared = self._prepare_break()
            except Exception:
                self._logger.exception("Tick failed")
            finally:
                self._session.last_tick_at = self._now()
        if prepared is not None:
            try:
                self._complete_begin_break(*prepared)
            except Exception:
                self._logger.exception("Starting break from tick failed")

    def _tick(self, settings: dict, now: float) -> bool:
        s = self._session

        if s.is_active:
            self._check_countdown_expired()

        idle = self._check_idle(settings, now)
        in_hours = is_within_working_hours(datetime.datetime.fromtimestamp(now), settings)
        should_have_break = not s.is_active and bool(settings.get("breaks_enabled")) and in_hours and not idle

        since_last_tick = abs(now - s.last_tick_at) if s.last_tick_at is not None else 0.0
        break_seconds = _positive_seconds(settings.get("break_frequency_seconds"))
        idle_reset_seconds = _positive_seconds(settings.get("idle_reset_length_seconds"))
        lock_seconds = abs(now - s.lock_started_at) if s.lock_started_at is not None else None

        if lock_seconds is not None and lock_seconds > break_seconds:
            # Locked through a whole break cycle: nothing worth announcing
            s.idle_started_at = None
            s.lock_started_at = None
        elif since_last_tick > break_seconds:
            # Asleep through a whole break cycle: the old deadline is stale
            self._logger.info(f"Tick gap exceeds break frequency, dropping schedule [gap={since_last_tick:.0f}s]")
            s.lock_started_at = None
            s.scheduled_at = None
        elif settings.get("idle_reset_enabled") and since_last_tick > idle_reset_seconds:
            # The gap itself counts as idle time, starting at the previous tick
            if s.idle_started_at is None:
                s.lock_started_at = None
                s.idle_started_at = s.last_tick_at
            self._schedule_next_break(settings)

        if not should_have_break and not s.is_active and s.scheduled_at is not None:
            # re-checked: the anomaly handling above may have reset the lock
            if self._check_idle(settings, now):
                s.idle_started_at = now - self._idle.get_idle_time()
            s.scheduled_at = None
            self._logger.info(f"Break schedule cleared [idle={idle}] [in_working_hours={in_hours}]")
            self._emit(BREAK_SCHEDULED, {"scheduled_at": None})
            return False

        if should_have_break and s.scheduled_at is None:
            self._schedule_next_break(settings)
            return False

        return should_have_break and now > s.scheduled_at

    def start_break_now(self) -> bool:
        with self._critical():
            if self._session.is_active:
                self._logger.warning("Ignoring start_break_now because a break is already active")
                return False
            self._logger.info("Break started manually")
            self._session.started_from_manual_trigger = True
            self._session.scheduled_at = self._now()
            prepared = self._prepare_break()
        if prepared is not None:
            self._complete_begin_break(*prepared)
        return True

    def was_started_from_manual_trigger(self) -> bool:
        with self._critical():
            return self._session.started_from_manual_trigger

    # Break lifecycle
    def _select_message(self, settings: dict):
        return select_next(
            settings.get("break_messages") or [],
            settings.get("break_messages_mode"),
            settings.get("break_messages_next_index"),
            settings.get("break_messages_order"),
            settings.get("break_message"),
            self._rng,
        )

    def _persist_rotation(self, rotation: dict) -> None:
        # Runs outside the lock; the in-memory selection stands even if this fails
        try:
            updated = self._store.get_settings()
            updated["break_messages_next_index"] = rotation["next_index"]
            updated["break_messages_order"] = list(rotation["order"])
            self._store.set_settings(updated, reset_breaks=False)
        except Exception:
            self._logger.warning("Failed to persist break message rotation state", exc_info=True)

    def begin_break(self) -> None:
        with self._critical():
            prepared = self._prepare_break()
        if prepared is not None:
            self._complete_begin_break(*prepared)

    def _complete_begin_break(self, generation: int, rotation: dict | None) -> None:
        if rotation is not None:
            self._persist_rotation(rotation)

        with self._critical():
            self._finish_begin_break(generation, self._settings())

    def _prepare_break(self):
        s = self._session
        if s.is_active:
            self._logger.warning("Ignoring begin_break because a break is already active")
            return None

        s.is_active = True
        s.generation += 1
        s.break_started_at = self._now()
        s.reset_countdown()

        selection = self._select_message(self._settings())
        s.current_message = clone_message(selection.message)
        return s.generation, selection.rotation

    def _finish_begin_break(self, generation: int, settings: dict) -> None:
        s = self._session
        if not s.is_active or s.generation != generation:
            self._logger.warning("Break was cancelled during message selection, discarding it")
            if not s.is_active:
                s.break_started_at = None
            return

        duration_ms = resolve_duration_ms(settings, s.current_message)
        s.total_duration_ms = duration_ms
        s.remaining_ms = duration_ms
        s.end_timestamp = None
        s.is_paused = False
        self._record_history(s.current_message, duration_ms)

        notification_type = settings.get("notification_type")
        self._logger.info(f"Break started [type={notification_type}] [duration_ms={duration_ms}]")

        if notification_type == NOTIFICATION_SIMPLE:
            self._notify_and_complete(settings, duration_ms)
            return

        self._broadcast_message_update(settings)
        if settings.get("immediately_start_breaks") or self._presenter is None:
            self._begin_countdown(settings)
        if self._presenter is not None:
            self._defer(self._presenter.create_break_windows)

    def _notify_and_complete(self, settings: dict, duration_ms: int) -> None:
        s = self._session
        text = (s.current_message or {}).get("text") or ""
        if not text.strip():
            text = settings.get("break_message") or ""
        if self._notifier is not None:
            self._defer(self._notifier.notify, BREAK_NOTIFICATION_TITLE, strip_html(text))
        self._emit_sound(SOUND_START_PLAY, settings)

        self._complete_break_tracking(settings, duration_ms)
        existing = s.scheduled_at
        s.reset_countdown()
        s.is_active = False
        s.started_from_manual_trigger = False
        if existing is None or existing <= self._now():
            s.postponed_count = 0
            s.scheduled_at = None
            self._schedule_next_break(settings)

    def _emit_sound(self, channel: str, settings: dict) -> None:
        sound_type = settings.get("sound_type")
        if not sound_type or sound_type == SOUND_NONE:
            return
        volume = to_finite_number(settings.get("break_sound_volume"), 1.0)
        self._emit(channel, {"type": sound_type, "volume": volume})

    def end_break(self) -> None:
        with self._critical():
            self._end_break(self._settings())

    def _end_break(self, settings: dict) -> None:
        s = self._session
        was_active = s.is_active
        self._logger.info("Break ended")

        s.reset_countdown()
        existing = s.scheduled_at
        s.is_active = False
        s.started_from_manual_trigger = False
        s.postponed_count = 0

        # keep a future break set by a snooze/skip issued while closing
        if existing is None or existing <= self._now():
            s.scheduled_at = None
            self._schedule_next_break(settings)

        if was_active:
            self._emit(BREAK_END)

    def get_allow_postpone(self) -> bool:
        with self._critical():
            limit = int(to_finite_number(self._settings().get("postpone_limit")))
            return not limit or self._session.postponed_count < limit

    def postpone_break(self, action: str = "snoozed") -> bool:
        with self._critical():
            settings = self._settings()
            s = self._session
            limit = int(to_finite_number(settings.get("postpone_limit")))
            if limit and s.postponed_count >= limit:
                self._logger.warning(
                    f"Ignoring postpone_break; postpone limit reached [limit={limit}] [count={s.postponed_count}] [action={action}]"
                )
                return False

            s.postponed_count += 1
            was_active = s.is_active
            s.is_active = False
            s.reset_countdown()
            s.skipped_or_snoozed_since_last_break = True
            self._logger.info(f"Break {action} [count={s.postponed_count}]")

            self._schedule_next_break(settings, is_postpone=(action != "skipped"))
            if was_active:
                self._emit(BREAK_END)
            return True

    # Tracking
    def _break_length_seconds(self, settings: dict) -> float:
        s = self._session
        if s.is_active and s.current_message:
            override = to_finite_number(s.current_message.get("duration_seconds"))
            if override > 0:
                return max(1, round(override))
        return to_finite_number(settings.get("break_length_seconds"))

    def get_break_length_seconds(self) -> float:
        with self._critical():
            return self._break_length_seconds(self._settings())

    def complete_break_tracking(self, duration_ms) -> None:
        with self._critical():
            self._complete_break_tracking(self._settings(), duration_ms)

    def _complete_break_tracking(self, settings: dict, duration_ms) -> None:
        s = self._session
        if s.break_started_at is None:
            return

        required_sec = self._break_length_seconds(settings)
        taken_ms = to_finite_number(duration_ms)
        if taken_ms >= required_sec * 1000 * BREAK_COMPLETION_RATIO:
            s.last_completed_at = self._now()
            s.skipped_or_snoozed_since_last_break = False
            self._logger.info(f"Break completed [duration={taken_ms / 1000:.0f}s] [required={required_sec:g}s]")
        else:
            s.skipped_or_snoozed_since_last_break = True
            self._logger.info(f"Break too short [duration={taken_ms / 1000:.0f}s] [required={required_sec:g}s]")
        s.break_started_at = None

    def get_time_since_last_break(self) -> int | None:
        with self._critical():
            s = self._session
            if not s.skipped_or_snoozed_since_last_break:
                return None
            return int(self._now() - s.last_completed_at)

    # Countdown
    def begin_countdown(self) -> dict | None:
        with self._critical():
            if not self._session.is_active:
                self._logger.warning("Ignoring begin_countdown because no break is active")
                return None
            return self._begin_countdown(self._settings())

    def _begin_countdown(self, settings: dict) -> dict:
        s = self._session
        now_ms = self._now_ms()
        total = s.total_duration_ms or resolve_duration_ms(settings, s.current_message)
        s.total_duration_ms = total

        if s.is_paused:
            remaining = s.remaining_ms if s.remaining_ms is not None else total
            s.remaining_ms = remaining
            s.end_timestamp = now_ms + remaining
            s.is_paused = False
        elif s.end_timestamp is not None:
            s.remaining_ms = max(0, s.end_timestamp - now_ms)
        else:
            s.remaining_ms = total
            s.end_timestamp = now_ms + total
            self._emit_sound(SOUND_START_PLAY, settings)

        payload = {"end_timestamp": s.end_timestamp, "total_duration_ms": total}
        self._emit(BREAK_START, payload)
        return payload

    def pause(self) -> dict | None:
        with self._critical():
            s = self._session
            if not s.is_active:
                self._logger.warning("Ignoring pause because no break is active")
                return None

            if s.is_paused:
                self._logger.info("Break countdown already paused")
                payload = {"remaining_ms": s.remaining_ms or 0, "total_duration_ms": s.total_duration_ms or 0}
                self._emit(BREAK_PAUSE, payload)
                return payload

            if s.end_timestamp is not None:
                remaining = max(0, s.end_timestamp - self._now_ms())
            else:
                remaining = s.remaining_ms or 0
            s.remaining_ms = remaining
            s.end_timestamp = None
            s.is_paused = True

            payload = {"remaining_ms": remaining, "total_duration_ms": s.total_duration_ms or remaining}
            self._emit(BREAK_PAUSE, payload)
            return payload

    def resume(self) -> dict | None:
        with self._critical():
            s = self._session
            if not s.is_active:
                self._logger.warning("Ignoring resume because no break is active")
                return None

            if not s.is_paused:
                self._logger.info("Break countdown already running")
                if s.end_timestamp is None:
                    s.end_timestamp = self._now_ms() + (s.remaining_ms or 0)
                payload = {
                    "end_timestamp": s.end_timestamp,
                    "total_duration_ms": s.total_duration_ms or s.remaining_ms or 0,
                }
                self._emit(BREAK_START, payload)
                return payload

            remaining = s.remaining_ms if s.remaining_ms is not None else (s.total_duration_ms or 0)
            if remaining <= 0:
                self._logger.warning("Cannot resume break countdown because remaining time is zero")
                return None

            s.end_timestamp = self._now_ms() + remaining
            s.is_paused = False
            payload = {"end_timestamp": s.end_timestamp, "total_duration_ms": s.total_duration_ms or remaining}
            self._emit(BREAK_START, payload)
            return payload

    def adjust_duration(self, delta_ms) -> dict | None:
        with self._critical():
            s = self._session
            if not s.is_active:
                self._logger.warning("Ignoring adjust_duration because no break is active")
                return None

            delta = int(round(to_finite_number(delta_ms)))
            if delta == 0:
                self._logger.info("Skipping adjust_duration because delta resolved to zero")
                return None

            total = max(MIN_BREAK_DURATION_MS, max(MIN_BREAK_DURATION_MS, s.total_duration_ms or 0) + delta)
            now_ms = self._now_ms()
            if s.is_paused:
                base = max(0, s.remaining_ms if s.remaining_ms is not None else total)
            elif s.end_timestamp is not None:
                base = max(0, s.end_timestamp - now_ms)
            else:
                base = max(0, s.remaining_ms if s.remaining_ms is not None else total)
            remaining = min(max(0, base + delta), total)

            s.total_duration_ms = total
            s.remaining_ms = remaining
            self._update_current_history_duration(total)
            self._logger.info(f"Break duration adjusted [delta_ms={delta}] [total_ms={total}] [remaining_ms={remaining}]")

            if remaining == 0:
                payload = {"end_timestamp": now_ms, "total_duration_ms": total}
                self._complete_countdown(self._settings())
                return payload

            if s.is_paused:
                s.end_timestamp = None
                payload = {"remaining_ms": remaining, "total_duration_ms": total}
                self._emit(BREAK_PAUSE, payload)
            else:
                s.end_timestamp = now_ms + remaining
                payload = {"end_timestamp": s.end_timestamp, "total_duration_ms": total}
                self._emit(BREAK_START, payload)
            return payload

    def _check_countdown_expired(self) -> None:
        s = self._session
        if s.is_paused or s.end_timestamp is None:
            return
        if self._now_ms() >= s.end_timestamp:
            self._complete_countdown(self._settings())

    def _complete_countdown(self, settings: dict) -> None:
        self._logger.info("Break countdown finished")
        self._complete_break_tracking(settings, self._session.total_duration_ms or 0)
        self._emit_sound(SOUND_END_PLAY, settings)
        self._end_break(settings)

    def is_having_break(self) -> bool:
        with self._critical():
            return self._session.is_active

    def is_paused(self) -> bool:
        with self._critical():
            return self._session.is_paused

    def get_scheduled_at(self) -> float | None:
        with self._critical():
            return self._session.scheduled_at

    def get_remaining_ms(self) -> int | None:
        with self._critical():
            s = self._session
            if s.is_paused:
                return s.remaining_ms
            if s.end_timestamp is not None:
                return max(0, s.end_timestamp - self._now_ms())
            return s.remaining_ms

    def get_total_duration_ms(self) -> int | None:
        with self._critical():
            return self._session.total_duration_ms

    # Message navigation
    def _record_history(self, message: dict | None, duration_ms: int) -> None:
        s = self._session
        if message is None:
            return
        if s.history_cursor < len(s.message_history) - 1:
            s.message_history = s.message_history[: s.history_cursor + 1]
        s.message_history.append({"message": clone_message(message), "duration_ms": max(1, round(duration_ms))})
        s.history_cursor = len(s.message_history) - 1

    def _update_current_history_duration(self, duration_ms: int) -> None:
        s = self._session
        if 0 <= s.history_cursor < len(s.message_history):
            s.message_history[s.history_cursor]["duration_ms"] = max(1, round(duration_ms))

    def _navigation_state(self, settings: dict) -> dict:
        s = self._session
        has_future = 0 <= s.history_cursor < len(s.message_history) - 1
        return {
            "has_previous": s.history_cursor > 0,
            "has_next": has_future or len(settings.get("break_messages") or []) > 1,
        }

    def _switch_result(self, duration_ms: int, settings: dict) -> dict:
        result = {"message": clone_message(self._session.current_message), "duration_ms": duration_ms}
        result.update(self._navigation_state(settings))
        return result

    def _broadcast_message_update(self, settings: dict) -> None:
        payload = {"message": clone_message(self._session.current_message)}
        payload.update(self._navigation_state(settings))
        self._emit(BREAK_MESSAGE_UPDATE, payload)

    def _apply_history_entry(self, entry: dict, settings: dict) -> dict:
        s = self._session
        s.current_message = clone_message(entry["message"])
        duration = max(1, round(entry["duration_ms"]))
        s.total_duration_ms = duration
        s.remaining_ms = duration

        if s.is_paused:
            s.end_timestamp = None
            self._emit(BREAK_PAUSE, {"remaining_ms": duration, "total_duration_ms": duration})
        else:
            s.end_timestamp = self._now_ms() + duration
            self._emit(BREAK_START, {"end_timestamp": s.end_timestamp, "total_duration_ms": duration})

        self._broadcast_message_update(settings)
        return self._switch_result(duration, settings)

    def _fallback_result(self, settings: dict) -> dict:
        s = self._session
        duration = s.total_duration_ms or resolve_duration_ms(settings, s.current_message)
        return self._switch_result(duration, settings)

    def next_message(self) -> dict:
        with self._critical():
            settings = self._settings()
            s = self._session
            if not s.is_active:
                self._logger.warning("Ignoring next_message because no break is active")
                return self._fallback_result(settings)

            if s.history_cursor + 1 < len(s.message_history):
                s.history_cursor += 1
                return self._apply_history_entry(s.message_history[s.history_cursor], settings)

            selection = self._select_message(settings)
            generation = s.generation

        if selection.rotation is not None:
            self._persist_rotation(selection.rotation)

        with self._critical():
            settings = self._settings()
            s = self._session
            if not s.is_active or s.generation != generation:
                self._logger.warning("Break ended while selecting the next message, discarding it")
                return self._fallback_result(settings)

            message = clone_message(selection.message)
            self._record_history(message, resolve_duration_ms(settings, message))
            return self._apply_history_entry(s.message_history[s.history_cursor], settings)

    def previous_message(self) -> dict:
        with self._critical():
            settings = self._settings()
            s = self._session
            if not s.is_active:
                self._logger.warning("Ignoring previous_message because no break is active")
                return self._fallback_result(settings)
            if s.history_cursor <= 0:
                self._logger.warning("Ignoring previous_message because no previous message is available")
                return self._fallback_result(settings)

            s.history_cursor -= 1
            return self._apply_history_entry(s.message_history[s.history_cursor], settings)

    def get_current_message(self) -> dict:
        with self._critical():
            return self._fallback_result(self._settings())
