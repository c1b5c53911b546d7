import logging
import threading
from typing import Callable

from .logging_setup import get_logger

BREAK_START = "break-start"
BREAK_PAUSE = "break-pause"
BREAK_END = "break-end"
BREAK_MESSAGE_UPDATE = "break-message-update"
BREAK_SCHEDULED = "break-scheduled"
SOUND_START_PLAY = "sound-start-play"
SOUND_END_PLAY = "sound-end-play"

Listener = Callable[[str, dict], None]


class Broadcaster:
    """Fans engine events out to every subscribed listener.

    Listeners are fire-and-forget: a failing listener is logged and the
    remaining ones still receive the event.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or get_logger()
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def send(self, channel: str, payload: dict | None = None) -> None:
        payload = payload or {}
        self._logger.info(f"Send event {channel} {payload}")
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(channel, payload)
            except Exception:
                self._logger.exception(f"Listener failed [channel={channel}]")
