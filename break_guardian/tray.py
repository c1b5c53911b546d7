import datetime
import logging
import threading
from typing import Callable

import pystray
from PIL import Image, ImageDraw

from .broadcast import BREAK_END, BREAK_SCHEDULED, BREAK_START
from .logging_setup import get_logger


class TrayController:
    """Tray icon and menu; also the desktop notification surface."""

    def __init__(
        self,
        title: str,
        on_start_break: Callable[[], None],
        on_toggle_breaks: Callable[[bool], None],
        is_breaks_enabled: Callable[[], bool],
        on_quit: Callable[[], None],
        logger: logging.Logger | None = None,
    ):
        self._title = title
        self._on_start_break = on_start_break
        self._on_toggle_breaks = on_toggle_breaks
        self._is_breaks_enabled = is_breaks_enabled
        self._on_quit = on_quit
        self._logger = logger or get_logger()

        self._icon = None
        self._thread = None
        self._running = False
        self._in_break = False

    def _make_icon_image(self, in_break: bool = False) -> Image.Image:
        img = Image.new("RGBA", (64, 64), color=(0, 0, 0, 0))
        draw = ImageDraw.Draw(img)
        fill = (230, 126, 34) if in_break else (22, 160, 133)
        draw.ellipse((6, 6, 58, 58), fill=fill)
        draw.rectangle((30, 16, 34, 34), fill=(245, 245, 245))
        draw.rectangle((30, 30, 46, 34), fill=(245, 245, 245))
        return img

    def ensure_running(self) -> None:
        if self._icon is not None and self._running:
            return

        def on_start_break(icon, item):
            self._on_start_break()

        def on_toggle_breaks(icon, item):
            self._on_toggle_breaks(not self._is_breaks_enabled())

        def on_quit(icon, item):
            self._on_quit()

        menu = pystray.Menu(
            pystray.MenuItem("Start break now", on_start_break),
            pystray.MenuItem(
                "Breaks enabled",
                on_toggle_breaks,
                checked=lambda item: self._is_breaks_enabled(),
            ),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Quit", on_quit),
        )

        self._icon = pystray.Icon("BreakGuardian", self._make_icon_image(), self._title, menu)

        def run_icon():
            self._running = True
            try:
                self._icon.run()
            finally:
                self._running = False

        self._thread = threading.Thread(target=run_icon, daemon=True)
        self._thread.start()

    def __call__(self, channel: str, payload: dict) -> None:
        if self._icon is None:
            return
        if channel == BREAK_SCHEDULED:
            scheduled_at = payload.get("scheduled_at")
            if scheduled_at is None:
                self._icon.title = f"{self._title} (no break scheduled)"
            else:
                when = datetime.datetime.fromtimestamp(scheduled_at).strftime("%H:%M")
                self._icon.title = f"{self._title} (next break at {when})"
        elif channel in (BREAK_START, BREAK_END):
            in_break = channel == BREAK_START
            if in_break != self._in_break:
                self._in_break = in_break
                self._icon.icon = self._make_icon_image(in_break)
        self._icon.update_menu()

    def notify(self, title: str, body: str) -> None:
        if self._icon is None or not self._running:
            self._logger.warning(f"Tray not running, dropping notification [title={title}]")
            return
        try:
            self._icon.notify(body, title)
        except Exception:
            self._logger.exception("Notification failed")

    def stop(self) -> None:
        if self._icon is None:
            return
        try:
            self._icon.stop()
        except Exception:
            self._logger.exception("Tray stop failed")
