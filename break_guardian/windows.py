import time
import logging

import customtkinter as ctk

from . import ipc as channels
from .broadcast import BREAK_END, BREAK_MESSAGE_UPDATE, BREAK_PAUSE, BREAK_START
from .logging_setup import get_logger
from .utils import RestTimer, seconds_to_mmss, strip_html

ADJUST_STEP_MS = 60_000
REFRESH_MS = 250


class BreakWindows:
    """Break popup. Talks to the scheduler only through BreakIpc."""

    def __init__(self, root, break_ipc, settings_store, logger: logging.Logger | None = None):
        self.root = root
        self._ipc = break_ipc
        self._store = settings_store
        self._logger = logger or get_logger()

        self._win = None
        self._end_timestamp = None
        self._remaining_ms = None
        self._total_ms = 0
        self._rest = RestTimer()
        self._refresh_job = None

    # Presentation collaborator
    def create_break_windows(self) -> None:
        self.root.after(0, self._open)

    # Broadcast listener
    def __call__(self, channel: str, payload: dict) -> None:
        if channel == BREAK_START:
            self.root.after(0, lambda: self._on_running(payload))
        elif channel == BREAK_PAUSE:
            self.root.after(0, lambda: self._on_paused(payload))
        elif channel == BREAK_MESSAGE_UPDATE:
            self.root.after(0, lambda: self._show_message(payload.get("message"), payload))
        elif channel == BREAK_END:
            self.root.after(0, self._close)

    def _open(self) -> None:
        if self._win is not None:
            return
        settings = self._store.get_settings()
        bg = settings.get("background_color", "#16a085")
        fg = settings.get("text_color", "#ffffff")

        self._win = ctk.CTkToplevel(self.root, fg_color=bg)
        self._win.title(settings.get("break_title", "Break"))
        self._win.geometry("520x340")
        self._win.attributes("-topmost", True)
        self._win.protocol("WM_DELETE_WINDOW", self._on_end)

        ctk.CTkLabel(
            self._win, text=settings.get("break_title", ""), text_color=fg, font=("Roboto", 24, "bold")
        ).pack(pady=(18, 6))
        self.message_label = ctk.CTkLabel(self._win, text="", text_color=fg, wraplength=460, justify="center")
        self.message_label.pack(padx=18, pady=6)
        self.countdown_label = ctk.CTkLabel(self._win, text="", text_color=fg, font=("Roboto", 30, "bold"))
        self.countdown_label.pack(pady=6)

        nav = ctk.CTkFrame(self._win, fg_color="transparent")
        nav.pack(pady=4)
        self.prev_btn = ctk.CTkButton(nav, text="< Previous", width=90, command=self._on_previous)
        self.prev_btn.grid(row=0, column=0, padx=4)
        ctk.CTkButton(nav, text="-1 min", width=70, command=lambda: self._on_adjust(-ADJUST_STEP_MS)).grid(
            row=0, column=1, padx=4
        )
        self.pause_btn = ctk.CTkButton(
            nav, text="Pause" if self._end_timestamp is not None else "Start", width=90, command=self._on_pause_toggle
        )
        self.pause_btn.grid(row=0, column=2, padx=4)
        ctk.CTkButton(nav, text="+1 min", width=70, command=lambda: self._on_adjust(ADJUST_STEP_MS)).grid(
            row=0, column=3, padx=4
        )
        self.next_btn = ctk.CTkButton(nav, text="Next >", width=90, command=self._on_next)
        self.next_btn.grid(row=0, column=4, padx=4)

        actions = ctk.CTkFrame(self._win, fg_color="transparent")
        actions.pack(pady=(8, 14))
        col = 0
        if settings.get("postpone_break_enabled") and self._ipc.handle(channels.ALLOW_POSTPONE_GET):
            ctk.CTkButton(actions, text="Snooze", width=100, command=lambda: self._on_postpone("snoozed")).grid(
                row=0, column=col, padx=6
            )
            col += 1
        if settings.get("skip_break_enabled"):
            ctk.CTkButton(actions, text="Skip", width=100, command=lambda: self._on_postpone("skipped")).grid(
                row=0, column=col, padx=6
            )
            col += 1
        if settings.get("end_break_enabled"):
            ctk.CTkButton(actions, text="End break", width=100, command=self._on_end).grid(row=0, column=col, padx=6)

        snapshot = self._ipc.handle(channels.CURRENT_BREAK_MESSAGE_GET)
        self._total_ms = snapshot.get("duration_ms", 0)
        self._remaining_ms = self._total_ms
        self._show_message(snapshot.get("message"), snapshot)
        self._refresh()

    def _close(self) -> None:
        if self._win is None:
            return
        if self._refresh_job is not None:
            self.root.after_cancel(self._refresh_job)
            self._refresh_job = None
        try:
            self._win.destroy()
        except Exception:
            self._logger.exception("Break window destroy failed")
        self._win = None
        self._end_timestamp = None
        self._remaining_ms = None
        self._rest.reset()

    def _show_message(self, message, nav: dict | None = None) -> None:
        if self._win is None:
            return
        text = strip_html((message or {}).get("text", ""))
        self.message_label.configure(text=text)
        if nav is not None:
            self._apply_nav(nav)

    def _apply_nav(self, nav: dict) -> None:
        self.prev_btn.configure(state="normal" if nav.get("has_previous") else "disabled")
        self.next_btn.configure(state="normal" if nav.get("has_next") else "disabled")

    def _on_running(self, payload: dict) -> None:
        self._end_timestamp = payload.get("end_timestamp")
        self._rest.run()
        self._total_ms = payload.get("total_duration_ms", self._total_ms)
        if self._win is not None:
            self.pause_btn.configure(text="Pause")

    def _on_paused(self, payload: dict) -> None:
        self._end_timestamp = None
        self._rest.pause()
        self._remaining_ms = payload.get("remaining_ms")
        self._total_ms = payload.get("total_duration_ms", self._total_ms)
        if self._win is not None:
            self.pause_btn.configure(text="Resume")

    def _refresh(self) -> None:
        if self._win is None:
            return
        if self._end_timestamp is not None:
            remaining_ms = max(0, self._end_timestamp - int(time.time() * 1000))
        else:
            remaining_ms = self._remaining_ms or 0
        self.countdown_label.configure(text=seconds_to_mmss(remaining_ms / 1000))
        self._refresh_job = self.root.after(REFRESH_MS, self._refresh)

    def _on_pause_toggle(self) -> None:
        if self._end_timestamp is None and self.pause_btn.cget("text") == "Start":
            self._ipc.handle(channels.BREAK_START)
        elif self._end_timestamp is None:
            self._ipc.handle(channels.BREAK_RESUME)
        else:
            self._ipc.handle(channels.BREAK_PAUSE)

    def _on_adjust(self, delta_ms: int) -> None:
        self._ipc.handle(channels.BREAK_ADJUST_DURATION, delta_ms)

    def _on_next(self) -> None:
        self._apply_nav(self._ipc.handle(channels.BREAK_MESSAGE_NEXT))

    def _on_previous(self) -> None:
        self._apply_nav(self._ipc.handle(channels.BREAK_MESSAGE_PREVIOUS))

    def _on_postpone(self, action: str) -> None:
        self._ipc.handle(channels.BREAK_POSTPONE, action)
        self._close()

    def _on_end(self) -> None:
        self._ipc.handle(channels.BREAK_TRACKING_COMPLETE, self._rest.elapsed_ms())
        self._ipc.handle(channels.BREAK_END_REQUEST)
        self._close()
