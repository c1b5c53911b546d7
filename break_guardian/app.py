import argparse
import customtkinter as ctk

from .config import (
    APP_TITLE,
    APPDATA_DIR,
    SETTINGS_FILE,
    TEST_BREAK_FREQUENCY_SEC,
    TEST_BREAK_LENGTH_SEC,
    TEST_POSTPONE_LENGTH_SEC,
)
from .utils import ensure_dir
from .logging_setup import setup_logger
from .audio import SoundPlayer
from .breaks import BreakScheduler
from .broadcast import Broadcaster
from .idle_monitor import IdleMonitor
from .ipc import BreakIpc
from .settings_store import SettingsStore
from .tray import TrayController
from .windows import BreakWindows


ctk.set_appearance_mode("Dark")
ctk.set_default_color_theme("blue")


class BreakGuardianApp:
    def __init__(self, test_mode: bool = False):
        ensure_dir(APPDATA_DIR)

        self.logger = setup_logger()
        self.logger.info(f"App start [test_mode={test_mode}]")

        self.store = SettingsStore(SETTINGS_FILE, self.logger)
        self.store.load()
        if test_mode:
            self.store.set_overrides(
                {
                    "break_frequency_seconds": TEST_BREAK_FREQUENCY_SEC,
                    "break_length_seconds": TEST_BREAK_LENGTH_SEC,
                    "postpone_length_seconds": TEST_POSTPONE_LENGTH_SEC,
                }
            )
        if not self.store.get_app_initialized():
            self.logger.info("First run, settings initialized with defaults")
            self.store.set_app_initialized()

        # Hidden root; break popups are its toplevels
        self.root = ctk.CTk()
        self.root.title(APP_TITLE)
        self.root.withdraw()

        self.broadcaster = Broadcaster(self.logger)

        self.tray = TrayController(
            title=APP_TITLE,
            on_start_break=self.start_break_now,
            on_toggle_breaks=self.set_breaks_enabled,
            is_breaks_enabled=lambda: bool(self.store.get_settings().get("breaks_enabled")),
            on_quit=self.quit_app,
            logger=self.logger,
        )
        self.sound = SoundPlayer(self.logger)

        self.scheduler = BreakScheduler(
            self.store,
            IdleMonitor(),
            self.broadcaster,
            notifier=self.tray,
            logger=self.logger,
        )
        self.ipc = BreakIpc(self.scheduler, self.store, self.broadcaster, self.logger)
        self.windows = BreakWindows(self.root, self.ipc, self.store, self.logger)
        self.scheduler.set_presenter(self.windows)

        self.broadcaster.subscribe(self.tray)
        self.broadcaster.subscribe(self.sound)
        self.broadcaster.subscribe(self.windows)
        self.store.set_reset_handler(self.scheduler.init_breaks)

    # Tray
    def start_break_now(self) -> None:
        self.logger.info("Start break requested from tray")
        self.scheduler.start_break_now()

    def set_breaks_enabled(self, enabled: bool) -> None:
        self.logger.info(f"Breaks toggled from tray [enabled={enabled}]")
        try:
            self.store.set_breaks_enabled(enabled)
        except Exception:
            self.logger.exception("Failed to save breaks_enabled")
            return
        self.scheduler.init_breaks()

    def quit_app(self) -> None:
        self.logger.info("Quit requested")
        self.scheduler.stop()
        self.store.save()

        def _do():
            try:
                self.tray.stop()
                self.root.destroy()
            except Exception:
                self.logger.exception("Shutdown failed")

        self.root.after(0, _do)

    def run(self) -> None:
        self.scheduler.init_breaks()
        self.scheduler.start()
        self.tray.ensure_running()
        self.root.mainloop()
        self.logger.info("App stopped")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description=f"{APP_TITLE} break reminder")
    parser.add_argument("--test", action="store_true", help="Use short intervals for testing")
    args = parser.parse_args(argv)

    BreakGuardianApp(test_mode=args.test).run()
