import os
import copy
import json
import logging
import threading
from typing import Callable

from .logging_setup import get_logger
from .messages import normalize_break_messages
from .settings import MIGRATIONS, SETTINGS_VERSION, default_settings
from .utils import ensure_dir
from .working_hours import validate_working_hours


class SettingsError(ValueError):
    pass


class SettingsStore:
    def __init__(self, path: str, logger: logging.Logger | None = None):
        self._path = path
        self._logger = logger or get_logger()
        self._lock = threading.Lock()
        self._settings: dict = default_settings()
        self._version = SETTINGS_VERSION
        self._app_initialized = False
        self._on_reset: Callable[[], None] | None = None
        # session-only values layered over the stored settings, never written
        self._overrides: dict = {}

    def load(self) -> None:
        ensure_dir(os.path.dirname(self._path))
        if not os.path.exists(self._path):
            return
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except Exception:
            self._logger.exception("Settings load failed, using defaults")
            return
        if not isinstance(data, dict):
            self._logger.warning("Settings file has unexpected shape, using defaults")
            return

        stored = data.get("settings")
        version = data.get("settings_version", 0)
        with self._lock:
            self._settings = stored if isinstance(stored, dict) else default_settings()
            self._version = version if isinstance(version, int) else 0
            self._app_initialized = bool(data.get("app_initialized", False))
        self._migrate()

    def _migrate(self) -> None:
        with self._lock:
            pending = [(v, fn) for v, fn in MIGRATIONS if v > self._version]
            if not pending:
                return
            self._logger.info(f"Running settings migrations [from={self._version}] [to={pending[-1][0]}]")
            migrated = copy.deepcopy(self._settings)
            for version, fn in pending:
                try:
                    migrated = fn(migrated)
                except Exception:
                    self._logger.exception(f"Settings migration failed [version={version}]")
                    break
                self._version = version
            self._settings = migrated
        self.save()

    def _write(self) -> None:
        ensure_dir(os.path.dirname(self._path))
        with self._lock:
            data = {
                "settings": copy.deepcopy(self._settings),
                "settings_version": self._version,
                "app_initialized": self._app_initialized,
            }
        tmp_path = self._path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self._path)

    def save(self) -> None:
        try:
            self._write()
        except Exception:
            self._logger.exception("Settings save failed")

    def set_reset_handler(self, handler: Callable[[], None] | None) -> None:
        self._on_reset = handler

    def set_overrides(self, overrides: dict) -> None:
        with self._lock:
            self._overrides = copy.deepcopy(overrides)
        self._logger.info(f"Settings overrides active [keys={sorted(overrides)}]")

    def get_settings(self) -> dict:
        with self._lock:
            merged = default_settings()
            merged.update(copy.deepcopy(self._settings))
            merged.update(copy.deepcopy(self._overrides))
        merged["break_messages"] = normalize_break_messages(merged.get("break_messages"))
        return merged

    def set_settings(self, settings: dict, reset_breaks: bool = True) -> None:
        """Replace the stored settings.

        Raises SettingsError for invalid working hours and OSError when the
        file cannot be written. A resetting write also re-initializes the
        break schedule through the registered reset handler.
        """
        problems = validate_working_hours(settings)
        if problems:
            raise SettingsError("; ".join(problems))

        next_settings = copy.deepcopy(settings)
        next_settings["break_messages"] = normalize_break_messages(settings.get("break_messages"))
        with self._lock:
            for key in self._overrides:
                if key in self._settings:
                    next_settings[key] = copy.deepcopy(self._settings[key])
                else:
                    next_settings.pop(key, None)
            self._settings = next_settings
        self._write()

        if reset_breaks and self._on_reset is not None:
            self._on_reset()

    def set_breaks_enabled(self, enabled: bool) -> None:
        settings = self.get_settings()
        settings["breaks_enabled"] = bool(enabled)
        self.set_settings(settings, reset_breaks=False)

    def get_app_initialized(self) -> bool:
        with self._lock:
            return self._app_initialized

    def set_app_initialized(self) -> None:
        with self._lock:
            self._app_initialized = True
        self.save()
