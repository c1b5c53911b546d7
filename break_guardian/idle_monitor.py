import ctypes
import ctypes.util
import platform
import subprocess
from typing import Callable

import psutil

STATE_ACTIVE = "active"
STATE_IDLE = "idle"
STATE_LOCKED = "locked"
STATE_UNKNOWN = "unknown"

IS_WIN = platform.system() == "Windows"
IS_MAC = platform.system() == "Darwin"

# Processes that only run while the session is locked
LOCK_SCREEN_PROCESSES = {
    "logonui.exe",
    "screensaverengine",
    "loginwindow-lock",
    "i3lock",
    "swaylock",
    "hyprlock",
    "xsecurelock",
    "slock",
    "light-locker",
    "gnome-screensaver-dialog",
    "kscreenlocker_greet",
    "xscreensaver-auth",
}


class _LastInputInfo(ctypes.Structure):
    _fields_ = [("cbSize", ctypes.c_uint), ("dwTime", ctypes.c_uint)]


def _win_idle_seconds() -> float | None:
    user32 = ctypes.windll.user32
    kernel32 = ctypes.windll.kernel32
    lii = _LastInputInfo()
    lii.cbSize = ctypes.sizeof(_LastInputInfo)
    if not user32.GetLastInputInfo(ctypes.byref(lii)):
        return None
    return (kernel32.GetTickCount() - lii.dwTime) / 1000.0


def _mac_idle_seconds() -> float | None:
    lib = ctypes.util.find_library("CoreGraphics")
    if not lib:
        return None
    cg = ctypes.cdll.LoadLibrary(lib)
    fn = cg.CGEventSourceSecondsSinceLastEventType
    fn.restype = ctypes.c_double
    fn.argtypes = [ctypes.c_int32, ctypes.c_uint32]
    # combined session state, any input event
    return float(fn(0, 0xFFFFFFFF))


def _linux_idle_seconds() -> float | None:
    try:
        result = subprocess.run(["xprintidle"], capture_output=True, text=True, timeout=2)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    try:
        return int(result.stdout.strip()) / 1000.0
    except ValueError:
        return None


def query_idle_seconds() -> float | None:
    """Seconds since the last keyboard/mouse input, or None if unavailable."""
    try:
        if IS_WIN:
            return _win_idle_seconds()
        if IS_MAC:
            return _mac_idle_seconds()
        return _linux_idle_seconds()
    except Exception:
        return None


def is_session_locked() -> bool:
    for proc in psutil.process_iter(["name"]):
        try:
            name = (proc.info.get("name") or "").lower()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        if name in LOCK_SCREEN_PROCESSES:
            return True
    return False


class IdleMonitor:
    def __init__(
        self,
        idle_seconds_fn: Callable[[], float | None] = query_idle_seconds,
        locked_fn: Callable[[], bool] = is_session_locked,
    ):
        self._idle_seconds_fn = idle_seconds_fn
        self._locked_fn = locked_fn

    def _locked(self) -> bool:
        try:
            return bool(self._locked_fn())
        except Exception:
            return False

    def get_idle_time(self) -> float:
        seconds = self._idle_seconds_fn()
        if seconds is None or seconds < 0:
            return 0.0
        return float(seconds)

    def get_idle_state(self, threshold_seconds: float) -> str:
        if self._locked():
            return STATE_LOCKED
        seconds = self._idle_seconds_fn()
        if seconds is None:
            return STATE_UNKNOWN
        return STATE_IDLE if seconds >= threshold_seconds else STATE_ACTIVE
