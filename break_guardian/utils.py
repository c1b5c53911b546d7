import os
import re
import time


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def seconds_to_hhmmss(seconds: float) -> str:
    seconds = max(0, int(round(seconds)))
    m, s = divmod(seconds, 60)
    h, m = divmod(m, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def seconds_to_mmss(seconds: float) -> str:
    seconds = max(0, int(seconds))
    m, s = divmod(seconds, 60)
    return f"{m:02d}:{s:02d}"


def strip_html(html: str) -> str:
    text = re.sub(r"<br\s*/?>", " ", html or "", flags=re.IGNORECASE)
    return re.sub(r"<[^>]*>", "", text).strip()


def to_finite_number(value, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value != value or value in (float("inf"), float("-inf")):
        return default
    return float(value)


class RestTimer:
    """Time a break countdown actually ran, paused stretches left out."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self.reset()

    def reset(self) -> None:
        self._rested = 0.0
        self._since: float | None = None

    def run(self) -> None:
        if self._since is None:
            self._since = self._clock()

    def pause(self) -> None:
        if self._since is not None:
            self._rested += self._clock() - self._since
            self._since = None

    def elapsed_ms(self) -> int:
        running = self._clock() - self._since if self._since is not None else 0.0
        return int((self._rested + running) * 1000)
