import random

import pytest

from break_guardian.breaks import BreakScheduler
from break_guardian.broadcast import Broadcaster
from break_guardian.idle_monitor import STATE_ACTIVE, STATE_IDLE, STATE_LOCKED
from break_guardian.settings import SOUND_NONE
from break_guardian.settings_store import SettingsStore

T0 = 1_700_000_000.0


class FakeClock:
    def __init__(self, start: float = T0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class FakeIdleMonitor:
    def __init__(self):
        self.idle_seconds = 0.0
        self.locked = False

    def get_idle_time(self) -> float:
        return self.idle_seconds

    def get_idle_state(self, threshold_seconds: float) -> str:
        if self.locked:
            return STATE_LOCKED
        return STATE_IDLE if self.idle_seconds >= threshold_seconds else STATE_ACTIVE


class RecordingNotifier:
    def __init__(self):
        self.notifications = []

    def notify(self, title, body):
        self.notifications.append((title, body))


class RecordingPresenter:
    def __init__(self):
        self.calls = 0

    def create_break_windows(self):
        self.calls += 1


class RecordingListener:
    def __init__(self):
        self.events = []

    def __call__(self, channel, payload):
        self.events.append((channel, payload))

    def channels(self):
        return [c for c, _ in self.events]

    def last(self, channel):
        for c, payload in reversed(self.events):
            if c == channel:
                return payload
        return None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def idle():
    return FakeIdleMonitor()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def broadcaster(listener):
    b = Broadcaster()
    b.subscribe(listener)
    return b


@pytest.fixture
def store(tmp_path):
    s = SettingsStore(str(tmp_path / "settings.json"))
    s.load()
    return s


@pytest.fixture
def configure(store):
    """Write settings without triggering a reset; working hours off, sound off."""

    def _configure(**overrides):
        settings = store.get_settings()
        settings["working_hours_enabled"] = False
        settings["sound_type"] = SOUND_NONE
        settings.update(overrides)
        store.set_settings(settings, reset_breaks=False)
        return store.get_settings()

    _configure()
    return _configure


@pytest.fixture
def scheduler(store, configure, idle, broadcaster, notifier, presenter, clock):
    return BreakScheduler(
        store,
        idle,
        broadcaster,
        notifier=notifier,
        presenter=presenter,
        clock=clock,
        rng=random.Random(1234),
    )
