import pytest

from break_guardian import ipc
from break_guardian.broadcast import BREAK_END, SOUND_START_PLAY


@pytest.fixture
def break_ipc(scheduler, store, broadcaster):
    store.set_reset_handler(scheduler.init_breaks)
    return ipc.BreakIpc(scheduler, store, broadcaster)


def test_unknown_channel(break_ipc):
    with pytest.raises(KeyError):
        break_ipc.handle("break-explode")


def test_all_inbound_channels_registered(break_ipc):
    expected = {
        ipc.ALLOW_POSTPONE_GET,
        ipc.BREAK_POSTPONE,
        ipc.BREAK_START,
        ipc.BREAK_PAUSE,
        ipc.BREAK_RESUME,
        ipc.BREAK_ADJUST_DURATION,
        ipc.BREAK_END_REQUEST,
        ipc.CURRENT_BREAK_MESSAGE_GET,
        ipc.BREAK_MESSAGE_NEXT,
        ipc.BREAK_MESSAGE_PREVIOUS,
        ipc.TIME_SINCE_LAST_BREAK_GET,
        ipc.BREAK_TRACKING_COMPLETE,
        ipc.WAS_STARTED_FROM_TRAY_GET,
        ipc.BREAK_LENGTH_GET,
        ipc.SETTINGS_GET,
        ipc.SETTINGS_SET,
    }
    assert expected <= set(break_ipc.channels())


def test_countdown_controls(break_ipc, scheduler, clock):
    assert break_ipc.handle(ipc.BREAK_START) is None

    scheduler.start_break_now()
    started = break_ipc.handle(ipc.BREAK_START)
    assert started["total_duration_ms"] == 120_000

    clock.advance(20)
    paused = break_ipc.handle(ipc.BREAK_PAUSE)
    assert paused["remaining_ms"] == 100_000

    adjusted = break_ipc.handle(ipc.BREAK_ADJUST_DURATION, 60_000)
    assert adjusted == {"remaining_ms": 160_000, "total_duration_ms": 180_000}

    resumed = break_ipc.handle(ipc.BREAK_RESUME)
    assert resumed["end_timestamp"] == int(clock.now * 1000) + 160_000
    assert break_ipc.handle(ipc.BREAK_LENGTH_GET) == 120
    assert break_ipc.handle(ipc.WAS_STARTED_FROM_TRAY_GET) is True


def test_postpone_defaults_to_snooze(break_ipc, scheduler, configure, clock):
    configure(postpone_length_seconds=240)
    scheduler.start_break_now()
    assert break_ipc.handle(ipc.ALLOW_POSTPONE_GET) is True
    assert break_ipc.handle(ipc.BREAK_POSTPONE) is True
    assert scheduler.get_scheduled_at() == clock.now + 240


def test_end_without_break_still_closes_windows(break_ipc, listener):
    break_ipc.handle(ipc.BREAK_END_REQUEST)
    assert listener.channels().count(BREAK_END) == 1


def test_end_active_break(break_ipc, scheduler, listener):
    scheduler.start_break_now()
    break_ipc.handle(ipc.BREAK_TRACKING_COMPLETE, 120_000)
    break_ipc.handle(ipc.BREAK_END_REQUEST)
    assert not scheduler.is_having_break()
    assert listener.channels().count(BREAK_END) == 1
    assert break_ipc.handle(ipc.TIME_SINCE_LAST_BREAK_GET) is None


def test_settings_set_resets_schedule(break_ipc, scheduler, clock):
    settings = break_ipc.handle(ipc.SETTINGS_GET)
    settings["break_frequency_seconds"] = 600
    break_ipc.handle(ipc.SETTINGS_SET, settings)
    assert scheduler.get_scheduled_at() == clock.now + 600


def test_message_navigation_channels(break_ipc, scheduler):
    scheduler.start_break_now()
    current = break_ipc.handle(ipc.CURRENT_BREAK_MESSAGE_GET)
    assert current["duration_ms"] == 120_000
    # single-message pool: nothing to move to
    assert break_ipc.handle(ipc.BREAK_MESSAGE_PREVIOUS)["has_previous"] is False
    assert break_ipc.handle(ipc.BREAK_MESSAGE_NEXT)["has_next"] is False


def test_sound_relay(break_ipc, listener):
    break_ipc.handle(SOUND_START_PLAY, "GONG", 0.3)
    assert listener.last(SOUND_START_PLAY) == {"type": "GONG", "volume": 0.3}
