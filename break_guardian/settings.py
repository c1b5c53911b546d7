import copy

from .messages import MODE_RANDOM, normalize_break_messages

NOTIFICATION_POPUP = "POPUP"
NOTIFICATION_SIMPLE = "NOTIFICATION"

SOUND_NONE = "NONE"
SOUND_GONG = "GONG"
SOUND_BLIP = "BLIP"
SOUND_BLOOP = "BLOOP"
SOUND_PING = "PING"
SOUND_SCIFI = "SCIFI"

DEFAULT_BREAK_MESSAGE = "Rest your eyes.\nStretch your legs.\nBreathe. Relax."

_DEFAULT_RANGE = {"from_minutes": 9 * 60, "to_minutes": 18 * 60}


def _workday(enabled: bool) -> dict:
    return {"enabled": enabled, "ranges": [dict(_DEFAULT_RANGE)]}


DEFAULT_SETTINGS: dict = {
    "breaks_enabled": True,
    "notification_type": NOTIFICATION_POPUP,
    "break_frequency_seconds": 28 * 60,
    "break_length_seconds": 2 * 60,
    "postpone_length_seconds": 3 * 60,
    "postpone_limit": 0,
    "working_hours_enabled": True,
    "working_hours_monday": _workday(True),
    "working_hours_tuesday": _workday(True),
    "working_hours_wednesday": _workday(True),
    "working_hours_thursday": _workday(True),
    "working_hours_friday": _workday(True),
    "working_hours_saturday": _workday(False),
    "working_hours_sunday": _workday(False),
    "idle_reset_enabled": True,
    "idle_reset_length_seconds": 5 * 60,
    "idle_reset_notification": False,
    "sound_type": SOUND_GONG,
    "break_sound_volume": 1.0,
    "break_title": "Time for a break.",
    "break_message": DEFAULT_BREAK_MESSAGE,
    "break_messages": [{"text": DEFAULT_BREAK_MESSAGE, "attachments": []}],
    "break_messages_mode": MODE_RANDOM,
    "break_messages_next_index": 0,
    "break_messages_order": [0],
    "end_break_enabled": True,
    "skip_break_enabled": False,
    "postpone_break_enabled": True,
    "immediately_start_breaks": False,
    "background_color": "#16a085",
    "text_color": "#ffffff",
}


def default_settings() -> dict:
    return copy.deepcopy(DEFAULT_SETTINGS)


# Migrations run in order on stored settings older than their version.

def _migrate_message_pool(settings: dict) -> dict:
    if not settings.get("break_messages"):
        legacy = settings.get("break_message")
        settings["break_messages"] = [legacy] if legacy else []
    return settings


def _migrate_rotation_defaults(settings: dict) -> dict:
    if not settings.get("break_messages_mode"):
        settings["break_messages_mode"] = MODE_RANDOM
    if not isinstance(settings.get("break_messages_next_index"), int):
        settings["break_messages_next_index"] = 0
    if not isinstance(settings.get("break_messages_order"), list):
        settings["break_messages_order"] = []
    return settings


def _migrate_normalize_messages(settings: dict) -> dict:
    messages = normalize_break_messages(settings.get("break_messages"))
    if not messages and isinstance(settings.get("break_message"), str) and settings["break_message"]:
        messages = normalize_break_messages([settings["break_message"]])
    settings["break_messages"] = messages
    return settings


MIGRATIONS = [
    (1, _migrate_message_pool),
    (2, _migrate_rotation_defaults),
    (3, _migrate_normalize_messages),
]

SETTINGS_VERSION = MIGRATIONS[-1][0]
