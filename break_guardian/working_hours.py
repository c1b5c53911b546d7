import datetime

DAY_KEYS = (
    "working_hours_monday",
    "working_hours_tuesday",
    "working_hours_wednesday",
    "working_hours_thursday",
    "working_hours_friday",
    "working_hours_saturday",
    "working_hours_sunday",
)

MINUTES_PER_DAY = 24 * 60


def day_key(now: datetime.datetime) -> str:
    return DAY_KEYS[now.weekday()]


def is_within_working_hours(now: datetime.datetime, settings: dict) -> bool:
    if not settings.get("working_hours_enabled"):
        return True

    today = settings.get(day_key(now)) or {}
    if not today.get("enabled"):
        return False

    current = now.hour * 60 + now.minute
    for r in today.get("ranges") or []:
        if r["from_minutes"] <= current <= r["to_minutes"]:
            return True
    return False


def ranges_overlap(ranges: list[dict]) -> bool:
    ordered = sorted(ranges, key=lambda r: (r["from_minutes"], r["to_minutes"]))
    for prev, cur in zip(ordered, ordered[1:]):
        if cur["from_minutes"] < prev["to_minutes"]:
            return True
    return False


def validate_working_hours(settings: dict) -> list[str]:
    """Return a list of human-readable problems; empty means acceptable."""
    problems: list[str] = []
    for key in DAY_KEYS:
        day = settings.get(key)
        if day is None:
            continue
        ranges = day.get("ranges") or []
        day_problems: list[str] = []
        for r in ranges:
            try:
                start = int(r["from_minutes"])
                end = int(r["to_minutes"])
            except (KeyError, TypeError, ValueError):
                day_problems.append(f"{key}: malformed range {r!r}")
                continue
            if not (0 <= start < MINUTES_PER_DAY and 0 <= end < MINUTES_PER_DAY):
                day_problems.append(f"{key}: range {start}-{end} outside the day")
            elif start > end:
                day_problems.append(f"{key}: range {start}-{end} ends before it starts")
        if not day_problems and ranges_overlap(ranges):
            day_problems.append(f"{key}: ranges overlap")
        problems.extend(day_problems)
    return problems
