import copy
import random
import secrets
from typing import NamedTuple

from .config import MAX_ATTACHMENT_BYTES
from .rotation import generate_order, sanitize_order
from .utils import to_finite_number

MODE_RANDOM = "RANDOM"
MODE_SEQUENTIAL = "SEQUENTIAL"


class Selection(NamedTuple):
    message: dict
    # None when nothing needs persisting (random mode, fallback message)
    rotation: dict | None = None


def _estimate_data_url_bytes(data_url: str) -> int:
    comma = data_url.find(",")
    if comma == -1:
        return 0
    payload = data_url[comma + 1:]
    if not payload:
        return 0
    padding = 2 if payload.endswith("==") else 1 if payload.endswith("=") else 0
    return max(0, (len(payload) * 3) // 4 - padding)


def _sanitize_attachment(attachment) -> dict | None:
    if not isinstance(attachment, dict):
        return None

    uri = attachment.get("uri") if isinstance(attachment.get("uri"), str) else None
    data_url = attachment.get("data_url") if isinstance(attachment.get("data_url"), str) else None
    if not uri and not data_url:
        return None

    size = attachment.get("size_bytes")
    if isinstance(size, (int, float)) and not isinstance(size, bool) and size >= 0:
        size = int(round(size))
    elif data_url:
        size = _estimate_data_url_bytes(data_url)
    else:
        size = None
    if size is not None and size > MAX_ATTACHMENT_BYTES:
        return None

    att_id = attachment.get("id")
    if not isinstance(att_id, str) or not att_id:
        att_id = "att-" + secrets.token_hex(4)

    cleaned = {"id": att_id, "type": "image", "uri": uri or None, "size_bytes": size}
    for key in ("mime_type", "name"):
        value = attachment.get(key)
        if isinstance(value, str) and value:
            cleaned[key] = value
    if data_url:
        cleaned["data_url"] = data_url
    return cleaned


def normalize_break_message(value) -> dict:
    if not value:
        return {"text": "", "attachments": []}
    if isinstance(value, str):
        return {"text": value, "attachments": []}
    if not isinstance(value, dict):
        return {"text": "", "attachments": []}

    text = ""
    for key in ("text", "message", "value"):
        if isinstance(value.get(key), str):
            text = value[key]
            break

    attachments = []
    for att in value.get("attachments") or []:
        cleaned = _sanitize_attachment(att)
        if cleaned is not None:
            attachments.append(cleaned)

    message = {"text": text, "attachments": attachments}
    duration = to_finite_number(value.get("duration_seconds"))
    if duration > 0:
        message["duration_seconds"] = duration
    return message


def normalize_break_messages(values) -> list[dict]:
    if not isinstance(values, list):
        return []
    return [normalize_break_message(v) for v in values]


def clone_message(message: dict | None) -> dict | None:
    if message is None:
        return None
    return copy.deepcopy(message)


def select_next(
    pool: list[dict],
    mode: str,
    next_index,
    order,
    fallback,
    rng=random,
) -> Selection:
    """Pick the message for the next break (or the next one within a break).

    Sequential mode walks a shuffled permutation of the pool and hands back
    the advanced cursor and order; the caller decides how to persist them.
    """
    if not pool:
        return Selection(normalize_break_message(fallback))

    n = len(pool)
    if mode != MODE_SEQUENTIAL:
        return Selection(pool[rng.randrange(n)])

    raw = to_finite_number(next_index)
    cursor = int(raw) % n if raw == int(raw) else 0

    current_order = sanitize_order(order, n)
    if current_order is None:
        current_order = generate_order(n, rng)

    message = pool[current_order[cursor]]

    cursor += 1
    if cursor >= n:
        cursor = 0
        current_order = generate_order(n, rng)

    return Selection(message, {"next_index": cursor, "order": current_order})


def resolve_duration_ms(settings: dict, message: dict | None) -> int:
    fallback = to_finite_number(settings.get("break_length_seconds"))
    fallback_sec = max(1, round(fallback))

    if message:
        override = to_finite_number(message.get("duration_seconds"))
        if override > 0:
            return max(1, round(override)) * 1000

    return fallback_sec * 1000
