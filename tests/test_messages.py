import random

from break_guardian.config import MAX_ATTACHMENT_BYTES
from break_guardian.messages import (
    MODE_RANDOM,
    MODE_SEQUENTIAL,
    normalize_break_message,
    normalize_break_messages,
    resolve_duration_ms,
    select_next,
)

POOL = [
    {"text": "a", "attachments": []},
    {"text": "b", "attachments": []},
    {"text": "c", "attachments": []},
]


def run_sequential(calls: int, rng: random.Random):
    next_index, order = 0, []
    picked = []
    last = None
    for _ in range(calls):
        last = select_next(POOL, MODE_SEQUENTIAL, next_index, order, "fallback", rng)
        picked.append(last.message["text"])
        next_index = last.rotation["next_index"]
        order = last.rotation["order"]
    return picked, last


class TestSequential:
    def test_seven_calls_span_three_cycles(self):
        picked, last = run_sequential(7, random.Random(3))
        assert sorted(picked[0:3]) == ["a", "b", "c"]
        assert sorted(picked[3:6]) == ["a", "b", "c"]
        assert picked[6] in ("a", "b", "c")
        assert last.rotation["next_index"] == 1

    def test_every_cycle_visits_each_message_once(self):
        picked, _ = run_sequential(30, random.Random(11))
        for start in range(0, 30, 3):
            assert sorted(picked[start:start + 3]) == ["a", "b", "c"]

    def test_uses_stored_order(self):
        sel = select_next(POOL, MODE_SEQUENTIAL, 1, [2, 0, 1], "fallback", random.Random(0))
        assert sel.message["text"] == "a"
        assert sel.rotation == {"next_index": 2, "order": [2, 0, 1]}

    def test_index_wraps_modulo_pool(self):
        sel = select_next(POOL, MODE_SEQUENTIAL, 5, [2, 0, 1], "fallback", random.Random(0))
        assert sel.message["text"] == "b"

    def test_non_integral_index_restarts(self):
        sel = select_next(POOL, MODE_SEQUENTIAL, 1.5, [2, 0, 1], "fallback", random.Random(0))
        assert sel.message["text"] == "c"
        assert sel.rotation["next_index"] == 1

    def test_invalid_order_regenerated(self):
        sel = select_next(POOL, MODE_SEQUENTIAL, 0, [0, 0, 7], "fallback", random.Random(0))
        assert sorted(sel.rotation["order"]) == [0, 1, 2]


class TestRandomAndFallback:
    def test_random_mode_has_no_rotation(self):
        sel = select_next(POOL, MODE_RANDOM, 0, [], "fallback", random.Random(0))
        assert sel.message in POOL
        assert sel.rotation is None

    def test_unknown_mode_behaves_as_random(self):
        sel = select_next(POOL, "SHUFFLE", 0, [], "fallback", random.Random(0))
        assert sel.rotation is None

    def test_empty_pool_uses_fallback(self):
        sel = select_next([], MODE_SEQUENTIAL, 0, [], "Stretch!", random.Random(0))
        assert sel.message == {"text": "Stretch!", "attachments": []}
        assert sel.rotation is None


class TestNormalize:
    def test_string(self):
        assert normalize_break_message("hi") == {"text": "hi", "attachments": []}

    def test_empty_values(self):
        assert normalize_break_message(None) == {"text": "", "attachments": []}
        assert normalize_break_message(42) == {"text": "", "attachments": []}

    def test_legacy_keys(self):
        assert normalize_break_message({"message": "old"})["text"] == "old"
        assert normalize_break_message({"value": "older"})["text"] == "older"

    def test_duration_kept_only_when_positive(self):
        assert normalize_break_message({"text": "x", "duration_seconds": 30})["duration_seconds"] == 30
        assert "duration_seconds" not in normalize_break_message({"text": "x", "duration_seconds": 0})
        assert "duration_seconds" not in normalize_break_message({"text": "x", "duration_seconds": float("nan")})

    def test_attachments_sanitized(self):
        message = normalize_break_message(
            {
                "text": "x",
                "attachments": [
                    {"uri": "file:///tmp/a.png", "mime_type": "image/png"},
                    {"name": "no source"},
                    {"uri": "file:///tmp/big.png", "size_bytes": MAX_ATTACHMENT_BYTES + 1},
                    "not a dict",
                ],
            }
        )
        assert len(message["attachments"]) == 1
        att = message["attachments"][0]
        assert att["id"].startswith("att-")
        assert att["uri"] == "file:///tmp/a.png"
        assert att["mime_type"] == "image/png"

    def test_data_url_size_estimated(self):
        message = normalize_break_message({"attachments": [{"data_url": "data:image/png;base64,AAAA"}]})
        assert message["attachments"][0]["size_bytes"] == 3

    def test_normalize_list(self):
        assert normalize_break_messages("nope") == []
        assert [m["text"] for m in normalize_break_messages(["a", {"text": "b"}])] == ["a", "b"]


class TestResolveDuration:
    def test_message_override(self):
        assert resolve_duration_ms({"break_length_seconds": 120}, {"text": "x", "duration_seconds": 45.4}) == 45000

    def test_global_length(self):
        assert resolve_duration_ms({"break_length_seconds": 120}, {"text": "x"}) == 120000

    def test_floor_one_second(self):
        assert resolve_duration_ms({"break_length_seconds": 0}, None) == 1000
        assert resolve_duration_ms({"break_length_seconds": "bad"}, None) == 1000
