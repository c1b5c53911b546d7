import random


def generate_order(n: int, rng=random) -> list[int]:
    """Uniformly random permutation of range(n) (Fisher-Yates)."""
    order = list(range(max(0, int(n))))
    for i in range(len(order) - 1, 0, -1):
        j = rng.randint(0, i)
        order[i], order[j] = order[j], order[i]
    return order


def sanitize_order(candidate, n: int) -> list[int] | None:
    """Return a copy of candidate if it is a permutation of range(n), else None."""
    if not isinstance(candidate, (list, tuple)) or len(candidate) != n:
        return None

    seen: set[int] = set()
    for value in candidate:
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        if value < 0 or value >= n or value in seen:
            return None
        seen.add(value)

    return list(candidate)
