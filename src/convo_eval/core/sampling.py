"""Bounded random sampling backed by the OS CSPRNG."""

import math
import random
from collections.abc import Sequence

_rng = random.SystemRandom()


def clamp_int(value: object, minimum: int, maximum: int, fallback: int) -> int:
    """Coerce value to an int within [minimum, maximum], truncating toward zero.

    Non-numeric or non-finite input yields fallback.
    """
    if isinstance(value, bool):
        number = float(value)
    else:
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return fallback
    if not math.isfinite(number):
        return fallback
    return max(minimum, min(maximum, math.trunc(number)))


def pick_one[T](items: Sequence[T]) -> T:
    if not items:
        raise ValueError("cannot pick from an empty sequence")
    return items[_rng.randrange(len(items))]


def pick_many_unique[T](items: Sequence[T], count: int) -> list[T]:
    """Return up to count distinct elements using a Fisher-Yates shuffle."""
    n = max(0, min(len(items), int(count)))
    pool = list(items)
    for i in range(len(pool) - 1, 0, -1):
        j = _rng.randrange(i + 1)
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:n]


def jitter_ms(upper: int) -> int:
    return _rng.randrange(upper) if upper > 0 else 0


def random_digits(count: int) -> str:
    return "".join(str(_rng.randrange(10)) for _ in range(max(0, count)))
