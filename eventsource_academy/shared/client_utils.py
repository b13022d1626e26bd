import random
import sys
from typing import Iterable, Mapping

import httpx
from loguru import logger

INT32_MAX = 2 ** 31 - 1

DEFAULT_HEADERS = (
    ("Accept", "text/event-stream"),
    ("Cache-Control", "no-cache"),
)

def pow2(k: int) -> int:
    """Returns 2**k, saturating at the signed 32-bit maximum instead of growing further."""
    return 2 ** k if k < 31 else INT32_MAX

def backoff_with_jitter(
    attempt: int,
    base_ms: int,
    max_ms: int = 30000,
    rng: random.Random | None = None,
) -> int:
    """
    Delay in milliseconds before reconnect attempt number `attempt`.

    The exponential value base_ms * 2**attempt is capped at `max_ms`, then jittered
    into the upper half of [0, capped] so at least half the delay is always honored.
    Callers never ask for attempt 0: the first connection does not wait.
    """
    capped = min(max_ms, base_ms * pow2(attempt))
    if capped <= 0:
        raise ValueError("backoff bound must be positive")
    rng = rng or random
    return capped // 2 + rng.randrange(capped) // 2

def build_headers(custom: Mapping[str, str] | Iterable[tuple[str, str]] | httpx.Headers | None = None) -> httpx.Headers:
    """
    Mandatory SSE headers first, then every user header appended after them.
    Duplicates are kept, so a user `Accept` adds a value instead of replacing ours.
    """
    pairs = list(DEFAULT_HEADERS)
    if custom is not None:
        if isinstance(custom, httpx.Headers):
            pairs.extend(custom.multi_items())
        elif isinstance(custom, Mapping):
            pairs.extend(custom.items())
        else:
            pairs.extend(custom)
    return httpx.Headers(pairs)

def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
