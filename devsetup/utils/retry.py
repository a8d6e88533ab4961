from __future__ import annotations
import logging
import time
from typing import Callable, TypeVar

T = TypeVar("T")

log = logging.getLogger(__name__)


def retry(func: Callable[[], T], attempts: int = 3, delay: float = 5.0, backoff: float = 1.0,
          context: str = "command", sleep: Callable[[float], None] = time.sleep) -> T:
    """Call ``func`` until it returns without raising, at most ``attempts`` times.

    Not idempotency-aware: a partially applied install is simply run again.
    The last exception is re-raised once attempts are exhausted.
    """
    attempts = max(1, attempts)
    for i in range(attempts):
        try:
            return func()
        except Exception as e:
            if i == attempts - 1:
                log.error("%s failed after %d attempts: %s", context, attempts, e)
                raise
            wait = delay * (backoff ** i)
            log.warning("%s failed (attempt %d/%d), retrying in %.0fs: %s", context, i + 1, attempts, wait, e)
            sleep(wait)
    raise AssertionError("unreachable")
