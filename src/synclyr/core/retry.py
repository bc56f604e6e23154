import random
import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def retry_with_backoff(
    func: Callable[[], T],
    *,
    retries: int = 3,
    base: float = 1.0,
    cap: Optional[float] = None,
    jitter: float = 0.0,
    should_retry: Callable[[BaseException], bool] = lambda exc: True,
    on_retry: Optional[Callable[[BaseException, float, int], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run a callable with exponential backoff.

    Args:
        func: Callable without args to invoke.
        retries: Maximum retry attempts after the first call.
        base: Delay before the first retry; doubles on every further retry.
        cap: Maximum backoff seconds (None = uncapped).
        jitter: Random jitter added up to this many seconds.
        should_retry: Predicate deciding whether an exception is transient.
        on_retry: Called with (exception, delay, attempt) before sleeping.
        sleep: Sleep function, injectable for tests.

    Returns:
        The function's return value.

    Raises:
        The last exception if it is not retryable or retries are exhausted.
    """
    attempt = 0
    while True:
        try:
            return func()
        except Exception as exc:
            attempt += 1
            if attempt > retries or not should_retry(exc):
                raise
            delay = base * (2 ** (attempt - 1))
            if cap is not None:
                delay = min(delay, cap)
            if jitter:
                delay += random.uniform(0, jitter)
            if on_retry is not None:
                on_retry(exc, delay, attempt)
            sleep(delay)
