import time
from typing import Callable


class Pacer:
    """Per-worker pause between successive requests.

    Each worker owns its own pacer, so the aggregate request rate grows with
    the number of workers.
    """

    def __init__(self, delay: float, sleep: Callable[[float], None] = time.sleep) -> None:
        self.delay = max(0.0, float(delay))
        self._sleep = sleep
        self._started = False

    def wait(self) -> None:
        """Sleep `delay` seconds, except on the first call."""
        if self._started and self.delay > 0:
            self._sleep(self.delay)
        self._started = True
