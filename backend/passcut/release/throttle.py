"""In-process throttle for traffic-triggered evaluation.

Cuts redundant work under load only; duplicate publication is prevented by
the (exam, release number) unique key, not by this.
"""

import threading
import time


class TrafficThrottle:
    """Remembers the last traffic check per exam."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._last_check: dict[int, float] = {}
        self._lock = threading.Lock()

    def should_skip(self, exam_id: int, interval_sec: int) -> bool:
        """True if the exam was checked less than ``interval_sec`` ago; otherwise record now."""
        now = self._clock()
        with self._lock:
            previous = self._last_check.get(exam_id)
            if previous is not None and now - previous < interval_sec:
                return True
            self._last_check[exam_id] = now
            return False

    def reset(self) -> None:
        with self._lock:
            self._last_check.clear()


traffic_throttle = TrafficThrottle()
