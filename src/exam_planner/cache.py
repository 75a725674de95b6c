"""Per-learner read cache with explicit invalidation."""
import threading
import time
from typing import Any, Callable, Hashable, Optional

from loguru import logger

from exam_planner.config import get_settings


class PlanCache:
    """TTL cache keyed by (user_id, course_id, purpose, *extra).

    Writers call ``invalidate(user_id, course_id)`` after anything that changes
    what a reader would see; the TTL only bounds staleness for changes made
    outside this process.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = get_settings().cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict[tuple, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get_or_load(self, user_id: str, course_id: str, purpose: str, loader: Callable[[], Any],
                    *extra: Hashable) -> Any:
        key = (user_id, course_id, purpose, *extra)
        now = self._clock()
        with self._lock:
            hit = self._entries.get(key)
            if hit and hit[0] > now:
                return hit[1]
        value = loader()
        if self.ttl_seconds > 0:
            with self._lock:
                self._entries[key] = (now + self.ttl_seconds, value)
        return value

    def invalidate(self, user_id: str, course_id: str) -> None:
        with self._lock:
            stale = [k for k in self._entries if k[0] == user_id and k[1] == course_id]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Invalidated {} cached reads for {}/{}", len(stale), user_id, course_id)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


plan_cache = PlanCache()
