"""Response cache for the assessment catalog listing."""

import copy
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from ..utils import utcnow

logger = logging.getLogger(__name__)

ASSESSMENTS_LIST_KEY = "assessments_list"


class ResponseCache:
    """In-process TTL cache shared by concurrent requests.

    Values are copied on the way in and on the way out so a caller can
    never mutate what another request will read.

    Each key carries a generation that delete() bumps. A reader that loaded
    its value before an invalidation stores it with set_if_generation(),
    which refuses the write once the generation has moved on.
    """

    def __init__(self, default_ttl_seconds: int = 300):
        self.default_ttl = timedelta(seconds=default_ttl_seconds)
        self._entries: Dict[str, Tuple[Any, datetime]] = {}
        self._generations: Dict[str, int] = {}
        self._lock = threading.Lock()

    def _ttl(self, ttl_seconds: Optional[int]) -> timedelta:
        return timedelta(seconds=ttl_seconds) if ttl_seconds is not None else self.default_ttl

    def get(self, key: str) -> Optional[Any]:
        """Return a copy of the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= utcnow():
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def generation(self, key: str) -> int:
        with self._lock:
            return self._generations.get(key, 0)

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        with self._lock:
            self._entries[key] = (copy.deepcopy(value), utcnow() + self._ttl(ttl_seconds))

    def set_if_generation(self, key: str, value: Any, generation: int, ttl_seconds: Optional[int] = None) -> bool:
        """Store value only if key has not been invalidated since generation was read."""
        with self._lock:
            if self._generations.get(key, 0) != generation:
                logger.debug(f"Skipped stale cache write for {key}")
                return False
            self._entries[key] = (copy.deepcopy(value), utcnow() + self._ttl(ttl_seconds))
            return True

    def delete(self, key: str) -> bool:
        """Drop a key and bump its generation. Returns True if something was removed."""
        with self._lock:
            self._generations[key] = self._generations.get(key, 0) + 1
            return self._entries.pop(key, None) is not None

    def cleanup_expired(self) -> int:
        """Remove expired entries. Returns number of removed keys."""
        now = utcnow()
        with self._lock:
            expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
