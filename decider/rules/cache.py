"""
TTL cache for rule reads.

The cache is an explicit object handed to the Rules Store rather than
module state, so tests can inject a fake clock and two stores never share
entries by accident. Single-threaded use only; a threaded host would
need a lock around get/set.
"""

import time
from typing import Any, Callable, Optional


class RulesCache:
    """Key/value cache whose entries expire `ttl_seconds` after being set."""

    ALL_RULES = "all_rules"

    def __init__(
        self,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one entry, or everything when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
