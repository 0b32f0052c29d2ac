"""
In-memory memoization cache used by the store.

Values are stored per ``(target, key)``. Targets are compiled configs (one
entry per entity id) and instances (one entry per computed field); they are
held weakly, so entries vanish with their target.

Contract relied upon by the store:

- ``get(target, key, getter)`` returns the stored value, or calls
  ``getter(target, previous)`` once, stores and returns its result. No
  value is kept past ``invalidate``, so ``previous`` is always None here. A
  stored pending future is returned as is, so concurrent readers share one
  computation.
- ``set(target, key, value, force)`` stores a value; an existing one is only
  replaced when ``force`` is true.
- ``get_entries(target)`` lists the entries of a target.
"""
import logging
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Dict, List


@dataclass(frozen=True)
class CacheEntry:
    """A single ``(key, value)`` pair of a cache target."""
    key: Any
    value: Any


class Cache:
    """Weakly-keyed two-level cache: target -> key -> value."""
    _logger = logging.getLogger("ModelCache")

    def __init__(self) -> None:
        self._entries: "weakref.WeakKeyDictionary[Any, Dict[Any, Any]]" = weakref.WeakKeyDictionary()

    def get(self, target: Any, key: Any, getter: Callable[[Any, Any], Any]) -> Any:
        entries = self._entries.get(target)
        if entries is not None and key in entries:
            self._logger.debug(f"Cache hit for {type(target).__name__}[{key!r}]")
            return entries[key]

        self._logger.debug(f"Cache miss for {type(target).__name__}[{key!r}]")
        value = getter(target, None)
        self._entries.setdefault(target, {})[key] = value
        return value

    def set(self, target: Any, key: Any, value: Any, force: bool = False) -> Any:
        entries = self._entries.setdefault(target, {})
        if force or key not in entries:
            entries[key] = value
            self._logger.debug(f"Stored {type(value).__name__} at {type(target).__name__}[{key!r}]")
        return entries[key]

    def get_entries(self, target: Any) -> List[CacheEntry]:
        entries = self._entries.get(target)
        if not entries:
            return []
        return [CacheEntry(key=key, value=value) for key, value in entries.items()]

    def invalidate(self, target: Any, key: Any) -> bool:
        """Drop an entry so the next ``get`` recomputes it. Returns False if absent."""
        entries = self._entries.get(target)
        if entries is None or key not in entries:
            return False
        del entries[key]
        self._logger.debug(f"Invalidated {type(target).__name__}[{key!r}]")
        return True

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())
