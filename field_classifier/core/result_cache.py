"""Per-element cache for expensive derived values (visibility, style, labels, signals)."""

import logging
import time
import weakref
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from field_classifier.tools.constants import (
    COMPUTED_STYLE_TTL,
    LABEL_TEXT_TTL,
    SIGNALS_TTL,
    VISIBILITY_TTL,
)

logger = logging.getLogger(__name__)

DEFAULT_TTLS = {
    "visibility": VISIBILITY_TTL,
    "computed_style": COMPUTED_STYLE_TTL,
    "label_text": LABEL_TEXT_TTL,
    "signals": SIGNALS_TTL,
}


class _Miss:
    """Sentinel type for a cache miss; cached values may legitimately be None."""

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()


@dataclass
class _Slot:
    ref: weakref.ref
    entries: Dict[str, Dict[str, Any]] = field(default_factory=dict)


class ResultCache:
    """Cache keyed by element identity, never by element equality.

    Entries are held through weak references: when an element is garbage
    collected its slot disappears. Parsed tags compare structurally, so two
    identical ``<input>`` tags in different forms would collide under an
    equality-keyed dict.
    """

    def __init__(self, ttls: Optional[Dict[str, float]] = None):
        """
        Initialize the result cache.

        Args:
            ttls: Per-category time-to-live overrides in seconds
        """
        self.ttls = dict(DEFAULT_TTLS)
        for category, seconds in (ttls or {}).items():
            self.set_ttl(category, seconds)
        self._slots: Dict[int, _Slot] = {}
        self.hits = 0
        self.misses = 0
        self.sets = 0
        logger.debug(f"Result cache initialized with TTLs {self.ttls}")

    def _slot_for(self, element: Any) -> Optional[_Slot]:
        slot = self._slots.get(id(element))
        if slot is None or slot.ref() is not element:
            return None
        return slot

    def get(self, element: Any, category: str) -> Any:
        """
        Get a cached value if present and not expired.

        Args:
            element: The element the value was derived from
            category: Cache category

        Returns:
            The cached value, or MISS
        """
        if category not in self.ttls:
            self.misses += 1
            return MISS
        slot = self._slot_for(element)
        entry = slot.entries.get(category) if slot else None
        if entry is None:
            self.misses += 1
            return MISS
        if time.monotonic() >= entry["expires_at"]:
            del slot.entries[category]
            self.misses += 1
            return MISS
        self.hits += 1
        return entry["value"]

    def set(self, element: Any, category: str, value: Any) -> bool:
        """
        Store a value for an element.

        Args:
            element: The element the value was derived from
            category: Cache category
            value: Value to store

        Returns:
            False when the element cannot be weakly referenced (not cached)

        Raises:
            ValueError: If the category is unknown
        """
        if category not in self.ttls:
            raise ValueError(f"Unknown cache category: {category}")

        slot = self._slot_for(element)
        if slot is None:
            key = id(element)
            try:
                ref = weakref.ref(element, lambda _, key=key: self._evict(key))
            except TypeError:
                logger.debug(f"Refusing to cache non-referenceable key {type(element).__name__}")
                return False
            slot = _Slot(ref=ref)
            self._slots[key] = slot

        slot.entries[category] = {
            "value": value,
            "expires_at": time.monotonic() + self.ttls[category],
        }
        self.sets += 1
        return True

    def _evict(self, key: int) -> None:
        slot = self._slots.get(key)
        # A new element may already occupy the recycled id
        if slot is not None and slot.ref() is None:
            del self._slots[key]

    def invalidate(self, element: Any, category: Optional[str] = None) -> None:
        """Drop one category, or every category, for an element."""
        slot = self._slot_for(element)
        if slot is None:
            return
        if category is None:
            del self._slots[id(element)]
        else:
            slot.entries.pop(category, None)

    def clear_category(self, category: str) -> None:
        for slot in self._slots.values():
            slot.entries.pop(category, None)

    def clear_all(self) -> None:
        """Clear every entry; counters are kept."""
        self._slots.clear()
        logger.debug("Result cache cleared")

    def set_ttl(self, category: str, seconds: float) -> None:
        """
        Configure the time-to-live of a category.

        Raises:
            ValueError: If seconds is not positive
        """
        if seconds is None or seconds <= 0:
            raise ValueError(f"TTL for {category} must be positive, got {seconds}")
        self.ttls[category] = float(seconds)

    def get_stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "hit_rate": (self.hits / total) if total else 0.0,
            "elements": len(self._slots),
        }

    def __len__(self) -> int:
        return len(self._slots)
