"""Bounded LRU cache with time-to-live expiry."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
	from collections.abc import Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_SIZE = 100
DEFAULT_TTL = 30 * 60.0


@dataclass
class CacheEntry(Generic[T]):
	"""A cached value with the time it was stored."""

	key: str
	value: T
	timestamp: float


@dataclass(frozen=True)
class CacheStats:
	"""Cache usage counters."""

	name: str
	size: int
	max_size: int
	hits: int
	misses: int
	evictions: int

	@property
	def hit_rate(self) -> float:
		"""Fraction of lookups that were hits, 0.0 when nothing was looked up."""
		total = self.hits + self.misses
		return self.hits / total if total else 0.0


class CacheManager(Generic[T]):
	"""
	Least-recently-used cache holding a single payload type.

	Both :meth:`get` and :meth:`set` mark a key as most recently used. When the
	cache grows past ``max_size`` the least recently used entry is evicted.
	Entries older than ``ttl`` seconds are treated as absent.

	"""

	def __init__(
		self,
		name: str,
		max_size: int = DEFAULT_MAX_SIZE,
		ttl: float | None = DEFAULT_TTL,
		clock: Callable[[], float] = time.monotonic,
	) -> None:
		"""
		Initialize the cache.

		Args:
		    name: Name used in log messages and statistics
		    max_size: Maximum number of entries
		    ttl: Seconds after which an entry expires, ``None`` to never expire
		    clock: Time source, injectable for tests

		Raises:
		    ValueError: If ``max_size`` is not positive

		"""
		if max_size < 1:
			msg = f"Cache size must be positive, got {max_size}"
			raise ValueError(msg)
		self.name = name
		self.max_size = max_size
		self.ttl = ttl
		self._clock = clock
		self._entries: OrderedDict[str, CacheEntry[T]] = OrderedDict()
		self._hits = 0
		self._misses = 0
		self._evictions = 0

	def get(self, key: str) -> T | None:
		"""
		Look up a value.

		Args:
		    key: Cache key

		Returns:
		    The cached value, or ``None`` when absent or expired

		"""
		entry = self._entries.get(key)
		if entry is None:
			self._misses += 1
			return None
		if self._is_expired(entry):
			del self._entries[key]
			self._misses += 1
			return None
		self._entries.move_to_end(key)
		self._hits += 1
		return entry.value

	def set(self, key: str, value: T) -> None:
		"""Store a value, evicting the least recently used entries when full."""
		self._entries[key] = CacheEntry(key=key, value=value, timestamp=self._clock())
		self._entries.move_to_end(key)
		while len(self._entries) > self.max_size:
			evicted, _ = self._entries.popitem(last=False)
			self._evictions += 1
			logger.debug("Evicted '%s' from %s cache", evicted, self.name)

	def has(self, key: str) -> bool:
		"""Return True if ``key`` holds a live entry, without touching the LRU order."""
		entry = self._entries.get(key)
		return entry is not None and not self._is_expired(entry)

	def delete(self, key: str) -> bool:
		"""Remove a key; returns True if it was present."""
		return self._entries.pop(key, None) is not None

	def invalidate_where(self, predicate: Callable[[str, T], bool]) -> int:
		"""
		Remove every entry for which ``predicate(key, value)`` is true.

		Returns:
		    int: Number of removed entries

		"""
		doomed = [key for key, entry in self._entries.items() if predicate(key, entry.value)]
		for key in doomed:
			del self._entries[key]
		if doomed:
			logger.debug("Invalidated %d entries in %s cache", len(doomed), self.name)
		return len(doomed)

	def cleanup_expired(self) -> int:
		"""Drop expired entries and return how many were removed."""
		expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
		for key in expired:
			del self._entries[key]
		return len(expired)

	def clear(self) -> None:
		"""Remove every entry and reset the counters."""
		self._entries.clear()
		self._hits = 0
		self._misses = 0
		self._evictions = 0

	def set_max_size(self, max_size: int) -> None:
		"""Change the capacity, evicting entries if the cache is now too large."""
		if max_size < 1:
			msg = f"Cache size must be positive, got {max_size}"
			raise ValueError(msg)
		self.max_size = max_size
		while len(self._entries) > self.max_size:
			self._entries.popitem(last=False)
			self._evictions += 1

	def keys(self) -> list[str]:
		"""Return the keys from least to most recently used."""
		return list(self._entries)

	def get_stats(self) -> CacheStats:
		"""Return the usage counters."""
		return CacheStats(
			name=self.name,
			size=len(self._entries),
			max_size=self.max_size,
			hits=self._hits,
			misses=self._misses,
			evictions=self._evictions,
		)

	def __len__(self) -> int:
		"""Return the number of stored entries, expired ones included."""
		return len(self._entries)

	def __contains__(self, key: object) -> bool:
		"""Return True if ``key`` holds a live entry."""
		return isinstance(key, str) and self.has(key)

	def _is_expired(self, entry: CacheEntry[T]) -> bool:
		return self.ttl is not None and self._clock() - entry.timestamp > self.ttl
