"""In-memory key-value map whose entries expire after a time-to-live."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Hashable, Iterator

from .errors import InvalidConfigurationError

if TYPE_CHECKING:
    from .config import ExpiringMapConfig

logger = logging.getLogger("expiring-map")

_MISSING = object()


@dataclass
class _Entry:
    value: Any
    expires_at: float
    handle: asyncio.TimerHandle | None = None


class ExpiringMap:
    """Key-value map with per-entry TTL and two eviction modes.

    Eager mode (the default) schedules a timer on the asyncio event loop for
    every insertion; the entry is removed when the timer fires, whether or not
    it is accessed again. Lazy mode schedules nothing and instead checks the
    entry's expiry on every read, existence check, size query and iteration
    step.

    ``on_expire(key, value)`` runs once for every entry removed because its TTL
    elapsed. Explicit removal (``delete``/``clear``) and overwriting a key never
    call it.
    """

    def __init__(
        self,
        default_ttl_seconds: float,
        *,
        lazy_eviction: bool = False,
        on_expire: Callable[[Any, Any], None] | None = None,
        now: Callable[[], float] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        try:
            ttl = float(default_ttl_seconds)
        except (TypeError, ValueError) as exc:
            raise InvalidConfigurationError(
                "default_ttl_seconds", f"TTL must be a number, got {default_ttl_seconds!r}"
            ) from exc
        if not ttl > 0:
            raise InvalidConfigurationError("default_ttl_seconds", "TTL must be greater than 0")
        self._default_ttl_seconds = ttl
        self._lazy_eviction = bool(lazy_eviction)
        self._on_expire = on_expire
        self._now = now or time.monotonic
        self._loop = loop
        self._items: dict[Hashable, _Entry] = {}

    @classmethod
    def from_config(
        cls,
        config: ExpiringMapConfig,
        *,
        on_expire: Callable[[Any, Any], None] | None = None,
        now: Callable[[], float] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> ExpiringMap:
        return cls(
            config.default_ttl_seconds,
            lazy_eviction=config.lazy_eviction,
            on_expire=on_expire,
            now=now,
            loop=loop,
        )

    @property
    def default_ttl_seconds(self) -> float:
        return self._default_ttl_seconds

    @property
    def lazy_eviction(self) -> bool:
        return self._lazy_eviction

    def _is_expired(self, entry: _Entry) -> bool:
        return self._now() >= entry.expires_at

    def _notify(self, key: Hashable, value: Any) -> None:
        if self._on_expire is not None:
            self._on_expire(key, value)

    def _live_entry(self, key: Hashable) -> _Entry | None:
        """Return the stored entry for ``key``, evicting it first if it is stale (lazy mode)."""
        entry = self._items.get(key)
        if entry is None:
            return None
        if self._lazy_eviction and self._is_expired(entry):
            del self._items[key]
            logger.debug("Lazily evicted expired key %r", key)
            self._notify(key, entry.value)
            return None
        return entry

    def _evict_scheduled(self, key: Hashable, entry: _Entry) -> None:
        # A replaced or removed entry must not be touched by its old timer.
        if self._items.get(key) is not entry:
            logger.debug("Ignoring stale eviction timer for key %r", key)
            return
        del self._items[key]
        entry.handle = None
        logger.debug("Evicted expired key %r", key)
        self._notify(key, entry.value)

    def set(self, key: Hashable, value: Any, ttl_seconds: float | None = None) -> ExpiringMap:
        """Store ``value`` under ``key`` for ``ttl_seconds`` (default TTL when omitted).

        Replaces any existing entry for the key and returns the map itself so
        calls can be chained.
        """
        if ttl_seconds is None:
            ttl = self._default_ttl_seconds
        else:
            ttl = float(ttl_seconds)
            if not ttl > 0:
                raise ValueError(f"ttl_seconds must be greater than 0, got {ttl_seconds!r}")
        entry = _Entry(value=value, expires_at=self._now() + ttl)

        if self._lazy_eviction:
            self.delete(key)
        else:
            loop = self._loop or asyncio.get_running_loop()
            previous = self._items.get(key)
            if previous is not None and previous.handle is not None:
                previous.handle.cancel()
                previous.handle = None
            entry.handle = loop.call_later(ttl, self._evict_scheduled, key, entry)
            logger.debug("Scheduled eviction of key %r in %.3fs", key, ttl)

        self._items[key] = entry
        return self

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._live_entry(key)
        if entry is None:
            return default
        return entry.value

    def has(self, key: Hashable) -> bool:
        return self._live_entry(key) is not None

    def delete(self, key: Hashable) -> bool:
        entry = self._items.pop(key, None)
        if entry is None:
            return False
        if entry.handle is not None:
            entry.handle.cancel()
            entry.handle = None
        return True

    def clear(self) -> None:
        for entry in self._items.values():
            if entry.handle is not None:
                entry.handle.cancel()
                entry.handle = None
        self._items.clear()

    def get_or_set(
        self,
        key: Hashable,
        factory: Callable[[], Any],
        ttl_seconds: float | None = None,
    ) -> Any:
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        value = factory()
        self.set(key, value, ttl_seconds)
        return value

    @property
    def size(self) -> int:
        if self._lazy_eviction:
            for key in list(self._items):
                self._live_entry(key)
        return len(self._items)

    def _iter_live(self) -> Iterator[tuple[Hashable, Any]]:
        # Walk the key order as it was when iteration started, but look every
        # key up again right before producing it.
        for key in list(self._items):
            entry = self._live_entry(key)
            if entry is not None:
                yield key, entry.value

    def keys(self) -> Iterator[Hashable]:
        for key, _ in self._iter_live():
            yield key

    def values(self) -> Iterator[Any]:
        for _, value in self._iter_live():
            yield value

    def entries(self) -> Iterator[tuple[Hashable, Any]]:
        yield from self._iter_live()

    def for_each(self, callback: Callable[[Any, Hashable, ExpiringMap], None]) -> None:
        for key, value in self.entries():
            callback(value, key, self)

    def __iter__(self) -> Iterator[tuple[Hashable, Any]]:
        return self.entries()

    def __len__(self) -> int:
        return self.size

    def __contains__(self, key: object) -> bool:
        return self.has(key)

    def __repr__(self) -> str:
        mode = "lazy" if self._lazy_eviction else "eager"
        return f"ExpiringMap(mode={mode}, size={len(self._items)})"
