"""Shared caches.

These caches are process-global, managed by
`~ldapstore.factory.ProcessContext`. The common theme is some storage
wrapped in an `asyncio.Lock` with per-key locking. They are only intended for
use via `~ldapstore.services.userstore.UserStoreService`.
"""

from __future__ import annotations

import asyncio
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass, field
from types import TracebackType
from typing import Literal

from cachetools import TTLCache

from .config import CacheConfig
from .models.user import AppUser

__all__ = [
    "BaseCache",
    "CachedUser",
    "PerKeyCache",
    "UserCache",
    "UserLockManager",
]


@dataclass(frozen=True)
class CachedUser:
    """Result of a cached lookup.

    Wrapping the result allows a cached negative result to be distinguished
    from a cache miss.
    """

    user: AppUser | None
    """The user found, or `None` if the user was not found."""


class BaseCache(metaclass=ABCMeta):
    """Base class for caches managed by the process context."""

    @abstractmethod
    async def clear(self) -> None:
        """Invalidate the cache.

        Used primarily for testing.
        """


@dataclass
class _KeyLock:
    """A per-key lock and the number of callers using it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class UserLockManager:
    """Helper class for managing per-key locks.

    This should only be created by `PerKeyCache`. It is returned by the
    `PerKeyCache.lock` method and implements the async context manager
    protocol. The per-key lock is dropped from the cache again once no caller
    holds or waits for it.

    Parameters
    ----------
    general_lock
        Lock protecting the per-key locks.
    user_locks
        Per-key locks of the cache, shared with `PerKeyCache`.
    key
        Cache key to lock.
    """

    def __init__(
        self,
        general_lock: asyncio.Lock,
        user_locks: dict[str, _KeyLock],
        key: str,
    ) -> None:
        self._general_lock = general_lock
        self._user_locks = user_locks
        self._key = key
        self._key_lock: _KeyLock | None = None

    async def __aenter__(self) -> asyncio.Lock:
        async with self._general_lock:
            key_lock = self._user_locks.get(self._key)
            if not key_lock:
                key_lock = _KeyLock()
                self._user_locks[self._key] = key_lock
            key_lock.users += 1
            try:
                await key_lock.lock.acquire()
            except BaseException:
                self._release(key_lock)
                raise
            self._key_lock = key_lock
            return key_lock.lock

    async def __aexit__(
        self,
        exc_type: type[Exception] | None,
        exc: Exception | None,
        tb: TracebackType | None,
    ) -> Literal[False]:
        if self._key_lock is None:
            return False
        key_lock = self._key_lock
        self._key_lock = None
        key_lock.lock.release()
        self._release(key_lock)
        return False

    def _release(self, key_lock: _KeyLock) -> None:
        """Drop one user of a per-key lock, removing it if it is unused."""
        key_lock.users -= 1
        if key_lock.users > 0:
            return
        if self._user_locks.get(self._key) is key_lock:
            del self._user_locks[self._key]


class PerKeyCache(BaseCache):
    """Base class for a cache with per-key locking.

    Notes
    -----
    When there's a cache miss for a key, the goal is to block the expensive
    directory lookup for that key until the first requester has done the
    lookup and added it to the cache. Subsequent requests that were blocked
    on the lock can then be answered from the cache.

    The per-key lock must be acquired before the general lock is released,
    so the `lock` method cannot simply return the per-key lock. Otherwise a
    concurrent `clear` could delete the per-key lock while a caller still
    holds a copy of it, and a third caller could then get a new lock for the
    same key. `UserLockManager` is used to handle this.

    Keys come from callers, so a per-key lock only lives while some caller
    holds or waits for it. The number of per-key locks is therefore bounded
    by the number of concurrent lookups rather than by the number of
    distinct keys ever seen.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._user_locks: dict[str, _KeyLock] = {}

    @property
    def lock_count(self) -> int:
        """Number of per-key locks currently held or waited for."""
        return len(self._user_locks)

    async def clear(self) -> None:
        """Invalidate the cache.

        Calls the `initialize` method provided by derivative classes, with
        proper locking, to reinitialize the cache.
        """
        async with self._lock:
            for key, key_lock in list(self._user_locks.items()):
                async with key_lock.lock:
                    self._user_locks.pop(key, None)
            self.initialize()

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the cache.

        This will be called by `clear` and should also be called by the
        derived class's ``__init__`` method.
        """

    async def lock(self, key: str) -> UserLockManager:
        """Return the per-key lock for locking.

        The return value should be used with ``async with`` to hold a lock
        around checking for a cached result and, if one is not found, doing
        the lookup and storing the result.

        Parameters
        ----------
        key
            Cache key to lock.

        Returns
        -------
        UserLockManager
            Async context manager that will take the per-key lock.
        """
        return UserLockManager(self._lock, self._user_locks, key)


class UserCache(PerKeyCache):
    """A cache of users looked up in LDAP.

    Users that were found and users that were not found are held in separate
    caches so that negative results can expire sooner.

    Parameters
    ----------
    config
        Cache configuration.
    """

    def __init__(self, config: CacheConfig) -> None:
        super().__init__()
        self._config = config
        self._cache: TTLCache[str, AppUser]
        self._negative_cache: TTLCache[str, bool]
        self.initialize()

    @staticmethod
    def build_key(operation: str, name: str) -> str:
        """Build a cache key for a lookup.

        Parameters
        ----------
        operation
            Type of lookup, such as ``username`` or ``subject_id``.
        name
            Username or subject ID being looked up.

        Returns
        -------
        str
            Cache key, which ignores case and surrounding whitespace.
        """
        return f"{operation}:{name.strip().casefold()}"

    def get(self, key: str) -> CachedUser | None:
        """Retrieve a lookup result from the cache.

        Parameters
        ----------
        key
            Cache key from `build_key`.

        Returns
        -------
        CachedUser or None
            The cached result, or `None` on a cache miss.
        """
        user = self._cache.get(key)
        if user is not None:
            return CachedUser(user=user)
        if self._negative_cache.get(key):
            return CachedUser(user=None)
        return None

    def initialize(self) -> None:
        """Initialize the cache."""
        lifetime = self._config.lifetime.total_seconds()
        negative_lifetime = self._config.negative_lifetime.total_seconds()
        self._cache = TTLCache(self._config.size, lifetime)
        self._negative_cache = TTLCache(self._config.size, negative_lifetime)

    def invalidate(self, key: str) -> None:
        """Invalidate any cached result for a key.

        Parameters
        ----------
        key
            Cache key from `build_key`.
        """
        self._cache.pop(key, None)
        self._negative_cache.pop(key, None)

    def store(self, key: str, user: AppUser | None) -> None:
        """Store a lookup result in the cache.

        Should only be called with the lock held.

        Parameters
        ----------
        key
            Cache key from `build_key`.
        user
            User found, or `None` if the user was not found.
        """
        self.invalidate(key)
        if user is None:
            self._negative_cache[key] = True
        else:
            self._cache[key] = user
