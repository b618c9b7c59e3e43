import logging
from typing import Any, Hashable, Optional, Tuple

from cachetools import TTLCache

from workhub.core.settings import settings

logger = logging.getLogger(__name__)

CacheKey = Tuple[Hashable, ...]


class AccessCache:
    """
    Short-lived cache for resolver output.

    Keys are tuples whose second element is always the user id, e.g.
    ("lifecycle", user_id) or ("org", user_id, organization_id, workspace_id),
    so every entry belonging to a user can be dropped after a mutation that
    changes their membership, role or permissions.
    """

    def __init__(self, maxsize: int, ttl: float) -> None:
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    def get(self, key: CacheKey) -> Optional[Any]:
        return self._entries.get(key)

    def set(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value

    def invalidate_user(self, user_id: str) -> int:
        """
        Drop every cached entry for a user.

        Args:
            user_id: The user whose access changed

        Returns:
            Number of entries removed
        """
        stale = [
            key for key in list(self._entries.keys()) if len(key) > 1 and key[1] == user_id
        ]
        for key in stale:
            self._entries.pop(key, None)
        if stale:
            logger.info(f"Invalidated {len(stale)} cached access entries for {user_id}")
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


access_cache = AccessCache(
    maxsize=settings.ACCESS_CACHE_MAXSIZE, ttl=settings.ACCESS_CACHE_TTL_SECONDS
)


def get_access_cache() -> AccessCache:
    """Cache dependency for FastAPI dependency injection."""
    return access_cache
