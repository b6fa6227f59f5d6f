import logging
import time
from typing import Any, Dict, Optional, Set, Tuple

from atelier.core.config import settings

logger = logging.getLogger(__name__)


class SessionCache:
    """Short-lived cache of guard results keyed by session token.

    Entries are indexed by user id too, so a role or status change can drop
    every cached session of the affected user.
    """

    def __init__(self, ttl_seconds: int = 0):
        self._ttl = ttl_seconds
        self._cache: Dict[str, Tuple[str, Any, float]] = {}
        self._tokens_by_user: Dict[str, Set[str]] = {}
        self._last_purge = time.monotonic()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, token: str) -> Optional[Any]:
        if not self.enabled or token not in self._cache:
            return None
        user_id, value, timestamp = self._cache[token]
        if time.monotonic() - timestamp < self._ttl:
            return value
        self._evict(token, user_id)
        return None

    def set(self, token: str, user_id: str, value: Any) -> None:
        if not self.enabled:
            return
        now = time.monotonic()
        if now - self._last_purge >= self._ttl:
            self._purge_expired(now)
        self._cache[token] = (user_id, value, now)
        self._tokens_by_user.setdefault(user_id, set()).add(token)

    def invalidate_user(self, user_id: str) -> None:
        tokens = self._tokens_by_user.pop(str(user_id), set())
        for token in tokens:
            self._cache.pop(token, None)
        if tokens:
            logger.info(f"Dropped {len(tokens)} cached session(s) for user {user_id}")

    def _purge_expired(self, now: float) -> None:
        """Drop every entry past its TTL. Runs at most once per TTL period."""
        expired = [(token, entry[0]) for token, entry in self._cache.items() if now - entry[2] >= self._ttl]
        for token, user_id in expired:
            self._evict(token, user_id)
        self._last_purge = now

    def _evict(self, token: str, user_id: str) -> None:
        self._cache.pop(token, None)
        tokens = self._tokens_by_user.get(user_id)
        if tokens is not None:
            tokens.discard(token)
            if not tokens:
                del self._tokens_by_user[user_id]


session_cache = SessionCache(settings.SESSION_CACHE_TTL_SECONDS)
