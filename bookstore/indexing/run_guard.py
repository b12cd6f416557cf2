"""
Indexing Run Guard
Allows at most one indexing pass at a time across API and worker processes.

The guard is a Redis key set with NX and an expiry. Its value is a token
identifying the holder; only that holder may release it.
"""

import logging
import uuid
from typing import Optional

import redis

from ..config import Settings, get_settings
from ..ml.errors import RunAlreadyInProgress

logger = logging.getLogger(__name__)

# Delete the key only if it still holds the caller's token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

# Reset the expiry only if the key still holds the caller's token
_REFRESH_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("expire", KEYS[1], ARGV[2])
else
    return 0
end
"""


class IndexingRunGuard:
    """
    Single-slot flag for indexing passes.

    Args:
        client: Redis client
        key: Redis key holding the active run's token
        ttl_seconds: Expiry so a crashed worker cannot hold the slot forever
    """

    def __init__(self, client: redis.Redis, key: str, ttl_seconds: int):
        self.client = client
        self.key = key
        self.ttl_seconds = ttl_seconds
        self._release = client.register_script(_RELEASE_SCRIPT)
        self._refresh = client.register_script(_REFRESH_SCRIPT)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "IndexingRunGuard":
        settings = settings or get_settings()
        client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
        return cls(client, settings.indexing_lock_key, settings.indexing_lock_ttl_seconds)

    def acquire(self) -> str:
        """
        Claim the slot.

        Returns:
            Token to pass to ``release``

        Raises:
            RunAlreadyInProgress: If another pass holds the slot
        """
        token = uuid.uuid4().hex
        if not self.client.set(self.key, token, nx=True, ex=self.ttl_seconds):
            holder = self.current_holder()
            logger.warning(f"Indexing run rejected, slot held by {holder}")
            raise RunAlreadyInProgress(holder)

        logger.info(f"Indexing run slot acquired: {token}")
        return token

    def release(self, token: str) -> bool:
        """Free the slot if ``token`` still holds it."""
        released = bool(self._release(keys=[self.key], args=[token]))
        if released:
            logger.info(f"Indexing run slot released: {token}")
        else:
            logger.warning(f"Indexing run slot was not held by {token}")
        return released

    def refresh(self, token: str) -> bool:
        """
        Extend the slot's expiry while ``token`` holds it.

        Returns:
            False if the slot expired or now belongs to another run
        """
        held = bool(self._refresh(keys=[self.key], args=[token, self.ttl_seconds]))
        if not held:
            logger.warning(f"Indexing run slot no longer held by {token}")
        return held

    def current_holder(self) -> Optional[str]:
        holder = self.client.get(self.key)
        if isinstance(holder, bytes):
            holder = holder.decode("utf-8")
        return holder

    def is_active(self) -> bool:
        return self.current_holder() is not None
