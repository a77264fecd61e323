"""
Challenge store.

One live challenge per device UUID; a new ``put`` replaces the previous
value.  Expiry is enforced by the cache, never re-checked by callers.
"""

from __future__ import annotations

from hub.cache import TTLCache

CHALLENGE_PREFIX = "device_challenge:"


class ChallengeStore:

    def __init__(self, cache: TTLCache) -> None:
        self._cache = cache

    def put(self, device_uuid: str, value: str, ttl: int) -> None:
        self._cache.put(CHALLENGE_PREFIX + device_uuid, value, ttl)

    def get(self, device_uuid: str) -> str | None:
        return self._cache.get(CHALLENGE_PREFIX + device_uuid)

    def consume(self, device_uuid: str, expected: str) -> bool:
        """
        Remove the device's challenge if it is still *expected*.

        Only one caller can consume a given challenge; the others get False.
        """
        return self._cache.pull_if(CHALLENGE_PREFIX + device_uuid, expected)
