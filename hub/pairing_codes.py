"""
Pairing code registry.

A pairing code is a 6-digit number a verified device shows on its screen
so a signed-in user can claim it.  The registry keeps a bidirectional
mapping in the TTL cache:

    pairing_code:{code}   -> device uuid
    pairing_device:{uuid} -> code

A code belongs to at most one device and a device has at most one live
code.  Codes are claimed with the cache's atomic ``add`` so concurrent
issuers can never hand out the same live code.
"""

from __future__ import annotations

import logging
import secrets
from typing import Callable

from hub.cache import TTLCache
from hub.config import DEFAULT_PAIRING_CODE_TTL_SECONDS
from hub.storage import DeviceStore
from shared.schemas import Device

logger = logging.getLogger(__name__)

CODE_PREFIX = "pairing_code:"
DEVICE_PREFIX = "pairing_device:"
CODE_SPACE = 1_000_000


def random_code() -> str:
    """Uniform 6-digit code, zero padded."""
    return f"{secrets.randbelow(CODE_SPACE):06d}"


class PairingCodeRegistry:

    def __init__(
        self,
        cache: TTLCache,
        devices: DeviceStore,
        ttl: int = DEFAULT_PAIRING_CODE_TTL_SECONDS,
        code_factory: Callable[[], str] = random_code,
    ) -> None:
        self._cache = cache
        self._devices = devices
        self._ttl = ttl
        self._code_factory = code_factory

    # ------------------------------------------------------------------
    # Issue / invalidate
    # ------------------------------------------------------------------

    def issue(self, device_uuid: str) -> str:
        """Issue a fresh code for *device_uuid*, revoking its previous one."""
        existing = self.code_for(device_uuid)
        if existing is not None:
            self.invalidate(existing, device_uuid)

        attempts = 0
        while True:
            attempts += 1
            code = self._code_factory()
            if self._cache.add(CODE_PREFIX + code, device_uuid, self._ttl):
                break

        self._cache.put(DEVICE_PREFIX + device_uuid, code, self._ttl)
        if attempts > 1:
            logger.debug("Pairing code for %s allocated after %d attempts", device_uuid, attempts)
        logger.info("Issued pairing code for device %s", device_uuid)
        return code

    def invalidate(self, code: str, device_uuid: str) -> None:
        # Only drop the code entry if it still points at this device.
        if self._cache.get(CODE_PREFIX + code) == device_uuid:
            self._cache.forget(CODE_PREFIX + code)
        if self._cache.get(DEVICE_PREFIX + device_uuid) == code:
            self._cache.forget(DEVICE_PREFIX + device_uuid)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, code: str) -> str | None:
        return self._cache.get(CODE_PREFIX + code)

    def code_for(self, device_uuid: str) -> str | None:
        return self._cache.get(DEVICE_PREFIX + device_uuid)

    # ------------------------------------------------------------------
    # Redeem
    # ------------------------------------------------------------------

    def redeem(self, code: str, user_id: str) -> Device | None:
        """
        Hand the device behind *code* to *user_id*.

        Returns ``None`` for an unknown, expired or already-used code.
        The code is consumed atomically, so two users racing on the
        same code cannot both claim the device.
        """
        device_uuid = self._cache.pull(CODE_PREFIX + code)
        if device_uuid is None:
            return None

        if self._cache.get(DEVICE_PREFIX + device_uuid) == code:
            self._cache.forget(DEVICE_PREFIX + device_uuid)

        if self._devices.find_by_uuid(device_uuid) is None:
            logger.warning("Pairing code resolved to missing device %s", device_uuid)
            return None

        return self._devices.assign_owner(device_uuid, user_id)
