"""
Challenge signing for the device simulator.

Mirrors what real firmware does:
  • Secure-element devices sign with their P-256 private key
  • Dev boards without one send base64(SHA-256(uuid + challenge))
"""

from __future__ import annotations

import logging

from cryptography.hazmat.primitives.asymmetric import ec

from shared.crypto import CHALLENGE_BYTES, sign_challenge, simulated_signature

logger = logging.getLogger(__name__)


class ChallengeSigner:
    """Signs hub challenges on behalf of one device."""

    def __init__(
        self,
        device_uuid: str,
        private_key: ec.EllipticCurvePrivateKey | None = None,
    ):
        # With no private key the signer produces simulated signatures,
        # which only a hub running in a non-production environment accepts.
        self.device_uuid = device_uuid
        self._private_key = private_key

    @property
    def is_simulated(self) -> bool:
        return self._private_key is None

    def sign(self, challenge: str) -> str:
        if len(challenge) != CHALLENGE_BYTES * 2:
            logger.warning("Unexpected challenge length %d", len(challenge))
        if self._private_key is None:
            return simulated_signature(self.device_uuid, challenge)
        return sign_challenge(self._private_key, challenge)
