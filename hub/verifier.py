"""
Device signature verification.

Two strategies share one contract:
  • ``EcdsaSignatureVerifier``     – real P-256 signatures (production)
  • ``SimulatedSignatureVerifier`` – SHA-256 digests from dev firmware

The strategy is picked once by :func:`build_verifier` when the hub is
wired; request handling never consults the environment.
"""

from __future__ import annotations

import hmac
import logging
from abc import ABC, abstractmethod
from enum import Enum

from hub.config import ConfigurationError
from shared.crypto import simulated_signature, verify_challenge_signature
from shared.schemas import DeviceKey

logger = logging.getLogger(__name__)


class VerifierMode(str, Enum):
    ECDSA = "ecdsa"
    SIMULATED = "simulated"


class SignatureVerifier(ABC):
    """Checks that *signature* over *challenge* was made by the device's key."""

    mode: VerifierMode

    @abstractmethod
    def verify(self, device_key: DeviceKey, challenge: str, signature: str) -> bool:
        """Return True for a valid signature.  Never raises on malformed input."""


class EcdsaSignatureVerifier(SignatureVerifier):
    mode = VerifierMode.ECDSA

    def verify(self, device_key: DeviceKey, challenge: str, signature: str) -> bool:
        return verify_challenge_signature(device_key.public_key, challenge, signature)


class SimulatedSignatureVerifier(SignatureVerifier):
    """Development only: signature = base64(SHA-256(device_uuid + challenge))."""

    mode = VerifierMode.SIMULATED

    def verify(self, device_key: DeviceKey, challenge: str, signature: str) -> bool:
        expected = simulated_signature(device_key.device_uuid, challenge)
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def build_verifier(mode: str | VerifierMode, environment: str) -> SignatureVerifier:
    """Select the verifier for this process.  Simulated mode is refused in production."""
    try:
        mode = VerifierMode(mode)
    except ValueError:
        raise ConfigurationError(f"Unknown signature mode: {mode!r}") from None

    if mode is VerifierMode.SIMULATED:
        if environment.lower() == "production":
            raise ConfigurationError("Simulated signatures are not allowed in production")
        logger.warning("Using SIMULATED device signatures (environment=%s)", environment)
        return SimulatedSignatureVerifier()

    return EcdsaSignatureVerifier()
