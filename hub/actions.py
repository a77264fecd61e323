"""
Device authentication and pairing actions.

Challenge-response flow:
  1. Device sends its UUID                → :class:`IssueChallenge`
  2. Device signs the challenge locally
  3. Device sends UUID, challenge, signature and network metadata
                                          → :class:`VerifyAndPair`
  4. Device shows the returned pairing code on its screen
  5. Signed-in user enters the code       → :class:`RedeemPairingCode`

Every failure is terminal for the request; retrying the whole flow is
the firmware's job.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any

from hub.challenges import ChallengeStore
from hub.config import HubSettings
from hub.errors import (
    ChallengeExpired,
    ChallengeMismatch,
    DeviceNotOwned,
    DeviceUnknown,
    InvalidSignature,
)
from hub.messaging import MessageBus, integration_topic
from hub.pairing_codes import PairingCodeRegistry
from hub.storage import DeviceIntegrationStore, DeviceKeyStore, DeviceStore
from hub.verifier import SignatureVerifier
from shared.crypto import generate_challenge
from shared.schemas import (
    ChallengeIssued,
    Device,
    DeviceIntegration,
    DeviceTopics,
    MqttConfig,
    PairingResult,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Device authentication
# ---------------------------------------------------------------------------

class IssueChallenge:
    """Step 1: hand a provisioned device a fresh challenge to sign."""

    def __init__(
        self,
        keys: DeviceKeyStore,
        challenges: ChallengeStore,
        settings: HubSettings,
    ) -> None:
        self._keys = keys
        self._challenges = challenges
        self._ttl = settings.challenge_ttl

    def execute(self, device_uuid: str) -> ChallengeIssued:
        if self._keys.find_by_uuid(device_uuid) is None:
            logger.info("Challenge requested for unknown device %s", device_uuid)
            raise DeviceUnknown(device_uuid)

        challenge = generate_challenge()
        self._challenges.put(device_uuid, challenge, self._ttl)
        logger.debug("Issued challenge for device %s", device_uuid)
        return ChallengeIssued(challenge=challenge, expires_in=self._ttl)


class VerifyAndPair:
    """
    Step 2: check the device's signature, then register it and issue a
    pairing code.

    Checks run in a fixed order and the first failure aborts:
    unknown key, missing challenge, mismatched challenge, bad signature.
    Nothing is written until all of them pass.
    """

    def __init__(
        self,
        keys: DeviceKeyStore,
        devices: DeviceStore,
        challenges: ChallengeStore,
        verifier: SignatureVerifier,
        pairing_codes: PairingCodeRegistry,
        settings: HubSettings,
    ) -> None:
        self._keys = keys
        self._devices = devices
        self._challenges = challenges
        self._verifier = verifier
        self._pairing_codes = pairing_codes
        self._mqtt = MqttConfig(broker=settings.mqtt_broker, port=settings.mqtt_port)

    def execute(
        self,
        device_uuid: str,
        challenge: str,
        signature: str,
        mac_address: str | None = None,
        ip_address: str | None = None,
        firmware_version: str | None = None,
    ) -> PairingResult:
        device_key = self._keys.find_by_uuid(device_uuid)
        if device_key is None:
            raise DeviceUnknown(device_uuid)

        stored = self._challenges.get(device_uuid)
        if stored is None:
            raise ChallengeExpired()

        if not hmac.compare_digest(stored.encode("utf-8"), challenge.encode("utf-8")):
            logger.warning("Challenge mismatch for device %s (possible replay)", device_uuid)
            raise ChallengeMismatch()

        if not self._verifier.verify(device_key, stored, signature):
            logger.warning(
                "Invalid %s signature from device %s", self._verifier.mode.value, device_uuid
            )
            raise InvalidSignature()

        # Another request may have consumed the same challenge meanwhile.
        if not self._challenges.consume(device_uuid, stored):
            logger.warning("Challenge for device %s already used", device_uuid)
            raise ChallengeExpired()

        if not device_key.is_activated:
            self._keys.mark_activated(device_uuid)

        device = self._devices.upsert(
            device_uuid,
            mac_address=mac_address,
            ip_address=ip_address,
            firmware_version=firmware_version,
        )
        code = self._pairing_codes.issue(device.uuid)

        logger.info("Device %s verified; awaiting pairing", device.uuid)
        return PairingResult(
            pairing_code=code,
            mqtt=self._mqtt,
            topics=DeviceTopics.for_device(device.uuid),
        )


# ---------------------------------------------------------------------------
# User-side pairing
# ---------------------------------------------------------------------------

class RedeemPairingCode:

    def __init__(self, pairing_codes: PairingCodeRegistry) -> None:
        self._pairing_codes = pairing_codes

    def execute(self, code: str, user_id: str) -> Device | None:
        device = self._pairing_codes.redeem(code, user_id)
        if device is None:
            logger.info("User %s entered an unknown or expired pairing code", user_id)
        return device


class ListUserDevices:

    def __init__(self, devices: DeviceStore) -> None:
        self._devices = devices

    def execute(self, user_id: str) -> list[Device]:
        return self._devices.devices_for_user(user_id)


# ---------------------------------------------------------------------------
# Integrations
# ---------------------------------------------------------------------------

class LinkIntegration:
    """Attach a metric source to a device the user owns."""

    def __init__(self, devices: DeviceStore, integrations: DeviceIntegrationStore) -> None:
        self._devices = devices
        self._integrations = integrations

    def execute(
        self,
        user_id: str,
        device_uuid: str,
        provider: str,
        metric_type: str,
        label: str | None = None,
        color: str | None = None,
    ) -> DeviceIntegration:
        device = self._devices.find_by_uuid(device_uuid)
        if device is None or device.owning_user_id != user_id:
            raise DeviceNotOwned(device_uuid)
        return self._integrations.link(device_uuid, provider, metric_type, label=label, color=color)


class UnlinkIntegration:

    def __init__(self, devices: DeviceStore, integrations: DeviceIntegrationStore) -> None:
        self._devices = devices
        self._integrations = integrations

    def execute(self, user_id: str, integration_id: int) -> bool:
        integration = self._integrations.get(integration_id)
        if integration is None:
            return False
        device = self._devices.find_by_uuid(integration.device_uuid)
        if device is None or device.owning_user_id != user_id:
            raise DeviceNotOwned(integration.device_uuid)
        return self._integrations.unlink(integration_id)


class ListDeviceIntegrations:
    """Integrations of a device, visible only to its owner."""

    def __init__(self, devices: DeviceStore, integrations: DeviceIntegrationStore) -> None:
        self._devices = devices
        self._integrations = integrations

    def execute(self, user_id: str, device_id: int) -> list[DeviceIntegration]:
        device = self._devices.get(device_id)
        if device is None or device.owning_user_id != user_id:
            raise DeviceNotOwned(str(device_id))
        return self._integrations.for_device(device.uuid)


class PublishToDevice:
    """Push a display payload to a device's integration topic."""

    def __init__(self, bus: MessageBus) -> None:
        self._bus = bus

    def execute(self, device_uuid: str, payload: dict[str, Any]) -> str:
        topic = integration_topic(device_uuid)
        self._bus.publish(topic, payload)
        return topic
