"""
Hub composition root.

Builds every store, the signature verifier and the actions from one
:class:`HubSettings`.  The uAgents entry point and the local scripts
both call :func:`build_hub`; nothing else constructs these pieces.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import timedelta

from hub.actions import (
    IssueChallenge,
    LinkIntegration,
    ListDeviceIntegrations,
    ListUserDevices,
    PublishToDevice,
    RedeemPairingCode,
    UnlinkIntegration,
    VerifyAndPair,
)
from hub.cache import Clock, TTLCache
from hub.challenges import ChallengeStore
from hub.config import HubSettings
from hub.messaging import InMemoryMessageBus, MessageBus
from hub.pairing_codes import PairingCodeRegistry
from hub.storage import DeviceIntegrationStore, DeviceKeyStore, DeviceStore
from hub.sync import MetricFetcher, NullMetricFetcher, SyncDeviceIntegrations
from hub.verifier import SignatureVerifier, build_verifier

logger = logging.getLogger(__name__)


@dataclass
class Hub:
    settings: HubSettings
    cache: TTLCache
    keys: DeviceKeyStore
    devices: DeviceStore
    integrations: DeviceIntegrationStore
    challenges: ChallengeStore
    pairing_codes: PairingCodeRegistry
    verifier: SignatureVerifier
    bus: MessageBus
    issue_challenge: IssueChallenge
    verify_and_pair: VerifyAndPair
    redeem_pairing_code: RedeemPairingCode
    list_user_devices: ListUserDevices
    link_integration: LinkIntegration
    unlink_integration: UnlinkIntegration
    list_device_integrations: ListDeviceIntegrations
    publish_to_device: PublishToDevice
    sync_integrations: SyncDeviceIntegrations


def build_hub(
    settings: HubSettings,
    *,
    bus: MessageBus | None = None,
    fetcher: MetricFetcher | None = None,
    clock: Clock = time.monotonic,
    load_keys: bool = True,
) -> Hub:
    verifier = build_verifier(settings.signature_mode, settings.environment)

    cache = TTLCache(clock=clock)
    keys = DeviceKeyStore()
    if load_keys:
        keys.load_file(settings.device_keys_file)
    devices = DeviceStore()
    integrations = DeviceIntegrationStore()
    challenges = ChallengeStore(cache)
    pairing_codes = PairingCodeRegistry(cache, devices, ttl=settings.pairing_code_ttl)
    bus = bus if bus is not None else InMemoryMessageBus()
    publisher = PublishToDevice(bus)

    logger.info(
        "Hub wired: env=%s signatures=%s broker=%s:%d",
        settings.environment, verifier.mode.value, settings.mqtt_broker, settings.mqtt_port,
    )

    return Hub(
        settings=settings,
        cache=cache,
        keys=keys,
        devices=devices,
        integrations=integrations,
        challenges=challenges,
        pairing_codes=pairing_codes,
        verifier=verifier,
        bus=bus,
        issue_challenge=IssueChallenge(keys, challenges, settings),
        verify_and_pair=VerifyAndPair(keys, devices, challenges, verifier, pairing_codes, settings),
        redeem_pairing_code=RedeemPairingCode(pairing_codes),
        list_user_devices=ListUserDevices(devices),
        link_integration=LinkIntegration(devices, integrations),
        unlink_integration=UnlinkIntegration(devices, integrations),
        list_device_integrations=ListDeviceIntegrations(devices, integrations),
        publish_to_device=publisher,
        sync_integrations=SyncDeviceIntegrations(
            integrations,
            fetcher or NullMetricFetcher(),
            publisher,
            stale_after=timedelta(seconds=settings.sync_stale_after),
        ),
    )


# ---------------------------------------------------------------------------
# Process-wide instance (used by protocol handlers)
# ---------------------------------------------------------------------------

_hub: Hub | None = None


def get_hub() -> Hub:
    """Return the process hub, building it from the environment on first use."""
    global _hub
    if _hub is None:
        _hub = build_hub(HubSettings.from_env())
    return _hub


def set_hub(instance: Hub | None) -> None:
    global _hub
    _hub = instance
