"""Tests for shared.schemas – entities and boundary validation."""

import pytest
from pydantic import ValidationError

from shared.schemas import (
    ChallengeRequestData,
    Device,
    DeviceKey,
    DeviceStatus,
    DeviceTopics,
    RedeemRequestData,
    VerifyRequestData,
)

UUID = "550e8400-e29b-41d4-a716-446655440001"


def _verify_data(**overrides):
    data = {"device_uuid": UUID, "challenge": "a" * 64, "signature": "c2ln"}
    data.update(overrides)
    return VerifyRequestData(**data)


def test_device_topics_for_device():
    topics = DeviceTopics.for_device(UUID)
    assert topics.integration == f"devices/{UUID}/integration"
    assert topics.heartbeat == f"devices/{UUID}/heartbeat"
    assert len(topics.model_dump()) == 5


def test_device_defaults():
    device = Device(id=1, uuid=UUID)
    assert device.status == DeviceStatus.PAIRING
    assert device.is_paired is False
    assert device.created_at is not None


def test_device_key_activation_flag():
    key = DeviceKey(device_uuid=UUID, public_key="PEM")
    assert key.is_activated is False


def test_challenge_request_requires_uuid():
    assert ChallengeRequestData(device_uuid=UUID).device_uuid == UUID
    with pytest.raises(ValidationError):
        ChallengeRequestData(device_uuid="not-a-uuid")


def test_verify_request_valid_with_metadata():
    data = _verify_data(
        mac_address="aa:bb:cc:dd:ee:ff",
        ip_address="192.168.1.20",
        firmware_version="1.2.3",
    )
    assert data.ip_address == "192.168.1.20"


@pytest.mark.parametrize(
    "overrides",
    [
        {"challenge": "a" * 63},
        {"challenge": "a" * 65},
        {"signature": ""},
        {"mac_address": "AA-BB-CC-DD-EE-FF"},
        {"ip_address": "999.1.1.1"},
        {"firmware_version": "x" * 51},
        {"device_uuid": "1234"},
    ],
)
def test_verify_request_rejects(overrides):
    with pytest.raises(ValidationError):
        _verify_data(**overrides)


def test_redeem_request_requires_six_ascii_digits():
    assert RedeemRequestData(user_id="u_1", pairing_code="012345").pairing_code == "012345"
    for bad in ("12345", "1234567", "12a456", "١٢٣٤٥٦"):
        with pytest.raises(ValidationError):
            RedeemRequestData(user_id="u_1", pairing_code=bad)
