"""Shared fixtures: a controllable clock and fully wired hubs."""

import uuid

import pytest

from hub.app import build_hub
from hub.config import HubSettings
from shared.crypto import generate_keypair, public_key_to_pem


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def hub(clock):
    """Production-style hub: real ECDSA verification."""
    return build_hub(HubSettings(environment="production"), clock=clock, load_keys=False)


@pytest.fixture
def dev_hub(clock):
    """Development hub accepting simulated signatures."""
    return build_hub(
        HubSettings(environment="local", signature_mode="simulated"),
        clock=clock,
        load_keys=False,
    )


@pytest.fixture
def provisioned(hub):
    """A device with a real keypair registered in ``hub``: (uuid, private_key)."""
    device_uuid = str(uuid.uuid4())
    priv, pub = generate_keypair()
    hub.keys.provision(device_uuid, public_key_to_pem(pub))
    return device_uuid, priv
