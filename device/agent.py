"""
Device simulator – local uAgents-based stand-in for device firmware.

This agent runs on a developer machine and:
  1. Loads the device's P-256 keypair (or uses simulated signatures)
  2. Requests a challenge from the hub on startup
  3. Signs the challenge and submits it with its network metadata
  4. Logs the pairing code a real device would show on its screen

Usage:
    python -m device.agent
"""

from __future__ import annotations

import logging
import os
import socket
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("device")

# ---------------------------------------------------------------------------
# Identity – load keypair or fall back to simulated signatures
# ---------------------------------------------------------------------------

from device.signer import ChallengeSigner  # noqa: E402
from shared.crypto import load_keypair  # noqa: E402

DEVICE_UUID = os.getenv("DEVICE_UUID", "550e8400-e29b-41d4-a716-446655440001")
KEY_DIR = Path(os.getenv("DEVICE_KEY_DIR", f"./keys/{DEVICE_UUID}"))
_SIGNATURE_MODE = os.getenv("DEVICE_SIGNATURE_MODE", "ecdsa").lower()

if _SIGNATURE_MODE == "simulated":
    logger.info("Using simulated signatures for %s", DEVICE_UUID)
    signer = ChallengeSigner(DEVICE_UUID)
elif (KEY_DIR / "private.pem").exists():
    logger.info("Loading device keypair from %s", KEY_DIR)
    _private_key, _ = load_keypair(KEY_DIR)
    signer = ChallengeSigner(DEVICE_UUID, _private_key)
else:
    raise SystemExit(
        f"No keypair in {KEY_DIR}. Provision one with scripts/provision_device.py "
        "or set DEVICE_SIGNATURE_MODE=simulated."
    )

# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------

from uagents import Agent, Context  # noqa: E402

_DEVICE_SEED = os.getenv("DEVICE_AGENT_SEED", f"device-simulator-{DEVICE_UUID}")
_NETWORK = os.getenv("AGENT_NETWORK", "testnet")  # testnet by default
_PORT = int(os.getenv("DEVICE_PORT", "8301"))

device_agent = Agent(
    name="device-simulator",
    seed=_DEVICE_SEED,
    port=_PORT,
    endpoint=[f"http://{os.getenv('DEVICE_HOST', '127.0.0.1')}:{_PORT}/submit"],
    network=_NETWORK,
)

from hub.protocols.models import (  # noqa: E402
    AuthErrorResponse,
    ChallengeRequest,
    ChallengeResponse,
    VerifyRequest,
    VerifyResponse,
)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

_HUB_ADDRESS = os.getenv("HUB_AGENT_ADDRESS", "")
_MAC_ADDRESS = os.getenv("DEVICE_MAC_ADDRESS") or None
_FIRMWARE_VERSION = os.getenv("DEVICE_FIRMWARE_VERSION", "sim-0.1.0")


def _local_ip() -> str | None:
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError:
        return None


# ---------------------------------------------------------------------------
# Startup – request a challenge
# ---------------------------------------------------------------------------

@device_agent.on_event("startup")
async def on_startup(ctx: Context):
    ctx.logger.info("Device simulator started")
    ctx.logger.info("Agent address : %s", device_agent.address)
    ctx.logger.info("Device UUID   : %s", DEVICE_UUID)
    ctx.logger.info("Signatures    : %s", "simulated" if signer.is_simulated else "ecdsa")

    if not _HUB_ADDRESS:
        ctx.logger.warning(
            "HUB_AGENT_ADDRESS not set – skipping authentication. "
            "Set it in .env to authenticate on startup."
        )
        return

    ctx.logger.info("Requesting challenge from hub %s", _HUB_ADDRESS)
    await ctx.send(_HUB_ADDRESS, ChallengeRequest(device_uuid=DEVICE_UUID))


# ---------------------------------------------------------------------------
# Challenge → signed verification
# ---------------------------------------------------------------------------

@device_agent.on_message(ChallengeResponse, replies={VerifyRequest})
async def handle_challenge(ctx: Context, sender: str, msg: ChallengeResponse):
    ctx.logger.info("Challenge received (expires in %ds) – signing", msg.expires_in)
    await ctx.send(
        sender,
        VerifyRequest(
            device_uuid=DEVICE_UUID,
            challenge=msg.challenge,
            signature=signer.sign(msg.challenge),
            mac_address=_MAC_ADDRESS,
            ip_address=_local_ip(),
            firmware_version=_FIRMWARE_VERSION,
        ),
    )


@device_agent.on_message(VerifyResponse)
async def handle_verified(ctx: Context, sender: str, msg: VerifyResponse):
    ctx.logger.info("✅  Authenticated. Pairing code: %s", msg.pairing_code)
    ctx.logger.info("Broker        : %s:%s", msg.mqtt.get("broker"), msg.mqtt.get("port"))
    for name, topic in msg.topics.items():
        ctx.logger.info("Topic %-9s: %s", name, topic)


@device_agent.on_message(AuthErrorResponse)
async def handle_auth_error(ctx: Context, sender: str, msg: AuthErrorResponse):
    # No automatic retry: restart the simulator to run the flow again.
    ctx.logger.error("❌  Authentication failed (%s/%d): %s", msg.error, msg.status, msg.message)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main():
    logger.info("Starting device simulator agent…")
    device_agent.run()


if __name__ == "__main__":
    main()
