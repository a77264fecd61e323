"""
Main entry point for the Device Link Hub agent.

It wires together:

  • Device-auth protocol  – challenge issue + signature verification
  • Pairing protocol      – code redemption, device listing, integrations
  • Sync job              – periodic metric refresh published to devices
  • Stores                – device keys, devices, challenges, pairing codes

Usage (local dev):
    python -m hub.agent
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("hub")

# ---------------------------------------------------------------------------
# Hub instance (protocol handlers reach it through hub.app.get_hub)
# ---------------------------------------------------------------------------

from hub.app import get_hub  # noqa: E402

hub = get_hub()
settings = hub.settings

_SEED = os.getenv("HUB_AGENT_SEED", "device-link-hub-dev-seed")
_NETWORK = os.getenv("AGENT_NETWORK", "testnet")  # testnet by default
_PORT = int(os.getenv("HUB_PORT", "8300"))

# ---------------------------------------------------------------------------
# Agent construction
# ---------------------------------------------------------------------------

from uagents import Agent, Context  # noqa: E402

agent = Agent(
    name="device-link-hub",
    seed=_SEED,
    port=_PORT,
    endpoint=[f"http://{os.getenv('HUB_HOST', '127.0.0.1')}:{_PORT}/submit"],
    network=_NETWORK,
)

# ---------------------------------------------------------------------------
# Register protocols
# ---------------------------------------------------------------------------

from hub.protocols.device_auth import device_auth_protocol  # noqa: E402
from hub.protocols.pairing import pairing_protocol  # noqa: E402

agent.include(device_auth_protocol, publish_manifest=True)
agent.include(pairing_protocol, publish_manifest=True)

# ---------------------------------------------------------------------------
# Startup hook
# ---------------------------------------------------------------------------

@agent.on_event("startup")
async def on_startup(ctx: Context):
    ctx.logger.info("Device link hub started")
    ctx.logger.info("Agent address : %s", agent.address)
    ctx.logger.info("Network       : %s", _NETWORK)
    ctx.logger.info("Environment   : %s", settings.environment)
    ctx.logger.info("Signatures    : %s", hub.verifier.mode.value)
    ctx.logger.info("Device keys   : %d provisioned", len(hub.keys.all_keys()))
    ctx.logger.info("Broker        : %s:%d", settings.mqtt_broker, settings.mqtt_port)


# ---------------------------------------------------------------------------
# Scheduled jobs
# ---------------------------------------------------------------------------

@agent.on_interval(period=settings.sync_interval)
async def sync_integrations(ctx: Context):
    report = hub.sync_integrations.run()
    if report.checked:
        ctx.logger.info(
            "Integration sync: %d checked, %d published, %d failed",
            report.checked, report.published, len(report.failed),
        )
    hub.cache.purge_expired()


# ---------------------------------------------------------------------------
# CLI entry point (local dev)
# ---------------------------------------------------------------------------

def main():
    logger.info("Starting Device Link Hub agent…")
    agent.run()


if __name__ == "__main__":
    main()
