"""
Hub configuration.

Settings are read from the environment once, at process wiring time,
and handed to the components that need them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CHALLENGE_TTL_SECONDS = 60
DEFAULT_PAIRING_CODE_TTL_SECONDS = 10 * 60


class ConfigurationError(RuntimeError):
    """Raised when the hub is wired with an invalid configuration."""


@dataclass(frozen=True)
class HubSettings:
    environment: str = "production"
    signature_mode: str = "ecdsa"
    mqtt_broker: str = "localhost"
    mqtt_port: int = 1883
    challenge_ttl: int = DEFAULT_CHALLENGE_TTL_SECONDS
    pairing_code_ttl: int = DEFAULT_PAIRING_CODE_TTL_SECONDS
    device_keys_file: Path = Path("./device_keys.json")
    sync_interval: float = 60.0
    sync_stale_after: int = 300

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls) -> "HubSettings":
        try:
            return cls(
                environment=os.getenv("HUB_ENV", "production"),
                signature_mode=os.getenv("HUB_SIGNATURE_MODE", "ecdsa").lower(),
                mqtt_broker=os.getenv("MQTT_HOST", "localhost"),
                mqtt_port=int(os.getenv("MQTT_PORT", "1883")),
                challenge_ttl=int(os.getenv("HUB_CHALLENGE_TTL", str(DEFAULT_CHALLENGE_TTL_SECONDS))),
                pairing_code_ttl=int(
                    os.getenv("HUB_PAIRING_CODE_TTL", str(DEFAULT_PAIRING_CODE_TTL_SECONDS))
                ),
                device_keys_file=Path(os.getenv("HUB_DEVICE_KEYS_FILE", "./device_keys.json")),
                sync_interval=float(os.getenv("HUB_SYNC_INTERVAL", "60")),
                sync_stale_after=int(os.getenv("HUB_SYNC_STALE_AFTER", "300")),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc
