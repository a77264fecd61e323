"""
Canonical data schemas for the device link hub.

These Pydantic models are shared by the hub and the device simulator
so entities, results and boundary validation live in one place.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from ipaddress import ip_address
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TOPIC_SUFFIXES = ("integration", "config", "command", "status", "heartbeat")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DeviceStatus(str, Enum):
    PAIRING = "pairing"
    ONLINE = "online"
    OFFLINE = "offline"


class AuthErrorKind(str, Enum):
    DEVICE_UNKNOWN = "device_unknown"
    CHALLENGE_EXPIRED = "challenge_expired"
    CHALLENGE_MISMATCH = "challenge_mismatch"
    INVALID_SIGNATURE = "invalid_signature"
    PAIRING_CODE_NOT_FOUND = "pairing_code_not_found"
    DEVICE_NOT_OWNED = "device_not_owned"
    INVALID_REQUEST = "invalid_request"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class DeviceKey(BaseModel):
    """Identity provisioned at manufacturing time."""
    device_uuid: str
    public_key: str  # PEM-encoded P-256 public key
    activated_at: Optional[datetime] = None
    is_simulated: bool = False

    @property
    def is_activated(self) -> bool:
        return self.activated_at is not None


class Device(BaseModel):
    """Persistent device record."""
    id: int
    uuid: str
    owning_user_id: Optional[str] = None
    name: Optional[str] = None
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    firmware_version: Optional[str] = None
    status: DeviceStatus = DeviceStatus.PAIRING
    last_seen_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_paired(self) -> bool:
        return self.owning_user_id is not None


class DeviceIntegration(BaseModel):
    """A metric source linked to a device."""
    id: int
    device_uuid: str
    provider: str
    metric_type: str
    label: Optional[str] = None
    color: Optional[str] = None
    last_value: Optional[str] = None
    last_synced_at: Optional[datetime] = None
    is_active: bool = True


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class ChallengeIssued(BaseModel):
    challenge: str
    expires_in: int


class MqttConfig(BaseModel):
    broker: str
    port: int


class DeviceTopics(BaseModel):
    """Message-bus topics a paired device subscribes or publishes to."""
    integration: str
    config: str
    command: str
    status: str
    heartbeat: str

    @classmethod
    def for_device(cls, device_uuid: str) -> "DeviceTopics":
        return cls(**{suffix: f"devices/{device_uuid}/{suffix}" for suffix in TOPIC_SUFFIXES})


class PairingResult(BaseModel):
    """Returned to a device after successful verification."""
    pairing_code: str
    mqtt: MqttConfig
    topics: DeviceTopics


# ---------------------------------------------------------------------------
# Boundary validation
# ---------------------------------------------------------------------------

def _check_uuid(value: str) -> str:
    try:
        uuid.UUID(value)
    except ValueError:
        raise ValueError("Device UUID must be a valid UUID")
    return value


class ChallengeRequestData(BaseModel):
    device_uuid: str

    @field_validator("device_uuid")
    @classmethod
    def _uuid(cls, v: str) -> str:
        return _check_uuid(v)


class VerifyRequestData(BaseModel):
    device_uuid: str
    challenge: str = Field(min_length=64, max_length=64)
    signature: str = Field(min_length=1)
    mac_address: Optional[str] = Field(
        default=None, pattern=r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$"
    )
    ip_address: Optional[str] = None
    firmware_version: Optional[str] = Field(default=None, max_length=50)

    @field_validator("device_uuid")
    @classmethod
    def _uuid(cls, v: str) -> str:
        return _check_uuid(v)

    @field_validator("ip_address")
    @classmethod
    def _ip(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            ip_address(v)
        return v


class RedeemRequestData(BaseModel):
    user_id: str = Field(min_length=1)
    pairing_code: str = Field(pattern=r"^[0-9]{6}$")
