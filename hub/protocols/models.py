"""
uAgents message models for the Device ↔ Hub and User ↔ Hub protocols.

These are thin wrappers that the uAgents framework uses for on-the-wire
serialisation.  Field names are the contract with device firmware.
Validation rules and business-logic schemas live in ``shared.schemas``.
"""

from __future__ import annotations

from typing import Any, Optional

from uagents import Model


# ---------------------------------------------------------------------------
# Device authentication (Device → Hub)
# ---------------------------------------------------------------------------

class ChallengeRequest(Model):
    device_uuid: str


class ChallengeResponse(Model):
    challenge: str       # 64-char lowercase hex
    expires_in: int


class VerifyRequest(Model):
    device_uuid: str
    challenge: str
    signature: str       # base64
    mac_address: Optional[str] = None
    ip_address: Optional[str] = None
    firmware_version: Optional[str] = None


class VerifyResponse(Model):
    pairing_code: str
    mqtt: dict[str, Any]      # {broker, port}
    topics: dict[str, str]    # integration | config | command | status | heartbeat


class AuthErrorResponse(Model):
    """Returned instead of the success model when a request fails."""
    error: str           # AuthErrorKind value
    status: int          # HTTP-style status
    message: str = ""


# ---------------------------------------------------------------------------
# User pairing (User → Hub)
# ---------------------------------------------------------------------------

class RedeemCodeRequest(Model):
    user_id: str
    pairing_code: str


class RedeemCodeResponse(Model):
    success: bool
    device: dict[str, Any] = {}   # {id, uuid, name, status}
    error: Optional[str] = None   # AuthErrorKind value on failure
    status: int = 200
    message: str = ""


class ListDevicesRequest(Model):
    user_id: str


class ListDevicesResponse(Model):
    user_id: str
    devices: list[dict[str, Any]] = []


# ---------------------------------------------------------------------------
# Device integrations (User → Hub)
# ---------------------------------------------------------------------------

class LinkIntegrationRequest(Model):
    user_id: str
    device_uuid: str
    provider: str
    metric_type: str
    label: Optional[str] = None
    color: Optional[str] = None


class UnlinkIntegrationRequest(Model):
    user_id: str
    integration_id: int


class IntegrationResponse(Model):
    success: bool
    integration: dict[str, Any] = {}
    message: str = ""


class ListIntegrationsRequest(Model):
    user_id: str
    device_id: int


class ListIntegrationsResponse(Model):
    success: bool
    device_id: int
    integrations: list[dict[str, Any]] = []
    error: Optional[str] = None
    status: int = 200
    message: str = ""
