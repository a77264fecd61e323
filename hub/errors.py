"""
Device authentication error taxonomy.

Each error carries the kind reported on the wire and an HTTP-style
status so boundary handlers can answer without a lookup table.
"""

from __future__ import annotations

from shared.schemas import AuthErrorKind


class DeviceAuthError(Exception):
    kind: AuthErrorKind
    status: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DeviceUnknown(DeviceAuthError):
    """The device UUID was never provisioned."""
    kind = AuthErrorKind.DEVICE_UNKNOWN
    status = 404

    def __init__(self, device_uuid: str):
        super().__init__(f"Device not registered: {device_uuid}")
        self.device_uuid = device_uuid


class ChallengeExpired(DeviceAuthError):
    """No live challenge: never issued, already used, or TTL elapsed."""
    kind = AuthErrorKind.CHALLENGE_EXPIRED
    status = 410

    def __init__(self):
        super().__init__("Challenge expired or not found")


class ChallengeMismatch(DeviceAuthError):
    kind = AuthErrorKind.CHALLENGE_MISMATCH
    status = 400

    def __init__(self):
        super().__init__("Challenge mismatch")


class InvalidSignature(DeviceAuthError):
    kind = AuthErrorKind.INVALID_SIGNATURE
    status = 401

    def __init__(self):
        super().__init__("Invalid signature")


class DeviceNotOwned(DeviceAuthError):
    kind = AuthErrorKind.DEVICE_NOT_OWNED
    status = 403

    def __init__(self, device_uuid: str):
        super().__init__(f"Device {device_uuid} is not owned by this user")
        self.device_uuid = device_uuid
