"""
Device authentication protocol.

Handles the two challenge-response steps sent by device firmware:
  1. ChallengeRequest → ChallengeResponse
  2. VerifyRequest    → VerifyResponse (pairing code + broker topics)

Failures are answered with :class:`AuthErrorResponse`.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from uagents import Context, Protocol

from hub.app import get_hub
from hub.errors import DeviceAuthError
from hub.protocols.models import (
    AuthErrorResponse,
    ChallengeRequest,
    ChallengeResponse,
    VerifyRequest,
    VerifyResponse,
)
from shared.schemas import AuthErrorKind, ChallengeRequestData, VerifyRequestData

logger = logging.getLogger(__name__)

device_auth_protocol = Protocol(name="device-auth", version="0.1.0")


def error_response(exc: DeviceAuthError | ValidationError) -> AuthErrorResponse:
    if isinstance(exc, ValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return AuthErrorResponse(
            error=AuthErrorKind.INVALID_REQUEST.value,
            status=422,
            message=problems,
        )
    return AuthErrorResponse(error=exc.kind.value, status=exc.status, message=exc.message)


@device_auth_protocol.on_message(
    ChallengeRequest, replies={ChallengeResponse, AuthErrorResponse}
)
async def handle_challenge_request(ctx: Context, sender: str, msg: ChallengeRequest):
    hub = get_hub()

    try:
        data = ChallengeRequestData(device_uuid=msg.device_uuid)
        issued = hub.issue_challenge.execute(data.device_uuid)
    except (DeviceAuthError, ValidationError) as exc:
        ctx.logger.info("Challenge request from %s rejected: %s", sender, exc)
        await ctx.send(sender, error_response(exc))
        return

    await ctx.send(
        sender,
        ChallengeResponse(challenge=issued.challenge, expires_in=issued.expires_in),
    )


@device_auth_protocol.on_message(
    VerifyRequest, replies={VerifyResponse, AuthErrorResponse}
)
async def handle_verify_request(ctx: Context, sender: str, msg: VerifyRequest):
    hub = get_hub()

    try:
        data = VerifyRequestData(
            device_uuid=msg.device_uuid,
            challenge=msg.challenge,
            signature=msg.signature,
            mac_address=msg.mac_address,
            ip_address=msg.ip_address,
            firmware_version=msg.firmware_version,
        )
        result = hub.verify_and_pair.execute(
            data.device_uuid,
            data.challenge,
            data.signature,
            mac_address=data.mac_address,
            ip_address=data.ip_address,
            firmware_version=data.firmware_version,
        )
    except (DeviceAuthError, ValidationError) as exc:
        ctx.logger.warning("Verification from %s rejected: %s", sender, exc)
        await ctx.send(sender, error_response(exc))
        return

    ctx.logger.info("Device %s verified via %s", data.device_uuid, sender)
    await ctx.send(
        sender,
        VerifyResponse(
            pairing_code=result.pairing_code,
            mqtt=result.mqtt.model_dump(),
            topics=result.topics.model_dump(),
        ),
    )
