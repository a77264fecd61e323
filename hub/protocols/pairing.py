"""
User-side pairing protocol.

Signed-in users redeem the code shown on a device, list the devices
they own, and link or list the metric integrations of those devices.
The caller's identity (``user_id``) is established upstream by the
user-facing gateway.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from uagents import Context, Protocol

from hub.app import Hub, get_hub
from hub.errors import DeviceAuthError
from hub.protocols.models import (
    IntegrationResponse,
    LinkIntegrationRequest,
    ListDevicesRequest,
    ListDevicesResponse,
    ListIntegrationsRequest,
    ListIntegrationsResponse,
    RedeemCodeRequest,
    RedeemCodeResponse,
    UnlinkIntegrationRequest,
)
from shared.schemas import AuthErrorKind, Device, RedeemRequestData

logger = logging.getLogger(__name__)

pairing_protocol = Protocol(name="device-pairing", version="0.1.0")


def device_summary(device: Device) -> dict:
    return {
        "id": device.id,
        "uuid": device.uuid,
        "name": device.name,
        "status": device.status.value,
    }


def redeem_reply(hub: Hub, msg: RedeemCodeRequest) -> RedeemCodeResponse:
    """Redeem *msg*'s code against *hub* and build the reply."""
    try:
        data = RedeemRequestData(user_id=msg.user_id, pairing_code=msg.pairing_code)
    except ValidationError:
        return RedeemCodeResponse(
            success=False,
            error=AuthErrorKind.INVALID_REQUEST.value,
            status=422,
            message="The pairing code must be exactly 6 digits.",
        )

    device = hub.redeem_pairing_code.execute(data.pairing_code, data.user_id)
    if device is None:
        return RedeemCodeResponse(
            success=False,
            error=AuthErrorKind.PAIRING_CODE_NOT_FOUND.value,
            status=422,
            message="Invalid or expired pairing code",
        )
    return RedeemCodeResponse(success=True, device=device_summary(device), message="Device paired.")


def list_integrations_reply(hub: Hub, msg: ListIntegrationsRequest) -> ListIntegrationsResponse:
    try:
        integrations = hub.list_device_integrations.execute(msg.user_id, msg.device_id)
    except DeviceAuthError as exc:
        return ListIntegrationsResponse(
            success=False,
            device_id=msg.device_id,
            error=exc.kind.value,
            status=exc.status,
            message=exc.message,
        )
    return ListIntegrationsResponse(
        success=True,
        device_id=msg.device_id,
        integrations=[i.model_dump(mode="json") for i in integrations],
    )


@pairing_protocol.on_message(RedeemCodeRequest, replies={RedeemCodeResponse})
async def handle_redeem(ctx: Context, sender: str, msg: RedeemCodeRequest):
    reply = redeem_reply(get_hub(), msg)
    if reply.success:
        ctx.logger.info("User %s paired device %s", msg.user_id, reply.device["uuid"])
    await ctx.send(sender, reply)


@pairing_protocol.on_message(ListIntegrationsRequest, replies={ListIntegrationsResponse})
async def handle_list_integrations(ctx: Context, sender: str, msg: ListIntegrationsRequest):
    await ctx.send(sender, list_integrations_reply(get_hub(), msg))


@pairing_protocol.on_message(ListDevicesRequest, replies={ListDevicesResponse})
async def handle_list_devices(ctx: Context, sender: str, msg: ListDevicesRequest):
    hub = get_hub()

    devices = hub.list_user_devices.execute(msg.user_id)
    await ctx.send(
        sender,
        ListDevicesResponse(
            user_id=msg.user_id,
            devices=[d.model_dump(mode="json") for d in devices],
        ),
    )


@pairing_protocol.on_message(LinkIntegrationRequest, replies={IntegrationResponse})
async def handle_link_integration(ctx: Context, sender: str, msg: LinkIntegrationRequest):
    hub = get_hub()

    try:
        integration = hub.link_integration.execute(
            msg.user_id,
            msg.device_uuid,
            msg.provider,
            msg.metric_type,
            label=msg.label,
            color=msg.color,
        )
    except DeviceAuthError as exc:
        await ctx.send(sender, IntegrationResponse(success=False, message=exc.message))
        return

    await ctx.send(
        sender,
        IntegrationResponse(success=True, integration=integration.model_dump(mode="json")),
    )


@pairing_protocol.on_message(UnlinkIntegrationRequest, replies={IntegrationResponse})
async def handle_unlink_integration(ctx: Context, sender: str, msg: UnlinkIntegrationRequest):
    hub = get_hub()

    try:
        removed = hub.unlink_integration.execute(msg.user_id, msg.integration_id)
    except DeviceAuthError as exc:
        await ctx.send(sender, IntegrationResponse(success=False, message=exc.message))
        return

    await ctx.send(
        sender,
        IntegrationResponse(
            success=removed,
            message="" if removed else f"Integration {msg.integration_id} not found",
        ),
    )
