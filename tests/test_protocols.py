"""Tests for hub.protocols – error mapping and reply shapes."""

from pydantic import ValidationError

from hub.errors import ChallengeExpired, ChallengeMismatch, DeviceUnknown, InvalidSignature
from hub.protocols.device_auth import error_response
from hub.protocols.models import ListIntegrationsRequest, RedeemCodeRequest
from hub.protocols.pairing import device_summary, list_integrations_reply, redeem_reply
from shared.crypto import sign_challenge
from shared.schemas import ChallengeRequestData, Device


def test_error_kinds_and_statuses():
    cases = [
        (DeviceUnknown("abc"), "device_unknown", 404),
        (ChallengeExpired(), "challenge_expired", 410),
        (ChallengeMismatch(), "challenge_mismatch", 400),
        (InvalidSignature(), "invalid_signature", 401),
    ]
    for exc, kind, status in cases:
        response = error_response(exc)
        assert response.error == kind
        assert response.status == status
        assert response.message == exc.message


def test_validation_error_maps_to_invalid_request():
    try:
        ChallengeRequestData(device_uuid="nope")
    except ValidationError as exc:
        response = error_response(exc)
    assert response.error == "invalid_request"
    assert response.status == 422
    assert "device_uuid" in response.message


def test_device_summary():
    device = Device(id=3, uuid="u-3", name="Desk counter")
    assert device_summary(device) == {
        "id": 3,
        "uuid": "u-3",
        "name": "Desk counter",
        "status": "pairing",
    }


# =========================================================================
# Pairing replies
# =========================================================================

def _paired_device(hub, device_uuid, priv):
    issued = hub.issue_challenge.execute(device_uuid)
    return hub.verify_and_pair.execute(
        device_uuid, issued.challenge, sign_challenge(priv, issued.challenge)
    ).pairing_code


class TestRedeemReply:

    def test_success(self, hub, provisioned):
        device_uuid, priv = provisioned
        code = _paired_device(hub, device_uuid, priv)

        reply = redeem_reply(hub, RedeemCodeRequest(user_id="u_1", pairing_code=code))
        assert reply.success is True
        assert reply.error is None
        assert reply.device["uuid"] == device_uuid
        assert reply.device["status"] == "online"

    def test_unknown_code(self, hub):
        reply = redeem_reply(hub, RedeemCodeRequest(user_id="u_1", pairing_code="123456"))
        assert reply.success is False
        assert reply.error == "pairing_code_not_found"
        assert reply.status == 422
        assert reply.device == {}

    def test_used_code(self, hub, provisioned):
        device_uuid, priv = provisioned
        code = _paired_device(hub, device_uuid, priv)
        redeem_reply(hub, RedeemCodeRequest(user_id="u_1", pairing_code=code))

        reply = redeem_reply(hub, RedeemCodeRequest(user_id="u_2", pairing_code=code))
        assert reply.error == "pairing_code_not_found"
        assert hub.devices.find_by_uuid(device_uuid).owning_user_id == "u_1"

    def test_malformed_code(self, hub):
        reply = redeem_reply(hub, RedeemCodeRequest(user_id="u_1", pairing_code="12ab56"))
        assert reply.success is False
        assert reply.error == "invalid_request"
        assert reply.status == 422


class TestListIntegrationsReply:

    def test_owner_sees_integrations(self, hub, provisioned):
        device_uuid, priv = provisioned
        code = _paired_device(hub, device_uuid, priv)
        device = hub.redeem_pairing_code.execute(code, "u_1")
        hub.link_integration.execute("u_1", device_uuid, "github", "stars", label="Stars")

        reply = list_integrations_reply(
            hub, ListIntegrationsRequest(user_id="u_1", device_id=device.id)
        )
        assert reply.success is True
        assert [i["metric_type"] for i in reply.integrations] == ["stars"]

    def test_other_user_refused(self, hub, provisioned):
        device_uuid, priv = provisioned
        code = _paired_device(hub, device_uuid, priv)
        device = hub.redeem_pairing_code.execute(code, "u_1")

        reply = list_integrations_reply(
            hub, ListIntegrationsRequest(user_id="u_2", device_id=device.id)
        )
        assert reply.success is False
        assert reply.error == "device_not_owned"
        assert reply.status == 403
        assert reply.integrations == []
