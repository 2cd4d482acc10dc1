# tests/test_livekit_router.py
import jwt

from telebridge.models.call import CallStatus
from tests.conftest import LIVEKIT_SECRET


def _claims(token: str) -> dict:
    return jwt.decode(token, LIVEKIT_SECRET, algorithms=["HS256"], options={"verify_aud": False})


def test_livekit_token_for_participant(client):
    resp = client.post(
        "/api/livekit-token",
        json={"participantName": "dr-smith", "roomName": "incoming-CA1"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["roomName"] == "incoming-CA1"
    assert body["wsUrl"] == "wss://livekit.example.com"

    claims = _claims(body["token"])
    assert claims["sub"] == "dr-smith"
    assert claims["video"]["room"] == "incoming-CA1"
    assert claims["video"]["canPublishData"] is True


def test_livekit_token_missing_credentials_is_500(app, client):
    app.state.settings = app.state.settings.model_copy(update={"LIVEKIT_API_KEY": None})

    resp = client.post(
        "/api/livekit-token",
        json={"participantName": "dr-smith", "roomName": "incoming-CA1"},
    )

    assert resp.status_code == 500
    assert resp.json() == {"error": "LiveKit credentials not configured"}


def test_livekit_token_requires_body_fields(client):
    resp = client.post("/api/livekit-token", json={"participantName": "dr-smith"})
    assert resp.status_code == 422


def test_active_rooms_lists_bridge_rooms_with_phone_numbers(client):
    client.post("/api/incoming-call", data={"CallSid": "CA123", "From": "+15551234"})

    resp = client.get("/api/active-rooms")

    assert resp.status_code == 200
    rooms = {r["roomName"]: r for r in resp.json()}
    assert set(rooms) == {"twilio-tgl-15551230000"}
    sip_room = rooms["twilio-tgl-15551230000"]
    assert sip_room["phoneNumber"] == "+15551230000"
    assert sip_room["participantCount"] == 1
    assert sip_room["callId"] is None


def test_active_rooms_joins_registry_data(client, fake_rooms):
    from datetime import datetime, timezone

    from telebridge.services.room_service import RoomSummary

    client.post("/api/incoming-call", data={"CallSid": "CA123", "From": "+15551234"})
    fake_rooms.rooms.append(
        RoomSummary(name="incoming-CA123", num_participants=1, created_at=datetime.now(timezone.utc))
    )

    rooms = {r["roomName"]: r for r in client.get("/api/active-rooms").json()}

    assert rooms["incoming-CA123"]["callId"] == "CA123"
    assert rooms["incoming-CA123"]["phoneNumber"] == "+15551234"

    only_incoming = client.get("/api/active-rooms", params={"prefix": "incoming-"}).json()
    assert [r["roomName"] for r in only_incoming] == ["incoming-CA123"]


def test_join_room_registers_side_entry_for_sip_room(client, registry):
    resp = client.post(
        "/api/join-room",
        json={"roomName": "twilio-tgl-15551230000", "providerId": "P3"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert _claims(body["token"])["sub"] == "provider-P3"

    record = registry.find_by_room("twilio-tgl-15551230000")
    assert record.call_id == "sip-twilio-tgl-15551230000"
    assert record.status == CallStatus.ACTIVE
    assert record.counterparty_phone == "+15551230000"

    active = client.get("/api/active-calls/P3").json()
    assert [c["roomName"] for c in active] == ["twilio-tgl-15551230000"]


def test_join_room_attaches_provider_to_known_call(client, registry):
    call_id = client.post(
        "/api/call-patient",
        json={"patientId": "42", "patientPhone": "+15559999"},
    ).json()["callId"]
    room_name = registry.get(call_id).room_name

    resp = client.post("/api/join-room", json={"roomName": room_name, "providerId": "P4"})

    assert resp.status_code == 200
    assert registry.get(call_id).provider_id == "P4"
    assert len(registry.list_all()) == 1
