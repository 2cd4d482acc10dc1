# tests/test_call_service.py
import asyncio

import pytest
import requests

from telebridge.dependencies import get_twilio_client
from telebridge.errors import UpstreamError
from telebridge.models.call import CallStatus
from telebridge.services.call_registry import CallRegistry
from telebridge.services.call_service import place_outbound_call
from telebridge.services.kv_store import InMemoryKeyValueStore
from telebridge.services.twilio_client import TwilioClient
from tests.conftest import FakeRoomProvisioner, FakeTwilioClient


def _place(registry, twilio_client, rooms):
    return asyncio.run(
        place_outbound_call(
            registry=registry,
            twilio_client=twilio_client,
            rooms=rooms,
            patient_id="42",
            patient_phone="+15559999",
            provider_id="P1",
            callback_base_url="https://bridge.example.com/",
            empty_timeout=600,
            max_participants=10,
        )
    )


def test_place_outbound_call_registers_initiated_record():
    registry = CallRegistry(InMemoryKeyValueStore())
    twilio_client = FakeTwilioClient()
    rooms = FakeRoomProvisioner()

    record = _place(registry, twilio_client, rooms)

    assert record.call_id == "CA_FAKE_1"
    assert record.room_name.startswith("call-42-")
    assert rooms.created == [record.room_name]

    stored = registry.get(record.call_id)
    assert stored.status == CallStatus.INITIATED
    assert stored.provider_id == "P1"
    assert len(registry.list_all()) == 1

    placed = twilio_client.calls[0]
    assert placed["to"] == "+15559999"
    assert placed["voice_url"] == (
        f"https://bridge.example.com/api/twiml/connect-sip?room={record.room_name}"
    )
    assert placed["status_callback"] == "https://bridge.example.com/api/call-status"
    assert placed["status_events"] == ["initiated", "answered", "completed"]


def test_place_outbound_call_deletes_room_when_twilio_fails():
    registry = CallRegistry(InMemoryKeyValueStore())
    twilio_client = FakeTwilioClient()
    twilio_client.fail = True
    rooms = FakeRoomProvisioner()

    with pytest.raises(UpstreamError) as excinfo:
        _place(registry, twilio_client, rooms)

    assert rooms.deleted == rooms.created
    assert excinfo.value.context["room"] == rooms.created[0]
    assert registry.list_all() == []


def test_place_outbound_call_stops_when_room_creation_fails():
    registry = CallRegistry(InMemoryKeyValueStore())
    twilio_client = FakeTwilioClient()
    rooms = FakeRoomProvisioner()
    rooms.fail_create = True

    with pytest.raises(UpstreamError):
        _place(registry, twilio_client, rooms)

    assert twilio_client.calls == []
    assert registry.list_all() == []


class _UnreachableTwilioCalls:
    def create(self, **kwargs):
        raise requests.exceptions.ConnectionError("Failed to establish a new connection")


class _UnreachableTwilioSDK:
    calls = _UnreachableTwilioCalls()


def unreachable_twilio_client() -> TwilioClient:
    client = TwilioClient(account_sid="AC123", auth_token="token", from_number="+15005550006")
    client._client = _UnreachableTwilioSDK()
    return client


def test_twilio_network_error_becomes_upstream_error_and_deletes_room():
    registry = CallRegistry(InMemoryKeyValueStore())
    rooms = FakeRoomProvisioner()

    with pytest.raises(UpstreamError) as excinfo:
        _place(registry, unreachable_twilio_client(), rooms)

    assert "Failed to establish" in excinfo.value.detail
    assert rooms.created and rooms.deleted == rooms.created
    assert registry.list_all() == []


def test_call_patient_when_twilio_unreachable_returns_error_body(app, client, fake_rooms):
    app.dependency_overrides[get_twilio_client] = unreachable_twilio_client

    response = client.post(
        "/api/call-patient",
        json={"patientId": "42", "patientPhone": "+15559999", "providerId": "P1"},
    )

    assert response.status_code == 500
    assert "Failed to establish" in response.json()["error"]
    assert fake_rooms.deleted == fake_rooms.created
