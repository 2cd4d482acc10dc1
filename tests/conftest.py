# tests/conftest.py
from datetime import datetime, timezone
from typing import List, Sequence

import pytest
from fastapi.testclient import TestClient

from telebridge.config import Settings
from telebridge.dependencies import get_room_provisioner, get_twilio_client
from telebridge.errors import UpstreamError
from telebridge.main import create_app
from telebridge.services.room_service import RoomHandle, RoomSummary

LIVEKIT_SECRET = "test-livekit-secret-0123456789abcdef"


class FakeRoomProvisioner:
    def __init__(self):
        self.created: List[str] = []
        self.deleted: List[str] = []
        self.rooms: List[RoomSummary] = []
        self.fail_create = False

    async def create_room(self, name: str, *, empty_timeout: int, max_participants: int) -> RoomHandle:
        if self.fail_create:
            raise UpstreamError("LiveKit unreachable", room=name)
        self.created.append(name)
        return RoomHandle(
            name=name,
            sid=f"RM_{name}",
            empty_timeout=empty_timeout,
            max_participants=max_participants,
        )

    async def list_active_rooms(self, prefixes: Sequence[str] = ()) -> List[RoomSummary]:
        return [r for r in self.rooms if not prefixes or r.name.startswith(tuple(prefixes))]

    async def delete_room(self, name: str) -> None:
        self.deleted.append(name)


class FakeTwilioClient:
    def __init__(self):
        self.calls: list = []
        self.fail = False

    def create_outbound_call(self, to_number: str, *, voice_url: str, status_callback: str, status_events=()) -> str:
        if self.fail:
            raise UpstreamError("Twilio rejected the call", to=to_number)
        self.calls.append(
            {
                "to": to_number,
                "voice_url": voice_url,
                "status_callback": status_callback,
                "status_events": list(status_events),
            }
        )
        return f"CA_FAKE_{len(self.calls)}"


def make_settings(**overrides) -> Settings:
    values = dict(
        LIVEKIT_WS_URL="wss://livekit.example.com",
        LIVEKIT_API_KEY="APItestkey",
        LIVEKIT_API_SECRET=LIVEKIT_SECRET,
        LIVEKIT_SIP_DOMAIN="sip.example.com",
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="token",
        TWILIO_PHONE_NUMBER="+15005550006",
        PUBLIC_BASE_URL="https://bridge.example.com",
        STATIC_DIR="__no_static_dir__",
        CALL_STORE_BACKEND="memory",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def fake_rooms() -> FakeRoomProvisioner:
    rooms = FakeRoomProvisioner()
    rooms.rooms = [
        RoomSummary(
            name="twilio-tgl-15551230000",
            num_participants=1,
            created_at=datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
        ),
        RoomSummary(
            name="unrelated-room",
            num_participants=3,
            created_at=datetime(2025, 1, 1, 9, 5, tzinfo=timezone.utc),
        ),
    ]
    return rooms


@pytest.fixture()
def fake_twilio() -> FakeTwilioClient:
    return FakeTwilioClient()


@pytest.fixture()
def app(settings, fake_rooms, fake_twilio):
    app = create_app(settings)
    app.dependency_overrides[get_room_provisioner] = lambda: fake_rooms
    app.dependency_overrides[get_twilio_client] = lambda: fake_twilio
    return app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def registry(app, client):
    return app.state.registry
