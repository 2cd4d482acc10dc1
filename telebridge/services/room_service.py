# telebridge/services/room_service.py
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence

from livekit import api

from telebridge.config import Settings
from telebridge.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomHandle:
    name: str
    sid: str
    empty_timeout: int
    max_participants: int


@dataclass(frozen=True)
class RoomSummary:
    name: str
    num_participants: int
    created_at: datetime


def _http_url(url: str) -> str:
    if url.startswith("wss://"):
        return "https://" + url.removeprefix("wss://")
    if url.startswith("ws://"):
        return "http://" + url.removeprefix("ws://")
    return url


class RoomProvisioner:
    """
    Thin wrapper around the LiveKit room service API.

    A fresh LiveKitAPI session is opened per operation; its aiohttp session
    must be created inside the running event loop.
    """

    def __init__(self, url: str, api_key: str, api_secret: str):
        self._url = _http_url(url)
        self._api_key = api_key
        self._api_secret = api_secret

    def _client(self) -> api.LiveKitAPI:
        return api.LiveKitAPI(self._url, self._api_key, self._api_secret)

    async def create_room(
        self,
        name: str,
        *,
        empty_timeout: int,
        max_participants: int,
    ) -> RoomHandle:
        """
        Create a room. Not idempotent: callers must pick unique names.
        """
        lkapi = self._client()
        try:
            room = await lkapi.room.create_room(
                api.CreateRoomRequest(
                    name=name,
                    empty_timeout=empty_timeout,
                    max_participants=max_participants,
                )
            )
        except Exception as exc:
            logger.error("Failed to create room room=%s error=%s", name, exc)
            raise UpstreamError(str(exc), room=name) from exc
        finally:
            await lkapi.aclose()

        logger.info("Room created room=%s sid=%s", room.name, room.sid)
        return RoomHandle(
            name=room.name,
            sid=room.sid,
            empty_timeout=empty_timeout,
            max_participants=max_participants,
        )

    async def list_active_rooms(self, prefixes: Sequence[str] = ()) -> List[RoomSummary]:
        """
        List rooms whose name starts with one of `prefixes` (all rooms if empty).

        Used to recover visibility into in-flight calls after a restart.
        """
        lkapi = self._client()
        try:
            response = await lkapi.room.list_rooms(api.ListRoomsRequest())
        except Exception as exc:
            logger.error("Failed to list rooms error=%s", exc)
            raise UpstreamError(str(exc)) from exc
        finally:
            await lkapi.aclose()

        summaries: List[RoomSummary] = []
        for room in response.rooms:
            if prefixes and not room.name.startswith(tuple(prefixes)):
                continue
            summaries.append(
                RoomSummary(
                    name=room.name,
                    num_participants=int(room.num_participants),
                    created_at=datetime.fromtimestamp(int(room.creation_time), tz=timezone.utc),
                )
            )
        return summaries

    async def delete_room(self, name: str) -> None:
        lkapi = self._client()
        try:
            await lkapi.room.delete_room(api.DeleteRoomRequest(room=name))
        except Exception as exc:
            logger.error("Failed to delete room room=%s error=%s", name, exc)
            raise UpstreamError(str(exc), room=name) from exc
        finally:
            await lkapi.aclose()
        logger.info("Room deleted room=%s", name)


def build_room_provisioner(settings: Settings) -> RoomProvisioner:
    """
    Build a RoomProvisioner from settings.
    Raises ConfigurationError if LiveKit configuration is incomplete.
    """
    missing: list[str] = []
    if not settings.LIVEKIT_WS_URL:
        missing.append("LIVEKIT_WS_URL")
    if not settings.LIVEKIT_API_KEY:
        missing.append("LIVEKIT_API_KEY")
    if not settings.LIVEKIT_API_SECRET:
        missing.append("LIVEKIT_API_SECRET")

    if missing:
        raise ConfigurationError(f"LiveKit not configured, missing: {', '.join(missing)}")

    return RoomProvisioner(
        url=settings.LIVEKIT_WS_URL,
        api_key=settings.LIVEKIT_API_KEY,
        api_secret=settings.LIVEKIT_API_SECRET,
    )
