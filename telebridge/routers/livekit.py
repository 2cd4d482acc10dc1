# telebridge/routers/livekit.py
import logging
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool

from telebridge.config import Settings
from telebridge.dependencies import get_app_settings, get_registry, get_room_provisioner
from telebridge.schemas.calls import (
    ActiveRoomOut,
    JoinRoomRequest,
    JoinRoomResponse,
    TokenRequest,
    TokenResponse,
)
from telebridge.services.call_registry import CallRegistry
from telebridge.services.inbound_service import join_room, phone_from_sip_room
from telebridge.services.room_service import RoomProvisioner
from telebridge.services.token_service import issue_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["livekit"])

BRIDGE_ROOM_PREFIXES = ("incoming-", "call-")


@router.get("/active-rooms", response_model=List[ActiveRoomOut])
async def list_active_rooms(
    prefix: Optional[str] = Query(None),
    settings: Settings = Depends(get_app_settings),
    registry: CallRegistry = Depends(get_registry),
    rooms: RoomProvisioner = Depends(get_room_provisioner),
):
    """
    Rooms currently alive on LiveKit that belong to phone calls.

    This is also how the dashboard sees calls the registry forgot about
    (process restart, SIP-dispatched rooms).
    """
    prefixes = (prefix,) if prefix else (settings.SIP_ROOM_PREFIX, *BRIDGE_ROOM_PREFIXES)
    summaries = await rooms.list_active_rooms(prefixes)

    out: List[ActiveRoomOut] = []
    for room in summaries:
        record = await run_in_threadpool(registry.find_by_room, room.name)
        phone = record.counterparty_phone if record else None
        out.append(
            ActiveRoomOut(
                room_name=room.name,
                phone_number=phone or phone_from_sip_room(room.name, settings.SIP_ROOM_PREFIX),
                participant_count=room.num_participants,
                created_at=room.created_at,
                call_id=record.call_id if record else None,
            )
        )
    return out


@router.post("/livekit-token", response_model=TokenResponse)
def create_livekit_token(
    payload: TokenRequest,
    settings: Settings = Depends(get_app_settings),
):
    logger.info(
        "Generating LiveKit token participant=%s room=%s type=%s",
        payload.participant_name,
        payload.room_name,
        payload.participant_type,
    )
    token = issue_token(
        api_key=settings.LIVEKIT_API_KEY,
        api_secret=settings.LIVEKIT_API_SECRET,
        identity=payload.participant_name,
        room=payload.room_name,
        ttl=timedelta(seconds=settings.TOKEN_TTL_SECONDS),
    )
    return TokenResponse(token=token, ws_url=settings.LIVEKIT_WS_URL, room_name=payload.room_name)


@router.post("/join-room", response_model=JoinRoomResponse)
def join_livekit_room(
    payload: JoinRoomRequest,
    settings: Settings = Depends(get_app_settings),
    registry: CallRegistry = Depends(get_registry),
):
    joined = join_room(
        registry=registry,
        settings=settings,
        room_name=payload.room_name,
        provider_id=payload.provider_id,
    )
    return JoinRoomResponse(
        token=joined.token,
        ws_url=settings.LIVEKIT_WS_URL,
        room_name=joined.room_name,
    )
