# telebridge/services/inbound_service.py
"""
Inbound call gate and provider-side handlers.

Flow:
1. Twilio posts /incoming-call -> we create `incoming-<CallSid>`, register a
   ringing record and put the caller on hold.
2. The hold TwiML redirects to /twiml/wait-for-provider every few seconds.
3. A provider answers from the dashboard -> record becomes `answered` and the
   provider gets a LiveKit token for the room.
4. The next poll sees `answered`, marks the call active and bridges the
   phone leg into the room over SIP.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from twilio.twiml.voice_response import VoiceResponse

from telebridge.config import Settings
from telebridge.errors import NotFoundError
from telebridge.models.call import CallDirection, CallRecord, CallStatus, utcnow
from telebridge.services import twiml
from telebridge.services.call_registry import CallRegistry
from telebridge.services.room_service import RoomProvisioner
from telebridge.services.token_service import issue_token, provider_identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderJoin:
    token: str
    room_name: str
    record: CallRecord


def inbound_room_name(call_sid: str) -> str:
    return f"incoming-{call_sid}"


def sip_room_call_id(room_name: str) -> str:
    return f"sip-{room_name}"


def phone_from_sip_room(room_name: str, prefix: str) -> Optional[str]:
    if not room_name.startswith(prefix):
        return None
    number = room_name[len(prefix):]
    return number if number.startswith("+") else f"+{number}"


async def receive_incoming_call(
    *,
    registry: CallRegistry,
    rooms: RoomProvisioner,
    settings: Settings,
    call_sid: str,
    from_number: Optional[str],
    to_number: Optional[str],
    wait_url: str,
) -> VoiceResponse:
    room_name = inbound_room_name(call_sid)
    await rooms.create_room(
        room_name,
        empty_timeout=settings.ROOM_EMPTY_TIMEOUT_SECONDS,
        max_participants=settings.ROOM_MAX_PARTICIPANTS,
    )

    await run_in_threadpool(
        registry.put,
        CallRecord(
            call_id=call_sid,
            room_name=room_name,
            direction=CallDirection.INBOUND,
            counterparty_phone=from_number,
            status=CallStatus.RINGING,
        ),
    )
    logger.info(
        "Incoming call queued call_sid=%s room=%s from=%s to=%s",
        call_sid,
        room_name,
        from_number,
        to_number,
    )

    return twiml.hold_response(
        wait_url=wait_url,
        poll_seconds=settings.HOLD_POLL_SECONDS,
        hold_music_url=settings.HOLD_MUSIC_URL,
        greeting=twiml.GREETING,
    )


def wait_for_provider(
    *,
    registry: CallRegistry,
    settings: Settings,
    call_sid: str,
    wait_url: str,
) -> VoiceResponse:
    """
    One iteration of the hold loop.

    - missing record  -> session expired
    - answered        -> mark active and bridge into the room
    - still ringing   -> hold again, unless the caller has waited too long
    """
    record = registry.get(call_sid)
    if record is None:
        logger.warning("Hold poll for unknown call call_sid=%s", call_sid)
        return twiml.expired_response()

    if record.status in (CallStatus.ANSWERED, CallStatus.ACTIVE):
        vr = twiml.bridge_response(
            record.room_name,
            sip_domain=settings.LIVEKIT_SIP_DOMAIN,
            timeout=settings.DIAL_TIMEOUT_SECONDS,
        )
        registry.update_status(call_sid, CallStatus.ACTIVE)
        logger.info(
            "Bridging caller call_sid=%s room=%s provider_id=%s",
            call_sid,
            record.room_name,
            record.provider_id,
        )
        return vr

    if record.wait_seconds() >= settings.HOLD_MAX_WAIT_SECONDS:
        registry.update_status(call_sid, CallStatus.FAILED, failure_reason="hold_timeout")
        logger.warning(
            "No provider answered call_sid=%s room=%s waited=%ss polls=%s",
            call_sid,
            record.room_name,
            record.wait_seconds(),
            record.hold_polls,
        )
        return twiml.hold_timeout_response()

    registry.touch(call_sid, hold_polls=record.hold_polls + 1)
    return twiml.hold_response(
        wait_url=wait_url,
        poll_seconds=settings.HOLD_POLL_SECONDS,
        hold_music_url=settings.HOLD_MUSIC_URL,
    )


def answer_call(
    *,
    registry: CallRegistry,
    settings: Settings,
    call_sid: str,
    provider_id: str,
) -> ProviderJoin:
    """
    A provider picks up a queued inbound call.

    Raises NotFoundError without touching the registry if the call is not
    waiting anymore.
    """
    record = registry.get(call_sid)
    if record is None or not record.is_pending_inbound:
        raise NotFoundError(
            "Call not found or already answered",
            call_sid=call_sid,
            provider_id=provider_id,
        )

    token = issue_token(
        api_key=settings.LIVEKIT_API_KEY,
        api_secret=settings.LIVEKIT_API_SECRET,
        identity=provider_identity(provider_id),
        room=record.room_name,
        ttl=timedelta(seconds=settings.TOKEN_TTL_SECONDS),
    )

    updated = registry.update_status(call_sid, CallStatus.ANSWERED, provider_id=provider_id)
    logger.info(
        "Call answered call_sid=%s room=%s provider_id=%s",
        call_sid,
        record.room_name,
        provider_id,
    )
    return ProviderJoin(token=token, room_name=record.room_name, record=updated)


def join_call(
    *,
    registry: CallRegistry,
    settings: Settings,
    call_sid: str,
    provider_id: str,
) -> ProviderJoin:
    """Token for a provider joining a call that is already in progress."""
    record = registry.get(call_sid)
    if record is None or record.is_pending_inbound:
        raise NotFoundError("Call not found or not answered yet", call_sid=call_sid, provider_id=provider_id)

    token = issue_token(
        api_key=settings.LIVEKIT_API_KEY,
        api_secret=settings.LIVEKIT_API_SECRET,
        identity=provider_identity(provider_id),
        room=record.room_name,
        ttl=timedelta(seconds=settings.TOKEN_TTL_SECONDS),
    )
    if record.provider_id is None:
        record = registry.touch(call_sid, provider_id=provider_id)

    logger.info("Provider joining call call_sid=%s room=%s provider_id=%s", call_sid, record.room_name, provider_id)
    return ProviderJoin(token=token, room_name=record.room_name, record=record)


def join_room(
    *,
    registry: CallRegistry,
    settings: Settings,
    room_name: str,
    provider_id: str,
) -> ProviderJoin:
    """
    Provider joins a room directly by name.

    Rooms we did not create ourselves (dispatched by the SIP trunk as
    `twilio-tgl-<number>`) get a side entry so they show up as active calls.
    """
    token = issue_token(
        api_key=settings.LIVEKIT_API_KEY,
        api_secret=settings.LIVEKIT_API_SECRET,
        identity=provider_identity(provider_id),
        room=room_name,
        ttl=timedelta(seconds=settings.TOKEN_TTL_SECONDS),
    )

    record = registry.find_by_room(room_name)
    if record is None:
        now = utcnow()
        record = registry.put(
            CallRecord(
                call_id=sip_room_call_id(room_name),
                room_name=room_name,
                direction=CallDirection.INBOUND,
                counterparty_phone=phone_from_sip_room(room_name, settings.SIP_ROOM_PREFIX),
                provider_id=provider_id,
                status=CallStatus.ACTIVE,
                answered_at=now,
            )
        )
    elif record.provider_id is None:
        record = registry.touch(record.call_id, provider_id=provider_id)

    logger.info("Provider joining room room=%s provider_id=%s call_sid=%s", room_name, provider_id, record.call_id)
    return ProviderJoin(token=token, room_name=room_name, record=record)
