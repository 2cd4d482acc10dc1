# telebridge/services/call_service.py
import logging
from typing import Optional, Sequence
from urllib.parse import urlencode

from fastapi.concurrency import run_in_threadpool

from telebridge.errors import UpstreamError
from telebridge.models.call import CallDirection, CallRecord, CallStatus, utcnow
from telebridge.services.call_registry import CallRegistry
from telebridge.services.room_service import RoomProvisioner
from telebridge.services.twilio_client import DEFAULT_STATUS_EVENTS, TwilioClient

logger = logging.getLogger(__name__)


def outbound_room_name(patient_id: str) -> str:
    # Unique per patient and millisecond, not collision-proof.
    return f"call-{patient_id}-{int(utcnow().timestamp() * 1000)}"


def connect_sip_url(base_url: str, room_name: str) -> str:
    return f"{base_url.rstrip('/')}/api/twiml/connect-sip?{urlencode({'room': room_name})}"


def status_callback_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/api/call-status"


async def place_outbound_call(
    *,
    registry: CallRegistry,
    twilio_client: TwilioClient,
    rooms: RoomProvisioner,
    patient_id: str,
    patient_phone: str,
    provider_id: Optional[str],
    callback_base_url: str,
    empty_timeout: int,
    max_participants: int,
    status_events: Sequence[str] = DEFAULT_STATUS_EVENTS,
) -> CallRecord:
    """
    Provision a room, dial the patient, and register the call.

    - The room is created first so the TwiML webhook can bridge into it.
    - If Twilio refuses the call, the room is deleted again; if that fails
      too we leave it to the room's empty timeout.
    """
    room_name = outbound_room_name(patient_id)
    await rooms.create_room(
        room_name,
        empty_timeout=empty_timeout,
        max_participants=max_participants,
    )

    try:
        call_sid = await run_in_threadpool(
            twilio_client.create_outbound_call,
            patient_phone,
            voice_url=connect_sip_url(callback_base_url, room_name),
            status_callback=status_callback_url(callback_base_url),
            status_events=status_events,
        )
    except UpstreamError as exc:
        exc.context.setdefault("room", room_name)
        if provider_id:
            exc.context.setdefault("provider_id", provider_id)
        await _discard_room(rooms, room_name)
        raise

    record = CallRecord(
        call_id=call_sid,
        room_name=room_name,
        direction=CallDirection.OUTBOUND,
        counterparty_phone=patient_phone,
        patient_id=patient_id,
        provider_id=provider_id,
        status=CallStatus.INITIATED,
    )
    await run_in_threadpool(registry.put, record)

    logger.info(
        "Outbound call placed call_sid=%s room=%s provider_id=%s",
        call_sid,
        room_name,
        provider_id,
    )
    return record


async def _discard_room(rooms: RoomProvisioner, room_name: str) -> None:
    try:
        await rooms.delete_room(room_name)
    except UpstreamError:
        logger.warning("Orphaned room left to empty timeout room=%s", room_name)
