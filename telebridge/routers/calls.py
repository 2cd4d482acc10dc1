# telebridge/routers/calls.py
from typing import List

from fastapi import APIRouter, Depends, Request

from telebridge.config import Settings
from telebridge.dependencies import (
    get_app_settings,
    get_registry,
    get_room_provisioner,
    get_twilio_client,
    public_base_url,
)
from telebridge.errors import NotFoundError
from telebridge.schemas.calls import (
    CallPatientRequest,
    CallPatientResponse,
    CallRecordOut,
    CallRoomOut,
    JoinCallRequest,
    JoinRoomResponse,
    VideoSessionOut,
)
from telebridge.services.call_registry import CallRegistry
from telebridge.services.call_service import place_outbound_call
from telebridge.services.inbound_service import join_call
from telebridge.services.room_service import RoomProvisioner
from telebridge.services.twilio_client import TwilioClient

router = APIRouter(tags=["calls"])


@router.post("/call-patient", response_model=CallPatientResponse)
async def call_patient(
    payload: CallPatientRequest,
    request: Request,
    settings: Settings = Depends(get_app_settings),
    registry: CallRegistry = Depends(get_registry),
    twilio_client: TwilioClient = Depends(get_twilio_client),
    rooms: RoomProvisioner = Depends(get_room_provisioner),
):
    """
    Provider-initiated call:

    - creates `call-<patientId>-<ts>` on LiveKit
    - dials the patient; Twilio fetches /twiml/connect-sip once they pick up
    - registers the call as `initiated`
    """
    record = await place_outbound_call(
        registry=registry,
        twilio_client=twilio_client,
        rooms=rooms,
        patient_id=payload.patient_id,
        patient_phone=payload.patient_phone,
        provider_id=payload.provider_id,
        callback_base_url=public_base_url(request, settings),
        empty_timeout=settings.ROOM_EMPTY_TIMEOUT_SECONDS,
        max_participants=settings.ROOM_MAX_PARTICIPANTS,
    )
    return CallPatientResponse(call_id=record.call_id, room_name=record.room_name)


@router.get("/call-logs", response_model=List[CallRecordOut])
def list_call_logs(
    settings: Settings = Depends(get_app_settings),
    registry: CallRegistry = Depends(get_registry),
):
    records = registry.list_history(limit=settings.CALL_LOG_LIMIT)
    return [CallRecordOut.from_record(r) for r in records]


@router.get("/call-logs/{patient_id}", response_model=List[CallRecordOut])
def list_patient_call_logs(
    patient_id: str,
    registry: CallRegistry = Depends(get_registry),
):
    return [CallRecordOut.from_record(r) for r in registry.list_history(patient_id=patient_id)]


@router.get("/active-calls", response_model=List[CallRecordOut])
def list_active_calls(registry: CallRegistry = Depends(get_registry)):
    return [CallRecordOut.from_record(r) for r in registry.list_active()]


@router.get("/active-calls/{provider_id}", response_model=List[CallRecordOut])
def list_provider_active_calls(
    provider_id: str,
    registry: CallRegistry = Depends(get_registry),
):
    return [CallRecordOut.from_record(r) for r in registry.list_by_provider(provider_id)]


@router.get("/call-room/{call_id}", response_model=CallRoomOut)
def get_call_room(call_id: str, registry: CallRegistry = Depends(get_registry)):
    record = registry.get(call_id) or registry.get_history(call_id)
    if record is None:
        raise NotFoundError("Call not found", call_sid=call_id)

    return CallRoomOut(
        call_id=record.call_id,
        room_name=record.room_name,
        status=record.status.value,
        direction=record.direction.value,
        patient_phone=record.counterparty_phone,
        provider_id=record.provider_id,
    )


@router.post("/join-call", response_model=JoinRoomResponse)
def join_existing_call(
    payload: JoinCallRequest,
    settings: Settings = Depends(get_app_settings),
    registry: CallRegistry = Depends(get_registry),
):
    joined = join_call(
        registry=registry,
        settings=settings,
        call_sid=payload.call_id,
        provider_id=payload.provider_id,
    )
    return JoinRoomResponse(
        token=joined.token,
        ws_url=settings.LIVEKIT_WS_URL,
        room_name=joined.room_name,
    )


@router.get("/video-sessions/{patient_id}", response_model=List[VideoSessionOut])
def list_video_sessions(patient_id: str):
    # Video sessions are not tracked yet; the dashboard expects a list.
    return []
