# telebridge/routers/twilio_voice.py
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import Response
from twilio.twiml.voice_response import VoiceResponse

from telebridge.config import Settings
from telebridge.dependencies import (
    get_app_settings,
    get_registry,
    get_room_provisioner,
    public_base_url,
)
from telebridge.services import twiml
from telebridge.services.call_registry import CallRegistry
from telebridge.services.inbound_service import receive_incoming_call, wait_for_provider
from telebridge.services.room_service import RoomProvisioner

logger = logging.getLogger(__name__)

router = APIRouter(tags=["twilio-voice"])


def _twiml(vr: VoiceResponse) -> Response:
    return Response(content=str(vr), media_type="application/xml")


def _wait_url(request: Request, settings: Settings, call_sid: str) -> str:
    base = public_base_url(request, settings)
    return f"{base}/api/twiml/wait-for-provider?{urlencode({'callSid': call_sid})}"


@router.post("/twiml/connect-sip", response_class=Response)
def connect_sip(
    room: str = Query(...),
    CallSid: Optional[str] = Form(None),
    settings: Settings = Depends(get_app_settings),
):
    """
    Voice URL for outbound calls: once the patient picks up, bridge the
    phone leg into the room over LiveKit SIP.
    """
    logger.info("Connecting call to room call_sid=%s room=%s", CallSid, room)
    return _twiml(
        twiml.bridge_response(
            room,
            sip_domain=settings.LIVEKIT_SIP_DOMAIN,
            timeout=settings.DIAL_TIMEOUT_SECONDS,
        )
    )


@router.post("/call-completed", response_class=Response)
def call_completed(CallSid: Optional[str] = Form(None)):
    logger.info("Call completed call_sid=%s", CallSid)
    return _twiml(twiml.goodbye_response())


@router.post("/incoming-call", response_class=Response)
async def incoming_call(
    request: Request,
    CallSid: str = Form(...),
    From: Optional[str] = Form(None),
    To: Optional[str] = Form(None),
    settings: Settings = Depends(get_app_settings),
    registry: CallRegistry = Depends(get_registry),
    rooms: RoomProvisioner = Depends(get_room_provisioner),
):
    """
    Voice URL of our Twilio number.

    Creates the caller's room, queues the call as ringing and answers with
    the hold loop until a provider picks up.
    """
    vr = await receive_incoming_call(
        registry=registry,
        rooms=rooms,
        settings=settings,
        call_sid=CallSid,
        from_number=From,
        to_number=To,
        wait_url=_wait_url(request, settings, CallSid),
    )
    return _twiml(vr)


@router.post("/twiml/wait-for-provider", response_class=Response)
def twiml_wait_for_provider(
    request: Request,
    call_sid: Optional[str] = Query(None, alias="callSid"),
    CallSid: Optional[str] = Form(None),
    settings: Settings = Depends(get_app_settings),
    registry: CallRegistry = Depends(get_registry),
):
    sid = call_sid or CallSid
    if not sid:
        return _twiml(twiml.expired_response())

    return _twiml(
        wait_for_provider(
            registry=registry,
            settings=settings,
            call_sid=sid,
            wait_url=_wait_url(request, settings, sid),
        )
    )
