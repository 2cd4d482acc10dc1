# telebridge/routers/incoming.py
from typing import List

from fastapi import APIRouter, Depends

from telebridge.config import Settings
from telebridge.dependencies import get_app_settings, get_registry
from telebridge.models.call import utcnow
from telebridge.schemas.calls import AnswerCallRequest, AnswerCallResponse, IncomingCallOut
from telebridge.services.call_registry import CallRegistry
from telebridge.services.inbound_service import answer_call

router = APIRouter(tags=["incoming"])


@router.get("/incoming-calls", response_model=List[IncomingCallOut])
def list_incoming_calls(registry: CallRegistry = Depends(get_registry)):
    now = utcnow()
    return [
        IncomingCallOut(
            call_sid=r.call_id,
            room_name=r.room_name,
            patient_phone=r.counterparty_phone,
            created_at=r.created_at,
            wait_seconds=r.wait_seconds(now),
            hold_polls=r.hold_polls,
        )
        for r in registry.list_pending_inbound()
    ]


@router.post("/answer-call", response_model=AnswerCallResponse)
def answer_incoming_call(
    payload: AnswerCallRequest,
    settings: Settings = Depends(get_app_settings),
    registry: CallRegistry = Depends(get_registry),
):
    joined = answer_call(
        registry=registry,
        settings=settings,
        call_sid=payload.call_sid,
        provider_id=payload.provider_id,
    )
    return AnswerCallResponse(
        token=joined.token,
        ws_url=settings.LIVEKIT_WS_URL,
        room_name=joined.room_name,
        patient_phone=joined.record.counterparty_phone,
    )
