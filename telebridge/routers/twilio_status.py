# telebridge/routers/twilio_status.py
from typing import Optional

from fastapi import APIRouter, Depends, Form, Response

from telebridge.dependencies import get_registry
from telebridge.services.call_registry import CallRegistry
from telebridge.services.call_status_service import update_call_status

router = APIRouter(tags=["twilio-status"])


@router.post("/call-status", response_class=Response)
def twilio_status_webhook(
    CallSid: str = Form(...),
    CallStatus: str = Form(...),
    CallDuration: Optional[str] = Form(None),
    registry: CallRegistry = Depends(get_registry),
):
    """
    Twilio call status callback webhook.

    Twilio will POST here with fields like:
      - CallSid: Twilio's call ID
      - CallStatus: queued | ringing | in-progress | completed | busy | failed | no-answer | canceled
      - CallDuration (on completion)

    Always 200: Twilio does not care, and unknown calls are no-ops.
    """
    update_call_status(
        registry=registry,
        provider_call_id=CallSid,
        call_status=CallStatus,
        call_duration=CallDuration,
    )
    return Response(status_code=200)
