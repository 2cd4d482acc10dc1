# telebridge/services/call_status_service.py
import logging
from typing import Optional

from telebridge.errors import NotFoundError
from telebridge.models.call import CallRecord, CallStatus
from telebridge.services.call_registry import CallRegistry

logger = logging.getLogger(__name__)

# Twilio CallStatus -> our lifecycle. Missing entries are ignored.
TWILIO_STATUS_MAP = {
    "queued": CallStatus.INITIATED,
    "initiated": CallStatus.INITIATED,
    "in-progress": CallStatus.ACTIVE,
    "answered": CallStatus.ACTIVE,
    "completed": CallStatus.COMPLETED,
    "busy": CallStatus.FAILED,
    "failed": CallStatus.FAILED,
    "no-answer": CallStatus.FAILED,
    "canceled": CallStatus.FAILED,
}


def update_call_status(
    registry: CallRegistry,
    provider_call_id: str,
    call_status: str,
    call_duration: Optional[str] = None,
) -> Optional[CallRecord]:
    """
    Apply a Twilio status callback to the registry.

    - provider_call_id is Twilio's CallSid
    - call_status is Twilio's CallStatus ("queued", "ringing", "in-progress",
      "completed", "busy", "failed", "no-answer", "canceled", ...)

    Unknown calls and duplicate or stale callbacks are no-ops; this
    returns None for them so the webhook still answers 200.
    """
    status = TWILIO_STATUS_MAP.get(call_status)
    if status is None:
        logger.debug("Ignoring Twilio status call_sid=%s status=%s", provider_call_id, call_status)
        return None

    extra = {}
    if call_duration and call_duration.isdigit():
        extra["duration_seconds"] = int(call_duration)
    if status == CallStatus.FAILED:
        extra["failure_reason"] = call_status

    try:
        return registry.update_status(provider_call_id, status, **extra)
    except NotFoundError:
        logger.info(
            "Status callback for unknown call call_sid=%s status=%s",
            provider_call_id,
            call_status,
        )
        return None
