# telebridge/models/call.py
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CallDirection(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"


class CallStatus(str, Enum):
    RINGING = "ringing"
    INITIATED = "initiated"
    ANSWERED = "answered"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (CallStatus.COMPLETED, CallStatus.FAILED)


# Lifecycle only moves forward through these ranks.
_STATUS_RANK = {
    CallStatus.RINGING: 0,
    CallStatus.INITIATED: 0,
    CallStatus.ANSWERED: 1,
    CallStatus.ACTIVE: 2,
    CallStatus.COMPLETED: 3,
    CallStatus.FAILED: 3,
}


class CallRecord(BaseModel):
    """
    Local bookkeeping for one phone-to-room bridging attempt.

    - call_id is Twilio's CallSid (or a synthesized id for SIP-dispatched rooms)
    - room_name is the LiveKit room the phone leg gets bridged into
    - provider_id stays empty for inbound calls until a provider answers
    """

    call_id: str
    room_name: str
    direction: CallDirection
    counterparty_phone: Optional[str] = None
    patient_id: Optional[str] = None
    provider_id: Optional[str] = None
    status: CallStatus

    created_at: datetime = Field(default_factory=utcnow)
    answered_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utcnow)

    duration_seconds: Optional[int] = None
    hold_polls: int = 0
    failure_reason: Optional[str] = None

    @property
    def is_pending_inbound(self) -> bool:
        return self.direction == CallDirection.INBOUND and self.status == CallStatus.RINGING

    def wait_seconds(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        return max(0, int((now - self.created_at).total_seconds()))
