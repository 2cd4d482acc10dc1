# telebridge/schemas/calls.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from telebridge.models.call import CallRecord


class CamelModel(BaseModel):
    # JSON bodies use camelCase (browser client), Python uses snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- requests ---

class TokenRequest(CamelModel):
    participant_name: str
    room_name: str
    participant_type: str = "provider"


class JoinRoomRequest(CamelModel):
    room_name: str
    provider_id: str


class CallPatientRequest(CamelModel):
    patient_id: str
    patient_phone: str
    provider_id: Optional[str] = None


class AnswerCallRequest(CamelModel):
    call_sid: str
    provider_id: str


class JoinCallRequest(CamelModel):
    call_id: str
    provider_id: str


# --- responses ---

class TokenResponse(CamelModel):
    token: str
    ws_url: Optional[str] = None
    room_name: str


class JoinRoomResponse(TokenResponse):
    success: bool = True


class AnswerCallResponse(JoinRoomResponse):
    patient_phone: Optional[str] = None


class CallPatientResponse(CamelModel):
    success: bool = True
    call_id: str
    room_name: str


class ActiveRoomOut(CamelModel):
    room_name: str
    phone_number: Optional[str] = None
    participant_count: int
    created_at: datetime
    call_id: Optional[str] = None


class CallRecordOut(CamelModel):
    call_id: str
    room_name: str
    direction: str
    patient_phone: Optional[str] = None
    patient_id: Optional[str] = None
    provider_id: Optional[str] = None
    status: str
    created_at: datetime
    answered_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    updated_at: datetime
    duration: Optional[int] = None
    failure_reason: Optional[str] = None

    @classmethod
    def from_record(cls, record: CallRecord) -> "CallRecordOut":
        return cls(
            call_id=record.call_id,
            room_name=record.room_name,
            direction=record.direction.value,
            patient_phone=record.counterparty_phone,
            patient_id=record.patient_id,
            provider_id=record.provider_id,
            status=record.status.value,
            created_at=record.created_at,
            answered_at=record.answered_at,
            ended_at=record.ended_at,
            updated_at=record.updated_at,
            duration=record.duration_seconds,
            failure_reason=record.failure_reason,
        )


class IncomingCallOut(CamelModel):
    call_sid: str
    room_name: str
    patient_phone: Optional[str] = None
    created_at: datetime
    wait_seconds: int
    hold_polls: int


class CallRoomOut(CamelModel):
    call_id: str
    room_name: str
    status: str
    direction: str
    patient_phone: Optional[str] = None
    provider_id: Optional[str] = None


class VideoSessionOut(CamelModel):
    room_name: str
    started_at: datetime


