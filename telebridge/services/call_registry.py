# telebridge/services/call_registry.py
import logging
from typing import Any, List, Optional

from telebridge.errors import NotFoundError
from telebridge.models.call import CallRecord, CallStatus, utcnow
from telebridge.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

CALLS = "calls"
ROOMS = "rooms"
HISTORY = "history"


class CallRegistry:
    """
    Owns every call record the bridge knows about.

    Three namespaces live in the backing store:
      - calls:   active index, call_id -> record (pending inbound included)
      - rooms:   room_name -> call_id for calls in the active index
      - history: call_id -> latest snapshot, never deleted

    Not safe for concurrent mutation; the app runs it on one worker.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    # --- basic access ---

    def put(self, record: CallRecord) -> CallRecord:
        payload = record.model_dump_json()
        self._store.put(CALLS, record.call_id, payload)
        self._store.put(ROOMS, record.room_name, record.call_id)
        self._store.put(HISTORY, record.call_id, payload)
        return record

    def get(self, call_id: str) -> Optional[CallRecord]:
        raw = self._store.get(CALLS, call_id)
        if raw is None:
            return None
        return CallRecord.model_validate_json(raw)

    def get_history(self, call_id: str) -> Optional[CallRecord]:
        raw = self._store.get(HISTORY, call_id)
        if raw is None:
            return None
        return CallRecord.model_validate_json(raw)

    def find_by_room(self, room_name: str) -> Optional[CallRecord]:
        call_id = self._store.get(ROOMS, room_name)
        if call_id is None:
            return None
        return self.get(call_id)

    def remove(self, call_id: str) -> None:
        """Drop a call from the active index. History is kept."""
        record = self.get(call_id)
        self._store.delete(CALLS, call_id)
        if record is not None and self._store.get(ROOMS, record.room_name) == call_id:
            self._store.delete(ROOMS, record.room_name)

    # --- lifecycle ---

    def update_status(self, call_id: str, status: CallStatus, **extra: Any) -> CallRecord:
        """
        Move a call forward in its lifecycle.

        - Raises NotFoundError if the call is not in the active index.
        - Anything that is not a strictly higher rank (backward, sideways,
          or the current status again) leaves the record untouched.
        - Terminal statuses drop the call from the active index; the
          history snapshot records the final state.
        """
        record = self.get(call_id)
        if record is None:
            raise NotFoundError(f"Call {call_id} not found", call_sid=call_id)

        if status.rank <= record.status.rank:
            logger.info(
                "Ignoring status update call_sid=%s current=%s requested=%s",
                call_id,
                record.status.value,
                status.value,
            )
            return record

        now = utcnow()
        changes = {"status": status, "updated_at": now, **extra}
        if status == CallStatus.ANSWERED and record.answered_at is None:
            changes.setdefault("answered_at", now)
        if status.is_terminal:
            changes.setdefault("ended_at", now)

        updated = record.model_copy(update=changes)
        logger.info(
            "Call status call_sid=%s room=%s %s -> %s",
            call_id,
            updated.room_name,
            record.status.value,
            status.value,
        )

        if status.is_terminal:
            self._store.put(HISTORY, call_id, updated.model_dump_json())
            self.remove(call_id)
        else:
            self.put(updated)
        return updated

    def touch(self, call_id: str, **changes: Any) -> CallRecord:
        """Update non-status fields of an active call."""
        record = self.get(call_id)
        if record is None:
            raise NotFoundError(f"Call {call_id} not found", call_sid=call_id)
        updated = record.model_copy(update={**changes, "updated_at": utcnow()})
        return self.put(updated)

    # --- queries ---

    def list_all(self) -> List[CallRecord]:
        """Every call in the active index, newest first."""
        records = [CallRecord.model_validate_json(raw) for _, raw in self._store.scan(CALLS)]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def list_active(self) -> List[CallRecord]:
        return [r for r in self.list_all() if not r.is_pending_inbound]

    def list_pending_inbound(self) -> List[CallRecord]:
        return [r for r in self.list_all() if r.is_pending_inbound]

    def list_by_provider(self, provider_id: str) -> List[CallRecord]:
        return [r for r in self.list_active() if r.provider_id == provider_id]

    def list_history(
        self,
        patient_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[CallRecord]:
        records = [CallRecord.model_validate_json(raw) for _, raw in self._store.scan(HISTORY)]
        if patient_id is not None:
            records = [r for r in records if r.patient_id == patient_id]
        records.sort(key=lambda r: r.created_at, reverse=True)
        if limit is not None:
            records = records[:limit]
        return records

    def close(self) -> None:
        self._store.close()
