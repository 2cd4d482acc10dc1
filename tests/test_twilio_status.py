# tests/test_twilio_status.py
from telebridge.models.call import CallDirection, CallRecord, CallStatus


def _seed_outbound(registry, call_id="CA_TEST_STATUS"):
    registry.put(
        CallRecord(
            call_id=call_id,
            room_name=f"call-42-{call_id}",
            direction=CallDirection.OUTBOUND,
            counterparty_phone="+111111111",
            patient_id="42",
            provider_id="P1",
            status=CallStatus.INITIATED,
        )
    )


def test_twilio_status_completed_moves_call_to_history(client, registry):
    _seed_outbound(registry)

    data = {
        "CallSid": "CA_TEST_STATUS",
        "CallStatus": "completed",
        "CallDuration": "93",
    }
    resp = client.post("/api/call-status", data=data)
    assert resp.status_code == 200
    assert resp.text == ""

    assert registry.get("CA_TEST_STATUS") is None
    history = registry.get_history("CA_TEST_STATUS")
    assert history.status == CallStatus.COMPLETED
    assert history.duration_seconds == 93


def test_twilio_status_in_progress_marks_call_active(client, registry):
    _seed_outbound(registry)

    client.post("/api/call-status", data={"CallSid": "CA_TEST_STATUS", "CallStatus": "ringing"})
    assert registry.get("CA_TEST_STATUS").status == CallStatus.INITIATED

    client.post("/api/call-status", data={"CallSid": "CA_TEST_STATUS", "CallStatus": "in-progress"})
    assert registry.get("CA_TEST_STATUS").status == CallStatus.ACTIVE


def test_twilio_status_failure_states_are_terminal(client, registry):
    _seed_outbound(registry, "CA_BUSY")

    client.post("/api/call-status", data={"CallSid": "CA_BUSY", "CallStatus": "busy"})

    assert registry.get("CA_BUSY") is None
    history = registry.get_history("CA_BUSY")
    assert history.status == CallStatus.FAILED
    assert history.failure_reason == "busy"


def test_twilio_status_unknown_call_is_a_noop(client, registry):
    resp = client.post("/api/call-status", data={"CallSid": "CA_UNKNOWN", "CallStatus": "completed"})

    assert resp.status_code == 200
    assert registry.list_all() == []
    assert registry.list_history() == []


def test_twilio_status_duplicate_completed_is_a_noop(client, registry):
    _seed_outbound(registry)
    data = {"CallSid": "CA_TEST_STATUS", "CallStatus": "completed"}

    assert client.post("/api/call-status", data=data).status_code == 200
    assert client.post("/api/call-status", data=data).status_code == 200

    assert registry.get_history("CA_TEST_STATUS").status == CallStatus.COMPLETED


def test_twilio_status_requires_call_sid(client):
    resp = client.post("/api/call-status", data={"CallStatus": "completed"})
    assert resp.status_code == 422


def test_twilio_initiated_callback_keeps_inbound_call_queued(client, registry):
    client.post("/api/incoming-call", data={"CallSid": "CA1", "From": "+15551234"})

    for status in ("queued", "initiated"):
        resp = client.post("/api/call-status", data={"CallSid": "CA1", "CallStatus": status})
        assert resp.status_code == 200

    assert registry.get("CA1").status == CallStatus.RINGING
    assert [c["callSid"] for c in client.get("/api/incoming-calls").json()] == ["CA1"]
    assert client.post("/api/answer-call", json={"callSid": "CA1", "providerId": "P9"}).status_code == 200
