# scripts/simulate_inbound_call.py
"""
Drive the inbound call flow against a running server, the way Twilio and
the provider dashboard would:

1. POST /api/incoming-call      (Twilio: caller dials our number)
2. GET  /api/incoming-calls     (dashboard: queue)
3. POST /api/twiml/wait-for-provider   (Twilio: hold poll, still ringing)
4. POST /api/answer-call        (dashboard: provider picks up)
5. POST /api/twiml/wait-for-provider   (Twilio: now bridges over SIP)
6. POST /api/call-status        (Twilio: call completed)

Needs real LiveKit credentials on the server (rooms get created).
"""
from __future__ import annotations

import argparse

import requests


def _show(label: str, resp: requests.Response) -> None:
    print(f"--- {label}: {resp.status_code} {resp.headers.get('content-type')}")
    print(resp.text)


def run(base_url: str, call_sid: str, caller: str, provider_id: str) -> None:
    api = f"{base_url.rstrip('/')}/api"
    twilio_form = {"CallSid": call_sid, "From": caller, "To": "+15005550006"}

    _show("incoming-call", requests.post(f"{api}/incoming-call", data=twilio_form))
    _show("incoming-calls", requests.get(f"{api}/incoming-calls"))
    _show(
        "wait-for-provider (ringing)",
        requests.post(f"{api}/twiml/wait-for-provider", params={"callSid": call_sid}, data=twilio_form),
    )
    _show(
        "answer-call",
        requests.post(f"{api}/answer-call", json={"callSid": call_sid, "providerId": provider_id}),
    )
    _show(
        "wait-for-provider (answered)",
        requests.post(f"{api}/twiml/wait-for-provider", params={"callSid": call_sid}, data=twilio_form),
    )
    _show(
        "call-status",
        requests.post(f"{api}/call-status", data={"CallSid": call_sid, "CallStatus": "completed"}),
    )
    _show("call-logs", requests.get(f"{api}/call-logs"))


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--base-url", default="http://127.0.0.1:3000")
    parser.add_argument("--call-sid", default="CA_SIMULATED_1")
    parser.add_argument("--caller", default="+15551234567")
    parser.add_argument("--provider-id", default="P1")
    args = parser.parse_args()
    run(args.base_url, args.call_sid, args.caller, args.provider_id)


if __name__ == "__main__":
    main()
