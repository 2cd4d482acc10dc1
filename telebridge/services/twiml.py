# telebridge/services/twiml.py
"""
TwiML builders for every voice-control response the bridge returns.

All of them are plain functions over VoiceResponse so routers and services
can share them; rendering to XML happens in the router.
"""
from typing import Optional

from twilio.twiml.voice_response import Dial, VoiceResponse

from telebridge.errors import ConfigurationError

GREETING = (
    "Thank you for calling. Please hold while we connect you "
    "with a healthcare provider."
)


def sip_address(room_name: str, sip_domain: Optional[str]) -> str:
    if not sip_domain:
        raise ConfigurationError("LIVEKIT_SIP_DOMAIN not configured", room=room_name)
    return f"sip:{room_name}@{sip_domain}"


def bridge_response(
    room_name: str,
    *,
    sip_domain: Optional[str],
    timeout: int = 30,
    announcement: str = "Connecting you to your healthcare provider.",
) -> VoiceResponse:
    """
    Announce, then dial the room's SIP gateway address.

    No local retry: if the dial fails or times out Twilio just continues
    after the <Dial> verb, which ends the call.
    """
    vr = VoiceResponse()
    vr.say(announcement)
    dial = Dial(timeout=timeout)
    dial.sip(sip_address(room_name, sip_domain))
    vr.append(dial)
    return vr


def hold_response(
    *,
    wait_url: str,
    poll_seconds: int = 3,
    hold_music_url: Optional[str] = None,
    greeting: Optional[str] = None,
) -> VoiceResponse:
    vr = VoiceResponse()
    if greeting:
        vr.say(greeting)
    if hold_music_url:
        vr.play(hold_music_url)
    else:
        vr.pause(length=poll_seconds)
    vr.redirect(wait_url, method="POST")
    return vr


def expired_response() -> VoiceResponse:
    vr = VoiceResponse()
    vr.say("Sorry, your session has expired. Please call again.")
    vr.hangup()
    return vr


def hold_timeout_response() -> VoiceResponse:
    vr = VoiceResponse()
    vr.say(
        "We are sorry, no provider is available right now. "
        "Please try again later. Goodbye."
    )
    vr.hangup()
    return vr


def goodbye_response() -> VoiceResponse:
    vr = VoiceResponse()
    vr.say("Thank you for your call. Goodbye.")
    vr.hangup()
    return vr
