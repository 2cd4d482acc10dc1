# telebridge/services/twilio_client.py
import logging
from typing import Sequence

from requests.exceptions import RequestException
from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioSDKClient

from telebridge.config import Settings
from telebridge.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_STATUS_EVENTS = ("initiated", "answered", "completed")


class TwilioClient:
    """
    Thin wrapper around the Twilio Python SDK.

    This makes it easy to:
    - centralize config (account SID, auth token, from number)
    - mock in tests by replacing this class with a fake.
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
    ):
        self._client = TwilioSDKClient(account_sid, auth_token)
        self._from_number = from_number

    @property
    def from_number(self) -> str:
        return self._from_number

    def create_outbound_call(
        self,
        to_number: str,
        *,
        voice_url: str,
        status_callback: str,
        status_events: Sequence[str] = DEFAULT_STATUS_EVENTS,
    ) -> str:
        """
        Create an outbound call via Twilio and return the Call SID.

        Twilio fetches TwiML from `voice_url` once the callee picks up and
        posts lifecycle events to `status_callback`.
        """
        try:
            call = self._client.calls.create(
                to=to_number,
                from_=self._from_number,
                url=voice_url,
                method="POST",
                status_callback=status_callback,
                status_callback_event=list(status_events),
                status_callback_method="POST",
            )
        except (TwilioException, RequestException) as exc:
            logger.error("Twilio call creation failed to=%s error=%s", to_number, exc)
            raise UpstreamError(str(exc), to=to_number) from exc
        return call.sid


def build_twilio_client(settings: Settings) -> TwilioClient:
    """
    Build a configured TwilioClient.
    Raises ConfigurationError if configuration is incomplete.
    """
    missing: list[str] = []
    if not settings.TWILIO_ACCOUNT_SID:
        missing.append("TWILIO_ACCOUNT_SID")
    if not settings.TWILIO_AUTH_TOKEN:
        missing.append("TWILIO_AUTH_TOKEN")
    if not settings.TWILIO_PHONE_NUMBER:
        missing.append("TWILIO_PHONE_NUMBER")

    if missing:
        raise ConfigurationError(f"Twilio not configured, missing: {', '.join(missing)}")

    return TwilioClient(
        account_sid=settings.TWILIO_ACCOUNT_SID,
        auth_token=settings.TWILIO_AUTH_TOKEN,
        from_number=settings.TWILIO_PHONE_NUMBER,
    )
