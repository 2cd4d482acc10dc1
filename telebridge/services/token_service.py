# telebridge/services/token_service.py
import logging
from datetime import timedelta
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from livekit import api

from telebridge.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(hours=1)


class Capability(str, Enum):
    JOIN = "join"
    PUBLISH = "publish"
    SUBSCRIBE = "subscribe"
    PUBLISH_DATA = "publish_data"


FULL_PARTICIPANT: FrozenSet[Capability] = frozenset(Capability)


def provider_identity(provider_id: str) -> str:
    return f"provider-{provider_id}"


def issue_token(
    *,
    api_key: Optional[str],
    api_secret: Optional[str],
    identity: str,
    room: str,
    permissions: Iterable[Capability] = FULL_PARTICIPANT,
    ttl: timedelta = DEFAULT_TOKEN_TTL,
) -> str:
    """
    Build a signed LiveKit access token for `identity` in `room`.

    Stateless: the only inputs are the credentials and the grant itself.
    Raises ConfigurationError when either credential is missing.
    """
    if not api_key or not api_secret:
        logger.error("LiveKit credentials not configured participant=%s room=%s", identity, room)
        raise ConfigurationError(
            "LiveKit credentials not configured",
            participant=identity,
            room=room,
        )

    caps = frozenset(permissions)
    grants = api.VideoGrants(
        room=room,
        room_join=Capability.JOIN in caps,
        can_publish=Capability.PUBLISH in caps,
        can_subscribe=Capability.SUBSCRIBE in caps,
        can_publish_data=Capability.PUBLISH_DATA in caps,
    )

    token = (
        api.AccessToken(api_key, api_secret)
        .with_identity(identity)
        .with_name(identity)
        .with_ttl(ttl)
        .with_grants(grants)
        .to_jwt()
    )
    logger.info("LiveKit token generated participant=%s room=%s", identity, room)
    return token
