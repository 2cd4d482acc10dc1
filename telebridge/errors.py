# telebridge/errors.py
"""
Error taxonomy for the bridge.

Every error carries a `context` dict of correlation fields (call_sid, room,
provider_id, ...) so the HTTP layer can log it before turning it into a
JSON response.
"""
from typing import Any, Dict, Optional


class BridgeError(Exception):
    status_code: int = 500
    default_detail: str = "Bridge error"

    def __init__(self, detail: Optional[str] = None, **context: Any) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}


class ConfigurationError(BridgeError):
    status_code = 500
    default_detail = "Service is not configured"


class UpstreamError(BridgeError):
    status_code = 500
    default_detail = "Upstream service request failed"


class NotFoundError(BridgeError):
    status_code = 404
    default_detail = "Not found"


def format_context(context: Dict[str, Any]) -> str:
    return " ".join(f"{key}={value}" for key, value in sorted(context.items()))
