"""
Error taxonomy for the token exchange relay.

Every failure the relay anticipates is raised as a ``TokenExchangeError``
subclass that knows its error kind, HTTP status and client-visible payload.
Payloads never contain secrets or stack traces.
"""

from typing import Any, Dict, Optional

from ..shared.exchange_models import ErrorKind
from ..shared.security import body_preview


class TokenExchangeError(Exception):
    """Base class for failures reported to the caller."""

    error_kind: ErrorKind = ErrorKind.EXCEPTION
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def extra_fields(self) -> Dict[str, Any]:
        return {}

    def to_payload(self) -> Dict[str, Any]:
        """Client-visible JSON body for this error."""
        payload = {
            "error": self.error_kind.value,
            "message": self.message,
        }
        payload.update(self.extra_fields())
        return payload


class MissingField(TokenExchangeError):
    """A required request field was absent or empty."""

    status_code = 400

    def __init__(self, field_name: str):
        self.field_name = field_name
        if field_name == "oauth_code":
            self.error_kind = ErrorKind.MISSING_OAUTH_CODE
        elif field_name == "domain":
            self.error_kind = ErrorKind.MISSING_DOMAIN
        else:
            raise ValueError(f"Unknown request field: {field_name}")
        super().__init__(f"{field_name} parameter is required")


class ServerMisconfigured(TokenExchangeError):
    """One or more client credentials are missing from the environment."""

    error_kind = ErrorKind.MISSING_ENV
    status_code = 500

    def __init__(self, presence: Dict[str, bool]):
        super().__init__("Server configuration error")
        self.presence = dict(presence)

    def extra_fields(self) -> Dict[str, Any]:
        return {"details": self.presence}


class UpstreamUnreachable(TokenExchangeError):
    """The token endpoint could not be reached (DNS, TLS, reset, timeout)."""

    error_kind = ErrorKind.UPSTREAM_UNREACHABLE
    status_code = 502

    def __init__(self, reason: str, token_url: Optional[str] = None):
        super().__init__(reason)
        self.token_url = token_url


class UpstreamNonJsonResponse(TokenExchangeError):
    """The provider replied with something other than JSON."""

    error_kind = ErrorKind.UPSTREAM_NON_JSON
    status_code = 502

    def __init__(self, upstream_status: int, content_type: str, preview: str):
        super().__init__("Bitrix returned HTML instead of JSON")
        self.upstream_status = upstream_status
        self.content_type = content_type
        self.body_preview = body_preview(preview)

    def extra_fields(self) -> Dict[str, Any]:
        return {
            "status": self.upstream_status,
            "contentType": self.content_type,
            "bodyPreview": self.body_preview,
        }


class MalformedUpstreamJson(TokenExchangeError):
    """The provider declared JSON but the body did not parse."""

    error_kind = ErrorKind.MALFORMED_UPSTREAM_JSON
    status_code = 502

    def __init__(self, upstream_status: int, preview: str, reason: str):
        super().__init__(f"Bitrix returned invalid JSON: {reason}")
        self.upstream_status = upstream_status
        self.body_preview = body_preview(preview)

    def extra_fields(self) -> Dict[str, Any]:
        return {
            "status": self.upstream_status,
            "bodyPreview": self.body_preview,
        }
