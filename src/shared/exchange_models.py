"""
Pydantic models for the token exchange relay.

This module defines the per-request data that flows through a single
exchange: the incoming request, the server-held credentials, the raw
upstream reply and the tagged classification of that reply.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
from enum import Enum


# Client ids with this prefix belong to self-hosted installations
LOCAL_CLIENT_PREFIX = "local."


class GrantType(str, Enum):
    """OAuth grant types relayed upstream."""
    AUTHORIZATION_CODE = "authorization_code"


class ErrorKind(str, Enum):
    """Error identifiers returned in the ``error`` field of failure payloads."""
    MISSING_OAUTH_CODE = "missing_oauth_code"
    MISSING_DOMAIN = "missing_domain"
    MISSING_ENV = "missing_env"
    UPSTREAM_UNREACHABLE = "upstream_unreachable"
    UPSTREAM_NON_JSON = "bitrix_returned_html"
    MALFORMED_UPSTREAM_JSON = "malformed_upstream_json"
    EXCEPTION = "exception"
    NOT_FOUND = "not_found"


class ExchangeRequest(BaseModel):
    """
    A single token exchange request from the mobile client.

    Built once from the incoming call and discarded when the call ends.
    """
    model_config = ConfigDict(frozen=True)

    authorization_code: str = Field(..., min_length=1, description="Authorization code issued by the provider")
    tenant_domain: str = Field(..., min_length=1, description="Hostname of the tenant installation")


class ServerCredentials(BaseModel):
    """
    Client credentials held by the relay.

    Loaded once at startup. Any field may be missing; exchanges then fail
    with a configuration error that reports presence, never values.
    """
    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = Field(default=None, description="OAuth client identifier")
    client_secret: Optional[str] = Field(default=None, repr=False, description="OAuth client secret")
    redirect_uri: Optional[str] = Field(default=None, description="Redirect URI registered with the provider")

    def presence(self) -> Dict[str, bool]:
        """Report which credentials are configured."""
        return {
            "has_client_id": bool(self.client_id),
            "has_client_secret": bool(self.client_secret),
            "has_redirect_uri": bool(self.redirect_uri),
        }

    @property
    def is_complete(self) -> bool:
        return all(self.presence().values())

    @property
    def uses_broker(self) -> bool:
        """Self-hosted apps exchange codes through the provider's broker host."""
        return bool(self.client_id) and self.client_id.startswith(LOCAL_CLIENT_PREFIX)


class UpstreamResponse(BaseModel):
    """Raw reply from the provider's token endpoint, fully read."""
    model_config = ConfigDict(frozen=True)

    status_code: int
    body: bytes = b""
    content_type: str = ""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def is_json(self) -> bool:
        return "application/json" in self.content_type.lower()


class ParsedJson(BaseModel):
    """Upstream reply that declared JSON and parsed cleanly."""
    model_config = ConfigDict(frozen=True)

    status_code: int
    payload: Any


class NonJsonBody(BaseModel):
    """Upstream reply that did not declare JSON (usually an HTML error page)."""
    model_config = ConfigDict(frozen=True)

    status_code: int
    content_type: str
    body_preview: str = Field(..., max_length=200)


class ExchangeSuccess(BaseModel):
    """
    Successful exchange result.

    ``payload`` is the provider's JSON verbatim and ``status_code`` is the
    provider's status, which may be non-2xx for JSON-formatted errors.
    """
    model_config = ConfigDict(frozen=True)

    status_code: int
    payload: Any
    token_url: str
