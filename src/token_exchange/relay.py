"""
Token exchange relay core.

Takes an authorization code and a tenant domain from the mobile client,
posts them to the provider's token endpoint together with the server-held
client credentials and classifies the reply.

Endpoint selection:
- client ids starting with ``local.`` (self-hosted installations) go to the
  provider's broker host
- every other client id goes to ``https://<tenant_domain>/oauth/token/``

Response classification:
- a reply declaring ``application/json`` is parsed and passed through with
  the provider's own status code
- anything else is reported as an upstream error with a bounded preview
"""

import json
from typing import Any, Optional, Union

import httpx

from ..shared.exchange_models import (
    ExchangeRequest,
    ExchangeSuccess,
    GrantType,
    NonJsonBody,
    ParsedJson,
    ServerCredentials,
    UpstreamResponse,
)
from ..shared.logging_utils import MessageType, RelayLogger
from ..shared.security import body_preview
from .config import BROKER_TOKEN_URL, DEFAULT_TIMEOUT
from .errors import (
    MalformedUpstreamJson,
    MissingField,
    ServerMisconfigured,
    UpstreamNonJsonResponse,
    UpstreamUnreachable,
)


TENANT_TOKEN_URL_TEMPLATE = "https://{domain}/oauth/token/"
USER_AGENT = "BitrixTokenRelay/1.0"

logger = RelayLogger("RELAY")


class TokenExchangeRelay:
    """
    Relays authorization code exchanges to the provider.

    The relay holds only immutable configuration; every call to
    ``exchange`` opens its own HTTP client so concurrent exchanges share
    nothing but the credentials.
    """

    def __init__(self,
                 credentials: ServerCredentials,
                 timeout: float = DEFAULT_TIMEOUT,
                 broker_token_url: str = BROKER_TOKEN_URL,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 user_agent: str = USER_AGENT):
        """
        Args:
            credentials: Client credentials loaded at startup
            timeout: Outbound timeout in seconds
            broker_token_url: Token endpoint used for ``local.`` client ids
            transport: Optional httpx transport (tests inject a mock)
            user_agent: User-Agent sent to the provider
        """
        self.credentials = credentials
        self.timeout = timeout
        self.broker_token_url = broker_token_url
        self.transport = transport
        self.user_agent = user_agent

    def select_token_url(self, tenant_domain: str) -> str:
        """Pick the provider token endpoint for this call."""
        if self.credentials.uses_broker:
            return self.broker_token_url
        return TENANT_TOKEN_URL_TEMPLATE.format(domain=tenant_domain)

    def validate(self, authorization_code: Optional[str], tenant_domain: Optional[str]) -> ExchangeRequest:
        """
        Check request fields and server credentials.

        Raises:
            MissingField: code or domain is absent
            ServerMisconfigured: a client credential is absent
        """
        if not authorization_code:
            raise MissingField("oauth_code")
        if not tenant_domain:
            raise MissingField("domain")
        if not self.credentials.is_complete:
            logger.log_error(
                "missing_env",
                "Missing environment variables",
                self.credentials.presence()
            )
            raise ServerMisconfigured(self.credentials.presence())

        return ExchangeRequest(
            authorization_code=authorization_code,
            tenant_domain=tenant_domain
        )

    def build_form(self, exchange_request: ExchangeRequest) -> dict:
        """Form fields for the provider's token endpoint."""
        return {
            "grant_type": GrantType.AUTHORIZATION_CODE.value,
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            "code": exchange_request.authorization_code,
            "redirect_uri": self.credentials.redirect_uri,
        }

    async def exchange(self, authorization_code: Optional[str], tenant_domain: Optional[str]) -> ExchangeSuccess:
        """
        Exchange an authorization code for tokens.

        Args:
            authorization_code: Code received by the mobile client
            tenant_domain: Tenant hostname the code was issued for

        Returns:
            ExchangeSuccess: Provider JSON payload and status code

        Raises:
            TokenExchangeError: any anticipated failure, see ``errors``
        """
        exchange_request = self.validate(authorization_code, tenant_domain)
        token_url = self.select_token_url(exchange_request.tenant_domain)

        logger.log_relay_message(
            "RELAY", "PROVIDER",
            "Calling Token Endpoint",
            {
                "endpoint": token_url,
                "broker": self.credentials.uses_broker,
                "grant_type": GrantType.AUTHORIZATION_CODE.value,
                "client_id": self.credentials.client_id,
                "code": exchange_request.authorization_code,
                "redirect_uri": self.credentials.redirect_uri,
            }
        )

        upstream = await self._post(token_url, self.build_form(exchange_request))

        logger.log_relay_message(
            "PROVIDER", "RELAY",
            "Token Endpoint Response",
            {
                "status": upstream.status_code,
                "content_type": upstream.content_type,
                "is_json": upstream.is_json,
            }
        )

        result = classify_response(upstream)
        if isinstance(result, NonJsonBody):
            logger.log_error(
                "bitrix_returned_html",
                "Bitrix returned HTML instead of JSON",
                {
                    "status": result.status_code,
                    "content_type": result.content_type,
                    "body_preview": result.body_preview,
                }
            )
            raise UpstreamNonJsonResponse(result.status_code, result.content_type, result.body_preview)

        logger.log_relay_message(
            "RELAY", "CLIENT",
            MessageType.RESPONSE.value,
            {
                "status": result.status_code,
                "domain": exchange_request.tenant_domain,
            }
        )
        return ExchangeSuccess(
            status_code=result.status_code,
            payload=result.payload,
            token_url=token_url
        )

    async def _post(self, token_url: str, form: dict) -> UpstreamResponse:
        """Send the form and read the whole reply."""
        headers = {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=self.timeout,
                follow_redirects=False
            ) as client:
                response = await client.post(token_url, data=form, headers=headers)
                body = await response.aread()
        except httpx.HTTPError as e:
            reason = str(e) or e.__class__.__name__
            logger.log_error(
                "upstream_unreachable",
                reason,
                {"endpoint": token_url, "exception": e.__class__.__name__}
            )
            raise UpstreamUnreachable(reason, token_url=token_url) from e

        return UpstreamResponse(
            status_code=response.status_code,
            body=body,
            content_type=response.headers.get("content-type", "").lower()
        )


def classify_response(upstream: UpstreamResponse) -> Union[ParsedJson, NonJsonBody]:
    """
    Classify a fully read provider reply by its declared content type.

    Raises:
        MalformedUpstreamJson: the reply declared JSON but did not parse
    """
    text = upstream.text
    if not upstream.is_json:
        return NonJsonBody(
            status_code=upstream.status_code,
            content_type=upstream.content_type,
            body_preview=body_preview(text)
        )

    try:
        payload: Any = json.loads(text)
    except ValueError as e:
        logger.log_error(
            "malformed_upstream_json",
            "Bitrix declared JSON but the body did not parse",
            {"status": upstream.status_code, "reason": str(e)}
        )
        raise MalformedUpstreamJson(upstream.status_code, text, str(e)) from e

    return ParsedJson(status_code=upstream.status_code, payload=payload)
