from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..shared.exchange_models import ErrorKind
from ..shared.logging_utils import RelayLogger
from .config import SERVICE_NAME, SERVICE_TITLE, SERVICE_VERSION
from .errors import TokenExchangeError
from .relay import TokenExchangeRelay

logger = RelayLogger("RELAY")
router = APIRouter()


def get_relay(request: Request) -> TokenExchangeRelay:
    """Relay built by ``create_app`` for this process."""
    return request.app.state.relay


async def read_exchange_fields(request: Request) -> Dict[str, Any]:
    """
    Read the request body as JSON or form data.

    Bodies that are not a JSON object or a form are treated as empty so the
    usual missing-field errors are reported.
    """
    content_type = request.headers.get("content-type", "").lower()

    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _field(fields: Dict[str, Any], name: str):
    value = fields.get(name)
    if not value:
        return None
    return value if isinstance(value, str) else str(value)


@router.get("/health")
async def health_check():
    """Health check endpoint for load balancers and uptime monitors."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )


@router.get("/")
async def root():
    """Service descriptor listing the available endpoints."""
    return JSONResponse(
        content={
            "service": SERVICE_TITLE,
            "version": SERVICE_VERSION,
            "endpoints": {
                "health": "/health",
                "tokenExchange": "POST /api/exchangetoken"
            }
        }
    )


@router.post("/api/exchangetoken")
async def exchange_token(request: Request, relay: TokenExchangeRelay = Depends(get_relay)):
    """
    Exchange an authorization code for provider tokens.

    Body fields:
    - oauth_code: authorization code received by the mobile client
    - domain: tenant hostname the code was issued for

    The provider's JSON reply is returned verbatim with the provider's
    status code. Anticipated failures are reported by the application's
    ``TokenExchangeError`` handler; anything else becomes a generic 500.
    """
    try:
        fields = await read_exchange_fields(request)

        logger.log_relay_message(
            "CLIENT", "RELAY",
            "Token Exchange Request Received",
            {
                "oauth_code": _field(fields, "oauth_code"),
                "domain": _field(fields, "domain"),
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        result = await relay.exchange(_field(fields, "oauth_code"), _field(fields, "domain"))
    except TokenExchangeError:
        raise
    except Exception as e:
        logger.logger.exception("Token exchange failed with an unexpected error")
        return JSONResponse(
            status_code=500,
            content={"error": ErrorKind.EXCEPTION.value, "message": str(e)}
        )

    return JSONResponse(status_code=result.status_code, content=result.payload)
