"""
Bitrix24 Token Exchange Relay

This FastAPI application keeps the OAuth client secret off the mobile
device. The app posts the authorization code it received to
``/api/exchangetoken``; the relay forwards it to the provider's token
endpoint with the server-held credentials and returns the token response.

Key Endpoints:
- `/api/exchangetoken` - Authorization code exchange
- `/health` - Health check endpoint
- `/` - Service descriptor

Configuration (environment, read once at startup):
- BITRIX_CLIENT_ID, BITRIX_CLIENT_SECRET, BITRIX_REDIRECT_URI
- PORT, HOST, TOKEN_EXCHANGE_TIMEOUT, BITRIX_BROKER_TOKEN_URL
"""

from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..shared.exchange_models import ErrorKind
from ..shared.logging_utils import RelayLogger
from ..shared.security import SecurityHeaders
from .config import SERVICE_TITLE, SERVICE_VERSION, Settings
from .errors import TokenExchangeError
from .relay import TokenExchangeRelay
from .routes import router

logger = RelayLogger("RELAY")


def create_app(settings: Optional[Settings] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Process configuration (defaults to ``Settings.from_env()``)
        transport: Optional httpx transport for outbound calls

    Returns:
        FastAPI: Configured application
    """
    if settings is None:
        settings = Settings.from_env()

    app = FastAPI(
        title=SERVICE_TITLE,
        description="Relays Bitrix24 OAuth authorization codes to the token endpoint "
                    "using server-held client credentials.",
        version=SERVICE_VERSION,
        redirect_slashes=False,
    )
    if not settings.credentials.is_complete:
        logger.log_warning(
            "Client credentials incomplete, token exchanges will fail",
            settings.credentials.presence()
        )
    logger.log_info(
        "Relay configured",
        {
            "broker_mode": settings.credentials.uses_broker,
            "timeout_seconds": settings.timeout
        }
    )

    app.state.settings = settings
    app.state.relay = TokenExchangeRelay(
        credentials=settings.credentials,
        timeout=settings.timeout,
        broker_token_url=settings.broker_token_url,
        transport=transport
    )

    # CORS for the mobile client and security headers on every response
    @app.middleware("http")
    async def add_response_headers(request: Request, call_next):
        if request.method == "OPTIONS":
            response = JSONResponse(status_code=200, content={})
        else:
            if request.url.path not in ["/health", "/docs", "/openapi.json"]:
                logger.log_http_request(
                    request.method,
                    request.url.path,
                    headers={"content-type": request.headers.get("content-type", "")}
                )
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.logger.exception("Unhandled error while serving %s", request.url.path)
                response = JSONResponse(
                    status_code=500,
                    content={"error": ErrorKind.EXCEPTION.value, "message": str(exc)}
                )

        for header_name, header_value in SecurityHeaders.get_cors_headers().items():
            response.headers[header_name] = header_value
        for header_name, header_value in SecurityHeaders.get_relay_security_headers().items():
            response.headers[header_name] = header_value

        return response

    @app.exception_handler(TokenExchangeError)
    async def token_exchange_error_handler(request: Request, exc: TokenExchangeError):
        logger.log_error(
            exc.error_kind.value,
            exc.message,
            {"path": request.url.path, "status": exc.status_code}
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse(
                status_code=404,
                content={
                    "error": ErrorKind.NOT_FOUND.value,
                    "message": f"Route {request.method} {request.url.path} not found"
                }
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": ErrorKind.EXCEPTION.value, "message": str(exc.detail)}
        )

    app.include_router(router)
    return app


app = create_app()


def run():
    """Start the relay with uvicorn using the environment configuration."""
    import uvicorn

    settings = app.state.settings
    logger.log_startup(
        settings.port,
        {
            "service": SERVICE_TITLE,
            "health_check": f"http://localhost:{settings.port}/health",
            "exchange_endpoint": f"http://localhost:{settings.port}/api/exchangetoken",
            "credentials": settings.credentials.presence()
        }
    )

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
