"""
Process configuration for the token exchange relay.

Settings are read from the environment once at startup and never change
afterwards. Missing client credentials do not stop the server from
starting; every exchange then reports a configuration error instead.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..shared.exchange_models import ServerCredentials
from ..shared.logging_utils import RelayLogger


SERVICE_NAME = "bitrix-token-exchange"
SERVICE_TITLE = "Bitrix24 Token Exchange API"
SERVICE_VERSION = "1.0.0"

BROKER_TOKEN_URL = "https://oauth.bitrix.info/oauth/token/"
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_TIMEOUT = 30.0

logger = RelayLogger("SYSTEM")


class Settings(BaseModel):
    """Immutable relay configuration."""
    model_config = ConfigDict(frozen=True)

    credentials: ServerCredentials = Field(default_factory=ServerCredentials)
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    broker_token_url: str = BROKER_TOKEN_URL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Settings: Configuration for this process
        """
        env = os.environ if environ is None else environ

        credentials = ServerCredentials(
            client_id=_non_empty(env.get("BITRIX_CLIENT_ID")),
            client_secret=_non_empty(env.get("BITRIX_CLIENT_SECRET")),
            redirect_uri=_non_empty(env.get("BITRIX_REDIRECT_URI")),
        )

        return cls(
            credentials=credentials,
            host=_non_empty(env.get("HOST")) or DEFAULT_HOST,
            port=_parse_number(env.get("PORT"), int, DEFAULT_PORT, "PORT"),
            timeout=_parse_number(env.get("TOKEN_EXCHANGE_TIMEOUT"), float, DEFAULT_TIMEOUT,
                                  "TOKEN_EXCHANGE_TIMEOUT"),
            broker_token_url=_non_empty(env.get("BITRIX_BROKER_TOKEN_URL")) or BROKER_TOKEN_URL,
        )


def _non_empty(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_number(raw: Optional[str], cast, default, name: str):
    """Parse a positive number, falling back to ``default`` on bad input."""
    raw = _non_empty(raw)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.log_warning(f"Ignoring invalid {name}", {"value": raw, "using": default})
        return default
    if value <= 0 or (name == "PORT" and value > 65535):
        logger.log_warning(f"Ignoring out of range {name}", {"value": raw, "using": default})
        return default
    return value
