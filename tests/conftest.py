"""
Pytest configuration and shared fixtures for token exchange relay tests.

This module provides credentials, settings, a recording mock of the
provider's token endpoint and test clients used across all test modules.
"""

import json
import pytest
from typing import Callable, Dict, List, Optional
from urllib.parse import parse_qs

import httpx
from fastapi.testclient import TestClient

from src.shared.exchange_models import ServerCredentials
from src.token_exchange.config import Settings
from src.token_exchange.main import create_app
from src.token_exchange.relay import TokenExchangeRelay


CLOUD_CLIENT_ID = "app.5f3c9a1b2d4e6f7a8.12345678"
LOCAL_CLIENT_ID = "local.64a1b2c3d4e5f6.98765432"
CLIENT_SECRET = "sEcReT-ValUe-That-Must-Never-Leak-0123456789"
REDIRECT_URI = "https://relay.example.com/oauth/callback"

TOKEN_PAYLOAD = {"access_token": "abc", "refresh_token": "xyz"}


class ProviderStub:
    """
    Stand-in for the provider's token endpoint.

    Records every request it receives and answers with a configurable
    status, content type and body.
    """

    def __init__(self,
                 status_code: int = 200,
                 content_type: str = "application/json",
                 body: Optional[bytes] = None,
                 error: Optional[Exception] = None):
        self.status_code = status_code
        self.content_type = content_type
        self.body = json.dumps(TOKEN_PAYLOAD).encode() if body is None else body
        self.error = error
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        headers = {"content-type": self.content_type} if self.content_type else {}
        return httpx.Response(self.status_code, headers=headers, content=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def form(self, index: int = -1) -> Dict[str, str]:
        """Decoded form fields of a recorded request."""
        parsed = parse_qs(self.requests[index].content.decode())
        return {key: values[0] for key, values in parsed.items()}

    @property
    def called(self) -> bool:
        return len(self.requests) > 0


@pytest.fixture
def cloud_credentials() -> ServerCredentials:
    """Credentials of a cloud (marketplace) application."""
    return ServerCredentials(
        client_id=CLOUD_CLIENT_ID,
        client_secret=CLIENT_SECRET,
        redirect_uri=REDIRECT_URI
    )


@pytest.fixture
def local_credentials() -> ServerCredentials:
    """Credentials of a self-hosted (local.*) application."""
    return ServerCredentials(
        client_id=LOCAL_CLIENT_ID,
        client_secret=CLIENT_SECRET,
        redirect_uri=REDIRECT_URI
    )


@pytest.fixture
def provider() -> ProviderStub:
    """Provider stub answering with a successful JSON token payload."""
    return ProviderStub()


@pytest.fixture
def provider_factory() -> Callable[..., ProviderStub]:
    """Factory for provider stubs with custom replies."""
    return ProviderStub


@pytest.fixture
def make_relay()-> Callable[..., TokenExchangeRelay]:
    """Factory for relays wired to a provider stub."""
    def _make(credentials: ServerCredentials, stub: ProviderStub, **kwargs) -> TokenExchangeRelay:
        return TokenExchangeRelay(credentials, transport=stub.transport, **kwargs)
    return _make


@pytest.fixture
def make_client() -> Callable[..., TestClient]:
    """Factory for test clients of an app wired to a provider stub."""
    def _make(credentials: ServerCredentials, stub: ProviderStub) -> TestClient:
        app = create_app(Settings(credentials=credentials), transport=stub.transport)
        return TestClient(app)
    return _make


@pytest.fixture
def client(cloud_credentials, provider, make_client) -> TestClient:
    """Test client for a fully configured cloud application."""
    return make_client(cloud_credentials, provider)


@pytest.fixture(autouse=True)
def disable_logging():
    """Disable logging during tests to reduce noise."""
    import logging
    logging.disable(logging.CRITICAL)
    yield
    logging.disable(logging.NOTSET)


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "security: marks tests as security-focused tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "endpoints" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        elif "security" in item.nodeid or "error_handling" in item.nodeid:
            item.add_marker(pytest.mark.security)
        else:
            item.add_marker(pytest.mark.unit)


# Custom assertions for relay testing
def assert_error_payload(response_data: dict, error_kind: str):
    """Assert that a response body is a relay error of the given kind."""
    assert isinstance(response_data, dict)
    assert response_data["error"] == error_kind
    assert isinstance(response_data["message"], str)
    assert len(response_data["message"]) > 0


def assert_no_secret_leak(text: str):
    """Assert that the client secret does not appear in a response or log."""
    assert CLIENT_SECRET not in text


pytest.assert_error_payload = assert_error_payload
pytest.assert_no_secret_leak = assert_no_secret_leak
