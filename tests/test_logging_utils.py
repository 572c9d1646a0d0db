"""
Unit tests for relay logging utilities.

Tests the RelayLogger class and related logging functions to ensure
proper message formatting, redaction of secrets and truncation of codes.
"""

import logging
import pytest
from unittest.mock import patch

from src.shared.logging_utils import (
    RelayLogger,
    ComponentType,
    MessageType,
    create_logger
)


def _logged_lines(mock_log) -> str:
    return " ".join(call.args[1] for call in mock_log.call_args_list)


class TestComponentType:
    """Test cases for ComponentType enum."""

    def test_component_type_values(self):
        """Test that component types have correct values."""
        assert ComponentType.CLIENT == "CLIENT"
        assert ComponentType.RELAY == "RELAY"
        assert ComponentType.PROVIDER == "PROVIDER"
        assert ComponentType.SYSTEM == "SYSTEM"


class TestMessageType:
    """Test cases for MessageType enum."""

    def test_message_type_values(self):
        assert MessageType.RESPONSE == "RESPONSE"
        assert MessageType.ERROR == "ERROR"
        assert MessageType.HTTP_REQUEST == "HTTP-REQUEST"


class TestRelayLogger:
    """Test cases for RelayLogger class."""

    def test_logger_initialization(self):
        """Test relay logger initialization."""
        logger = RelayLogger("relay")

        assert logger.component_name == "RELAY"
        assert logger.logger.name == "relay.relay"
        assert "RELAY" in logger.colors
        assert "PROVIDER" in logger.colors

    def test_repeated_initialization_keeps_single_handler(self):
        """Creating the same logger twice must not duplicate output."""
        RelayLogger("system")
        logger = RelayLogger("system")

        assert len(logger.logger.handlers) == 1
        assert logger.logger.propagate is False

    def test_format_timestamp(self):
        logger = RelayLogger("relay")
        timestamp = logger._format_timestamp()

        assert "-" in timestamp
        assert ":" in timestamp
        assert "." in timestamp

    def test_sanitize_data_secrets(self):
        """Secrets are fully redacted."""
        logger = RelayLogger("relay")

        sanitized = logger._sanitize_data({
            "client_secret": "very_secret_value",
            "api_key": "key123",
            "domain": "acme.bitrix24.com"
        })

        assert sanitized["client_secret"] == "[REDACTED]"
        assert sanitized["api_key"] == "[REDACTED]"
        assert sanitized["domain"] == "acme.bitrix24.com"

    def test_sanitize_data_truncates_codes_and_client_ids(self):
        """Codes, tokens and client ids keep only a 20 character preview."""
        logger = RelayLogger("relay")

        sanitized = logger._sanitize_data({
            "oauth_code": "0123456789abcdefghijKLMNOP",
            "access_token": "shortcode1234",
            "client_id": "local.64a1b2c3d4e5f6.98765432"
        })

        assert sanitized["oauth_code"] == "0123456789abcdefghij..."
        assert sanitized["access_token"] == "shortc..."
        assert sanitized["client_id"] == "local.64a1b2c3d4e5f6..."

    def test_sanitize_data_non_string_values_untouched(self):
        logger = RelayLogger("relay")

        sanitized = logger._sanitize_data({"status_code": 200, "has_client_id": True})

        assert sanitized == {"status_code": 200, "has_client_id": True}

    def test_sanitize_data_nested_dicts(self):
        """Nested parameter dicts are sanitized too."""
        logger = RelayLogger("relay")

        sanitized = logger._sanitize_data({
            "parameters": {"client_secret": "abc", "domain": "acme.bitrix24.com"}
        })

        assert sanitized["parameters"]["client_secret"] == "[REDACTED]"
        assert sanitized["parameters"]["domain"] == "acme.bitrix24.com"

    def test_log_relay_message_basic(self):
        logger = RelayLogger("relay")

        with patch.object(logger.logger, "log") as mock_log:
            logger.log_relay_message(
                source="RELAY",
                destination="PROVIDER",
                message_type="Calling Token Endpoint",
                data={"endpoint": "https://acme.bitrix24.com/oauth/token/"}
            )

        content = _logged_lines(mock_log)
        assert "RELAY" in content
        assert "PROVIDER" in content
        assert "Calling Token Endpoint" in content
        assert "https://acme.bitrix24.com/oauth/token/" in content
        assert all(call.args[0] == logging.INFO for call in mock_log.call_args_list)

    def test_log_relay_message_failure_uses_error_level(self):
        logger = RelayLogger("relay")

        with patch.object(logger.logger, "log") as mock_log:
            logger.log_relay_message("RELAY", "CLIENT", "ERROR", {"error": "missing_env"}, success=False)

        assert all(call.args[0] == logging.ERROR for call in mock_log.call_args_list)
        assert "missing_env" in _logged_lines(mock_log)

    def test_log_relay_message_never_writes_secret(self):
        logger = RelayLogger("relay")

        with patch.object(logger.logger, "log") as mock_log:
            logger.log_relay_message("RELAY", "PROVIDER", "REQUEST", {
                "client_secret": "sEcReT-ValUe-That-Must-Never-Leak",
                "code": "a" * 64
            })

        content = _logged_lines(mock_log)
        assert "sEcReT-ValUe-That-Must-Never-Leak" not in content
        assert "a" * 21 not in content

    def test_log_error(self):
        logger = RelayLogger("relay")

        with patch.object(logger.logger, "log") as mock_log:
            logger.log_error("upstream_unreachable", "Connection refused", {"endpoint": "https://x/oauth/token/"})

        content = _logged_lines(mock_log)
        assert "ERROR-HANDLER" in content
        assert "upstream_unreachable" in content
        assert "Connection refused" in content

    def test_log_http_request_redacts_headers(self):
        logger = RelayLogger("relay")

        with patch.object(logger.logger, "log") as mock_log:
            logger.log_http_request(
                "POST", "/api/exchangetoken",
                headers={"Authorization": "Bearer abc", "Content-Type": "application/json"}
            )

        content = _logged_lines(mock_log)
        assert "Bearer abc" not in content
        assert "[REDACTED]" in content
        assert "application/json" in content

    def test_log_warning(self):
        logger = RelayLogger("system")

        with patch.object(logger.logger, "log") as mock_log:
            logger.log_warning("Ignoring invalid PORT", {"value": "abc"})

        assert mock_log.call_args_list[0].args[0] == logging.WARNING
        assert "Ignoring invalid PORT" in _logged_lines(mock_log)

    def test_log_startup(self):
        logger = RelayLogger("relay")

        with patch.object(logger.logger, "log") as mock_log:
            logger.log_startup(3000, {"health_check": "http://localhost:3000/health"})

        content = _logged_lines(mock_log)
        assert "3000" in content
        assert "http://localhost:3000/health" in content


def test_create_logger():
    logger = create_logger("provider")

    assert isinstance(logger, RelayLogger)
    assert logger.component_name == "PROVIDER"


def test_log_info_sanitizes_details():
    logger = RelayLogger("relay")

    with patch.object(logger.logger, "log") as mock_log:
        logger.log_info("Relay configured", {"client_secret": "hunter2", "timeout_seconds": 30.0})

    content = _logged_lines(mock_log)
    assert "Relay configured" in content
    assert "hunter2" not in content
    assert "30.0" in content
