"""
Colored logging utilities for the token exchange relay.

This module provides colored console logging with component identification,
timestamps, and message formatting so that each hop of a token exchange
(mobile client -> relay -> identity provider) is easy to follow in the
server output. Sensitive values are redacted or truncated before anything
is written.
"""

import logging
from datetime import datetime
from typing import Dict, Any, Optional
from enum import Enum

from colorama import Fore, Style, init

from .security import preview_secret

init(autoreset=True)  # Initialize colorama for Windows compatibility


# Number of characters kept when previewing codes, tokens and client ids
PREVIEW_LENGTH = 20


class ComponentType(str, Enum):
    """Components that take part in a token exchange."""
    CLIENT = "CLIENT"
    RELAY = "RELAY"
    PROVIDER = "PROVIDER"
    SYSTEM = "SYSTEM"


class MessageType(str, Enum):
    """Message types for relay logging."""
    RESPONSE = "RESPONSE"
    ERROR = "ERROR"
    HTTP_REQUEST = "HTTP-REQUEST"


class RelayLogger:
    """
    Colored logger for token exchange message flows.

    Provides logging with color coding, timestamps, and structured
    message formatting to help follow exchanges and debug provider issues.
    """

    def __init__(self, component_name: str):
        """
        Initialize relay logger for a specific component.

        Args:
            component_name: Name of the component (RELAY, SYSTEM, etc.)
        """
        self.component_name = component_name.upper()
        self.colors = self._get_component_colors()

        # Set up Python logging
        self.logger = logging.getLogger(f"relay.{component_name.lower()}")
        self.logger.setLevel(logging.INFO)

        # Remove existing handlers to avoid duplicates
        self.logger.handlers.clear()

        # Add console handler
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        self.logger.addHandler(handler)
        self.logger.propagate = False

    def _get_component_colors(self) -> Dict[str, str]:
        """Get color scheme for different components and message types."""
        return {
            'CLIENT': Fore.BLUE + Style.BRIGHT,
            'RELAY': Fore.GREEN + Style.BRIGHT,
            'PROVIDER': Fore.YELLOW + Style.BRIGHT,
            'SYSTEM': Fore.MAGENTA + Style.BRIGHT,
            'ERROR': Fore.RED + Style.BRIGHT,
            'SUCCESS': Fore.GREEN + Style.BRIGHT,
            'INFO': Fore.CYAN,
            'DEBUG': Fore.WHITE + Style.DIM,
            'HEADER': Fore.WHITE + Style.BRIGHT,
            'SEPARATOR': Fore.WHITE + Style.DIM,
            'RESET': Style.RESET_ALL
        }

    def _format_timestamp(self) -> str:
        """Format current timestamp for log messages."""
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

    def _sanitize_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sanitize sensitive data for logging.

        Redacts secrets and truncates codes, tokens and client ids.
        """
        sanitized = {}
        for key, value in data.items():
            key_lower = key.lower()

            if any(sensitive in key_lower for sensitive in ['password', 'secret', 'key']):
                sanitized[key] = '[REDACTED]'
            elif any(token in key_lower for token in ['token', 'code', 'client_id']):
                sanitized[key] = preview_secret(value, PREVIEW_LENGTH) if isinstance(value, str) else value
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_data(value)
            else:
                sanitized[key] = value

        return sanitized

    def _emit(self, level: int, line: str):
        self.logger.log(level, line)

    def log_relay_message(self,
                          source: str,
                          destination: str,
                          message_type: str,
                          data: Dict[str, Any],
                          success: bool = True):
        """
        Log a relay message with color coding and formatting.

        Args:
            source: Source component name
            destination: Destination component name
            message_type: Type of message (REQUEST, RESPONSE, etc.)
            data: Message data dictionary
            success: Whether the operation was successful
        """
        timestamp = self._format_timestamp()
        source_color = self.colors.get(source.upper(), self.colors['INFO'])
        dest_color = self.colors.get(destination.upper(), self.colors['INFO'])
        level = logging.INFO if success else logging.ERROR

        if not success:
            msg_color = self.colors['ERROR']
        elif message_type in ['RESPONSE', 'SUCCESS']:
            msg_color = self.colors['SUCCESS']
        else:
            msg_color = self.colors['INFO']

        header = f"{self.colors['HEADER']}[{timestamp}] {source_color}{source}{self.colors['RESET']} → {dest_color}{destination}{self.colors['RESET']}"
        self._emit(level, header)
        self._emit(level, f"{msg_color}{message_type}:{self.colors['RESET']}")

        sanitized_data = self._sanitize_data(data)
        for key, value in sanitized_data.items():
            self._emit(level, f"  {self.colors['INFO']}{key}:{self.colors['RESET']} {value}")

        self._emit(level, f"{self.colors['SEPARATOR']}{'-' * 60}{self.colors['RESET']}")

    def log_http_request(self,
                         method: str,
                         path: str,
                         headers: Optional[Dict[str, str]] = None):
        """
        Log HTTP request details.

        Args:
            method: HTTP method
            path: Request path
            headers: Request headers (sensitive headers will be redacted)
        """
        request_data = {
            "method": method,
            "path": path
        }

        if headers:
            safe_headers = {}
            for key, value in headers.items():
                if key.lower() in ['authorization', 'cookie', 'x-api-key']:
                    safe_headers[key] = '[REDACTED]'
                else:
                    safe_headers[key] = value
            request_data["headers"] = safe_headers

        self.log_relay_message(
            source=ComponentType.CLIENT.value,
            destination=self.component_name,
            message_type=MessageType.HTTP_REQUEST.value,
            data=request_data
        )

    def log_error(self,
                  error_type: str,
                  message: str,
                  details: Optional[Dict[str, Any]] = None):
        """
        Log error messages with context.

        Args:
            error_type: Type of error
            message: Error message
            details: Additional error context
        """
        error_data = {
            "error_type": error_type,
            "message": message
        }

        if details:
            error_data.update(details)

        self.log_relay_message(
            source=self.component_name,
            destination="ERROR-HANDLER",
            message_type=MessageType.ERROR.value,
            data=error_data,
            success=False
        )

    def log_info(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Log informational messages.

        Args:
            message: Info message
            details: Additional context
        """
        self._emit(logging.INFO, f"{self.colors['INFO']}[{self._format_timestamp()}] {self.component_name}: {message}{self.colors['RESET']}")
        if details:
            for key, value in self._sanitize_data(details).items():
                self._emit(logging.INFO, f"  {key}: {value}")

    def log_warning(self, message: str, details: Optional[Dict[str, Any]] = None):
        """Log a warning line, e.g. for ignored configuration values."""
        self._emit(logging.WARNING, f"{self.colors['ERROR']}[{self._format_timestamp()}] {self.component_name}: {message}{self.colors['RESET']}")
        if details:
            for key, value in self._sanitize_data(details).items():
                self._emit(logging.WARNING, f"  {key}: {value}")

    def log_startup(self, port: int, additional_info: Optional[Dict[str, Any]] = None):
        """
        Log component startup information.

        Args:
            port: Port number the component is running on
            additional_info: Additional startup information
        """
        self._emit(logging.INFO, f"{self.colors['SEPARATOR']}{'=' * 60}{self.colors['RESET']}")
        self._emit(logging.INFO, f"{self.colors['SUCCESS']}🚀 {self.component_name} started on port {port}{self.colors['RESET']}")
        if additional_info:
            for key, value in self._sanitize_data(additional_info).items():
                self._emit(logging.INFO, f"   {key}: {value}")
        self._emit(logging.INFO, f"{self.colors['SEPARATOR']}{'=' * 60}{self.colors['RESET']}")


def create_logger(component_name: str) -> RelayLogger:
    """
    Factory function to create relay logger instances.

    Args:
        component_name: Name of the component

    Returns:
        RelayLogger: Configured logger instance
    """
    return RelayLogger(component_name)
