"""
Security utilities for the token exchange relay.

This module provides the response headers the relay attaches to every reply
and helpers for producing bounded, non-revealing previews of secrets and
upstream bodies for diagnostics.
"""

from typing import Optional


# Maximum number of characters of an upstream body echoed back to callers
BODY_PREVIEW_LIMIT = 200


class SecurityHeaders:
    """
    Security headers for HTTP responses.

    Provides standard security headers and the permissive CORS headers used
    by the first-party mobile client.
    """

    @staticmethod
    def get_relay_security_headers() -> dict:
        """
        Get security headers for relay endpoints.

        Token responses must never be cached by intermediaries.

        Returns:
            dict: Dictionary of security headers
        """
        return {
            'X-Content-Type-Options': 'nosniff',
            'X-Frame-Options': 'DENY',
            'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
            'Cache-Control': 'no-cache, no-store, must-revalidate',
            'Pragma': 'no-cache',
            'Expires': '0'
        }

    @staticmethod
    def get_cors_headers(allowed_origins: Optional[list] = None) -> dict:
        """
        Get CORS headers for cross-origin requests.

        Args:
            allowed_origins: List of allowed origins (default: any origin)

        Returns:
            dict: Dictionary of CORS headers
        """
        if allowed_origins is None:
            allowed_origins = ['*']

        return {
            'Access-Control-Allow-Origin': ', '.join(allowed_origins),
            'Access-Control-Allow-Methods': 'GET, POST, OPTIONS',
            'Access-Control-Allow-Headers': 'Content-Type'
        }


def preview_secret(value: Optional[str], length: int = 20) -> Optional[str]:
    """
    Truncate a sensitive value for diagnostics.

    Args:
        value: Value to preview (authorization code, client id, token)
        length: Number of leading characters to keep

    Returns:
        str: The first ``length`` characters followed by ``...``. Values no
        longer than ``length`` keep only their first half so they are
        never written out in full.
    """
    if value is None:
        return None
    if len(value) > length:
        return value[:length] + "..."
    return value[:len(value) // 2] + "..."


def body_preview(body: str, limit: int = BODY_PREVIEW_LIMIT) -> str:
    """Return at most ``limit`` characters of an upstream response body."""
    return body[:limit]
