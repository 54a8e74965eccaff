"""
HTTP error handling utilities.

Maps console API failures to user-friendly error messages and determines
which failures are retryable.
"""

from typing import Any

import httpx


RETRYABLE_STATUS_CODES = (408, 429, 500, 502, 503, 504)


def is_retryable_http_error(exception: Any) -> bool:
    """Determine if an HTTP failure is retryable.

    Transport failures, timeouts and transient server responses (408, 429,
    5xx gateway errors) should be retried with exponential backoff.

    Args:
        exception: The exception to check

    Returns:
        True if the error is retryable, False otherwise
    """
    if isinstance(exception, httpx.TransportError):
        return True

    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in RETRYABLE_STATUS_CODES

    return False


def is_authentication_failure(status_code: int, payload: Any = None) -> bool:
    """Check whether a console response signals rejected credentials.

    The console reports an invalid API key either with a 401/403 status or
    with an 'errors' member in the JSON body.
    """
    if status_code in (401, 403):
        return True
    return isinstance(payload, dict) and "errors" in payload


def map_http_error(error: Exception, operation: str) -> dict[str, Any]:
    """Map an HTTP error to a user-friendly message with hints.

    Args:
        error: The httpx exception
        operation: Description of the operation that failed (e.g. "catalog query")

    Returns:
        Dictionary with keys:
        - error: User-friendly error message
        - hint: Actionable hint for resolving the issue
        - http_status: The HTTP status code, or None for transport errors
    """
    if isinstance(error, httpx.TimeoutException):
        return {
            "error": f"Request timed out during {operation}",
            "hint": (
                "1. Check network connectivity to the management console\n"
                "2. Increase the timeout if the link is slow"
            ),
            "http_status": None,
        }

    if isinstance(error, httpx.TransportError):
        return {
            "error": f"Management console is unreachable during {operation}: {error}",
            "hint": (
                "1. Verify the console URL or prefix\n"
                "2. Check DNS resolution and proxy settings\n"
                "3. Ensure outbound https is allowed"
            ),
            "http_status": None,
        }

    if not isinstance(error, httpx.HTTPStatusError):
        return {
            "error": f"Unknown error during {operation}",
            "hint": "Re-run with --log-level DEBUG for details.",
            "http_status": None,
        }

    status = error.response.status_code

    if status in (401, 403):
        return {
            "error": f"Authentication failed during {operation}",
            "hint": (
                "1. Check that the API key is valid and not expired\n"
                "2. Verify the key belongs to this management console\n"
                "3. Ensure the service user has permission to view packages"
            ),
            "http_status": status,
        }

    if status == 404:
        return {
            "error": f"Resource not found during {operation}",
            "hint": (
                "1. Verify the console URL\n"
                "2. The package may have been removed from the console"
            ),
            "http_status": status,
        }

    if status == 429:
        return {
            "error": f"Rate limited by the management console during {operation}",
            "hint": "Wait a moment and retry.",
            "http_status": status,
        }

    if status >= 500:
        return {
            "error": f"Management console error during {operation} (HTTP {status})",
            "hint": (
                "1. The console may be under maintenance\n"
                "2. Try again after a delay"
            ),
            "http_status": status,
        }

    return {
        "error": f"Unexpected HTTP {status} during {operation}",
        "hint": "Check the request parameters and console version.",
        "http_status": status,
    }
