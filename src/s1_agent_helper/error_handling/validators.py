"""
Input validation functions for the agent helper.

Provides validation for the management console URL, API key, site token,
release channel and numeric limits. Every check runs before any network call.
"""

import base64
import binascii
import json
import re
from typing import Any


DEFAULT_API_KEY_LENGTH = 80
DEFAULT_SITE_TOKEN_MIN_LENGTH = 90

CONSOLE_DOMAIN = "sentinelone.net"

_CONSOLE_PREFIX_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*$")


def validate_console_url(console_url: str) -> str:
    """Validate and normalise a management console URL.

    Accepts a bare console prefix (e.g. 'usea1-purple'), a hostname, or a full
    https URL.

    Args:
        console_url: The console prefix, hostname or URL

    Returns:
        The normalised https URL without a trailing slash

    Raises:
        ValueError: If the value is empty or not an https URL
    """
    if not console_url or not console_url.strip():
        raise ValueError(
            "Management console URL cannot be empty. "
            "Hint: Pass the console prefix (e.g. 'usea1-purple') or the full "
            "console URL (e.g. 'https://usea1-purple.sentinelone.net')."
        )

    value = console_url.strip().rstrip("/")

    if value.startswith("http://"):
        raise ValueError(
            f"Invalid management console URL: '{value}'. "
            "The console API is only served over https. "
            "Hint: Use an 'https://' URL."
        )

    if "://" in value and not value.startswith("https://"):
        raise ValueError(
            f"Invalid management console URL: '{value}'. "
            "Hint: Use an 'https://' URL."
        )

    if value.startswith("https://"):
        return value

    if "." in value:
        return f"https://{value}"

    if not _CONSOLE_PREFIX_RE.match(value):
        raise ValueError(
            f"Invalid management console prefix: '{value}'. "
            "Hint: A console prefix contains only letters, digits and dashes "
            "(e.g. 'usea1-purple')."
        )

    return f"https://{value}.{CONSOLE_DOMAIN}"


def validate_api_key(api_key: str, length: int = DEFAULT_API_KEY_LENGTH) -> str:
    """Validate a console API key.

    Args:
        api_key: The API token to validate
        length: Expected key length (default: 80)

    Returns:
        The validated API key

    Raises:
        ValueError: If the API key is empty, has the wrong length or is not
            alphanumeric
    """
    if not api_key:
        raise ValueError(
            "API key cannot be empty. "
            "Hint: Generate an API token for a service user in the management console."
        )

    if len(api_key) != length:
        raise ValueError(
            f"Invalid format for API key: expected {length} characters, "
            f"got {len(api_key)}. "
            "Hint: API keys are generally 80 characters long and are alphanumeric."
        )

    if not api_key.isalnum():
        raise ValueError(
            "Invalid format for API key: only letters and digits are allowed. "
            "Hint: Check that the key was not truncated or quoted when copied."
        )

    return api_key


def decode_site_token(site_token: str) -> dict[str, Any]:
    """Decode a site token into its embedded fields.

    Site tokens are base64 encoded JSON documents carrying the console URL
    and the site key.

    Args:
        site_token: The site token to decode

    Returns:
        The decoded token fields

    Raises:
        ValueError: If the token is not base64 encoded JSON
    """
    padded = site_token + "=" * (-len(site_token) % 4)
    try:
        raw = base64.b64decode(padded, validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(
            f"Site token does not decode correctly: {e}. "
            "Hint: Copy the site token from Sentinels > Policy > Site Token."
        ) from e

    if not isinstance(data, dict):
        raise ValueError(
            "Site token does not decode to a JSON object. "
            "Hint: Copy the site token from Sentinels > Policy > Site Token."
        )

    return data


def validate_site_token(
    site_token: str,
    min_length: int = DEFAULT_SITE_TOKEN_MIN_LENGTH,
    verify_structure: bool = True,
) -> str:
    """Validate a site token.

    Args:
        site_token: The site token to validate
        min_length: Minimum token length (default: 90)
        verify_structure: Decode the token and check its embedded fields

    Returns:
        The validated site token

    Raises:
        ValueError: If the token is empty, too short or malformed
    """
    if not site_token or not site_token.strip():
        raise ValueError(
            "Site token cannot be empty. "
            "Hint: Copy the site token from Sentinels > Policy > Site Token."
        )

    site_token = site_token.strip()

    if len(site_token) < min_length:
        raise ValueError(
            f"Invalid format for site token: expected at least {min_length} "
            f"characters, got {len(site_token)}. "
            "Hint: Site tokens are generally more than 90 characters long and are ASCII encoded."
        )

    if verify_structure:
        fields = decode_site_token(site_token)
        missing = [key for key in ("url", "site_key") if not fields.get(key)]
        if missing:
            raise ValueError(
                f"Site token is missing embedded fields: {', '.join(missing)}. "
                "Hint: Make sure a site token was passed, not a registry credential."
            )

    return site_token


def validate_release_channel(version_status: str) -> str:
    """Validate and normalise a release channel selector.

    Args:
        version_status: 'GA' or 'EA' in any case

    Returns:
        The canonical lower-case channel ('ga' or 'ea')

    Raises:
        ValueError: If the value is neither GA nor EA
    """
    value = (version_status or "").strip().lower()

    if value not in ("ga", "ea"):
        raise ValueError(
            f"Invalid format for version status: '{version_status}'. "
            "The value must be either 'GA' or 'EA'. "
            "Hint: GA selects General Availability packages, EA selects Early Access packages."
        )

    return value


def validate_limit(limit: int, min_val: int = 1, max_val: int = 100) -> int:
    """Validate a limit parameter such as the catalog page size.

    Args:
        limit: The limit value to validate
        min_val: Minimum allowed value (default: 1)
        max_val: Maximum allowed value (default: 100)

    Returns:
        The validated limit

    Raises:
        ValueError: If the limit is out of range
    """
    if limit < min_val:
        raise ValueError(
            f"Limit must be at least {min_val}, got {limit}. "
            "Hint: Use a positive integer for limit."
        )

    if limit > max_val:
        raise ValueError(
            f"Limit cannot exceed {max_val}, got {limit}. "
            "Hint: The console only needs to return the most recent packages."
        )

    return limit


def mask_secret(value: str, visible: int = 4) -> str:
    """Mask a secret for logging, keeping the last few characters."""
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
