"""
Error handling utilities for the agent helper.

Provides validators, the pipeline exception taxonomy and HTTP error mapping.
"""

from .validators import (
    decode_site_token,
    mask_secret,
    validate_api_key,
    validate_console_url,
    validate_limit,
    validate_release_channel,
    validate_site_token,
)
from .http_handlers import (
    is_authentication_failure,
    is_retryable_http_error,
    map_http_error,
)
from .exceptions import (
    AgentHelperError,
    ArtifactTransferError,
    CatalogAuthenticationError,
    CatalogError,
    InstallCancelled,
    InstallStepError,
    PackageSelectionError,
)

__all__ = [
    # Validators
    "decode_site_token",
    "mask_secret",
    "validate_api_key",
    "validate_console_url",
    "validate_limit",
    "validate_release_channel",
    "validate_site_token",
    # HTTP handlers
    "is_authentication_failure",
    "is_retryable_http_error",
    "map_http_error",
    # Exceptions
    "AgentHelperError",
    "ArtifactTransferError",
    "CatalogAuthenticationError",
    "CatalogError",
    "InstallCancelled",
    "InstallStepError",
    "PackageSelectionError",
]
