"""
Configuration management for the agent helper.

Credentials and the release channel are read from a YAML file or from the
environment (the same parameter names the AWS Systems Manager variant keeps in
Parameter Store). Configuration objects are immutable and passed explicitly
through the pipeline.
"""

import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from .error_handling import (
    validate_api_key,
    validate_console_url,
    validate_limit,
    validate_release_channel,
    validate_site_token,
)
from .error_handling.validators import DEFAULT_API_KEY_LENGTH, DEFAULT_SITE_TOKEN_MIN_LENGTH

AUTH_SCHEMES = ("ApiToken", "APIToken")

DEFAULT_SENTINELCTL_PATH = "/opt/sentinelone/bin/sentinelctl"

ENV_CONFIG_PATH = "S1_CONFIG_PATH"
ENV_CONSOLE_URL = "S1_MGMT_URL"
ENV_API_KEY = "S1_API_KEY"
ENV_SITE_TOKEN = "S1_SITE_TOKEN"
ENV_VERSION_STATUS = "S1_VERSION_STATUS"


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def parse_auto_reboot(value: Any) -> bool:
    """Interpret the auto_reboot input.

    Only a real boolean true or the literal string 'True' forces a reboot;
    anything else means no forced reboot.
    """
    if isinstance(value, bool):
        return value
    return value == "True"


@dataclass(frozen=True)
class HelperConfig:
    """Connection settings and credentials for one run.

    Attributes:
        console_url: Management console URL or prefix
        api_key: API token used as bearer credential
        site_token: Token associating the agent with a site
        version_status: Release channel selector (GA/EA)
        auth_scheme: Authorization header scheme ('ApiToken' or 'APIToken')
        verify_tls: Verify the console's TLS certificate
        catalog_timeout: Timeout in seconds for the catalog request
        download_timeout: Timeout in seconds for the package download
        api_key_length: Expected API key length
        site_token_min_length: Minimum accepted site token length
        verify_site_token: Decode the site token and check its fields
    """
    console_url: str
    api_key: str
    site_token: str
    version_status: str
    auth_scheme: str = "ApiToken"
    verify_tls: bool = True
    catalog_timeout: float = 60.0
    download_timeout: float = 600.0
    api_key_length: int = DEFAULT_API_KEY_LENGTH
    site_token_min_length: int = DEFAULT_SITE_TOKEN_MIN_LENGTH
    verify_site_token: bool = True

    @classmethod
    def from_config_file(cls, config_path: str) -> "HelperConfig":
        """Load configuration from a YAML file.

        Args:
            config_path: Path to the configuration file

        Returns:
            HelperConfig instance

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a YAML mapping
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

        return cls(
            console_url=str(data.get("console_url") or data.get("mgmt_url") or ""),
            api_key=str(data.get("api_key") or ""),
            site_token=str(data.get("site_token") or ""),
            version_status=str(data.get("version_status") or ""),
            auth_scheme=data.get("auth_scheme", "ApiToken"),
            verify_tls=_as_bool(data.get("verify_tls"), default=True),
            catalog_timeout=float(data.get("catalog_timeout", 60.0)),
            download_timeout=float(data.get("download_timeout", 600.0)),
            api_key_length=int(data.get("api_key_length", DEFAULT_API_KEY_LENGTH)),
            site_token_min_length=int(
                data.get("site_token_min_length", DEFAULT_SITE_TOKEN_MIN_LENGTH)
            ),
            verify_site_token=_as_bool(data.get("verify_site_token"), default=True),
        )

    @classmethod
    def from_env(cls) -> "HelperConfig":
        """Load configuration from environment variables."""
        return cls(
            console_url=os.environ.get(ENV_CONSOLE_URL, ""),
            api_key=os.environ.get(ENV_API_KEY, ""),
            site_token=os.environ.get(ENV_SITE_TOKEN, ""),
            version_status=os.environ.get(ENV_VERSION_STATUS, ""),
            auth_scheme=os.environ.get("S1_AUTH_SCHEME", "ApiToken"),
            verify_tls=_as_bool(os.environ.get("S1_VERIFY_TLS"), default=True),
            catalog_timeout=float(os.environ.get("S1_CATALOG_TIMEOUT", "60")),
            download_timeout=float(os.environ.get("S1_DOWNLOAD_TIMEOUT", "600")),
        )

    def with_overrides(self, **overrides: Any) -> "HelperConfig":
        """Return a copy with the non-empty overrides applied."""
        values = {k: v for k, v in overrides.items() if v not in (None, "")}
        return replace(self, **values)

    @property
    def base_url(self) -> str:
        """The normalised https URL of the management console."""
        return validate_console_url(self.console_url)

    @property
    def channel(self) -> str:
        """The canonical lower-case release channel."""
        return validate_release_channel(self.version_status)

    @property
    def authorization_header(self) -> str:
        return f"{self.auth_scheme} {self.api_key}"

    def validate(self, require_site_token: bool = True) -> None:
        """Validate that all required inputs are present and well formed.

        Args:
            require_site_token: Also validate the site token. Catalog-only
                operations do not need one.

        Raises:
            ValueError: If any input is invalid
        """
        if not self.console_url:
            raise ValueError("Management console URL is required")
        validate_console_url(self.console_url)
        validate_api_key(self.api_key, length=self.api_key_length)
        if require_site_token:
            validate_site_token(
                self.site_token,
                min_length=self.site_token_min_length,
                verify_structure=self.verify_site_token,
            )
        validate_release_channel(self.version_status)
        if self.auth_scheme not in AUTH_SCHEMES:
            raise ValueError(
                f"Unknown authorization scheme '{self.auth_scheme}'. "
                f"Available: {', '.join(AUTH_SCHEMES)}"
            )
        if self.catalog_timeout <= 0 or self.download_timeout <= 0:
            raise ValueError("Timeouts must be positive numbers of seconds")


@dataclass(frozen=True)
class InstallOptions:
    """Behaviour switches for one install run.

    Attributes:
        selection_policy: 'canonical-version' or 'first-match'
        auto_reboot: Force a reboot after a legacy Windows install
        start_agent: Start the agent after setting the site token
        cleanup_staged_files: Delete the downloaded installer afterwards
        staging_dir: Directory the installer is downloaded to
        catalog_limit: Number of catalog entries to request
        catalog_sort: Field the console sorts the listing by (newest first)
        download_retries: Attempts for the package download
        dry_run: Log commands without executing them
        sentinelctl_path: Location of the agent control CLI
        profile: Name of the profile the options were derived from
    """
    selection_policy: str = "canonical-version"
    auto_reboot: bool = False
    start_agent: bool = True
    cleanup_staged_files: bool = True
    staging_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    catalog_limit: int = 20
    catalog_sort: str = "createdAt"
    download_retries: int = 3
    dry_run: bool = False
    sentinelctl_path: str = DEFAULT_SENTINELCTL_PATH
    profile: str = "standard"

    @classmethod
    def from_profile(cls, name: str, **overrides: Any) -> "InstallOptions":
        """Build options from a named install profile.

        Args:
            name: Profile name (standard, golden-image, server-ordered)
            **overrides: Options that take precedence over the profile;
                None values are ignored

        Raises:
            ValueError: If the profile name is not recognized
        """
        from .deployment.profiles import get_profile

        profile = get_profile(name)
        values: dict[str, Any] = {
            "selection_policy": profile.selection_policy,
            "start_agent": profile.start_agent,
            "cleanup_staged_files": profile.cleanup_staged_files,
            "profile": profile.name,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if "auto_reboot" in values:
            values["auto_reboot"] = parse_auto_reboot(values["auto_reboot"])
        if "staging_dir" in values:
            values["staging_dir"] = Path(values["staging_dir"])
        return cls(**values)

    def validate(self) -> None:
        """Validate option ranges.

        Raises:
            ValueError: If an option is out of range
        """
        from .packages.models import CATALOG_SORT_FIELDS
        from .packages.selector import SelectionPolicy

        SelectionPolicy.parse(self.selection_policy)
        validate_limit(self.catalog_limit, min_val=1, max_val=100)
        if self.catalog_sort not in CATALOG_SORT_FIELDS:
            raise ValueError(
                f"Invalid catalog sort field: '{self.catalog_sort}'. "
                f"Hint: Use one of {', '.join(CATALOG_SORT_FIELDS)}."
            )
        validate_limit(self.download_retries, min_val=1, max_val=10)


def load_config() -> HelperConfig:
    """Load configuration from the available sources.

    Priority:
    1. S1_CONFIG_PATH environment variable (YAML file)
    2. S1_MGMT_URL and related environment variables

    Returns:
        HelperConfig instance

    Raises:
        ValueError: If no configuration source is available
    """
    config_path = os.environ.get(ENV_CONFIG_PATH)
    if config_path:
        return HelperConfig.from_config_file(config_path)

    if os.environ.get(ENV_CONSOLE_URL):
        return HelperConfig.from_env()

    raise ValueError(
        "No agent helper configuration found. Set S1_CONFIG_PATH to a YAML "
        "config file, or set S1_MGMT_URL, S1_API_KEY, S1_SITE_TOKEN and "
        "S1_VERSION_STATUS environment variables."
    )


def resolve_config(config_path: Optional[str] = None, **overrides: Any) -> HelperConfig:
    """Load settings and apply explicit overrides.

    Unlike load_config(), missing sources are not an error: callers may
    supply every value as an override. Validation happens later.

    Args:
        config_path: YAML file to read. Defaults to S1_CONFIG_PATH, then the
            environment.
        **overrides: Field values that take precedence; None and empty
            values are ignored

    Raises:
        FileNotFoundError: If the config file does not exist
    """
    config_path = config_path or os.environ.get(ENV_CONFIG_PATH)
    if config_path:
        base = HelperConfig.from_config_file(config_path)
    else:
        base = HelperConfig.from_env()
    return base.with_overrides(**overrides)
