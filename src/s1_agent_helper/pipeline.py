"""
Install pipeline.

Runs one agent install end to end:

    validate -> catalog query -> package selection -> download -> install

Each stage returns a new value that is handed to the next one; nothing loops
back. A failure at any stage raises and ends the run before later stages are
attempted.
"""

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import httpx

from .client import ManagementConsoleClient
from .config import HelperConfig, InstallOptions
from .deployment.installers import InstallResult, create_installer
from .error_handling import InstallCancelled, mask_secret
from .host.command import CommandRunner
from .host.detect import PlatformDescriptor, detect_platform
from .packages import (
    ArtifactFetcher,
    CatalogQuery,
    PackageRecord,
    ReleaseChannel,
    SelectionResult,
    StagedArtifact,
    select_package,
)
from .packages.selector import is_compatible

logger = logging.getLogger(__name__)


class CancellationToken:
    """Process-level cancellation flag shared by the pipeline stages."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, before: str) -> None:
        if self.cancelled:
            raise InstallCancelled(f"Cancelled before '{before}'")


@contextmanager
def cancel_on_signals(token: CancellationToken) -> Iterator[None]:
    """Set the token on SIGINT/SIGTERM for the duration of the block.

    Handlers can only be installed from the main thread; elsewhere (for
    example inside the MCP server's worker threads) the block runs without
    them. Previous handlers are restored on exit.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        logger.warning(
            "Received %s, stopping after the current step",
            signal.Signals(signum).name,
        )
        token.cancel()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handler)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


class InstallPipeline:
    """Drive one install run for a host."""

    def __init__(
        self,
        config: HelperConfig,
        options: Optional[InstallOptions] = None,
        platform: Optional[PlatformDescriptor] = None,
        client: Optional[ManagementConsoleClient] = None,
        transport: Optional[httpx.BaseTransport] = None,
        runner: Optional[CommandRunner] = None,
        cancel_token: Optional[CancellationToken] = None,
    ):
        """Initialize the pipeline.

        Args:
            config: Console URL, credentials and release channel
            options: Behaviour switches (defaults to the standard profile)
            platform: Target platform. Detected from the host if omitted.
            client: Console client to use. The pipeline closes clients it
                creates itself, never ones passed in.
            transport: Optional httpx transport for a created client
            runner: Command runner for installer commands
            cancel_token: Cancellation flag (one is created if omitted)
        """
        self.config = config
        self.options = options or InstallOptions.from_profile("standard")
        self._platform = platform
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self.runner = runner or CommandRunner(
            dry_run=self.options.dry_run,
            secrets=(config.site_token, config.api_key),
        )
        self.cancel_token = cancel_token or CancellationToken()

    @property
    def platform(self) -> PlatformDescriptor:
        if self._platform is None:
            self._platform = detect_platform()
        return self._platform

    @property
    def client(self) -> ManagementConsoleClient:
        if self._client is None:
            self._client = ManagementConsoleClient(self.config, transport=self._transport)
        return self._client

    def close(self) -> None:
        """Close the console client if the pipeline created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def validate(self, require_site_token: bool = True) -> None:
        """Validate credentials and options before any network call.

        Raises:
            ValueError: If any input is invalid
        """
        self.config.validate(require_site_token=require_site_token)
        self.options.validate()
        logger.info(
            "Console %s, API key %s, channel %s",
            self.config.base_url, mask_secret(self.config.api_key), self.config.channel,
        )

    def build_query(self) -> CatalogQuery:
        platform = self.platform
        return CatalogQuery(
            platform_type=platform.platform_type,
            file_extension=platform.package_family,
            architecture=platform.architecture,
            sort_by=self.options.catalog_sort,
            limit=self.options.catalog_limit,
        )

    def fetch_catalog(self) -> list[PackageRecord]:
        """Query the console once for the platform's agent packages.

        Raises:
            CatalogAuthenticationError: If the console rejects the API key
            CatalogError: If the catalog cannot be retrieved
        """
        return self.client.list_agent_packages(self.build_query())

    def list_packages(self, compatible_only: bool = True) -> list[PackageRecord]:
        """Return the catalog for this platform without installing.

        Args:
            compatible_only: Only keep records matching the release channel,
                architecture and file type

        Raises:
            ValueError: If the connection settings are invalid
            CatalogError: If the catalog cannot be retrieved
        """
        self.validate(require_site_token=False)
        records = self.fetch_catalog()
        if not compatible_only:
            return records

        channel = ReleaseChannel.parse(self.config.channel)
        return [
            record for record in records
            if is_compatible(
                record, channel, self.platform.architecture, self.platform.package_family
            )
        ]

    def select(self, records: list[PackageRecord]) -> SelectionResult:
        """Pick the package to install from catalog records.

        Raises:
            PackageSelectionError: If nothing matches
        """
        return select_package(
            records,
            self.config.channel,
            self.platform.architecture,
            policy=self.options.selection_policy,
            file_extension=self.platform.package_family,
        )

    def stage(self, selection: SelectionResult) -> StagedArtifact:
        """Download the selected package to the staging directory.

        A dry run does not download; it returns the path the package would
        have been written to.

        Raises:
            ArtifactTransferError: If the download fails
        """
        fetcher = ArtifactFetcher(
            self.client,
            self.options.staging_dir,
            attempts=self.options.download_retries,
            timeout=self.config.download_timeout,
        )
        if self.options.dry_run:
            destination = fetcher.destination_for(selection)
            logger.info("Dry run: would download %s to %s", selection.file_name, destination)
            return StagedArtifact(path=destination, selection=selection, size=0)
        return fetcher.fetch(selection)

    def run(self) -> InstallResult:
        """Run the whole pipeline.

        Returns:
            The install result

        Raises:
            ValueError: If the inputs are invalid (before any network call)
            CatalogAuthenticationError: If the console rejects the API key
            CatalogError: If the catalog cannot be retrieved
            PackageSelectionError: If no package matches
            ArtifactTransferError: If the download fails
            InstallStepError: If an install, token or start command fails
            InstallCancelled: If the run was interrupted by a signal
        """
        self.validate()

        try:
            with cancel_on_signals(self.cancel_token):
                return self._run()
        finally:
            self.close()

    def _run(self) -> InstallResult:
        platform = self.platform

        self.cancel_token.raise_if_cancelled("catalog query")
        records = self.fetch_catalog()
        selection = self.select(records)

        self.cancel_token.raise_if_cancelled("download")
        artifact = self.stage(selection)

        installer = create_installer(
            platform,
            self.runner,
            self.config.site_token,
            self.options,
            cancel_requested=lambda: self.cancel_token.cancelled,
        )

        cleaned_up = False
        try:
            result = installer.run(artifact)
        finally:
            if self.options.dry_run:
                logger.info("Dry run: leaving %s untouched", artifact.path)
            elif self.options.cleanup_staged_files:
                cleaned_up = artifact.remove()
                if cleaned_up:
                    logger.info("Removed staged file %s", artifact.path)
            else:
                logger.info("Keeping staged file %s", artifact.path)

        details: dict[str, Any] = {
            "package": selection.to_dict(),
            "platform": platform.to_dict(),
            "profile": self.options.profile,
            "staged_path": str(artifact.path),
            "staged_file_removed": cleaned_up,
            "dry_run": self.options.dry_run,
        }
        result.details.update(details)
        logger.info("%s (%s)", result.message, selection.file_name)
        return result
