"""
Artifact download.

Downloads the selected installer into the staging directory using the same
bearer credential as the catalog query. Partial files never replace a
complete one: data is written to a '.part' file, its size is checked against
Content-Length, and only then moved into place.
"""

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import httpx
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .models import SelectionResult, StagedArtifact
from ..error_handling import ArtifactTransferError, is_retryable_http_error, map_http_error

if TYPE_CHECKING:
    from ..client import ManagementConsoleClient

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class IncompleteTransfer(httpx.TransportError):
    """The response body was shorter than its Content-Length."""


class ArtifactFetcher:
    """Downloads agent packages to a local staging directory."""

    def __init__(
        self,
        client: "ManagementConsoleClient",
        staging_dir: Path,
        attempts: int = 3,
        timeout: Optional[float] = None,
        max_wait: float = 10.0,
    ):
        """Initialize the fetcher.

        Args:
            client: Console client providing the authenticated session
            staging_dir: Directory the installer is written to
            attempts: Maximum download attempts (bounded, never infinite)
            timeout: Per-attempt timeout in seconds
            max_wait: Upper bound for the backoff between attempts
        """
        self.client = client
        self.staging_dir = Path(staging_dir)
        self.attempts = max(1, attempts)
        self.timeout = timeout
        self.max_wait = max_wait

    def destination_for(self, selection: SelectionResult) -> Path:
        """Return the staging path for a selected package.

        Raises:
            ArtifactTransferError: If the file name would escape the staging
                directory
        """
        name = selection.file_name
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ArtifactTransferError(
                f"Refusing to stage package with unsafe file name '{name}'"
            )
        return self.staging_dir / name

    def fetch(self, selection: SelectionResult) -> StagedArtifact:
        """Download a selected package.

        Transient failures (transport errors, timeouts, 5xx, truncated
        bodies) are retried with exponential backoff up to the configured
        number of attempts. A pre-existing file at the destination is
        overwritten.

        Args:
            selection: The package to download

        Returns:
            The staged artifact

        Raises:
            ArtifactTransferError: If the download fails or the destination
                is not writable
        """
        destination = self.destination_for(selection)

        try:
            self.staging_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArtifactTransferError(
                f"Staging directory {self.staging_dir} is not writable: {e}"
            ) from e

        logger.info("Downloading %s to %s", selection.file_name, destination)

        retrying = Retrying(
            retry=retry_if_exception(is_retryable_http_error),
            wait=wait_exponential(multiplier=1, min=min(1, self.max_wait), max=self.max_wait),
            stop=stop_after_attempt(self.attempts),
            reraise=True,
        )

        try:
            size = retrying(self._download_once, selection.download_link, destination)
        except httpx.HTTPError as e:
            info = map_http_error(e, f"download of {selection.file_name}")
            raise ArtifactTransferError(info["error"], hint=info["hint"]) from e

        logger.info("Downloaded %s (%d bytes)", selection.file_name, size)
        return StagedArtifact(path=destination, selection=selection, size=size)

    def _download_once(self, url: str, destination: Path) -> int:
        """Perform a single download attempt and return the bytes written."""
        partial = destination.with_name(destination.name + ".part")
        written = 0

        try:
            with self.client.stream(url, timeout=self.timeout) as response:
                expected = response.headers.get("Content-Length")
                if response.headers.get("Content-Encoding"):
                    # decoded size differs from the encoded Content-Length
                    expected = None
                with open(partial, "wb") as f:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        f.write(chunk)
                        written += len(chunk)

                if expected is not None and expected.isdigit() and written != int(expected):
                    raise IncompleteTransfer(
                        f"Incomplete transfer: received {written} of {expected} bytes",
                        request=response.request,
                    )

            if written == 0:
                raise ArtifactTransferError(f"Download from {url} returned an empty body")

            os.replace(partial, destination)
            return written

        except OSError as e:
            raise ArtifactTransferError(
                f"Cannot write {destination}: {e}"
            ) from e

        finally:
            if partial.exists():
                partial.unlink()
