"""
Exception taxonomy for the install pipeline.

Every failure that ends a run derives from AgentHelperError and carries the
process exit code and an actionable hint. Input validation failures are
raised as ValueError by the validators.
"""

from typing import Optional


class AgentHelperError(Exception):
    """Base class for pipeline failures."""

    exit_code = 1
    hint = "Re-run with --log-level DEBUG for details."

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        if hint is not None:
            self.hint = hint

    def to_dict(self) -> dict[str, str]:
        """Convert to a user-facing error payload."""
        return {
            "error": str(self),
            "hint": self.hint,
            "type": type(self).__name__,
        }


class CatalogError(AgentHelperError):
    """The package catalog could not be retrieved or parsed."""

    hint = "Check the management console URL and network connectivity."


class CatalogAuthenticationError(CatalogError):
    """The console rejected the API key."""

    hint = (
        "1. Check that the API key belongs to the console you are querying\n"
        "2. Verify the API token has not expired\n"
        "3. Ensure the service user can view agent packages"
    )


class PackageSelectionError(AgentHelperError):
    """No catalog entry matched the release channel and architecture."""

    hint = (
        "1. Check the release channel (GA/EA) is published for this platform\n"
        "2. Increase the catalog limit if the console lists many packages\n"
        "3. Verify the detected architecture is supported"
    )


class ArtifactTransferError(AgentHelperError):
    """The package download failed or was incomplete."""

    hint = (
        "1. Verify network connectivity to the console\n"
        "2. Check free space and permissions of the staging directory\n"
        "3. Retry the install"
    )


class InstallStepError(AgentHelperError):
    """An installer, token or service command exited with a failure."""

    hint = "Inspect the command output above and the agent install logs."

    def __init__(
        self,
        step: str,
        command: list[str],
        returncode: int,
        stderr: str = "",
        stdout: str = "",
    ):
        self.step = step
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        message = f"Install step '{step}' failed with exit status {returncode}"
        # dpkg and rpm often report the reason on stdout only
        output = (stderr or "").strip() or (stdout or "").strip()
        if output:
            message = f"{message}: {output}"
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        result = super().to_dict()
        result["step"] = self.step
        result["returncode"] = str(self.returncode)
        return result


class InstallCancelled(AgentHelperError):
    """The run was interrupted by a signal."""

    hint = "The run was interrupted; no further install steps were started."
