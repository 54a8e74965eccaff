"""
Windows installer driver.

Runs the agent EXE installer. The command line depends on the package's
major version:

- 22.1 and later: the unified installer takes the site token with '-t' and
  runs silently with '-q'.
- older installers: flag based, '/SITE_TOKEN=<token> /QUIET' plus an explicit
  '/REBOOT' or '/NORESTART'.

Both installers associate the site token and start the agent service
themselves, so the token and start steps need no separate command.
"""

import logging
from typing import Callable, Optional

from .base import BaseInstaller
from ...host.command import CommandRunner
from ...packages.models import StagedArtifact
from ...packages.versions import try_parse_version, version_at_least

logger = logging.getLogger(__name__)

MODERN_INSTALLER_MIN_VERSION = (22, 1)


def uses_modern_installer(major_version: str, version: str = "") -> bool:
    """Decide between the unified (>= 22.1) and legacy installer syntax.

    The major version is used when present, otherwise the full version. A
    package with no parseable version is treated as a unified installer.
    """
    for candidate in (major_version, version):
        if candidate and try_parse_version(candidate) is not None:
            return version_at_least(candidate, MODERN_INSTALLER_MIN_VERSION)

    logger.warning(
        "No parseable version for package (major '%s', version '%s'); "
        "assuming the unified installer", major_version, version,
    )
    return True


class WindowsInstaller(BaseInstaller):
    """Install agents on Windows hosts."""

    def __init__(
        self,
        runner: CommandRunner,
        site_token: str,
        auto_reboot: bool = False,
        start_agent: bool = True,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ):
        """Initialize the Windows installer.

        Args:
            runner: Executes external commands
            site_token: Token associating the agent with a site
            auto_reboot: Let a legacy installer reboot the host
            start_agent: Start the agent after install
            cancel_requested: Callable returning True once cancellation was
                requested
        """
        super().__init__(runner, site_token, start_agent, cancel_requested)
        self.auto_reboot = auto_reboot

    @property
    def platform_name(self) -> str:
        return "windows"

    def install_command(self, artifact: StagedArtifact) -> list[str]:
        selection = artifact.selection
        if uses_modern_installer(selection.major_version, selection.version):
            return [str(artifact.path), "-t", self.site_token, "-q"]

        return [
            str(artifact.path),
            f"/SITE_TOKEN={self.site_token}",
            "/QUIET",
            "/REBOOT" if self.auto_reboot else "/NORESTART",
        ]

    def token_command(self) -> None:
        return None

    def start_command(self) -> None:
        return None
