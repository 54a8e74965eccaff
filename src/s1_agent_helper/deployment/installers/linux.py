"""
Linux installer driver.

Installs .deb/.rpm agent packages with the native package tool, then uses
sentinelctl to set the site token and start the agent.
"""

from typing import Callable, Optional

from .base import BaseInstaller
from ...config import DEFAULT_SENTINELCTL_PATH
from ...host.command import CommandRunner
from ...host.detect import PlatformDescriptor
from ...packages.models import StagedArtifact


class LinuxInstaller(BaseInstaller):
    """Install agents on Linux hosts.

    The install command comes from the platform's package-family dispatch
    table (deb -> dpkg -i, rpm family -> rpm -i --nodigest).
    """

    def __init__(
        self,
        runner: CommandRunner,
        site_token: str,
        platform: PlatformDescriptor,
        start_agent: bool = True,
        sentinelctl_path: str = DEFAULT_SENTINELCTL_PATH,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ):
        """Initialize the Linux installer.

        Args:
            runner: Executes external commands
            site_token: Token associating the agent with a site
            platform: Detected platform (selects the install command)
            start_agent: Start the agent after setting the token
            sentinelctl_path: Location of the agent control CLI
            cancel_requested: Callable returning True once cancellation was
                requested
        """
        super().__init__(runner, site_token, start_agent, cancel_requested)
        self.platform = platform
        self.sentinelctl_path = sentinelctl_path

    @property
    def platform_name(self) -> str:
        return f"linux ({self.platform.package_manager.name})"

    def install_command(self, artifact: StagedArtifact) -> list[str]:
        return [*self.platform.package_manager.install_command, str(artifact.path)]

    def token_command(self) -> list[str]:
        return [self.sentinelctl_path, "management", "token", "set", self.site_token]

    def start_command(self) -> list[str]:
        return [self.sentinelctl_path, "control", "start"]
