"""
Installer drivers for the supported platforms.
"""

import logging
from typing import Callable, Optional

from .base import BaseInstaller, InstallResult, StepRecord
from .linux import LinuxInstaller
from .windows import WindowsInstaller, uses_modern_installer
from ...config import InstallOptions
from ...host.command import CommandRunner
from ...host.detect import OSFamily, PlatformDescriptor

logger = logging.getLogger(__name__)


def create_installer(
    platform: PlatformDescriptor,
    runner: CommandRunner,
    site_token: str,
    options: InstallOptions,
    cancel_requested: Optional[Callable[[], bool]] = None,
) -> BaseInstaller:
    """Create the installer driver for a platform."""
    if platform.os_family is OSFamily.WINDOWS:
        if not options.start_agent:
            logger.warning(
                "The Windows installer starts the agent service itself; "
                "disabling start only skips the separate start step"
            )
        return WindowsInstaller(
            runner,
            site_token,
            auto_reboot=options.auto_reboot,
            start_agent=options.start_agent,
            cancel_requested=cancel_requested,
        )

    return LinuxInstaller(
        runner,
        site_token,
        platform,
        start_agent=options.start_agent,
        sentinelctl_path=options.sentinelctl_path,
        cancel_requested=cancel_requested,
    )


__all__ = [
    "BaseInstaller",
    "InstallResult",
    "LinuxInstaller",
    "StepRecord",
    "WindowsInstaller",
    "create_installer",
    "uses_modern_installer",
]
