"""
Host platform detection and process execution.
"""

from .command import CommandResult, CommandRunner, mask_argv
from .detect import (
    OSFamily,
    PackageManagerInfo,
    PlatformDescriptor,
    describe_platform,
    detect_platform,
    normalize_architecture,
)

__all__ = [
    "CommandResult",
    "CommandRunner",
    "mask_argv",
    "OSFamily",
    "PackageManagerInfo",
    "PlatformDescriptor",
    "describe_platform",
    "detect_platform",
    "normalize_architecture",
]
