"""
Agent deployment: install profiles and platform installer drivers.
"""

from .profiles import (
    InstallProfile,
    InstallState,
    PROFILES,
    get_profile,
)

__all__ = [
    "InstallProfile",
    "InstallState",
    "PROFILES",
    "get_profile",
]
