"""
Install profiles for different provisioning contexts.

Profiles define how a run behaves after the package is installed (whether
the agent is started, whether staged files are removed) and which package
selection policy is used.
"""

from dataclasses import dataclass
from enum import Enum


class InstallState(Enum):
    """Install lifecycle states, in the order they are reached."""
    NOT_STARTED = "not_started"
    DOWNLOADED = "downloaded"
    INSTALLED = "installed"
    TOKEN_SET = "token_set"
    STARTED = "started"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallProfile:
    """Configuration profile for an install run.

    Attributes:
        name: Profile identifier (standard, golden-image, server-ordered)
        description: Human-readable description
        start_agent: Start the agent service after setting the site token
        cleanup_staged_files: Remove the downloaded installer afterwards
        selection_policy: Package selection policy name
    """
    name: str
    description: str
    start_agent: bool = True
    cleanup_staged_files: bool = True
    selection_policy: str = "canonical-version"


# Predefined install profiles
PROFILES: dict[str, InstallProfile] = {
    "standard": InstallProfile(
        name="standard",
        description="Install, set the site token and start the agent",
        start_agent=True,
        cleanup_staged_files=True,
        selection_policy="canonical-version",
    ),
    "golden-image": InstallProfile(
        name="golden-image",
        description=(
            "Image builds (EC2 Image Builder, Packer) - set the site token but "
            "do not start the agent, so instances launched from the image do "
            "not share an agent identity"
        ),
        start_agent=False,
        cleanup_staged_files=True,
        selection_policy="canonical-version",
    ),
    "server-ordered": InstallProfile(
        name="server-ordered",
        description="Standard install that takes the first match in the console's sort order",
        start_agent=True,
        cleanup_staged_files=True,
        selection_policy="first-match",
    ),
}


def get_profile(name: str) -> InstallProfile:
    """Get an install profile by name.

    Args:
        name: Profile name (standard, golden-image, server-ordered)

    Returns:
        The install profile

    Raises:
        ValueError: If the profile name is not recognized
    """
    if name not in PROFILES:
        available = ", ".join(PROFILES.keys())
        raise ValueError(f"Unknown profile '{name}'. Available: {available}")
    return PROFILES[name]
