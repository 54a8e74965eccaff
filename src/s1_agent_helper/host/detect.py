"""
Host platform detection.

Builds the PlatformDescriptor the pipeline needs: which installer format to
request from the console, which command installs it, and which CPU
architecture to select for. Linux distributions are classified from the
structured ID / ID_LIKE fields of /etc/os-release.
"""

import logging
import os
import platform
import shlex
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..packages.models import ArchitectureTag, PackageFamily, PlatformType

logger = logging.getLogger(__name__)

OS_RELEASE_PATHS = (Path("/etc/os-release"), Path("/usr/lib/os-release"))


class OSFamily(Enum):
    """Operating system families with distinct package tooling."""
    DEBIAN = "debian"
    REDHAT = "redhat"
    SUSE = "suse"
    FEDORA = "fedora"
    WINDOWS = "windows"


# Values come from the os-release ID= and ID_LIKE= fields
DISTRO_ID_MAP: dict[str, OSFamily] = {
    # Debian family
    "debian": OSFamily.DEBIAN, "ubuntu": OSFamily.DEBIAN, "linuxmint": OSFamily.DEBIAN,
    "raspbian": OSFamily.DEBIAN, "kali": OSFamily.DEBIAN, "pop": OSFamily.DEBIAN,
    # RHEL family
    "rhel": OSFamily.REDHAT, "centos": OSFamily.REDHAT, "amzn": OSFamily.REDHAT,
    "ol": OSFamily.REDHAT, "scientific": OSFamily.REDHAT, "rocky": OSFamily.REDHAT,
    "almalinux": OSFamily.REDHAT,
    # SUSE family
    "sles": OSFamily.SUSE, "sled": OSFamily.SUSE, "opensuse": OSFamily.SUSE,
    "opensuse-leap": OSFamily.SUSE, "suse": OSFamily.SUSE,
    # Fedora
    "fedora": OSFamily.FEDORA,
}


@dataclass(frozen=True)
class PackageManagerInfo:
    """How a family installs a local package file.

    Attributes:
        name: Package manager identity (apt, yum, zypper, dnf, exe)
        package_family: Installer file format to request
        install_command: Command prefix that installs a local file
    """
    name: str
    package_family: PackageFamily
    install_command: tuple[str, ...]


PACKAGE_MANAGERS: dict[OSFamily, PackageManagerInfo] = {
    OSFamily.DEBIAN: PackageManagerInfo("apt", PackageFamily.DEB, ("dpkg", "-i")),
    OSFamily.REDHAT: PackageManagerInfo("yum", PackageFamily.RPM, ("rpm", "-i", "--nodigest")),
    OSFamily.SUSE: PackageManagerInfo("zypper", PackageFamily.RPM, ("rpm", "-i", "--nodigest")),
    OSFamily.FEDORA: PackageManagerInfo("dnf", PackageFamily.RPM, ("rpm", "-i", "--nodigest")),
    OSFamily.WINDOWS: PackageManagerInfo("exe", PackageFamily.EXE, ()),
}


@dataclass(frozen=True)
class PlatformDescriptor:
    """The detected (or supplied) target platform.

    Attributes:
        os_family: Operating system family
        architecture: CPU architecture to select packages for
        package_manager: Package manager details for the family
        distro_id: Raw os-release ID, when known
    """
    os_family: OSFamily
    architecture: ArchitectureTag
    package_manager: PackageManagerInfo
    distro_id: str = ""

    @classmethod
    def for_family(
        cls,
        os_family: OSFamily,
        architecture: ArchitectureTag,
        distro_id: str = "",
    ) -> "PlatformDescriptor":
        return cls(
            os_family=os_family,
            architecture=architecture,
            package_manager=PACKAGE_MANAGERS[os_family],
            distro_id=distro_id,
        )

    @property
    def package_family(self) -> PackageFamily:
        return self.package_manager.package_family

    @property
    def platform_type(self) -> PlatformType:
        return self.package_family.platform_type

    def to_dict(self) -> dict[str, str]:
        return {
            "os_family": self.os_family.value,
            "architecture": self.architecture.value,
            "package_manager": self.package_manager.name,
            "file_extension": self.package_family.value,
            "distro_id": self.distro_id,
        }


def parse_os_release(text: str) -> dict[str, str]:
    """Parse os-release KEY=value lines into a dictionary.

    Values may be quoted with single or double quotes; comments and blank
    lines are ignored.
    """
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        fields[key.strip()] = parts[0] if parts else ""
    return fields


def read_os_release(paths: tuple[Path, ...] = OS_RELEASE_PATHS) -> dict[str, str]:
    """Read the first available os-release file.

    Raises:
        FileNotFoundError: If no os-release file exists
    """
    for path in paths:
        if path.exists():
            return parse_os_release(path.read_text())
    raise FileNotFoundError(
        "No os-release file found in: " + ", ".join(str(p) for p in paths)
    )


def classify_distribution(os_release: dict[str, str]) -> OSFamily:
    """Map os-release ID / ID_LIKE values to an OS family.

    Raises:
        ValueError: If the distribution is not supported
    """
    distro_id = os_release.get("ID", "").lower()
    candidates = [distro_id] + os_release.get("ID_LIKE", "").lower().split()

    for candidate in candidates:
        if candidate in DISTRO_ID_MAP:
            return DISTRO_ID_MAP[candidate]
        if candidate.startswith("opensuse"):
            return OSFamily.SUSE

    raise ValueError(
        f"Unsupported Linux distribution: ID='{distro_id}', "
        f"ID_LIKE='{os_release.get('ID_LIKE', '')}'. "
        "Hint: Supported families are Debian, Red Hat, SUSE and Fedora."
    )


def normalize_architecture(machine: str) -> ArchitectureTag:
    """Map a machine/architecture string to an ArchitectureTag.

    Accepts uname style names (x86_64, aarch64, i686), Windows style labels
    ('64 bit', '32 bit', AMD64, ARM64) and 'unknown', which is treated as
    x86_64.

    Raises:
        ValueError: If the architecture is not supported
    """
    value = (machine or "").strip().lower()

    if value in ("x86_64", "amd64", "x64", "64 bit", "64-bit", "unknown", ""):
        return ArchitectureTag.X86_64
    if value in ("aarch64", "arm64", "armv8", "armv8l"):
        return ArchitectureTag.AARCH64
    if value in ("i386", "i486", "i586", "i686", "x86", "x86_32", "32 bit", "32-bit"):
        return ArchitectureTag.X86_32

    raise ValueError(
        f"Unsupported architecture '{machine}'. "
        "Hint: Agent packages are published for x86_64, aarch64 and 32-bit x86."
    )


def detect_architecture() -> ArchitectureTag:
    """Detect the running host's CPU architecture."""
    machine = platform.machine()
    if os.name == "nt":
        # A 32-bit interpreter on 64-bit Windows reports x86
        machine = os.environ.get("PROCESSOR_ARCHITEW6432", machine)
    return normalize_architecture(machine)


def detect_platform(os_release_paths: Optional[tuple[Path, ...]] = None) -> PlatformDescriptor:
    """Detect the running host's platform.

    Raises:
        ValueError: If the OS or architecture is not supported
        FileNotFoundError: If a Linux host has no os-release file
    """
    architecture = detect_architecture()

    if sys.platform == "win32":
        return PlatformDescriptor.for_family(OSFamily.WINDOWS, architecture, "windows")

    if not sys.platform.startswith("linux"):
        raise ValueError(f"Unsupported operating system: {sys.platform}")

    os_release = read_os_release(os_release_paths or OS_RELEASE_PATHS)
    family = classify_distribution(os_release)
    descriptor = PlatformDescriptor.for_family(
        family, architecture, os_release.get("ID", "")
    )
    logger.info(
        "Detected %s (%s family, %s, %s packages)",
        descriptor.distro_id or "linux", family.value,
        architecture.value, descriptor.package_family.value,
    )
    return descriptor


def describe_platform(os_family: str, architecture: str = "x86_64") -> PlatformDescriptor:
    """Build a descriptor for a platform other than the running host.

    Args:
        os_family: Family name (debian, redhat, suse, fedora, windows) or a
            distribution ID such as 'ubuntu' or 'rocky'
        architecture: Architecture name in any accepted spelling

    Raises:
        ValueError: If the family or architecture is not supported
    """
    value = (os_family or "").strip().lower()
    try:
        family = OSFamily(value)
    except ValueError:
        family = classify_distribution({"ID": value})
    return PlatformDescriptor.for_family(family, normalize_architecture(architecture), value)
