"""
Data model for agent packages.

PackageRecord mirrors one entry of the console's package listing. Records are
immutable and created fresh for every run.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class ReleaseChannel(Enum):
    """Agent release maturity channels."""
    GA = "ga"
    EA = "ea"

    @classmethod
    def parse(cls, value: "str | ReleaseChannel") -> "ReleaseChannel":
        """Parse a channel selector case-insensitively.

        Raises:
            ValueError: If the value is neither GA nor EA
        """
        if isinstance(value, cls):
            return value
        normalized = (value or "").strip().lower()
        for channel in cls:
            if channel.value == normalized:
                return channel
        raise ValueError(
            f"Invalid release channel: '{value}'. Must be either 'GA' or 'EA'."
        )

    def matches(self, status: str) -> bool:
        """Check whether a catalog status label belongs to this channel.

        Service-pack suffixes are part of the channel: 'ga' matches 'ga',
        'ga-sp1', 'ga-sp2' and so on.
        """
        return (status or "").strip().lower().startswith(self.value)


class ArchitectureTag(Enum):
    """CPU architectures agent packages are built for."""
    X86_64 = "x86_64"
    AARCH64 = "aarch64"
    X86_32 = "x86_32"

    @property
    def windows_label(self) -> str:
        """Return the architecture label the console uses for Windows packages."""
        return {
            ArchitectureTag.X86_64: "64 bit",
            ArchitectureTag.X86_32: "32 bit",
            ArchitectureTag.AARCH64: "ARM64",
        }[self]


class PlatformType(Enum):
    """Console platform types for agent packages."""
    LINUX = "linux"
    WINDOWS = "windows"


class PackageFamily(Enum):
    """Installer file formats, valued by the console's file extension filter."""
    DEB = ".deb"
    RPM = ".rpm"
    EXE = ".exe"

    @property
    def platform_type(self) -> PlatformType:
        if self is PackageFamily.EXE:
            return PlatformType.WINDOWS
        return PlatformType.LINUX


ARM_MARKERS = ("aarch", "arm")
X86_32_MARKERS = ("32bit", "32_bit", "32-bit", "x86_32", "i386", "i686")


def file_name_architecture(file_name: str) -> ArchitectureTag:
    """Infer the architecture a package file was built for from its name.

    Names without an ARM or 32-bit marker are x86_64 builds.
    """
    lowered = (file_name or "").lower()
    if any(marker in lowered for marker in ARM_MARKERS):
        return ArchitectureTag.AARCH64
    if any(marker in lowered for marker in X86_32_MARKERS):
        return ArchitectureTag.X86_32
    return ArchitectureTag.X86_64


@dataclass(frozen=True)
class PackageRecord:
    """One downloadable package from the console catalog.

    Attributes:
        file_name: Installer file name
        download_link: Authenticated download URL
        status: Release label combining channel and service pack (ga, ga-sp1, ea)
        major_version: Dotted major version (e.g. '23.4')
        version: Full dotted version (e.g. '23.4.1.4')
        created_at: Creation timestamp reported by the console
        package_id: Console identifier of the package
        os_arch: Architecture label reported by the console, if any
        sha1: Digest reported by the console, if any
        size: Size in bytes reported by the console, if any
    """
    file_name: str
    download_link: str
    status: str
    major_version: str = ""
    version: str = ""
    created_at: str = ""
    package_id: Optional[str] = None
    os_arch: Optional[str] = None
    sha1: Optional[str] = None
    size: Optional[int] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PackageRecord":
        """Build a record from one element of the console's 'data' array.

        Raises:
            ValueError: If the entry is not an object, or lacks a file name
                or download link
        """
        if not isinstance(data, dict):
            raise ValueError(f"Catalog entry is not an object: {data!r}")

        file_name = data.get("fileName") or ""
        link = data.get("link") or ""
        if not isinstance(file_name, str) or not isinstance(link, str) or not file_name or not link:
            raise ValueError(
                f"Catalog entry is missing fileName or link: {data.get('id', '<no id>')}"
            )

        size = data.get("fileSize")
        return cls(
            file_name=file_name,
            download_link=link,
            status=data.get("status") or "",
            major_version=data.get("majorVersion") or "",
            version=data.get("version") or "",
            created_at=data.get("createdAt") or "",
            package_id=data.get("id"),
            os_arch=data.get("osArch"),
            sha1=data.get("sha1"),
            size=int(size) if isinstance(size, (int, str)) and str(size).isdigit() else None,
        )

    @property
    def architecture(self) -> ArchitectureTag:
        """Architecture inferred from the file name."""
        return file_name_architecture(self.file_name)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "file_name": self.file_name,
            "download_link": self.download_link,
            "status": self.status,
            "major_version": self.major_version,
            "version": self.version,
            "created_at": self.created_at,
            "architecture": self.architecture.value,
        }


@dataclass(frozen=True)
class SelectionResult:
    """The single package chosen for installation."""
    file_name: str
    download_link: str
    major_version: str
    version: str = ""
    status: str = ""
    policy: str = ""

    @classmethod
    def from_record(cls, record: PackageRecord, policy: str) -> "SelectionResult":
        return cls(
            file_name=record.file_name,
            download_link=record.download_link,
            major_version=record.major_version,
            version=record.version,
            status=record.status,
            policy=policy,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "download_link": self.download_link,
            "major_version": self.major_version,
            "version": self.version,
            "status": self.status,
            "policy": self.policy,
        }


@dataclass(frozen=True)
class StagedArtifact:
    """A downloaded installer held in the staging directory.

    Attributes:
        path: Location of the installer on disk
        selection: The package the file was downloaded for
        size: Number of bytes written
    """
    path: Path
    selection: SelectionResult
    size: int = 0

    def remove(self) -> bool:
        """Delete the staged file. Returns True if a file was removed."""
        try:
            self.path.unlink()
            return True
        except FileNotFoundError:
            return False


CATALOG_SORT_FIELDS = ("createdAt", "version", "majorVersion")


@dataclass(frozen=True)
class CatalogQuery:
    """Filters for one catalog listing request."""
    platform_type: PlatformType
    file_extension: PackageFamily
    architecture: ArchitectureTag
    sort_by: str = "createdAt"
    limit: int = 20

    def to_params(self) -> dict[str, str]:
        """Build the query string parameters for the listing endpoint."""
        params = {
            "countOnly": "false",
            "packageTypes": "Agent",
            "platformTypes": self.platform_type.value,
            "fileExtension": self.file_extension.value,
            "sortBy": self.sort_by,
            "sortOrder": "desc",
            "limit": str(self.limit),
        }
        if self.platform_type is PlatformType.WINDOWS:
            params["osArches"] = self.architecture.windows_label
        return params
