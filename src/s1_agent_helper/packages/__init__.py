"""
Agent package catalog model, selection and download.
"""

from .models import (
    ArchitectureTag,
    CatalogQuery,
    PackageFamily,
    PackageRecord,
    PlatformType,
    ReleaseChannel,
    SelectionResult,
    StagedArtifact,
)
from .selector import SelectionPolicy, select_package
from .fetcher import ArtifactFetcher

__all__ = [
    "ArchitectureTag",
    "ArtifactFetcher",
    "CatalogQuery",
    "PackageFamily",
    "PackageRecord",
    "PlatformType",
    "ReleaseChannel",
    "SelectionPolicy",
    "SelectionResult",
    "StagedArtifact",
    "select_package",
]
