"""
Package selection policies.

Given the console's package listing, pick the single package to install for a
release channel and CPU architecture. Two policies are supported:

- first-match: trust the console's descending sort order and take the first
  record that matches. This matches the 1.x helper releases.
- canonical-version: collect every matching record, pick the highest
  4-component dotted version, then take the first record carrying exactly
  that version. This does not depend on the server's ordering.
"""

import logging
from enum import Enum
from typing import Optional, Sequence

from .models import (
    ArchitectureTag,
    PackageFamily,
    PackageRecord,
    ReleaseChannel,
    SelectionResult,
)
from .versions import latest_version, try_parse_version
from ..error_handling import PackageSelectionError

logger = logging.getLogger(__name__)


class SelectionPolicy(Enum):
    """Strategies for choosing among matching packages."""
    FIRST_MATCH = "first-match"
    CANONICAL_VERSION = "canonical-version"

    @classmethod
    def parse(cls, value: "str | SelectionPolicy") -> "SelectionPolicy":
        if isinstance(value, cls):
            return value
        for policy in cls:
            if policy.value == (value or "").strip().lower():
                return policy
        available = ", ".join(p.value for p in cls)
        raise ValueError(f"Unknown selection policy '{value}'. Available: {available}")


def is_compatible(
    record: PackageRecord,
    channel: ReleaseChannel,
    architecture: ArchitectureTag,
    file_extension: Optional[PackageFamily] = None,
) -> bool:
    """Check a record against the channel, architecture and file type filters."""
    if not channel.matches(record.status):
        return False
    if record.architecture is not architecture:
        return False
    if file_extension is not None and not record.file_name.lower().endswith(file_extension.value):
        return False
    return True


def matching_records(
    records: Sequence[PackageRecord],
    channel: ReleaseChannel,
    architecture: ArchitectureTag,
    file_extension: Optional[PackageFamily] = None,
) -> list[PackageRecord]:
    """Return the compatible records, preserving catalog order."""
    return [
        record for record in records
        if is_compatible(record, channel, architecture, file_extension)
    ]


def select_first_match(
    records: Sequence[PackageRecord],
    channel: ReleaseChannel,
    architecture: ArchitectureTag,
    file_extension: Optional[PackageFamily] = None,
) -> Optional[PackageRecord]:
    """Return the first compatible record in catalog order."""
    for record in records:
        if is_compatible(record, channel, architecture, file_extension):
            return record
    return None


def select_canonical_version(
    records: Sequence[PackageRecord],
    channel: ReleaseChannel,
    architecture: ArchitectureTag,
    file_extension: Optional[PackageFamily] = None,
) -> Optional[PackageRecord]:
    """Return the compatible record with the highest dotted version.

    Records whose version cannot be parsed are ignored. When several records
    share the winning version the earliest one in catalog order is returned.
    """
    candidates = matching_records(records, channel, architecture, file_extension)

    for record in candidates:
        if try_parse_version(record.version) is None:
            logger.warning(
                "Ignoring %s: unparseable version '%s'", record.file_name, record.version
            )

    newest = latest_version(record.version for record in candidates)
    if newest is None:
        return None

    logger.debug("Latest %s version for %s is %s", channel.value, architecture.value, newest)

    for record in candidates:
        if record.version == newest:
            return record
    return None


def select_package(
    records: Sequence[PackageRecord],
    channel: "ReleaseChannel | str",
    architecture: ArchitectureTag,
    policy: "SelectionPolicy | str" = SelectionPolicy.CANONICAL_VERSION,
    file_extension: Optional[PackageFamily] = None,
) -> SelectionResult:
    """Select the package to install.

    Args:
        records: Catalog records in the order the console returned them
        channel: Release channel (GA/EA)
        architecture: Target CPU architecture
        policy: Selection policy
        file_extension: Only consider files of this type

    Returns:
        The chosen package

    Raises:
        PackageSelectionError: If no record matches. This is never defaulted.
    """
    channel = ReleaseChannel.parse(channel)
    policy = SelectionPolicy.parse(policy)

    if policy is SelectionPolicy.FIRST_MATCH:
        record = select_first_match(records, channel, architecture, file_extension)
    else:
        record = select_canonical_version(records, channel, architecture, file_extension)

    if record is None:
        raise PackageSelectionError(
            f"Could not determine package: none of the {len(records)} catalog "
            f"entries matches channel '{channel.value}' and architecture "
            f"'{architecture.value}'"
        )

    logger.info(
        "Selected %s (version %s, status %s) using %s policy",
        record.file_name, record.version or "unknown", record.status, policy.value,
    )
    return SelectionResult.from_record(record, policy.value)
