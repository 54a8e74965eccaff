"""Dotted agent version parsing and comparison."""

from typing import Iterable, Optional

VERSION_COMPONENTS = 4


def parse_version(version: str) -> tuple[int, ...]:
    """Parse a 'major.minor.patch.build' version into a comparable tuple.

    Missing trailing components count as zero, so '23.4' == '23.4.0.0'.

    Raises:
        ValueError: If the version is empty, has too many components or a
            component is not numeric
    """
    if not version or not version.strip():
        raise ValueError("Version cannot be empty")

    parts = version.strip().split(".")
    if len(parts) > VERSION_COMPONENTS:
        raise ValueError(
            f"Version '{version}' has more than {VERSION_COMPONENTS} components"
        )

    numbers = []
    for part in parts:
        if not part.isdigit():
            raise ValueError(f"Version '{version}' has a non-numeric component '{part}'")
        numbers.append(int(part))

    numbers.extend([0] * (VERSION_COMPONENTS - len(numbers)))
    return tuple(numbers)


def try_parse_version(version: str) -> Optional[tuple[int, ...]]:
    """Parse a version, returning None instead of raising."""
    try:
        return parse_version(version)
    except ValueError:
        return None


def latest_version(versions: Iterable[str]) -> Optional[str]:
    """Return the highest parseable version, or None.

    Versions are sorted ascending by their numeric components and the last
    one wins; unparseable strings are ignored.
    """
    parsed = [(try_parse_version(v), v) for v in versions]
    ordered = sorted((key, v) for key, v in parsed if key is not None)
    if not ordered:
        return None
    return ordered[-1][1]


def version_at_least(version: str, minimum: tuple[int, ...]) -> bool:
    """Check whether a (possibly partial) version is >= a minimum tuple."""
    parsed = parse_version(version)
    padded = tuple(minimum) + (0,) * (VERSION_COMPONENTS - len(minimum))
    return parsed >= padded
