"""Three-part version parsing and incrementing."""
from __future__ import annotations

from typing import NamedTuple, TYPE_CHECKING
import re

from .models import VersionMode

if TYPE_CHECKING:  # pragma: no cover
    from .stores import SettingsStore

DEFAULT_VERSION = "0.0.0"

_INTEGER_PATTERN = re.compile(r"^\s*[+-]?\d+\s*$")


class Version(NamedTuple):
    major: int = 0
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return format_version(self.major, self.minor, self.patch)


def _parse_part(parts: list[str], index: int) -> int:
    if index >= len(parts) or not _INTEGER_PATTERN.match(parts[index]):
        return 0
    return max(0, int(parts[index]))


def parse_version(text: str | None) -> Version:
    """Parse *text* leniently; missing or unreadable components become 0."""

    if text is None or not text.strip():
        return Version()
    parts = text.strip().split(".")
    return Version(_parse_part(parts, 0), _parse_part(parts, 1), _parse_part(parts, 2))


def format_version(major: int, minor: int, patch: int) -> str:
    return f"{major}.{minor}.{patch}"


def normalize_version(text: str | None) -> str:
    return str(parse_version(text))


def next_version(text: str | None, mode: VersionMode | str) -> str:
    """Return the version following *text* according to *mode*."""

    major, minor, patch = parse_version(text)
    mode = VersionMode.parse(mode)
    if mode is VersionMode.NONE:
        pass
    elif mode is VersionMode.MINOR:
        minor, patch = minor + 1, 0
    elif mode is VersionMode.MAJOR:
        major, minor, patch = major + 1, 0, 0
    else:
        patch += 1
    return format_version(major, minor, patch)


def version_code(version: str) -> int:
    """Monotonic integer build number derived from *version*."""

    major, minor, patch = parse_version(version)
    return max(1, major * 10000 + minor * 100 + patch)


def current_version(store: "SettingsStore") -> str:
    value = store.get_version()
    return value.strip() if value and value.strip() else DEFAULT_VERSION


def apply_version(store: "SettingsStore", version: str) -> str:
    """Write the normalized *version* and its derived build numbers to *store*."""

    normalized = normalize_version(version)
    store.set_version(normalized)
    store.set_build_numbers(version_code(normalized), normalized)
    return normalized


__all__ = [
    "DEFAULT_VERSION",
    "Version",
    "apply_version",
    "current_version",
    "format_version",
    "next_version",
    "normalize_version",
    "parse_version",
    "version_code",
]
