"""
Format version metadata and helpers for strata transaction logs and Parquet parts.

Exposes the canonical format version (FORMAT_V) embedded in every log entry and data file and
provides the compatibility check used when reading them. This module is zero-IO.

Notes:
    - strata.io.log embeds FORMAT_V in each log entry and refuses entries whose version is not
      compatible (VersionMismatch).
    - strata.io.write embeds FORMAT_V as Parquet key-value metadata.
"""

from dataclasses import dataclass
from datetime import date

FORMAT_MAJOR_VERSION = 1
FORMAT_MINOR_VERSION = 0


@dataclass(frozen=True)
class FormatVersion:
    """
    Immutable semantic version with ISO release date for strata artifacts.

    Attributes:
        major (int): Non-negative major component signalling breaking changes.
        minor (int): Non-negative minor component for additive, non-breaking changes.
        date (str): ISO YYYY-MM-DD release timestamp retained for JSON/metadata payloads.

    Raises:
        ValueError: If any component is negative or the date is not ISO compliant.
    """

    major: int
    minor: int
    date: str  # ISO YYYY-MM-DD

    def __post_init__(self) -> None:
        if self.major < 0:
            raise ValueError(f"FormatVersion major must be non-negative, got {self.major}")
        if self.minor < 0:
            raise ValueError(f"FormatVersion minor must be non-negative, got {self.minor}")
        try:
            date.fromisoformat(self.date)
        except ValueError as exc:
            raise ValueError(
                f"FormatVersion date must be ISO YYYY-MM-DD, got {self.date!r}"
            ) from exc

    def tag(self) -> str:
        """Render as "<major>.<minor>@<date>" (the form stored on disk)."""
        return f"{self.major}.{self.minor}@{self.date}"

    @classmethod
    def parse(cls, text: str) -> "FormatVersion":
        """
        Parse a "<major>.<minor>@<date>" tag.

        Raises:
            ValueError: If the tag is malformed.
        """
        try:
            numbers, when = text.split("@", 1)
            major, minor = numbers.split(".", 1)
            return cls(int(major), int(minor), when)
        except (AttributeError, ValueError) as exc:
            raise ValueError(f"malformed format version tag {text!r}") from exc


FORMAT_V = FormatVersion(FORMAT_MAJOR_VERSION, FORMAT_MINOR_VERSION, "2026-10-01")
FORMAT_COMPAT_MAJOR = FORMAT_V.major
FORMAT_COMPAT_MINOR = FORMAT_V.minor


def is_compatible(ver: FormatVersion) -> bool:
    """
    Check whether a version can be read by this release.

    Readers accept any minor revision up to their own within the same major version, since
    minor bumps are additive.

    Args:
        ver (FormatVersion): Version found in a log entry or data file.

    Returns:
        bool: True if ver shares the major number with FORMAT_V and its minor number is not newer.

    Examples:
        >>> from strata.core.versioning import FORMAT_V, is_compatible
        >>> is_compatible(FORMAT_V)
        True
    """
    return ver.major == FORMAT_COMPAT_MAJOR and ver.minor <= FORMAT_COMPAT_MINOR

