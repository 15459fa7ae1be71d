"""
Path and layout helpers for strata.io.

Overview (file protocol baseline)
- <root>/tables/<table_name>/_strata_log/00000000000000000000.json
- <root>/tables/<table_name>/data/part-<UUID>.parquet

A directory under <root>/tables holding parquet files but no _strata_log is a plain parquet
table: readable, but it carries no identity metadata.

Import DAG discipline
- stdlib + strata.io.config + strata.core.constants only.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Final

from strata.core.constants import DATA_DIR_NAME, LOG_DIR_NAME, LOG_VERSION_WIDTH

from .config import IoSettings

_LOG_SUFFIX: Final[str] = ".json"
_LOG_NAME_RE: Final[re.Pattern[str]] = re.compile(rf"^(\d{{{LOG_VERSION_WIDTH}}})\.json$")
_TABLE_NAME_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_table_name(name: str) -> str:
    """
    Validate that a table name is safe for filesystem paths.

    Raises:
        ValueError: If name is empty or contains characters outside [A-Za-z0-9_].
    """
    if not name or not _TABLE_NAME_RE.match(name):
        raise ValueError(f"invalid table name {name!r}; allowed pattern is [A-Za-z_][A-Za-z0-9_]*")
    return name


def tables_root(settings: IoSettings) -> str:
    """Path "<root>/tables"."""
    return os.path.join(settings.root_dir, "tables")


def table_dir(settings: IoSettings, table_name: str) -> str:
    """Path "<root>/tables/<table_name>"."""
    return os.path.join(tables_root(settings), validate_table_name(table_name))


def log_dir(settings: IoSettings, table_name: str) -> str:
    """Path "<root>/tables/<table_name>/_strata_log"."""
    return os.path.join(table_dir(settings, table_name), LOG_DIR_NAME)


def data_dir(settings: IoSettings, table_name: str) -> str:
    """Path "<root>/tables/<table_name>/data"."""
    return os.path.join(table_dir(settings, table_name), DATA_DIR_NAME)


def format_log_name(version: int) -> str:
    """
    Zero-padded log entry file name for a version.

    Raises:
        ValueError: If version < 0.
    """
    if version < 0:
        raise ValueError("version must be >= 0")
    return f"{version:0{LOG_VERSION_WIDTH}d}{_LOG_SUFFIX}"


def parse_log_name(name: str) -> int | None:
    """Version encoded in a log entry file name, or None for other files."""
    m = _LOG_NAME_RE.match(name)
    return int(m.group(1)) if m else None


def log_entry_path(settings: IoSettings, table_name: str, version: int) -> str:
    """Path of the log entry for a version."""
    return os.path.join(log_dir(settings, table_name), format_log_name(version))


@dataclass(slots=True, frozen=True)
class PartPaths:
    """
    Container for a part's temporary and final file paths.

    Attributes:
        tmp_path (str): Temporary file path used for initial write ("*.parquet.tmp").
        final_path (str): Final file path after atomic rename ("*.parquet").
        rel_path (str): Path relative to the table directory, as recorded in the log.
    """

    tmp_path: str
    final_path: str
    rel_path: str


def part_paths(settings: IoSettings, table_name: str, uuid_str: str) -> PartPaths:
    """Compute temporary/final/relative paths of a new data part."""
    base_name = f"part-{uuid_str}.parquet"
    final_path = os.path.join(data_dir(settings, table_name), base_name)
    return PartPaths(
        tmp_path=final_path + ".tmp",
        final_path=final_path,
        rel_path=f"{DATA_DIR_NAME}/{base_name}",
    )


def resolve_part(settings: IoSettings, table_name: str, rel_path: str) -> str:
    """Absolute path of a part recorded relative to the table directory."""
    return os.path.join(table_dir(settings, table_name), *rel_path.split("/"))
