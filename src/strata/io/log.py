"""
Versioned transaction log: immutable table snapshots and optimistic commits.

Log layout (JSON per version at <table_dir>/_strata_log/<version:020d>.json):
{
  "format_version": "1.0@2026-10-01",
  "table": "<table_name>",
  "version": 3,
  "format": "strata",
  "committed_at": "ISO-8601",
  "operation": "SYNC IDENTITY",
  "operation_params": {"column": "id", ...},
  "schema": {"columns": [{"name": "id", "dtype": "i64", "nullable": false,
                          "metadata": {"strata.identity.start": 1, ...}}, ...]},
  "files": [
    {
      "path": "data/part-<UUID>.parquet",
      "rows": 123,
      "bytes": 4567,
      "created_at": "ISO-8601",
      "stats": {"id": {"min": 1, "max": 41, "null_count": 0}}
    }
  ]
}

Semantics
- Each entry is a complete copy-on-write snapshot: schema plus the live file set. Reading a
  version never replays earlier entries.
- commit() writes version base.version + 1 with an exclusive create. Two writers based on the
  same version race for the same file name; exactly one wins, the other gets
  CommitConflictError and nothing it wrote becomes visible (its data parts are unreferenced).
- Identity configuration and high-water-marks live in column metadata (strata.core.identity),
  so they are versioned together with every other schema/data change.

Notes:
- File paths are stored relative to the table directory to keep tables relocatable.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from strata.core.constants import NATIVE_FORMAT, SYNC_IDENTITY_COMMAND
from strata.core.errors import VersionMismatch
from strata.core.schema import ColumnSchema, TableSchema
from strata.core.versioning import FORMAT_V, FormatVersion, is_compatible

from .config import IoSettings
from .errors import (
    CommitConflictError,
    IoLogError,
    NotIdentityColumnError,
    TableExistsError,
    TableNotFoundError,
    UnsupportedTableError,
)
from .fs import fsync_file, link_exclusive, listdir, makedirs, open_write, remove_quietly
from .paths import log_dir, log_entry_path, parse_log_name, table_dir

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(slots=True, frozen=True)
class FileEntry:
    """
    A live data part referenced by a snapshot.

    Attributes:
        path (str): Path relative to the table directory ("data/part-<UUID>.parquet").
        rows (int): Row count.
        bytes (int): File size in bytes.
        created_at (str): ISO-8601 timestamp of the write.
        stats (dict[str, dict[str, Any]]): Per i64 column {"min","max","null_count"};
            min/max are None when every value is null.
    """

    path: str
    rows: int
    bytes: int
    created_at: str
    stats: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class TableSnapshot:
    """
    Immutable view of one committed table version.

    Attributes:
        table (str): Table name.
        version (int): Log version (0 is CREATE TABLE).
        schema (TableSchema): Schema, including identity metadata.
        files (tuple[FileEntry, ...]): Live data parts.
        committed_at (str): ISO-8601 commit timestamp.
        operation (str): Operation that produced this version.
        operation_params (dict[str, Any]): Operation details for history/inspection.
        format (str): Storage format name ("strata").
    """

    table: str
    version: int
    schema: TableSchema
    files: tuple[FileEntry, ...]
    committed_at: str
    operation: str
    operation_params: dict[str, Any] = field(default_factory=dict)
    format: str = NATIVE_FORMAT

    @property
    def row_count(self) -> int:
        return sum(f.rows for f in self.files)

    def identity_column(self, name: str) -> ColumnSchema:
        """
        Resolve an identity column by (case-insensitive) name.

        Raises:
            NotIdentityColumnError: If the column is missing or has no identity spec.
        """
        col = self.schema.find(name)
        if col is None or not col.is_identity:
            raise NotIdentityColumnError(
                f"{SYNC_IDENTITY_COMMAND} cannot be called on column {name!r} of table {self.table!r}: "
                + ("no such column" if col is None else "not an identity column")
            )
        return col

    def high_water_mark(self, column: str) -> int:
        """Current high-water-mark of an identity column."""
        return self.identity_column(column).identity_state()[1]

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "format_version": FORMAT_V.tag(),
            "table": self.table,
            "version": self.version,
            "format": self.format,
            "committed_at": self.committed_at,
            "operation": self.operation,
            "operation_params": dict(self.operation_params),
            "schema": self.schema.model_dump(mode="json"),
            "files": [asdict(f) for f in self.files],
        }

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> TableSnapshot:
        ver = FormatVersion.parse(obj["format_version"])
        if not is_compatible(ver):
            raise VersionMismatch(
                f"log entry written by format {ver.tag()}; this release reads {FORMAT_V.tag()}"
            )
        return cls(
            table=obj["table"],
            version=int(obj["version"]),
            schema=TableSchema.model_validate(obj["schema"]),
            files=tuple(FileEntry(**f) for f in obj.get("files") or []),
            committed_at=obj["committed_at"],
            operation=obj["operation"],
            operation_params=dict(obj.get("operation_params") or {}),
            format=obj.get("format", NATIVE_FORMAT),
        )


# -----------------------------------------------------------------------------
# Capability and lookup
# -----------------------------------------------------------------------------


def supports_identity_columns(settings: IoSettings, table_name: str) -> bool:
    """
    True if the table is stored in the native format, which carries identity metadata.

    Plain parquet directories (no transaction log) return False.
    """
    return os.path.isdir(log_dir(settings, table_name))


def list_versions(settings: IoSettings, table_name: str) -> list[int]:
    """Committed versions of a table in ascending order."""
    versions = [parse_log_name(n) for n in listdir(log_dir(settings, table_name))]
    return sorted(v for v in versions if v is not None)


def read_version(settings: IoSettings, table_name: str, version: int) -> TableSnapshot:
    """
    Load the snapshot committed as a specific version.

    Raises:
        IoLogError: If the entry is missing or corrupt.
        VersionMismatch: If the entry was written by an incompatible format version.
    """
    path = log_entry_path(settings, table_name, version)
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError as exc:
        raise IoLogError(f"table {table_name!r} has no version {version}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise IoLogError(f"failed to read log entry {path}: {exc}") from exc
    try:
        return TableSnapshot.from_json_obj(data)
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise IoLogError(f"corrupt log entry {path}: {exc}") from exc


def begin_read(settings: IoSettings, table_name: str) -> TableSnapshot:
    """
    Resolve the latest committed snapshot of a native table.

    Raises:
        TableNotFoundError: If the table directory does not exist.
        UnsupportedTableError: If the table exists but is not in the native format.
        IoLogError: If the log has no entries or the latest one is unreadable.
    """
    if not os.path.isdir(table_dir(settings, table_name)):
        raise TableNotFoundError(f"table {table_name!r} not found under {settings.root_dir!r}")
    if not supports_identity_columns(settings, table_name):
        raise UnsupportedTableError(f"table {table_name!r} is not a {NATIVE_FORMAT} table")
    versions = list_versions(settings, table_name)
    if not versions:
        raise IoLogError(f"table {table_name!r} has an empty transaction log")
    return read_version(settings, table_name, versions[-1])


def read_current(snapshot: TableSnapshot, column: str) -> int:
    """High-water-mark of an identity column as of a snapshot."""
    return snapshot.high_water_mark(column)


def history(settings: IoSettings, table_name: str) -> list[TableSnapshot]:
    """All committed snapshots, oldest first."""
    begin_read(settings, table_name)
    return [read_version(settings, table_name, v) for v in list_versions(settings, table_name)]


# -----------------------------------------------------------------------------
# Commit
# -----------------------------------------------------------------------------


def _publish(settings: IoSettings, snapshot: TableSnapshot) -> bool:
    """Write a log entry exclusively; False if the version already exists."""
    ldir = log_dir(settings, snapshot.table)
    makedirs(ldir, exist_ok=True)
    final_path = log_entry_path(settings, snapshot.table, snapshot.version)
    tmp_path = os.path.join(ldir, f".{snapshot.version}.{uuid.uuid4().hex}.json.tmp")
    payload = json.dumps(snapshot.to_json_obj(), indent=2).encode("utf-8")
    try:
        with open_write(tmp_path) as fh:
            fh.write(payload)
            if settings.fsync:
                fsync_file(fh)
        return link_exclusive(tmp_path, final_path)
    except OSError as exc:
        remove_quietly(tmp_path)
        raise IoLogError(f"failed to write log entry {final_path}: {exc}") from exc


def create(
    settings: IoSettings,
    table_name: str,
    schema: TableSchema,
    *,
    params: dict[str, Any] | None = None,
) -> TableSnapshot:
    """
    Commit version 0 of a new native table.

    Raises:
        TableExistsError: If the table already has a log entry for version 0.
    """
    snap = TableSnapshot(
        table=table_name,
        version=0,
        schema=schema,
        files=(),
        committed_at=_utc_now_iso(),
        operation="CREATE TABLE",
        operation_params=dict(params or {}),
    )
    if not _publish(settings, snap):
        raise TableExistsError(f"table {table_name!r} already exists")
    logger.debug("created table %s", table_name)
    return snap


def commit(
    settings: IoSettings,
    base: TableSnapshot,
    *,
    operation: str,
    schema: TableSchema | None = None,
    add: Iterable[FileEntry] = (),
    remove: Iterable[str] = (),
    params: dict[str, Any] | None = None,
) -> TableSnapshot:
    """
    Commit a new version derived from base (copy-on-write).

    Args:
        settings (IoSettings): IO configuration.
        base (TableSnapshot): Snapshot the change was computed against.
        operation (str): Operation name recorded in the log ("WRITE", "DELETE", ...).
        schema (TableSchema | None): New schema, or None to keep base.schema.
        add (Iterable[FileEntry]): Data parts to add (already durable on disk).
        remove (Iterable[str]): Relative paths of base files to drop.
        params (dict | None): Operation details.

    Returns:
        TableSnapshot: The committed snapshot at base.version + 1.

    Raises:
        CommitConflictError: If another writer already committed base.version + 1.
        IoLogError: If a removed path is not live in base, or the entry cannot be written.
    """
    drop = set(remove)
    live = {f.path for f in base.files}
    unknown = drop - live
    if unknown:
        raise IoLogError(f"cannot remove files not present in version {base.version}: {sorted(unknown)}")
    files = tuple(f for f in base.files if f.path not in drop) + tuple(add)
    snap = TableSnapshot(
        table=base.table,
        version=base.version + 1,
        schema=schema if schema is not None else base.schema,
        files=files,
        committed_at=_utc_now_iso(),
        operation=operation,
        operation_params=dict(params or {}),
        format=base.format,
    )
    if not _publish(settings, snap):
        logger.warning(
            "commit conflict on %s: version %d already exists (%s)",
            base.table,
            snap.version,
            operation,
        )
        raise CommitConflictError(base.table, snap.version)
    logger.debug("committed %s version %d (%s)", base.table, snap.version, operation)
    return snap
