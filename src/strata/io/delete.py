"""
Copy-on-write deletes for native strata tables.

Overview
- Each live part is read and filtered with the predicate; parts with matching rows are
  replaced by a rewritten part holding the remaining rows (or dropped when nothing remains).
- Untouched parts stay referenced as-is.
- The removal and the rewritten parts are committed as one new version.

Notes
- Rows for which the predicate evaluates to null are kept (SQL DELETE semantics).
- Deletes never touch identity watermarks; lowering a watermark after deleting rows is the
  job of SYNC IDENTITY (strata.io.sync).
"""

from __future__ import annotations

import logging
from typing import Any

import polars as pl

from .config import IoSettings
from .errors import CommitConflictError
from .log import FileEntry, TableSnapshot, begin_read, commit
from .paths import resolve_part
from .write import discard_parts, write_part

logger = logging.getLogger(__name__)


def delete(
    settings: IoSettings,
    table_name: str,
    predicate: pl.Expr,
    *,
    base: TableSnapshot | None = None,
) -> dict[str, Any]:
    """
    Delete the rows matching predicate.

    Args:
        settings (IoSettings): IO configuration.
        table_name (str): Target table.
        predicate (pl.Expr): Boolean expression over the table's columns.
        base (TableSnapshot | None): Snapshot to build on; defaults to the latest version.

    Returns:
        dict[str, Any]: Summary with keys table, version, deleted (row count),
            removed (relative paths), added (relative paths). No version is committed
            when nothing matches.

    Raises:
        IoWriteError: If a rewritten part cannot be written.
        CommitConflictError: Another writer committed first; nothing was changed.
    """
    snapshot = base if base is not None else begin_read(settings, table_name)
    removed: list[str] = []
    added: list[FileEntry] = []
    deleted = 0

    for entry in snapshot.files:
        df = pl.read_parquet(resolve_part(settings, table_name, entry.path))
        mask = df.select(predicate.fill_null(False).alias("_match")).get_column("_match")
        hits = int(mask.sum())
        if hits == 0:
            continue
        deleted += hits
        removed.append(entry.path)
        remaining = df.filter(~mask)
        if remaining.height:
            added.append(write_part(settings, table_name, remaining, snapshot.schema))

    if not removed:
        logger.debug("delete on %s matched no rows", table_name)
        return {"table": table_name, "version": snapshot.version, "deleted": 0, "removed": [], "added": []}

    try:
        new = commit(
            settings,
            snapshot,
            operation="DELETE",
            add=added,
            remove=removed,
            params={"deleted": deleted},
        )
    except CommitConflictError:
        discard_parts(settings, table_name, added)
        raise

    return {
        "table": table_name,
        "version": new.version,
        "deleted": deleted,
        "removed": removed,
        "added": [e.path for e in added],
    }
