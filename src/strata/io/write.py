"""
Writer for native strata tables, including identity value generation.

Overview
- Conforms frames to the table schema (strata.io.validate).
- Fills identity columns: every null gets hwm + step in row order and the watermark advances
  once per generated value; explicit values pass through untouched (BY_DEFAULT) or are
  rejected (ALWAYS).
- Writes one Parquet part per insert with atomic tmp → ready rename, embedding
  format/table metadata, and records per-column i64 statistics.
- Commits the part and the advanced watermark together as one new table version.

Source of truth
- Identity arithmetic: strata.core.sequence (generate, overflow checks).
- Schema/identity metadata: strata.core.schema / strata.core.identity.
- Versioning metadata: strata.core.versioning.FORMAT_V (Parquet key-value metadata).
- IO-layer errors: strata.io.errors.

Notes
- A part whose commit loses a race is deleted; it was never referenced by the log.
"""

from __future__ import annotations

import logging
import os
import uuid
from datetime import UTC, datetime
from typing import Any

import polars as pl
import pyarrow.parquet as pq

from strata.core.schema import TableSchema
from strata.core.sequence import generate
from strata.core.versioning import FORMAT_V

from .config import IoSettings
from .errors import CommitConflictError, IdentityInsertError, IoWriteError
from .fs import fsync_path, makedirs, remove_quietly, rename_atomic
from .log import FileEntry, TableSnapshot, begin_read, commit
from .paths import data_dir, part_paths, resolve_part
from .validate import check_not_null, validate_frame_against_schema

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    """Return the current UTC time in ISO-8601 format."""
    return datetime.now(UTC).isoformat()


def column_stats(df: pl.DataFrame, schema: TableSchema) -> dict[str, dict[str, Any]]:
    """
    Compute {"min","max","null_count"} for every i64 column.

    Returns:
        dict[str, dict[str, Any]]: min/max are None for all-null columns.
    """
    out: dict[str, dict[str, Any]] = {}
    for col in schema.columns:
        if col.dtype != "i64":
            continue
        s = df.get_column(col.name)
        lo = s.min()
        hi = s.max()
        out[col.name] = {
            "min": None if lo is None else int(lo),
            "max": None if hi is None else int(hi),
            "null_count": int(s.null_count()),
        }
    return out


def fill_identity(df: pl.DataFrame, schema: TableSchema) -> tuple[pl.DataFrame, TableSchema, dict[str, int]]:
    """
    Generate identity values for rows that lack one.

    Args:
        df (pl.DataFrame): Frame already conformed to schema (identity columns present).
        schema (TableSchema): Schema whose identity watermarks drive generation.

    Returns:
        tuple: (filled frame, schema with advanced watermarks, {column: generated count}).

    Raises:
        IdentityInsertError: If an ALWAYS column received explicit values.
        IdentityOverflowError: If generation would leave the int64 range.
    """
    counts: dict[str, int] = {}
    for col in schema.identity_columns():
        spec, hwm = col.identity_state()
        series = df.get_column(col.name)
        missing = series.null_count()
        if not spec.allow_explicit_insert and missing != df.height:
            raise IdentityInsertError(
                f"providing values for GENERATED ALWAYS AS IDENTITY column {col.name!r} is not supported"
            )
        if missing == 0:
            continue
        generated, new_hwm = generate(spec, hwm, missing)
        it = iter(generated)
        filled = [next(it) if v is None else v for v in series.to_list()]
        df = df.with_columns(pl.Series(col.name, filled, dtype=pl.Int64))
        schema = schema.replace_column(col.with_high_water_mark(new_hwm))
        counts[col.name] = missing
        logger.debug("generated %d values for %s (high-water-mark %d -> %d)", missing, col.name, hwm, new_hwm)
    return df, schema, counts


def write_part(settings: IoSettings, table_name: str, df: pl.DataFrame, schema: TableSchema) -> FileEntry:
    """
    Write a frame as a new Parquet part (tmp → fsync → rename) and describe it.

    Raises:
        IoWriteError: If the parquet write, fsync, or rename fails.
    """
    makedirs(data_dir(settings, table_name), exist_ok=True)
    ppaths = part_paths(settings, table_name, uuid.uuid4().hex)
    try:
        arrow_table = df.to_arrow()
        meta = dict(arrow_table.schema.metadata or {})
        meta.update(
            {
                b"strata_format_version": FORMAT_V.tag().encode(),
                b"strata_table_name": table_name.encode("utf-8"),
            }
        )
        arrow_table = arrow_table.replace_schema_metadata(meta)
        pq.write_table(
            arrow_table,
            ppaths.tmp_path,
            compression=settings.compression,
            row_group_size=settings.row_group_size,
        )
        if settings.fsync:
            fsync_path(ppaths.tmp_path)
        rename_atomic(ppaths.tmp_path, ppaths.final_path)
    except Exception as exc:
        remove_quietly(ppaths.tmp_path)
        raise IoWriteError(f"failed to write parquet part for table {table_name!r}: {exc}") from exc

    return FileEntry(
        path=ppaths.rel_path,
        rows=df.height,
        bytes=int(os.path.getsize(ppaths.final_path)),
        created_at=_now_iso(),
        stats=column_stats(df, schema),
    )


def discard_parts(settings: IoSettings, table_name: str, entries: list[FileEntry]) -> None:
    """Delete parts that never made it into a committed version."""
    for entry in entries:
        remove_quietly(resolve_part(settings, table_name, entry.path))


def insert(
    settings: IoSettings,
    table_name: str,
    df: pl.DataFrame,
    *,
    base: TableSnapshot | None = None,
) -> dict[str, Any]:
    """
    Insert rows into a native table as one new version.

    Args:
        settings (IoSettings): IO configuration.
        table_name (str): Target table.
        df (pl.DataFrame): Rows to insert; identity columns may be absent or null to request
            generated values.
        base (TableSnapshot | None): Snapshot to build on; defaults to the latest version.

    Returns:
        dict[str, Any]: Summary with keys:
            - table (str)
            - version (int): Committed version (unchanged for an empty frame)
            - rows (int)
            - parts (list[str]): Relative part paths
            - generated (dict[str, int]): Generated value count per identity column

    Raises:
        IoSchemaError / IdentityInsertError: Frame failed validation.
        IdentityOverflowError: Identity generation overflowed int64.
        IoWriteError: Parquet write failed.
        CommitConflictError: Another writer committed first; nothing was written.
    """
    snapshot = base if base is not None else begin_read(settings, table_name)
    if df.height == 0:
        return {"table": table_name, "version": snapshot.version, "rows": 0, "parts": [], "generated": {}}

    df = validate_frame_against_schema(df, snapshot.schema, strict=settings.strict_schema)
    df, schema, counts = fill_identity(df, snapshot.schema)
    check_not_null(df, schema)

    entry = write_part(settings, table_name, df, schema)
    try:
        new = commit(
            settings,
            snapshot,
            operation="WRITE",
            schema=schema if counts else None,
            add=[entry],
            params={"rows": df.height, "generated": counts},
        )
    except CommitConflictError:
        discard_parts(settings, table_name, [entry])
        raise

    return {
        "table": table_name,
        "version": new.version,
        "rows": df.height,
        "parts": [entry.path],
        "generated": counts,
    }
