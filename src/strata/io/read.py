"""
Read utilities for strata tables.

Overview
- scan(): Returns a Polars LazyFrame over a table version (latest by default).
- read(): Collects a DataFrame from scan(), with an optional pre-collect row cap.
- scan_snapshot(): LazyFrame over the live parts of an already-resolved snapshot.

Formats
- Native tables: the snapshot's file list is authoritative; files not referenced by the log
  (e.g. parts of a commit that lost a race) are never read.
- Plain parquet tables (no transaction log): every *.parquet under the table directory.

Import DAG discipline
- Depends on stdlib, polars, and strata.io helpers.
"""

from __future__ import annotations

import os

import polars as pl

from .config import IoSettings
from .errors import TableNotFoundError
from .fs import is_parquet
from .log import TableSnapshot, begin_read, read_version, supports_identity_columns
from .paths import resolve_part, table_dir
from .validate import polars_schema


def scan_snapshot(settings: IoSettings, snapshot: TableSnapshot) -> pl.LazyFrame:
    """
    LazyFrame over a snapshot's live parts.

    Returns:
        pl.LazyFrame: Empty (with the schema's columns and dtypes) when there are no parts.
    """
    if not snapshot.files:
        return pl.LazyFrame(schema=polars_schema(snapshot.schema))  # type: ignore[arg-type]
    paths = [resolve_part(settings, snapshot.table, f.path) for f in snapshot.files]
    return pl.scan_parquet(paths)


def _parquet_files(root: str) -> list[str]:
    out: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            if is_parquet(name):
                out.append(os.path.join(dirpath, name))
    return sorted(out)


def scan(settings: IoSettings, table_name: str, version: int | None = None) -> pl.LazyFrame:
    """
    Create a LazyFrame over a table.

    Args:
        settings (IoSettings): IO configuration used to resolve paths/layout.
        table_name (str): Table name.
        version (int | None): Native tables only: version to read (time travel); latest if None.

    Returns:
        pl.LazyFrame: Lazy scan over the selected parts.

    Raises:
        TableNotFoundError: If the table directory does not exist.
        UnsupportedTableError: If version is given for a plain parquet table.
    """
    if supports_identity_columns(settings, table_name):
        if version is None:
            snapshot = begin_read(settings, table_name)
        else:
            snapshot = read_version(settings, table_name, version)
        return scan_snapshot(settings, snapshot)

    tdir = table_dir(settings, table_name)
    if not os.path.isdir(tdir):
        raise TableNotFoundError(f"table {table_name!r} not found under {settings.root_dir!r}")
    if version is not None:
        # begin_read raises the format error for plain parquet tables
        begin_read(settings, table_name)
    files = _parquet_files(tdir)
    if not files:
        return pl.LazyFrame()
    return pl.scan_parquet(files)


def read(
    settings: IoSettings,
    table_name: str,
    version: int | None = None,
    limit: int | None = None,
) -> pl.DataFrame:
    """
    Collect a DataFrame from scan(), optionally applying a pre-collect row cap.

    Returns:
        pl.DataFrame: Materialized frame (possibly empty).
    """
    lf = scan(settings, table_name, version=version)
    if limit is not None:
        lf = lf.limit(int(limit))
    return lf.collect()
