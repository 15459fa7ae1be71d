"""
Catalog and Table facades for strata.io.

Provides convenient objects bound to IoSettings (Catalog) and to one table (Table) with
create/insert/delete/scan/read/sync-identity/history helpers. The IO layer is Polars/Arrow-first
and treats strata.core as the single source of truth for schemas and identity arithmetic.

Source of truth
- Schemas and identity metadata: strata.core.schema / strata.core.identity
- Sequence arithmetic: strata.core.sequence
- Versioning metadata: strata.core.versioning.FORMAT_V

Import DAG discipline:
- Depends only on stdlib, polars/pyarrow, strata.core.*, and sibling strata.io modules.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Iterable
from typing import Any

import polars as pl

from strata.core.schema import ColumnSchema, TableSchema

from .config import IoSettings
from .delete import delete as _delete
from .errors import IoWriteError, TableExistsError, TableNotFoundError
from .fs import exists, listdir, makedirs, remove_quietly
from .log import TableSnapshot, begin_read, create, history, read_version, supports_identity_columns
from .paths import table_dir, tables_root, validate_table_name
from .read import read as _read
from .read import scan as _scan
from .sync import SyncResult, sync_identity
from .write import insert as _insert


class Table:
    """
    Facade bound to one table.

    Notes:
        - Every mutating call reads the latest snapshot and commits exactly one new version
          (or none when there is nothing to do).
        - Nothing is cached: two Table objects for the same name see each other's commits.
    """

    def __init__(self, settings: IoSettings, name: str) -> None:
        """
        Bind a facade to a table name.

        Notes:
            This does not perform any I/O at construction time.
        """
        self.settings = settings
        self.name = validate_table_name(name)

    def __repr__(self) -> str:
        return f"Table({self.name!r}, root_dir={self.settings.root_dir!r})"

    @property
    def supports_identity_columns(self) -> bool:
        return supports_identity_columns(self.settings, self.name)

    # ---------------------------------------------------------------------
    # Snapshots
    # ---------------------------------------------------------------------
    def snapshot(self, version: int | None = None) -> TableSnapshot:
        """Latest snapshot, or the one committed as version."""
        if version is None:
            return begin_read(self.settings, self.name)
        return read_version(self.settings, self.name, version)

    def schema(self) -> TableSchema:
        return self.snapshot().schema

    def high_water_mark(self, column: str) -> int:
        """Current high-water-mark of an identity column."""
        return self.snapshot().high_water_mark(column)

    def history(self) -> list[TableSnapshot]:
        return history(self.settings, self.name)

    # ---------------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------------
    def insert(self, df: pl.DataFrame | dict[str, list[Any]]) -> dict[str, Any]:
        """
        Insert rows; identity columns left out or null are generated.

        Returns:
            dict[str, Any]: Summary (table, version, rows, parts, generated).
        """
        frame = df if isinstance(df, pl.DataFrame) else pl.DataFrame(df)
        return _insert(self.settings, self.name, frame)

    def delete(self, predicate: pl.Expr) -> dict[str, Any]:
        """
        Delete rows matching predicate (copy-on-write).

        Returns:
            dict[str, Any]: Summary (table, version, deleted, removed, added).
        """
        return _delete(self.settings, self.name, predicate)

    def sync_identity(self, column: str) -> SyncResult:
        """Run SYNC IDENTITY on one identity column."""
        return sync_identity(self.settings, self.name, column)

    # ---------------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------------
    def scan(self, version: int | None = None) -> pl.LazyFrame:
        return _scan(self.settings, self.name, version=version)

    def read(self, version: int | None = None, limit: int | None = None) -> pl.DataFrame:
        return _read(self.settings, self.name, version=version, limit=limit)


class Catalog:
    """
    Facade over every table below IoSettings.root_dir.
    """

    def __init__(self, settings: IoSettings) -> None:
        self.settings = settings

    def create_table(
        self,
        name: str,
        columns: TableSchema | Iterable[ColumnSchema],
        *,
        properties: dict[str, Any] | None = None,
    ) -> Table:
        """
        Create a native table (version 0).

        Args:
            name (str): Table name ([A-Za-z_][A-Za-z0-9_]*).
            columns: Schema, or its columns in order.
            properties (dict | None): Free-form details recorded with the CREATE TABLE commit.

        Raises:
            TableExistsError: If a table of that name already exists (native or not).
        """
        schema = columns if isinstance(columns, TableSchema) else TableSchema(columns=tuple(columns))
        if os.path.isdir(table_dir(self.settings, name)) and not supports_identity_columns(
            self.settings, name
        ):
            raise TableExistsError(f"table {name!r} already exists as a plain parquet table")
        create(self.settings, name, schema, params=properties)
        return Table(self.settings, name)

    def create_parquet_table(self, name: str, df: pl.DataFrame) -> Table:
        """
        Create a plain parquet table: data files without a transaction log.

        Such tables are readable through Table.read()/scan() but carry no identity metadata.

        Raises:
            TableExistsError: If the table directory already exists.
            IoWriteError: If the parquet file cannot be written.
        """
        tdir = table_dir(self.settings, name)
        if exists(tdir):
            raise TableExistsError(f"table {name!r} already exists")
        makedirs(tdir, exist_ok=False)
        path = os.path.join(tdir, f"part-{uuid.uuid4().hex}.parquet")
        try:
            df.write_parquet(path, compression=self.settings.compression)
        except Exception as exc:
            remove_quietly(path)
            raise IoWriteError(f"failed to write parquet table {name!r}: {exc}") from exc
        return Table(self.settings, name)

    def table(self, name: str) -> Table:
        """
        Resolve an existing table.

        Raises:
            TableNotFoundError: If no table directory exists.
        """
        if not self.exists(name):
            raise TableNotFoundError(f"table {name!r} not found under {self.settings.root_dir!r}")
        return Table(self.settings, name)

    def exists(self, name: str) -> bool:
        return os.path.isdir(table_dir(self.settings, name))

    def list_tables(self) -> list[str]:
        root = tables_root(self.settings)
        return sorted(n for n in listdir(root) if os.path.isdir(os.path.join(root, n)))

    def supports_identity_columns(self, name: str) -> bool:
        return supports_identity_columns(self.settings, name)
