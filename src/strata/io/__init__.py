"""
strata.io: versioned Parquet tables and identity high-water-mark maintenance.

## Responsibilities
- Provide a Polars/Arrow-first storage layer: one transaction log per table whose entries are
  complete, immutable snapshots (schema + live files), committed optimistically.
- Generate identity values on insert and keep each column's high-water-mark in the schema
  metadata, versioned with the data.
- Reconcile high-water-marks with the data (ALTER TABLE ... SYNC IDENTITY).

## Public API
- IoSettings: Configuration for IO behavior (defaults sourced from strata.core.constants).
- Catalog / Table: Facades for creating, writing, reading, and syncing tables.
- sync_identity / SyncResult: The reconciler.
- parse_command / execute: The SQL-like command surface.

## Examples
```python
import polars as pl
from strata.core import ColumnSchema
from strata.io import Catalog, IoSettings

catalog = Catalog(IoSettings(root_dir="out"))
events = catalog.create_table("events", [
    ColumnSchema.identity_column("id", start=100, step=2),
    ColumnSchema(name="value", dtype="str"),
])
events.insert({"id": [1, 2, 99], "value": ["a", "b", "c"]})
events.sync_identity("id").high_water_mark  # 98
events.insert({"value": ["d", "e", "f"]})  # ids 100, 102, 104
```

## Notes
- Data write path: tmp parquet → fsync → os.replace(tmp, final).
- Log write path: tmp json → fsync → os.link(tmp, final), which fails if another writer already
  published that version (CommitConflictError).
"""

from __future__ import annotations

from .command import SyncIdentityCommand, execute, parse_command
from .config import IoSettings
from .log import TableSnapshot, supports_identity_columns
from .sync import SyncResult, sync_identity
from .table import Catalog, Table

__all__ = [
    "IoSettings",
    "Catalog",
    "Table",
    "TableSnapshot",
    "SyncResult",
    "SyncIdentityCommand",
    "sync_identity",
    "supports_identity_columns",
    "parse_command",
    "execute",
]
