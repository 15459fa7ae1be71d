"""
SYNC IDENTITY: recompute an identity column's high-water-mark from the data it holds.

Explicitly inserted values bypass the generator, so the stored watermark can fall behind the
data (future generated values would collide) or, after deletes, sit further out than needed.
sync_identity() reads one snapshot, finds the column's extreme value in the generation
direction, rounds it onto the sequence, and commits the result as a new version.

Steps
1. Capability: the table must be a native table (transaction log present).
2. Resolve the column; it must carry an identity spec.
3. Extreme of the non-null values over the snapshot's live parts: max for step > 0,
   min for step < 0. Per-part statistics answer this without reading data when every part
   has them; otherwise the parts are scanned.
4. New watermark via strata.core.sequence.reconcile_high_water_mark (overflow aborts the
   whole operation with IdentityOverflowError; nothing is committed).
5. Commit only when the watermark changes. A lost commit race surfaces as
   CommitConflictError and is never retried here: the scan belongs to a stale snapshot.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import polars as pl

from strata.core.constants import NATIVE_FORMAT, SYNC_IDENTITY_COMMAND
from strata.core.errors import IdentityOverflowError
from strata.core.identity import IdentitySpec
from strata.core.schema import ColumnSchema
from strata.core.sequence import generation_extreme, next_value, reconcile_high_water_mark

from .config import IoSettings
from .errors import TableNotFoundError, UnsupportedTableError
from .log import TableSnapshot, begin_read, commit, supports_identity_columns
from .paths import table_dir
from .read import scan_snapshot

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SyncResult:
    """
    Outcome of one SYNC IDENTITY run.

    Attributes:
        table (str): Table name.
        column (str): Column name as spelled in the schema.
        identity (IdentitySpec): Identity spec of the column (unchanged by the run).
        previous_high_water_mark (int): Watermark in the snapshot that was scanned.
        high_water_mark (int): Watermark after the run.
        read_version (int): Version that was scanned.
        version (int): Version holding the result (read_version when nothing was committed).
        committed (bool): Whether a new version was written.
    """

    table: str
    column: str
    identity: IdentitySpec
    previous_high_water_mark: int
    high_water_mark: int
    read_version: int
    version: int
    committed: bool

    @property
    def step(self) -> int:
        return self.identity.step

    @property
    def next_value(self) -> int | None:
        """First value the generator will hand out, or None once the sequence is exhausted."""
        try:
            return next_value(self.identity, self.high_water_mark)
        except IdentityOverflowError:
            return None


def _stats_extreme(snapshot: TableSnapshot, column: ColumnSchema, spec: IdentitySpec) -> tuple[bool, int | None]:
    """
    Extreme from per-part statistics.

    Returns:
        tuple[bool, int | None]: (answered, extreme). answered is False when some part lacks
        statistics for the column.
    """
    key = "max" if spec.ascending else "min"
    found: list[int | None] = []
    for entry in snapshot.files:
        stats = entry.stats.get(column.name)
        if stats is None:
            return False, None
        found.append(stats.get(key))
    return True, generation_extreme(spec, found)


def column_extreme(
    settings: IoSettings,
    snapshot: TableSnapshot,
    column: ColumnSchema,
    *,
    use_stats: bool = True,
) -> int | None:
    """
    Extreme non-null value of an identity column in its generation direction.

    Args:
        settings (IoSettings): IO configuration.
        snapshot (TableSnapshot): Snapshot whose live parts are inspected.
        column (ColumnSchema): Identity column.
        use_stats (bool): Answer from per-part statistics when all parts have them.

    Returns:
        int | None: max (step > 0) or min (step < 0); None if the column holds no values.

    Raises:
        SchemaError: If column is not an identity column.
    """
    spec, _ = column.identity_state()
    if not snapshot.files:
        return None
    if use_stats:
        answered, extreme = _stats_extreme(snapshot, column, spec)
        if answered:
            return extreme
    col = pl.col(column.name)
    out = scan_snapshot(settings, snapshot).select(col.min().alias("min"), col.max().alias("max")).collect()
    return generation_extreme(spec, out.row(0))


def sync_identity(
    settings: IoSettings,
    table_name: str,
    column_name: str,
    *,
    use_stats: bool = True,
) -> SyncResult:
    """
    Reconcile an identity column's high-water-mark with the table's data.

    Args:
        settings (IoSettings): IO configuration.
        table_name (str): Native table to update.
        column_name (str): Identity column (case-insensitive).
        use_stats (bool): Allow per-part statistics to answer the extreme-value scan.

    Returns:
        SyncResult: Previous and new watermark plus the versions involved.

    Raises:
        TableNotFoundError: If the table does not exist.
        UnsupportedTableError: If the table is not a native table.
        NotIdentityColumnError: If the column is missing or not an identity column.
        IdentityOverflowError: If the extreme cannot be rounded onto the sequence within int64.
        CommitConflictError: If another writer committed first.

    Examples:
        >>> result = sync_identity(settings, "events", "id")  # doctest: +SKIP
        >>> result.high_water_mark  # doctest: +SKIP
        100
    """
    if not os.path.isdir(table_dir(settings, table_name)):
        raise TableNotFoundError(f"table {table_name!r} not found under {settings.root_dir!r}")
    if not supports_identity_columns(settings, table_name):
        raise UnsupportedTableError(f"{SYNC_IDENTITY_COMMAND} is only supported by {NATIVE_FORMAT} tables")

    snapshot = begin_read(settings, table_name)
    column = snapshot.identity_column(column_name)
    spec, current = column.identity_state()

    extreme = column_extreme(settings, snapshot, column, use_stats=use_stats)
    new_hwm = reconcile_high_water_mark(spec, extreme)

    if new_hwm == current:
        logger.debug(
            "sync identity %s.%s: high-water-mark %d unchanged at version %d",
            table_name,
            column.name,
            current,
            snapshot.version,
        )
        return SyncResult(
            table=table_name,
            column=column.name,
            identity=spec,
            previous_high_water_mark=current,
            high_water_mark=current,
            read_version=snapshot.version,
            version=snapshot.version,
            committed=False,
        )

    schema = snapshot.schema.replace_column(column.with_high_water_mark(new_hwm))
    committed = commit(
        settings,
        snapshot,
        operation="SYNC IDENTITY",
        schema=schema,
        params={
            "column": column.name,
            "previous_high_water_mark": current,
            "high_water_mark": new_hwm,
            "extreme": extreme,
        },
    )
    logger.info(
        "sync identity %s.%s: high-water-mark %d -> %d (version %d)",
        table_name,
        column.name,
        current,
        new_hwm,
        committed.version,
    )
    return SyncResult(
        table=table_name,
        column=column.name,
        identity=spec,
        previous_high_water_mark=current,
        high_water_mark=new_hwm,
        read_version=snapshot.version,
        version=committed.version,
        committed=True,
    )
