from __future__ import annotations

import dataclasses

import polars as pl
import pytest

import strata.io.sync as sync_mod
from strata.core.constants import INT64_MAX, INT64_MIN
from strata.core.errors import IdentityOverflowError, SchemaError
from strata.core.identity import GenerationMode
from strata.core.schema import ColumnSchema
from strata.io.command import execute
from strata.io.config import IoSettings
from strata.io.errors import (
    CommitConflictError,
    NotIdentityColumnError,
    TableNotFoundError,
    UnsupportedTableError,
)
from strata.io.log import commit
from strata.io.sync import column_extreme, sync_identity
from strata.io.table import Catalog, Table
from strata.io.write import write_part


def make_events(
    catalog: Catalog,
    *,
    start: int = 1,
    step: int = 1,
    mode: GenerationMode = GenerationMode.BY_DEFAULT,
) -> Table:
    return catalog.create_table(
        "events",
        [
            ColumnSchema.identity_column("id", start=start, step=step, generation_mode=mode),
            ColumnSchema(name="value", dtype="i64"),
        ],
    )


def insert_explicit(t: Table, ids: list[int]) -> None:
    t.insert({"id": ids, "value": list(range(len(ids)))})


def insert_generated(t: Table, n: int, marker: int = 100) -> list[int]:
    """Insert n generated rows tagged with value >= marker; return their ids in insert order."""
    t.insert({"value": list(range(marker, marker + n))})
    df = t.read().filter(pl.col("value") >= marker).sort("value")
    return df.get_column("id").to_list()


def nearest_by_enumeration(start: int, step: int, target: int) -> int:
    terms = [start + k * step for k in range(-100, 100)]
    if step > 0:
        return min(x for x in terms if x >= target)
    return max(x for x in terms if x <= target)


# ---------------------------------------------------------------------------
# Worked scenarios
# ---------------------------------------------------------------------------


def test_extreme_below_next_term_keeps_watermark(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog, start=100, step=2)
    insert_explicit(t, [1, 2, 99])

    result = sync_identity(settings, "events", "id")

    assert result.previous_high_water_mark == 98
    assert result.high_water_mark == 98
    assert result.committed is False
    assert insert_generated(t, 3) == [100, 102, 104]


def test_extreme_on_sequence_becomes_watermark(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog, start=100, step=2)
    insert_explicit(t, [1, 2, 100])

    result = sync_identity(settings, "events", "id")

    assert (result.previous_high_water_mark, result.high_water_mark) == (98, 100)
    assert result.committed is True
    assert result.version == result.read_version + 1
    assert result.next_value == 102
    assert insert_generated(t, 3) == [102, 104, 106]


def test_extreme_between_terms_rounds_outward(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog, start=100, step=2)
    insert_explicit(t, [1, 2, 101])

    assert sync_identity(settings, "events", "id").high_water_mark == 102
    assert insert_generated(t, 3) == [104, 106, 108]


def test_negative_step_ignores_values_on_the_far_side(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog, start=-10, step=-2)
    insert_explicit(t, [1, 2, -9])

    result = sync_identity(settings, "events", "id")

    assert result.high_water_mark == -8
    assert result.committed is False
    assert insert_generated(t, 3) == [-10, -12, -14]


@pytest.mark.parametrize("mode", [GenerationMode.ALWAYS, GenerationMode.BY_DEFAULT])
def test_sync_lowers_watermark_after_deletes(catalog: Catalog, settings: IoSettings, mode: GenerationMode) -> None:
    t = make_events(catalog, start=1, step=10, mode=mode)
    for v in range(5):
        t.insert({"value": [v]})
    assert t.read().sort("id").get_column("id").to_list() == [1, 11, 21, 31, 41]

    t.delete(pl.col("value").is_in([0, 3, 4]))
    assert t.high_water_mark("id") == 41

    result = sync_identity(settings, "events", "id")
    assert (result.previous_high_water_mark, result.high_water_mark) == (41, 21)

    t.insert({"value": [8]})
    ids = t.read().sort("id").get_column("id").to_list()
    assert ids == [11, 21, 31]
    assert max(ids) == 31


# ---------------------------------------------------------------------------
# Statement grid: both keywords, both directions
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("keyword", ["ALTER", "CHANGE"])
@pytest.mark.parametrize("step", [-3, 3])
@pytest.mark.parametrize("start", [-1, 1])
def test_statement_tracks_every_explicit_value(
    catalog: Catalog, settings: IoSettings, start: int, step: int, keyword: str
) -> None:
    t = make_events(catalog, start=start, step=step)
    statement = f"ALTER TABLE events {keyword} COLUMN id SYNC IDENTITY"

    schema_before = t.schema()
    empty = execute(settings, statement)
    assert empty.committed is False
    assert t.schema() == schema_before

    direction = 1 if step > 0 else -1
    for j in range(10 * abs(step) + 1):
        value = start + j * direction
        t.insert({"id": [value], "value": [j]})
        result = execute(settings, statement)
        expected = nearest_by_enumeration(start, step, value)
        assert result.high_water_mark == expected
        assert t.high_water_mark("id") == expected
        assert (expected - start) % step == 0


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "start,step,explicit",
    [
        (1, 1, [5, 3, 9]),
        (1, 3, [2, 7, 8]),
        (100, 2, [1, 2, 99]),
        (-10, -2, [-11, -30, 5]),
        (0, -5, [-1, -2, -7]),
    ],
)
def test_generated_values_never_collide_after_sync(
    catalog: Catalog, settings: IoSettings, start: int, step: int, explicit: list[int]
) -> None:
    t = make_events(catalog, start=start, step=step)
    insert_explicit(t, explicit)

    sync_identity(settings, "events", "id")
    generated = insert_generated(t, 5)

    ids = t.read().get_column("id").to_list()
    assert len(ids) == len(set(ids))
    for g in generated:
        assert (g - start) % step == 0
        if step > 0:
            assert g > max(explicit)
        else:
            assert g < min(explicit)


def test_sync_is_idempotent(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog, start=100, step=2)
    insert_explicit(t, [1, 2, 100])

    first = sync_identity(settings, "events", "id")
    second = sync_identity(settings, "events", "id")

    assert first.committed is True
    assert second.committed is False
    assert second.high_water_mark == first.high_water_mark
    assert second.version == first.version
    assert t.snapshot().version == first.version


def test_emptied_table_resets_to_initial_watermark(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog, start=100, step=2)
    insert_generated(t, 4)
    assert t.high_water_mark("id") == 106

    t.delete(pl.col("id").is_not_null())
    result = sync_identity(settings, "events", "id")

    assert result.high_water_mark == 98
    assert insert_generated(t, 1) == [100]


@pytest.mark.parametrize("start,step,value", [(1, 10, INT64_MAX), (-1, -10, INT64_MIN)])
def test_overflow_aborts_without_commit(
    catalog: Catalog, settings: IoSettings, start: int, step: int, value: int
) -> None:
    t = make_events(catalog, start=start, step=step)
    insert_explicit(t, [value])
    before = t.snapshot()

    with pytest.raises(IdentityOverflowError):
        sync_identity(settings, "events", "id")

    after = t.snapshot()
    assert after.version == before.version
    assert after.high_water_mark("id") == before.high_water_mark("id")


@pytest.mark.parametrize("start,step,value", [(1, 1, INT64_MAX), (-1, -1, INT64_MIN)])
def test_watermark_at_the_int64_edge_exhausts_the_sequence(
    catalog: Catalog, settings: IoSettings, start: int, step: int, value: int
) -> None:
    t = make_events(catalog, start=start, step=step)
    insert_explicit(t, [value])

    result = sync_identity(settings, "events", "id")

    assert result.committed is True
    assert result.high_water_mark == value
    assert result.step == step
    assert result.next_value is None
    assert t.snapshot().high_water_mark("id") == value


def test_history_records_the_sync(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog, start=100, step=2)
    insert_explicit(t, [1, 2, 100])
    sync_identity(settings, "events", "id")

    last = t.history()[-1]
    assert last.operation == "SYNC IDENTITY"
    assert last.operation_params["previous_high_water_mark"] == 98
    assert last.operation_params["high_water_mark"] == 100
    assert last.operation_params["extreme"] == 100


# ---------------------------------------------------------------------------
# Targets that cannot be synced
# ---------------------------------------------------------------------------


def test_plain_parquet_table_is_unsupported(catalog: Catalog, settings: IoSettings) -> None:
    legacy = catalog.create_parquet_table("legacy", pl.DataFrame({"id": [1, 2, 3]}))

    assert catalog.supports_identity_columns("legacy") is False
    assert legacy.read().height == 3
    with pytest.raises(UnsupportedTableError, match="only supported by strata tables"):
        sync_identity(settings, "legacy", "id")


def test_plain_column_is_rejected(catalog: Catalog, settings: IoSettings) -> None:
    make_events(catalog)
    with pytest.raises(NotIdentityColumnError, match="cannot be called on column 'value'"):
        sync_identity(settings, "events", "value")
    with pytest.raises(NotIdentityColumnError, match="no such column"):
        sync_identity(settings, "events", "missing")


def test_missing_table(settings: IoSettings) -> None:
    with pytest.raises(TableNotFoundError):
        sync_identity(settings, "nope", "id")


def test_column_name_is_case_insensitive(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog)
    insert_explicit(t, [7])

    result = execute(settings, "alter table `events` change `ID` sync identity;")

    assert result.column == "id"
    assert result.high_water_mark == 7


# ---------------------------------------------------------------------------
# Extreme-value scan
# ---------------------------------------------------------------------------


def test_statistics_answer_without_reading_data(
    catalog: Catalog, settings: IoSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    t = make_events(catalog, start=1, step=1)
    insert_explicit(t, [3, 50])
    insert_explicit(t, [20])

    def _no_scan(*_args, **_kwargs):
        raise AssertionError("data parts should not be scanned")

    monkeypatch.setattr(sync_mod, "scan_snapshot", _no_scan)
    assert sync_identity(settings, "events", "id").high_water_mark == 50


def test_scan_and_statistics_agree(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog, start=-1, step=-3)
    insert_explicit(t, [-5, -40, 2])
    snap = t.snapshot()
    column = snap.schema.column("id")

    assert column_extreme(settings, snap, column, use_stats=True) == -40
    assert column_extreme(settings, snap, column, use_stats=False) == -40


def test_parts_without_statistics_fall_back_to_scan(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog, start=1, step=1)
    insert_explicit(t, [3])
    snap = t.snapshot()
    entry = write_part(settings, "events", pl.DataFrame({"id": [500], "value": [1]}), snap.schema)
    commit(settings, snap, operation="WRITE", add=[dataclasses.replace(entry, stats={})])

    assert sync_identity(settings, "events", "id").high_water_mark == 500


def test_empty_column_has_no_extreme(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog)
    snap = t.snapshot()
    assert column_extreme(settings, snap, snap.schema.column("id")) is None


def test_plain_column_has_no_identity_extreme(catalog: Catalog, settings: IoSettings) -> None:
    t = make_events(catalog)
    insert_explicit(t, [5])
    snap = t.snapshot()
    with pytest.raises(SchemaError, match="not an identity column"):
        column_extreme(settings, snap, snap.schema.column("value"))


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


def test_concurrent_commit_surfaces_conflict(
    catalog: Catalog, settings: IoSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    t = make_events(catalog, start=1, step=1)
    insert_explicit(t, [50])
    real_extreme = sync_mod.column_extreme

    def _racing_extreme(*args, **kwargs):
        # another writer commits between the scan and the sync commit
        Table(settings, "events").insert({"value": [7]})
        return real_extreme(*args, **kwargs)

    monkeypatch.setattr(sync_mod, "column_extreme", _racing_extreme)
    with pytest.raises(CommitConflictError):
        sync_identity(settings, "events", "id")

    # the concurrent insert generated 1 and is the only change that landed
    assert t.high_water_mark("id") == 1
    monkeypatch.setattr(sync_mod, "column_extreme", real_extreme)
    assert sync_identity(settings, "events", "id").high_water_mark == 50
