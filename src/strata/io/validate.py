"""
Schema validation utilities for strata.io.

Purpose
- Validate Polars DataFrames against a table's TableSchema before they are written.
- Apply pragmatic checks with casting for scalar dtypes.

Checks performed
- Column names match schema columns case-insensitively and are renamed to the schema spelling.
- When strict=True: no columns outside the schema.
- Columns absent from the frame are added as nulls (identity columns are then generated;
  other non-nullable columns fail check_not_null).
- Dtypes are cast to the schema dtype; values that cannot be represented raise IoSchemaError.

Notes
- Depends on polars and strata.core schema models only.
"""

from __future__ import annotations

import polars as pl

from strata.core.schema import TableSchema

from .errors import IoSchemaError

# Polars dtype singletons are loosely typed across versions.
_DTYPE_MAP: dict[str, object] = {
    "i64": pl.Int64,
    "f64": pl.Float64,
    "str": pl.Utf8,
    "bool": pl.Boolean,
}


def polars_dtype(dtype_name: str) -> object:
    """Polars dtype for a schema dtype name."""
    try:
        return _DTYPE_MAP[dtype_name]
    except KeyError as exc:  # pragma: no cover - schema Literal guards this
        raise IoSchemaError(f"unknown schema dtype {dtype_name!r}") from exc


def polars_schema(schema: TableSchema) -> dict[str, object]:
    """Ordered {column: polars dtype} mapping for a table schema."""
    return {c.name: polars_dtype(c.dtype) for c in schema.columns}


def _cast(df: pl.DataFrame, col: str, target: object) -> pl.DataFrame:
    try:
        return df.with_columns(pl.col(col).cast(target, strict=True))  # type: ignore[arg-type]
    except pl.exceptions.PolarsError as exc:
        raise IoSchemaError(f"failed to cast column {col!r} to {target}: {exc}") from exc


def validate_frame_against_schema(
    df: pl.DataFrame,
    schema: TableSchema,
    *,
    strict: bool = True,
) -> pl.DataFrame:
    """
    Conform a DataFrame to a TableSchema.

    Args:
        df (pl.DataFrame): Frame to validate.
        schema (TableSchema): Target table schema.
        strict (bool): Reject columns outside the schema when True; drop them when False.

    Returns:
        pl.DataFrame: Frame with exactly the schema's columns, in schema order and dtypes.

    Raises:
        IoSchemaError: On unknown columns (strict), duplicate spellings of one column, or
            values that cannot be cast.
    """
    renames: dict[str, str] = {}
    extras: list[str] = []
    seen: set[str] = set()
    for name in df.columns:
        col = schema.find(name)
        if col is None:
            extras.append(name)
            continue
        if col.name in seen:
            raise IoSchemaError(f"column {col.name!r} supplied more than once")
        seen.add(col.name)
        if name != col.name:
            renames[name] = col.name
    if extras and strict:
        raise IoSchemaError(f"unexpected columns present: {extras!r} (allowed={schema.names!r})")
    if extras:
        df = df.drop(extras)
    if renames:
        df = df.rename(renames)

    for col in schema.columns:
        target = polars_dtype(col.dtype)
        if col.name not in df.columns:
            df = df.with_columns(pl.lit(None, dtype=target).alias(col.name))  # type: ignore[arg-type]
        elif df.schema[col.name] != target:
            df = _cast(df, col.name, target)

    return df.select(schema.names)


def check_not_null(df: pl.DataFrame, schema: TableSchema) -> None:
    """
    Ensure non-nullable columns hold no nulls.

    Raises:
        IoSchemaError: Naming the first offending column.
    """
    for col in schema.columns:
        if not col.nullable and df.get_column(col.name).null_count() > 0:
            raise IoSchemaError(f"column {col.name!r} is NOT NULL but received null values")
