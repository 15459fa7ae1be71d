"""
Pydantic v2 models for table schemas: columns, their metadata, and identity configuration.

Responsibilities
- Define ColumnSchema (name, dtype, nullability, free-form metadata) and TableSchema.
- Expose identity configuration stored in column metadata (strata.core.identity).
- Provide copy-on-write updates: every change returns a new model, never mutates in place.

Style
- Zero-IO (stdlib + pydantic only).
- Column lookups are case-insensitive, matching the command surface.

Examples:
    >>> from strata.core.schema import ColumnSchema, TableSchema
    >>> schema = TableSchema(columns=(
    ...     ColumnSchema.identity_column("id", start=1, step=10),
    ...     ColumnSchema(name="value", dtype="i64"),
    ... ))
    >>> schema.column("ID").high_water_mark
    -9
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import IDENTITY_HIGH_WATER_MARK_KEY, IDENTITY_KEYS
from .errors import SchemaError
from .identity import GenerationMode, IdentitySpec, high_water_mark_from_metadata
from .sequence import check_int64, is_on_sequence

__all__ = [
    "Dtype",
    "ColumnSchema",
    "TableSchema",
]

Dtype = Literal["i64", "f64", "str", "bool"]

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ColumnSchema(BaseModel):
    """
    One column of a table schema.

    Attributes:
        name (str): Column identifier ([A-Za-z_][A-Za-z0-9_]*).
        dtype (Dtype): Storage dtype; identity columns must be "i64".
        nullable (bool): Whether stored values may be null.
        metadata (dict[str, Any]): Column attributes; identity keys live here.

    Notes:
        The identity watermark must stay congruent to start modulo step; a metadata mapping
        that breaks this is rejected.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    dtype: Dtype
    nullable: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _identifier(cls, v: str) -> str:
        if not _IDENT_RE.match(v):
            raise ValueError(f"invalid column name {v!r}")
        return v

    @model_validator(mode="after")
    def _identity_rules(self) -> ColumnSchema:
        spec = IdentitySpec.from_metadata(self.metadata)
        if spec is None:
            stray = [k for k in IDENTITY_KEYS if k in self.metadata]
            if stray:
                raise SchemaError(f"column {self.name!r} has identity keys without start/step: {stray}")
            return self
        if self.dtype != "i64":
            raise SchemaError(f"identity column {self.name!r} must be i64, got {self.dtype}")
        hwm = high_water_mark_from_metadata(self.metadata)
        if hwm is None:
            raise SchemaError(f"identity column {self.name!r} has no high-water-mark")
        check_int64(hwm, "high-water-mark")
        if not is_on_sequence(spec, hwm):
            raise SchemaError(
                f"high-water-mark {hwm} of {self.name!r} is not on the sequence "
                f"start={spec.start} step={spec.step}"
            )
        return self

    @classmethod
    def identity_column(
        cls,
        name: str,
        *,
        start: int = 1,
        step: int = 1,
        generation_mode: GenerationMode = GenerationMode.BY_DEFAULT,
    ) -> ColumnSchema:
        """
        Define a new identity column with its watermark at start - step.

        Raises:
            pydantic.ValidationError: If step == 0 or parameters leave int64.
            IdentityOverflowError: If start - step leaves int64.
        """
        spec = IdentitySpec(generation_mode=generation_mode, start=start, step=step)
        return cls(
            name=name,
            dtype="i64",
            nullable=False,
            metadata=spec.to_metadata(spec.initial_high_water_mark()),
        )

    @property
    def identity(self) -> IdentitySpec | None:
        return IdentitySpec.from_metadata(self.metadata)

    @property
    def is_identity(self) -> bool:
        return self.identity is not None

    @property
    def high_water_mark(self) -> int | None:
        return high_water_mark_from_metadata(self.metadata)

    def identity_state(self) -> tuple[IdentitySpec, int]:
        """
        Identity spec and current watermark of an identity column.

        Raises:
            SchemaError: If the column is not an identity column.
        """
        spec = self.identity
        hwm = self.high_water_mark
        if spec is None or hwm is None:
            raise SchemaError(f"column {self.name!r} is not an identity column")
        return spec, hwm

    def with_high_water_mark(self, value: int) -> ColumnSchema:
        """Return a copy carrying a new watermark (validated like any other column)."""
        if not self.is_identity:
            raise SchemaError(f"column {self.name!r} is not an identity column")
        meta = dict(self.metadata)
        meta[IDENTITY_HIGH_WATER_MARK_KEY] = value
        return ColumnSchema(name=self.name, dtype=self.dtype, nullable=self.nullable, metadata=meta)


class TableSchema(BaseModel):
    """
    Ordered, immutable set of columns.

    Raises:
        pydantic.ValidationError: If there are no columns or two names collide case-insensitively.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    columns: tuple[ColumnSchema, ...]

    @field_validator("columns")
    @classmethod
    def _unique_names(cls, v: tuple[ColumnSchema, ...]) -> tuple[ColumnSchema, ...]:
        if not v:
            raise ValueError("a table needs at least one column")
        seen: set[str] = set()
        for col in v:
            key = col.name.lower()
            if key in seen:
                raise ValueError(f"duplicate column name {col.name!r}")
            seen.add(key)
        return v

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.columns]

    def find(self, name: str) -> ColumnSchema | None:
        key = name.lower()
        for col in self.columns:
            if col.name.lower() == key:
                return col
        return None

    def column(self, name: str) -> ColumnSchema:
        col = self.find(name)
        if col is None:
            raise KeyError(f"no column named {name!r}; columns are {self.names}")
        return col

    def identity_columns(self) -> list[ColumnSchema]:
        return [c for c in self.columns if c.is_identity]

    def replace_column(self, column: ColumnSchema) -> TableSchema:
        """Return a new schema with the same-named column swapped for column."""
        key = column.name.lower()
        if self.find(column.name) is None:
            raise KeyError(f"no column named {column.name!r}")
        return TableSchema(
            columns=tuple(column if c.name.lower() == key else c for c in self.columns)
        )
