"""
Identity column specification and its column-metadata encoding.

An identity column is generated by S(k) = start + k * step unless a value is supplied explicitly
(BY_DEFAULT) or always (ALWAYS). The specification is immutable once the column is created; only
the high-water-mark stored next to it changes.

Metadata layout (column-level, persisted in the transaction log)
| Key                                  | Value
|--------------------------------------|-------------------------------------------
| strata.identity.start                | int64
| strata.identity.step                 | int64, non-zero
| strata.identity.highWaterMark        | int64, last value considered generated
| strata.identity.allowExplicitInsert  | bool, False for ALWAYS, True for BY_DEFAULT

Examples:
    >>> from strata.core.identity import GenerationMode, IdentitySpec
    >>> spec = IdentitySpec(generation_mode=GenerationMode.BY_DEFAULT, start=100, step=2)
    >>> spec.initial_high_water_mark()
    98
    >>> IdentitySpec.from_metadata(spec.to_metadata(98)) == spec
    True
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .constants import (
    IDENTITY_ALLOW_EXPLICIT_INSERT_KEY,
    IDENTITY_HIGH_WATER_MARK_KEY,
    IDENTITY_START_KEY,
    IDENTITY_STEP_KEY,
    INT64_MAX,
    INT64_MIN,
)
from .errors import SchemaError
from .sequence import checked_sub

__all__ = [
    "GenerationMode",
    "IdentitySpec",
    "high_water_mark_from_metadata",
]


class GenerationMode(Enum):
    """How an identity column treats explicitly supplied values."""

    ALWAYS = "always"
    BY_DEFAULT = "by_default"


class IdentitySpec(BaseModel):
    """
    Immutable identity configuration for one column.

    Attributes:
        generation_mode (GenerationMode): ALWAYS rejects explicit values; BY_DEFAULT accepts them
            and generates only where the value is missing.
        start (int): First generated value.
        step (int): Increment between generated values; negative steps generate downward.

    Raises:
        pydantic.ValidationError: If step == 0 or start/step fall outside int64.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    generation_mode: GenerationMode = GenerationMode.BY_DEFAULT
    start: int = 1
    step: int = 1

    @field_validator("start", "step")
    @classmethod
    def _int64_range(cls, v: int) -> int:
        if v < INT64_MIN or v > INT64_MAX:
            raise ValueError(f"identity parameter {v} is outside the int64 range")
        return v

    @field_validator("step")
    @classmethod
    def _non_zero_step(cls, v: int) -> int:
        if v == 0:
            raise ValueError("identity step must not be 0")
        return v

    @property
    def allow_explicit_insert(self) -> bool:
        return self.generation_mode is GenerationMode.BY_DEFAULT

    @property
    def ascending(self) -> bool:
        return self.step > 0

    def initial_high_water_mark(self) -> int:
        """
        Watermark of a column that has generated nothing yet: start - step.

        Raises:
            IdentityOverflowError: If start - step leaves the int64 range.
        """
        return checked_sub(self.start, self.step)

    def to_metadata(self, high_water_mark: int) -> dict[str, Any]:
        """Encode this spec plus a watermark as column metadata entries."""
        return {
            IDENTITY_START_KEY: self.start,
            IDENTITY_STEP_KEY: self.step,
            IDENTITY_HIGH_WATER_MARK_KEY: high_water_mark,
            IDENTITY_ALLOW_EXPLICIT_INSERT_KEY: self.allow_explicit_insert,
        }

    @classmethod
    def from_metadata(cls, metadata: dict[str, Any]) -> IdentitySpec | None:
        """
        Decode an identity spec from column metadata.

        Returns:
            IdentitySpec | None: None when the column carries no identity configuration.

        Raises:
            SchemaError: If only part of the identity keys are present or values are malformed.
        """
        has_start = IDENTITY_START_KEY in metadata
        has_step = IDENTITY_STEP_KEY in metadata
        if not has_start and not has_step:
            return None
        if not (has_start and has_step):
            raise SchemaError("identity metadata must carry both start and step")
        allow = metadata.get(IDENTITY_ALLOW_EXPLICIT_INSERT_KEY, True)
        mode = GenerationMode.BY_DEFAULT if bool(allow) else GenerationMode.ALWAYS
        try:
            return cls(
                generation_mode=mode,
                start=int(metadata[IDENTITY_START_KEY]),
                step=int(metadata[IDENTITY_STEP_KEY]),
            )
        except (TypeError, ValueError) as exc:
            raise SchemaError(f"malformed identity metadata: {exc}") from exc


def high_water_mark_from_metadata(metadata: dict[str, Any]) -> int | None:
    """Read the stored watermark, or None if the column has none."""
    value = metadata.get(IDENTITY_HIGH_WATER_MARK_KEY)
    return None if value is None else int(value)
