"""
strata core defaults and fixed-width integer bounds.

Defines the signed 64-bit range used by identity arithmetic, the column metadata keys that carry
identity configuration, and storage defaults consumed by strata.io. This module is zero-IO and
uses only the Python standard library.

Notes:
    - Identity values are stored as Arrow/Polars Int64; Python ints are unbounded, so every
      sequence computation is range-checked against INT64_MIN/INT64_MAX explicitly.
    - Metadata keys are persisted in the transaction log; renaming them is a format change.
"""

from __future__ import annotations

__all__ = [
    "INT64_MIN",
    "INT64_MAX",
    "IDENTITY_START_KEY",
    "IDENTITY_STEP_KEY",
    "IDENTITY_HIGH_WATER_MARK_KEY",
    "IDENTITY_ALLOW_EXPLICIT_INSERT_KEY",
    "IDENTITY_KEYS",
    "LOG_DIR_NAME",
    "DATA_DIR_NAME",
    "LOG_VERSION_WIDTH",
    "NATIVE_FORMAT",
    "SYNC_IDENTITY_COMMAND",
    "ROW_GROUP_SIZE",
    "COMPRESSION",
]

INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1

# Column-level metadata keys for identity configuration.
IDENTITY_START_KEY: str = "strata.identity.start"
IDENTITY_STEP_KEY: str = "strata.identity.step"
IDENTITY_HIGH_WATER_MARK_KEY: str = "strata.identity.highWaterMark"
IDENTITY_ALLOW_EXPLICIT_INSERT_KEY: str = "strata.identity.allowExplicitInsert"

IDENTITY_KEYS: tuple[str, ...] = (
    IDENTITY_START_KEY,
    IDENTITY_STEP_KEY,
    IDENTITY_HIGH_WATER_MARK_KEY,
    IDENTITY_ALLOW_EXPLICIT_INSERT_KEY,
)

# On-disk layout of a native table directory.
LOG_DIR_NAME: str = "_strata_log"
DATA_DIR_NAME: str = "data"
LOG_VERSION_WIDTH: int = 20

# Storage format name recorded in every snapshot.
NATIVE_FORMAT: str = "strata"

# Statement name used in identity maintenance errors.
SYNC_IDENTITY_COMMAND: str = "ALTER TABLE ALTER COLUMN SYNC IDENTITY"

# Target row group size for Parquet parts.
ROW_GROUP_SIZE: int = 128 * 1024

# Default compression codec for Parquet parts.
COMPRESSION: str = "zstd"
