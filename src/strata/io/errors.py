"""
Custom exceptions for the strata.io module.

Purpose
- Provide IO-layer specific error types that map cleanly to responsibilities in strata.io.
- Keep strata.core as the source of truth for schema/grammar/overflow/versioning errors
  (see strata.core.errors).

Source of truth and boundaries
- strata.core.errors.IdentityOverflowError is raised by sequence arithmetic and propagates
  through strata.io unchanged.
- strata.io raises Io* errors for filesystem/writer/log concerns and the SYNC IDENTITY
  command failures:
  - IoConfigError: invalid or unsupported configuration.
  - IoSchemaError: DataFrame failed validation against a table schema.
  - IdentityInsertError: explicit value supplied for a GENERATED ALWAYS column.
  - IoWriteError: atomic write path failed (tmp write/fsync/rename).
  - IoLogError: transaction log entry missing, corrupt, or inconsistent.
  - CommitConflictError: another writer committed the version this commit was based on.
  - TableNotFoundError / TableExistsError: catalog lookups.
  - UnsupportedTableError: table format carries no identity metadata.
  - NotIdentityColumnError: column has no identity specification.

Notes
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations


class IoError(Exception):
    """
    Base class for IO-related errors in strata.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from strata.core errors.
    """


class IoConfigError(IoError):
    """
    Raised when IO configuration is invalid or unsupported.

    Examples:
        - Unsupported compression codec
        - Non-positive row group size
    """


class IoSchemaError(IoError):
    """
    Raised when a DataFrame fails schema validation against a table schema.

    Notes:
        Scalar columns (i64, f64, str, bool) may be safely cast prior to raising.
    """


class IdentityInsertError(IoSchemaError):
    """Raised when rows carry explicit values for a GENERATED ALWAYS identity column."""


class IoWriteError(IoError):
    """
    Raised when a write operation fails to complete atomically.

    Notes:
        The write path is tmp parquet → fsync → os.replace(tmp, final). Failures at any step
        surface as IoWriteError (with best-effort cleanup of tmp files).
    """


class IoLogError(IoError):
    """
    Raised when a transaction log entry is missing, corrupt, or inconsistent.
    """


class CommitConflictError(IoError):
    """
    Raised when a commit loses the race for its target version.

    Notes:
        Nothing from the losing commit is visible. Callers retry from a fresh snapshot; strata
        never retries on their behalf because the work done against the stale snapshot (e.g. a
        column scan) may no longer hold.
    """

    def __init__(self, table: str, version: int) -> None:
        super().__init__(
            f"concurrent commit to table {table!r}: version {version} already exists; "
            "re-read the table and retry"
        )
        self.table = table
        self.version = version


class TableNotFoundError(IoError):
    """Raised when a table name does not resolve to a directory under the root."""


class TableExistsError(IoError):
    """Raised when creating a table whose directory already exists."""


class UnsupportedTableError(IoError):
    """Raised when an identity operation targets a table format without identity metadata."""


class NotIdentityColumnError(IoError):
    """Raised when SYNC IDENTITY targets a missing column or one without an identity spec."""
