"""
Core exception types raised by command parsing, schema checks, identity arithmetic, and versioning.

Provides typed exceptions for core-domain failures:
- GrammarError for command text that does not parse.
- SchemaError for schema-level constraints (column definitions, identity configuration).
- IdentityOverflowError when sequence arithmetic leaves the signed 64-bit range.
- VersionMismatch for log entries written by an incompatible format version.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - IdentityOverflowError subclasses the builtin OverflowError so callers that already
      handle ArithmeticError keep working.

Examples:
    Catch an overflow from sequence arithmetic.

    >>> from strata.core.errors import IdentityOverflowError
    >>> try:
    ...     raise IdentityOverflowError("start + k * step exceeds int64")
    ... except OverflowError as e:
    ...     msg = str(e)
    >>> "int64" in msg
    True
"""

from __future__ import annotations

__all__ = [
    "SchemaError",
    "VersionMismatch",
    "GrammarError",
    "IdentityOverflowError",
]


class SchemaError(ValueError):
    """Schema-level validation failure (column definitions, identity configuration)."""


class VersionMismatch(RuntimeError):
    """Incompatible or unexpected format version encountered."""


class GrammarError(ValueError):
    """Command text failed to parse (unknown statement, missing keyword, bad identifier)."""


class IdentityOverflowError(OverflowError):
    """Identity sequence arithmetic overflowed the signed 64-bit range."""
