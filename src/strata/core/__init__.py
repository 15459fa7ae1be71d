"""
Core package for strata contracts (identity specs, sequence arithmetic, schemas, versioning).

## Contracts (single source of truth)
- Identity: GenerationMode, IdentitySpec, and the column metadata keys that persist them.
- Sequence: overflow-checked arithmetic over S(k) = start + k * step and watermark reconciliation.
- Schema: ColumnSchema / TableSchema models with copy-on-write updates.
- Errors/Versioning/Constants: typed exceptions, FORMAT_V, int64 bounds and storage defaults.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network IO.
- strata.io builds on these contracts to persist tables and run SYNC IDENTITY.

## Examples
```python
from strata.core import IdentitySpec, nearest_term, reconcile_high_water_mark

spec = IdentitySpec(start=100, step=2)
nearest_term(spec, 101)  # 102
reconcile_high_water_mark(spec, 99)  # 98: every value precedes start, generation restarts at 100
```
"""

from __future__ import annotations

from .errors import GrammarError, IdentityOverflowError, SchemaError, VersionMismatch
from .identity import GenerationMode, IdentitySpec
from .schema import ColumnSchema, TableSchema
from .sequence import nearest_term, reconcile_high_water_mark

__all__ = [
    "GenerationMode",
    "IdentitySpec",
    "ColumnSchema",
    "TableSchema",
    "nearest_term",
    "reconcile_high_water_mark",
    "GrammarError",
    "IdentityOverflowError",
    "SchemaError",
    "VersionMismatch",
]
