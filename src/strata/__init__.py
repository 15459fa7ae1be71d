"""
strata: versioned Parquet tables with identity columns.

## Layers
- strata.core: zero-IO contracts (identity specifications, sequence arithmetic, schema models,
  errors, constants, format versioning).
- strata.io: Polars/Arrow storage: transaction log, writer/deleter/reader, the identity
  reconciler (SYNC IDENTITY), command surface, and settings.

## Import DAG discipline
- strata.core imports only stdlib and pydantic.
- strata.io imports strata.core, polars, and pyarrow.
- strata.cli sits on top of strata.io.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
