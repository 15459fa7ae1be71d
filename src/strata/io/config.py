"""
Configuration for the strata.io module.

Defines IoSettings, a frozen dataclass carrying runtime configuration for IO behavior.
Defaults are sourced from strata.core.constants (the single source of truth) and align with
a local file-based layout.

Source of truth
- strata.core.constants.ROW_GROUP_SIZE, COMPRESSION

Import DAG discipline
- Depends only on stdlib and strata.core.constants.

Notes
- Precedence when loading: environment (STRATA_IO_*) > TOML > defaults.
- Compression applies to Parquet writes via pyarrow in strata.io.write.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

from strata.core.constants import COMPRESSION as CORE_COMPRESSION
from strata.core.constants import ROW_GROUP_SIZE as CORE_ROW_GROUP_SIZE

from .errors import IoConfigError

logger = logging.getLogger(__name__)

Compression = Literal["zstd", "lz4", "snappy"]

_COMPRESSIONS = ("zstd", "lz4", "snappy")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class IoSettings:
    """
    Runtime settings for the strata.io layer.

    Attributes:
        root_dir (str): Root under which tables are stored ("<root>/tables/<name>").
        row_group_size (int): Parquet row group size for data parts.
        compression (Compression): Parquet codec ("zstd" | "lz4" | "snappy").
        strict_schema (bool): Reject frames with columns outside the table schema.
        fsync (bool): fsync data parts and log entries before publishing them.
        log_level (str): Level applied by the CLI to the "strata" loggers.

    Raises:
        IoConfigError: If row_group_size < 1, compression or log_level is unknown.

    Examples:
        >>> from strata.io import IoSettings
        >>> IoSettings(root_dir="out")  # doctest: +ELLIPSIS
        IoSettings(...)
    """

    root_dir: str = "out"
    row_group_size: int = CORE_ROW_GROUP_SIZE  # 128k
    compression: Compression = CORE_COMPRESSION  # type: ignore[assignment]
    strict_schema: bool = True
    fsync: bool = True
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.row_group_size < 1:
            raise IoConfigError(f"row_group_size must be >= 1, got {self.row_group_size}")
        if self.compression not in _COMPRESSIONS:
            raise IoConfigError(f"unsupported compression {self.compression!r}")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise IoConfigError(f"unknown log_level {self.log_level!r}")

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: IoSettings, cfg: dict[str, Any] | None) -> IoSettings:
        """Apply a loose config mapping onto IoSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        def _bool(v: Any) -> bool:
            if isinstance(v, bool):
                return v
            if isinstance(v, (int, float)):
                return bool(v)
            if isinstance(v, str):
                return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
            return False

        if "root_dir" in cfg and isinstance(cfg["root_dir"], str):
            s = replace(s, root_dir=cfg["root_dir"])

        if "row_group_size" in cfg:
            try:
                s = replace(s, row_group_size=int(cfg["row_group_size"]))
            except (TypeError, ValueError):
                logger.warning("ignoring non-integer row_group_size %r", cfg["row_group_size"])

        if "compression" in cfg and isinstance(cfg["compression"], str):
            comp = cfg["compression"].strip().lower()
            if comp in _COMPRESSIONS:
                s = replace(s, compression=comp)  # type: ignore[arg-type]
            else:
                logger.warning("ignoring unsupported compression %r", comp)

        if "strict_schema" in cfg:
            s = replace(s, strict_schema=_bool(cfg["strict_schema"]))

        if "fsync" in cfg:
            s = replace(s, fsync=_bool(cfg["fsync"]))

        if "log_level" in cfg and isinstance(cfg["log_level"], str):
            level = cfg["log_level"].strip().upper()
            if level in _LOG_LEVELS:
                s = replace(s, log_level=level)
            else:
                logger.warning("ignoring unknown log_level %r", level)

        return s

    @classmethod
    def from_env(cls, base: IoSettings | None = None, prefix: str = "STRATA_IO_") -> IoSettings:
        """
        Build IoSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - STRATA_IO_ROOT_DIR
            - STRATA_IO_ROW_GROUP_SIZE
            - STRATA_IO_COMPRESSION ("zstd" | "lz4" | "snappy")
            - STRATA_IO_STRICT_SCHEMA (1/0/true/false/yes/no/on/off)
            - STRATA_IO_FSYNC (1/0/true/false/yes/no/on/off)
            - STRATA_IO_LOG_LEVEL
        """
        s = base or cls()

        mapping: dict[str, Any] = {}
        for key in ("root_dir", "row_group_size", "compression", "strict_schema", "fsync", "log_level"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v

        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> IoSettings:
        """
        Build IoSettings from a TOML file.

        Search order when `path` is None:
            1) ./strata.toml (with either top-level [io] or direct keys)
            2) ./pyproject.toml under [tool.strata.io]

        Returns defaults if no file is present.

        Raises:
            IoConfigError: If an explicitly given file cannot be parsed.
        """
        s = cls()

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "strata.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            try:
                with p.open("rb") as fh:
                    data = tomllib.load(fh)
            except tomllib.TOMLDecodeError as exc:
                if path is not None:
                    raise IoConfigError(f"failed to parse {p}: {exc}") from exc
                logger.warning("skipping unparseable config file %s: %s", p, exc)
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("strata", {}).get("io", {}) if isinstance(tool, dict) else None
            elif isinstance(data.get("io"), dict):
                cfg = data["io"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> IoSettings:
        """
        Load IoSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (strata.toml, pyproject.toml).
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
