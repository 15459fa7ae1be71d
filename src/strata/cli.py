from __future__ import annotations

import argparse
import json
import logging
import sys

from strata.core.errors import GrammarError, IdentityOverflowError, SchemaError, VersionMismatch
from strata.core.sequence import next_value
from strata.io.command import execute
from strata.io.config import IoSettings
from strata.io.errors import IoError
from strata.io.table import Catalog

logger = logging.getLogger(__name__)

# Errors reported as "[ERROR] ..." with exit code 1 instead of a traceback.
_REPORTED_ERRORS = (IoError, GrammarError, SchemaError, IdentityOverflowError, VersionMismatch)


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--root", type=str, default=None, help="Root directory (overrides config).")
    p.add_argument("--config", type=str, default=None, help="TOML config path (strata.toml).")
    p.add_argument("--log-level", type=str, default=None, help="Logging level (e.g. INFO).")


def _settings(args: argparse.Namespace) -> IoSettings:
    """Resolve settings: CLI flags > env > TOML > defaults, then configure logging."""
    overrides: dict[str, str] = {}
    if args.root:
        overrides["root_dir"] = args.root
    if args.log_level:
        overrides["log_level"] = args.log_level
    settings = IoSettings._apply_mapping(IoSettings.load(args.config), overrides)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return settings


def _cmd_sql(argv: list[str]) -> int:
    p = argparse.ArgumentParser(
        prog="sql",
        description="Run an ALTER TABLE <table> ALTER|CHANGE [COLUMN] <column> SYNC IDENTITY statement.",
    )
    p.add_argument("statement", type=str, help="Statement text (quote it).")
    _add_common(p)
    args = p.parse_args(argv)
    settings = _settings(args)

    result = execute(settings, args.statement)
    if result.committed:
        print(
            f"[INFO] {result.table}.{result.column}: high-water-mark "
            f"{result.previous_high_water_mark} -> {result.high_water_mark} (version {result.version})"
        )
    else:
        print(
            f"[INFO] {result.table}.{result.column}: high-water-mark {result.high_water_mark} "
            f"unchanged (version {result.version})"
        )
    return 0


def _cmd_show_identity(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="show-identity", description="Show an identity column's state.")
    p.add_argument("table", type=str, help="Table name.")
    p.add_argument("column", type=str, help="Identity column name.")
    _add_common(p)
    args = p.parse_args(argv)
    settings = _settings(args)

    snapshot = Catalog(settings).table(args.table).snapshot()
    col = snapshot.identity_column(args.column)
    spec, hwm = col.identity_state()
    try:
        upcoming: int | None = next_value(spec, hwm)
    except IdentityOverflowError:
        upcoming = None  # sequence exhausted
    print(
        json.dumps(
            {
                "table": snapshot.table,
                "column": col.name,
                "version": snapshot.version,
                "generation_mode": spec.generation_mode.value,
                "start": spec.start,
                "step": spec.step,
                "high_water_mark": hwm,
                "next_value": upcoming,
            },
            indent=2,
        )
    )
    return 0


def _cmd_history(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="history", description="List a table's committed versions.")
    p.add_argument("table", type=str, help="Table name.")
    _add_common(p)
    args = p.parse_args(argv)
    settings = _settings(args)

    for snap in Catalog(settings).table(args.table).history():
        params = json.dumps(snap.operation_params, sort_keys=True)
        print(f"{snap.version}\t{snap.committed_at}\t{snap.operation}\t{params}")
    return 0


_COMMANDS = {
    "sql": _cmd_sql,
    "show-identity": _cmd_show_identity,
    "history": _cmd_history,
}


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="strata", description="strata table utilities CLI.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("sql", help="Run a SYNC IDENTITY statement.")
    sub.add_parser("show-identity", help="Show an identity column's watermark.")
    sub.add_parser("history", help="List committed versions.")
    return p


def run(argv: list[str]) -> int:
    """Dispatch a command line (without the program name) and return the exit code."""
    if not argv:
        build_argparser().print_help()
        return 0
    cmd, rest = argv[0], argv[1:]
    handler = _COMMANDS.get(cmd)
    if handler is None:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        return 2
    try:
        return handler(rest)
    except _REPORTED_ERRORS as exc:
        logger.debug("%s failed", cmd, exc_info=True)
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    raise SystemExit(run(argv))


if __name__ == "__main__":
    main()
