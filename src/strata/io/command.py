"""
Command surface for identity maintenance.

Grammar (keywords case-insensitive, identifiers optionally `backtick-quoted`):

    sync_identity = "ALTER", "TABLE", ident, ( "ALTER" | "CHANGE" ), [ "COLUMN" ], ident,
                    "SYNC", "IDENTITY", [ ";" ] ;
    ident         = letter_or_underscore, { letter_or_digit_or_underscore }
                  | "`", { any_char_except_backtick }, "`" ;

parse_command() turns text into a SyncIdentityCommand; execute() parses and runs it through
strata.io.sync.sync_identity.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final, Literal

from strata.core.errors import GrammarError

from .config import IoSettings
from .sync import SyncResult, sync_identity

_IDENT: Final[str] = r"(?:`[^`]+`|[A-Za-z_][A-Za-z0-9_]*)"
_SYNC_IDENTITY_RE: Final[re.Pattern[str]] = re.compile(
    rf"""^\s*ALTER\s+TABLE\s+(?P<table>{_IDENT})
        \s+(?P<keyword>ALTER|CHANGE)
        \s+(?:COLUMN\s+)?(?P<column>{_IDENT})
        \s+SYNC\s+IDENTITY\s*;?\s*$""",
    re.IGNORECASE | re.VERBOSE,
)


@dataclass(slots=True, frozen=True)
class SyncIdentityCommand:
    """
    Parsed ALTER TABLE ... SYNC IDENTITY statement.

    Attributes:
        table (str): Table identifier (backticks removed).
        column (str): Column identifier (backticks removed).
        keyword (Literal["ALTER", "CHANGE"]): Which spelling was used; both behave the same.
    """

    table: str
    column: str
    keyword: Literal["ALTER", "CHANGE"]


def _unquote(ident: str) -> str:
    if ident.startswith("`") and ident.endswith("`"):
        return ident[1:-1]
    return ident


def parse_command(text: str) -> SyncIdentityCommand:
    """
    Parse an ALTER TABLE ... SYNC IDENTITY statement.

    Raises:
        GrammarError: If text is not a SYNC IDENTITY statement.

    Examples:
        >>> parse_command("alter table events change column id sync identity;")
        SyncIdentityCommand(table='events', column='id', keyword='CHANGE')
    """
    m = _SYNC_IDENTITY_RE.match(text or "")
    if m is None:
        raise GrammarError(
            "expected 'ALTER TABLE <table> ALTER|CHANGE [COLUMN] <column> SYNC IDENTITY', "
            f"got {text!r}"
        )
    keyword = m.group("keyword").upper()
    return SyncIdentityCommand(
        table=_unquote(m.group("table")),
        column=_unquote(m.group("column")),
        keyword="CHANGE" if keyword == "CHANGE" else "ALTER",
    )


def execute(settings: IoSettings, text: str) -> SyncResult:
    """
    Parse and run a SYNC IDENTITY statement.

    Raises:
        GrammarError: If the statement does not parse.
        (plus everything strata.io.sync.sync_identity raises)
    """
    cmd = parse_command(text)
    return sync_identity(settings, cmd.table, cmd.column)
