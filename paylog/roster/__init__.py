"""Mini README: Roster import for PayLog.

Parsers for delimited text and spreadsheets register with ``REGISTRY`` when
this package is imported; ``RosterReconciler`` turns a parsed upload into the
insert-new/delete-absent diff against stored members.
"""

from . import parsers  # noqa: F401  # ensure built-in parsers register on import
from .base import RawRosterRow, RosterParser
from .parsers import DelimitedTextRosterParser, SpreadsheetRosterParser
from .reconciler import (
    ImportSummary,
    RosterEntry,
    RosterReconciler,
    parse_roster,
    validate_and_normalize,
)
from .registry import REGISTRY, RosterParserRegistry, kind_from_filename

__all__ = [
    "DelimitedTextRosterParser",
    "ImportSummary",
    "REGISTRY",
    "RawRosterRow",
    "RosterEntry",
    "RosterParser",
    "RosterParserRegistry",
    "RosterReconciler",
    "SpreadsheetRosterParser",
    "kind_from_filename",
    "parse_roster",
    "validate_and_normalize",
]
