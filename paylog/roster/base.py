"""Mini README: Shared contract for roster file parsers.

Structure:
    * RawRosterRow - candidate member exactly as read from the file.
    * RosterParser - abstract interface implemented per file encoding.
    * normalise_header / canonical_field - header matching helpers.

Parsers only decide which cells belong to which field. They drop rows that
lack a non-blank id, first name or last name and leave every other check to
``validate_and_normalize``.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

REQUIRED_FIELDS = ("id", "first_name", "last_name")

FIELD_ALIASES: Dict[str, str] = {
    "id": "id",
    "member_id": "id",
    "first_name": "first_name",
    "firstname": "first_name",
    "last_name": "last_name",
    "lastname": "last_name",
    "surname": "last_name",
}

_SEPARATORS = re.compile(r"[\s\-]+")


def normalise_header(value: object) -> str:
    """Lower-case a header cell and collapse whitespace/hyphens to ``_``."""

    return _SEPARATORS.sub("_", str(value if value is not None else "").strip().lower())


def canonical_field(header: object) -> Optional[str]:
    return FIELD_ALIASES.get(normalise_header(header))


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(slots=True, frozen=True)
class RawRosterRow:
    """Unvalidated roster row; values keep the types the file produced."""

    id: object
    first_name: object
    last_name: object


class RosterParser(ABC):
    """Base interface for turning uploaded bytes into candidate rows."""

    file_kind: str = "generic"

    @abstractmethod
    def parse(self, data: bytes) -> List[RawRosterRow]:
        """Return every candidate row carrying all three required fields."""

    @staticmethod
    def rows_from_table(table: Iterable[Sequence[object]]) -> List[RawRosterRow]:
        """Map a header-first table onto ``RawRosterRow`` values."""

        iterator = iter(table)
        header = next(iterator, None)
        if header is None:
            return []

        positions: Dict[str, int] = {}
        for index, cell in enumerate(header):
            field_name = canonical_field(cell)
            if field_name and field_name not in positions:
                positions[field_name] = index
        missing = [name for name in REQUIRED_FIELDS if name not in positions]
        if missing:
            LOGGER.info("Roster header lacks columns: %s", ", ".join(missing))
            return []

        rows: List[RawRosterRow] = []
        dropped = 0
        for record in iterator:
            values = [
                record[positions[name]] if positions[name] < len(record) else None
                for name in REQUIRED_FIELDS
            ]
            if any(_is_blank(value) for value in values):
                dropped += 1
                continue
            rows.append(RawRosterRow(*values))
        if dropped:
            LOGGER.debug("Dropped %s roster rows with missing fields", dropped)
        return rows
