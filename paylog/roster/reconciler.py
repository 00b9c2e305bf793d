"""Mini README: Roster validation and reconciliation against stored members.

Structure:
    * RosterEntry - validated member row.
    * ImportSummary - counts reported after a committed import.
    * validate_and_normalize - filters raw rows down to valid entries.
    * parse_roster - parse bytes of a declared kind with the registry.
    * RosterReconciler - preview and commit of the insert/delete diff.

An import only adds members whose id is new and removes members missing from
the upload (their transactions go with them). Existing members keep their
names and balances. The whole diff is applied in one storage transaction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import delete, func, select

from ..errors import NoValidMembersError
from ..logging_utils import get_logger
from ..notifications import ChangeNotifier, NullNotifier, members_updated
from ..storage import MAX_MEMBER_ID, Database, LedgerTransaction, Member
from .base import RawRosterRow
from .registry import REGISTRY, RosterParserRegistry, kind_from_filename

LOGGER = get_logger(__name__)

_INTEGRAL_TEXT = re.compile(r"\d+(?:\.0*)?")


@dataclass(slots=True, frozen=True)
class RosterEntry:
    id: int
    first_name: str
    last_name: str


@dataclass(slots=True, frozen=True)
class ImportSummary:
    imported: int
    skipped: int
    removed: int

    def as_dict(self) -> Dict[str, int]:
        return {"imported": self.imported, "skipped": self.skipped, "removed": self.removed}


def _coerce_member_id(value: object) -> Optional[int]:
    """Return an id within the stored Integer range or ``None`` when the cell is unusable.

    Integral text such as ``"12.0"`` is accepted the same way a spreadsheet
    float ``12.0`` is.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        candidate = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        candidate = int(value)
    elif isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            return None
        candidate = int(value)
    else:
        text = str(value).strip()
        if not _INTEGRAL_TEXT.fullmatch(text):
            return None
        candidate = int(text.partition(".")[0])
    return candidate if 1 <= candidate <= MAX_MEMBER_ID else None


def _clean_name(value: object) -> str:
    return "" if value is None else str(value).strip()


def validate_and_normalize(raw_rows: Iterable[RawRosterRow]) -> List[RosterEntry]:
    """Keep rows with a positive integer id and both names present.

    Raises ``NoValidMembersError`` when nothing survives the filter.
    """

    entries: List[RosterEntry] = []
    rejected = 0
    for row in raw_rows:
        member_id = _coerce_member_id(row.id)
        first_name = _clean_name(row.first_name)
        last_name = _clean_name(row.last_name)
        if member_id is None or not first_name or not last_name:
            rejected += 1
            continue
        entries.append(RosterEntry(id=member_id, first_name=first_name, last_name=last_name))

    if rejected:
        LOGGER.info("Ignored %s invalid roster rows", rejected)
    if not entries:
        raise NoValidMembersError()
    return entries


def parse_roster(
    data: bytes, file_kind: str, registry: RosterParserRegistry = REGISTRY
) -> List[RawRosterRow]:
    """Parse ``data`` with the parser registered for ``file_kind``."""

    return registry.parse(data, file_kind)


class RosterReconciler:
    """Diff uploaded rosters against stored members and apply the result."""

    def __init__(
        self,
        database: Database,
        notifier: Optional[ChangeNotifier] = None,
        registry: RosterParserRegistry = REGISTRY,
    ) -> None:
        self._database = database
        self._notifier: ChangeNotifier = notifier if notifier is not None else NullNotifier()
        self._registry = registry

    def load_entries(self, data: bytes, filename: str) -> List[RosterEntry]:
        """Detect the file kind from ``filename``, parse and validate."""

        raw_rows = parse_roster(data, kind_from_filename(filename), self._registry)
        return validate_and_normalize(raw_rows)

    def preview_import(self, entries: List[RosterEntry]) -> int:
        """Return how many stored members a commit would delete."""

        uploaded_ids = {entry.id for entry in entries}
        with self._database.session_scope() as session:
            to_delete = session.execute(
                select(func.count()).select_from(Member).where(Member.id.not_in(uploaded_ids))
            ).scalar_one()
        LOGGER.debug("Import preview: %s member(s) would be removed", to_delete)
        return int(to_delete)

    def commit_import(self, entries: List[RosterEntry]) -> ImportSummary:
        """Insert new members and delete absent ones in one transaction."""

        if not entries:
            raise NoValidMembersError()
        uploaded_ids = {entry.id for entry in entries}

        with self._database.session_scope() as session:
            existing: Set[int] = set(
                session.execute(select(Member.id).where(Member.id.in_(uploaded_ids))).scalars()
            )
            imported = 0
            for entry in entries:
                if entry.id in existing:
                    continue
                session.add(
                    Member(
                        id=entry.id,
                        first_name=entry.first_name,
                        last_name=entry.last_name,
                        balance=Decimal("0.00"),
                    )
                )
                existing.add(entry.id)
                imported += 1
            session.flush()

            session.execute(
                delete(LedgerTransaction).where(LedgerTransaction.member_id.not_in(uploaded_ids)),
                execution_options={"synchronize_session": False},
            )
            removed = session.execute(
                delete(Member).where(Member.id.not_in(uploaded_ids)),
                execution_options={"synchronize_session": False},
            ).rowcount

        summary = ImportSummary(imported=imported, skipped=len(entries) - imported, removed=removed)
        LOGGER.info(
            "Roster import committed: imported=%s skipped=%s removed=%s",
            summary.imported,
            summary.skipped,
            summary.removed,
        )
        self._notifier.publish(members_updated())
        return summary

    def import_file(self, data: bytes, filename: str, *, dry_run: bool = False) -> Dict[str, int]:
        """Parse, validate and either preview or commit an uploaded roster."""

        entries = self.load_entries(data, filename)
        if dry_run:
            return {"toDelete": self.preview_import(entries)}
        return self.commit_import(entries).as_dict()


__all__ = [
    "ImportSummary",
    "RosterEntry",
    "RosterReconciler",
    "parse_roster",
    "validate_and_normalize",
]
