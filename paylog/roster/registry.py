"""Mini README: Registry mapping roster file kinds to parser classes.

Structure:
    * RosterParserRegistry - registration, lookup and dispatch by file kind.
    * kind_from_filename - derives the kind from an upload's suffix.

New encodings plug in by subclassing ``RosterParser`` and calling
``REGISTRY.register``.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Dict, Iterable, List, Type

from ..errors import UnsupportedFileError
from ..logging_utils import get_logger
from .base import RawRosterRow, RosterParser

LOGGER = get_logger(__name__)


class RosterParserRegistry:
    """Simple registry for mapping file kinds to parser classes."""

    def __init__(self) -> None:
        self._parsers: Dict[str, Type[RosterParser]] = {}

    def register(self, parser: Type[RosterParser]) -> None:
        """Register a parser class under its ``file_kind``."""

        identifier = parser.file_kind.lower()
        LOGGER.debug("Registering roster parser '%s'", identifier)
        self._parsers[identifier] = parser

    def available_kinds(self) -> Iterable[str]:
        return sorted(self._parsers.keys())

    def create(self, file_kind: str) -> RosterParser:
        """Instantiate the parser for ``file_kind``."""

        parser_cls = self._parsers.get((file_kind or "").lower())
        if not parser_cls:
            raise UnsupportedFileError()
        return parser_cls()

    def parse(self, data: bytes, file_kind: str) -> List[RawRosterRow]:
        return self.create(file_kind).parse(data)


def kind_from_filename(filename: str) -> str:
    """Return the lower-case suffix without the dot, e.g. ``"csv"``."""

    return PurePath(filename or "").suffix.lower().lstrip(".")


REGISTRY = RosterParserRegistry()
