"""Mini README: Concrete roster parsers for delimited text and spreadsheets.

Structure:
    * DelimitedTextRosterParser - comma separated text with a header row.
    * SpreadsheetRosterParser - first worksheet of an ``.xlsx`` workbook.

Both produce the same ``RawRosterRow`` shape via ``RosterParser.rows_from_table``
and register themselves with the module-level ``REGISTRY`` on import.
"""

from __future__ import annotations

import csv
import io
import zipfile
from typing import List

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import ValidationError
from ..logging_utils import get_logger
from .base import RawRosterRow, RosterParser
from .registry import REGISTRY

LOGGER = get_logger(__name__)


class DelimitedTextRosterParser(RosterParser):
    """Parse UTF-8 CSV uploads; blank lines are ignored."""

    file_kind = "csv"

    def parse(self, data: bytes) -> List[RawRosterRow]:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as error:
            raise ValidationError("Roster file is not valid UTF-8 text.") from error

        reader = csv.reader(io.StringIO(text, newline=""), skipinitialspace=True)
        table = (
            [cell.strip() for cell in record]
            for record in reader
            if any(cell.strip() for cell in record)
        )
        rows = self.rows_from_table(table)
        LOGGER.debug("Parsed %s candidate rows from delimited text", len(rows))
        return rows


class SpreadsheetRosterParser(RosterParser):
    """Parse the first worksheet of an Excel workbook."""

    file_kind = "xlsx"

    def parse(self, data: bytes) -> List[RawRosterRow]:
        try:
            workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as error:
            raise ValidationError("Roster spreadsheet could not be read.") from error

        try:
            if not workbook.worksheets:
                return []
            sheet = workbook.worksheets[0]
            table = (
                [cell.strip() if isinstance(cell, str) else cell for cell in record]
                for record in sheet.iter_rows(values_only=True)
            )
            rows = self.rows_from_table(table)
        finally:
            workbook.close()
        LOGGER.debug("Parsed %s candidate rows from spreadsheet", len(rows))
        return rows


REGISTRY.register(DelimitedTextRosterParser)
REGISTRY.register(SpreadsheetRosterParser)

__all__ = ["DelimitedTextRosterParser", "SpreadsheetRosterParser"]
