"""Table reader for CSV files and Excel workbooks with header normalization."""

import csv
import io
import logging
import re
import zipfile
from pathlib import Path

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException

from recon import ConfigurationError, PassengerRecord, Table

log = logging.getLogger(__name__)

# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')

REQUIRED_COLUMNS = ('name', 'ticket')

# Candidate delimiters, in order of preference on a tie
DELIMITERS = ('\t', ';', ',')

WORKBOOK_SUFFIXES = ('.xlsx', '.xlsm', '.xls')


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Args:
        path: Path to the CSV file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def detect_delimiter(header_line: str) -> str:
    """Guess the delimiter from the header line.

    The header carries no quoted free text, so the most frequent candidate
    wins. Falls back to a comma when none of the candidates occurs.
    """
    counts = {d: header_line.count(d) for d in DELIMITERS}
    best = max(DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] > 0 else ','


def normalize_whitespace(value: str) -> str:
    """Normalize whitespace in a string value.

    Collapses any sequence of whitespace (including Unicode whitespace)
    into a single space and strips leading/trailing whitespace.

    Args:
        value: Raw string value from CSV.

    Returns:
        Normalized string.
    """
    return _WHITESPACE_RE.sub(' ', value).strip()


def normalize_header(value: str) -> str:
    """Normalize a column name: whitespace collapsed, lower-cased."""
    return normalize_whitespace(value).lower()


def _read_text(path: Path) -> str:
    try:
        encoding = detect_encoding(path)
        with open(path, 'r', encoding=encoding, newline='') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Datei {path} ist nicht lesbar: {exc}") from exc
    # Strip BOM if present
    return content.lstrip('\ufeff')


def _check_columns(path: Path, columns: list[str], required_columns: tuple[str, ...]) -> None:
    missing = set(required_columns) - set(columns)
    if missing:
        raise ConfigurationError(
            f"Fehlende Spalten in {path}: {', '.join(sorted(missing))}"
        )


def _to_record(row_num: int, fields: dict[str, str]) -> PassengerRecord:
    return PassengerRecord(
        row_num=row_num,
        name=fields.get('name', ''),
        ticket=fields.get('ticket', ''),
        fields=fields,
    )


def _read_delimited(path: Path, required_columns: tuple[str, ...]) -> Table:
    content = _read_text(path)

    header_line = content.split('\n', 1)[0]
    reader = csv.DictReader(io.StringIO(content), delimiter=detect_delimiter(header_line))

    if reader.fieldnames is None:
        raise ConfigurationError(f"Datei {path} ist leer oder hat keine Header-Zeile.")
    reader.fieldnames = [normalize_header(c) for c in reader.fieldnames]
    _check_columns(path, reader.fieldnames, required_columns)

    records = Table(columns=reader.fieldnames)
    for row in reader:
        # line_num is the last physical line of the row (quoted fields may span lines)
        row_num = reader.line_num
        if None in row or None in row.values():
            log.warning(
                "Zeile %d in %s hat eine abweichende Spaltenanzahl", row_num, path,
            )
        fields = {k: (v if v is not None else '')
                  for k, v in row.items() if k is not None}
        records.append(_to_record(row_num, fields))
    return records


def _cell_to_str(value) -> str:
    """Render a workbook cell the way it would appear in a CSV export."""
    if value is None:
        return ''
    # xlrd returns every number as float
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _workbook_rows(path: Path) -> list[tuple]:
    """All rows of the first sheet of an .xls or .xlsx workbook."""
    try:
        if path.suffix.lower() == '.xls':
            book = xlrd.open_workbook(str(path))
            sheet = book.sheet_by_index(0)
            return [tuple(sheet.row_values(i)) for i in range(sheet.nrows)]

        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
        try:
            return list(wb.worksheets[0].iter_rows(values_only=True))
        finally:
            wb.close()
    except (OSError, ValueError, KeyError, zipfile.BadZipFile,
            InvalidFileException, xlrd.XLRDError) as exc:
        raise ConfigurationError(f"Datei {path} ist nicht lesbar: {exc}") from exc


def _read_workbook(path: Path, required_columns: tuple[str, ...]) -> Table:
    rows = _workbook_rows(path)
    if not rows:
        raise ConfigurationError(f"Datei {path} ist leer oder hat keine Header-Zeile.")

    header = [normalize_header(_cell_to_str(c)) for c in rows[0]]
    # Trailing cells without a header are formatting leftovers
    while header and not header[-1]:
        header.pop()
    _check_columns(path, header, required_columns)

    records = Table(columns=header)
    for row_num, row in enumerate(rows[1:], start=2):
        values = [_cell_to_str(c) for c in row]
        if not any(values):
            continue
        values += [''] * (len(header) - len(values))
        fields = {col: value for col, value in zip(header, values) if col}
        records.append(_to_record(row_num, fields))
    return records


def read_passengers(
    path: str | Path,
    required_columns: tuple[str, ...] = REQUIRED_COLUMNS,
) -> Table:
    """Read passenger records from a CSV file or an Excel workbook.

    Delimited text: handles UTF-16LE (with BOM) and UTF-8 encoded files
    automatically and detects tab, semicolon or comma delimiters.
    Workbooks (.xlsx via openpyxl, .xls via xlrd): the first sheet is read,
    its first row is the header. Column names are lower-cased; cell values
    are kept as stored.

    Args:
        path: Path to the input file.
        required_columns: Columns that must be present (after normalization).

    Returns:
        Table of PassengerRecord objects in file order; ``columns`` holds
        the normalized header, even when there are no data rows.

    Raises:
        ConfigurationError: If the file is missing, unreadable, empty or
            lacks required columns.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Datei {path} nicht gefunden.")

    if path.suffix.lower() in WORKBOOK_SUFFIXES:
        records = _read_workbook(path, required_columns)
    else:
        records = _read_delimited(path, required_columns)

    log.info("%d Passagiere gelesen aus %s", len(records), path)
    return records
