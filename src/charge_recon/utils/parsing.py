"""Parsing utilities for line-item tables."""

import csv
import io
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path

# OLE2 compound document header, used by legacy .xls workbooks
XLS_MAGIC = b"\xd0\xcf\x11\xe0"


def parse_date(date_str: str) -> date | None:
    """
    Parse a date string to a date object.

    Supported formats:
    - DD/MM/YY (05/03/24)
    - DD/MM/YYYY (05/03/2024)
    - DD-MM-YYYY (05-03-2024)
    - YYYY-MM-DD (2024-03-05)
    - DD MMM YYYY (5 Mar 2024)

    Args:
        date_str: Date string to parse

    Returns:
        date object if successful, None for blank or unparseable input
    """
    date_str = date_str.strip().strip('"').strip()

    if not date_str:
        return None

    formats = [
        "%d/%m/%Y",
        "%d/%m/%y",
        "%d-%m-%Y",
        "%Y-%m-%d",
        "%d %b %Y",
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


def parse_amount(amount_str: str) -> Decimal | None:
    """
    Parse an amount string to Decimal.

    Handles currency symbols, thousands separators and negatives written
    either as -123 or (123).

    Args:
        amount_str: Amount string to parse

    Returns:
        Decimal if successful, None otherwise
    """
    amount_str = amount_str.strip().strip('"').strip()
    if not amount_str:
        return None

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    amount_str = amount_str.replace(",", "")
    if "-" in amount_str:
        is_negative = True
    # Drop currency symbols and codes
    amount_str = re.sub(r"[^\d.]", "", amount_str)
    if not amount_str:
        return None

    try:
        value = Decimal(amount_str)
    except InvalidOperation:
        return None
    return -value if is_negative else value


def read_table(filepath: Path) -> str:
    """
    Read a line-item table as CSV text.

    Legacy Excel workbooks (.xls) are converted to CSV from their first
    sheet; anything else is read as text.

    Args:
        filepath: Path to the file

    Returns:
        CSV content as string

    Raises:
        ValueError: If the file is missing, undecodable or an unsupported
            workbook format
    """
    if not filepath.exists():
        raise ValueError(f"File not found: {filepath}")

    if filepath.suffix.lower() == ".xlsx":
        raise ValueError(f"{filepath.name}: .xlsx is not supported, export as .xls or CSV")

    with open(filepath, "rb") as f:
        is_xls = f.read(4) == XLS_MAGIC

    if is_xls or filepath.suffix.lower() == ".xls":
        return _read_xls(filepath)
    return _read_text(filepath)


def _read_text(filepath: Path) -> str:
    """Read a text file, trying common encodings in turn."""
    for encoding in ("utf-8-sig", "cp1255", "latin-1"):
        try:
            return filepath.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue

    raise ValueError(f"Could not decode file {filepath} with any known encoding")


def _read_xls(filepath: Path) -> str:
    """Convert the first sheet of an .xls workbook to CSV text."""
    import xlrd  # type: ignore[import-untyped]

    try:
        wb = xlrd.open_workbook(str(filepath))
    except Exception as e:
        raise ValueError(f"Could not read Excel file {filepath}: {e}") from e

    sheet = wb.sheet_by_index(0)
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    for row in range(sheet.nrows):
        values = []
        for cell in sheet.row(row):
            if cell.ctype == xlrd.XL_CELL_DATE:
                values.append(
                    xlrd.xldate_as_datetime(cell.value, wb.datemode).date().isoformat()
                )
            elif cell.ctype == xlrd.XL_CELL_NUMBER and float(cell.value).is_integer():
                values.append(str(int(cell.value)))
            else:
                values.append(str(cell.value))
        writer.writerow(values)
    return out.getvalue()
