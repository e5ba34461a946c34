"""
Seat coordinate helpers shared by the booking flow and the warm-up run.

The inventory service addresses rows by integer while venues label them with
letters or numerals, so every outbound request goes through ``row_to_integer``.
"""

from typing import Iterator, Optional, Tuple

from .exceptions import InvalidRowEncodingError


def row_to_integer(row: Optional[str]) -> Optional[int]:
    """
    Convert a row label to the integer the inventory service expects.

    A single letter maps to its alphabet position (A=1 ... Z=26, case
    insensitive); a numeral string is parsed as-is. Anything else yields
    ``None``.
    """
    if row is None:
        return None

    label = str(row).strip().upper()
    if not label:
        return None

    if len(label) == 1 and "A" <= label <= "Z":
        return ord(label) - ord("A") + 1

    # Optional sign followed by ASCII digits only; int() would also take "1_0" or "١"
    digits = label[1:] if label[0] in "+-" else label
    if not (digits.isascii() and digits.isdigit()):
        return None
    return int(label)


def require_row_integer(row: Optional[str]) -> int:
    """Like ``row_to_integer`` but raises ``InvalidRowEncodingError``."""
    value = row_to_integer(row)
    if value is None:
        raise InvalidRowEncodingError(row)
    return value


def seat_key(row: str, column: int) -> str:
    """Build the ``row-column`` key used to attach passenger names. Rows are upper-cased."""
    return f"{str(row).strip().upper()}-{column}"


def iter_candidate_seats(rows: int, columns: int) -> Iterator[Tuple[int, int]]:
    """Yield every (row, column) of a rows x columns grid in row-major order."""
    for row in range(1, rows + 1):
        for column in range(1, columns + 1):
            yield row, column
