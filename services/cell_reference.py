"""
Cell reference utilities.

Column letters use bijective base-26 numbering: there is no zero digit,
so 1 → A, 26 → Z, 27 → AA, 52 → AZ, 53 → BA.
"""

import re
from typing import Tuple

CELL_REF_PATTERN = re.compile(r'^([A-Z]+)(\d+)$')
COLUMN_PATTERN = re.compile(r'^[A-Z]+$')


def column_letter(position: int) -> str:
    """
    Convert a 1-based column position to column letters.

    Args:
        position: Column position (1 = A)

    Returns:
        Column letters (e.g., "A", "Z", "AA")

    Raises:
        ValueError: If position is less than 1
    """
    if position < 1:
        raise ValueError(f"Column position must be positive: {position}")

    letters = ''
    while position > 0:
        position -= 1  # Shift to 0-based digit, there is no "zero" letter
        letters = chr(ord('A') + position % 26) + letters
        position //= 26
    return letters


def column_index(letters: str) -> int:
    """
    Convert column letters to a 1-based column position.

    Inverse of column_letter(). Lowercase letters are accepted.

    Raises:
        ValueError: If letters is empty or not purely alphabetic
    """
    letters = letters.upper()
    if not COLUMN_PATTERN.match(letters):
        raise ValueError(f"Invalid column letters: {letters!r}")

    position = 0
    for char in letters:
        position = position * 26 + (ord(char) - ord('A') + 1)
    return position


def cell_reference(column: int, row: int) -> str:
    """
    Build a cell reference from 1-based column and row numbers.

    Examples:
        (1, 1)  → A1
        (3, 12) → C12
    """
    if row < 1:
        raise ValueError(f"Row number must be positive: {row}")
    return f"{column_letter(column)}{row}"


def cell_to_coordinates(cell_ref: str) -> Tuple[int, int]:
    """
    Convert a cell reference to zero-based (row, col) coordinates.

    A leading "Sheet!" qualifier is ignored.

    Examples:
        A1      → (0, 0)
        B24     → (23, 1)
        AA100   → (99, 26)

    Raises:
        ValueError: If cell reference format is invalid
    """
    if '!' in cell_ref:
        cell_ref = cell_ref.split('!')[-1]

    match = CELL_REF_PATTERN.match(cell_ref.upper())
    if not match:
        raise ValueError(f"Invalid cell reference: {cell_ref}")

    col_letters, row_str = match.groups()
    row = int(row_str) - 1
    if row < 0:
        raise ValueError(f"Invalid cell reference: {cell_ref}")

    return (row, column_index(col_letters) - 1)


def coordinates_to_cell(row: int, col: int) -> str:
    """
    Convert zero-based coordinates to a cell reference.

    Raises:
        ValueError: If row or col are negative
    """
    if row < 0 or col < 0:
        raise ValueError(f"Row and column must be non-negative: row={row}, col={col}")
    return cell_reference(col + 1, row + 1)
