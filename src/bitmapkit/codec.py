"""
Bit-packing codec between grids and hex byte text.

Each row is packed LSB-first: byte j of a row holds pixels 8j..8j+7, with
pixel 8j+k in bit k. Bits beyond the row width in the final byte are zero.
This is the layout produced by reversing the row, front-padding it to a
whole number of bytes, reading the bytes MSB-first and emitting them in
reverse order, which is how display controllers expect column data.
"""

import math
import re
from typing import List, Sequence

from .grid import Grid


class InvalidImportFormat(ValueError):
    """Raised when import text cannot be read as hex byte values."""


_HEX_TOKEN = re.compile(r'^(?:0x)?([0-9a-f]{1,2})$', re.IGNORECASE)
_WHITESPACE = re.compile(r'\s+')


def _row_to_bytes(row: Sequence[bool]) -> List[int]:
    """Pack one row of cells into bytes."""
    bits = [1 if cell else 0 for cell in row][::-1]

    # Pad at the most-significant end of the reversed row
    padding = (-len(bits)) % 8
    bits = [0] * padding + bits

    values = []
    for i in range(0, len(bits), 8):
        chunk = bits[i:i + 8]
        values.append(int(''.join(str(bit) for bit in chunk), 2))

    return values[::-1]


def encode(grid: Grid) -> List[int]:
    """
    Encode a grid into packed byte values.

    Args:
        grid: Grid to encode

    Returns:
        Byte values (0-255), ceil(width / 8) per row, top row first
    """
    values: List[int] = []
    for row in grid.rows():
        values.extend(_row_to_bytes(row))
    return values


def bytes_per_row(width: int) -> int:
    """Number of bytes a row of the given width packs into."""
    return (width + 7) // 8


def decode(values: Sequence[int], width: int, height: int) -> List[bool]:
    """
    Decode packed byte values into row-major cells.

    The bytes-per-row count is inferred from the data as
    ceil(len(values) / height). Byte counts that do not divide evenly are
    tolerated: short rows are padded with paper cells, surplus rows are
    dropped and missing rows are blank.

    Args:
        values: Byte values (0-255)
        width: Target grid width
        height: Target grid height

    Returns:
        Exactly width * height cells
    """
    values = list(values)
    per_row = max(1, math.ceil(len(values) / height)) if values else 1

    cells: List[bool] = []
    for y in range(height):
        group = values[y * per_row:(y + 1) * per_row]

        bits: List[bool] = []
        for value in group:
            # Reversing the MSB-first string yields the pixels LSB-first
            bits.extend(bit == '1' for bit in format(value, '08b')[::-1])

        row = bits[:width]
        row.extend([False] * (width - len(row)))
        cells.extend(row)

    return cells


def format_hex(values: Sequence[int], width: int, height: int) -> str:
    """
    Format byte values as export text.

    Bytes are written as lowercase 0xNN literals separated by commas, with one
    line per grid row. Lines end with a comma except the last, so the whole
    text can be pasted into a C array initializer.
    """
    per_row = bytes_per_row(width)
    lines = []
    for y in range(height):
        group = values[y * per_row:(y + 1) * per_row]
        lines.append(','.join(f"0x{value:02x}" for value in group))
    return ',\n'.join(lines)


def parse_hex(text: str) -> List[int]:
    """
    Parse import text into byte values.

    Tokens are comma separated, may carry a 0x prefix and are case
    insensitive. Whitespace anywhere is ignored, as are empty tokens left by
    trailing commas.

    Raises:
        InvalidImportFormat: If the text holds no tokens or a token is not a
            hex byte
    """
    cleaned = _WHITESPACE.sub('', text or '')
    tokens = [token for token in cleaned.split(',') if token]

    if not tokens:
        raise InvalidImportFormat("Import text contains no hex values")

    values = []
    for position, token in enumerate(tokens):
        match = _HEX_TOKEN.match(token)
        if not match:
            raise InvalidImportFormat(f"Invalid hex byte '{token}' at position {position}")
        values.append(int(match.group(1), 16))

    return values


def export_text(grid: Grid) -> str:
    """Encode a grid straight to export text."""
    return format_hex(encode(grid), grid.width, grid.height)


def import_text(text: str, width: int, height: int) -> List[bool]:
    """Parse and decode import text into cells of the given dimensions."""
    return decode(parse_hex(text), width, height)
