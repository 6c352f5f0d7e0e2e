"""
Pipe-table detection and parsing.

Tables in streamed answers are Markdown-ish but not reliably Markdown:
models drop the separator row, omit the outer pipes, or emit ragged rows.
``parse_table`` accepts all of those and returns None for anything that is
not really a table, so the caller can fall back to line-by-line output.
"""

import re
from typing import List, Optional, Sequence

from .blocks import TableModel

_SEPARATOR_CHARS = re.compile(r'^[-:]+$')


def count_pipes(line: str) -> int:
    return line.count('|')


def is_separator_row(line: str) -> bool:
    """True for header/body dividers such as ``|---|:---:|``."""
    remainder = re.sub(r'[|\s]', '', line)
    return bool(remainder) and '-' in remainder and bool(_SEPARATOR_CHARS.match(remainder))


def is_table_start(line: str) -> bool:
    """A line with two or more column separators may open a table."""
    return count_pipes(line) >= 2


def is_table_line(line: str) -> bool:
    """True while a buffered table run should keep growing."""
    if count_pipes(line) >= 2:
        return True
    return '|' in line and is_separator_row(line)


def split_row(line: str) -> List[str]:
    """Split a row on ``|``, dropping the empty cells outer pipes produce."""
    stripped = line.strip()
    cells = [cell.strip() for cell in stripped.split('|')]
    if stripped.startswith('|') and cells and cells[0] == '':
        cells = cells[1:]
    if stripped.endswith('|') and cells and cells[-1] == '':
        cells = cells[:-1]
    return cells


def _fit(cells: List[str], width: int) -> tuple:
    if len(cells) >= width:
        return tuple(cells[:width])
    return tuple(cells + [''] * (width - len(cells)))


def parse_table(lines: Sequence[str]) -> Optional[TableModel]:
    """Parse a run of table lines.

    The first separator row splits header from body. Without one, the
    first line is taken as the header (lenient mode).

    Args:
        lines: Consecutive candidate table lines

    Returns:
        TableModel, or None when the run is rejected (header narrower than
        two columns, or no data row)
    """
    rows = [line for line in lines if line.strip()]
    if not rows:
        return None

    separator_index = next((i for i, line in enumerate(rows) if is_separator_row(line)), None)

    if separator_index is None:
        header_line, body_lines = rows[0], rows[1:]
    elif separator_index == 0:
        # divider before any header: first real row becomes the header
        remaining = [line for line in rows[1:] if not is_separator_row(line)]
        if not remaining:
            return None
        header_line, body_lines = remaining[0], remaining[1:]
    else:
        header_line = rows[0]
        body_lines = rows[1:separator_index] + [
            line for line in rows[separator_index + 1:] if not is_separator_row(line)
        ]

    headers = split_row(header_line)
    if len(headers) < 2:
        return None

    width = len(headers)
    body = tuple(_fit(split_row(line), width) for line in body_lines)
    if not body:
        return None

    return TableModel(headers=tuple(headers), rows=body)
