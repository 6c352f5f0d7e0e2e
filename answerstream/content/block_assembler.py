"""
Assembly of the full accumulated answer into an ordered block list.

This is called again after every delta, always with the *whole* buffer.
It keeps no state between calls, so repeated classification of a growing
buffer is safe: the same text always yields the same blocks, and lines
that did not change keep their blocks.

Scanner states:

    SCANNING ──(line with 2+ pipes)──▶ IN_TABLE
       ▲                                  │
       └──(non-table line / end of input)─┘
              parse_table() → Table, or the buffered lines one by one

Learning Points:
- A tiny explicit state machine is easier to audit than nested flags
- A rejected table degrades to ordinary lines: no text is ever dropped
"""

import logging
from enum import Enum
from typing import List, Optional

from .blocks import ContentBlock, Table
from .line_classifier import classify_line
from .table_scanner import is_table_line, is_table_start, parse_table

logger = logging.getLogger(__name__)


class _ScanState(Enum):
    SCANNING = "scanning"
    IN_TABLE = "in_table"


def _flush_table(buffered: List[str], language_hint: Optional[str]) -> List[ContentBlock]:
    table = parse_table(buffered)
    if table is not None:
        return [Table(table)]
    logger.debug("Table candidate of %d line(s) rejected, emitting lines individually", len(buffered))
    return [classify_line(line, language_hint) for line in buffered]


def classify_text(text: str, language_hint: Optional[str] = None) -> List[ContentBlock]:
    """Split accumulated text into content blocks.

    Args:
        text: The full answer received so far
        language_hint: "zh", "en", or None/"auto" for per-line detection

    Returns:
        List[ContentBlock]: Blocks in source order; blank lines produce none
    """
    blocks: List[ContentBlock] = []
    state = _ScanState.SCANNING
    buffered: List[str] = []

    for raw_line in text.splitlines():
        line = raw_line.strip()

        if state is _ScanState.IN_TABLE:
            if line and is_table_line(line):
                buffered.append(line)
                continue
            blocks.extend(_flush_table(buffered, language_hint))
            buffered = []
            state = _ScanState.SCANNING

        if not line:
            continue

        if is_table_start(line):
            state = _ScanState.IN_TABLE
            buffered = [line]
            continue

        blocks.append(classify_line(line, language_hint))

    if state is _ScanState.IN_TABLE:
        blocks.extend(_flush_table(buffered, language_hint))

    return blocks
