"""
Structured-content classification for streamed answers.

The pipeline is leaf-first: math transcription, table scanning, single-line
classification, and whole-buffer block assembly.
"""

from .blocks import (
    BlockKind,
    ChineseHeading,
    ChineseSubheading,
    ContentBlock,
    Heading,
    ListItem,
    MathDisplay,
    MathInline,
    PlainText,
    Table,
    TableModel,
)
from .block_assembler import classify_text
from .line_classifier import classify_line, find_math_runs, looks_like_math
from .math_transcriber import to_canonical
from .table_scanner import is_separator_row, parse_table

__all__ = [
    'BlockKind', 'ChineseHeading', 'ChineseSubheading', 'ContentBlock',
    'Heading', 'ListItem', 'MathDisplay', 'MathInline', 'PlainText',
    'Table', 'TableModel',
    'classify_text', 'classify_line', 'find_math_runs', 'looks_like_math',
    'to_canonical', 'is_separator_row', 'parse_table',
]
