"""
Content block types produced by the classifier.

Every block is a frozen dataclass so that a classification pass can be
compared with the previous one using plain ``==``. The renderer receives
the whole list on every update and replaces what it drew before.

Learning Points:
- frozen=True makes instances hashable and immutable
- A ``kind`` class attribute gives cheap dispatch without isinstance chains
- Tuples (not lists) keep nested table data immutable too
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class BlockKind(str, Enum):
    """Discriminator for the ContentBlock variants."""
    PLAIN_TEXT = "plain_text"
    HEADING = "heading"
    LIST_ITEM = "list_item"
    TABLE = "table"
    MATH_INLINE = "math_inline"
    MATH_DISPLAY = "math_display"
    CHINESE_HEADING = "chinese_heading"
    CHINESE_SUBHEADING = "chinese_subheading"


@dataclass(frozen=True)
class TableModel:
    """A parsed pipe table.

    ``rows`` are already padded or truncated to ``len(headers)``.
    """
    headers: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]

    @property
    def column_count(self) -> int:
        return len(self.headers)


@dataclass(frozen=True)
class MathInline:
    markup: str
    kind = BlockKind.MATH_INLINE


@dataclass(frozen=True)
class MathDisplay:
    markup: str
    kind = BlockKind.MATH_DISPLAY


@dataclass(frozen=True)
class PlainText:
    """A line of prose.

    ``math_spans`` holds canonical inline math for every ``$...$`` or
    ``\\(...\\)`` run embedded in the line; ``text`` keeps the line verbatim.
    """
    text: str
    math_spans: Tuple[MathInline, ...] = field(default=())
    kind = BlockKind.PLAIN_TEXT


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    kind = BlockKind.HEADING

    def __post_init__(self):
        if not 1 <= self.level <= 3:
            raise ValueError(f"Heading level must be 1-3, got {self.level}")


@dataclass(frozen=True)
class ListItem:
    ordered: bool
    index: Optional[int]
    text: str
    kind = BlockKind.LIST_ITEM


@dataclass(frozen=True)
class Table:
    table: TableModel
    kind = BlockKind.TABLE


@dataclass(frozen=True)
class ChineseHeading:
    text: str
    kind = BlockKind.CHINESE_HEADING


@dataclass(frozen=True)
class ChineseSubheading:
    text: str
    kind = BlockKind.CHINESE_SUBHEADING


ContentBlock = Union[
    PlainText,
    Heading,
    ListItem,
    Table,
    MathInline,
    MathDisplay,
    ChineseHeading,
    ChineseSubheading,
]
