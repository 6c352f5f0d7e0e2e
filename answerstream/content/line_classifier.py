"""
Single-line classification into content blocks.

The rules overlap (``1. x = 2`` is both a numbered item and an equation,
``## 概述`` is both a Markdown heading and a Chinese heading), so they are
kept as an ordered decision table and the first match wins:

    1. Chinese heading          → ChineseHeading
    2. Chinese subheading/list  → ChineseSubheading
    3. Markdown / colon heading → Heading
    4. Bullet or numbered item  → ListItem
    5. Math                     → MathInline / MathDisplay
    6. Anything else            → PlainText

Chinese rules only run for Chinese content: either the caller says so
with ``language_hint="zh"``, or the hint is automatic and the line itself
contains CJK characters. Deciding per line (rather than per document)
keeps earlier lines stable when later, differently-scripted text arrives.

Learning Points:
- Ordered list of (matcher, builder) pairs instead of an if/elif ladder
- functools.lru_cache on a pure function: safe because blocks are frozen
- The math heuristic is a reproducible rule list, not a language model
"""

import functools
import re
from typing import Callable, List, NamedTuple, Optional, Tuple

from .blocks import (
    ChineseHeading,
    ChineseSubheading,
    ContentBlock,
    Heading,
    ListItem,
    MathDisplay,
    MathInline,
    PlainText,
)
from .math_transcriber import to_canonical

# ============================================================================
# Language hints
# ============================================================================

HINT_AUTO = "auto"
HINT_ENGLISH = "en"
HINT_CHINESE = "zh"

_CJK = re.compile(r'[\u3400-\u9fff\uf900-\ufaff]')


def normalize_language_hint(language_hint: Optional[str]) -> str:
    """Map free-form hints ("zh-CN", "chinese", None) onto auto/en/zh."""
    if not language_hint:
        return HINT_AUTO
    hint = language_hint.strip().lower()
    if hint.startswith("zh") or hint in ("chinese", "cn"):
        return HINT_CHINESE
    if hint == HINT_AUTO:
        return HINT_AUTO
    return HINT_ENGLISH


def contains_cjk(text: str) -> bool:
    return bool(_CJK.search(text))


def _uses_chinese_rules(line: str, hint: str) -> bool:
    if hint == HINT_CHINESE:
        return True
    if hint == HINT_AUTO:
        return contains_cjk(line)
    return False


# ============================================================================
# Structural patterns
# ============================================================================

_CHINESE_HASH_HEADING = re.compile(r'^#+\s+(.+?)\s*#*$')
_CHINESE_COLON_HEADING = re.compile(r'^([\u3400-\u9fff\uf900-\ufaff]+)[\uff1a:]$')
_CHINESE_BULLET = re.compile(r'^[•·◦◆■◉○●]\s*(.+)$')
_CHINESE_NUMERAL_ITEM = re.compile(r'^[一二三四五六七八九十百]+、\s*.+$')
_CHINESE_NUMBERED_ITEM = re.compile(r'^\d+(?:、\s*|[.．]\s+).+$')

_MARKDOWN_HEADING = re.compile(r'^(#{1,3})\s+(.+?)\s*#*$')
_COLON_HEADING = re.compile(r'^([A-Z][^:.!?]*):$')
_HASH_LEVELS = {1: 1, 2: 1, 3: 2}
COLON_HEADING_LEVEL = 2

_BULLET_ITEM = re.compile(r'^[-*•]\s+(.+)$')
_NUMBERED_ITEM = re.compile(r'^(\d+)\.\s+(.+)$')


def _chinese_heading(line: str) -> Optional[ContentBlock]:
    match = _CHINESE_HASH_HEADING.match(line) or _CHINESE_COLON_HEADING.match(line)
    if match:
        return ChineseHeading(text=match.group(1))
    return None


def _chinese_subheading(line: str) -> Optional[ContentBlock]:
    bullet = _CHINESE_BULLET.match(line)
    if bullet:
        return ChineseSubheading(text=bullet.group(1))
    if _CHINESE_NUMERAL_ITEM.match(line) or _CHINESE_NUMBERED_ITEM.match(line):
        return ChineseSubheading(text=line)
    return None


def _heading(line: str) -> Optional[ContentBlock]:
    match = _MARKDOWN_HEADING.match(line)
    if match:
        return Heading(level=_HASH_LEVELS[len(match.group(1))], text=match.group(2))
    match = _COLON_HEADING.match(line)
    if match:
        return Heading(level=COLON_HEADING_LEVEL, text=match.group(1).strip())
    return None


def _list_item(line: str) -> Optional[ContentBlock]:
    match = _BULLET_ITEM.match(line)
    if match:
        return ListItem(ordered=False, index=None, text=match.group(1).strip())
    match = _NUMBERED_ITEM.match(line)
    if match:
        return ListItem(ordered=True, index=int(match.group(1)), text=match.group(2).strip())
    return None


# ============================================================================
# Math detection
# ============================================================================

class MathRun(NamedTuple):
    """A delimited math run found inside a line."""
    raw: str
    display: bool
    start: int
    end: int


_MATH_RUN = re.compile(
    r'\$\$(?P<dollar_display>.+?)\$\$'
    r'|\\\[(?P<bracket_display>.+?)\\\]'
    r'|\\\((?P<paren_inline>.+?)\\\)'
    r'|(?<![\\$\w])\$(?!\s)(?P<dollar_inline>[^$]+?)(?<!\s)\$(?![\d$])'
)

MAX_MATH_LENGTH = 100
MAX_PROSE_WORDS = 8

_BARE_INTEGER = re.compile(r'^\d+$')
_DATES = [
    re.compile(r'^\d{1,2}/\d{1,2}/\d{2,4}$'),
    re.compile(r'^\d{1,2}-\d{1,2}-\d{2,4}$'),
    re.compile(r'^\d{4}-\d{1,2}-\d{1,2}$'),
]
_NUMBERED_LIST = re.compile(r'^\d+\.\s+.+')
_PROSE_OPERATORS = re.compile(r'[=+\-*/^()]')

_ARITHMETIC_OPERATOR = re.compile(r'[+\-*/^×÷]')
_DIGIT_OPERATOR_DIGIT = re.compile(r'\d+\s*[+\-*/^×÷=]\s*\d+')
_MATH_VERB = re.compile(r'^(solve|calculate|find|evaluate|simplify|compute)\b', re.IGNORECASE)
_FRACTION = re.compile(r'\d+\s*/\s*\d+')
_URL = re.compile(r'https?://|www\.', re.IGNORECASE)
_FUNCTION = re.compile(
    r'sqrt\s*\(|√|square root|\b(?:sin|cos|tan|log|ln)\s*\(|\bpi\b|π|[a-z0-9]\s*\^\s*[a-z0-9({]',
    re.IGNORECASE,
)
_VARIABLE_EQUATION = re.compile(
    r'(?<![A-Za-z])\d*[A-Za-z](?![A-Za-z])\s*[+\-*/^=]\s*(?:\d|(?<![A-Za-z])[A-Za-z](?![A-Za-z]))'
)
_CHAINED_OPERATIONS = re.compile(r'\d+\s*[+\-*/]\s*\d+\s*[+\-*/]\s*\d+')
_NAMED_FORMULA = re.compile(
    r'a\s*\^\s*2\s*\+\s*b\s*\^\s*2\s*=\s*c\s*\^\s*2|E\s*=\s*mc\s*\^\s*2|F\s*=\s*ma\b'
)
_GEOMETRY_TERM = re.compile(
    r'\b(?:area|perimeter|volume|circumference|radius|diameter)\s*[=:]', re.IGNORECASE
)


def find_math_runs(line: str) -> List[MathRun]:
    """Locate ``$$..$$``, ``\\[..\\]``, ``\\(..\\)`` and ``$..$`` runs in a line."""
    runs = []
    for match in _MATH_RUN.finditer(line):
        display = match.group('dollar_display') is not None or match.group('bracket_display') is not None
        runs.append(MathRun(raw=match.group(0), display=display, start=match.start(), end=match.end()))
    return runs


def _rejected_as_math(text: str) -> bool:
    if len(text) > MAX_MATH_LENGTH:
        return True
    if _URL.search(text):
        return True
    if _BARE_INTEGER.match(text):
        return True
    if any(pattern.match(text) for pattern in _DATES):
        return True
    if _NUMBERED_LIST.match(text) and '=' not in text:
        return True
    if len(text.split()) > MAX_PROSE_WORDS and not _PROSE_OPERATORS.search(text):
        return True
    return False


_ACCEPT_RULES: List[Callable[[str], bool]] = [
    lambda t: '=' in t and bool(_ARITHMETIC_OPERATOR.search(t)),
    lambda t: bool(_DIGIT_OPERATOR_DIGIT.search(t)),
    lambda t: bool(_MATH_VERB.match(t)),
    lambda t: bool(_FRACTION.search(t)),
    lambda t: bool(_FUNCTION.search(t)),
    lambda t: '=' in t and bool(_VARIABLE_EQUATION.search(t)),
    lambda t: bool(_CHAINED_OPERATIONS.search(t)),
    lambda t: bool(_NAMED_FORMULA.search(t)),
    lambda t: bool(_GEOMETRY_TERM.search(t)),
]


def looks_like_math(text: str) -> bool:
    """Decide whether an undelimited line is a math expression.

    Rejections are checked first (too long, contains a URL, bare integer,
    date, numbered list item without ``=``, long prose without operators);
    then the line is accepted if any acceptance rule fires.

    Args:
        text: A single line, already stripped

    Returns:
        bool: True when the line should render as math
    """
    text = text.strip()
    if not text or _rejected_as_math(text):
        return False
    return any(rule(text) for rule in _ACCEPT_RULES)


def _math(line: str) -> Optional[ContentBlock]:
    runs = find_math_runs(line)
    if len(runs) == 1 and runs[0].start == 0 and runs[0].end == len(line):
        markup = to_canonical(runs[0].raw)
        return MathDisplay(markup) if runs[0].display else MathInline(markup)
    if runs:
        # math embedded in prose stays prose
        return None
    if looks_like_math(line):
        return MathInline(to_canonical(line))
    return None


def _plain_text(line: str) -> ContentBlock:
    spans = tuple(MathInline(to_canonical(run.raw)) for run in find_math_runs(line))
    return PlainText(text=line, math_spans=spans)


# ============================================================================
# Public API
# ============================================================================

_RULES: List[Tuple[bool, Callable[[str], Optional[ContentBlock]]]] = [
    (True, _chinese_heading),
    (True, _chinese_subheading),
    (False, _heading),
    (False, _list_item),
    (False, _math),
]


@functools.lru_cache(maxsize=4096)
def _classify(line: str, hint: str) -> ContentBlock:
    chinese = _uses_chinese_rules(line, hint)
    for chinese_only, rule in _RULES:
        if chinese_only and not chinese:
            continue
        block = rule(line)
        if block is not None:
            return block
    return _plain_text(line)


def classify_line(line: str, language_hint: Optional[str] = None) -> ContentBlock:
    """Classify one line of accumulated text.

    Args:
        line: One line; surrounding whitespace is ignored
        language_hint: "zh", "en", or None/"auto" for per-line detection

    Returns:
        ContentBlock: Never a Table (tables are assembled from several lines)
    """
    return _classify(line.strip(), normalize_language_hint(language_hint))
