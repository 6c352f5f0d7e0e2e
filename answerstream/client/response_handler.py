"""
Terminal rendering of classified answers.

The streaming view is a rich ``Live`` panel. On every update the whole
block list is rendered again (``render_blocks``); nothing is patched in
place, so a block that changes kind while streaming (a bullet that turns
out to be a table row, a line that grows into an equation) simply renders
differently on the next refresh.

Math blocks carry canonical LaTeX. pylatexenc turns that into readable
unicode text, and leftover ``^2`` style powers are mapped to superscript
characters afterwards.

Learning Points:
- rich renderables compose: Group stacks Text, Table and Panel objects
- Live.update() swaps the whole renderable; refresh rate is capped by Live
- pylatexenc's LatexNodes2Text is tolerant of partial or odd markup, which
  matters while an equation is still streaming in
"""

import re
from typing import List, Optional

from pylatexenc.latex2text import LatexNodes2Text
from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.table import Table as RichTable
from rich.text import Text

from ..content import BlockKind, ContentBlock, PlainText, find_math_runs
from .config import ClientConfig
from .errors import StreamError

ASSISTANT_TITLE = "🤖 Assistant"
STREAMING_TITLE = "🤖 Assistant (streaming)"

_CONVERTER = LatexNodes2Text(
    keep_comments=False,
    strict_latex_spaces=False,
)

_SUPERSCRIPTS = {
    '0': '⁰', '1': '¹', '2': '²', '3': '³', '4': '⁴', '5': '⁵',
    '6': '⁶', '7': '⁷', '8': '⁸', '9': '⁹', '-': '⁻', '+': '⁺',
    'n': 'ⁿ', 'i': 'ⁱ', 'x': 'ˣ', 'y': 'ʸ',
}
_CARET_POWER = re.compile(r'\^([0-9nixy+\-]{1,5})(?![0-9A-Za-z])')

_HEADING_STYLES = {1: "bold underline", 2: "bold", 3: "bold italic"}


# ============================================================================
# Math
# ============================================================================

def latex_to_unicode(markup: str) -> str:
    """Readable unicode for canonical math markup."""
    text = _CONVERTER.latex_to_text(markup).strip()
    return _CARET_POWER.sub(
        lambda m: ''.join(_SUPERSCRIPTS.get(c, c) for c in m.group(1)), text
    )


# ============================================================================
# Blocks
# ============================================================================

def _render_plain(block: PlainText) -> Text:
    if not block.math_spans:
        return Text(block.text)

    text = Text()
    cursor = 0
    for run, span in zip(find_math_runs(block.text), block.math_spans):
        text.append(block.text[cursor:run.start])
        text.append(latex_to_unicode(span.markup), style="cyan")
        cursor = run.end
    text.append(block.text[cursor:])
    return text


def _render_table(block) -> RichTable:
    model = block.table
    table = RichTable(show_header=True, header_style="bold magenta")
    for header in model.headers:
        table.add_column(header, overflow="fold")
    for row in model.rows:
        table.add_row(*row)
    return table


def render_block(block: ContentBlock) -> RenderableType:
    """Rich renderable for a single block."""
    kind = block.kind
    if kind is BlockKind.HEADING:
        return Text(block.text, style=_HEADING_STYLES.get(block.level, "bold"))
    if kind is BlockKind.CHINESE_HEADING:
        return Text(block.text, style="bold blue")
    if kind is BlockKind.CHINESE_SUBHEADING:
        return Text(block.text, style="bold cyan")
    if kind is BlockKind.LIST_ITEM:
        marker = f"{block.index}." if block.ordered else "•"
        return Text(f"  {marker} {block.text}")
    if kind is BlockKind.TABLE:
        return _render_table(block)
    if kind is BlockKind.MATH_DISPLAY:
        return Text(latex_to_unicode(block.markup), style="bold cyan", justify="center")
    if kind is BlockKind.MATH_INLINE:
        return Text(latex_to_unicode(block.markup), style="cyan")
    return _render_plain(block)


def render_blocks(blocks: List[ContentBlock]) -> Group:
    """Render a full block list, top to bottom."""
    return Group(*(render_block(block) for block in blocks))


# ============================================================================
# Handler
# ============================================================================

class ResponseHandler:
    """Displays streaming and finished answers."""

    def __init__(self, config: ClientConfig, console: Optional[Console] = None):
        self.config = config
        self.console = console or Console()
        self._live: Optional[Live] = None
        self._raw = ""

    def _panel(self, body: RenderableType, title: str, border_style: str = "blue") -> Panel:
        return Panel(body, title=f"[bold {border_style}]{title}[/bold {border_style}]",
                     border_style=border_style)

    def start_stream(self) -> None:
        """Open the live panel for a new answer."""
        self._raw = ""
        self._live = Live(
            self._panel(Text(""), STREAMING_TITLE),
            console=self.console,
            refresh_per_second=self.config.display.refresh_per_second,
        )
        self._live.start()

    def update(self, blocks: List[ContentBlock], raw: str = "") -> None:
        """Redraw the live panel from the full block list."""
        self._raw = raw
        if self._live is None:
            return
        body = Text(raw) if self.config.display.show_raw else render_blocks(blocks)
        self._live.update(self._panel(body, STREAMING_TITLE))

    def end_stream(self, blocks: List[ContentBlock], error: Optional[StreamError] = None) -> None:
        """Replace the live panel with the final answer and any error."""
        if self._live is None:
            return
        if self.config.display.show_raw:
            body = Text(self._raw)
        else:
            body = render_blocks(blocks)
        border = "red" if error is not None else "blue"
        self._live.update(self._panel(body, ASSISTANT_TITLE, border))
        self._live.stop()
        self._live = None
        if error is not None:
            self.show_error(error)

    def show_error(self, error: StreamError) -> None:
        self.console.print(f"[red]❌ {error}[/red]")
        if error.partial_content:
            self.console.print("[dim]Partial answer shown above. Use /retry to ask again.[/dim]")
        else:
            self.console.print("[dim]Use /retry to ask again.[/dim]")

