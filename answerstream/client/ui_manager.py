"""
UI management for displaying messages and status.
"""

from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import ClientConfig

HISTORY_PREVIEW_CHARS = 100

COMMANDS = [
    ("/help", "Show this help message"),
    ("/clear", "Clear conversation history"),
    ("/history", "Show conversation history"),
    ("/retry", "Ask the last question again"),
    ("/summary", "Summarize the conversation (once per conversation)"),
    ("/quick NAME SUBJECT", "Quick prompt: summary, explain, compare or steps"),
    ("/quit", "Exit the chat"),
]


def _preview(content: Any) -> str:
    if isinstance(content, list):
        # multi-part turn: show the text parts only
        content = " ".join(part.get("text", "") for part in content if isinstance(part, dict))
    content = str(content)
    if len(content) > HISTORY_PREVIEW_CHARS:
        content = content[:HISTORY_PREVIEW_CHARS - 3] + "..."
    return content


class UIManager:
    """Manages user interface elements."""

    def __init__(self, config: ClientConfig, console: Optional[Console] = None):
        self.config = config
        self.console = console or Console()

    def show_welcome(self, model: Optional[str]):
        """Show welcome message with rich formatting."""
        welcome_text = Text()
        welcome_text.append("📚 AnswerStream Tutor Chat", style="bold blue")
        welcome_text.append("\n\n", style="")
        welcome_text.append("Configuration:\n", style="bold")
        welcome_text.append(f"• Endpoint: {self.config.endpoint}\n", style="")
        welcome_text.append(f"• Model: {model or 'server default'}\n", style="")
        welcome_text.append(f"• Temperature: {self.config.generation.temperature}\n", style="")
        welcome_text.append(f"• Max Tokens: {self.config.generation.max_tokens}\n", style="")
        welcome_text.append(f"• Timeout: {self.config.stream.timeout:g}s\n", style="")
        welcome_text.append(f"• Language: {self.config.display.language_hint}\n", style="")

        commands = ", ".join(name for name, _ in COMMANDS)
        welcome_text.append(f"\nCommands: {commands}\n", style="dim")
        welcome_text.append("Type your message and press Enter to chat!", style="italic")

        self.console.print(Panel(welcome_text, title=":rocket: Welcome", border_style="blue"))

    def show_help(self):
        """Show help message."""
        help_table = Table(title="Available Commands")
        help_table.add_column("Command", style="cyan", no_wrap=True)
        help_table.add_column("Description", style="white")
        for name, description in COMMANDS:
            help_table.add_row(name, description)
        self.console.print(help_table)

    def show_history(self, history: List[Dict[str, Any]]):
        """Show conversation history as a table."""
        if not history:
            self.console.print("[dim]📝 No conversation history[/dim]")
            return

        table = Table(title="📝 Conversation History", show_header=True, header_style="bold magenta")
        table.add_column("Turn", style="cyan", no_wrap=True, width=4)
        table.add_column("Role", style="bold", width=10)
        table.add_column("Content", style="white", overflow="fold")
        for i, msg in enumerate(history, 1):
            table.add_row(str(i), msg['role'].title(), _preview(msg['content']))
        self.console.print(table)

    def show_error(self, message: str):
        """Show error message."""
        self.console.print(f"[red]❌ {message}[/red]")

    def show_success(self, message: str):
        """Show success message."""
        self.console.print(f"[green]✓ {message}[/green]")

    def show_info(self, message: str):
        self.console.print(f"[dim]{message}[/dim]")
