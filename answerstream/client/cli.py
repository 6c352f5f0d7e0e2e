"""
CLI interface for the streaming tutor chat.

Runs a REPL over a ChatClient, or a single content-writer request when
``--write`` is given.

Learning Points:
- REPL Pattern: read a line, dispatch slash commands, otherwise chat
- Layered configuration: YAML file first, then explicit flags win
- Boolean flags default to None so an absent flag never overrides YAML
- Ctrl+C while an answer streams cancels that answer, not the program
"""

import argparse
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.styles import Style
from pydantic import ValidationError

from ..utils.logging_setup import setup_debug_logging
from .chat_client import ChatClient
from .config import LANGUAGE_HINTS, ClientConfig
from .errors import ConfigError
from .prompts import (
    CONTENT_TYPES,
    DEFAULT_TONE,
    DEFAULT_WORD_COUNT,
    QUICK_PROMPTS,
    TONES,
    WORD_COUNTS,
)


def create_prompt_session() -> PromptSession:
    """Prompt session with in-memory history (↑/↓) and a styled prompt."""
    style = Style.from_dict({
        'prompt': 'bold cyan',
    })
    return PromptSession(
        history=InMemoryHistory(),
        style=style,
        message="You: "
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Streaming tutor chat client for OpenAI-compatible servers",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Configuration file
    parser.add_argument('--config', help='YAML configuration file')

    # Server connection
    parser.add_argument('--base-url', help='Server base URL')
    parser.add_argument('--model', help='Model name (detected from the server when omitted)')

    # Generation parameters
    parser.add_argument('--temperature', type=float, help='Sampling temperature')
    parser.add_argument('--max-tokens', type=int, help='Maximum tokens to generate')
    parser.add_argument('--timeout', type=float, help='Seconds of stream inactivity before giving up')

    # Display
    parser.add_argument('--language', choices=LANGUAGE_HINTS,
                        help='Heading rules: auto-detect, English only, or Chinese')
    parser.add_argument('--raw', action='store_true', default=None,
                        help='Show raw answer text instead of formatted blocks')
    parser.add_argument('--debug', action='store_true', default=None,
                        help='Log requests and stream records to llm_debug.log')

    # Content writer
    parser.add_argument('--write', choices=sorted(CONTENT_TYPES), metavar='TYPE',
                        help=f"Write one piece of content instead of chatting ({', '.join(CONTENT_TYPES)})")
    parser.add_argument('--topic', help='Topic for --write (prompted for when omitted)')
    parser.add_argument('--tone', choices=sorted(TONES), default=DEFAULT_TONE,
                        help='Tone for --write')
    parser.add_argument('--words', type=int, choices=WORD_COUNTS, default=DEFAULT_WORD_COUNT,
                        help='Approximate length for --write')
    return parser


def load_config(args: argparse.Namespace) -> ClientConfig:
    """Build the client configuration, exiting with a message on bad input."""
    try:
        return ClientConfig.from_args(args)
    except (FileNotFoundError, ConfigError, ValidationError) as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)


def handle_command(client: ChatClient, user_input: str) -> bool:
    """Run a slash command.

    Returns:
        bool: False when the REPL should stop
    """
    name, _, argument = user_input[1:].partition(' ')
    cmd = name.lower()

    if cmd in ['quit', 'exit', 'q']:
        client.console.print("[yellow]👋 Goodbye![/yellow]")
        return False
    if cmd == 'help':
        client.ui_manager.show_help()
    elif cmd == 'clear':
        client.clear_history()
    elif cmd == 'history':
        client.show_history()
    elif cmd == 'retry':
        client.retry()
    elif cmd == 'summary':
        client.summarize()
    elif cmd == 'quick':
        kind, _, subject = argument.strip().partition(' ')
        if not kind or not subject.strip():
            names = ", ".join(QUICK_PROMPTS)
            client.ui_manager.show_error(f"Usage: /quick NAME SUBJECT (names: {names})")
        else:
            client.quick(kind.lower(), subject.strip())
    else:
        client.ui_manager.show_error(f"Unknown command: {user_input}")
    return True


def run_repl(client: ChatClient) -> None:
    session = create_prompt_session()
    while True:
        try:
            user_input = session.prompt().strip()
        except KeyboardInterrupt:
            client.console.print("\n[yellow]👋 Goodbye![/yellow]")
            break
        except EOFError:
            break

        if not user_input:
            continue
        if user_input.startswith('/'):
            if not handle_command(client, user_input):
                break
            continue
        client.chat(user_input)


def main():
    """Entry point for ``answerstream-chat``.

    Exit Codes:
        0: Normal exit
        1: Configuration error, connection failure, or no model available
    """
    args = build_parser().parse_args()
    config = load_config(args)

    if config.debug:
        setup_debug_logging()

    try:
        client = ChatClient(config)
    except ConnectionError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    try:
        # Auto-detect model when none was configured
        if not config.generation.model:
            models = client.get_available_models()
            if models:
                client.set_model(models[0])
                client.ui_manager.show_success(f"Auto-selected model: {config.generation.model}")
            else:
                client.ui_manager.show_error("No models available on server")
                sys.exit(1)

        if args.write:
            topic = args.topic or create_prompt_session().prompt("Topic: ").strip()
            client.write(topic, args.write, tone=args.tone, word_count=args.words)
            return

        client.ui_manager.show_welcome(config.generation.model)
        run_repl(client)
    finally:
        client.close()


if __name__ == "__main__":
    main()
