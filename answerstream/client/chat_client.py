"""
Main chat client that orchestrates all components.
"""

import logging
from typing import List, Optional

from rich.console import Console

from .config import ClientConfig
from .connection_manager import ConnectionManager
from .conversation import Conversation
from .prompts import (
    DEFAULT_TONE,
    DEFAULT_WORD_COUNT,
    build_content_prompt,
    expand_quick_prompt,
    writer_system_prompt,
)
from .response_handler import ResponseHandler
from .stream_consumer import StreamConsumer, StreamHandle
from .ui_manager import UIManager

logger = logging.getLogger(__name__)

WAIT_INTERVAL = 0.1


class ChatClient:
    """Streaming tutor chat client for OpenAI-compatible servers.

    Args:
        config: Client configuration
        console: Shared rich console; one is created when omitted
        check_connection: Probe the server before returning
    """

    def __init__(self, config: ClientConfig, console: Optional[Console] = None,
                 check_connection: bool = True):
        self.config = config
        self.console = console or Console()

        # Initialize components; both HTTP users share one pooled session
        self.consumer = StreamConsumer(config.stream, api_key=config.resolved_api_key())
        self.connection_manager = ConnectionManager(config, http=self.consumer.http, console=self.console)
        self.conversation = Conversation(self.consumer, config)
        self.response_handler = ResponseHandler(config, console=self.console)
        self.ui_manager = UIManager(config, console=self.console)

        if check_connection and not self.connection_manager.test_connection():
            raise ConnectionError(f"Failed to connect to server at {config.server.base_url}")

    # ========================================================================
    # Streaming
    # ========================================================================

    def _stream(self, conversation: Conversation, start) -> str:
        """Run one request to completion, rendering it live.

        ``start`` receives the update callback and returns the handle (or
        None when there is nothing to send).
        """
        self.response_handler.start_stream()

        def on_update(blocks):
            self.response_handler.update(blocks, conversation.content)

        handle: Optional[StreamHandle] = None
        try:
            handle = start(on_update)
            if handle is not None:
                while not handle.wait(WAIT_INTERVAL):
                    pass
        except KeyboardInterrupt:
            logger.debug("Interrupted by user, cancelling stream")
            conversation.cancel()
            self.console.print("[yellow]⏹ Answer interrupted[/yellow]")
        finally:
            self.response_handler.end_stream(conversation.blocks, conversation.last_error)
        return conversation.content

    def chat(self, message: str, image_url: Optional[str] = None) -> str:
        """Send a chat message and stream the answer."""
        return self._stream(
            self.conversation,
            lambda on_update: self.conversation.send(message, on_update=on_update, image_url=image_url),
        )

    def quick(self, name: str, subject: str) -> Optional[str]:
        """Ask one of the canned quick prompts (summary, explain, compare, steps) about ``subject``."""
        try:
            message = expand_quick_prompt(name, subject)
        except ValueError as e:
            self.ui_manager.show_error(str(e))
            return None
        return self.chat(message)

    def retry(self) -> Optional[str]:
        """Ask the last question again."""
        if not self.conversation.history:
            self.ui_manager.show_error("Nothing to retry")
            return None
        return self._stream(self.conversation, self.conversation.retry)

    def summarize(self) -> Optional[str]:
        """Request a one-time summary of the conversation."""
        if self.conversation.summary_requested:
            self.ui_manager.show_info("A summary was already requested for this conversation")
            return None
        if not self.conversation.history:
            self.ui_manager.show_error("Nothing to summarize yet")
            return None
        return self._stream(self.conversation, self.conversation.request_summary)

    def write(self, topic: str, content_type: str, tone: str = DEFAULT_TONE,
              word_count: int = DEFAULT_WORD_COUNT) -> str:
        """Generate a piece of content in one request, outside the chat history."""
        writer = Conversation(self.consumer, self.config,
                              system_prompt=writer_system_prompt(content_type))
        prompt = build_content_prompt(topic, content_type, tone, word_count)
        return self._stream(writer, lambda on_update: writer.send(prompt, on_update=on_update))

    # ========================================================================
    # History and models
    # ========================================================================

    def clear_history(self) -> None:
        """Clear conversation history."""
        self.conversation.clear()
        self.ui_manager.show_success("🧹 Conversation history cleared")

    def show_history(self) -> None:
        """Show conversation history."""
        self.ui_manager.show_history(self.conversation.get_history())

    def get_available_models(self) -> List[str]:
        """Get available models from the server."""
        return self.connection_manager.get_available_models()

    def set_model(self, model: str):
        """Set the model to use."""
        self.config.generation.model = model

    def close(self) -> None:
        self.conversation.cancel()
        self.consumer.close()
