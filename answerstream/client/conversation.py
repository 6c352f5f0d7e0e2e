"""
One tutor conversation: history, the live answer buffer and its blocks.

A Conversation allows one streaming request at a time. Sending a new
message cancels the previous request first, so a late delta from an old
answer can never land in the new buffer.

Every delta is appended to ``content`` and the whole buffer is classified
again before ``on_update`` runs. Classification is pure, so the blocks for
a prefix of the answer are always a prefix-consistent view of the blocks
for the complete answer (only the last block can still change).
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..content import ContentBlock, classify_text
from ..utils.logging_setup import DUMP_LOGGER_NAME
from .config import ClientConfig
from .errors import StreamError
from .prompts import (
    FALLBACK_ANSWER,
    TUTOR_SYSTEM_PROMPT,
    build_chat_messages,
    build_payload,
)
from .stream_consumer import StreamConsumer, StreamHandle

logger = logging.getLogger(__name__)
dump_logger = logging.getLogger(DUMP_LOGGER_NAME)

DUMP_PREVIEW_CHARS = 500

UpdateCallback = Callable[[List[ContentBlock]], None]

SUMMARY_PROMPT = (
    "Please provide a summary of our conversation so far in a very "
    "structured format, in the language the conversation was held in."
)


def _preview(text: str) -> str:
    return text[:DUMP_PREVIEW_CHARS] + ('...' if len(text) > DUMP_PREVIEW_CHARS else '')


def _dump_request(messages: List[Dict[str, Any]]) -> None:
    dump_logger.debug("=== PROMPT ===")
    for msg in messages:
        content = msg['content']
        if isinstance(content, list):
            content = " ".join(part.get("text", "[image]") for part in content)
        dump_logger.debug(f"{msg['role'].upper()}: {_preview(content)}")
    dump_logger.debug("=== END PROMPT ===")


class Conversation:
    """Conversation state around a StreamConsumer.

    Args:
        consumer: Transport used to open streaming requests
        config: Client configuration (endpoint, generation defaults, language hint)
        system_prompt: Sent as the first turn of every request; None to omit
    """

    def __init__(self, consumer: StreamConsumer, config: ClientConfig,
                 system_prompt: Optional[str] = TUTOR_SYSTEM_PROMPT):
        self.consumer = consumer
        self.config = config
        self.system_prompt = system_prompt

        self.history: List[Dict[str, Any]] = []
        self.active_handle: Optional[StreamHandle] = None
        self.summary_requested = False

        self.content = ""
        self.blocks: List[ContentBlock] = []
        self.last_error: Optional[StreamError] = None

        self._last_request: Optional[Tuple[str, Optional[str]]] = None

    @property
    def language_hint(self) -> str:
        return self.config.display.language_hint

    # ========================================================================
    # Requests
    # ========================================================================

    def send(self, message: str, on_update: Optional[UpdateCallback] = None,
             image_url: Optional[str] = None) -> StreamHandle:
        """Send a user message and start streaming the answer.

        Args:
            message: User text
            on_update: Called with the full block list after every delta
            image_url: Optional image attached to this message

        Returns:
            StreamHandle: The running request; ``wait()`` on it to block
        """
        self.cancel()

        messages = build_chat_messages(self.history, message, image_url, self.system_prompt)
        payload = build_payload(self.config, messages)
        self.history.append({"role": "user", "content": message})
        self._last_request = (message, image_url)

        self.content = ""
        self.blocks = []
        self.last_error = None

        logger.debug("Sending message (%d chars, %d history turns, image=%s)",
                     len(message), len(self.history) - 1, bool(image_url))
        _dump_request(messages)

        def on_delta(delta: str) -> None:
            self.content += delta
            self._reclassify(on_update)

        def on_done(text: str) -> None:
            if not text.strip():
                logger.debug("Empty answer, using fallback text")
                self.content = FALLBACK_ANSWER
                self._reclassify(on_update)
            self.history.append({"role": "assistant", "content": self.content})
            dump_logger.debug(f"Response: {_preview(self.content)}")

        def on_error(error: StreamError) -> None:
            logger.warning("Request failed: %s", error)
            self.last_error = error
            if error.partial_content:
                self.history.append({"role": "assistant", "content": error.partial_content})

        self.active_handle = self.consumer.open(
            self.config.endpoint, payload,
            on_delta=on_delta, on_done=on_done, on_error=on_error,
        )
        return self.active_handle

    def retry(self, on_update: Optional[UpdateCallback] = None) -> Optional[StreamHandle]:
        """Resend the last user message, discarding the answer it produced.

        Returns:
            Optional[StreamHandle]: None if nothing has been sent yet
        """
        if self._last_request is None:
            return None
        message, image_url = self._last_request

        self.cancel()
        for index in range(len(self.history) - 1, -1, -1):
            if self.history[index]["role"] == "user":
                del self.history[index:]
                break
        return self.send(message, on_update=on_update, image_url=image_url)

    def request_summary(self, on_update: Optional[UpdateCallback] = None) -> Optional[StreamHandle]:
        """Ask for a structured summary, once per conversation.

        Returns:
            Optional[StreamHandle]: None if there is nothing to summarize or a
            summary was already requested
        """
        if self.summary_requested or not self.history:
            return None
        self.summary_requested = True
        return self.send(SUMMARY_PROMPT, on_update=on_update)

    def cancel(self) -> None:
        """Cancel the in-flight request, if any."""
        if self.active_handle is not None:
            self.active_handle.cancel()
            self.active_handle = None

    def clear(self) -> None:
        """Cancel any request and forget the conversation."""
        self.cancel()
        self.history = []
        self.content = ""
        self.blocks = []
        self.last_error = None
        self.summary_requested = False
        self._last_request = None

    def get_history(self) -> List[Dict[str, Any]]:
        """Get the current conversation history."""
        return self.history.copy()

    def _reclassify(self, on_update: Optional[UpdateCallback]) -> None:
        self.blocks = classify_text(self.content, self.language_hint)
        if on_update is not None:
            on_update(self.blocks)
