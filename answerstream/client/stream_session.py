"""
Per-request streaming state and ``data:`` record decoding.

A StreamSession is transport-agnostic. The transport hands it the
*cumulative* response body every time more bytes arrive; the session
slices off what it has already seen using ``processed_offset``. Because the
slice is taken from the full body rather than trusted from the transport,
a transport that re-delivers an old snapshot cannot cause a delta to be
emitted twice.

Wire format (one record per line):

    data: {"choices": [{"delta": {"content": "Hel"}}]}
    data: {"choices": [{"delta": {"content": "lo"}}]}
    data: [DONE]

Learning Points:
- Offsets over bytes, not characters: a UTF-8 character split across two
  reads is only decoded once its line is complete
- A trailing line without its newline is held back and rescanned together
  with the next read; offsets still only move forward, so no byte is
  decoded into a delta twice
- Terminal states are sticky: once COMPLETED or FAILED nothing changes
"""

import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .errors import MalformedRecord, StreamError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class SessionState(Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


# ============================================================================
# Record decoding
# ============================================================================

def parse_record(line: str) -> Optional[str]:
    """Return the payload of a ``data:`` line, or None for any other line."""
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):].strip()


def extract_delta(payload: str) -> str:
    """Pull ``choices[0].delta.content`` out of a JSON envelope.

    Raises:
        MalformedRecord: If the payload is not JSON or has no string delta
    """
    try:
        envelope = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedRecord(f"Invalid JSON payload: {e}") from e

    try:
        content = envelope["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedRecord(f"No delta content in payload: {e!r}") from e

    if not isinstance(content, str):
        raise MalformedRecord(f"Delta content is {type(content).__name__}, not str")
    return content


# ============================================================================
# Session
# ============================================================================

class StreamSession:
    """State of one in-flight streaming request.

    Args:
        endpoint: URL the request was sent to
        payload: JSON body of the request
        on_delta: Called with each content delta as soon as it is decoded
    """

    def __init__(self, endpoint: str, payload: Dict[str, Any],
                 on_delta: Optional[Callable[[str], None]] = None):
        self._endpoint = endpoint
        self._payload = dict(payload)
        self._on_delta = on_delta

        self.processed_offset = 0
        self.state = SessionState.PENDING
        self.failure: Optional[StreamError] = None
        self.done_received = False

        self._pending = b""
        self._parts: List[str] = []

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def payload(self) -> Dict[str, Any]:
        return dict(self._payload)

    @property
    def content(self) -> str:
        """The decoded answer so far."""
        return "".join(self._parts)

    @property
    def is_terminal(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.FAILED)

    def feed(self, body: bytes) -> List[str]:
        """Process a cumulative snapshot of the response body.

        Args:
            body: Every byte received so far (bytes, bytearray or memoryview)

        Returns:
            List[str]: The deltas decoded from the new bytes, in wire order
        """
        if self.is_terminal:
            return []

        if len(body) < self.processed_offset:
            logger.warning(
                "Snapshot shorter than processed offset (%d < %d), ignoring",
                len(body), self.processed_offset,
            )
            return []

        new_bytes = bytes(body[self.processed_offset:])
        self.processed_offset = len(body)
        if not new_bytes or self.done_received:
            return []

        if self.state is SessionState.PENDING:
            self.state = SessionState.STREAMING

        data = self._pending + new_bytes
        complete, separator, remainder = data.rpartition(b"\n")
        if not separator:
            self._pending = data
            return []
        self._pending = remainder
        return self._process_lines(complete.split(b"\n"))

    def _process_lines(self, raw_lines: List[bytes]) -> List[str]:
        deltas = []
        for raw_line in raw_lines:
            if self.done_received:
                break
            delta = self._process_line(raw_line)
            if delta:
                deltas.append(delta)
                self._parts.append(delta)
                if self._on_delta is not None:
                    self._on_delta(delta)
        return deltas

    def _process_line(self, raw_line: bytes) -> Optional[str]:
        try:
            line = raw_line.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.debug("Dropping undecodable record: %s", e)
            return None

        payload = parse_record(line)
        if payload is None:
            return None
        if payload == DONE_SENTINEL:
            logger.debug("Stream marked as DONE at offset %d", self.processed_offset)
            self.done_received = True
            return None

        try:
            return extract_delta(payload)
        except MalformedRecord as e:
            logger.debug("Skipping malformed record: %s", e)
            return None

    def finish(self) -> List[str]:
        """Connection closed: flush a held-back final line.

        Returns:
            List[str]: Deltas decoded from the flushed line
        """
        if self.is_terminal or not self._pending:
            return []
        pending, self._pending = self._pending, b""
        return self._process_lines([pending])

    def complete(self) -> bool:
        """Move to COMPLETED. Returns False if already terminal."""
        if self.is_terminal:
            return False
        self.state = SessionState.COMPLETED
        return True

    def fail(self, error: StreamError) -> bool:
        """Move to FAILED, attaching the partial content to ``error``."""
        if self.is_terminal:
            return False
        error.partial_content = self.content
        self.failure = error
        self.state = SessionState.FAILED
        return True
