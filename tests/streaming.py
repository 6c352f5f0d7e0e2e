"""Helpers for building streamed response bodies in tests."""

import json
import threading
from typing import Iterable, List, Optional


def sse_record(content: str) -> str:
    """One ``data:`` line carrying a content delta."""
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n"


def sse_body(deltas: Iterable[str], done: bool = True) -> bytes:
    body = "".join(sse_record(delta) for delta in deltas)
    if done:
        body += "data: [DONE]\n"
    return body.encode("utf-8")


def chunked(data: bytes, size: int) -> List[bytes]:
    return [data[i:i + size] for i in range(0, len(data), size)]


class FakeStreamingResponse:
    """Stands in for a ``requests.Response`` opened with ``stream=True``.

    Args:
        chunks: Byte chunks yielded by ``iter_content``
        status_code: HTTP status
        error: Raised by ``iter_content`` after all chunks are yielded
        gate: When set, ``iter_content`` waits on it before each chunk
            after the first
    """

    def __init__(self, chunks: Iterable[bytes], status_code: int = 200,
                 error: Optional[Exception] = None, text: str = "",
                 gate: Optional[threading.Event] = None):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.error = error
        self.text = text
        self.gate = gate
        self.closed = False
        self.chunk_sizes = []

    def iter_content(self, chunk_size=None):
        self.chunk_sizes.append(chunk_size)
        for index, chunk in enumerate(self.chunks):
            if index and self.gate is not None:
                self.gate.wait(2)
            if self.closed:
                return
            yield chunk
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True
