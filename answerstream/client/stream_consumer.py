"""
Streaming HTTP transport for chat completions.

StreamConsumer opens a POST request with ``stream=True`` and hands each
growing snapshot of the response body to a StreamSession, which decodes
the ``data:`` records and reports content deltas.

    consumer = StreamConsumer(config.stream, api_key=key)
    handle = consumer.open(endpoint, payload,
                           on_delta=print_delta,
                           on_done=show_answer,
                           on_error=show_failure)
    handle.wait()

Learning Points:
- requests' read timeout is an inactivity timeout: it fires when no byte
  arrives for ``timeout`` seconds, not when the whole answer takes longer
- While the body is being iterated, requests reports a read timeout as a
  ConnectionError wrapping urllib3's ReadTimeoutError, so both shapes are
  mapped to StreamTimeout
- Each handle owns one reader thread; callbacks run on that thread
- A lock around every callback makes cancel() a hard barrier: once it
  returns, no on_delta/on_done/on_error call can start
"""

import logging
import threading
from typing import Any, Callable, Dict, Optional

import requests
from urllib3.exceptions import ReadTimeoutError

from .config import StreamConfig
from .errors import NetworkFailure, ServerError, StreamError, StreamProcessingError, StreamTimeout
from .stream_session import SessionState, StreamSession

logger = logging.getLogger(__name__)

DeltaCallback = Callable[[str], None]
DoneCallback = Callable[[str], None]
ErrorCallback = Callable[[StreamError], None]

ERROR_BODY_LIMIT = 500


def _is_timeout(error: requests.exceptions.RequestException) -> bool:
    if isinstance(error, requests.exceptions.Timeout):
        return True
    return bool(error.args) and isinstance(error.args[0], ReadTimeoutError)


class StreamHandle:
    """A running streaming request.

    Created by ``StreamConsumer.open``; the reader thread is already
    running when the caller gets the handle.
    """

    def __init__(self, http: requests.Session, endpoint: str,
                 payload: Dict[str, Any], config: StreamConfig,
                 on_delta: Optional[DeltaCallback] = None,
                 on_done: Optional[DoneCallback] = None,
                 on_error: Optional[ErrorCallback] = None):
        self._http = http
        self._config = config
        self._on_delta = on_delta
        self._on_done = on_done
        self._on_error = on_error

        self._lock = threading.RLock()
        self._cancelled = False
        self._finished = threading.Event()
        self._response: Optional[requests.Response] = None

        # Deltas pass through the handle so cancel() can gate them
        self._session = StreamSession(
            endpoint, payload,
            on_delta=self._deliver_delta if on_delta is not None else None,
        )

        self._thread = threading.Thread(
            target=self._run, name="answerstream-reader", daemon=True
        )

    def start(self) -> 'StreamHandle':
        self._thread.start()
        return self

    # ========================================================================
    # Caller API
    # ========================================================================

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def content(self) -> str:
        return self._session.content

    @property
    def processed_offset(self) -> int:
        return self._session.processed_offset

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        """True once no further callbacks can happen."""
        return self._finished.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the request ends or is cancelled.

        Returns:
            bool: False if ``timeout`` elapsed first
        """
        return self._finished.wait(timeout)

    def cancel(self) -> None:
        """Abort the request. Safe to call any number of times, from any thread."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            response = self._response
        logger.debug("Cancelling stream to %s at offset %d",
                     self._session.endpoint, self._session.processed_offset)
        if response is not None:
            response.close()
        self._finished.set()

    # ========================================================================
    # Reader thread
    # ========================================================================

    def _run(self) -> None:
        try:
            self._read()
        except requests.exceptions.RequestException as e:
            if _is_timeout(e):
                self._fail(StreamTimeout(
                    f"No data received for {self._config.timeout:g}s"
                ))
            else:
                self._fail(NetworkFailure(f"Connection failed: {e}"))
        except Exception as e:
            # Closing the response under a blocked read can raise from urllib3
            if self._cancelled:
                logger.debug("Reader stopped after cancel: %r", e)
            else:
                logger.exception("Stream processing failed")
                failure = StreamProcessingError(f"Stream processing failed: {e!r}")
                failure.__cause__ = e
                self._fail(failure)
        finally:
            if self._response is not None:
                self._response.close()
            self._finished.set()

    def _read(self) -> None:
        logger.debug("POST %s (stream)", self._session.endpoint)
        response = self._http.post(
            self._session.endpoint,
            json=self._session.payload,
            stream=True,
            timeout=(self._config.connect_timeout, self._config.timeout),
        )

        with self._lock:
            self._response = response
            if self._cancelled:
                return

        if not 200 <= response.status_code < 300:
            self._fail(ServerError(response.status_code,
                                   body=self._error_body(response)))
            return

        body = bytearray()
        for chunk in response.iter_content(chunk_size=self._config.chunk_size):
            if self._cancelled:
                return
            if not chunk:
                continue
            body.extend(chunk)
            with self._lock:
                if self._cancelled:
                    return
                self._session.feed(body)
            if self._session.done_received:
                break

        with self._lock:
            if self._cancelled:
                return
            self._session.finish()
        self._complete()

    @staticmethod
    def _error_body(response: requests.Response) -> str:
        try:
            return response.text[:ERROR_BODY_LIMIT]
        except requests.exceptions.RequestException:
            return ""

    # ========================================================================
    # Callbacks
    # ========================================================================

    def _deliver_delta(self, delta: str) -> None:
        if not self._cancelled:
            self._on_delta(delta)

    def _complete(self) -> None:
        with self._lock:
            if self._cancelled or not self._session.complete():
                return
            content = self._session.content
            logger.debug("Stream completed: %d chars", len(content))
            if self._on_done is not None:
                self._on_done(content)

    def _fail(self, error: StreamError) -> None:
        with self._lock:
            if self._cancelled or not self._session.fail(error):
                return
            logger.debug("Stream failed: %s (%d chars received)",
                         error, len(error.partial_content))
            if self._on_error is not None:
                self._on_error(error)


class StreamConsumer:
    """Opens streaming requests over a shared, pooled HTTP session.

    Args:
        config: Timeouts and read size
        api_key: Sent as a Bearer token on every request when given
        http: Existing requests.Session to reuse
    """

    def __init__(self, config: Optional[StreamConfig] = None,
                 api_key: Optional[str] = None,
                 http: Optional[requests.Session] = None):
        self.config = config or StreamConfig()
        self.http = http or requests.Session()
        self.http.headers.update({
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        })
        if api_key:
            self.http.headers["Authorization"] = f"Bearer {api_key}"

    def open(self, endpoint: str, payload: Dict[str, Any],
             on_delta: Optional[DeltaCallback] = None,
             on_done: Optional[DoneCallback] = None,
             on_error: Optional[ErrorCallback] = None) -> StreamHandle:
        """Start a streaming request and return its handle.

        Exactly one of ``on_done``/``on_error`` is called, unless the handle
        is cancelled first, in which case neither is.
        """
        handle = StreamHandle(self.http, endpoint, payload, self.config,
                              on_delta=on_delta, on_done=on_done,
                              on_error=on_error)
        return handle.start()

    def close(self) -> None:
        self.http.close()
