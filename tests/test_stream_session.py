"""Tests for cumulative-body record decoding."""

import pytest

from answerstream.client.errors import MalformedRecord, NetworkFailure
from answerstream.client.stream_session import (
    SessionState,
    StreamSession,
    extract_delta,
    parse_record,
)

from .streaming import chunked, sse_body, sse_record


def make_session(collected=None):
    on_delta = collected.append if collected is not None else None
    return StreamSession("http://testserver/v1/chat/completions", {"stream": True}, on_delta=on_delta)


class TestRecordDecoding:

    def test_parse_record(self):
        assert parse_record('data: {"a": 1}') == '{"a": 1}'
        assert parse_record("data:[DONE]\r") == "[DONE]"
        assert parse_record(": keep-alive") is None
        assert parse_record("event: message") is None

    def test_extract_delta(self):
        assert extract_delta('{"choices": [{"delta": {"content": "Hi"}}]}') == "Hi"

    @pytest.mark.parametrize("payload", [
        "{not json",
        '{"choices": []}',
        '{"choices": [{"delta": {}}]}',
        '{"choices": [{"delta": {"content": null}}]}',
        '"just a string"',
    ])
    def test_extract_delta_rejects(self, payload):
        with pytest.raises(MalformedRecord):
            extract_delta(payload)


class TestFeed:

    def test_deltas_in_wire_order(self):
        collected = []
        session = make_session(collected)
        body = sse_body(["Hel", "lo"])

        assert session.feed(body) == ["Hel", "lo"]
        assert collected == ["Hel", "lo"]
        assert session.done_received
        assert session.content == "Hello"

    def test_cumulative_snapshots(self):
        session = make_session()
        body = sse_body(["Hel", "lo"])
        deltas = []
        for end in range(1, len(body) + 1):
            deltas.extend(session.feed(body[:end]))
        assert deltas == ["Hel", "lo"]

    def test_offset_is_monotonic_and_ends_at_body_length(self):
        session = make_session()
        body = sse_body(["one ", "two ", "three"])
        offsets = []
        received = b""
        for chunk in chunked(body, 7):
            received += chunk
            session.feed(received)
            offsets.append(session.processed_offset)
        assert offsets == sorted(offsets)
        assert session.processed_offset == len(body)

    def test_duplicate_snapshot_emits_nothing_twice(self):
        session = make_session()
        body = sse_record("once").encode()
        assert session.feed(body) == ["once"]
        assert session.feed(body) == []
        assert session.content == "once"

    def test_shorter_snapshot_is_ignored(self):
        session = make_session()
        body = sse_record("abc").encode()
        session.feed(body)
        assert session.feed(body[:5]) == []
        assert session.processed_offset == len(body)

    def test_record_split_across_reads(self):
        session = make_session()
        body = sse_record("split").encode()
        assert session.feed(body[:12]) == []
        assert session.feed(body) == ["split"]

    def test_multibyte_character_split_across_reads(self):
        session = make_session()
        body = sse_record("é").encode("utf-8")
        split_at = body.index("é".encode("utf-8")) + 1
        assert session.feed(body[:split_at]) == []
        assert session.feed(body) == ["é"]

    def test_malformed_record_is_skipped(self):
        session = make_session()
        body = b"data: {broken\n" + sse_record("ok").encode()
        assert session.feed(body) == ["ok"]
        assert session.state is SessionState.STREAMING

    def test_noise_lines_are_ignored(self):
        session = make_session()
        body = b": keep-alive\n\nevent: ping\n" + sse_record("ok").encode()
        assert session.feed(body) == ["ok"]

    def test_nothing_after_done(self):
        session = make_session()
        body = sse_body(["a"]) + sse_record("late").encode()
        assert session.feed(body) == ["a"]
        more = body + sse_record("later").encode()
        assert session.feed(more) == []
        assert session.processed_offset == len(more)
        assert session.content == "a"

    def test_bytearray_and_memoryview_snapshots(self):
        session = make_session()
        buffer = bytearray(sse_record("x").encode())
        assert session.feed(memoryview(buffer)) == ["x"]


class TestLifecycle:

    def test_pending_until_bytes_arrive(self):
        session = make_session()
        assert session.state is SessionState.PENDING
        session.feed(b"")
        assert session.state is SessionState.PENDING
        session.feed(b"d")
        assert session.state is SessionState.STREAMING

    def test_finish_flushes_unterminated_last_line(self):
        session = make_session()
        body = sse_record("a").encode() + sse_record("b").encode().rstrip(b"\n")
        assert session.feed(body) == ["a"]
        assert session.finish() == ["b"]
        assert session.content == "ab"

    def test_complete_is_terminal(self):
        session = make_session()
        assert session.complete()
        assert not session.complete()
        assert session.is_terminal
        assert session.feed(sse_record("x").encode()) == []

    def test_fail_attaches_partial_content(self):
        session = make_session()
        session.feed(sse_record("partial").encode())
        error = NetworkFailure("connection reset")
        assert session.fail(error)
        assert error.partial_content == "partial"
        assert session.failure is error
        assert session.state is SessionState.FAILED
        assert not session.complete()

    def test_payload_is_copied(self):
        payload = {"stream": True}
        session = StreamSession("http://x", payload)
        payload["stream"] = False
        assert session.payload == {"stream": True}
