"""Tests for conversation state around the stream consumer."""

import logging

import pytest

from answerstream.client.conversation import SUMMARY_PROMPT, Conversation
from answerstream.client.errors import NetworkFailure, StreamTimeout
from answerstream.client.prompts import FALLBACK_ANSWER, TUTOR_SYSTEM_PROMPT
from answerstream.content import Heading, PlainText


class FakeHandle:
    """Records the callbacks a Conversation registers."""

    def __init__(self, endpoint, payload, on_delta, on_done, on_error):
        self.endpoint = endpoint
        self.payload = payload
        self.on_delta = on_delta
        self.on_done = on_done
        self.on_error = on_error
        self.cancel_calls = 0

    def cancel(self):
        self.cancel_calls += 1

    def stream(self, *deltas):
        for delta in deltas:
            self.on_delta(delta)
        self.on_done("".join(deltas))


class FakeConsumer:

    def __init__(self):
        self.handles = []

    def open(self, endpoint, payload, on_delta=None, on_done=None, on_error=None):
        handle = FakeHandle(endpoint, payload, on_delta, on_done, on_error)
        self.handles.append(handle)
        return handle


@pytest.fixture
def consumer():
    return FakeConsumer()


@pytest.fixture
def conversation(consumer, client_config):
    return Conversation(consumer, client_config)


# ============================================================================
# Sending
# ============================================================================

class TestSend:

    def test_payload(self, conversation, consumer):
        conversation.send("What is 2 + 2?")
        [handle] = consumer.handles

        assert handle.endpoint == "http://testserver/v1/chat/completions"
        assert handle.payload["stream"] is True
        assert handle.payload["model"] == "test-model"
        assert handle.payload["messages"] == [
            {"role": "system", "content": TUTOR_SYSTEM_PROMPT},
            {"role": "user", "content": "What is 2 + 2?"},
        ]

    def test_deltas_update_blocks(self, conversation, consumer):
        updates = []
        conversation.send("hi", on_update=updates.append)
        handle = consumer.handles[0]

        handle.on_delta("## Ti")
        handle.on_delta("tle\nBody")

        assert conversation.content == "## Title\nBody"
        assert conversation.blocks == [Heading(1, "Title"), PlainText("Body")]
        assert updates[-1] == conversation.blocks
        assert len(updates) == 2

    def test_done_appends_assistant_turn(self, conversation, consumer):
        conversation.send("hi")
        consumer.handles[0].stream("Hello", " there")

        assert conversation.get_history() == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "Hello there"},
        ]

    def test_history_is_sent_with_next_message(self, conversation, consumer):
        conversation.send("first")
        consumer.handles[0].stream("answer")
        conversation.send("second")

        roles = [turn["role"] for turn in consumer.handles[1].payload["messages"]]
        assert roles == ["system", "user", "assistant", "user"]

    def test_empty_answer_uses_fallback(self, conversation, consumer):
        updates = []
        conversation.send("hi", on_update=updates.append)
        consumer.handles[0].on_done("  ")

        assert conversation.content == FALLBACK_ANSWER
        assert conversation.history[-1] == {"role": "assistant", "content": FALLBACK_ANSWER}
        assert updates

    def test_error_keeps_partial_answer(self, conversation, consumer):
        conversation.send("hi")
        handle = consumer.handles[0]
        handle.on_delta("Partial")
        error = StreamTimeout("slow", partial_content="Partial")
        handle.on_error(error)

        assert conversation.last_error is error
        assert conversation.history[-1] == {"role": "assistant", "content": "Partial"}

    def test_error_without_content_adds_no_turn(self, conversation, consumer):
        conversation.send("hi")
        consumer.handles[0].on_error(NetworkFailure("refused"))
        assert conversation.history == [{"role": "user", "content": "hi"}]

    def test_new_send_cancels_previous(self, conversation, consumer):
        conversation.send("first")
        conversation.send("second")
        assert consumer.handles[0].cancel_calls == 1
        assert conversation.active_handle is consumer.handles[1]

    def test_new_send_resets_buffer(self, conversation, consumer):
        conversation.send("first")
        consumer.handles[0].stream("old answer")
        conversation.send("second")
        assert conversation.content == ""
        assert conversation.blocks == []

    def test_image_message(self, conversation, consumer):
        conversation.send("What is this?", image_url="http://img/cat.png")
        content = consumer.handles[0].payload["messages"][-1]["content"]
        assert content == [
            {"type": "image_url", "image_url": {"url": "http://img/cat.png"}},
            {"type": "text", "text": "What is this?"},
        ]

    def test_no_system_prompt(self, consumer, client_config):
        conversation = Conversation(consumer, client_config, system_prompt=None)
        conversation.send("hi")
        assert consumer.handles[0].payload["messages"] == [{"role": "user", "content": "hi"}]

    def test_prompt_and_response_are_dumped(self, conversation, consumer, caplog):
        with caplog.at_level(logging.DEBUG, logger="llm_debug"):
            conversation.send("What is 2 + 2?")
            consumer.handles[0].stream("4")

        dumped = [r.getMessage() for r in caplog.records if r.name == "llm_debug"]
        assert dumped[0] == "=== PROMPT ==="
        assert "USER: What is 2 + 2?" in dumped
        assert dumped[-1] == "Response: 4"


# ============================================================================
# Retry, summary, clear
# ============================================================================

class TestRetry:

    def test_nothing_to_retry(self, conversation):
        assert conversation.retry() is None

    def test_retry_replaces_last_exchange(self, conversation, consumer):
        conversation.send("first")
        consumer.handles[0].stream("one")
        conversation.send("second")
        consumer.handles[1].stream("bad")

        conversation.retry()
        retried = consumer.handles[2]
        assert retried.payload["messages"][-1] == {"role": "user", "content": "second"}
        assert conversation.history == [
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "one"},
            {"role": "user", "content": "second"},
        ]

    def test_retry_keeps_image(self, conversation, consumer):
        conversation.send("look", image_url="http://img/a.png")
        conversation.retry()
        content = consumer.handles[1].payload["messages"][-1]["content"]
        assert isinstance(content, list)


class TestSummary:

    def test_empty_conversation(self, conversation, consumer):
        assert conversation.request_summary() is None
        assert consumer.handles == []
        assert not conversation.summary_requested

    def test_only_once(self, conversation, consumer):
        conversation.send("hi")
        consumer.handles[0].stream("hello")

        assert conversation.request_summary() is not None
        assert consumer.handles[1].payload["messages"][-1]["content"] == SUMMARY_PROMPT
        assert conversation.request_summary() is None
        assert len(consumer.handles) == 2


class TestClear:

    def test_clear(self, conversation, consumer):
        conversation.send("hi")
        consumer.handles[0].on_delta("partial")
        conversation.summary_requested = True

        conversation.clear()

        assert consumer.handles[0].cancel_calls == 1
        assert conversation.history == []
        assert conversation.content == ""
        assert conversation.blocks == []
        assert not conversation.summary_requested
        assert conversation.retry() is None

    def test_get_history_is_a_copy(self, conversation):
        conversation.send("hi")
        conversation.get_history().clear()
        assert len(conversation.history) == 1
