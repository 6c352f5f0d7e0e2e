"""Tests for the chat client wiring, connection checks and REPL commands."""

import io
from unittest import mock

import pytest
import requests
from rich.console import Console

from answerstream.client.chat_client import ChatClient
from answerstream.client.cli import handle_command
from answerstream.client.connection_manager import ConnectionManager
from answerstream.client.prompts import WRITER_SYSTEM_PROMPTS

from .streaming import FakeStreamingResponse, sse_body


def make_console() -> Console:
    return Console(file=io.StringIO(), record=True, width=100, color_system=None)


def fake_get_response(status_code, payload=None):
    response = mock.Mock(status_code=status_code)
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def client(client_config):
    return ChatClient(client_config, console=make_console(), check_connection=False)


class TestChatClient:

    def test_chat_streams_and_renders(self, client):
        response = FakeStreamingResponse([sse_body(["## Answer\n", "Done here."])])
        with mock.patch.object(requests.Session, "post", return_value=response):
            content = client.chat("Explain")

        assert content == "## Answer\nDone here."
        assert client.conversation.history[-1] == {"role": "assistant", "content": content}
        output = client.console.export_text()
        assert "Answer" in output
        assert "Done here." in output

    def test_server_error_is_shown(self, client):
        response = FakeStreamingResponse([], status_code=500, text="overloaded")
        with mock.patch.object(requests.Session, "post", return_value=response):
            content = client.chat("Explain")

        assert content == ""
        assert "HTTP 500" in client.console.export_text()
        assert client.conversation.last_error.status == 500

    def test_retry_without_history(self, client):
        assert client.retry() is None
        assert "Nothing to retry" in client.console.export_text()

    def test_summarize_without_history(self, client):
        assert client.summarize() is None
        assert "Nothing to summarize" in client.console.export_text()

    def test_write_stays_out_of_chat_history(self, client):
        response = FakeStreamingResponse([sse_body(["An essay."])])
        with mock.patch.object(requests.Session, "post", return_value=response) as post:
            content = client.write("rivers", "article", tone="casual", word_count=250)

        assert content == "An essay."
        messages = post.call_args.kwargs["json"]["messages"]
        assert messages[0]["content"].startswith(WRITER_SYSTEM_PROMPTS["article"])
        assert 'casual article about "rivers"' in messages[1]["content"]
        assert client.conversation.history == []

    def test_set_model(self, client):
        client.set_model("other-model")
        response = FakeStreamingResponse([sse_body(["ok"])])
        with mock.patch.object(requests.Session, "post", return_value=response) as post:
            client.chat("hi")
        assert post.call_args.kwargs["json"]["model"] == "other-model"

    def test_failed_connection_check(self, client_config):
        with mock.patch.object(requests.Session, "get",
                               side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(ConnectionError):
                ChatClient(client_config, console=make_console())


class TestConnectionManager:

    def make_manager(self, client_config):
        return ConnectionManager(client_config, console=make_console())

    def test_health_ok(self, client_config):
        manager = self.make_manager(client_config)
        with mock.patch.object(requests.Session, "get", return_value=fake_get_response(200)) as get:
            assert manager.test_connection()
        get.assert_called_once_with("http://testserver/health", timeout=10.0)

    def test_starting_up(self, client_config):
        manager = self.make_manager(client_config)
        with mock.patch.object(requests.Session, "get", return_value=fake_get_response(503)):
            assert manager.test_connection()

    def test_falls_back_to_models(self, client_config):
        manager = self.make_manager(client_config)
        responses = [fake_get_response(404), fake_get_response(200)]
        with mock.patch.object(requests.Session, "get", side_effect=responses) as get:
            assert manager.test_connection()
        assert get.call_args.args[0] == "http://testserver/v1/models"

    def test_unhealthy(self, client_config):
        manager = self.make_manager(client_config)
        responses = [fake_get_response(404), fake_get_response(500)]
        with mock.patch.object(requests.Session, "get", side_effect=responses):
            assert not manager.test_connection()

    def test_models(self, client_config):
        manager = self.make_manager(client_config)
        payload = {"object": "list", "data": [{"id": "a"}, {"id": "b"}]}
        with mock.patch.object(requests.Session, "get", return_value=fake_get_response(200, payload)):
            assert manager.get_available_models() == ["a", "b"]

    def test_models_bad_json(self, client_config):
        manager = self.make_manager(client_config)
        response = fake_get_response(200, ValueError("not json"))
        with mock.patch.object(requests.Session, "get", return_value=response):
            assert manager.get_available_models() == []

    def test_auth_header(self, client_config):
        client_config.server.api_key = "secret"
        manager = self.make_manager(client_config)
        assert manager.http.headers["Authorization"] == "Bearer secret"


class TestCommands:

    def test_quit(self, client):
        assert handle_command(client, "/quit") is False

    def test_help(self, client):
        assert handle_command(client, "/help") is True
        assert "/summary" in client.console.export_text()

    def test_unknown(self, client):
        assert handle_command(client, "/dance") is True
        assert "Unknown command: /dance" in client.console.export_text()

    def test_clear(self, client):
        client.conversation.history.append({"role": "user", "content": "hi"})
        handle_command(client, "/clear")
        assert client.conversation.history == []

    def test_quick_prompt(self, client):
        response = FakeStreamingResponse([sse_body(["Entropy measures disorder."])])
        with mock.patch.object(requests.Session, "post", return_value=response) as post:
            assert handle_command(client, "/quick explain entropy in physics") is True

        message = post.call_args.kwargs["json"]["messages"][-1]
        assert message == {"role": "user", "content": "Explain in simple terms what is entropy in physics"}
        assert client.conversation.history[-1]["content"] == "Entropy measures disorder."

    def test_quick_prompt_unknown_name(self, client):
        with mock.patch.object(requests.Session, "post") as post:
            handle_command(client, "/quick translate hello")
        post.assert_not_called()
        assert "Unknown quick prompt" in client.console.export_text()

    def test_quick_prompt_without_subject(self, client):
        with mock.patch.object(requests.Session, "post") as post:
            handle_command(client, "/quick explain")
        post.assert_not_called()
        assert "Usage: /quick NAME SUBJECT" in client.console.export_text()
