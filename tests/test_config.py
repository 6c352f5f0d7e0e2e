"""Tests for configuration loading and CLI merging."""

import argparse

import pytest
from pydantic import ValidationError

from answerstream.client.cli import build_parser
from answerstream.client.config import API_KEY_ENV, ClientConfig, DisplayConfig, ServerConfig
from answerstream.client.errors import ConfigError
from answerstream.utils.config_loader import load_client_config, load_yaml_config, merge_configs


class TestModels:

    def test_defaults(self):
        config = ClientConfig()
        assert config.endpoint == "http://localhost:8000/v1/chat/completions"
        assert config.stream.timeout == 60.0
        assert config.display.language_hint == "auto"
        assert config.generation.model is None

    def test_url_normalisation(self):
        server = ServerConfig(base_url="http://host:9000/", chat_path="v1/chat/completions")
        assert server.base_url == "http://host:9000"
        assert server.chat_path == "/v1/chat/completions"

    def test_language_hint_is_lowercased(self):
        assert DisplayConfig(language_hint="ZH").language_hint == "zh"

    def test_invalid_language_hint(self):
        with pytest.raises(ValidationError):
            DisplayConfig(language_hint="fr")

    def test_invalid_temperature(self):
        with pytest.raises(ValidationError):
            ClientConfig(generation={"temperature": 3.0})

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv(API_KEY_ENV, "env-key")
        assert ClientConfig().resolved_api_key() == "env-key"
        assert ClientConfig(server={"api_key": "file-key"}).resolved_api_key() == "file-key"

    def test_no_api_key(self, monkeypatch):
        monkeypatch.delenv(API_KEY_ENV, raising=False)
        assert ClientConfig().resolved_api_key() is None


class TestYamlLoading:

    def test_load(self, tmp_path):
        path = tmp_path / "client.yaml"
        path.write_text(
            "server:\n  base_url: http://remote:8080/\n"
            "generation:\n  model: qwen-vl-max\n"
            "display:\n  language_hint: zh\n",
            encoding="utf-8",
        )
        config = load_client_config(str(path))
        assert config.endpoint == "http://remote:8080/v1/chat/completions"
        assert config.generation.model == "qwen-vl-max"
        assert config.display.language_hint == "zh"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigError, match="Empty"):
            load_yaml_config(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("server: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_yaml_config(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            load_yaml_config(str(path))


class TestMerging:

    def test_cli_values_override(self):
        merged = merge_configs(ClientConfig(), {
            "base_url": "http://other",
            "model": "m",
            "timeout": 5.0,
            "language": "en",
            "raw": True,
        })
        assert merged.endpoint == "http://other/v1/chat/completions"
        assert merged.generation.model == "m"
        assert merged.stream.timeout == 5.0
        assert merged.display.language_hint == "en"
        assert merged.display.show_raw is True

    def test_none_and_unknown_values_are_ignored(self):
        base = ClientConfig(generation={"model": "kept"})
        merged = merge_configs(base, {"model": None, "write": "essay", "debug": None})
        assert merged.generation.model == "kept"
        assert merged.debug is False

    def test_merge_returns_new_config(self):
        base = ClientConfig()
        base.merge_cli_args(temperature=0.1)
        assert base.generation.temperature == 0.7

    def test_from_args_with_yaml(self, tmp_path):
        path = tmp_path / "client.yaml"
        path.write_text("generation:\n  model: from-file\n  temperature: 0.2\n", encoding="utf-8")

        args = build_parser().parse_args(["--config", str(path), "--temperature", "0.9"])
        config = ClientConfig.from_args(args)

        assert config.generation.model == "from-file"
        assert config.generation.temperature == 0.9

    def test_absent_flags_do_not_override_yaml(self, tmp_path):
        path = tmp_path / "client.yaml"
        path.write_text("display:\n  show_raw: true\n", encoding="utf-8")

        args = build_parser().parse_args(["--config", str(path)])
        assert ClientConfig.from_args(args).display.show_raw is True

    def test_from_args_without_yaml(self):
        args = argparse.Namespace(config=None, model="cli-model")
        assert ClientConfig.from_args(args).generation.model == "cli-model"
