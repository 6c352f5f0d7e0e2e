"""Shared test fixtures."""

import pytest

from answerstream.client.config import ClientConfig


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(
        server={"base_url": "http://testserver"},
        generation={"model": "test-model"},
    )
