"""
Configuration models for the streaming client.

Settings come from three layers, later layers winning:
1. Defaults declared on the Pydantic models below
2. An optional YAML file (``--config client.yaml``)
3. Command-line flags

Example YAML:

    server:
      base_url: https://dashscope-intl.aliyuncs.com/compatible-mode
      chat_path: /v1/chat/completions
    generation:
      model: qwen-vl-max
    stream:
      timeout: 60
    display:
      language_hint: auto
"""

import os
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

API_KEY_ENV = "ANSWERSTREAM_API_KEY"
LANGUAGE_HINTS = ("auto", "en", "zh")


class ServerConfig(BaseModel):
    """Where streaming requests are sent."""

    base_url: str = Field(
        default="http://localhost:8000",
        description="Server base URL, without trailing slash"
    )
    chat_path: str = Field(
        default="/v1/chat/completions",
        description="Path of the streaming chat completions endpoint"
    )
    api_key: Optional[str] = Field(
        default=None,
        description=f"Bearer token; falls back to ${API_KEY_ENV}"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip('/')

    @field_validator('chat_path')
    @classmethod
    def ensure_leading_slash(cls, v: str) -> str:
        return v if v.startswith('/') else f"/{v}"


class GenerationDefaults(BaseModel):
    """Default settings for text generation."""

    model: Optional[str] = Field(
        default=None,
        description="Model name; auto-detected from /v1/models when unset"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature"
    )
    max_tokens: int = Field(
        default=4096,
        gt=0,
        description="Maximum tokens to generate"
    )


class StreamConfig(BaseModel):
    """Transport settings for the stream consumer."""

    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds of inactivity before the stream fails with a timeout"
    )
    connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed for establishing the connection"
    )
    chunk_size: Optional[int] = Field(
        default=None,
        gt=0,
        description="Read size in bytes; None delivers bytes as they arrive"
    )


class DisplayConfig(BaseModel):
    """Terminal rendering settings."""

    language_hint: str = Field(
        default="auto",
        description="auto, en or zh; selects the Chinese heading rules"
    )
    refresh_per_second: int = Field(
        default=10,
        ge=1,
        description="Live display refresh rate while streaming"
    )
    show_raw: bool = Field(
        default=False,
        description="Show the raw answer text instead of classified blocks"
    )

    @field_validator('language_hint')
    @classmethod
    def validate_language_hint(cls, v: str) -> str:
        v = v.lower()
        if v not in LANGUAGE_HINTS:
            raise ValueError(f"language_hint must be one of {LANGUAGE_HINTS}, got {v!r}")
        return v


class ClientConfig(BaseModel):
    """Complete client configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    generation: GenerationDefaults = Field(default_factory=GenerationDefaults)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    debug: bool = Field(
        default=False,
        description="Log requests and stream records to llm_debug.log"
    )

    @property
    def endpoint(self) -> str:
        """Full URL of the streaming endpoint."""
        return f"{self.server.base_url}{self.server.chat_path}"

    def resolved_api_key(self) -> Optional[str]:
        return self.server.api_key or os.environ.get(API_KEY_ENV)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ClientConfig':
        """Load configuration from a YAML file."""
        from ..utils.config_loader import load_client_config
        return load_client_config(yaml_path)

    def merge_cli_args(self, **kwargs: Any) -> 'ClientConfig':
        """Return a copy with non-None CLI values applied."""
        from ..utils.config_loader import merge_configs
        return merge_configs(self, kwargs)

    @classmethod
    def from_args(cls, args) -> 'ClientConfig':
        """Create config from parsed command line arguments."""
        config_path = getattr(args, 'config', None)
        base = cls.from_yaml(config_path) if config_path else cls()
        return base.merge_cli_args(**vars(args))
