"""Helpers for loading and merging client configuration.

This module provides YAML loading and CLI-override merging for
``ClientConfig``.
"""

import yaml
from pathlib import Path
from typing import Any, Dict

from ..client.config import ClientConfig
from ..client.errors import ConfigError


# Mapping from CLI argument names to config paths
ARG_MAPPING = {
    'base_url': 'server.base_url',
    'chat_path': 'server.chat_path',
    'api_key': 'server.api_key',
    'model': 'generation.model',
    'temperature': 'generation.temperature',
    'max_tokens': 'generation.max_tokens',
    'timeout': 'stream.timeout',
    'connect_timeout': 'stream.connect_timeout',
    'language': 'display.language_hint',
    'raw': 'display.show_raw',
    'debug': 'debug',
}


def load_yaml_config(yaml_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        yaml_path: Path to the YAML configuration file

    Returns:
        Dictionary containing the configuration data

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ConfigError: If the YAML is empty, invalid, or not a mapping
    """
    path = Path(yaml_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {yaml_path}: {e}") from e

    if data is None:
        raise ConfigError(f"Empty or invalid YAML file: {yaml_path}")
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {yaml_path} must be a mapping")

    return data


def load_client_config(yaml_path: str) -> ClientConfig:
    """Load ClientConfig from YAML file."""
    data = load_yaml_config(yaml_path)
    return ClientConfig(**data)


def merge_configs(base_config: ClientConfig, cli_args: Dict[str, Any]) -> ClientConfig:
    """Merge CLI arguments into base configuration.

    Args:
        base_config: Base ClientConfig to merge into
        cli_args: Dictionary of CLI argument values; None means "not given"

    Returns:
        New ClientConfig with merged values
    """
    config_dict = base_config.model_dump()

    for arg_name, value in cli_args.items():
        if value is not None and arg_name in ARG_MAPPING:
            keys = ARG_MAPPING[arg_name].split('.')
            current = config_dict
            for key in keys[:-1]:
                current = current.setdefault(key, {})
            current[keys[-1]] = value

    return ClientConfig(**config_dict)
