"""3-layer configuration system for Switchboard.

Loads and merges configuration from:
1. Default settings (built-in)
2. Config file (switchboard.yaml)
3. CLI / caller overrides
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG_FILE = "switchboard.yaml"

DEFAULT_CONFIG: dict = {
    "pipeline": {
        "history_limit": 10,
        "max_concurrency": None,
        "status_after_reply": None,
    },
    "ai": {
        "provider": "openai",
        "temperature": 0.7,
        "max_tokens": 500,
        "timeout_seconds": 60,
        "retry_attempts": 3,
        "retry_delay_seconds": 5,
        "openai": {
            "endpoint": "https://api.openai.com/v1",
            "model": "gpt-4o-mini",
            "api_key_env": "OPENAI_API_KEY",
        },
        "anthropic": {
            "model": "claude-sonnet-4-5-20250929",
            "api_key_env": "ANTHROPIC_API_KEY",
        },
    },
    "chatwoot": {
        "url": "",
        "url_env": "CHATWOOT_URL",
        "api_token_env": "CHATWOOT_API_TOKEN",
        "timeout_seconds": 30,
    },
    "logging": {
        "level": "INFO",
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = {}
    for key in base:
        result[key] = base[key]
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def load_config_file(config_path: Optional[Path] = None) -> dict:
    """Load configuration from a YAML file. Missing or unreadable files yield {}."""
    path = Path(config_path) if config_path else Path.cwd() / DEFAULT_CONFIG_FILE
    if not path.exists():
        return {}
    try:
        content = path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        data = yaml.safe_load(content) or {}
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def get_effective_config(
    config_path: Optional[Path] = None,
    overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    file_config = load_config_file(config_path)
    if file_config:
        config = deep_merge(config, file_config)

    if overrides:
        config = deep_merge(config, overrides)

    return config
