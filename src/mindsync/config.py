"""Configuration management for MindSync."""

import logging
import os
from dataclasses import dataclass
from datetime import time
from pathlib import Path

from .core.tasks import parse_hhmm

logger = logging.getLogger(__name__)

MINDSYNC_HOME = Path(os.environ.get("MINDSYNC_HOME", Path.home() / "mindsync"))
CONFIG_FILE = MINDSYNC_HOME / "config" / "mindsync.conf"
DATA_DIR = MINDSYNC_HOME / "data"

API_KEY_ENV = "GROQ_API_KEY"


@dataclass
class Config:
    """MindSync configuration."""

    llm_api_key: str = ""
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "llama-3.3-70b-versatile"
    llm_max_tokens: int = 500
    llm_temperature: float = 0.7
    llm_timeout: float = 60.0
    # Awake window used when the state file has no preferences
    sleep_start_time: time = time(23, 0)
    sleep_end_time: time = time(6, 0)
    # Request queue
    request_min_gap_seconds: float = 2.0
    request_max_retries: int = 3
    cache_ttl_seconds: float = 300.0
    state_file: str = ""

    @property
    def state_path(self) -> Path:
        if self.state_file:
            return Path(self.state_file).expanduser()
        return DATA_DIR / "state.json"


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def _number(key: str, value: str, kind: type, default):
    try:
        return kind(value)
    except ValueError:
        logger.warning(f"Invalid value for {key.upper()}: {value!r}; using {default}")
        return default


def _clock_time(key: str, value: str, default: time) -> time:
    parsed = parse_hhmm(value)
    if parsed is None:
        logger.warning(f"Invalid time for {key.upper()}: {value!r}; using {default:%H:%M}")
        return default
    return parsed


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from mindsync.conf, then fill the API key from the environment."""
    config = Config()
    config_file = config_file or CONFIG_FILE

    if config_file.exists():
        for line in config_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _unquote(value.strip())

            match key:
                case "llm_api_key":
                    config.llm_api_key = value
                case "llm_base_url":
                    config.llm_base_url = value.rstrip("/")
                case "llm_model":
                    config.llm_model = value
                case "llm_max_tokens":
                    config.llm_max_tokens = _number(key, value, int, config.llm_max_tokens)
                case "llm_temperature":
                    config.llm_temperature = _number(key, value, float, config.llm_temperature)
                case "llm_timeout":
                    config.llm_timeout = _number(key, value, float, config.llm_timeout)
                case "sleep_start_time":
                    config.sleep_start_time = _clock_time(key, value, config.sleep_start_time)
                case "sleep_end_time":
                    config.sleep_end_time = _clock_time(key, value, config.sleep_end_time)
                case "request_min_gap_seconds":
                    config.request_min_gap_seconds = _number(key, value, float, config.request_min_gap_seconds)
                case "request_max_retries":
                    config.request_max_retries = _number(key, value, int, config.request_max_retries)
                case "cache_ttl_seconds":
                    config.cache_ttl_seconds = _number(key, value, float, config.cache_ttl_seconds)
                case "state_file":
                    config.state_file = value
                case _:
                    logger.debug(f"Ignoring unknown config key: {key}")

    if not config.llm_api_key:
        config.llm_api_key = os.environ.get(API_KEY_ENV, "")

    return config
