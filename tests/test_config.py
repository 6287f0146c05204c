"""Tests for configuration loading."""

import logging
from datetime import time

import pytest

from mindsync.config import DATA_DIR, Config, load_config


@pytest.fixture
def conf_file(tmp_path):
    return tmp_path / "mindsync.conf"


@pytest.fixture(autouse=True)
def no_env_key(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.conf")
        assert config == Config()

    def test_reads_values(self, conf_file):
        conf_file.write_text(
            "\n".join(
                [
                    "# MindSync settings",
                    'LLM_API_KEY="secret" # from console',
                    "LLM_MODEL=llama-3.1-8b-instant  # faster",
                    "LLM_BASE_URL=http://localhost:8000/v1/",
                    "LLM_MAX_TOKENS=800",
                    "LLM_TEMPERATURE=0.2",
                    "SLEEP_START_TIME=22:30",
                    "SLEEP_END_TIME='07:00'",
                    "REQUEST_MIN_GAP_SECONDS=0.5",
                    "REQUEST_MAX_RETRIES=5",
                    "CACHE_TTL_SECONDS=60",
                    "STATE_FILE=~/sync/state.json",
                    "not a setting",
                ]
            )
        )
        config = load_config(conf_file)

        assert config.llm_api_key == "secret"
        assert config.llm_model == "llama-3.1-8b-instant"
        assert config.llm_base_url == "http://localhost:8000/v1"
        assert config.llm_max_tokens == 800
        assert config.llm_temperature == 0.2
        assert config.sleep_start_time == time(22, 30)
        assert config.sleep_end_time == time(7, 0)
        assert config.request_min_gap_seconds == 0.5
        assert config.request_max_retries == 5
        assert config.cache_ttl_seconds == 60.0
        assert "~" not in str(config.state_path)

    def test_invalid_numbers_keep_default(self, conf_file, caplog):
        conf_file.write_text("LLM_MAX_TOKENS=lots\nSLEEP_START_TIME=late\n")
        with caplog.at_level(logging.WARNING, logger="mindsync.config"):
            config = load_config(conf_file)

        assert config.llm_max_tokens == 500
        assert config.sleep_start_time == time(23, 0)
        assert "LLM_MAX_TOKENS" in caplog.text
        assert "SLEEP_START_TIME" in caplog.text

    def test_api_key_from_environment(self, conf_file, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "env-key")
        assert load_config(conf_file).llm_api_key == "env-key"

    def test_file_key_beats_environment(self, conf_file, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "env-key")
        conf_file.write_text("LLM_API_KEY=file-key\n")
        assert load_config(conf_file).llm_api_key == "file-key"


class TestStatePath:
    def test_default(self):
        assert Config().state_path == DATA_DIR / "state.json"
